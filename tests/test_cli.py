"""
Tests for CLI commands — detect, plan, apply, adapters, config check.
"""

import json
import logging
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from hwprovision.core.services import catalog
from hwprovision.core.services.precedence import PrecedenceConflictError
from hwprovision.main import cli


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _facts(tmp_path: Path, vendor: str = "ASUSTeK COMPUTER INC.", gpu: str = "GeForce GTX 1650") -> Path:
    path = tmp_path / "host.yml"
    path.write_text(textwrap.dedent(f"""\
        vendor: {vendor}
        product: ROG Strix G15 2024
        gpus:
          - {gpu}
        installed_kernels: [linux]
    """))
    return path


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "NVIDIA" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestDetectCommand:
    def test_detect_from_facts(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["detect", "--facts", str(_facts(tmp_path))])
        assert result.exit_code == 0
        assert "GPU generation: legacy" in result.output
        assert "Turing (GTX 16)" in result.output
        assert "asus" in result.output

    def test_detect_json(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["detect", "--json", "--facts", str(_facts(tmp_path))])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["classification"]["vendor"] == "asus"
        assert data["classification"]["product_year"] == 2024

    def test_detect_mock_host(self):
        result = CliRunner().invoke(cli, ["detect", "--mock"])
        assert result.exit_code == 0
        assert "No NVIDIA GPU found" in result.output

    def test_bad_config(self, tmp_path: Path):
        config = tmp_path / "bad.yml"
        config.write_text("nonsense: true\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "detect", "--mock"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestPlanCommand:
    def test_plan_lists_actions(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["plan", "--mock", "--facts", str(_facts(tmp_path))])
        assert result.exit_code == 0
        assert catalog.ASUS_MODPROBE_PATH in result.output
        assert "remove" in result.output
        assert "linux-g14" in result.output

    def test_plan_json(self, tmp_path: Path):
        result = CliRunner().invoke(
            cli, ["plan", "--mock", "--json", "--facts", str(_facts(tmp_path, vendor="Dell Inc."))],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["outcomes"]["vendor_specific"] == "detection_absent"
        assert "nvidia-580xx-dkms" in data["merged"]["packages"]

    def test_plan_unsupported_gpu(self, tmp_path: Path):
        facts = _facts(tmp_path, vendor="Dell Inc.", gpu="GeForce GT 710")
        result = CliRunner().invoke(cli, ["plan", "--mock", "--facts", str(facts)])
        assert result.exit_code == 0
        assert "unsupported_hardware" in result.output
        assert "Nothing to do." in result.output

    def test_precedence_conflict_is_fatal(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        def _conflict(states):
            raise PrecedenceConflictError("two writers for /etc/x")

        monkeypatch.setattr("hwprovision.core.use_cases.plan.merge", _conflict)
        result = CliRunner().invoke(cli, ["plan", "--mock", "--facts", str(_facts(tmp_path))])
        assert result.exit_code == 1
        assert "Precedence conflict" in result.output


class TestApplyCommand:
    def test_apply_mock(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["apply", "--mock", "--facts", str(_facts(tmp_path))])
        assert result.exit_code == 0
        assert "[mock]" in result.output
        assert "0 failed" in result.output

    def test_apply_dry_run_json(self, tmp_path: Path):
        result = CliRunner().invoke(
            cli, ["apply", "--mock", "--dry-run", "--json", "--facts", str(_facts(tmp_path))],
        )
        assert result.exit_code == 0
        report = json.loads(result.output)["report"]
        assert report["dry_run"] is True
        assert report["applied"] == 0

    def test_apply_records_audit(self, tmp_path: Path):
        ledger = tmp_path / "audit.ndjson"
        config = tmp_path / "hwprovision.yml"
        config.write_text(f"audit_log: {ledger}\n")
        result = CliRunner().invoke(
            cli, ["--config", str(config), "apply", "--mock", "--facts", str(_facts(tmp_path))],
        )
        assert result.exit_code == 0
        assert ledger.is_file()
        assert "audit log" in result.output


class TestAdaptersCommand:
    def test_mock_adapters(self):
        result = CliRunner().invoke(cli, ["adapters", "--mock", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["boot"]["type"] == "MockBootImageBuilder"
        assert all(info["available"] for info in data.values())


class TestConfigCheckCommand:
    def test_defaults_valid(self):
        result = CliRunner().invoke(cli, ["config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid_json(self, tmp_path: Path):
        config = tmp_path / "hwprovision.yml"
        config.write_text("command_timeout: nope\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert data["errors"]
