"""
Tests for adapters — registry, mocks, command runner, system adapters.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest

from hwprovision.adapters.base import Adapter, PackageManager
from hwprovision.adapters.mock import (
    MockFetcher,
    MockFileSystem,
    MockPackageManager,
    MockServiceManager,
)
from hwprovision.adapters.registry import (
    ROLES,
    AdapterRegistry,
    build_mock_registry,
    build_system_registry,
)
from hwprovision.adapters.shell.command import CommandResult, CommandRunner
from hwprovision.adapters.shell.filesystem import LocalFileSystem
from hwprovision.adapters.system.mkinitcpio import MkinitcpioBootImageBuilder
from hwprovision.adapters.system.pacman import PacmanPackageManager
from hwprovision.adapters.system.sysfs import SysfsHardwareInspector
from hwprovision.adapters.system.systemd import SystemdServiceManager
from hwprovision.core.services import catalog


class ScriptedRunner(CommandRunner):
    """CommandRunner that answers from a table instead of spawning processes."""

    def __init__(self, responses: dict[tuple[str, ...], CommandResult] | None = None):
        super().__init__(use_sudo=False)
        self.responses = dict(responses or {})
        self.calls: list[list[str]] = []

    def available(self, binary: str) -> bool:
        return True

    def run(self, args, *, privileged=False, timeout=None, input_text=None):
        self.calls.append(list(args))
        return self.responses.get(tuple(args), CommandResult(args=list(args), returncode=1))


def _ok(args: tuple[str, ...], stdout: str = "") -> tuple[tuple[str, ...], CommandResult]:
    return args, CommandResult(args=list(args), returncode=0, stdout=stdout)


# ── Registry ─────────────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_register_and_lookup(self):
        registry = AdapterRegistry()
        pm = MockPackageManager()
        registry.register("packages", pm)
        assert registry.packages is pm
        assert registry.get("packages") is pm
        assert registry.list_roles() == ["packages"]

    def test_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown adapter role"):
            AdapterRegistry().register("printer", MockPackageManager())

    def test_wrong_capability(self):
        with pytest.raises(TypeError, match="PackageManager"):
            AdapterRegistry().register("packages", MockServiceManager())

    def test_missing_role(self):
        with pytest.raises(LookupError, match="files"):
            AdapterRegistry().files  # noqa: B018

    def test_mock_registry_covers_every_role(self):
        registry = build_mock_registry()
        assert registry.mock_mode
        assert set(registry.list_roles()) == set(ROLES)

    def test_mock_registry_override(self):
        files = MockFileSystem(files={"/a": "b"})
        assert build_mock_registry(files=files).files is files

    def test_system_registry_roles(self, tmp_path: Path):
        registry = build_system_registry(root=str(tmp_path), use_sudo=False)
        assert not registry.mock_mode
        assert set(registry.list_roles()) == set(ROLES)
        assert isinstance(registry.packages, PacmanPackageManager)

    def test_adapter_status(self):
        status = build_mock_registry().adapter_status()
        assert status["packages"] == {
            "name": "mock-packages", "available": True, "type": "MockPackageManager",
        }

    def test_status_survives_broken_adapter(self):
        class Broken(MockPackageManager):
            def is_available(self) -> bool:
                raise RuntimeError("probe failed")

        registry = AdapterRegistry()
        registry.register("packages", Broken())
        assert registry.adapter_status()["packages"]["available"] is False

    def test_repr(self):
        assert repr(MockPackageManager()) == "<MockPackageManager name='mock-packages'>"

    def test_abstract_contracts(self):
        assert issubclass(PackageManager, Adapter)
        with pytest.raises(TypeError):
            PackageManager()


# ── Mocks ────────────────────────────────────────────────────────────


class TestMocks:
    def test_package_install_records_calls(self):
        pm = MockPackageManager(unavailable={"bad"})
        assert pm.install(["good", "bad"]) == {"good": True, "bad": False}
        assert pm.install_calls == [["good", "bad"]]
        assert pm.is_installed("good")

    def test_service_enable_adds_unit(self):
        sm = MockServiceManager()
        assert sm.enable("x.service")
        assert "x.service" in sm.list_unit_names()

    def test_read_only_file(self):
        fs = MockFileSystem(read_only={"/etc/x"})
        with pytest.raises(OSError):
            fs.write_file("/etc/x", "y")

    def test_fetcher_without_default(self):
        with pytest.raises(OSError):
            MockFetcher(default=None).fetch("http://nowhere")


# ── Command runner ───────────────────────────────────────────────────


class TestCommandRunner:
    def test_success(self):
        result = CommandRunner(use_sudo=False).run(["echo", "hello"])
        assert result.ok
        assert result.stdout == "hello"

    def test_nonzero_exit(self):
        result = CommandRunner(use_sudo=False).run(["false"])
        assert not result.ok
        assert "exited with code" in result.error

    def test_missing_binary(self):
        result = CommandRunner(use_sudo=False).run(["definitely-not-a-real-binary-xyz"])
        assert result.returncode == 127
        assert "command not found" in result.error

    def test_timeout(self):
        result = CommandRunner(use_sudo=False).run(["sleep", "5"], timeout=1)
        assert result.returncode == 124

    def test_input_text(self):
        result = CommandRunner(use_sudo=False).run(["cat"], input_text="piped")
        assert result.stdout == "piped"

    def test_available(self):
        runner = CommandRunner()
        assert runner.available("sh")
        assert not runner.available("definitely-not-a-real-binary-xyz")

    def test_host_command_unchanged(self):
        runner = CommandRunner(use_sudo=False)
        assert not runner.chrooted
        assert runner.build_command(["pacman", "-Q"]) == ["pacman", "-Q"]

    def test_chroot_wraps_command(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr("hwprovision.adapters.shell.command.os.geteuid", lambda: 1000)
        runner = CommandRunner(chroot="/mnt")
        assert runner.build_command(["pacman", "-Q", "linux"]) == [
            "sudo", "arch-chroot", "/mnt", "pacman", "-Q", "linux",
        ]
        assert CommandRunner(use_sudo=False, chroot="/mnt/").build_command(["true"]) == [
            "arch-chroot", "/mnt/", "true",
        ]

    def test_chroot_available_checks_target(self, tmp_path: Path):
        assert not CommandRunner(chroot=str(tmp_path)).available("sh")


class TestSystemRegistryRoot:
    @pytest.fixture
    def spawned(self, monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
        calls: list[list[str]] = []

        def fake_run(cmd, **kwargs):
            calls.append(list(cmd))
            return SimpleNamespace(returncode=0, stdout="", stderr="")

        monkeypatch.setattr("hwprovision.adapters.shell.command.subprocess.run", fake_run)
        return calls

    def test_target_commands_run_in_chroot(self, tmp_path: Path, spawned):
        root = str(tmp_path)
        registry = build_system_registry(root=root, use_sudo=False)

        registry.packages.install(["nvidia-utils"])
        registry.packages.refresh()
        registry.packages.has_trust_key("DEADBEEF")
        registry.services.enable("nvidia-suspend.service")
        registry.boot.regenerate()

        assert ["arch-chroot", root, "pacman", "-S", "--needed", "--noconfirm", "nvidia-utils"] in spawned
        assert ["arch-chroot", root, "pacman", "-Q", "nvidia-utils"] in spawned
        assert ["arch-chroot", root, "pacman", "-Sy", "--noconfirm"] in spawned
        assert ["arch-chroot", root, "pacman-key", "--list-keys", "DEADBEEF"] in spawned
        assert ["arch-chroot", root, "systemctl", "enable", "nvidia-suspend.service"] in spawned
        assert ["arch-chroot", root, "mkinitcpio", "-P"] in spawned

    def test_hardware_read_from_host(self, tmp_path: Path, spawned):
        registry = build_system_registry(root=str(tmp_path), use_sudo=False)
        registry.hardware.list_pci_devices()
        assert spawned == [["lspci"]]

    def test_default_root_not_chrooted(self, spawned):
        build_system_registry(use_sudo=False).packages.refresh()
        assert spawned == [["pacman", "-Sy", "--noconfirm"]]

    def test_repository_written_under_root(self, tmp_path: Path, spawned):
        (tmp_path / "etc").mkdir()
        (tmp_path / "etc" / "pacman.conf").write_text("[core]\nInclude = x\n")
        registry = build_system_registry(root=str(tmp_path), use_sudo=False)
        assert registry.packages.add_repository(catalog.G14_REPOSITORY)
        assert "[g14]" in (tmp_path / "etc" / "pacman.conf").read_text()
        assert spawned == []


# ── Local filesystem ─────────────────────────────────────────────────


class TestLocalFileSystem:
    def test_write_read_under_root(self, tmp_path: Path):
        fs = LocalFileSystem(root=str(tmp_path))
        fs.write_file("/etc/modprobe.d/nvidia.conf", "options x\n")
        assert (tmp_path / "etc/modprobe.d/nvidia.conf").read_text() == "options x\n"
        assert fs.read_file("/etc/modprobe.d/nvidia.conf") == "options x\n"
        assert fs.exists("/etc/modprobe.d/nvidia.conf")

    def test_missing_file(self, tmp_path: Path):
        fs = LocalFileSystem(root=str(tmp_path))
        assert fs.read_file("/etc/nothing") is None
        assert not fs.exists("/etc/nothing")

    def test_append(self, tmp_path: Path):
        fs = LocalFileSystem(root=str(tmp_path))
        fs.write_file("/f", "a\n")
        fs.append_file("/f", "b\n")
        assert fs.read_file("/f") == "a\nb\n"

    def test_remove(self, tmp_path: Path):
        fs = LocalFileSystem(root=str(tmp_path))
        fs.write_file("/f", "a")
        fs.remove("/f")
        fs.remove("/f")
        assert fs.read_file("/f") is None

    def test_home_paths_not_rooted(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        fs = LocalFileSystem(root="/mnt")
        assert fs.resolve("~/.config/hypr/envs.conf") == tmp_path / "home/.config/hypr/envs.conf"

    def test_privileged_write_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        runner = ScriptedRunner()
        runner.use_sudo = True
        fs = LocalFileSystem(root=str(tmp_path), runner=runner)
        monkeypatch.setattr(fs, "_needs_privilege", lambda target: True)
        with pytest.raises(OSError, match="mkdir"):
            fs.write_file("/etc/x.conf", "x")


# ── Pacman ───────────────────────────────────────────────────────────


class TestPacman:
    def _pacman(self, runner: ScriptedRunner, tmp_path: Path, conf: str = "", fetcher=None):
        fs = LocalFileSystem(root=str(tmp_path))
        fs.write_file("/etc/pacman.conf", conf)
        return PacmanPackageManager(runner, fs, fetcher=fetcher), fs

    def test_list_installed_partial(self, tmp_path: Path):
        runner = ScriptedRunner({
            ("pacman", "-Q", "asusctl", "nvidia-utils"): CommandResult(
                args=[], returncode=1, stdout="nvidia-utils 560.35.03-1",
                stderr="error: package 'asusctl' was not found",
            ),
        })
        pm, _ = self._pacman(runner, tmp_path)
        assert pm.list_installed(["nvidia-utils", "asusctl"]) == {"nvidia-utils"}

    def test_install_reports_per_package(self, tmp_path: Path):
        runner = ScriptedRunner(dict([
            _ok(("pacman", "-S", "--needed", "--noconfirm", "a", "b")),
            _ok(("pacman", "-Q", "a", "b"), stdout="a 1.0-1"),
        ]))
        pm, _ = self._pacman(runner, tmp_path)
        assert pm.install(["a", "b"]) == {"a": True, "b": False}

    def test_repository_roundtrip(self, tmp_path: Path):
        pm, fs = self._pacman(ScriptedRunner(), tmp_path, conf="[core]\nInclude = x\n")
        assert not pm.has_repository("g14")
        assert pm.add_repository(catalog.G14_REPOSITORY)
        assert pm.has_repository("g14")
        conf = fs.read_file("/etc/pacman.conf")
        assert "# G14 repository for ASUS laptop tools\n[g14]\nServer = https://arch.asus-linux.org\n" in conf

    def test_commented_repository_not_configured(self, tmp_path: Path):
        pm, _ = self._pacman(ScriptedRunner(), tmp_path, conf="#[g14]\n")
        assert not pm.has_repository("g14")

    def test_key_import_from_keyserver(self, tmp_path: Path):
        key = catalog.G14_REPOSITORY.key_id
        runner = ScriptedRunner(dict([
            _ok(("pacman-key", "--recv-keys", key)),
            _ok(("pacman-key", "--finger", key)),
            _ok(("pacman-key", "--lsign-key", key)),
            _ok(("pacman-key", "--list-keys", key)),
        ]))
        pm, _ = self._pacman(runner, tmp_path)
        assert pm.import_trust_key(key)
        assert ["pacman-key", "--lsign-key", key] in runner.calls

    def test_key_import_falls_back_to_url(self, tmp_path: Path):
        key = catalog.G14_REPOSITORY.key_id

        class AddAnyKey(ScriptedRunner):
            def run(self, args, **kwargs):
                if args[:2] == ["pacman-key", "-a"]:
                    self.calls.append(list(args))
                    return CommandResult(args=list(args), returncode=0)
                return super().run(args, **kwargs)

        runner = AddAnyKey(dict([
            _ok(("pacman-key", "--lsign-key", key)),
            _ok(("pacman-key", "--list-keys", key)),
        ]))
        fetcher = MockFetcher({"http://keys/k.asc": "-----BEGIN PGP-----"})
        pm, _ = self._pacman(runner, tmp_path, fetcher=fetcher)
        assert pm.import_trust_key(key, "http://keys/k.asc")
        assert fetcher.fetched == ["http://keys/k.asc"]
        assert any(c[:2] == ["pacman-key", "-a"] for c in runner.calls)

    def test_key_import_fails_without_fallback(self, tmp_path: Path):
        pm, _ = self._pacman(ScriptedRunner(), tmp_path)
        assert not pm.import_trust_key("DEADBEEF")


# ── Systemd / sysfs / mkinitcpio ─────────────────────────────────────


class TestSystemAdapters:
    def test_systemd_is_enabled(self):
        runner = ScriptedRunner(dict([
            _ok(("systemctl", "is-enabled", "a.service"), stdout="enabled"),
        ]))
        sm = SystemdServiceManager(runner)
        assert sm.is_enabled("a.service")
        assert not sm.is_enabled("b.service")

    def test_systemd_unit_names(self):
        runner = ScriptedRunner(dict([
            _ok(
                ("systemctl", "list-unit-files", "--no-legend", "--plain"),
                stdout="nvidia-powerd.service disabled enabled\nsshd.service enabled disabled\n",
            ),
        ]))
        assert SystemdServiceManager(runner).list_unit_names() == {
            "nvidia-powerd.service", "sshd.service",
        }

    def test_sysfs_dmi_and_pci(self, tmp_path: Path):
        (tmp_path / "sys_vendor").write_text("ASUSTeK COMPUTER INC.\n")
        runner = ScriptedRunner(dict([
            _ok(("lspci",), stdout="00:02.0 VGA: Intel\n01:00.0 VGA: NVIDIA GTX 1650\n"),
        ]))
        inspector = SysfsHardwareInspector(runner, dmi_dir=str(tmp_path))
        assert inspector.read_dmi_field("sys_vendor") == "ASUSTeK COMPUTER INC."
        assert inspector.read_dmi_field("product_name") is None
        assert inspector.list_pci_devices() == ["00:02.0 VGA: Intel", "01:00.0 VGA: NVIDIA GTX 1650"]

    def test_sysfs_without_lspci(self, tmp_path: Path):
        assert SysfsHardwareInspector(ScriptedRunner(), dmi_dir=str(tmp_path)).list_pci_devices() == []

    def test_mkinitcpio(self):
        runner = ScriptedRunner(dict([_ok(("mkinitcpio", "-P"))]))
        assert MkinitcpioBootImageBuilder(runner).regenerate()
        assert not MkinitcpioBootImageBuilder(ScriptedRunner()).regenerate()
