"""
Tests for the hardware probe and facts files.
"""

import json
import textwrap
from pathlib import Path

import pytest

from conftest import ASUS_VENDOR, GTX_1650, INTEL_IGPU
from hwprovision.adapters.mock import MockHardwareInspector, MockPackageManager
from hwprovision.core.config.loader import ConfigError
from hwprovision.core.services.probe import (
    DRIVER_PACKAGES,
    load_facts_file,
    nvidia_descriptors,
    probe,
)


class TestProbe:
    def test_snapshot(self):
        hardware = MockHardwareInspector(
            dmi={"sys_vendor": ASUS_VENDOR, "product_name": "ROG Strix G15 2021"},
            pci=[INTEL_IGPU, GTX_1650, "00:1f.3 Audio device: Intel Corporation"],
        )
        packages = MockPackageManager(installed={"nvidia-580xx-utils", "linux-lts", "linux", "vim"})

        facts = probe(hardware, packages)

        assert facts.vendor_string == ASUS_VENDOR
        assert facts.product_name == "ROG Strix G15 2021"
        assert facts.gpu_descriptors == (GTX_1650,)
        assert facts.installed_driver_packages == frozenset({"nvidia-580xx-utils"})
        assert facts.installed_kernels == ("linux", "linux-lts")

    def test_missing_dmi_fields(self):
        facts = probe(MockHardwareInspector(), MockPackageManager())
        assert facts.vendor_string == ""
        assert facts.product_name == ""
        assert facts.gpu_descriptors == ()

    def test_facts_are_immutable(self):
        facts = probe(MockHardwareInspector(), MockPackageManager())
        with pytest.raises(Exception):
            facts.vendor_string = "changed"

    def test_driver_packages_cover_both_branches(self):
        assert {"nvidia-utils", "nvidia-580xx-utils", "nvidia-open-dkms"} <= DRIVER_PACKAGES

    def test_nvidia_descriptors_case_insensitive(self):
        lines = ["3D controller: nvidia Corporation GA107M", INTEL_IGPU]
        assert nvidia_descriptors(lines) == ("3D controller: nvidia Corporation GA107M",)


class TestFactsFile:
    def test_yaml_with_aliases(self, tmp_path: Path):
        path = tmp_path / "host.yml"
        path.write_text(textwrap.dedent("""\
            vendor: ASUSTeK COMPUTER INC.
            product: ROG Zephyrus G14 2024
            gpus:
              - GeForce RTX 4060
            installed_driver_packages: [nvidia-utils]
            installed_kernels: [linux-zen]
        """))
        facts = load_facts_file(path)
        assert facts.vendor_string == "ASUSTeK COMPUTER INC."
        assert facts.gpu_descriptors == ("GeForce RTX 4060",)
        assert facts.installed_driver_packages == frozenset({"nvidia-utils"})
        assert facts.installed_kernels == ("linux-zen",)

    def test_json(self, tmp_path: Path):
        path = tmp_path / "host.json"
        path.write_text(json.dumps({"vendor_string": "Dell Inc.", "gpu_descriptors": []}))
        facts = load_facts_file(path)
        assert facts.vendor_string == "Dell Inc."
        assert facts.gpu_descriptors == ()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_facts_file(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("vendor: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid facts file"):
            load_facts_file(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="Expected a mapping"):
            load_facts_file(path)

    def test_unknown_types_rejected(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("gpus: 42\n")
        with pytest.raises(ConfigError, match="Invalid facts"):
            load_facts_file(path)
