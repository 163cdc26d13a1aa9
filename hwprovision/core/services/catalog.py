"""
Provisioning catalog — fixed package sets, paths, and file contents.

Pure data. No logic. File contents here are written verbatim to the
host, so their exact text is part of the on-disk format.
"""

from __future__ import annotations

from hwprovision.core.models.state import AppendBlock, RepositoryDescriptor

# ── Laptop vendor ───────────────────────────────────────────────

ASUS_VENDOR_TOKEN = "ASUSTeK"

# Pattern-group label of the GTX 16 Turing parts; only these take the S0ix override.
TURING_GTX16_FAMILY = "Turing (GTX 16)"

# ── Generic NVIDIA driver domain ────────────────────────────────

# Turing/Ampere/Ada and newer: open kernel modules.
MODERN_DRIVER_PACKAGES: frozenset[str] = frozenset({
    "nvidia-open-dkms",
    "nvidia-utils",
    "nvidia-settings",
    "lib32-nvidia-utils",
    "libva-nvidia-driver",
})

# Pascal/Maxwell and GTX 16: the 580xx legacy branch.
LEGACY_DRIVER_PACKAGES: frozenset[str] = frozenset({
    "nvidia-580xx-dkms",
    "nvidia-580xx-utils",
    "lib32-nvidia-580xx-utils",
})

WAYLAND_SUPPORT_PACKAGES: frozenset[str] = frozenset({
    "egl-wayland",
    "qt5-wayland",
    "qt6-wayland",
})

# A driver counts as installed when one of these is present.
DRIVER_MARKER_PACKAGES: frozenset[str] = frozenset({
    "nvidia-utils",
    "nvidia-580xx-utils",
})

# Kernels in pacman's listing order; headers are "<kernel>-headers".
SUPPORTED_KERNELS: tuple[str, ...] = ("linux", "linux-hardened", "linux-lts", "linux-zen")
DEFAULT_KERNEL = "linux"

GENERIC_MODPROBE_PATH = "/etc/modprobe.d/nvidia.conf"
GENERIC_MODULE_OPTIONS: tuple[str, ...] = (
    "options nvidia_drm modeset=1 fbdev=1",
)

INITRAMFS_MODULES_PATH = "/etc/mkinitcpio.conf.d/nvidia.conf"
INITRAMFS_MODULES_CONTENT = "MODULES+=(nvidia nvidia_modeset nvidia_uvm nvidia_drm)\n"

DEFAULT_SESSION_ENV_FILE = "~/.config/hypr/envs.conf"
SESSION_ENV_BLOCK = AppendBlock(
    marker="LIBVA_DRIVER_NAME,nvidia",
    block=(
        "\n"
        "# NVIDIA environment variables\n"
        "env = NVD_BACKEND,direct\n"
        "env = LIBVA_DRIVER_NAME,nvidia\n"
        "env = __GLX_VENDOR_LIBRARY_NAME,nvidia\n"
    ),
)

NVIDIA_WIKI_URL = "https://wiki.archlinux.org/title/NVIDIA"

# ── ASUS vendor domain ──────────────────────────────────────────

G14_REPOSITORY = RepositoryDescriptor(
    name="g14",
    server="https://arch.asus-linux.org",
    description="G14 repository for ASUS laptop tools",
    key_id="8F654886F17D497FEFE3DB448B15A6B0E9A3FA35",
    key_url="https://keyserver.ubuntu.com/pks/lookup?op=get&search=0x8b15a6b0e9a3fa35",
)

ASUS_PACKAGES: frozenset[str] = frozenset({"asusctl", "rog-control-center"})

NVIDIA_PM_SERVICES: frozenset[str] = frozenset({
    "nvidia-suspend.service",
    "nvidia-hibernate.service",
    "nvidia-resume.service",
})
# Only shipped by some driver builds.
NVIDIA_OPTIONAL_PM_SERVICES: frozenset[str] = frozenset({"nvidia-powerd.service"})

ASUS_MODPROBE_PATH = "/etc/modprobe.d/nvidia-asus.conf"
ASUS_TURING_MODPROBE_CONTENT = (
    "# NVIDIA configuration for ASUS laptops with Turing GPUs\n"
    "options nvidia_drm modeset=1 fbdev=1\n"
    "\n"
    "# Disable GSP firmware for Turing GPUs (required for proper power management)\n"
    "# Enable S0ix power management\n"
    "options nvidia NVreg_EnableGpuFirmware=0 NVreg_EnableS0ixPowerManagement=1 "
    "NVreg_DynamicPowerManagement=0x02\n"
)

NVIDIA_PM_UDEV_RULES_PATH = "/usr/lib/udev/rules.d/80-nvidia-pm.rules"
NVIDIA_PM_UDEV_RULES_URL = (
    "https://gitlab.com/asus-linux/nvidia-laptop-power-cfg/-/raw/main/nvidia.rules"
)

G14_KERNEL_MIN_YEAR = 2024

# ── Reconciliation ──────────────────────────────────────────────

# A change under any of these means the boot image must be rebuilt.
MODULE_RESOURCE_PREFIXES: tuple[str, ...] = (
    "/etc/modprobe.d/",
    "/etc/mkinitcpio.conf.d/",
)
