"""
hwprovision — hardware-aware GPU driver and laptop tooling provisioning.

Probe the host, classify its hardware, resolve the desired configuration
for each domain, merge by precedence, and reconcile the host toward it.
"""

__version__ = "0.1.0"
