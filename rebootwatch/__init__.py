"""rebootwatch — pending-reboot detection for Windows hosts."""

__version__ = "0.1.0"
