"""hosttriage: persistence and host-state triage collector for Windows."""

__version__ = "0.1.0"
