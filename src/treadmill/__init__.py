"""Keep a vendored dependency current on a long-lived treadmill branch."""

__version__ = "0.1.0"
