"""VendorConnect task lifecycle and assistant engine."""

__version__ = "1.0.0"
