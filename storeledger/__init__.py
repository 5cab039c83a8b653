"""Stock ledger backend for multi-store retail and restaurant inventory."""

__version__ = "0.1.0"
