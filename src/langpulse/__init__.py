"""Per-language GitHub activity reports and source-code repository detection."""

__version__ = "0.1.0"
