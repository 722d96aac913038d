"""zipsession: mutable, file-system-backed ZIP archive sessions."""

__version__ = "0.1.0"
