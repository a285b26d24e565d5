"""semrel - automated release versioning driven by branch topology and commit history."""

__version__ = "0.4.0"
