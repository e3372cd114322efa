"""branchkit - git integration and feature-branch automation."""

__version__ = "0.1.0"
