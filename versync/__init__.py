"""Commit-driven semantic versioning kept in lock-step across build manifests."""

__version__ = "0.1.0"
