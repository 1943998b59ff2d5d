"""Version-control access for versync."""

from .repository import CommitRange, Repository, discover_root

__all__ = ["CommitRange", "Repository", "discover_root"]
