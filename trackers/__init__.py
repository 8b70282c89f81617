"""Issue tracker clients."""

from trackers.github import GitHubClient

__all__ = ["GitHubClient"]
