"""Parse spec.repo into the (owner, repo) pair used by the GitHub API."""

import re
from urllib.parse import urlparse

from controller.errors import InvalidRepoURL

GITHUB_HOST = "github.com"

_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")


def parse_repo_url(repo_url: str, host: str = GITHUB_HOST) -> tuple[str, str]:
    """
    Extract owner and repository name from a GitHub repository URL.
    
    Args:
        repo_url: e.g. "https://github.com/acme/widgets"
        host: Accepted host (default: github.com)
    
    Returns:
        Tuple of (owner, repo)
    
    Raises:
        InvalidRepoURL: If the URL does not parse, points at another host, or
            its path is not exactly "/<owner>/<repo>"
    
    Examples:
        "https://github.com/acme/widgets" -> ("acme", "widgets")
        "/invalid/repo" -> InvalidRepoURL (no host)
    """
    if not isinstance(repo_url, str) or not repo_url:
        raise InvalidRepoURL(str(repo_url), "URL is empty")
    
    try:
        parsed = urlparse(repo_url)
    except ValueError as e:
        raise InvalidRepoURL(repo_url, "invalid URL format") from e
    
    if parsed.scheme not in ("http", "https"):
        raise InvalidRepoURL(repo_url, "URL must use https")
    if parsed.netloc != host:
        raise InvalidRepoURL(repo_url, f"URL is not a {host} repository")
    if parsed.query or parsed.fragment:
        raise InvalidRepoURL(repo_url, "URL must not carry a query or fragment")
    
    parts = parsed.path.strip("/").split("/")
    if len(parts) != 2 or not all(_SEGMENT.match(p) for p in parts):
        raise InvalidRepoURL(repo_url, "invalid repo format, expected /<owner>/<repo>")
    
    owner, repo = parts
    return owner, repo
