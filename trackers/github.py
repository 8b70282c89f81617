"""GitHub API client for the issue operations the reconciler needs.

Three calls cover the whole lifecycle of a managed issue:
- list_issues: the live issue list the matcher scans on every pass
- create_issue: first convergence of a new record
- edit_issue: body updates and closing on record deletion

Every call is bounded by a fixed timeout. Failures of any kind surface as
UpstreamError so the caller can abort the pass without committing anything.
"""

import logging
from typing import Any, Optional

import requests

from controller.errors import UpstreamError
from models.data_models import RemoteIssue

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class GitHubClient:
    """Minimal GitHub REST client for issues.
    
    Rate limits are not waited out: a 403/429 fails the pass like any other
    error and the record is retried on the next trigger.
    """
    
    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """Initialize GitHub API client.
        
        Args:
            token: GitHub personal access token for authentication
            base_url: REST API root (override for GitHub Enterprise)
            timeout: Per-request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28"
        }
    
    def _request(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        """Send one GitHub API request and return the decoded JSON body.
        
        Raises:
            UpstreamError: On transport errors, timeouts and non-2xx responses
        """
        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise UpstreamError(f"{method} {url} failed: {e}", cause=e) from e
        
        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        if remaining and limit:
            logger.debug(f"Rate limit: {remaining}/{limit} remaining")
        
        if response.status_code in (401, 403):
            logger.error(
                f"Authentication error: {response.status_code} - "
                f"{response.text[:200]}"
            )
        
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise UpstreamError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                cause=e,
            ) from e
        
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"{method} {url} returned invalid JSON", cause=e) from e
    
    def list_issues(self, owner: str, repo: str, max_pages: int = 50) -> list[RemoteIssue]:
        """Fetch every open issue of a repository, oldest first.
        
        Pull requests, which GitHub also serves from the issues endpoint, are
        dropped.
        
        Args:
            owner: Repository owner (e.g., "acme")
            repo: Repository name (e.g., "widgets")
            max_pages: Page cap (100 issues per page); hitting it is an error
        
        Returns:
            List of RemoteIssue in creation order
        
        Raises:
            UpstreamError: If any page fails or the listing runs past max_pages
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/issues"
        issues: list[RemoteIssue] = []
        
        for page in range(1, max_pages + 1):
            params = {
                "state": "open",
                "sort": "created",
                "direction": "asc",
                "per_page": 100,
                "page": page,
            }
            items = self._request("GET", url, params=params)
            
            if not items:
                break
            
            issues.extend(
                RemoteIssue.model_validate(item)
                for item in items
                if "pull_request" not in item
            )
            
            if len(items) < 100:
                break
        else:
            # Never return a partial list
            logger.error(f"{owner}/{repo} has more than {max_pages} pages of open issues")
            raise UpstreamError(
                f"listing {owner}/{repo} issues exceeded {max_pages} pages"
            )
        
        logger.debug(f"Fetched {len(issues)} issues from {owner}/{repo}")
        return issues
    
    def create_issue(self, owner: str, repo: str, title: str, body: str) -> RemoteIssue:
        """Create an issue and return it as GitHub stored it."""
        url = f"{self.base_url}/repos/{owner}/{repo}/issues"
        data = self._request("POST", url, json={"title": title, "body": body})
        issue = RemoteIssue.model_validate(data)
        logger.info(f"Created issue #{issue.number} in {owner}/{repo}: {title!r}")
        return issue
    
    def edit_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        body: Optional[str] = None,
        state: Optional[str] = None,
    ) -> RemoteIssue:
        """Patch an issue's body and/or state; omitted fields are left alone.
        
        Raises:
            ValueError: If neither body nor state is given
            UpstreamError: If the call fails
        """
        payload: dict[str, str] = {}
        if body is not None:
            payload["body"] = body
        if state is not None:
            payload["state"] = state
        if not payload:
            raise ValueError("edit_issue needs a body or a state")
        
        url = f"{self.base_url}/repos/{owner}/{repo}/issues/{number}"
        data = self._request("PATCH", url, json=payload)
        logger.info(f"Edited issue #{number} in {owner}/{repo}: {', '.join(payload)}")
        return RemoteIssue.model_validate(data)
