"""Typed failures raised by the reconciliation engine and its collaborators."""

from typing import Optional


class OperatorError(Exception):
    """Base class for every failure the operator raises on purpose."""


class InvalidRepoURL(OperatorError):
    """spec.repo is not ``https://<host>/<owner>/<repo>``.
    
    Not transient: the record has to be corrected.
    """
    
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"invalid repository URL {url!r}: {reason}")


class MissingCredential(OperatorError):
    """The GitHub token is not configured. Fatal at startup."""


class UpstreamError(OperatorError):
    """GitHub API call failed (transport error, timeout or non-2xx response)."""
    
    def __init__(self, message: str, status_code: Optional[int] = None, cause: Optional[BaseException] = None):
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class StatusConflict(OperatorError):
    """A store write lost an optimistic-concurrency race."""


class RecordNotFound(OperatorError):
    """The record vanished from the store between read and write."""


class DuplicateIssueTitle(OperatorError):
    """More than one issue in the repository carries the record's title."""
    
    def __init__(self, owner: str, repo: str, title: str, numbers: list[int]):
        self.numbers = numbers
        joined = ", ".join(f"#{n}" for n in numbers)
        super().__init__(
            f"{owner}/{repo} has {len(numbers)} issues titled {title!r} ({joined}); "
            "refusing to pick one"
        )
