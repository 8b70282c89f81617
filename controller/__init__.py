"""Reconciliation engine for GithubIssue records."""

from controller.errors import (
    DuplicateIssueTitle,
    InvalidRepoURL,
    MissingCredential,
    OperatorError,
    RecordNotFound,
    StatusConflict,
    UpstreamError,
)
from controller.reconciler import GithubIssueReconciler

__all__ = [
    "DuplicateIssueTitle",
    "GithubIssueReconciler",
    "InvalidRepoURL",
    "MissingCredential",
    "OperatorError",
    "RecordNotFound",
    "StatusConflict",
    "UpstreamError",
]
