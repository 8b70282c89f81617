"""Data models for the GitHub issue operator."""

from models.config_models import Config, ControllerConfig, CredentialsConfig
from models.data_models import (
    Condition,
    GithubIssue,
    GithubIssueSpec,
    GithubIssueStatus,
    NamespacedName,
    ObjectMeta,
    ReconcileResult,
    RemoteIssue,
)

__all__ = [
    "Config",
    "ControllerConfig",
    "CredentialsConfig",
    "Condition",
    "GithubIssue",
    "GithubIssueSpec",
    "GithubIssueStatus",
    "NamespacedName",
    "ObjectMeta",
    "ReconcileResult",
    "RemoteIssue",
]
