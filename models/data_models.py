"""Data models for GithubIssue records and the GitHub issues they manage."""

from datetime import datetime, timedelta
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

ConditionStatus = Literal["True", "False", "Unknown"]


class NamespacedName(BaseModel):
    """Identity of a record in the store (``namespace/name``)."""
    model_config = ConfigDict(frozen=True)
    
    namespace: str
    name: str
    
    @classmethod
    def parse(cls, value: str) -> "NamespacedName":
        """Parse ``namespace/name``; a bare name lands in ``default``."""
        if "/" in value:
            namespace, name = value.split("/", 1)
        else:
            namespace, name = "default", value
        if not namespace or not name or "/" in name:
            raise ValueError(f"Invalid record key: {value!r}. Use 'namespace/name'")
        return cls(namespace=namespace, name=name)
    
    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class GithubIssueSpec(BaseModel):
    """Desired state of a GitHub issue.
    
    ``repo`` is deliberately unvalidated here: the reconciler re-validates it
    before every use and the record API validates it on admission.
    """
    repo: str  # e.g., "https://github.com/acme/widgets"
    title: str
    description: str = ""


class Condition(BaseModel):
    """One observed aspect of the record, keyed by ``type``."""
    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_transition_time: datetime


class GithubIssueStatus(BaseModel):
    """Observed state of a GitHub issue."""
    conditions: list[Condition] = Field(default_factory=list)
    
    def get_condition(self, condition_type: str) -> Optional[Condition]:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None


class ObjectMeta(BaseModel):
    """Store-managed metadata of a record."""
    namespace: str = "default"
    name: str
    uid: Optional[str] = None
    resource_version: int = 0  # bumped by every store write
    finalizers: list[str] = Field(default_factory=list)
    deletion_timestamp: Optional[datetime] = None
    creation_timestamp: Optional[datetime] = None


class GithubIssue(BaseModel):
    """A GithubIssue record: declared spec plus reconciler-owned status."""
    metadata: ObjectMeta
    spec: GithubIssueSpec
    status: GithubIssueStatus = Field(default_factory=GithubIssueStatus)
    
    @property
    def key(self) -> NamespacedName:
        return NamespacedName(namespace=self.metadata.namespace, name=self.metadata.name)
    
    @property
    def is_being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None
    
    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers


class RemoteIssue(BaseModel):
    """A GitHub issue as returned by the REST API.
    
    Never cached: every reconcile pass re-fetches the live list.
    """
    number: int
    title: str
    body: str = ""
    state: str = "open"
    html_url: Optional[str] = None
    
    @field_validator("body", mode="before")
    @classmethod
    def none_body_is_empty(cls, v):
        # GitHub returns null for issues created without a body
        return "" if v is None else v


class ReconcileResult(BaseModel):
    """Outcome of a successful reconcile pass."""
    requeue_after: Optional[timedelta] = None
