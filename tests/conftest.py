"""Shared pytest fixtures and in-memory stand-ins for the store and GitHub."""

import uuid
from datetime import datetime, timezone

import pytest

from controller.errors import RecordNotFound, StatusConflict, UpstreamError
from controller.reconciler import GithubIssueReconciler
from models.data_models import GithubIssue, GithubIssueSpec, ObjectMeta, RemoteIssue

FINALIZER = "githubissue.finalizers.dana.io/finalizer"


class InMemoryRecordStore:
    """Dict-backed record store with the same rules as SupabaseRecordStore."""
    
    def __init__(self):
        self.records = {}
        self.conflicts_on_update = 0
        self.conflicts_on_status = 0
        self.update_calls = 0
        self.status_calls = 0
    
    def get(self, key):
        record = self.records.get(key)
        return record.model_copy(deep=True) if record else None
    
    def list(self, namespace=None):
        return [
            r.model_copy(deep=True)
            for key, r in sorted(self.records.items(), key=lambda kv: str(kv[0]))
            if namespace is None or key.namespace == namespace
        ]
    
    def create(self, record):
        if record.key in self.records:
            raise StatusConflict(f"GithubIssue {record.key} already exists")
        created = record.model_copy(deep=True)
        created.metadata.uid = str(uuid.uuid4())
        created.metadata.resource_version = 1
        created.metadata.creation_timestamp = datetime.now(timezone.utc)
        self.records[record.key] = created
        return created.model_copy(deep=True)
    
    def _check(self, record):
        stored = self.records.get(record.key)
        if stored is None:
            raise RecordNotFound(f"GithubIssue {record.key} not found")
        if stored.metadata.resource_version != record.metadata.resource_version:
            raise StatusConflict(f"GithubIssue {record.key} was modified")
        return stored
    
    def update(self, record):
        self.update_calls += 1
        if self.conflicts_on_update:
            self.conflicts_on_update -= 1
            self.bump(record.key)
            raise StatusConflict("injected conflict")
        stored = self._check(record)
        stored.metadata.finalizers = list(record.metadata.finalizers)
        stored.spec = record.spec.model_copy()
        stored.metadata.resource_version += 1
        if stored.is_being_deleted and not stored.metadata.finalizers:
            del self.records[record.key]
        return stored.model_copy(deep=True)
    
    def update_status(self, record):
        self.status_calls += 1
        if self.conflicts_on_status:
            self.conflicts_on_status -= 1
            self.bump(record.key)
            raise StatusConflict("injected conflict")
        stored = self._check(record)
        stored.status = record.status.model_copy(deep=True)
        stored.metadata.resource_version += 1
        return stored.model_copy(deep=True)
    
    def delete(self, key):
        stored = self.records.get(key)
        if stored is None:
            raise RecordNotFound(f"GithubIssue {key} not found")
        if not stored.metadata.finalizers:
            del self.records[key]
            return None
        if stored.metadata.deletion_timestamp is None:
            stored.metadata.deletion_timestamp = datetime.now(timezone.utc)
            stored.metadata.resource_version += 1
        return stored.model_copy(deep=True)
    
    def bump(self, key):
        """Simulate a concurrent writer."""
        if key in self.records:
            self.records[key].metadata.resource_version += 1


class FakeGitHub:
    """In-memory GitHub issues API that records every call."""
    
    def __init__(self):
        self.repos = {}
        self.calls = []
        self.fail = set()
        self._next_number = 1
    
    def add_issue(self, owner, repo, title, body="", state="open"):
        issue = RemoteIssue(number=self._next_number, title=title, body=body, state=state)
        self._next_number += 1
        self.repos.setdefault((owner, repo), []).append(issue)
        return issue
    
    def issues(self, owner, repo):
        return self.repos.get((owner, repo), [])
    
    @property
    def mutating_calls(self):
        return [c for c in self.calls if c[0] in ("create_issue", "edit_issue")]
    
    def _maybe_fail(self, method):
        if method in self.fail:
            raise UpstreamError(f"{method} failed: connection reset")
    
    def list_issues(self, owner, repo):
        self.calls.append(("list_issues", owner, repo))
        self._maybe_fail("list_issues")
        return [i.model_copy() for i in self.issues(owner, repo) if i.state == "open"]
    
    def create_issue(self, owner, repo, title, body):
        self.calls.append(("create_issue", owner, repo, {"title": title, "body": body}))
        self._maybe_fail("create_issue")
        return self.add_issue(owner, repo, title, body).model_copy()
    
    def edit_issue(self, owner, repo, number, body=None, state=None):
        changes = {k: v for k, v in (("body", body), ("state", state)) if v is not None}
        self.calls.append(("edit_issue", owner, repo, number, changes))
        self._maybe_fail("edit_issue")
        for index, issue in enumerate(self.issues(owner, repo)):
            if issue.number == number:
                self.repos[(owner, repo)][index] = issue.model_copy(update=changes)
                return self.repos[(owner, repo)][index].model_copy()
        raise UpstreamError(f"issue #{number} not found", status_code=404)


def make_record(name="widgets-bug", namespace="default", repo="https://github.com/acme/widgets",
                title="T1", description="D1", finalizers=None):
    return GithubIssue(
        metadata=ObjectMeta(namespace=namespace, name=name, finalizers=finalizers or []),
        spec=GithubIssueSpec(repo=repo, title=title, description=description),
    )


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def reconciler(store, github):
    return GithubIssueReconciler(store, github, finalizer_name=FINALIZER)


@pytest.fixture
def test_env(monkeypatch):
    """
    Set valid test environment variables so config can be loaded during
    tests without requiring real credentials.
    """
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test_token_1234567890")
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test_supabase_key_1234567890")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    
    return {
        "github_token": "ghp_test_token_1234567890",
        "supabase_url": "https://test-project.supabase.co",
        "supabase_key": "test_supabase_key_1234567890",
        "log_level": "DEBUG",
    }


@pytest.fixture
def invalid_env(monkeypatch):
    """
    Set up invalid/missing environment variables for testing validation.
    """
    monkeypatch.setenv("GITHUB_TOKEN", "")
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_KEY", "")
