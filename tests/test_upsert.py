"""Tests for the create-or-update of GitHub issues."""

import pytest

from controller.errors import DuplicateIssueTitle, UpstreamError
from controller.upsert import IssueUpserter
from models.data_models import GithubIssueSpec

SPEC = GithubIssueSpec(repo="https://github.com/acme/widgets", title="T1", description="D1")


@pytest.fixture
def upserter(github):
    return IssueUpserter(github)


def test_creates_issue_when_missing(upserter, github):
    issue = upserter.apply_issue("acme", "widgets", SPEC)
    
    assert issue.title == "T1"
    assert issue.body == "D1"
    assert issue.state == "open"
    assert github.mutating_calls == [
        ("create_issue", "acme", "widgets", {"title": "T1", "body": "D1"})
    ]
    assert len(github.issues("acme", "widgets")) == 1


def test_updates_only_body_when_description_differs(upserter, github):
    existing = github.add_issue("acme", "widgets", "T1", body="old")
    
    issue = upserter.apply_issue("acme", "widgets", SPEC)
    
    assert github.mutating_calls == [
        ("edit_issue", "acme", "widgets", existing.number, {"body": "D1"})
    ]
    assert issue.number == existing.number
    assert issue.title == "T1"
    assert issue.body == "D1"
    assert github.issues("acme", "widgets")[0].body == "D1"


def test_no_mutation_when_up_to_date(upserter, github):
    existing = github.add_issue("acme", "widgets", "T1", body="D1")
    
    issue = upserter.apply_issue("acme", "widgets", SPEC)
    
    assert issue == existing
    assert github.mutating_calls == []


def test_idempotent_across_invocations(upserter, github):
    upserter.apply_issue("acme", "widgets", SPEC)
    upserter.apply_issue("acme", "widgets", SPEC)
    upserter.apply_issue("acme", "widgets", SPEC)
    
    assert len(github.mutating_calls) == 1
    assert len(github.issues("acme", "widgets")) == 1


def test_other_titles_are_ignored(upserter, github):
    github.add_issue("acme", "widgets", "Something else", body="D1")
    upserter.apply_issue("acme", "widgets", SPEC)
    assert [c[0] for c in github.mutating_calls] == ["create_issue"]


def test_closed_issue_is_not_matched(upserter, github):
    closed = github.add_issue("acme", "widgets", "T1", body="D1", state="closed")
    
    issue = upserter.apply_issue("acme", "widgets", SPEC)
    
    assert issue.number != closed.number
    assert issue.state == "open"
    assert [c[0] for c in github.mutating_calls] == ["create_issue"]


def test_closed_duplicate_does_not_block(upserter, github):
    github.add_issue("acme", "widgets", "T1", body="old", state="closed")
    live = github.add_issue("acme", "widgets", "T1", body="D1")
    
    assert upserter.apply_issue("acme", "widgets", SPEC).number == live.number
    assert github.mutating_calls == []


def test_duplicate_titles_refused(upserter, github):
    github.add_issue("acme", "widgets", "T1", body="x")
    github.add_issue("acme", "widgets", "T1", body="y")
    
    with pytest.raises(DuplicateIssueTitle) as exc_info:
        upserter.apply_issue("acme", "widgets", SPEC)
    
    assert exc_info.value.numbers == [1, 2]
    assert github.mutating_calls == []


@pytest.mark.parametrize("failing", ["list_issues", "create_issue"])
def test_upstream_errors_propagate(upserter, github, failing):
    github.fail.add(failing)
    with pytest.raises(UpstreamError):
        upserter.apply_issue("acme", "widgets", SPEC)


def test_edit_failure_propagates(upserter, github):
    github.add_issue("acme", "widgets", "T1", body="old")
    github.fail.add("edit_issue")
    with pytest.raises(UpstreamError):
        upserter.apply_issue("acme", "widgets", SPEC)
    assert github.issues("acme", "widgets")[0].body == "old"
