"""End-to-end reconcile passes against the in-memory store and GitHub."""

from datetime import timedelta

import pytest

from conftest import FINALIZER, make_record
from controller.errors import DuplicateIssueTitle, InvalidRepoURL, UpstreamError
from controller.reconciler import GithubIssueReconciler
from models.data_models import NamespacedName


def open_condition(store, key):
    return store.get(key).status.get_condition("Open")


class TestScenarios:
    """The create / update / delete / invalid-repo walkthroughs."""
    
    def test_a_create(self, reconciler, store, github):
        record = store.create(make_record(title="T1", description="D1"))
        
        result = reconciler.reconcile(record.key)
        
        assert result.requeue_after == timedelta(minutes=1)
        issues = github.issues("acme", "widgets")
        assert len(issues) == 1
        assert (issues[0].title, issues[0].body, issues[0].state) == ("T1", "D1", "open")
        
        stored = store.get(record.key)
        assert stored.metadata.finalizers == [FINALIZER]
        condition = stored.status.get_condition("Open")
        assert condition.status == "True"
        assert condition.reason == "IssueOpen"
    
    def test_b_description_change(self, reconciler, store, github):
        record = store.create(make_record(title="T1", description="D1"))
        reconciler.reconcile(record.key)
        number = github.issues("acme", "widgets")[0].number
        
        changed = store.get(record.key)
        changed.spec.description = "D2"
        store.update(changed)
        github.calls.clear()
        
        reconciler.reconcile(record.key)
        
        assert github.mutating_calls == [("edit_issue", "acme", "widgets", number, {"body": "D2"})]
        issue = github.issues("acme", "widgets")[0]
        assert (issue.number, issue.title, issue.body) == (number, "T1", "D2")
    
    def test_c_delete(self, reconciler, store, github):
        record = store.create(make_record(title="T1", description="D1"))
        reconciler.reconcile(record.key)
        
        assert store.delete(record.key) is not None  # held by the finalizer
        result = reconciler.reconcile(record.key)
        
        assert result.requeue_after is None
        assert github.issues("acme", "widgets")[0].state == "closed"
        assert store.get(record.key) is None
    
    def test_d_invalid_repo(self, reconciler, store, github):
        record = store.create(make_record(repo="/invalid/repo"))
        
        with pytest.raises(InvalidRepoURL):
            reconciler.reconcile(record.key)
        
        assert github.calls == []
        assert store.get(record.key).status.conditions == []


class TestReconcileLoop:
    
    def test_missing_record_is_success(self, reconciler, github):
        result = reconciler.reconcile(NamespacedName(namespace="default", name="gone"))
        assert result.requeue_after is None
        assert github.calls == []
    
    def test_steady_state_makes_no_mutations(self, reconciler, store, github):
        record = store.create(make_record())
        reconciler.reconcile(record.key)
        status_writes = store.status_calls
        github.calls.clear()
        
        for _ in range(3):
            reconciler.reconcile(record.key)
        
        assert github.mutating_calls == []
        assert store.status_calls == status_writes
    
    def test_upstream_failure_leaves_status_untouched(self, reconciler, store, github):
        record = store.create(make_record())
        github.fail.add("create_issue")
        
        with pytest.raises(UpstreamError):
            reconciler.reconcile(record.key)
        
        assert store.get(record.key).status.conditions == []
        assert github.issues("acme", "widgets") == []
    
    def test_failure_then_recovery_creates_once(self, reconciler, store, github):
        record = store.create(make_record())
        github.fail.add("list_issues")
        with pytest.raises(UpstreamError):
            reconciler.reconcile(record.key)
        
        github.fail.clear()
        reconciler.reconcile(record.key)
        reconciler.reconcile(record.key)
        
        assert len(github.issues("acme", "widgets")) == 1
    
    def test_duplicate_titles_surface_error(self, reconciler, store, github):
        github.add_issue("acme", "widgets", "T1")
        github.add_issue("acme", "widgets", "T1")
        record = store.create(make_record())
        
        with pytest.raises(DuplicateIssueTitle):
            reconciler.reconcile(record.key)
        assert github.mutating_calls == []
    
    def test_terminating_record_without_our_finalizer_is_left_alone(self, reconciler, store, github):
        record = store.create(make_record(finalizers=["example.com/other"]))
        store.delete(record.key)
        
        result = reconciler.reconcile(record.key)
        
        assert result.requeue_after is None
        assert github.calls == []
        assert store.get(record.key).metadata.finalizers == ["example.com/other"]
    
    def test_custom_resync_period(self, store, github):
        reconciler = GithubIssueReconciler(store, github, FINALIZER, resync_period=timedelta(seconds=5))
        record = store.create(make_record())
        assert reconciler.reconcile(record.key).requeue_after == timedelta(seconds=5)


class TestOutOfBandChanges:
    """GitHub is re-read every pass; changes made there are picked up."""
    
    def test_issue_created_elsewhere_is_adopted(self, reconciler, store, github):
        record = store.create(make_record(description="D1"))
        github.add_issue("acme", "widgets", "T1", body="D1")
        
        reconciler.reconcile(record.key)
        
        assert github.mutating_calls == []
        assert len(github.issues("acme", "widgets")) == 1
    
    def test_body_edited_elsewhere_is_restored(self, reconciler, store, github):
        record = store.create(make_record(description="D1"))
        reconciler.reconcile(record.key)
        issue = github.issues("acme", "widgets")[0]
        github.repos[("acme", "widgets")][0] = issue.model_copy(update={"body": "vandalized"})
        
        reconciler.reconcile(record.key)
        
        assert github.issues("acme", "widgets")[0].body == "D1"
    
    def test_issue_closed_elsewhere_is_replaced(self, reconciler, store, github):
        record = store.create(make_record())
        reconciler.reconcile(record.key)
        assert open_condition(store, record.key).status == "True"
        
        issue = github.issues("acme", "widgets")[0]
        github.repos[("acme", "widgets")][0] = issue.model_copy(update={"state": "closed"})
        reconciler.reconcile(record.key)
        
        states = [i.state for i in github.issues("acme", "widgets")]
        assert states == ["closed", "open"]
        condition = open_condition(store, record.key)
        assert condition.status == "True"
        assert f"#{github.issues('acme', 'widgets')[1].number}" in condition.message
    
    def test_redeclared_record_gets_fresh_issue(self, reconciler, store, github):
        record = store.create(make_record())
        reconciler.reconcile(record.key)
        store.delete(record.key)
        reconciler.reconcile(record.key)
        assert store.get(record.key) is None
        
        again = store.create(make_record())
        reconciler.reconcile(again.key)
        
        assert [i.state for i in github.issues("acme", "widgets")] == ["closed", "open"]
        assert open_condition(store, again.key).status == "True"
