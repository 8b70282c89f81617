"""Per-record control function for GithubIssue records.

Each pass re-reads the record and the repository's live issue list, then:

1. Tears down (close issues, drop finalizer) if the record is terminating.
2. Otherwise attaches the finalizer, resolves owner/repo, and creates or
   updates the issue.
3. Records the issue's open/closed state as the ``Open`` condition.
4. Asks to be called again after the resync period.

Failures are raised to the caller, which owns retry timing.
"""

import logging
from datetime import timedelta
from typing import Protocol

from controller.conditions import issue_condition, update_status
from controller.errors import InvalidRepoURL, OperatorError
from controller.lifecycle import FinalizerLifecycle
from controller.repo_locator import GITHUB_HOST, parse_repo_url
from controller.upsert import IssueUpserter
from models.data_models import NamespacedName, ReconcileResult

logger = logging.getLogger(__name__)

DEFAULT_RESYNC_PERIOD = timedelta(minutes=1)


class Reconciler(Protocol):
    """What the controller manager drives."""
    
    def reconcile(self, key: NamespacedName) -> ReconcileResult: ...


class GithubIssueReconciler:
    """Reconciles GithubIssue records against GitHub."""
    
    def __init__(
        self,
        store,
        github,
        finalizer_name: str,
        resync_period: timedelta = DEFAULT_RESYNC_PERIOD,
        host: str = GITHUB_HOST,
    ):
        """
        Args:
            store: Record store (get/update/update_status)
            github: Issue tracker client (list_issues/create_issue/edit_issue)
            finalizer_name: Finalizer guarding issue cleanup
            resync_period: Delay before the steady-state re-check
            host: Accepted host in spec.repo URLs
        """
        self.store = store
        self.host = host
        self.resync_period = resync_period
        self.lifecycle = FinalizerLifecycle(store, github, finalizer_name, host=host)
        self.upserter = IssueUpserter(github)
    
    def reconcile(self, key: NamespacedName) -> ReconcileResult:
        """
        Run one reconcile pass for ``key``.
        
        Returns:
            ReconcileResult with requeue_after set for live records, empty for
            deleted or torn-down ones
        
        Raises:
            InvalidRepoURL: spec.repo is malformed (no status written, no calls made)
            UpstreamError: A GitHub call failed
            DuplicateIssueTitle: The title matches several issues
            StatusConflict: A store write kept losing races
        """
        logger.info(f"Reconciling GithubIssue {key}")
        
        record = self.store.get(key)
        if record is None:
            logger.debug(f"GithubIssue {key} not found, nothing to do")
            return ReconcileResult()
        
        if record.is_being_deleted:
            if self.lifecycle.finalize(record):
                logger.info(f"Finalized GithubIssue {key}")
            return ReconcileResult()
        
        record = self.lifecycle.ensure_finalizer(record)
        
        try:
            owner, repo = parse_repo_url(record.spec.repo, self.host)
        except InvalidRepoURL as e:
            logger.error(f"GithubIssue {key}: {e}")
            raise
        
        logger.debug(f"GithubIssue {key} targets {owner}/{repo}")
        
        try:
            issue = self.upserter.apply_issue(owner, repo, record.spec)
        except OperatorError as e:
            logger.error(f"Failed to sync GithubIssue {key} with {owner}/{repo}: {e}")
            raise
        
        update_status(self.store, record, issue_condition(issue.number, issue.state))
        
        return ReconcileResult(requeue_after=self.resync_period)
