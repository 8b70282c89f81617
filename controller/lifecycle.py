"""Finalizer handling and teardown of deleted records.

A record moves through three states:

- Active: no deletion timestamp; the finalizer is attached on first sight.
- Terminating: deletion requested while the finalizer is present. Matching
  issues are closed, then the finalizer is removed.
- Gone: the store erases the record once no finalizer is left.

If closing fails the finalizer stays, so the store keeps the record and the
next delivery of the event retries the teardown.
"""

import logging

from controller.errors import InvalidRepoURL, RecordNotFound, StatusConflict
from controller.issue_matcher import find_issues_by_title
from controller.repo_locator import GITHUB_HOST, parse_repo_url
from models.data_models import GithubIssue

logger = logging.getLogger(__name__)

UPDATE_CONFLICT_ATTEMPTS = 5


class FinalizerLifecycle:
    """Attach/detach the cleanup finalizer and close issues on deletion."""
    
    def __init__(self, store, github, finalizer_name: str, host: str = GITHUB_HOST):
        self.store = store
        self.github = github
        self.finalizer_name = finalizer_name
        self.host = host
    
    def _update_with_retry(self, record: GithubIssue, mutate) -> GithubIssue:
        """Apply ``mutate`` and write the record, re-fetching on conflicts.
        
        ``mutate`` returns False when the record needs no write.
        """
        current = record
        for attempt in range(1, UPDATE_CONFLICT_ATTEMPTS + 1):
            candidate = current.model_copy(deep=True)
            if not mutate(candidate):
                return current
            try:
                return self.store.update(candidate)
            except StatusConflict:
                if attempt == UPDATE_CONFLICT_ATTEMPTS:
                    raise
                logger.debug(f"Update conflict on {record.key}, re-fetching")
                refreshed = self.store.get(record.key)
                if refreshed is None:
                    raise RecordNotFound(f"{record.key} was deleted during update")
                current = refreshed
        raise StatusConflict(f"could not update {record.key}")
    
    def ensure_finalizer(self, record: GithubIssue) -> GithubIssue:
        """Attach the finalizer if missing and persist the record."""
        if record.has_finalizer(self.finalizer_name):
            return record
        
        def add(candidate: GithubIssue) -> bool:
            if candidate.has_finalizer(self.finalizer_name):
                return False
            candidate.metadata.finalizers.append(self.finalizer_name)
            return True
        
        updated = self._update_with_retry(record, add)
        logger.info(f"Added finalizer to {record.key}")
        return updated
    
    def remove_finalizer(self, record: GithubIssue) -> GithubIssue:
        """Drop the finalizer so the store can erase the record."""
        
        def remove(candidate: GithubIssue) -> bool:
            if not candidate.has_finalizer(self.finalizer_name):
                return False
            candidate.metadata.finalizers = [
                f for f in candidate.metadata.finalizers if f != self.finalizer_name
            ]
            return True
        
        updated = self._update_with_retry(record, remove)
        logger.info(f"Removed finalizer from {record.key}")
        return updated
    
    def close_issues(self, record: GithubIssue) -> list[int]:
        """Close every open issue titled like the record. Returns closed numbers.
        
        Raises:
            InvalidRepoURL: If spec.repo does not parse
            UpstreamError: If listing or any close call fails
        """
        owner, repo = parse_repo_url(record.spec.repo, self.host)
        issues = self.github.list_issues(owner, repo)
        
        closed = []
        for issue in find_issues_by_title(issues, record.spec.title):
            if issue.state == "closed":
                continue
            self.github.edit_issue(owner, repo, issue.number, state="closed")
            closed.append(issue.number)
        
        if closed:
            logger.info(f"Closed issue(s) {closed} in {owner}/{repo} for {record.key}")
        else:
            logger.info(f"No open issue titled {record.spec.title!r} in {owner}/{repo}")
        return closed
    
    def finalize(self, record: GithubIssue) -> bool:
        """
        Run teardown for a terminating record.
        
        Returns:
            True if teardown ran, False if the record is not terminating or
            carries no finalizer of ours
        
        Raises:
            UpstreamError: If closing failed; the finalizer is left in place
        """
        if not record.is_being_deleted or not record.has_finalizer(self.finalizer_name):
            return False
        
        try:
            self.close_issues(record)
        except InvalidRepoURL as e:
            # Nothing can have been created for an unparsable repo
            logger.warning(f"Skipping issue cleanup for {record.key}: {e}")
        
        self.remove_finalizer(record)
        return True
