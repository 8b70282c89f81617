"""Create-or-update of the GitHub issue backing a record."""

import logging

from controller.errors import DuplicateIssueTitle
from controller.issue_matcher import find_issues_by_title
from models.data_models import GithubIssueSpec, RemoteIssue

logger = logging.getLogger(__name__)


class IssueUpserter:
    """Converge one GitHub issue per (repository, title) onto a record's spec.
    
    Repeated calls with an unchanged spec issue no mutating request after the
    first convergence: the list is re-read and compared every time.
    """
    
    def __init__(self, github):
        """
        Args:
            github: Issue tracker client (list_issues/create_issue/edit_issue)
        """
        self.github = github
    
    def apply_issue(self, owner: str, repo: str, spec: GithubIssueSpec) -> RemoteIssue:
        """
        Make sure exactly one issue titled ``spec.title`` exists with body
        ``spec.description``.
        
        Args:
            owner: Repository owner
            repo: Repository name
            spec: Desired issue state
        
        Returns:
            The created, updated or untouched RemoteIssue
        
        Raises:
            UpstreamError: If listing, creating or editing fails
            DuplicateIssueTitle: If several issues share the title
        """
        issues = self.github.list_issues(owner, repo)
        matches = find_issues_by_title(issues, spec.title)
        
        if len(matches) > 1:
            raise DuplicateIssueTitle(owner, repo, spec.title, [m.number for m in matches])
        
        if not matches:
            logger.info(f"No issue titled {spec.title!r} in {owner}/{repo}, creating one")
            return self.github.create_issue(owner, repo, spec.title, spec.description)
        
        existing = matches[0]
        if existing.body != spec.description:
            logger.info(f"Updating body of issue #{existing.number} in {owner}/{repo}")
            self.github.edit_issue(owner, repo, existing.number, body=spec.description)
            return existing.model_copy(update={"body": spec.description})
        
        logger.debug(f"Issue #{existing.number} in {owner}/{repo} already up to date")
        return existing
