"""Title-based lookup of remote issues.

The record stores no issue number, so the title is the key: every pass
recomputes the mapping by scanning the freshly fetched list.
"""

from typing import Iterable, Optional

from models.data_models import RemoteIssue


def find_issue_by_title(issues: Iterable[RemoteIssue], title: str) -> Optional[RemoteIssue]:
    """Return the first issue whose title equals ``title`` exactly, or None."""
    for issue in issues:
        if issue.title == title:
            return issue
    return None


def find_issues_by_title(issues: Iterable[RemoteIssue], title: str) -> list[RemoteIssue]:
    """Return every issue whose title equals ``title`` exactly, in list order."""
    return [issue for issue in issues if issue.title == title]
