"""
GithubIssue record API.

Provides a FastAPI backend for declaring, changing and deleting GithubIssue
records. Requests are validated on admission; the controller picks up the
stored records and reconciles them against GitHub.
"""
