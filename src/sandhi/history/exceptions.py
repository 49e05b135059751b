"""History and comparison exceptions for sandhi."""


class HistoryError(Exception):
    """Base exception for history, diff and statistics errors."""


class RevisionNotFoundError(HistoryError):
    """Raised when a commit, branch or tag name does not resolve to a commit."""
