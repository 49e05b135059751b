"""Tests for the error classifier."""

import pytest

from sandhi.classifier import (
    ClassifiedError,
    ErrorKind,
    classify,
    classify_message,
    format_conflict,
    format_error,
)
from sandhi.registry import RepositoryEndpoint
from sandhi.vcs.manager import FETCHING, PULLING, PUSHING


class TestClassifyMessage:
    """Tests for picking an error kind."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("fatal: Authentication failed for 'https://x'", ErrorKind.AUTHENTICATION),
            ("The requested URL returned error: 401", ErrorKind.AUTHENTICATION),
            ("HTTP 403 Forbidden", ErrorKind.AUTHENTICATION),
            ("remote: Unauthorized", ErrorKind.AUTHENTICATION),
            ("Could not resolve host: network is unreachable", ErrorKind.NETWORK),
            ("Connection refused", ErrorKind.NETWORK),
            ("operation TIMEOUT after 30s", ErrorKind.NETWORK),
            ("Permission denied (publickey)", ErrorKind.PERMISSION),
            ("ERROR: Access denied", ErrorKind.PERMISSION),
            ("fatal: repository 'x' not found", ErrorKind.REPOSITORY),
            ("object file is corrupt", ErrorKind.REPOSITORY),
            ("Not Found", ErrorKind.REPOSITORY),
            ("something odd happened", ErrorKind.UNKNOWN),
            ("", ErrorKind.UNKNOWN),
        ],
    )
    def test_classify_message(self, raw: str, expected: ErrorKind) -> None:
        """Test cue matching is case-insensitive containment."""
        assert classify_message(raw) is expected

    def test_authentication_beats_repository(self) -> None:
        """Test precedence when cues from several kinds appear."""
        assert classify_message("403 while reading repository") is ErrorKind.AUTHENTICATION

    def test_network_beats_permission(self) -> None:
        """Test network cues are checked before permission cues."""
        assert classify_message("permission check timeout") is ErrorKind.NETWORK

    def test_permission_beats_repository(self) -> None:
        """Test permission cues are checked before repository cues."""
        assert classify_message("permission denied on repository") is ErrorKind.PERMISSION


class TestFormatError:
    """Tests for the user-facing templates."""

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (
                ErrorKind.AUTHENTICATION,
                "Authentication failed for repository 'origin'. Please check your credentials.",
            ),
            (
                ErrorKind.NETWORK,
                "Network error while pushing to repository 'origin'. Please check your connection.",
            ),
            (
                ErrorKind.REPOSITORY,
                "Repository error while pushing to 'origin'. The repository may be corrupted or inaccessible.",
            ),
            (
                ErrorKind.PERMISSION,
                "Permission denied while pushing to repository 'origin'. Check your access rights.",
            ),
            (ErrorKind.UNKNOWN, "Error while pushing to repository 'origin': boom."),
        ],
    )
    def test_templates(self, kind: ErrorKind, expected: str) -> None:
        """Test every kind renders its exact message."""
        error = ClassifiedError(kind=kind, operation=PUSHING, endpoint_name="origin", raw_message="boom")

        assert format_error(error) == expected
        assert error.user_message == expected

    def test_conflict_message(self) -> None:
        """Test the merge conflict message."""
        assert format_conflict(PULLING, "origin") == (
            "Merge conflicts detected while pulling from repository 'origin'. Resolve them locally and retry."
        )


class TestClassify:
    """Tests for classify."""

    def test_classify_with_endpoint(self) -> None:
        """Test classification from an endpoint and a message."""
        endpoint = RepositoryEndpoint(name="gitlab", url="https://gitlab.com/a/b.git")

        error = classify(FETCHING, endpoint, "fatal: unable to access: Connection timed out")

        assert error.kind is ErrorKind.NETWORK
        assert error.endpoint_name == "gitlab"
        assert error.user_message == (
            "Network error while fetching from repository 'gitlab'. Please check your connection."
        )

    def test_classify_with_exception(self) -> None:
        """Test exceptions are classified by their text."""
        error = classify(PUSHING, "mirror", RuntimeError("weird"))

        assert error.kind is ErrorKind.UNKNOWN
        assert error.raw_message == "weird"
        assert error.user_message == "Error while pushing to repository 'mirror': weird."

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("HTTP 403", "Authentication failed for repository 'origin'. Please check your credentials."),
            (
                "Connection refused",
                "Network error while pushing to repository 'origin'. Please check your connection.",
            ),
            (
                "permission denied",
                "Permission denied while pushing to repository 'origin'. Check your access rights.",
            ),
            (
                "repository not found",
                "Repository error while pushing to 'origin'. The repository may be corrupted or inaccessible.",
            ),
            ("boom", "Error while pushing to repository 'origin': boom."),
        ],
    )
    def test_raw_message_to_user_message(self, raw: str, expected: str) -> None:
        """Test each kind's message is produced straight from raw git text."""
        endpoint = RepositoryEndpoint(name="origin", url="https://example.com/o.git")

        error = classify(PUSHING, endpoint, raw)

        assert error.user_message == expected
        assert format_error(error) == expected
