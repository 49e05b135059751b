"""Top-level result models for sandhi."""

from enum import Enum

from pydantic import BaseModel, Field

from sandhi.classifier import ClassifiedError, format_conflict, format_error

SUCCESS_MESSAGE = "Success"


class ResultStatus(str, Enum):
    """How one entry of a batch ended."""

    SUCCESS = "success"
    FAILED = "failed"
    CONFLICT = "conflict"
    ABORTED = "aborted"
    EMPTY = "empty"


class OperationOutcome(BaseModel):
    """Display pair for one batch entry: who, and what happened."""

    endpoint_name: str
    message: str

    @property
    def success(self) -> bool:
        """Check whether this outcome is the success marker."""
        return self.message == SUCCESS_MESSAGE

    def as_pair(self) -> tuple[str, str]:
        """Get the ``(endpoint_name, message)`` tuple."""
        return self.endpoint_name, self.message


class EndpointResult(BaseModel):
    """Structured result for one entry of a batch."""

    endpoint_name: str
    status: ResultStatus
    error: ClassifiedError | None = None
    detail: str | None = Field(default=None, description="Message for non-classified outcomes")

    @classmethod
    def succeeded(cls, endpoint_name: str) -> "EndpointResult":
        return cls(endpoint_name=endpoint_name, status=ResultStatus.SUCCESS)

    @classmethod
    def failed(cls, error: ClassifiedError) -> "EndpointResult":
        return cls(endpoint_name=error.endpoint_name, status=ResultStatus.FAILED, error=error)

    @classmethod
    def conflicted(cls, operation: str, endpoint_name: str) -> "EndpointResult":
        return cls(
            endpoint_name=endpoint_name,
            status=ResultStatus.CONFLICT,
            detail=format_conflict(operation, endpoint_name),
        )

    @classmethod
    def aborted(cls, detail: str) -> "EndpointResult":
        """Local preparation failed; nothing was sent to any endpoint."""
        return cls(endpoint_name="Repository", status=ResultStatus.ABORTED, detail=detail)

    @classmethod
    def empty(cls, label: str, detail: str) -> "EndpointResult":
        """The selector matched no endpoints."""
        return cls(endpoint_name=label, status=ResultStatus.EMPTY, detail=detail)

    @property
    def success(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    @property
    def message(self) -> str:
        """User-facing message for this result."""
        if self.status is ResultStatus.SUCCESS:
            return SUCCESS_MESSAGE
        if self.error is not None:
            return format_error(self.error)
        return self.detail or ""

    def to_outcome(self) -> OperationOutcome:
        """Convert to the display pair."""
        return OperationOutcome(endpoint_name=self.endpoint_name, message=self.message)


class BatchSummary(BaseModel):
    """Summary of one batch run."""

    total: int = Field(description="Number of entries returned")
    succeeded: int = Field(default=0, description="Entries that succeeded")
    failed: int = Field(default=0, description="Entries that failed, conflicted or aborted")

    @classmethod
    def from_results(cls, results: list[EndpointResult]) -> "BatchSummary":
        succeeded = sum(1 for result in results if result.success)
        failed = sum(1 for result in results if result.status is not ResultStatus.SUCCESS)
        return cls(total=len(results), succeeded=succeeded, failed=failed)

    @property
    def has_failures(self) -> bool:
        """Check if any entry did not succeed.

        Returns:
            True if any entry failed
        """
        return self.failed > 0
