"""Error taxonomy for the curation, approval and relay pipeline.

Synchronous errors (ValidationError, InvalidState, LedgerError) are raised
to the caller and leave the store unchanged. RewardError and RelayError
describe best-effort failures that are recorded as data by the workflow
and the relay worker rather than propagated.
"""

from __future__ import annotations


class CurationError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(CurationError):
    """Malformed or missing input."""


class InvalidState(CurationError):
    """Operation attempted on a submission in the wrong lifecycle state."""


class SubmissionNotFound(InvalidState):
    def __init__(self, submission_id: str):
        super().__init__(f"Submission {submission_id} not found")
        self.submission_id = submission_id


class LedgerError(CurationError):
    """Primary-ledger call failed."""


class LedgerUnavailable(LedgerError):
    """A ledger adapter is not configured or its endpoint is unreachable."""


class RewardError(CurationError):
    """Token mint failed or had no destination address."""


class RelayError(CurationError):
    """Secondary-ledger relay failed inside a queue job."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


__all__ = [
    "CurationError",
    "InvalidState",
    "LedgerError",
    "LedgerUnavailable",
    "RelayError",
    "RewardError",
    "SubmissionNotFound",
    "ValidationError",
]
