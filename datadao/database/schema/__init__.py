from .base import Base
from .relay import RelayJobRow, relay_job_table
from .submission import SubmissionRow, UserRow, submission_table, user_table

__all__ = [
    "Base",
    "RelayJobRow",
    "SubmissionRow",
    "UserRow",
    "relay_job_table",
    "submission_table",
    "user_table",
]
