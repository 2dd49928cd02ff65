"""Submission persistence.

The store is always constructed explicitly around an injected
DatabaseManager; there is no process-wide client.
"""

from .interface import SubmissionStore
from .sql import SQLSubmissionStore

__all__ = ["SQLSubmissionStore", "SubmissionStore"]
