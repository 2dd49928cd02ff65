"""Ledger adapters for the primary (approval + reward token) and
secondary (reputation) ledgers."""

from .http_client import HTTPPrimaryLedger, HTTPSecondaryLedger, HTTPTokenLedger
from .interface import PrimaryLedger, SecondaryLedger, TokenLedger

__all__ = [
    "HTTPPrimaryLedger",
    "HTTPSecondaryLedger",
    "HTTPTokenLedger",
    "PrimaryLedger",
    "SecondaryLedger",
    "TokenLedger",
]
