"""Ledger adapter protocols.

The pipeline talks to both ledgers only through these three calls. Each
returns an opaque transaction reference or raises. Adapters must never
return a placeholder reference on failure; an adapter that cannot reach
its ledger raises ``LedgerUnavailable`` and the caller decides what to do.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PrimaryLedger(Protocol):
    """Records review approvals on the primary ledger."""

    async def record_approval(self, submission_id: str) -> str:
        """Record an approval. Returns the transaction reference."""
        ...


@runtime_checkable
class TokenLedger(Protocol):
    """Mints reward tokens on the primary ledger."""

    async def mint(self, address: str, amount: str, reason: str) -> str:
        """Mint ``amount`` whole units to ``address``. Returns the tx reference.

        Adapters convert whole units to the chain's minor units.
        """
        ...


@runtime_checkable
class SecondaryLedger(Protocol):
    """Maintains reputation on the secondary ledger."""

    async def increase_reputation(self, address: str, delta: int, reason: str) -> str:
        """Increase reputation of ``address`` by ``delta``. Returns the tx reference."""
        ...


__all__ = ["PrimaryLedger", "SecondaryLedger", "TokenLedger"]
