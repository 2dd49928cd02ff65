"""HTTP ledger gateway adapters.

Each ledger is fronted by a small gateway service that signs and submits
the chain transaction and answers with ``{"tx_ref": "..."}``. These
adapters retry only connection failures (the request never reached the
gateway) with exponential backoff. A POST that fails after it was sent is
not resent, since the gateway may already have submitted the transaction;
it surfaces as ``LedgerUnavailable``. Anything else is raised to the
caller. They never substitute a placeholder transaction reference.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any

import bittensor as bt
import httpx

from datadao.curation.errors import LedgerError, LedgerUnavailable


class _GatewayClient:
    """Shared POST-with-retry plumbing for one gateway base URL."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self._api_key = api_key
        self._max_retries = max(1, max_retries)
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    async def _post(self, path: str, payload: dict[str, Any]) -> str:
        """POST to the gateway and return the transaction reference."""
        if not self.base_url:
            raise LedgerUnavailable(f"ledger gateway not configured for {path}")

        url = f"{self.base_url}{path}"
        for attempt in range(self._max_retries):
            try:
                resp = await self._client.post(url, json=payload, headers=self._headers())
            except httpx.ConnectError as e:
                # Connection never established; the gateway did not see the request.
                if attempt == self._max_retries - 1:
                    raise LedgerUnavailable(f"ledger gateway unreachable: {e}") from e
                wait = 2 ** attempt
                bt.logging.warning({"ledger_http_client": {"path": path, "retry": attempt, "wait": wait, "error": str(e)}})
                await asyncio.sleep(wait)
                continue
            except httpx.TransportError as e:
                # Request may already be accepted; never resent.
                raise LedgerUnavailable(f"ledger gateway call to {path} failed in flight: {e}") from e

            if resp.status_code == 503:
                raise LedgerUnavailable(f"ledger gateway unavailable: {resp.text}")
            if resp.status_code >= 400:
                raise LedgerError(f"ledger gateway error {resp.status_code}: {resp.text}")

            tx_ref = resp.json().get("tx_ref")
            if not tx_ref:
                raise LedgerError(f"ledger gateway returned no tx_ref for {path}")
            return str(tx_ref)

        raise LedgerUnavailable("Max retries exceeded")


class HTTPPrimaryLedger(_GatewayClient):
    """PrimaryLedger over the primary gateway."""

    async def record_approval(self, submission_id: str) -> str:
        return await self._post("/approvals", {"submission_id": submission_id})


class HTTPTokenLedger(_GatewayClient):
    """TokenLedger over the primary gateway.

    Converts whole-unit decimal amounts to minor units before sending.
    """

    def __init__(self, base_url: str, decimals: int = 18, **kwargs: Any):
        super().__init__(base_url, **kwargs)
        self.decimals = decimals

    def to_minor_units(self, amount: str) -> str:
        try:
            value = Decimal(amount)
        except InvalidOperation as e:
            raise LedgerError(f"invalid reward amount: {amount!r}") from e
        if value < 0 or value != value.to_integral_value():
            raise LedgerError(f"reward amount must be a non-negative whole number: {amount!r}")
        return str(int(value) * 10 ** self.decimals)

    async def mint(self, address: str, amount: str, reason: str) -> str:
        return await self._post("/mint", {
            "address": address,
            "amount": self.to_minor_units(amount),
            "reason": reason,
        })


class HTTPSecondaryLedger(_GatewayClient):
    """SecondaryLedger over the secondary gateway."""

    async def increase_reputation(self, address: str, delta: int, reason: str) -> str:
        return await self._post("/reputation", {
            "address": address,
            "delta": delta,
            "reason": reason,
        })


__all__ = ["HTTPPrimaryLedger", "HTTPSecondaryLedger", "HTTPTokenLedger"]
