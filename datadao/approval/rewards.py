"""Reward policies and the mint step of an approval.

A reward policy maps an approved submission to a ``RewardPlan``. The
default pays a flat amount regardless of quality score; the score-scaled
policy is available for deployments that want quality to move the
payout. Amounts are whole-unit decimal strings throughout.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Callable, Optional

import bittensor as bt

from datadao.config.core import RewardSettings
from datadao.curation.errors import RewardError, ValidationError
from datadao.curation.models import Submission, User
from datadao.ledger.interface import TokenLedger

NO_DESTINATION = "no destination address"


def validate_amount(amount: str) -> str:
    """Return ``amount`` if it is a non-negative whole-unit decimal string."""
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError) as e:
        raise ValidationError(f"reward amount is not a decimal: {amount!r}") from e
    if not value.is_finite() or value < 0 or value != value.to_integral_value():
        raise ValidationError(f"reward amount must be a non-negative whole number: {amount!r}")
    return str(int(value))


@dataclass(frozen=True)
class RewardPlan:
    submitter_amount: str
    reviewer_amount: Optional[str] = None


RewardPolicy = Callable[[Submission], RewardPlan]


class FixedRewardPolicy:
    """Flat reward per approval, independent of quality score."""

    def __init__(self, base_amount: str, reviewer_amount: str | None = None):
        self.base_amount = validate_amount(base_amount)
        self.reviewer_amount = validate_amount(reviewer_amount) if reviewer_amount else None

    def __call__(self, submission: Submission) -> RewardPlan:
        return RewardPlan(self.base_amount, self.reviewer_amount)


class ScoreScaledRewardPolicy:
    """Reward proportional to quality score: floor(base * score / 100)."""

    def __init__(self, base_amount: str, reviewer_amount: str | None = None):
        self.base_amount = validate_amount(base_amount)
        self.reviewer_amount = validate_amount(reviewer_amount) if reviewer_amount else None

    def __call__(self, submission: Submission) -> RewardPlan:
        score = submission.quality_score or 0
        scaled = (Decimal(self.base_amount) * score / 100).to_integral_value(rounding=ROUND_FLOOR)
        return RewardPlan(str(max(0, int(scaled))), self.reviewer_amount)


def build_reward_policy(settings: RewardSettings) -> RewardPolicy:
    if settings.policy == "score_scaled":
        return ScoreScaledRewardPolicy(settings.base_amount, settings.reviewer_amount)
    return FixedRewardPolicy(settings.base_amount, settings.reviewer_amount)


@dataclass
class RewardOutcome:
    """Result of one mint attempt. Exactly one of tx_ref/error is set."""

    amount: Optional[str]
    tx_ref: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.tx_ref is not None


class RewardDistributor:
    """Mints rewards, converting every failure into a recorded RewardError."""

    def __init__(self, token_ledger: TokenLedger, call_timeout: float = 30.0):
        self.token_ledger = token_ledger
        self.call_timeout = call_timeout

    async def mint(
        self, recipient: User | None, amount: str, reason: str,
    ) -> RewardOutcome:
        """Mint ``amount`` to the recipient's primary-ledger address.

        Never raises for ledger problems: a missing address, adapter error
        or timeout comes back as ``RewardOutcome.error``.
        """
        address = recipient.primary_address if recipient is not None else None
        try:
            if not address:
                raise RewardError(NO_DESTINATION)
            tx_ref = await asyncio.wait_for(
                self.token_ledger.mint(address, amount, reason),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError:
            error = f"mint timed out after {self.call_timeout}s"
        except RewardError as e:
            error = str(e)
        except Exception as e:
            error = f"mint failed: {e}"
        else:
            return RewardOutcome(amount=amount, tx_ref=tx_ref)

        bt.logging.warning({
            "reward_mint_failed": {
                "recipient": recipient.id if recipient is not None else None,
                "amount": amount,
                "reason": reason,
                "error": error,
            }
        })
        return RewardOutcome(amount=amount, error=error)


__all__ = [
    "FixedRewardPolicy",
    "NO_DESTINATION",
    "RewardDistributor",
    "RewardOutcome",
    "RewardPlan",
    "RewardPolicy",
    "ScoreScaledRewardPolicy",
    "build_reward_policy",
    "validate_amount",
]
