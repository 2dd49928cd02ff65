"""Review decisions and reward minting."""

from .rewards import (
    FixedRewardPolicy,
    RewardDistributor,
    RewardOutcome,
    RewardPlan,
    ScoreScaledRewardPolicy,
    build_reward_policy,
)
from .workflow import ApprovalResult, ApprovalWorkflow

__all__ = [
    "ApprovalResult",
    "ApprovalWorkflow",
    "FixedRewardPolicy",
    "RewardDistributor",
    "RewardOutcome",
    "RewardPlan",
    "ScoreScaledRewardPolicy",
    "build_reward_policy",
]
