"""Listening reward policy"""
from dataclasses import dataclass

# Coins credited for one qualifying listen
REWARD_AMOUNT = 5
# Seconds a session must reach before it counts as completed
THRESHOLD_SECONDS = 30

@dataclass(frozen=True)
class RewardDecision:
    """What a reported duration is worth"""
    coins_earned: int
    completed: bool

def evaluate_listen(duration: int) -> RewardDecision:
    """
    Decide completion and coin award for a cumulative listening duration.

    The result depends only on the duration:
    - duration >= THRESHOLD_SECONDS: REWARD_AMOUNT coins, completed
    - otherwise: 0 coins, not completed
    """
    if duration < 0:
        raise ValueError(f"Listening duration cannot be negative: {duration}")
    if duration >= THRESHOLD_SECONDS:
        return RewardDecision(coins_earned=REWARD_AMOUNT, completed=True)
    return RewardDecision(coins_earned=0, completed=False)
