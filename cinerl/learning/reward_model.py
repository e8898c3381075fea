"""
Reward model for interaction feedback.

Maps a raw interaction event (kind + optional value) to a scalar
reward. Never raises: unknown kinds score 0 and unreadable ratings
fall into the negative bucket.
"""
from __future__ import annotations

import math
import re
from typing import Dict, Optional, Union

from .learning_config import DEFAULT_REWARD_WEIGHTS

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_rating(value: Union[str, int, float, None]) -> Optional[int]:
    """
    Read the leading integer from a rating payload.

    "4" -> 4, "4.5" -> 4, " 3 stars" -> 3, "abc" -> None, nan -> None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


class RewardModel:
    """
    Fixed-weight reward table.

    Example:
        >>> RewardModel().reward("rating", "5")
        2.0
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = dict(DEFAULT_REWARD_WEIGHTS)
        if weights:
            self.weights.update(weights)

    def reward(self, kind: str, value: Union[str, int, float, None] = "") -> float:
        """
        Compute the reward for one event.

        Args:
            kind: Event kind
            value: Optional payload; only used for ratings

        Returns:
            Scalar reward
        """
        if kind == "rating":
            return self._rating_reward(parse_rating(value))
        if kind in ("click", "view", "search", "recommend_click", "dwell"):
            return self.weights[kind]
        return 0.0

    def _rating_reward(self, rating: Optional[int]) -> float:
        if rating is not None and rating >= 4:
            return self.weights["rating_positive"]
        if rating == 3:
            return self.weights["rating_neutral"]
        return self.weights["rating_negative"]

    def set_reward(self, name: str, reward: float) -> None:
        """Override one weight (event kind or rating_* bucket)."""
        self.weights[name] = float(reward)
