"""
Learning configuration for the recommendation core.

Hyperparameters for TD learning, adaptive exploration and hybrid
scoring live here so they can be tuned per environment and pinned
in tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


DEFAULT_REWARD_WEIGHTS: Dict[str, float] = {
    "click": 1.0,
    "view": 0.5,
    "search": 0.3,
    "recommend_click": 1.5,
    "dwell": 0.8,
    "rating_positive": 2.0,   # rated >= 4
    "rating_neutral": 0.5,    # rated 3
    "rating_negative": -1.0,  # rated <= 2 or unparseable
}


@dataclass
class LearningConfig:
    """
    Configuration for learner and recommender.

    All parameters are clamped to safe ranges on construction.

    Attributes:
        learning_rate: Alpha in the TD update (0.0 to 1.0)
        discount_factor: Gamma, weight of the bootstrapped future value (0.0 to 1.0)
        epsilon: Base exploration probability
        epsilon_decay: Per-visit multiplicative decay of epsilon
        epsilon_min: Exploration floor
        recent_window: Number of recent events used for state encoding
        value_fetch_limit: Max value entries fetched per recommendation
        explore_window: Random picks are drawn from this many top candidates
        value_amplification: Multiplier on learned values in scoring
        genre_weight: Score per genre shared with the profile
        experience_weight: Score for matching the preferred experience
        similar_loved_bonus: Score for resembling a highly rated movie
        popularity_weight: Weight of popularity_score in the quality baseline
        rating_weight: Weight of rating_percent/100 in the quality baseline
        novelty_bonus: Score for movies the user has not viewed or clicked
        rated_penalty: Penalty for movies the user already rated
        loved_threshold: Ratings at or above this count as "loved"
        reward_weights: Reward per event kind (see DEFAULT_REWARD_WEIGHTS)
        prng_seed: Seed for exploration (None = random)
    """
    # TD learning
    learning_rate: float = 0.1
    discount_factor: float = 0.95

    # Adaptive exploration
    epsilon: float = 0.15
    epsilon_decay: float = 0.999
    epsilon_min: float = 0.05

    # Windows
    recent_window: int = 50
    value_fetch_limit: int = 100
    explore_window: int = 30

    # Hybrid scoring
    value_amplification: float = 3.0
    genre_weight: float = 0.8
    experience_weight: float = 0.6
    similar_loved_bonus: float = 1.2
    popularity_weight: float = 0.3
    rating_weight: float = 0.3
    novelty_bonus: float = 0.2
    rated_penalty: float = 0.5
    loved_threshold: int = 4

    reward_weights: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_REWARD_WEIGHTS)
    )

    # Determinism
    prng_seed: Optional[int] = None

    def __post_init__(self):
        """Validate and clamp all parameters to safe ranges."""
        self.learning_rate = max(0.0, min(1.0, self.learning_rate))
        self.discount_factor = max(0.0, min(1.0, self.discount_factor))
        self.epsilon = max(0.0, min(1.0, self.epsilon))
        self.epsilon_decay = max(0.0, min(1.0, self.epsilon_decay))
        self.epsilon_min = max(0.0, min(self.epsilon, self.epsilon_min))
        self.recent_window = max(1, min(1000, self.recent_window))
        self.value_fetch_limit = max(1, min(10000, self.value_fetch_limit))
        self.explore_window = max(1, self.explore_window)
        self.loved_threshold = max(1, min(5, self.loved_threshold))

        weights = dict(DEFAULT_REWARD_WEIGHTS)
        weights.update(self.reward_weights or {})
        self.reward_weights = weights

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "learning_rate": self.learning_rate,
            "discount_factor": self.discount_factor,
            "epsilon": self.epsilon,
            "epsilon_decay": self.epsilon_decay,
            "epsilon_min": self.epsilon_min,
            "recent_window": self.recent_window,
            "value_fetch_limit": self.value_fetch_limit,
            "explore_window": self.explore_window,
            "value_amplification": self.value_amplification,
            "genre_weight": self.genre_weight,
            "experience_weight": self.experience_weight,
            "similar_loved_bonus": self.similar_loved_bonus,
            "popularity_weight": self.popularity_weight,
            "rating_weight": self.rating_weight,
            "novelty_bonus": self.novelty_bonus,
            "rated_penalty": self.rated_penalty,
            "loved_threshold": self.loved_threshold,
            "reward_weights": dict(self.reward_weights),
            "prng_seed": self.prng_seed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LearningConfig":
        """Deserialize from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# Default configuration instance
DEFAULT_LEARNING_CONFIG = LearningConfig()


class LearningPresets:
    """Pre-configured learning presets."""

    @staticmethod
    def default() -> LearningConfig:
        return LearningConfig()

    @staticmethod
    def exploit_only() -> LearningConfig:
        """No exploration; recommendations follow score order exactly."""
        return LearningConfig(epsilon=0.0, epsilon_min=0.0)

    @staticmethod
    def exploratory() -> LearningConfig:
        """More exploration for fresh catalogues."""
        return LearningConfig(epsilon=0.3, epsilon_min=0.1, epsilon_decay=0.9995)

    @staticmethod
    def deterministic_test(seed: int = 42) -> LearningConfig:
        """Deterministic configuration for testing."""
        return LearningConfig(prng_seed=seed)
