"""
Learning core for the cinerl recommender.

A contextual bandit over movies:

- ContextEncoder turns profile + recent activity + clock into a state key
- RewardModel maps interaction events to scalar rewards
- TDLearner applies temporal-difference updates per (user, state, movie)
- Recommender blends learned values with content signals, epsilon-greedy
- AnalyticsReporter summarises a user's model

Every user has an independent value table; nothing is shared.
"""

from .learning_config import (
    LearningConfig,
    LearningPresets,
    DEFAULT_LEARNING_CONFIG,
    DEFAULT_REWARD_WEIGHTS,
)
from .context_encoder import ContextEncoder, time_bucket, STATE_DELIMITER
from .reward_model import RewardModel, parse_rating
from .learner import TDLearner, LearnResult, td_update
from .recommender import Recommender, adaptive_epsilon
from .analytics import AnalyticsReporter, LearningStats, model_maturity, source_breakdown


__all__ = [
    # Configuration
    "LearningConfig",
    "LearningPresets",
    "DEFAULT_LEARNING_CONFIG",
    "DEFAULT_REWARD_WEIGHTS",

    # State encoding
    "ContextEncoder",
    "time_bucket",
    "STATE_DELIMITER",

    # Rewards
    "RewardModel",
    "parse_rating",

    # Learning
    "TDLearner",
    "LearnResult",
    "td_update",

    # Recommendation
    "Recommender",
    "adaptive_epsilon",

    # Analytics
    "AnalyticsReporter",
    "LearningStats",
    "model_maturity",
    "source_breakdown",
]
