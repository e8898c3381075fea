"""
Temporal-difference learner.

Each tracked interaction updates exactly one value entry:

    Q(s, a) <- Q(s, a) + alpha * [R + gamma * max_a' Q(s, a') - Q(s, a)]

where s is the user's current state key, a is the movie, R the
reward for the event and max_a' Q(s, a') the best value already
learned for that state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Union

from ..storage import RecommendationStore
from ..types import ContextTags
from .context_encoder import ContextEncoder
from .learning_config import LearningConfig, DEFAULT_LEARNING_CONFIG
from .reward_model import RewardModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LearnResult:
    """Outcome of one learn call."""
    state_key: str
    movie_id: int
    reward: float
    old_value: float
    new_value: float
    td_error: float
    visit_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def td_update(
    current_value: float,
    reward: float,
    max_future_value: float,
    learning_rate: float,
    discount_factor: float,
) -> tuple:
    """Return (new_value, td_error) for one TD step."""
    target = reward + discount_factor * max_future_value
    error = target - current_value
    return current_value + learning_rate * error, error


class TDLearner:
    """
    Applies TD updates from interaction feedback.

    Persistence failures from the store propagate unchanged; nothing
    is retried.
    """

    def __init__(
        self,
        store: RecommendationStore,
        config: Optional[LearningConfig] = None,
        encoder: Optional[ContextEncoder] = None,
        reward_model: Optional[RewardModel] = None,
    ):
        self.store = store
        self.config = config or DEFAULT_LEARNING_CONFIG
        self.encoder = encoder or ContextEncoder()
        self.reward_model = reward_model or RewardModel(self.config.reward_weights)

    def learn(
        self,
        user_id: str,
        movie_id: int,
        kind: str,
        value: Union[str, int, float, None] = "",
        context: Optional[ContextTags] = None,
    ) -> Optional[LearnResult]:
        """
        Record an interaction and update the value entry for it.

        Args:
            user_id: User identifier
            movie_id: Movie the user interacted with
            kind: Event kind
            value: Optional payload (rating text)
            context: Optional genre/experience/source tags

        Returns:
            LearnResult, or None when the user is unknown
        """
        profile = self.store.get_profile(user_id)
        if profile is None:
            logger.info(f"learn skipped for unknown user {user_id}")
            return None

        value_text = "" if value is None else str(value)
        self.store.append_event(user_id, movie_id, kind, value_text, context or ContextTags())

        reward = self.reward_model.reward(kind, value_text)

        recent = self.store.recent_events(user_id, self.config.recent_window)
        state_key = self.encoder.encode(profile, recent)

        existing = self.store.get_value(user_id, state_key, movie_id)
        current_value = existing.value if existing else 0.0
        visit_count = existing.visit_count if existing else 0

        best = self.store.top_values(user_id, state_key, 1)
        max_future_value = best[0].value if best else 0.0

        new_value, td_error = td_update(
            current_value,
            reward,
            max_future_value,
            self.config.learning_rate,
            self.config.discount_factor,
        )

        self.store.upsert_value(
            user_id,
            state_key,
            movie_id,
            value=new_value,
            visit_count=visit_count + 1,
            last_reward=reward,
        )

        logger.debug(
            f"TD update user={user_id} state={state_key} movie={movie_id} "
            f"reward={reward:.2f} q={current_value:.3f}->{new_value:.3f}"
        )

        return LearnResult(
            state_key=state_key,
            movie_id=movie_id,
            reward=reward,
            old_value=current_value,
            new_value=new_value,
            td_error=td_error,
            visit_count=visit_count + 1,
        )
