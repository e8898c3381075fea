"""
Hybrid epsilon-greedy recommender.

Scores every eligible candidate as a sum of independent signals
(learned value, content affinity, quality baseline, novelty) and then
fills the list with epsilon-greedy draws, where epsilon decays with
the number of visits already learned for the user's current state.

The recommender is read-only: it never writes to the store.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from ..storage import RecommendationStore
from ..types import Movie, RecommendationResult, UserProfile, ValueEntry
from .context_encoder import ContextEncoder
from .learning_config import LearningConfig, DEFAULT_LEARNING_CONFIG

logger = logging.getLogger(__name__)

DEFAULT_REASON = "trending and highly rated"
EXPLORE_REASON = "Exploring new territory for you"


def adaptive_epsilon(total_visits: int, config: LearningConfig) -> float:
    """epsilon * decay^visits, floored at epsilon_min."""
    decayed = config.epsilon * (config.epsilon_decay ** max(0, total_visits))
    return max(config.epsilon_min, decayed)


def _headline(reason: str) -> str:
    return reason[:1].upper() + reason[1:]


@dataclass
class UserSignals:
    """Per-request view of what the user has already done."""
    values: Dict[int, ValueEntry] = field(default_factory=dict)
    rated: Set[int] = field(default_factory=set)
    loved: List[Movie] = field(default_factory=list)
    seen: Set[int] = field(default_factory=set)


class Recommender:
    """
    Produces ranked, explainable recommendation lists.

    Randomness comes from an injectable ``random.Random``-compatible
    source so exploration is reproducible under test.
    """

    def __init__(
        self,
        store: RecommendationStore,
        config: Optional[LearningConfig] = None,
        encoder: Optional[ContextEncoder] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.config = config or DEFAULT_LEARNING_CONFIG
        self.encoder = encoder or ContextEncoder()
        self.rng = rng or random.Random(self.config.prng_seed)

    def recommend(
        self,
        user_id: str,
        candidates: Sequence[Movie],
        count: int = 8,
    ) -> List[RecommendationResult]:
        """
        Recommend up to ``count`` movies from ``candidates``.

        Args:
            user_id: User identifier
            candidates: Candidate pool (usually the full catalogue)
            count: Desired list length

        Returns:
            Ordered results; empty for unknown users or empty pools
        """
        profile = self.store.get_profile(user_id)
        if profile is None or count <= 0:
            return []

        recent = self.store.recent_events(user_id, self.config.recent_window)
        state_key = self.encoder.encode(profile, recent)
        learned = self.store.top_values(user_id, state_key, self.config.value_fetch_limit)

        signals = self._collect_signals(user_id, learned, candidates)

        eligible = [m for m in candidates if m.age_limit <= profile.age]
        scored = [self.score(movie, profile, signals) for movie in eligible]

        epsilon = adaptive_epsilon(sum(e.visit_count for e in learned), self.config)

        results = self.select(scored, count, epsilon)
        logger.debug(
            f"recommend user={user_id} state={state_key} eligible={len(eligible)} "
            f"epsilon={epsilon:.3f} returned={len(results)}"
        )
        return results

    def _collect_signals(
        self,
        user_id: str,
        learned: List[ValueEntry],
        candidates: Sequence[Movie],
    ) -> UserSignals:
        by_id = {m.movie_id: m for m in candidates}
        ratings = self.store.ratings_for(user_id)

        seen = {
            movie_id
            for (movie_id, kind), n in self.store.interaction_counts(user_id).items()
            if n > 0 and kind in ("view", "click")
        }

        return UserSignals(
            values={e.movie_id: e for e in learned},
            rated={r.movie_id for r in ratings},
            loved=[
                by_id[r.movie_id] for r in ratings
                if r.rating >= self.config.loved_threshold and r.movie_id in by_id
            ],
            seen=seen,
        )

    def score(
        self,
        movie: Movie,
        profile: UserProfile,
        signals: UserSignals,
    ) -> RecommendationResult:
        """Sum every signal for one candidate."""
        cfg = self.config
        score = 0.0
        reasons: List[str] = []
        source = "hybrid"

        entry = signals.values.get(movie.movie_id)
        if entry is not None and entry.visit_count > 0:
            score += entry.value * cfg.value_amplification
            reasons.append("learned from your behavior")
            source = "rl"

        shared = [g for g in movie.genres if g in profile.preferred_genres]
        if shared:
            score += cfg.genre_weight * len(shared)
            reasons.append(f"matches your taste ({', '.join(shared)})")

        if profile.preferred_experience and movie.experience_type == profile.preferred_experience:
            score += cfg.experience_weight
            reasons.append(f"matches your preferred vibe ({movie.experience_type})")

        if movie.movie_id not in signals.rated and any(
            loved.experience_type == movie.experience_type
            and any(g in movie.genres for g in loved.genres)
            for loved in signals.loved
        ):
            score += cfg.similar_loved_bonus
            reasons.append("similar to movies you rated highly")

        # Quality baseline keeps every candidate above zero
        score += cfg.popularity_weight * movie.popularity_score
        score += cfg.rating_weight * (movie.rating_percent / 100.0)

        if movie.movie_id not in signals.seen:
            score += cfg.novelty_bonus
            reasons.append("something new for you")

        if movie.movie_id in signals.rated:
            score -= cfg.rated_penalty
            reasons.append("already rated by you")

        if not reasons:
            reasons.append(DEFAULT_REASON)

        return RecommendationResult(
            movie=movie,
            score=score,
            source=source,
            reason=_headline(reasons[0]),
            all_reasons=reasons,
            value=entry.value if entry is not None else None,
            visit_count=entry.visit_count if entry is not None else 0,
        )

    def select(
        self,
        scored: List[RecommendationResult],
        count: int,
        epsilon: float,
    ) -> List[RecommendationResult]:
        """
        Epsilon-greedy fill.

        Each draw either takes the best remaining candidate or, with
        probability epsilon, a uniform pick from the top
        ``explore_window`` remaining candidates.
        """
        # Stable sort: equal scores keep candidate-pool order
        remaining = sorted(scored, key=lambda r: r.score, reverse=True)
        picks: List[RecommendationResult] = []

        for _ in range(min(count, len(remaining))):
            if not remaining:
                break
            if self.rng.random() < epsilon:
                window = min(len(remaining), self.config.explore_window)
                pick = remaining.pop(self.rng.randrange(window))
                pick.source = "explore"
                pick.reason = EXPLORE_REASON
            else:
                pick = remaining.pop(0)
            picks.append(pick)

        seen: Set[int] = set()
        unique: List[RecommendationResult] = []
        for r in picks:
            if r.movie_id in seen:
                continue
            seen.add(r.movie_id)
            unique.append(r)
        return unique[:count]
