from __future__ import annotations

import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .catalogue import Catalogue
from .config import EngineConfig
from .learning import (
    AnalyticsReporter,
    ContextEncoder,
    LearnResult,
    LearningStats,
    Recommender,
    RewardModel,
    TDLearner,
    source_breakdown,
)
from .logging_config import get_logger
from .metrics import MetricsCollector, get_metrics
from .storage import InMemoryStore, JsonFileStore, RecommendationStore, StoreError
from .types import (
    ContextTags,
    InteractionEvent,
    Movie,
    Rating,
    RecommendationResult,
    SearchRecord,
    UserProfile,
)
from .validation import (
    validate_count,
    validate_event_kind,
    validate_movie_id,
    validate_rating,
    validate_search_query,
    validate_user_id,
)

logger = get_logger(__name__)


class RecommendationEngine:
    """
    Entry point for callers: learn from interactions, recommend, report.

    Wires one store, one catalogue and the learning core together.
    Each call rebuilds its working set from the store; the engine keeps
    no per-user state in memory.

    Example:
        >>> engine = RecommendationEngine()
        >>> engine.register_user(UserProfile(user_id="u1", age=21, preferred_genres=["Drama"]))
        >>> engine.track("u1", 5, "click", context={"genre": "Drama"})
        >>> engine.recommend("u1", count=3)
    """

    def __init__(
        self,
        store: Optional[RecommendationStore] = None,
        catalogue: Optional[Catalogue] = None,
        config: Optional[EngineConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or EngineConfig()
        self.store = store or InMemoryStore()
        self.catalogue = catalogue or Catalogue.sample()
        self.metrics = metrics or get_metrics()

        learning = self.config.learning
        encoder = ContextEncoder(clock=clock)
        self.learner = TDLearner(
            self.store,
            config=learning,
            encoder=encoder,
            reward_model=RewardModel(learning.reward_weights),
        )
        self.recommender = Recommender(self.store, config=learning, encoder=encoder, rng=rng)
        self.analytics = AnalyticsReporter(self.store)

    @classmethod
    def from_config(cls, config: EngineConfig, **kwargs: Any) -> "RecommendationEngine":
        """Build an engine with the store and catalogue named in config."""
        store = JsonFileStore(config.data_dir) if config.data_dir else InMemoryStore()
        catalogue = Catalogue.load(config.catalogue_path)
        return cls(store=store, catalogue=catalogue, config=config, **kwargs)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def register_user(self, profile: UserProfile) -> None:
        """Store or replace a profile supplied by the identity provider."""
        validate_user_id(profile.user_id).raise_if_invalid("register_user")
        self._guarded("profile", lambda: self.store.put_profile(profile))

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def learn(
        self,
        user_id: str,
        movie_id: int,
        kind: str,
        value: Union[str, int, None] = "",
        context: Union[ContextTags, Dict[str, Any], None] = None,
    ) -> Optional[LearnResult]:
        """
        Record one interaction and apply the TD update.

        Returns None for unknown users. StoreError propagates.
        """
        tags = context if isinstance(context, ContextTags) else ContextTags.from_dict(context)

        with self.metrics.time_operation("learn") as timer:
            result = self._guarded(
                "learn",
                lambda: self.learner.learn(user_id, movie_id, kind, value, tags),
            )

        if result is None:
            self.metrics.increment("unknown_user", subsystem="learn")
            return None

        self.metrics.record_learn(kind, result.reward, result.td_error)
        logger.interaction(
            kind,
            f"q={result.old_value:.3f}->{result.new_value:.3f}",
            subsystem="learn",
            user_id=user_id,
            state_key=result.state_key,
            movie_id=movie_id,
            reward=result.reward,
            latency_ms=round(timer.elapsed_ms, 2),
        )
        return result

    def track(
        self,
        user_id: str,
        movie_id: int,
        kind: str,
        value: Union[str, int, None] = "",
        context: Union[ContextTags, Dict[str, Any], None] = None,
    ) -> Optional[LearnResult]:
        """Validate a caller-supplied interaction, then learn from it."""
        validate_user_id(user_id).extend(
            validate_movie_id(movie_id)
        ).extend(
            validate_event_kind(kind)
        ).raise_if_invalid("track")
        return self.learn(user_id, movie_id, kind, value, context)

    def rate(self, user_id: str, movie_id: int, rating: int) -> Optional[LearnResult]:
        """Save an explicit rating and learn from it as a rating event."""
        validate_user_id(user_id).extend(
            validate_movie_id(movie_id)
        ).extend(
            validate_rating(rating)
        ).raise_if_invalid("rate")

        if self._guarded("rate", lambda: self.store.get_profile(user_id)) is None:
            self.metrics.increment("unknown_user", subsystem="rate")
            return None

        # The rating row is written only after the learner has recorded the event
        result = self.learn(
            user_id,
            movie_id,
            "rating",
            str(rating),
            ContextTags(source="explicit_rating"),
        )
        if result is not None:
            self._guarded("rate", lambda: self.store.upsert_rating(user_id, movie_id, rating))
        return result

    def track_search(
        self,
        user_id: str,
        query: str,
        result_count: int = 0,
        selected_movie_id: Optional[int] = None,
    ) -> SearchRecord:
        """Append a search to the user's search history."""
        validate_user_id(user_id).extend(validate_search_query(query)).raise_if_invalid("track_search")
        return self._guarded(
            "search",
            lambda: self.store.append_search(user_id, query.strip(), result_count, selected_movie_id),
        )

    # ------------------------------------------------------------------
    # Recommendation
    # ------------------------------------------------------------------

    def recommend(
        self,
        user_id: str,
        count: Optional[int] = None,
        candidates: Optional[Sequence[Movie]] = None,
    ) -> List[RecommendationResult]:
        """
        Recommend movies from ``candidates`` (default: whole catalogue).

        Unknown users get an empty list.
        """
        count = self.config.default_count if count is None else count
        validate_count(count).raise_if_invalid("recommend")
        pool = self.catalogue.movies() if candidates is None else list(candidates)

        with self.metrics.time_operation("recommend") as timer:
            results = self._guarded(
                "recommend",
                lambda: self.recommender.recommend(user_id, pool, count),
            )

        sources = source_breakdown(results)
        self.metrics.record_recommendation(sources)
        logger.latency(
            "recommend",
            timer.elapsed_ms,
            subsystem="recommend",
            user_id=user_id,
            returned=len(results),
            sources=sources,
        )
        return results

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def stats(self, user_id: str) -> LearningStats:
        with self.metrics.time_operation("stats") as timer:
            stats = self._guarded("stats", lambda: self.analytics.stats(user_id))
        logger.latency("stats", timer.elapsed_ms, subsystem="stats", user_id=user_id)
        return stats

    def history(self, user_id: str, limit: Optional[int] = None) -> List[InteractionEvent]:
        """Most recent interactions first."""
        limit = self.config.history_limit if limit is None else limit
        return self._guarded("history", lambda: self.store.recent_events(user_id, limit))

    def searches(self, user_id: str, limit: int = 20) -> List[SearchRecord]:
        return self._guarded("history", lambda: self.store.recent_searches(user_id, limit))

    def ratings(self, user_id: str) -> List[Rating]:
        return self._guarded("ratings", lambda: self.store.ratings_for(user_id))

    def rating_for(self, user_id: str, movie_id: int) -> Optional[int]:
        for r in self.ratings(user_id):
            if r.movie_id == movie_id:
                return r.rating
        return None

    def hyperparameters(self) -> Dict[str, Any]:
        """Exploration, learning and reward settings currently in force."""
        learning = self.config.learning
        return {
            "epsilon": learning.epsilon,
            "epsilon_min": learning.epsilon_min,
            "epsilon_decay": learning.epsilon_decay,
            "learning_rate": learning.learning_rate,
            "discount_factor": learning.discount_factor,
            "reward_weights": dict(learning.reward_weights),
        }

    def metrics_summary(self) -> Dict[str, Any]:
        return self.metrics.summary()

    def _guarded(self, subsystem: str, fn: Callable[[], Any]) -> Any:
        """Run a store-touching call, counting and logging persistence failures."""
        try:
            return fn()
        except StoreError as e:
            self.metrics.record_error(subsystem, "store")
            logger.error(f"{subsystem} failed: {e}")
            raise
