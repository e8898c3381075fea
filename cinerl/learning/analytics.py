"""
Learning analytics.

Read-only aggregation over a user's value table and interaction log.
Safe to call at any time; a snapshot may miss an in-flight update.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List

from ..storage import RecommendationStore
from ..types import RecommendationResult

TOP_GENRES_LIMIT = 5
TOP_ITEMS_LIMIT = 10
GENRE_EVENT_KINDS = ("view", "click", "rating")
ITEM_EVENT_KINDS = ("view", "click")

# (exclusive upper bound on interactions, stage)
MATURITY_STAGES = (
    (5, "cold_start"),
    (20, "learning"),
    (50, "improving"),
)


def model_maturity(total_interactions: int) -> str:
    """Stage label for a given number of interactions."""
    for bound, stage in MATURITY_STAGES:
        if total_interactions < bound:
            return stage
    return "mature"


def source_breakdown(results: Iterable[RecommendationResult]) -> Dict[str, int]:
    """Count recommendation results by source (rl / explore / hybrid)."""
    return dict(Counter(r.source for r in results))


@dataclass
class LearningStats:
    """
    Summary of one user's model.

    Attributes:
        total_interactions: All logged events
        unique_states_learned: Distinct state keys with value entries
        total_value_entries: Number of value entries
        avg_value: Mean value estimate, rounded to 2 places
        top_genres: [{"genre", "count"}] from view/click/rating context tags
        top_items: [{"movie_id", "interactions"}] by view/click count
        activity_breakdown: Event counts per kind
        model_maturity: cold_start / learning / improving / mature
        state_details: Per-state coverage, most visited first
        rating_distribution: Counts of 1..5 star ratings
    """
    total_interactions: int = 0
    unique_states_learned: int = 0
    total_value_entries: int = 0
    avg_value: float = 0.0
    top_genres: List[Dict[str, Any]] = field(default_factory=list)
    top_items: List[Dict[str, Any]] = field(default_factory=list)
    activity_breakdown: Dict[str, int] = field(default_factory=dict)
    model_maturity: str = "cold_start"
    state_details: List[Dict[str, Any]] = field(default_factory=list)
    rating_distribution: List[int] = field(default_factory=lambda: [0] * 5)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AnalyticsReporter:
    """Aggregates value-table and interaction-log contents per user."""

    def __init__(self, store: RecommendationStore, history_limit: int = 100000):
        self.store = store
        self.history_limit = history_limit

    def stats(self, user_id: str) -> LearningStats:
        values = self.store.all_values(user_id)
        events = self.store.recent_events(user_id, self.history_limit)
        ratings = self.store.ratings_for(user_id)

        activity = Counter(e.kind for e in events)
        total = sum(activity.values())

        genres = Counter(
            e.context.genre for e in events
            if e.context.genre and e.kind in GENRE_EVENT_KINDS
        )
        items = Counter(e.movie_id for e in events if e.kind in ITEM_EVENT_KINDS)

        avg_value = sum(v.value for v in values) / len(values) if values else 0.0

        distribution = [0] * 5
        for r in ratings:
            if 1 <= r.rating <= 5:
                distribution[r.rating - 1] += 1

        return LearningStats(
            total_interactions=total,
            unique_states_learned=len({v.state_key for v in values}),
            total_value_entries=len(values),
            avg_value=round(avg_value, 2),
            top_genres=[
                {"genre": g, "count": n} for g, n in genres.most_common(TOP_GENRES_LIMIT)
            ],
            top_items=[
                {"movie_id": m, "interactions": n} for m, n in items.most_common(TOP_ITEMS_LIMIT)
            ],
            activity_breakdown=dict(sorted(activity.items())),
            model_maturity=model_maturity(total),
            state_details=self._state_details(values),
            rating_distribution=distribution,
        )

    @staticmethod
    def _state_details(values) -> List[Dict[str, Any]]:
        by_state = defaultdict(list)
        for v in values:
            by_state[v.state_key].append(v)

        details = []
        for state_key in sorted(by_state):
            entries = by_state[state_key]
            details.append({
                "state": state_key,
                "movie_count": len(entries),
                "avg_value": round(sum(e.value for e in entries) / len(entries), 2),
                "max_value": round(max(e.value for e in entries), 2),
                "total_visits": sum(e.visit_count for e in entries),
            })
        # Stable: equal visit totals stay in state-key order
        details.sort(key=lambda d: d["total_visits"], reverse=True)
        return details
