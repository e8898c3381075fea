"""
Context encoder for the contextual bandit.

Turns a user's profile, recent interaction window and the wall clock
into a compact, human-readable state key such as
``"Sci-Fi|intense|evening"``.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from ..types import InteractionEvent, UserProfile

STATE_DELIMITER = "|"
DEFAULT_GENRE = "general"
DEFAULT_EXPERIENCE = "any"

# (start_hour inclusive, end_hour exclusive, label); anything else is night
TIME_BUCKETS = (
    (5, 12, "morning"),
    (12, 17, "afternoon"),
    (17, 21, "evening"),
)


def time_bucket(hour: int) -> str:
    """Map an hour of day (0-23) to its time-of-day bucket."""
    for start, end, label in TIME_BUCKETS:
        if start <= hour < end:
            return label
    return "night"


def _dominant(tags: Iterable[str]) -> Optional[str]:
    # Counter preserves first-seen order, so ties go to the most recent tag
    counts = Counter(t for t in tags if t)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


class ContextEncoder:
    """
    Encodes user context into a discrete state key.

    The key has three parts joined by ``|``:
    dominant genre, dominant experience tag, time-of-day bucket.
    Recent events win over profile preferences; sentinels
    ("general", "any") fill in when neither has a signal.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or datetime.now

    def encode(
        self,
        profile: Optional[UserProfile],
        recent_events: Sequence[InteractionEvent] = (),
        now: Optional[datetime] = None,
    ) -> str:
        """
        Build the state key.

        Args:
            profile: User profile (may be None or empty)
            recent_events: Recent interactions, most recent first
            now: Override for the current time

        Returns:
            State key string
        """
        genre = _dominant(e.context.genre for e in recent_events)
        experience = _dominant(e.context.experience for e in recent_events)

        if genre is None:
            if profile is not None and profile.preferred_genres:
                genre = profile.preferred_genres[0]
            else:
                genre = DEFAULT_GENRE

        if experience is None:
            if profile is not None and profile.preferred_experience:
                experience = profile.preferred_experience
            else:
                experience = DEFAULT_EXPERIENCE

        moment = now or self.clock()
        return STATE_DELIMITER.join([genre, experience, time_bucket(moment.hour)])

    @staticmethod
    def decode(state_key: str) -> dict:
        """Split a state key back into its named parts."""
        parts = state_key.split(STATE_DELIMITER)
        parts += [""] * (3 - len(parts))
        return {"genre": parts[0], "experience": parts[1], "time_of_day": parts[2]}
