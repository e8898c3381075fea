"""
Tests for state encoding.
"""
from datetime import datetime

import pytest

from cinerl.learning import ContextEncoder, time_bucket
from cinerl.types import ContextTags, InteractionEvent, UserProfile


EVENING = datetime(2024, 3, 1, 19, 30)


def _event(genre="", experience="", kind="view", movie_id=1):
    return InteractionEvent(
        user_id="u1",
        movie_id=movie_id,
        kind=kind,
        context=ContextTags(genre=genre, experience=experience),
    )


class TestTimeBucket:
    """Tests for time-of-day buckets."""

    @pytest.mark.parametrize("hour,bucket", [
        (5, "morning"),
        (11, "morning"),
        (12, "afternoon"),
        (16, "afternoon"),
        (17, "evening"),
        (20, "evening"),
        (21, "night"),
        (0, "night"),
        (4, "night"),
    ])
    def test_boundaries(self, hour, bucket):
        assert time_bucket(hour) == bucket


class TestContextEncoder:
    """Tests for ContextEncoder."""

    def test_empty_profile_uses_sentinels(self):
        """No profile and no events should still give a well-formed key."""
        encoder = ContextEncoder(clock=lambda: EVENING)
        assert encoder.encode(None, []) == "general|any|evening"

        profile = UserProfile(user_id="u1")
        assert encoder.encode(profile, []) == "general|any|evening"

    def test_profile_fallback(self):
        """Profile preferences fill in when there is no recent activity."""
        encoder = ContextEncoder(clock=lambda: EVENING)
        profile = UserProfile(
            user_id="u1",
            preferred_genres=["Drama", "Comedy"],
            preferred_experience="emotional",
        )
        assert encoder.encode(profile, []) == "Drama|emotional|evening"

    def test_recent_events_override_profile(self):
        """Dominant recent tags win over profile preferences."""
        encoder = ContextEncoder(clock=lambda: EVENING)
        profile = UserProfile(user_id="u1", preferred_genres=["Drama"], preferred_experience="emotional")
        events = [
            _event("Sci-Fi", "intense"),
            _event("Sci-Fi", "fun"),
            _event("Drama", "intense"),
        ]
        assert encoder.encode(profile, events) == "Sci-Fi|intense|evening"

    def test_partial_signal_falls_back_per_component(self):
        """Genre from events, experience from profile."""
        encoder = ContextEncoder(clock=lambda: EVENING)
        profile = UserProfile(user_id="u1", preferred_genres=["Drama"], preferred_experience="relaxing")
        events = [_event("Animation", "")]
        assert encoder.encode(profile, events) == "Animation|relaxing|evening"

    def test_tie_goes_to_first_seen(self):
        """Equal counts: the tag seen first in the window wins."""
        encoder = ContextEncoder(clock=lambda: EVENING)
        events = [
            _event("Comedy", "fun"),
            _event("Horror", "intense"),
        ]
        assert encoder.encode(None, events) == "Comedy|fun|evening"

    def test_deterministic_with_fixed_clock(self):
        """Same inputs and clock give the same key."""
        encoder = ContextEncoder(clock=lambda: EVENING)
        profile = UserProfile(user_id="u1", preferred_genres=["Drama"])
        events = [_event("Sci-Fi", "intense"), _event("Drama", "fun")]
        keys = {encoder.encode(profile, events) for _ in range(5)}
        assert len(keys) == 1

    def test_explicit_now_overrides_clock(self):
        encoder = ContextEncoder(clock=lambda: EVENING)
        key = encoder.encode(None, [], now=datetime(2024, 3, 1, 8, 0))
        assert key.endswith("|morning")

    def test_decode(self):
        parts = ContextEncoder.decode("Drama|emotional|night")
        assert parts == {"genre": "Drama", "experience": "emotional", "time_of_day": "night"}
