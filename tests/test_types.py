"""Tests for record serialization."""
from datetime import datetime

from cinerl.types import (
    ContextTags,
    InteractionEvent,
    Movie,
    RecommendationResult,
    UserProfile,
    ValueEntry,
)


def test_profile_roundtrip():
    original = UserProfile(
        user_id="u1",
        age=16,
        preferred_genres=["Drama", "Comedy"],
        preferred_experience="fun",
        created_at=datetime(2024, 1, 2, 3, 4, 5),
    )
    restored = UserProfile.from_dict(original.to_dict())
    assert restored == original


def test_profile_defaults():
    profile = UserProfile.from_dict({"user_id": "u2"})
    assert profile.age == 18
    assert profile.preferred_genres == []
    assert profile.preferred_experience == ""


def test_context_tags_accept_duration_alias():
    tags = ContextTags.from_dict({"genre": "Drama", "duration": "1500"})
    assert tags.genre == "Drama"
    assert tags.duration_ms == 1500


def test_context_tags_empty():
    assert ContextTags.from_dict(None) == ContextTags()
    assert ContextTags.from_dict({}) == ContextTags()


def test_event_roundtrip_keeps_context():
    original = InteractionEvent(
        user_id="u1",
        movie_id=3,
        kind="dwell",
        value="",
        context=ContextTags(genre="Animation", experience="fun", source="home", duration_ms=42000),
        created_at=datetime(2024, 5, 6, 21, 0),
    )
    assert InteractionEvent.from_dict(original.to_dict()) == original


def test_value_entry_roundtrip():
    original = ValueEntry(
        user_id="u1",
        state_key="Drama|emotional|evening",
        movie_id=5,
        value=0.42,
        visit_count=3,
        last_reward=1.5,
        updated_at=datetime(2024, 2, 2),
    )
    restored = ValueEntry.from_dict(original.to_dict())
    assert restored == original
    assert restored.key == ("u1", "Drama|emotional|evening", 5)


def test_movie_from_dict_single_genre():
    movie = Movie.from_dict({"movie_id": "9", "title": "Drive", "genre": "Action"})
    assert movie.movie_id == 9
    assert movie.genres == ("Action",)
    assert movie.to_dict()["genres"] == ["Action"]


def test_recommendation_result_to_dict():
    result = RecommendationResult(
        movie=Movie(1, "Inception", ("Sci-Fi",)),
        score=1.23456,
        source="rl",
        reason="Learned from your behavior",
        all_reasons=["learned from your behavior"],
        value=0.3,
        visit_count=2,
    )
    data = result.to_dict()
    assert data["movie_id"] == 1
    assert data["score"] == 1.23
    assert data["source"] == "rl"
    assert result.movie_id == 1
