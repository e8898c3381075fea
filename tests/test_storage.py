import os
import hashlib
import tempfile

import pytest

from cinerl.storage import InMemoryStore, JsonFileStore, StoreError
from cinerl.types import ContextTags, UserProfile


def test_profile_roundtrip():
    store = InMemoryStore()
    assert store.get_profile("u1") is None
    store.put_profile(UserProfile(user_id="u1", age=20, preferred_genres=["Drama"]))
    profile = store.get_profile("u1")
    assert profile.age == 20
    assert profile.preferred_genres == ["Drama"]


def test_recent_events_most_recent_first_and_limited():
    store = InMemoryStore()
    for movie_id in range(1, 6):
        store.append_event("u1", movie_id, "view")
    recent = store.recent_events("u1", 3)
    assert [e.movie_id for e in recent] == [5, 4, 3]
    assert store.recent_events("u1", 0) == []


def test_interaction_counts():
    store = InMemoryStore()
    store.append_event("u1", 1, "view")
    store.append_event("u1", 1, "view")
    store.append_event("u1", 1, "click")
    store.append_event("u1", 2, "search")
    assert store.interaction_counts("u1") == {(1, "view"): 2, (1, "click"): 1, (2, "search"): 1}


def test_upsert_value_merges():
    store = InMemoryStore()
    store.upsert_value("u1", "s", 1, value=0.1, visit_count=1, last_reward=1.0)
    store.upsert_value("u1", "s", 1, value=0.2, visit_count=2, last_reward=0.5)
    entries = store.all_values("u1")
    assert len(entries) == 1
    assert entries[0].value == 0.2
    assert entries[0].visit_count == 2


def test_top_values_ordered_and_scoped_to_state():
    store = InMemoryStore()
    store.upsert_value("u1", "s", 1, value=0.1, visit_count=1, last_reward=0)
    store.upsert_value("u1", "s", 2, value=0.9, visit_count=1, last_reward=0)
    store.upsert_value("u1", "s", 3, value=0.5, visit_count=1, last_reward=0)
    store.upsert_value("u1", "other", 4, value=5.0, visit_count=1, last_reward=0)
    store.upsert_value("u2", "s", 5, value=7.0, visit_count=1, last_reward=0)

    top = store.top_values("u1", "s", 2)
    assert [e.movie_id for e in top] == [2, 3]


def test_returned_entries_are_copies():
    store = InMemoryStore()
    store.upsert_value("u1", "s", 1, value=0.1, visit_count=1, last_reward=0)
    entry = store.get_value("u1", "s", 1)
    entry.value = 99.0
    assert store.get_value("u1", "s", 1).value == 0.1


def test_ratings_upsert():
    store = InMemoryStore()
    store.upsert_rating("u1", 1, 2)
    store.upsert_rating("u1", 1, 5)
    ratings = store.ratings_for("u1")
    assert len(ratings) == 1
    assert ratings[0].rating == 5


def test_searches():
    store = InMemoryStore()
    store.append_search("u1", "nemo", 2, 3)
    store.append_search("u1", "totoro")
    searches = store.recent_searches("u1", 10)
    assert [s.query for s in searches] == ["totoro", "nemo"]
    assert searches[1].selected_movie_id == 3


def test_json_store_survives_restart():
    with tempfile.TemporaryDirectory() as d:
        store = JsonFileStore(d)
        store.put_profile(UserProfile(user_id="u1", age=21, preferred_genres=["Drama"], preferred_experience="fun"))
        store.append_event("u1", 3, "rating", "4", ContextTags(genre="Drama", source="explicit_rating"))
        store.upsert_value("u1", "Drama|fun|night", 3, value=0.2, visit_count=1, last_reward=2.0)
        store.upsert_rating("u1", 3, 4)
        store.append_search("u1", "coco")

        reloaded = JsonFileStore(d)
        assert reloaded.get_profile("u1").preferred_experience == "fun"
        event = reloaded.recent_events("u1", 1)[0]
        assert event.value == "4"
        assert event.context.source == "explicit_rating"
        assert reloaded.get_value("u1", "Drama|fun|night", 3).last_reward == 2.0
        assert reloaded.ratings_for("u1")[0].rating == 4
        assert reloaded.recent_searches("u1", 1)[0].query == "coco"
        assert reloaded.user_ids() == ["u1"]


def test_json_store_uses_hashed_filenames():
    with tempfile.TemporaryDirectory() as d:
        store = JsonFileStore(d)
        store.put_profile(UserProfile(user_id="a/b c"))
        digest = hashlib.sha256("a/b c".encode("utf-8")).hexdigest()
        assert os.listdir(d) == [f"{digest}.json"]


def test_json_store_keeps_similar_ids_apart():
    """Ids that differ only in punctuation get separate documents."""
    with tempfile.TemporaryDirectory() as d:
        store = JsonFileStore(d)
        store.put_profile(UserProfile(user_id="a-b", age=30))
        store.put_profile(UserProfile(user_id="a_b", age=12))
        store.upsert_value("a-b", "s", 1, value=0.4, visit_count=1, last_reward=1.0)

        reloaded = JsonFileStore(d)
        assert reloaded.user_ids() == ["a-b", "a_b"]
        assert reloaded.get_profile("a-b").age == 30
        assert reloaded.get_profile("a_b").age == 12
        assert reloaded.all_values("a_b") == []
        assert reloaded.get_value("a-b", "s", 1).value == 0.4


def test_json_store_corrupt_file_raises():
    with tempfile.TemporaryDirectory() as d:
        with open(os.path.join(d, "broken.json"), "w") as f:
            f.write("{not json")
        with pytest.raises(StoreError):
            JsonFileStore(d)


def test_json_store_write_failure_raises():
    with tempfile.TemporaryDirectory() as d:
        store = JsonFileStore(d)
        store.base_path = store.base_path / "missing" / "dir"
        with pytest.raises(StoreError):
            store.put_profile(UserProfile(user_id="u1"))


def test_json_store_failed_write_is_rolled_back():
    with tempfile.TemporaryDirectory() as d:
        store = JsonFileStore(d)
        store.put_profile(UserProfile(user_id="u1", age=21))
        store.upsert_value("u1", "s", 2, value=0.3, visit_count=1, last_reward=1.0)
        good_path = store.base_path
        store.base_path = good_path / "missing" / "dir"

        with pytest.raises(StoreError):
            store.upsert_value("u1", "s", 1, value=9.0, visit_count=1, last_reward=1.0)
        with pytest.raises(StoreError):
            store.upsert_value("u1", "s", 2, value=5.0, visit_count=2, last_reward=1.0)
        with pytest.raises(StoreError):
            store.append_event("u1", 1, "click")
        with pytest.raises(StoreError):
            store.upsert_rating("u1", 1, 5)
        with pytest.raises(StoreError):
            store.put_profile(UserProfile(user_id="u2"))

        assert store.get_value("u1", "s", 1) is None
        assert store.get_value("u1", "s", 2).value == 0.3
        assert store.recent_events("u1", 10) == []
        assert store.ratings_for("u1") == []
        assert store.get_profile("u2") is None

        # A later successful write must not carry the rejected rows to disk
        store.base_path = good_path
        store.append_search("u1", "coco")
        reloaded = JsonFileStore(d)
        assert reloaded.get_value("u1", "s", 1) is None
        assert reloaded.recent_events("u1", 10) == []
        assert reloaded.user_ids() == ["u1"]
