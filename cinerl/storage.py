"""
Persistence contracts and adapters for the recommendation core.

The core only talks to a ``RecommendationStore``. Two adapters ship:

- ``InMemoryStore``: dict-backed, for tests and single-process use
- ``JsonFileStore``: one JSON document per user, atomic writes

Persistence failures surface as ``StoreError`` and are never retried here.
"""
from __future__ import annotations

import copy
import hashlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .types import (
    ContextTags,
    InteractionEvent,
    Rating,
    SearchRecord,
    UserProfile,
    ValueEntry,
)

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """The store could not be read or written."""


class RecommendationStore(ABC):
    """Narrow contract the core reads and writes through."""

    # Profiles
    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[UserProfile]: ...

    @abstractmethod
    def put_profile(self, profile: UserProfile) -> None: ...

    # Event log
    @abstractmethod
    def append_event(
        self,
        user_id: str,
        movie_id: int,
        kind: str,
        value: str = "",
        context: Optional[ContextTags] = None,
    ) -> InteractionEvent: ...

    @abstractmethod
    def recent_events(self, user_id: str, limit: int) -> List[InteractionEvent]:
        """Most recent first."""

    @abstractmethod
    def interaction_counts(self, user_id: str) -> Dict[Tuple[int, str], int]:
        """Counts keyed by (movie_id, kind)."""

    # Value table
    @abstractmethod
    def get_value(self, user_id: str, state_key: str, movie_id: int) -> Optional[ValueEntry]: ...

    @abstractmethod
    def upsert_value(
        self,
        user_id: str,
        state_key: str,
        movie_id: int,
        value: float,
        visit_count: int,
        last_reward: float,
    ) -> ValueEntry: ...

    @abstractmethod
    def top_values(self, user_id: str, state_key: str, limit: int) -> List[ValueEntry]:
        """Descending by value."""

    @abstractmethod
    def all_values(self, user_id: str) -> List[ValueEntry]: ...

    # Ratings
    @abstractmethod
    def upsert_rating(self, user_id: str, movie_id: int, rating: int) -> Rating: ...

    @abstractmethod
    def ratings_for(self, user_id: str) -> List[Rating]: ...

    # Search history
    @abstractmethod
    def append_search(
        self,
        user_id: str,
        query: str,
        result_count: int = 0,
        selected_movie_id: Optional[int] = None,
    ) -> SearchRecord: ...

    @abstractmethod
    def recent_searches(self, user_id: str, limit: int) -> List[SearchRecord]: ...


class InMemoryStore(RecommendationStore):
    """
    Dict-backed store.

    All reads and writes go through one lock, which gives read-your-writes
    per user. Returned entries are copies, so callers cannot mutate
    stored rows by accident.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._profiles: Dict[str, UserProfile] = {}
        self._events: Dict[str, List[InteractionEvent]] = {}
        self._values: Dict[str, Dict[Tuple[str, int], ValueEntry]] = {}
        self._ratings: Dict[str, Dict[int, Rating]] = {}
        self._searches: Dict[str, List[SearchRecord]] = {}

    @contextmanager
    def _write(self, user_id: str) -> Iterator[None]:
        """Hold the lock for one mutation of a user's rows, then persist them."""
        with self._lock:
            yield
            self._persist(user_id)

    def _persist(self, user_id: str) -> None:
        """Hook for durable subclasses."""

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            profile = self._profiles.get(user_id)
            return replace(profile, preferred_genres=list(profile.preferred_genres)) if profile else None

    def put_profile(self, profile: UserProfile) -> None:
        with self._write(profile.user_id):
            self._profiles[profile.user_id] = profile

    def append_event(
        self,
        user_id: str,
        movie_id: int,
        kind: str,
        value: str = "",
        context: Optional[ContextTags] = None,
    ) -> InteractionEvent:
        event = InteractionEvent(
            user_id=user_id,
            movie_id=movie_id,
            kind=kind,
            value=value or "",
            context=context or ContextTags(),
        )
        with self._write(user_id):
            self._events.setdefault(user_id, []).append(event)
        return event

    def recent_events(self, user_id: str, limit: int) -> List[InteractionEvent]:
        with self._lock:
            events = self._events.get(user_id, [])
            return list(reversed(events[-limit:])) if limit > 0 else []

    def interaction_counts(self, user_id: str) -> Dict[Tuple[int, str], int]:
        with self._lock:
            return dict(Counter((e.movie_id, e.kind) for e in self._events.get(user_id, [])))

    def get_value(self, user_id: str, state_key: str, movie_id: int) -> Optional[ValueEntry]:
        with self._lock:
            entry = self._values.get(user_id, {}).get((state_key, movie_id))
            return replace(entry) if entry else None

    def upsert_value(
        self,
        user_id: str,
        state_key: str,
        movie_id: int,
        value: float,
        visit_count: int,
        last_reward: float,
    ) -> ValueEntry:
        entry = ValueEntry(
            user_id=user_id,
            state_key=state_key,
            movie_id=movie_id,
            value=value,
            visit_count=visit_count,
            last_reward=last_reward,
            updated_at=datetime.now(),
        )
        with self._write(user_id):
            self._values.setdefault(user_id, {})[(state_key, movie_id)] = entry
        return replace(entry)

    def top_values(self, user_id: str, state_key: str, limit: int) -> List[ValueEntry]:
        with self._lock:
            entries = [
                e for (sk, _), e in self._values.get(user_id, {}).items()
                if sk == state_key
            ]
            entries.sort(key=lambda e: e.value, reverse=True)
            return [replace(e) for e in entries[:max(0, limit)]]

    def all_values(self, user_id: str) -> List[ValueEntry]:
        with self._lock:
            return [replace(e) for e in self._values.get(user_id, {}).values()]

    def upsert_rating(self, user_id: str, movie_id: int, rating: int) -> Rating:
        row = Rating(user_id=user_id, movie_id=movie_id, rating=rating, updated_at=datetime.now())
        with self._write(user_id):
            self._ratings.setdefault(user_id, {})[movie_id] = row
        return replace(row)

    def ratings_for(self, user_id: str) -> List[Rating]:
        with self._lock:
            return [replace(r) for r in self._ratings.get(user_id, {}).values()]

    def append_search(
        self,
        user_id: str,
        query: str,
        result_count: int = 0,
        selected_movie_id: Optional[int] = None,
    ) -> SearchRecord:
        record = SearchRecord(
            user_id=user_id,
            query=query,
            result_count=result_count,
            selected_movie_id=selected_movie_id,
        )
        with self._write(user_id):
            self._searches.setdefault(user_id, []).append(record)
        return record

    def recent_searches(self, user_id: str, limit: int) -> List[SearchRecord]:
        with self._lock:
            searches = self._searches.get(user_id, [])
            return list(reversed(searches[-limit:])) if limit > 0 else []

    def user_ids(self) -> List[str]:
        """All users with a profile."""
        with self._lock:
            return sorted(self._profiles)


class JsonFileStore(InMemoryStore):
    """
    Durable store writing one JSON document per user.

    Features:
    - Atomic writes (temp file + rename)
    - Loads every user document on startup
    - Write failures raise StoreError and roll the user's rows back

    Example:
        >>> store = JsonFileStore("./state/users")
        >>> store.put_profile(UserProfile(user_id="u1", age=21))
    """

    def __init__(self, base_path: str):
        super().__init__()
        self.base_path = Path(base_path)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store directory {base_path}: {e}") from e
        self._load_all()

    def _get_path(self, user_id: str) -> Path:
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return self.base_path / f"{digest}.json"

    def _snapshot(self, user_id: str) -> Dict[str, Any]:
        """Shallow copy of every row the user owns; missing rows are omitted."""
        return {
            name: copy.copy(table[user_id])
            for name, table in self._tables().items()
            if user_id in table
        }

    def _rollback(self, user_id: str, snapshot: Dict[str, Any]) -> None:
        for name, table in self._tables().items():
            if name in snapshot:
                table[user_id] = snapshot[name]
            else:
                table.pop(user_id, None)

    def _tables(self) -> Dict[str, dict]:
        return {
            "profile": self._profiles,
            "events": self._events,
            "values": self._values,
            "ratings": self._ratings,
            "searches": self._searches,
        }

    @contextmanager
    def _write(self, user_id: str) -> Iterator[None]:
        with self._lock:
            snapshot = self._snapshot(user_id)
            yield
            try:
                self._persist(user_id)
            except StoreError:
                self._rollback(user_id, snapshot)
                raise

    def _load_all(self) -> None:
        for path in sorted(self.base_path.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise StoreError(f"Cannot read user document {path}: {e}") from e
            self._restore_user(data)
        logger.debug(f"Loaded {len(self._profiles)} user documents from {self.base_path}")

    def _restore_user(self, data: dict) -> None:
        user_id = data["user_id"]
        if data.get("profile"):
            self._profiles[user_id] = UserProfile.from_dict(data["profile"])
        self._events[user_id] = [InteractionEvent.from_dict(e) for e in data.get("events", [])]
        self._values[user_id] = {
            (v.state_key, v.movie_id): v
            for v in (ValueEntry.from_dict(d) for d in data.get("values", []))
        }
        self._ratings[user_id] = {
            r.movie_id: r for r in (Rating.from_dict(d) for d in data.get("ratings", []))
        }
        self._searches[user_id] = [SearchRecord.from_dict(s) for s in data.get("searches", [])]

    def _persist(self, user_id: str) -> None:
        profile = self._profiles.get(user_id)
        document = {
            "version": 1,
            "user_id": user_id,
            "profile": profile.to_dict() if profile else None,
            "events": [e.to_dict() for e in self._events.get(user_id, [])],
            "values": [v.to_dict() for v in self._values.get(user_id, {}).values()],
            "ratings": [r.to_dict() for r in self._ratings.get(user_id, {}).values()],
            "searches": [s.to_dict() for s in self._searches.get(user_id, [])],
        }

        path = self._get_path(user_id)
        temp_path = path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            temp_path.replace(path)
        except OSError as e:
            logger.error(f"Failed to write user document for {user_id}: {e}")
            raise StoreError(f"Cannot write user document for {user_id}: {e}") from e
