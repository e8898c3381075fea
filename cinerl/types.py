from __future__ import annotations
from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Literal, Optional, List, Dict, Any

EventKind = Literal[
    "view", "click", "search", "rating", "recommend_click", "dwell"
]

EVENT_KINDS = ("view", "click", "search", "rating", "recommend_click", "dwell")

ResultSource = Literal["rl", "explore", "hybrid"]


@dataclass
class UserProfile:
    """
    Read-only view of a user's profile, owned by the identity provider.

    Attributes:
        user_id: Stable user identifier
        age: Age in years, used for the hard age filter
        preferred_genres: Ordered genre preferences (first is strongest)
        preferred_experience: Preferred experience tag ("intense", "fun", ...)
        created_at: Profile creation time
    """
    user_id: str
    age: int = 18
    preferred_genres: List[str] = field(default_factory=list)
    preferred_experience: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        created = data.get("created_at")
        return cls(
            user_id=data["user_id"],
            age=int(data.get("age", 18)),
            preferred_genres=list(data.get("preferred_genres") or []),
            preferred_experience=data.get("preferred_experience") or "",
            created_at=datetime.fromisoformat(created) if created else datetime.now(),
        )


@dataclass(frozen=True)
class ContextTags:
    """Optional context attached to an interaction. Empty string means absent."""
    genre: str = ""
    experience: str = ""
    source: str = ""
    duration_ms: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ContextTags":
        if not data:
            return cls()
        return cls(
            genre=data.get("genre") or "",
            experience=data.get("experience") or "",
            source=data.get("source") or "",
            duration_ms=int(data.get("duration_ms", data.get("duration", 0)) or 0),
        )


@dataclass(frozen=True)
class InteractionEvent:
    """
    One append-only interaction log row.

    Attributes:
        user_id: Who interacted
        movie_id: Which item
        kind: Event kind (view, click, search, rating, recommend_click, dwell)
        value: Optional payload as text, e.g. "4" for a rating
        context: Genre / experience / source tags and dwell duration
        created_at: When the event was recorded
    """
    user_id: str
    movie_id: int
    kind: str
    value: str = ""
    context: ContextTags = field(default_factory=ContextTags)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractionEvent":
        return cls(
            user_id=data["user_id"],
            movie_id=int(data["movie_id"]),
            kind=data["kind"],
            value=data.get("value") or "",
            context=ContextTags.from_dict(data.get("context")),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class ValueEntry:
    """
    Learned value estimate for one (user, state, movie) triple.

    At most one entry exists per triple; updates replace it in place.
    """
    user_id: str
    state_key: str
    movie_id: int
    value: float = 0.0
    visit_count: int = 0
    last_reward: float = 0.0
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> tuple:
        return (self.user_id, self.state_key, self.movie_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueEntry":
        return cls(
            user_id=data["user_id"],
            state_key=data["state_key"],
            movie_id=int(data["movie_id"]),
            value=float(data.get("value", 0.0)),
            visit_count=int(data.get("visit_count", 0)),
            last_reward=float(data.get("last_reward", 0.0)),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass
class Rating:
    """Explicit 1..5 star rating."""
    user_id: str
    movie_id: int
    rating: int
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rating":
        return cls(
            user_id=data["user_id"],
            movie_id=int(data["movie_id"]),
            rating=int(data["rating"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass(frozen=True)
class SearchRecord:
    """A search query issued by a user, kept apart from interaction events."""
    user_id: str
    query: str
    result_count: int = 0
    selected_movie_id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchRecord":
        return cls(
            user_id=data["user_id"],
            query=data["query"],
            result_count=int(data.get("result_count", 0)),
            selected_movie_id=data.get("selected_movie_id"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass(frozen=True)
class Movie:
    """
    Catalogue item as supplied by the catalogue provider.

    Attributes:
        movie_id: Catalogue identifier
        title: Display title
        genres: Genre tags
        experience_type: Single experience tag ("intense", "fun", "emotional", ...)
        rating_percent: Critic/audience score, 0..100
        popularity_score: Normalised popularity, 0.0..1.0
        age_limit: Minimum viewer age
    """
    movie_id: int
    title: str
    genres: tuple = ()
    experience_type: str = ""
    rating_percent: float = 0.0
    popularity_score: float = 0.0
    age_limit: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["genres"] = list(self.genres)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Movie":
        genres = data.get("genres", data.get("genre", ()))
        if isinstance(genres, str):
            genres = [genres]
        return cls(
            movie_id=int(data["movie_id"]),
            title=data.get("title", ""),
            genres=tuple(genres),
            experience_type=data.get("experience_type", ""),
            rating_percent=float(data.get("rating_percent", 0.0)),
            popularity_score=float(data.get("popularity_score", 0.0)),
            age_limit=int(data.get("age_limit", 0)),
        )


@dataclass
class RecommendationResult:
    """
    One ranked recommendation. Transient, never persisted.

    Attributes:
        movie: The recommended item
        score: Summed signal score
        source: "rl" if a visited value entry contributed, "explore" if picked
            by exploration, otherwise "hybrid"
        reason: Headline explanation
        all_reasons: Every triggered signal's explanation
        value: Learned value for the item in the current state, if any
        visit_count: Visits recorded for that value entry
    """
    movie: Movie
    score: float
    source: str = "hybrid"
    reason: str = ""
    all_reasons: List[str] = field(default_factory=list)
    value: Optional[float] = None
    visit_count: int = 0

    @property
    def movie_id(self) -> int:
        return self.movie.movie_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "movie_id": self.movie.movie_id,
            "title": self.movie.title,
            "score": round(self.score, 2),
            "source": self.source,
            "reason": self.reason,
            "all_reasons": list(self.all_reasons),
            "value": self.value,
            "visit_count": self.visit_count,
        }
