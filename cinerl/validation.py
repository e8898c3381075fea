"""
Input validation for engine operations.

Validates:
- User identifiers
- Event kinds
- Ratings
- Recommendation counts
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from .types import EVENT_KINDS


@dataclass
class ValidationError:
    """A validation error."""
    field: str
    message: str
    value: str = ""


class ValidationResult:
    """Result of validation check."""

    def __init__(self):
        self.errors: List[ValidationError] = []

    def add_error(self, field: str, message: str, value: str = "") -> None:
        self.errors.append(ValidationError(field, message, value))

    def extend(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        return self

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def raise_if_invalid(self, context: str = "Validation") -> None:
        if not self.is_valid:
            msgs = [f"{e.field}: {e.message}" for e in self.errors]
            raise ValueError(f"{context} failed:\n" + "\n".join(msgs))


def validate_user_id(user_id: Any) -> ValidationResult:
    result = ValidationResult()
    if not isinstance(user_id, str) or not user_id.strip():
        result.add_error("user_id", "User id cannot be empty", str(user_id))
    elif len(user_id) > 128:
        result.add_error("user_id", "User id too long (max 128 chars)", user_id[:20])
    return result


def validate_movie_id(movie_id: Any) -> ValidationResult:
    result = ValidationResult()
    if isinstance(movie_id, bool) or not isinstance(movie_id, int):
        result.add_error("movie_id", "Must be an integer", str(movie_id))
    elif movie_id <= 0:
        result.add_error("movie_id", "Must be positive", str(movie_id))
    return result


def validate_event_kind(kind: Any) -> ValidationResult:
    result = ValidationResult()
    if kind not in EVENT_KINDS:
        result.add_error("kind", f"Must be one of {', '.join(EVENT_KINDS)}", str(kind))
    return result


def validate_rating(rating: Any) -> ValidationResult:
    result = ValidationResult()
    if isinstance(rating, bool) or not isinstance(rating, int):
        result.add_error("rating", "Must be an integer", str(rating))
    elif rating < 1 or rating > 5:
        result.add_error("rating", "Must be between 1 and 5", str(rating))
    return result


def validate_count(count: Any) -> ValidationResult:
    """Positive integer; counts above the pool size are truncated later."""
    result = ValidationResult()
    if isinstance(count, bool) or not isinstance(count, int):
        result.add_error("count", "Must be an integer", str(count))
    elif count < 1:
        result.add_error("count", "Must be positive", str(count))
    return result


def validate_search_query(query: Any, max_length: int = 256) -> ValidationResult:
    result = ValidationResult()
    if not isinstance(query, str) or not query.strip():
        result.add_error("query", "Search query cannot be empty")
    elif len(query) > max_length:
        result.add_error("query", f"Query too long (max {max_length})", query[:50])
    return result
