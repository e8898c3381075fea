"""
Read-only movie catalogue.

Catalogues are loaded from JSON or YAML files (a list of movies, or a
mapping with a ``movies`` key). A small built-in sample is available
for demos and tests.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Sequence

from .config import ConfigError, read_document
from .types import Movie

logger = logging.getLogger(__name__)


SAMPLE_MOVIES: List[Movie] = [
    Movie(1, "Inception", ("Sci-Fi", "Thriller"), "intense", 87, 0.9, 13),
    Movie(2, "The Grand Budapest Hotel", ("Comedy", "Drama"), "fun", 84, 0.7, 13),
    Movie(3, "Finding Nemo", ("Animation", "Adventure"), "fun", 86, 0.8, 0),
    Movie(4, "Blade Runner 2049", ("Sci-Fi", "Drama"), "intense", 81, 0.7, 16),
    Movie(5, "The Shawshank Redemption", ("Drama",), "emotional", 91, 1.0, 16),
    Movie(6, "My Neighbor Totoro", ("Animation", "Fantasy"), "relaxing", 88, 0.7, 0),
    Movie(7, "Pulp Fiction", ("Crime", "Drama"), "intense", 89, 0.9, 18),
    Movie(8, "Coco", ("Animation", "Family", "Fantasy"), "emotional", 90, 0.8, 0),
    Movie(9, "Drive", ("Action", "Drama"), "intense", 79, 0.7, 18),
    Movie(10, "The Secret Life of Walter Mitty", ("Adventure", "Comedy", "Drama"), "relaxing", 65, 0.6, 0),
    Movie(11, "Interstellar", ("Sci-Fi", "Drama", "Adventure"), "emotional", 85, 0.9, 13),
    Movie(12, "Spirited Away", ("Animation", "Fantasy", "Adventure"), "fun", 96, 0.8, 0),
]


class Catalogue:
    """
    Immutable collection of movies indexed by id.

    Example:
        >>> catalogue = Catalogue.load("./movies.yaml")
        >>> catalogue.get(1).title
        'Inception'
    """

    def __init__(self, movies: Sequence[Movie]):
        self._movies: List[Movie] = list(movies)
        self._by_id: Dict[int, Movie] = {m.movie_id: m for m in self._movies}

    def __len__(self) -> int:
        return len(self._movies)

    def __iter__(self) -> Iterator[Movie]:
        return iter(self._movies)

    def __contains__(self, movie_id: object) -> bool:
        return movie_id in self._by_id

    def get(self, movie_id: int) -> Optional[Movie]:
        return self._by_id.get(movie_id)

    def movies(self) -> List[Movie]:
        return list(self._movies)

    def genres(self) -> List[str]:
        """All distinct genres, sorted."""
        return sorted({g for m in self._movies for g in m.genres})

    @classmethod
    def sample(cls) -> "Catalogue":
        """Built-in demo catalogue."""
        return cls(SAMPLE_MOVIES)

    @classmethod
    def load(cls, path: Optional[str]) -> "Catalogue":
        """
        Load a catalogue file, or the built-in sample when path is None.

        Raises:
            ConfigError: if the file is unreadable or malformed
        """
        if not path:
            return cls.sample()

        data = read_document(path)
        if isinstance(data, dict):
            data = data.get("movies")
        if not isinstance(data, list):
            raise ConfigError(f"Catalogue {path} must be a list of movies")

        try:
            movies = [Movie.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid movie entry in {path}: {e}") from e

        logger.info(f"Loaded {len(movies)} movies from {path}")
        return cls(movies)
