"""
Tests for the movie catalogue.
"""
import os
import json
import tempfile

import pytest

from cinerl.catalogue import SAMPLE_MOVIES, Catalogue
from cinerl.config import ConfigError


class TestSampleCatalogue:
    """Test the built-in sample."""

    def test_sample_contents(self):
        catalogue = Catalogue.sample()
        assert len(catalogue) == len(SAMPLE_MOVIES)
        assert catalogue.get(1).title == "Inception"
        assert 7 in catalogue
        assert 999 not in catalogue
        assert catalogue.get(999) is None

    def test_ids_unique(self):
        ids = [m.movie_id for m in Catalogue.sample()]
        assert len(ids) == len(set(ids))

    def test_genres_sorted_and_distinct(self):
        genres = Catalogue.sample().genres()
        assert genres == sorted(set(genres))
        assert "Drama" in genres

    def test_movies_returns_copy(self):
        catalogue = Catalogue.sample()
        movies = catalogue.movies()
        movies.clear()
        assert len(catalogue) == len(SAMPLE_MOVIES)

    def test_load_without_path_is_sample(self):
        assert len(Catalogue.load(None)) == len(SAMPLE_MOVIES)


class TestCatalogueLoading:
    """Test loading catalogue files."""

    def test_load_json_list(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "movies.json")
            with open(path, "w") as f:
                json.dump([
                    {"movie_id": 1, "title": "A", "genres": ["Drama"], "age_limit": 16},
                    {"movie_id": 2, "title": "B", "genre": "Comedy"},
                ], f)

            catalogue = Catalogue.load(path)
            assert len(catalogue) == 2
            assert catalogue.get(1).age_limit == 16
            assert catalogue.get(2).genres == ("Comedy",)

    def test_load_yaml_mapping(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "movies.yaml")
            with open(path, "w") as f:
                f.write(
                    "movies:\n"
                    "  - movie_id: 5\n"
                    "    title: Coco\n"
                    "    genres: [Animation, Family]\n"
                    "    experience_type: emotional\n"
                    "    rating_percent: 90\n"
                    "    popularity_score: 0.8\n"
                )

            movie = Catalogue.load(path).get(5)
            assert movie.title == "Coco"
            assert movie.genres == ("Animation", "Family")
            assert movie.rating_percent == 90.0

    def test_missing_movies_key_raises(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "movies.json")
            with open(path, "w") as f:
                json.dump({"films": []}, f)
            with pytest.raises(ConfigError):
                Catalogue.load(path)

    def test_bad_entry_raises(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "movies.json")
            with open(path, "w") as f:
                json.dump([{"title": "no id"}], f)
            with pytest.raises(ConfigError):
                Catalogue.load(path)

    def test_missing_file_raises(self):
        with pytest.raises(ConfigError):
            Catalogue.load("/nonexistent/movies.json")
