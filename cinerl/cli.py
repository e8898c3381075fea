from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List, Optional

from .config import ConfigError, EngineConfig
from .engine import RecommendationEngine
from .logging_config import configure_logging
from .storage import StoreError
from .types import ContextTags, UserProfile


def _split(csv: str) -> List[str]:
    return [part.strip() for part in csv.split(",") if part.strip()]


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="cinerl",
        description="Contextual bandit movie recommender",
    )
    ap.add_argument("--config", default=None, help="Engine config file (JSON or YAML)")
    ap.add_argument("--data-dir", default=None, help="User store directory (overrides config)")
    ap.add_argument("--catalogue", default=None, help="Catalogue file (overrides config)")
    ap.add_argument("--log-level", default=None, help="Log level (overrides config)")

    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Create or replace a user profile")
    p.add_argument("user_id")
    p.add_argument("--age", type=int, default=18)
    p.add_argument("--genres", default="", help="Comma-separated preferred genres")
    p.add_argument("--experience", default="", help="Preferred experience type")

    p = sub.add_parser("track", help="Record an interaction and learn from it")
    p.add_argument("user_id")
    p.add_argument("movie_id", type=int)
    p.add_argument("kind")
    p.add_argument("--value", default="")
    p.add_argument("--genre", default="")
    p.add_argument("--experience", default="")
    p.add_argument("--source", default="")
    p.add_argument("--duration-ms", type=int, default=0)

    p = sub.add_parser("rate", help="Rate a movie from 1 to 5")
    p.add_argument("user_id")
    p.add_argument("movie_id", type=int)
    p.add_argument("rating", type=int)

    p = sub.add_parser("recommend", help="Recommend movies for a user")
    p.add_argument("user_id")
    p.add_argument("--count", type=int, default=None)

    p = sub.add_parser("stats", help="Learning statistics for a user")
    p.add_argument("user_id")

    p = sub.add_parser("history", help="Recent interactions, newest first")
    p.add_argument("user_id")
    p.add_argument("--limit", type=int, default=None)

    sub.add_parser("params", help="Show hyperparameters in force")

    return ap


def load_config(args: argparse.Namespace) -> EngineConfig:
    """Config file, then CINERL_* environment, then command-line flags."""
    config = EngineConfig.load(args.config).apply_env()
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.catalogue:
        config.catalogue_path = args.catalogue
    if args.log_level:
        config.log_level = args.log_level
    return config


def run(engine: RecommendationEngine, args: argparse.Namespace) -> Any:
    if args.command == "register":
        profile = UserProfile(
            user_id=args.user_id,
            age=args.age,
            preferred_genres=_split(args.genres),
            preferred_experience=args.experience,
        )
        engine.register_user(profile)
        return profile.to_dict()

    if args.command == "track":
        context = ContextTags(
            genre=args.genre,
            experience=args.experience,
            source=args.source,
            duration_ms=args.duration_ms,
        )
        result = engine.track(args.user_id, args.movie_id, args.kind, args.value, context)
        return result.to_dict() if result else None

    if args.command == "rate":
        result = engine.rate(args.user_id, args.movie_id, args.rating)
        return result.to_dict() if result else None

    if args.command == "recommend":
        return [r.to_dict() for r in engine.recommend(args.user_id, count=args.count)]

    if args.command == "stats":
        return engine.stats(args.user_id).to_dict()

    if args.command == "history":
        return [e.to_dict() for e in engine.history(args.user_id, limit=args.limit)]

    return engine.hyperparameters()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level, config.log_dir)

    try:
        engine = RecommendationEngine.from_config(config)
        _emit(run(engine, args))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except StoreError as e:
        print(f"storage error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
