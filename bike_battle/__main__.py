"""
CLI entry point for the bike battle system.

Parses arguments, wires components and runs one command against the store.
"""

import argparse
import sys
from argparse import Namespace
from pathlib import Path
from typing import TypedDict

from prettytable import PrettyTable

from .config import GameConfig
from .exceptions import (
    ConfigurationError,
    InsufficientEntitiesError,
    InvalidPairError,
    NotFoundError,
    StaleRecordError,
    ValidationError,
)
from .group_selectors.random_selector import RandomPairSelector
from .interfaces import RecordStore
from .logging_config import get_logger, setup_logging
from .models import BIKE_CATEGORIES, Bike, BikeDetails
from .rankers.elo_ranker import EloRanker
from .ranking import format_win_rate, is_hot, podium
from .service import BikeBattle
from .storage.jsonl_storage import JSONLRecordStore
from .storage.sqlite_storage import SQLiteRecordStore

RECOVERABLE_ERRORS = (
    InvalidPairError,
    NotFoundError,
    InsufficientEntitiesError,
    StaleRecordError,
    ValidationError,
    ConfigurationError,
)


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    command: str
    data_dir: str
    store: str
    debug: bool
    log_level: str
    image_ref: str | None
    details: BikeDetails | None
    winner_id: str | None
    loser_id: str | None
    bike_id: str | None
    limit: int | None


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Bike Battle - head-to-head bike photo voting with Elo ratings"
    )

    _ = parser.add_argument(
        "--data-dir",
        default="bike_battle_data",
        help="Directory holding the bike and vote records (default: bike_battle_data)"
    )
    _ = parser.add_argument(
        "--store",
        choices=["jsonl", "sqlite"],
        default="jsonl",
        help="Record store backend (default: jsonl)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Register an uploaded bike photo")
    _ = upload.add_argument("image_ref", help="Reference to the stored image")
    _ = upload.add_argument("--name", help="Bike name")
    _ = upload.add_argument("--category", choices=BIKE_CATEGORIES, help="Bike category")
    _ = upload.add_argument("--manufacturer", help="Brand")
    _ = upload.add_argument("--model", help="Model")
    _ = upload.add_argument("--year", type=int, help="Model year")
    _ = upload.add_argument("--notes", help="Free-text description")
    _ = upload.add_argument("--route", help="Most often ridden route")

    _ = commands.add_parser("pair", help="Draw two random bikes to compare")

    vote = commands.add_parser("vote", help="Record that one bike beat another")
    _ = vote.add_argument("winner_id", help="ID of the winning bike")
    _ = vote.add_argument("loser_id", help="ID of the losing bike")

    leaderboard = commands.add_parser("leaderboard", help="Show bikes ranked by rating")
    _ = leaderboard.add_argument("--limit", type=positive_int, help="Only show the top N bikes")

    show = commands.add_parser("show", help="Show rank and stats for one bike")
    _ = show.add_argument("bike_id", help="ID of the bike")

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    details = None
    if ns.command == "upload":
        details = BikeDetails(
            name=ns.name,
            category=ns.category,
            manufacturer=ns.manufacturer,
            model=ns.model,
            year=ns.year,
            notes=ns.notes,
            route=ns.route,
        )
    return CLIArgs(
        command=ns.command,
        data_dir=ns.data_dir,
        store=ns.store,
        debug=ns.debug,
        log_level=ns.log_level,
        image_ref=getattr(ns, "image_ref", None),
        details=details,
        winner_id=getattr(ns, "winner_id", None),
        loser_id=getattr(ns, "loser_id", None),
        bike_id=getattr(ns, "bike_id", None),
        limit=getattr(ns, "limit", None),
    )


def wire_components(args: CLIArgs, config: GameConfig | None = None) -> BikeBattle:
    """Wire dependency injection components."""
    logger = get_logger("wire_components")
    config = config or GameConfig()

    data_dir = Path(args["data_dir"])
    data_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Creating {args['store']} record store in {data_dir}")
    store: RecordStore
    if args["store"] == "jsonl":
        store = JSONLRecordStore(
            data_dir / "bikes.json",
            data_dir / "votes.jsonl",
            initial_rating=config.initial_rating,
        )
    elif args["store"] == "sqlite":
        store = SQLiteRecordStore(data_dir / "bike_battle.db", initial_rating=config.initial_rating)
    else:
        logger.error(f"Unknown store type: {args['store']}")
        raise ConfigurationError(f"Unknown store type: {args['store']}")

    ranker = EloRanker(k_factor=config.k_factor, rating_floor=config.rating_floor)
    selector = RandomPairSelector()
    return BikeBattle(store=store, ranker=ranker, selector=selector, config=config)


def describe(bike: Bike) -> str:
    """One-line label for a bike."""
    label = bike.details.name or bike.image_ref
    return f"{bike.bike_id}  {label}  (rating {bike.rating}, {bike.wins}W/{bike.losses}L)"


def print_leaderboard(battle: BikeBattle, limit: int | None = None) -> None:
    """Print ranked bikes as a table."""
    bikes = battle.leaderboard()
    summary = battle.summary()

    if not bikes:
        print("No bikes yet. Upload some bikes first!")
        return

    top = podium(bikes)
    if top:
        print("Podium: " + " | ".join(
            f"{place}. {bike.details.name or bike.bike_id} ({bike.rating})"
            for place, bike in enumerate(top, 1)
        ))

    table = PrettyTable()
    table.field_names = ["Rank", "Bike ID", "Name", "Rating", "W/L", "Win Rate", "Battles", "Hot"]
    table.align["Rank"] = "r"
    table.align["Rating"] = "r"
    table.align["Win Rate"] = "r"
    table.align["Battles"] = "r"

    shown = bikes if limit is None else bikes[:limit]
    for position, bike in enumerate(shown, 1):
        table.add_row([
            position,
            bike.bike_id,
            bike.details.name or "-",
            bike.rating,
            f"{bike.wins}/{bike.losses}",
            format_win_rate(bike),
            bike.battles,
            "*" if is_hot(bike) else "",
        ])

    print(table)
    print(f"Total bikes: {summary.total_bikes} | Total battles: {summary.total_battles}")


def print_stats(battle: BikeBattle, bike_id: str) -> None:
    """Print rank and record for one bike."""
    stats = battle.bike_stats(bike_id)
    bike = stats.bike
    print(f"Bike:     {bike.details.name or bike.bike_id}")
    print(f"Rank:     #{stats.rank}")
    print(f"Rating:   {bike.rating}")
    print(f"Wins:     {bike.wins}")
    print(f"Losses:   {bike.losses}")
    print(f"Win rate: {format_win_rate(bike)}")
    print(f"Trend:    {stats.trend}")
    for label, value in bike.details.as_dict().items():
        if value is not None:
            print(f"{label.capitalize() + ':':<10}{value}")


def run_command(battle: BikeBattle, args: CLIArgs) -> None:
    """Dispatch a parsed command to the service."""
    command = args["command"]
    if command == "upload":
        assert args["image_ref"] is not None
        bike = battle.upload(args["image_ref"], args["details"])
        print(f"Uploaded: {describe(bike)}")
    elif command == "pair":
        first, second = battle.next_pair()
        print("Which bike is better?")
        print(f"  A: {describe(first)}")
        print(f"  B: {describe(second)}")
    elif command == "vote":
        assert args["winner_id"] is not None and args["loser_id"] is not None
        winner, loser = battle.vote(args["winner_id"], args["loser_id"])
        print(f"Winner: {describe(winner)}")
        print(f"Loser:  {describe(loser)}")
    elif command == "leaderboard":
        print_leaderboard(battle, limit=args["limit"])
    elif command == "show":
        assert args["bike_id"] is not None
        print_stats(battle, args["bike_id"])
    else:
        raise ConfigurationError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    try:
        raw_args = parse_args(argv)
        args = args_to_typed(raw_args)

        Path(args["data_dir"]).mkdir(parents=True, exist_ok=True)
        setup_logging(level=args["log_level"], debug=args["debug"], log_dir=args["data_dir"])
        logger = get_logger("main")
        logger.info(f"Running command: {args['command']}")

        battle = wire_components(args)
        run_command(battle, args)

    except RECOVERABLE_ERRORS as e:
        logger = get_logger("main")
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger = get_logger("main")
        logger.info("Interrupted by user")
        print("\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
