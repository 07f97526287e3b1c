"""
SQLite storage implementation.

Bikes and votes live in one database file, so an outcome's two rating
updates and its vote row commit in a single transaction.
"""

import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import closing, contextmanager
from dataclasses import replace
from pathlib import Path

from typing_extensions import override

from ..exceptions import NotFoundError, StaleRecordError
from ..interfaces import RecordStore, validate_outcome
from ..logging_config import get_logger
from ..models import DEFAULT_RATING, Bike, BikeDetails, Vote, new_id

# Module-level logger
logger = get_logger("sqlite_storage")

BIKE_COLUMNS = (
    "bike_id, image_ref, rating, wins, losses, created_at, "
    "name, category, manufacturer, model, year, notes, route"
)


def _bike_from_row(row: sqlite3.Row) -> Bike:
    return Bike(
        bike_id=row["bike_id"],
        image_ref=row["image_ref"],
        rating=row["rating"],
        wins=row["wins"],
        losses=row["losses"],
        created_at=row["created_at"],
        details=BikeDetails(
            name=row["name"],
            category=row["category"],
            manufacturer=row["manufacturer"],
            model=row["model"],
            year=row["year"],
            notes=row["notes"],
            route=row["route"],
        ),
    )


def _vote_from_row(row: sqlite3.Row) -> Vote:
    return Vote(
        vote_id=row["vote_id"],
        winner_id=row["winner_id"],
        loser_id=row["loser_id"],
        created_at=row["created_at"],
        winner_rating=row["winner_rating"],
        loser_rating=row["loser_rating"],
    )


class SQLiteRecordStore(RecordStore):
    """SQLite-based record store with transactional outcome commits."""

    db_path: Path

    def __init__(self, db_path: Path, initial_rating: int = DEFAULT_RATING):
        """
        Initialize SQLite storage and create tables if they don't exist.

        Args:
            db_path: Path to the SQLite database file
            initial_rating: Rating assigned to newly inserted bikes
        """
        self.db_path = Path(db_path)
        self.initial_rating: int = initial_rating
        self._lock: threading.Lock = threading.Lock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()
        logger.info(f"SQLite storage initialized: {self.db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self.db_path, timeout=30.0)) as conn:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn, conn:
            # AUTOINCREMENT keeps seq values from ever being reused
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS bikes (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    bike_id TEXT UNIQUE NOT NULL,
                    image_ref TEXT NOT NULL,
                    rating INTEGER NOT NULL,
                    wins INTEGER NOT NULL DEFAULT 0 CHECK (wins >= 0),
                    losses INTEGER NOT NULL DEFAULT 0 CHECK (losses >= 0),
                    created_at REAL NOT NULL,
                    name TEXT,
                    category TEXT,
                    manufacturer TEXT,
                    model TEXT,
                    year INTEGER,
                    notes TEXT,
                    route TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS votes (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    vote_id TEXT UNIQUE NOT NULL,
                    winner_id TEXT NOT NULL REFERENCES bikes(bike_id),
                    loser_id TEXT NOT NULL REFERENCES bikes(bike_id),
                    created_at REAL NOT NULL,
                    winner_rating INTEGER,
                    loser_rating INTEGER,
                    CHECK (winner_id != loser_id)
                )
                """
            )

    @override
    def list_bikes(self) -> Iterable[Bike]:
        """Return all bikes in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(f"SELECT {BIKE_COLUMNS} FROM bikes ORDER BY seq").fetchall()
        return [_bike_from_row(row) for row in rows]

    @override
    def get_bike(self, bike_id: str) -> Bike:
        """Get a specific bike by ID."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {BIKE_COLUMNS} FROM bikes WHERE bike_id = ?", (bike_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(bike_id)
        return _bike_from_row(row)

    @override
    def insert_bike(self, image_ref: str, details: BikeDetails | None = None) -> Bike:
        """Create a bike with a fresh id and default standing."""
        bike = Bike(
            bike_id=new_id(),
            image_ref=image_ref,
            rating=self.initial_rating,
            details=details or BikeDetails(),
        )
        meta = bike.details
        with self._lock, self._connect() as conn, conn:
            conn.execute(
                f"INSERT INTO bikes ({BIKE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    bike.bike_id,
                    bike.image_ref,
                    bike.rating,
                    bike.wins,
                    bike.losses,
                    bike.created_at,
                    meta.name,
                    meta.category,
                    meta.manufacturer,
                    meta.model,
                    meta.year,
                    meta.notes,
                    meta.route,
                ),
            )

        logger.info(f"Inserted bike {bike.bike_id} ({bike.image_ref})")
        return bike

    @override
    def update_bike(self, bike: Bike) -> None:
        """Overwrite rating, wins and losses of an existing bike."""
        with self._lock, self._connect() as conn, conn:
            cursor = conn.execute(
                "UPDATE bikes SET rating = ?, wins = ?, losses = ? WHERE bike_id = ?",
                (bike.rating, bike.wins, bike.losses, bike.bike_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(bike.bike_id)

        logger.debug(f"Updated bike {bike.bike_id}: rating={bike.rating}")

    def _insert_vote(self, conn: sqlite3.Connection, vote: Vote) -> None:
        conn.execute(
            """
            INSERT INTO votes (vote_id, winner_id, loser_id, created_at, winner_rating, loser_rating)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                vote.vote_id,
                vote.winner_id,
                vote.loser_id,
                vote.created_at,
                vote.winner_rating,
                vote.loser_rating,
            ),
        )

    @override
    def append_vote(self, vote: Vote) -> None:
        """Append a vote to the log."""
        for bike_id in (vote.winner_id, vote.loser_id):
            self.get_bike(bike_id)

        with self._lock, self._connect() as conn, conn:
            self._insert_vote(conn, vote)

        logger.debug(f"Appended vote {vote.vote_id}: {vote.winner_id} > {vote.loser_id}")

    @override
    def load_votes(self) -> Iterable[Vote]:
        """Load all persisted votes in the order they were cast."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT vote_id, winner_id, loser_id, created_at, winner_rating, loser_rating "
                "FROM votes ORDER BY seq"
            ).fetchall()
        return [_vote_from_row(row) for row in rows]

    @override
    def commit_outcome(
        self,
        before: tuple[Bike, Bike],
        after: tuple[Bike, Bike],
        vote: Vote,
    ) -> None:
        """Compare-and-set both bikes and insert the vote in one transaction."""
        validate_outcome(before, after, vote)

        with self._lock, self._connect() as conn, conn:
            for expected, updated in zip(before, after):
                cursor = conn.execute(
                    """
                    UPDATE bikes SET rating = ?, wins = ?, losses = ?
                    WHERE bike_id = ? AND rating = ? AND wins = ? AND losses = ?
                    """,
                    (
                        updated.rating,
                        updated.wins,
                        updated.losses,
                        expected.bike_id,
                        expected.rating,
                        expected.wins,
                        expected.losses,
                    ),
                )
                if cursor.rowcount == 1:
                    continue

                # Leaving the block with an exception rolls back the first update
                exists = conn.execute(
                    "SELECT 1 FROM bikes WHERE bike_id = ?", (expected.bike_id,)
                ).fetchone()
                if exists is None:
                    raise NotFoundError(expected.bike_id)
                raise StaleRecordError(f"Bike {expected.bike_id} changed since it was read")

            if vote.winner_rating is None or vote.loser_rating is None:
                vote = replace(vote, winner_rating=after[0].rating, loser_rating=after[1].rating)
            self._insert_vote(conn, vote)

        logger.info(f"Committed vote {vote.vote_id}: {vote.winner_id} > {vote.loser_id}")
