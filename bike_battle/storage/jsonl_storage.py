"""
JSONL storage implementation.

Keeps the bike table as a JSON snapshot and the vote log as an append-only
JSONL file. Each vote carries the ratings it produced, so a snapshot that
missed the last writes can be rebuilt from the log on the next load.
"""

import json
import os
import tempfile
import threading
import typing
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..exceptions import NotFoundError, StaleRecordError, ValidationError
from ..interfaces import (
    BikeRecord,
    RecordStore,
    StoreSnapshot,
    VoteRecord,
    validate_outcome,
)
from ..logging_config import get_logger
from ..models import DEFAULT_RATING, Bike, BikeDetails, Vote, new_id

# Module-level logger
logger = get_logger("jsonl_storage")


def bike_to_record(bike: Bike) -> BikeRecord:
    return {
        "bike_id": bike.bike_id,
        "image_ref": bike.image_ref,
        "rating": bike.rating,
        "wins": bike.wins,
        "losses": bike.losses,
        "created_at": bike.created_at,
        "details": bike.details.as_dict(),
    }


def bike_from_record(data: dict[str, Any]) -> Bike:  # pyright: ignore[reportExplicitAny]
    """Build a Bike from a parsed record, asserting required fields."""
    for key in ("bike_id", "image_ref", "rating", "wins", "losses", "created_at"):
        assert key in data, f"Missing required field: {key}"
    assert isinstance(data["rating"], int), "rating must be an integer"
    assert isinstance(data["wins"], int), "wins must be an integer"
    assert isinstance(data["losses"], int), "losses must be an integer"
    assert isinstance(data["created_at"], (int, float)), "created_at must be a number"

    details_data = typing.cast(dict[str, Any], data.get("details") or {})  # pyright: ignore[reportExplicitAny]
    assert isinstance(details_data, dict), "details must be a dictionary"

    return Bike(
        bike_id=typing.cast(str, data["bike_id"]),
        image_ref=typing.cast(str, data["image_ref"]),
        rating=data["rating"],
        wins=data["wins"],
        losses=data["losses"],
        created_at=float(data["created_at"]),
        details=BikeDetails(**details_data),
    )


def vote_to_record(vote: Vote, applied: bool = False) -> VoteRecord:
    """
    Serialize a vote for the log.

    ``applied`` marks votes whose rating changes were already written to the
    bike table by the caller; replay skips them.
    """
    return {
        "vote_id": vote.vote_id,
        "winner_id": vote.winner_id,
        "loser_id": vote.loser_id,
        "created_at": vote.created_at,
        "winner_rating": vote.winner_rating,
        "loser_rating": vote.loser_rating,
        "applied": applied,
    }


def vote_from_record(data: dict[str, Any]) -> Vote:  # pyright: ignore[reportExplicitAny]
    """Build a Vote from a parsed record, asserting required fields."""
    for key in ("vote_id", "winner_id", "loser_id"):
        assert key in data, f"Missing required field: {key}"
    for key in ("winner_rating", "loser_rating"):
        value = data.get(key)
        assert value is None or isinstance(value, int), f"{key} must be an integer or null"

    timestamp = 0.0
    if "created_at" in data:
        assert isinstance(data["created_at"], (int, float)), "created_at must be a number"
        timestamp = float(data["created_at"])

    return Vote(
        vote_id=typing.cast(str, data["vote_id"]),
        winner_id=typing.cast(str, data["winner_id"]),
        loser_id=typing.cast(str, data["loser_id"]),
        created_at=timestamp,
        winner_rating=typing.cast(int | None, data.get("winner_rating")),
        loser_rating=typing.cast(int | None, data.get("loser_rating")),
    )


def _parse_vote_line(raw: bytes, source: Path) -> tuple[Vote, bool] | None:
    """Parse one log line into (vote, applied), or None for blank and invalid lines."""
    try:
        line = raw.decode("utf-8").strip()
        if not line:
            return None
        data = typing.cast(dict[str, Any], json.loads(line))  # pyright: ignore[reportExplicitAny]
        assert isinstance(data, dict), "vote must be a JSON object"
        applied = data.get("applied", False)
        assert isinstance(applied, bool), "applied must be a boolean"
        return vote_from_record(data), applied
    except (UnicodeDecodeError, json.JSONDecodeError, AssertionError, ValidationError) as e:
        # Skip corrupted or invalid lines
        logger.warning(f"Skipping invalid JSON line in {source}: {e}")
        return None


def _with_standing(stored: Bike, source: Bike) -> Bike:
    """Copy the mutable fields of ``source`` onto ``stored``; identity and metadata never change."""
    return replace(stored, rating=source.rating, wins=source.wins, losses=source.losses)


def _same_standing(stored: Bike, expected: Bike) -> bool:
    return (stored.rating, stored.wins, stored.losses) == (
        expected.rating,
        expected.wins,
        expected.losses,
    )


class JSONLRecordStore(RecordStore):
    """
    JSON/JSONL-based record store.

    Uses a JSON file for the bike table (rewritten atomically) and an
    append-only JSONL file for votes. The snapshot records the byte offset of
    the log it already includes; complete vote lines past that offset are
    replayed on load, and a torn final line is cut off before the next append.
    """

    bikes_path: Path
    votes_path: Path

    def __init__(
        self,
        bikes_path: Path,
        votes_path: Path,
        initial_rating: int = DEFAULT_RATING,
    ):
        """
        Initialize JSONL storage.

        Args:
            bikes_path: Path to JSON file holding the bike table snapshot
            votes_path: Path to JSONL file for the vote log
            initial_rating: Rating assigned to newly inserted bikes
        """
        self.bikes_path = Path(bikes_path)
        self.votes_path = Path(votes_path)
        self.initial_rating: int = initial_rating

        # Serializes read-modify-write cycles within this process
        self._lock: threading.Lock = threading.Lock()

        # Ensure parent directories exist
        self.bikes_path.parent.mkdir(parents=True, exist_ok=True)
        self.votes_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"JSONL storage initialized: bikes={self.bikes_path}, votes={self.votes_path}")

    def _read_snapshot(self) -> tuple[list[Bike], int]:
        if not self.bikes_path.exists():
            logger.debug("No bike snapshot exists")
            return [], 0

        try:
            with open(self.bikes_path, "r", encoding="utf-8") as f:
                data = typing.cast(dict[str, Any], json.load(f))  # pyright: ignore[reportExplicitAny]

            assert "bikes" in data, "Missing required field: bikes"
            assert isinstance(data["bikes"], list), "bikes must be a list"
            log_offset = data.get("log_offset", 0)
            assert isinstance(log_offset, int) and log_offset >= 0, "log_offset must be a non-negative integer"

            bikes = [bike_from_record(record) for record in data["bikes"]]
            return bikes, log_offset
        except (json.JSONDecodeError, AssertionError, TypeError) as e:
            logger.error(f"Failed to load bike snapshot from {self.bikes_path}: {e}")
            raise ValidationError(f"Corrupt bike snapshot {self.bikes_path}: {e}") from e

    def _write_snapshot(self, bikes: list[Bike], log_offset: int) -> None:
        snapshot: StoreSnapshot = {
            "log_offset": log_offset,
            "bikes": [bike_to_record(bike) for bike in bikes],
        }

        # Write next to the target and swap in, readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.bikes_path.name}.", dir=self.bikes_path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.bikes_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved bike snapshot: {len(bikes)} bikes, log offset {log_offset}")

    def _read_log_tail(self, offset: int) -> tuple[list[tuple[Vote, bool]], int]:
        """
        Parse the complete vote lines stored past ``offset``.

        Returns:
            The parsed (vote, applied) entries and the offset just after the
            last complete line. A final line without a newline is torn and is
            left out.
        """
        if not self.votes_path.exists():
            if offset:
                logger.warning(f"Vote log {self.votes_path} is missing, resetting log offset {offset}")
            return [], 0

        entries: list[tuple[Vote, bool]] = []
        with open(self.votes_path, "rb") as f:
            size = f.seek(0, os.SEEK_END)
            if size < offset:
                logger.warning(
                    f"Vote log {self.votes_path} is shorter than the snapshot offset ({size} < {offset})"
                )
                return [], size

            _ = f.seek(offset)
            for raw in f:
                if not raw.endswith(b"\n"):
                    logger.warning(f"Ignoring torn final line in {self.votes_path} at offset {offset}")
                    break
                offset += len(raw)
                entry = _parse_vote_line(raw, self.votes_path)
                if entry is not None:
                    entries.append(entry)

        return entries, offset

    def _load_state(self) -> tuple[list[Bike], int]:
        """Load bikes, replaying any logged votes the snapshot has not absorbed."""
        bikes, log_offset = self._read_snapshot()
        pending, end_offset = self._read_log_tail(log_offset)

        if end_offset == log_offset:
            return bikes, log_offset

        index = {bike.bike_id: i for i, bike in enumerate(bikes)}
        replayed = 0
        for vote, applied in pending:
            if applied:
                logger.debug(f"Vote {vote.vote_id} is already in the bike table")
                continue
            if vote.winner_rating is None or vote.loser_rating is None:
                logger.debug(f"Vote {vote.vote_id} has no recorded ratings, nothing to replay")
                continue
            if vote.winner_id not in index or vote.loser_id not in index:
                logger.warning(f"Vote {vote.vote_id} references unknown bikes, skipping replay")
                continue
            w, l = index[vote.winner_id], index[vote.loser_id]
            bikes[w] = bikes[w].with_result(vote.winner_rating, won=True)
            bikes[l] = bikes[l].with_result(vote.loser_rating, won=False)
            replayed += 1

        if replayed:
            logger.warning(f"Replayed {replayed} vote(s) missing from bike snapshot")

        self._write_snapshot(bikes, end_offset)
        return bikes, end_offset

    def _append_vote_line(self, vote: Vote, log_offset: int, applied: bool = False) -> int:
        """Append one vote after ``log_offset`` and return the offset past it."""
        line = (json.dumps(vote_to_record(vote, applied), ensure_ascii=False) + "\n").encode("utf-8")

        with open(self.votes_path, "ab") as f:
            size = f.seek(0, os.SEEK_END)
            if size > log_offset:
                # After a load only a torn line can sit past the snapshot offset
                logger.warning(f"Truncating {size - log_offset} byte(s) of torn vote line from {self.votes_path}")
                _ = f.truncate(log_offset)
            _ = f.write(line)
            f.flush()
            os.fsync(f.fileno())

        return log_offset + len(line)

    def _read_votes(self) -> list[Vote]:
        entries, _ = self._read_log_tail(0)
        return [vote for vote, _ in entries]

    @override
    def list_bikes(self) -> Iterable[Bike]:
        """Return all bikes in insertion order."""
        with self._lock:
            bikes, _ = self._load_state()
        return bikes

    @override
    def get_bike(self, bike_id: str) -> Bike:
        """Get a specific bike by ID."""
        for bike in self.list_bikes():
            if bike.bike_id == bike_id:
                return bike
        raise NotFoundError(bike_id)

    @override
    def insert_bike(self, image_ref: str, details: BikeDetails | None = None) -> Bike:
        """Create a bike with a fresh id and default standing."""
        bike = Bike(
            bike_id=new_id(),
            image_ref=image_ref,
            rating=self.initial_rating,
            details=details or BikeDetails(),
        )
        with self._lock:
            bikes, log_offset = self._load_state()
            bikes.append(bike)
            self._write_snapshot(bikes, log_offset)

        logger.info(f"Inserted bike {bike.bike_id} ({bike.image_ref})")
        return bike

    @override
    def update_bike(self, bike: Bike) -> None:
        """Overwrite rating, wins and losses of an existing bike."""
        with self._lock:
            bikes, log_offset = self._load_state()
            for i, stored in enumerate(bikes):
                if stored.bike_id == bike.bike_id:
                    bikes[i] = _with_standing(stored, bike)
                    break
            else:
                raise NotFoundError(bike.bike_id)
            self._write_snapshot(bikes, log_offset)

        logger.debug(f"Updated bike {bike.bike_id}: rating={bike.rating}")

    @override
    def append_vote(self, vote: Vote) -> None:
        """
        Append a vote to the log.

        The vote is logged as already applied; callers using this directly are
        expected to have written the bike updates themselves.
        """
        with self._lock:
            bikes, log_offset = self._load_state()
            known = {bike.bike_id for bike in bikes}
            for bike_id in (vote.winner_id, vote.loser_id):
                if bike_id not in known:
                    raise NotFoundError(bike_id)
            log_offset = self._append_vote_line(vote, log_offset, applied=True)
            self._write_snapshot(bikes, log_offset)

        logger.debug(f"Appended vote {vote.vote_id}: {vote.winner_id} > {vote.loser_id}")

    @override
    def load_votes(self) -> Iterable[Vote]:
        """Load all persisted votes from JSONL."""
        return self._read_votes()

    @override
    def commit_outcome(
        self,
        before: tuple[Bike, Bike],
        after: tuple[Bike, Bike],
        vote: Vote,
    ) -> None:
        """Append the vote, then swap in a snapshot carrying both updates."""
        validate_outcome(before, after, vote)
        new_winner, new_loser = after
        if vote.winner_rating is None or vote.loser_rating is None:
            vote = replace(vote, winner_rating=new_winner.rating, loser_rating=new_loser.rating)

        with self._lock:
            bikes, log_offset = self._load_state()
            index = {bike.bike_id: i for i, bike in enumerate(bikes)}

            for expected in before:
                if expected.bike_id not in index:
                    raise NotFoundError(expected.bike_id)
                stored = bikes[index[expected.bike_id]]
                if not _same_standing(stored, expected):
                    raise StaleRecordError(
                        f"Bike {expected.bike_id} changed since it was read "
                        f"(rating {expected.rating} -> {stored.rating})"
                    )

            # The log entry alone is enough to rebuild the snapshot on the next load
            log_offset = self._append_vote_line(vote, log_offset)
            for updated in (new_winner, new_loser):
                i = index[updated.bike_id]
                bikes[i] = _with_standing(bikes[i], updated)
            self._write_snapshot(bikes, log_offset)

        logger.info(f"Committed vote {vote.vote_id}: {vote.winner_id} > {vote.loser_id}")

    def get_vote_count(self) -> int:
        """Get number of stored votes."""
        return len(self._read_votes())
