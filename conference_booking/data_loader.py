"""Utilities to load CSV data into the booking coordinator."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Sequence, TextIO

from .errors import DataLoaderError
from .models import as_utc

if TYPE_CHECKING:
    from .coordinator import BookingCoordinator

CsvSource = str | Path | TextIO
TOPIC_SEPARATOR = ";"


@dataclass(frozen=True)
class ConferenceRecord:
    name: str
    location: str
    topics: tuple[str, ...]
    start: datetime
    end: datetime
    slots: int


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    topics: tuple[str, ...]


def _validate_headers(headers: Sequence[str], expected: Sequence[str], *, file_label: str) -> None:
    missing = [name for name in expected if name not in headers]
    if missing:
        raise DataLoaderError(
            f"File '{file_label}' is missing required columns: {', '.join(missing)}"
        )


def _prepare_reader(csv_source: CsvSource) -> tuple[csv.DictReader, Callable[[], None], str]:
    if isinstance(csv_source, (str, Path)):
        path = Path(csv_source)
        fh = path.open(newline="", encoding="utf-8")
        file_label = str(path)

        def closer() -> None:
            fh.close()

    else:
        fh = csv_source
        if hasattr(fh, "seek"):
            fh.seek(0)
        file_label = getattr(fh, "name", "<uploaded file>")

        def closer() -> None:  # pragma: no cover - simple passthrough
            return None

    reader = csv.DictReader(fh)
    return reader, closer, file_label


def _split_topics(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(topic.strip() for topic in raw.split(TOPIC_SEPARATOR) if topic.strip())


def _parse_timestamp(raw: str | None, *, column: str, row_label: str) -> datetime:
    try:
        return as_utc(datetime.fromisoformat((raw or "").strip()))
    except ValueError as exc:
        raise DataLoaderError(
            f"Conference '{row_label}' has an invalid {column} timestamp: '{raw}'"
        ) from exc


def load_conferences(csv_source: CsvSource) -> list[ConferenceRecord]:
    reader, closer, label = _prepare_reader(csv_source)
    try:
        _validate_headers(
            reader.fieldnames or [],
            ["name", "location", "topics", "start", "end", "slots"],
            file_label=label,
        )
        conferences: list[ConferenceRecord] = []
        for row in reader:
            name = (row.get("name") or "").strip()
            if not name:
                continue
            try:
                slots = int(row["slots"])
            except (TypeError, ValueError) as exc:
                raise DataLoaderError(f"Slots for conference '{name}' must be numeric") from exc
            conferences.append(
                ConferenceRecord(
                    name=name,
                    location=(row.get("location") or "").strip(),
                    topics=_split_topics(row.get("topics")),
                    start=_parse_timestamp(row.get("start"), column="start", row_label=name),
                    end=_parse_timestamp(row.get("end"), column="end", row_label=name),
                    slots=slots,
                )
            )
    finally:
        closer()
    return conferences


def load_users(csv_source: CsvSource) -> list[UserRecord]:
    reader, closer, label = _prepare_reader(csv_source)
    try:
        _validate_headers(reader.fieldnames or [], ["id", "topics"], file_label=label)
        users = [
            UserRecord(user_id=row["id"].strip(), topics=_split_topics(row.get("topics")))
            for row in reader
            if row.get("id") and row["id"].strip()
        ]
    finally:
        closer()
    return users


def seed_coordinator(
    coordinator: BookingCoordinator,
    conferences: Iterable[ConferenceRecord],
    users: Iterable[UserRecord],
) -> None:
    for record in conferences:
        coordinator.register_conference(
            record.name,
            record.location,
            record.topics,
            record.start,
            record.end,
            record.slots,
        )
    for user in users:
        coordinator.register_user(user.user_id, user.topics)
