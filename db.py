"""Database helper module.

Provides get_connection() which returns a sqlite3 connection to the ranking
database and ensures the schema is initialized from schema.sql on each
connection. Also includes the insert and lookup helpers for the `events`,
`players`, `points` and `weighted_points` tables.
"""
import os
import sqlite3
from typing import Iterable, Optional

import config
import weights
from api_types import CompetitorAggregate, Event, ScoreRecord

BUSY_TIMEOUT = 30.0


def _init_db(conn: sqlite3.Connection) -> None:
    """Initialize database schema from `schema.sql`.

    This runs every time get_connection() is called so the tables exist.
    """
    if not os.path.exists(config.SCHEMA_PATH):
        raise FileNotFoundError(f"schema.sql not found at {config.SCHEMA_PATH}")
    with open(config.SCHEMA_PATH, "r", encoding="utf-8") as f:
        sql = f.read()
    conn.executescript(sql)


def get_connection(path: Optional[str] = None) -> sqlite3.Connection:
    """Return a sqlite3.Connection to the database at `path` (default: config.DB_PATH).

    Every worker thread opens its own connection. WAL mode plus a busy timeout
    lets them write concurrently without failing on a locked database.
    """
    conn = sqlite3.connect(path or config.DB_PATH, timeout=BUSY_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    _init_db(conn)
    return conn


def insert_events(conn: sqlite3.Connection, events: Iterable[Event]) -> int:
    """Insert events that are not stored yet. Returns the number of new rows."""
    cur = conn.cursor()
    cur.executemany(
        "INSERT OR IGNORE INTO events (id, name, week, year) VALUES (?, ?, ?, ?)",
        [(event.id, event.name, event.week, event.year) for event in events],
    )
    conn.commit()
    return cur.rowcount


def get_events(conn: sqlite3.Connection, year: int) -> list[Event]:
    """Return the stored events of one calendar year."""
    cur = conn.cursor()
    cur.execute("SELECT id, name, week, year FROM events WHERE year = ? ORDER BY week, id", (year,))
    return [Event(id=row["id"], name=row["name"], week=row["week"], year=row["year"]) for row in cur.fetchall()]


def event_exists(conn: sqlite3.Connection, event_id: int) -> bool:
    """Return True if an event with `event_id` exists."""
    cur = conn.cursor()
    cur.execute("SELECT 1 FROM events WHERE id = ? LIMIT 1", (event_id,))
    return cur.fetchone() is not None


def get_event_points(conn: sqlite3.Connection, event_id: int) -> list[ScoreRecord]:
    """Return the stored points of every player at the given event."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT p.event_id, p.player_id, COALESCE(pl.name, CAST(p.player_id AS TEXT)) AS name, p.points
        FROM points AS p
        LEFT JOIN players AS pl ON pl.id = p.player_id
        WHERE p.event_id = ?
        ORDER BY p.player_id
        """,
        (event_id,),
    )
    return [
        ScoreRecord(event_id=row["event_id"], player_id=row["player_id"], name=row["name"], points=row["points"])
        for row in cur.fetchall()
    ]


def insert_points(conn: sqlite3.Connection, records: Iterable[ScoreRecord]) -> int:
    """Store the points of one analyzed event in a single transaction.

    Player names are upserted. Points already stored for an (event, player)
    pair are left untouched, so analyzing an event twice is a no-op.
    Returns the number of new points rows.
    """
    records = list(records)
    with conn:
        conn.executemany(
            "INSERT INTO players (id, name) VALUES (?, ?) "
            "ON CONFLICT (id) DO UPDATE SET name = excluded.name",
            [(record.player_id, record.name) for record in records],
        )
        cur = conn.executemany(
            "INSERT OR IGNORE INTO points (event_id, player_id, points) VALUES (?, ?, ?)",
            [(record.event_id, record.player_id, record.points) for record in records],
        )
    return cur.rowcount


def get_recent_points(conn: sqlite3.Connection, player_id: int, end_week: int, end_year: int,
                      limit: int, years: int = weights.YEARS) -> list[sqlite3.Row]:
    """Return a player's most recent points rows up to the ranking end.

    Rows are ordered by year and week descending (event id breaks ties) and
    carry `event_id`, `points`, `week` and `year`.
    """
    cur = conn.cursor()
    cur.execute(
        """
        SELECT p.event_id, p.points, e.week, e.year
        FROM points AS p
        JOIN events AS e ON e.id = p.event_id
        WHERE p.player_id = ?
          AND e.year > ?
          AND (e.year < ? OR (e.year = ? AND e.week <= ?))
        ORDER BY e.year DESC, e.week DESC, p.event_id DESC
        LIMIT ?
        """,
        (player_id, end_year - years, end_year, end_year, end_week, limit),
    )
    return cur.fetchall()


def get_player_points(conn: sqlite3.Connection, player_id: int) -> list[sqlite3.Row]:
    """Return every stored points row of a player together with its event."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT e.id AS event_id, e.name AS event_name, e.week, e.year, p.points
        FROM points AS p
        JOIN events AS e ON e.id = p.event_id
        WHERE p.player_id = ?
        ORDER BY e.year DESC, e.week DESC, e.id DESC
        """,
        (player_id,),
    )
    return cur.fetchall()


def clear_weighted_points(conn: sqlite3.Connection, week: int, year: int) -> int:
    """Delete the aggregates of one ranking week so it can be rebuilt from zero."""
    cur = conn.cursor()
    cur.execute("DELETE FROM weighted_points WHERE week = ? AND year = ?", (week, year))
    conn.commit()
    return cur.rowcount


def store_weighted_points(conn: sqlite3.Connection, aggregates: Iterable[CompetitorAggregate],
                          week: int, year: int) -> None:
    """Upsert the final aggregate of every player for the given ranking week."""
    aggregates = list(aggregates)
    with conn:
        conn.executemany(
            "INSERT INTO players (id, name) VALUES (?, ?) "
            "ON CONFLICT (id) DO UPDATE SET name = excluded.name",
            [(agg.player_id, agg.name) for agg in aggregates],
        )
        conn.executemany(
            "INSERT INTO weighted_points (player_id, count, weighted_points, week, year) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT (player_id, week, year) DO UPDATE SET "
            "count = excluded.count, weighted_points = excluded.weighted_points",
            [(agg.player_id, agg.count, agg.weighted_points, week, year) for agg in aggregates],
        )


def get_weighted_points(conn: sqlite3.Connection, week: int, year: int) -> list[CompetitorAggregate]:
    """Return the stored aggregates of one ranking week."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT w.player_id, COALESCE(pl.name, CAST(w.player_id AS TEXT)) AS name, w.weighted_points, w.count
        FROM weighted_points AS w
        LEFT JOIN players AS pl ON pl.id = w.player_id
        WHERE w.week = ? AND w.year = ?
        """,
        (week, year),
    )
    return [
        CompetitorAggregate(
            player_id=row["player_id"],
            name=row["name"],
            weighted_points=row["weighted_points"],
            count=row["count"],
        )
        for row in cur.fetchall()
    ]


__all__ = [
    "get_connection",
    "insert_events",
    "get_events",
    "event_exists",
    "get_event_points",
    "insert_points",
    "get_recent_points",
    "get_player_points",
    "clear_weighted_points",
    "store_weighted_points",
    "get_weighted_points",
]
