"""Per-event analysis: turn one event into weighted contributions.

Points of an event are read from the database when they were stored by an
earlier run; otherwise the result page is fetched, normalized and stored.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Protocol

import db
import utils
from api_types import Contribution, Event, EventResults, ScoreRecord
from errors import DataShapeError, PersistenceFailure, RetrievalFailure
from log import get_logger

logger = get_logger("analyzer")

ResultsProvider = Callable[[int], EventResults]


class PointsSource(Protocol):
	def load(self, event: Event) -> list[ScoreRecord]: ...


class CachedPoints:
	"""Points stored by an earlier analysis of the event. Empty when there are none."""

	def __init__(self, conn: sqlite3.Connection):
		self.conn = conn

	def load(self, event: Event) -> list[ScoreRecord]:
		try:
			return db.get_event_points(self.conn, event.id)
		except sqlite3.Error as exc:
			raise PersistenceFailure(f"read points of event {event.id}", str(exc)) from exc


class FetchedPoints:
	"""Points parsed from the event's result page, stored before they are returned."""

	def __init__(self, conn: sqlite3.Connection, provider: ResultsProvider):
		self.conn = conn
		self.provider = provider

	def load(self, event: Event) -> list[ScoreRecord]:
		records = normalize_results(event, self.provider(event.id))
		try:
			db.insert_points(self.conn, records)
		except sqlite3.Error as exc:
			raise PersistenceFailure(f"store points of event {event.id}", str(exc)) from exc
		return records


def normalize_results(event: Event, results: EventResults) -> list[ScoreRecord]:
	if len(results.players) != len(results.points):
		raise DataShapeError(
			event,
			f"{len(results.players)} players but {len(results.points)} point values",
		)

	records: list[ScoreRecord] = []
	for (player_id, name), text in zip(results.players, results.points):
		try:
			points = utils.to_fixed_points(text)
		except ValueError as exc:
			raise RetrievalFailure(f"results of event {event.id}", str(exc)) from exc
		records.append(ScoreRecord(event_id=event.id, player_id=player_id, name=name, points=points))
	return records


class EventAnalyzer:
	def __init__(self, cached: PointsSource, fetched: PointsSource):
		self.cached = cached
		self.fetched = fetched

	@classmethod
	def for_connection(cls, conn: sqlite3.Connection, provider: ResultsProvider) -> EventAnalyzer:
		return cls(CachedPoints(conn), FetchedPoints(conn, provider))

	def load(self, event: Event) -> list[ScoreRecord]:
		records = self.cached.load(event)
		if records:
			logger.debug("Using %d stored results of event %d", len(records), event.id)
			return records
		logger.debug("Fetching results of event %d (%s)", event.id, event.name)
		return self.fetched.load(event)

	def analyze(self, event: Event, weight: int) -> list[Contribution]:
		"""Return the contributions of `event` at `weight`.

		Events outside the window (weight 0) are skipped without being loaded.
		"""
		if weight == 0:
			return []
		return [
			Contribution(
				event_id=record.event_id,
				player_id=record.player_id,
				name=record.name,
				points=record.points,
				weight=weight,
			)
			for record in self.load(event)
		]
