"""Rolling 104-week ranking built from the events of the last three years."""

from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Sequence

import config
import db
import downloader
import table
import utils
import weights
from aggregator import Aggregator
from analyzer import EventAnalyzer, ResultsProvider
from api_types import Event, RunReport
from errors import PersistenceFailure, RankingError, RetrievalFailure
from log import get_logger

logger = get_logger("ranking")

EventsProvider = Callable[[int], list[Event]]
# (player_id, limit) -> that player's points rows as (event_id, points, week, year)
PointsHistory = Callable[[int, int], Iterable[tuple[int, int, int, int]]]


@dataclass
class ShardResult:
	analyzed: int
	failures: list[RankingError]


def reevaluate_overflow(
	aggregator: Aggregator,
	history: PointsHistory,
	weight_index: list[list[int]],
	end_year: int,
	cap: int = config.WINDOW_CAP,
) -> int:
	"""Recompute the points of players with more than `cap` events from their `cap` most recent ones.

	The event count is left as it is; only the weighted points are capped.
	Must run after every contribution has been added. Returns the number of
	players that were recomputed.
	"""
	overflowing = aggregator.overflowing(cap)
	for row in overflowing:
		records = sorted(
			history(row.player_id, cap),
			key=lambda record: (record[3], record[2], record[0]),
			reverse=True,
		)[:cap]
		total = 0
		for _event_id, points, week, year in records:
			total += points * weights.event_weight(weight_index, week, year, end_year)
		aggregator.replace_points(row.player_id, total)
		logger.debug("Recomputed player %d from %d of %d events", row.player_id, len(records), row.count)
	return len(overflowing)


class Ranking:
	"""A ranking ending at `end_week` of `end_year`, i.e. already after the events of that week."""

	def __init__(
		self,
		end_week: int,
		end_year: int,
		db_path: str | None = None,
		events_provider: EventsProvider | None = None,
		results_provider: ResultsProvider | None = None,
		workers: int = config.WORKERS,
		cap: int = config.WINDOW_CAP,
	):
		if workers < 1:
			raise ValueError("workers must be positive")
		self.end_week = end_week
		self.end_year = end_year
		self.db_path = db_path
		self.events_provider = events_provider or downloader.fetch_events
		self.results_provider = results_provider or downloader.fetch_event_results
		self.workers = workers
		self.cap = cap
		self.weight_index = weights.build_weight_index(end_week)
		self.aggregator = Aggregator()

	@classmethod
	def for_date(cls, day: date, **kwargs) -> Ranking:
		end_week, end_year = utils.ranking_week(day)
		return cls(end_week, end_year, **kwargs)

	@classmethod
	def current(cls, **kwargs) -> Ranking:
		"""A ranking ending at the Sunday of the current week."""
		return cls.for_date(utils.end_of_week(date.today()), **kwargs)

	def __repr__(self) -> str:
		return f"Ranking(week={self.end_week}, year={self.end_year})"

	def weight_of(self, event: Event) -> int:
		if not 1 <= event.week <= weights.WEEKS_PER_YEAR:
			logger.warning("Event %d (%s) is in week %d and is not ranked", event.id, event.name, event.week)
		return weights.event_weight(self.weight_index, event.week, event.year, self.end_year)

	def collect_events(self, report: RunReport) -> list[Event]:
		"""Fetch the event catalog of the covered years and store it.

		If a year's catalog cannot be fetched, the events already stored for
		that year are used and the failure is recorded.
		"""
		events: list[Event] = []
		conn = db.get_connection(self.db_path)
		try:
			for year in utils.covered_years(self.end_year):
				try:
					year_events = self.events_provider(year)
				except RetrievalFailure as exc:
					logger.error("%s; falling back to stored events", exc)
					report.failures.append(exc)
					events.extend(db.get_events(conn, year))
					continue
				try:
					db.insert_events(conn, year_events)
				except sqlite3.Error as exc:
					failure = PersistenceFailure(f"store events of {year}", str(exc))
					logger.error("%s", failure)
					report.failures.append(failure)
				events.extend(year_events)
		finally:
			conn.close()
		return events

	def _analyze_shard(self, shard: Sequence[Event], on_event: Callable[[Event], None] | None) -> ShardResult:
		result = ShardResult(analyzed=0, failures=[])
		conn = db.get_connection(self.db_path)
		analyzer = EventAnalyzer.for_connection(conn, self.results_provider)
		try:
			for event in shard:
				try:
					contributions = analyzer.analyze(event, self.weight_of(event))
				except RankingError as exc:
					logger.error("Event %d (%s) failed: %s", event.id, event.name, exc)
					result.failures.append(exc)
				else:
					self.aggregator.add_all(contributions)
					if contributions:
						result.analyzed += 1
				if on_event is not None:
					on_event(event)
		finally:
			conn.close()
		return result

	def analyze_events(
		self,
		events: Sequence[Event],
		report: RunReport,
		on_event: Callable[[Event], None] | None = None,
	) -> None:
		"""Analyze all events on a pool of worker threads and wait for every one of them.

		Events are split round-robin into one shard per worker.
		"""
		shards = [events[task::self.workers] for task in range(self.workers)]
		with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="analyze") as executor:
			futures = [executor.submit(self._analyze_shard, shard, on_event) for shard in shards if shard]
			wait(futures)

		for future in futures:
			try:
				shard_result = future.result()
			except Exception as exc:
				logger.exception("A worker stopped before finishing its events")
				report.failures.append(exc)
				continue
			report.analyzed += shard_result.analyzed
			report.failures.extend(shard_result.failures)

	def _history(self, conn: sqlite3.Connection) -> PointsHistory:
		def history(player_id: int, limit: int) -> list[tuple[int, int, int, int]]:
			rows = db.get_recent_points(conn, player_id, self.end_week, self.end_year, limit)
			return [(row["event_id"], row["points"], row["week"], row["year"]) for row in rows]
		return history

	def reevaluate_overflow(self) -> int:
		conn = db.get_connection(self.db_path)
		try:
			return reevaluate_overflow(
				self.aggregator,
				self._history(conn),
				self.weight_index,
				self.end_year,
				self.cap,
			)
		finally:
			conn.close()

	def _store(self, report: RunReport, operation: str, action: Callable[[sqlite3.Connection], object]) -> None:
		conn = db.get_connection(self.db_path)
		try:
			action(conn)
		except sqlite3.Error as exc:
			failure = PersistenceFailure(operation, str(exc))
			logger.error("%s", failure)
			report.failures.append(failure)
		finally:
			conn.close()

	def generate(
		self,
		on_events: Callable[[int], None] | None = None,
		on_event: Callable[[Event], None] | None = None,
	) -> RunReport:
		"""Build this ranking from scratch and return the report of the run.

		A run with an unanalyzable event stops before the overflow stage and
		produces no table.
		"""
		report = RunReport(end_week=self.end_week, end_year=self.end_year)
		self.aggregator = Aggregator()
		self._store(
			report,
			f"clear ranking of week {self.end_week}/{self.end_year}",
			lambda conn: db.clear_weighted_points(conn, self.end_week, self.end_year),
		)

		events = self.collect_events(report)
		report.events = len(events)
		if on_events is not None:
			on_events(len(events))
		logger.info("Analyzing %d events for %r with %d workers", len(events), self, self.workers)

		self.analyze_events(events, report, on_event)
		if report.fatal:
			logger.error("Not ranking %r: %d events could not be analyzed", self, len(report.failures))
			return report

		recomputed = self.reevaluate_overflow()
		logger.info("Capped %d players at their %d most recent events", recomputed, self.cap)

		self._store(
			report,
			f"store ranking of week {self.end_week}/{self.end_year}",
			lambda conn: db.store_weighted_points(conn, self.aggregator.rows(), self.end_week, self.end_year),
		)
		report.rows = table.rank(self.aggregator.rows())
		return report


def load_ranking(end_week: int, end_year: int, db_path: str | None = None) -> RunReport:
	"""Rank the aggregates stored by an earlier run without recomputing them."""
	conn = db.get_connection(db_path)
	try:
		aggregates = db.get_weighted_points(conn, end_week, end_year)
	finally:
		conn.close()
	return RunReport(end_week=end_week, end_year=end_year, rows=table.rank(aggregates))
