"""
End-to-end tests of a ranking run against a temporary database
"""

import logging
import sqlite3
from datetime import date

import pytest

import db
import weights
from api_types import Event
from errors import DataShapeError, PersistenceFailure, RetrievalFailure
from ranking import Ranking, load_ranking

END_WEEK = 52
END_YEAR = 2024

RECENT = Event(1, "Tour Championship", 52, 2024)  # weight 1.0000
OLDER = Event(2, "Players Championship", 46, 2023)  # 58 weeks back, weight 0.5000
EXPIRED = Event(3, "Old Open", 40, 2022)  # more than 104 weeks back


@pytest.fixture
def two_events(provider):
	provider.add_event(RECENT, [(1, "Player A"), (2, "Player B")], ["5.00", "10"])
	provider.add_event(OLDER, [(1, "Player A")], ["8"])
	provider.add_event(EXPIRED, [(1, "Player A"), (2, "Player B")], ["100", "100"])
	return provider


def make_ranking(provider, db_path, workers=3):
	return Ranking(
		END_WEEK,
		END_YEAR,
		db_path=db_path,
		events_provider=provider.fetch_events,
		results_provider=provider.fetch_event_results,
		workers=workers,
	)


def summary(report):
	return [(row.place, row.name, row.formatted_average) for row in report.rows]


class TestGenerate:

	def test_two_event_scenario(self, two_events, db_path):
		ranking = make_ranking(two_events, db_path)
		assert ranking.weight_of(RECENT) == 10000
		assert ranking.weight_of(OLDER) == 5000
		assert ranking.weight_of(EXPIRED) == 0

		report = ranking.generate()

		assert not report.degraded
		assert report.events == 3
		assert report.analyzed == 2
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.2250")]
		# the expired event is never fetched
		assert sorted(two_events.result_calls) == [1, 2]

		player_a = ranking.aggregator.get(1)
		assert player_a.weighted_points == 9_000_000
		assert player_a.count == 2

	def test_aggregates_are_stored(self, two_events, db_path):
		make_ranking(two_events, db_path).generate()

		conn = db.get_connection(db_path)
		stored = {agg.player_id: (agg.weighted_points, agg.count) for agg in db.get_weighted_points(conn, END_WEEK, END_YEAR)}
		conn.close()
		assert stored == {1: (9_000_000, 2), 2: (10_000_000, 1)}

		assert summary(load_ranking(END_WEEK, END_YEAR, db_path)) == [(1, "Player B", "0.2500"), (2, "Player A", "0.2250")]

	def test_second_run_uses_stored_points(self, two_events, db_path):
		first = make_ranking(two_events, db_path).generate()
		two_events.failing_events.update({1, 2})

		second = make_ranking(two_events, db_path).generate()

		assert sorted(two_events.result_calls) == [1, 2]
		assert not second.degraded
		assert summary(second) == summary(first)

	def test_worker_count_does_not_change_result(self, two_events, tmp_path):
		single = make_ranking(two_events, str(tmp_path / "single.db"), workers=1).generate()
		many = make_ranking(two_events, str(tmp_path / "many.db"), workers=8).generate()
		assert summary(single) == summary(many)

	def test_shape_error_is_fatal(self, two_events, db_path):
		two_events.results[OLDER.id].points.append("1")

		report = make_ranking(two_events, db_path).generate()

		assert report.fatal
		assert report.rows == []
		[failure] = report.failures
		assert isinstance(failure, DataShapeError)
		assert failure.event == OLDER
		# the other event was still analyzed and stored
		conn = db.get_connection(db_path)
		assert len(db.get_event_points(conn, RECENT.id)) == 2
		assert db.get_event_points(conn, OLDER.id) == []
		assert db.get_weighted_points(conn, END_WEEK, END_YEAR) == []
		conn.close()

	def test_retrieval_failure_degrades_the_run(self, two_events, db_path):
		two_events.failing_events.add(OLDER.id)

		report = make_ranking(two_events, db_path).generate()

		assert report.degraded
		assert not report.fatal
		assert [type(failure) for failure in report.failures] == [RetrievalFailure]
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.1250")]

	def test_catalog_failure_falls_back_to_stored_events(self, two_events, db_path):
		first = make_ranking(two_events, db_path).generate()
		two_events.failing_years.add(2023)

		second = make_ranking(two_events, db_path).generate()

		assert second.degraded
		assert summary(second) == summary(first)

	def test_run_starts_from_zero(self, two_events, db_path):
		ranking = make_ranking(two_events, db_path)
		ranking.generate()
		report = ranking.generate()
		assert ranking.aggregator.get(1).count == 2
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.2250")]

	def test_unreadable_points_degrade_the_run(self, two_events, db_path):
		two_events.results[OLDER.id].points[0] = "WD"

		report = make_ranking(two_events, db_path).generate()

		assert report.degraded
		assert not report.fatal
		[failure] = report.failures
		assert isinstance(failure, RetrievalFailure)
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.1250")]

	def test_rejected_points_write_degrades_the_run(self, two_events, db_path, monkeypatch):
		insert_points = db.insert_points

		def reject_older(conn, records):
			records = list(records)
			if records and records[0].event_id == OLDER.id:
				raise sqlite3.OperationalError("database is locked")
			return insert_points(conn, records)

		monkeypatch.setattr(db, "insert_points", reject_older)

		report = make_ranking(two_events, db_path).generate()

		assert report.degraded
		assert not report.fatal
		assert [type(failure) for failure in report.failures] == [PersistenceFailure]
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.1250")]
		conn = db.get_connection(db_path)
		assert db.get_event_points(conn, OLDER.id) == []
		conn.close()

	def test_rejected_ranking_write_degrades_the_run(self, two_events, db_path, monkeypatch):
		def reject(conn, aggregates, week, year):
			raise sqlite3.OperationalError("disk I/O error")

		monkeypatch.setattr(db, "store_weighted_points", reject)

		report = make_ranking(two_events, db_path).generate()

		assert report.degraded
		assert not report.fatal
		[failure] = report.failures
		assert isinstance(failure, PersistenceFailure)
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.2250")]

	def test_worker_crash_is_reported(self, two_events, db_path):
		# a provider bug: no result page is known for the event
		del two_events.results[RECENT.id]

		report = make_ranking(two_events, db_path).generate()

		assert report.fatal
		assert report.rows == []
		assert [type(failure) for failure in report.failures] == [KeyError]

	def test_week_53_event_is_logged(self, two_events, db_path, caplog, monkeypatch):
		monkeypatch.setattr(logging.getLogger("owgrank"), "propagate", True)
		two_events.add_event(Event(4, "Year End Classic", 53, 2024), [(2, "Player B")], ["50"])

		with caplog.at_level(logging.WARNING, logger="owgrank.ranking"):
			report = make_ranking(two_events, db_path).generate()

		assert "Year End Classic" in caplog.text
		assert 4 not in two_events.result_calls
		assert summary(report) == [(1, "Player B", "0.2500"), (2, "Player A", "0.2250")]



class TestOverflowRun:

	def test_players_over_52_events_are_capped(self, provider, db_path):
		positions = [(week, 2024) for week in range(52, 0, -1)] + [(week, 2023) for week in range(52, 44, -1)]
		for event_id, (week, year) in enumerate(positions, start=100):
			provider.add_event(Event(event_id, f"Event {event_id}", week, year), [(1, "Busy Player"), (2, "Other")], ["1", "1"])
		# the other player also plays one older event
		provider.add_event(Event(999, "Solo", 1, 2023), [(2, "Other")], ["1"])

		ranking = make_ranking(provider, db_path, workers=4)
		report = ranking.generate()

		index = weights.build_weight_index(END_WEEK)
		expected = sum(100 * weights.event_weight(index, week, year, END_YEAR) for week, year in positions[:52])
		busy = ranking.aggregator.get(1)
		assert busy.count == 60
		assert busy.weighted_points == expected
		other = ranking.aggregator.get(2)
		assert other.count == 61
		assert other.weighted_points == expected
		assert [row.place for row in report.rows] == [1, 1]


class TestConstructors:

	def test_for_date(self, provider, db_path):
		ranking = Ranking.for_date(date(2024, 6, 16), db_path=db_path, events_provider=provider.fetch_events)
		assert (ranking.end_week, ranking.end_year) == (24, 2024)

	def test_current(self, provider, db_path):
		ranking = Ranking.current(db_path=db_path)
		assert 1 <= ranking.end_week <= 52

	def test_invalid_workers(self, db_path):
		with pytest.raises(ValueError):
			Ranking(10, 2024, db_path=db_path, workers=0)
