"""
Pytest configuration and fixtures
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from api_types import Event, EventResults
from errors import RetrievalFailure


class FakeProvider:
	"""Serves event catalogs and result pages from memory and records what was asked for."""

	def __init__(self, catalog=None, results=None):
		self.catalog: dict[int, list[Event]] = catalog or {}
		self.results: dict[int, EventResults] = results or {}
		self.failing_years: set[int] = set()
		self.failing_events: set[int] = set()
		self.result_calls: list[int] = []

	def add_event(self, event: Event, players, points) -> None:
		self.catalog.setdefault(event.year, []).append(event)
		self.results[event.id] = EventResults(players=list(players), points=list(points))

	def fetch_events(self, year: int) -> list[Event]:
		if year in self.failing_years:
			raise RetrievalFailure(f"events of {year}", "connection refused")
		return list(self.catalog.get(year, []))

	def fetch_event_results(self, event_id: int) -> EventResults:
		self.result_calls.append(event_id)
		if event_id in self.failing_events:
			raise RetrievalFailure(f"results of event {event_id}", "503 Server Error")
		return self.results[event_id]


@pytest.fixture
def db_path(tmp_path):
	"""Path of an empty sqlite database for one test"""
	return str(tmp_path / "ranking.db")


@pytest.fixture
def conn(db_path):
	import db

	connection = db.get_connection(db_path)
	yield connection
	connection.close()


@pytest.fixture
def provider():
	return FakeProvider()
