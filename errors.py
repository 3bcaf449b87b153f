"""Failures a ranking run can hit, grouped by how the run reacts to them."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from api_types import Event


class RankingError(Exception):
	"""Base class for every error raised by the ranking modules."""


class RetrievalFailure(RankingError):
	"""The result provider could not be reached or returned an unusable page.

	Aborts the analysis of a single event; the rest of the run continues.
	"""

	def __init__(self, target: str, reason: str):
		self.target = target
		self.reason = reason
		super().__init__(f"Could not retrieve {target}: {reason}")


class DataShapeError(RankingError):
	"""An event's result page does not line up (player count != point count)."""

	def __init__(self, event: Event, reason: str | None = None):
		self.event = event
		self.reason = reason or "player and point lists differ in length"
		super().__init__(f"Event {event.id} ({event.name}) is unanalyzable: {self.reason}")


class PersistenceFailure(RankingError):
	"""A store write was rejected. The run continues but is reported as degraded."""

	def __init__(self, operation: str, reason: str):
		self.operation = operation
		self.reason = reason
		super().__init__(f"Failed to {operation}: {reason}")


__all__ = [
	"RankingError",
	"RetrievalFailure",
	"DataShapeError",
	"PersistenceFailure",
]
