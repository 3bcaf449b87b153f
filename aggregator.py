"""Thread-safe accumulation of weighted points per player."""

from __future__ import annotations

import threading
from typing import Iterable

import config
from api_types import CompetitorAggregate, Contribution


class Aggregator:
	"""Owns the aggregate row of every player for one ranking run.

	Workers add contributions concurrently. Each player id maps onto one of a
	fixed set of locks, so the read-modify-write of a row never interleaves
	with another update of the same row. A contribution of an (event, player)
	pair is applied at most once.
	"""

	def __init__(self, stripes: int = config.LOCK_STRIPES):
		if stripes < 1:
			raise ValueError("stripes must be positive")
		self._locks = [threading.Lock() for _ in range(stripes)]
		self._rows: dict[int, CompetitorAggregate] = {}
		self._seen: list[set[tuple[int, int]]] = [set() for _ in range(stripes)]

	def _stripe(self, player_id: int) -> int:
		return hash(player_id) % len(self._locks)

	def add(self, contribution: Contribution) -> bool:
		"""Apply one contribution. Returns False if it was ignored."""
		if contribution.weight == 0:
			return False

		stripe = self._stripe(contribution.player_id)
		key = (contribution.event_id, contribution.player_id)
		with self._locks[stripe]:
			if key in self._seen[stripe]:
				return False
			self._seen[stripe].add(key)

			row = self._rows.get(contribution.player_id)
			if row is None:
				row = CompetitorAggregate(player_id=contribution.player_id, name=contribution.name)
				self._rows[contribution.player_id] = row
			elif contribution.name:
				row.name = contribution.name
			row.weighted_points += contribution.weighted_points
			row.count += 1
		return True

	def add_all(self, contributions: Iterable[Contribution]) -> int:
		return sum(1 for contribution in contributions if self.add(contribution))

	def get(self, player_id: int) -> CompetitorAggregate | None:
		return self._rows.get(player_id)

	def rows(self) -> list[CompetitorAggregate]:
		return list(self._rows.values())

	def overflowing(self, cap: int = config.WINDOW_CAP) -> list[CompetitorAggregate]:
		"""Players who played more than `cap` events inside the window."""
		return [row for row in self._rows.values() if row.count > cap]

	def replace_points(self, player_id: int, weighted_points: int) -> None:
		with self._locks[self._stripe(player_id)]:
			self._rows[player_id].weighted_points = weighted_points

	def __len__(self) -> int:
		return len(self._rows)
