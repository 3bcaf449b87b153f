"""Average points, places and the printed ranking table."""

from __future__ import annotations

from typing import Iterable, Sequence, TextIO

from rich.console import Console
from rich.table import Table

import config
from api_types import CompetitorAggregate, RankedRow


def divisor(count: int) -> int:
	# 40 <= divisor <= 52; the extra 10 drops the points from *1,000,000 to *100,000
	return min(config.MAX_DIVISOR, max(config.MIN_DIVISOR, count)) * 10


def average_points(weighted_points: int, count: int) -> int:
	"""Average points multiplied by 100,000, truncated."""
	return weighted_points // divisor(count)


def round_average(average: int) -> int:
	"""Round an average multiplied by 100,000 half up to one multiplied by 10,000."""
	return (average + 5) // 10


def rank(aggregates: Iterable[CompetitorAggregate]) -> list[RankedRow]:
	"""Sort players by average points and assign places.

	Tied players share a place and the next player's place skips over the
	tied ones (1, 1, 3). Players without a positive average are left out.
	"""
	averages = [
		(round_average(average_points(agg.weighted_points, agg.count)), agg)
		for agg in aggregates
	]
	averages = [(average, agg) for average, agg in averages if average > 0]
	averages.sort(key=lambda item: (-item[0], item[1].name, item[1].player_id))

	rows: list[RankedRow] = []
	place = 0
	previous: int | None = None
	for position, (average, agg) in enumerate(averages, start=1):
		if average != previous:
			place = position
			previous = average
		rows.append(RankedRow(place=place, player_id=agg.player_id, name=agg.name, average=average))
	return rows


def render_rows(rows: Sequence[RankedRow]) -> list[str]:
	"""Render rows as tab separated lines that line up in a terminal.

	Averages of 100.0000 and above get no leading space, so their decimal
	point lines up with the shorter averages.
	"""
	max_name_length = max((len(row.name) for row in rows), default=0)
	lines: list[str] = []
	for row in rows:
		place = f"{row.place}." + ("\t\t" if row.place < 100 else "\t")
		name = row.name + "\t" * ((max_name_length - len(row.name) + 5) // 4)
		padding = "" if row.average >= 1000000 else " "
		lines.append(place + name + padding + row.formatted_average)
	return lines


def write_table(rows: Sequence[RankedRow], *sinks: TextIO) -> None:
	for line in render_rows(rows):
		for sink in sinks:
			sink.write(line + "\n")


def print_table(rows: Sequence[RankedRow], console: Console, title: str | None = None, limit: int | None = None) -> None:
	output = Table(title=title)
	output.add_column("Place", justify="right")
	output.add_column("Name")
	output.add_column("Average", justify="right")
	for row in rows if limit is None else rows[:limit]:
		output.add_row(f"{row.place}.", row.name, row.formatted_average)
	console.print(output)
