"""Export the stored points of a player to CSV."""

from __future__ import annotations

import argparse
import csv
from pathlib import Path
from typing import Iterable, Mapping

import config
import db
import weights

COLUMN_NAMES = [
	"event",
	"eventId",
	"week",
	"year",
	"points",
	"weight",
]


def parse_args() -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Export a player's event points to CSV")
	parser.add_argument("player_id", type=int, help="Player ID to export")
	parser.add_argument("--week", type=int, required=True, help="Ranking end week used for the weight column")
	parser.add_argument("--year", type=int, required=True, help="Ranking end year used for the weight column")
	parser.add_argument("--db", default=config.DB_PATH, help="Path to the sqlite database")
	parser.add_argument(
		"--output",
		type=Path,
		help="Destination CSV file (defaults to player_points_<id>.csv)",
	)
	return parser.parse_args()


def format_fixed(value: int, places: int) -> str:
	digits = f"{abs(value):0{places + 1}d}"
	sign = "-" if value < 0 else ""
	return f"{sign}{digits[:-places]}.{digits[-places:]}"


def rows_for_csv(records: Iterable[Mapping], weight_index: list[list[int]], end_year: int) -> list[dict[str, str]]:
	rows: list[dict[str, str]] = []
	for record in records:
		weight = weights.event_weight(weight_index, record["week"], record["year"], end_year)
		rows.append(
			{
				"event": record["event_name"] or "",
				"eventId": str(record["event_id"]),
				"week": str(record["week"]),
				"year": str(record["year"]),
				"points": format_fixed(record["points"], 2),
				"weight": format_fixed(weight, 4),
			}
		)
	return rows


def export_points(player_id: int, end_week: int, end_year: int, output_path: Path, db_path: str | None = None) -> Path:
	conn = db.get_connection(db_path)
	try:
		records = db.get_player_points(conn, player_id)
	finally:
		conn.close()
	output_path.parent.mkdir(parents=True, exist_ok=True)
	with output_path.open("w", newline="", encoding="utf-8") as csvfile:
		writer = csv.DictWriter(csvfile, fieldnames=COLUMN_NAMES)
		writer.writeheader()
		writer.writerows(rows_for_csv(records, weights.build_weight_index(end_week), end_year))
	return output_path


def main() -> None:
	args = parse_args()
	output = args.output or Path(f"player_points_{args.player_id}.csv")
	path = export_points(args.player_id, args.week, args.year, output, args.db)
	print(f"Exported points for {args.player_id} to {path}")


if __name__ == "__main__":
	main()
