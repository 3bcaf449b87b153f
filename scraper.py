"""Dump the event catalog of one or more years to JSON and the database."""

import argparse
import json
from dataclasses import asdict
from pathlib import Path

import config
import db
import downloader
from errors import RetrievalFailure
from log import console, setup_logger


def main() -> int:
	parser = argparse.ArgumentParser(description="Fetch the event catalog of the given years")
	parser.add_argument("years", type=int, nargs="+", help="Years to fetch.")
	parser.add_argument("--out-dir", type=Path, default=Path("events"), help="Directory for events_<year>.json.")
	parser.add_argument("--db", default=config.DB_PATH, help="Path to the sqlite database.")
	args = parser.parse_args()
	setup_logger()

	conn = db.get_connection(args.db)
	args.out_dir.mkdir(parents=True, exist_ok=True)
	failed = 0
	for year in args.years:
		console.print(f"Fetching events for year {year}...")
		try:
			events = downloader.fetch_events(year)
		except RetrievalFailure as exc:
			console.print(f"[red]{exc}")
			failed += 1
			continue

		added = db.insert_events(conn, events)
		path = args.out_dir / f"events_{year}.json"
		with path.open("w", encoding="utf-8") as ef:
			json.dump([asdict(event) for event in events], ef, indent=4)
		console.print(f"[green]{len(events)} events ({added} new) written to {path}", highlight=False)

	conn.close()
	return 1 if failed else 0


if __name__ == "__main__":
	raise SystemExit(main())
