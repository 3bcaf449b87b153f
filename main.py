"""Entry point for generating and printing the ranking with progress feedback."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

from rich.progress import (
	BarColumn,
	Progress,
	SpinnerColumn,
	TextColumn,
	TimeElapsedColumn,
	TimeRemainingColumn,
)

import config
import table
from api_types import RunReport
from log import console, setup_logger
from ranking import Ranking, load_ranking


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Generate the rolling two-year world ranking")
	parser.add_argument(
		"--date",
		type=date.fromisoformat,
		help="End the ranking at the week of this date (YYYY-MM-DD). Defaults to the current week.",
	)
	parser.add_argument("--week", type=int, help="End the ranking at this week (1-52). Requires --year.")
	parser.add_argument("--year", type=int, help="End the ranking in this year. Requires --week.")
	parser.add_argument(
		"--db",
		default=config.DB_PATH,
		help="Path to the sqlite database (default: %(default)s).",
	)
	parser.add_argument(
		"--workers",
		type=int,
		default=config.WORKERS,
		help="Number of events analyzed in parallel (default: %(default)s).",
	)
	parser.add_argument(
		"--output",
		type=Path,
		default=Path(config.OUTPUT_PATH),
		help="File the ranking table is written to (default: %(default)s).",
	)
	parser.add_argument(
		"--from-db",
		action="store_true",
		help="Print the ranking stored by an earlier run instead of generating it.",
	)
	parser.add_argument("--limit", type=int, help="How many players to show on the console. Default is all.")
	parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s).")
	args = parser.parse_args(argv)

	if (args.week is None) != (args.year is None):
		parser.error("--week and --year must be given together")
	if args.week is not None and args.date is not None:
		parser.error("--date cannot be combined with --week/--year")
	return args


def build_ranking(args: argparse.Namespace) -> Ranking:
	options = {"db_path": args.db, "workers": args.workers}
	if args.week is not None:
		return Ranking(args.week, args.year, **options)
	if args.date is not None:
		return Ranking.for_date(args.date, **options)
	return Ranking.current(**options)


def generate(ranking: Ranking) -> RunReport:
	with Progress(
		SpinnerColumn(),
		TextColumn("{task.description}"),
		BarColumn(bar_width=None),
		TextColumn("{task.completed}/{task.total}"),
		TimeElapsedColumn(),
		TimeRemainingColumn(),
		console=console,
	) as progress:
		task = progress.add_task(f"Collecting events for week {ranking.end_week}/{ranking.end_year}", total=None)

		def _on_events(total: int) -> None:
			progress.update(task, description="Analyzing events", total=total)

		return ranking.generate(
			on_events=_on_events,
			on_event=lambda event: progress.advance(task),
		)


def report_failures(report: RunReport) -> None:
	for failure in report.failures:
		console.print(f"[red]{failure}")
	if report.fatal:
		console.print("[red]Ranking not generated because some events could not be analyzed.")
	elif report.degraded:
		console.print(f"[yellow]Ranking generated with {len(report.failures)} failures; it may be incomplete.")


def main(argv: list[str] | None = None) -> int:
	args = parse_args(argv)
	setup_logger(args.log_level.upper())

	try:
		ranking = build_ranking(args)
		if args.from_db:
			report = load_ranking(ranking.end_week, ranking.end_year, args.db)
		else:
			report = generate(ranking)
	except (FileNotFoundError, ValueError) as exc:
		console.print(f"[red]{exc}")
		return 2

	if report.rows:
		args.output.parent.mkdir(parents=True, exist_ok=True)
		with args.output.open("w", encoding="utf-8") as fh:
			table.write_table(report.rows, fh)
		table.print_table(
			report.rows,
			console,
			title=f"Ranking after week {report.end_week}/{report.end_year}",
			limit=args.limit,
		)
		console.print(f"[green]Wrote {len(report.rows)} players to {args.output}", highlight=False)
	elif not report.fatal:
		console.print("[yellow]No players with ranking points.")

	report_failures(report)
	return 1 if report.fatal or report.degraded else 0


if __name__ == "__main__":
	sys.exit(main())
