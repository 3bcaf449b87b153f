from datetime import date, timedelta

import weights

SUNDAY = 6


def to_fixed_points(text: str) -> int:
	"""Convert a points string like "12.5" into an integer multiplied by 100.

	Exactly two fractional digits are kept: a missing digit is padded with a
	zero and any further digits are cut off, never rounded.
	"""
	value = text.strip().replace(",", "")
	if not value:
		raise ValueError("empty points value")

	negative = value.startswith("-")
	if negative:
		value = value[1:]

	whole, _, fraction = value.partition(".")
	if not (whole or fraction) or not (whole or "0").isdigit() or (fraction and not fraction.isdigit()):
		raise ValueError(f"not a points value: {text!r}")

	whole = whole or "0"
	fraction = (fraction + "00")[:2]

	points = int(whole + fraction)
	return -points if negative else points


def end_of_week(day: date) -> date:
	"""Return the Sunday of the week `day` falls in (the day itself if it is a Sunday)."""
	return day + timedelta(days=(SUNDAY - day.weekday()) % 7)


def ranking_week(day: date) -> tuple[int, int]:
	"""Return the (week, year) a ranking ending on `day` covers.

	ISO years with 53 weeks fold their last week into week 52, since the
	weight index only has 52 weeks per year.
	"""
	iso = day.isocalendar()
	return min(iso.week, weights.WEEKS_PER_YEAR), iso.year


def covered_years(end_year: int) -> list[int]:
	return [end_year - offset for offset in range(weights.YEARS)]
