"""Decay weights for the 104-week ranking window.

All weights are multiplied by 10,000 so they fit in integers. The index has
three rows (year offsets 0-2, where 2 is the year the ranking ends in) of 52
weeks each. The latest 13 weeks up to the end week weigh 1.0000; each week
before that is worth 1/92 less, until the weight reaches zero 104 weeks back.
"""

YEARS = 3
WEEKS_PER_YEAR = 52
FULL_WEIGHT = 10000
FULL_WEEKS = 13
DECAY_WEEKS = 91
DECAY_DIVISOR = 92


def _round_half_up_div(numerator: int, denominator: int) -> int:
	return (2 * numerator + denominator) // (2 * denominator)


def decay_weight(step: int) -> int:
	"""step/92 rounded half up to four decimal places."""
	return _round_half_up_div(step * FULL_WEIGHT, DECAY_DIVISOR)


def build_weight_index(end_week: int) -> list[list[int]]:
	if not 1 <= end_week <= WEEKS_PER_YEAR:
		raise ValueError(f"end_week must be between 1 and {WEEKS_PER_YEAR}, got {end_week}")

	index = [[0] * WEEKS_PER_YEAR for _ in range(YEARS)]
	year = YEARS - 1
	week = end_week - 1

	schedule = [FULL_WEIGHT] * FULL_WEEKS + [decay_weight(step) for step in range(DECAY_WEEKS, 0, -1)]
	for weight in schedule:
		index[year][week] = weight
		week -= 1
		# wrap to the previous year
		if week < 0:
			week = WEEKS_PER_YEAR - 1
			year -= 1

	return index


def year_offset(event_year: int, end_year: int) -> int:
	return YEARS - 1 - (end_year - event_year)


def weight_for(index: list[list[int]], offset: int, week: int) -> int:
	"""Weight of `week` (1-52) in row `offset`, or 0 outside the window."""
	if not 0 <= offset < YEARS:
		return 0
	if not 1 <= week <= WEEKS_PER_YEAR:
		return 0
	return index[offset][week - 1]


def event_weight(index: list[list[int]], event_week: int, event_year: int, end_year: int) -> int:
	return weight_for(index, year_offset(event_year, end_year), event_week)
