from dataclasses import dataclass, field

from errors import DataShapeError, RankingError


@dataclass(frozen=True)
class Event:
	id: int
	name: str
	week: int
	year: int


@dataclass(frozen=True)
class ScoreRecord:
	"""Unweighted points of one player at one event, multiplied by 100."""
	event_id: int
	player_id: int
	name: str
	points: int


@dataclass(frozen=True)
class Contribution:
	event_id: int
	player_id: int
	name: str
	points: int
	weight: int

	@property
	def weighted_points(self) -> int:
		# points * 100 and weight * 10,000, so the product is scaled by 1,000,000
		return self.points * self.weight


@dataclass
class CompetitorAggregate:
	player_id: int
	name: str
	weighted_points: int = 0
	count: int = 0


@dataclass
class EventResults:
	"""Raw result page of an event, before the lists are checked against each other."""
	players: list[tuple[int, str]] = field(default_factory=list)
	points: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RankedRow:
	place: int
	player_id: int
	name: str
	average: int

	@property
	def formatted_average(self) -> str:
		# At least 5 digits so there is always one in front of the decimal point
		digits = f"{self.average:05d}"
		return f"{digits[:-4]}.{digits[-4:]}"


@dataclass
class RunReport:
	end_week: int
	end_year: int
	events: int = 0
	analyzed: int = 0
	failures: list[Exception] = field(default_factory=list)
	rows: list[RankedRow] = field(default_factory=list)

	@property
	def fatal(self) -> bool:
		"""An event's results do not line up, or a worker stopped before finishing its events."""
		return any(
			isinstance(failure, DataShapeError) or not isinstance(failure, RankingError)
			for failure in self.failures
		)

	@property
	def degraded(self) -> bool:
		return bool(self.failures)
