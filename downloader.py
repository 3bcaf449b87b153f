import requests
from bs4 import BeautifulSoup, Tag

import config
from api_types import Event, EventResults
from errors import RetrievalFailure
from log import get_logger

logger = get_logger("downloader")

EVENTS_PATH = "/events"
RESULTS_PATH = "/en/Events/EventResult.aspx"

# Events listing: one row per event with the week, year and a link carrying the event id.
EVENT_ROW_SELECTOR = "#ctl1 > tbody > tr"
EVENT_WEEK_ID = "ctl2"
EVENT_YEAR_ID = "ctl3"
EVENT_NAME_ID = "ctl5"

# Event result page: the player links and the points cells are read as two lists.
RESULT_PLAYER_SELECTOR = "#phmaincontent_0_ctl00_PanelCompletedEvent table tbody tr td.name a"
RESULT_POINTS_SELECTOR = "#phmaincontent_0_ctl00_PanelCompletedEvent table tbody tr td.ranking_points"


def _get(url: str, params: dict, target: str) -> str:
	try:
		response = requests.get(url, params=params, timeout=config.REQUEST_TIMEOUT)
		response.raise_for_status()
	except requests.RequestException as exc:
		raise RetrievalFailure(target, str(exc)) from exc
	return response.text


def _id_from_href(href: str) -> int:
	# links look like ".../EventResult.aspx?eventid=1234"
	return int(href.split("=")[-1])


def parse_events(html: str, target: str = "events") -> list[Event]:
	soup = BeautifulSoup(html, "html.parser")
	events: list[Event] = []

	for row in soup.select(EVENT_ROW_SELECTOR):
		week_cell = row.find(id=EVENT_WEEK_ID)
		year_cell = row.find(id=EVENT_YEAR_ID)
		name_cell = row.find(id=EVENT_NAME_ID)
		link = name_cell.find("a") if isinstance(name_cell, Tag) else None
		if week_cell is None or year_cell is None or not isinstance(link, Tag) or not link.get("href"):
			logger.debug("Skipping malformed event row in %s", target)
			continue

		try:
			events.append(
				Event(
					id=_id_from_href(str(link["href"])),
					name=link.get_text(strip=True),
					week=int(week_cell.get_text(strip=True)),
					year=int(year_cell.get_text(strip=True)),
				)
			)
		except ValueError as exc:
			raise RetrievalFailure(target, f"malformed event row: {exc}") from exc

	return events


def fetch_events(year: int) -> list[Event]:
	"""Fetch the catalog of all events played in `year`."""
	target = f"events of {year}"
	html = _get(
		config.BASE_URL + EVENTS_PATH,
		{"pageNo": 1, "pageSize": "ALL", "tour": "", "year": year},
		target,
	)
	events = parse_events(html, target)
	logger.info("Found %d events for %d", len(events), year)
	return events


def parse_event_results(html: str, target: str = "event results") -> EventResults:
	soup = BeautifulSoup(html, "html.parser")
	results = EventResults()

	for link in soup.select(RESULT_PLAYER_SELECTOR):
		href = link.get("href")
		if not href:
			continue
		try:
			player_id = _id_from_href(str(href))
		except ValueError as exc:
			raise RetrievalFailure(target, f"malformed player link {href!r}") from exc
		results.players.append((player_id, link.get_text(strip=True)))

	results.points = [cell.get_text(strip=True) for cell in soup.select(RESULT_POINTS_SELECTOR)]
	return results


def fetch_event_results(event_id: int) -> EventResults:
	"""Fetch the players and their (unweighted) ranking points of one event."""
	target = f"results of event {event_id}"
	html = _get(config.BASE_URL + RESULTS_PATH, {"eventid": event_id}, target)
	return parse_event_results(html, target)
