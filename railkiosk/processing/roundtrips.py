"""Round-trip index: pairs collected originating and returning tickets of a route."""

import logging
from collections import defaultdict
from datetime import date, time, timedelta
from typing import Iterable, Iterator

from tqdm import tqdm

from ..config import Settings
from ..models import Roundtrip, Route, Ticket
from ..storage import CollectionName, Store, roundtrip_to_document, ticket_from_document

START_WEEKDAYS = {4, 5}  # Fri, Sat
END_WEEKDAYS = {6, 0}  # Sun, Mon


def is_weekend_trip(originating: Ticket, returning: Ticket) -> bool:
    return originating.departure.weekday() in START_WEEKDAYS and returning.departure.weekday() in END_WEEKDAYS


def is_early_morning(ticket: Ticket, early_morning_until: int) -> bool:
    return ticket.departure.time() < time(hour=early_morning_until)


def _group_by_day(tickets: Iterable[Ticket]) -> dict[date, list[Ticket]]:
    grouped: dict[date, list[Ticket]] = defaultdict(list)
    for ticket in tickets:
        grouped[ticket.day].append(ticket)
    return grouped


def _pairs(originating: Iterable[Ticket], returning_by_day: dict[date, list[Ticket]],
           max_stay_days: int) -> Iterator[tuple[Ticket, Ticket]]:
    for start in originating:
        for offset in range(max_stay_days + 1):
            back_day = start.day + timedelta(days=offset)
            for back in returning_by_day.get(back_day, ()):
                # Same-day return only after the outbound train has arrived
                if back.departure > (start.arrival or start.departure):
                    yield start, back


def build_roundtrips(tickets: Iterable[Ticket], route: Route, max_stay_days: int,
                     early_morning_until: int) -> list[Roundtrip]:
    """All originating x returning pairs within max_stay_days, cheapest first."""
    tickets = list(tickets)
    back_route = route.reversed()
    originating = [t for t in tickets if t.route == route]
    returning_by_day = _group_by_day(t for t in tickets if t.route == back_route)

    roundtrips = [
        Roundtrip(
            route=route,
            originating_ticket=start,
            returning_ticket=back,
            total_cost=start.cost + back.cost,
            early_morning=is_early_morning(start, early_morning_until),
            weekend=is_weekend_trip(start, back),
        )
        for start, back in _pairs(
            tqdm(originating, desc=f"Pairing {route}", leave=False), returning_by_day, max_stay_days
        )
    ]
    roundtrips.sort(key=lambda r: r.total_cost)
    return roundtrips


async def generate_index(store: Store, settings: Settings) -> list[Roundtrip]:
    """Rebuild the stored round-trip collection from the stored tickets, for both directions of the route."""
    documents = await store.find(CollectionName.TICKETS)
    tickets = [ticket_from_document(d) for d in documents]
    route = settings.default_route
    roundtrips: list[Roundtrip] = []
    for direction in (route, route.reversed()):
        roundtrips.extend(build_roundtrips(
            tickets, direction, settings.max_stay_days, settings.early_morning_until
        ))
    roundtrips.sort(key=lambda r: r.total_cost)
    await store.drop(CollectionName.ROUNDTRIPS)
    await store.insert(CollectionName.ROUNDTRIPS, [roundtrip_to_document(r) for r in roundtrips])
    logging.info(f"Generated index of {len(roundtrips)} round-trips for {route} and {route.reversed()}")
    return roundtrips
