"""Playwright based ticket source for the RZD kiosk timetable.

One call fetches both legs of a route for a single calendar date; the train list is parsed
with BeautifulSoup so the parsing half can be exercised without a browser.
"""

import asyncio
import logging
import re
from datetime import date, datetime, timedelta
from typing import Iterable, Protocol

from bs4 import BeautifulSoup, Tag

from ..config import Settings
from ..models import Route, Ticket
from .base_driver import BasePlaywrightDriver

# Locators
TRAIN_LOCATOR = "div.route-item"
NO_TRAINS_LOCATOR = "div.route-list__empty"
TRAIN_NUMBER_LOCATOR = ".route-item__train-num"
DEPARTURE_LOCATOR = ".route-item__departure time"
ARRIVAL_LOCATOR = ".route-item__arrival time"
CAR_TYPE_LOCATOR = ".route-item__car-type"
CAR_NAME_LOCATOR = ".car-type__name"
CAR_PRICE_LOCATOR = ".car-type__price"
CAR_SEATS_LOCATOR = ".car-type__seats"


class TicketSource(Protocol):
    async def fetch_tickets_for_date(self, day: date, route: Route) -> list[Ticket]: ...


def _extract_number(text: str) -> int | None:
    # Prices come with thin/nbsp thousands separators: "от 2 345 ₽"
    digits = re.sub(r"\D", "", text)
    return int(digits) if digits else None


def _parse_time(tag: Tag | None, day: date) -> datetime | None:
    if tag is None:
        return None
    if stamp := tag.get("datetime"):
        return datetime.fromisoformat(str(stamp))
    text = tag.get_text(strip=True)
    if not re.fullmatch(r"\d{1,2}:\d{2}", text):
        return None
    return datetime.combine(day, datetime.strptime(text, "%H:%M").time())


def parse_timetable(html: str, route: Route, day: date) -> list[Ticket]:
    """Parse the kiosk train list into one Ticket per (train, car type) offer.

    Offers without a price are skipped (sold out / not on sale yet).
    """
    soup = BeautifulSoup(html, "lxml")
    tickets: list[Ticket] = []
    for train in soup.select(TRAIN_LOCATOR):
        number_tag = train.select_one(TRAIN_NUMBER_LOCATOR)
        departure = _parse_time(train.select_one(DEPARTURE_LOCATOR), day)
        if number_tag is None or departure is None:
            logging.debug("Skipping train block without number or departure time")
            continue
        arrival = _parse_time(train.select_one(ARRIVAL_LOCATOR), day)
        if arrival is not None and arrival <= departure:
            # Overnight train: arrival time belongs to the next day
            arrival += timedelta(days=1)
        for car in train.select(CAR_TYPE_LOCATOR):
            price_tag = car.select_one(CAR_PRICE_LOCATOR)
            cost = _extract_number(price_tag.get_text()) if price_tag else None
            if cost is None:
                continue
            name_tag = car.select_one(CAR_NAME_LOCATOR)
            seats_tag = car.select_one(CAR_SEATS_LOCATOR)
            tickets.append(Ticket(
                route=route,
                departure=departure,
                arrival=arrival,
                train=number_tag.get_text(strip=True),
                car_type=name_tag.get_text(strip=True) if name_tag else "",
                cost=cost,
                seats=(_extract_number(seats_tag.get_text()) or 0) if seats_tag else 0,
            ))
    return tickets


def extract_dates(tickets: Iterable[Ticket]) -> list[date]:
    """Sorted distinct departure dates."""
    return sorted({ticket.day for ticket in tickets})


class RzdKiosk(BasePlaywrightDriver):
    def __init__(self, settings: Settings):
        super().__init__(headless=settings.headless, timeout=settings.kiosk_timeout_ms)
        self.url_template = settings.kiosk_url

    def build_url(self, day: date, route: Route) -> str:
        return self.url_template.format(
            origin=route.origin.code,
            destination=route.destination.code,
            date=day.strftime("%d.%m.%Y"),
        )

    async def _fetch_leg(self, day: date, route: Route) -> list[Ticket]:
        page = await self.new_page()
        try:
            await page.goto(self.build_url(day, route))
            await page.wait_for_selector(f"{TRAIN_LOCATOR}, {NO_TRAINS_LOCATOR}", state="attached")
            html = await page.content()
        finally:
            await page.close()
        tickets = parse_timetable(html, route, day)
        logging.debug(f"{route} {day}: {len(tickets)} tickets")
        return tickets

    async def fetch_tickets_for_date(self, day: date, route: Route) -> list[Ticket]:
        there, back = await asyncio.gather(
            self._fetch_leg(day, route),
            self._fetch_leg(day, route.reversed()),
        )
        return there + back
