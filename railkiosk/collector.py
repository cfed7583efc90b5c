"""Portioned ticket collection for the configured time window.

Fetches are issued per calendar date. At most MAXIMUM_REQUESTS dates are fetched at a time; a portion
has to settle completely before the next one starts. The stored ticket collection is replaced only
after the whole window was fetched and passed the sanity checks.

Precondition: a single collection run at a time. Two concurrent runs would race on drop + insert.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta

from tqdm import tqdm

from .config import MAXIMUM_REQUESTS, Settings
from .errors import (
    BelowThreshold,
    DatasetLost,
    EmptyCollection,
    FetchFailure,
    IntegrityMismatch,
    StoreError,
    StoreWriteFailure,
)
from .models import Route, Ticket, TicketBatch
from .scraping.kiosk import TicketSource, extract_dates
from .storage import CollectionName, Store, ticket_from_document, ticket_to_document


def plan_portions(window_length: int, max_concurrent: int = MAXIMUM_REQUESTS) -> list[int]:
    """Request portions: full portions of max_concurrent days, then the remainder (if any)."""
    portions = [max_concurrent] * (window_length // max_concurrent)
    if remainder := window_length % max_concurrent:
        portions.append(remainder)
    return portions


def collection_window(today: date, limit: int, offset: int = 0) -> list[date]:
    """Dates [today + offset, today + offset + limit), one per day."""
    start = today + timedelta(days=offset)
    return [start + timedelta(days=i) for i in range(limit)]


def _discard_result(task: asyncio.Task) -> None:
    # Late results and errors of an aborted portion are dropped
    if not task.cancelled():
        task.exception()


async def check_integrity(store: Store, settings: Settings, now: datetime | None = None) -> None:
    """Raise IntegrityMismatch unless stored tickets cover exactly the window starting today.

    A check run after midnight relative to the collection run sees a shifted window and fails.
    """
    now = now or datetime.now()
    documents = await store.find(CollectionName.TICKETS)
    stored_dates = extract_dates(ticket_from_document(d) for d in documents)
    expected = collection_window(now.date(), settings.timespan)
    if stored_dates != expected:
        raise IntegrityMismatch(expected, stored_dates)
    logging.info("Fetched tickets for all available dates.")


class Collector:
    def __init__(self, source: TicketSource, store: Store, settings: Settings,
                 max_concurrent: int = MAXIMUM_REQUESTS):
        self.source = source
        self.store = store
        self.settings = settings
        self.max_concurrent = max_concurrent

    @property
    def route(self) -> Route:
        return self.settings.default_route

    async def _fetch_date(self, day: date) -> list[Ticket]:
        try:
            return await self.source.fetch_tickets_for_date(day, self.route)
        except Exception as exc:
            raise FetchFailure(day, repr(exc)) from exc

    async def _fetch_portion(self, start: date, size: int) -> list[Ticket]:
        """Fetch `size` consecutive dates concurrently. Result order is completion order, not date order."""
        tasks = [asyncio.ensure_future(self._fetch_date(day)) for day in collection_window(start, size)]
        tickets: list[Ticket] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                tickets.extend(await next_done)
        except FetchFailure:
            for task in tasks:
                if not task.done():
                    task.add_done_callback(_discard_result)
                else:
                    _discard_result(task)
            raise
        return tickets

    async def fetch_all(self, today: date) -> list[Ticket]:
        portions = plan_portions(self.settings.timespan, self.max_concurrent)
        logging.info(f"Collecting {self.settings.timespan} days of {self.route} in {len(portions)} portions")
        all_tickets: list[Ticket] = []
        for index, size in enumerate(tqdm(portions, desc="Collecting portions", leave=False)):
            start = today + timedelta(days=index * self.max_concurrent)
            portion = await self._fetch_portion(start, size)
            logging.debug(f"Portion {index} ({start}, {size} days): {len(portion)} tickets")
            all_tickets.extend(portion)
        return all_tickets

    def _check_sanity(self, tickets: list[Ticket]) -> None:
        # Both checks keep the previously stored tickets untouched
        if not tickets:
            raise EmptyCollection()
        if len(tickets) < self.settings.tickets_count_threshold:
            raise BelowThreshold(len(tickets), self.settings.tickets_count_threshold)

    @staticmethod
    def _stamp(tickets: list[Ticket], collected_at: datetime) -> None:
        for ticket_id, ticket in enumerate(tickets, start=1):
            ticket.id = ticket_id
            ticket.collected_at = collected_at

    async def _replace_stored(self, tickets: list[Ticket]) -> None:
        try:
            await self.store.drop(CollectionName.TICKETS)
        except StoreError as exc:
            raise StoreWriteFailure("Dropping stored tickets failed, previous tickets kept") from exc
        try:
            await self.store.insert(CollectionName.TICKETS, [ticket_to_document(t) for t in tickets])
        except StoreError as exc:
            raise DatasetLost(
                f"Inserting {len(tickets)} tickets failed after the old tickets were dropped; "
                "ticket collection is empty until the next successful run"
            ) from exc

    async def collect(self, now: datetime | None = None) -> TicketBatch:
        """Fetch the whole window, stamp the batch and atomically replace the stored tickets.

        `now` anchors both the window start and collected_at; it is read once per run.
        """
        now = now or datetime.now()
        tickets = await self.fetch_all(now.date())
        self._check_sanity(tickets)
        self._stamp(tickets, now)
        logging.info(f"Collected tickets length: {len(tickets)}")
        await self._replace_stored(tickets)
        logging.info("Successfully collected tickets.")
        return TicketBatch(tickets=tickets, collected_at=now)
