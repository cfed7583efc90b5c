import asyncio
from datetime import date, datetime, time

import pytest

from railkiosk.config import Settings
from railkiosk.errors import StoreError
from railkiosk.models import Roundtrip, Ticket, to_moscow


class MemoryStore:
    """In-memory Store with per-operation failure switches."""

    def __init__(self):
        self.collections: dict[str, list[dict]] = {}
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def _maybe_fail(self, operation: str, collection) -> None:
        self.calls.append((operation, collection.value))
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed")

    async def find(self, collection):
        self._maybe_fail("find", collection)
        return [dict(d) for d in self.collections.get(collection.value, [])]

    async def insert(self, collection, documents):
        self._maybe_fail("insert", collection)
        self.collections.setdefault(collection.value, []).extend(dict(d) for d in documents)

    async def drop(self, collection):
        self._maybe_fail("drop", collection)
        self.collections.pop(collection.value, None)


class FakeSource:
    """Ticket source returning `per_day` tickets per requested date, failing on `failing_days`.

    Records request order and the peak number of requests in flight.
    """

    def __init__(self, per_day: int = 2, failing_days: set[date] | None = None, empty: bool = False):
        self.per_day = per_day
        self.failing_days = failing_days or set()
        self.empty = empty
        self.requested: list[date] = []
        self.events: list[tuple[str, date]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_tickets_for_date(self, day, route):
        self.requested.append(day)
        self.events.append(("start", day))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # later dates finish first so completion order differs from date order
            for _ in range(day.day % 3 + 1):
                await asyncio.sleep(0)
            if day in self.failing_days:
                raise ConnectionError(f"kiosk down for {day}")
            if self.empty:
                return []
            return [make_ticket(datetime.combine(day, time(hour=8 + i)), cost=1000 + i, route=route)
                    for i in range(self.per_day)]
        finally:
            self.in_flight -= 1
            self.events.append(("end", day))


def make_ticket(departure: datetime, cost: int = 1000, route=None, train: str = "752А",
                car_type: str = "Сидячий") -> Ticket:
    return Ticket(route=route or to_moscow(), departure=departure, train=train, car_type=car_type, cost=cost)


def make_roundtrip(cost: int, departure: datetime, weekend: bool = False, early_morning: bool = False,
                   route=None) -> Roundtrip:
    route = route or to_moscow()
    return Roundtrip(
        route=route,
        originating_ticket=make_ticket(departure, cost=cost // 2, route=route),
        returning_ticket=make_ticket(departure.replace(hour=20), cost=cost - cost // 2, route=route.reversed()),
        total_cost=cost,
        early_morning=early_morning,
        weekend=weekend,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        default_route=to_moscow(),
        timespan=7,
        tickets_count_threshold=5,
        store_backend="pickle",
        data_dir=tmp_path / "data",
        max_stay_days=3,
        early_morning_until=9,
        src_mail=None,
        src_pwd=None,
        dst_mail=None,
        output_html=tmp_path / "roundtrip.html",
        log_file=None,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()

