from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True, slots=True)
class Station:
    """Railway station as known to the ticket kiosk.

    alias is a short human handle ('spb', 'mow'); code is the kiosk station code used in queries.
    """
    alias: str
    name: str
    code: str


@dataclass(frozen=True, slots=True)
class Route:
    origin: Station
    destination: Station

    def reversed(self) -> "Route":
        return Route(origin=self.destination, destination=self.origin)

    def __str__(self) -> str:
        return f"{self.origin.alias}->{self.destination.alias}"


SPB = Station(alias="spb", name="Санкт-Петербург", code="2004000")
MOW = Station(alias="mow", name="Москва", code="2000000")


def to_moscow() -> Route:
    return Route(origin=SPB, destination=MOW)


def to_spb() -> Route:
    return Route(origin=MOW, destination=SPB)


ROUTES = {
    "to-moscow": to_moscow(),
    "to-spb": to_spb(),
}


@dataclass(slots=True)
class Ticket:
    """Single priced seat offer for one train departure on one route leg.

    id and collected_at stay empty until the collector stamps the whole batch;
    after the batch is persisted the ticket is never changed again.
    """
    route: Route
    departure: datetime
    train: str
    car_type: str
    cost: int
    seats: int = 0
    arrival: datetime | None = None
    id: int | None = None
    collected_at: datetime | None = None

    @property
    def day(self) -> date:
        return self.departure.date()


@dataclass(slots=True)
class Roundtrip:
    """Originating + returning ticket pair. early_morning and weekend are exact-match selection keys."""
    route: Route
    originating_ticket: Ticket
    returning_ticket: Ticket
    total_cost: int
    early_morning: bool = False
    weekend: bool = False


@dataclass(slots=True)
class TicketBatch:
    tickets: list[Ticket]
    collected_at: datetime
