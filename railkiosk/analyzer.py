"""Cheapest round-trip selection over the stored round-trip index."""

import logging
from dataclasses import dataclass
from typing import Sequence

import dacite

from .config import settings as default_settings
from .errors import SelectionReadFailure, StoreError
from .models import Roundtrip, Route
from .storage import CollectionName, Store, roundtrip_from_document


@dataclass(slots=True)
class SelectionOptions:
    """Selection constraints.

    route, early_morning and weekend are exact-match keys (None = don't filter on it, route None = default
    route). total_cost is a price ceiling and never takes part in equality filtering.
    """
    route: Route | None = None
    early_morning: bool | None = None
    weekend: bool | None = None
    total_cost: int | None = None

    FLAG_KEYS = ("early_morning", "weekend")

    def exact_match_filters(self, default_route: Route) -> dict[str, object]:
        filters: dict[str, object] = {"route": self.route or default_route}
        for key in self.FLAG_KEYS:
            if (value := getattr(self, key)) is not None:
                filters[key] = value
        return filters


@dataclass(slots=True)
class SelectionResult:
    roundtrip: Roundtrip | None = None
    message: str | None = None
    error: SelectionReadFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def price_limit_message(total_cost: int) -> str:
    return f"Я не нашёл билетов за {total_cost} ₽ и меньше. Вот самый дешёвый:"


def filter_roundtrips(roundtrips: Sequence[Roundtrip], filters: dict[str, object]) -> list[Roundtrip]:
    return [r for r in roundtrips if all(getattr(r, key) == value for key, value in filters.items())]


def select_cheapest_roundtrip(roundtrips: Sequence[Roundtrip], options: SelectionOptions,
                              default_route: Route) -> SelectionResult:
    """Pick the best round-trip; ties resolve to the earliest one in `roundtrips` order.

    With a price ceiling: the earliest-departing trip at or under the ceiling, or, if none qualifies,
    the cheapest trip plus an advisory message. Without a ceiling: the cheapest trip.
    """
    filtered = filter_roundtrips(roundtrips, options.exact_match_filters(default_route))
    if not filtered:
        return SelectionResult()

    if options.total_cost is None:
        return SelectionResult(roundtrip=min(filtered, key=lambda r: r.total_cost))

    cheap_enough = [r for r in filtered if r.total_cost <= options.total_cost]
    if cheap_enough:
        return SelectionResult(roundtrip=min(cheap_enough, key=lambda r: r.originating_ticket.departure))
    return SelectionResult(
        roundtrip=min(filtered, key=lambda r: r.total_cost),
        message=price_limit_message(options.total_cost),
    )


async def analyze(store: Store, options: SelectionOptions | None = None,
                  default_route: Route | None = None) -> SelectionResult:
    """Read the stored round-trips and select one. Read failures are logged and returned, never raised."""
    options = options or SelectionOptions()
    default_route = default_route or default_settings.default_route
    logging.debug(f"Selecting the cheapest roundtrip with options {options}")
    try:
        documents = await store.find(CollectionName.ROUNDTRIPS)
        roundtrips = [roundtrip_from_document(d) for d in documents]
    except (StoreError, dacite.DaciteError) as exc:
        logging.exception("Reading round-trips failed")
        error = SelectionReadFailure(f"Cannot read stored round-trips: {exc}")
        error.__cause__ = exc
        return SelectionResult(error=error)
    return select_cheapest_roundtrip(roundtrips, options, default_route)
