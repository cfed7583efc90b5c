"""Exceptions raised by collection, storage, integrity checks and selection."""

from datetime import date


class KioskError(Exception):
    """Base error for railkiosk failures."""


class FetchFailure(KioskError):
    """Raised when tickets for a single date could not be fetched; aborts the whole collection run."""

    def __init__(self, day: date, reason: str = ""):
        self.day = day
        message = f"Failed to fetch tickets for {day.isoformat()}"
        super().__init__(f"{message}: {reason}" if reason else message)


class CollectionError(KioskError):
    """Collected batch failed a sanity check; stored tickets were left untouched."""


class EmptyCollection(CollectionError):
    def __init__(self):
        super().__init__("No tickets fetched.")


class BelowThreshold(CollectionError):
    def __init__(self, count: int, threshold: int):
        self.count = count
        self.threshold = threshold
        super().__init__(f"Tickets fetched, but count too low: {count} < {threshold}")


class StoreError(KioskError):
    """Raised when a store backend operation fails."""


class StoreWriteFailure(StoreError):
    """Dropping or inserting a collection failed. Raised on drop, the previous data is still in place."""


class DatasetLost(StoreWriteFailure):
    """Insert failed after a successful drop: the collection is now empty."""


class IntegrityMismatch(KioskError):
    def __init__(self, expected: list[date], actual: list[date]):
        self.expected = expected
        self.actual = actual
        missing = sorted(set(expected) - set(actual))
        window = f"{expected[0].isoformat()}..{expected[-1].isoformat()}" if expected else "<empty>"
        super().__init__(
            f"Stored tickets do not cover window {window} ({len(expected)} days): "
            f"{len(actual)} dates stored, missing {[d.isoformat() for d in missing]}"
        )


class SelectionReadFailure(KioskError):
    """Round-trips could not be read from the store during selection."""
