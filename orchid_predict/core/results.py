"""
Shared result state read by the presentation layer.
"""

from datetime import datetime, timezone
from typing import Any


class ResultState:
    """Last prediction, last error and in-flight bookkeeping.

    `loading` is derived from the set of attempt ids currently awaiting
    the remote service, so it is true strictly while a call is in flight
    even when an older and a newer call overlap.
    """

    def __init__(self):
        self.prediccion: Any = None
        self.error: str | None = None
        self.last_update: datetime | None = None
        self._in_flight: set[int] = set()

    @property
    def loading(self) -> bool:
        return bool(self._in_flight)

    def begin(self, attempt: int) -> None:
        self._in_flight.add(attempt)

    def finish(self, attempt: int) -> None:
        self._in_flight.discard(attempt)

    def succeed(self, attempt: int, prediccion: Any) -> None:
        self.finish(attempt)
        self.prediccion = prediccion
        self.error = None
        self.last_update = datetime.now(timezone.utc)

    def fail(self, attempt: int, message: str) -> None:
        # A failed refine must not erase an earlier successful prediction.
        self.finish(attempt)
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def reset(self) -> None:
        self.prediccion = None
        self.error = None
        self.last_update = None
        self._in_flight.clear()
