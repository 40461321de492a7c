from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InvalidSentimentRecord:
    record_id: int | str | None
    sentiment: str | None

    def as_dict(self) -> dict:
        return {"record_id": self.record_id, "sentiment": self.sentiment}


class DataIntegrityError(Exception):
    """
    Raised when raw records carry a sentiment label outside the closed set.
    Fatal to the run: nothing is written and the offending records are reported.
    """

    def __init__(self, offenders: list[InvalidSentimentRecord]) -> None:
        self.offenders = list(offenders)
        super().__init__(self._message())

    def _message(self) -> str:
        shown = ", ".join(f"id={o.record_id} sentiment={o.sentiment!r}" for o in self.offenders[:10])
        more = f" (+{len(self.offenders) - 10} more)" if len(self.offenders) > 10 else ""
        return f"{len(self.offenders)} record(s) with unrecognized sentiment: {shown}{more}"


class StoreUnavailableError(Exception):
    """Reading raw records or writing summary rows failed; prior summary state is preserved."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}" if operation else message)
