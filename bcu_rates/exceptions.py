"""Exception hierarchy raised by the BCU lookup layer.

"No data for the requested date" is reported as a ``None`` result, never raised.
"""

from __future__ import annotations

from typing import Sequence


class BCUError(Exception):
    """Base class for every error raised by :mod:`bcu_rates`."""


class CurrencyNotFoundError(BCUError):
    """No USD-like entry was found in the currency list of the group."""

    def __init__(self, message: str, *, available: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.available = tuple(available)


class UpstreamError(BCUError):
    """The BCU service reported a non-zero status other than "no data"."""

    def __init__(self, code: int, message: str | None = None) -> None:
        self.code = code
        self.message = message or "BCU web service error"
        super().__init__(f"BCU Error {code}: {self.message}")


class TransportError(BCUError):
    """The SOAP client could not be built or no operation candidate answered."""


class MalformedResponseError(BCUError):
    """The upstream envelope or one of its records had an unexpected shape."""


__all__ = [
    "BCUError",
    "CurrencyNotFoundError",
    "UpstreamError",
    "TransportError",
    "MalformedResponseError",
]
