"""Abstractions for pluggable SOAP transports."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence


class SoapTransport(Protocol):
    """Contract for invoking a logical BCU operation.

    ``operations`` lists the names the same operation is published under
    across WSDL versions. Implementations try them in order and return the
    first successful response as plain mappings/lists, or ``None`` once every
    candidate failed. Failing to reach ``wsdl`` at all raises
    :class:`bcu_rates.exceptions.TransportError`.
    """

    def invoke(
        self,
        wsdl: str,
        operations: Sequence[str],
        args: Mapping[str, Any],
    ) -> Any:
        ...  # pragma: no cover - protocol definition


__all__ = ["SoapTransport"]
