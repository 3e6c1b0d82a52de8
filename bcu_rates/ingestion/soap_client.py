"""zeep-based transport for the BCU SOAP web services."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterator, Mapping, Sequence

import requests
from tenacity import RetryError, Retrying, before_sleep_log, stop_after_attempt, wait_exponential
from zeep import Client, Settings
from zeep.helpers import serialize_object
from zeep.transports import Transport

from bcu_rates.exceptions import TransportError
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

CURRENCY_OPERATIONS: tuple[str, ...] = (
    "Execute",
    "awsbcumonedas",
    "execute",
    "WSBCUMONEDAS",
    "WSCotizacionesMonedas",
)
QUOTATION_OPERATIONS: tuple[str, ...] = (
    "Execute",
    "awsbcucotizaciones",
    "execute",
    "WSBCUCOTIZACIONES",
    "WSCotizaciones",
)
LAST_CLOSING_OPERATIONS: tuple[str, ...] = (
    "awsultimocierre",
    "execute",
    "WSULTIMOCIERRE",
    "WSUltimoCierre",
)


class BCUSoapClient:
    """Invoke BCU operations, trying every published name until one answers.

    One zeep ``Client`` is built per WSDL and reused. Construction is
    retried with exponential backoff under a per-WSDL lock, so concurrent
    requests never build the same client twice.
    """

    def __init__(
        self,
        settings: BCUSettings | None = None,
        *,
        session: requests.Session | None = None,
        client_factory: Callable[[str], Client] | None = None,
    ) -> None:
        self.settings = settings or BCUSettings()
        self.timeout = self.settings.timeout
        self.max_attempts = self.settings.client_retries
        self.backoff_seconds = self.settings.retry_backoff
        self.session = session or requests.Session()
        self._client_factory = client_factory or self._build_client
        self._clients: dict[str, Client] = {}
        self._creation_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _build_client(self, wsdl: str) -> Client:
        transport = Transport(
            session=self.session,
            timeout=self.timeout,
            operation_timeout=self.timeout,
        )
        return Client(wsdl, transport=transport, settings=Settings(strict=False, xml_huge_tree=True))

    def get_client(self, wsdl: str) -> Client:
        """Return the cached client for ``wsdl``, creating it on first use."""

        with self._lock:
            client = self._clients.get(wsdl)
            if client is not None:
                return client
            wsdl_lock = self._creation_locks.setdefault(wsdl, threading.Lock())

        # Only callers of the same WSDL wait on each other's retries.
        with wsdl_lock:
            with self._lock:
                client = self._clients.get(wsdl)
            if client is None:
                client = self._create_with_retries(wsdl)
                with self._lock:
                    self._clients[wsdl] = client
            return client

    def _create_with_retries(self, wsdl: str) -> Client:
        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds),
            before_sleep=before_sleep_log(LOGGER, logging.WARNING),
        )
        LOGGER.debug("Creating SOAP client for %s (up to %s attempts)", wsdl, self.max_attempts)
        try:
            client = retryer(self._client_factory, wsdl)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            raise TransportError(
                f"Failed to create SOAP client after {self.max_attempts} attempts: {last_error}"
            ) from last_error
        LOGGER.debug("SOAP client created: %s", wsdl)
        return client

    @staticmethod
    def _operation_proxies(client: Client) -> Iterator[Any]:
        """Yield the default service proxy, then one proxy per service/port."""

        try:
            default = client.service
        except ValueError:
            default = None
        if default is not None:
            yield default
        for service in client.wsdl.services.values():
            for port in service.ports.values():
                yield client.bind(service.name, port.name)

    def resolve_operation(self, client: Client, name: str) -> Callable[..., Any] | None:
        for proxy in self._operation_proxies(client):
            try:
                return proxy[name]
            except (AttributeError, KeyError, ValueError):
                continue
        return None

    def invoke(
        self,
        wsdl: str,
        operations: Sequence[str],
        args: Mapping[str, Any],
    ) -> Any:
        """Call the first operation in ``operations`` that exists and succeeds.

        Returns the response serialised to plain dicts/lists, or ``None``
        when every candidate is missing or fails. zeep unwraps single-child
        outputs, so a bare list of rows is a normal result.
        """

        client = self.get_client(wsdl)
        for name in operations:
            operation = self.resolve_operation(client, name)
            if operation is None:
                LOGGER.debug("SOAP method %s not found in client", name)
                continue
            try:
                LOGGER.debug("Attempting SOAP method %s with %s", name, dict(args))
                response = operation(**args)
            except Exception as exc:
                LOGGER.warning("SOAP method %s failed, trying next: %s", name, exc)
                continue
            LOGGER.debug("SOAP method %s succeeded", name)
            return serialize_object(response, target_cls=dict)

        LOGGER.error("All SOAP methods failed for: %s", ", ".join(operations))
        return None

    def close(self) -> None:
        with self._lock:
            self._clients.clear()
        self.session.close()

    def __enter__(self) -> "BCUSoapClient":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()


__all__ = [
    "BCUSoapClient",
    "CURRENCY_OPERATIONS",
    "LAST_CLOSING_OPERATIONS",
    "QUOTATION_OPERATIONS",
]
