from __future__ import annotations

import threading
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from bcu_rates import BCURates
from bcu_rates.exceptions import TransportError
from bcu_rates.ingestion import soap_client
from bcu_rates.ingestion.soap_client import BCUSoapClient
from bcu_rates.settings import BCUSettings


class _DummyProxy:
    def __init__(self, operations: dict[str, Callable[..., Any]]) -> None:
        self.operations = operations

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self.operations[name]


class _DummyClient:
    def __init__(
        self,
        operations: dict[str, Callable[..., Any]] | None = None,
        bound: dict[str, Callable[..., Any]] | None = None,
    ) -> None:
        self.service = _DummyProxy(operations or {})
        self._bound = _DummyProxy(bound or {})
        port = SimpleNamespace(name="ExchangeSoapPort")
        service = SimpleNamespace(name="ExchangeService", ports={"ExchangeSoapPort": port})
        self.wsdl = SimpleNamespace(services={"ExchangeService": service})
        self.bindings: list[tuple[str, str]] = []

    def bind(self, service_name: str, port_name: str) -> _DummyProxy:
        self.bindings.append((service_name, port_name))
        return self._bound


def _settings(**overrides: Any) -> BCUSettings:
    return BCUSettings(retry_backoff=0, **overrides)


def test_invoke_falls_through_to_next_candidate() -> None:
    calls: list[str] = []

    def broken(**kwargs):
        calls.append("Execute")
        raise RuntimeError("SOAP fault")

    def working(**kwargs):
        calls.append("execute")
        return {"Salida": {"Grupo": kwargs["Entrada"]["Grupo"]}}

    client = _DummyClient({"Execute": broken, "execute": working})
    transport = BCUSoapClient(_settings(), client_factory=lambda wsdl: client)

    result = transport.invoke("x.wsdl", ["Missing", "Execute", "execute"], {"Entrada": {"Grupo": 2}})

    assert result == {"Salida": {"Grupo": 2}}
    assert calls == ["Execute", "execute"]


def test_operation_found_on_bound_port() -> None:
    client = _DummyClient(bound={"WSCotizaciones": lambda **kwargs: {"ok": True}})
    transport = BCUSoapClient(_settings(), client_factory=lambda wsdl: client)

    assert transport.invoke("x.wsdl", ["Execute", "WSCotizaciones"], {}) == {"ok": True}
    assert ("ExchangeService", "ExchangeSoapPort") in client.bindings


def test_list_response_keeps_every_row() -> None:
    rows = [
        {"Codigo": 1111, "Nombre": "EURO"},
        {"Codigo": 2224, "Nombre": "DLS. USA CABLE"},
        {"Codigo": 2225, "Nombre": "DLS. USA BILLETE"},
    ]
    client = _DummyClient({"Execute": lambda **kwargs: rows})
    transport = BCUSoapClient(_settings(), client_factory=lambda wsdl: client)

    assert transport.invoke("x.wsdl", ["Execute"], {}) == rows


def test_unwrapped_currency_list_resolves_usd() -> None:
    rows = [
        {"Codigo": 1111, "Nombre": "EURO"},
        {"Codigo": 2224, "Nombre": "DLS. USA CABLE"},
        {"Codigo": 2225, "Nombre": "DLS. USA BILLETE"},
    ]
    client = _DummyClient({"Execute": lambda **kwargs: rows})
    transport = BCUSoapClient(_settings(), client_factory=lambda wsdl: client)

    currency = BCURates(_settings(), transport=transport).get_currency_code()

    assert currency.code == 2225


def test_all_candidates_failing_returns_none(caplog: pytest.LogCaptureFixture) -> None:
    def broken(**kwargs):
        raise RuntimeError("boom")

    client = _DummyClient({"Execute": broken})
    transport = BCUSoapClient(_settings(), client_factory=lambda wsdl: client)

    assert transport.invoke("x.wsdl", ["Execute", "execute"], {}) is None
    assert "All SOAP methods failed for: Execute, execute" in caplog.text


def test_clients_are_cached_per_wsdl() -> None:
    built: list[str] = []

    def factory(wsdl: str) -> _DummyClient:
        built.append(wsdl)
        return _DummyClient()

    transport = BCUSoapClient(_settings(), client_factory=factory)

    first = transport.get_client("a.wsdl")
    assert transport.get_client("a.wsdl") is first
    transport.get_client("b.wsdl")

    assert built == ["a.wsdl", "b.wsdl"]


def test_client_creation_is_retried() -> None:
    attempts: list[int] = []

    def flaky(wsdl: str) -> _DummyClient:
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("WSDL unreachable")
        return _DummyClient()

    transport = BCUSoapClient(_settings(client_retries=3), client_factory=flaky)

    assert isinstance(transport.get_client("x.wsdl"), _DummyClient)
    assert len(attempts) == 3


def test_client_creation_gives_up_with_transport_error() -> None:
    def unreachable(wsdl: str) -> _DummyClient:
        raise ConnectionError("WSDL unreachable")

    transport = BCUSoapClient(_settings(client_retries=2), client_factory=unreachable)

    with pytest.raises(TransportError) as excinfo:
        transport.get_client("x.wsdl")

    assert "after 2 attempts" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_build_client_uses_zeep_with_session_and_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    class _RecordingClient:
        def __init__(self, wsdl, transport=None, settings=None) -> None:
            captured.update(wsdl=wsdl, transport=transport, settings=settings)

    monkeypatch.setattr(soap_client, "Client", _RecordingClient)
    transport = BCUSoapClient(_settings(timeout=12.5))

    client = transport.get_client("https://example.test/service?wsdl")

    assert isinstance(client, _RecordingClient)
    assert captured["wsdl"] == "https://example.test/service?wsdl"
    assert captured["transport"].session is transport.session
    assert captured["transport"].operation_timeout == 12.5
    assert captured["settings"].strict is False


def test_close_drops_cached_clients() -> None:
    transport = BCUSoapClient(_settings(), client_factory=lambda wsdl: _DummyClient())
    transport.get_client("x.wsdl")

    transport.close()

    assert transport._clients == {}


def test_slow_wsdl_does_not_block_other_clients() -> None:
    slow_started = threading.Event()
    slow_done = threading.Event()
    release = threading.Event()
    slow_finished_first: list[bool] = []

    def factory(wsdl: str) -> _DummyClient:
        if wsdl == "slow.wsdl":
            slow_started.set()
            release.wait(timeout=5)
            slow_done.set()
        else:
            slow_finished_first.append(slow_done.is_set())
        return _DummyClient()

    transport = BCUSoapClient(_settings(), client_factory=factory)
    worker = threading.Thread(target=transport.get_client, args=("slow.wsdl",))
    worker.start()
    assert slow_started.wait(timeout=5)

    fast = transport.get_client("fast.wsdl")
    release.set()
    worker.join(timeout=5)

    assert isinstance(fast, _DummyClient)
    assert slow_finished_first == [False]
    assert not worker.is_alive()
    assert set(transport._clients) == {"slow.wsdl", "fast.wsdl"}
