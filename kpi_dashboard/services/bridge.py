# kpi_dashboard/services/bridge.py
# Sends one named action + payload to the spreadsheet backend.
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from kpi_dashboard.config import Settings, settings
from kpi_dashboard.core.errors import RemoteActionError, RemoteTimeoutError, TransportError

logger = logging.getLogger(__name__)


class Transport(ABC):
    name: str = "base"
    is_connected: bool = True

    @abstractmethod
    async def call(self, action: str, payload: Any = None) -> Any:
        ...

    async def aclose(self) -> None:
        return None


class HttpTransport(Transport):
    """POSTs {action, payload} to the web endpoint and unwraps the envelope."""

    name = "http"

    def __init__(self, url: str, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def call(self, action: str, payload: Any = None) -> Any:
        body = json.dumps({"action": action, "payload": payload})
        try:
            # text/plain keeps the request "simple": the endpoint never sees a pre-flight
            response = await self._client.post(
                self.url,
                content=body,
                headers={"Content-Type": "text/plain;charset=utf-8"},
                follow_redirects=True,
            )
            response.raise_for_status()
            envelope = response.json()
        except httpx.HTTPStatusError as http_err:
            raise TransportError(action, f"Backend answered HTTP {http_err.response.status_code}") from http_err
        except httpx.HTTPError as e:
            raise TransportError(action, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise TransportError(action, "Backend response is not valid JSON") from e

        if not isinstance(envelope, dict):
            raise TransportError(action, "Backend response is not a result envelope")
        if envelope.get("status") == "error":
            raise RemoteActionError(action, envelope.get("message") or "Backend reported an error")
        return envelope.get("data")

    async def aclose(self) -> None:
        await self._client.aclose()


class HostBridgeTransport(Transport):
    """Calls functions on a host-provided RPC handle.

    The handle follows the callback style of embedded script runners::

        handle.with_success_handler(on_ok).with_failure_handler(on_err).getAllData()

    Callbacks may fire on a foreign thread, so results are handed back to the
    event loop with ``call_soon_threadsafe``.
    """

    name = "host"

    def __init__(self, handle: Any, timeout: float = 30.0):
        self.handle = handle
        self.timeout = timeout

    async def call(self, action: str, payload: Any = None) -> Any:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(result=None, error=None):
            if future.done():
                return
            if error is not None:
                message = str(error) or f"Host function {action} failed"
                future.set_exception(TransportError(action, message))
            else:
                future.set_result(result)

        def on_success(result=None):
            loop.call_soon_threadsafe(settle, result, None)

        def on_failure(error=None):
            loop.call_soon_threadsafe(settle, None, error if error is not None else "unknown error")

        runner = self.handle.with_success_handler(on_success).with_failure_handler(on_failure)
        function = getattr(runner, action, None)
        if function is None:
            raise TransportError(action, f"Host bridge has no function {action}")

        args = () if payload is None else (payload,)
        try:
            function(*args)
        except Exception as e:
            raise TransportError(action, str(e) or type(e).__name__) from e

        try:
            return await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            raise RemoteTimeoutError(action, self.timeout) from None


class MockTransport(Transport):
    """Local development: no backend at all, every call resolves with None."""

    name = "mock"
    is_connected = False

    def __init__(self, delay: float = 0.6):
        self.delay = delay

    async def call(self, action: str, payload: Any = None) -> Any:
        logger.warning("[Dev Mode] No API URL or host bridge configured. Mocking: %s %r", action, payload)
        await asyncio.sleep(self.delay)
        return None


class RemoteBridge:
    def __init__(self, transport: Transport):
        self.transport = transport

    @property
    def is_connected(self) -> bool:
        return self.transport.is_connected

    async def invoke(self, action: str, payload: Any = None) -> Any:
        return await self.transport.call(action, payload)

    async def aclose(self) -> None:
        await self.transport.aclose()


def build_transport(config: Settings = settings, host: Any = None) -> Transport:
    """Pick the transport once, at startup.

    TRANSPORT=auto keeps the historical priority: endpoint URL, then host
    handle, then the mock.
    """
    mode = config.TRANSPORT
    if mode == "auto":
        if config.API_URL:
            mode = "http"
        elif host is not None:
            mode = "host"
        else:
            mode = "mock"

    if mode == "http":
        if not config.API_URL:
            raise ValueError("TRANSPORT=http requires API_URL")
        return HttpTransport(config.API_URL, timeout=config.REQUEST_TIMEOUT_SECONDS)
    if mode == "host":
        if host is None:
            raise ValueError("TRANSPORT=host requires a host bridge handle")
        return HostBridgeTransport(host, timeout=config.HOST_RPC_TIMEOUT_SECONDS)
    return MockTransport(delay=config.MOCK_DELAY_SECONDS)


def build_bridge(config: Settings = settings, host: Any = None) -> RemoteBridge:
    transport = build_transport(config, host)
    logger.info("Remote bridge using %s transport", transport.name)
    return RemoteBridge(transport)
