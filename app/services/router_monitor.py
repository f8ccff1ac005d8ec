"""Router telemetry WebSocket client with fixed-delay reconnect.

Connection lifecycle::

    CONNECTING -> OPEN -> CLOSED -> (delay) -> CONNECTING ...

``stop()`` ends the cycle: it cancels the pending reconnect timer, closes the
connection and prevents any later close from scheduling a new attempt.
Frames are consumed by a single task, one at a time, so the metrics store
only ever has one writer.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Optional

import aiohttp

from app.services.metrics_store import RouterMetricsStore
from app.services.payloads import decode_frame, interpret_payload

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0
HEARTBEAT_SECONDS = 30.0

Connector = Callable[[str], AsyncContextManager[AsyncIterator[Any]]]


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class TransportError(Exception):
    """Raised when the WebSocket reports an error frame."""


async def _iter_frames(ws: aiohttp.ClientWebSocketResponse) -> AsyncIterator[Any]:
    async for message in ws:
        if message.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
            yield message.data
        elif message.type == aiohttp.WSMsgType.ERROR:
            raise TransportError(f"WebSocket error: {ws.exception()}")


@asynccontextmanager
async def aiohttp_connector(url: str) -> AsyncIterator[AsyncIterator[Any]]:
    """Open the upstream WebSocket and yield its data frames."""
    async with aiohttp.ClientSession() as session:
        async with session.ws_connect(url, heartbeat=HEARTBEAT_SECONDS) as ws:
            yield _iter_frames(ws)


class RouterMonitor:
    """Keeps a :class:`RouterMetricsStore` fed from the telemetry upstream.

    Args:
        url: WebSocket address of the monitoring process.
        store: Store receiving reconciled metrics.
        reconnect_delay: Seconds to wait after a close before reconnecting.
        connector: Factory returning an async context manager that yields an
            async iterator of raw frames. Defaults to :func:`aiohttp_connector`.
    """

    def __init__(
        self,
        url: str,
        store: RouterMetricsStore,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        connector: Optional[Connector] = None,
    ):
        self.url = url
        self.store = store
        self.reconnect_delay = reconnect_delay
        self._connector = connector or aiohttp_connector
        self.state = ConnectionState.CLOSED
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._should_reconnect = False

    @property
    def running(self) -> bool:
        return self._should_reconnect

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None and not self._reconnect_handle.cancelled()

    def start(self) -> None:
        """Open the connection. Must be called from a running event loop."""
        if self._should_reconnect:
            return
        self._should_reconnect = True
        self._connect()

    async def stop(self) -> None:
        """Tear the connection down; safe to call more than once."""
        self._should_reconnect = False
        self._cancel_reconnect()

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if self.state != ConnectionState.CLOSED:
            logger.info("Router monitor stopped")
        self.state = ConnectionState.CLOSED

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _connect(self) -> None:
        self._reconnect_handle = None
        if not self._should_reconnect:
            return
        self.state = ConnectionState.CONNECTING
        self.last_error = None
        logger.info("Connecting to router monitor at %s", self.url)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            async with self._connector(self.url) as frames:
                self._handle_open()
                async for frame in frames:
                    await self.handle_frame(frame)
        except asyncio.CancelledError:
            self.state = ConnectionState.CLOSED
            raise
        except Exception as exc:
            self.last_error = f"Connection problem: {exc}"
            logger.warning("Router monitor connection failed: %s", exc)
        self._handle_closed()

    def _handle_open(self) -> None:
        self.state = ConnectionState.OPEN
        self.last_error = None
        # A new connection starts from an empty table and waits for a snapshot.
        self.store.clear()
        logger.info("Router monitor connection open")

    def _handle_closed(self) -> None:
        self.state = ConnectionState.CLOSED
        if self._should_reconnect:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        logger.info("Reconnecting to router monitor in %.1fs", self.reconnect_delay)
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._connect)

    async def handle_frame(self, frame: Any) -> None:
        """Decode one frame and reconcile its payloads into the store.

        Failures are recorded in ``last_error``; they never close the
        connection.
        """
        try:
            applied = False
            for payload in await decode_frame(frame):
                update = interpret_payload(payload)
                if update is not None and self.store.apply(update):
                    applied = True
            if applied:
                self.last_error = None
        except Exception as exc:
            self.last_error = str(exc) or "Failed to process telemetry frame"
            logger.warning("Dropped telemetry frame: %s", self.last_error)

    def snapshot(self) -> dict:
        return {
            "connection_state": self.state.value,
            "last_error": self.last_error,
            "routers": [metric.to_dict() for metric in self.store.routers()],
        }
