"""
Signaling Client Controller

Explicitly constructed Socket.IO connection from a call client to the relay.
Relay events are turned into tagged event objects and queued, so the call
state machine consumes them from a single loop in arrival order. Handlers are
registered once per client, so reconnects never stack listeners.
"""

from tools.logger import *
from tools.ssl import get_ssl_session
from tools.envelopes import (
    IDENTITY_ASSIGNED,
    INCOMING_CALL,
    CALL_ACCEPTED,
    CALL_ERROR,
    CallAccepted,
    ChannelClosed,
    IdentityAssigned,
    parse_call_error,
    parse_incoming_call,
)
from typing import AsyncIterator, Optional
import asyncio
import socketio


def get_client(http_session=None, debug=False) -> socketio.AsyncClient:
    configure_socketio_logging()

    return socketio.AsyncClient(
        reconnection=True,
        reconnection_attempts=0,
        reconnection_delay=1,
        reconnection_delay_max=5,
        http_session=http_session,
        logger=debug,
        engineio_logger=debug,
    )


class SignalingChannel:
    """
    Relay connection used by one CallStateMachine.

    Must be created inside a running event loop: the default client owns an
    aiohttp session that engineio reuses across reconnects.

    Args:
        client: Socket.IO client (a new AsyncClient by default)
        ca_file: CA bundle for https relays signed by a private CA
    """

    def __init__(self, client=None, ca_file: Optional[str] = None):
        self._http_session = None
        if client is None:
            self._http_session = get_ssl_session(ca_file)
            client = get_client(http_session=self._http_session)
        self._client = client
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._register_handlers()

    def _register_handlers(self):
        client = self._client

        @client.on(IDENTITY_ASSIGNED)
        async def on_identity(identity):
            self._put(IdentityAssigned(identity=identity))

        @client.on(INCOMING_CALL)
        async def on_incoming_call(data):
            event = parse_incoming_call(data)
            if event is None:
                log_warning(f"Dropping malformed incoming call: {data!r}")
                return
            self._put(event)

        @client.on(CALL_ACCEPTED)
        async def on_call_accepted(signal):
            self._put(CallAccepted(answer_payload=signal))

        @client.on(CALL_ERROR)
        async def on_call_error(data):
            self._put(parse_call_error(data))

        @client.event
        async def connect():
            log_info("Connected to relay")

        @client.event
        async def connect_error(data):
            log_error(f"Socket.IO connection error: {data}")

        @client.event
        async def disconnect(reason=None):
            log_warning("Connection to relay lost")
            self._put(ChannelClosed())

    def _put(self, event):
        if not self._closed:
            self._queue.put_nowait(event)

    async def connect(self, url: str):
        await self._client.connect(url)
        log_info(f"Connected to relay at {url}")

    async def send(self, envelope):
        """Emit an outbound envelope (CallRequest, CallAnswer, CallTerminate)."""
        log_debug(f"Sending {envelope.event}")
        await self._client.emit(envelope.event, envelope.to_wire())

    async def events(self) -> AsyncIterator:
        """Yield relay events in arrival order until the channel is closed."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.disconnect()
        finally:
            if self._http_session is not None:
                await self._http_session.close()
                self._http_session = None
            self._queue.put_nowait(None)
