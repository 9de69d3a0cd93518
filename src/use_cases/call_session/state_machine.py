"""
Call State Machine

Owns the canonical call state for one participant. User intents
(initiate_call, accept_call, end_call, toggles, screen share) and relay events
(handle_event) are the only inputs; presentation code reads snapshot() or
subscribes to change notifications and never mutates state.

    IDLE --initiate_call--> RINGING_OUTGOING --callAccepted--> CONNECTED
    IDLE --incoming call--> RINGING_INCOMING --accept_call---> CONNECTED
    RINGING_* | CONNECTED --end_call / negotiation failure--> TERMINATED

TERMINATED behaves like IDLE for starting or receiving the next call.
"""

from tools.logger import log_info, log_debug, log_error, log_warning
from tools.envelopes import (
    CallAccepted,
    CallAnswer,
    CallFailed,
    CallRequest,
    CallTerminate,
    ChannelClosed,
    IdentityAssigned,
    IncomingCall,
)
from use_cases.call_session.call_session import CallSession, CallState
from use_cases.media_capture import MediaAcquisitionError
from use_cases.peer_negotiation import NegotiationError, PeerNegotiationAdapter
from typing import Callable, List, Optional
import asyncio


ERROR_NO_TARGET = "Please enter a valid ID to call."
ERROR_NO_MEDIA = "No media stream available."
ERROR_MEDIA_ACCESS = "Failed to access camera/microphone. Please check your permissions."
ERROR_SCREEN_SHARE = "Failed to share screen. Please try again."
ERROR_CALL_BUSY = "A call is already in progress."
ERROR_NO_INCOMING_CALL = "There is no incoming call to accept."
ERROR_NOT_CONNECTED = "No call is connected."
ERROR_SIGNALING = "Signaling connection unavailable."


class CallStateMachine:
    """
    Client-side call coordinator.

    Args:
        signaling: connected signaling channel (send(envelope), events())
        capture: device capture (acquire_user_media(), acquire_display_media())
        adapter_factory: builds a peer negotiation adapter per call
    """

    def __init__(self, signaling, capture, adapter_factory: Callable = PeerNegotiationAdapter):
        self.signaling = signaling
        self.capture = capture
        self._adapter_factory = adapter_factory
        self.identity: Optional[str] = None
        self.media = None
        self.session: Optional[CallSession] = None
        self.last_error: Optional[str] = None
        self._subscribers: List[Callable] = []
        self._tasks = set()
        self._closed = False

    # ---------------- STATE ----------------
    @property
    def state(self) -> CallState:
        return self.session.state if self.session else CallState.IDLE

    def snapshot(self) -> dict:
        """Read-only view of the current state for presentation."""
        return {
            "identity": self.identity,
            "state": self.state.value,
            "has_local_media": self.media is not None,
            "session": self.session.to_dict() if self.session else None,
            "error": self.last_error,
        }

    def subscribe(self, callback: Callable) -> Callable:
        """
        Register a callback receiving snapshot() after every change.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                log_error(f"Error in state subscriber: {e}")

    def _surface_error(self, message: str) -> bool:
        log_warning(message)
        self.last_error = message
        self._notify()
        return False

    # ---------------- LIFECYCLE ----------------
    async def start(self) -> bool:
        """
        Acquire the local camera/microphone.

        On failure the machine stays without media (the loading state) and
        every call entry point is refused until media is available.
        """
        return await self._acquire_local_media()

    async def _acquire_local_media(self) -> bool:
        try:
            media = await self.capture.acquire_user_media()
        except MediaAcquisitionError:
            return self._surface_error(ERROR_MEDIA_ACCESS)

        if self._closed:
            log_debug("Releasing media acquired after close")
            media.stop()
            return False
        self.media = media
        self._notify()
        return True

    async def run(self):
        """Apply relay events one at a time, in arrival order."""
        async for event in self.signaling.events():
            await self.handle_event(event)

    async def close(self):
        """Hang up any active call and release local media."""
        self._closed = True
        if self.session is not None and self.session.is_active:
            await self._terminate(self.session, notify_peer=True, reacquire=False)
        if self.media is not None:
            self.media.stop()
            self.media = None
        for task in list(self._tasks):
            task.cancel()
        self._notify()

    # ---------------- RELAY EVENTS ----------------
    async def handle_event(self, event):
        if isinstance(event, IdentityAssigned):
            self.identity = event.identity
            log_info(f"Assigned identity {event.identity}")
            self._notify()
        elif isinstance(event, IncomingCall):
            self._on_incoming_call(event)
        elif isinstance(event, CallAccepted):
            await self._on_call_accepted(event)
        elif isinstance(event, CallFailed):
            self._surface_error(event.message)
        elif isinstance(event, ChannelClosed):
            log_warning("Signaling channel closed")
        else:
            log_debug(f"Ignoring unknown event {event!r}")

    def _on_incoming_call(self, event: IncomingCall):
        if self.session is not None and self.session.is_active:
            log_warning(
                f"Rejecting call from {event.caller_identity}: already {self.session.state.value}"
            )
            return
        if self.media is None:
            self._surface_error(ERROR_NO_MEDIA)
            return

        session = CallSession(self.identity, event.caller_identity, CallState.RINGING_INCOMING)
        session.offer_payload = event.offer_payload
        self.session = session
        self.last_error = None
        log_info(f"{event.caller_identity} is calling...")
        self._notify()

    async def _on_call_accepted(self, event: CallAccepted):
        session = self.session
        if session is None or session.state is not CallState.RINGING_OUTGOING:
            log_warning("Ignoring call acceptance without an outgoing call")
            return

        try:
            await session.adapter.apply_remote_answer(event.answer_payload)
        except NegotiationError as e:
            await self._fail(session, str(e))
            return

        if self.session is session and session.state is CallState.RINGING_OUTGOING:
            session.state = CallState.CONNECTED
            log_info(f"Call with {session.peer_identity} connected")
            self._notify()

    # ---------------- USER INTENTS ----------------
    async def initiate_call(self, target_identity: str) -> bool:
        if self.session is not None and self.session.is_active:
            return self._surface_error(ERROR_CALL_BUSY)
        if not target_identity or not target_identity.strip():
            return self._surface_error(ERROR_NO_TARGET)
        if self.media is None:
            return self._surface_error(ERROR_NO_MEDIA)

        target_identity = target_identity.strip()
        session = CallSession(self.identity, target_identity, CallState.RINGING_OUTGOING)
        session.adapter = self._new_adapter(session)
        self.session = session
        self.last_error = None
        log_info(f"Calling {target_identity}")
        self._notify()

        try:
            async for offer in session.adapter.create_outbound_offer(self.media):
                if self.session is not session or session.state is not CallState.RINGING_OUTGOING:
                    log_debug("Discarding offer for a superseded call")
                    return False
                await self._send(CallRequest(target_identity, offer, self.identity))
        except NegotiationError as e:
            await self._fail(session, str(e))
            return False
        return True

    async def accept_call(self) -> bool:
        session = self.session
        if session is None or session.state is not CallState.RINGING_INCOMING:
            return self._surface_error(ERROR_NO_INCOMING_CALL)
        if self.media is None:
            return self._surface_error(ERROR_NO_MEDIA)

        session.state = CallState.CONNECTED
        session.adapter = self._new_adapter(session)
        log_info(f"Answering call from {session.peer_identity}")
        self._notify()

        try:
            async for answer in session.adapter.create_inbound_answer(
                self.media, session.offer_payload
            ):
                if self.session is not session or session.state is not CallState.CONNECTED:
                    log_debug("Discarding answer for a superseded call")
                    return False
                await self._send(CallAnswer(session.peer_identity, answer))
        except NegotiationError as e:
            await self._fail(session, str(e))
            return False
        return True

    async def end_call(self) -> bool:
        """
        Hang up from any ringing or connected state. A no-op otherwise, so
        repeated calls tear the call down only once.
        """
        session = self.session
        if session is None or not session.is_active:
            log_debug("No active call to end")
            return False
        await self._terminate(session, notify_peer=True)
        return True

    def toggle_video(self) -> bool:
        return self._toggle("video")

    def toggle_audio(self) -> bool:
        return self._toggle("audio")

    def _toggle(self, kind: str) -> bool:
        # Local only: the peer just sees black frames or hears silence.
        session = self.session
        if session is None or session.state is not CallState.CONNECTED:
            return self._surface_error(ERROR_NOT_CONNECTED)

        track = getattr(self.media, f"{kind}_track", None) if self.media else None
        if track is None:
            return False

        track.enabled = not track.enabled
        setattr(session, f"{kind}_muted", not track.enabled)
        log_info(f"{kind.capitalize()} {'unmuted' if track.enabled else 'muted'}")
        self._notify()
        return True

    async def start_screen_share(self) -> bool:
        session = self.session
        if session is None or session.state is not CallState.CONNECTED:
            return self._surface_error(ERROR_NOT_CONNECTED)
        if session.screen is not None:
            log_debug("Screen is already being shared")
            return False

        try:
            screen = await self.capture.acquire_display_media()
        except MediaAcquisitionError:
            return self._surface_error(ERROR_SCREEN_SHARE)

        if self.session is not session or session.state is not CallState.CONNECTED:
            log_debug("Discarding screen capture for a call that has ended")
            screen.stop()
            return False
        if session.screen is not None:
            screen.stop()
            return False

        session.screen = screen
        await session.adapter.swap_outgoing_track(self.media.video_track, screen.video_track)
        self.media.video_track.start_discarding()
        log_info("Screen sharing started")
        self._notify()
        return True

    async def stop_screen_share(self) -> bool:
        session = self.session
        if session is None or session.screen is None:
            return False

        screen = session.screen
        session.screen = None
        if self.media is not None:
            self.media.video_track.stop_discarding()
        if session.adapter is not None and self.media is not None:
            await session.adapter.swap_outgoing_track(screen.video_track, self.media.video_track)
        screen.stop()
        log_info("Screen sharing stopped")
        self._notify()
        return True

    # ---------------- INTERNALS ----------------
    def _new_adapter(self, session: CallSession):
        def on_fatal(reason):
            task = asyncio.ensure_future(self._fail(session, reason))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        def on_track(track):
            if self.session is session and session.is_active:
                session.remote_tracks.append(track)
                self._notify()

        return self._adapter_factory(on_fatal=on_fatal, on_track=on_track)

    async def _send(self, envelope, best_effort: bool = False) -> bool:
        try:
            await self.signaling.send(envelope)
            return True
        except Exception as e:
            if best_effort:
                log_warning(f"Could not send {envelope.event}: {e}")
                return False
            log_error(f"Could not send {envelope.event}: {e}")
            return self._surface_error(ERROR_SIGNALING)

    async def _fail(self, session: CallSession, reason: str):
        """Negotiation failure: fatal for the session, never retried."""
        if session.state is CallState.TERMINATED:
            return
        log_error(f"Call with {session.peer_identity} failed: {reason}")
        await self._terminate(session, notify_peer=False)
        self._surface_error(f"Call failed: {reason}")

    async def _terminate(self, session: CallSession, notify_peer: bool, reacquire: bool = True):
        # State flips first so late results from pending work are discarded.
        session.state = CallState.TERMINATED
        self._notify()

        if session.adapter is not None:
            await session.adapter.teardown()

        if session.screen is not None:
            session.screen.stop()
            session.screen = None
            if self.media is not None:
                self.media.video_track.stop_discarding()

        if self.session is session and self.media is not None:
            self.media.stop()
            self.media = None
        session.remote_tracks = []

        if notify_peer:
            await self._send(CallTerminate(session.peer_identity), best_effort=True)

        log_info(f"Call with {session.peer_identity} ended")
        self._notify()

        if reacquire and self.session is session:
            await self._acquire_local_media()
