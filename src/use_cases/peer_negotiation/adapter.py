"""
Peer negotiation adapter.

Negotiation is non-incremental: aiortc finishes ICE gathering inside
setLocalDescription, so each side produces exactly one complete session
description (`{"type": ..., "sdp": ...}`), the same shape a browser peer
exchanges with trickle disabled.
"""

from aiortc import (
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)
from tools.logger import log_info, log_debug, log_error, log_warning
from typing import AsyncIterator, Callable, List, Optional
import inspect
import os


DEFAULT_ICE_SERVERS = "stun:stun.l.google.com:19302"

# Peer connection states that end the call when not caused by teardown()
FATAL_CONNECTION_STATES = ("failed", "closed")


class NegotiationError(Exception):
    """Raised when offer/answer negotiation cannot complete."""


def get_ice_servers(value: Optional[str] = None) -> List[RTCIceServer]:
    """
    Parse a comma separated list of ICE server URLs.

    An empty string yields no servers (host candidates only).
    """
    if value is None:
        value = os.getenv("CALL_ICE_SERVERS", DEFAULT_ICE_SERVERS)
    return [RTCIceServer(urls=url.strip()) for url in value.split(",") if url.strip()]


def _to_payload(description: RTCSessionDescription) -> dict:
    return {"type": description.type, "sdp": description.sdp}


def _from_payload(payload, expected_type: str) -> RTCSessionDescription:
    if not isinstance(payload, dict) or not isinstance(payload.get("sdp"), str):
        raise NegotiationError(f"Malformed {expected_type} payload")
    sdp_type = payload.get("type", expected_type)
    if sdp_type != expected_type:
        raise NegotiationError(f"Expected {expected_type}, got {sdp_type}")
    return RTCSessionDescription(sdp=payload["sdp"], type=sdp_type)


class PeerNegotiationAdapter:
    """
    One peer connection for one call.

    Args:
        on_fatal: called with a reason when the connection fails or closes on
            its own; the call cannot continue
        on_track: called with each remote track as it arrives
        ice_servers: ICE servers to use (CALL_ICE_SERVERS by default)
    """

    def __init__(
        self,
        on_fatal: Optional[Callable] = None,
        on_track: Optional[Callable] = None,
        ice_servers: Optional[List[RTCIceServer]] = None,
    ):
        self._on_fatal = on_fatal
        self._on_track = on_track
        self._ice_servers = get_ice_servers() if ice_servers is None else ice_servers
        self._pc: Optional[RTCPeerConnection] = None
        self._closed = False

    @property
    def peer_connection(self) -> Optional[RTCPeerConnection]:
        return self._pc

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _create_peer_connection(self, media) -> RTCPeerConnection:
        if self._closed:
            raise NegotiationError("Adapter already torn down")
        if self._pc is not None:
            raise NegotiationError("Negotiation already started")

        pc = RTCPeerConnection(RTCConfiguration(iceServers=self._ice_servers))
        self._pc = pc

        for track in media.tracks():
            pc.addTrack(track)

        @pc.on("connectionstatechange")
        async def on_connection_state_change():
            state = pc.connectionState
            log_info(f"Peer connection state: {state}")
            if state in FATAL_CONNECTION_STATES and not self._closed:
                log_warning(f"Peer connection {state}")
                self._report_fatal(f"Peer connection {state}")

        @pc.on("iceconnectionstatechange")
        async def on_ice_connection_state_change():
            log_debug(f"ICE connection state: {pc.iceConnectionState}")

        @pc.on("track")
        def on_track(track):
            log_info(f"Remote {track.kind} track received")
            if self._on_track:
                self._on_track(track)

        return pc

    def _report_fatal(self, reason: str):
        if self._on_fatal:
            try:
                self._on_fatal(reason)
            except Exception as e:
                log_error(f"Error in fatal error callback: {e}")

    async def create_outbound_offer(self, media) -> AsyncIterator[dict]:
        """
        Start negotiating as the calling side.

        Yields exactly one local offer payload once ICE gathering is complete.

        Raises:
            NegotiationError: if the offer cannot be produced
        """
        pc = self._create_peer_connection(media)
        try:
            offer = await pc.createOffer()
            await pc.setLocalDescription(offer)
        except NegotiationError:
            raise
        except Exception as e:
            log_error(f"Error creating offer: {e}")
            raise NegotiationError(str(e)) from e

        log_debug("Local offer ready")
        yield _to_payload(pc.localDescription)

    async def create_inbound_answer(self, media, remote_offer) -> AsyncIterator[dict]:
        """
        Start negotiating as the called side from a received offer.

        Yields exactly one local answer payload.

        Raises:
            NegotiationError: if the offer is unusable or the answer cannot be produced
        """
        pc = self._create_peer_connection(media)
        offer = _from_payload(remote_offer, "offer")
        try:
            await pc.setRemoteDescription(offer)
            answer = await pc.createAnswer()
            await pc.setLocalDescription(answer)
        except Exception as e:
            log_error(f"Error creating answer: {e}")
            raise NegotiationError(str(e)) from e

        log_debug("Local answer ready")
        yield _to_payload(pc.localDescription)

    async def apply_remote_answer(self, remote_answer):
        """
        Complete negotiation on the calling side.

        Raises:
            NegotiationError: if no offer is outstanding or the answer is unusable
        """
        if self._pc is None or self._closed:
            raise NegotiationError("No outstanding offer")
        answer = _from_payload(remote_answer, "answer")
        try:
            await self._pc.setRemoteDescription(answer)
        except Exception as e:
            log_error(f"Error applying remote answer: {e}")
            raise NegotiationError(str(e)) from e
        log_debug("Remote answer applied")

    def outgoing_video_track(self):
        """Track currently bound to the outgoing video sender, if any."""
        if self._pc is None:
            return None
        for sender in self._pc.getSenders():
            if sender.track is not None and sender.track.kind == "video":
                return sender.track
        return None

    async def swap_outgoing_track(self, old_track, new_track) -> bool:
        """
        Replace the track being sent without renegotiating.

        A no-op when nothing is being sent yet, or when old_track is not
        bound to any sender.

        Returns:
            True if a sender was switched to new_track
        """
        if self._pc is None or self._closed:
            log_debug("No active senders, track swap skipped")
            return False

        for sender in self._pc.getSenders():
            if sender.track is old_track:
                result = sender.replaceTrack(new_track)
                if inspect.isawaitable(result):
                    await result
                log_info(f"Outgoing {new_track.kind} track replaced")
                return True

        log_debug("Track to replace is not being sent, swap skipped")
        return False

    async def teardown(self):
        """Close the peer connection. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._pc is None:
            return
        try:
            await self._pc.close()
            log_info("Peer connection closed")
        except Exception as e:
            log_error(f"Error closing peer connection: {e}")
