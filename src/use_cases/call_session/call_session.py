from enum import Enum
from typing import Any, List, Optional


class CallState(Enum):
    """Call lifecycle states."""
    IDLE = "idle"
    RINGING_OUTGOING = "ringing_outgoing"  # Offer sent, waiting for the callee
    RINGING_INCOMING = "ringing_incoming"  # Offer received, waiting for the user
    CONNECTED = "connected"
    TERMINATED = "terminated"


ACTIVE_STATES = (CallState.RINGING_OUTGOING, CallState.RINGING_INCOMING, CallState.CONNECTED)


class CallSession:
    """
    Record of one call attempt or active call.

    The local camera/mic handle belongs to the state machine and outlives the
    session; the screen handle belongs to the session.
    """

    def __init__(self, local_identity: Optional[str], peer_identity: str, state: CallState):
        self.local_identity = local_identity
        self.peer_identity = peer_identity
        self.state = state
        self.adapter = None
        self.offer_payload: Any = None
        self.screen = None
        self.audio_muted = False
        self.video_muted = False
        self.remote_tracks: List[Any] = []

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def screen_sharing(self) -> bool:
        return self.screen is not None

    def to_dict(self) -> dict:
        return {
            "local_identity": self.local_identity,
            "peer_identity": self.peer_identity,
            "state": self.state.value,
            "audio_muted": self.audio_muted,
            "video_muted": self.video_muted,
            "screen_sharing": self.screen_sharing,
            "remote_tracks": [track.kind for track in self.remote_tracks],
        }
