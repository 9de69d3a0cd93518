"""
Signaling Envelopes

Messages exchanged between call clients and the relay. Outbound envelopes
(client -> relay) know their Socket.IO event name and wire payload. Inbound
events (relay -> client) are tagged objects consumed by the call state machine.

Negotiation payloads (offer/answer) are opaque and passed through untouched.
"""

from dataclasses import dataclass
from typing import Any, Optional


## Socket.IO event names
IDENTITY_ASSIGNED = "me"
CALL_REQUEST = "callUser"
INCOMING_CALL = "callUser"
CALL_ANSWER = "answerCall"
CALL_ACCEPTED = "callAccepted"
CALL_ERROR = "callError"
CALL_TERMINATE = "endCall"

## User-facing relay error reasons
INVALID_CALL_DATA = "Invalid call data."
INVALID_ANSWER_DATA = "Invalid answer data."
USER_NOT_FOUND = "User not found or offline."
CALLER_NOT_FOUND = "Caller not found or offline."


# ---------------- OUTBOUND ----------------
@dataclass(frozen=True)
class CallRequest:
    target_identity: str
    offer_payload: Any
    caller_identity: str

    event = CALL_REQUEST

    def to_wire(self) -> dict:
        return {
            "userToCall": self.target_identity,
            "signalData": self.offer_payload,
            "from": self.caller_identity,
        }


@dataclass(frozen=True)
class CallAnswer:
    target_identity: str
    answer_payload: Any

    event = CALL_ANSWER

    def to_wire(self) -> dict:
        return {"to": self.target_identity, "signal": self.answer_payload}


@dataclass(frozen=True)
class CallTerminate:
    target_identity: Optional[str]

    event = CALL_TERMINATE

    def to_wire(self) -> dict:
        return {"to": self.target_identity}


@dataclass(frozen=True)
class CallError:
    """Relay -> sender only. Never forwarded to another participant."""

    reason: str

    event = CALL_ERROR

    def to_wire(self) -> dict:
        return {"message": self.reason}


# ---------------- INBOUND ----------------
@dataclass(frozen=True)
class IdentityAssigned:
    identity: str


@dataclass(frozen=True)
class IncomingCall:
    caller_identity: str
    offer_payload: Any


@dataclass(frozen=True)
class CallAccepted:
    answer_payload: Any


@dataclass(frozen=True)
class CallFailed:
    message: str


@dataclass(frozen=True)
class ChannelClosed:
    pass


def parse_incoming_call(data) -> Optional[IncomingCall]:
    """Build an IncomingCall from a relayed callUser payload, or None if malformed."""
    if not isinstance(data, dict) or not data.get("from") or data.get("signal") is None:
        return None
    return IncomingCall(caller_identity=data["from"], offer_payload=data["signal"])


def parse_call_error(data) -> CallFailed:
    if isinstance(data, dict) and data.get("message"):
        return CallFailed(message=str(data["message"]))
    return CallFailed(message=str(data))
