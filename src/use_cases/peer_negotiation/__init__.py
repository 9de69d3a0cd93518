"""
Peer Negotiation Use Case

Wraps an aiortc RTCPeerConnection for a single call: offer/answer
production, remote answer injection, outgoing track swap and teardown.
"""

from use_cases.peer_negotiation.adapter import (
    PeerNegotiationAdapter,
    NegotiationError,
    get_ice_servers,
)

__all__ = ["PeerNegotiationAdapter", "NegotiationError", "get_ice_servers"]
