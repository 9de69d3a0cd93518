"""
Session Registry

Authoritative mapping from participant identity to live Socket.IO connection.
Identities are issued once per connection, right after accept, and removed
when the connection closes.
"""

from use_cases.session_registry.session_registry import SessionRegistry

__all__ = ["SessionRegistry"]
