"""
Thread-safe identity registry for live relay connections.

Every Socket.IO connection gets exactly one opaque identity. The relay looks
the identity up before each forward. Critical sections are plain dict
operations, so a single threading.Lock covers register, lookup and remove
from any number of concurrent connection handlers.
"""

import threading
import uuid
from typing import Callable, Dict, List, Optional

from tools.logger import log_debug, log_info


def new_identity() -> str:
    return uuid.uuid4().hex


class SessionRegistry:
    """
    Maps ParticipantIdentity -> connection handle (the Socket.IO sid).

    A reverse index (connection -> identity) lets the disconnect handler find
    the identity of a closing connection without a scan.
    """

    def __init__(self, identity_factory: Callable[[], str] = new_identity):
        self._lock = threading.Lock()
        self._connections: Dict[str, str] = {}
        self._identities: Dict[str, str] = {}
        self._identity_factory = identity_factory

    def register(self, connection: str) -> str:
        """
        Allocate a fresh identity and bind it to a newly accepted connection.

        Returns:
            The identity assigned to the connection. If the connection was
            already registered, its existing identity is returned.
        """
        with self._lock:
            existing = self._identities.get(connection)
            if existing is not None:
                return existing

            identity = self._identity_factory()
            while identity in self._connections:
                identity = self._identity_factory()

            self._connections[identity] = connection
            self._identities[connection] = identity

        log_info(f"Registered identity {identity} for connection {connection}")
        return identity

    def lookup(self, identity) -> Optional[str]:
        """Get the live connection for an identity, or None if not registered."""
        if not isinstance(identity, str):
            return None
        with self._lock:
            return self._connections.get(identity)

    def identity_of(self, connection: str) -> Optional[str]:
        """Get the identity bound to a connection."""
        with self._lock:
            return self._identities.get(connection)

    def remove(self, identity: str) -> bool:
        """
        Remove an identity. Idempotent.

        Returns:
            True if the identity was live, False if it was already gone
        """
        with self._lock:
            connection = self._connections.pop(identity, None)
            if connection is None:
                return False
            self._identities.pop(connection, None)

        log_debug(f"Removed identity {identity} (connection {connection})")
        return True

    def connections(self) -> List[str]:
        """Snapshot of all live connection handles."""
        with self._lock:
            return list(self._connections.values())

    def count(self) -> int:
        """Get the number of live identities."""
        with self._lock:
            return len(self._connections)
