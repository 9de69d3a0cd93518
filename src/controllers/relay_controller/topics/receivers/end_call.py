from tools.logger import *
from . import topic

NAME = "endCall"


@topic(NAME)
def init(server, registry):
    """
    Handle the 'endCall' topic.

    Termination is best-effort and not relayed: the partner notices the
    hang-up through its own peer connection going away.
    """

    @server.on(NAME)
    async def callback(sid, message=None):
        target = message.get("to") if isinstance(message, dict) else None
        log_info(f"Call ended by {registry.identity_of(sid)} (peer: {target or 'unknown'})")
