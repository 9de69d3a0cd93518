from tools.logger import *
from tools.envelopes import IDENTITY_ASSIGNED
from . import topic

NAME = "connect"


@topic(NAME)
def init(server, registry):
    """
    Handle new connections: issue an identity and tell the client about it.
    """

    @server.on(NAME)
    async def callback(sid, environ, auth=None):
        identity = registry.register(sid)
        log_info(f"User connected: {identity}")
        await server.emit(IDENTITY_ASSIGNED, identity, to=sid)
