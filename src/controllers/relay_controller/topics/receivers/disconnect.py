from tools.logger import *
from . import topic

NAME = "disconnect"


@topic(NAME)
def init(server, registry):
    """
    Handle the 'disconnect' topic. The identity is dropped from the registry;
    the call partner is not notified.
    """

    @server.on(NAME)
    async def callback(sid, reason=None):
        identity = registry.identity_of(sid)
        if identity is None:
            log_debug(f"Disconnect for unregistered connection {sid}")
            return
        registry.remove(identity)
        log_info(f"User disconnected: {identity}")
