"""
Relay Controller

Socket.IO signaling relay served on aiohttp. Connected participants get an
identity on connect and address each other by it; offers and answers are
forwarded without being inspected.
"""

from .topics import initialize_all
from tools.logger import *
from use_cases.session_registry import SessionRegistry
from aiohttp import web
import socketio


SERVER_KEY = web.AppKey("server", socketio.AsyncServer)
REGISTRY_KEY = web.AppKey("registry", SessionRegistry)


def init(server, registry):
    """
    Initialize the Relay controller by registering necessary topics.
    """
    log_info("Initializing Relay Controller...")

    initialize_all(server, registry)

    log_info("Relay Controller initialized successfully.")


def get_server(cors_origin, debug=False):
    """
    Create the Socket.IO server.

    Handlers for one connection run inline in that connection's reader task,
    so envelopes from a single participant are processed in arrival order
    while different participants proceed independently.
    """
    configure_socketio_logging()

    return socketio.AsyncServer(
        async_mode="aiohttp",
        cors_allowed_origins=[cors_origin],
        async_handlers=False,
        always_connect=True,
        logger=debug,
        engineio_logger=debug,
    )


async def health(request):
    registry = request.app[REGISTRY_KEY]
    return web.json_response({"status": "healthy", "connections": registry.count()})


async def close_connections(app):
    """
    Disconnect every live participant so in-flight sessions see a clean close.
    """
    server = app[SERVER_KEY]
    registry = app[REGISTRY_KEY]
    log_warning("Shutting down server...")

    for sid in registry.connections():
        try:
            await server.disconnect(sid)
        except Exception as e:
            log_error(f"Error disconnecting {sid}: {e}")

    log_info("All connections closed.")


async def on_cleanup(app):
    log_info("Server closed.")


def create_app(cors_origin, registry=None, debug=False) -> web.Application:
    """
    Build the aiohttp application hosting the relay.

    Args:
        cors_origin: Only browser origin allowed to connect
        registry: SessionRegistry to use (a fresh one by default)
        debug: Enable socketio/engineio protocol logging

    Returns:
        web.Application ready for web.run_app
    """
    registry = registry or SessionRegistry()
    server = get_server(cors_origin, debug=debug)
    init(server, registry)

    app = web.Application()
    server.attach(app)
    app[SERVER_KEY] = server
    app[REGISTRY_KEY] = registry

    app.router.add_get("/health", health)
    app.on_shutdown.append(close_connections)
    app.on_cleanup.append(on_cleanup)
    return app
