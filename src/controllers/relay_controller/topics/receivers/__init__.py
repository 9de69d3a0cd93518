from functools import wraps
from tools.logger import *
from tools.contract_validation import validate_contract_with_error_response
from tools.envelopes import CallError


def topic(name):
    """
    Decorator to register a topic handler.
    """

    def wrapper(init):
        log_info(f"Registering topic: {name}")
        return init

    return wrapper


async def reply_error(server, sid, reason):
    """
    Send a callError back to the originating connection only.
    """
    error = CallError(reason)
    await server.emit(error.event, error.to_wire(), to=sid)


def validate_message(server, contract, reason):
    """
    Decorator to validate incoming envelopes against a contract schema.

    On any missing or empty field the sender receives exactly one callError
    carrying `reason` and the wrapped handler is not called, so nothing is
    forwarded.

    Args:
        server: Socket.IO server used to answer the sender
        contract: The contract schema to validate against
        reason: User-facing error text sent back on failure

    Returns:
        Decorator function
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(sid, message=None, *args, **kwargs):
            is_valid, error_response = validate_contract_with_error_response(
                contract, message
            )
            if not is_valid:
                log_warning(f"Rejected envelope from {sid}: {error_response['error']}")
                await reply_error(server, sid, reason)
                return None

            return await func(sid, message, *args, **kwargs)

        return wrapper

    return decorator
