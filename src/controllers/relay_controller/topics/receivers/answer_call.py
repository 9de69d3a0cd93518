from tools.logger import *
from tools.contract_validation import IdentityType, PayloadType
from tools.envelopes import CALL_ACCEPTED, INVALID_ANSWER_DATA, CALLER_NOT_FOUND
from . import topic, validate_message, reply_error

NAME = "answerCall"

MESSAGE_CONTRACT = {
    "to": IdentityType,
    "signal": PayloadType,
}


@topic(NAME)
def init(server, registry):
    """
    Handle the 'answerCall' topic: hand the callee's answer back to the caller.

    The answer payload is emitted as-is, without an enclosing object.
    """

    @server.on(NAME)
    @validate_message(server, MESSAGE_CONTRACT, INVALID_ANSWER_DATA)
    async def callback(sid, message):
        target = message["to"]

        target_sid = registry.lookup(target)
        if target_sid is None:
            log_warning(f"Caller {target} not found.")
            await reply_error(server, sid, CALLER_NOT_FOUND)
            return

        log_info(f"Relaying answer to {target}")
        await server.emit(CALL_ACCEPTED, message["signal"], to=target_sid)
