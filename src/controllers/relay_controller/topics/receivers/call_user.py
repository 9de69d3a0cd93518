from tools.logger import *
from tools.contract_validation import IdentityType, PayloadType
from tools.envelopes import INCOMING_CALL, INVALID_CALL_DATA, USER_NOT_FOUND
from . import topic, validate_message, reply_error

NAME = "callUser"

MESSAGE_CONTRACT = {
    "userToCall": IdentityType,
    "signalData": PayloadType,
    "from": IdentityType,
}


@topic(NAME)
def init(server, registry):
    """
    Handle the 'callUser' topic: relay an offer to the callee as an
    incoming call.
    """

    @server.on(NAME)
    @validate_message(server, MESSAGE_CONTRACT, INVALID_CALL_DATA)
    async def callback(sid, message):
        target = message["userToCall"]

        target_sid = registry.lookup(target)
        if target_sid is None:
            log_warning(f"User {target} not found.")
            await reply_error(server, sid, USER_NOT_FOUND)
            return

        log_info(f"Relaying call from {message['from']} to {target}")
        await server.emit(
            INCOMING_CALL,
            {"signal": message["signalData"], "from": message["from"]},
            to=target_sid,
        )
