from .receivers.connect import init as init_connect
from .receivers.disconnect import init as init_disconnect
from .receivers.call_user import init as init_call_user
from .receivers.answer_call import init as init_answer_call
from .receivers.end_call import init as init_end_call


def initialize_all(server, registry):

    # Initialize all topic receivers
    init_connect(server, registry)
    init_disconnect(server, registry)
    init_call_user(server, registry)
    init_answer_call(server, registry)
    init_end_call(server, registry)
