import asyncio
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from aiortc import AudioStreamTrack, VideoStreamTrack  # noqa: E402

from use_cases.media_capture import MediaAcquisitionError, MediaHandle, SwitchableTrack  # noqa: E402
from use_cases.peer_negotiation import NegotiationError  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_user_media() -> MediaHandle:
    return MediaHandle(
        audio_track=SwitchableTrack(AudioStreamTrack()),
        video_track=SwitchableTrack(VideoStreamTrack()),
    )


def make_screen_media() -> MediaHandle:
    return MediaHandle(video_track=SwitchableTrack(VideoStreamTrack()))


class FakeServer:
    """Records Socket.IO handlers and emits like socketio.AsyncServer."""

    def __init__(self) -> None:
        self.handlers = {}
        self.emitted = []
        self.disconnected = []

    def on(self, name):
        def decorator(func):
            self.handlers[name] = func
            return func

        return decorator

    async def emit(self, event, data=None, to=None):
        self.emitted.append((event, data, to))

    async def disconnect(self, sid):
        self.disconnected.append(sid)

    async def trigger(self, name, sid, *args):
        return await self.handlers[name](sid, *args)


class FakeCapture:
    def __init__(self, fail_user: bool = False, fail_screen: bool = False) -> None:
        self.fail_user = fail_user
        self.fail_screen = fail_screen
        self.user_gate = None
        self.screen_gate = None
        self.user_handles = []
        self.screen_handles = []

    async def acquire_user_media(self) -> MediaHandle:
        if self.user_gate is not None:
            await self.user_gate.wait()
        if self.fail_user:
            raise MediaAcquisitionError("Permission denied")
        handle = make_user_media()
        self.user_handles.append(handle)
        return handle

    async def acquire_display_media(self) -> MediaHandle:
        if self.screen_gate is not None:
            await self.screen_gate.wait()
        if self.fail_screen:
            raise MediaAcquisitionError("Permission denied")
        handle = make_screen_media()
        self.screen_handles.append(handle)
        return handle


class FakeAdapter:
    def __init__(self, on_fatal=None, on_track=None) -> None:
        self.on_fatal = on_fatal
        self.on_track = on_track
        self.fail_negotiation = False
        self.remote_offer = None
        self.remote_answer = None
        self.outgoing_video = None
        self.teardown_count = 0

    async def create_outbound_offer(self, media):
        if self.fail_negotiation:
            raise NegotiationError("incompatible media")
        self.outgoing_video = media.video_track
        yield {"type": "offer", "sdp": "offer-sdp"}

    async def create_inbound_answer(self, media, remote_offer):
        if self.fail_negotiation:
            raise NegotiationError("incompatible media")
        self.remote_offer = remote_offer
        self.outgoing_video = media.video_track
        yield {"type": "answer", "sdp": "answer-sdp"}

    async def apply_remote_answer(self, remote_answer):
        if self.fail_negotiation:
            raise NegotiationError("bad answer")
        self.remote_answer = remote_answer

    async def swap_outgoing_track(self, old_track, new_track):
        if self.outgoing_video is None or self.outgoing_video is not old_track:
            return False
        self.outgoing_video = new_track
        return True

    async def teardown(self):
        self.teardown_count += 1


class AdapterFactory:
    def __init__(self, fail_negotiation: bool = False) -> None:
        self.fail_negotiation = fail_negotiation
        self.created = []

    def __call__(self, on_fatal=None, on_track=None):
        adapter = FakeAdapter(on_fatal=on_fatal, on_track=on_track)
        adapter.fail_negotiation = self.fail_negotiation
        self.created.append(adapter)
        return adapter


class FakeSignaling:
    def __init__(self) -> None:
        self.sent = []
        self.queue = asyncio.Queue()

    async def send(self, envelope):
        self.sent.append(envelope)

    async def events(self):
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def adapters():
    return AdapterFactory()


@pytest.fixture
def signaling():
    return FakeSignaling()
