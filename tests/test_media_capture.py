import asyncio

import pytest
from aiortc import AudioStreamTrack, MediaStreamTrack, VideoStreamTrack

import use_cases.media_capture.device_capture as device_capture
from use_cases.media_capture import (
    DeviceCapture,
    MediaAcquisitionError,
    MediaHandle,
    SwitchableTrack,
)


class FakePlayer:
    opened = []
    fail_devices = set()

    def __init__(self, device, format=None, options=None):
        if device in self.fail_devices:
            raise OSError(f"Cannot open {device}")
        self.device = device
        self.format = format
        self.options = options
        self.video = VideoStreamTrack() if format != "pulse" else None
        self.audio = AudioStreamTrack() if format == "pulse" else None
        FakePlayer.opened.append(self)


@pytest.fixture
def players(monkeypatch):
    FakePlayer.opened = []
    FakePlayer.fail_devices = set()
    monkeypatch.setattr(device_capture, "MediaPlayer", FakePlayer)
    return FakePlayer


@pytest.fixture
def device():
    return DeviceCapture(
        camera=("/dev/video0", "v4l2"),
        microphone=("default", "pulse"),
        screen=(":0.0", "x11grab"),
        screen_size="1920x1080",
    )


@pytest.mark.anyio
async def test_acquire_user_media_wraps_camera_and_mic(players, device) -> None:
    handle = await device.acquire_user_media()

    assert handle.video_track.kind == "video"
    assert handle.audio_track.kind == "audio"
    assert handle.video_track.source is players.opened[0].video
    assert players.opened[0].options == device_capture.CAMERA_OPTIONS
    handle.stop()
    assert handle.live_tracks() == []
    assert players.opened[0].video.readyState == "ended"


@pytest.mark.anyio
async def test_microphone_failure_releases_camera(players, device) -> None:
    players.fail_devices = {"default"}

    with pytest.raises(MediaAcquisitionError):
        await device.acquire_user_media()

    assert players.opened[0].video.readyState == "ended"


@pytest.mark.anyio
async def test_acquire_display_media(players, device) -> None:
    handle = await device.acquire_display_media()

    assert handle.audio_track is None
    assert handle.video_track.kind == "video"
    assert players.opened[0].format == "x11grab"
    assert players.opened[0].options["video_size"] == "1920x1080"
    handle.stop()


@pytest.mark.anyio
async def test_display_capture_failure(players, device) -> None:
    players.fail_devices = {":0.0"}

    with pytest.raises(MediaAcquisitionError):
        await device.acquire_display_media()


def test_devices_can_be_overridden_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CALL_CAMERA_DEVICE", "/dev/video2")
    monkeypatch.setenv("CALL_SCREEN_SIZE", "800x600")

    capture = DeviceCapture()

    assert capture.camera[0] == "/dev/video2"
    assert capture.screen_size == "800x600"


@pytest.mark.anyio
async def test_muted_video_track_sends_black_frames() -> None:
    track = SwitchableTrack(VideoStreamTrack())

    live = await track.recv()
    track.enabled = False
    muted = await track.recv()

    assert (muted.width, muted.height) == (live.width, live.height)
    assert muted.pts > live.pts
    assert set(bytes(muted.planes[0])) == {0}
    assert set(bytes(muted.planes[1])) == {0x80}
    track.stop()


@pytest.mark.anyio
async def test_muted_audio_track_keeps_timing() -> None:
    track = SwitchableTrack(AudioStreamTrack())
    track.enabled = False

    frame = await track.recv()

    assert frame.samples > 0
    assert frame.sample_rate == 8000
    assert set(bytes(frame.planes[0])) == {0}
    track.stop()


def test_stopping_wrapper_stops_source() -> None:
    source = VideoStreamTrack()
    handle = MediaHandle(video_track=SwitchableTrack(source))

    assert handle.is_live
    handle.stop()

    assert source.readyState == "ended"
    assert not handle.is_live


class QueuedSource(MediaStreamTrack):
    """Buffers frames in an unbounded queue, like a device player track."""

    kind = "video"

    def __init__(self) -> None:
        super().__init__()
        self.queue = asyncio.Queue()

    async def recv(self):
        return await self.queue.get()


@pytest.mark.anyio
async def test_discarding_keeps_source_backlog_empty() -> None:
    source = QueuedSource()
    track = SwitchableTrack(source)

    track.start_discarding()
    for frame in range(30):
        source.queue.put_nowait(frame)
    for _ in range(5):
        await asyncio.sleep(0)

    assert source.queue.qsize() == 0

    track.stop_discarding()
    await asyncio.sleep(0)
    source.queue.put_nowait("live")

    assert await track.recv() == "live"
    track.stop()


def test_stopped_track_does_not_start_discarding() -> None:
    track = SwitchableTrack(VideoStreamTrack())
    track.stop()

    track.start_discarding()

    assert track.discarding is False
