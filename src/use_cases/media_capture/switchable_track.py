"""
Mute-able wrapper around a captured aiortc track.

While disabled the track keeps producing frames with the source's timing,
but blanked: black video or silent audio. Nothing is renegotiated and the
remote side only sees the content stop.
"""

from aiortc import MediaStreamTrack
from aiortc.mediastreams import MediaStreamError
from av import AudioFrame, VideoFrame
from typing import Optional
import asyncio


def _blank_video_frame(frame: VideoFrame) -> VideoFrame:
    blank = VideoFrame(width=frame.width, height=frame.height, format="yuv420p")
    blank.planes[0].update(bytes(blank.planes[0].buffer_size))
    for plane in blank.planes[1:]:
        plane.update(b"\x80" * plane.buffer_size)
    blank.pts = frame.pts
    blank.time_base = frame.time_base
    return blank


def _silent_audio_frame(frame: AudioFrame) -> AudioFrame:
    silence = AudioFrame(
        format=frame.format.name, layout=frame.layout.name, samples=frame.samples
    )
    for plane in silence.planes:
        plane.update(bytes(plane.buffer_size))
    silence.pts = frame.pts
    silence.sample_rate = frame.sample_rate
    silence.time_base = frame.time_base
    return silence


class SwitchableTrack(MediaStreamTrack):
    """
    Forwards frames from a source track, blanking them while `enabled` is False.

    While no sender reads the track (its sender carries a screen capture
    instead), start_discarding() keeps pulling source frames and drops them,
    so capture backlogs stay empty and the sender resumes on live frames.
    """

    def __init__(self, source: MediaStreamTrack):
        super().__init__()
        self.kind = source.kind
        self.source = source
        self.enabled = True
        self._discard_task: Optional[asyncio.Task] = None

    @property
    def discarding(self) -> bool:
        return self._discard_task is not None

    async def recv(self):
        frame = await self.source.recv()
        if self.enabled:
            return frame
        if self.kind == "video":
            return _blank_video_frame(frame)
        return _silent_audio_frame(frame)

    def start_discarding(self):
        if self._discard_task is None and self.readyState == "live":
            self._discard_task = asyncio.ensure_future(self._discard_frames())

    def stop_discarding(self):
        if self._discard_task is not None:
            self._discard_task.cancel()
            self._discard_task = None

    async def _discard_frames(self):
        while True:
            try:
                await self.source.recv()
            except MediaStreamError:
                return

    def stop(self):
        self.stop_discarding()
        super().stop()
        self.source.stop()
