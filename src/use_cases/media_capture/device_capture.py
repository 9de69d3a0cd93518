"""
Local device capture through FFmpeg (aiortc MediaPlayer).

Device names and input formats default per platform and can be overridden
with environment variables:

    CALL_CAMERA_DEVICE / CALL_CAMERA_FORMAT
    CALL_MIC_DEVICE    / CALL_MIC_FORMAT
    CALL_SCREEN_DEVICE / CALL_SCREEN_FORMAT / CALL_SCREEN_SIZE
"""

from aiortc.contrib.media import MediaPlayer
from tools.logger import log_info, log_debug, log_error
from use_cases.media_capture.media_handle import MediaHandle
from use_cases.media_capture.switchable_track import SwitchableTrack
from typing import Dict, Optional
import asyncio
import os
import platform


# (device, format) per platform
CAMERA_DEFAULTS = {
    "Linux": ("/dev/video0", "v4l2"),
    "Darwin": ("default:none", "avfoundation"),
    "Windows": ("video=Integrated Camera", "dshow"),
}
MIC_DEFAULTS = {
    "Linux": ("default", "pulse"),
    "Darwin": ("none:default", "avfoundation"),
    "Windows": ("audio=Microphone", "dshow"),
}
SCREEN_DEFAULTS = {
    "Linux": (":0.0", "x11grab"),
    "Darwin": ("Capture screen 0:none", "avfoundation"),
    "Windows": ("desktop", "gdigrab"),
}

CAMERA_OPTIONS = {"framerate": "30", "video_size": "640x480"}
SCREEN_FRAMERATE = "15"


class MediaAcquisitionError(Exception):
    """Raised when a camera, microphone or screen cannot be opened."""


def _device_setting(prefix: str, defaults: dict):
    device, fmt = defaults.get(platform.system(), defaults["Linux"])
    return (
        os.getenv(f"{prefix}_DEVICE", device),
        os.getenv(f"{prefix}_FORMAT", fmt),
    )


class DeviceCapture:
    """
    Opens capture devices and hands back MediaHandles.

    Opening an FFmpeg input blocks, so it runs in a worker thread and the
    event loop stays responsive while a device (or a permission prompt) is
    pending.
    """

    def __init__(
        self,
        camera: Optional[tuple] = None,
        microphone: Optional[tuple] = None,
        screen: Optional[tuple] = None,
        screen_size: Optional[str] = None,
    ):
        self.camera = camera or _device_setting("CALL_CAMERA", CAMERA_DEFAULTS)
        self.microphone = microphone or _device_setting("CALL_MIC", MIC_DEFAULTS)
        self.screen = screen or _device_setting("CALL_SCREEN", SCREEN_DEFAULTS)
        self.screen_size = screen_size or os.getenv("CALL_SCREEN_SIZE", "1280x720")

    @staticmethod
    def _open(device: str, fmt: str, options: Optional[Dict[str, str]] = None) -> MediaPlayer:
        log_debug(f"Opening {fmt} input {device}")
        return MediaPlayer(device, format=fmt, options=options or {})

    async def acquire_user_media(self) -> MediaHandle:
        """
        Open camera and microphone.

        Raises:
            MediaAcquisitionError: if either device cannot be opened
        """
        video_player = None
        try:
            video_player = await asyncio.to_thread(self._open, *self.camera, CAMERA_OPTIONS)
            audio_player = await asyncio.to_thread(self._open, *self.microphone)
        except Exception as e:
            log_error(f"Failed to get media stream: {e}")
            if video_player is not None and video_player.video is not None:
                video_player.video.stop()
            raise MediaAcquisitionError(str(e)) from e

        if video_player.video is None or audio_player.audio is None:
            for track in (video_player.video, audio_player.audio):
                if track is not None:
                    track.stop()
            raise MediaAcquisitionError("Capture device produced no usable track")

        log_info("Camera and microphone acquired")
        return MediaHandle(
            audio_track=SwitchableTrack(audio_player.audio),
            video_track=SwitchableTrack(video_player.video),
        )

    async def acquire_display_media(self) -> MediaHandle:
        """
        Open a screen capture.

        Raises:
            MediaAcquisitionError: if the screen cannot be captured
        """
        options = {"video_size": self.screen_size, "framerate": SCREEN_FRAMERATE}
        try:
            player = await asyncio.to_thread(self._open, *self.screen, options)
        except Exception as e:
            log_error(f"Failed to share screen: {e}")
            raise MediaAcquisitionError(str(e)) from e

        if player.video is None:
            raise MediaAcquisitionError("Screen capture produced no video track")

        log_info("Screen capture acquired")
        return MediaHandle(video_track=SwitchableTrack(player.video))
