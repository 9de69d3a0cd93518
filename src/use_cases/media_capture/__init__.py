"""
Media Capture Use Case

Acquires local camera/microphone and screen capture as aiortc tracks and
wraps them so the call state machine can mute and stop them.
"""

from use_cases.media_capture.switchable_track import SwitchableTrack
from use_cases.media_capture.media_handle import MediaHandle
from use_cases.media_capture.device_capture import (
    DeviceCapture,
    MediaAcquisitionError,
)

__all__ = ["SwitchableTrack", "MediaHandle", "DeviceCapture", "MediaAcquisitionError"]
