from typing import List, Optional

from use_cases.media_capture.switchable_track import SwitchableTrack


class MediaHandle:
    """
    A set of captured local tracks: camera+mic, or a screen capture.

    Stopping the handle stops every track, which also releases the
    underlying capture device.
    """

    def __init__(
        self,
        audio_track: Optional[SwitchableTrack] = None,
        video_track: Optional[SwitchableTrack] = None,
    ):
        self.audio_track = audio_track
        self.video_track = video_track

    def tracks(self) -> List[SwitchableTrack]:
        return [track for track in (self.audio_track, self.video_track) if track is not None]

    def live_tracks(self) -> List[SwitchableTrack]:
        return [track for track in self.tracks() if track.readyState == "live"]

    def stop(self):
        for track in self.tracks():
            track.stop()

    @property
    def is_live(self) -> bool:
        return bool(self.live_tracks())
