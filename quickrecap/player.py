"""Playback of audio files through the default output device."""

import logging
from pathlib import Path

import soundfile as sf

logger = logging.getLogger(__name__)


class AudioPlayer:
    """Plays a single audio file at a time without blocking the caller."""

    def __init__(self):
        self.current: Path | None = None

    @property
    def is_playing(self) -> bool:
        return self.current is not None

    def start_playback(self, path: Path) -> None:
        """Load ``path`` and start playing it.

        Errors raised while reading the file or opening the output device
        propagate to the caller.
        """
        import sounddevice as sd

        data, sample_rate = sf.read(str(path), dtype="float32")
        sd.play(data, sample_rate)
        self.current = Path(path)
        logger.debug("Playing %s", path)

    def stop_playback(self) -> None:
        if self.current is None:
            return
        import sounddevice as sd

        sd.stop()
        logger.debug("Stopped playback of %s", self.current)
        self.current = None
