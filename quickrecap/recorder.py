"""
Microphone recording to a 16 kHz mono WAV file.

A :class:`Recorder` owns at most one input stream.  Blocks delivered by
`sounddevice` are written straight into a `soundfile` WAV so that the
recording can be handed to the speech model without further conversion.

The optional delegate receives two notifications:

* ``recording_error(error)`` when capture fails part way through,
* ``recording_finished(successfully)`` once the stream has closed.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

import numpy as np
import soundfile as sf

from .config import CHANNELS, SAMPLE_RATE
from .errors import RecorderError

logger = logging.getLogger(__name__)


class Recorder:
    """Records the default input device into a WAV file."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, device: Optional[int] = None):
        self.sample_rate = sample_rate
        self.device = device
        self._stream = None
        self._aborted_stream = None
        self._file: Optional[sf.SoundFile] = None
        self._delegate: Any = None
        self._failed = False
        self._lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    def request_permission(self) -> bool:
        """Return whether an input device is available for recording."""
        try:
            import sounddevice as sd
        except OSError as exc:
            logger.warning("PortAudio is not available: %s", exc)
            return False
        try:
            sd.query_devices(self.device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            logger.warning("No input device available: %s", exc)
            return False
        return True

    def start_recording(self, output_file: Path, delegate: Any = None) -> None:
        """Start recording into ``output_file``.

        Raises:
            RecorderError: If a recording is already running or the input
                stream cannot be opened.
        """
        import sounddevice as sd

        self._close_aborted_stream()
        with self._lock:
            if self._stream is not None:
                raise RecorderError("a recording is already in progress")
            output_file = Path(output_file)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            self._delegate = delegate
            self._failed = False
            self._file = sf.SoundFile(
                str(output_file),
                mode="w",
                samplerate=self.sample_rate,
                channels=CHANNELS,
                subtype="PCM_16",
            )
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=CHANNELS,
                    dtype="int16",
                    device=self.device,
                    callback=self._callback,
                    finished_callback=self._finished,
                )
                stream.start()
            except (sd.PortAudioError, ValueError) as exc:
                logger.error("Could not start recording: %s", exc)
                self._file.close()
                self._file = None
                output_file.unlink(missing_ok=True)
                raise RecorderError("could not start recording") from exc
            self._stream = stream
            logger.info("Recording to %s", output_file)

    def stop_recording(self) -> None:
        """Stop the active recording, if any."""
        self._close_aborted_stream()
        with self._lock:
            stream = self._stream
            self._stream = None
        if stream is None:
            return
        stream.stop()
        stream.close()

    def _close_aborted_stream(self) -> None:
        # A stream that ended through CallbackAbort is inactive but still open.
        with self._lock:
            stream = self._aborted_stream
            self._aborted_stream = None
        if stream is not None:
            stream.close()

    def _callback(self, indata: np.ndarray, frames: int, time: Any, status: Any) -> None:
        import sounddevice as sd

        if status:
            logger.warning("Audio stream status: %s", status)
        try:
            self._file.write(indata)
        except (RuntimeError, sf.SoundFileError) as exc:
            self._failed = True
            if self._delegate is not None:
                self._delegate.recording_error(RecorderError(f"could not write audio: {exc}"))
            raise sd.CallbackAbort from exc

    def _finished(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        with self._lock:
            if self._stream is not None:
                self._aborted_stream = self._stream
                self._stream = None
        if self._delegate is not None:
            self._delegate.recording_finished(successfully=not self._failed)
