"""
Recording and transcription state.

:class:`WhisperState` ties the recorder, the player and the speech model
together and publishes everything a front end needs to render as
:class:`~quickrecap.observable.BehaviorValue` objects:

* ``is_model_loaded`` – the Whisper model is ready.
* ``message_log`` – accumulated, newline-terminated status messages.
* ``can_transcribe`` – no transcription is running and a model is loaded.
* ``is_recording`` – the microphone is being captured.
* ``nearest_transcription`` – text of the most recent transcription.
* ``progress`` – a busy message to display, or ``None``.

Transcription runs on a single worker thread, so at most one job is in
flight and the calling thread is never blocked.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from . import audio_processor, config
from .errors import QuickRecapError, RecorderError
from .observable import BehaviorValue
from .player import AudioPlayer
from .recorder import Recorder
from .stt_service import WhisperContext

logger = logging.getLogger(__name__)


class WhisperState:
    """Observable state for recording, playing back and transcribing audio."""

    def __init__(
        self,
        *,
        model_path: Optional[str] = config.WHISPER_MODEL,
        sample_path: Optional[Path] = config.SAMPLE_AUDIO,
        output_dir: Path = config.OUTPUT_DIR,
        recorder: Optional[Recorder] = None,
        player: Optional[AudioPlayer] = None,
        context_factory: Callable[[str], WhisperContext] = WhisperContext.create_context,
        playback: bool = config.ENABLE_PLAYBACK,
    ):
        self.is_model_loaded = BehaviorValue(False)
        self.message_log = BehaviorValue("")
        self.can_transcribe = BehaviorValue(False)
        self.is_recording = BehaviorValue(False)
        self.nearest_transcription: BehaviorValue[Optional[str]] = BehaviorValue(None)
        self.progress: BehaviorValue[Optional[str]] = BehaviorValue(None)

        self.model_path = model_path
        self.sample_path = Path(sample_path) if sample_path else None
        self.output_dir = Path(output_dir)
        self.recorder = recorder or Recorder()
        self.player = player or AudioPlayer()
        self.playback = playback
        self.whisper_context: Optional[WhisperContext] = None
        self.recorded_file: Optional[Path] = None
        self._context_factory = context_factory
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="transcribe")

        try:
            self._load_model()
        except QuickRecapError as exc:
            logger.error("Model load failed: %s", exc)
            self.append_to_message_log(str(exc))

    def _load_model(self) -> None:
        self.append_to_message_log("Loading model...")
        if not self.model_path:
            self.append_to_message_log("Could not locate model")
            return
        self.whisper_context = self._context_factory(self.model_path)
        self.append_to_message_log(f"Loaded model {Path(self.model_path).name}")
        self.is_model_loaded.accept(True)
        self.can_transcribe.accept(True)

    def transcribe_sample(self) -> Optional[Future]:
        if self.sample_path is not None and self.sample_path.exists():
            return self.transcribe_audio(self.sample_path)
        self.append_to_message_log("Could not locate sample")
        return None

    def transcribe_audio(self, path: Path) -> Optional[Future]:
        """Transcribe ``path`` on the worker thread.

        Returns:
            A future resolving to the transcription text, or to ``None`` when
            the job failed.  ``None`` is returned instead of a future when a
            transcription is already running or no model is loaded.
        """
        if not self.can_transcribe.value or self.whisper_context is None:
            self.progress.accept(None)
            return None
        self.can_transcribe.accept(False)
        return self._executor.submit(self._run_transcription, Path(path), self.whisper_context)

    def _run_transcription(self, path: Path, context: WhisperContext) -> Optional[str]:
        try:
            self.append_to_message_log("Reading wave samples...")
            data = self._read_audio_samples(path)
            self.append_to_message_log("Transcribing data...")
            text, _ = context.transcribe(data)
        except Exception as exc:
            logger.exception("Transcription of %s failed", path)
            self.stop_playback()
            self.progress.accept(None)
            self.append_to_message_log(str(exc))
            self.can_transcribe.accept(True)
            return None
        self.stop_playback()
        self.progress.accept(None)
        self.append_to_message_log(f"Done: {text}")
        self.nearest_transcription.accept(text)
        self.can_transcribe.accept(True)
        return text

    def _read_audio_samples(self, path: Path) -> np.ndarray:
        self.stop_playback()
        if self.playback:
            self.start_playback(path)
        return audio_processor.load_samples(str(path))

    def toggle_record(self) -> Optional[Future]:
        """Start recording, or stop the running recording and transcribe it."""
        if self.is_recording.value:
            self.recorder.stop_recording()
            self.is_recording.accept(False)
            self.progress.accept("Transcribing...")
            if self.recorded_file is not None:
                return self.transcribe_audio(self.recorded_file)
            self.progress.accept(None)
            return None

        if not self.recorder.request_permission():
            self.append_to_message_log("Recording permission denied")
            return None
        logger.info("Recording permission granted")
        try:
            self.stop_playback()
            output_file = self.output_dir / config.RECORDING_NAME
            logger.info("Recording to %s", output_file)
            self.recorder.start_recording(output_file, delegate=self)
            logger.info("Recording started")
            self.is_recording.accept(True)
            self.recorded_file = output_file
        except (RecorderError, OSError, RuntimeError) as exc:
            logger.error("Could not start recording: %s", exc)
            self.append_to_message_log(str(exc))
            self.is_recording.accept(False)
        return None

    def start_playback(self, path: Path) -> None:
        self.player.start_playback(path)

    def stop_playback(self) -> None:
        self.player.stop_playback()

    def append_to_message_log(self, message: str) -> None:
        logger.info(message)
        self.message_log.accept(self.message_log.value + f"{message}\n")

    # Recorder delegate

    def recording_error(self, error: Exception) -> None:
        logger.error("Recording error: %s", error)
        self.append_to_message_log(str(error))
        self.is_recording.accept(False)

    def recording_finished(self, successfully: bool) -> None:
        self.is_recording.accept(False)

    def close(self) -> None:
        """Stop any recording or playback and shut the worker down."""
        self.recorder.stop_recording()
        self.stop_playback()
        self._executor.shutdown(wait=True)
