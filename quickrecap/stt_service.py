"""
Local speech-to-text service wrapper.

This module encapsulates interaction with the `faster-whisper` runtime.  A
:class:`WhisperContext` holds one loaded model; ``transcribe`` runs it over
16 kHz mono float samples and returns the text together with its timed
segments.  ``full_transcribe`` and ``get_transcription`` remain for callers
that own the context exclusively.

Usage::

    from quickrecap.stt_service import WhisperContext
    context = WhisperContext.create_context("base")
    text, segments = context.transcribe(samples)
    print(text)
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from . import config
from .errors import ModelLoadError

logger = logging.getLogger(__name__)


@dataclass
class Segment:
    """One recognised span of speech, with times in seconds."""

    start: float
    end: float
    text: str


class WhisperContext:
    """A loaded Whisper model plus the result of its last transcription."""

    def __init__(self, model, *, name: str, language: Optional[str] = None, beam_size: int = 5):
        self.model = model
        self.name = name
        self.language = language or None
        self.beam_size = beam_size
        self._segments: List[Segment] = []
        self._lock = threading.Lock()

    @classmethod
    def create_context(
        cls,
        path: str,
        *,
        device: str = config.WHISPER_DEVICE,
        compute_type: str = config.WHISPER_COMPUTE_TYPE,
        language: str = config.WHISPER_LANGUAGE,
    ) -> "WhisperContext":
        """Load a Whisper model by size name or converted-model directory.

        Args:
            path: A model size such as ``base`` or a local model directory.
            device: Inference device (``auto``, ``cpu``, ``cuda``).
            compute_type: Quantisation type; ``auto`` picks the device default.
            language: Language hint.  An empty string enables detection.

        Raises:
            ModelLoadError: If the model cannot be located or loaded.
        """
        from faster_whisper import WhisperModel

        if compute_type == "auto":
            compute_type = "default"
        logger.info("Loading Whisper model %s on %s (%s)", path, device, compute_type)
        try:
            model = WhisperModel(path, device=device, compute_type=compute_type)
        except Exception as exc:
            raise ModelLoadError(f"Could not load Whisper model {path}: {exc}") from exc
        return cls(model, name=str(path), language=language)

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    def transcribe(self, samples: np.ndarray) -> Tuple[str, List[Segment]]:
        """Transcribe ``samples`` and return the text and its segments.

        The model run and the result both belong to this call, so concurrent
        callers sharing one context never see each other's output.
        """
        with self._lock:
            logger.info("Transcribing %.1f s of audio", len(samples) / config.SAMPLE_RATE)
            segments, info = self.model.transcribe(
                samples.astype(np.float32),
                language=self.language,
                beam_size=self.beam_size,
            )
            result = [Segment(s.start, s.end, s.text) for s in segments]
            self._segments = result
            logger.info(
                "Transcription complete: %d segments, language %s",
                len(result),
                getattr(info, "language", None),
            )
        return "".join(segment.text for segment in result), list(result)

    def full_transcribe(self, samples: np.ndarray) -> None:
        """Transcribe ``samples`` and keep the resulting segments."""
        self.transcribe(samples)

    def get_transcription(self) -> str:
        """Return the text of the last transcription run."""
        return "".join(segment.text for segment in self._segments)
