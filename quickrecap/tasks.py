"""
Audio-to-recap jobs shared by the HTTP service and the command line.

``process_audio`` takes a local recording through Whisper and writes two
transcripts next to each other: the plain text and a copy grouped under
minute labels.  If the T5 summariser is enabled the transcript is then
condensed into ``<name>_summary.txt``.  ``process_transcript`` runs only the
summary step on a transcript that already exists.

Both models are loaded once per process and shared between requests.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from . import audio_processor, config, transcript_formatter
from .stt_service import WhisperContext
from .summarizer import SummarizationService

logger = logging.getLogger(__name__)

SUMMARY_SUFFIX = "_summary.txt"
TIMESTAMPS_SUFFIX = "_timestamps.txt"

_lock = threading.Lock()
_whisper_context: Optional[WhisperContext] = None
_summarizer: Optional[SummarizationService] = None


def get_whisper_context() -> WhisperContext:
    """Return the process-wide Whisper model, loading it on first use."""
    global _whisper_context
    with _lock:
        if _whisper_context is None:
            _whisper_context = WhisperContext.create_context(config.WHISPER_MODEL)
        return _whisper_context


def get_summarizer() -> SummarizationService:
    """Return the process-wide summariser, loading it on first use."""
    global _summarizer
    with _lock:
        if _summarizer is None:
            service = SummarizationService()
            service.load()
            _summarizer = service
        return _summarizer


def whisper_loaded() -> bool:
    """Return whether the Whisper model has been loaded in this process."""
    return _whisper_context is not None


def summarizer_loaded() -> bool:
    """Return whether the summariser has been loaded in this process."""
    return _summarizer is not None


def _derive_base_name(file_name: str) -> str:
    """Strip the folder and extension from an audio or transcript file name."""
    return os.path.splitext(os.path.basename(file_name))[0]


def _write_text(path: Path, text: str) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path)


def process_audio(file_name: str, output_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Transcribe an audio file and write its transcript and summary.

    Steps:

    1. Decode the file into 16 kHz mono samples, converting if necessary.
    2. Transcribe the samples with the local Whisper model.
    3. Save ``<base>.txt`` and ``<base>_timestamps.txt`` to ``output_dir``.
    4. Unless disabled with ``ENABLE_SUMMARISER``, summarise the transcript
       into ``<base>_summary.txt``.

    Args:
        file_name: Path of the audio file.
        output_dir: Destination folder; defaults to ``OUTPUT_DIR``.

    Returns:
        A dictionary with the ``transcript``, the ``summary`` (``None`` when
        skipped) and the written ``files``.

    Raises:
        ValueError: If the file type is not supported.
    """
    output_dir = Path(output_dir or config.OUTPUT_DIR)
    if not audio_processor.is_supported_audio(file_name):
        logger.info(json.dumps({"event": "skip_type", "file": file_name}))
        raise ValueError(f"Unsupported audio type: {Path(file_name).suffix.lower()}")

    logger.info(json.dumps({"event": "start_transcription", "file": file_name}))
    samples = audio_processor.load_samples(file_name)
    text, segments = get_whisper_context().transcribe(samples)
    transcript = text.strip()
    logger.info(json.dumps({"event": "transcription_complete", "file": file_name}))

    base_name = _derive_base_name(file_name)
    files = {
        "transcript": _write_text(output_dir / f"{base_name}.txt", transcript),
        "timestamps": _write_text(
            output_dir / f"{base_name}{TIMESTAMPS_SUFFIX}",
            transcript_formatter.format_transcript(segments),
        ),
    }
    logger.info(json.dumps({"event": "transcript_saved", "path": files["transcript"]}))

    summary = None
    if not transcript:
        logger.info(json.dumps({"event": "empty_transcript", "file": file_name}))
    elif config.ENABLE_SUMMARISER:
        summary = get_summarizer().summarize(transcript)
        files["summary"] = _write_text(output_dir / f"{base_name}{SUMMARY_SUFFIX}", summary)
        logger.info(json.dumps({"event": "summary_saved", "path": files["summary"]}))
    return {"transcript": transcript, "summary": summary, "files": files}


def process_transcript(file_name: str) -> Optional[str]:
    """Generate a summary for an existing transcript.

    Summaries and timestamped transcripts written by :func:`process_audio`
    are skipped, as are non-text files and empty transcripts.

    Returns:
        The summary, or ``None`` if the file was skipped.
    """
    if file_name.endswith(SUMMARY_SUFFIX) or file_name.endswith(TIMESTAMPS_SUFFIX):
        logger.info("Ignoring auxiliary transcript file %s", file_name)
        return None
    if not file_name.endswith(".txt"):
        logger.info("Ignoring non-text transcript file %s", file_name)
        return None
    text = Path(file_name).read_text(encoding="utf-8")
    if not text.strip():
        logger.info("Transcript %s is empty; skipping summarisation", file_name)
        return None
    summary = get_summarizer().summarize(text)
    summary_name = f"{os.path.splitext(file_name)[0]}{SUMMARY_SUFFIX}"
    _write_text(Path(summary_name), summary)
    logger.info("Saved summary to %s", summary_name)
    return summary
