"""
Runtime settings for QuickRecap.

All settings are read once from environment variables at import time:

* ``WHISPER_MODEL`` – faster-whisper model size or converted model directory.
* ``WHISPER_DEVICE`` / ``WHISPER_COMPUTE_TYPE`` – inference placement.
* ``WHISPER_LANGUAGE`` – language hint; empty lets the model detect it.
* ``SUMMARY_MODEL`` – Hugging Face id or local path of the T5 model.
* ``SAMPLE_AUDIO`` – audio file used by "transcribe sample".
* ``OUTPUT_DIR`` – where recordings, transcripts and summaries are written.
* ``RECORDING_NAME`` – file name of the microphone recording.
* ``ENABLE_SUMMARISER`` – set to ``false`` to skip summarisation.
* ``ENABLE_PLAYBACK`` – set to ``false`` to transcribe without playing audio.
* ``PORT`` – HTTP service port.
"""

import os
from pathlib import Path


def _env_flag(name: str, default: str = "true") -> bool:
    return os.environ.get(name, default).lower() == "true"


WHISPER_MODEL = os.environ.get("WHISPER_MODEL", "base")
WHISPER_DEVICE = os.environ.get("WHISPER_DEVICE", "auto")
WHISPER_COMPUTE_TYPE = os.environ.get("WHISPER_COMPUTE_TYPE", "auto")
WHISPER_LANGUAGE = os.environ.get("WHISPER_LANGUAGE", "en")

SUMMARY_MODEL = os.environ.get("SUMMARY_MODEL", "google/flan-t5-small")

SAMPLE_AUDIO = Path(os.environ.get("SAMPLE_AUDIO", "samples/jfk.wav"))
OUTPUT_DIR = Path(os.environ.get("OUTPUT_DIR", "~/QuickRecap")).expanduser()
RECORDING_NAME = os.environ.get("RECORDING_NAME", "output.wav")

ENABLE_SUMMARISER = _env_flag("ENABLE_SUMMARISER")
ENABLE_PLAYBACK = _env_flag("ENABLE_PLAYBACK")

PORT = int(os.environ.get("PORT", 8080))

# Model input format; not configurable.
SAMPLE_RATE = 16_000
CHANNELS = 1

# T5 export geometry.
MAX_SEQUENCE_LENGTH = 512
CHUNK_SIZE = 512
MIN_CHUNK_TOKENS = 128
DECODER_START_TOKEN_ID = 0
EOS_TOKEN_ID = 1
