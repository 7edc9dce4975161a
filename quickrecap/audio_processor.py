"""
Audio conversion and decoding utilities.

The speech model expects mono float samples at 16 kHz.  Files recorded by
:mod:`quickrecap.recorder` already have that shape and are decoded directly
with `soundfile`.  Anything else is first converted to a 16 kHz mono WAV with
the `pydub` library, which in turn relies on `ffmpeg`.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile as sf
from pydub import AudioSegment

from .config import SAMPLE_RATE
from .errors import AudioFormatError

SUPPORTED_EXTENSIONS = {".wav", ".mp3", ".m4a", ".flac", ".mp4"}

# Scale used by the recogniser's reference WAV reader.
INT16_SCALE = 32767.0


def convert_to_wav(input_path: str, *, target_sample_rate: int = SAMPLE_RATE) -> str:
    """Resample a local recording into a scratch WAV Whisper can read.

    pydub (through ffmpeg) decodes any of :data:`SUPPORTED_EXTENSIONS`, mixes
    it down to one channel of 16-bit samples at ``target_sample_rate`` and
    writes the result to a fresh ``mkstemp`` file.  Remove that file with
    :func:`cleanup_temp_file` once the samples have been read.

    Raises:
        ValueError: If ``input_path`` does not have a supported extension.
    """
    suffix = Path(input_path).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported audio type: {suffix}")
    segment = (
        AudioSegment.from_file(input_path)
        .set_channels(1)
        .set_frame_rate(target_sample_rate)
        .set_sample_width(2)
    )
    fd, wav_path = tempfile.mkstemp(prefix="quickrecap-", suffix=".wav")
    os.close(fd)
    segment.export(wav_path, format="wav")
    return wav_path


def decode_wave_file(path: str) -> np.ndarray:
    """Read a 16 kHz PCM WAV file into float32 samples in ``[-1.0, 1.0]``.

    Only the first channel of multi-channel files is kept.

    Raises:
        AudioFormatError: If the file is not sampled at 16 kHz.
    """
    data, sample_rate = sf.read(path, dtype="int16", always_2d=True)
    if sample_rate != SAMPLE_RATE:
        raise AudioFormatError(
            f"Expected {SAMPLE_RATE} Hz audio, got {sample_rate} Hz in {path}"
        )
    samples = data[:, 0].astype(np.float32) / INT16_SCALE
    return np.clip(samples, -1.0, 1.0)


def load_samples(path: str) -> np.ndarray:
    """Decode any supported audio file into 16 kHz mono float samples.

    WAV files at the right rate are read directly; everything else goes
    through :func:`convert_to_wav` and the temporary file is removed again.
    """
    if not is_supported_audio(path):
        raise ValueError(f"Unsupported audio type: {Path(path).suffix.lower()}")
    if Path(path).suffix.lower() == ".wav" and sf.info(path).samplerate == SAMPLE_RATE:
        return decode_wave_file(path)
    converted_path = convert_to_wav(path)
    try:
        return decode_wave_file(converted_path)
    finally:
        cleanup_temp_file(converted_path)


def is_supported_audio(path: str) -> bool:
    """Check whether the file at ``path`` has a supported audio extension."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def cleanup_temp_file(path: Optional[str]) -> None:
    """Delete a scratch WAV left by :func:`convert_to_wav`; ``None`` or a missing file is ignored."""
    if path and os.path.exists(path):
        os.remove(path)
