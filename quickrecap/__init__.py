"""
Core package for QuickRecap.

QuickRecap records or loads audio, transcribes it with a local Whisper model
and summarises the transcript with a local T5 encoder/decoder pair.  The
modules in this package wrap audio capture and playback, drive the speech
and summarisation models, and expose the recording state to the CLI and the
HTTP service.
"""

__version__ = "0.1.0"
