"""
Transcript formatting utilities.

The speech model returns a flat list of timed segments.  The functions in
this module rebuild them into a more human-readable transcript.

Consecutive segments are grouped by the minute of the recording in which
they start.  Each group begins a new line with a label such as ``[3]``
meaning "minute 3".
"""

import re
from typing import Iterable, List

from .stt_service import Segment

_PUNCTUATION = re.compile(r"^[\.!?,:;]+$")


def format_transcript(segments: Iterable[Segment]) -> str:
    """Convert recognised segments into a minute-labelled transcript.

    Args:
        segments: Segments as returned by
            :attr:`quickrecap.stt_service.WhisperContext.segments`.

    Returns:
        A single string containing the formatted transcript.
    """
    lines: List[str] = []
    current_line = ""
    current_minute = -1
    for segment in segments:
        text = segment.text.strip()
        if not text:
            continue
        minute = int(segment.start // 60)
        if minute != current_minute:
            if current_line:
                lines.append(current_line.strip())
            current_line = f"[{minute}] {text}"
            current_minute = minute
        elif _PUNCTUATION.match(text):
            # Append punctuation directly without a preceding space
            current_line += text
        else:
            current_line += f" {text}"
    if current_line:
        lines.append(current_line.strip())
    return "\n".join(lines)
