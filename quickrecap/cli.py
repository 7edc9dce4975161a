"""
Command-line interface for QuickRecap.

Commands:

* ``transcribe FILE`` – transcribe (and summarise) an audio file.
* ``summarize FILE`` – summarise an existing ``.txt`` transcript.
* ``record`` – record from the microphone until Enter is pressed, then
  transcribe the recording.
* ``sample`` – transcribe the bundled sample audio.
* ``serve`` – run the HTTP service.
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import config, tasks
from .state import WhisperState
from .summarizer import SummarizationService


def _print_result(state: WhisperState, future) -> int:
    text = future.result() if future is not None else None
    if text is None:
        print(state.message_log.value, file=sys.stderr, end="")
        return 1
    print(text.strip())
    return 0


def _cmd_transcribe(args: argparse.Namespace) -> int:
    result = tasks.process_audio(args.file, output_dir=args.output_dir)
    print(result["transcript"])
    if result["summary"]:
        print("\nSummary:\n" + result["summary"].strip())
    return 0


def _cmd_summarize(args: argparse.Namespace) -> int:
    summary = tasks.process_transcript(args.file)
    if summary is None:
        print(f"Nothing to summarise in {args.file}", file=sys.stderr)
        return 1
    print(summary.strip())
    return 0


def _cmd_record(args: argparse.Namespace) -> int:
    state = WhisperState(output_dir=args.output_dir or config.OUTPUT_DIR)
    summarizer = None
    loader = None
    if config.ENABLE_SUMMARISER:
        # Load the summariser while the user is talking
        summarizer = SummarizationService()
        loader = summarizer.load_async()
    try:
        state.progress.subscribe(lambda message: message and print(message, file=sys.stderr))
        state.toggle_record()
        if not state.is_recording.value:
            print(state.message_log.value, file=sys.stderr, end="")
            return 1
        input("Recording... press Enter to stop.")
        future = state.toggle_record()
        status = _print_result(state, future)
        if status == 0 and summarizer is not None:
            loader.join()
            text = future.result()
            if summarizer.is_model_loaded.value and text.strip():
                print("\nSummary:\n" + summarizer.summarize(text).strip())
        return status
    finally:
        state.close()


def _cmd_sample(args: argparse.Namespace) -> int:
    state = WhisperState()
    try:
        return _print_result(state, state.transcribe_sample())
    finally:
        state.close()


def _cmd_serve(args: argparse.Namespace) -> int:
    from .main import run

    run(port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quickrecap", description=__doc__.strip().splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("transcribe", help="transcribe and summarise an audio file")
    p.add_argument("file")
    p.add_argument("-o", "--output-dir", default=None)
    p.set_defaults(func=_cmd_transcribe)

    p = sub.add_parser("summarize", help="summarise a .txt transcript")
    p.add_argument("file")
    p.set_defaults(func=_cmd_summarize)

    p = sub.add_parser("record", help="record from the microphone and transcribe")
    p.add_argument("-o", "--output-dir", default=None)
    p.set_defaults(func=_cmd_record)

    p = sub.add_parser("sample", help="transcribe the bundled sample audio")
    p.set_defaults(func=_cmd_sample)

    p = sub.add_parser("serve", help="run the HTTP service")
    p.add_argument("--port", type=int, default=config.PORT)
    p.set_defaults(func=_cmd_serve)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
