"""
HTTP entrypoints for the recap pipeline.

* ``POST /transcribe`` – multipart ``file`` upload, or a JSON body with a
  local ``path``.  Transcribes the audio and, unless disabled, summarises it.
* ``POST /summarize`` – JSON body with ``text``; returns its summary.
* ``GET /health`` – reports which models are loaded.
"""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path

from flask import Flask, jsonify, request

from . import audio_processor, config, tasks

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _json_body() -> dict:
    """Return the request's JSON object, or an empty dict for any other body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.route("/transcribe", methods=["POST"])
def transcribe():
    upload_dir = None
    try:
        upload = request.files.get("file")
        if upload is not None and upload.filename:
            file_name = os.path.basename(upload.filename)
            if not audio_processor.is_supported_audio(file_name):
                logger.info(json.dumps({"event": "skip_non_audio", "file": file_name}))
                return f"Unsupported audio type: {Path(file_name).suffix.lower()}", 400
            # Keep the upload's name so outputs are named after it
            upload_dir = tempfile.mkdtemp()
            source = os.path.join(upload_dir, file_name)
            upload.save(source)
        else:
            source = _json_body().get("path")
            if not isinstance(source, str) or not source:
                return "Missing 'file' upload or 'path' in request", 400
            if not audio_processor.is_supported_audio(source):
                logger.info(json.dumps({"event": "skip_non_audio", "file": source}))
                return f"Unsupported audio type: {Path(source).suffix.lower()}", 400
            if not os.path.exists(source):
                return f"No such file: {source}", 400
        logger.info(json.dumps({"event": "request", "file": os.path.basename(source)}))

        result = tasks.process_audio(source)
        return jsonify(result), 200

    except Exception as e:
        logger.exception("Error in /transcribe")
        return f"Server error: {str(e)}", 500
    finally:
        if upload_dir is not None:
            shutil.rmtree(upload_dir, ignore_errors=True)


@app.route("/summarize", methods=["POST"])
def summarize():
    text = _json_body().get("text")
    if not isinstance(text, str) or not text.strip():
        return "Missing 'text' in request", 400
    try:
        summary = tasks.get_summarizer().summarize(text)
    except Exception as e:
        logger.exception("Error in /summarize")
        return f"Server error: {str(e)}", 500
    return jsonify({"summary": summary}), 200


@app.route("/health", methods=["GET"])
def health():
    return jsonify(
        {
            "whisper_model": config.WHISPER_MODEL,
            "summary_model": config.SUMMARY_MODEL,
            "whisper_loaded": tasks.whisper_loaded(),
            "summarizer_loaded": tasks.summarizer_loaded(),
        }
    )


def run(port: int = config.PORT) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
