"""
Flask API for the transcript script builder.

Endpoints:
  GET  /health                    - liveness
  POST /api/gemini                - one prompt in, one completion out (optional conversationId)
  POST /api/create-docx           - arbitrary data as a "Generated Data Report" .docx
  POST /api/process-transcript    - run the full pipeline on one transcript
  POST /api/batch/parse           - .xlsx upload -> batch items
  POST /api/batch/run             - run the pipeline over batch items
  POST /api/batch/export-xlsx     - batch items -> processed_transcripts.xlsx
  POST /api/batch/export-docx     - batch items -> processed_transcripts.docx
  POST /api/export-txt            - one script -> kich_ban_<date>.txt

Run:
  python app.py            # PORT from .env (default 5000)
"""

import traceback
from io import BytesIO
from typing import Callable, Optional

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

import export_utils
import llm_utils
import script_types
from batch_runner import BatchResultItem, run_batch
from build_script import ProcessingResult, process_transcript
from build_scripts_utils import script_filename
from config import config
from conversation_store import send_prompt_with_history
from errors import ValidationError

ProcessFn = Callable[[str, script_types.ScriptProfile], ProcessingResult]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _profile_from(data: dict) -> script_types.ScriptProfile:
    return script_types.get_profile(data.get("profile") or None)


def _items_from(data: dict) -> list[BatchResultItem]:
    raw = data.get("items")
    if not isinstance(raw, list) or not raw:
        raise ValidationError("No results to export")
    if not all(isinstance(r, dict) for r in raw):
        raise ValidationError("Each item must be an object")
    return [BatchResultItem.from_dict(r) for r in raw]


def _attachment(payload: bytes, mimetype: str, filename: str):
    return send_file(BytesIO(payload), mimetype=mimetype, as_attachment=True, download_name=filename)


def create_app(
    generate_fn: Optional[Callable[[str], str]] = None,
    process_fn: Optional[ProcessFn] = None,
    batch_delay: Optional[float] = None,
) -> Flask:
    """
    Build the Flask app.

    Args:
        generate_fn: prompt -> text; defaults to llm_utils.generate (with retries).
        process_fn: (transcript, profile) -> ProcessingResult; defaults to process_transcript.
        batch_delay: Seconds between batch items; defaults to Config.batch_delay_seconds.
    """
    app = Flask(__name__)
    CORS(app)

    if process_fn is None:
        def process_fn(transcript, profile):
            return process_transcript(transcript, profile=profile, generate_fn=generate_fn)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/gemini", methods=["POST"])
    def gemini():
        data = _json_body()
        prompt = data.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            return jsonify({"error": "Prompt is required"}), 400

        conversation_id = data.get("conversationId")
        try:
            if conversation_id:
                text = send_prompt_with_history(prompt, conversation_id, generate_fn=generate_fn)
            else:
                text = llm_utils.generate_with_retry(prompt, generate_fn=generate_fn)
        except Exception as e:
            print(f"[API] ERROR: /api/gemini failed: {e}")
            return jsonify({"error": "Failed to process with Gemini API"}), 500
        return jsonify({"response": text})

    @app.route("/api/create-docx", methods=["POST"])
    def create_docx():
        data = _json_body().get("data")
        if data is None or data == "" or data == [] or data == {}:
            return jsonify({"error": "Data is required"}), 400
        try:
            payload = export_utils.build_report_docx(data)
        except Exception as e:
            print(f"[API] ERROR: /api/create-docx failed: {e}")
            traceback.print_exc()
            return jsonify({"error": "Failed to create DOCX file"}), 500
        return _attachment(payload, export_utils.DOCX_MIMETYPE, "generated-report.docx")

    @app.route("/api/process-transcript", methods=["POST"])
    def process_one():
        data = _json_body()
        transcript = data.get("transcript")
        if not isinstance(transcript, str) or not transcript.strip():
            return jsonify({"success": False, "error": "Transcript is required"}), 400
        try:
            profile = _profile_from(data)
        except ValueError as e:
            return jsonify({"success": False, "error": str(e)}), 400

        result = process_fn(transcript, profile)
        return jsonify(result.to_dict()), (200 if result.success else 500)

    @app.route("/api/batch/parse", methods=["POST"])
    def batch_parse():
        upload = request.files.get("file")
        if upload is None:
            return jsonify({"error": "File is required"}), 400
        try:
            items = export_utils.parse_transcript_workbook(upload.read())
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        print(f"[API] Parsed {len(items)} transcript(s) from {upload.filename}")
        return jsonify({"items": [i.to_dict() for i in items]})

    @app.route("/api/batch/run", methods=["POST"])
    def batch_run():
        data = _json_body()
        try:
            items = _items_from(data)
            profile = _profile_from(data)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        progress = {"value": 0}

        def on_progress(pct):
            progress["value"] = pct

        run_batch(
            items,
            on_progress=on_progress,
            process_fn=lambda transcript: process_fn(transcript, profile),
            delay=batch_delay,
        )
        return jsonify({"items": [i.to_dict() for i in items], "progress": progress["value"]})

    @app.route("/api/batch/export-xlsx", methods=["POST"])
    def batch_export_xlsx():
        try:
            payload = export_utils.export_batch_to_xlsx(_items_from(_json_body()))
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            print(f"[API] ERROR: export failed: {e}")
            traceback.print_exc()
            return jsonify({"error": "Failed to export results"}), 500
        return _attachment(payload, export_utils.XLSX_MIMETYPE, "processed_transcripts.xlsx")

    @app.route("/api/batch/export-docx", methods=["POST"])
    def batch_export_docx():
        try:
            payload = export_utils.build_batch_docx(_items_from(_json_body()))
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            print(f"[API] ERROR: export failed: {e}")
            traceback.print_exc()
            return jsonify({"error": "Failed to export results"}), 500
        return _attachment(payload, export_utils.DOCX_MIMETYPE, "processed_transcripts.docx")

    @app.route("/api/export-txt", methods=["POST"])
    def export_txt():
        data = _json_body()
        outline = data.get("outline") or ""
        first = data.get("firstSections") or ""
        last = data.get("lastSections") or ""
        if not (outline or first or last):
            return jsonify({"error": "Script content is required"}), 400
        payload = export_utils.build_script_txt(outline, first, last)
        return _attachment(payload, "text/plain; charset=utf-8", script_filename())

    return app


app = create_app()


if __name__ == "__main__":
    print(f"\n[API] Model: {llm_utils.get_text_model_display()}")
    print(f"[API] Transcript script API running on http://localhost:{config.port}\n")
    app.run(host="0.0.0.0", port=config.port, debug=False, threaded=True)
