# parse.py
# -----------------------------------------------------------------------------
# Upload -> text -> model -> quiz.
# - POST /api/parse-image : OCR the image
# - POST /api/parse-pdf   : read the PDF text layer
# Optional form field `prompt` carries teacher instructions.
# -----------------------------------------------------------------------------

from typing import Any, Callable, Dict

from flask import Blueprint, jsonify, request

import extraction
from errors import MissingInput
from normalizer import normalize_quiz
from prompts import QUIZ_OPTIONS, quiz_messages, truncate_source


def create_parse_blueprint(base_path: str, deps: Dict[str, Any], name: str = "parse") -> Blueprint:
    """
    Required deps: generator, uploads
    Optional deps: extract_image_text, extract_pdf_text, quiz_model, hint_model, generate_hints
    """
    bp = Blueprint(name, __name__, url_prefix=f"{base_path}/api")

    generator = deps["generator"]
    uploads = deps["uploads"]
    extract_image_text = deps.get("extract_image_text") or extraction.extract_image_text
    extract_pdf_text = deps.get("extract_pdf_text") or extraction.extract_pdf_text

    quiz_model = deps.get("quiz_model")
    hint_model = deps.get("hint_model")
    generate_hints = deps.get("generate_hints", True)

    def _quiz_from_upload(extract: Callable[[str], str], label: str):
        f = request.files.get("file")
        if f is None or not f.filename:
            raise MissingInput("No file uploaded")
        saved = uploads.save(f)
        try:
            source = truncate_source(extract(str(saved)))
            teacher_prompt = request.form.get("prompt") or ""
            print(f"[parse] {label}: {len(source)} chars, prompt={bool(teacher_prompt)}", flush=True)
            raw = generator.chat(quiz_messages(source, teacher_prompt), model=quiz_model, **QUIZ_OPTIONS)
            quiz = normalize_quiz(raw, generator, hint_model=hint_model, with_hints=generate_hints)
        finally:
            uploads.discard(saved)
        return jsonify({"ok": True, "quiz": quiz})

    @bp.post("/parse-image")
    def parse_image():
        return _quiz_from_upload(extract_image_text, "image")

    @bp.post("/parse-pdf")
    def parse_pdf():
        return _quiz_from_upload(extract_pdf_text, "pdf")

    return bp
