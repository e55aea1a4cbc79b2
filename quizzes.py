# quizzes.py
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import Blueprint, jsonify, request

from errors import Forbidden, NotFound
from schemas import QuizListQuery, QuizSaveIn, validate
from store import QUIZZES


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _finalized(value: Any) -> Optional[Dict[str, Any]]:
    """finalizedJson arrives as an object (JSON body) or a string (multipart); bad strings become None."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def _form_body() -> Dict[str, Any]:
    if request.is_json:
        return request.get_json(silent=True) or {}
    body: Dict[str, Any] = request.form.to_dict()
    students: List[str] = []
    for raw in request.form.getlist("allowedStudents"):
        raw = (raw or "").strip()
        if raw.startswith("["):
            try:
                students.extend(str(s) for s in json.loads(raw))
                continue
            except ValueError:
                pass
        students.extend(s.strip() for s in raw.split(",") if s.strip())
    if "allowedStudents" in request.form:
        body["allowedStudents"] = students
    return body


def student_allowed(quiz: Dict[str, Any], email: Optional[str]) -> bool:
    allowed = quiz.get("allowedStudents") or []
    if not allowed:
        return True
    return bool(email) and email in allowed


def create_quizzes_blueprint(base_path: str, deps: Dict[str, Any], name: str = "quizzes") -> Blueprint:
    """
    Required deps: store, uploads
    """
    bp = Blueprint(name, __name__, url_prefix=f"{base_path}/api")
    store = deps["store"]
    uploads = deps["uploads"]

    @bp.get("/quizzes")
    def list_quizzes():
        q = validate(QuizListQuery, request.args.to_dict())
        quizzes = store.find(QUIZZES, {"courseId": q.courseId, "teacherId": q.teacherId})
        return jsonify({"ok": True, "quizzes": quizzes})

    @bp.post("/quizzes")
    def save_quiz():
        body = validate(QuizSaveIn, _form_body())
        parsed = _finalized(body.finalizedJson)
        existing = store.get(QUIZZES, body.id) or {}

        doc = dict(existing)
        doc.update({
            "id": body.id,
            "finalizedJson": parsed,
            "metadata": body.metadata,
            "courseId": body.courseId,
            "teacherId": body.teacherId,
            "updatedAt": _now_iso(),
        })
        doc.setdefault("createdAt", doc["updatedAt"])
        doc.setdefault("allowedStudents", [])
        if "allowedStudents" in body.model_fields_set:
            doc["allowedStudents"] = body.allowedStudents
        if parsed:
            for key in ("title", "description", "questions"):
                if key in parsed:
                    doc[key] = parsed[key]

        f = request.files.get("file")
        if f is not None and f.filename:
            doc["filePath"] = uploads.relative(uploads.save(f))

        print(f"[quizzes] save id={body.id} courseId={body.courseId} teacherId={body.teacherId} "
              f"hasFile={bool(f and f.filename)} title={(parsed or {}).get('title')!r}", flush=True)
        saved = store.upsert(QUIZZES, body.id, doc)
        return jsonify({"ok": True, "quiz": saved})

    @bp.get("/quizzes/<quiz_id>")
    def get_quiz(quiz_id: str):
        quiz = store.get(QUIZZES, quiz_id)
        if not quiz:
            raise NotFound("not found")
        if not student_allowed(quiz, request.args.get("email")):
            raise Forbidden("not allowed")
        host = request.headers.get("Origin") or request.host_url
        resp = jsonify({"ok": True, "quiz": quiz, "fileUrl": uploads.public_url(host, quiz.get("filePath"))})
        resp.headers["Cache-Control"] = "no-store"
        return resp

    return bp
