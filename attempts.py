# attempts.py
from typing import Any, Dict

from flask import Blueprint, jsonify, request

from errors import NotFound
from merge import attempt_id, merge_attempt
from schemas import AttemptIn, AttemptQuery, validate
from store import ATTEMPTS


def create_attempts_blueprint(base_path: str, deps: Dict[str, Any], name: str = "attempts") -> Blueprint:
    """
    Student attempts keyed by quizId::email.
    Required deps: store
    """
    bp = Blueprint(name, __name__, url_prefix=f"{base_path}/api")
    store = deps["store"]

    @bp.post("/attempts")
    def save_attempt():
        body = validate(AttemptIn, request.get_json(silent=True))
        payload = body.model_dump()
        key = attempt_id(body.quizId, body.email)

        # Read-modify-write against a point-in-time read; a concurrent save for
        # the same key can still overwrite this one as a whole document.
        existing = store.get(ATTEMPTS, key)
        doc = merge_attempt(existing, payload)
        if existing and existing.get("createdAt"):
            doc["createdAt"] = existing["createdAt"]
        else:
            doc["createdAt"] = doc["submittedAt"]

        saved = store.upsert(ATTEMPTS, key, doc)
        print(f"[attempts] {key}: answers={len(doc['answers'])} submitted={doc['submitted']}", flush=True)
        return jsonify({"ok": True, "attempt": saved})

    @bp.get("/attempts")
    def get_attempt():
        q = validate(AttemptQuery, request.args.to_dict())
        attempt = store.get(ATTEMPTS, attempt_id(q.quizId, q.email))
        if not attempt:
            raise NotFound("not found")
        return jsonify({"ok": True, "attempt": attempt})

    return bp
