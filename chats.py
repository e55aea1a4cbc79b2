# chats.py
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Blueprint, jsonify, request

from errors import MissingInput
from prompts import CHAT_OPTIONS, teacher_chat_messages
from schemas import ChatIn, TeacherChatIn, validate
from store import CHATS
from uploads import time_token

CHAT_HISTORY_LIMIT = 1000


def _timestamp(raw) -> str:
    if raw:
        try:
            ts = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            raise MissingInput("timestamp must be ISO-8601") from None
        # UTC only: the store orders chats by the text value
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc).isoformat()
    return datetime.now(timezone.utc).isoformat()


def create_chats_blueprint(base_path: str, deps: Dict[str, Any], name: str = "chats") -> Blueprint:
    """
    Teacher chat log (append-only, scoped by teacherId) and the AI assistant endpoint.
    Required deps: store, generator
    Optional deps: chat_model
    """
    bp = Blueprint(name, __name__, url_prefix=f"{base_path}/api")
    store = deps["store"]
    generator = deps["generator"]
    chat_model = deps.get("chat_model")

    @bp.post("/chats")
    def append_chat():
        body = validate(ChatIn, request.get_json(silent=True))
        teacher_id = body.resolved_teacher_id()
        if not teacher_id:
            raise MissingInput("teacherId required")
        text = body.resolved_text()
        if not text.strip():
            raise MissingInput("text/content required")

        doc = {
            "id": body.id or f"msg_{time_token()}",
            "role": body.resolved_role(),
            "text": text,
            "meta": body.meta,
            "teacherId": teacher_id,
            "timestamp": _timestamp(body.timestamp),
        }
        print(f"[chats] {doc['id']} shape={body.shape} role={doc['role']} teacherId={teacher_id}", flush=True)
        saved = store.upsert(CHATS, doc["id"], doc)
        return jsonify({"ok": True, "chat": saved})

    @bp.get("/chats")
    def list_chats():
        teacher_id = (request.args.get("teacherId") or "").strip()
        if not teacher_id:
            raise MissingInput("teacherId required")
        chats = store.find(CHATS, {"teacherId": teacher_id}, order_by="timestamp", limit=CHAT_HISTORY_LIMIT)
        return jsonify({"ok": True, "chats": chats})

    @bp.post("/chat")
    def teacher_chat():
        body = validate(TeacherChatIn, request.get_json(silent=True))
        reply = generator.chat(teacher_chat_messages(body.message), model=chat_model, **CHAT_OPTIONS)
        return jsonify({"ok": True, "response": reply})

    return bp
