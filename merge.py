# merge.py
# Attempt autosave merge: incoming partial payloads never blank out saved values.
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

QUESTION_KEY = re.compile(r"q\d+")


def attempt_id(quiz_id: str, email: str) -> str:
    return f"{quiz_id}::{email}"


def incoming_answers(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Nested `answers` plus top-level q<N> keys (top-level wins on a clash)."""
    out: Dict[str, Any] = {}
    nested = payload.get("answers")
    if isinstance(nested, Mapping):
        out.update(nested)
    for k, v in payload.items():
        if QUESTION_KEY.fullmatch(str(k)):
            out[k] = v
    return out


def incoming_progress(payload: Mapping[str, Any]) -> Dict[str, Any]:
    nested = payload.get("progress")
    return dict(nested) if isinstance(nested, Mapping) else {}


def merge_answers(existing: Optional[Mapping[str, Any]], incoming: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(existing or {})
    for k, v in incoming.items():
        if v is None:
            continue
        if isinstance(v, str) and v.strip() == "":
            continue
        merged[k] = v
    return merged


def merge_progress(existing: Optional[Mapping[str, Any]], incoming: Mapping[str, Any]) -> Dict[str, Any]:
    # progress keeps empty strings; only null is skipped
    merged = dict(existing or {})
    for k, v in incoming.items():
        if v is None:
            continue
        merged[k] = v
    return merged


def merge_attempt(existing: Optional[Mapping[str, Any]], payload: Mapping[str, Any],
                  now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Builds the attempt document to upsert under quizId::email.

    answers/progress are merged key by key against `existing`; score,
    totalQuestions and submitted always come from the payload. `submitted`
    is not forced one-way: a later submitted=false is stored as sent.
    """
    existing = existing or {}
    quiz_id = payload.get("quizId")
    email = payload.get("email")
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "id": attempt_id(quiz_id, email),
        "quizId": quiz_id,
        "email": email,
        "answers": merge_answers(existing.get("answers"), incoming_answers(payload)),
        "progress": merge_progress(existing.get("progress"), incoming_progress(payload)),
        "score": payload.get("score"),
        "totalQuestions": payload.get("totalQuestions"),
        "submitted": bool(payload.get("submitted") or False),
        "submittedAt": stamp,
        "updatedAt": stamp,
    }
