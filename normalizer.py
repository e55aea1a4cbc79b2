# normalizer.py
# -----------------------------------------------------------------------------
# Model output -> quiz object.
# - Lenient JSON recovery: direct, fenced, braces, json-block (in that order)
# - Schema defaulting for title/description/questions
# - Best-effort hint per question (one failing call never fails the quiz)
# -----------------------------------------------------------------------------

import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from errors import InvalidModelOutput
from prompts import HINT_OPTIONS, hint_messages

_FENCE_OPEN = re.compile(r"^```(?:html|json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"```\s*$")
_JSON_BLOCK = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_SMART_DOUBLE = re.compile(r"[“”]")
_SMART_SINGLE = re.compile(r"[‘’]")


# ------------------------------- strategies -----------------------------------
def _parse_direct(text: str) -> Any:
    return json.loads(text)


def _parse_fenced(text: str) -> Any:
    unfenced = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text.strip()))
    return json.loads(unfenced)


def _parse_braces(text: str) -> Any:
    t = _SMART_DOUBLE.sub('"', text)
    t = _SMART_SINGLE.sub("'", t)
    t = _CONTROL_CHARS.sub("", t)
    first = t.find("{")
    last = t.rfind("}")
    if first == -1 or last <= first:
        raise ValueError("no object braces")
    return json.loads(t[first:last + 1])


def _parse_json_block(text: str) -> Any:
    m = _JSON_BLOCK.search(text)
    if not m:
        raise ValueError("no ```json block")
    return json.loads(m.group(1))


# Order matters: callers depend on which strategy fires first for ambiguous input.
STRATEGIES: List[Tuple[str, Callable[[str], Any]]] = [
    ("direct", _parse_direct),
    ("fenced", _parse_fenced),
    ("braces", _parse_braces),
    ("json-block", _parse_json_block),
]


def parse_json_lenient(text: Optional[str]) -> Tuple[Optional[str], Any]:
    """
    Returns (strategy_name, value) for the first strategy whose parse succeeds,
    or (None, None) when none does. The value may be any JSON type.
    """
    if not text:
        return None, None
    text = str(text)
    for name, strategy in STRATEGIES:
        try:
            return name, strategy(text)
        except (ValueError, RecursionError):
            continue
    return None, None


# ------------------------------- schema ---------------------------------------
def _as_text(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)


def _as_index(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str) and re.fullmatch(r"\s*-?\d+\s*", v):
        return int(v)
    return None


def _resolve_answer(v: Any, options: List[str]) -> Optional[int]:
    """Index, then option letter (A = 0), then exact option text. None when nothing fits."""
    idx = _as_index(v)
    if idx is not None and 0 <= idx < len(options):
        return idx
    if not isinstance(v, str):
        return None
    s = v.strip()
    if len(s) == 1 and s.isalpha() and s.isascii():
        idx = ord(s.upper()) - ord("A")
        return idx if idx < len(options) else None
    stripped = [o.strip() for o in options]
    if s and s in stripped:
        return stripped.index(s)
    return None


def _normalize_question(raw: Dict[str, Any], position: int) -> Optional[Dict[str, Any]]:
    q = dict(raw)
    q["id"] = _as_text(q.get("id")).strip() or f"q{position}"
    q["question"] = _as_text(q.get("question") or q.get("prompt"))

    options = q.get("options")
    q["options"] = [_as_text(o) for o in options] if isinstance(options, list) else []
    if not q["options"]:
        print(f"[normalizer] dropping {q['id']}: no options", flush=True)
        return None
    if not (3 <= len(q["options"]) <= 6):
        print(f"[normalizer] {q['id']}: {len(q['options'])} options (expected 3-6)", flush=True)

    idx = _resolve_answer(q.get("correctAnswer"), q["options"])
    if idx is None:
        print(f"[normalizer] dropping {q['id']}: correctAnswer {q.get('correctAnswer')!r} matches no option", flush=True)
        return None
    q["correctAnswer"] = idx
    q["explanation"] = _as_text(q.get("explanation"))
    return q


def coerce_quiz(data: Dict[str, Any]) -> Dict[str, Any]:
    quiz = dict(data)
    quiz["title"] = _as_text(quiz.get("title"))
    quiz["description"] = _as_text(quiz.get("description"))
    questions = quiz.get("questions")
    out: List[Dict[str, Any]] = []
    if isinstance(questions, list):
        for i, q in enumerate(questions, start=1):
            if not isinstance(q, dict):
                continue
            nq = _normalize_question(q, i)
            if nq is not None:
                out.append(nq)
    quiz["questions"] = out
    return quiz


# ------------------------------- hints ----------------------------------------
def backfill_hints(quiz: Dict[str, Any], generator, model: Optional[str] = None) -> Dict[str, Any]:
    """One hint call per question with text; a failed call leaves hint = ''."""
    for q in quiz.get("questions") or []:
        text = (q.get("question") or "").strip()
        if not text:
            continue
        try:
            hint = generator.chat(hint_messages(text), model=model, **HINT_OPTIONS)
            q["hint"] = (hint or "").strip()
        except Exception as e:
            print(f"[normalizer] hint failed for {q.get('id')}: {e}", flush=True)
            q["hint"] = ""
    return quiz


# ------------------------------- entry point ----------------------------------
def normalize_quiz(raw_text: Optional[str], generator=None, hint_model: Optional[str] = None,
                   with_hints: bool = True) -> Dict[str, Any]:
    """
    Raw model text -> quiz dict, or InvalidModelOutput (raw capped at 4000 chars)
    when nothing parses or the parsed value is not an object.
    """
    strategy, data = parse_json_lenient(raw_text)
    if strategy is None or not isinstance(data, dict):
        raise InvalidModelOutput("OpenAI did not return valid JSON", raw=raw_text)
    if strategy != "direct":
        print(f"[normalizer] recovered JSON via '{strategy}'", flush=True)

    quiz = coerce_quiz(data)
    if with_hints and generator is not None:
        backfill_hints(quiz, generator, model=hint_model)
    return quiz
