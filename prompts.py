# prompts.py
import re
from typing import Dict, List, Optional

# Hard ceiling on extracted text sent to the model (cost/latency bound).
MAX_SOURCE_CHARS = 6000

QUIZ_SYSTEM_PROMPT = (
    "You are an expert quiz generator. Output ONLY valid JSON (no markdown, no prose). "
    'Schema: {"title": string, "description": string, "questions": [{"id": string, '
    '"question": string, "options": string[], "correctAnswer": number, "explanation": string}]}. '
    "Rules: 1) Do not include code fences. 2) Do not include comments. "
    "3) Use zero-based index for correctAnswer. 4) Ensure JSON is syntactically valid. "
    "5) Provide 3–6 options where applicable. 6) Keep explanations concise."
)
ENSURE_JSON_LINE = "Return ONLY valid JSON per the schema above."

HINT_SYSTEM_PROMPT = "You are an expert teacher. Provide a helpful hint for the following quiz question."
TEACHER_CHAT_SYSTEM_PROMPT = "You are a helpful AI assistant for teachers."

# Generation options per call site
QUIZ_OPTIONS = {"temperature": 0.2, "max_tokens": 1200, "force_json": True}
HINT_OPTIONS = {"temperature": 0.5, "max_tokens": 120}
CHAT_OPTIONS = {"temperature": 0.5, "max_tokens": 1000}

_JSON_WORD = re.compile(r"json", re.IGNORECASE)


def truncate_source(text: Optional[str], limit: int = MAX_SOURCE_CHARS) -> str:
    text = text or ""
    return text[:limit] if len(text) > limit else text


def quiz_system_prompt(teacher_prompt: Optional[str] = None) -> str:
    teacher_prompt = (teacher_prompt or "").strip()
    if not teacher_prompt:
        return QUIZ_SYSTEM_PROMPT
    content = QUIZ_SYSTEM_PROMPT + "\nTeacher instructions: " + teacher_prompt
    # restate the format line unless the teacher already mentions JSON
    if not _JSON_WORD.search(teacher_prompt):
        content += "\n" + ENSURE_JSON_LINE
    return content


def quiz_messages(source_text: str, teacher_prompt: Optional[str] = None) -> List[Dict[str, str]]:
    """System + user messages for quiz generation. Callers cap source_text with truncate_source first."""
    return [
        {"role": "system", "content": quiz_system_prompt(teacher_prompt)},
        {"role": "user", "content": source_text},
    ]


def hint_messages(question_text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": HINT_SYSTEM_PROMPT},
        {"role": "user", "content": question_text},
    ]


def teacher_chat_messages(message: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": TEACHER_CHAT_SYSTEM_PROMPT},
        {"role": "user", "content": message},
    ]
