import copy
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from main import create_app  # noqa: E402
from prompts import HINT_SYSTEM_PROMPT  # noqa: E402
from uploads import UploadStorage  # noqa: E402


class FakeStore:
    """In-memory stand-in for store.DocumentStore."""

    def __init__(self):
        self.collections = {}
        self.upserts = []

    def _col(self, name):
        return self.collections.setdefault(name, {})

    def get(self, collection, doc_id):
        doc = self._col(collection).get(str(doc_id))
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, collection, match=None, order_by=None, limit=None):
        rows = [
            copy.deepcopy(d) for d in self._col(collection).values()
            if all(d.get(k) == v for k, v in (match or {}).items())
        ]
        if order_by:
            rows.sort(key=lambda d: str(d.get(order_by) or ""))
        return rows[:limit] if limit else rows

    def upsert(self, collection, doc_id, doc):
        body = copy.deepcopy(doc)
        body["id"] = str(doc_id)
        self._col(collection)[str(doc_id)] = body
        self.upserts.append((collection, str(doc_id)))
        return copy.deepcopy(body)

    def insert(self, collection, doc_id, doc):
        if str(doc_id) in self._col(collection):
            raise KeyError(doc_id)
        return self.upsert(collection, doc_id, doc)


class FakeGenerator:
    """Answers quiz prompts with `quiz_reply` and hint prompts with `hint_reply`."""

    def __init__(self, quiz_reply="{}", hint_reply="Think about it.", fail_hints_for=()):
        self.quiz_reply = quiz_reply
        self.hint_reply = hint_reply
        self.fail_hints_for = set(fail_hints_for)
        self.calls = []

    def chat(self, messages, model=None, temperature=0.7, max_tokens=800, force_json=False):
        self.calls.append({"messages": messages, "model": model, "temperature": temperature,
                           "max_tokens": max_tokens, "force_json": force_json})
        if messages[0]["content"] == HINT_SYSTEM_PROMPT:
            if messages[1]["content"] in self.fail_hints_for:
                raise RuntimeError("hint backend down")
            return f"  {self.hint_reply}  "
        if callable(self.quiz_reply):
            return self.quiz_reply(messages)
        return self.quiz_reply

    def hint_calls(self):
        return [c for c in self.calls if c["messages"][0]["content"] == HINT_SYSTEM_PROMPT]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def uploads(tmp_path):
    return UploadStorage(tmp_path / "uploads")


@pytest.fixture
def extracted():
    """Text the fake extractors hand back; tests may overwrite value['text']."""
    return {"text": "Photosynthesis converts light energy into chemical energy.", "paths": []}


@pytest.fixture
def app(store, generator, uploads, extracted):
    def fake_extract(path):
        extracted["paths"].append(path)
        assert Path(path).exists()
        return extracted["text"]

    app = create_app({
        "store": store,
        "generator": generator,
        "uploads": uploads,
        "extract_image_text": fake_extract,
        "extract_pdf_text": fake_extract,
        "secret_key": "test-secret",
        "base_path": "",
    })
    app.testing = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
