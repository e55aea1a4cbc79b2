# main.py: quiz authoring API (Flask + psycopg3 document store + OpenAI)
# Collaborators (store, generator, uploads, extractors) are built once here and
# handed to each blueprint through its deps mapping.

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS

from attempts import create_attempts_blueprint
from auth import create_auth_blueprint
from chats import create_chats_blueprint
from courses import create_courses_blueprint
from errors import register_error_handlers
from generation import DEFAULT_MODEL, GenerationClient
from parse import create_parse_blueprint
from quizzes import create_quizzes_blueprint
from store import DocumentStore
from uploads import UploadStorage

load_dotenv()

# =============================================================================
# Config
# =============================================================================
BASE_PATH = (os.getenv("BASE_PATH", "") or "").rstrip("/")


def _flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").lower() in {"1", "true", "yes"}


def config_from_env() -> Dict[str, Any]:
    return {
        "base_path": BASE_PATH,
        "secret_key": os.getenv("SECRET_KEY", "dev-secret"),
        "token_max_age": int(os.getenv("TOKEN_MAX_AGE_SEC") or 86400),
        "upload_dir": os.getenv("UPLOAD_DIR") or os.path.join(os.path.dirname(os.path.abspath(__file__)), "uploads"),
        "max_upload_mb": int(os.getenv("MAX_UPLOAD_MB") or 20),
        "quiz_model": (os.getenv("OPENAI_QUIZ_MODEL") or DEFAULT_MODEL).strip(),
        "hint_model": (os.getenv("OPENAI_HINT_MODEL") or DEFAULT_MODEL).strip(),
        "chat_model": (os.getenv("OPENAI_CHAT_MODEL") or DEFAULT_MODEL).strip(),
        "generate_hints": _flag("QUIZ_GENERATE_HINTS", "1"),
    }


# =============================================================================
# App factory
# =============================================================================
def create_app(deps: Optional[Dict[str, Any]] = None) -> Flask:
    """
    deps may supply any of: store, generator, uploads, extract_image_text,
    extract_pdf_text, plus config keys from config_from_env(). Anything
    missing is built from the environment.
    """
    cfg = config_from_env()
    cfg.update(deps or {})
    base_path = cfg["base_path"]

    if cfg.get("store") is None:
        store = DocumentStore.from_env()
        try:
            store.ensure_schema()
        except Exception as e:
            print(f"[db] schema setup failed: {e}", flush=True)
        cfg["store"] = store
    if cfg.get("generator") is None:
        cfg["generator"] = GenerationClient.from_env()
    if cfg.get("uploads") is None:
        cfg["uploads"] = UploadStorage(cfg["upload_dir"])

    app = Flask(__name__)
    app.url_map.strict_slashes = False
    app.secret_key = cfg["secret_key"]
    app.config["MAX_CONTENT_LENGTH"] = cfg["max_upload_mb"] * 1024 * 1024
    app.extensions["quiz_deps"] = cfg
    CORS(app, supports_credentials=True)
    register_error_handlers(app)

    app.register_blueprint(create_parse_blueprint(base_path, cfg))
    app.register_blueprint(create_quizzes_blueprint(base_path, cfg))
    app.register_blueprint(create_attempts_blueprint(base_path, cfg))
    app.register_blueprint(create_chats_blueprint(base_path, cfg))
    app.register_blueprint(create_courses_blueprint(base_path, cfg))
    app.register_blueprint(create_auth_blueprint(base_path, cfg))

    uploads = cfg["uploads"]

    @app.get(f"{base_path}/server/uploads/<path:name>")
    def uploaded_file(name: str):
        return send_from_directory(uploads.directory, name)

    @app.get(f"{base_path}/healthz")
    def healthz():
        return jsonify({"ok": True})

    return app


# =============================================================================
# Local dev entry
# =============================================================================
if __name__ == "__main__":
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", 3004))
    print(f"Server running at http://{host}:{port}/", flush=True)
    create_app().run(host=host, port=port, debug=_flag("FLASK_DEBUG"))
