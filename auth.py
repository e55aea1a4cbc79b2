# auth.py: password accounts for teachers
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from errors import Conflict, Unauthorized
from schemas import LoginIn, SignupIn, validate
from store import USERS

TOKEN_SALT = "quizforge-login"


def _user_key(email: str) -> str:
    return email.strip().lower()


def issue_token(secret_key: str, user: Dict[str, Any]) -> str:
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT).dumps(
        {"id": user["id"], "email": user["email"]}
    )


def read_token(secret_key: str, token: str, max_age: int) -> Optional[Dict[str, Any]]:
    """Token payload, or None when the signature is bad or the token expired."""
    try:
        return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT).loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None


def create_auth_blueprint(base_path: str, deps: Dict[str, Any], name: str = "auth") -> Blueprint:
    """
    Required deps: store, secret_key
    Optional deps: token_max_age (seconds, default 1 day)
    """
    bp = Blueprint(name, __name__, url_prefix=f"{base_path}/api")
    store = deps["store"]
    secret_key = deps["secret_key"]
    token_max_age = int(deps.get("token_max_age") or 86400)

    @bp.post("/signup")
    def signup():
        body = validate(SignupIn, request.get_json(silent=True))
        key = _user_key(body.email)
        if store.get(USERS, key):
            raise Conflict("User already exists.")
        user = store.insert(USERS, key, {
            "name": body.name,
            "email": key,
            "passwordHash": generate_password_hash(body.password),
            "createdAt": datetime.now(timezone.utc).isoformat(),
        })
        print(f"[auth] signup {key}", flush=True)
        return jsonify({"ok": True, "user": {"email": user["email"]}})

    @bp.post("/login")
    def login():
        body = validate(LoginIn, request.get_json(silent=True))
        user = store.get(USERS, _user_key(body.email))
        if not user:
            raise Unauthorized("User not found.")
        if not check_password_hash(user.get("passwordHash") or "", body.password):
            raise Unauthorized("Invalid password.")
        return jsonify({
            "ok": True,
            "token": issue_token(secret_key, user),
            "expiresIn": token_max_age,
            "user": {"_id": user["id"], "email": user["email"]},
        })

    @bp.get("/me")
    def me():
        header = request.headers.get("Authorization") or ""
        token = header[7:].strip() if header.lower().startswith("bearer ") else ""
        claims = read_token(secret_key, token, token_max_age) if token else None
        if not claims:
            raise Unauthorized("invalid or expired token")
        return jsonify({"ok": True, "user": {"_id": claims["id"], "email": claims["email"]}})

    return bp
