# errors.py
# Error kinds surfaced to API clients as {"ok": false, "error", "kind"}.
from typing import Any, Dict, Optional, Tuple

from flask import jsonify
from werkzeug.exceptions import HTTPException

RAW_PREVIEW_LIMIT = 4000


class ApiError(Exception):
    kind = "internal"
    status = 500

    def __init__(self, message: str = "", *, status: Optional[int] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        if status is not None:
            self.status = status

    def payload(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message, "kind": self.kind}


class MissingInput(ApiError):
    kind = "missing-input"
    status = 400


class NotFound(ApiError):
    kind = "not-found"
    status = 404


class Forbidden(ApiError):
    kind = "forbidden"
    status = 403


class Unauthorized(ApiError):
    kind = "unauthorized"
    status = 401


class Conflict(ApiError):
    kind = "conflict"
    status = 409


class UpstreamFailure(ApiError):
    """Generation API returned non-2xx, or text extraction failed."""
    kind = "upstream-failure"
    status = 500


class InvalidModelOutput(ApiError):
    kind = "invalid-model-output"
    status = 422

    def __init__(self, message: str, raw: Any = ""):
        super().__init__(message)
        self.raw = str(raw if raw is not None else "")[:RAW_PREVIEW_LIMIT]

    def payload(self) -> Dict[str, Any]:
        out = super().payload()
        out["raw"] = self.raw
        return out


def register_error_handlers(app) -> None:
    """JSON envelopes for ApiError and for anything uncaught."""

    @app.errorhandler(ApiError)
    def _api_error(err: ApiError) -> Tuple[Any, int]:
        if err.status >= 500:
            print(f"[api] {err.kind}: {err.message}", flush=True)
        return jsonify(err.payload()), err.status

    @app.errorhandler(Exception)
    def _uncaught(err: Exception):
        # unknown routes, 405s, etc. keep their status
        if isinstance(err, HTTPException):
            return jsonify({"ok": False, "error": err.description, "kind": _http_kind(err.code)}), err.code
        print(f"[api] internal error: {err!r}", flush=True)
        return jsonify({"ok": False, "error": str(err), "kind": "internal"}), 500


def _http_kind(code: Optional[int]) -> str:
    return {400: "missing-input", 403: "forbidden", 404: "not-found"}.get(code or 500, "internal")
