# generation.py: chat-completion client (OpenAI-compatible REST API)
import os
from typing import Any, Dict, List, Optional

import requests

from errors import UpstreamFailure

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class GenerationClient:
    """
    Single-attempt chat completions. No retries: a non-2xx reply or a transport
    error surfaces as UpstreamFailure with the response body attached.
    """

    def __init__(self, api_key: Optional[str], base_url: str = DEFAULT_BASE_URL,
                 model: str = DEFAULT_MODEL, timeout: float = 90.0, session=None):
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout
        self._http = session or requests

    @classmethod
    def from_env(cls) -> "GenerationClient":
        return cls(
            api_key=os.getenv("OPENAI_API_KEY"),
            base_url=(os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL).strip(),
            model=(os.getenv("OPENAI_QUIZ_MODEL") or DEFAULT_MODEL).strip(),
            timeout=float(os.getenv("OPENAI_TIMEOUT_SEC") or 90),
        )

    def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None,
             temperature: float = 0.7, max_tokens: int = 800,
             force_json: bool = False) -> str:
        if not self.api_key:
            raise UpstreamFailure("OPENAI_API_KEY is not set.")
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if force_json:
            payload["response_format"] = {"type": "json_object"}

        try:
            r = self._http.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamFailure(f"OpenAI API request failed: {e}") from e

        if not r.ok:
            raise UpstreamFailure(f"OpenAI API error ({r.status_code}): {r.text}")
        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamFailure(f"OpenAI API returned non-JSON body: {r.text[:500]}") from e

        choices = data.get("choices") or []
        if not choices:
            return ""
        return ((choices[0].get("message") or {}).get("content")) or ""
