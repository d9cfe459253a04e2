# ducky: Chat Completions client (requests) and an optional .http dump of each call for debugging.

import json
import pathlib
import time
from typing import Any, Dict, List, Optional

import requests

from .context import Context
from .errors import ApiError


def dumpHttpFile(file: str, url: str, method: str, headers: Dict[str, str], obj: Any) -> None:
    """Write a request in REST Client (.http) format. Failures are reported, never raised."""
    try:
        json_str = json.dumps(obj, indent=2, ensure_ascii=False)
        with open(file, "w", encoding="utf-8") as f:
            f.write(f"{method.upper()} {url}\n")
            for key, value in headers.items():
                f.write(f"{key}: {value}\n")
            f.write("\n")
            f.write(json_str)
    except (TypeError, OSError) as e:
        print(f"Error: Could not dump HTTP request to {file}. Details: {e}")


class ChatCompletionsClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 240,
        ctx: Optional[Context] = None,
        httpcalls_dir: Optional[pathlib.Path] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.ctx = ctx or Context()
        self.httpcalls_dir = httpcalls_dir
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
        )

    def chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _dump(self, url: str, payload: Dict[str, Any]) -> None:
        if self.httpcalls_dir is None:
            return
        self.httpcalls_dir.mkdir(parents=True, exist_ok=True)
        headers_for_log = dict(self.session.headers)
        if "Authorization" in headers_for_log:
            headers_for_log["Authorization"] = "Bearer {{DUCKY_GPT_KEY}}"
        http_file = self.httpcalls_dir / f"call-{int(time.time() * 1000)}.http"
        dumpHttpFile(str(http_file), url, "POST", headers_for_log, payload)
        self.ctx.log(f"HTTP request dumped to {http_file}")

    def send(self, model: str, messages: List[Dict[str, str]]) -> str:
        """
        Send one chat request and return the assistant's text.

        Raises ApiError for transport failures (status 0), non-200 answers and
        responses without message content. No retries happen here.
        """
        url = self.chat_url()
        payload = {"model": model, "messages": messages}
        self._dump(url, payload)

        self.ctx.log(f"Calling POST {url} (model={model}, messages={len(messages)})")
        try:
            r = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(0, str(e)) from e
        if r.status_code != 200:
            raise ApiError(r.status_code, r.text[:2000])

        try:
            resp = r.json()
        except ValueError as e:
            raise ApiError(r.status_code, f"invalid JSON in response: {e}") from e

        choice = (resp.get("choices") or [{}])[0] if isinstance(resp, dict) else {}
        msg_obj = choice.get("message", {}) or {}
        content = msg_obj.get("content")
        if not isinstance(content, str) or not content:
            raise ApiError(r.status_code, "empty response")

        usage = resp.get("usage") or {}
        if usage:
            self.ctx.log(
                f"Usage: prompt_tokens={usage.get('prompt_tokens')}, completion_tokens={usage.get('completion_tokens')}"
            )
        return content
