import json
from typing import Any, Dict, List, Optional

import requests

from resume_matcher.utils.exceptions import ScoringError, ScoringErrorKind


def chat_completion(
    messages: List[Dict[str, str]],
    *,
    api_key: str,
    base_url: str,
    model: str,
    temperature: float = 0.1,
    max_tokens: Optional[int] = None,
    json_response: bool = True,
    timeout: float = 60,
) -> str:
    """Call an OpenAI-compatible ``/chat/completions`` endpoint and return the message content."""
    payload: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }
    if max_tokens:
        payload["max_tokens"] = max_tokens
    if json_response:
        payload["response_format"] = {"type": "json_object"}

    try:
        resp = requests.post(
            f"{base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ScoringError(
            f"LLM request failed: {e}",
            kind=ScoringErrorKind.TRANSPORT_ERROR,
            cause=e,
        ) from e

    if not resp.ok:
        raise ScoringError(
            f"LLM endpoint returned HTTP {resp.status_code}",
            kind=ScoringErrorKind.TRANSPORT_ERROR,
            status_code=resp.status_code,
            body=resp.text,
        )

    try:
        data = resp.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ScoringError(
            "LLM response envelope could not be parsed",
            kind=ScoringErrorKind.MALFORMED_RESPONSE,
            status_code=resp.status_code,
            body=resp.text,
            cause=e,
        ) from e

    if not isinstance(content, str):
        raise ScoringError(
            "LLM response has no text content",
            kind=ScoringErrorKind.MALFORMED_RESPONSE,
            status_code=resp.status_code,
        )
    return content


def strict_json(s: str) -> Dict[str, Any]:
    """Parse a JSON object, tolerating surrounding prose or code fences."""
    try:
        data = json.loads(s)
    except ValueError:
        start = s.find("{")
        end = s.rfind("}")
        if start < 0 or end <= start:
            raise
        data = json.loads(s[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data
