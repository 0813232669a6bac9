"""
Rewrite providers - send a batch of headlines to an LLM and get neutral versions back
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import anthropic
import requests

from .errors import (
    MalformedResponseError,
    MissingCredentialError,
    UnknownRewriteError,
    classify_status,
)
from .settings import NeutralizerSettings, resolve_api_key
from .usage import UsageTracker

logger = logging.getLogger(__name__)


INSTRUCTIONS = (
    "You will receive INPUT as a JSON array of headlines."
    " Rewrite each headline neutrally in the SAME language as input."
    " Preserve factual meaning and named entities. Remove sensationalism and excess punctuation."
    " If the headline contains a direct quote inside quotation marks (English “…”, Greek «…»),"
    " keep that quoted text verbatim."
    " Aim ≤ 110 characters when possible. Return ONLY a JSON array of strings, same order as input."
)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")
_LINE_SEPARATORS = re.compile("[\u2028\u2029]")


def build_input(texts: Sequence[str]) -> str:
    safe = [_LINE_SEPARATORS.sub(" ", text) for text in texts]
    return json.dumps(safe, ensure_ascii=False)


def extract_output_text(data: Dict[str, Any]) -> str:
    """Output text from a Responses API or chat completions payload"""
    if isinstance(data.get("output_text"), str):
        return data["output_text"]

    if isinstance(data.get("output"), list):
        parts: List[str] = []
        for message in data["output"]:
            for block in (message or {}).get("content") or []:
                if isinstance(block, dict) and isinstance(block.get("text"), str):
                    parts.append(block["text"])
        if parts:
            return "".join(parts)

    if isinstance(data.get("choices"), list):
        texts = []
        for choice in data["choices"]:
            content = ((choice or {}).get("message") or {}).get("content") or ""
            if isinstance(content, list):
                content = "".join(
                    block.get("text", "") for block in content if isinstance(block, dict)
                )
            texts.append(str(content))
        return "\n".join(texts)
    return ""


def parse_rewrites(output: str) -> List[str]:
    """Decode the JSON array of rewrites, tolerating a markdown fence"""
    if not output or not output.strip():
        raise MalformedResponseError("No output text from API")
    cleaned = _FENCE.sub("", output.strip())
    try:
        values = json.loads(cleaned)
    except ValueError as exc:
        raise MalformedResponseError("API output is not valid JSON") from exc
    if not isinstance(values, list):
        raise MalformedResponseError("API did not return a JSON array")
    return ["" if value is None else str(value) for value in values]


class HttpRewriter:
    """OpenAI Responses API or an OpenAI-compatible chat completions endpoint"""

    def __init__(
        self,
        settings: Optional[NeutralizerSettings] = None,
        api_key: Optional[str] = None,
        usage: Optional[UsageTracker] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or NeutralizerSettings()
        self.api_key = api_key if api_key is not None else resolve_api_key(self.settings.provider)
        self.usage = usage
        self.session = session or requests.Session()

    @property
    def uses_chat_completions(self) -> bool:
        return self.settings.provider == "openrouter"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_payload(self, texts: Sequence[str]) -> Dict[str, Any]:
        if self.uses_chat_completions:
            return {
                "model": self.settings.model_name,
                "messages": [
                    {"role": "system", "content": INSTRUCTIONS},
                    {"role": "user", "content": build_input(texts)},
                ],
                "temperature": self.settings.effective_temperature,
                "max_tokens": self.settings.max_output_tokens,
            }
        return {
            "model": self.settings.model_name,
            "temperature": self.settings.effective_temperature,
            "max_output_tokens": self.settings.max_output_tokens,
            "instructions": INSTRUCTIONS,
            "input": build_input(texts),
        }

    def _endpoint(self) -> str:
        path = "chat/completions" if self.uses_chat_completions else "responses"
        return f"{self.settings.base_url.rstrip('/')}/{path}"

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self._endpoint(),
                json=payload,
                headers=self._headers(),
                timeout=self.settings.request_timeout,
            )
        except requests.Timeout as exc:
            raise UnknownRewriteError("Request timeout", status=0) from exc
        except requests.RequestException as exc:
            raise UnknownRewriteError(f"Network error: {exc}", status=0) from exc

        if not 200 <= response.status_code < 300:
            raise classify_status(
                response.status_code,
                f"HTTP {response.status_code}",
                body=response.text or "",
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("Response body is not JSON") from exc

    async def rewrite(self, texts: Sequence[str]) -> List[str]:
        if not self.api_key:
            raise MissingCredentialError("API key missing")
        data = await asyncio.to_thread(self._post, self.build_payload(texts))
        if self.usage is not None and isinstance(data.get("usage"), dict):
            self.usage.record(data["usage"])
        return parse_rewrites(extract_output_text(data))

    def validate_key(self) -> bool:
        """GET /models with the configured key; True on HTTP 200"""
        if not self.api_key:
            return False
        try:
            response = self.session.get(
                f"{self.settings.base_url.rstrip('/')}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=20,
            )
        except requests.RequestException as exc:
            logger.info("key validation failed: %s", exc)
            return False
        return response.status_code == 200


class AnthropicRewriter:
    """Messages API through the anthropic SDK"""

    def __init__(
        self,
        settings: Optional[NeutralizerSettings] = None,
        api_key: Optional[str] = None,
        usage: Optional[UsageTracker] = None,
        client: Any = None,
    ):
        self.settings = settings or NeutralizerSettings(provider="anthropic")
        self.api_key = api_key if api_key is not None else resolve_api_key("anthropic")
        self.usage = usage
        self.client = client

    def _create(self, texts: Sequence[str]):
        client = self.client or anthropic.Anthropic(
            api_key=self.api_key,
            timeout=self.settings.request_timeout,
        )
        try:
            return client.messages.create(
                model=self.settings.model_name,
                max_tokens=self.settings.max_output_tokens,
                temperature=self.settings.effective_temperature,
                system=INSTRUCTIONS,
                messages=[{"role": "user", "content": build_input(texts)}],
            )
        except anthropic.APIStatusError as exc:
            raise classify_status(exc.status_code, str(exc)) from exc
        except anthropic.APIConnectionError as exc:
            raise UnknownRewriteError(f"Network error: {exc}", status=0) from exc

    async def rewrite(self, texts: Sequence[str]) -> List[str]:
        if not self.api_key and self.client is None:
            raise MissingCredentialError("API key missing")
        response = await asyncio.to_thread(self._create, texts)

        usage = getattr(response, "usage", None)
        if self.usage is not None and usage is not None:
            self.usage.record(
                {
                    "input_tokens": getattr(usage, "input_tokens", 0),
                    "output_tokens": getattr(usage, "output_tokens", 0),
                }
            )

        text_blocks = [
            block.text
            for block in response.content
            if getattr(block, "type", "") == "text" and getattr(block, "text", "")
        ]
        return parse_rewrites("\n".join(text_blocks))


def create_rewriter(
    settings: NeutralizerSettings,
    usage: Optional[UsageTracker] = None,
    api_key: Optional[str] = None,
):
    if settings.provider == "anthropic":
        return AnthropicRewriter(settings=settings, api_key=api_key, usage=usage)
    return HttpRewriter(settings=settings, api_key=api_key, usage=usage)
