"""LLM completion client (xAI / OpenAI / Claude) with JSON repair."""

import json
import logging
import time
from typing import Any, List, Optional, Union

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from pulse_engine.config import Settings
from pulse_engine.errors import ConfigurationError, MalformedResponseError

logger = logging.getLogger(__name__)

XAI_BASE_URL = "https://api.x.ai/v1"
DEFAULT_MODELS = {
    "xai": "grok-4-1-fast-reasoning",
    "openai": "gpt-4o",
    "claude": "claude-sonnet-4-20250514",
}
SYSTEM_PROMPT = "You are an expert social media strategist. When asked for JSON, respond only with valid JSON."

JSONPayload = Union[dict, list]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if present."""
    clean = text.strip()
    if clean.startswith("```"):
        clean = clean[3:]
        if clean[:4].lower() == "json":
            clean = clean[4:]
    if clean.endswith("```"):
        clean = clean[:-3]
    return clean.strip()


def parse_json_response(text: str) -> JSONPayload:
    """Two-stage JSON parse: strict, then bounded substring extraction.

    Raises :class:`MalformedResponseError` when neither stage yields JSON.
    """
    if text is None or not str(text).strip():
        raise MalformedResponseError("Empty completion", raw=text or "")

    clean = strip_code_fences(str(text))
    try:
        return json.loads(clean)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = clean.find(opener), clean.rfind(closer)
        if start == -1 or end <= start:
            continue
        try:
            return json.loads(clean[start:end + 1])
        except json.JSONDecodeError:
            continue

    raise MalformedResponseError("Completion is not valid JSON", raw=str(text))


def extract_list(payload: Any, key: str) -> List[Any]:
    """Pull a list of items out of ``{key: [...]}``, a bare list, or a single object."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        value = payload.get(key)
        if isinstance(value, list):
            return value
        return [payload]
    return []


class LLMClient:
    """Chat-completion client with provider fallback.

    ``preferred_api`` is tried first; the remaining configured providers are
    used as fallbacks. The xAI provider talks to the OpenAI-compatible xAI
    endpoint through the ``openai`` SDK.
    """

    def __init__(self, settings: Settings, preferred_api: Optional[str] = None, model: Optional[str] = None):
        self.settings = settings
        self.preferred_api = preferred_api or settings.llm_provider
        self.model = model or settings.llm_model
        self.logger = logger
        self.timeout = settings.request_timeout

        if self.preferred_api not in DEFAULT_MODELS:
            raise ConfigurationError(f"Unknown LLM provider {self.preferred_api!r}")

        self._clients: dict = {}

    def _available_apis(self) -> List[str]:
        keys = {
            "xai": self.settings.xai_api_key,
            "openai": self.settings.openai_api_key,
            "claude": self.settings.anthropic_api_key,
        }
        ordered = [self.preferred_api] + [api for api in DEFAULT_MODELS if api != self.preferred_api]
        return [api for api in ordered if keys[api]]

    def _client_for(self, api: str):
        if api not in self._clients:
            if api == "xai":
                self._clients[api] = AsyncOpenAI(
                    api_key=self.settings.xai_api_key, base_url=XAI_BASE_URL, timeout=self.timeout
                )
            elif api == "openai":
                self._clients[api] = AsyncOpenAI(api_key=self.settings.openai_api_key, timeout=self.timeout)
            else:
                self._clients[api] = AsyncAnthropic(api_key=self.settings.anthropic_api_key, timeout=self.timeout)
            self.logger.info(f"{api} client initialized")
        return self._clients[api]

    def _model_for(self, api: str) -> str:
        if api == self.preferred_api and self.model:
            return self.model
        return DEFAULT_MODELS[api]

    async def _call_openai_compatible(self, api: str, prompt: str, temperature: float) -> Optional[str]:
        response = await self._client_for(api).chat.completions.create(
            model=self._model_for(api),
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
        )
        return response.choices[0].message.content

    async def _call_claude(self, prompt: str, temperature: float) -> Optional[str]:
        response = await self._client_for("claude").messages.create(
            model=self._model_for("claude"),
            max_tokens=4000,
            temperature=temperature,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text

    async def complete_text(self, prompt: str, temperature: float = 0.0) -> str:
        """Return raw completion text from the first provider that answers."""
        apis = self._available_apis()
        if not apis:
            raise ConfigurationError("No LLM credentials configured (XAI_API_KEY, OPENAI_API_KEY or ANTHROPIC_API_KEY)")

        last_error: Optional[Exception] = None
        for api in apis:
            start_time = time.time()
            try:
                if api == "claude":
                    text = await self._call_claude(prompt, temperature)
                else:
                    text = await self._call_openai_compatible(api, prompt, temperature)
            except Exception as e:
                self.logger.error(f"{api} API call failed: {e}")
                last_error = e
                continue

            if text:
                self.logger.info(f"Got completion from {api} in {time.time() - start_time:.1f}s")
                return text
            self.logger.warning(f"{api} returned an empty completion")

        if last_error is not None:
            raise last_error
        raise MalformedResponseError("All providers returned empty completions")

    async def complete(self, prompt: str, json_mode: bool = True, temperature: float = 0.0) -> Union[str, JSONPayload]:
        """Run a completion; in ``json_mode`` the text is parsed into JSON."""
        text = await self.complete_text(prompt, temperature=temperature)
        if not json_mode:
            return text
        try:
            return parse_json_response(text)
        except MalformedResponseError:
            self.logger.debug(f"Raw response: {text}")
            raise
