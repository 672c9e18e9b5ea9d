"""Dual-backend vision client for classverify.

Sends one class photo plus an instruction to a multimodal model and turns the
reply into a PhotoAnalysisResult. Dispatches to the Anthropic API (image passed
by URL) or to Ollama (image downloaded and passed as bytes) depending on
VerificationConfig.vision_backend.

Design rules:
- Request JSON-only output; parse defensively (strip fences, find boundaries).
- A reply that cannot be parsed is a degraded result, not an error: one photo's
  glitch must not abort the batch.
- Transport or service failures raise VisionServiceError. No retry here; a
  single invocation calls the service at most once per photo.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, Optional

import anthropic
import ollama
import requests

from config.defaults import (
    ANTHROPIC_MODEL,
    IMAGE_FETCH_TIMEOUT,
    OLLAMA_HOST,
    OLLAMA_MODEL,
    RAW_EXCERPT_CHARS,
    SITE_REGION,
    VISION_MAX_TOKENS,
    VISION_TEMPERATURE,
)
from config.settings import VerificationConfig
from classverify.errors import VisionServiceError
from classverify.models.verification import MatchTier, PhotoAnalysisResult

logger = logging.getLogger(__name__)

_PROMPT_TEMPLATE = """Analyze this classroom photo from an orphanage called "{name}" in {region}. Please extract the following information:

1. **Kids count**: How many children/students can you see in the photo? Give your best count. If you can't see any children, return 0.
2. **Location**: Describe any visible location cues (signage, building features, landscape, indoor/outdoor). Return null if no location cues are visible.
3. **Photo timestamp**: If there are any visible clocks, date displays, or other indicators of when the photo was taken, note them. Return null if no time indicators.
4. **Orphanage match**: Based on visual cues, does this look like it could be at an orphanage/school called "{name}"? Consider:
   - Are there children in a classroom setting?
   - Does the setting look like an orphanage/school in {region}?
   - Any visible signage matching the name?
   Rate as: "high" (strong match), "likely" (reasonable match), "uncertain" (unclear), "unlikely" (doesn't match)

Respond ONLY in this exact JSON format (no markdown, no backticks):
{{"kidsCount": <number>, "location": <string or null>, "photoTimestamp": <string or null>, "orphanageMatch": "<high|likely|uncertain|unlikely>", "confidenceNotes": "<brief notes about your confidence in each assessment>"}}"""


def build_prompt(context_label: str, region: str = SITE_REGION) -> str:
    """Render the per-photo instruction for a given orphanage."""
    return _PROMPT_TEMPLATE.format(name=context_label, region=region)


def _safe_parse_vision_json(text: str) -> Optional[Dict[str, Any]]:
    """Defensively parse a model reply expected to hold one JSON object.

    Strips markdown code fences, then searches for the outermost object
    boundaries and parses only that portion.

    Args:
        text: Raw model output string.

    Returns:
        Parsed dict, or None on failure.
    """
    if not text:
        return None

    text = re.sub(r"```(?:json)?\s*", "", text).strip().rstrip("`").strip()

    s = text.find("{")
    e = text.rfind("}")
    if s == -1 or e <= s:
        return None
    try:
        parsed = json.loads(text[s : e + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _degraded(notes: str) -> PhotoAnalysisResult:
    return PhotoAnalysisResult(
        kids_count=0,
        location_hint=None,
        captured_at_hint=None,
        vision_match=MatchTier.UNCERTAIN,
        confidence_notes=notes,
    )


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value is False:
        return None
    text = str(value).strip()
    return text or None


def coerce_analysis(data: Dict[str, Any]) -> PhotoAnalysisResult:
    """Map the model's JSON fields onto a PhotoAnalysisResult.

    Out-of-shape fields fall back to neutral values rather than failing.
    """
    kids = data.get("kidsCount")
    if isinstance(kids, bool) or not isinstance(kids, (int, float)):
        kids = 0
    elif isinstance(kids, float) and not math.isfinite(kids):
        kids = 0
    tier = data.get("orphanageMatch")
    if tier not in MatchTier.ALL:
        tier = MatchTier.UNCERTAIN

    return PhotoAnalysisResult(
        kids_count=max(0, int(kids)),
        location_hint=_optional_str(data.get("location")),
        captured_at_hint=_optional_str(data.get("photoTimestamp")),
        vision_match=tier,
        confidence_notes=_optional_str(data.get("confidenceNotes")) or "No additional confidence notes",
    )


def parse_analysis_response(
    raw: Optional[str],
    excerpt_chars: int = RAW_EXCERPT_CHARS,
) -> PhotoAnalysisResult:
    """Turn raw model text into a result, degrading instead of raising."""
    if raw is None or not raw.strip():
        return _degraded("analysis returned no text response")

    data = _safe_parse_vision_json(raw)
    if data is None:
        logger.warning("Vision JSON parse failed. Raw response (first 200 chars): %.200s", raw)
        return _degraded(f"could not parse response, raw excerpt: {raw[:excerpt_chars]}")
    return coerce_analysis(data)


class VisionClient:
    """Backend-agnostic multimodal photo analysis client.

    Args:
        backend: Vision backend name ("anthropic" or "ollama").
        anthropic_model: Anthropic model ID.
        ollama_model: Ollama model name.
        ollama_host: Ollama server URL.
        ollama_api_key: Ollama Cloud API key for Bearer token auth.
        anthropic_api_key: Anthropic API key (from environment).
        max_tokens: Token budget for one reply.
        temperature: Sampling temperature.
        image_fetch_timeout: Seconds allowed to download a photo (Ollama backend).
        region: Region named in the prompt.
    """

    def __init__(
        self,
        backend: str = "anthropic",
        anthropic_model: str = ANTHROPIC_MODEL,
        ollama_model: str = OLLAMA_MODEL,
        ollama_host: str = OLLAMA_HOST,
        ollama_api_key: str = "",
        anthropic_api_key: Optional[str] = None,
        max_tokens: int = VISION_MAX_TOKENS,
        temperature: float = VISION_TEMPERATURE,
        image_fetch_timeout: int = IMAGE_FETCH_TIMEOUT,
        region: str = SITE_REGION,
    ) -> None:
        self.backend = backend.lower()
        self.anthropic_model = anthropic_model
        self.ollama_model = ollama_model
        self.ollama_host = ollama_host
        self.ollama_api_key = ollama_api_key
        self.anthropic_api_key = anthropic_api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.image_fetch_timeout = image_fetch_timeout
        self.region = region
        self._anthropic_client: Optional[anthropic.Anthropic] = None
        self._ollama_client: Optional[ollama.Client] = None
        self._session = requests.Session()

    @classmethod
    def from_config(cls, config: VerificationConfig) -> "VisionClient":
        return cls(
            backend=config.vision_backend,
            anthropic_model=config.anthropic_model,
            ollama_model=config.ollama_model,
            ollama_host=config.ollama_host,
            ollama_api_key=config.ollama_api_key,
            anthropic_api_key=config.anthropic_api_key,
            max_tokens=config.vision_max_tokens,
            temperature=config.vision_temperature,
            image_fetch_timeout=config.image_fetch_timeout,
            region=config.site_region,
        )

    def is_configured(self) -> bool:
        """Whether this process has what it needs to reach the vision service."""
        if self.backend == "anthropic":
            return bool(self.anthropic_api_key)
        if self.backend == "ollama":
            return bool(self.ollama_host)
        return False

    def _get_anthropic_client(self) -> anthropic.Anthropic:
        """Lazily initialize and return the Anthropic client."""
        if self._anthropic_client is None:
            self._anthropic_client = anthropic.Anthropic(api_key=self.anthropic_api_key)
        return self._anthropic_client

    def _get_ollama_client(self) -> ollama.Client:
        """Lazily initialize and return the Ollama client.

        When ollama_api_key is set, passes an Authorization: Bearer header
        for Ollama Cloud authentication.
        """
        if self._ollama_client is None:
            kwargs: dict = {"host": self.ollama_host}
            if self.ollama_api_key:
                kwargs["headers"] = {"Authorization": f"Bearer {self.ollama_api_key}"}
            self._ollama_client = ollama.Client(**kwargs)
        return self._ollama_client

    def _call_anthropic(self, photo_url: str, prompt: str) -> Optional[str]:
        """Send the photo by URL to the Anthropic Messages API.

        Returns:
            The first text block of the reply, or None when there is none.
        """
        client = self._get_anthropic_client()
        try:
            response = client.messages.create(
                model=self.anthropic_model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "image", "source": {"type": "url", "url": photo_url}},
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
            )
        except anthropic.APIError as exc:
            raise VisionServiceError(f"Anthropic vision call failed: {exc}") from exc

        for block in response.content or []:
            if getattr(block, "type", None) == "text":
                return block.text
        return None

    def _fetch_image(self, photo_url: str) -> bytes:
        try:
            resp = self._session.get(photo_url, timeout=self.image_fetch_timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise VisionServiceError(f"Could not download photo {photo_url}: {exc}") from exc
        return resp.content

    def _call_ollama(self, photo_url: str, prompt: str) -> Optional[str]:
        """Download the photo and send it inline to an Ollama multimodal model."""
        image = self._fetch_image(photo_url)
        client = self._get_ollama_client()
        try:
            response = client.chat(
                model=self.ollama_model,
                messages=[{"role": "user", "content": prompt, "images": [image]}],
                format="json",
                options={
                    "num_predict": self.max_tokens,
                    "temperature": self.temperature,
                },
            )
        except (ollama.ResponseError, ConnectionError) as exc:
            raise VisionServiceError(f"Ollama vision call failed: {exc}") from exc

        if response and getattr(response, "message", None):
            return response.message.content
        return None

    def analyze(self, photo_url: str, context_label: str) -> PhotoAnalysisResult:
        """Analyze one photo for the named orphanage.

        Args:
            photo_url: Publicly reachable URL of the stored photo.
            context_label: Orphanage name used in the instruction.

        Returns:
            PhotoAnalysisResult (possibly degraded to "uncertain" on bad output).

        Raises:
            VisionServiceError: The service or the photo could not be reached.
        """
        prompt = build_prompt(context_label, self.region)
        if self.backend == "anthropic":
            raw = self._call_anthropic(photo_url, prompt)
        elif self.backend == "ollama":
            raw = self._call_ollama(photo_url, prompt)
        else:
            raise VisionServiceError(f"Unknown vision backend: {self.backend!r}")

        result = parse_analysis_response(raw)
        logger.debug(
            "Vision analysis for %s: kids=%d match=%s",
            photo_url,
            result.kids_count,
            result.vision_match,
        )
        return result

    def close(self) -> None:
        """Release the HTTP session used for image downloads."""
        self._session.close()
