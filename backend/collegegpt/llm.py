# llm.py
"""
External LLM / vision / media provider adapter.

Preferred provider is a Gemini-style REST endpoint (contents/parts body,
key passed as a query parameter) called through httpx. When no Gemini key
is configured and an OpenAI key is, the OpenAI SDK is used instead; the
two are never called for the same request.

Response shapes differ across provider versions, so answers are pulled out
by ordered extractor lists (TEXT_EXTRACTORS, IMAGE_EXTRACTORS,
AUDIO_EXTRACTORS). Add new shapes there.
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
import openai
from pydantic import BaseModel, Field

from .config import Settings, get_settings

log = logging.getLogger(__name__)

CONTEXT_PREAMBLE = (
    "You are CollegeGPT for HSIT Nidasoshi (Hirasugar Institute of Technology). "
    "Answer concisely and only about the college when possible. If the question is "
    "unrelated to HSIT, say you don't know or answer briefly."
)
STRICT_PREAMBLE = (
    CONTEXT_PREAMBLE + " Reply in plain text only, at most three sentences, no markdown."
)
IMAGE_PROMPT = (
    "You are CollegeGPT for HSIT. Describe the image in 2-3 short sentences. List main "
    "visible objects and any readable text. Do not identify people or invent facts."
)

NOT_CONFIGURED = "LLM not configured (GEMINI_API_KEY / OPENAI_API_KEY missing)."
NO_ANSWER = "No answer from LLM."
RAW_EXCERPT_CHARS = 1500
ERROR_EXCERPT_CHARS = 4000

Payload = Dict[str, Any]
Extractor = Callable[[Payload], Optional[str]]


class ProviderError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status = status
        self.details = details


# --- extractors -----------------------------------------------------------

def _parts(payload: Payload) -> List[Dict[str, Any]]:
    parts = payload["candidates"][0]["content"]["parts"]
    return [p for p in parts if isinstance(p, dict)]


def _candidate_parts_text(payload: Payload) -> Optional[str]:
    return next((p["text"] for p in _parts(payload) if isinstance(p.get("text"), str) and p["text"].strip()), None)


def _output_content_text(payload: Payload) -> Optional[str]:
    return payload["output"][0]["content"][0]["text"]


def _candidate_content_list_text(payload: Payload) -> Optional[str]:
    return payload["candidates"][0]["content"][0]["text"]


def _choices_message_content(payload: Payload) -> Optional[str]:
    return payload["choices"][0]["message"]["content"]


def _top_level_text(payload: Payload) -> Optional[str]:
    return payload["text"]


TEXT_EXTRACTORS: List[Extractor] = [
    _candidate_parts_text,
    _output_content_text,
    _candidate_content_list_text,
    _choices_message_content,
    _top_level_text,
]


def _inline_data(part: Dict[str, Any]) -> Optional[str]:
    inline = part.get("inlineData") or part.get("inline_data") or {}
    return inline.get("data") if isinstance(inline, dict) else None


def _data_url_text(prefix: str) -> Extractor:
    def extract(payload: Payload) -> Optional[str]:
        for p in _parts(payload):
            text = p.get("text")
            if isinstance(text, str) and text.startswith(prefix):
                return text.split(",")[-1]
        return None
    return extract


def _images_field(payload: Payload) -> Optional[str]:
    return payload["images"][0]["image"]


def _candidate_inline_data(payload: Payload) -> Optional[str]:
    return next((_inline_data(p) for p in _parts(payload) if _inline_data(p)), None)


def _candidate_audio_field(payload: Payload) -> Optional[str]:
    return next((p["audio"] for p in _parts(payload) if isinstance(p.get("audio"), str)), None)


IMAGE_EXTRACTORS: List[Extractor] = [
    _images_field,
    _candidate_inline_data,
    _data_url_text("data:image"),
]
AUDIO_EXTRACTORS: List[Extractor] = [
    _candidate_inline_data,
    _data_url_text("data:audio"),
    _candidate_audio_field,
]


def first_match(payload: Any, extractors: List[Extractor]) -> Optional[str]:
    """Run extractors in order; first non-empty string wins. Missing paths are skipped."""
    if not isinstance(payload, dict):
        return None
    for extractor in extractors:
        try:
            value = extractor(payload)
        except (KeyError, IndexError, TypeError, AttributeError):
            continue
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_text(payload: Any) -> Optional[str]:
    return first_match(payload, TEXT_EXTRACTORS)


def raw_excerpt(payload: Any, limit: int = RAW_EXCERPT_CHARS) -> str:
    try:
        text = json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        text = str(payload)
    return text[:limit]


# --- results --------------------------------------------------------------

class LLMAnswer(BaseModel):
    answer: str
    source: str = "llm"
    provider: Optional[str] = None
    meaningful: bool = False
    debug: Dict[str, Any] = Field(default_factory=dict)


class ImageDescription(BaseModel):
    answer: Optional[str] = None
    source: str
    note: Optional[str] = None


# --- client ---------------------------------------------------------------

class LLMClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        openai_client: Optional[Any] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._openai_client = openai_client

    @property
    def configured(self) -> bool:
        return self.settings.llm_configured

    @property
    def provider(self) -> Optional[str]:
        if self.settings.gemini_api_key:
            return "gemini"
        if self.settings.openai_api_key:
            return "openai"
        return None

    # -- transports --

    def _post_gemini(self, url: str, body: Dict[str, Any]) -> Payload:
        if not self.settings.gemini_api_key:
            raise ProviderError("GEMINI_API_KEY missing in environment", status=500)
        try:
            with httpx.Client(timeout=self.settings.http_timeout_seconds, transport=self._transport) as client:
                resp = client.post(url, params={"key": self.settings.gemini_api_key}, json=body)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Exception calling Gemini: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            raise ProviderError(
                f"Gemini returned status {resp.status_code}",
                status=resp.status_code,
                details=resp.text[:ERROR_EXCERPT_CHARS],
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError(
                "Failed to parse Gemini JSON", status=resp.status_code, details=resp.text[:ERROR_EXCERPT_CHARS]
            ) from exc

    def _get_openai_client(self):
        if self._openai_client is None:
            if not self.settings.openai_api_key:
                raise ProviderError("OPENAI_API_KEY not configured", status=500)
            self._openai_client = openai.OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.http_timeout_seconds,
                max_retries=0,
            )
        return self._openai_client

    def _openai_chat(self, messages: List[Dict[str, Any]]) -> Payload:
        client = self._get_openai_client()
        try:
            resp = client.chat.completions.create(
                model=self.settings.openai_model,
                messages=messages,
                max_tokens=512,
                temperature=0.2,
            )
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"OpenAI returned status {exc.status_code}", status=exc.status_code, details=str(exc)
            ) from exc
        except openai.OpenAIError as exc:
            raise ProviderError(f"Exception calling OpenAI: {exc}") from exc
        return resp.model_dump() if hasattr(resp, "model_dump") else resp

    def _complete(self, preamble: str, question: str) -> Payload:
        if self.provider == "gemini":
            prompt = f"{preamble} Question: {question}"
            body = {"contents": [{"parts": [{"text": prompt}]}]}
            return self._post_gemini(self.settings.gemini_api_url, body)
        return self._openai_chat(
            [
                {"role": "system", "content": preamble},
                {"role": "user", "content": question},
            ]
        )

    # -- operations --

    def ask(self, question: str) -> LLMAnswer:
        """
        Answer an (already alias-expanded) question. Never raises: provider
        failures come back as the answer text.
        """
        provider = self.provider
        if provider is None:
            return LLMAnswer(answer=NOT_CONFIGURED, debug={"configured": False})

        payload: Any = None
        try:
            for attempt, preamble in enumerate((CONTEXT_PREAMBLE, STRICT_PREAMBLE), start=1):
                payload = self._complete(preamble, question)
                text = extract_text(payload)
                if text:
                    return LLMAnswer(
                        answer=text, provider=provider, meaningful=True, debug={"attempts": attempt}
                    )
                log.info("LLM reply had no text (attempt %d, provider=%s)", attempt, provider)
        except ProviderError as exc:
            log.warning("LLM call failed (%s): %s", provider, exc)
            if exc.status:
                answer = f"LLM error {exc.status}: {exc.details or exc}"
            else:
                answer = f"LLM exception: {exc}"
            return LLMAnswer(
                answer=answer,
                provider=provider,
                debug={"error": str(exc), "status": exc.status},
            )
        except Exception as exc:
            log.exception("Unexpected LLM failure")
            return LLMAnswer(answer=f"LLM exception: {exc}", provider=provider, debug={"error": str(exc)})

        excerpt = raw_excerpt(payload) if payload else NO_ANSWER
        return LLMAnswer(answer=excerpt or NO_ANSWER, provider=provider, debug={"attempts": 2, "raw": True})

    def describe_image(self, b64: str, mime_type: str) -> ImageDescription:
        provider = self.provider
        if provider is None:
            raise ProviderError(NOT_CONFIGURED, status=500)
        if provider == "gemini":
            body = {
                "contents": [
                    {
                        "parts": [
                            {"inlineData": {"mimeType": mime_type, "data": b64}},
                            {"text": IMAGE_PROMPT},
                        ]
                    }
                ]
            }
            payload = self._post_gemini(self.settings.gemini_api_url, body)
        else:
            payload = self._openai_chat(
                [
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": IMAGE_PROMPT},
                            {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{b64}"}},
                        ],
                    }
                ]
            )
        text = extract_text(payload)
        if not text:
            return ImageDescription(answer=None, source=provider, note="No text found in provider response")
        return ImageDescription(answer=text, source=provider)

    def generate_image(self, prompt: str) -> str:
        payload = self._post_gemini(self.settings.gemini_images_url, {"prompt": prompt})
        found = first_match(payload, IMAGE_EXTRACTORS)
        if not found:
            raise ProviderError("No image found in response", status=500, details=payload)
        return found

    def generate_audio(self, text: str) -> str:
        body = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "audioConfig": {"audioEncoding": "LINEAR16"},
            },
        }
        payload = self._post_gemini(self.settings.gemini_api_url, body)
        found = first_match(payload, AUDIO_EXTRACTORS)
        if not found:
            raise ProviderError("No audio found in response", status=500, details=payload)
        return found
