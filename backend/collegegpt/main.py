import argparse
import base64
import binascii
import logging
import mimetypes
import re
from functools import lru_cache
from typing import Optional, Tuple

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .aliases import AliasTable, load_alias_table
from .config import Settings, get_settings
from .db import PostgresStore, RecordStore
from .llm import LLMClient, ProviderError
from .pipeline import AskPipeline
from .schemas import (
    AskRequest,
    AskResponse,
    GenerateAudioRequest,
    GenerateAudioResponse,
    GenerateImageRequest,
    GenerateImageResponse,
    HealthResponse,
    ImageRequest,
    ImageResponse,
)

log = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[\w=-]+)*;base64,", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")
DEFAULT_IMAGE_MIME = "image/jpeg"


class ApiError(Exception):
    """Rendered as {"error": message, **extra} with the given status code."""

    def __init__(self, status_code: int, message: str, **extra):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.extra = extra


_startup_settings = get_settings()
logging.basicConfig(
    level=_startup_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="CollegeGPT API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_startup_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, **exc.extra})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "invalid request body", "details": details})


# --- dependencies ---

@lru_cache(maxsize=8)
def _alias_table(path: Optional[str]) -> AliasTable:
    return load_alias_table(path)


def get_store(settings: Settings = Depends(get_settings)) -> Optional[RecordStore]:
    if not settings.store_configured:
        return None
    return PostgresStore(settings)


def get_llm(settings: Settings = Depends(get_settings)) -> LLMClient:
    return LLMClient(settings)


def get_pipeline(
    settings: Settings = Depends(get_settings),
    store: Optional[RecordStore] = Depends(get_store),
    llm: LLMClient = Depends(get_llm),
) -> AskPipeline:
    return AskPipeline(store, llm, settings, _alias_table(settings.alias_file))


# --- image helpers ---

def split_image_payload(image: str, filename: Optional[str] = None) -> Tuple[str, str]:
    """Return (base64 body, mime type) from a data URL or bare base64 string."""
    image = image.strip()
    mime = None
    m = DATA_URL_RE.match(image)
    if m:
        mime = m.group("mime")
        image = image[m.end():]
    elif image.startswith("data:") and "," in image:
        image = image.split(",", 1)[1]
    if not mime and filename:
        mime = mimetypes.guess_type(filename)[0]
    return WHITESPACE_RE.sub("", image), (mime or DEFAULT_IMAGE_MIME)


def approx_decoded_bytes(b64: str) -> int:
    padding = len(b64) - len(b64.rstrip("="))
    return len(b64) * 3 // 4 - padding


def _provider_error(exc: ProviderError) -> ApiError:
    return ApiError(500, str(exc), status=exc.status, details=exc.details)


# --- routes ---

@app.get("/healthz", response_model=HealthResponse)
@app.get("/api/healthz", response_model=HealthResponse)
def health(
    settings: Settings = Depends(get_settings),
    store: Optional[RecordStore] = Depends(get_store),
):
    db_ok = False
    ping = getattr(store, "ping", None)
    if ping is not None:
        db_ok = bool(ping())
    return HealthResponse(status="ok", db_ok=db_ok, llm_configured=settings.llm_configured)


@app.post("/ask", response_model=AskResponse, response_model_exclude_none=True)
@app.post("/api/ask", response_model=AskResponse, response_model_exclude_none=True)
def ask_endpoint(req: AskRequest, pipeline: AskPipeline = Depends(get_pipeline)):
    """
    Answer a free-text question.

    The record store is consulted first; the LLM is used when no record is a
    confident match or the store is unavailable. `source` says which one
    answered: a collection label, "llm", "generic" or "error".
    """
    question = (req.question or "").strip()
    if not question:
        raise ApiError(400, "Missing question")
    result = pipeline.run(question)
    return AskResponse(**result.model_dump())


@app.post("/describeImage", response_model=ImageResponse, response_model_exclude_none=True)
@app.post("/api/describeImage", response_model=ImageResponse, response_model_exclude_none=True)
def describe_image_endpoint(
    req: ImageRequest,
    settings: Settings = Depends(get_settings),
    llm: LLMClient = Depends(get_llm),
):
    if not req.image or not req.image.strip():
        raise ApiError(400, "Missing image")

    b64, mime = split_image_payload(req.image, req.filename)
    if not b64:
        raise ApiError(400, "Empty image payload")

    approx = approx_decoded_bytes(b64)
    if approx > settings.max_image_bytes:
        raise ApiError(
            413,
            f"Image too large (~{approx} bytes, limit {settings.max_image_bytes})",
            approx_bytes=approx,
        )
    try:
        base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError):
        raise ApiError(400, "Image is not valid base64") from None

    if not llm.configured:
        raise ApiError(500, "No vision provider configured (GEMINI_API_KEY / OPENAI_API_KEY missing)")
    try:
        described = llm.describe_image(b64, mime)
    except ProviderError as exc:
        log.warning("Image description failed: %s", exc)
        raise _provider_error(exc) from exc

    debug = {"approx_bytes": approx, "mime_type": mime}
    if described.note:
        debug["note"] = described.note
    return ImageResponse(ok=True, answer=described.answer, source=described.source, debug=debug)


@app.post("/generateImage", response_model=GenerateImageResponse)
@app.post("/api/generateImage", response_model=GenerateImageResponse)
def generate_image_endpoint(req: GenerateImageRequest, llm: LLMClient = Depends(get_llm)):
    prompt = (req.prompt or "").strip()
    if not prompt:
        raise ApiError(400, "Missing prompt")
    try:
        return GenerateImageResponse(image=llm.generate_image(prompt))
    except ProviderError as exc:
        log.warning("Image generation failed: %s", exc)
        raise _provider_error(exc) from exc


@app.post("/generateAudio", response_model=GenerateAudioResponse)
@app.post("/api/generateAudio", response_model=GenerateAudioResponse)
def generate_audio_endpoint(req: GenerateAudioRequest, llm: LLMClient = Depends(get_llm)):
    text = (req.text or "").strip()
    if not text:
        raise ApiError(400, "Missing text")
    try:
        return GenerateAudioResponse(audio=llm.generate_audio(text))
    except ProviderError as exc:
        log.warning("Audio generation failed: %s", exc)
        raise _provider_error(exc) from exc


def run() -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the CollegeGPT API server.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    uvicorn.run("collegegpt.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    run()
