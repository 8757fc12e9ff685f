from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .decision import Suggestion


class AskRequest(BaseModel):
    question: Optional[str] = None


class AskResponse(BaseModel):
    answer: Optional[str] = None
    source: str
    matched_alias: Optional[str] = None
    suggestions: Optional[List[Suggestion]] = None
    debug: Optional[Dict[str, Any]] = None


class ImageRequest(BaseModel):
    image: Optional[str] = None
    filename: Optional[str] = None


class ImageResponse(BaseModel):
    ok: bool
    answer: Optional[str] = None
    source: str
    debug: Optional[Dict[str, Any]] = None


class GenerateImageRequest(BaseModel):
    prompt: Optional[str] = None


class GenerateImageResponse(BaseModel):
    image: str


class GenerateAudioRequest(BaseModel):
    text: Optional[str] = None


class GenerateAudioResponse(BaseModel):
    audio: str


class HealthResponse(BaseModel):
    status: str
    db_ok: bool
    llm_configured: bool
