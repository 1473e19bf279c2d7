from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class TranslateBody(BaseModel):
    text: str = ""
    toLang: str = ""
    fromLang: Optional[str] = None


class TranscriptionResponse(BaseModel):
    text: str
    error: Optional[str] = None
    details: Optional[str] = None


class TranslationResponse(BaseModel):
    translation: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
