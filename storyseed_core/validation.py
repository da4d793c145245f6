"""
Input validation schemas using Pydantic v2
Validates wizard steps and vote submissions
"""

import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import StudioConfig

logger = logging.getLogger(__name__)

# Fragments rejected in free-text fields shown to other users
DANGEROUS_PATTERNS = [
    "<script",
    "</script",
    "javascript:",
    "onerror=",
    "onclick=",
    "onload=",
    "<iframe",
    "<object",
    "<embed",
]

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Story uploads: recorded video, audio, or a written story document
MEDIA_TYPE_PREFIXES = (
    "video/",
    "audio/",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument",
)


def _reject_dangerous(field: str, value: str) -> str:
    lowered = value.lower()
    for pattern in DANGEROUS_PATTERNS:
        if pattern in lowered:
            raise ValueError(f"{field} contains potentially dangerous pattern: {pattern}")
    if "<" in value and ">" in value:
        raise ValueError(f"{field} contains HTML tags")
    return value


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        value = value.strip()
        value = value[:max_length]
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_name(name: str) -> str:
        """Sanitize a person's name for display - keep Unicode letters (Tamil, accents)"""
        name = InputSanitizer.sanitize_string(name, 100)
        dangerous_chars = r'[<>{}[\]\\|;()&$`"\*\x00-\x1f\x7f]'
        name = re.sub(dangerous_chars, "", name)
        return name.strip()

    @staticmethod
    def phone_digits(phone: str | None) -> str:
        """Digits of a phone number ("+91 98765-43210" -> "919876543210")"""
        if not phone:
            return ""
        return re.sub(r"\D", "", str(phone))


class PersonalInfo(BaseModel):
    """Step 2 of the registration wizard"""

    firstName: str = Field(..., min_length=1, max_length=100)
    lastName: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=StudioConfig.MIN_AGE, le=StudioConfig.MAX_AGE)
    email: str = Field(..., min_length=3, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    eventId: str = Field(..., min_length=1, max_length=64, description="Selected event")

    @field_validator("firstName", "lastName", mode="before")
    @classmethod
    def clean_name(cls, v):
        if isinstance(v, str):
            return InputSanitizer.sanitize_name(v)
        return v

    @field_validator("city", "eventId", mode="before")
    @classmethod
    def strip_text(cls, v):
        if v is not None:
            return InputSanitizer.sanitize_string(v, 100)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError("email must look like name@example.com")
        return v


class StoryDetails(BaseModel):
    """Step 3 of the registration wizard"""

    storyTitle: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=50)
    classLevel: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=2000)
    mediaName: str = Field(..., min_length=1, max_length=255, description="Attached story video/file")
    mediaContentType: Optional[str] = Field(None, max_length=100)

    @field_validator("storyTitle", "classLevel", "description", "mediaName", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return InputSanitizer.sanitize_string(v, 2000)
        return v

    @field_validator("storyTitle", "description")
    @classmethod
    def validate_safe_text(cls, v: str, info) -> str:
        return _reject_dangerous(info.field_name, v)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        v = v.strip()
        allowed = StudioConfig.STORY_CATEGORIES
        if v not in allowed:
            raise ValueError(f"category must be one of {allowed}, got {v}")
        return v

    @field_validator("mediaContentType")
    @classmethod
    def validate_media_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not v.startswith(MEDIA_TYPE_PREFIXES):
            raise ValueError(f"unsupported media type: {v}")
        return v


class JudgeScore(BaseModel):
    """A judge's evaluation of one registration"""

    registrationId: str = Field(..., min_length=1, max_length=64)
    judgeId: str = Field(..., min_length=1, max_length=64)
    score: float = Field(..., ge=StudioConfig.MIN_SCORE, le=StudioConfig.MAX_SCORE)
    feedback: Optional[str] = Field(None, max_length=2000)

    @field_validator("feedback")
    @classmethod
    def validate_feedback(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        return _reject_dangerous("feedback", v)

    model_config = ConfigDict(populate_by_name=True)


def first_error(exc: ValidationError) -> tuple[str | None, str]:
    """(field, message) of the first pydantic error, for inline display"""
    errors = exc.errors()
    if not errors:
        return None, str(exc)
    err = errors[0]
    loc = err.get("loc") or ()
    field = str(loc[0]) if loc else None
    message = err.get("msg", "invalid value")
    logger.debug(f"Validation failed on {field}: {message}")
    return field, message


__all__ = [
    "InputSanitizer",
    "JudgeScore",
    "PersonalInfo",
    "StoryDetails",
    "first_error",
]
