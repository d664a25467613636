from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from mapboard.domain.models import CATEGORIES


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class EventCreate(BaseModel):
    category: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    link: Optional[str] = None
    date: Optional[str] = None
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
        return value

    @field_validator("title")
    @classmethod
    def _non_blank_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value


def validation_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]) or None, "msg": err["msg"]}
        for err in exc.errors()
    ]


def serialize_record(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: (value.isoformat() if isinstance(value, datetime) else value) for key, value in record.items()}
