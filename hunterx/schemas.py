"""Pydantic schemas for API request/response bodies."""

from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, Field


class CharacterRecord(BaseModel):
    """A character document. Every field is optional; unknown fields are kept."""

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "examples": [
                {
                    "name": "Gon Freecss",
                    "age": 12,
                    "height": 1.55,
                    "weight": 45,
                    "eyeColor": "Green",
                    "hairColor": "Black",
                    "status": "Active",
                    "image": "https://example.com/gon.png",
                }
            ]
        },
    )

    name: Optional[str] = None
    age: Optional[int] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    eye_color: Optional[str] = Field(default=None, alias="eyeColor")
    hair_color: Optional[str] = Field(default=None, alias="hairColor")
    status: Optional[str] = None
    image: Optional[str] = None

    def to_document(self) -> dict:
        """Only what the client sent, under its JSON names (extras included)."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class CharacterOut(CharacterRecord):
    id: str = Field(alias="_id")


class CharacterMutation(BaseModel):
    message: str
    data: CharacterOut


class HealthcheckOut(BaseModel):
    status: Literal["ok", "degraded"]
    db_ok: bool
    character_count: int


class ProblemDetail(BaseModel):
    """RFC 7807-style problem response (simplified), plus a `message` echo."""

    type: str = "about:blank"
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    message: Optional[str] = None
