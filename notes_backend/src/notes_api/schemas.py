"""Pydantic models for request validation and response serialization.

JSON uses camelCase; snake_case field names are accepted on input too.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=128)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Content = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10000)]
HexColor = Annotated[str, StringConstraints(pattern=r"^#(?:[0-9a-fA-F]{3}){1,2}$")]
OtpCode = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[0-9]{6}$")]

MAX_TAG_LENGTH = 100
SortField = Literal["createdAt", "updatedAt", "title"]
SortOrder = Literal["asc", "desc"]


def clean_tags(value: Any) -> list[str]:
    """Keep non-empty string tags, trimmed, first occurrence wins."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("tags must be a list")
    tags: list[str] = []
    for tag in value:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if not tag or tag in tags:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"tags must be at most {MAX_TAG_LENGTH} characters")
        tags.append(tag)
    return tags


#####################
# AUTH
#####################

class UserCreate(CamelModel):
    name: Name
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyOtpRequest(CamelModel):
    user_id: int
    otp: OtpCode


class ResendOtpRequest(CamelModel):
    user_id: int


class ProfileUpdate(CamelModel):
    name: Optional[Name] = None


class UserOut(CamelModel):
    id: int
    email: str
    name: str
    avatar_url: Optional[str] = None
    auth_provider: str
    is_email_verified: bool
    created_at: Optional[datetime] = None


class UserEnvelope(CamelModel):
    user: UserOut


class MessageOut(CamelModel):
    message: str


class RegisterOut(CamelModel):
    message: str
    user_id: int


class AuthOut(CamelModel):
    message: str
    token: str
    user: UserOut


class ProfileOut(CamelModel):
    message: str
    user: UserOut


#####################
# NOTES
#####################

class NoteCreate(CamelModel):
    title: Title
    content: Content
    tags: list[str] = Field(default_factory=list)
    background_color: HexColor = "#ffffff"

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> list[str]:
        return clean_tags(value)


class NoteUpdate(CamelModel):
    title: Optional[Title] = None
    content: Optional[Content] = None
    tags: Optional[list[str]] = None
    background_color: Optional[HexColor] = None
    is_pinned: Optional[bool] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> Optional[list[str]]:
        if value is None:
            return None
        return clean_tags(value)


class NoteOut(CamelModel):
    id: int
    title: str
    content: str
    tags: list[str]
    is_pinned: bool
    background_color: str
    user_id: int
    created_at: datetime
    updated_at: datetime


class NoteEnvelope(CamelModel):
    note: NoteOut


class NoteMessageOut(CamelModel):
    message: str
    note: NoteOut


class Pagination(CamelModel):
    current: int
    pages: int
    total: int
    limit: int


class NoteListOut(CamelModel):
    notes: list[NoteOut]
    pagination: Pagination


class TagCount(CamelModel):
    name: str
    count: int


class NoteStats(CamelModel):
    total_notes: int
    pinned_notes: int
    tags: list[TagCount]


class NoteStatsOut(CamelModel):
    stats: NoteStats
