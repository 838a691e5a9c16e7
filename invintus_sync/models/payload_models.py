"""Invintus Sync - Inbound Webhook Schemas.

Pydantic views over the untrusted Invintus payload. Field names follow the
remote API through aliases; unknown fields are tolerated and missing ones
fall back to empty values.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

FALSE_STRINGS = {"", "0", "false", "no", "off"}


def _blank_to_none(value: Any) -> Any:
    if value in ("", 0, "0"):
        return None
    return value


def _none_to_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return value


def coerce_flag(value: Any) -> bool:
    """Interpret loosely typed boolean flags ("1", "true", 1, True, ...)."""
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


class RemoteCategory(BaseModel):
    """One entry of ``categoryXtended``."""

    category_id: Optional[int] = Field(default=None, alias="categoryID")
    category_name: str = Field(default="", alias="categoryName")
    category_description: str = Field(default="", alias="categoryDescription")
    child_of: Optional[int] = Field(default=None, alias="childOf")

    model_config = {"populate_by_name": True, "extra": "allow"}

    normalize_ids = field_validator("category_id", "child_of", mode="before")(_blank_to_none)
    normalize_texts = field_validator("category_name", "category_description", mode="before")(
        _none_to_text
    )


class RemoteEvent(BaseModel):
    """The ``data`` object of an Invintus event notification."""

    event_id: str = Field(default="", alias="eventID")
    custom_id: str = Field(default="", alias="customID")
    start_date_time: str = Field(default="", alias="startDateTime")
    title: str = ""
    description: str = ""
    caption_path: str = Field(default="", alias="captionPath")
    video_thumbnail: str = Field(default="", alias="videoThumbnail")
    published_audio: str = Field(default="", alias="publishedAudio")
    location_name: str = Field(default="", alias="locationName")
    total_run_time: str = Field(default="", alias="totalRunTime")
    event_status: str = Field(default="", alias="eventStatus")
    private: bool = False
    keywords: List[str] = []
    category_xtended: List[RemoteCategory] = Field(default=[], alias="categoryXtended")

    model_config = {"populate_by_name": True, "extra": "allow"}

    normalize_texts = field_validator(
        "event_id",
        "custom_id",
        "start_date_time",
        "title",
        "description",
        "caption_path",
        "video_thumbnail",
        "published_audio",
        "location_name",
        "total_run_time",
        "event_status",
        mode="before",
    )(_none_to_text)

    @field_validator("private", mode="before")
    @classmethod
    def normalize_private(cls, value: Any) -> bool:
        return coerce_flag(value)

    @field_validator("keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, value: Any) -> List[str]:
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        return [str(v) for v in value if v is not None]

    @field_validator("category_xtended", mode="before")
    @classmethod
    def normalize_categories(cls, value: Any) -> Any:
        return value or []


class WebhookAction(BaseModel):
    """``action`` block: what happened to the event."""

    method: str = ""
    type: str = ""

    model_config = {"extra": "allow"}

    normalize_texts = field_validator("method", "type", mode="before")(_none_to_text)


class WebhookErrors(BaseModel):
    """``errors`` block set by the sender when it could not build the payload."""

    has_error: bool = Field(default=False, alias="hasError")
    message: str = ""

    model_config = {"populate_by_name": True, "extra": "allow"}

    normalize_texts = field_validator("message", mode="before")(_none_to_text)

    @field_validator("has_error", mode="before")
    @classmethod
    def normalize_has_error(cls, value: Any) -> bool:
        return coerce_flag(value)
