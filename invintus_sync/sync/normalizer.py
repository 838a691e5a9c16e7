"""Invintus Sync - Remote Event → Normalized Record.

Maps an Invintus event payload onto the local content schema: title
transliteration, slug, block-wrapped body with a player embed, custom fields
and the lifecycle state (status mapping plus the future/private overrides).
"""

import json
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from invintus_sync.core.errors import MalformedPayload
from invintus_sync.core.lifecycle import LifecycleState, StatusSets, map_status
from invintus_sync.models.payload_models import RemoteEvent
from invintus_sync.models.sync_models import NormalizedRecord

CONTENT_CLASS = "invintus-content"
PLAYER_BLOCK = "taproot/invintus"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# (tag, opening block comment, closing block comment)
BLOCK_WRAPPERS = [
    (
        "p",
        '<!-- wp:paragraph {"className":"%s"} -->' % CONTENT_CLASS,
        "<!-- /wp:paragraph -->",
    ),
    (
        "ul",
        '<!-- wp:list {"className":"%s"} -->' % CONTENT_CLASS,
        "<!-- /wp:list -->",
    ),
    (
        "ol",
        '<!-- wp:list {"className":"%s", "ordered":true} -->' % CONTENT_CLASS,
        "<!-- /wp:list -->",
    ),
]


def extract_event_id(raw_event_id: Optional[str]) -> str:
    """Return the numeric id: the last ``_``-delimited segment of ``eventID``."""
    if not raw_event_id:
        return ""
    return str(raw_event_id).split("_")[-1].strip()


def prepare_title(title: str) -> str:
    """Transliterate to plain ASCII, dropping what cannot be represented."""
    decomposed = unicodedata.normalize("NFKD", title or "")
    return decomposed.encode("ascii", "ignore").decode("ascii").strip()


def slugify(text: str) -> str:
    return _NON_ALNUM.sub("-", (text or "").lower()).strip("-")


def build_slug(title: str, event_id: str) -> str:
    base = slugify(title)
    return f"{base}-{event_id}" if base else event_id


def player_marker(event_id: str) -> str:
    attrs = json.dumps({"invintus_event_id": event_id}, separators=(",", ":"))
    return f"<!-- wp:{PLAYER_BLOCK} {attrs} /-->\n"


def prepare_content(event_id: str, content: str) -> str:
    """Wrap paragraphs and lists in block markup and prepend the player embed."""
    content = content or ""
    for tag, opener, closer in BLOCK_WRAPPERS:
        content = re.sub(
            rf"<{tag}(?=[\s>])",
            f'{opener}\n<{tag} class="{CONTENT_CLASS}"',
            content,
        )
        content = content.replace(f"</{tag}>", f"</{tag}>\n{closer}")
    return player_marker(event_id) + content


def parse_start(value: str) -> Optional[datetime]:
    """Parse ``startDateTime``; naive values are UTC, garbage is None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resolve_lifecycle(
    event: RemoteEvent,
    now: datetime,
    status_sets: Optional[StatusSets] = None,
) -> LifecycleState:
    """Status mapping, then future override, then private override."""
    state = map_status(event.event_status, status_sets)

    start = parse_start(event.start_date_time)
    if start is not None and start > now:
        state = LifecycleState.FUTURE

    if event.private:
        state = LifecycleState.PRIVATE

    return state


def parse_event(data: Any) -> RemoteEvent:
    """Validate the ``data`` block of a webhook payload."""
    if data is None:
        raise MalformedPayload("Event data is missing.")
    if isinstance(data, RemoteEvent):
        return data
    if not isinstance(data, dict):
        raise MalformedPayload("Event data must be an object.")
    try:
        return RemoteEvent.model_validate(data)
    except ValidationError as e:
        raise MalformedPayload(f"Event data is invalid: {e.errors()[0]['msg']}") from e


def normalize(
    event: Optional[RemoteEvent | Dict[str, Any]],
    now: Optional[datetime] = None,
    status_sets: Optional[StatusSets] = None,
) -> NormalizedRecord:
    """Map a remote event onto a NormalizedRecord.

    Deterministic for a given ``event`` and ``now`` (defaults to the current
    UTC time). Only an absent event is an error.

    Keywords become tags in their original order, but cleaned: each is
    stripped, blanks are skipped and repeats are dropped.
    """
    event = parse_event(event)
    now = now or datetime.now(timezone.utc)

    event_id = extract_event_id(event.event_id)
    title = prepare_title(event.title)

    tags = []
    for keyword in event.keywords:
        keyword = keyword.strip()
        if keyword and keyword not in tags:
            tags.append(keyword)

    return NormalizedRecord(
        remote_event_id=event_id,
        title=title,
        slug=build_slug(title, event_id),
        body=prepare_content(event_id, event.description),
        published_at=parse_start(event.start_date_time),
        lifecycle_state=resolve_lifecycle(event, now, status_sets),
        custom_id=event.custom_id,
        description=event.description,
        caption=event.caption_path,
        thumbnail=event.video_thumbnail,
        audio=event.published_audio,
        location=event.location_name,
        total_runtime=event.total_run_time,
        tags=tags,
        categories=list(event.category_xtended),
    )
