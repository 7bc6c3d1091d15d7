"""
Banner Models
=============

Plain records for banners, queue entries and slots, plus the timestamp and
payload validation shared by the catalog, the queue store and selection.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from urllib.parse import urlparse

# Payload keys that may hold the creative's image, in resolution order.
# image_url is canonical; the rest are legacy/alternate spellings.
IMAGE_PAYLOAD_KEYS = ('image_url', 'imageUrl', 'gif_url', 'gifUrl')


class BannerError(Exception):
    """Base class for banner engine errors"""


class ValidationError(BannerError, ValueError):
    """Bad input from the caller: missing slot key, malformed payload, bad timestamp"""


class NotFoundError(BannerError, LookupError):
    """Referenced banner or queue entry does not exist"""


# ===== Timestamps =====

def parse_timestamp(value, field_name='timestamp'):
    """
    Coerce a datetime or ISO-8601 string to an aware UTC datetime.
    None stays None. Naive values are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field_name} is not a valid ISO-8601 timestamp: {value!r}")
    if not isinstance(value, datetime):
        raise ValidationError(f"{field_name} must be a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value):
    """Normalized storage form: UTC, microsecond precision, so string order == time order"""
    if value is None:
        return None
    return parse_timestamp(value).isoformat(timespec='microseconds')


def utcnow():
    return datetime.now(timezone.utc)


# ===== Payload helpers =====

def _is_resolvable_url(value, allow_root_path):
    if not isinstance(value, str) or not value.strip():
        return False
    value = value.strip()
    if allow_root_path and value.startswith('/') and not value.startswith('//'):
        return True
    parsed = urlparse(value)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def resolve_image_url(payload):
    """First non-empty image field of a creative payload, or None"""
    if not isinstance(payload, dict):
        return None
    for key in IMAGE_PAYLOAD_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_payload(payload):
    """
    Validate a creative payload and mirror the image into image_url and the
    legacy gif_url so older renderers keep working.
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError:
            raise ValidationError("creative_payload is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("creative_payload must be an object")

    image_url = resolve_image_url(payload)
    if not image_url:
        raise ValidationError("creative_payload requires an image_url")
    if not _is_resolvable_url(image_url, allow_root_path=True):
        raise ValidationError(f"image_url is not a resolvable URI: {image_url!r}")

    normalized = dict(payload)
    normalized['image_url'] = image_url
    normalized['gif_url'] = image_url
    normalized.pop('imageUrl', None)
    normalized.pop('gifUrl', None)
    return normalized


def validate_name(name):
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Banner name is required")
    return name.strip()


def validate_click_url(click_url):
    if click_url is None:
        return None
    if isinstance(click_url, str) and not click_url.strip():
        return None
    if not _is_resolvable_url(click_url, allow_root_path=False):
        raise ValidationError(f"click_url must be an http(s) URL: {click_url!r}")
    return click_url.strip()


def validate_slot_key(slot_key):
    if not isinstance(slot_key, str) or not slot_key.strip():
        raise ValidationError("Slot key is required")
    return slot_key.strip()


def validate_priority(priority):
    if priority is None:
        return 0
    # bool is an int subclass; True as a priority is a caller bug
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValidationError(f"priority must be an integer, got {priority!r}")
    return priority


def validate_window(starts_at, ends_at):
    starts_at = parse_timestamp(starts_at, 'starts_at')
    ends_at = parse_timestamp(ends_at, 'ends_at')
    if starts_at is not None and ends_at is not None and ends_at <= starts_at:
        raise ValidationError("ends_at must be later than starts_at")
    return starts_at, ends_at


# ===== Records =====

@dataclass(frozen=True)
class Banner:
    id: str
    name: str
    creative_payload: dict = field(default_factory=dict)
    click_url: str = None
    active: bool = True
    is_pilot: bool = False
    created_at: datetime = None
    updated_at: datetime = None

    @property
    def image_url(self):
        return resolve_image_url(self.creative_payload)

    @classmethod
    def from_row(cls, row):
        payload = row['payload_json']
        try:
            payload = json.loads(payload) if payload else {}
        except (json.JSONDecodeError, TypeError):
            payload = {}
        return cls(
            id=row['id'],
            name=row['name'],
            creative_payload=payload,
            click_url=row['click_url'],
            active=bool(row['active']),
            is_pilot=bool(row['is_pilot']),
            created_at=parse_timestamp(row['created_at']),
            updated_at=parse_timestamp(row['updated_at']),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'creative_payload': dict(self.creative_payload),
            'image_url': self.image_url,
            'click_url': self.click_url,
            'active': self.active,
            'is_pilot': self.is_pilot,
            'created_at': format_timestamp(self.created_at),
            'updated_at': format_timestamp(self.updated_at),
        }


@dataclass(frozen=True)
class ScheduleEntry:
    id: str
    slot_key: str
    banner_id: str
    priority: int = 0
    starts_at: datetime = None
    ends_at: datetime = None
    created_at: datetime = None

    def __post_init__(self):
        # naive datetimes and ISO strings are taken as UTC
        for name in ('starts_at', 'ends_at', 'created_at'):
            object.__setattr__(self, name, parse_timestamp(getattr(self, name), name))

    def is_live(self, now):
        """Window check: start inclusive, end exclusive"""
        if self.starts_at is not None and self.starts_at > now:
            return False
        if self.ends_at is not None and self.ends_at <= now:
            return False
        return True

    def is_expired(self, now):
        """Past its end: eligible for cleanup (entries ending exactly now stay)"""
        return self.ends_at is not None and self.ends_at < now

    def with_changes(self, **changes):
        return replace(self, **changes)

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            slot_key=row['slot_key'],
            banner_id=row['banner_id'],
            priority=row['priority'] or 0,
            starts_at=parse_timestamp(row['starts_at']),
            ends_at=parse_timestamp(row['ends_at']),
            created_at=parse_timestamp(row['created_at']),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'slot_key': self.slot_key,
            'banner_id': self.banner_id,
            'priority': self.priority,
            'starts_at': format_timestamp(self.starts_at),
            'ends_at': format_timestamp(self.ends_at),
            'created_at': format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class Slot:
    key: str
    label: str
    category: str

    def to_dict(self):
        return {'key': self.key, 'label': self.label, 'category': self.category}


@dataclass(frozen=True)
class Placement:
    """The banner chosen for a slot and where the choice came from."""
    slot_key: str
    banner: Banner
    source: str
    entry: ScheduleEntry = None

    @property
    def is_pilot(self):
        return self.source == 'pilot'

    def to_dict(self):
        data = self.banner.to_dict()
        data.update({
            'slot_key': self.slot_key,
            'source': self.source,
            'queue_id': self.entry.id if self.entry else None,
            'queue_priority': self.entry.priority if self.entry else None,
            'queue_ends_at': format_timestamp(self.entry.ends_at) if self.entry else None,
        })
        return data
