"""
Badge / Achievement ledger.

Both collections are append-if-absent keyed maps: badges by `name`,
achievements by `type` (exact, case-sensitive match). A duplicate key is a
silent no-op; the stored item is never overwritten.

In the database they are ordered JSON lists (LeaderboardEntry.badges /
.achievements). Conversion happens only in `load_*` and `KeyedLedger.to_json`.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from sqlalchemy.orm import Session

from narrata.core.config import settings
from narrata.core.errors import BadgeValidationError
from narrata.models.leaderboard import LeaderboardEntry

logger = logging.getLogger(__name__)

BADGE_NAME_MAX = 64
BADGE_DESCRIPTION_MAX = 256


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_ts(raw: Optional[str]) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Badge:
    name: str
    description: str
    icon: str
    earned_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "earned_at": self.earned_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Badge":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            icon=data.get("icon", ""),
            earned_at=_parse_ts(data.get("earned_at")) or _utcnow(),
        )


@dataclass(frozen=True)
class Achievement:
    type: str
    description: str
    unlocked_at: datetime
    value: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "unlocked_at": self.unlocked_at.isoformat(),
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Achievement":
        return cls(
            type=data["type"],
            description=data.get("description", ""),
            unlocked_at=_parse_ts(data.get("unlocked_at")) or _utcnow(),
            value=data.get("value"),
        )


T = TypeVar("T", Badge, Achievement)


class KeyedLedger(Generic[T]):
    """Insertion-ordered map with append-if-absent semantics."""

    def __init__(self, key: Callable[[T], str], items: Optional[list[T]] = None):
        self._key = key
        self._items: dict[str, T] = {}
        for item in items or []:
            self.add(item)

    def add(self, item: T) -> bool:
        k = self._key(item)
        if k in self._items:
            return False
        self._items[k] = item
        return True

    def get(self, key: str) -> Optional[T]:
        return self._items.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def to_json(self) -> str:
        return json.dumps([item.to_dict() for item in self])


# ---------------------------------------------------------------------------
# Storage boundary
# ---------------------------------------------------------------------------

def _decode(raw: Optional[str]) -> list[dict[str, Any]]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (ValueError, TypeError):
        logger.warning("Discarding undecodable ledger payload: %r", raw[:80])
        return []
    if not isinstance(data, list):
        logger.warning("Discarding non-list ledger payload: %r", raw[:80])
        return []
    return [item for item in data if isinstance(item, dict)]


def _decode_keyed(raw: Optional[str], key: str) -> list[dict[str, Any]]:
    items = _decode(raw)
    kept = [item for item in items if isinstance(item.get(key), str) and item[key]]
    if len(kept) != len(items):
        logger.warning("Skipped %d ledger items without a %r", len(items) - len(kept), key)
    return kept


def load_badges(entry: LeaderboardEntry) -> KeyedLedger[Badge]:
    return KeyedLedger(
        key=lambda b: b.name,
        items=[Badge.from_dict(d) for d in _decode_keyed(entry.badges, "name")],
    )


def load_achievements(entry: LeaderboardEntry) -> KeyedLedger[Achievement]:
    return KeyedLedger(
        key=lambda a: a.type,
        items=[Achievement.from_dict(d) for d in _decode_keyed(entry.achievements, "type")],
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _require_text(value: Optional[str], field: str, max_len: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise BadgeValidationError(f"{field} must not be empty.", field=field)
    if len(cleaned) > max_len:
        raise BadgeValidationError(
            f"{field} must be at most {max_len} characters.", field=field
        )
    return cleaned


def validate_badge(name: Optional[str], description: Optional[str]) -> tuple[str, str]:
    return (
        _require_text(name, "name", BADGE_NAME_MAX),
        _require_text(description, "description", BADGE_DESCRIPTION_MAX),
    )


def validate_achievement(achievement_type: Optional[str], description: Optional[str]) -> tuple[str, str]:
    return (
        _require_text(achievement_type, "type", BADGE_NAME_MAX),
        _require_text(description, "description", BADGE_DESCRIPTION_MAX),
    )


# ---------------------------------------------------------------------------
# Public: award operations (commit on success)
# ---------------------------------------------------------------------------

def add_badge(
    db: Session,
    entry: LeaderboardEntry,
    name: str,
    description: str,
    icon: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Award a badge unless one with the same name exists. Returns True if added."""
    name, description = validate_badge(name, description)

    ledger = load_badges(entry)
    added = ledger.add(Badge(
        name=name,
        description=description,
        icon=(icon or "").strip() or settings.DEFAULT_BADGE_ICON,
        earned_at=now or _utcnow(),
    ))
    if not added:
        return False

    entry.badges = ledger.to_json()
    db.commit()
    logger.info("Badge %r awarded to user_id=%s", name, entry.user_id)
    return True


def add_achievement(
    db: Session,
    entry: LeaderboardEntry,
    achievement_type: str,
    description: str,
    value: Optional[float] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Unlock an achievement unless its type is already present. Returns True if added."""
    achievement_type, description = validate_achievement(achievement_type, description)

    ledger = load_achievements(entry)
    added = ledger.add(Achievement(
        type=achievement_type,
        description=description,
        unlocked_at=now or _utcnow(),
        value=value,
    ))
    if not added:
        return False

    entry.achievements = ledger.to_json()
    db.commit()
    logger.info("Achievement %r unlocked for user_id=%s", achievement_type, entry.user_id)
    return True
