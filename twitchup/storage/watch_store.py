import json
import logging
from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

log = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StreamSession:
    title: str
    game_name: str
    viewer_count: int
    thumbnail_url: str
    started_at: Optional[str] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class WatchedEntity:
    id: str
    login: str
    display_name: str
    profile_image_url: str = ""
    added_at: str = ""
    is_live: bool = False
    current_stream: Optional[StreamSession] = None

    def to_dict(self):
        data = asdict(self)
        if self.current_stream is None:
            data.pop("current_stream")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "WatchedEntity":
        stream = data.get("current_stream")
        return cls(
            id=str(data["id"]),
            login=data.get("login", ""),
            display_name=data.get("display_name", ""),
            profile_image_url=data.get("profile_image_url", ""),
            added_at=data.get("added_at", ""),
            is_live=bool(data.get("is_live", False)),
            current_stream=StreamSession(**stream) if stream else None,
        )


class WatchStore:
    """Watched channels and the dedup ledger, kept in one JSON document.

    Every mutation rewrites the whole document, so the entity list and the
    ledger on disk always agree with each other.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entities: Dict[str, WatchedEntity] = {}
        self._last_notified: Dict[str, str] = {}
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            entities = {}
            for raw in data.get("streamers", []):
                entity = WatchedEntity.from_dict(raw)
                entities[entity.id] = entity
            last_notified = {str(k): v for k, v in (data.get("lastNotified") or {}).items()}
        except (OSError, ValueError, AttributeError, TypeError, KeyError) as e:
            log.warning("Unreadable store %s, starting empty: %s", self.path, e)
            return
        self._entities = entities
        self._last_notified = last_notified

    def _commit(self, entities: Dict[str, WatchedEntity], last_notified: Dict[str, str]):
        """Write the new document, then adopt it; a failed write changes nothing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        doc = {
            "streamers": [e.to_dict() for e in entities.values()],
            "lastNotified": dict(last_notified),
        }
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(doc, f, ensure_ascii=False, indent=2)
        tmp.replace(self.path)
        self._entities = entities
        self._last_notified = last_notified

    def add(self, entity: WatchedEntity) -> bool:
        if entity.id in self._entities:
            return False
        entities = dict(self._entities)
        entities[entity.id] = replace(
            entity,
            added_at=entity.added_at or utc_now_iso(),
            is_live=False,
            current_stream=None,
        )
        self._commit(entities, self._last_notified)
        return True

    def remove(self, entity_id: str) -> bool:
        if entity_id not in self._entities:
            return False
        entities = {k: v for k, v in self._entities.items() if k != entity_id}
        last_notified = {k: v for k, v in self._last_notified.items() if k != entity_id}
        self._commit(entities, last_notified)
        return True

    def list(self) -> List[WatchedEntity]:
        return list(self._entities.values())

    def get(self, entity_id: str) -> Optional[WatchedEntity]:
        return self._entities.get(entity_id)

    def find_by_login(self, login: str) -> Optional[WatchedEntity]:
        login = login.lower()
        for entity in self._entities.values():
            if entity.login.lower() == login:
                return entity
        return None

    def set_live_state(self, entity_id: str, is_live: bool, session: Optional[StreamSession]) -> Optional[WatchedEntity]:
        return self.record(entity_id, is_live, session)

    def last_notified(self, entity_id: str) -> Optional[str]:
        return self._last_notified.get(entity_id)

    def mark_notified(self, entity_id: str, timestamp: str) -> bool:
        if entity_id not in self._entities:
            return False
        self._commit(self._entities, {**self._last_notified, entity_id: timestamp})
        return True

    def record(self, entity_id: str, is_live: bool, session: Optional[StreamSession], notified_at: Optional[str] = None) -> Optional[WatchedEntity]:
        """Apply a sweep observation, and optionally a ledger entry, in one write."""
        entity = self._entities.get(entity_id)
        if entity is None:
            return None
        if is_live and session is None:
            raise ValueError(f"live state for {entity_id} requires session metadata")
        updated = replace(entity, is_live=is_live, current_stream=session if is_live else None)
        entities = {k: (updated if k == entity_id else v) for k, v in self._entities.items()}
        last_notified = self._last_notified
        if notified_at is not None:
            last_notified = {**self._last_notified, entity_id: notified_at}
        self._commit(entities, last_notified)
        return updated
