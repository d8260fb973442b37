import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagRecord:
    user_name: str
    entitlement: int
    currency: str = "EUR"
    status: str = "active"

    @property
    def active(self) -> bool:
        return self.status == "active"


class TagDirectory:
    """Registered tags and their entitlements, keyed by lowercase UID."""

    def __init__(self, records: Optional[Dict[str, TagRecord]] = None) -> None:
        self._records = {uid.lower(): rec for uid, rec in (records or {}).items()}

    def __len__(self) -> int:
        return len(self._records)

    def lookup(self, uid: str) -> Optional[TagRecord]:
        return self._records.get(uid.lower())

    @classmethod
    def from_dict(cls, data: dict) -> "TagDirectory":
        records = {}
        for uid, entry in data.items():
            records[uid] = TagRecord(user_name=entry["userName"],
                                     entitlement=int(entry["entitlement"]),
                                     currency=entry.get("currency", "EUR"),
                                     status=entry.get("status", "active"))
        return cls(records)

    @classmethod
    def from_json_file(cls, path: str) -> "TagDirectory":
        with open(path, "r", encoding="utf-8") as f:
            directory = cls.from_dict(json.load(f))

        logger.info("Loaded %d registered tags from %s", len(directory), path)
        return directory

    @classmethod
    def demo(cls) -> "TagDirectory":
        return cls({
            "042d2aaac41390": TagRecord("User A", 500),
            "04abc123def456": TagRecord("User B", 1000),
            "04c3d2e1f0a9b8": TagRecord("User C", 750, status="claimed"),
        })
