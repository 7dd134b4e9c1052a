"""
User allergen profile: an ordered set of category ids persisted through an
injected backend. The on-disk layout mirrors browser localStorage: a single
keyed record whose value is a JSON array of id strings.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

PROFILE_STORAGE_KEY = "allergenAlertUserProfile"

log = logging.getLogger(__name__)


class ProfileBackend:
    """
    Base interface for profile persistence (file, memory, browser storage).
    """

    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, key: str, value: str) -> None:
        raise NotImplementedError


class InMemoryProfileBackend(ProfileBackend):
    def __init__(self, records: Optional[Dict[str, str]] = None):
        self.records: Dict[str, str] = dict(records or {})

    def read(self, key: str) -> Optional[str]:
        return self.records.get(key)

    def write(self, key: str, value: str) -> None:
        self.records[key] = value


class JsonFileProfileBackend(ProfileBackend):
    """
    Stores keyed records in one JSON object file, e.g.
    {"allergenAlertUserProfile": "[\\"peanuts\\", \\"milk\\"]"}.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load_records(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            records = json.load(fh)
        if not isinstance(records, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return records

    def read(self, key: str) -> Optional[str]:
        return self._load_records().get(key)

    def write(self, key: str, value: str) -> None:
        try:
            records = self._load_records()
        except (OSError, ValueError):
            # Corrupt file: rewrite it with just this record.
            records = {}
        records[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(records, fh, indent=2)


class ProfileStore:
    """
    Explicitly owned profile object passed to whatever needs it.
    Missing or corrupt persisted state degrades to an empty profile.
    """

    def __init__(self, backend: ProfileBackend, key: str = PROFILE_STORAGE_KEY):
        self.backend = backend
        self.key = key
        self._ids: List[str] = []
        self.loaded = False
        self.load()

    def load(self) -> List[str]:
        """(Re)load the profile from the backend; safe to call repeatedly."""
        ids: List[str] = []
        try:
            raw = self.backend.read(self.key)
            if raw:
                parsed = json.loads(raw)
                if not isinstance(parsed, list):
                    raise ValueError("stored profile is not a JSON array")
                for item in parsed:
                    if isinstance(item, str) and item and item not in ids:
                        ids.append(item)
        except (OSError, ValueError) as exc:
            log.warning("Failed to load user profile, starting empty: %s", exc)
            ids = []
        self._ids = ids
        self.loaded = True
        return list(self._ids)

    def _save(self) -> None:
        try:
            self.backend.write(self.key, json.dumps(self._ids))
        except OSError as exc:
            log.error("Failed to save user profile: %s", exc)

    def add(self, allergen_id: str) -> None:
        if allergen_id and allergen_id not in self._ids:
            self._ids.append(allergen_id)
            self._save()

    def remove(self, allergen_id: str) -> None:
        if allergen_id in self._ids:
            self._ids = [item for item in self._ids if item != allergen_id]
            self._save()

    def clear(self) -> None:
        self._ids = []
        self._save()

    def contains(self, allergen_id: str) -> bool:
        return allergen_id in self._ids

    def list(self) -> List[str]:
        return list(self._ids)

    def serialize(self) -> str:
        """Comma-separated ids, used verbatim as context text for the analysis."""
        return ", ".join(self._ids)

    def __contains__(self, allergen_id: str) -> bool:
        return self.contains(allergen_id)

    def __len__(self) -> int:
        return len(self._ids)
