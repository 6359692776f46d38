"""
Persistence services for template snapshots.

The manager calls `save` after every effective mutation and `load_all` at
start-up. Snapshots are the `{manifest, elements, animationSettings,
webComponent}` dicts produced by `GraphicTemplate.to_json()`.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from studio.core import get_logger

from .sdk import TemplateSnapshot, load_snapshot, save_snapshot

log = get_logger("persistence")

CURRENT_FILE = "_current.json"


class PersistenceService:
    """Interface for template storage backends."""

    def save(self, template_id: str, snapshot: Dict[str, Any]) -> None:
        raise NotImplementedError

    def load(self, template_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def delete(self, template_id: str) -> bool:
        raise NotImplementedError

    def list_ids(self) -> List[str]:
        raise NotImplementedError

    def save_current(self, template_id: Optional[str]) -> None:
        raise NotImplementedError

    def load_current(self) -> Optional[str]:
        raise NotImplementedError

    def load_all(self) -> Dict[str, TemplateSnapshot]:
        """Every stored snapshot that still validates; corrupt entries are skipped with a warning."""
        snapshots: Dict[str, TemplateSnapshot] = {}
        for template_id in self.list_ids():
            try:
                data = self.load(template_id)
                if data is None:
                    continue
                snapshots[template_id] = TemplateSnapshot.model_validate(data)
            except (ValueError, OSError) as e:
                log.warning(f"Skipping stored template {template_id}: {e}")
        return snapshots


class MemoryPersistence(PersistenceService):
    def __init__(self):
        self._snapshots: Dict[str, str] = {}
        self._current: Optional[str] = None

    def save(self, template_id: str, snapshot: Dict[str, Any]) -> None:
        self._snapshots[template_id] = json.dumps(snapshot)

    def load(self, template_id: str) -> Optional[Dict[str, Any]]:
        raw = self._snapshots.get(template_id)
        return json.loads(raw) if raw is not None else None

    def delete(self, template_id: str) -> bool:
        return self._snapshots.pop(template_id, None) is not None

    def list_ids(self) -> List[str]:
        return list(self._snapshots)

    def save_current(self, template_id: Optional[str]) -> None:
        self._current = template_id

    def load_current(self) -> Optional[str]:
        return self._current


class JsonDirectoryPersistence(PersistenceService):
    """One `<id>.json` snapshot per template in a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, template_id: str) -> Path:
        return self.directory / f"{template_id}.json"

    def save(self, template_id: str, snapshot: Dict[str, Any]) -> None:
        save_snapshot(TemplateSnapshot.model_validate(snapshot), self._path(template_id))

    def load(self, template_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(template_id)
        if not path.exists():
            return None
        return load_snapshot(path).to_dict()

    def delete(self, template_id: str) -> bool:
        path = self._path(template_id)
        if not path.exists():
            return False
        os.remove(path)
        return True

    def list_ids(self) -> List[str]:
        return sorted(
            p.stem for p in self.directory.glob("*.json") if p.name != CURRENT_FILE
        )

    def save_current(self, template_id: Optional[str]) -> None:
        with open(self.directory / CURRENT_FILE, "w", encoding="utf-8") as f:
            json.dump({"current": template_id}, f)

    def load_current(self) -> Optional[str]:
        path = self.directory / CURRENT_FILE
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f).get("current")
        except (ValueError, OSError) as e:
            log.warning(f"Ignoring unreadable current-template marker: {e}")
            return None
