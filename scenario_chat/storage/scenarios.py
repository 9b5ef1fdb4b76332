"""Scenario documents as flat JSON files.

Layout:

    {data_dir}/
      scenarios/
        {scenario_id}.json    ← one Scenario, camelCase keys, every field explicit

Incoming scenario payloads come from a form and may carry absent (None)
values anywhere in the nested character/scene lists. create() runs a
pre-flight scan that logs every absent path, then a canonicalization pass
that removes them so the model's typed defaults ("" / [] / 0 / False) apply.
Nothing absent ever reaches disk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from scenario_chat.models import Scenario

from .core import (
    is_safe_id,
    new_character_id,
    new_id,
    now_iso,
    read_json,
    write_json,
)

logger = logging.getLogger(__name__)

# Client-side preview fields that never belong in a stored character
_CLIENT_ONLY_CHARACTER_FIELDS = ("avatarFile", "avatarPreview")


def find_absent_paths(data: Any, prefix: str = "") -> list[str]:
    """Return dotted paths of every None value, e.g. ["characters.1.backstory"]."""
    paths: list[str] = []
    if isinstance(data, dict):
        items = data.items()
    elif isinstance(data, list):
        items = enumerate(data)
    else:
        return paths
    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        if value is None:
            paths.append(path)
        else:
            paths.extend(find_absent_paths(value, path))
    return paths


def _strip_absent(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _strip_absent(v) for k, v in data.items() if v is not None}
    if isinstance(data, list):
        return [_strip_absent(v) for v in data if v is not None]
    return data


def _clean_character(raw: dict[str, Any]) -> dict[str, Any]:
    char = dict(raw)
    preview = char.get("avatarPreview")
    if isinstance(preview, str) and preview.startswith("blob:"):
        preview = ""
    char["avatar"] = char.get("avatar") or preview or ""
    for field in _CLIENT_ONLY_CHARACTER_FIELDS:
        char.pop(field, None)
    if not char.get("id"):
        char["id"] = new_character_id()
    return char


def canonicalize(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a raw scenario payload that is safe to validate and store."""
    cleaned = _strip_absent(data)
    cleaned.pop("id", None)
    cleaned["characters"] = [
        _clean_character(c)
        for c in cleaned.get("characters", [])
        if isinstance(c, dict)
    ]
    return cleaned


class ScenarioStore:
    def __init__(self, data_dir: Path) -> None:
        self._root = data_dir / "scenarios"
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, scenario_id: str) -> Path | None:
        if not is_safe_id(scenario_id):
            return None
        return self._root / f"{scenario_id}.json"

    def list_scenarios(self) -> list[Scenario]:
        """All scenarios, newest first."""
        scenarios = [
            Scenario.model_validate(read_json(p)) for p in self._root.glob("*.json")
        ]
        scenarios.sort(key=lambda s: s.created_at, reverse=True)
        return scenarios

    def get(self, scenario_id: str) -> Scenario | None:
        path = self._path(scenario_id)
        if path is None or not path.is_file():
            return None
        return Scenario.model_validate(read_json(path))

    def create(self, data: dict[str, Any]) -> Scenario:
        """Validate and persist a new scenario. Raises pydantic.ValidationError."""
        absent = find_absent_paths(data)
        if absent:
            logger.warning("Scenario payload has absent values at: %s", ", ".join(absent))

        fields = canonicalize(data)
        timestamp = now_iso()
        fields["createdAt"] = timestamp
        fields["updatedAt"] = timestamp
        scenario = Scenario.model_validate(fields)
        scenario.id = new_id()

        write_json(self._path(scenario.id), scenario.model_dump(by_alias=True))
        logger.info("Created scenario %s (%r)", scenario.id, scenario.title)
        return scenario

    def delete(self, scenario_id: str) -> bool:
        """Remove a scenario document. Returns False if it did not exist."""
        path = self._path(scenario_id)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info("Deleted scenario document %s", scenario_id)
        return True
