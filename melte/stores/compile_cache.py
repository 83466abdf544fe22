"""Persistent cache for compile and lowering outputs."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models import CompileOutput, CompileResult, HtmlSection, Stylesheet

_CACHE_VERSION = 1


class CompileCache:
    """Stores JSON payloads keyed by a cache-key digest."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if not entry:
            return None
        payload = entry.get("payload")
        return payload if isinstance(payload, dict) else None

    def store(self, key: str, payload: Dict[str, Any]) -> None:
        self._entries[key] = {
            "payload": payload,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _CACHE_VERSION,
            "entries": self._entries,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, sort_keys=True), encoding="utf-8")
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        self._entries = {
            key: raw
            for key, raw in entries.items()
            if isinstance(key, str) and isinstance(raw, dict) and isinstance(raw.get("payload"), dict)
        }
        self._dirty = False


def result_to_payload(result: CompileResult) -> Dict[str, Any]:
    if isinstance(result, list):
        return {"kind": "html", "sections": [asdict(section) for section in result]}
    return {"kind": "module", "output": asdict(result)}


def result_from_payload(payload: Dict[str, Any]) -> Optional[CompileResult]:
    kind = payload.get("kind")
    if kind == "html":
        sections: List[HtmlSection] = []
        for raw in payload.get("sections") or []:
            if not isinstance(raw, dict):
                return None
            sections.append(HtmlSection(section=str(raw.get("section")), data=str(raw.get("data") or "")))
        return sections
    if kind == "module":
        raw = payload.get("output")
        if not isinstance(raw, dict):
            return None
        stylesheets = [
            Stylesheet(
                path=str(item.get("path")),
                data=str(item.get("data") or ""),
                source_map=item.get("source_map"),
                lazy=bool(item.get("lazy")),
            )
            for item in raw.get("stylesheets") or []
            if isinstance(item, dict)
        ]
        return CompileOutput(
            source_path=str(raw.get("source_path")),
            path=str(raw.get("path")),
            data=str(raw.get("data") or ""),
            source_map=raw.get("source_map"),
            stylesheets=stylesheets,
        )
    return None


__all__ = ["CompileCache", "result_from_payload", "result_to_payload"]
