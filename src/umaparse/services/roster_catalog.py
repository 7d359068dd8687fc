from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from threading import Lock

from .errors import CatalogError

logger = logging.getLogger("umaparse.catalog")


@dataclass(frozen=True)
class RosterEntry:
    uma_id: str
    names: tuple[str, ...]
    outfits: tuple[tuple[str, str], ...]

    @property
    def display_name(self) -> str:
        # Catalog names are [ja, en]; the screenshots carry the English name.
        if len(self.names) > 1:
            return self.names[1]
        return self.names[0] if self.names else ""


@dataclass(frozen=True)
class RosterCatalog:
    entries: tuple[RosterEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)


def _normalize_entry(uma_id: str, raw: object) -> RosterEntry | None:
    if not isinstance(raw, dict):
        return None

    raw_names = raw.get("name")
    if isinstance(raw_names, str):
        raw_names = [raw_names]
    names = tuple(
        item.strip()
        for item in (raw_names if isinstance(raw_names, list) else [])
        if isinstance(item, str)
    )

    raw_outfits = raw.get("outfits")
    outfits: list[tuple[str, str]] = []
    if isinstance(raw_outfits, dict):
        for outfit_id, outfit_name in raw_outfits.items():
            if isinstance(outfit_name, str) and outfit_name.strip():
                outfits.append((str(outfit_id).strip(), outfit_name.strip()))

    if not outfits:
        return None
    return RosterEntry(uma_id=uma_id, names=names, outfits=tuple(outfits))


def build_roster_catalog(payload: dict[str, object]) -> RosterCatalog:
    entries: list[RosterEntry] = []
    for raw_id, raw in payload.items():
        entry = _normalize_entry(str(raw_id).strip(), raw)
        if entry is not None:
            entries.append(entry)
    return RosterCatalog(entries=tuple(entries))


def load_roster_catalog(path: Path) -> RosterCatalog:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogError(f"roster catalog not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"failed to parse roster catalog: {path}") from exc
    if not isinstance(payload, dict):
        raise CatalogError("unexpected roster catalog shape: expected object")

    roster = build_roster_catalog(payload)
    if not len(roster):
        raise CatalogError(f"no roster entries found in {path}")
    logger.info("roster catalog loaded path=%s umas=%d", path, len(roster))
    return roster


_cache_lock = Lock()
_cached_rosters: dict[str, RosterCatalog] = {}


def get_roster_catalog(path: Path) -> RosterCatalog:
    key = str(path)
    with _cache_lock:
        cached = _cached_rosters.get(key)
        if cached is not None:
            return cached
        roster = load_roster_catalog(path)
        _cached_rosters[key] = roster
        return roster
