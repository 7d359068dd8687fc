from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from threading import Lock

from .errors import CatalogError
from .fuzzy import normalize_text
from .tiers import catalog_tier

logger = logging.getLogger("umaparse.catalog")

# Original unique skills; their inherited copies live under 9xxxxx.
PRIMARY_ID_PREFIX = "10"


class SkillPool(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class SkillName:
    display: str
    normalized: str
    tier: str | None


@dataclass(frozen=True)
class SkillEntry:
    skill_id: str
    names: tuple[SkillName, ...]
    pool: SkillPool


@dataclass(frozen=True)
class SkillCatalog:
    entries: tuple[SkillEntry, ...]
    primary: tuple[SkillEntry, ...]
    secondary: tuple[SkillEntry, ...]

    def pool(self, pool: SkillPool) -> tuple[SkillEntry, ...]:
        return self.primary if pool is SkillPool.PRIMARY else self.secondary

    def get(self, skill_id: str) -> SkillEntry | None:
        for entry in self.entries:
            if entry.skill_id == skill_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.entries)


def pool_for_id(skill_id: str) -> SkillPool:
    if skill_id.startswith(PRIMARY_ID_PREFIX):
        return SkillPool.PRIMARY
    return SkillPool.SECONDARY


def _coerce_names(raw: object) -> list[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [item.strip() for item in raw if isinstance(item, str) and item.strip()]


def build_skill_catalog(payload: dict[str, object]) -> SkillCatalog:
    entries: list[SkillEntry] = []
    for raw_id, raw_names in payload.items():
        skill_id = str(raw_id).strip()
        names = _coerce_names(raw_names)
        if not skill_id or not names:
            continue
        entries.append(
            SkillEntry(
                skill_id=skill_id,
                names=tuple(
                    SkillName(
                        display=name,
                        normalized=normalize_text(name),
                        tier=catalog_tier(name),
                    )
                    for name in names
                ),
                pool=pool_for_id(skill_id),
            )
        )
    return SkillCatalog(
        entries=tuple(entries),
        primary=tuple(entry for entry in entries if entry.pool is SkillPool.PRIMARY),
        secondary=tuple(entry for entry in entries if entry.pool is SkillPool.SECONDARY),
    )


def load_skill_catalog(path: Path) -> SkillCatalog:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogError(f"skill catalog not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"failed to parse skill catalog: {path}") from exc
    if not isinstance(payload, dict):
        raise CatalogError("unexpected skill catalog shape: expected object")

    catalog = build_skill_catalog(payload)
    if not len(catalog):
        raise CatalogError(f"no skill entries found in {path}")
    logger.info(
        "skill catalog loaded path=%s skills=%d primary=%d",
        path,
        len(catalog),
        len(catalog.pool(SkillPool.PRIMARY)),
    )
    return catalog


_cache_lock = Lock()
_cached_catalogs: dict[str, SkillCatalog] = {}


def get_skill_catalog(path: Path) -> SkillCatalog:
    key = str(path)
    with _cache_lock:
        cached = _cached_catalogs.get(key)
        if cached is not None:
            return cached
        catalog = load_skill_catalog(path)
        _cached_catalogs[key] = catalog
        return catalog
