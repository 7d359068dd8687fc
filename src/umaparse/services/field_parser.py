from __future__ import annotations

import logging
import re
from typing import Mapping

from .models import (
    DEFAULT_APTITUDE,
    DEFAULT_NAME,
    Aptitudes,
    DistanceAptitudes,
    ParsedUmaData,
    Stats,
    StyleAptitudes,
    TrackAptitudes,
)

logger = logging.getLogger("umaparse.fields")

_STAT_PATTERN = re.compile(r"(\d{3,4})")
_APTITUDE_PATTERN = re.compile(r"([A-Z])")
_SKILL_FIELD_PATTERN = re.compile(r"^skill_(\d+)$")


def parse_stat(text: str | None) -> int:
    # Accepts "S 1012" as well as a bare "1012".
    match = _STAT_PATTERN.search(text or "")
    return int(match.group(1)) if match else 0


def parse_aptitude(text: str | None) -> str:
    match = _APTITUDE_PATTERN.search(text or "")
    return match.group(1) if match else DEFAULT_APTITUDE


def collect_skill_lines(fields: Mapping[str, str]) -> list[str]:
    """Non-empty ``skill_N`` texts ordered by slot index."""
    slots: list[tuple[int, str]] = []
    for key, raw in fields.items():
        match = _SKILL_FIELD_PATTERN.match(key)
        if not match:
            continue
        text = (raw or "").strip()
        if text:
            slots.append((int(match.group(1)), text))
    slots.sort(key=lambda item: item[0])
    return [text for _, text in slots]


def _stat(fields: Mapping[str, str], name: str) -> int:
    raw = fields.get(name)
    value = parse_stat(raw)
    if value == 0:
        logger.debug("stat field defaulted field=%s raw=%r", name, raw)
    return value


def _aptitude(fields: Mapping[str, str], name: str) -> str:
    raw = fields.get(f"{name}_aptitude")
    value = parse_aptitude(raw)
    if raw is None or not _APTITUDE_PATTERN.search(raw):
        logger.debug("aptitude field defaulted field=%s raw=%r", name, raw)
    return value


def parse_extracted_fields(fields: Mapping[str, str]) -> ParsedUmaData:
    outfit = (fields.get("uma_outfit") or "").strip()
    name = (fields.get("uma_name") or "").strip() or DEFAULT_NAME

    stats = Stats(
        speed=_stat(fields, "speed"),
        stamina=_stat(fields, "stamina"),
        power=_stat(fields, "power"),
        guts=_stat(fields, "guts"),
        wisdom=_stat(fields, "wit"),
    )
    aptitudes = Aptitudes(
        track=TrackAptitudes(
            turf=_aptitude(fields, "turf"),
            dirt=_aptitude(fields, "dirt"),
        ),
        distance=DistanceAptitudes(
            sprint=_aptitude(fields, "sprint"),
            mile=_aptitude(fields, "mile"),
            medium=_aptitude(fields, "medium"),
            long=_aptitude(fields, "long"),
        ),
        style=StyleAptitudes(
            front=_aptitude(fields, "front"),
            pace=_aptitude(fields, "pace"),
            late=_aptitude(fields, "late"),
            end=_aptitude(fields, "end"),
        ),
    )
    return ParsedUmaData(
        outfit=outfit,
        name=name,
        stats=stats,
        aptitudes=aptitudes,
        raw_skills=tuple(collect_skill_lines(fields)),
    )
