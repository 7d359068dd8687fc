"""Best-effort parser for OCR text of a whole detail screen.

Used when the anchor templates are unavailable: the recognizer runs on the full
screenshot and stats, aptitudes and skills are picked out of the text lines by
keyword. Unlabelled stat values are assigned by typical value range, which is
ambiguous whenever two stats share a range.
"""

from __future__ import annotations

import logging
import re

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

logger = logging.getLogger("umaparse.fulltext")

MAX_SKILL_LINES = 10

_NAME_LINE = re.compile(r"^[A-Za-z\s]{3,30}$")
_SKILL_LINE = re.compile(r"^[A-Za-z\s◎○×'!?.,-]{4,50}$")
_GRADED_VALUE = re.compile(r"([A-Z]+)\s+(\d+)")
_BARE_VALUE = re.compile(r"(\d{3,4})")
_TRAILING_GRADE = re.compile(r"([A-Z])\s*$")
_APTITUDE_LINE = re.compile(
    r"^(?:turf|dirt|sprint|mile|medium|long|front|pace|late|end)\s+[A-Z]$",
    re.IGNORECASE,
)

_STAT_KEYWORDS = (
    ("speed", "speed"),
    ("stamina", "stamina"),
    ("power", "power"),
    ("guts", "guts"),
    ("wit", "wisdom"),
)
_APTITUDE_KEYWORDS = (
    "turf",
    "dirt",
    "sprint",
    "mile",
    "medium",
    "long",
    "front",
    "pace",
    "late",
    "end",
)
_NON_SKILL_WORDS = (
    "Speed",
    "Stamina",
    "Power",
    "Guts",
    "Wit",
    "Details",
    "Track",
    "Distance",
    "Style",
)


def split_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def extract_name(lines: list[str]) -> str:
    for line in lines:
        if not _NAME_LINE.match(line):
            continue
        if "Details" in line or "Speed" in line or "Stamina" in line:
            continue
        return line
    return DEFAULT_NAME


def _assign_by_range(stats: dict[str, int], value: int) -> None:
    if value > 1000 and not stats["speed"]:
        stats["speed"] = value
    elif value > 1000 and not stats["stamina"]:
        stats["stamina"] = value
    elif 500 < value < 700 and not stats["power"]:
        stats["power"] = value
    elif 500 < value < 700 and not stats["guts"]:
        stats["guts"] = value
    elif value < 500 and not stats["wisdom"]:
        stats["wisdom"] = value
    else:
        logger.debug("unassigned stat value=%d", value)


def extract_stats(lines: list[str]) -> Stats:
    stats = {"speed": 0, "stamina": 0, "power": 0, "guts": 0, "wisdom": 0}
    for line in lines:
        lowered = line.lower()
        labelled = False
        for keyword, field_name in _STAT_KEYWORDS:
            if keyword in lowered:
                match = _BARE_VALUE.search(line)
                if match:
                    stats[field_name] = int(match.group(1))
                    labelled = True
                break
        if labelled:
            continue

        graded = _GRADED_VALUE.search(line)
        bare = _BARE_VALUE.search(line)
        if graded:
            _assign_by_range(stats, int(graded.group(2)))
        elif bare:
            _assign_by_range(stats, int(bare.group(1)))
    return Stats(**stats)


def extract_aptitudes(lines: list[str]) -> Aptitudes:
    grades = {keyword: DEFAULT_APTITUDE for keyword in _APTITUDE_KEYWORDS}
    for line in lines:
        lowered = line.lower()
        for keyword in _APTITUDE_KEYWORDS:
            if keyword not in lowered:
                continue
            match = _TRAILING_GRADE.search(line)
            if match:
                grades[keyword] = match.group(1)
    return Aptitudes(
        track=TrackAptitudes(turf=grades["turf"], dirt=grades["dirt"]),
        distance=DistanceAptitudes(
            sprint=grades["sprint"],
            mile=grades["mile"],
            medium=grades["medium"],
            long=grades["long"],
        ),
        style=StyleAptitudes(
            front=grades["front"],
            pace=grades["pace"],
            late=grades["late"],
            end=grades["end"],
        ),
    )


def extract_skill_lines(lines: list[str], name: str | None = None) -> list[str]:
    skills: list[str] = []
    for line in lines:
        if line == name or _APTITUDE_LINE.match(line):
            continue
        if any(word in line for word in _NON_SKILL_WORDS):
            continue
        if _SKILL_LINE.match(line):
            skills.append(line)
    return skills[:MAX_SKILL_LINES]


def parse_uma_text(text: str) -> ParsedUmaData:
    lines = split_lines(text)
    logger.debug("fulltext lines=%d", len(lines))
    name = extract_name(lines)
    return ParsedUmaData(
        name=name,
        stats=extract_stats(lines),
        aptitudes=extract_aptitudes(lines),
        raw_skills=tuple(extract_skill_lines(lines, name)),
    )
