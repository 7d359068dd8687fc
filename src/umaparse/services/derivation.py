from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .fuzzy import fuzzy_match
from .models import APTITUDE_ORDER, DEFAULT_APTITUDE, ParsedUmaData, StyleAptitudes
from .roster_catalog import RosterCatalog

logger = logging.getLogger("umaparse.derivation")


class Strategy(str, Enum):
    SENKOU = "Senkou"
    SASI = "Sasi"
    OIKOMI = "Oikomi"


DEFAULT_STRATEGY = Strategy.SASI

# Checked in this order; the first axis holding the best grade wins.
STYLE_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("front", Strategy.SENKOU),
    ("pace", Strategy.SENKOU),
    ("late", Strategy.OIKOMI),
    ("end", Strategy.OIKOMI),
)


@dataclass(frozen=True)
class HorseState:
    outfit_id: str | None
    speed: int
    stamina: int
    power: int
    guts: int
    wisdom: int
    surface_aptitude: str
    distance_aptitude: str
    strategy_aptitude: str
    strategy: Strategy
    skills: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "outfitId": self.outfit_id,
            "speed": self.speed,
            "stamina": self.stamina,
            "power": self.power,
            "guts": self.guts,
            "wisdom": self.wisdom,
            "surfaceAptitude": self.surface_aptitude,
            "distanceAptitude": self.distance_aptitude,
            "strategyAptitude": self.strategy_aptitude,
            "strategy": self.strategy.value,
            "skills": list(self.skills),
        }


def find_matching_uma(outfit: str, name: str, roster: RosterCatalog) -> str | None:
    """Outfit id for the recognized outfit title, else the first outfit of the
    character whose name matches."""
    if outfit and outfit.strip():
        for entry in roster.entries:
            for outfit_id, outfit_name in entry.outfits:
                if fuzzy_match(outfit_name, outfit):
                    logger.info("matched outfit %r -> %r (%s)", outfit, outfit_name, outfit_id)
                    return outfit_id

    if name and name.strip():
        for entry in roster.entries:
            if entry.display_name and fuzzy_match(entry.display_name, name):
                outfit_id = entry.outfits[0][0]
                logger.info("matched name %r -> %r (%s)", name, entry.display_name, outfit_id)
                return outfit_id

    logger.info("no roster match outfit=%r name=%r", outfit, name)
    return None


def highest_aptitude(grades: Sequence[str]) -> str:
    best = DEFAULT_APTITUDE
    best_index = len(APTITUDE_ORDER) - 1
    for grade in grades:
        if grade in APTITUDE_ORDER and APTITUDE_ORDER.index(grade) < best_index:
            best = grade
            best_index = APTITUDE_ORDER.index(grade)
    return best


def strategy_from_style(style: StyleAptitudes, best_grade: str) -> Strategy:
    for axis, strategy in STYLE_STRATEGIES:
        if getattr(style, axis) == best_grade:
            return strategy
    return DEFAULT_STRATEGY


def build_horse_state(parsed: ParsedUmaData, roster: RosterCatalog | None) -> HorseState:
    track = parsed.aptitudes.track
    distance = parsed.aptitudes.distance
    style = parsed.aptitudes.style

    best_style = highest_aptitude([style.front, style.pace, style.late, style.end])
    return HorseState(
        outfit_id=find_matching_uma(parsed.outfit, parsed.name, roster) if roster else None,
        speed=parsed.stats.speed,
        stamina=parsed.stats.stamina,
        power=parsed.stats.power,
        guts=parsed.stats.guts,
        wisdom=parsed.stats.wisdom,
        surface_aptitude=highest_aptitude([track.turf, track.dirt]),
        distance_aptitude=highest_aptitude(
            [distance.sprint, distance.mile, distance.medium, distance.long]
        ),
        strategy_aptitude=best_style,
        strategy=strategy_from_style(style, best_style),
        skills=parsed.skills,
    )
