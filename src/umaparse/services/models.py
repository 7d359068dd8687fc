from __future__ import annotations

from dataclasses import dataclass, field

APTITUDE_ORDER = ("S", "A", "B", "C", "D", "E", "F", "G")
DEFAULT_APTITUDE = "G"
DEFAULT_NAME = "Unknown Uma"


@dataclass(frozen=True)
class Stats:
    speed: int = 0
    stamina: int = 0
    power: int = 0
    guts: int = 0
    wisdom: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "speed": self.speed,
            "stamina": self.stamina,
            "power": self.power,
            "guts": self.guts,
            "wisdom": self.wisdom,
        }


@dataclass(frozen=True)
class TrackAptitudes:
    turf: str = DEFAULT_APTITUDE
    dirt: str = DEFAULT_APTITUDE


@dataclass(frozen=True)
class DistanceAptitudes:
    sprint: str = DEFAULT_APTITUDE
    mile: str = DEFAULT_APTITUDE
    medium: str = DEFAULT_APTITUDE
    long: str = DEFAULT_APTITUDE


@dataclass(frozen=True)
class StyleAptitudes:
    front: str = DEFAULT_APTITUDE
    pace: str = DEFAULT_APTITUDE
    late: str = DEFAULT_APTITUDE
    end: str = DEFAULT_APTITUDE


@dataclass(frozen=True)
class Aptitudes:
    track: TrackAptitudes = field(default_factory=TrackAptitudes)
    distance: DistanceAptitudes = field(default_factory=DistanceAptitudes)
    style: StyleAptitudes = field(default_factory=StyleAptitudes)

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {
            "track": {"turf": self.track.turf, "dirt": self.track.dirt},
            "distance": {
                "sprint": self.distance.sprint,
                "mile": self.distance.mile,
                "medium": self.distance.medium,
                "long": self.distance.long,
            },
            "style": {
                "front": self.style.front,
                "pace": self.style.pace,
                "late": self.style.late,
                "end": self.style.end,
            },
        }


@dataclass(frozen=True)
class ParsedUmaData:
    outfit: str = ""
    name: str = DEFAULT_NAME
    stats: Stats = field(default_factory=Stats)
    aptitudes: Aptitudes = field(default_factory=Aptitudes)
    # Resolved skill ids once the resolver has run; raw lines are kept apart.
    skills: tuple[str, ...] = ()
    raw_skills: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "outfit": self.outfit,
            "name": self.name,
            "stats": self.stats.to_dict(),
            "aptitudes": self.aptitudes.to_dict(),
            "skills": list(self.skills),
        }
