from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

import numpy as np

from .calibration import CalibrationTransform

logger = logging.getLogger("umaparse.regions")


class RegionKind(str, Enum):
    STATS = "stats"
    APTITUDES = "aptitudes"
    SKILLS = "skills"
    NAME = "name"


@dataclass(frozen=True)
class DataRegion:
    name: str
    x: int
    y: int
    width: int
    height: int
    kind: RegionKind

    def fits(self, image_width: int, image_height: int) -> bool:
        return (
            self.width > 0
            and self.height > 0
            and self.x >= 0
            and self.y >= 0
            and self.x + self.width <= image_width
            and self.y + self.height <= image_height
        )


STAT_REGION_NAMES = ("speed", "stamina", "power", "guts", "wit")

STATIC_REGIONS: tuple[DataRegion, ...] = (
    DataRegion("uma_outfit", 553, 117, 456, 84, RegionKind.NAME),
    DataRegion("uma_name", 565, 195, 420, 64, RegionKind.NAME),
    DataRegion("speed", 118, 453, 106, 56, RegionKind.STATS),
    DataRegion("stamina", 319, 453, 106, 56, RegionKind.STATS),
    DataRegion("power", 523, 453, 106, 56, RegionKind.STATS),
    DataRegion("guts", 731, 453, 106, 56, RegionKind.STATS),
    DataRegion("wit", 923, 453, 106, 56, RegionKind.STATS),
    DataRegion("turf_aptitude", 386, 551, 40, 40, RegionKind.APTITUDES),
    DataRegion("dirt_aptitude", 578, 551, 40, 40, RegionKind.APTITUDES),
    DataRegion("sprint_aptitude", 386, 610, 40, 40, RegionKind.APTITUDES),
    DataRegion("mile_aptitude", 578, 610, 40, 40, RegionKind.APTITUDES),
    DataRegion("medium_aptitude", 770, 610, 40, 40, RegionKind.APTITUDES),
    DataRegion("long_aptitude", 960, 610, 40, 40, RegionKind.APTITUDES),
    DataRegion("front_aptitude", 386, 672, 40, 40, RegionKind.APTITUDES),
    DataRegion("pace_aptitude", 578, 672, 40, 40, RegionKind.APTITUDES),
    DataRegion("late_aptitude", 770, 672, 40, 40, RegionKind.APTITUDES),
    DataRegion("end_aptitude", 960, 672, 40, 40, RegionKind.APTITUDES),
)

SKILL_START_Y = 864
SKILL_ROW_PITCH = 112
SKILL_LEFT_X = 112
SKILL_RIGHT_X = 615
SKILL_WIDTH = 320
SKILL_HEIGHT = 68


def project_region(region: DataRegion, transform: CalibrationTransform) -> DataRegion:
    x, y = transform.map_point(region.x, region.y)
    width, height = transform.map_size(region.width, region.height)
    return replace(region, x=x, y=y, width=width, height=height)


def generate_skill_regions(
    image_height: int,
    transform: CalibrationTransform,
) -> list[DataRegion]:
    """Two skill slots per row until a row's projected bottom leaves the image.

    Regions are returned in reference coordinates, named ``skill_1..skill_n``
    in reading order (left then right).
    """
    regions: list[DataRegion] = []
    if transform.scale_y <= 0:
        return regions

    index = 1
    row_y = SKILL_START_Y
    while True:
        top = transform.map_point(0, row_y)[1]
        height = transform.map_size(0, SKILL_HEIGHT)[1]
        if top + height > image_height:
            break
        for column_x in (SKILL_LEFT_X, SKILL_RIGHT_X):
            regions.append(
                DataRegion(
                    name=f"skill_{index}",
                    x=column_x,
                    y=row_y,
                    width=SKILL_WIDTH,
                    height=SKILL_HEIGHT,
                    kind=RegionKind.SKILLS,
                )
            )
            index += 1
        row_y += SKILL_ROW_PITCH

    logger.debug("generated %d skill regions for image height %d", len(regions), image_height)
    return regions


def project_regions(
    regions: list[DataRegion] | tuple[DataRegion, ...],
    transform: CalibrationTransform,
    image_width: int,
    image_height: int,
) -> list[DataRegion]:
    projected: list[DataRegion] = []
    dropped: list[str] = []
    for region in regions:
        mapped = project_region(region, transform)
        if mapped.fits(image_width, image_height):
            projected.append(mapped)
        else:
            dropped.append(region.name)
    if dropped:
        logger.debug("regions outside image bounds dropped: %s", ", ".join(dropped))
    return projected


def layout_regions(
    image_width: int,
    image_height: int,
    transform: CalibrationTransform,
) -> list[DataRegion]:
    """Static layout plus generated skill rows, projected and bounds-filtered."""
    reference = list(STATIC_REGIONS) + generate_skill_regions(image_height, transform)
    return project_regions(reference, transform, image_width, image_height)


def extract_region(image: np.ndarray, region: DataRegion) -> np.ndarray:
    return image[region.y : region.y + region.height, region.x : region.x + region.width].copy()
