from __future__ import annotations

import numpy as np
import pytest

from umaparse.services.calibration import IDENTITY, CalibrationTransform  # type: ignore[import-not-found]
from umaparse.services.regions import (  # type: ignore[import-not-found]
    STATIC_REGIONS,
    DataRegion,
    RegionKind,
    extract_region,
    generate_skill_regions,
    layout_regions,
    project_region,
    project_regions,
)


def test_static_layout_covers_name_stats_and_aptitudes() -> None:
    names = [region.name for region in STATIC_REGIONS]

    assert names[:2] == ["uma_outfit", "uma_name"]
    assert {"speed", "stamina", "power", "guts", "wit"} <= set(names)
    assert sum(1 for region in STATIC_REGIONS if region.kind is RegionKind.APTITUDES) == 10
    assert len(names) == len(set(names))


@pytest.mark.parametrize(
    ("image_height", "expected"),
    [(900, 0), (932, 2), (1156, 6), (1267, 6), (1268, 8)],
)
def test_skill_rows_stop_before_leaving_image(image_height: int, expected: int) -> None:
    assert len(generate_skill_regions(image_height, IDENTITY)) == expected


def test_skill_regions_are_named_in_reading_order() -> None:
    regions = generate_skill_regions(1156, IDENTITY)

    assert [region.name for region in regions] == [f"skill_{i}" for i in range(1, 7)]
    assert [(region.x, region.y) for region in regions[:4]] == [
        (112, 864),
        (615, 864),
        (112, 976),
        (615, 976),
    ]
    assert all(region.kind is RegionKind.SKILLS for region in regions)
    assert all((region.width, region.height) == (320, 68) for region in regions)


def test_skill_rows_follow_calibrated_scale() -> None:
    half = CalibrationTransform(scale_x=0.5, scale_y=0.5, offset_x=0.0, offset_y=0.0)

    # Rows end at 466, 522, 578 ... in a half-size screenshot.
    assert len(generate_skill_regions(578, half)) == 6
    assert len(generate_skill_regions(577, half)) == 4


def test_project_region_scales_and_offsets() -> None:
    transform = CalibrationTransform(scale_x=2.0, scale_y=2.0, offset_x=10.0, offset_y=20.0)
    region = DataRegion("speed", 118, 453, 106, 56, RegionKind.STATS)

    projected = project_region(region, transform)

    assert (projected.x, projected.y, projected.width, projected.height) == (246, 926, 212, 112)
    assert projected.name == "speed"
    assert projected.kind is RegionKind.STATS


def test_project_regions_drops_out_of_bounds() -> None:
    regions = [
        DataRegion("inside", 10, 10, 50, 20, RegionKind.STATS),
        DataRegion("right_edge", 460, 10, 50, 20, RegionKind.STATS),
        DataRegion("negative", -5, 10, 50, 20, RegionKind.STATS),
        DataRegion("exact_fit", 450, 280, 50, 20, RegionKind.STATS),
    ]

    projected = project_regions(regions, IDENTITY, 500, 300)

    assert [region.name for region in projected] == ["inside", "exact_fit"]


def test_layout_regions_combines_static_and_skill_rows() -> None:
    regions = layout_regions(1080, 1156, IDENTITY)

    assert len(regions) == len(STATIC_REGIONS) + 6
    assert regions[-1].name == "skill_6"


def test_layout_regions_on_narrow_image_drops_right_columns() -> None:
    regions = layout_regions(600, 1156, IDENTITY)
    names = {region.name for region in regions}

    assert "speed" in names
    assert "uma_outfit" not in names
    assert "skill_1" in names
    assert "skill_2" not in names


def test_extract_region_returns_independent_copy() -> None:
    image = np.zeros((50, 80, 3), dtype=np.uint8)
    image[10:20, 30:60] = 200
    region = DataRegion("probe", 30, 10, 30, 10, RegionKind.NAME)

    crop = extract_region(image, region)
    crop[:] = 0

    assert crop.shape == (10, 30, 3)
    assert int(image[15, 45, 0]) == 200
