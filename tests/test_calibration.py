from __future__ import annotations

import pytest

from umaparse.services.calibration import (  # type: ignore[import-not-found]
    IDENTITY,
    CalibrationTransform,
    calibrate,
)
from umaparse.services.errors import CalibrationError  # type: ignore[import-not-found]
from umaparse.services.template_matching import TemplateMatch  # type: ignore[import-not-found]

CHANGE_ANCHOR = (852, 292)
HEADERS_ANCHOR = (38, 404)


def _match(x: float, y: float, scale: float) -> TemplateMatch:
    return TemplateMatch(x=int(x), y=int(y), scale_x=scale, scale_y=scale, confidence=0.95)


def test_unit_scale_calibration_is_pure_translation() -> None:
    transform = calibrate(
        _match(852 + 12, 292 + 8, 1.0),
        _match(38 + 12, 404 + 8, 1.0),
        first_anchor=CHANGE_ANCHOR,
        second_anchor=HEADERS_ANCHOR,
    )

    assert transform == CalibrationTransform(scale_x=1.0, scale_y=1.0, offset_x=12.0, offset_y=8.0)


def test_scales_and_offsets_are_averaged_per_anchor() -> None:
    # change at scale 1.0 offset (12, 8); headers at scale 1.2 offset (20, 10)
    first = _match(864, 300, 1.0)
    second = _match(38 * 1.2 + 20, 404 * 1.2 + 10, 1.2)

    transform = calibrate(
        first,
        second,
        first_anchor=CHANGE_ANCHOR,
        second_anchor=HEADERS_ANCHOR,
    )

    assert transform.scale_x == pytest.approx(1.1)
    assert transform.scale_y == pytest.approx(1.1)
    # second.x is truncated to int, so allow for the lost fraction
    assert transform.offset_x == pytest.approx(16.0, abs=0.5)
    assert transform.offset_y == pytest.approx(9.0, abs=0.5)


@pytest.mark.parametrize("missing", ["first", "second", "both"])
def test_missing_anchor_raises(missing: str) -> None:
    found = _match(864, 300, 1.0)
    first = None if missing in ("first", "both") else found
    second = None if missing in ("second", "both") else found

    with pytest.raises(CalibrationError, match="anchor not found"):
        calibrate(first, second, first_anchor=CHANGE_ANCHOR, second_anchor=HEADERS_ANCHOR)


def test_map_point_and_size_round_to_pixels() -> None:
    transform = CalibrationTransform(scale_x=0.5, scale_y=0.5, offset_x=10.2, offset_y=-3.9)

    assert transform.map_point(101, 51) == (61, 22)
    assert transform.map_size(107, 55) == (54, 28)
    assert IDENTITY.map_point(852, 292) == (852, 292)
