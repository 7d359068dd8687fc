from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import CalibrationError
from .template_matching import TemplateMatch

logger = logging.getLogger("umaparse.calibration")


@dataclass(frozen=True)
class CalibrationTransform:
    """Uniform scale + translation from reference layout to source pixels."""

    scale_x: float
    scale_y: float
    offset_x: float
    offset_y: float

    def map_point(self, x: float, y: float) -> tuple[int, int]:
        return (
            int(round(x * self.scale_x + self.offset_x)),
            int(round(y * self.scale_y + self.offset_y)),
        )

    def map_size(self, width: float, height: float) -> tuple[int, int]:
        return int(round(width * self.scale_x)), int(round(height * self.scale_y))


IDENTITY = CalibrationTransform(scale_x=1.0, scale_y=1.0, offset_x=0.0, offset_y=0.0)


def calibrate(
    first: TemplateMatch | None,
    second: TemplateMatch | None,
    *,
    first_anchor: tuple[float, float],
    second_anchor: tuple[float, float],
) -> CalibrationTransform:
    if first is None or second is None:
        missing = [
            label
            for label, match in (("first", first), ("second", second))
            if match is None
        ]
        raise CalibrationError(
            f"could not locate known landmarks ({', '.join(missing)} anchor not found)"
        )

    scale_x = (first.scale_x + second.scale_x) / 2.0
    scale_y = (first.scale_y + second.scale_y) / 2.0

    # Each anchor's offset uses its own detected scale.
    first_offset_x = first.x - first_anchor[0] * first.scale_x
    first_offset_y = first.y - first_anchor[1] * first.scale_y
    second_offset_x = second.x - second_anchor[0] * second.scale_x
    second_offset_y = second.y - second_anchor[1] * second.scale_y

    transform = CalibrationTransform(
        scale_x=scale_x,
        scale_y=scale_y,
        offset_x=(first_offset_x + second_offset_x) / 2.0,
        offset_y=(first_offset_y + second_offset_y) / 2.0,
    )
    logger.info(
        "calibration scale_x=%.3f scale_y=%.3f offset_x=%.1f offset_y=%.1f",
        transform.scale_x,
        transform.scale_y,
        transform.offset_x,
        transform.offset_y,
    )
    return transform
