from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

import numpy as np

from .errors import OcrDependencyError, TemplateLoadError

logger = logging.getLogger("umaparse.matching")

DEFAULT_MIN_SCALE = 0.3
DEFAULT_MAX_SCALE = 2.0
DEFAULT_SEARCH_STEPS = 10
DEFAULT_MATCH_THRESHOLD = 0.7

# Reference-image coordinates of each anchor's top-left corner.
TEMPLATE_ANCHORS: dict[str, tuple[int, int]] = {
    "change": (852, 292),
    "headers": (38, 404),
}
_TEMPLATE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")


def require_cv2() -> Any:
    try:
        import cv2  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("opencv-python-headless is required") from exc
    return cv2


@dataclass(frozen=True)
class Template:
    name: str
    image: np.ndarray
    anchor_x: int
    anchor_y: int

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass(frozen=True)
class ScaleScore:
    scale: float
    confidence: float
    location: tuple[int, int]


@dataclass(frozen=True)
class TemplateMatch:
    x: int
    y: int
    scale_x: float
    scale_y: float
    confidence: float


@dataclass(frozen=True)
class ScaleInterval:
    low: float
    high: float

    def probes(self) -> tuple[float, float, float]:
        span = self.high - self.low
        return (
            self.low + span * 0.25,
            (self.low + self.high) / 2.0,
            self.low + span * 0.75,
        )

    def narrow(self, low_conf: float, mid_conf: float, high_conf: float) -> ScaleInterval:
        q1, mid, q3 = self.probes()
        if mid_conf >= low_conf and mid_conf >= high_conf:
            return ScaleInterval(q1, q3)
        if low_conf >= high_conf:
            return ScaleInterval(self.low, mid)
        return ScaleInterval(mid, self.high)


def to_gray(cv2: Any, image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def score_at_scale(
    source: np.ndarray,
    template: np.ndarray,
    scale: float,
    method: int | None = None,
) -> ScaleScore:
    """Correlate ``template`` resized by ``scale`` against the whole ``source``.

    Confidence is ``maxVal`` of the response surface, or ``1 - minVal`` for the
    squared-difference metrics. Scales that make the template larger than the
    source (or collapse it to nothing) score 0.
    """
    cv2 = require_cv2()
    if method is None:
        method = cv2.TM_CCOEFF_NORMED

    src_h, src_w = source.shape[:2]
    tpl_h, tpl_w = template.shape[:2]
    scaled_w = int(round(tpl_w * scale))
    scaled_h = int(round(tpl_h * scale))
    if scaled_w < 1 or scaled_h < 1 or scaled_w > src_w or scaled_h > src_h:
        return ScaleScore(scale=scale, confidence=0.0, location=(0, 0))

    source_gray = to_gray(cv2, source)
    scaled = cv2.resize(
        to_gray(cv2, template),
        (scaled_w, scaled_h),
        interpolation=cv2.INTER_LINEAR,
    )
    response = cv2.matchTemplate(source_gray, scaled, method)
    min_val, max_val, min_loc, max_loc = cv2.minMaxLoc(response)

    if method in (cv2.TM_SQDIFF, cv2.TM_SQDIFF_NORMED):
        confidence = 1.0 - float(min_val)
        location = min_loc
    else:
        confidence = float(max_val)
        location = max_loc

    if not np.isfinite(confidence):
        confidence = 0.0
    return ScaleScore(
        scale=scale,
        confidence=confidence,
        location=(int(location[0]), int(location[1])),
    )


def search_scale(
    source: np.ndarray,
    template: np.ndarray,
    *,
    min_scale: float = DEFAULT_MIN_SCALE,
    max_scale: float = DEFAULT_MAX_SCALE,
    steps: int = DEFAULT_SEARCH_STEPS,
    method: int | None = None,
    name: str = "template",
) -> ScaleScore:
    """Narrow ``[min_scale, max_scale]`` for a fixed number of steps.

    Every step probes the quartile, midpoint and three-quarter scales and keeps
    the sub-interval around the best probe. The returned score is the best
    probe seen over all steps, not the centre of the final interval.
    """
    # Convert once; score_at_scale passes gray input through untouched.
    cv2 = require_cv2()
    source = to_gray(cv2, source)
    template = to_gray(cv2, template)
    interval = ScaleInterval(min_scale, max_scale)
    best = ScaleScore(scale=(min_scale + max_scale) / 2.0, confidence=-1.0, location=(0, 0))

    for step in range(1, steps + 1):
        scores = [
            score_at_scale(source, template, scale, method=method)
            for scale in interval.probes()
        ]
        for score in scores:
            if score.confidence > best.confidence:
                best = score

        low, mid, high = scores
        logger.debug(
            "scale search template=%s step=%d scales=[%.3f, %.3f, %.3f] conf=[%.3f, %.3f, %.3f]",
            name,
            step,
            low.scale,
            mid.scale,
            high.scale,
            low.confidence,
            mid.confidence,
            high.confidence,
        )
        interval = interval.narrow(low.confidence, mid.confidence, high.confidence)

    return best


def find_best_template_match(
    source: np.ndarray,
    template: Template,
    *,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    steps: int = DEFAULT_SEARCH_STEPS,
    min_scale: float = DEFAULT_MIN_SCALE,
    max_scale: float = DEFAULT_MAX_SCALE,
    method: int | None = None,
) -> TemplateMatch | None:
    best = search_scale(
        source,
        template.image,
        min_scale=min_scale,
        max_scale=max_scale,
        steps=steps,
        method=method,
        name=template.name,
    )
    logger.info(
        "template search complete template=%s scale=%.3f confidence=%.3f threshold=%.2f",
        template.name,
        best.scale,
        best.confidence,
        threshold,
    )
    if best.confidence <= threshold:
        return None
    return TemplateMatch(
        x=best.location[0],
        y=best.location[1],
        scale_x=best.scale,
        scale_y=best.scale,
        confidence=best.confidence,
    )


def match_templates(
    source: np.ndarray,
    templates: dict[str, Template],
    *,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    steps: int = DEFAULT_SEARCH_STEPS,
) -> dict[str, TemplateMatch | None]:
    """Run the per-template scale searches concurrently."""
    if not templates:
        return {}
    source = to_gray(require_cv2(), source)
    with ThreadPoolExecutor(
        max_workers=len(templates), thread_name_prefix="template-search"
    ) as pool:
        futures = {
            name: pool.submit(
                find_best_template_match,
                source,
                template,
                threshold=threshold,
                steps=steps,
            )
            for name, template in templates.items()
        }
        return {name: future.result() for name, future in futures.items()}


def _find_template_file(template_dir: Path, name: str) -> Path | None:
    for suffix in _TEMPLATE_SUFFIXES:
        path = template_dir / f"{name}{suffix}"
        if path.exists():
            return path
    return None


def load_templates(template_dir: Path) -> dict[str, Template]:
    cv2 = require_cv2()
    templates: dict[str, Template] = {}
    for name, (anchor_x, anchor_y) in TEMPLATE_ANCHORS.items():
        path = _find_template_file(template_dir, name)
        if path is None:
            raise TemplateLoadError(
                f"missing anchor template '{name}' in {template_dir} (see tools/build_templates.py)"
            )
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise TemplateLoadError(f"failed to decode anchor template: {path}")
        templates[name] = Template(
            name=name,
            image=image,
            anchor_x=anchor_x,
            anchor_y=anchor_y,
        )
    logger.info("anchor templates loaded from %s: %s", template_dir, ", ".join(templates))
    return templates


_cache_lock = Lock()
_cached_templates: dict[str, dict[str, Template]] = {}


def get_templates(template_dir: Path) -> dict[str, Template]:
    key = str(template_dir)
    with _cache_lock:
        cached = _cached_templates.get(key)
        if cached is not None:
            return cached
        templates = load_templates(template_dir)
        _cached_templates[key] = templates
        return templates
