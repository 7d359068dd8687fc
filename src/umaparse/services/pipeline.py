from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Callable

import numpy as np

from .calibration import CalibrationTransform, calibrate
from .errors import (
    ExtractionCancelledError,
    ExtractionInputError,
    OcrDependencyError,
    OcrEngineUnavailableError,
)
from .field_parser import parse_extracted_fields
from .models import ParsedUmaData
from .ocr_engine import RecognizeText, recognize_page, recognize_text as default_recognize_text
from .regions import DataRegion, extract_region, layout_regions
from .skill_catalog import SkillCatalog
from .skill_resolver import DEFAULT_CONFIG, SkillMatch, SkillMatchConfig, resolve_skill_matches
from .template_matching import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_SEARCH_STEPS,
    Template,
    TemplateMatch,
    match_templates,
    require_cv2,
)
from .text_parser import parse_uma_text

logger = logging.getLogger("umaparse.pipeline")

ProgressCallback = Callable[[str, int], None]

FIRST_ANCHOR = "change"
SECOND_ANCHOR = "headers"


@dataclass(frozen=True)
class ExtractionOptions:
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    search_steps: int = DEFAULT_SEARCH_STEPS
    skill_config: SkillMatchConfig = DEFAULT_CONFIG
    ocr_workers: int = 4


@dataclass
class ExtractionResult:
    data: ParsedUmaData
    fields: dict[str, str] = field(default_factory=dict)
    regions: list[DataRegion] = field(default_factory=list)
    matches: dict[str, TemplateMatch | None] = field(default_factory=dict)
    transform: CalibrationTransform | None = None
    skill_matches: list[SkillMatch | None] = field(default_factory=list)


class _Progress:
    """Forwards stage updates, never letting the percentage go backwards."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self._percent = 0
        self._lock = threading.Lock()

    def __call__(self, stage: str, percent: int) -> None:
        with self._lock:
            self._percent = max(self._percent, min(100, int(percent)))
            current = self._percent
        logger.debug("progress stage=%s percent=%d", stage, current)
        if self._callback is not None:
            self._callback(stage, current)


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ExtractionCancelledError("extraction cancelled")


def decode_image(image_bytes: bytes) -> np.ndarray:
    if not image_bytes:
        raise ExtractionInputError("empty image bytes")
    cv2 = require_cv2()
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    image = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if image is None:
        raise ExtractionInputError("failed to decode image bytes")
    h, w = image.shape[:2]
    if w <= 0 or h <= 0:
        raise ExtractionInputError("invalid image size")
    return image


def _recognize_region(
    image: np.ndarray,
    region: DataRegion,
    recognize_text: RecognizeText,
    cancel_event: threading.Event | None,
) -> str:
    _check_cancelled(cancel_event)
    crop = extract_region(image, region)
    try:
        text = recognize_text(crop)
    except (OcrDependencyError, OcrEngineUnavailableError):
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning("recognition failed region=%s: %s", region.name, exc)
        return ""
    return (text or "").strip()


def recognize_regions(
    image: np.ndarray,
    regions: list[DataRegion],
    recognize_text: RecognizeText,
    *,
    workers: int = 4,
    cancel_event: threading.Event | None = None,
    progress: ProgressCallback | None = None,
) -> dict[str, str]:
    """OCR every region on a worker pool; regions are independent."""
    fields: dict[str, str] = {}
    if not regions:
        return fields

    total = len(regions)
    with ThreadPoolExecutor(
        max_workers=max(1, min(workers, total)), thread_name_prefix="region-ocr"
    ) as pool:
        pending: dict[Future[str], DataRegion] = {
            pool.submit(_recognize_region, image, region, recognize_text, cancel_event): region
            for region in regions
        }
        try:
            while pending:
                done, _ = wait(pending, timeout=0.2, return_when=FIRST_COMPLETED)
                _check_cancelled(cancel_event)
                for future in done:
                    region = pending.pop(future)
                    fields[region.name] = future.result()
                    logger.debug("extracted region=%s text=%r", region.name, fields[region.name])
                    if progress is not None:
                        progress("extracting regions", 45 + int(45 * len(fields) / total))
        except BaseException:
            for future in pending:
                future.cancel()
            raise
    return fields


def extract_uma_data(
    *,
    image: np.ndarray,
    templates: dict[str, Template],
    skill_catalog: SkillCatalog,
    recognize_text: RecognizeText | None = None,
    options: ExtractionOptions | None = None,
    progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> ExtractionResult:
    opts = options or ExtractionOptions()
    recognizer = recognize_text or default_recognize_text
    report = _Progress(progress)
    started = time.perf_counter()

    height, width = image.shape[:2]
    logger.info("extraction started width=%d height=%d", width, height)

    report("finding template matches", 10)
    _check_cancelled(cancel_event)
    matches = match_templates(
        image,
        templates,
        threshold=opts.match_threshold,
        steps=opts.search_steps,
    )
    _check_cancelled(cancel_event)

    report("calibrating", 40)
    first = templates[FIRST_ANCHOR]
    second = templates[SECOND_ANCHOR]
    transform = calibrate(
        matches.get(FIRST_ANCHOR),
        matches.get(SECOND_ANCHOR),
        first_anchor=(first.anchor_x, first.anchor_y),
        second_anchor=(second.anchor_x, second.anchor_y),
    )

    regions = layout_regions(width, height, transform)
    report("extracting regions", 45)
    fields = recognize_regions(
        image,
        regions,
        recognizer,
        workers=opts.ocr_workers,
        cancel_event=cancel_event,
        progress=report,
    )

    report("parsing fields", 92)
    parsed = parse_extracted_fields(fields)

    report("resolving skills", 95)
    _check_cancelled(cancel_event)
    skill_matches = resolve_skill_matches(parsed.raw_skills, skill_catalog, opts.skill_config)
    data = replace(
        parsed,
        skills=tuple(match.skill_id for match in skill_matches if match is not None),
    )

    report("done", 100)
    logger.info(
        "extraction finished regions=%d skills=%d/%d duration_ms=%.2f",
        len(regions),
        len(data.skills),
        len(parsed.raw_skills),
        (time.perf_counter() - started) * 1000.0,
    )
    return ExtractionResult(
        data=data,
        fields=fields,
        regions=regions,
        matches=matches,
        transform=transform,
        skill_matches=skill_matches,
    )


def extract_uma_data_fulltext(
    *,
    image: np.ndarray,
    skill_catalog: SkillCatalog,
    recognize_text: RecognizeText | None = None,
    options: ExtractionOptions | None = None,
    progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> ExtractionResult:
    opts = options or ExtractionOptions()
    recognizer = recognize_text or recognize_page
    report = _Progress(progress)

    report("recognizing text", 10)
    _check_cancelled(cancel_event)
    text = recognizer(image)

    report("parsing text", 80)
    _check_cancelled(cancel_event)
    parsed = parse_uma_text(text)
    skill_matches = resolve_skill_matches(parsed.raw_skills, skill_catalog, opts.skill_config)
    data = replace(
        parsed,
        skills=tuple(match.skill_id for match in skill_matches if match is not None),
    )

    report("done", 100)
    return ExtractionResult(data=data, fields={"fulltext": text}, skill_matches=skill_matches)
