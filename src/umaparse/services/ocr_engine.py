from __future__ import annotations

import logging
import shutil
import subprocess
from threading import Lock
from typing import Any, Callable

import numpy as np

from .errors import OcrDependencyError, OcrEngineUnavailableError
from .template_matching import require_cv2, to_gray

logger = logging.getLogger("umaparse.ocr")

RecognizeText = Callable[[np.ndarray], str]

TESSERACT_LANG = "eng"
TESSERACT_LINE_CONFIG = "--oem 1 --psm 7"
TESSERACT_PAGE_CONFIG = "--oem 1 --psm 6"
_MIN_OCR_HEIGHT = 48

_paddle_lock = Lock()
_paddle_infer_lock = Lock()
_paddle_ocr_singleton: Any = None
_paddle_unavailable = False


def preprocess_region(image: np.ndarray) -> np.ndarray:
    """Gray, upscale small crops and binarize to dark text on white."""
    cv2 = require_cv2()
    gray = to_gray(cv2, image)
    h, w = gray.shape[:2]
    if h <= 0 or w <= 0:
        return gray
    if h < _MIN_OCR_HEIGHT:
        factor = _MIN_OCR_HEIGHT / float(h)
        gray = cv2.resize(
            gray,
            (max(1, int(w * factor)), _MIN_OCR_HEIGHT),
            interpolation=cv2.INTER_CUBIC,
        )
    clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
    gray = clahe.apply(gray)
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    # White background + black text for Tesseract readability.
    if np.mean(binary) < 127:
        binary = 255 - binary
    return binary


def _ocr_with_tesseract(image: np.ndarray, config: str, separator: str = " ") -> str:
    try:
        import pytesseract  # type: ignore
        from pytesseract import TesseractNotFoundError  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("pytesseract is required") from exc

    try:
        text = pytesseract.image_to_string(
            image,
            lang=TESSERACT_LANG,
            config=config,
        )
    except TesseractNotFoundError as exc:
        raise OcrEngineUnavailableError(
            "pytesseract failed: tesseract is not installed or not in PATH"
        ) from exc
    lines = [" ".join(line.split()) for line in str(text or "").splitlines()]
    return separator.join(line for line in lines if line)


def _get_paddle() -> Any:
    global _paddle_ocr_singleton, _paddle_unavailable
    with _paddle_lock:
        if _paddle_ocr_singleton is not None or _paddle_unavailable:
            return _paddle_ocr_singleton
        try:
            from paddleocr import PaddleOCR  # type: ignore
        except Exception:  # noqa: BLE001
            _paddle_unavailable = True
            return None
        try:
            _paddle_ocr_singleton = PaddleOCR(use_angle_cls=False, lang="en", show_log=False)
        except Exception as exc:  # noqa: BLE001
            logger.warning("paddleocr init failed, falling back to tesseract: %s", exc)
            _paddle_unavailable = True
            return None
        return _paddle_ocr_singleton


def _ocr_with_paddle(image: np.ndarray, separator: str = " ") -> str | None:
    engine = _get_paddle()
    if engine is None:
        return None

    # One predictor is shared by the region workers and is not thread-safe.
    try:
        with _paddle_infer_lock:
            result = engine.ocr(image, cls=False)
    except Exception as exc:  # noqa: BLE001
        logger.warning("paddleocr inference failed, falling back to tesseract: %s", exc)
        return None

    parts: list[str] = []
    for block in result or []:
        for line in block or []:
            if not isinstance(line, (list, tuple)) or len(line) < 2:
                continue
            text_conf = line[1]
            if not isinstance(text_conf, (list, tuple)) or not text_conf:
                continue
            text = str(text_conf[0] or "").strip()
            if text:
                parts.append(text)
    return separator.join(parts)


def recognize_text(image: np.ndarray) -> str:
    """Default recognizer: PaddleOCR when installed, Tesseract otherwise."""
    processed = preprocess_region(image)
    text = _ocr_with_paddle(processed)
    if text:
        return text
    return _ocr_with_tesseract(processed, TESSERACT_LINE_CONFIG)


def recognize_page(image: np.ndarray) -> str:
    """Whole-screen recognition, one recognized line per output line."""
    processed = preprocess_region(image)
    text = _ocr_with_paddle(processed, separator="\n")
    if text:
        return text
    return _ocr_with_tesseract(processed, TESSERACT_PAGE_CONFIG, separator="\n")


def inspect_ocr_runtime() -> dict[str, object]:
    status: dict[str, object] = {
        "opencv": False,
        "pytesseract": False,
        "paddleocr": False,
        "tesseract_cmd": "",
        "tesseract_version": "",
        "tesseract_langs": [],
        "errors": [],
    }

    errors: list[str] = []
    try:
        require_cv2()
        status["opencv"] = True
    except Exception as exc:  # noqa: BLE001
        errors.append(f"opencv unavailable: {exc}")

    try:
        import pytesseract  # type: ignore

        status["pytesseract"] = True
        tesseract_cmd = shutil.which("tesseract") or ""
        status["tesseract_cmd"] = tesseract_cmd
        if not tesseract_cmd:
            errors.append("tesseract binary not found in PATH")
        else:
            try:
                proc = subprocess.run(
                    [tesseract_cmd, "--version"],
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=5,
                )
                version_line = (proc.stdout or proc.stderr or "").splitlines()
                status["tesseract_version"] = version_line[0] if version_line else ""
            except Exception as exc:  # noqa: BLE001
                errors.append(f"failed to read tesseract version: {exc}")

            try:
                langs = pytesseract.get_languages(config="")
                status["tesseract_langs"] = list(langs)
                if TESSERACT_LANG not in langs:
                    errors.append(f"{TESSERACT_LANG} language pack missing")
            except Exception as exc:  # noqa: BLE001
                errors.append(f"failed to query tesseract languages: {exc}")
    except Exception as exc:  # noqa: BLE001
        errors.append(f"pytesseract unavailable: {exc}")

    try:
        from paddleocr import PaddleOCR  # type: ignore # noqa: F401

        status["paddleocr"] = True
    except Exception:  # noqa: BLE001
        status["paddleocr"] = False

    status["errors"] = errors
    return status
