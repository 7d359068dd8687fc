import asyncio
import logging
import threading
import time
from typing import Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import config
from .services.derivation import build_horse_state, find_matching_uma
from .services.errors import (
    CalibrationError,
    CatalogError,
    ExtractionCancelledError,
    ExtractionInputError,
    OcrDependencyError,
    OcrEngineUnavailableError,
    TemplateLoadError,
    UmaParseError,
)
from .services.ocr_engine import inspect_ocr_runtime
from .services.pipeline import (
    ExtractionOptions,
    decode_image,
    extract_uma_data,
    extract_uma_data_fulltext,
)
from .services.roster_catalog import RosterCatalog, get_roster_catalog
from .services.skill_catalog import get_skill_catalog
from .services.skill_resolver import SkillMatchConfig, resolve_skill_matches
from .services.template_matching import get_templates


class CacheControlStaticFiles(StaticFiles):
    async def get_response(self, path: str, scope: dict[str, object]):  # type: ignore[override]
        response = await super().get_response(path, scope)
        if response.status_code in (200, 304):
            response.headers["Cache-Control"] = "public, max-age=86400"
        return response


app = FastAPI(title="Uma Parse API")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("umaparse.main")


def _ocr_error(
    *,
    status_code: int,
    code: str,
    message: str,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": {
                "code": code,
                "message": message,
            },
        },
    )


def _skill_config() -> SkillMatchConfig:
    return SkillMatchConfig(
        threshold=config.SKILL_MATCH_THRESHOLD,
        exact_tier_bonus=config.TIER_EXACT_BONUS,
        compatible_tier_bonus=config.TIER_COMPATIBLE_BONUS,
        tier_mismatch_penalty=config.TIER_MISMATCH_PENALTY,
    )


def _extraction_options() -> ExtractionOptions:
    return ExtractionOptions(
        match_threshold=config.TEMPLATE_MATCH_THRESHOLD,
        search_steps=config.SCALE_SEARCH_STEPS,
        skill_config=_skill_config(),
        ocr_workers=config.OCR_WORKERS,
    )


def _optional_roster() -> RosterCatalog | None:
    try:
        return get_roster_catalog(config.ROSTER_PATH)
    except CatalogError as exc:
        logger.warning("roster catalog unavailable, outfit ids disabled: %s", exc)
        return None


config.STATIC_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/static", CacheControlStaticFiles(directory=str(config.STATIC_DIR)), name="static")


@app.middleware("http")
async def request_log_middleware(request: Request, call_next):
    started = time.perf_counter()
    method = request.method
    path = request.url.path
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.exception(
            "request failed method=%s path=%s duration_ms=%.2f",
            method,
            path,
            elapsed_ms,
        )
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        method,
        path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.on_event("startup")
def _log_startup_config() -> None:
    logger.info(
        "startup config host=%s port=%s version=%s commit=%s",
        config.APP_HOST,
        config.APP_PORT,
        config.APP_VERSION,
        config.APP_COMMIT,
    )
    logger.info(
        "startup config ocr_max_upload_mb=%.2f ocr_timeout_seconds=%.2f ocr_workers=%d",
        config.OCR_MAX_UPLOAD_MB,
        config.OCR_TIMEOUT_SECONDS,
        config.OCR_WORKERS,
    )
    logger.info(
        "startup config template_dir=%s data_dir=%s match_threshold=%.2f skill_threshold=%.2f",
        config.TEMPLATE_DIR,
        config.DATA_DIR,
        config.TEMPLATE_MATCH_THRESHOLD,
        config.SKILL_MATCH_THRESHOLD,
    )
    try:
        get_templates(config.TEMPLATE_DIR)
    except (TemplateLoadError, OcrDependencyError) as exc:
        logger.warning(
            "anchor templates not loaded, mode=template will answer 503 until "
            "tools/build_templates.py populates %s: %s",
            config.TEMPLATE_DIR,
            exc,
        )


@app.get("/health")
def health() -> dict[str, object]:
    return {"ok": True, "version": config.APP_VERSION}


@app.get("/api/ocr/runtime")
def ocr_runtime() -> dict[str, object]:
    return inspect_ocr_runtime()


@app.post("/api/ocr/uma", response_model=None)
async def ocr_uma(
    request: Request,
    mode: Literal["template", "fulltext"] = Query(default="template"),
) -> object:
    content_type = (request.headers.get("content-type") or "").lower()
    if "multipart/form-data" not in content_type:
        return _ocr_error(
            status_code=400,
            code="INVALID_CONTENT_TYPE",
            message="multipart/form-data with 'image' field is required",
        )

    content_length_raw = (request.headers.get("content-length") or "").strip()
    if content_length_raw:
        try:
            content_length = int(content_length_raw)
            if content_length > config.OCR_MAX_UPLOAD_BYTES:
                return _ocr_error(
                    status_code=413,
                    code="FILE_TOO_LARGE",
                    message=f"image payload exceeds {config.OCR_MAX_UPLOAD_MB:.2f} MB limit",
                )
        except ValueError:
            pass

    try:
        form = await request.form()
    except Exception:  # noqa: BLE001
        logger.exception("ocr form parse failed")
        return _ocr_error(
            status_code=503,
            code="MULTIPART_UNAVAILABLE",
            message=(
                "multipart parser unavailable. Install dependency: "
                "pip install python-multipart"
            ),
        )

    image = form.get("image")
    if image is None:
        return _ocr_error(
            status_code=400,
            code="MISSING_IMAGE",
            message="image field is required",
        )

    image_content_type = str(getattr(image, "content_type", "") or "").lower()
    if image_content_type and not image_content_type.startswith("image/"):
        return _ocr_error(
            status_code=400,
            code="INVALID_IMAGE_TYPE",
            message="image file is required",
        )

    if hasattr(image, "read"):
        payload = await image.read()
    else:
        payload = str(image).encode("utf-8")
    if not payload:
        return _ocr_error(
            status_code=400,
            code="EMPTY_IMAGE",
            message="empty image payload",
        )
    if len(payload) > config.OCR_MAX_UPLOAD_BYTES:
        return _ocr_error(
            status_code=413,
            code="FILE_TOO_LARGE",
            message=f"image payload exceeds {config.OCR_MAX_UPLOAD_MB:.2f} MB limit",
        )

    try:
        skill_catalog = get_skill_catalog(config.SKILL_NAMES_PATH)
        templates = get_templates(config.TEMPLATE_DIR) if mode == "template" else {}
    except CatalogError as exc:
        logger.exception("skill catalog unavailable")
        return _ocr_error(status_code=503, code="CATALOG_UNAVAILABLE", message=str(exc))
    except TemplateLoadError as exc:
        logger.exception("anchor templates unavailable")
        return _ocr_error(status_code=503, code="TEMPLATES_UNAVAILABLE", message=str(exc))
    except (OcrDependencyError, OcrEngineUnavailableError) as exc:
        return _ocr_error(status_code=503, code="OCR_ENGINE_UNAVAILABLE", message=str(exc))

    options = _extraction_options()
    cancel_event = threading.Event()

    def _run():
        source = decode_image(payload)
        if mode == "fulltext":
            return extract_uma_data_fulltext(
                image=source,
                skill_catalog=skill_catalog,
                options=options,
                cancel_event=cancel_event,
            )
        return extract_uma_data(
            image=source,
            templates=templates,
            skill_catalog=skill_catalog,
            options=options,
            cancel_event=cancel_event,
        )

    try:
        result = await asyncio.wait_for(
            asyncio.to_thread(_run),
            timeout=config.OCR_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        cancel_event.set()
        logger.exception("ocr timed out mode=%s", mode)
        return _ocr_error(
            status_code=504,
            code="OCR_TIMEOUT",
            message=f"ocr exceeded timeout {config.OCR_TIMEOUT_SECONDS:.2f}s",
        )
    except ExtractionInputError as exc:
        return _ocr_error(
            status_code=400,
            code="OCR_INPUT_ERROR",
            message=str(exc),
        )
    except CalibrationError as exc:
        logger.warning("calibration failed: %s", exc)
        return _ocr_error(
            status_code=422,
            code="CALIBRATION_FAILED",
            message=str(exc),
        )
    except ExtractionCancelledError as exc:
        return _ocr_error(
            status_code=503,
            code="OCR_CANCELLED",
            message=str(exc),
        )
    except (OcrDependencyError, OcrEngineUnavailableError) as exc:
        logger.exception("ocr dependency unavailable")
        return _ocr_error(
            status_code=503,
            code="OCR_ENGINE_UNAVAILABLE",
            message=str(exc),
        )
    except UmaParseError as exc:
        logger.exception("ocr processing failed")
        return _ocr_error(
            status_code=500,
            code="OCR_PROCESSING_ERROR",
            message=str(exc),
        )
    except Exception:
        logger.exception("unexpected ocr failure")
        return _ocr_error(
            status_code=500,
            code="OCR_UNKNOWN_ERROR",
            message="unexpected OCR failure",
        )

    horse = build_horse_state(result.data, _optional_roster())
    return {
        "ok": True,
        "mode": mode,
        "data": result.data.to_dict(),
        "horse": horse.to_dict(),
    }


@app.post("/api/skills/resolve")
async def resolve_skills_api(payload: dict[str, object]) -> dict[str, object]:
    raw_lines = payload.get("lines")
    if not isinstance(raw_lines, list):
        raise HTTPException(status_code=400, detail="'lines' must be a list")

    lines: list[str] = [str(item or "").strip() for item in raw_lines]
    if not lines:
        return {"resolved": [], "skills": []}

    try:
        catalog = get_skill_catalog(config.SKILL_NAMES_PATH)
    except CatalogError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    matches = resolve_skill_matches(lines, catalog, _skill_config())
    resolved: list[dict[str, object]] = []
    for line, match in zip(lines, matches):
        resolved.append(
            {
                "line": line,
                "skillId": match.skill_id if match else None,
                "name": match.name if match else None,
                "score": round(match.score, 4) if match else None,
            }
        )
    return {
        "resolved": resolved,
        "skills": [match.skill_id for match in matches if match is not None],
    }


@app.post("/api/umas/resolve")
async def resolve_uma_api(payload: dict[str, object]) -> dict[str, object]:
    outfit = str(payload.get("outfit") or "").strip()
    name = str(payload.get("name") or "").strip()
    if not outfit and not name:
        raise HTTPException(status_code=400, detail="'outfit' or 'name' is required")

    try:
        roster = get_roster_catalog(config.ROSTER_PATH)
    except CatalogError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return {"outfitId": find_matching_uma(outfit, name, roster)}
