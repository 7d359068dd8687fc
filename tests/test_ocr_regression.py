from __future__ import annotations

import json
from pathlib import Path

import pytest

from umaparse import config  # type: ignore[import-not-found]
from umaparse.services.errors import (  # type: ignore[import-not-found]
    OcrDependencyError,
    OcrEngineUnavailableError,
    TemplateLoadError,
)
from umaparse.services.pipeline import decode_image, extract_uma_data  # type: ignore[import-not-found]
from umaparse.services.skill_catalog import get_skill_catalog  # type: ignore[import-not-found]
from umaparse.services.template_matching import load_templates  # type: ignore[import-not-found]


ASSET_DIR = Path(__file__).resolve().parent / "assets" / "uma_samples"
MANIFEST_PATH = ASSET_DIR / "manifest.json"


def _load_manifest() -> list[dict[str, object]]:
    if not MANIFEST_PATH.exists():
        return []
    payload = json.loads(MANIFEST_PATH.read_text(encoding="utf-8"))
    samples = payload.get("samples") if isinstance(payload, dict) else None
    if not isinstance(samples, list):
        return []
    return [item for item in samples if isinstance(item, dict)]


SAMPLES = _load_manifest()


@pytest.mark.skipif(not SAMPLES, reason=f"missing OCR sample manifest: {MANIFEST_PATH}")
@pytest.mark.parametrize("sample", SAMPLES, ids=lambda x: str(x.get("file")))
def test_ocr_sample_reads_stats_and_aptitudes(sample: dict[str, object]) -> None:
    rel_path = sample.get("file")
    expected = sample.get("expected")
    if not isinstance(rel_path, str) or not rel_path.strip():
        pytest.fail("invalid sample entry: missing file")
    if not isinstance(expected, dict):
        pytest.fail("invalid sample entry: missing expected")

    image_path = ASSET_DIR / rel_path
    if not image_path.exists():
        pytest.fail(f"missing sample image: {image_path}")

    try:
        templates = load_templates(config.TEMPLATE_DIR)
    except TemplateLoadError as exc:
        pytest.skip(f"anchor templates unavailable: {exc}")

    try:
        result = extract_uma_data(
            image=decode_image(image_path.read_bytes()),
            templates=templates,
            skill_catalog=get_skill_catalog(config.SKILL_NAMES_PATH),
        )
    except (OcrDependencyError, OcrEngineUnavailableError) as exc:
        pytest.skip(f"OCR backend unavailable: {exc}")

    got = result.data.to_dict()
    stats = expected.get("stats")
    if isinstance(stats, dict):
        assert got["stats"] == stats, f"{rel_path} stats mismatch"
    aptitudes = expected.get("aptitudes")
    if isinstance(aptitudes, dict):
        assert got["aptitudes"] == aptitudes, f"{rel_path} aptitudes mismatch"

    # Skill slots are the noisiest region; require at least half.
    skills = expected.get("skills")
    if isinstance(skills, list) and skills:
        hits = len(set(skills) & set(got["skills"]))
        assert hits >= (len(skills) + 1) // 2, f"{rel_path} skills {got['skills']} vs {skills}"
