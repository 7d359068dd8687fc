from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from umaparse import config  # noqa: E402
from umaparse.services.errors import (  # noqa: E402
    CalibrationError,
    OcrDependencyError,
    OcrEngineUnavailableError,
)
from umaparse.services.pipeline import decode_image, extract_uma_data  # noqa: E402
from umaparse.services.skill_catalog import get_skill_catalog  # noqa: E402
from umaparse.services.template_matching import load_templates  # noqa: E402


DEFAULT_MANIFEST = BACKEND_DIR / "tests" / "assets" / "uma_samples" / "manifest.json"
DEFAULT_ASSETS_DIR = BACKEND_DIR / "tests" / "assets" / "uma_samples"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute OCR success stats for screenshot dataset.")
    parser.add_argument("--manifest", type=Path, default=DEFAULT_MANIFEST)
    parser.add_argument("--assets-dir", type=Path, default=DEFAULT_ASSETS_DIR)
    parser.add_argument(
        "--min-rate",
        type=float,
        default=0.8,
        help="minimum fraction of correct fields for an image to pass",
    )
    return parser.parse_args()


def _load_manifest(path: Path) -> list[dict[str, object]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    samples = payload.get("samples") if isinstance(payload, dict) else None
    if not isinstance(samples, list):
        return []
    return [item for item in samples if isinstance(item, dict)]


def _flatten(data: dict[str, object]) -> dict[str, str]:
    """``{"stats": {"speed": 1012}}`` -> ``{"stats.speed": "1012"}``."""
    flat: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in _flatten(value).items():
                flat[f"{key}.{sub_key}"] = sub_value
        elif isinstance(value, list):
            flat[key] = ",".join(str(item) for item in value)
        else:
            flat[key] = str(value)
    return flat


def main() -> None:
    args = parse_args()
    manifest_path = args.manifest.resolve()
    assets_dir = args.assets_dir.resolve()

    if not manifest_path.exists():
        raise FileNotFoundError(f"manifest not found: {manifest_path}")

    samples = _load_manifest(manifest_path)
    if not samples:
        raise RuntimeError("no samples found in manifest")

    templates = load_templates(config.TEMPLATE_DIR)
    skill_catalog = get_skill_catalog(config.SKILL_NAMES_PATH)

    ok_images = 0
    total_images = 0
    total_hits = 0
    total_fields = 0
    calibration_failures = 0

    for sample in samples:
        rel = sample.get("file")
        expected = sample.get("expected")
        if not isinstance(rel, str) or not isinstance(expected, dict):
            continue

        image_path = assets_dir / rel
        if not image_path.exists():
            print(f"[SKIP] missing file: {image_path}")
            continue

        total_images += 1
        expected_flat = _flatten(expected)
        try:
            result = extract_uma_data(
                image=decode_image(image_path.read_bytes()),
                templates=templates,
                skill_catalog=skill_catalog,
            )
        except (OcrDependencyError, OcrEngineUnavailableError) as exc:
            print(f"[ERROR] OCR backend unavailable: {exc}")
            return
        except CalibrationError as exc:
            calibration_failures += 1
            total_fields += len(expected_flat)
            print(f"[FAIL] {rel} calibration: {exc}")
            continue

        got = _flatten(result.data.to_dict())
        hits = 0
        misses: list[str] = []
        for key, exp in expected_flat.items():
            total_fields += 1
            if got.get(key, "") == exp:
                hits += 1
                total_hits += 1
            else:
                misses.append(f"{key}={got.get(key, '')!r} (expected {exp!r})")

        rate = hits / len(expected_flat) if expected_flat else 0.0
        image_ok = rate >= args.min_rate
        if image_ok:
            ok_images += 1
        print(f"[{'PASS' if image_ok else 'FAIL'}] {rel} hits={hits}/{len(expected_flat)}")
        for miss in misses:
            print(f"  {miss}")

    image_rate = (ok_images / total_images) if total_images else 0.0
    field_rate = (total_hits / total_fields) if total_fields else 0.0
    print("\n=== OCR Success Stats ===")
    print(f"images_passed: {ok_images}/{total_images} ({image_rate:.2%})")
    print(f"fields_correct: {total_hits}/{total_fields} ({field_rate:.2%})")
    print(f"calibration_failures: {calibration_failures}")


if __name__ == "__main__":
    main()
