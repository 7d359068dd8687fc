from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from umaparse import config  # noqa: E402
from umaparse.services.derivation import build_horse_state  # noqa: E402
from umaparse.services.errors import CatalogError, UmaParseError  # noqa: E402
from umaparse.services.pipeline import (  # noqa: E402
    ExtractionResult,
    decode_image,
    extract_uma_data,
)
from umaparse.services.regions import RegionKind, extract_region  # noqa: E402
from umaparse.services.roster_catalog import get_roster_catalog  # noqa: E402
from umaparse.services.skill_catalog import get_skill_catalog  # noqa: E402
from umaparse.services.template_matching import load_templates, require_cv2  # noqa: E402

# BGR outline colour per region kind.
KIND_COLORS = {
    RegionKind.NAME: (255, 128, 0),
    RegionKind.STATS: (0, 200, 0),
    RegionKind.APTITUDES: (0, 200, 255),
    RegionKind.SKILLS: (255, 0, 255),
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Debug template calibration and region OCR for an uma detail screenshot."
    )
    parser.add_argument("image", type=Path, help="Path to screenshot image")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=BACKEND_DIR / ".cache" / "ocr_debug",
        help="Directory for debug outputs",
    )
    parser.add_argument("--template-dir", type=Path, default=config.TEMPLATE_DIR)
    parser.add_argument("--verbose", action="store_true", help="log scale search steps")
    return parser.parse_args()


def _save_image(path: Path, image: object) -> None:
    cv2 = require_cv2()
    path.parent.mkdir(parents=True, exist_ok=True)
    ok = cv2.imwrite(str(path), image)
    if not ok:
        raise RuntimeError(f"failed to write image: {path}")


def _draw_overlay(source: object, result: ExtractionResult) -> object:
    cv2 = require_cv2()
    overlay = source.copy()  # type: ignore[attr-defined]
    for region in result.regions:
        color = KIND_COLORS.get(region.kind, (0, 0, 255))
        cv2.rectangle(
            overlay,
            (region.x, region.y),
            (region.x + region.width, region.y + region.height),
            color,
            2,
        )
        cv2.putText(
            overlay,
            region.name,
            (region.x, max(10, region.y - 4)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.4,
            color,
            1,
        )
    return overlay


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    image_path = args.image.resolve()
    output_dir = args.output_dir.resolve()

    if not image_path.exists():
        raise FileNotFoundError(f"image not found: {image_path}")

    source = decode_image(image_path.read_bytes())
    templates = load_templates(args.template_dir.resolve())
    skill_catalog = get_skill_catalog(config.SKILL_NAMES_PATH)

    result = extract_uma_data(
        image=source,
        templates=templates,
        skill_catalog=skill_catalog,
        progress=lambda stage, percent: print(f"[{percent:3d}%] {stage}"),
    )

    _save_image(output_dir / "debug_overlay.jpg", _draw_overlay(source, result))
    for region in result.regions:
        _save_image(output_dir / "regions" / f"{region.name}.png", extract_region(source, region))

    print("[Template matches]")
    for name, match in result.matches.items():
        if match is None:
            print(f"- {name}: not found")
        else:
            print(
                f"- {name}: x={match.x} y={match.y} scale={match.scale_x:.3f} "
                f"confidence={match.confidence:.3f}"
            )
    print("[Calibration]", result.transform)

    print("[Region text]")
    for region in result.regions:
        print(f"- {region.name}: {result.fields.get(region.name, '')!r}")

    print("[Skills]")
    for line, match in zip(result.data.raw_skills, result.skill_matches):
        if match is None:
            print(f"- {line!r}: no match")
        else:
            print(f"- {line!r}: {match.skill_id} {match.name!r} score={match.score:.3f}")

    try:
        roster = get_roster_catalog(config.ROSTER_PATH)
    except CatalogError as exc:
        print(f"[WARN] roster unavailable: {exc}")
        roster = None
    horse = build_horse_state(result.data, roster)

    print("[Output files]", output_dir)
    print(
        json.dumps(
            {"data": result.data.to_dict(), "horse": horse.to_dict()},
            ensure_ascii=False,
            indent=2,
        )
    )


if __name__ == "__main__":
    try:
        main()
    except UmaParseError as exc:
        print(f"[ERROR] {exc}")
        raise SystemExit(1) from exc
