"""Crop the anchor templates out of a reference-resolution detail screenshot.

The reference screenshot must share the layout coordinates used by
``umaparse.services.regions``; each template is cut at its anchor point with
the given size.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from umaparse import config  # noqa: E402
from umaparse.services.errors import UmaParseError  # noqa: E402
from umaparse.services.pipeline import decode_image  # noqa: E402
from umaparse.services.template_matching import TEMPLATE_ANCHORS, require_cv2  # noqa: E402

DEFAULT_SIZES = {
    "change": (120, 56),
    "headers": (1004, 40),
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build anchor templates from a reference screenshot.")
    parser.add_argument("image", type=Path, help="Reference screenshot")
    parser.add_argument("--output-dir", type=Path, default=config.TEMPLATE_DIR)
    for name, (width, height) in DEFAULT_SIZES.items():
        parser.add_argument(
            f"--{name}-size",
            type=int,
            nargs=2,
            metavar=("WIDTH", "HEIGHT"),
            default=[width, height],
        )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    image_path = args.image.resolve()
    if not image_path.exists():
        raise FileNotFoundError(f"image not found: {image_path}")

    cv2 = require_cv2()
    source = decode_image(image_path.read_bytes())
    src_h, src_w = source.shape[:2]
    output_dir = args.output_dir.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    for name, (x, y) in TEMPLATE_ANCHORS.items():
        width, height = getattr(args, f"{name}_size")
        if x + width > src_w or y + height > src_h:
            raise RuntimeError(
                f"template {name} ({x},{y},{width}x{height}) exceeds image {src_w}x{src_h}"
            )
        path = output_dir / f"{name}.png"
        if not cv2.imwrite(str(path), source[y : y + height, x : x + width]):
            raise RuntimeError(f"failed to write image: {path}")
        print(f"[OK] {name} -> {path} ({width}x{height})")


if __name__ == "__main__":
    try:
        main()
    except UmaParseError as exc:
        print(f"[ERROR] {exc}")
        raise SystemExit(1) from exc
