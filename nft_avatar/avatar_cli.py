import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse

from .assets import AssetResolver
from .config import DEFAULT_CONFIG, LayerFailurePolicy, parse_size
from .errors import AvatarCompositorError
from .pipeline import compose_selection
from .traits import Z_ORDER, AvatarSelection, Trait


def parse_arguments(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Layer one trait image per category into an NFT avatar. The result is "
            "a PNG, or an animated GIF when any trait is animated."
        )
    )
    for category in Z_ORDER:
        parser.add_argument(
            f"--{category.value}",
            metavar="IMAGE",
            help=f"Image file or URL for the {category.value} trait.",
        )
    parser.add_argument(
        "--output",
        type=Path,
        help=(
            "Output path (defaults to nft-avatar.png or nft-avatar.gif in the current directory). "
            "The extension is set to match the produced format."
        ),
    )
    parser.add_argument(
        "--canvas-size",
        type=str,
        default=f"{DEFAULT_CONFIG.canvas_size[0]}x{DEFAULT_CONFIG.canvas_size[1]}",
        help=(
            "Canvas size formatted as WIDTHxHEIGHT, used when still images of different "
            f"sizes are combined (default: {DEFAULT_CONFIG.canvas_size[0]}x{DEFAULT_CONFIG.canvas_size[1]})."
        ),
    )
    parser.add_argument(
        "--alpha-threshold",
        type=int,
        default=DEFAULT_CONFIG.alpha_threshold,
        help=(
            "Pixels with alpha below this become transparent in GIF output "
            f"(default: {DEFAULT_CONFIG.alpha_threshold})."
        ),
    )
    parser.add_argument(
        "--loop",
        type=int,
        default=DEFAULT_CONFIG.loop,
        help="How many times to loop the animation (0 = infinite).",
    )
    parser.add_argument(
        "--skip-failed-layers",
        action="store_true",
        help="Leave out traits whose images cannot be loaded instead of failing.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print progress information.",
    )
    return parser.parse_args(argv)


def resolve_unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    stem = path.stem
    suffix = path.suffix
    index = 1
    while True:
        candidate = path.with_name(f"{stem}-{index}{suffix}")
        if not candidate.exists():
            return candidate
        index += 1


def to_ref(value: str) -> str:
    """Turn a CLI image argument into an asset reference."""
    if urlparse(value).scheme in ("http", "https", "file"):
        return value
    return Path(value).expanduser().resolve().as_uri()


def build_selection(args: argparse.Namespace) -> AvatarSelection:
    selection = AvatarSelection()
    for category in Z_ORDER:
        value: Optional[str] = getattr(args, category.value)
        if value:
            name = Path(urlparse(value).path).stem or category.value
            selection = selection.select(category, Trait(name=name, value=name, image_ref=to_ref(value)))
    return selection


def main(argv: Iterable[str]) -> int:
    try:
        args = parse_arguments(argv)
        logging.basicConfig(
            level=logging.INFO if args.verbose else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
        )
        config = replace(
            DEFAULT_CONFIG,
            canvas_size=parse_size(args.canvas_size),
            alpha_threshold=args.alpha_threshold,
            loop=args.loop,
            layer_failure_policy=(
                LayerFailurePolicy.SKIP if args.skip_failed_layers else LayerFailurePolicy.ABORT
            ),
        )
        selection = build_selection(args)
        resolver = AssetResolver(allow_file_urls=True)

        result = compose_selection(selection, resolver, config)

        output = args.output or Path(result.filename)
        expected_suffix = f".{result.format}"
        if output.suffix.lower() != expected_suffix:
            print(f"Result is a {result.format.upper()}; saving with a {expected_suffix} extension.")
            output = output.with_suffix(expected_suffix)
        final_output = resolve_unique_path(output)
        final_output.parent.mkdir(parents=True, exist_ok=True)
        final_output.write_bytes(result.data)
        if final_output != output:
            print(
                "Existing file detected. Saved new avatar as"
                f" {final_output} instead."
            )
        print(
            f"Created {result.format.upper()} ({result.width}x{result.height}, "
            f"{result.frame_count} frames) at {final_output}"
        )
        return 0
    except AvatarCompositorError as pipeline_err:
        print(f"Error: {pipeline_err}", file=sys.stderr)
    except ValueError as value_err:
        print(f"Error: {value_err}", file=sys.stderr)
    except Exception as unexpected_err:  # noqa: BLE001
        print(f"Unexpected error: {unexpected_err}", file=sys.stderr)
    return 1


def run() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    run()
