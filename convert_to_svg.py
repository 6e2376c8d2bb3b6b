#!/usr/bin/env python3
"""
Command line image to SVG converter.
Runs the same pipeline as the web service on a local file.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from svgconvert.conversion import ConversionOrchestrator
from svgconvert.errors import ConversionError
from svgconvert.options import ConversionOptions, Quality, TargetSize
from svgconvert.preview import CONSTRAINED_PROFILE, DEFAULT_PROFILE, LivePreview


def convert_to_svg(
    input_path: str,
    output_path: str = None,
    remove_border: bool = False,
    color: str = "#000000",
    size: str = "auto",
    quality: str = "standard",
    content_area: str = None,
    preview: bool = False,
    constrained: bool = False,
) -> str:
    """
    Convert a raster image to SVG.

    Args:
        input_path: Path to the input image file
        output_path: Path for the output SVG file (default: same name with .svg extension)
        remove_border: Crop away the background margin before tracing
        color: Fill/stroke color of the output
        size: 'auto', 'small', 'medium' or 'large' - longer-edge target
        quality: 'standard' or 'high' - tracing fidelity
        content_area: JSON crop rectangle to use instead of automatic trimming
        preview: Write the fast approximate preview instead of tracing
        constrained: Use the coarse preview profile

    Returns:
        Path to the generated SVG file
    """
    input_file = Path(input_path)

    if not input_file.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    if output_path is None:
        output_path = str(input_file.with_suffix(".svg"))

    options = ConversionOptions(
        remove_border=remove_border,
        color=color,
        target_size=size,
        quality=quality,
    )
    image = input_file.read_bytes()

    if preview:
        live = LivePreview(CONSTRAINED_PROFILE if constrained else DEFAULT_PROFILE)
        svg = asyncio.run(live.update(image, options))
        if not svg:
            raise ConversionError("Preview could not be generated")
    else:
        orchestrator = ConversionOrchestrator(timeout=None, max_image_bytes=None)
        svg = asyncio.run(orchestrator.convert(image, options, content_area)).svg

    Path(output_path).write_text(svg, encoding="utf-8")
    return output_path


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert raster images to embeddable SVG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s image.png                          # Basic conversion
  %(prog)s scan.jpg -o output.svg             # Specify output file
  %(prog)s logo.png --remove-border --color '#ff0000'
  %(prog)s photo.jpg --size small --quality high
  %(prog)s photo.jpg --preview                # Fast approximation only
        """,
    )

    parser.add_argument("input", help="Input image file (PNG, JPG, BMP, etc.)")
    parser.add_argument("-o", "--output", help="Output SVG file path")
    parser.add_argument(
        "--remove-border",
        action="store_true",
        help="Crop the background border before tracing",
    )
    parser.add_argument(
        "--content-area",
        help='Exact crop rectangle as JSON, e.g. \'{"x": 10, "y": 10, "width": 200, "height": 100}\'',
    )
    parser.add_argument(
        "--color",
        default="#000000",
        help="Output color (default: #000000)",
    )
    parser.add_argument(
        "--size",
        choices=[s.value for s in TargetSize],
        default="auto",
        help="Resize target: small=128px, medium=256px, large=512px (default: auto)",
    )
    parser.add_argument(
        "--quality",
        choices=[q.value for q in Quality],
        default="standard",
        help="Tracing quality (default: standard)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Write the fast live-preview approximation instead",
    )
    parser.add_argument(
        "--constrained",
        action="store_true",
        help="Use the coarse preview grid for slow machines",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline steps")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        output_file = convert_to_svg(
            args.input,
            args.output,
            remove_border=args.remove_border,
            color=args.color,
            size=args.size,
            quality=args.quality,
            content_area=args.content_area,
            preview=args.preview,
            constrained=args.constrained,
        )
        print(f"Successfully converted to: {output_file}")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ConversionError as e:
        print(f"Conversion failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
