# __main__.py
# Command line front end: python -m pixelprobe <command> ...

import argparse
import json
import logging
import sys

from pixelprobe import toolkit
from pixelprobe.errors import PixelProbeError
from pixelprobe.plugins.edge_detection import KERNELS, detect_edges
from pixelprobe.plugins.hsv_analyzer import (
    GreenDetectionOptions,
    analyze_green_statistics,
    detect_green,
    hsv_wheel,
)
from pixelprobe.plugins.image_lsb_text_stego import decode, difference_image, encode
from pixelprobe.plugins.statistical_analyzer import StatisticalAnalyzer


def _print(obj):
    print(json.dumps(obj, indent=2, default=str))


def cmd_plugins(args):
    _print([p.name for p in toolkit.load_plugins()])


def cmd_analyze(args):
    _print(toolkit.analyze(toolkit.load_image(args.image)))


def cmd_stats(args):
    buffer = toolkit.load_image(args.image)
    _print(StatisticalAnalyzer(buffer).all_statistics().to_dict())


def cmd_compare(args):
    first = toolkit.load_image(args.image)
    second = toolkit.load_image(args.other)
    _print(StatisticalAnalyzer(first).compare_with_image(second).to_dict())


def check_transform_args(parser, args):
    """Reject flags the chosen transform does not take, or is missing."""
    required, optional = toolkit.TRANSFORM_PARAMS.get(args.name, ((), ()))
    for flag in ("op", "value", "other"):
        given = getattr(args, flag) is not None
        if flag in required and not given:
            parser.error(f"transform {args.name} requires --{flag}")
        if given and flag not in required + optional:
            parser.error(f"transform {args.name} does not take --{flag}")
    ops = toolkit.TRANSFORM_OPS.get(args.name)
    if ops and args.op not in ops:
        parser.error(f"transform {args.name}: --op must be one of {', '.join(ops)}")


def cmd_transform(args):
    buffer = toolkit.load_image(args.image)
    required, optional = toolkit.TRANSFORM_PARAMS.get(args.name, ((), ()))
    params = []
    for flag in required + optional:
        value = getattr(args, flag)
        if value is None:
            continue
        params.append(toolkit.load_image(value) if flag == "other" else value)
    result = toolkit.apply_transform(buffer, args.name, *params)
    toolkit.save_image(result, args.output)
    _print({"output": args.output, "width": result.width, "height": result.height})


def cmd_edges(args):
    buffer = toolkit.load_image(args.image)
    result = detect_edges(buffer, args.kernel, args.threshold)
    toolkit.save_image(result.buffer, args.output)
    _print({
        "output": args.output,
        "kernel": result.kernel_name,
        "threshold": result.threshold,
        "edge_pixels": result.edge_pixels,
    })


def cmd_green(args):
    buffer = toolkit.load_image(args.image)
    options = GreenDetectionOptions(
        hue_min=args.hue_min,
        hue_max=args.hue_max,
        saturation_min=args.saturation_min,
        value_min=args.value_min,
        color_output=args.color,
    )
    if args.output:
        toolkit.save_image(detect_green(buffer, options), args.output)
    _print(analyze_green_statistics(buffer, options).to_dict())


def cmd_wheel(args):
    toolkit.save_image(hsv_wheel(args.size, args.size), args.output)
    _print({"output": args.output})


def cmd_embed(args):
    buffer = toolkit.load_image(args.image)
    result = encode(buffer, args.text)
    toolkit.save_image(result.buffer, args.output)
    _print({
        "output": args.output,
        "bits_used": result.bits_used,
        "bits_available": result.bits_available,
        "capacity_used": round(result.capacity_used, 2),
    })


def cmd_extract(args):
    result = decode(toolkit.load_image(args.image))
    out = {"text": result.text, "bits_read": result.bits_read}
    if result.warning:
        out["warning"] = result.warning
    _print(out)


def cmd_diff(args):
    diff = difference_image(toolkit.load_image(args.image), toolkit.load_image(args.other))
    toolkit.save_image(diff, args.output)
    _print({"output": args.output})


def build_parser():
    parser = argparse.ArgumentParser(prog="pixelprobe", description="Pixel-level image analysis toolkit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("plugins", help="list loaded analysis plugins")
    p.set_defaults(func=cmd_plugins)

    p = sub.add_parser("analyze", help="run every analysis plugin")
    p.add_argument("image")
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("stats", help="per-channel statistics")
    p.add_argument("image")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("compare", help="statistical differences between two images")
    p.add_argument("image")
    p.add_argument("other")
    p.set_defaults(func=cmd_compare)

    p = sub.add_parser("transform", help="apply a named transform")
    p.add_argument("name", choices=sorted(toolkit.TRANSFORMS))
    p.add_argument("image")
    p.add_argument("output")
    p.add_argument("--op", help="operation for arithmetic/boolean transforms")
    p.add_argument("--value", type=float, help="threshold, brightness delta or constant")
    p.add_argument("--other", help="second image for arithmetic_image/boolean")
    p.set_defaults(func=cmd_transform)

    p = sub.add_parser("edges", help="edge detection")
    p.add_argument("image")
    p.add_argument("output")
    p.add_argument("--kernel", default="sobel", choices=sorted(KERNELS))
    p.add_argument("--threshold", type=float, default=50)
    p.set_defaults(func=cmd_edges)

    p = sub.add_parser("green", help="HSV green detection")
    p.add_argument("image")
    p.add_argument("--output")
    p.add_argument("--hue-min", type=float, default=GreenDetectionOptions.hue_min)
    p.add_argument("--hue-max", type=float, default=GreenDetectionOptions.hue_max)
    p.add_argument("--saturation-min", type=float, default=GreenDetectionOptions.saturation_min)
    p.add_argument("--value-min", type=float, default=GreenDetectionOptions.value_min)
    p.add_argument("--color", action="store_true", help="keep original colour of green pixels")
    p.set_defaults(func=cmd_green)

    p = sub.add_parser("wheel", help="render an HSV colour wheel")
    p.add_argument("output")
    p.add_argument("--size", type=int, default=300)
    p.set_defaults(func=cmd_wheel)

    p = sub.add_parser("embed", help="hide text in an image (save as PNG)")
    p.add_argument("image")
    p.add_argument("output")
    p.add_argument("--text", required=True)
    p.set_defaults(func=cmd_embed)

    p = sub.add_parser("extract", help="recover hidden text")
    p.add_argument("image")
    p.set_defaults(func=cmd_extract)

    p = sub.add_parser("diff", help="amplified LSB difference between two images")
    p.add_argument("image")
    p.add_argument("other")
    p.add_argument("output")
    p.set_defaults(func=cmd_diff)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "transform":
        check_transform_args(parser, args)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        args.func(args)
    except PixelProbeError as e:
        _print(e.to_dict())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
