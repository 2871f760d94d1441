from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter

from .document import explode_all, load_drawing, save_drawing
from .dxf_writer import write_dxf
from .logging_config import setup_logging
from .query import drawing_bounds, pick_entity

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cadkernel", description="Inspect and convert 2D CAD drawings.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Export a JSON drawing to DXF")
    export.add_argument("input_json", help="Path to input drawing (JSON)")
    export.add_argument("output_dxf", help="Path to output DXF file")
    export.add_argument(
        "--unit",
        choices=("mm", "inch", "px"),
        default="mm",
        help="Output unit (default: mm)",
    )
    export.add_argument(
        "--no-flip-y",
        action="store_true",
        help="Keep editor Y-down coordinates instead of converting to DXF Y-up",
    )

    info = sub.add_parser("info", help="Print entity counts and drawing extents")
    info.add_argument("input_json", help="Path to input drawing (JSON)")

    explode = sub.add_parser("explode", help="Explode every block reference")
    explode.add_argument("input_json", help="Path to input drawing (JSON)")
    explode.add_argument("output_json", help="Path to output drawing (JSON)")

    pick = sub.add_parser("pick", help="Print the topmost entity at a point")
    pick.add_argument("input_json", help="Path to input drawing (JSON)")
    pick.add_argument("x", type=float)
    pick.add_argument("y", type=float)
    pick.add_argument(
        "--tolerance",
        type=float,
        default=5.0,
        help="Pick distance in drawing units (default: 5)",
    )
    return parser


def _run_export(args: argparse.Namespace) -> None:
    drawing = load_drawing(args.input_json)
    count = write_dxf(
        args.output_dxf,
        drawing.entities,
        blocks=drawing.blocks,
        layers=drawing.layers,
        unit=args.unit,
        flip_y=not args.no_flip_y,
    )
    logger.info("Exported %d of %d entities", count, len(drawing.entities))


def _run_info(args: argparse.Namespace) -> None:
    drawing = load_drawing(args.input_json)
    counts = Counter(e.type for e in drawing.entities)
    print(f"entities: {len(drawing.entities)}")
    for kind, n in sorted(counts.items()):
        print(f"  {kind}: {n}")
    print(f"blocks: {len(drawing.blocks)}")
    print(f"layers: {len(drawing.layers)}")
    box = drawing_bounds(drawing.entities, drawing.blocks_by_id)
    if box is None:
        print("bounds: empty")
    else:
        print(f"bounds: ({box.min_x:g}, {box.min_y:g}) - ({box.max_x:g}, {box.max_y:g})")


def _run_explode(args: argparse.Namespace) -> None:
    drawing = load_drawing(args.input_json)
    save_drawing(explode_all(drawing), args.output_json)


def _run_pick(args: argparse.Namespace) -> None:
    drawing = load_drawing(args.input_json)
    hit = pick_entity(
        drawing.entities, (args.x, args.y), max(args.tolerance, 1e-6), drawing.layers, drawing.blocks_by_id,
    )
    print(hit.id if hit is not None else "none")


_COMMANDS = {
    "export": _run_export,
    "info": _run_info,
    "explode": _run_explode,
    "pick": _run_pick,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        _COMMANDS[args.command](args)
    except Exception as exc:
        print(f"{args.command} failed: {exc}", file=sys.stderr)
        return 1
    return 0
