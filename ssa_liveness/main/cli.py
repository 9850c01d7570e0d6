import argparse
import logging
import re
import sys
from pathlib import Path

from ssa_liveness.analysis.live_variables import compute_live_variables
from ssa_liveness.analysis.pipeline import analyze_module
from ssa_liveness.errors import AnalysisError
from ssa_liveness.intermediate_representation.ir import Name
from ssa_liveness.parsing.json_loader import load_module
from ssa_liveness.parsing.llvm_frontend import load_llvm_ir
from ssa_liveness.reporting.dot import render_cfg_dot, render_interference_dot, render_svg
from ssa_liveness.reporting.text import render_text_report

LOG = logging.getLogger("ssa_liveness")

ANALYSES = ["cfg", "live", "interference"]

UNSAFE_STEM_RE = re.compile(r"[^A-Za-z0-9_.-]")


def parse_name(text):
    """
    Turn ``%x`` / ``x`` / ``%3`` into a Name; all-digit text is a numeric slot.

    Quoting forces a symbolic Name, so ``%"3"`` is the symbolic Name ``3``.
    """
    text = text[1:] if text.startswith("%") else text
    if len(text) >= 2 and text[0] == text[-1] == "\"":
        return Name.symbol(text[1:-1])
    if text.isdigit():
        return Name.number(int(text))
    return Name.symbol(text)


def positive_int(text):
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return value


def build_parser():
    parser = argparse.ArgumentParser(
        description="Control-flow, liveness and interference analysis for SSA IR"
    )

    parser.add_argument(
        "--file",
        required=True,
        help="Path to a JSON module (or a .ll file, parsed with $LLVM_JSON_CMD)"
    )

    parser.add_argument(
        "--function",
        action="append",
        help="Only analyze this function (repeatable)"
    )

    parser.add_argument(
        "--analysis",
        nargs="+",
        choices=ANALYSES,
        default=ANALYSES,
        help="Report sections to print"
    )

    parser.add_argument(
        "--sweeps",
        type=positive_int,
        default=None,
        help="Stop liveness after N sweeps instead of iterating to a fixed point"
    )

    parser.add_argument(
        "--diff",
        action="store_true",
        help="Mark liveness sets that differ from the fixed-point result (use with --sweeps)"
    )

    parser.add_argument(
        "--highlight",
        type=parse_name,
        default=None,
        help="Mark liveness rows where this value is live"
    )

    parser.add_argument(
        "--dot-dir",
        type=Path,
        default=None,
        help="Write <function>.cfg.dot and <function>.interference.dot here"
    )

    parser.add_argument(
        "--svg",
        action="store_true",
        help="Also render the DOT files with Graphviz ($DOT_CMD)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Debug output"
    )
    return parser


def file_stem(name):
    """Function names can hold path separators; keep the stem inside dot_dir."""
    return UNSAFE_STEM_RE.sub("_", name).lstrip(".") or "_"


def write_graphs(analysis, dot_dir, svg):
    dot_dir.mkdir(parents=True, exist_ok=True)
    graphs = {
        "cfg": render_cfg_dot(analysis.cfg),
        "interference": render_interference_dot(
            analysis.interference, title=analysis.function.name
        ),
    }
    for kind, source in graphs.items():
        stem = f"{file_stem(analysis.function.name)}.{kind}"
        (dot_dir / f"{stem}.dot").write_text(source, encoding="utf-8")
        LOG.info("wrote %s", dot_dir / f"{stem}.dot")
        if svg:
            (dot_dir / f"{stem}.svg").write_text(render_svg(source), encoding="utf-8")


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        if args.file.endswith(".ll"):
            module = load_llvm_ir(args.file)
        else:
            module = load_module(args.file)
        analyses = analyze_module(module, max_sweeps=args.sweeps, only=args.function)
        for analysis in analyses:
            previous = None
            if args.diff:
                previous = compute_live_variables(analysis.function, cfg=analysis.cfg)
            print(render_text_report(
                analysis,
                sections=args.analysis,
                highlight=args.highlight,
                previous=previous,
            ))
            if args.dot_dir is not None:
                write_graphs(analysis, args.dot_dir, args.svg)
    except (AnalysisError, KeyError, RuntimeError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
