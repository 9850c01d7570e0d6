from __future__ import annotations

from typing import Iterable

from ..analysis.interference import InterferenceGraph
from ..analysis.live_variables import LivenessResult
from ..analysis.pipeline import FunctionAnalysis
from ..intermediate_representation.cfg import CFG, SuccessorState
from ..intermediate_representation.ir import InstructionKind, Name, sorted_names


def format_names(names: Iterable[Name]) -> str:
    return "{" + ", ".join(str(name) for name in sorted_names(names)) + "}"


def render_liveness_table(
    liveness: LivenessResult,
    previous: LivenessResult | None = None,
    highlight: Name | None = None,
) -> str:
    """
    Live-in, live-out and instruction text side by side, one line per position.

    When ``previous`` is given, sets that differ from the earlier run are
    suffixed with ``*``. When ``highlight`` is given, lines where that value is
    live in or out start with ``>``.
    """
    if previous is not None and len(previous) != len(liveness):
        raise ValueError("previous liveness result has a different instruction count")

    cells: list[tuple[str, str]] = []
    for idx, row in enumerate(liveness.rows):
        live_in = format_names(row.live_in)
        live_out = format_names(row.live_out)
        if previous is not None:
            old = previous.rows[idx]
            if old.live_in != row.live_in:
                live_in += "*"
            if old.live_out != row.live_out:
                live_out += "*"
        cells.append((live_in, live_out))

    in_width = max([len("in")] + [len(c[0]) for c in cells])
    out_width = max([len("out")] + [len(c[1]) for c in cells])
    lines = [f"  {'#':>4}  {'in':<{in_width}}  {'out':<{out_width}}  instruction"]

    idx = 0
    for block in liveness.function.blocks:
        lines.append(f"{block.name}:")
        for inst in block.all_instructions():
            row = liveness.rows[idx]
            live_in, live_out = cells[idx]
            marker = " "
            if highlight is not None and (highlight in row.live_in or highlight in row.live_out):
                marker = ">"
            number = idx + liveness.first_index
            lines.append(
                f"{marker} {number:>4}  {live_in:<{in_width}}  {live_out:<{out_width}}  "
                f"{inst.render()}"
            )
            idx += 1
    return "\n".join(lines) + "\n"


def render_cfg_summary(cfg: CFG) -> str:
    """List each block with its successors."""
    lines = []
    for node in cfg.nodes:
        if node.state is SuccessorState.NOT_DERIVED:
            detail = "(no successors derived: unsupported terminator)"
        elif node.block.terminator.kind is InstructionKind.RETURN:
            detail = "(return)"
        else:
            detail = "-> " + ", ".join(str(cfg.nodes[s].name) for s in node.successors)
        lines.append(f"{node.name} {detail}")
    return "\n".join(lines) + "\n"


def render_interference_summary(graph: InterferenceGraph) -> str:
    lines = []
    for name in sorted_names(graph.nodes):
        lines.append(f"{name}: {format_names(graph.neighbors(name))}")
    return "\n".join(lines) + "\n"


def render_text_report(
    analysis: FunctionAnalysis,
    sections: Iterable[str] = ("cfg", "live", "interference"),
    highlight: Name | None = None,
    previous: LivenessResult | None = None,
) -> str:
    """
    Readable report for one function, in the requested section order.

    ``previous`` is forwarded to the liveness table to mark changed sets.
    """
    sections = list(sections)
    params = ", ".join(f"{p.type} {p.name}" for p in analysis.function.params)
    parts = [f"=== {analysis.function.name}({params}) ==="]
    for section in sections:
        if section == "cfg":
            parts.append("--- control flow ---")
            parts.append(render_cfg_summary(analysis.cfg).rstrip("\n"))
        elif section == "live":
            status = "fixed point" if analysis.liveness.converged else "sweep limit"
            parts.append(f"--- liveness ({analysis.liveness.sweeps} sweeps, {status}) ---")
            parts.append(render_liveness_table(
                analysis.liveness, previous=previous, highlight=highlight
            ).rstrip("\n"))
        elif section == "interference":
            parts.append("--- interference ---")
            parts.append(render_interference_summary(analysis.interference).rstrip("\n"))
        else:
            raise ValueError(f"unknown report section: {section}")
    return "\n".join(parts) + "\n"
