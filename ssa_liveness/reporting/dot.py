from __future__ import annotations

import os
import shlex
import subprocess

from ..analysis.interference import InterferenceGraph
from ..intermediate_representation.cfg import CFG, SuccessorState


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_cfg_dot(cfg: CFG) -> str:
    """Emit a DOT digraph with one node per block and one edge per transfer."""
    lines = [f"digraph {_quote(cfg.function.name)} {{", "    node [shape=box];"]
    for handle, node in enumerate(cfg.nodes):
        attrs = f"label={_quote(str(node.name))}"
        if node.state is SuccessorState.NOT_DERIVED:
            attrs += ", style=dashed"
        lines.append(f"    n{handle} [{attrs}];")
    for handle, node in enumerate(cfg.nodes):
        for succ in node.successors:
            lines.append(f"    n{handle} -> n{succ};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_interference_dot(graph: InterferenceGraph, title: str = "interference") -> str:
    """Emit an undirected DOT graph of interfering values."""
    lines = [f"graph {_quote(title)} {{"]
    for handle, name in enumerate(graph.nodes):
        lines.append(f"    n{handle} [label={_quote(str(name))}];")
    for first, second in graph.edges():
        lines.append(f"    n{graph.handle(first)} -- n{graph.handle(second)};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_svg(dot_source: str, fmt: str = "svg") -> str:
    """Lay out ``dot_source`` with the Graphviz ``dot`` executable."""
    dot_cmd = shlex.split(os.environ.get("DOT_CMD", "dot"))
    try:
        result = subprocess.run(
            [*dot_cmd, f"-T{fmt}"],
            input=dot_source,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise RuntimeError(f"Graphviz not found: {dot_cmd[0]}") from exc
    if result.returncode != 0:
        stderr = result.stderr.strip() or result.stdout.strip()
        raise RuntimeError(f"Graphviz failed: {stderr}")
    return result.stdout
