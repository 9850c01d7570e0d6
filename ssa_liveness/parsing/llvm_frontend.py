from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
from pathlib import Path

from ..errors import MalformedInputError
from ..intermediate_representation.ir import Module
from .json_loader import parse_module


def _run_parser(source: str) -> str:
    """Run the external ``.ll`` -> JSON parser and return its stdout."""
    parser_cmd = shlex.split(os.environ.get("LLVM_JSON_CMD", "llvm-ir-json"))
    with tempfile.TemporaryDirectory(prefix="ssa-liveness-") as tmpdir:
        src_path = Path(tmpdir) / "input.ll"
        src_path.write_text(source, encoding="utf-8")

        cmd = [*parser_cmd, str(src_path)]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise RuntimeError(f"IR parser not found: {parser_cmd[0]}") from exc
        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip()
            raise RuntimeError(f"IR parser failed: {stderr}")
        return result.stdout


def parse_llvm_ir(source: str) -> Module:
    """Parse textual LLVM IR into a Module through the external parser."""
    output = _run_parser(source)
    try:
        return parse_module(output)
    except MalformedInputError as exc:
        raise RuntimeError(f"IR parser produced unusable output: {exc}") from exc


def load_llvm_ir(path: str | Path) -> Module:
    return parse_llvm_ir(Path(path).read_text(encoding="utf-8"))
