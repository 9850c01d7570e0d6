from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..intermediate_representation.cfg import CFG, build_cfg
from ..intermediate_representation.ir import Function, Module
from .interference import InterferenceGraph, build_interference
from .live_variables import LivenessResult, compute_live_variables

LOG = logging.getLogger(__name__)


@dataclass
class FunctionAnalysis:
    function: Function
    cfg: CFG
    liveness: LivenessResult
    interference: InterferenceGraph


def analyze_function(function: Function, max_sweeps: int | None = None) -> FunctionAnalysis:
    """Run CFG construction, liveness and interference for one function."""
    cfg = build_cfg(function)
    liveness = compute_live_variables(function, cfg=cfg, max_sweeps=max_sweeps)
    interference = build_interference(function, liveness)
    LOG.info(
        "%s: %d blocks, %d edges, %d positions, %d interference nodes (%d sweeps)",
        function.name,
        len(cfg),
        len(cfg.edges()),
        len(liveness),
        len(interference),
        liveness.sweeps,
    )
    return FunctionAnalysis(
        function=function, cfg=cfg, liveness=liveness, interference=interference
    )


def analyze_module(
    module: Module,
    max_sweeps: int | None = None,
    only: Iterable[str] | None = None,
) -> list[FunctionAnalysis]:
    """Analyze every function in ``module`` (or just those named in ``only``)."""
    if only is None:
        functions = list(module)
    else:
        functions = [module.function(name) for name in only]
    return [analyze_function(function, max_sweeps=max_sweeps) for function in functions]
