"""
Dead code elimination on a CFA.

Edges whose statement cannot influence any live register are deleted and the
graph is contracted around them: every edge into the source of a deleted edge
is redirected to its target. Deleting edges changes liveness, so liveness is
recomputed from scratch and the process repeats until a round removes
nothing.

With jump threading enabled, single-successor assumes are removed as well,
except where they must survive for procedure detection (calls and returns)
or where they cross into or out of a stub or the harness.
"""

from __future__ import annotations as _

import logging
import threading
import time
import typing

from rtldce import rtl
from rtldce.analysis import liveness_fixpoint, seed
from rtldce.dom_liveness import Liveness, LivenessLattice
from rtldce.domains import InvariantMap
from rtldce.graph_utils import Edge, EdgeIndex, Location, order_edges
from rtldce.program import Program
from rtldce.utils import starred_box

logger = logging.getLogger(__name__)


@typing.runtime_checkable
class CfaTransformation(typing.Protocol):
    def run(self) -> None: ...

    @property
    def cfa(self) -> tuple[Edge, ...]: ...


def crosses(edge: Edge, region: typing.Callable[[int], bool]) -> bool:
    return region(edge.source.address) != region(edge.target.address)


def is_dead_edge(
    edge: Edge,
    live: InvariantMap[Liveness],
    index: EdgeIndex,
    program: Program,
    enable_jump_threading: bool,
) -> bool:
    match edge.statement:
        case rtl.Assignment(lhs=lhs):
            return lhs not in live[edge.target]
        case rtl.Skip():
            return True
        case rtl.Assume(kind=kind) if enable_jump_threading:
            if index.out_degree(edge.source) != 1:
                return False
            if kind in (rtl.BranchKind.CALL, rtl.BranchKind.RETURN):
                return False
            if crosses(edge, program.is_stub):
                return False
            if crosses(edge, program.in_harness):
                return False
            return True
        case _:
            return False


class DeadCodeElimination(CfaTransformation):
    program: Program
    enable_jump_threading: bool
    analysis: LivenessLattice
    index: EdgeIndex
    live: InvariantMap[Liveness]
    removal_count: int
    iterations: int

    def __init__(self, cfa: typing.Iterable[Edge], program: Program, enable_jump_threading: bool = False) -> None:
        self._cfa = {edge: None for edge in order_edges(cfa)}
        self.program = program
        self.enable_jump_threading = enable_jump_threading
        self.analysis = LivenessLattice(program.architecture)
        self.index = EdgeIndex(self._cfa)
        self.live = {}
        self.removal_count = 0
        self.iterations = 0
        self._stop = threading.Event()

    @property
    def cfa(self) -> tuple[Edge, ...]:
        return tuple(sorted(self._cfa, key=Edge.sort_key))

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def run(self) -> None:
        logger.info("Eliminating dead code")
        start_time = time.monotonic()
        removed_before = self.removal_count

        while not self._stop.is_set():
            self.iterations += 1
            self.live, worklist = seed(self.index, self.analysis)
            updates = liveness_fixpoint(self.index, self.analysis, self.live, worklist, cancel=self._stop)
            if self._stop.is_set():
                break

            dead_edges = [
                edge
                for edge in self.cfa
                if is_dead_edge(edge, self.live, self.index, self.program, self.enable_jump_threading)
            ]
            removed = sum(self._remove(edge) for edge in dead_edges)
            logger.debug(
                f"Round {self.iterations}: {updates} updates, "
                f"{len(dead_edges)} dead edges, {removed} removed"
            )
            if removed == 0:
                break

        elapsed = (time.monotonic() - start_time) * 1000
        logger.info(
            f"Removed {self.removal_count - removed_before} edges, "
            f"finished after {elapsed:.0f}ms and {self.iterations} iterations."
        )

    def _remove(self, dead_edge: Edge) -> bool:
        if dead_edge not in self._cfa:
            # Already merged away by an earlier contraction this round.
            return False
        source, target = dead_edge.source, dead_edge.target
        # Never cut one arm of a branch.
        if self.index.out_degree(source) > 1:
            return False
        self.index.remove(dead_edge)
        del self._cfa[dead_edge]
        merged = 0
        for edge in self.index.incoming(source):
            self.index.redirect(edge, target)
            # Contraction made it a copy of an edge already there.
            if self.index.has_copy(edge):
                self.index.remove(edge)
                del self._cfa[edge]
                merged += 1
                logger.debug(f"Merged {edge}")
        for location in (source, target):
            if self.index.discard_if_isolated(location):
                self.live.pop(location, None)
        self.removal_count += 1 + merged
        logger.debug(f"Removed {dead_edge}")
        return True

    def cancel(self) -> None:
        logger.warning("\n" + starred_box("Interrupt! Stopping Dead Code Elimination!"))
        self._stop.set()

    stop = cancel
