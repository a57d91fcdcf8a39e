# Backward liveness fixpoint over a CFA.
import logging
import threading
import typing

from rtldce.arch import Architecture
from rtldce.dom_liveness import Liveness, LivenessLattice
from rtldce.domains import InvariantMap
from rtldce.graph_utils import Edge, EdgeIndex, Location, order_edges

logger = logging.getLogger(__name__)

Observer: typing.TypeAlias = typing.Callable[[Location, Liveness, Liveness], None]


def seed(index: EdgeIndex, analysis: LivenessLattice) -> tuple[InvariantMap[Liveness], set[Location]]:
    """Fresh invariants for every location in the index: bottom, or the
    sink live-set where there are no outgoing edges. Everything is pending."""
    live: InvariantMap[Liveness] = {}
    sinks = index.sinks()
    for location in index.locations:
        if location in sinks:
            live[location] = analysis.initial()
        else:
            live[location] = analysis.bottom()
    return live, set(live)


def liveness_fixpoint(
    index: EdgeIndex,
    analysis: LivenessLattice,
    live: InvariantMap[Liveness],
    worklist: set[Location],
    cancel: typing.Optional[threading.Event] = None,
    on_update: typing.Optional[Observer] = None,
) -> int:
    """Run the worklist until it is empty or `cancel` is set.

    `live` and `worklist` are updated in place. Returns the number of
    locations whose live-set changed.
    """
    updates = 0
    while worklist:
        if cancel is not None and cancel.is_set():
            logger.debug(f"Fixpoint interrupted with {len(worklist)} pending locations")
            break
        location = worklist.pop()

        new_live: typing.Optional[Liveness] = None
        for edge in index.outgoing(location):
            out = _transfer(analysis, live, edge)
            if new_live is None:
                new_live = out
            else:
                new_live.add_all(out)
        if new_live is None:
            continue

        old_live = live.get(location)
        if new_live != old_live:
            live[location] = new_live
            updates += 1
            if on_update is not None:
                on_update(location, old_live, new_live)
            worklist.update(edge.source for edge in index.incoming(location))
    return updates


def _transfer(analysis: LivenessLattice, live: InvariantMap[Liveness], edge: Edge) -> Liveness:
    try:
        return analysis.transfer(live[edge.target], edge.statement, edge.source)
    except Exception as e:
        e.add_note(f"At edge {edge}")
        e.add_note(f"Target live-set: {live.get(edge.target, 'missing')}")
        raise e


def liveness(edges: typing.Iterable[Edge], architecture: Architecture) -> InvariantMap[Liveness]:
    """Live-set at every location of a CFA, computed to convergence."""
    index = EdgeIndex(order_edges(edges))
    analysis = LivenessLattice(architecture)
    live, worklist = seed(index, analysis)
    liveness_fixpoint(index, analysis, live, worklist)
    return live
