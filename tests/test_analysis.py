import threading

import pytest
from rtldce.analysis import liveness, liveness_fixpoint, seed
from rtldce.arch import x86
from rtldce.dom_liveness import LivenessLattice
from rtldce.graph_utils import Edge, EdgeIndex, Location
from rtldce.rtl import Assignment, Assume, Binary, Const, Skip, Var

ARCH = x86()
EAX, EBX, ECX, EDX = Var("eax"), Var("ebx"), Var("ecx"), Var("edx")
ZF = Var("ZF", 1)

L = [Location(0x1000 + i) for i in range(8)]


def loop_cfa() -> list[Edge]:
    # 0: ecx := 10
    # 1: loop: eax := eax + ecx ; ecx := ecx - 1 ; if ZF goto 4 else goto 1
    # 4: ebx := eax ; exit
    return [
        Edge(L[0], L[1], Assignment(ECX, Const(10))),
        Edge(L[1], L[2], Assignment(EAX, Binary("+", EAX, ECX))),
        Edge(L[2], L[3], Assignment(ECX, Binary("-", ECX, Const(1)))),
        Edge(L[3], L[1], Assume(Binary("==", ZF, Const(0, 1)))),
        Edge(L[3], L[4], Assume(Binary("==", ZF, Const(1, 1)))),
        Edge(L[4], L[5], Assignment(EBX, EAX)),
    ]


def test_seed():
    index = EdgeIndex(loop_cfa())
    analysis = LivenessLattice(ARCH)
    live, worklist = seed(index, analysis)
    assert worklist == set(L[:6])
    assert live[L[5]].as_set() == ARCH.registers
    for location in L[:5]:
        assert not live[location]


def test_sink_initialization():
    live = liveness(loop_cfa(), ARCH)
    assert live[L[5]].as_set() == ARCH.registers


def test_branch_joins_successors():
    live = liveness(loop_cfa(), ARCH)
    # ecx is live around the loop back edge
    assert ECX in live[L[3]]
    assert ECX in live[L[1]]
    assert ZF in live[L[3]]
    assert EAX in live[L[4]]
    # ecx is defined at 0, so it is not live before it
    assert ECX not in live[L[0]]
    assert EAX in live[L[0]]


def test_fixpoint_stability():
    index = EdgeIndex(loop_cfa())
    analysis = LivenessLattice(ARCH)
    live, worklist = seed(index, analysis)
    assert liveness_fixpoint(index, analysis, live, worklist) > 0
    assert not worklist

    # Everything pending again, but nothing changes
    converged = {k: v.copy() for k, v in live.items()}
    assert liveness_fixpoint(index, analysis, live, set(live)) == 0
    assert live == converged


def test_monotonicity():
    index = EdgeIndex(loop_cfa())
    analysis = LivenessLattice(ARCH)
    live, worklist = seed(index, analysis)
    history = []

    def observe(location, old, new):
        history.append(location)
        assert old <= new
        assert old != new

    updates = liveness_fixpoint(index, analysis, live, worklist, on_update=observe)
    assert updates == len(history)


def test_cancelled_fixpoint_stops_immediately():
    index = EdgeIndex(loop_cfa())
    analysis = LivenessLattice(ARCH)
    live, worklist = seed(index, analysis)
    cancel = threading.Event()
    cancel.set()
    assert liveness_fixpoint(index, analysis, live, worklist, cancel=cancel) == 0
    assert worklist == set(L[:6])


def test_skip_chain_propagates():
    edges = [Edge(L[i], L[i + 1], Skip()) for i in range(4)]
    edges.append(Edge(L[4], L[5], Assignment(EDX, Const(0))))
    live = liveness(edges, ARCH)
    assert EDX not in live[L[0]]
    assert EAX in live[L[0]]


def test_missing_live_set_fails_fast():
    edge = Edge(L[0], L[1], Skip())
    index = EdgeIndex([edge])
    analysis = LivenessLattice(ARCH)
    live = {L[0]: analysis.bottom()}
    with pytest.raises(KeyError) as info:
        liveness_fixpoint(index, analysis, live, {L[0]})
    assert any("00001000_0 -> 00001001_0" in note for note in info.value.__notes__)


def test_unknown_statement_fails_fast():
    edges = [Edge(L[0], L[1], object())]
    with pytest.raises(NotImplementedError) as info:
        liveness(edges, ARCH)
    assert any("Target live-set" in note for note in info.value.__notes__)
