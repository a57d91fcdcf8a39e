from __future__ import annotations as _

from typing import Iterable, Mapping

import networkx as nx

from rtldce.rtl import Var


class Architecture:
    """Register set and the static coverage relation between registers.

    The relation is given by direct containment (``eax -> ax -> al``) and
    closed transitively: ``covered(eax)`` is ``{ax, al, ah}`` and
    ``covering(al)`` is ``{ax, eax}``. Variables unknown to the architecture
    (temporaries) neither cover nor are covered.
    """

    name: str
    registers: frozenset[Var]
    coverage: nx.DiGraph

    def __init__(
        self,
        name: str,
        registers: Iterable[Var],
        coverage: Mapping[Var, Iterable[Var]] | None = None,
    ) -> None:
        self.name = name
        self.registers = frozenset(registers)
        self.coverage = nx.DiGraph()
        self.coverage.add_nodes_from(self.registers)
        for wide, parts in (coverage or {}).items():
            self.coverage.add_edges_from((wide, part) for part in parts)
        if not nx.is_directed_acyclic_graph(self.coverage):
            raise ValueError(f"Coverage relation of {name} has a cycle")
        unknown = set(self.coverage.nodes) - self.registers
        if unknown:
            raise ValueError(f"Coverage mentions non-registers: {sorted(map(str, unknown))}")
        self._covered = {v: frozenset(nx.descendants(self.coverage, v)) for v in self.coverage}
        self._covering = {v: frozenset(nx.ancestors(self.coverage, v)) for v in self.coverage}

    def covered(self, v: Var) -> frozenset[Var]:
        return self._covered.get(v, frozenset())

    def covering(self, v: Var) -> frozenset[Var]:
        return self._covering.get(v, frozenset())

    def register(self, name: str) -> Var:
        for v in self.registers:
            if v.name == name:
                return v
        raise KeyError(name)

    def __repr__(self) -> str:
        return f"Architecture({self.name}, {len(self.registers)} registers)"


def x86() -> Architecture:
    """IA-32 general purpose registers with their 16 and 8 bit parts, and the status flags."""
    registers: list[Var] = []
    coverage: dict[Var, list[Var]] = {}

    def reg(name: str, bitwidth: int) -> Var:
        v = Var(name, bitwidth)
        registers.append(v)
        return v

    for x in "abcd":
        e, w = reg(f"e{x}x", 32), reg(f"{x}x", 16)
        coverage[e] = [w]
        coverage[w] = [reg(f"{x}l", 8), reg(f"{x}h", 8)]
    for x in ("si", "di", "bp", "sp"):
        coverage[reg(f"e{x}", 32)] = [reg(x, 16)]
    for flag in ("CF", "PF", "AF", "ZF", "SF", "OF", "DF"):
        reg(flag, 1)
    return Architecture("x86", registers, coverage)
