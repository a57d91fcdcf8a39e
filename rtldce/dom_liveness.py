"""
Liveness of machine registers and temporaries.

A note about naming, as elsewhere in this package:
   1. USES is the set of variables read by a statement.
      e.g. `eax := (ebx + ecx)` : USES={ebx, ecx}
   2. GENS is the set of variables defined by a statement.
      e.g. `eax := (ebx + ecx)` : GENS={eax}

Registers overlap. Defining a register kills the liveness of every register
it covers (`eax :=` kills `ax`, `al`, `ah`), and using a register makes every
register covering it live as well (reading `al` keeps `ax` and `eax` live).
An unknown procedure call may read anything, so every architectural register
is live before it.
"""

from __future__ import annotations as _

import typing

from rtldce import rtl
from rtldce.arch import Architecture
from rtldce.dom_concrete import Universe, VarSet
from rtldce.domains import InstructionLattice
from rtldce.graph_utils import Location

Liveness: typing.TypeAlias = VarSet


class LivenessLattice(InstructionLattice[Liveness]):
    backward: bool = True
    architecture: Architecture
    universe: Universe

    def __init__(self, architecture: Architecture) -> None:
        super().__init__()
        self.architecture = architecture
        self.universe = Universe(architecture.registers)
        self._registers = VarSet(self.universe, architecture.registers)
        self._effects: dict[rtl.Statement, tuple[VarSet, VarSet]] = {}

    @classmethod
    def name(cls) -> str:
        return "Liveness"

    def bottom(self) -> Liveness:
        return VarSet(self.universe)

    def initial(self) -> Liveness:
        # At sinks, the calling convention may observe any register.
        return self._registers.copy()

    def join(self, left: Liveness, right: Liveness) -> Liveness:
        res = left.copy()
        res.add_all(right)
        return res

    def is_less_than(self, left: Liveness, right: Liveness) -> bool:
        return left <= right

    def effects(self, ins: rtl.Statement) -> tuple[VarSet, VarSet]:
        """The (kill, gen) sets of a statement, widened by register coverage."""
        cached = self._effects.get(ins)
        if cached is not None:
            return cached
        kill = self.bottom()
        for v in rtl.gens(ins):
            kill.add(v)
            kill.add_all(self.architecture.covered(v))
        gen = self.bottom()
        for v in rtl.free_vars(ins):
            gen.add(v)
            gen.add_all(self.architecture.covering(v))
        if isinstance(ins, rtl.UnknownProcedureCall):
            gen.add_all(self._registers)
        cached = self._effects[ins] = kill, gen
        return cached

    def transfer(self, values: Liveness, ins: rtl.Statement, location: Location) -> Liveness:
        kill, gen = self.effects(ins)
        res = values.copy()
        res.remove_all(kill)
        res.add_all(gen)
        return res
