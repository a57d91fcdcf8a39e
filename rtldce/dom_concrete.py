from __future__ import annotations

import typing

from rtldce.rtl import Var


class Universe:
    """Dense ids for variables, assigned on first use."""

    _ids: dict[Var, int]
    _vars: list[Var]

    def __init__(self, variables: typing.Iterable[Var] = ()) -> None:
        self._ids = {}
        self._vars = []
        for v in sorted(variables, key=lambda v: v.name):
            self.id(v)

    def id(self, v: Var) -> int:
        i = self._ids.get(v)
        if i is None:
            i = self._ids[v] = len(self._vars)
            self._vars.append(v)
        return i

    def var(self, i: int) -> Var:
        return self._vars[i]

    def __len__(self) -> int:
        return len(self._vars)

    def __contains__(self, v: object) -> bool:
        return v in self._ids


class VarSet:
    """Mutable set of variables stored as a bit vector over a Universe."""

    __slots__ = ("universe", "_bits")

    universe: Universe
    _bits: int

    def __init__(self, universe: Universe, s: typing.Optional[typing.Iterable[Var]] = None) -> None:
        self.universe = universe
        self._bits = 0
        if s is not None:
            self.add_all(s)

    def __repr__(self) -> str:
        items = ", ".join(sorted(v.name for v in self))
        return f"VarSet({items})"

    def copy(self) -> VarSet:
        result = VarSet(self.universe)
        result._bits = self._bits
        return result

    def __copy__(self) -> VarSet:
        return self.copy()

    def __deepcopy__(self, memodict=None) -> VarSet:
        result = self.copy()
        if memodict is not None:
            memodict[id(self)] = result
        return result

    def _mask(self, other: VarSet | typing.Iterable[Var]) -> int:
        if isinstance(other, VarSet):
            if other.universe is not self.universe:
                raise ValueError("VarSets over different universes")
            return other._bits
        mask = 0
        for v in other:
            mask |= 1 << self.universe.id(v)
        return mask

    def add(self, v: Var) -> None:
        self._bits |= 1 << self.universe.id(v)

    def add_all(self, other: VarSet | typing.Iterable[Var]) -> None:
        self._bits |= self._mask(other)

    def remove(self, v: Var) -> None:
        self._bits &= ~(1 << self.universe.id(v))

    def remove_all(self, other: VarSet | typing.Iterable[Var]) -> None:
        self._bits &= ~self._mask(other)

    def __contains__(self, v: object) -> bool:
        if v not in self.universe:
            return False
        return bool(self._bits >> self.universe.id(typing.cast(Var, v)) & 1)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VarSet) and self.universe is other.universe and self._bits == other._bits

    __hash__ = None  # type: ignore

    def __le__(self, other: VarSet) -> bool:
        return self._bits & ~self._mask(other) == 0

    def is_subset(self, other: VarSet) -> bool:
        return self <= other

    def __bool__(self) -> bool:
        return self._bits != 0

    def __len__(self) -> int:
        return self._bits.bit_count()

    def __iter__(self) -> typing.Iterator[Var]:
        bits = self._bits
        i = 0
        while bits:
            if bits & 1:
                yield self.universe.var(i)
            bits >>= 1
            i += 1

    def as_set(self) -> frozenset[Var]:
        return frozenset(self)
