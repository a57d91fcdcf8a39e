from __future__ import annotations as _

import typing

from rtldce.graph_utils import Location
from rtldce.rtl import Statement

T = typing.TypeVar("T")


class Lattice(typing.Protocol[T]):  # pragma: no cover

    @classmethod
    def name(cls) -> str:
        raise NotImplementedError

    def bottom(self) -> T:
        raise NotImplementedError

    def join(self, left: T, right: T) -> T:
        raise NotImplementedError

    def join_all(self, inv: T, *invs: T) -> T:
        for arg in invs:
            inv = self.join(inv, arg)
        return inv

    def is_less_than(self, left: T, right: T) -> bool:
        raise NotImplementedError


class InstructionLattice(Lattice[T], typing.Protocol[T]):
    backward: bool

    def transfer(self, values: T, ins: Statement, location: Location) -> T:
        raise NotImplementedError

    def initial(self) -> T:
        return self.bottom()


InvariantMap: typing.TypeAlias = dict[Location, T]
