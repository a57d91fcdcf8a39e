"""
Register transfer statements carried by CFA edges.

Only what the liveness analysis needs is modelled: which variables a
statement defines (GENS) and which it reads (USES). Expressions are kept
small; they exist so that USES can be derived from real operands.
"""

from __future__ import annotations as _

import enum
from dataclasses import dataclass, field
from typing import TypeAlias


@dataclass(frozen=True)
class Var:
    name: str
    bitwidth: int = field(default=32, compare=False)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return str(self)


@dataclass(frozen=True)
class Const:
    value: int
    bitwidth: int = 32

    def __str__(self) -> str:
        return f"{self.value}<{self.bitwidth}>"


@dataclass(frozen=True)
class Memory:
    address: Expr
    bitwidth: int = 32

    def __str__(self) -> str:
        return f"mem{self.bitwidth}[{self.address}]"


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Expr

    def __str__(self) -> str:
        return f"{self.op}{self.operand}"


@dataclass(frozen=True)
class Binary:
    op: str
    left: Expr
    right: Expr

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


Expr: TypeAlias = Var | Const | Memory | Unary | Binary

TRUE = Const(1, 1)


class BranchKind(enum.Enum):
    ORDINARY = 0
    CALL = 1
    RETURN = 2

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Assignment:
    lhs: Var
    rhs: Expr

    def __str__(self) -> str:
        return f"{self.lhs} := {self.rhs}"


@dataclass(frozen=True)
class MemoryAssignment:
    target: Memory
    value: Expr

    def __str__(self) -> str:
        return f"{self.target} := {self.value}"


@dataclass(frozen=True)
class Assume:
    condition: Expr = TRUE
    kind: BranchKind = BranchKind.ORDINARY

    def __str__(self) -> str:
        if self.kind is BranchKind.ORDINARY:
            return f"assume {self.condition}"
        return f"assume {self.condition} [{self.kind}]"


@dataclass(frozen=True)
class Skip:
    def __str__(self) -> str:
        return "skip"


@dataclass(frozen=True)
class UnknownProcedureCall:
    clobbered: frozenset[Var] = frozenset()

    def __str__(self) -> str:
        return "call ???"


@dataclass(frozen=True)
class Halt:
    def __str__(self) -> str:
        return "halt"


Statement: TypeAlias = Assignment | MemoryAssignment | Assume | Skip | UnknownProcedureCall | Halt


def free_vars_expr(expr: Expr) -> set[Var]:
    match expr:
        case Var():
            return {expr}
        case Const():
            return set()
        case Memory(address=address):
            return free_vars_expr(address)
        case Unary(operand=operand):
            return free_vars_expr(operand)
        case Binary(left=left, right=right):
            return free_vars_expr(left) | free_vars_expr(right)
        case _:
            raise NotImplementedError(f"free_vars_expr({expr!r})")


def free_vars(stmt: Statement) -> set[Var]:
    match stmt:
        case Assignment(rhs=rhs):
            return free_vars_expr(rhs)
        case MemoryAssignment(target=target, value=value):
            return free_vars_expr(target) | free_vars_expr(value)
        case Assume(condition=condition):
            return free_vars_expr(condition)
        case Skip() | Halt():
            return set()
        case UnknownProcedureCall():
            # Every architectural register; added by the analysis, which knows them.
            return set()
        case _:
            raise NotImplementedError(f"free_vars({stmt!r})")


def gens(stmt: Statement) -> set[Var]:
    match stmt:
        case Assignment(lhs=lhs):
            return {lhs}
        case UnknownProcedureCall(clobbered=clobbered):
            return set(clobbered)
        case MemoryAssignment() | Assume() | Skip() | Halt():
            return set()
        case _:
            raise NotImplementedError(f"gens({stmt!r})")
