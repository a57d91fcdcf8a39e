from __future__ import annotations as _

import bisect
from dataclasses import dataclass, field
from typing import Iterable

from rtldce.arch import Architecture


class AddressRanges:
    """A set of half-open address ranges ``[start, end)``."""

    _starts: list[int]
    _ends: list[int]

    def __init__(self, ranges: Iterable[tuple[int, int]] = ()) -> None:
        merged: list[tuple[int, int]] = []
        for start, end in sorted(ranges):
            if start >= end:
                raise ValueError(f"Empty address range [{start:#x}, {end:#x})")
            if merged and start <= merged[-1][1]:
                merged[-1] = (merged[-1][0], max(merged[-1][1], end))
            else:
                merged.append((start, end))
        self._starts = [start for start, _ in merged]
        self._ends = [end for _, end in merged]

    def __contains__(self, address: int) -> bool:
        i = bisect.bisect_right(self._starts, address) - 1
        return i >= 0 and address < self._ends[i]

    def __iter__(self):
        return iter(zip(self._starts, self._ends))

    def __len__(self) -> int:
        return len(self._starts)

    def __repr__(self) -> str:
        items = ", ".join(f"[{s:#x}, {e:#x})" for s, e in self)
        return f"AddressRanges({items})"


@dataclass
class Program:
    """What the pass needs to know about the program being analyzed."""

    architecture: Architecture
    stubs: AddressRanges = field(default_factory=AddressRanges)
    harness: AddressRanges = field(default_factory=AddressRanges)

    def is_stub(self, address: int) -> bool:
        return address in self.stubs

    def in_harness(self, address: int) -> bool:
        return address in self.harness
