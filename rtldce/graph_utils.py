from __future__ import annotations as _

import typing
from dataclasses import dataclass
from itertools import groupby
from typing import Iterable, Optional

import networkx as nx

if typing.TYPE_CHECKING:
    from rtldce.rtl import Statement


@dataclass(frozen=True, order=True)
class Location:
    address: int
    index: int = 0

    def __str__(self) -> str:
        return f"{self.address:08x}_{self.index}"

    def __repr__(self) -> str:
        return f"Location({self})"


@dataclass(eq=False)
class Edge:
    """A CFA edge. Only `target` ever changes, when the edge is redirected
    during contraction, so equality and hashing are by identity."""

    source: Location
    target: Location
    statement: Statement

    def sort_key(self) -> tuple[Location, Location, str]:
        return self.source, self.target, str(self.statement)

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}: {self.statement}"


def order_edges(edges: Iterable[Edge]) -> list[Edge]:
    """Drop duplicate edges (same endpoints, equal statement) and sort the rest."""
    unique: dict[tuple[Location, Location, Statement], Edge] = {}
    for edge in edges:
        if not isinstance(edge.source, Location) or not isinstance(edge.target, Location):
            raise TypeError(f"Edge endpoints must be locations: {edge!r}")
        unique.setdefault((edge.source, edge.target, edge.statement), edge)
    return sorted(unique.values(), key=Edge.sort_key)


class EdgeIndex:
    """Incoming and outgoing edges by location.

    Backed by a MultiDiGraph keyed by the edges themselves; its predecessor
    and successor adjacency maps are the two views, and every mutation goes
    through networkx so both change together.
    """

    graph: nx.MultiDiGraph

    def __init__(self, edges: Iterable[Edge] = ()) -> None:
        self.graph = nx.MultiDiGraph()
        for edge in edges:
            self.add(edge)

    def add(self, edge: Edge) -> None:
        self.graph.add_edge(edge.source, edge.target, key=edge)

    def remove(self, edge: Edge) -> None:
        self.graph.remove_edge(edge.source, edge.target, key=edge)

    def redirect(self, edge: Edge, target: Location) -> None:
        self.remove(edge)
        edge.target = target
        self.add(edge)

    def has_copy(self, edge: Edge) -> bool:
        """Whether another edge has the same endpoints and an equal statement."""
        parallel = self.graph.get_edge_data(edge.source, edge.target, default={})
        return any(other is not edge and other.statement == edge.statement for other in parallel)

    def discard_if_isolated(self, location: Location) -> bool:
        if location in self.graph and self.graph.degree(location) == 0:
            self.graph.remove_node(location)
            return True
        return False

    @property
    def locations(self) -> list[Location]:
        return list(self.graph.nodes)

    def __contains__(self, location: object) -> bool:
        return location in self.graph

    def __len__(self) -> int:
        return self.graph.number_of_edges()

    def incoming(self, location: Location) -> list[Edge]:
        if location not in self.graph:
            return []
        return [edge for _, _, edge in self.graph.in_edges(location, keys=True)]

    def outgoing(self, location: Location) -> list[Edge]:
        if location not in self.graph:
            return []
        return [edge for _, _, edge in self.graph.out_edges(location, keys=True)]

    def out_degree(self, location: Location) -> int:
        if location not in self.graph:
            return 0
        return self.graph.out_degree(location)

    def sinks(self) -> set[Location]:
        return {loc for loc in self.graph.nodes if self.graph.out_degree(loc) == 0}


def pretty_print_cfa(edges: Iterable[Edge], live: Optional[typing.Mapping[Location, object]] = None) -> None:
    for source, group in groupby(sorted(edges, key=Edge.sort_key), key=lambda e: e.source):
        print(source, ":")
        if live is not None and source in live:
            print(f"\tlive: {live[source]}")
        for edge in group:
            print(f"\t-> {edge.target}\t{edge.statement}")
        print()
