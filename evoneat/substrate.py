"""Substrate value type: ordered nodes and connections of one network."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .errors import StructuralError
from .genes import ConnectionGene, NodeGene, NodeType, Position


@dataclass(slots=True)
class Substrate:
    """Nodes sorted by position and connections sorted by ``(source, target)``."""

    nodes: list[NodeGene] = field(default_factory=list)
    conns: list[ConnectionGene] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        nodes: Iterable[NodeGene],
        conns: Iterable[ConnectionGene] = (),
    ) -> Substrate:
        """Create a sorted substrate from unordered genes."""
        substrate = cls(nodes=list(nodes), conns=list(conns))
        substrate.sort()
        return substrate

    @property
    def complexity(self) -> int:
        return len(self.nodes) + len(self.conns)

    def sort(self) -> None:
        """Restore the ordering of nodes and connections in place."""
        self.nodes.sort(key=lambda node: node.position)
        self.conns.sort(key=lambda conn: conn.key)

    def copy(self) -> Substrate:
        # genes are frozen, so copying the lists is enough
        return Substrate(nodes=list(self.nodes), conns=list(self.conns))

    def node_map(self) -> dict[Position, NodeGene]:
        return {node.position: node for node in self.nodes}

    def conn_map(self) -> dict[tuple[Position, Position], ConnectionGene]:
        return {conn.key: conn for conn in self.conns}

    def nodes_of(self, node_type: NodeType) -> list[NodeGene]:
        return [node for node in self.nodes if node.type is node_type]

    def validate(self) -> None:
        """Raise :class:`StructuralError` if any substrate invariant is broken."""
        for previous, current in zip(self.nodes, self.nodes[1:]):
            if not previous.position < current.position:
                msg = f"Nodes are not strictly ascending at {current.position}."
                raise StructuralError(msg)
        for previous, current in zip(self.conns, self.conns[1:]):
            if not previous.key < current.key:
                msg = (
                    "Connections are not strictly ascending at "
                    f"{current.source} -> {current.target}."
                )
                raise StructuralError(msg)
        nodes = self.node_map()
        for conn in self.conns:
            source = nodes.get(conn.source)
            target = nodes.get(conn.target)
            if source is None or target is None:
                msg = f"Connection {conn.source} -> {conn.target} references a missing node."
                raise StructuralError(msg)
            if source.type is NodeType.OUTPUT:
                msg = f"Output node {conn.source} cannot be a connection source."
                raise StructuralError(msg)
            if target.type is NodeType.INPUT:
                msg = f"Input node {conn.target} cannot be a connection target."
                raise StructuralError(msg)


__all__ = ["Substrate"]
