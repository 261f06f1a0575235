# src/flowgraph_sync/core/sync/snapshot.py
"""
Snapshot e SnapshotStore — o baseline de diff.

Um Snapshot é o último estado de nós e arestas sabidamente igual ao
backend: cópias completas + hash de conteúdo por ID + viewport opcional.

Decisões arquiteturais:
    - O Snapshot é imutável: mapas expostos como MappingProxyType sobre
      cópias profundas, de modo que mutações no GraphModel nunca vazam
    - O SnapshotStore é um objeto explícito possuído pela sessão; é criado
      no load e substituído inteiro após cada save bem-sucedido
    - Navegar por versões NÃO substitui o Snapshot

Invariantes:
    - Os hashes de nó são calculados com as arestas do próprio snapshot
    - `replace` troca o baseline inteiro de uma vez

Limites explícitos:
    - Não calcula diffs (ver DiffEngine)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from ..graph.model import Edge, GraphModel, Node
from .fingerprint import edge_hash, node_hash


@dataclass(frozen=True)
class Viewport:
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "zoom": self.zoom}


def viewport_changed(
    current: Optional[Viewport],
    baseline: Optional[Viewport],
    threshold: float = 0.1,
) -> bool:
    """True se x, y ou zoom se moveram mais que `threshold` desde o baseline."""
    if current is None:
        return False
    if baseline is None:
        return True
    return (
        abs(current.x - baseline.x) > threshold
        or abs(current.y - baseline.y) > threshold
        or abs(current.zoom - baseline.zoom) > threshold
    )


@dataclass(frozen=True)
class Snapshot:
    nodes: Mapping[str, Node]
    edges: Mapping[str, Edge]
    node_hashes: Mapping[str, str]
    edge_hashes: Mapping[str, str]
    viewport: Optional[Viewport] = None

    @classmethod
    def capture(
        cls,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        viewport: Optional[Viewport] = None,
    ) -> "Snapshot":
        node_copies = {n.id: copy.deepcopy(n) for n in nodes}
        edge_copies = {e.id: copy.deepcopy(e) for e in edges}
        edge_list = list(edge_copies.values())
        return cls(
            nodes=MappingProxyType(node_copies),
            edges=MappingProxyType(edge_copies),
            node_hashes=MappingProxyType({nid: node_hash(n, edge_list) for nid, n in node_copies.items()}),
            edge_hashes=MappingProxyType({eid: edge_hash(e) for eid, e in edge_copies.items()}),
            viewport=viewport,
        )

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls.capture((), ())

    def edge_list(self) -> List[Edge]:
        return list(self.edges.values())

    def with_viewport(self, viewport: Optional[Viewport]) -> "Snapshot":
        return Snapshot(
            nodes=self.nodes,
            edges=self.edges,
            node_hashes=self.node_hashes,
            edge_hashes=self.edge_hashes,
            viewport=viewport,
        )


@dataclass
class SnapshotStore:
    """Dono do baseline corrente de uma sessão."""

    current: Snapshot = field(default_factory=Snapshot.empty)
    generation: int = 0

    def replace(self, snapshot: Snapshot) -> None:
        self.current = snapshot
        self.generation += 1

    def capture_from(self, graph: GraphModel, viewport: Optional[Viewport] = None) -> Snapshot:
        """Captura o GraphModel como novo baseline (mantém o viewport se omitido)."""
        vp = viewport if viewport is not None else self.current.viewport
        snapshot = Snapshot.capture(graph.get_all_nodes(), graph.get_all_edges(), vp)
        self.replace(snapshot)
        return snapshot

    def set_viewport(self, viewport: Optional[Viewport]) -> None:
        # viewport não é baseline de grafo; não incrementa a geração
        self.current = self.current.with_viewport(viewport)
