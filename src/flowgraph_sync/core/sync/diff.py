# src/flowgraph_sync/core/sync/diff.py
"""
DiffEngine — classificação created / updated / deleted contra o baseline.

Regra por entidade (simétrica para nós e arestas):
    - ID temporário → created, sem comparar com o snapshot
    - ID persistido ausente do snapshot → created
    - Hash de conteúdo diferente do hash do snapshot → updated, com a
      lista exata de campos de negócio alterados (caminhos pontuados)
      e os novos valores
    - ID do snapshot sem correspondente vivo → deleted

Decisões arquiteturais:
    - O diff é uma função total e pura; nunca falha sobre entrada bem-formada
    - Arestas pendentes (endpoint inexistente) não são validadas aqui
    - O branch map é sempre rederivado das arestas, dos dois lados; o
      `branchNodes` guardado no nó é só cache

Limites explícitos:
    - Não monta o payload de persistência (ver payload.py)
    - Não muta GraphModel nem SnapshotStore
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Generic, Iterable, List, Optional, TypeVar

from ..graph.model import Edge, Node, is_temporary_id
from .fingerprint import (
    NODE_DATA_FIELDS,
    edge_data_subset,
    edge_hash,
    node_business_subset,
    node_hash,
    same_value,
)
from .snapshot import Snapshot

if TYPE_CHECKING:
    from ..session.context import SessionContext


T = TypeVar("T", Node, Edge)


@dataclass(frozen=True)
class FieldChanges:
    changed_fields: List[str]
    changes: Dict[str, Any]


@dataclass(frozen=True)
class UpdatedEntry(Generic[T]):
    entity: T
    changed_fields: List[str]
    changes: Dict[str, Any]

    @property
    def id(self) -> str:
        return self.entity.id


@dataclass
class EntityDiff(Generic[T]):
    created: List[T] = field(default_factory=list)
    updated: List[UpdatedEntry] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def counts(self) -> Dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
        }


@dataclass
class GraphDiff:
    nodes: EntityDiff = field(default_factory=EntityDiff)
    edges: EntityDiff = field(default_factory=EntityDiff)

    @property
    def has_changes(self) -> bool:
        return not (self.nodes.is_empty and self.edges.is_empty)

    @property
    def total_fields_changed(self) -> int:
        return sum(len(u.changed_fields) for u in self.nodes.updated) + sum(
            len(u.changed_fields) for u in self.edges.updated
        )

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {"nodes": self.nodes.counts(), "edges": self.edges.counts()}

    def to_dict(self) -> Dict[str, Any]:
        """Forma serializável, usada no broadcast do modo realtime."""

        def _entity(diff: EntityDiff) -> Dict[str, Any]:
            return {
                "created": [e.to_dict() for e in diff.created],
                "updated": [
                    {"id": u.id, "changedFields": list(u.changed_fields), "changes": copy.deepcopy(u.changes)}
                    for u in diff.updated
                ],
                "deleted": list(diff.deleted),
            }

        return {"nodes": _entity(self.nodes), "edges": _entity(self.edges)}


# ---------------------------------------------------------------------------
# Comparadores de campo
# ---------------------------------------------------------------------------

def node_field_changes(
    live: Node,
    live_edges: Iterable[Edge],
    baseline: Node,
    baseline_edges: Iterable[Edge],
) -> Optional[FieldChanges]:
    changed: List[str] = []
    changes: Dict[str, Any] = {}
    current = node_business_subset(live, live_edges)
    previous = node_business_subset(baseline, baseline_edges)

    if not same_value(current["position"], previous["position"]):
        changes["position"] = live.position.to_dict()
        changed.append("position")

    if current["type"] != previous["type"]:
        changes["type"] = live.type
        changed.append("type")

    data_changes: Dict[str, Any] = {}
    for name in NODE_DATA_FIELDS + ("branchNodes",):
        value = current["data"][name]
        if not same_value(value, previous["data"][name]):
            data_changes[name] = value
            changed.append(f"data.{name}")

    if data_changes:
        changes["data"] = data_changes

    return FieldChanges(changed, changes) if changed else None


def edge_field_changes(live: Edge, baseline: Edge) -> Optional[FieldChanges]:
    changed: List[str] = []
    changes: Dict[str, Any] = {}

    def _mark(name: str, value: Any) -> None:
        changes[name] = value
        changed.append(name)

    if live.source != baseline.source:
        _mark("source", live.source)
    if live.target != baseline.target:
        _mark("target", live.target)
    if live.source_handle != baseline.source_handle:
        _mark("sourceHandle", live.source_handle)
    if live.target_handle != baseline.target_handle:
        _mark("targetHandle", live.target_handle)
    if live.kind != baseline.kind:
        _mark("type", live.kind.value)
    if live.label != baseline.label:
        _mark("label", live.label)
    if live.branch_name != baseline.branch_name:
        _mark("branchName", live.branch_name)
    if bool(live.animated) != bool(baseline.animated):
        _mark("animated", bool(live.animated))
    if not same_value(live.style, baseline.style):
        _mark("style", copy.deepcopy(live.style))

    live_data = edge_data_subset(live)
    if live.type != baseline.type:
        changes["data"] = {**live_data, "vueFlowType": live.type}
        changed.append("data.vueFlowType")
    elif not same_value(live_data, edge_data_subset(baseline)):
        changes["data"] = {**live_data, "vueFlowType": live.type}
        changed.append("data")

    return FieldChanges(changed, changes) if changed else None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class DiffEngine:
    """
    Calcula GraphDiff entre o grafo vivo e um Snapshot.

    Args:
        ctx: SessionContext opcional; recebe um evento `diff` por cálculo
            com mudanças.
        persisted_pattern: regex de ID persistido (padrão `^\\d+$`).
    """

    def __init__(self, ctx: Optional["SessionContext"] = None, persisted_pattern: Optional[str] = None) -> None:
        self.ctx = ctx
        self.persisted_pattern = persisted_pattern

    def _is_temporary(self, entity_id: str) -> bool:
        return is_temporary_id(entity_id, self.persisted_pattern)

    def diff(self, live_nodes: Iterable[Node], live_edges: Iterable[Edge], snapshot: Snapshot) -> GraphDiff:
        live_nodes = list(live_nodes)
        live_edges = list(live_edges)
        baseline_edges = snapshot.edge_list()
        result = GraphDiff()

        live_node_ids = set()
        for node in live_nodes:
            live_node_ids.add(node.id)
            if self._is_temporary(node.id) or node.id not in snapshot.node_hashes:
                result.nodes.created.append(node)
                continue
            if node_hash(node, live_edges) == snapshot.node_hashes[node.id]:
                continue
            fc = node_field_changes(node, live_edges, snapshot.nodes[node.id], baseline_edges)
            if fc is not None:
                result.nodes.updated.append(UpdatedEntry(node, fc.changed_fields, fc.changes))

        result.nodes.deleted = [nid for nid in snapshot.nodes if nid not in live_node_ids]

        live_edge_ids = set()
        for edge in live_edges:
            live_edge_ids.add(edge.id)
            if self._is_temporary(edge.id) or edge.id not in snapshot.edge_hashes:
                result.edges.created.append(edge)
                continue
            if edge_hash(edge) == snapshot.edge_hashes[edge.id]:
                continue
            fc = edge_field_changes(edge, snapshot.edges[edge.id])
            if fc is not None:
                result.edges.updated.append(UpdatedEntry(edge, fc.changed_fields, fc.changes))

        result.edges.deleted = [eid for eid in snapshot.edges if eid not in live_edge_ids]

        if self.ctx is not None and result.has_changes:
            self.ctx.log(scope="diff", level="debug", message="diff computed", summary=result.summary())

        return result


def compute_diff(live_nodes: Iterable[Node], live_edges: Iterable[Edge], snapshot: Snapshot) -> GraphDiff:
    """Atalho funcional para `DiffEngine().diff(...)`."""
    return DiffEngine().diff(live_nodes, live_edges, snapshot)
