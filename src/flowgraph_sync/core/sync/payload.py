# src/flowgraph_sync/core/sync/payload.py
"""
Mapeamento entre entidades do canvas e o formato de persistência.

Este módulo define o contrato de dados trocado com o colaborador de
persistência:
    - requests de criação/atualização de nós e arestas
    - o payload de batch save montado a partir de um GraphDiff
    - a resposta do batch save (mapas de ID + estatísticas)
    - o mapeamento inverso (registro do backend → Node / Edge)

Decisões arquiteturais:
    - O mapeamento de campos de nó é declarativo (FIELD_MAPPINGS); incluir
      um campo novo é acrescentar uma linha na tabela
    - `branchNodes` enviado é sempre o derivado das arestas atuais
    - O tipo de backend da aresta é derivado de `data`; o tipo visual viaja
      em `data.vueFlowType` e é restaurado na volta

Invariantes:
    - node → request → node preserva o subconjunto de negócio
    - Campos ausentes não são enviados (exceto os que têm default)

Limites explícitos:
    - Não executa chamadas de rede
    - Não interpreta falhas (ver EditorSession.save)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..graph.branches import derived_branch_map
from ..graph.model import Edge, Node, Position
from .diff import GraphDiff


@dataclass(frozen=True)
class FieldMapping:
    frontend_path: str
    backend_key: str
    transform: Optional[Callable[[Any, Node], Any]] = None
    default: Any = None
    required_on_create: bool = False


FIELD_MAPPINGS: List[FieldMapping] = [
    FieldMapping("data.label", "name", transform=lambda value, node: value or node.id, required_on_create=True),
    FieldMapping("type", "type", required_on_create=True),
    FieldMapping("data.description", "description", default=""),
    FieldMapping("data.config", "config", default={}),
    FieldMapping("position.x", "positionX"),
    FieldMapping("position.y", "positionY"),
    FieldMapping("data.prompt", "prompt"),
    FieldMapping("data.processorLanguage", "processorLanguage"),
    FieldMapping("data.processorCode", "processorCode"),
    FieldMapping("data.apiConfig", "apiConfig"),
    FieldMapping("data.parallelConfig", "parallelConfig"),
    FieldMapping("data.branchNodes", "branchNodes"),
    FieldMapping("data.workflowApplicationId", "workflowApplicationId"),
    FieldMapping("data.async", "async"),
    FieldMapping("data.timeout", "timeout"),
    FieldMapping("data.retryCount", "retryCount"),
    FieldMapping("data.color", "color"),
]

_BY_PATH: Dict[str, FieldMapping] = {m.frontend_path: m for m in FIELD_MAPPINGS}


def _node_view(node: Node, edges: Optional[Iterable[Edge]]) -> Dict[str, Any]:
    view = {
        "id": node.id,
        "type": node.type,
        "position": node.position.to_dict(),
        "data": copy.deepcopy(node.data),
    }
    if edges is not None:
        derived = derived_branch_map(node, edges)
        if derived is not None:
            view["data"]["branchNodes"] = derived
    return view


def _get_path(obj: Any, path: str) -> Any:
    value = obj
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _resolve(mapping: FieldMapping, view: Dict[str, Any], node: Node) -> Any:
    value = _get_path(view, mapping.frontend_path)
    if mapping.transform is not None:
        value = mapping.transform(value, node)
    if value is None and mapping.default is not None:
        value = copy.deepcopy(mapping.default)
    return value


# ---------------------------------------------------------------------------
# Nós
# ---------------------------------------------------------------------------

def node_to_create_request(
    node: Node,
    application_id: str,
    edges: Optional[Iterable[Edge]] = None,
) -> Dict[str, Any]:
    """Request de criação; com `edges`, `branchNodes` é o derivado atual."""
    view = _node_view(node, edges)
    request: Dict[str, Any] = {"applicationId": application_id}
    for mapping in FIELD_MAPPINGS:
        value = _resolve(mapping, view, node)
        if value is not None:
            request[mapping.backend_key] = value
    return request


def node_to_update_request(
    node: Node,
    changed_fields: Iterable[str],
    edges: Optional[Iterable[Edge]] = None,
) -> Dict[str, Any]:
    """Request de atualização contendo apenas os campos alterados."""
    view = _node_view(node, edges)
    request: Dict[str, Any] = {}
    for changed in changed_fields:
        paths = ["position.x", "position.y"] if changed == "position" else [changed]
        for path in paths:
            mapping = _BY_PATH.get(path)
            if mapping is None:
                continue
            value = _resolve(mapping, view, node)
            if value is not None:
                request[mapping.backend_key] = value
    return request


def node_from_response(record: Mapping[str, Any]) -> Node:
    data: Dict[str, Any] = {"label": record.get("name")}
    for mapping in FIELD_MAPPINGS:
        if not mapping.frontend_path.startswith("data.") or mapping.backend_key == "name":
            continue
        key = mapping.frontend_path[len("data."):]
        value = record.get(mapping.backend_key)
        if value is not None:
            data[key] = copy.deepcopy(value)
    return Node(
        id=str(record["id"]),
        type=record.get("type", ""),
        position=Position(x=record.get("positionX") or 0, y=record.get("positionY") or 0),
        data=data,
    )


# ---------------------------------------------------------------------------
# Arestas
# ---------------------------------------------------------------------------

def edge_to_create_request(edge: Edge, application_id: str) -> Dict[str, Any]:
    data = {k: v for k, v in copy.deepcopy(edge.data).items() if k != "backendType"}
    return {
        "applicationId": application_id,
        "source": edge.source,
        "target": edge.target,
        "sourceHandle": edge.source_handle,
        "targetHandle": edge.target_handle,
        "type": edge.kind.value,
        "label": edge.label,
        "branchName": edge.branch_name,
        "animated": edge.animated,
        "style": copy.deepcopy(edge.style),
        "data": {**data, "vueFlowType": edge.type},
    }


def edge_from_response(record: Mapping[str, Any]) -> Edge:
    raw_data = copy.deepcopy(record.get("data") or {})
    visual_type = raw_data.pop("vueFlowType", None)
    data: Dict[str, Any] = {}
    if record.get("branchName"):
        data["branchName"] = record["branchName"]
    data.update(raw_data)
    data["backendType"] = record.get("type") or "default"
    return Edge(
        id=str(record["id"]),
        source=str(record["source"]),
        target=str(record["target"]),
        source_handle=record.get("sourceHandle"),
        target_handle=record.get("targetHandle"),
        type=visual_type or "smoothstep",
        label=record.get("label"),
        animated=bool(record.get("animated", False)),
        style=copy.deepcopy(record.get("style")),
        data=data,
    )


# ---------------------------------------------------------------------------
# Batch save
# ---------------------------------------------------------------------------

@dataclass
class BatchSavePayload:
    application_id: str
    node_temp_ids: List[str] = field(default_factory=list)
    edge_temp_ids: List[str] = field(default_factory=list)
    nodes_to_create: List[Dict[str, Any]] = field(default_factory=list)
    nodes_to_update: List[Dict[str, Any]] = field(default_factory=list)
    node_ids_to_delete: List[str] = field(default_factory=list)
    edges_to_create: List[Dict[str, Any]] = field(default_factory=list)
    edges_to_update: List[Dict[str, Any]] = field(default_factory=list)
    edge_ids_to_delete: List[str] = field(default_factory=list)
    total_fields_changed: int = 0

    @property
    def is_empty(self) -> bool:
        return not (
            self.nodes_to_create
            or self.nodes_to_update
            or self.node_ids_to_delete
            or self.edges_to_create
            or self.edges_to_update
            or self.edge_ids_to_delete
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applicationId": self.application_id,
            "nodeTempIds": list(self.node_temp_ids),
            "edgeTempIds": list(self.edge_temp_ids),
            "nodesToCreate": copy.deepcopy(self.nodes_to_create),
            "nodesToUpdate": copy.deepcopy(self.nodes_to_update),
            "nodeIdsToDelete": list(self.node_ids_to_delete),
            "edgesToCreate": copy.deepcopy(self.edges_to_create),
            "edgesToUpdate": copy.deepcopy(self.edges_to_update),
            "edgeIdsToDelete": list(self.edge_ids_to_delete),
        }


def build_batch_save_payload(
    application_id: str,
    diff: GraphDiff,
    edges: Iterable[Edge],
) -> BatchSavePayload:
    """
    Monta o payload de batch save a partir de um GraphDiff.

    Args:
        application_id: aplicação dona do grafo.
        diff: resultado do DiffEngine contra o baseline corrente.
        edges: arestas vivas (para derivar `branchNodes`).
    """
    edges = list(edges)
    payload = BatchSavePayload(application_id=application_id)

    for node in diff.nodes.created:
        payload.node_temp_ids.append(node.id)
        payload.nodes_to_create.append(node_to_create_request(node, application_id, edges))

    for entry in diff.nodes.updated:
        payload.nodes_to_update.append(
            {
                "id": entry.id,
                "changedFields": list(entry.changed_fields),
                "data": node_to_update_request(entry.entity, entry.changed_fields, edges),
            }
        )
        payload.total_fields_changed += len(entry.changed_fields)

    payload.node_ids_to_delete = list(diff.nodes.deleted)

    for edge in diff.edges.created:
        payload.edge_temp_ids.append(edge.id)
        payload.edges_to_create.append(edge_to_create_request(edge, application_id))

    for entry in diff.edges.updated:
        payload.edges_to_update.append(
            {
                "id": entry.id,
                "changedFields": list(entry.changed_fields),
                "data": copy.deepcopy(entry.changes),
            }
        )
        payload.total_fields_changed += len(entry.changed_fields)

    payload.edge_ids_to_delete = list(diff.edges.deleted)
    return payload


@dataclass(frozen=True)
class SaveStats:
    nodes_created: int = 0
    nodes_updated: int = 0
    nodes_deleted: int = 0
    edges_created: int = 0
    edges_updated: int = 0
    edges_deleted: int = 0
    total_fields_changed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "nodesCreated": self.nodes_created,
            "nodesUpdated": self.nodes_updated,
            "nodesDeleted": self.nodes_deleted,
            "edgesCreated": self.edges_created,
            "edgesUpdated": self.edges_updated,
            "edgesDeleted": self.edges_deleted,
            "totalFieldsChanged": self.total_fields_changed,
        }


@dataclass(frozen=True)
class BatchSaveResponse:
    success: bool
    node_id_mapping: Dict[str, str]
    edge_id_mapping: Dict[str, str]
    stats: SaveStats
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], *, total_fields_changed: int = 0) -> "BatchSaveResponse":
        data = raw.get("data") or {}
        stats = data.get("stats") or {}
        return cls(
            success=bool(raw.get("success", False)),
            node_id_mapping={str(k): str(v) for k, v in (data.get("nodeIdMapping") or {}).items()},
            edge_id_mapping={str(k): str(v) for k, v in (data.get("edgeIdMapping") or {}).items()},
            stats=SaveStats(
                nodes_created=int(stats.get("nodesCreated", 0)),
                nodes_updated=int(stats.get("nodesUpdated", 0)),
                nodes_deleted=int(stats.get("nodesDeleted", 0)),
                edges_created=int(stats.get("edgesCreated", 0)),
                edges_updated=int(stats.get("edgesUpdated", 0)),
                edges_deleted=int(stats.get("edgesDeleted", 0)),
                total_fields_changed=total_fields_changed,
            ),
            message=raw.get("message"),
        )
