# src/flowgraph_sync/core/sync/fingerprint.py
"""
Fingerprint de conteúdo de nós e arestas.

O DiffEngine compara entidades pelo hash do seu *subconjunto de negócio*:
apenas campos destinados à persistência participam. Campos de UI
(seleção, `dragging`, `data.loading`, lista de filhos paralelos exibida
no canvas) nunca mudam o hash.

Subconjunto de negócio de um nó:
    - position {x, y} (normalizados para float)
    - type
    - data.<campo> para cada campo em NODE_DATA_FIELDS, com os defaults que
      o backend assume (label → id do nó, description → "", config → {})
    - data.branchNodes *derivado* das arestas (apenas condition nodes)

Subconjunto de negócio de uma aresta:
    - source, target, sourceHandle, targetHandle, type (visual), label,
      animated, style, data (sem o eco `backendType`)

Invariantes:
    - Mesma entrada, mesmo hash (serialização canônica + SHA-256)
    - Hash muda se e somente se um campo de negócio muda
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, Optional, Tuple

from ..canonical import digest
from ..graph.branches import derived_branch_map
from ..graph.model import Edge, Node


NODE_DATA_FIELDS: Tuple[str, ...] = (
    "label",
    "description",
    "config",
    "prompt",
    "processorLanguage",
    "processorCode",
    "apiConfig",
    "parallelConfig",
    "workflowApplicationId",
    "async",
    "timeout",
    "retryCount",
    "color",
)

# Valores que o backend assume quando o campo está ausente
NODE_DATA_DEFAULTS: Dict[str, Any] = {"description": "", "config": {}}

# Ecos de servidor em edge.data que não são estado de negócio
EDGE_DATA_ECHO_KEYS: Tuple[str, ...] = ("backendType",)


def _num(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    return value


def node_business_subset(node: Node, edges: Iterable[Edge]) -> Dict[str, Any]:
    data = node.data or {}
    subset_data: Dict[str, Any] = {}
    for name in NODE_DATA_FIELDS:
        value = data.get(name)
        if value is None and name in NODE_DATA_DEFAULTS:
            value = NODE_DATA_DEFAULTS[name]
        subset_data[name] = copy.deepcopy(value)
    subset_data["label"] = data.get("label") or node.id
    subset_data["branchNodes"] = derived_branch_map(node, edges)
    return {
        "position": {"x": _num(node.position.x), "y": _num(node.position.y)},
        "type": node.type,
        "data": subset_data,
    }


def edge_data_subset(edge: Edge) -> Dict[str, Any]:
    return {
        k: copy.deepcopy(v)
        for k, v in (edge.data or {}).items()
        if k not in EDGE_DATA_ECHO_KEYS
    }


def edge_business_subset(edge: Edge) -> Dict[str, Any]:
    return {
        "source": edge.source,
        "target": edge.target,
        "sourceHandle": edge.source_handle,
        "targetHandle": edge.target_handle,
        "type": edge.type,
        "label": edge.label,
        "animated": bool(edge.animated),
        "style": copy.deepcopy(edge.style),
        "data": edge_data_subset(edge),
    }


def content_hash(subset: Dict[str, Any]) -> str:
    return digest(_normalize(subset))


def node_hash(node: Node, edges: Iterable[Edge]) -> str:
    return content_hash(node_business_subset(node, edges))


def edge_hash(edge: Edge) -> str:
    return content_hash(edge_business_subset(edge))


def same_value(a: Optional[Any], b: Optional[Any]) -> bool:
    """Igualdade estrutural pela forma canônica (1 == 1.0, ordem de chaves irrelevante)."""
    return digest(_normalize(a)) == digest(_normalize(b))


def _normalize(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return _num(value)
