# src/flowgraph_sync/core/graph/branches.py
"""
Branch map derivado de condition nodes.

O `data.branchNodes` guardado no nó é apenas um cache da última
observação. A verdade é recalculada a partir dos nomes declarados e do
conjunto atual de arestas: para cada nome, o handle esperado é
`nodeId:branch:<nome>`, e o alvo é o `target` da aresta com esse
`(source, sourceHandle)`.

Invariantes:
    - Todo branch declarado aparece no resultado, com ou sem alvo
    - Alvos são remapeados por `id_map` (temporário → persistido) quando
      fornecido
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from .handles import condition_branch
from .model import Edge, Node, NodeType


def calculate_branch_map(
    node: Node,
    edges: Iterable[Edge],
    id_map: Optional[Mapping[str, str]] = None,
) -> Optional[Dict[str, Dict[str, Any]]]:
    """
    Recalcula o branch map de um nó.

    Returns:
        None se o nó não declara branches; caso contrário um dict
        `nome → {name, condition, handlerId, targetNodeId}`, com
        `targetNodeId` None para branches sem aresta.
    """
    declared = node.data.get("branchNodes")
    if not isinstance(declared, dict) or not declared:
        return None

    edges = list(edges)
    result: Dict[str, Dict[str, Any]] = {}

    for name, cfg in declared.items():
        cfg = cfg if isinstance(cfg, dict) else {}
        expected = condition_branch(node.id, name)
        match = next(
            (e for e in edges if e.source == node.id and e.source_handle == expected),
            None,
        )
        target = match.target if match is not None else None
        if target is not None and id_map:
            target = id_map.get(target, target)

        result[name] = {
            "name": cfg.get("name", name),
            "condition": cfg.get("condition") or "",
            "handlerId": cfg.get("handlerId"),
            "targetNodeId": target,
        }

    return result


def derived_branch_map(node: Node, edges: Iterable[Edge]) -> Optional[Dict[str, Dict[str, Any]]]:
    """Branch map apenas para condition nodes; outros tipos retornam None."""
    if node.type != NodeType.CONDITION_CHECKER.value:
        return None
    return calculate_branch_map(node, edges)
