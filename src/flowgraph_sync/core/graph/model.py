# src/flowgraph_sync/core/graph/model.py
"""
GraphModel — representação em memória do grafo vivo do editor.

Este módulo define:
    - NodeType: conjunto fechado de tipos de nó
    - Node / Edge: entidades do canvas (campos de negócio + campos de UI)
    - GraphModel: conjunto ordenado de nós e arestas de uma sessão
    - classificação de IDs (temporário vs. persistido)
    - templates de nó e cunhagem de IDs temporários

Decisões arquiteturais:
    - Um ID é *persistido* se for puramente numérico; qualquer outro ID é
      *temporário*. Essa distinção é identidade, não cosmética.
    - O `kind` de uma aresta (default | branch | parallel) é derivado de
      `data`, nunca armazenado como verdade
    - GraphModel é possuído por uma única sessão; não há locking

Invariantes:
    - IDs de nó e de aresta são únicos dentro do modelo
    - Remover um nó remove as arestas ligadas a ele

Limites explícitos:
    - Não valida conexões (ver ConnectionValidator)
    - Não calcula diffs nem hashes
"""

from __future__ import annotations

import copy
import random
import re
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple, Union


PERSISTED_ID_PATTERN = r"^\d+$"
_PERSISTED_ID_RE = re.compile(PERSISTED_ID_PATTERN)


def is_persisted_id(entity_id: Any, pattern: Union[str, Pattern[str], None] = None) -> bool:
    if not isinstance(entity_id, str):
        return False
    regex = _PERSISTED_ID_RE if pattern is None else re.compile(pattern)
    return bool(regex.match(entity_id))


def is_temporary_id(entity_id: Any, pattern: Union[str, Pattern[str], None] = None) -> bool:
    return not is_persisted_id(entity_id, pattern)


class NodeType(str, Enum):
    USER_INPUT = "user_input"
    END_NODE = "end_node"
    TODO_TASK_GENERATOR = "todo_task_generator"
    CONDITION_CHECKER = "condition_checker"
    PARALLEL_EXECUTOR = "parallel_executor"
    API_CALLER = "api_caller"
    DATA_PROCESSOR = "data_processor"
    WHILE_LOOP = "while_loop"
    LLM_CALLER = "llm_caller"
    WORKFLOW = "workflow"


class EdgeKind(str, Enum):
    DEFAULT = "default"
    BRANCH = "branch"
    PARALLEL = "parallel"


def _type_value(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_any(cls, raw: Any) -> "Position":
        if isinstance(raw, Position):
            return raw
        if isinstance(raw, dict):
            return cls(x=raw.get("x", 0) or 0, y=raw.get("y", 0) or 0)
        if isinstance(raw, (tuple, list)) and len(raw) == 2:
            return cls(x=raw[0], y=raw[1])
        return cls()


@dataclass
class Node:
    """
    Nó do canvas.

    `data` carrega o payload de negócio (label, description, config, campos
    por tipo, branchNodes, flags de execução, color) e também campos de UI
    (ex.: `loading`, `parallelChildren`), que não participam de hash nem de
    persistência.
    """

    id: str
    type: str
    position: Position = field(default_factory=Position)
    data: Dict[str, Any] = field(default_factory=dict)
    selected: bool = False
    dragging: bool = False

    def __post_init__(self) -> None:
        self.type = _type_value(self.type)
        self.position = Position.from_any(self.position)
        if self.data is None:
            self.data = {}

    @property
    def label(self) -> str:
        return self.data.get("label") or self.id

    def copy(self) -> "Node":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": copy.deepcopy(self.data),
            "selected": self.selected,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Node":
        return cls(
            id=str(raw["id"]),
            type=raw.get("type", ""),
            position=Position.from_any(raw.get("position")),
            data=copy.deepcopy(raw.get("data") or {}),
            selected=bool(raw.get("selected", False)),
        )


@dataclass
class Edge:
    """
    Aresta do canvas.

    `type` é o tipo *visual* (ex.: "smoothstep"); o tipo de backend é a
    propriedade derivada `kind`.
    """

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: str = "smoothstep"
    label: Optional[str] = None
    animated: bool = False
    style: Optional[Dict[str, Any]] = None
    data: Dict[str, Any] = field(default_factory=dict)
    selected: bool = False

    def __post_init__(self) -> None:
        if self.data is None:
            self.data = {}

    @property
    def kind(self) -> EdgeKind:
        if self.data.get("isParallelChild"):
            return EdgeKind.PARALLEL
        if self.data.get("branchName"):
            return EdgeKind.BRANCH
        return EdgeKind.DEFAULT

    @property
    def branch_name(self) -> Optional[str]:
        return self.data.get("branchName") or None

    def copy(self) -> "Edge":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "sourceHandle": self.source_handle,
            "targetHandle": self.target_handle,
            "type": self.type,
            "label": self.label,
            "animated": self.animated,
            "style": copy.deepcopy(self.style),
            "data": copy.deepcopy(self.data),
            "selected": self.selected,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Edge":
        return cls(
            id=str(raw["id"]),
            source=str(raw["source"]),
            target=str(raw["target"]),
            source_handle=raw.get("sourceHandle", raw.get("source_handle")),
            target_handle=raw.get("targetHandle", raw.get("target_handle")),
            type=raw.get("type") or "smoothstep",
            label=raw.get("label"),
            animated=bool(raw.get("animated", False)),
            style=copy.deepcopy(raw.get("style")),
            data=copy.deepcopy(raw.get("data") or {}),
            selected=bool(raw.get("selected", False)),
        )


class GraphModel:
    """
    Conjunto vivo de nós e arestas de uma sessão de edição.

    A ordem de inserção é preservada (é a ordem em que o canvas os listou).
    """

    def __init__(self, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()) -> None:
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self.replace(nodes, edges)

    # -----------------------------
    # Leitura
    # -----------------------------
    def get_all_nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def get_all_edges(self) -> List[Edge]:
        return list(self._edges.values())

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def edges_of(self, node_id: str) -> List[Edge]:
        return [e for e in self._edges.values() if e.source == node_id or e.target == node_id]

    def dangling_edges(self) -> List[Edge]:
        """Arestas cujo source ou target não existe no modelo."""
        return [
            e for e in self._edges.values()
            if e.source not in self._nodes or e.target not in self._nodes
        ]

    def __len__(self) -> int:
        return len(self._nodes)

    # -----------------------------
    # Mutação
    # -----------------------------
    def replace(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        new_nodes: Dict[str, Node] = {}
        for node in nodes:
            if node.id in new_nodes:
                raise ValueError(f"Duplicate node id: {node.id}")
            new_nodes[node.id] = node
        new_edges: Dict[str, Edge] = {}
        for edge in edges:
            if edge.id in new_edges:
                raise ValueError(f"Duplicate edge id: {edge.id}")
            new_edges[edge.id] = edge
        self._nodes = new_nodes
        self._edges = new_edges

    def clear(self) -> None:
        self._nodes = {}
        self._edges = {}

    def add_node(self, node: Node) -> Node:
        if node.id in self._nodes:
            raise ValueError(f"Duplicate node id: {node.id}")
        self._nodes[node.id] = node
        return node

    def add_edge(self, edge: Edge) -> Edge:
        if edge.id in self._edges:
            raise ValueError(f"Duplicate edge id: {edge.id}")
        self._edges[edge.id] = edge
        return edge

    def remove_node(self, node_id: str) -> Optional[Node]:
        node = self._nodes.pop(node_id, None)
        if node is not None:
            for edge in self.edges_of(node_id):
                del self._edges[edge.id]
        return node

    def remove_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.pop(edge_id, None)

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        node = self._require_node(node_id)
        node.position = Position(x=x, y=y)
        return node

    def update_node_data(self, node_id: str, **fields: Any) -> Node:
        node = self._require_node(node_id)
        node.data.update(fields)
        return node

    def rename_node(self, old_id: str, new_id: str) -> None:
        """Renomeia um nó preservando sua posição na ordem. Não toca arestas."""
        if old_id == new_id:
            return
        if new_id in self._nodes:
            raise ValueError(f"Duplicate node id: {new_id}")
        node = self._require_node(old_id)
        node.id = new_id
        self._nodes = {(new_id if k == old_id else k): v for k, v in self._nodes.items()}

    def rename_edge(self, old_id: str, new_id: str) -> None:
        if old_id == new_id:
            return
        if new_id in self._edges:
            raise ValueError(f"Duplicate edge id: {new_id}")
        edge = self._edges.get(old_id)
        if edge is None:
            raise KeyError(old_id)
        edge.id = new_id
        self._edges = {(new_id if k == old_id else k): v for k, v in self._edges.items()}

    def _require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise KeyError(node_id)
        return node

    # -----------------------------
    # Export / import
    # -----------------------------
    def export(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "edges": [e.to_dict() for e in self._edges.values()],
        }

    @classmethod
    def from_export(cls, raw: Dict[str, Any]) -> "GraphModel":
        return cls(
            nodes=[Node.from_dict(n) for n in raw.get("nodes") or []],
            edges=[Edge.from_dict(e) for e in raw.get("edges") or []],
        )


# ---------------------------------------------------------------------------
# Templates de nó e cunhagem de IDs
# ---------------------------------------------------------------------------

NODE_TEMPLATES: Dict[str, Dict[str, Any]] = {
    NodeType.USER_INPUT.value: {"label": "User input", "color": "#67C23A"},
    NodeType.END_NODE.value: {"label": "End", "color": "#F56C6C"},
    NodeType.TODO_TASK_GENERATOR.value: {
        "label": "Task generator",
        "description": "",
        "color": "#409EFF",
    },
    NodeType.CONDITION_CHECKER.value: {
        "label": "Condition",
        "description": "",
        "color": "#E6A23C",
        "config": {},
        "branchNodes": {
            "true": {"name": "true", "condition": "result === true"},
            "false": {"name": "false", "condition": "result === false"},
        },
    },
    NodeType.PARALLEL_EXECUTOR.value: {
        "label": "Parallel",
        "description": "",
        "color": "#909399",
        "config": {},
        "parallelConfig": {
            "mode": "all",
            "timeout": 30000,
            "threads": [
                {"id": "thread-1", "name": "Task 1"},
                {"id": "thread-2", "name": "Task 2"},
            ],
        },
    },
    NodeType.API_CALLER.value: {
        "label": "API call",
        "description": "",
        "color": "#667eea",
        "apiConfig": {"url": "", "method": "GET"},
    },
    NodeType.DATA_PROCESSOR.value: {
        "label": "Data processor",
        "description": "",
        "color": "#f093fb",
        "processorLanguage": "javascript",
        "processorCode": "",
    },
    NodeType.WHILE_LOOP.value: {
        "label": "Loop",
        "description": "",
        "color": "#fa709a",
        "loopConfig": {"condition": "", "maxIterations": 100},
    },
    NodeType.LLM_CALLER.value: {
        "label": "LLM call",
        "description": "",
        "color": "#a8edea",
        "prompt": "",
        "llmConfig": {"model": "gpt-3.5-turbo", "temperature": 0.7},
    },
    NodeType.WORKFLOW.value: {
        "label": "Workflow",
        "description": "",
        "color": "#667eea",
        "workflowApplicationId": "",
    },
}

_BASE36 = string.digits + string.ascii_lowercase


def generate_node_id(node_type: Union[str, NodeType], *, now_ms: Optional[int] = None) -> str:
    """ID temporário `<type>-<epoch ms>-<9 chars base36>`."""
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"{_type_value(node_type)}-{stamp}-{suffix}"


def generate_edge_id(
    source: str,
    target: str,
    discriminator: Optional[str] = None,
    *,
    taken: Iterable[str] = (),
) -> str:
    """
    ID temporário de aresta embutindo os IDs dos nós (`<source>-<target>[-<disc>]`).

    Se o ID já existir em `taken`, um sufixo base36 é anexado.
    """
    base = f"{source}-{target}"
    if discriminator:
        base = f"{base}-{discriminator}"
    taken_set = set(taken)
    candidate = base
    while candidate in taken_set:
        candidate = f"{base}-" + "".join(random.choice(_BASE36) for _ in range(4))
    return candidate


def create_node(
    node_type: Union[str, NodeType],
    position: Union[Position, Dict[str, float], Tuple[float, float]],
    *,
    node_id: Optional[str] = None,
) -> Node:
    """
    Cria um nó a partir do template do tipo, com ID temporário.

    Raises:
        ValueError: se o tipo não tiver template.
    """
    key = _type_value(node_type)
    template = NODE_TEMPLATES.get(key)
    if template is None:
        raise ValueError(f"Unknown node type: {key}")
    return Node(
        id=node_id or generate_node_id(key),
        type=key,
        position=Position.from_any(position),
        data=copy.deepcopy(template),
    )
