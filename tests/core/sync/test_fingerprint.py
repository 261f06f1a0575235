# tests/core/sync/test_fingerprint.py
"""
Testes do fingerprint de conteúdo (business subset + hash).

Os testes asseguram que:
- o hash é estável para a mesma entrada
- o hash muda se e somente se um campo de negócio muda
- campos de UI (loading, parallelChildren, selected, dragging) não participam
- o branch map entra no subset já rederivado das arestas
- Snapshot e SnapshotStore guardam cópias, não referências

Decisões arquiteturais:
    - Números são normalizados (1 == 1.0) antes do digest
    - Defaults de persistência (description "", config {}) são aplicados
      no subset para que ausente e default hasheiem igual
"""

import pytest

try:
    from flowgraph_sync.core.graph.model import Edge, GraphModel, Node
    from flowgraph_sync.core.sync.fingerprint import (
        edge_business_subset,
        edge_hash,
        node_business_subset,
        node_hash,
        same_value,
    )
    from flowgraph_sync.core.sync.snapshot import Snapshot, SnapshotStore, Viewport, viewport_changed
except Exception as e:  # noqa: BLE001
    node_hash = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing fingerprint/snapshot modules. Implement:\n"
            "- src/flowgraph_sync/core/sync/fingerprint.py\n"
            "- src/flowgraph_sync/core/sync/snapshot.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _task(**data):
    base = {"label": "Plan", "description": "", "config": {"model": "x"}}
    base.update(data)
    return Node(id="2", type="todo_task_generator", position={"x": 200, "y": 0}, data=base)


def test_hash_is_stable_across_calls():
    """
    Verifica que o hash não depende de estado externo nem de ordem de chaves.
    """
    _require_imports()
    a = _task()
    b = Node(
        id="2",
        type="todo_task_generator",
        position={"y": 0, "x": 200},
        data={"config": {"model": "x"}, "description": "", "label": "Plan"},
    )
    assert node_hash(a, []) == node_hash(a, [])
    assert node_hash(a, []) == node_hash(b, [])


@pytest.mark.parametrize(
    "ui_change",
    [
        {"loading": True},
        {"parallelChildren": ["a", "b"]},
        {"isHovered": True},
    ],
)
def test_ui_only_fields_do_not_change_hash(ui_change):
    """
    Verifica que campos de UI não alteram o hash.

    Invariantes:
        - Apenas campos destinados à persistência participam do hash
    """
    _require_imports()
    assert node_hash(_task(), []) == node_hash(_task(**ui_change), [])


def test_selection_flags_do_not_change_hash():
    _require_imports()
    node = _task()
    before = node_hash(node, [])
    node.selected = True
    node.dragging = True
    assert node_hash(node, []) == before


@pytest.mark.parametrize(
    "business_change",
    [
        {"label": "Plan v2"},
        {"description": "now documented"},
        {"config": {"model": "y"}},
        {"timeout": 30},
        {"async": True},
        {"color": "#000"},
    ],
)
def test_business_fields_change_hash(business_change):
    _require_imports()
    assert node_hash(_task(), []) != node_hash(_task(**business_change), [])


def test_numeric_and_default_normalization():
    """
    Verifica que representações equivalentes hasheiam igual.

    - posição int vs float
    - description ausente vs ""
    - config ausente vs {}
    - label ausente vs igual ao id
    """
    _require_imports()
    as_int = Node(id="5", type="end_node", position={"x": 1, "y": 2}, data={"label": "5"})
    as_float = Node(id="5", type="end_node", position={"x": 1.0, "y": 2.0}, data={"description": "", "config": {}})
    assert node_business_subset(as_int, []) == node_business_subset(as_float, [])
    assert node_hash(as_int, []) == node_hash(as_float, [])
    assert same_value({"a": 1, "b": [1, 2]}, {"b": [1.0, 2.0], "a": 1.0})
    assert not same_value(True, 1)


def test_branch_map_in_subset_is_derived_from_edges(condition_node):
    """
    Verifica que conectar uma branch altera o hash do condition node.

    Decisões arquiteturais:
        - O subset usa o branch map derivado, nunca o cache em `data`
    """
    _require_imports()
    edge = Edge(id="e1", source="c1", target="n2", source_handle="c1:branch:true", target_handle="n2:common-input")
    disconnected = node_hash(condition_node, [])
    connected = node_hash(condition_node, [edge])
    assert disconnected != connected
    assert node_business_subset(condition_node, [edge])["data"]["branchNodes"]["true"]["targetNodeId"] == "n2"


def test_edge_hash_ignores_backend_echo_and_selection():
    _require_imports()
    edge = Edge(id="10", source="1", target="2", source_handle="1:start-output", target_handle="2:task-input")
    echoed = Edge(
        id="10", source="1", target="2", source_handle="1:start-output", target_handle="2:task-input",
        data={"backendType": "default"}, selected=True,
    )
    assert edge_hash(edge) == edge_hash(echoed)

    relabeled = Edge(id="10", source="1", target="2", source_handle="1:start-output", target_handle="2:task-input", label="go")
    assert edge_hash(edge) != edge_hash(relabeled)
    assert edge_business_subset(relabeled)["label"] == "go"


def test_snapshot_holds_copies(linear_graph):
    """
    Verifica que o Snapshot é imune a mutações posteriores do grafo vivo.

    Invariantes:
        - Nós e arestas são copiados na captura
        - Os mapas do snapshot são somente leitura
    """
    _require_imports()
    nodes, edges = linear_graph
    snapshot = Snapshot.capture(nodes, edges)
    nodes[1].data["label"] = "mutated"

    assert snapshot.nodes["2"].data["label"] == "Plan"
    assert set(snapshot.node_hashes) == {"1", "2", "3"}
    assert set(snapshot.edge_hashes) == {"10", "11"}
    with pytest.raises(TypeError):
        snapshot.nodes["99"] = nodes[0]


def test_snapshot_store_generation_and_viewport(linear_graph):
    _require_imports()
    nodes, edges = linear_graph
    store = SnapshotStore()
    assert store.generation == 0
    assert store.current.node_hashes == {}

    store.capture_from(GraphModel(nodes, edges), Viewport(0, 0, 1))
    assert store.generation == 1

    store.set_viewport(Viewport(5, 5, 1))
    assert store.generation == 1
    assert store.current.viewport == Viewport(5, 5, 1)

    # captura sem viewport preserva o anterior
    store.capture_from(GraphModel(nodes, edges))
    assert store.current.viewport == Viewport(5, 5, 1)
    assert store.generation == 2


@pytest.mark.parametrize(
    "current, baseline, changed",
    [
        ((0, 0, 1), (0.05, 0, 1), False),
        ((0, 0, 1), (0.2, 0, 1), True),
        ((0, 0, 1.15), (0, 0, 1), True),
        (None, (0, 0, 1), False),
        ((0, 0, 1), None, True),
    ],
)
def test_viewport_changed_threshold(current, baseline, changed):
    _require_imports()
    current = Viewport(*current) if current is not None else None
    baseline = Viewport(*baseline) if baseline is not None else None
    assert viewport_changed(current, baseline, threshold=0.1) is changed
