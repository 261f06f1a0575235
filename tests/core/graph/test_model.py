# tests/core/graph/test_model.py
"""
Testes do GraphModel, da classificação de IDs e dos templates de nó.

Os testes asseguram que:
- IDs puramente numéricos são persistidos; todo o resto é temporário
- o kind da aresta é derivado de `data`
- o GraphModel mantém unicidade e ordem de inserção
- templates e cunhagem de IDs seguem o formato documentado

Limites explícitos:
    - Não valida conexões nem diffs
"""

import re

import pytest

try:
    from flowgraph_sync.core.graph.model import (
        Edge,
        EdgeKind,
        GraphModel,
        Node,
        NodeType,
        Position,
        create_node,
        generate_edge_id,
        generate_node_id,
        is_persisted_id,
        is_temporary_id,
    )
except Exception as e:  # noqa: BLE001
    GraphModel = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing model module. Implement src/flowgraph_sync/core/graph/model.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


@pytest.mark.parametrize(
    "entity_id, persisted",
    [
        ("1", True),
        ("501", True),
        ("tmp-42", False),
        ("tmp-42-tmp-7", False),
        ("condition_checker-1700000000000-abc123xyz", False),
        ("12a", False),
        ("", False),
        (12, False),
    ],
)
def test_id_classification(entity_id, persisted):
    """
    Verifica a distinção temporário / persistido.

    Invariantes:
        - Persistido = string puramente numérica
        - Não-strings nunca são persistidas
    """
    _require_imports()
    assert is_persisted_id(entity_id) is persisted
    assert is_temporary_id(entity_id) is (not persisted)


def test_custom_persisted_pattern():
    _require_imports()
    assert is_persisted_id("srv_9", pattern=r"^srv_\d+$")
    assert not is_persisted_id("9", pattern=r"^srv_\d+$")


def test_edge_kind_is_derived_from_data():
    _require_imports()
    plain = Edge(id="e1", source="a", target="b")
    branch = Edge(id="e2", source="a", target="b", data={"branchName": "true"})
    child = Edge(id="e3", source="a", target="b", data={"isParallelChild": True, "branchName": "x"})
    assert plain.kind is EdgeKind.DEFAULT
    assert branch.kind is EdgeKind.BRANCH
    assert branch.branch_name == "true"
    assert child.kind is EdgeKind.PARALLEL


def test_graph_model_rejects_duplicates_and_cascades_node_removal(linear_graph):
    """
    Verifica unicidade de IDs e remoção em cascata.

    Invariantes:
        - Adicionar um ID existente levanta ValueError
        - Remover um nó remove suas arestas
    """
    _require_imports()
    nodes, edges = linear_graph
    graph = GraphModel(nodes, edges)

    with pytest.raises(ValueError):
        graph.add_node(Node(id="1", type="end_node"))
    with pytest.raises(ValueError):
        GraphModel(nodes + [Node(id="2", type="end_node")], edges)

    graph.remove_node("2")
    assert [n.id for n in graph.get_all_nodes()] == ["1", "3"]
    assert graph.get_all_edges() == []
    assert graph.dangling_edges() == []


def test_rename_preserves_order_and_detects_dangling_edges(linear_graph):
    _require_imports()
    nodes, edges = linear_graph
    graph = GraphModel(nodes, edges)

    graph.rename_node("2", "200")
    assert [n.id for n in graph.get_all_nodes()] == ["1", "200", "3"]
    # renomear nós não toca arestas
    assert {e.id for e in graph.dangling_edges()} == {"10", "11"}

    graph.rename_edge("10", "100")
    assert [e.id for e in graph.get_all_edges()] == ["100", "11"]


def test_move_and_update_node_data(linear_graph):
    _require_imports()
    nodes, edges = linear_graph
    graph = GraphModel(nodes, edges)

    graph.move_node("2", 10, 20)
    graph.update_node_data("2", label="Renamed", loading=True)
    node = graph.get_node("2")
    assert node.position == Position(10, 20)
    assert node.data["label"] == "Renamed"
    assert node.label == "Renamed"

    with pytest.raises(KeyError):
        graph.move_node("missing", 0, 0)


def test_export_round_trip(linear_graph):
    _require_imports()
    nodes, edges = linear_graph
    graph = GraphModel(nodes, edges)
    restored = GraphModel.from_export(graph.export())
    assert restored.export() == graph.export()


def test_create_node_uses_template_and_temporary_id():
    """
    Verifica a criação de nós a partir de templates.

    Decisões arquiteturais:
        - Condition nodes nascem com branches `true` e `false`
        - Parallel executors nascem com duas threads
        - O ID gerado é temporário: `<type>-<epoch ms>-<9 chars base36>`
    """
    _require_imports()
    cond = create_node(NodeType.CONDITION_CHECKER, (100, 50))
    assert cond.type == "condition_checker"
    assert set(cond.data["branchNodes"]) == {"true", "false"}
    assert cond.position == Position(100, 50)
    assert re.fullmatch(r"condition_checker-\d+-[0-9a-z]{9}", cond.id)
    assert is_temporary_id(cond.id)

    par = create_node("parallel_executor", {"x": 0, "y": 0}, node_id="tmp-p")
    assert par.id == "tmp-p"
    assert len(par.data["parallelConfig"]["threads"]) == 2

    # templates não são compartilhados entre nós
    cond.data["branchNodes"]["maybe"] = {}
    assert "maybe" not in create_node("condition_checker", (0, 0)).data["branchNodes"]

    with pytest.raises(ValueError):
        create_node("teleporter", (0, 0))


def test_generate_ids():
    _require_imports()
    assert generate_node_id("end_node", now_ms=1700000000000).startswith("end_node-1700000000000-")
    assert generate_edge_id("tmp-42", "tmp-7") == "tmp-42-tmp-7"
    assert generate_edge_id("c1", "n2", "true") == "c1-n2-true"

    taken_id = generate_edge_id("a", "b", taken=["a-b"])
    assert taken_id.startswith("a-b-")
    assert taken_id != "a-b"
