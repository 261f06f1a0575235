# tests/conftest.py
"""
Fixtures compartilhados para testes do flowgraph_sync.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas (YAML como string)
- contexto de sessão controlado (SessionContext)
- grafos de exemplo pequenos (linear, condição, paralelo)
- um backend fake em memória que cumpre os contratos de persistência
  e de histórico de versões

O objetivo destas fixtures é permitir testes do core
(config, graph, sync e session) sem depender de:
- rede ou transporte real
- filesystem (exceto `tmp_path` nos testes de config)
- canvas ou componentes visuais

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - O backend fake usa duck typing em vez de herança dos Protocols
    - IDs persistidos do backend fake são sequenciais e determinísticos
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture realiza I/O
    - Todas as fixtures retornam objetos novos a cada teste
    - O backend fake cria exatamente uma versão por batch save bem-sucedido

Limites explícitos:
    - Não substituir testes de integração com um backend real
    - O backend fake não valida regras de negócio do servidor

Este módulo existe como infraestrutura de teste e não
como validação funcional do pacote.
"""

import copy

import pytest


# =====================================================
# Config fixtures
# =====================================================

@pytest.fixture
def flowgraph_defaults_yaml() -> str:
    """
    Fixture que fornece um YAML de defaults semelhante ao empacotado.

    Decisões arquiteturais:
        - Configuração fornecida como string para evitar dependência do
          arquivo empacotado
        - Mesmas seções do `defaults.yaml` real

    Returns:
        str: Conteúdo YAML de defaults.
    """
    return """\
realtime:
  interval_ms: 500
viewport:
  threshold: 0.1
handles:
  unknown_kind_policy: degrade
ids:
  persisted_pattern: "^\\\\d+$"
versions:
  page_size: 20
"""


@pytest.fixture
def flowgraph_local_yaml() -> str:
    """
    Fixture que fornece um YAML local apenas com overrides.

    Invariantes:
        - YAML sintaticamente válido
        - Não contém configuração completa

    Returns:
        str: Conteúdo YAML de override.
    """
    return """\
realtime:
  interval_ms: 50
handles:
  unknown_kind_policy: reject
"""


# =====================================================
# Session context
# =====================================================

@pytest.fixture
def session_ctx():
    """
    Fixture que fornece um SessionContext real com os defaults empacotados.

    Decisões arquiteturais:
        - Import lazy para falhar com mensagem clara se o módulo não existir
        - `meta` identifica o contexto como de teste
    """
    from flowgraph_sync.core.session.context import SessionContext

    return SessionContext.create(origin="tests")


# =====================================================
# Graph fixtures
# =====================================================

@pytest.fixture
def linear_graph():
    """
    Grafo persistido mínimo: user_input(1) → todo_task_generator(2) → end_node(3).

    Arestas usam IDs persistidos ("10", "11") e handles canônicos.

    Returns:
        tuple[list[Node], list[Edge]]
    """
    from flowgraph_sync.core.graph.model import Edge, Node

    nodes = [
        Node(id="1", type="user_input", position={"x": 0, "y": 0}, data={"label": "Start"}),
        Node(id="2", type="todo_task_generator", position={"x": 200, "y": 0}, data={"label": "Plan", "description": ""}),
        Node(id="3", type="end_node", position={"x": 400, "y": 0}, data={"label": "Done"}),
    ]
    edges = [
        Edge(id="10", source="1", target="2", source_handle="1:start-output", target_handle="2:task-input"),
        Edge(id="11", source="2", target="3", source_handle="2:task-output", target_handle="3:end-input"),
    ]
    return nodes, edges


@pytest.fixture
def condition_node():
    """
    Condition node `c1` com branches declaradas `true` e `false`.
    """
    from flowgraph_sync.core.graph.model import Node

    return Node(
        id="c1",
        type="condition_checker",
        position={"x": 0, "y": 0},
        data={
            "label": "Check",
            "branchNodes": {
                "true": {"name": "true", "condition": "result === true"},
                "false": {"name": "false", "condition": "result === false"},
            },
        },
    )


# =====================================================
# Fake backend
# =====================================================

@pytest.fixture
def FakeBackend():
    """
    Fixture que fornece a classe de um backend fake em memória.

    O backend cumpre, por duck typing, `PersistenceGateway` e
    `VersionHistory`:
        - `batch_save` aplica o payload, atribui IDs numéricos sequenciais
          e cria uma nova versão
        - `fetch_graph` retorna o head no formato de registro do backend
        - `list_versions` / `get_version` expõem as versões criadas

    Controles de falha:
        - `raise_on_save`: exceção levantada no próximo batch save
        - `report_failure`: responde `success=False`
        - `drop_node_mappings`: omite `nodeIdMapping` da resposta

    Decisões arquiteturais:
        - A fixture retorna a classe para que cada teste monte o estado
          inicial que precisa
        - Registros são guardados já no formato do backend (name,
          positionX, ...) para exercitar o mapeamento inverso

    Limites explícitos:
        - Não simula concorrência
        - Não aplica regras de negócio do servidor
    """

    class _FakeBackend:
        def __init__(self, application_id="app-1", nodes=(), edges=(), viewport=None):
            self.application = {"id": application_id, "name": "Demo"}
            if viewport is not None:
                self.application["viewport"] = dict(viewport)
            self.nodes = {str(n["id"]): copy.deepcopy(n) for n in nodes}
            self.edges = {str(e["id"]): copy.deepcopy(e) for e in edges}
            self.versions = []
            self.saved_payloads = []
            self.viewport_updates = []
            self.next_id = 500
            self.raise_on_save = None
            self.report_failure = False
            self.drop_node_mappings = False

        # -----------------------------
        # PersistenceGateway
        # -----------------------------
        def fetch_graph(self, application_id):
            return {
                "application": copy.deepcopy(self.application),
                "nodes": [copy.deepcopy(n) for n in self.nodes.values()],
                "edges": [copy.deepcopy(e) for e in self.edges.values()],
            }

        def update_viewport(self, application_id, viewport):
            self.viewport_updates.append(dict(viewport))
            self.application["viewport"] = dict(viewport)

        def batch_save(self, payload):
            self.saved_payloads.append(copy.deepcopy(payload))
            if self.raise_on_save is not None:
                raise self.raise_on_save
            if self.report_failure:
                return {"success": False, "message": "Database unavailable"}

            node_map = {}
            for temp_id, request in zip(payload["nodeTempIds"], payload["nodesToCreate"]):
                new_id = self._mint()
                node_map[temp_id] = new_id
                record = {k: v for k, v in request.items() if k != "applicationId"}
                record["id"] = new_id
                self.nodes[new_id] = record

            for item in payload["nodesToUpdate"]:
                self.nodes[item["id"]].update(copy.deepcopy(item["data"]))

            for node_id in payload["nodeIdsToDelete"]:
                self.nodes.pop(node_id, None)

            edge_map = {}
            for temp_id, request in zip(payload["edgeTempIds"], payload["edgesToCreate"]):
                new_id = self._mint()
                edge_map[temp_id] = new_id
                record = {k: v for k, v in request.items() if k != "applicationId"}
                record["id"] = new_id
                record["source"] = node_map.get(record["source"], record["source"])
                record["target"] = node_map.get(record["target"], record["target"])
                self.edges[new_id] = record

            for item in payload["edgesToUpdate"]:
                self.edges[item["id"]].update(copy.deepcopy(item["data"]))

            for edge_id in payload["edgeIdsToDelete"]:
                self.edges.pop(edge_id, None)

            self.snapshot_version()
            return {
                "success": True,
                "data": {
                    "nodeIdMapping": {} if self.drop_node_mappings else node_map,
                    "edgeIdMapping": edge_map,
                    "stats": {
                        "nodesCreated": len(payload["nodesToCreate"]),
                        "nodesUpdated": len(payload["nodesToUpdate"]),
                        "nodesDeleted": len(payload["nodeIdsToDelete"]),
                        "edgesCreated": len(payload["edgesToCreate"]),
                        "edgesUpdated": len(payload["edgesToUpdate"]),
                        "edgesDeleted": len(payload["edgeIdsToDelete"]),
                    },
                },
            }

        # -----------------------------
        # VersionHistory
        # -----------------------------
        def list_versions(self, application_id, *, page=1, page_size=20, order="desc"):
            records = sorted(self.versions, key=lambda r: r["version"], reverse=(order == "desc"))
            start = (page - 1) * page_size
            return copy.deepcopy(records[start:start + page_size])

        def get_version(self, application_id, version):
            for record in self.versions:
                if record["version"] == version:
                    return copy.deepcopy(record)
            return None

        # -----------------------------
        # Helpers
        # -----------------------------
        def snapshot_version(self):
            number = len(self.versions) + 1
            self.versions.append(
                {
                    "id": f"v{number}",
                    "version": number,
                    "snapshot": {
                        "nodes": [copy.deepcopy(n) for n in self.nodes.values()],
                        "edges": [copy.deepcopy(e) for e in self.edges.values()],
                    },
                }
            )
            return number

        def _mint(self):
            self.next_id += 1
            return str(self.next_id)

    return _FakeBackend


@pytest.fixture
def backend_records():
    """
    Registros de backend do grafo linear (formato persistido).

    Returns:
        tuple[list[dict], list[dict]]: (nós, arestas).
    """
    nodes = [
        {"id": 1, "name": "Start", "type": "user_input", "positionX": 0, "positionY": 0, "description": "", "config": {}},
        {"id": 2, "name": "Plan", "type": "todo_task_generator", "positionX": 200, "positionY": 0, "description": "", "config": {}},
        {"id": 3, "name": "Done", "type": "end_node", "positionX": 400, "positionY": 0, "description": "", "config": {}},
    ]
    edges = [
        {
            "id": 10, "source": "1", "target": "2",
            "sourceHandle": "1:start-output", "targetHandle": "2:task-input",
            "type": "default", "data": {"vueFlowType": "smoothstep"},
        },
        {
            "id": 11, "source": "2", "target": "3",
            "sourceHandle": "2:task-output", "targetHandle": "3:end-input",
            "type": "default", "data": {"vueFlowType": "smoothstep"},
        },
    ]
    return nodes, edges


@pytest.fixture
def backend(FakeBackend, backend_records):
    """Backend fake com o grafo linear persistido e uma versão (v1)."""
    nodes, edges = backend_records
    instance = FakeBackend(nodes=nodes, edges=edges, viewport={"x": 0, "y": 0, "zoom": 1})
    instance.snapshot_version()
    return instance


@pytest.fixture
def FakeBroadcaster():
    """Classe de broadcaster fake que apenas acumula os diffs publicados."""

    class _FakeBroadcaster:
        def __init__(self):
            self.published = []

        def publish(self, application_id, diff):
            self.published.append((application_id, diff))

    return _FakeBroadcaster
