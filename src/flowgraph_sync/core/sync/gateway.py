# src/flowgraph_sync/core/sync/gateway.py
"""
Contratos dos colaboradores externos da sessão.

O flowgraph_sync define o que é enviado e recebido; o transporte (REST,
canal push) fica fora do pacote. Os colaboradores são expressos como
Protocols (duck typing estrutural), no mesmo espírito do contrato de
Steps: qualquer objeto com os métodos certos serve, inclusive fakes de
teste.

Contratos:
    - PersistenceGateway: batch save, leitura do grafo head, viewport
    - VersionHistory: leitura paginada e por número de versão
    - ChangeBroadcaster: publicação de diffs no modo realtime
    - Confirmation: pergunta ao usuário antes de descartar mudanças
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class PersistenceGateway(Protocol):
    def batch_save(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Executa o batch save; retorna `{success, data:{nodeIdMapping, edgeIdMapping, stats}}`."""
        ...

    def fetch_graph(self, application_id: str) -> Dict[str, Any]:
        """Retorna `{application, nodes:[...], edges:[...]}` no formato do backend."""
        ...

    def update_viewport(self, application_id: str, viewport: Dict[str, float]) -> None:
        ...


@runtime_checkable
class VersionHistory(Protocol):
    def list_versions(
        self,
        application_id: str,
        *,
        page: int = 1,
        page_size: int = 20,
        order: str = "desc",
    ) -> List[Dict[str, Any]]:
        """Registros `{id, version, snapshot:{nodes, edges}}` ordenados."""
        ...

    def get_version(self, application_id: str, version: int) -> Optional[Dict[str, Any]]:
        ...


@runtime_checkable
class ChangeBroadcaster(Protocol):
    def publish(self, application_id: str, diff: Dict[str, Any]) -> None:
        ...


# Recebe a operação ("undo" | "redo") e o resumo do diff pendente;
# True autoriza descartar as mudanças.
Confirmation = Callable[[str, Dict[str, Dict[str, int]]], bool]
