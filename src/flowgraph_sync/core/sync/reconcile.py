# src/flowgraph_sync/core/sync/reconcile.py
"""
IdReconciler — troca IDs temporários por IDs persistidos após um save.

Efeitos de `reconcile(node_id_map, edge_id_map)`:
    1. Todo nó cujo ID é chave de `node_id_map` é renomeado no lugar
    2. Toda aresta cujo `source`/`target` referencia um nó renomeado passa
       a apontar para o novo ID, inclusive no prefixo dos handle ids
    3. Toda aresta cujo ID é chave de `edge_id_map` é renomeada
    4. Arestas com ID temporário que embute IDs de nó renomeados e que não
       receberam ID persistido são reescritas: primeiro o prefixo
       `<source>-<target>` gerado por `generate_edge_id`, senão cada
       ocorrência de ID renomeado (maior ID primeiro)

Decisões arquiteturais:
    - A passada de arestas só reescreve referências para nós que JÁ foram
      renomeados no GraphModel. Por isso a ordem nó → aresta é obrigatória:
      invertida, as arestas ficam apontando para IDs que não existem mais.
    - Antes de qualquer mutação, a cobertura dos mapas é verificada: um ID
      temporário enviado sem ID persistido de volta levanta
      ReconciliationGap e nada é renomeado.
    - Também antes de qualquer mutação, os renomes de nó e de aresta são
      planejados por completo; um novo ID repetido ou já presente no grafo
      levanta ReconciliationConflict e nada é renomeado.
    - IDs persistidos de aresta nunca são reescritos: o backend os conhece
      como estão, mesmo quando contêm um ID de nó renomeado como substring.

Invariantes:
    - Após `reconcile`, `graph.dangling_edges()` não ganha novas entradas
    - Renomear é idempotente para IDs que não estão no modelo

Limites explícitos:
    - Não substitui o SnapshotStore (responsabilidade da sessão)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional

from ..errors import reconciliation_conflict, reconciliation_gap
from ..exceptions import ReconciliationConflict, ReconciliationGap
from ..graph.handles import HandleId
from ..graph.model import Edge, GraphModel, is_temporary_id

if TYPE_CHECKING:
    from ..session.context import SessionContext


class IdReconciler:
    def __init__(
        self,
        graph: GraphModel,
        ctx: Optional["SessionContext"] = None,
        persisted_pattern: Optional[str] = None,
    ) -> None:
        self.graph = graph
        self.ctx = ctx
        self.persisted_pattern = persisted_pattern

    # -----------------------------
    # Verificação de cobertura
    # -----------------------------
    @staticmethod
    def find_gaps(
        submitted_ids: Iterable[str],
        id_map: Mapping[str, str],
        persisted_pattern: Optional[str] = None,
    ) -> List[str]:
        return [i for i in submitted_ids if is_temporary_id(i, persisted_pattern) and i not in id_map]

    def reconcile(
        self,
        node_id_map: Mapping[str, str],
        edge_id_map: Mapping[str, str],
        *,
        submitted_node_ids: Optional[Iterable[str]] = None,
        submitted_edge_ids: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Aplica os mapas temporário → persistido ao GraphModel.

        Args:
            node_id_map: mapa de IDs de nó.
            edge_id_map: mapa de IDs de aresta.
            submitted_node_ids: IDs de nó enviados como criação; se informado,
                todo ID temporário deve estar coberto por `node_id_map`.
            submitted_edge_ids: idem para arestas.

        Raises:
            ReconciliationGap: se algum ID temporário enviado não tiver ID
                persistido; nenhum renome é aplicado.
            ReconciliationConflict: se algum novo ID colidir com outro renome
                ou com um ID já presente; nenhum renome é aplicado.
        """
        missing_nodes = self.find_gaps(submitted_node_ids or (), node_id_map, self.persisted_pattern)
        missing_edges = self.find_gaps(submitted_edge_ids or (), edge_id_map, self.persisted_pattern)
        if missing_nodes or missing_edges:
            payload = reconciliation_gap(missing_node_ids=missing_nodes, missing_edge_ids=missing_edges)
            self._log_error(payload.message, payload.details)
            raise ReconciliationGap(
                message=payload.message,
                details=payload.details,
                hint=payload.hint,
            )

        node_plan = {
            old: new
            for old, new in node_id_map.items()
            if old != new and self.graph.has_node(old)
        }
        edge_plan = self.plan_edge_ids(node_plan, edge_id_map)
        clashing_nodes = _clashes(node_plan, [n.id for n in self.graph.get_all_nodes()])
        clashing_edges = _clashes(edge_plan, [e.id for e in self.graph.get_all_edges()])
        if clashing_nodes or clashing_edges:
            payload = reconciliation_conflict(node_ids=clashing_nodes, edge_ids=clashing_edges)
            self._log_error(payload.message, payload.details)
            raise ReconciliationConflict(
                message=payload.message,
                details=payload.details,
                hint=payload.hint,
            )

        renamed_nodes = self.rename_nodes(node_id_map)
        renamed_edges = self.rename_edges(node_id_map, edge_id_map)

        if self.ctx is not None:
            self.ctx.log(
                scope="reconcile",
                level="info",
                message="ids reconciled",
                nodes_renamed=renamed_nodes,
                edges_renamed=renamed_edges,
            )

    def _log_error(self, message: str, details: Dict[str, List[str]]) -> None:
        if self.ctx is not None:
            self.ctx.log(scope="reconcile", level="error", message=message, **details)

    # -----------------------------
    # Planejamento
    # -----------------------------
    def plan_edge_ids(self, applied: Mapping[str, str], edge_id_map: Mapping[str, str]) -> Dict[str, str]:
        """
        Calcula `ID atual → novo ID` das arestas sem mutar o grafo.

        Args:
            applied: renomes de nó em vigor (`antigo → novo`).
            edge_id_map: mapa de IDs de aresta devolvido pelo backend.

        Returns:
            Dict[str, str]: só as arestas cujo ID muda.
        """
        plan: Dict[str, str] = {}
        for edge in self.graph.get_all_edges():
            if edge.id in edge_id_map:
                if edge_id_map[edge.id] != edge.id:
                    plan[edge.id] = edge_id_map[edge.id]
                continue
            if not is_temporary_id(edge.id, self.persisted_pattern):
                continue
            new_id = _rewrite_edge_id(edge, applied)
            if new_id != edge.id:
                plan[edge.id] = new_id
        return plan

    # -----------------------------
    # Passadas
    # -----------------------------
    def rename_nodes(self, node_id_map: Mapping[str, str]) -> int:
        count = 0
        for old_id, new_id in node_id_map.items():
            if self.graph.has_node(old_id) and old_id != new_id:
                self.graph.rename_node(old_id, new_id)
                count += 1
        return count

    def rename_edges(self, node_id_map: Mapping[str, str], edge_id_map: Mapping[str, str]) -> int:
        """
        Reescreve referências de arestas.

        Só considera renomes de nó já refletidos no GraphModel (novo ID
        presente, antigo ausente).
        """
        applied: Dict[str, str] = {
            old: new
            for old, new in node_id_map.items()
            if old != new and self.graph.has_node(new) and not self.graph.has_node(old)
        }
        renames = self.plan_edge_ids(applied, edge_id_map)

        for edge in self.graph.get_all_edges():
            if edge.source in applied:
                edge.source = applied[edge.source]
            if edge.target in applied:
                edge.target = applied[edge.target]
            edge.source_handle = _rehome_handle(edge.source_handle, applied)
            edge.target_handle = _rehome_handle(edge.target_handle, applied)

        for old_id, new_id in renames.items():
            self.graph.rename_edge(old_id, new_id)
        return len(renames)


def _rewrite_edge_id(edge: Edge, applied: Mapping[str, str]) -> str:
    """Novo ID de uma aresta temporária a partir dos renomes de nó."""
    if not applied:
        return edge.id

    prefix = f"{edge.source}-{edge.target}"
    if edge.id == prefix or edge.id.startswith(prefix + "-"):
        head = f"{applied.get(edge.source, edge.source)}-{applied.get(edge.target, edge.target)}"
        return head + edge.id[len(prefix):]

    new_id = edge.id
    for old in sorted(applied, key=len, reverse=True):
        if old in new_id:
            new_id = new_id.replace(old, applied[old], 1)
    return new_id


def _clashes(plan: Mapping[str, str], current_ids: Iterable[str]) -> List[str]:
    """Novos IDs repetidos no plano ou já ocupados por outro elemento."""
    counts = Counter(plan.values())
    taken = set(current_ids)
    return sorted({new for new in plan.values() if counts[new] > 1 or new in taken})


def _rehome_handle(handle: Optional[str], applied: Mapping[str, str]) -> Optional[str]:
    """Troca o prefixo de nó de um handle id quando o nó foi renomeado."""
    if handle is None:
        return None
    parsed = HandleId.parse(handle)
    if parsed.node_id not in applied:
        return handle
    return replace(parsed, node_id=applied[parsed.node_id]).format()
