# src/flowgraph_sync/core/sync/versions.py
"""
VersionManager — undo/redo sobre versões persistidas.

Máquina de estados sobre `current_version_id`:
    - ""          → head vivo (estado inicial e terminal)
    - "<id>"      → exibindo a versão histórica <id>

Operações:
    - undo(): no head, alvo = última versão persistida; senão alvo =
      versão corrente - 1. Falha na versão 1 ou sem versões.
    - redo(): na última versão, recarrega o head pelo colaborador de
      persistência (substitui GraphModel e SnapshotStore) e volta a "";
      senão carrega versão corrente + 1. Falha se já estiver no head.

Decisões arquiteturais:
    - Carregar uma versão substitui o GraphModel e NÃO toca o SnapshotStore:
      edições feitas após um undo continuam sendo diffadas contra o baseline
      original, e o próximo save produz uma versão nova
    - Antes de trocar de versão, mudanças pendentes exigem confirmação;
      sem confirmação a troca é recusada com UnsavedChangesPending
    - Mudanças pendentes são medidas contra o que está sendo exibido: o
      baseline no head, ou a própria versão histórica ao navegar
    - Versões são imutáveis e cacheadas por número após o primeiro fetch

Limites explícitos:
    - Não cria versões (o backend cria uma por save)
    - Não faz merge entre versões
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Tuple

from ..errors import unsaved_changes_pending, version_unavailable
from ..exceptions import UnsavedChangesPending, VersionUnavailable
from ..graph.model import Edge, GraphModel, Node
from .diff import DiffEngine, GraphDiff
from .gateway import Confirmation, VersionHistory
from .payload import edge_from_response, node_from_response
from .snapshot import Snapshot, SnapshotStore

if TYPE_CHECKING:
    from ..session.context import SessionContext


@dataclass(frozen=True)
class Version:
    id: str
    version: int
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Version":
        snapshot = record.get("snapshot") or {}
        return cls(
            id=str(record["id"]),
            version=int(record["version"]),
            nodes=tuple(node_from_response(n) for n in snapshot.get("nodes") or []),
            edges=tuple(edge_from_response(e) for e in snapshot.get("edges") or []),
        )


class VersionManager:
    def __init__(
        self,
        application_id: str,
        history: VersionHistory,
        graph: GraphModel,
        snapshot_store: SnapshotStore,
        reload_head: Callable[[], None],
        *,
        diff_engine: Optional[DiffEngine] = None,
        confirm: Optional[Confirmation] = None,
        ctx: Optional["SessionContext"] = None,
        page_size: int = 20,
    ) -> None:
        self.application_id = application_id
        self.history = history
        self.graph = graph
        self.snapshot_store = snapshot_store
        self.reload_head = reload_head
        self.diff_engine = diff_engine or DiffEngine()
        self.confirm = confirm
        self.ctx = ctx
        self.page_size = page_size

        self.current_version_id: str = ""
        self.current_version: Optional[Version] = None
        self._browse_reference: Optional[Snapshot] = None
        self._cache: Dict[int, Version] = {}
        self._latest: Optional[int] = None

    @property
    def at_head(self) -> bool:
        return self.current_version_id == ""

    # -----------------------------
    # Leitura de versões
    # -----------------------------
    def latest_version_number(self, *, refresh: bool = False) -> int:
        """Número da última versão persistida (0 se não houver nenhuma)."""
        if self._latest is not None and not refresh:
            return self._latest
        records = self.history.list_versions(
            self.application_id, page=1, page_size=self.page_size, order="desc"
        )
        latest = 0
        for record in records or []:
            version = Version.from_record(record)
            self._cache.setdefault(version.version, version)
            latest = max(latest, version.version)
        self._latest = latest
        return latest

    def get_version(self, number: int) -> Version:
        cached = self._cache.get(number)
        if cached is not None:
            return cached
        record = self.history.get_version(self.application_id, number)
        if record is None:
            raise self._unavailable(f"Version {number} does not exist", requested=number)
        version = Version.from_record(record)
        self._cache[version.version] = version
        return version

    # -----------------------------
    # Navegação
    # -----------------------------
    def undo(self) -> Version:
        if self.at_head:
            target = self.latest_version_number(refresh=True)
            if target < 1:
                raise self._unavailable("There is no saved version to go back to")
        else:
            current = self.current_version.version
            if current <= 1:
                raise self._unavailable("Already at the first version", requested=current - 1, current=current)
            target = current - 1

        self._guard_pending("undo")
        version = self.get_version(target)
        self._load(version)
        return version

    def redo(self) -> Optional[Version]:
        """Avança uma versão; retorna None quando volta ao head."""
        if self.at_head:
            raise self._unavailable("Already at the latest state")

        current = self.current_version.version
        latest = self.latest_version_number()
        self._guard_pending("redo")

        if current >= latest:
            self.reload_head()
            self.mark_head()
            self._log("info", "returned to head", version=current)
            return None

        version = self.get_version(current + 1)
        self._load(version)
        return version

    def mark_head(self) -> None:
        """Volta ao estado "" (após save ou reload do head)."""
        self.current_version_id = ""
        self.current_version = None
        self._browse_reference = None
        self._latest = None

    # -----------------------------
    # Internals
    # -----------------------------
    def pending_changes(self) -> GraphDiff:
        reference = self._browse_reference or self.snapshot_store.current
        return self.diff_engine.diff(self.graph.get_all_nodes(), self.graph.get_all_edges(), reference)

    def _guard_pending(self, operation: str) -> None:
        pending = self.pending_changes()
        if not pending.has_changes:
            return
        summary = pending.summary()
        self._log("warning", "unsaved changes would be discarded", operation=operation, summary=summary)
        if self.confirm is not None and self.confirm(operation, summary):
            return
        payload = unsaved_changes_pending(operation=operation)
        raise UnsavedChangesPending(
            message=payload.message,
            details={**payload.details, "summary": summary},
            hint=payload.hint,
            decision_required=True,
        )

    def _load(self, version: Version) -> None:
        nodes = [n.copy() for n in version.nodes]
        edges = [e.copy() for e in version.edges]
        self.graph.replace(nodes, edges)
        self.current_version_id = version.id
        self.current_version = version
        self._browse_reference = Snapshot.capture(version.nodes, version.edges)
        self._log("info", "version loaded", version=version.version, version_id=version.id)

    def _unavailable(
        self,
        message: str,
        *,
        requested: Optional[int] = None,
        current: Optional[int] = None,
    ) -> VersionUnavailable:
        payload = version_unavailable(message=message, requested=requested, current=current)
        self._log("warning", message, **payload.details)
        return VersionUnavailable(message=payload.message, details=payload.details)

    def _log(self, level: str, message: str, **extra: Any) -> None:
        if self.ctx is not None:
            self.ctx.log(scope="versions", level=level, message=message, **extra)
