# src/flowgraph_sync/core/session/editor.py
"""
EditorSession — orquestra uma sessão de edição de um grafo.

A sessão é dona exclusiva de:
    - GraphModel (grafo vivo)
    - SnapshotStore (baseline de diff)
    - SessionContext (event log + warnings)
    - VersionManager (undo/redo), quando há histórico de versões
    - RealtimeDiffTicker (modo realtime), quando há broadcaster

Fluxo de controle:
    conexão proposta → ConnectionValidator → GraphModel muda →
    DiffEngine contra o baseline → payload de batch save → colaborador →
    IdReconciler → novo baseline → VersionManager volta ao head

Falhas:
    - Validação nunca levanta: retorna ValidationResult
    - Batch save falho levanta PersistFailure; GraphModel e SnapshotStore
      ficam intactos e um retry recalcula o mesmo diff
    - Mapa de IDs incompleto levanta ReconciliationGap (sem renome parcial)
    - IDs devolvidos que colidem levantam ReconciliationConflict (idem)

Concorrência:
    - Um RLock da sessão serializa load, reconcile + novo baseline, troca de
      versão e o cálculo do diff do tick realtime; o tick nunca observa um
      grafo renomeado pela metade
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, Optional, Tuple

from ..config import default_config, get_setting
from ..errors import persist_failure, validation_rejected
from ..exceptions import FlowException, PersistFailure, exception_to_error
from ..graph.model import Edge, GraphModel, Node, create_node, generate_edge_id
from ..graph.handles import HandleId, HandleKind
from ..graph.registry import DEFAULT_REGISTRY, HandleRegistry
from ..graph.validation import Connection, ConnectionValidator, ValidationResult
from ..sync.diff import DiffEngine, GraphDiff
from ..sync.gateway import ChangeBroadcaster, Confirmation, PersistenceGateway, VersionHistory
from ..sync.payload import (
    BatchSaveResponse,
    SaveStats,
    build_batch_save_payload,
    edge_from_response,
    node_from_response,
)
from ..sync.reconcile import IdReconciler
from ..sync.snapshot import SnapshotStore, Viewport, viewport_changed
from ..sync.versions import Version, VersionManager
from .context import SessionContext
from .realtime import RealtimeDiffTicker


class EditorSession:
    """Sessão de edição single-writer de uma aplicação (grafo)."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        history: Optional[VersionHistory] = None,
        broadcaster: Optional[ChangeBroadcaster] = None,
        confirm: Optional[Confirmation] = None,
        ctx: Optional[SessionContext] = None,
        registry: HandleRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self.gateway = gateway
        self.history = history
        self.broadcaster = broadcaster
        self.confirm = confirm
        self.ctx: SessionContext = ctx or SessionContext.create()
        if not self.ctx.config:
            self.ctx.config = default_config()

        self.graph = GraphModel()
        self.snapshots = SnapshotStore()
        self.viewport: Optional[Viewport] = None
        self.application: Optional[Dict[str, Any]] = None
        self.application_id: Optional[str] = None

        self.validator = ConnectionValidator(
            registry=registry,
            unknown_kind_policy=self._setting("handles.unknown_kind_policy", "degrade"),
            ctx=self.ctx,
        )
        self.diff_engine = DiffEngine(ctx=self.ctx, persisted_pattern=self._setting("ids.persisted_pattern", None))
        self.reconciler = IdReconciler(
            self.graph,
            ctx=self.ctx,
            persisted_pattern=self._setting("ids.persisted_pattern", None),
        )
        self.versions: Optional[VersionManager] = None
        self._ticker: Optional[RealtimeDiffTicker] = None
        # guarda trocas do grafo vivo + baseline contra o tick realtime
        self._sync_lock = threading.RLock()

    def _setting(self, dotted: str, default: Any) -> Any:
        return get_setting(self.ctx.config, dotted, default)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------
    def load(self, application_id: str) -> None:
        """Carrega o head do grafo e cria o baseline (substitui tudo)."""
        raw = self.gateway.fetch_graph(application_id)
        nodes = [node_from_response(n) for n in raw.get("nodes") or []]
        edges = [edge_from_response(e) for e in raw.get("edges") or []]
        application = dict(raw.get("application") or {"id": application_id})

        viewport = None
        viewport_raw = application.get("viewport")
        if isinstance(viewport_raw, dict):
            viewport = Viewport(
                x=float(viewport_raw.get("x") or 0.0),
                y=float(viewport_raw.get("y") or 0.0),
                zoom=float(viewport_raw.get("zoom") or 1.0),
            )

        with self._sync_lock:
            self.graph.replace(nodes, edges)
            self.viewport = viewport
            self.snapshots.capture_from(self.graph, self.viewport)
            self.application = application
            self.application_id = application_id
        self.ctx.meta["application_id"] = application_id

        if self.history is not None:
            if self.versions is None or self.versions.application_id != application_id:
                self.versions = VersionManager(
                    application_id,
                    self.history,
                    self.graph,
                    self.snapshots,
                    reload_head=self._reload_head,
                    diff_engine=self.diff_engine,
                    confirm=self.confirm,
                    ctx=self.ctx,
                    page_size=int(self._setting("versions.page_size", 20)),
                )
            else:
                self.versions.mark_head()

        self.ctx.log(
            scope="load",
            level="info",
            message="application loaded",
            application_id=application_id,
            nodes=len(nodes),
            edges=len(edges),
        )

    def _reload_head(self) -> None:
        self._require_loaded()
        self.load(self.application_id)

    def _require_loaded(self) -> None:
        if self.application_id is None:
            raise RuntimeError("No application loaded")

    # ------------------------------------------------------------------
    # Canvas surface
    # ------------------------------------------------------------------
    def get_all_nodes(self):
        return self.graph.get_all_nodes()

    def get_all_edges(self):
        return self.graph.get_all_edges()

    def add_node(self, node: Node) -> Node:
        return self.graph.add_node(node)

    def create_node(self, node_type: str, position: Any) -> Node:
        """Cria um nó a partir do template do tipo (ID temporário) e o adiciona."""
        return self.graph.add_node(create_node(node_type, position))

    def on_connection_proposed(self, connection: Connection) -> ValidationResult:
        """Valida sem mutar; o canvas consome o resultado antes de commitar."""
        result = self.validator.validate_connection(
            connection,
            self.graph.get_node(connection.source),
            self.graph.get_node(connection.target),
            self.graph.get_all_edges(),
        )
        if not result.allowed:
            payload = validation_rejected(
                reason=result.reason or "",
                source=connection.source,
                target=connection.target,
            )
            self.ctx.log(scope="validation", level="info", message=payload.message, **payload.details)
        return result

    def connect(
        self,
        connection: Connection,
        *,
        edge_id: Optional[str] = None,
        type: str = "smoothstep",
        label: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Tuple[ValidationResult, Optional[Edge]]:
        """Valida e, se permitido, adiciona a aresta ao GraphModel."""
        result = self.on_connection_proposed(connection)
        if not result.allowed:
            return result, None

        handle = HandleId.parse(connection.source_handle)
        edge_data = dict(data or {})
        # o tipo de backend da aresta é derivado de data
        if handle.kind == HandleKind.CONDITION_BRANCH_OUTPUT and handle.discriminator:
            edge_data.setdefault("branchName", handle.discriminator)
        elif handle.kind == HandleKind.PARALLEL_THREAD_OUTPUT:
            edge_data.setdefault("isParallelChild", True)
            if handle.discriminator:
                edge_data.setdefault("threadId", handle.discriminator)

        edge = Edge(
            id=edge_id or generate_edge_id(
                connection.source,
                connection.target,
                handle.discriminator,
                taken=(e.id for e in self.graph.get_all_edges()),
            ),
            source=connection.source,
            target=connection.target,
            source_handle=connection.source_handle,
            target_handle=connection.target_handle,
            type=type,
            label=label,
            data=edge_data,
        )
        return result, self.graph.add_edge(edge)

    def on_edge_deletion_proposed(self, edge: Edge) -> ValidationResult:
        result = self.validator.validate_deletion(
            edge,
            self.graph.get_node(edge.source),
            self.graph.get_node(edge.target),
        )
        if not result.allowed:
            payload = validation_rejected(
                reason=result.reason or "",
                operation="delete",
                source=edge.source,
                target=edge.target,
            )
            self.ctx.log(scope="validation", level="info", message=payload.message, **payload.details)
        return result

    def on_edges_deletion_proposed(self, edges: Iterable[Edge]) -> ValidationResult:
        """Valida um lote de remoções; retorna a primeira rejeição."""
        for edge in edges:
            result = self.on_edge_deletion_proposed(edge)
            if not result.allowed:
                return result
        return ValidationResult.ok()

    def delete_edge(self, edge_id: str) -> ValidationResult:
        edge = self.graph.get_edge(edge_id)
        if edge is None:
            return ValidationResult.reject(f"Edge {edge_id} does not exist")
        result = self.on_edge_deletion_proposed(edge)
        if result.allowed:
            self.graph.remove_edge(edge_id)
        return result

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------
    def compute_diff(self) -> GraphDiff:
        return self.diff_engine.diff(
            self.graph.get_all_nodes(),
            self.graph.get_all_edges(),
            self.snapshots.current,
        )

    def has_unsaved_changes(self) -> bool:
        if self.application_id is None:
            return False
        return self.compute_diff().has_changes

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------
    def save(self) -> Optional[SaveStats]:
        """
        Persiste o diff corrente em um batch save.

        Returns:
            SaveStats, ou None quando não há mudanças (nenhuma chamada feita).

        Raises:
            PersistFailure: se o colaborador falhar ou reportar `success=False`.
            ReconciliationGap: se os mapas de ID não cobrirem os IDs enviados.
            ReconciliationConflict: se os IDs devolvidos colidirem com IDs locais.
        """
        self._require_loaded()
        diff = self.compute_diff()
        if not diff.has_changes:
            self.ctx.log(scope="save", level="info", message="no changes, save skipped")
            return None

        payload = build_batch_save_payload(self.application_id, diff, self.graph.get_all_edges())
        self.ctx.log(
            scope="save",
            level="info",
            message="batch save submitted",
            summary=diff.summary(),
            total_fields_changed=payload.total_fields_changed,
        )

        try:
            raw = self.gateway.batch_save(payload.to_dict())
        except FlowException:
            raise
        except Exception as exc:
            err = exception_to_error(exc)
            failure = persist_failure(details={"cause": err.to_dict()})
            self.ctx.log(scope="save", level="error", message=failure.message, **failure.details)
            raise PersistFailure(
                message=failure.message,
                details=failure.details,
                hint=failure.hint,
            ) from exc

        response = BatchSaveResponse.from_dict(raw or {}, total_fields_changed=payload.total_fields_changed)
        if not response.success:
            failure = persist_failure(
                message=response.message or "Saving the workflow failed",
                details={"summary": diff.summary()},
            )
            self.ctx.log(scope="save", level="error", message=failure.message, **failure.details)
            raise PersistFailure(message=failure.message, details=failure.details, hint=failure.hint)

        with self._sync_lock:
            self.reconciler.reconcile(
                response.node_id_mapping,
                response.edge_id_mapping,
                submitted_node_ids=payload.node_temp_ids,
                submitted_edge_ids=payload.edge_temp_ids,
            )
            self.snapshots.capture_from(self.graph, self.viewport)
            if self.versions is not None:
                self.versions.mark_head()

        self.ctx.log(scope="save", level="info", message="batch save succeeded", stats=response.stats.to_dict())
        return response.stats

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------
    def set_viewport(self, x: float, y: float, zoom: float) -> None:
        self.viewport = Viewport(x=x, y=y, zoom=zoom)

    def save_viewport_if_changed(self) -> bool:
        """Persiste o viewport só se ele se moveu além do limiar configurado."""
        self._require_loaded()
        threshold = float(self._setting("viewport.threshold", 0.1))
        if not viewport_changed(self.viewport, self.snapshots.current.viewport, threshold):
            return False
        self.gateway.update_viewport(self.application_id, self.viewport.to_dict())
        self.snapshots.set_viewport(self.viewport)
        self.ctx.log(scope="viewport", level="info", message="viewport saved", **self.viewport.to_dict())
        return True

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------
    def _require_versions(self) -> VersionManager:
        self._require_loaded()
        if self.versions is None:
            raise RuntimeError("No version history configured")
        return self.versions

    def undo(self) -> Version:
        versions = self._require_versions()
        with self._sync_lock:
            return versions.undo()

    def redo(self) -> Optional[Version]:
        versions = self._require_versions()
        with self._sync_lock:
            return versions.redo()

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------
    def broadcast_changes(self) -> Optional[GraphDiff]:
        """Um tick do modo realtime: publica o diff se não estiver vazio."""
        if self.broadcaster is None or self.application_id is None:
            return None
        with self._sync_lock:
            diff = self.compute_diff()
        if not diff.has_changes:
            return None
        self.broadcaster.publish(self.application_id, diff.to_dict())
        return diff

    def start_realtime(self) -> bool:
        if self.broadcaster is None:
            raise RuntimeError("No change broadcaster configured")
        if self._ticker is None:
            interval_ms = float(self._setting("realtime.interval_ms", 500))
            self._ticker = RealtimeDiffTicker(interval_ms / 1000.0, self.broadcast_changes, ctx=self.ctx)
        return self._ticker.start()

    def stop_realtime(self) -> bool:
        if self._ticker is None:
            return False
        return self._ticker.stop()

    def toggle_realtime(self, enabled: bool) -> bool:
        return self.start_realtime() if enabled else self.stop_realtime()

    @property
    def realtime_running(self) -> bool:
        return self._ticker is not None and self._ticker.running
