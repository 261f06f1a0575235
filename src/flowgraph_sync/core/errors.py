"""
flowgraph_sync — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do flowgraph_sync.
Erros são artefatos do contrato operacional do editor e devem ser:

- explícitos
- serializáveis
- curtos e humanos na mensagem (nunca estado interno cru)

Taxonomia:
- VALIDATION_REJECTED      → conexão ou remoção negada (recuperável, sem mutação)
- MALFORMED_HANDLE_ID      → handle id fora do formato (defeito upstream)
- UNKNOWN_HANDLE_KIND      → handle kind desconhecido (degradado com warning)
- PERSIST_FAILURE          → batch save reportado como falho (baseline intacto)
- RECONCILIATION_GAP       → mapa de IDs incompleto (tratado como PERSIST_FAILURE)
- RECONCILIATION_CONFLICT  → IDs devolvidos colidem com IDs existentes (tratado como PERSIST_FAILURE)
- VERSION_UNAVAILABLE      → navegação de versão impossível
- UNSAVED_CHANGES_PENDING  → troca de versão recusada para não descartar edições
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FlowErrorPayload:
    """
    Payload canônico de erro do flowgraph_sync.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao usuário
    - decision_required: indica que a operação aguarda confirmação humana
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

VALIDATION_REJECTED = "VALIDATION_REJECTED"
MALFORMED_HANDLE_ID = "MALFORMED_HANDLE_ID"
UNKNOWN_HANDLE_KIND = "UNKNOWN_HANDLE_KIND"

PERSIST_FAILURE = "PERSIST_FAILURE"
RECONCILIATION_GAP = "RECONCILIATION_GAP"
RECONCILIATION_CONFLICT = "RECONCILIATION_CONFLICT"

VERSION_UNAVAILABLE = "VERSION_UNAVAILABLE"
UNSAVED_CHANGES_PENDING = "UNSAVED_CHANGES_PENDING"

SESSION_EXECUTION_ERROR = "SESSION_EXECUTION_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def validation_rejected(
    *,
    reason: str,
    operation: str = "connect",
    source: Optional[str] = None,
    target: Optional[str] = None,
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=VALIDATION_REJECTED,
        message=reason,
        details={
            "operation": operation,
            "source": source,
            "target": target,
        },
        hint=None,
        decision_required=False,
    )


def malformed_handle_id(
    *,
    handle_id: Any,
    hint: str = "Handle ids must follow 'nodeId:handleKind[:discriminator]'.",
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=MALFORMED_HANDLE_ID,
        message="Malformed handle id",
        details={"handle_id": handle_id},
        hint=hint,
        decision_required=False,
    )


def unknown_handle_kind(
    *,
    segment: str,
    handle_id: str,
    degraded_to: Optional[str],
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=UNKNOWN_HANDLE_KIND,
        message="Unknown handle kind",
        details={
            "segment": segment,
            "handle_id": handle_id,
            "degraded_to": degraded_to,
        },
        hint="Register the handle kind or fix the node template that emits it.",
        decision_required=False,
    )


def persist_failure(
    *,
    message: str = "Saving the workflow failed",
    details: Optional[Dict[str, Any]] = None,
    hint: str = "Nothing was changed locally; retrying recomputes the same change-set.",
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=PERSIST_FAILURE,
        message=message,
        details=details or {},
        hint=hint,
        decision_required=False,
    )


def reconciliation_gap(
    *,
    missing_node_ids: List[str],
    missing_edge_ids: List[str],
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=RECONCILIATION_GAP,
        message="The server did not return ids for every new element",
        details={
            "missing_node_ids": missing_node_ids,
            "missing_edge_ids": missing_edge_ids,
        },
        hint="Nothing was renamed locally; reload the workflow before editing further.",
        decision_required=False,
    )


def reconciliation_conflict(
    *,
    node_ids: List[str],
    edge_ids: List[str],
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=RECONCILIATION_CONFLICT,
        message="The server returned ids that clash with existing elements",
        details={"node_ids": node_ids, "edge_ids": edge_ids},
        hint="Nothing was renamed locally; reload the workflow before editing further.",
        decision_required=False,
    )


def version_unavailable(
    *,
    message: str,
    requested: Optional[int] = None,
    current: Optional[int] = None,
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=VERSION_UNAVAILABLE,
        message=message,
        details={"requested": requested, "current": current},
        hint=None,
        decision_required=False,
    )


def unsaved_changes_pending(
    *,
    operation: str,
    hint: str = "Save or discard the pending changes before switching versions.",
) -> FlowErrorPayload:
    return FlowErrorPayload(
        type=UNSAVED_CHANGES_PENDING,
        message="There are unsaved changes that would be discarded",
        details={"operation": operation},
        hint=hint,
        decision_required=True,
    )
