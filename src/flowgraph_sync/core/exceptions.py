"""
flowgraph_sync — Canonical Exceptions (v1)

Exceções tipadas internas do flowgraph_sync.

Regras:
- Validação de conexão NUNCA levanta exceção (retorna ValidationResult).
- Falhas de formato (handle id) levantam, pois indicam violação de contrato.
- Falhas de persistência levantam sem mutar GraphModel ou SnapshotStore.
- Exceções carregam apenas dados estruturados (serializáveis).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import FlowErrorPayload, SESSION_EXECUTION_ERROR


@dataclass(eq=False)
class FlowException(Exception):
    """Base class para exceções internas do flowgraph_sync.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    - Não congelada: o runtime atribui `__traceback__` ao propagar
      (ex.: através de `contextlib.contextmanager`)
    """

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Contrato de dados
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class MalformedHandleId(FlowException, ValueError):
    """Handle id não segue o formato `nodeId:handleKind[:discriminator]`."""


# ---------------------------------------------------------------------------
# Persistência
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class PersistFailure(FlowException):
    """O colaborador de persistência reportou falha no batch save."""


@dataclass(eq=False)
class ReconciliationGap(PersistFailure):
    """Mapa de IDs retornado não cobre todos os IDs temporários enviados."""


@dataclass(eq=False)
class ReconciliationConflict(PersistFailure):
    """Renomes planejados colidem com IDs já presentes no grafo."""


# ---------------------------------------------------------------------------
# Versões
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class VersionUnavailable(FlowException):
    """Não existe versão alvo para undo/redo a partir do estado atual."""


@dataclass(eq=False)
class UnsavedChangesPending(FlowException):
    """Troca de versão recusada: há mudanças pendentes não confirmadas."""


def exception_to_error(exc: BaseException) -> FlowErrorPayload:
    """Converte exceções em FlowErrorPayload sem expor stack trace.

    - FlowException: já traz message/details/hint/decision_required;
      o nome da classe é usado como código estável.
    - Outras exceções: encapsuladas como SESSION_EXECUTION_ERROR.
    """
    if isinstance(exc, FlowException):
        return FlowErrorPayload(
            type=exc.__class__.__name__,
            message=str(exc) or "Session operation failed",
            details=dict(exc.details or {}),
            hint=exc.hint,
            decision_required=bool(exc.decision_required),
        )

    return FlowErrorPayload(
        type=SESSION_EXECUTION_ERROR,
        message=str(exc) or "Unexpected error",
        details={"exception_class": exc.__class__.__name__},
        hint="Check the session event log for the failing scope.",
        decision_required=False,
    )
