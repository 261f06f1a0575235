# src/flowgraph_sync/core/graph/registry.py
"""
HandleRegistry — tabela estática de handle kinds.

Responsabilidades:
    - Dizer se um HandleKind é input (aceita entrada) ou output (produz saída)
    - Dizer se um par ordenado (source_kind, target_kind) é permitido
    - Expor limites de cardinalidade por kind `{max_incoming, max_outgoing}`
      (-1 = ilimitado, 0 = proibido naquela direção)
    - Resolver o kind de um handle id, com política para kinds desconhecidos
    - Exportar a matriz de compatibilidade (pandas) para inspeção

Decisões arquiteturais:
    - Mundo fechado: ausência de entrada na tabela significa "não permitido"
    - Limites são independentes da tabela de compatibilidade e aplicados por
      instância concreta de handle (ver ConnectionValidator)
    - O registro é imutável; variações são novas instâncias

Limites explícitos:
    - Não conhece nós, arestas ou GraphModel
    - Não aplica regras de negócio por tipo de nó
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import pandas as pd

from ..errors import unknown_handle_kind
from .handles import HandleId, HandleKind

if TYPE_CHECKING:
    from ..session.context import SessionContext


UNLIMITED = -1


@dataclass(frozen=True)
class HandleLimits:
    max_incoming: int
    max_outgoing: int


INPUT_KINDS: FrozenSet[HandleKind] = frozenset(
    {
        HandleKind.COMMON_INPUT,
        HandleKind.END_INPUT,
        HandleKind.TASK_GENERATOR_INPUT,
        HandleKind.CONDITION_INPUT,
        HandleKind.PARALLEL_EXECUTOR_INPUT,
        HandleKind.PARALLEL_CHILD_INPUT,
        HandleKind.API_CALLER_INPUT,
        HandleKind.DATA_PROCESSOR_INPUT,
        HandleKind.LOOP_INPUT,
        HandleKind.LOOP_FEEDBACK_INPUT,
        HandleKind.LLM_CALLER_INPUT,
        HandleKind.WORKFLOW_INPUT,
    }
)

OUTPUT_KINDS: FrozenSet[HandleKind] = frozenset(k for k in HandleKind if k not in INPUT_KINDS)

# Inputs alcançáveis por qualquer output "comum"
_STANDARD_TARGETS: Tuple[HandleKind, ...] = (
    HandleKind.COMMON_INPUT,
    HandleKind.TASK_GENERATOR_INPUT,
    HandleKind.CONDITION_INPUT,
    HandleKind.PARALLEL_EXECUTOR_INPUT,
    HandleKind.API_CALLER_INPUT,
    HandleKind.DATA_PROCESSOR_INPUT,
    HandleKind.LOOP_INPUT,
    HandleKind.LLM_CALLER_INPUT,
    HandleKind.WORKFLOW_INPUT,
    HandleKind.END_INPUT,
)

_STANDARD_SOURCES: Tuple[HandleKind, ...] = (
    HandleKind.COMMON_OUTPUT,
    HandleKind.START_OUTPUT,
    HandleKind.TASK_GENERATOR_OUTPUT,
    HandleKind.CONDITION_BRANCH_OUTPUT,
    HandleKind.API_CALLER_OUTPUT,
    HandleKind.DATA_PROCESSOR_OUTPUT,
    HandleKind.LOOP_CONTINUE_OUTPUT,
    HandleKind.LLM_CALLER_OUTPUT,
    HandleKind.WORKFLOW_OUTPUT,
)

# loop body volta para o próprio loop (feedback) e não encerra o fluxo
_LOOP_BODY_TARGETS: Tuple[HandleKind, ...] = tuple(
    k for k in _STANDARD_TARGETS if k not in (HandleKind.WORKFLOW_INPUT, HandleKind.END_INPUT)
) + (HandleKind.LOOP_FEEDBACK_INPUT,)


def _build_compatibility() -> Dict[Tuple[HandleKind, HandleKind], bool]:
    table: Dict[Tuple[HandleKind, HandleKind], bool] = {}
    for src in _STANDARD_SOURCES:
        for tgt in _STANDARD_TARGETS:
            table[(src, tgt)] = True
    table[(HandleKind.PARALLEL_THREAD_OUTPUT, HandleKind.PARALLEL_CHILD_INPUT)] = True
    for tgt in _LOOP_BODY_TARGETS:
        table[(HandleKind.LOOP_BODY_OUTPUT, tgt)] = True
    return table


COMPATIBILITY: Dict[Tuple[HandleKind, HandleKind], bool] = _build_compatibility()


def _build_limits() -> Dict[HandleKind, HandleLimits]:
    limits: Dict[HandleKind, HandleLimits] = {}
    for kind in HandleKind:
        if kind in INPUT_KINDS:
            limits[kind] = HandleLimits(max_incoming=UNLIMITED, max_outgoing=0)
        else:
            limits[kind] = HandleLimits(max_incoming=0, max_outgoing=1)
    limits[HandleKind.PARALLEL_CHILD_INPUT] = HandleLimits(max_incoming=1, max_outgoing=0)
    limits[HandleKind.LOOP_FEEDBACK_INPUT] = HandleLimits(max_incoming=1, max_outgoing=0)
    return limits


LIMITS: Dict[HandleKind, HandleLimits] = _build_limits()

LABELS: Dict[HandleKind, str] = {
    HandleKind.COMMON_INPUT: "Input",
    HandleKind.COMMON_OUTPUT: "Output",
    HandleKind.START_OUTPUT: "Start",
    HandleKind.END_INPUT: "End",
    HandleKind.TASK_GENERATOR_INPUT: "Task generator input",
    HandleKind.TASK_GENERATOR_OUTPUT: "Task generator output",
    HandleKind.CONDITION_INPUT: "Condition input",
    HandleKind.CONDITION_BRANCH_OUTPUT: "Condition branch",
    HandleKind.PARALLEL_EXECUTOR_INPUT: "Parallel executor input",
    HandleKind.PARALLEL_THREAD_OUTPUT: "Parallel thread",
    HandleKind.PARALLEL_CHILD_INPUT: "Parallel child input",
    HandleKind.API_CALLER_INPUT: "API call input",
    HandleKind.API_CALLER_OUTPUT: "API call output",
    HandleKind.DATA_PROCESSOR_INPUT: "Data processor input",
    HandleKind.DATA_PROCESSOR_OUTPUT: "Data processor output",
    HandleKind.LOOP_INPUT: "Loop input",
    HandleKind.LOOP_BODY_OUTPUT: "Loop body",
    HandleKind.LOOP_CONTINUE_OUTPUT: "Loop exit",
    HandleKind.LOOP_FEEDBACK_INPUT: "Loop feedback",
    HandleKind.LLM_CALLER_INPUT: "LLM input",
    HandleKind.LLM_CALLER_OUTPUT: "LLM output",
    HandleKind.WORKFLOW_INPUT: "Sub-workflow input",
    HandleKind.WORKFLOW_OUTPUT: "Sub-workflow output",
}


@dataclass(frozen=True)
class HandleRegistry:
    """
    Registro imutável de handle kinds.

    Args:
        compatibility: pares (source, target) permitidos.
        limits: cardinalidade por kind.
        labels: rótulos humanos usados em motivos de rejeição.
        fallback_kind: kind usado quando o segmento é desconhecido.
    """

    compatibility: Mapping[Tuple[HandleKind, HandleKind], bool] = field(
        default_factory=lambda: dict(COMPATIBILITY)
    )
    limits: Mapping[HandleKind, HandleLimits] = field(default_factory=lambda: dict(LIMITS))
    labels: Mapping[HandleKind, str] = field(default_factory=lambda: dict(LABELS))
    fallback_kind: HandleKind = HandleKind.COMMON_OUTPUT

    def is_input(self, kind: HandleKind) -> bool:
        return HandleKind(kind) in INPUT_KINDS

    def is_output(self, kind: HandleKind) -> bool:
        return HandleKind(kind) in OUTPUT_KINDS

    def is_compatible(self, source_kind: HandleKind, target_kind: HandleKind) -> bool:
        return bool(self.compatibility.get((HandleKind(source_kind), HandleKind(target_kind)), False))

    def limits_for(self, kind: HandleKind) -> HandleLimits:
        return self.limits.get(HandleKind(kind), HandleLimits(max_incoming=0, max_outgoing=0))

    def label(self, kind: HandleKind) -> str:
        kind = HandleKind(kind)
        return self.labels.get(kind, kind.value)

    def resolve_kind(
        self,
        handle_id: str,
        *,
        ctx: Optional["SessionContext"] = None,
    ) -> Optional[HandleKind]:
        """
        Resolve o HandleKind de um handle id.

        Segmentos desconhecidos degradam para `fallback_kind` com warning
        no contexto (quando fornecido). Se `fallback_kind` for None, retorna
        None e o chamador decide.

        Raises:
            MalformedHandleId: se o handle id for mal-formado.
        """
        handle = HandleId.parse(handle_id)
        kind = handle.kind
        if kind is not None:
            return kind

        degraded = self.fallback_kind
        if ctx is not None:
            payload = unknown_handle_kind(
                segment=handle.segment,
                handle_id=handle.format(),
                degraded_to=degraded.value if degraded is not None else None,
            )
            ctx.log(scope="handles", level="warning", message=payload.message, **payload.details)
            ctx.add_warning(
                scope="handles",
                message=f"Unknown handle kind '{handle.segment}' in {handle.format()}",
            )
        return degraded

    # -----------------------------
    # Matriz de compatibilidade
    # -----------------------------
    def compatibility_frame(
        self,
        sources: Optional[Iterable[HandleKind]] = None,
        targets: Optional[Iterable[HandleKind]] = None,
    ) -> pd.DataFrame:
        """DataFrame booleano: linhas = source kind, colunas = target kind."""
        src = [HandleKind(k) for k in (sources if sources is not None else sorted(OUTPUT_KINDS, key=lambda k: k.value))]
        tgt = [HandleKind(k) for k in (targets if targets is not None else sorted(INPUT_KINDS, key=lambda k: k.value))]
        rows = [[self.is_compatible(s, t) for t in tgt] for s in src]
        frame = pd.DataFrame(rows, index=[s.value for s in src], columns=[t.value for t in tgt], dtype=bool)
        frame.index.name = "source"
        frame.columns.name = "target"
        return frame

    def render_compatibility_matrix(self) -> str:
        """Tabela textual ("x" = permitido, "." = negado)."""
        frame = self.compatibility_frame()
        marks = frame.apply(lambda column: column.map({True: "x", False: "."}))
        return marks.to_string()


DEFAULT_REGISTRY = HandleRegistry()
