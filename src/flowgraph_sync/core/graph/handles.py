# src/flowgraph_sync/core/graph/handles.py
"""
Handles — pontos de conexão tipados e direcionais de um nó.

Um handle não é uma entidade armazenada: é uma identidade derivada
`{node_id, segment, discriminator?}` serializada como string composta
`nodeId:segment[:discriminator]`. O `segment` (ex.: `branch`,
`common-output`) resolve para um `HandleKind`, que decide direção e
regras de compatibilidade no HandleRegistry.

Decisões arquiteturais:
    - Parse e format formam um par explícito com lei de round-trip:
      `HandleId.parse(s).format() == s` para todo `s` bem-formado
    - O parse divide em no máximo três partes; o discriminador pode
      conter ":" livremente
    - IDs mal-formados levantam `MalformedHandleId` (defeito upstream)
    - Segmento desconhecido NÃO é erro de parse; a política para ele
      pertence ao HandleRegistry

Invariantes:
    - node_id e segment nunca são vazios
    - discriminator é None ou string não vazia

Limites explícitos:
    - Não decide compatibilidade nem cardinalidade
    - Não conhece o GraphModel
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..exceptions import MalformedHandleId


SEPARATOR = ":"


class HandleKind(str, Enum):
    COMMON_INPUT = "common_input"
    COMMON_OUTPUT = "common_output"
    START_OUTPUT = "start_output"
    END_INPUT = "end_input"
    TASK_GENERATOR_INPUT = "task_generator_input"
    TASK_GENERATOR_OUTPUT = "task_generator_output"
    CONDITION_INPUT = "condition_input"
    CONDITION_BRANCH_OUTPUT = "condition_branch_output"
    PARALLEL_EXECUTOR_INPUT = "parallel_executor_input"
    PARALLEL_THREAD_OUTPUT = "parallel_thread_output"
    PARALLEL_CHILD_INPUT = "parallel_child_input"
    API_CALLER_INPUT = "api_caller_input"
    API_CALLER_OUTPUT = "api_caller_output"
    DATA_PROCESSOR_INPUT = "data_processor_input"
    DATA_PROCESSOR_OUTPUT = "data_processor_output"
    LOOP_INPUT = "loop_input"
    LOOP_BODY_OUTPUT = "loop_body_output"
    LOOP_CONTINUE_OUTPUT = "loop_continue_output"
    LOOP_FEEDBACK_INPUT = "loop_feedback_input"
    LLM_CALLER_INPUT = "llm_caller_input"
    LLM_CALLER_OUTPUT = "llm_caller_output"
    WORKFLOW_INPUT = "workflow_input"
    WORKFLOW_OUTPUT = "workflow_output"


# Segmento de wire → HandleKind
HANDLE_SEGMENTS: Dict[str, HandleKind] = {
    "start-output": HandleKind.START_OUTPUT,
    "end-input": HandleKind.END_INPUT,
    "task-input": HandleKind.TASK_GENERATOR_INPUT,
    "task-output": HandleKind.TASK_GENERATOR_OUTPUT,
    "condition-input": HandleKind.CONDITION_INPUT,
    "branch": HandleKind.CONDITION_BRANCH_OUTPUT,
    "parallel-input": HandleKind.PARALLEL_EXECUTOR_INPUT,
    "thread": HandleKind.PARALLEL_THREAD_OUTPUT,
    "parallel-child-input": HandleKind.PARALLEL_CHILD_INPUT,
    "api-input": HandleKind.API_CALLER_INPUT,
    "api-output": HandleKind.API_CALLER_OUTPUT,
    "data-input": HandleKind.DATA_PROCESSOR_INPUT,
    "data-output": HandleKind.DATA_PROCESSOR_OUTPUT,
    "loop-input": HandleKind.LOOP_INPUT,
    "loop-body": HandleKind.LOOP_BODY_OUTPUT,
    "loop-continue": HandleKind.LOOP_CONTINUE_OUTPUT,
    "loop-feedback": HandleKind.LOOP_FEEDBACK_INPUT,
    "llm-input": HandleKind.LLM_CALLER_INPUT,
    "llm-output": HandleKind.LLM_CALLER_OUTPUT,
    "common-input": HandleKind.COMMON_INPUT,
    "common-output": HandleKind.COMMON_OUTPUT,
    "workflow-input": HandleKind.WORKFLOW_INPUT,
    "workflow-output": HandleKind.WORKFLOW_OUTPUT,
}

SEGMENT_FOR_KIND: Dict[HandleKind, str] = {kind: seg for seg, kind in HANDLE_SEGMENTS.items()}


@dataclass(frozen=True)
class HandleId:
    """Identidade de um handle concreto (instância por nó e discriminador)."""

    node_id: str
    segment: str
    discriminator: Optional[str] = None

    @classmethod
    def parse(cls, raw: object) -> "HandleId":
        """
        Converte `nodeId:segment[:discriminator]` em HandleId.

        Raises:
            MalformedHandleId: se `raw` não for string, tiver menos de dois
                segmentos ou algum segmento obrigatório estiver vazio.
        """
        if not isinstance(raw, str):
            raise MalformedHandleId(
                message="Malformed handle id",
                details={"handle_id": raw, "reason": "not a string"},
            )

        parts = raw.split(SEPARATOR, 2)
        if len(parts) < 2:
            raise MalformedHandleId(
                message=f"Malformed handle id: {raw!r}",
                details={"handle_id": raw, "reason": "expected at least two segments"},
            )

        node_id, segment = parts[0], parts[1]
        discriminator = parts[2] if len(parts) == 3 else None

        if not node_id or not segment or discriminator == "":
            raise MalformedHandleId(
                message=f"Malformed handle id: {raw!r}",
                details={"handle_id": raw, "reason": "empty segment"},
            )

        return cls(node_id=node_id, segment=segment, discriminator=discriminator)

    def format(self) -> str:
        parts = [self.node_id, self.segment]
        if self.discriminator is not None:
            parts.append(self.discriminator)
        return SEPARATOR.join(parts)

    def __str__(self) -> str:
        return self.format()

    @property
    def kind(self) -> Optional[HandleKind]:
        """HandleKind conhecido do segmento, ou None se não registrado."""
        return HANDLE_SEGMENTS.get(self.segment)


def make_handle_id(node_id: str, kind: HandleKind, discriminator: Optional[str] = None) -> str:
    return HandleId(node_id, SEGMENT_FOR_KIND[HandleKind(kind)], discriminator).format()


# -----------------------------
# Builders por tipo de nó
# -----------------------------
def condition_branch(node_id: str, branch_name: str) -> str:
    return make_handle_id(node_id, HandleKind.CONDITION_BRANCH_OUTPUT, branch_name)


def parallel_thread(node_id: str, thread_id: str) -> str:
    return make_handle_id(node_id, HandleKind.PARALLEL_THREAD_OUTPUT, thread_id)


def loop_body(node_id: str) -> str:
    return make_handle_id(node_id, HandleKind.LOOP_BODY_OUTPUT)


def loop_continue(node_id: str) -> str:
    return make_handle_id(node_id, HandleKind.LOOP_CONTINUE_OUTPUT)


def loop_feedback(node_id: str) -> str:
    return make_handle_id(node_id, HandleKind.LOOP_FEEDBACK_INPUT)


def parallel_child_input(node_id: str) -> str:
    return make_handle_id(node_id, HandleKind.PARALLEL_CHILD_INPUT)


# (inputs, outputs) padrão por tipo de nó; handles com discriminador
# (branch, thread) dependem de `data` e são montados em handles_for().
_NODE_HANDLES: Dict[str, Tuple[Tuple[HandleKind, ...], Tuple[HandleKind, ...]]] = {
    "user_input": ((), (HandleKind.START_OUTPUT,)),
    "end_node": ((HandleKind.END_INPUT,), ()),
    "todo_task_generator": ((HandleKind.TASK_GENERATOR_INPUT,), (HandleKind.TASK_GENERATOR_OUTPUT,)),
    "condition_checker": ((HandleKind.CONDITION_INPUT,), ()),
    "parallel_executor": ((HandleKind.PARALLEL_EXECUTOR_INPUT,), ()),
    "api_caller": ((HandleKind.API_CALLER_INPUT,), (HandleKind.API_CALLER_OUTPUT,)),
    "data_processor": ((HandleKind.DATA_PROCESSOR_INPUT,), (HandleKind.DATA_PROCESSOR_OUTPUT,)),
    "while_loop": (
        (HandleKind.LOOP_INPUT, HandleKind.LOOP_FEEDBACK_INPUT),
        (HandleKind.LOOP_BODY_OUTPUT, HandleKind.LOOP_CONTINUE_OUTPUT),
    ),
    "llm_caller": ((HandleKind.LLM_CALLER_INPUT,), (HandleKind.LLM_CALLER_OUTPUT,)),
    "workflow": ((HandleKind.WORKFLOW_INPUT,), (HandleKind.WORKFLOW_OUTPUT,)),
}


def handles_for(node_type: str, node_id: str, data: Optional[dict] = None) -> Dict[str, List[str]]:
    """
    Lista os handle ids que um nó expõe, separados em inputs e outputs.

    Condition nodes expõem um handle `branch` por nome declarado em
    `data.branchNodes`; parallel executors expõem um `thread` por thread de
    `data.parallelConfig.threads`. Tipos desconhecidos recebem o par
    genérico common-input/common-output.
    """
    data = data or {}
    key = getattr(node_type, "value", node_type)
    inputs, outputs = _NODE_HANDLES.get(
        key, ((HandleKind.COMMON_INPUT,), (HandleKind.COMMON_OUTPUT,))
    )

    result = {
        "inputs": [make_handle_id(node_id, k) for k in inputs],
        "outputs": [make_handle_id(node_id, k) for k in outputs],
    }

    if key == "condition_checker":
        for name in (data.get("branchNodes") or {}):
            result["outputs"].append(condition_branch(node_id, name))

    if key == "parallel_executor":
        threads = (data.get("parallelConfig") or {}).get("threads") or []
        for thread in threads:
            if isinstance(thread, dict) and thread.get("id"):
                result["outputs"].append(parallel_thread(node_id, thread["id"]))

    return result
