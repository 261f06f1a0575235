# src/flowgraph_sync/core/graph/validation.py
"""
ConnectionValidator — decide se uma conexão proposta é legal.

Pipeline de validação (fail-fast, nesta ordem):
    1. Ambos os nós existem
    2. Source e target diferem (sem self-loop)
    3. Nenhuma aresta existente repete `(source, target, sourceHandle)`
    4. Handle kinds resolvidos são compatíveis no HandleRegistry
    5. Regras de negócio por tipo de nó (conjunto fechado e extensível)
    6. Cardinalidade da instância do handle de origem (`max_outgoing`)
    7. Cardinalidade da instância do handle de destino (`max_incoming`)

Decisões arquiteturais:
    - Validação nunca levanta exceção de negócio: retorna ValidationResult
    - Handle ids mal-formados levantam MalformedHandleId (defeito upstream)
    - Regras de negócio são callables puros que retornam um motivo ou None
    - Cardinalidade é contada por instância concreta de handle id, não por kind
    - Limites de saída de NodeOutputRule são contados por nó e por classe
      (normal, branch, parallel); tipos desconhecidos não têm limite

Invariantes:
    - Nenhuma mutação de estado (função pura sobre o estado fornecido)
    - O primeiro motivo de rejeição encontrado é o retornado

Limites explícitos:
    - Não adiciona a aresta ao GraphModel
    - Não calcula diffs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .handles import HandleId, HandleKind
from .model import Edge, Node, NodeType
from .registry import DEFAULT_REGISTRY, UNLIMITED, HandleRegistry

if TYPE_CHECKING:
    from ..session.context import SessionContext


@dataclass(frozen=True)
class ValidationResult:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(allowed=True)

    @classmethod
    def reject(cls, reason: str) -> "ValidationResult":
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class Connection:
    """Conexão proposta pelo canvas (ainda não é uma aresta)."""

    source: str
    target: str
    source_handle: Optional[str]
    target_handle: Optional[str]

    @classmethod
    def from_edge(cls, edge: Edge) -> "Connection":
        return cls(edge.source, edge.target, edge.source_handle, edge.target_handle)


# ---------------------------------------------------------------------------
# Regras por tipo de nó
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeInputRule:
    can_be_target: bool = True
    max_inputs: int = UNLIMITED


@dataclass(frozen=True)
class NodeOutputRule:
    can_have_normal_output: bool = True
    can_have_branch_output: bool = False
    can_have_parallel_output: bool = False
    max_normal_outputs: int = UNLIMITED
    max_branch_outputs: int = UNLIMITED
    max_parallel_outputs: int = UNLIMITED

    def max_for(self, klass: str) -> int:
        return {
            "normal": self.max_normal_outputs,
            "branch": self.max_branch_outputs,
            "parallel": self.max_parallel_outputs,
        }[klass]


NODE_OUTPUT_RULES: Dict[str, NodeOutputRule] = {
    NodeType.USER_INPUT.value: NodeOutputRule(max_normal_outputs=1),
    NodeType.TODO_TASK_GENERATOR.value: NodeOutputRule(max_normal_outputs=1),
    NodeType.CONDITION_CHECKER.value: NodeOutputRule(
        can_have_normal_output=False,
        can_have_branch_output=True,
        max_normal_outputs=0,
    ),
    NodeType.API_CALLER.value: NodeOutputRule(max_normal_outputs=1),
    NodeType.DATA_PROCESSOR.value: NodeOutputRule(max_normal_outputs=1),
    NodeType.WHILE_LOOP.value: NodeOutputRule(max_normal_outputs=2),
    NodeType.END_NODE.value: NodeOutputRule(can_have_normal_output=False, max_normal_outputs=0),
    NodeType.PARALLEL_EXECUTOR.value: NodeOutputRule(can_have_parallel_output=True, max_normal_outputs=1),
    NodeType.LLM_CALLER.value: NodeOutputRule(max_normal_outputs=1),
    NodeType.WORKFLOW.value: NodeOutputRule(max_normal_outputs=1),
}

NODE_INPUT_RULES: Dict[str, NodeInputRule] = {
    NodeType.USER_INPUT.value: NodeInputRule(can_be_target=False, max_inputs=0),
    **{
        t.value: NodeInputRule()
        for t in NodeType
        if t is not NodeType.USER_INPUT
    },
}


def get_node_output_rule(node_type: str) -> NodeOutputRule:
    return NODE_OUTPUT_RULES.get(getattr(node_type, "value", node_type), NodeOutputRule())


def get_node_input_rule(node_type: str) -> NodeInputRule:
    return NODE_INPUT_RULES.get(getattr(node_type, "value", node_type), NodeInputRule())


def output_class(kind: Optional[HandleKind]) -> str:
    """Classe de saída de um kind: "branch", "parallel" ou "normal"."""
    if kind is HandleKind.CONDITION_BRANCH_OUTPUT:
        return "branch"
    if kind is HandleKind.PARALLEL_THREAD_OUTPUT:
        return "parallel"
    return "normal"


# ---------------------------------------------------------------------------
# Regras de negócio
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RuleInput:
    connection: Connection
    source_node: Node
    target_node: Node
    source_kind: HandleKind
    target_kind: HandleKind
    existing_edges: Sequence[Edge]


BusinessRule = Callable[[RuleInput], Optional[str]]


def no_input_to_input(rule: RuleInput) -> Optional[str]:
    if (
        rule.source_node.type == NodeType.USER_INPUT.value
        and rule.target_node.type == NodeType.USER_INPUT.value
    ):
        return "An input node cannot connect to another input node"
    return None


def target_must_accept_inputs(rule: RuleInput) -> Optional[str]:
    input_rule = get_node_input_rule(rule.target_node.type)
    if not input_rule.can_be_target:
        return f"{rule.target_node.label} cannot be a connection target"
    if input_rule.max_inputs != UNLIMITED:
        incoming = [e for e in rule.existing_edges if e.target == rule.target_node.id]
        if len(incoming) >= input_rule.max_inputs:
            return f"{rule.target_node.label} accepts at most {input_rule.max_inputs} inputs"
    return None


def source_output_class_allowed(rule: RuleInput) -> Optional[str]:
    out_rule = get_node_output_rule(rule.source_node.type)
    klass = output_class(rule.source_kind)
    allowed = {
        "normal": out_rule.can_have_normal_output,
        "branch": out_rule.can_have_branch_output,
        "parallel": out_rule.can_have_parallel_output,
    }[klass]
    if not allowed:
        return f"{rule.source_node.label} cannot have {klass} outputs"

    limit = out_rule.max_for(klass)
    if limit != UNLIMITED:
        same_class = [
            e for e in rule.existing_edges
            if e.source == rule.source_node.id and _edge_output_class(e) == klass
        ]
        if len(same_class) >= limit:
            return f"{rule.source_node.label} accepts at most {limit} {klass} outputs"
    return None


def _edge_output_class(edge: Edge) -> str:
    if not edge.source_handle:
        return "normal"
    return output_class(HandleId.parse(edge.source_handle).kind)


DEFAULT_BUSINESS_RULES: Tuple[BusinessRule, ...] = (
    no_input_to_input,
    target_must_accept_inputs,
    source_output_class_allowed,
)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

@dataclass
class ConnectionValidator:
    """
    Validador de conexões.

    Args:
        registry: HandleRegistry consultado nos passos 4, 6 e 7.
        business_rules: regras do passo 5, avaliadas em ordem.
        unknown_kind_policy: "degrade" (kind desconhecido vira o fallback do
            registro, com warning) ou "reject" (conexão recusada).
        ctx: SessionContext opcional para eventos e warnings.
    """

    registry: HandleRegistry = DEFAULT_REGISTRY
    business_rules: Sequence[BusinessRule] = field(default_factory=lambda: DEFAULT_BUSINESS_RULES)
    unknown_kind_policy: str = "degrade"
    ctx: Optional["SessionContext"] = None

    def __post_init__(self) -> None:
        if self.unknown_kind_policy not in ("degrade", "reject"):
            raise ValueError(f"Invalid unknown_kind_policy: {self.unknown_kind_policy}")

    def _resolve(self, handle_id: Optional[str]) -> Optional[HandleKind]:
        if self.unknown_kind_policy == "reject":
            # parse ainda levanta para ids mal-formados
            return HandleId.parse(handle_id).kind
        return self.registry.resolve_kind(handle_id, ctx=self.ctx)

    def validate_connection(
        self,
        proposed: Connection,
        source_node: Optional[Node],
        target_node: Optional[Node],
        existing_edges: Iterable[Edge],
    ) -> ValidationResult:
        edges: List[Edge] = list(existing_edges)

        # 1. nós existem
        if source_node is None:
            return ValidationResult.reject("Source node does not exist")
        if target_node is None:
            return ValidationResult.reject("Target node does not exist")

        # 2. self-loop
        if proposed.source == proposed.target:
            return ValidationResult.reject("A node cannot connect to itself")

        # 3. duplicata
        for e in edges:
            if (
                e.source == proposed.source
                and e.target == proposed.target
                and e.source_handle == proposed.source_handle
            ):
                return ValidationResult.reject("This connection already exists")

        # 4. compatibilidade
        source_kind = self._resolve(proposed.source_handle)
        target_kind = self._resolve(proposed.target_handle)
        if source_kind is None or target_kind is None:
            unknown = proposed.source_handle if source_kind is None else proposed.target_handle
            return ValidationResult.reject(f"Unknown handle kind in {unknown}")

        if not self.registry.is_compatible(source_kind, target_kind):
            return ValidationResult.reject(
                f'"{self.registry.label(source_kind)}" cannot connect to '
                f'"{self.registry.label(target_kind)}"'
            )

        # 5. regras de negócio
        rule_input = RuleInput(
            connection=proposed,
            source_node=source_node,
            target_node=target_node,
            source_kind=source_kind,
            target_kind=target_kind,
            existing_edges=edges,
        )
        for rule in self.business_rules:
            reason = rule(rule_input)
            if reason:
                return ValidationResult.reject(reason)

        # 6. cardinalidade do handle de origem
        source_limits = self.registry.limits_for(source_kind)
        if source_limits.max_outgoing != UNLIMITED:
            outgoing = [
                e for e in edges
                if e.source == proposed.source and e.source_handle == proposed.source_handle
            ]
            if len(outgoing) >= source_limits.max_outgoing:
                return ValidationResult.reject(
                    f'{source_node.label} "{self.registry.label(source_kind)}" reached its '
                    f"maximum of {source_limits.max_outgoing} outgoing connections"
                )

        # 7. cardinalidade do handle de destino
        target_limits = self.registry.limits_for(target_kind)
        if target_limits.max_incoming != UNLIMITED:
            incoming = [
                e for e in edges
                if e.target == proposed.target and e.target_handle == proposed.target_handle
            ]
            if len(incoming) >= target_limits.max_incoming:
                return ValidationResult.reject(
                    f'{target_node.label} "{self.registry.label(target_kind)}" reached its '
                    f"maximum of {target_limits.max_incoming} incoming connections"
                )

        return ValidationResult.ok()

    def validate_deletion(
        self,
        edge: Edge,
        source_node: Optional[Node],
        target_node: Optional[Node],
    ) -> ValidationResult:
        """Ponto de extensão; por padrão toda remoção é permitida."""
        return ValidationResult.ok()
