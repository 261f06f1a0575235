# src/flowgraph_sync/core/session/context.py
"""
SessionContext — contexto canônico de uma sessão de edição.

O SessionContext é o ponto único de observabilidade do flowgraph_sync:
    - log estruturado de eventos (lista de dicts, nunca texto livre)
    - warnings não fatais agrupados por escopo
    - configuração efetiva da sessão
    - metadados livres (ex.: application_id carregado, hash de config)

Escopos usados pelo pacote:
    handles, validation, diff, save, reconcile, versions, realtime,
    viewport, load

Princípios fundamentais:
    - Isolamento por sessão (nenhum estado global ou logger compartilhado)
    - Eventos são append-only
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import compute_config_hash, default_config


@dataclass
class SessionContext:
    """
    Contexto de uma sessão de edição.

    Campos canônicos:
    - session_id: identificador único da sessão
    - created_at: timestamp UTC de criação
    - config: configuração efetiva (defaults + local deep-merge)
    - meta: metadados da sessão
    - warnings: warnings por escopo
    - events: log estruturado de eventos
    """

    session_id: str
    created_at: str
    config: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    warnings: Dict[str, List[str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def create(cls, config: Optional[Dict[str, Any]] = None, **meta: Any) -> "SessionContext":
        """Cria um contexto com ID novo; sem `config`, usa os defaults empacotados."""
        effective = config if config is not None else default_config()
        ctx = cls(
            session_id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc).isoformat(),
            config=effective,
            meta=dict(meta),
        )
        ctx.meta.setdefault("config_hash", compute_config_hash(effective))
        return ctx

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, scope: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "session_id": self.session_id,
            "scope": scope,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, scope: str, message: str) -> None:
        if scope not in self.warnings:
            self.warnings[scope] = []
        self.warnings[scope].append(message)

    def events_for(self, scope: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("scope") == scope]
