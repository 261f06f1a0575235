# src/flowgraph_sync/core/canonical.py
"""
Serialização canônica e digest de conteúdo.

Base comum para o hash de configuração e para o fingerprint de nós e
arestas usado pelo DiffEngine.

Política (v1):
    - JSON com chaves ordenadas
    - separadores compactos
    - UTF-8 sem escape ASCII
    - SHA-256 hexadecimal

Invariantes:
    - Entradas estruturalmente iguais produzem a mesma string
    - Nenhuma mutação ocorre sobre o input

Limites explícitos:
    - Não promete resistência criptográfica para detecção de mudanças;
      SHA-256 é apenas um digest estável e disponível
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(obj: Any) -> str:
    """Serializa `obj` de forma determinística (chaves ordenadas, sem espaços)."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def digest(obj: Any) -> str:
    """Retorna o SHA-256 hexadecimal da serialização canônica de `obj`."""
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()
