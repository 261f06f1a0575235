# src/flowgraph_sync/core/config/hashing.py
"""
Hashing canônico da configuração efetiva de uma sessão.

O hash identifica estruturalmente a configuração e é registrado no
SessionContext no momento do load, permitindo correlacionar eventos de
diff/save com os parâmetros que os produziram.

Invariantes:
    - Configurações estruturalmente equivalentes produzem o mesmo hash
    - O valor é sempre uma string hexadecimal de 64 caracteres
"""

from typing import Any, Dict

from ..canonical import digest


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash SHA-256 determinístico da configuração efetiva.

    Args:
        config (Dict[str, Any]): Configuração resolvida.

    Returns:
        str: Hash hexadecimal da configuração.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config to hash must be a dict, got {type(config).__name__}"
        )
    return digest(config)
