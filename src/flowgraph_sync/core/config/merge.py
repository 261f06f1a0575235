# src/flowgraph_sync/core/config/merge.py
"""
Deep-merge de configuração da sessão.

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total
    - escalar → sobrescrita direta (mesmo tipo; int → float é aceito)
    - conflito de tipos → ConfigTypeConflictError

Invariantes:
    - Nenhum input é mutado
    - O mesmo par (base, override) sempre produz o mesmo resultado
"""

from copy import deepcopy
from typing import Any, Dict, List

from .errors import ConfigTypeConflictError


def _compatible_scalars(base_value: Any, override_value: Any) -> bool:
    if type(base_value) is type(override_value):
        return True
    # YAML escreve 1 e 1.0 de forma diferente; thresholds aceitam ambos
    numeric = (int, float)
    if isinstance(base_value, bool) or isinstance(override_value, bool):
        return False
    return isinstance(base_value, numeric) and isinstance(override_value, numeric)


def _merge(base: Dict[str, Any], override: Dict[str, Any], path: List[str]) -> Dict[str, Any]:
    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]
        dotted = ".".join(path + [str(key)])

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = _merge(base_value, override_value, path + [str(key)])
            continue

        if isinstance(base_value, list) and isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        if base_value is None or override_value is None:
            result[key] = deepcopy(override_value)
            continue

        if not _compatible_scalars(base_value, override_value):
            raise ConfigTypeConflictError(
                f"Type conflict at key '{dotted}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Combina defaults e overrides produzindo uma nova configuração.

    Args:
        base (Dict[str, Any]): Configuração base (defaults empacotados).
        override (Dict[str, Any]): Overrides explícitos (config local).

    Returns:
        Dict[str, Any]: Nova configuração resultante.

    Raises:
        ConfigTypeConflictError: Se uma chave tiver tipos incompatíveis.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requires dicts at the root, got: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )
    return _merge(base, override, [])
