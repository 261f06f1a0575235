# tests/core/config/test_merge.py
"""
Testes da política de deep-merge de configuração.

Os testes asseguram que:
- valores escalares são sobrescritos corretamente
- dicionários são mesclados de forma recursiva
- listas são sobrescritas integralmente
- conflitos de tipo são detectados e rejeitados explicitamente
- objetos de entrada não são mutados durante o merge

Decisões arquiteturais:
    - O merge é determinístico e puramente funcional
    - int e float são compatíveis (thresholds aceitam `1` e `1.0`); bool não

Limites explícitos:
    - Não valida carregamento de arquivos
"""

import copy

import pytest

try:
    from flowgraph_sync.core.config.merge import deep_merge
    from flowgraph_sync.core.config.errors import ConfigTypeConflictError
except Exception as e:  # noqa: BLE001
    deep_merge = None
    ConfigTypeConflictError = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """Falha explicitamente se `deep_merge` ou suas exceções não existirem."""
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing merge module. Implement src/flowgraph_sync/core/config/merge.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_merge_simple_override():
    """
    Verifica que escalares do override substituem os da base.
    """
    _require_imports()
    out = deep_merge({"viewport": {"threshold": 0.1}}, {"viewport": {"threshold": 0.25}})
    assert out == {"viewport": {"threshold": 0.25}}


def test_merge_nested_dict_preserves_untouched_keys():
    """
    Verifica o merge recursivo de dicionários.

    Invariantes:
        - Chaves não sobrescritas são preservadas
        - Chaves novas do override são adicionadas
    """
    _require_imports()
    base = {"realtime": {"interval_ms": 500}, "handles": {"unknown_kind_policy": "degrade"}}
    override = {"realtime": {"interval_ms": 100, "enabled": True}}
    out = deep_merge(base, override)
    assert out["realtime"] == {"interval_ms": 100, "enabled": True}
    assert out["handles"] == {"unknown_kind_policy": "degrade"}


def test_merge_list_override_total():
    """
    Verifica que listas são substituídas por inteiro, nunca concatenadas.
    """
    _require_imports()
    out = deep_merge({"kinds": ["a", "b"]}, {"kinds": ["c"]})
    assert out["kinds"] == ["c"]


def test_merge_int_and_float_are_compatible():
    """
    Verifica que int e float podem se sobrescrever.

    YAML escreve `1` e `1.0` de forma diferente; um limiar numérico não
    deve virar conflito de tipo por isso.
    """
    _require_imports()
    assert deep_merge({"zoom": 1}, {"zoom": 1.5}) == {"zoom": 1.5}
    assert deep_merge({"threshold": 0.1}, {"threshold": 1}) == {"threshold": 1}


def test_merge_type_conflict_raises():
    """
    Verifica que conflitos estruturais são erro fatal e apontam a chave.

    Invariantes:
        - dict vs escalar levanta `ConfigTypeConflictError`
        - bool vs int levanta `ConfigTypeConflictError`
        - A mensagem inclui o caminho pontuado da chave
    """
    _require_imports()
    with pytest.raises(ConfigTypeConflictError) as excinfo:
        deep_merge({"realtime": {"interval_ms": 500}}, {"realtime": "fast"})
    assert "realtime" in str(excinfo.value)

    with pytest.raises(ConfigTypeConflictError) as excinfo:
        deep_merge({"realtime": {"interval_ms": 500}}, {"realtime": {"interval_ms": True}})
    assert "realtime.interval_ms" in str(excinfo.value)


def test_merge_does_not_mutate_inputs():
    """
    Verifica que base e override permanecem intactos após o merge.
    """
    _require_imports()
    base = {"a": {"b": [1, 2]}}
    override = {"a": {"c": 3}}
    base_copy = copy.deepcopy(base)
    override_copy = copy.deepcopy(override)

    out = deep_merge(base, override)
    out["a"]["b"].append(99)

    assert base == base_copy
    assert override == override_copy
