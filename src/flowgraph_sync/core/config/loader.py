# src/flowgraph_sync/core/config/loader.py
"""
Loader canônico de configuração do flowgraph_sync.

A configuração de uma sessão é resolvida a partir de:
    - um arquivo de defaults (obrigatório; o pacote traz `defaults.yaml`)
    - um arquivo local de overrides (opcional)

Responsabilidades do módulo:
    - Carregar arquivos YAML ou JSON
    - Validar o tipo raiz (dict)
    - Resolver a configuração final via `deep_merge`
    - Expor leitura pontual de tunables por caminho pontuado

Invariantes:
    - O arquivo de defaults é obrigatório
    - O resultado é sempre um dicionário puro
    - Overrides nunca mutam os defaults

Limites explícitos:
    - Não valida semântica de grafo
    - Não persiste configuração ou hash
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml  # PyYAML

from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


DEFAULTS_PATH = Path(__file__).with_name("defaults.yaml")

# extensão → parser do conteúdo textual
_PARSERS: Dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Lê um arquivo de configuração e garante um dict na raiz.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        DefaultsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não for suportada.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Configuration file not found: {path}")

    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise UnsupportedConfigFormatError(
            f"Unsupported configuration extension '{path.suffix}' (use {', '.join(sorted(_PARSERS))})"
        )

    text = path.read_text(encoding="utf-8")
    data = parser(text) if text.strip() else {}
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"{path.name}: configuration root must be a mapping, got {type(data).__name__}"
        )
    return data


def load_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Resolve a configuração efetiva de uma sessão de edição.

    O arquivo local é opcional: ausente (ou não informado), os defaults
    valem sozinhos; presente, é aplicado por cima via `deep_merge`.

    Args:
        defaults_path (str): Caminho dos defaults (ex.: `DEFAULTS_PATH`).
        local_path (Optional[str]): Overrides da instalação, se houver.

    Returns:
        Dict[str, Any]: Nova configuração; os arquivos não são cacheados.

    Raises:
        DefaultsNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se a extensão de algum arquivo não for suportada.
        InvalidConfigRootTypeError: Se algum arquivo não tiver um dict na raiz.
        ConfigTypeConflictError: Se um override mudar o tipo de uma chave.
    """
    resolved = _load_file(Path(defaults_path))

    if local_path is not None and Path(local_path).exists():
        resolved = deep_merge(resolved, _load_file(Path(local_path)))

    return resolved


def default_config() -> Dict[str, Any]:
    """Retorna os defaults empacotados com o flowgraph_sync."""
    return load_config(defaults_path=str(DEFAULTS_PATH))


def get_setting(config: Optional[Dict[str, Any]], dotted: str, default: Any = None) -> Any:
    """
    Lê um valor por caminho pontuado (ex.: "realtime.interval_ms").

    Retorna `default` quando algum segmento não existe ou quando um
    nível intermediário não é dicionário.
    """
    node: Any = config or {}
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node
