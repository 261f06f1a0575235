# src/flowgraph_sync/core/config/__init__.py

"""
Camada de configuração do flowgraph_sync.

Este pacote carrega, mescla e identifica a configuração de uma sessão
de edição (intervalo do modo realtime, limiar de viewport, política para
handle kinds desconhecidos, padrão de IDs persistidos, paginação de versões).

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - Overrides locais sempre vencem os defaults empacotados
    - A mesma entrada sempre produz a mesma configuração final

Limites explícitos:
    - Não valida semântica de grafo
    - Não interage com a sessão de edição diretamente
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import DEFAULTS_PATH, default_config, get_setting, load_config
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "DEFAULTS_PATH",
    "compute_config_hash",
    "deep_merge",
    "default_config",
    "get_setting",
    "load_config",
]
