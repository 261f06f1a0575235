# src/flowgraph_sync/core/config/errors.py
"""
Exceções canônicas da camada de configuração do flowgraph_sync.

Representam violações estruturais na resolução da configuração da
sessão, e não erros de edição do grafo.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção aqui representa rejeição de conexão ou falha de save

Limites explícitos:
    - Não realiza fallback ou recovery
"""


class ConfigError(Exception):
    """
    Exceção base para erros de configuração do flowgraph_sync.

    Permite captura genérica de falhas de load/merge sem confundi-las
    com falhas de persistência ou de validação de conexões.
    """


class DefaultsNotFoundError(ConfigError):
    """
    Arquivo de defaults não encontrado no caminho informado.

    Decisões arquiteturais:
        - O arquivo de defaults é obrigatório
        - Não há criação implícita de defaults
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo não suportado pelo loader.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Conteúdo raiz da configuração não é um dicionário (`dict`).

    Listas ou escalares no root são rejeitados sem normalização.
    """


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos entre base e override durante o deep-merge.

    Exemplo de conflito:
        - base:     {"realtime": {"interval_ms": 500}}
        - override: {"realtime": "fast"}

    Invariantes:
        - Nenhum merge parcial é produzido em caso de conflito
    """
