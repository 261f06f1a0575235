# src/flowgraph_sync/__init__.py
"""
flowgraph_sync — camada de consistência de editores de grafos de fluxo.

Este pacote raiz define o namespace público do flowgraph_sync, o núcleo
que fica abaixo de um editor visual de pipelines de automação (nós e
conexões tipadas sobre um canvas).

Princípios centrais:
    - Conexões só existem se forem legais segundo o registro de handles
    - Mudanças são detectadas por hash de conteúdo contra um baseline explícito
    - IDs temporários e persistidos são identidade, não cosmética
    - Navegar por versões nunca move o baseline de diff

Arquitetura em alto nível:
    - core.graph   → handles, registro de compatibilidade, modelo e validação
    - core.sync    → fingerprint, snapshot, diff, payload, reconciliação, versões
    - core.session → contexto de sessão, modo realtime e a sessão de edição
    - core.config  → carregamento, merge e hashing de configuração

Limites explícitos:
    - Não executa workflows
    - Não renderiza canvas
    - Não implementa transporte (REST, push); apenas o que é enviado/recebido
"""
# src/flowgraph_sync/__init__.py
from .core.session.editor import EditorSession
from .core.session.context import SessionContext

__all__ = ["EditorSession", "SessionContext"]
