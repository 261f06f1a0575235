# src/flowgraph_sync/core/__init__.py
"""
Core do flowgraph_sync.

Reúne as quatro responsabilidades acopladas do editor de grafos:
    - validação de compatibilidade de handles (core.graph)
    - diff por hash com granularidade de campo (core.sync.diff)
    - reconciliação de IDs temporários → persistidos (core.sync.reconcile)
    - modelo de versões com undo/redo (core.sync.versions)

O core é projetado para ser:
    - síncrono e puro onde possível (diff e validação nunca suspendem)
    - testável de forma isolada
    - livre de dependências de UI ou de transporte

Estado mutável (GraphModel, SnapshotStore) pertence exclusivamente a uma
única sessão de edição; nada é compartilhado entre sessões.
"""
