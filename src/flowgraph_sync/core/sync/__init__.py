# src/flowgraph_sync/core/sync/__init__.py
"""
Sincronização entre o grafo vivo e o backend.

Fluxo:
    GraphModel → DiffEngine (contra SnapshotStore) → payload de batch save
    → colaborador de persistência → IdReconciler → novo baseline

O VersionManager opera ortogonalmente: troca o conteúdo do GraphModel
por uma versão histórica sem tocar no baseline.
"""
