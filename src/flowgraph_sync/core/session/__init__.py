# src/flowgraph_sync/core/session/__init__.py
"""
Sessão de edição.

Uma sessão é dona exclusiva do GraphModel, do SnapshotStore e do
SessionContext (event log estruturado). Modelo single-writer: apenas
uma sessão edita um grafo por vez.
"""
