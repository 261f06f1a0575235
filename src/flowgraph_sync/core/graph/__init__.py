# src/flowgraph_sync/core/graph/__init__.py
"""
Modelo de grafo do editor.

Componentes:
    - handles    → HandleKind, HandleId (parser/formatter) e builders por tipo de nó
    - registry   → HandleRegistry: matriz de compatibilidade, limites e rótulos
    - model      → NodeType, Node, Edge, GraphModel, classificação de IDs e templates
    - branches   → mapa de branches derivado das arestas
    - validation → ConnectionValidator e regras por tipo de nó

Invariantes:
    - Uma aresta é identificada por (source, target, sourceHandle)
    - O mapa de branches de um nó de condição é sempre derivável das arestas
"""
