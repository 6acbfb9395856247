from typing import List, Dict, Any, Optional
import json
from pathlib import Path

from ..types import GraphNode, GraphEdge, KnowledgeGraph, NodeKind, ParsedModule, Relation
from ..utils.logger import app_logger
from .graph_builder import build_knowledge_graph


def graph_to_dict(graph: KnowledgeGraph) -> Dict[str, Any]:
    """Convert a graph to its wire dictionary, ordered by identifier."""
    ordered = build_knowledge_graph(graph.nodes, graph.edges)
    return ordered.to_dict()


def to_graph_json(graph: KnowledgeGraph, indent: int = 2) -> str:
    """Stable JSON export with `nodes` and `edges` keys."""
    return json.dumps(graph_to_dict(graph), indent=indent, ensure_ascii=False)


def to_parsed_json(modules: List[ParsedModule], indent: int = 2) -> str:
    """Per-file entity records under a `modules` key, in input order."""
    return json.dumps({"modules": [m.to_dict() for m in modules]}, indent=indent, ensure_ascii=False)


def graph_from_dict(data: Dict[str, Any]) -> KnowledgeGraph:
    """Rebuild a graph from its wire dictionary."""
    nodes = [
        GraphNode(
            id=node["id"],
            label=node["label"],
            type=NodeKind(node["type"]),
            file_path=node.get("filePath"),
            line=node.get("line"),
            metadata=dict(node.get("metadata") or {}),
        )
        for node in data.get("nodes", [])
    ]
    edges = [
        GraphEdge(
            id=edge.get("id", ""),
            source=edge["source"],
            target=edge["target"],
            relation=Relation(edge["relation"]),
            metadata=dict(edge.get("metadata") or {"weight": 1}),
        )
        for edge in data.get("edges", [])
    ]
    return build_knowledge_graph(nodes, edges)


class JsonGraphClient:
    """JSON file storage and lookups for a built knowledge graph."""

    def __init__(self, storage_path: str = "graph.json"):
        self.logger = app_logger.bind(component="json_graph_client")
        self.storage_path = Path(storage_path)

    def save_graph(self, graph: KnowledgeGraph) -> Path:
        """Write the graph to the storage path."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.storage_path, 'w', encoding='utf-8') as f:
            f.write(to_graph_json(graph))
        self.logger.info(f"Saved graph with {len(graph.nodes)} nodes to {self.storage_path}")
        return self.storage_path

    def load_graph(self) -> Optional[KnowledgeGraph]:
        """Load a graph from the storage path, or None when absent or unreadable."""
        if not self.storage_path.exists():
            return None
        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Error loading graph data: {e}")
            return None
        self.logger.info(f"Loaded graph data from {self.storage_path}")
        return graph_from_dict(data)

    def get_graph_stats(self, graph: KnowledgeGraph) -> Dict[str, Any]:
        """Count nodes by type, edges by relation, and external placeholders."""
        node_counts: Dict[str, int] = {}
        external_count = 0
        for node in graph.nodes:
            node_counts[node.type.value] = node_counts.get(node.type.value, 0) + 1
            if node.is_external:
                external_count += 1

        rel_counts: Dict[str, int] = {}
        for edge in graph.edges:
            rel_counts[edge.relation.value] = rel_counts.get(edge.relation.value, 0) + 1

        return {
            "nodes": node_counts,
            "relationships": rel_counts,
            "external_nodes": external_count,
            "total_nodes": len(graph.nodes),
            "total_edges": len(graph.edges),
        }

    def find_function_dependencies(self, graph: KnowledgeGraph, function_id: str) -> KnowledgeGraph:
        """What a function calls or uses, as a subgraph."""
        return self._neighbourhood(graph, function_id, {Relation.CALLS, Relation.USES}, outgoing=True)

    def find_class_hierarchy(self, graph: KnowledgeGraph, class_id: str) -> KnowledgeGraph:
        """Base classes and direct subclasses of a class, as a subgraph."""
        bases = self._neighbourhood(graph, class_id, {Relation.INHERITS}, outgoing=False)
        subclasses = self._neighbourhood(graph, class_id, {Relation.INHERITS}, outgoing=True)
        nodes = {node.id: node for node in bases.nodes + subclasses.nodes}
        edges = {edge.id: edge for edge in bases.edges + subclasses.edges}
        return build_knowledge_graph(nodes.values(), edges.values())

    def _neighbourhood(self, graph: KnowledgeGraph, node_id: str, relations: set, outgoing: bool) -> KnowledgeGraph:
        center = graph.get_node(node_id)
        if center is None:
            self.logger.warning(f"Node not found: {node_id}")
            return KnowledgeGraph()

        nodes_by_id = {node.id: node for node in graph.nodes}
        nodes: Dict[str, GraphNode] = {center.id: center}
        edges: List[GraphEdge] = []
        for edge in graph.edges:
            if edge.relation not in relations:
                continue
            anchor, other = (edge.source, edge.target) if outgoing else (edge.target, edge.source)
            if anchor != node_id:
                continue
            edges.append(edge)
            if other in nodes_by_id:
                nodes[other] = nodes_by_id[other]
        return build_knowledge_graph(nodes.values(), edges)
