"""
Graph module for building and exporting knowledge graphs from parsed source.
"""

from .graph_builder import KnowledgeGraphBuilder, build_knowledge_graph
from .json_graph_client import JsonGraphClient, graph_from_dict, graph_to_dict, to_graph_json, to_parsed_json

__all__ = [
    'KnowledgeGraphBuilder',
    'build_knowledge_graph',
    'JsonGraphClient',
    'graph_from_dict',
    'graph_to_dict',
    'to_graph_json',
    'to_parsed_json',
]
