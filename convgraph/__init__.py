"""
convgraph - builds a knowledge graph of Python declarations and references.
"""

from .analyzer import AnalysisLimitError, CodebaseAnalyzer
from .graph import KnowledgeGraphBuilder, to_graph_json
from .parser import EntityExtractor
from .types import KnowledgeGraph, NodeKind, Relation, SourceFile

__version__ = "0.1.0"

__all__ = [
    'AnalysisLimitError',
    'CodebaseAnalyzer',
    'EntityExtractor',
    'KnowledgeGraph',
    'KnowledgeGraphBuilder',
    'NodeKind',
    'Relation',
    'SourceFile',
    'to_graph_json',
]
