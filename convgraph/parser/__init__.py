"""
Regex-driven parser that recovers Python structure without an AST.
"""

from .entity_extractor import EntityExtractor
from .structural_scanner import LineKind, LineRecord, find_block_end, scan_lines

__all__ = [
    'EntityExtractor',
    'LineKind',
    'LineRecord',
    'find_block_end',
    'scan_lines',
]
