"""
Filesystem discovery of source files.
"""

from .local_codebase_scanner import LocalCodebaseScanner

__all__ = [
    'LocalCodebaseScanner',
]
