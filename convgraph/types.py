from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum


class NodeKind(str, Enum):
    """Kind of entity a graph node represents."""
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    VARIABLE = "variable"


class Relation(str, Enum):
    """Closed set of edge relations."""
    DEFINES = "defines"
    IMPORTS = "imports"
    CALLS = "calls"
    INHERITS = "inherits"
    USES = "uses"


@dataclass
class SourceFile:
    """An in-memory source file handed to the parser."""
    name: str
    content: str
    path: Optional[str] = None

    @property
    def file_path(self) -> str:
        return self.path or self.name


@dataclass
class ImportName:
    """One imported name, with its optional `as` alias."""
    name: str
    alias: Optional[str] = None

    @property
    def bound_name(self) -> str:
        return self.alias or self.name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"name": self.name, "alias": self.alias}


@dataclass
class ParsedImport:
    """An `import ...` or `from ... import ...` statement."""
    import_type: str  # "import" or "from"
    module: str
    names: List[ImportName]
    line: int
    code: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "import_type": self.import_type,
            "module": self.module,
            "names": [n.to_dict() for n in self.names],
            "line": self.line,
            "code": self.code,
        }


@dataclass
class ParsedVariable:
    """A top-level `NAME = value` assignment."""
    name: str
    line: int
    value_snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"name": self.name, "line": self.line, "value_snippet": self.value_snippet}


@dataclass
class ParsedCall:
    """A call site found inside a function body."""
    name: str  # e.g. "func", "obj.method"
    line: int
    column: int
    qualified: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "line": self.line,
            "column": self.column,
            "qualified": self.qualified,
        }


@dataclass
class ParsedFunction:
    """A free function or a method."""
    name: str
    parameters: List[str]
    is_async: bool
    is_private: bool
    decorators: List[str]
    line_start: int
    line_end: int
    return_hint: Optional[str] = None
    docstring: Optional[str] = None
    code_excerpt: Optional[str] = None
    calls: List[ParsedCall] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "parameters": list(self.parameters),
            "return_hint": self.return_hint,
            "is_async": self.is_async,
            "is_private": self.is_private,
            "decorators": list(self.decorators),
            "line_start": self.line_start,
            "line_end": self.line_end,
            "docstring": self.docstring,
            "code_excerpt": self.code_excerpt,
            "calls": [c.to_dict() for c in self.calls],
        }


@dataclass
class ParsedClass:
    """A class declaration and the methods found in its block."""
    name: str
    base_classes: List[str]
    decorators: List[str]
    line_start: int
    line_end: int
    docstring: Optional[str] = None
    code_excerpt: Optional[str] = None
    methods: List[ParsedFunction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "base_classes": list(self.base_classes),
            "decorators": list(self.decorators),
            "line_start": self.line_start,
            "line_end": self.line_end,
            "docstring": self.docstring,
            "code_excerpt": self.code_excerpt,
            "methods": [m.to_dict() for m in self.methods],
        }


@dataclass
class ParsedModule:
    """Everything the extractor recovered from one file."""
    file_path: str
    module_name: str
    classes: List[ParsedClass] = field(default_factory=list)
    functions: List[ParsedFunction] = field(default_factory=list)  # top-level only
    imports: List[ParsedImport] = field(default_factory=list)
    variables: List[ParsedVariable] = field(default_factory=list)  # top-level only

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "file_path": self.file_path,
            "module_name": self.module_name,
            "classes": [c.to_dict() for c in self.classes],
            "functions": [f.to_dict() for f in self.functions],
            "imports": [i.to_dict() for i in self.imports],
            "variables": [v.to_dict() for v in self.variables],
        }


@dataclass
class GraphNode:
    """Represents a node in the knowledge graph."""
    id: str
    label: str
    type: NodeKind
    file_path: Optional[str] = None
    line: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_external(self) -> bool:
        return bool(self.metadata.get("external"))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "filePath": self.file_path,
            "line": self.line,
            "metadata": dict(self.metadata),
        }


@dataclass
class GraphEdge:
    """Represents a weighted edge in the knowledge graph."""
    id: str
    source: str
    target: str
    relation: Relation
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def weight(self) -> int:
        return int(self.metadata.get("weight", 1))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "relation": self.relation.value,
            "metadata": dict(self.metadata),
        }


@dataclass
class KnowledgeGraph:
    """Nodes and edges, each ordered by identifier."""
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edges_for(self, relation: Relation) -> List[GraphEdge]:
        return [e for e in self.edges if e.relation == relation]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
