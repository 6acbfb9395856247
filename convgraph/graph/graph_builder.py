"""
Builds a deterministic knowledge graph from parsed Python modules.
"""
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..types import (
    GraphEdge,
    GraphNode,
    KnowledgeGraph,
    NodeKind,
    ParsedFunction,
    ParsedModule,
    Relation,
)
from ..utils.logger import app_logger

EDGE_SEPARATOR = "|"
EXTERNAL = "external"
SELF_NAMES = ("self", "cls")


def _node_id(scope: str, kind: NodeKind, name: str, line: int) -> str:
    parts = (scope, kind.value, name, str(line))
    # Node ids are edge id components, so the separator is replaced.
    return ":".join(part.replace(EDGE_SEPARATOR, "_") for part in parts)


def module_node_id(module_name: str) -> str:
    return _node_id(module_name, NodeKind.MODULE, module_name, 1)


def class_node_id(module_name: str, class_name: str, line: int) -> str:
    return _node_id(module_name, NodeKind.CLASS, class_name, line)


def function_node_id(module_name: str, name: str, line: int) -> str:
    """Methods pass their qualified `Class.method` name."""
    return _node_id(module_name, NodeKind.FUNCTION, name, line)


def variable_node_id(module_name: str, name: str, line: int) -> str:
    return _node_id(module_name, NodeKind.VARIABLE, name, line)


def external_node_id(kind: NodeKind, name: str) -> str:
    return _node_id(EXTERNAL, kind, name, 0)


def edge_id(source: str, relation: Relation, target: str) -> str:
    return EDGE_SEPARATOR.join((source, relation.value, target))


def top_level_module(path: str) -> str:
    """First dotted segment, keeping the leading dots of relative imports."""
    stripped = path.lstrip(".")
    dots = path[:len(path) - len(stripped)]
    return dots + stripped.split(".")[0]


def _compact(metadata: Dict) -> Dict:
    return {key: value for key, value in metadata.items() if value is not None}


class KnowledgeGraphBuilder:
    """
    Resolves parsed modules into nodes and weighted edges.

    All lookup state lives on the instance and is reset by build(), so one
    builder can serve sequential requests; concurrent requests need their own
    builder.
    """

    def __init__(self):
        self.logger = app_logger.bind(component="graph_builder")
        self._reset()

    def _reset(self):
        self.nodes_by_id: Dict[str, GraphNode] = {}
        self.edge_weights: Counter = Counter()
        # (module, name) -> node id
        self.top_level_functions: Dict[Tuple[str, str], str] = {}
        self.classes: Dict[Tuple[str, str], str] = {}
        # (module, class, method) -> node id
        self.methods: Dict[Tuple[str, str, str], str] = {}

    def build(self, modules: Sequence[ParsedModule]) -> KnowledgeGraph:
        """Build the graph; modules are processed in the given order."""
        self._reset()

        for module in modules:
            self._declare_module(module)

        for module in modules:
            self._link_module(module)

        graph = self._materialize()
        self.logger.debug(
            f"Built graph from {len(modules)} modules: {len(graph.nodes)} nodes, {len(graph.edges)} edges"
        )
        return graph

    # --- node and edge accumulation ---

    def upsert_node(self, node: GraphNode) -> GraphNode:
        """
        Insert a node or merge it into the one already holding its id.

        Existing non-empty fields win; metadata keys are only filled when the
        existing node lacks them.
        """
        existing = self.nodes_by_id.get(node.id)
        if existing is None:
            self.nodes_by_id[node.id] = node
            return node

        existing.label = existing.label or node.label
        existing.type = existing.type or node.type
        existing.file_path = existing.file_path or node.file_path
        existing.line = existing.line if existing.line is not None else node.line
        for key, value in node.metadata.items():
            existing.metadata.setdefault(key, value)
        return existing

    def add_edge(self, source: str, relation: Relation, target: str):
        self.edge_weights[(source, relation, target)] += 1

    def _external_node(self, kind: NodeKind, name: str) -> str:
        node_id = external_node_id(kind, name)
        self.upsert_node(GraphNode(id=node_id, label=name, type=kind, metadata={"external": True}))
        return node_id

    # --- pass 1: declarations ---

    def _declare_module(self, module: ParsedModule):
        module_id = module_node_id(module.module_name)
        self.upsert_node(GraphNode(
            id=module_id,
            label=module.module_name,
            type=NodeKind.MODULE,
            file_path=module.file_path,
            line=1,
            metadata={"moduleName": module.module_name},
        ))

        for parsed_class in module.classes:
            class_id = class_node_id(module.module_name, parsed_class.name, parsed_class.line_start)
            self.upsert_node(GraphNode(
                id=class_id,
                label=parsed_class.name,
                type=NodeKind.CLASS,
                file_path=module.file_path,
                line=parsed_class.line_start,
                metadata=_compact({
                    "module": module.module_name,
                    "baseClasses": list(parsed_class.base_classes),
                    "decorators": list(parsed_class.decorators),
                    "docstring": parsed_class.docstring,
                    "code": parsed_class.code_excerpt,
                }),
            ))
            self.classes[(module.module_name, parsed_class.name)] = class_id
            self.add_edge(module_id, Relation.DEFINES, class_id)

            for method in parsed_class.methods:
                method_id = self._declare_function(module, method, parsed_class.name)
                self.methods[(module.module_name, parsed_class.name, method.name)] = method_id
                self.add_edge(class_id, Relation.DEFINES, method_id)

        for function in module.functions:
            function_id = self._declare_function(module, function, None)
            self.top_level_functions[(module.module_name, function.name)] = function_id
            self.add_edge(module_id, Relation.DEFINES, function_id)

        for variable in module.variables:
            variable_id = variable_node_id(module.module_name, variable.name, variable.line)
            self.upsert_node(GraphNode(
                id=variable_id,
                label=variable.name,
                type=NodeKind.VARIABLE,
                file_path=module.file_path,
                line=variable.line,
                metadata=_compact({
                    "module": module.module_name,
                    "valueSnippet": variable.value_snippet,
                }),
            ))
            self.add_edge(module_id, Relation.DEFINES, variable_id)

    def _declare_function(self, module: ParsedModule, function: ParsedFunction, class_name: Optional[str]) -> str:
        label = f"{class_name}.{function.name}" if class_name else function.name
        node_id = function_node_id(module.module_name, label, function.line_start)
        self.upsert_node(GraphNode(
            id=node_id,
            label=label,
            type=NodeKind.FUNCTION,
            file_path=module.file_path,
            line=function.line_start,
            metadata=_compact({
                "module": module.module_name,
                "class": class_name,
                "parameters": list(function.parameters),
                "returnHint": function.return_hint,
                "isAsync": function.is_async,
                "isPrivate": function.is_private,
                "decorators": list(function.decorators),
                "docstring": function.docstring,
                "code": function.code_excerpt,
            }),
        ))
        return node_id

    # --- pass 2: references ---

    def _link_module(self, module: ParsedModule):
        module_id = module_node_id(module.module_name)
        aliases, imported_modules = self._build_alias_table(module)

        for name in sorted(imported_modules):
            self.add_edge(module_id, Relation.IMPORTS, self._external_node(NodeKind.MODULE, name))

        module_aliases = self.nodes_by_id[module_id].metadata.setdefault("importAliases", {})
        for alias, qualified in aliases.items():
            module_aliases.setdefault(alias, qualified)

        for function in module.functions:
            source_id = function_node_id(module.module_name, function.name, function.line_start)
            self._link_calls(module, function, source_id, None, aliases)

        for parsed_class in module.classes:
            for method in parsed_class.methods:
                source_id = function_node_id(
                    module.module_name, f"{parsed_class.name}.{method.name}", method.line_start
                )
                self._link_calls(module, method, source_id, parsed_class.name, aliases)

        for parsed_class in module.classes:
            derived_id = class_node_id(module.module_name, parsed_class.name, parsed_class.line_start)
            for base in parsed_class.base_classes:
                # Keyword arguments such as metaclass=... are not bases.
                if "=" in base:
                    continue
                self.add_edge(self._resolve_base_class(module.module_name, base), Relation.INHERITS, derived_id)

    def _build_alias_table(self, module: ParsedModule) -> Tuple[Dict[str, str], Set[str]]:
        """
        Map locally bound import names to their qualified source.

        `import a.b` binds `a` to "a.b"; `from m import x as y` binds `y` to "m.x".
        """
        aliases: Dict[str, str] = {}
        imported_modules: Set[str] = set()
        for parsed_import in module.imports:
            if parsed_import.import_type == "import":
                for imported in parsed_import.names:
                    aliases[imported.alias or imported.name.split(".")[0]] = imported.name
                    imported_modules.add(top_level_module(imported.name))
            else:
                for imported in parsed_import.names:
                    aliases[imported.bound_name] = f"{parsed_import.module}.{imported.name}"
                imported_modules.add(top_level_module(parsed_import.module))
        imported_modules.discard("")
        return aliases, imported_modules

    def _link_calls(
        self,
        module: ParsedModule,
        function: ParsedFunction,
        source_id: str,
        within_class: Optional[str],
        aliases: Dict[str, str],
    ):
        for call in function.calls:
            relation, target_id = self.resolve_call(module.module_name, call.name, within_class, aliases)
            self.add_edge(source_id, relation, target_id)

    def resolve_call(
        self,
        module_name: str,
        name: str,
        within_class: Optional[str],
        aliases: Dict[str, str],
    ) -> Tuple[Relation, str]:
        """
        Bind a call token to a target node; first match wins.

        Dotted `self.`/`cls.` calls look up the enclosing class, other dotted
        calls try a same-module class then the import aliases, and bare names
        try a same-module function, the enclosing class, then the aliases.
        Anything unresolved becomes an external function placeholder.
        """
        if "." in name:
            segments = name.split(".")
            base, method_name = segments[0], segments[-1]

            if base in SELF_NAMES:
                if within_class:
                    target = self.methods.get((module_name, within_class, method_name))
                    if target:
                        return Relation.CALLS, target
                return Relation.USES, self._external_node(NodeKind.FUNCTION, method_name)

            if (module_name, base) in self.classes:
                target = self.methods.get((module_name, base, method_name))
                if target:
                    return Relation.CALLS, target

            qualified = aliases.get(base, name)
            return Relation.USES, self._external_node(NodeKind.FUNCTION, qualified)

        target = self.top_level_functions.get((module_name, name))
        if target:
            return Relation.CALLS, target

        if within_class:
            target = self.methods.get((module_name, within_class, name))
            if target:
                return Relation.CALLS, target

        qualified = aliases.get(name, name)
        return Relation.USES, self._external_node(NodeKind.FUNCTION, qualified)

    def _resolve_base_class(self, module_name: str, base: str) -> str:
        same_module = self.classes.get((module_name, base))
        if same_module:
            return same_module

        # Ascending node id keeps the any-module match deterministic.
        for (_, class_name), class_id in sorted(self.classes.items(), key=lambda item: item[1]):
            if class_name == base:
                return class_id

        return self._external_node(NodeKind.CLASS, base)

    # --- output ---

    def _materialize(self) -> KnowledgeGraph:
        edges = [
            GraphEdge(
                id=edge_id(source, relation, target),
                source=source,
                target=target,
                relation=relation,
                metadata={"weight": weight},
            )
            for (source, relation, target), weight in self.edge_weights.items()
        ]
        return build_knowledge_graph(list(self.nodes_by_id.values()), edges)


def build_knowledge_graph(nodes: Iterable[GraphNode] = (), edges: Iterable[GraphEdge] = ()) -> KnowledgeGraph:
    """Wrap nodes and edges into a graph ordered by identifier."""
    ordered_edges: List[GraphEdge] = []
    for edge in edges:
        if not edge.id:
            edge.id = edge_id(edge.source, edge.relation, edge.target)
        ordered_edges.append(edge)
    return KnowledgeGraph(
        nodes=sorted(nodes, key=lambda node: node.id),
        edges=sorted(ordered_edges, key=lambda edge: edge.id),
    )
