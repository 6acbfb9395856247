from typing import List, Optional, Sequence

from .config import settings
from .graph.graph_builder import KnowledgeGraphBuilder
from .parser.entity_extractor import EntityExtractor
from .types import KnowledgeGraph, ParsedModule, SourceFile
from .utils.logger import app_logger


class AnalysisLimitError(ValueError):
    """Input exceeds the configured file-count or size limits."""


class CodebaseAnalyzer:
    """Parses source files and builds their knowledge graph."""

    def __init__(
        self,
        include_docstrings: Optional[bool] = None,
        max_files: Optional[int] = None,
        max_total_chars: Optional[int] = None,
    ):
        self.logger = app_logger.bind(component="analyzer")
        self.extractor = EntityExtractor(include_docstrings=include_docstrings)
        self.max_files = max_files or settings.max_files
        self.max_total_chars = max_total_chars or settings.max_total_chars

    def normalize_inputs(
        self,
        files: Optional[Sequence[SourceFile]] = None,
        code_snippets: Optional[Sequence[str]] = None,
    ) -> List[SourceFile]:
        """Merge files and pasted snippets into one ordered list."""
        normalized = list(files or [])
        counter = 1
        for snippet in code_snippets or []:
            text = (snippet or "").strip()
            if not text:
                continue
            normalized.append(SourceFile(name=f"pasted-snippet-{counter}.py", content=text))
            counter += 1
        return normalized

    def enforce_limits(self, files: Sequence[SourceFile]):
        """Raise AnalysisLimitError when the input is too large."""
        if len(files) > self.max_files:
            raise AnalysisLimitError(f"Too many files. Max {self.max_files}.")
        total_chars = sum(len(f.content or "") for f in files)
        if total_chars > self.max_total_chars:
            raise AnalysisLimitError(f"Payload too large. Total characters exceed {self.max_total_chars}.")

    def prepare(
        self,
        files: Optional[Sequence[SourceFile]] = None,
        code_snippets: Optional[Sequence[str]] = None,
    ) -> List[SourceFile]:
        """Normalize the inputs and check them against the limits."""
        sources = self.normalize_inputs(files, code_snippets)
        if not sources:
            raise ValueError("No valid files or snippets provided")
        self.enforce_limits(sources)
        return sources

    def parse(
        self,
        files: Optional[Sequence[SourceFile]] = None,
        code_snippets: Optional[Sequence[str]] = None,
    ) -> List[ParsedModule]:
        """Per-file entity records, without building the graph."""
        sources = self.prepare(files, code_snippets)
        self.logger.info(f"Parsing {len(sources)} files")
        return self.extractor.parse_files(sources)

    def analyze(
        self,
        files: Optional[Sequence[SourceFile]] = None,
        code_snippets: Optional[Sequence[str]] = None,
    ) -> KnowledgeGraph:
        """Parse the inputs and build a fresh graph for them."""
        modules = self.parse(files, code_snippets)
        graph = KnowledgeGraphBuilder().build(modules)
        self.logger.info(f"Graph ready: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
        return graph
