import re
from typing import List, Optional, Sequence, Tuple

from ..config import settings
from ..types import (
    ImportName,
    ParsedCall,
    ParsedClass,
    ParsedFunction,
    ParsedImport,
    ParsedModule,
    ParsedVariable,
    SourceFile,
)
from ..utils.logger import app_logger
from .structural_scanner import (
    LineKind,
    LineRecord,
    collect_decorators,
    extract_docstring,
    find_block_end,
    scan_lines,
    slice_lines,
)

CALL_PATTERN = re.compile(r"([A-Za-z_][\w.]*)\s*\(")
IMPORT_ALIAS_PATTERN = re.compile(r"^([\w.]+)\s+as\s+(\w+)$")

# Keywords that may legally be followed by "(" without being a call.
KEYWORD_CALL_DENYLIST = frozenset({
    "if", "elif", "else", "for", "while", "with", "return", "yield", "raise",
    "except", "class", "def", "await", "lambda", "try", "assert", "del",
    "global", "nonlocal", "pass", "break", "continue", "not", "and", "or",
    "in", "is", "from", "import", "as",
})

NESTED_HEADER_KINDS = (LineKind.FUNCTION_HEADER, LineKind.CLASS_HEADER)

ELLIPSIS = "…"


def derive_module_name(filename: str) -> str:
    """Base file name without directories or the .py suffix."""
    base = re.split(r"[/\\]", filename)[-1]
    if base.endswith(".py"):
        base = base[:-3]
    # "|" separates edge id components and must never reach a node id.
    return base.replace("|", "_")


def truncate_snippet(value: str, max_len: int) -> str:
    text = value.strip()
    if len(text) <= max_len:
        return text
    return text[:max_len] + ELLIPSIS


def split_parameters(raw: str) -> List[str]:
    """
    Split a parameter list on commas.

    Known limitation: commas nested inside brackets or default values
    split the parameter as well.
    """
    return [part.strip() for part in raw.split(",") if part.strip()]


def _split_import_names(raw: str) -> List[ImportName]:
    # Parenthesised names are only recovered from the header line.
    text = raw.split("#", 1)[0].strip().strip("()\\")
    names = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        alias_match = IMPORT_ALIAS_PATTERN.match(token)
        if alias_match:
            names.append(ImportName(name=alias_match.group(1), alias=alias_match.group(2)))
        else:
            names.append(ImportName(name=token))
    return names


class EntityExtractor:
    """Builds per-file entity records from classified source lines."""

    def __init__(self, include_docstrings: Optional[bool] = None, value_snippet_max_len: Optional[int] = None):
        self.logger = app_logger.bind(component="entity_extractor")
        self.include_docstrings = settings.include_docstrings if include_docstrings is None else include_docstrings
        self.value_snippet_max_len = value_snippet_max_len or settings.value_snippet_max_len

    def parse_files(self, sources: Sequence[SourceFile]) -> List[ParsedModule]:
        """Parse files in the given order."""
        return [self.parse_file(source) for source in sources]

    def parse_file(self, source: SourceFile) -> ParsedModule:
        """Parse a single file into a ParsedModule."""
        lines = scan_lines(source.content)

        imports = self._parse_imports(lines)
        classes, functions = self._parse_classes_and_functions(lines)
        variables = self._parse_top_level_variables(lines)

        module = ParsedModule(
            file_path=source.file_path,
            module_name=derive_module_name(source.name),
            classes=classes,
            functions=functions,
            imports=imports,
            variables=variables,
        )
        self.logger.debug(
            f"Parsed {module.file_path}: {len(classes)} classes, {len(functions)} functions, "
            f"{len(imports)} imports, {len(variables)} variables"
        )
        return module

    def _parse_imports(self, lines: List[LineRecord]) -> List[ParsedImport]:
        imports = []
        for record in lines:
            if record.kind == LineKind.FROM_IMPORT:
                imports.append(ParsedImport(
                    import_type="from",
                    module=record.match.group(1),
                    names=_split_import_names(record.match.group(2)),
                    line=record.number,
                    code=record.content,
                ))
            elif record.kind == LineKind.IMPORT:
                names = _split_import_names(record.match.group(1))
                imports.append(ParsedImport(
                    import_type="import",
                    module=names[0].name if names else "",
                    names=names,
                    line=record.number,
                    code=record.content,
                ))
        return imports

    def _parse_top_level_variables(self, lines: List[LineRecord]) -> List[ParsedVariable]:
        variables = []
        for record in lines:
            if record.kind != LineKind.ASSIGNMENT or record.indent != 0:
                continue
            variables.append(ParsedVariable(
                name=record.match.group(2),
                line=record.number,
                value_snippet=truncate_snippet(record.match.group(3), self.value_snippet_max_len),
            ))
        return variables

    def _parse_classes_and_functions(self, lines: List[LineRecord]) -> Tuple[List[ParsedClass], List[ParsedFunction]]:
        classes = []
        functions = []
        last = len(lines) - 1

        index = 0
        while index <= last:
            if lines[index].is_blank:
                index += 1
                continue

            decorators, index = collect_decorators(lines, index, last)
            if index > last:
                break

            record = lines[index]
            if record.kind == LineKind.CLASS_HEADER:
                parsed_class, end = self._build_class(lines, index, decorators)
                classes.append(parsed_class)
                index = end + 1
            elif record.kind == LineKind.FUNCTION_HEADER:
                parsed_function, end = self._build_function(lines, index, decorators)
                functions.append(parsed_function)
                index = end + 1
            else:
                index += 1

        return classes, functions

    def _build_class(self, lines: List[LineRecord], index: int, decorators: List[str]) -> Tuple[ParsedClass, int]:
        header = lines[index]
        block_end = find_block_end(lines, index, header.indent)
        docstring, first_body = extract_docstring(
            lines, index, block_end, header.indent, self.include_docstrings
        )

        methods = []
        cursor = min(block_end, first_body)
        while cursor <= block_end:
            method_decorators, method_index = collect_decorators(lines, cursor, block_end)
            if method_index > block_end:
                break
            candidate = lines[method_index]
            if candidate.kind == LineKind.FUNCTION_HEADER and candidate.indent > header.indent:
                method, method_end = self._build_function(lines, method_index, method_decorators)
                methods.append(method)
                cursor = method_end + 1
                continue
            if candidate.kind == LineKind.CLASS_HEADER and candidate.indent > header.indent:
                # Nested class bodies belong to the nested class.
                cursor = find_block_end(lines, method_index, candidate.indent) + 1
                continue
            cursor = method_index + 1

        raw_bases = header.match.group(2) or ""
        parsed_class = ParsedClass(
            name=header.match.group(1),
            base_classes=[base.strip() for base in raw_bases.split(",") if base.strip()],
            decorators=decorators,
            line_start=header.number,
            line_end=block_end + 1,
            docstring=docstring,
            code_excerpt=slice_lines(lines, index, block_end),
            methods=methods,
        )
        return parsed_class, block_end

    def _build_function(self, lines: List[LineRecord], index: int, decorators: List[str]) -> Tuple[ParsedFunction, int]:
        header = lines[index]
        is_async, name, raw_params, return_hint = header.match.groups()
        block_end = find_block_end(lines, index, header.indent)
        docstring, first_body = extract_docstring(
            lines, index, block_end, header.indent, self.include_docstrings
        )

        parsed_function = ParsedFunction(
            name=name,
            parameters=split_parameters(raw_params or ""),
            return_hint=(return_hint or "").strip() or None,
            is_async=bool(is_async),
            is_private=name.startswith("_"),
            decorators=decorators,
            line_start=header.number,
            line_end=block_end + 1,
            docstring=docstring,
            code_excerpt=slice_lines(lines, index, block_end),
            calls=self._extract_calls(lines, first_body, block_end),
        )
        return parsed_function, block_end

    def _extract_calls(self, lines: List[LineRecord], start_index: int, end_index: int) -> List[ParsedCall]:
        calls = []
        for record in lines[max(0, start_index):end_index + 1]:
            # Nested def/class headers declare names, they do not call them.
            if record.is_blank or record.kind in NESTED_HEADER_KINDS:
                continue
            for match in CALL_PATTERN.finditer(record.raw):
                name = match.group(1)
                if name.split(".")[0] in KEYWORD_CALL_DENYLIST:
                    continue
                calls.append(ParsedCall(
                    name=name,
                    line=record.number,
                    column=match.start() + 1,
                    qualified=name,
                ))
        return calls
