"""
Line-level structural scanner for Python source.

Recovers structure from indentation and token patterns only: every physical
line is classified by an ordered table of regular expressions, and block
extents are found by comparing indentation against the block header.
"""
import inspect
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Tuple


class LineKind(str, Enum):
    """Classification of a single physical line."""
    BLANK = "blank"  # empty or comment-only
    DECORATOR = "decorator"
    CLASS_HEADER = "class_header"
    FUNCTION_HEADER = "function_header"
    FROM_IMPORT = "from_import"
    IMPORT = "import"
    ASSIGNMENT = "assignment"
    STATEMENT = "statement"


DECORATOR_PATTERN = re.compile(r"^[\t ]*@")
CLASS_HEADER_PATTERN = re.compile(r"^[\t ]*class\s+([A-Za-z_]\w*)(?:\(([^)]*)\))?\s*:")
FUNCTION_HEADER_PATTERN = re.compile(
    r"^[\t ]*(async\s+)?def\s+([A-Za-z_]\w*)\s*\(([^)]*)\)\s*(?:->\s*([^:]+))?\s*:"
)
FROM_IMPORT_PATTERN = re.compile(r"^[\t ]*from\s+([\w.]+)\s+import\s+(.+)$")
IMPORT_PATTERN = re.compile(r"^[\t ]*import\s+(.+)$")
# Single `=` only; `==`, `>=`, `<=`, `!=` never match.
ASSIGNMENT_PATTERN = re.compile(r"^([\t ]*)([A-Za-z_]\w*)\s*=\s*([^=].*)$")
DOCSTRING_OPEN_PATTERN = re.compile(r"^[rRuU]{0,2}(\"\"\"|''')")

# Order matters: the first matching pattern decides the kind.
LINE_PATTERNS: List[Tuple[LineKind, Pattern]] = [
    (LineKind.DECORATOR, DECORATOR_PATTERN),
    (LineKind.CLASS_HEADER, CLASS_HEADER_PATTERN),
    (LineKind.FUNCTION_HEADER, FUNCTION_HEADER_PATTERN),
    (LineKind.FROM_IMPORT, FROM_IMPORT_PATTERN),
    (LineKind.IMPORT, IMPORT_PATTERN),
    (LineKind.ASSIGNMENT, ASSIGNMENT_PATTERN),
]


@dataclass
class LineRecord:
    """One physical line with its indentation and classification."""
    index: int  # 0-based
    raw: str
    indent: int
    content: str
    kind: LineKind
    match: Optional[re.Match] = None

    @property
    def is_blank(self) -> bool:
        return self.kind == LineKind.BLANK

    @property
    def number(self) -> int:
        """1-based line number."""
        return self.index + 1


def normalize_newlines(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def indent_length(raw: str) -> int:
    """Count leading tabs and spaces; a tab counts as one character."""
    return len(raw) - len(raw.lstrip(" \t"))


def classify_line(raw: str) -> Tuple[LineKind, Optional[re.Match]]:
    """Run the pattern table over a line and return the first hit."""
    content = raw.strip()
    if not content or content.startswith("#"):
        return LineKind.BLANK, None
    for kind, pattern in LINE_PATTERNS:
        match = pattern.match(raw)
        if match:
            return kind, match
    return LineKind.STATEMENT, None


def scan_lines(text: str) -> List[LineRecord]:
    """Split normalized text into classified line records."""
    records = []
    for index, raw in enumerate(normalize_newlines(text).split("\n")):
        kind, match = classify_line(raw)
        records.append(LineRecord(
            index=index,
            raw=raw,
            indent=indent_length(raw),
            content=raw.strip(),
            kind=kind,
            match=match,
        ))
    return records


def find_block_end(lines: List[LineRecord], start_index: int, header_indent: int) -> int:
    """
    Return the index of the last line belonging to the block opened at start_index.

    The block ends before the first later non-blank, non-comment line whose
    indentation is <= header_indent. Blank and comment lines are included
    tentatively, so trailing ones stay attached to the block.
    """
    end = start_index
    for index in range(start_index + 1, len(lines)):
        record = lines[index]
        if record.is_blank:
            end = index
            continue
        if record.indent <= header_indent:
            return end
        end = index
    return end


def collect_decorators(lines: List[LineRecord], index: int, stop: int) -> Tuple[List[str], int]:
    """
    Consume the run of decorator and blank lines starting at index.

    Returns the decorator texts and the index of the first line after the run.
    Blank lines inside the run are allowed but not returned.
    """
    decorators = []
    while index <= stop:
        record = lines[index]
        if record.kind == LineKind.DECORATOR:
            decorators.append(record.content)
        elif not record.is_blank:
            break
        index += 1
    return decorators, index


def extract_docstring(
    lines: List[LineRecord],
    start_index: int,
    end_index: int,
    header_indent: int,
    include_docstrings: bool = True,
) -> Tuple[Optional[str], int]:
    """
    Capture a docstring that is the first statement of a block.

    Returns (docstring, first_body_index) where first_body_index is where a
    call-site scan of the body should begin.
    """
    if not include_docstrings:
        return None, start_index + 1

    index = start_index + 1
    while index <= end_index:
        record = lines[index]
        if record.is_blank:
            index += 1
            continue
        if record.indent <= header_indent:
            return None, index

        opening = DOCSTRING_OPEN_PATTERN.match(record.content)
        if not opening:
            return None, index

        quote = opening.group(1)
        remainder = record.content[opening.end():]
        if quote in remainder:
            return remainder[:remainder.index(quote)].strip(), index + 1

        value, closing_index = _capture_multiline_string(lines, index, quote)
        return value, closing_index + 1

    # Empty body: the scan window must not fall back onto the header line.
    return None, end_index + 1


def _capture_multiline_string(lines: List[LineRecord], start_index: int, quote: str) -> Tuple[str, int]:
    first = lines[start_index].raw
    parts = [first[first.index(quote) + len(quote):]]
    for index in range(start_index + 1, len(lines)):
        raw = lines[index].raw
        position = raw.find(quote)
        if position >= 0:
            parts.append(raw[:position])
            return inspect.cleandoc("\n".join(parts)), index
        parts.append(raw)
    # Unterminated string runs to end of file.
    return inspect.cleandoc("\n".join(parts)), len(lines) - 1


def slice_lines(lines: List[LineRecord], start_index: int, end_index: int) -> str:
    """Verbatim text of lines start_index..end_index inclusive."""
    start = max(0, start_index)
    end = min(len(lines) - 1, end_index)
    return "\n".join(record.raw for record in lines[start:end + 1])
