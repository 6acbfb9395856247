import pytest

from convgraph.parser.entity_extractor import (
    EntityExtractor,
    derive_module_name,
    split_parameters,
    truncate_snippet,
)
from convgraph.types import SourceFile


class TestHelpers:
    """Test module-name derivation and small text helpers."""

    @pytest.mark.parametrize("filename, expected", [
        ("sample.py", "sample"),
        ("pkg/sub/service.py", "service"),
        ("C:\\code\\tool.py", "tool"),
        ("notes.txt", "notes.txt"),
        ("a|b.py", "a_b"),
    ])
    def test_derive_module_name(self, filename, expected):
        assert derive_module_name(filename) == expected

    def test_truncate_snippet(self):
        assert truncate_snippet("  short  ", 10) == "short"
        assert truncate_snippet("x" * 12, 10) == "x" * 10 + "…"

    def test_split_parameters(self):
        assert split_parameters("") == []
        assert split_parameters("self, a: int = 1, *args, **kwargs") == [
            "self", "a: int = 1", "*args", "**kwargs"
        ]


class TestEntityExtractor:
    """Test per-file entity extraction."""

    def test_parse_sample_module(self, extractor: EntityExtractor, sample_source: SourceFile):
        module = extractor.parse_file(sample_source)

        assert module.module_name == "sample"
        assert module.file_path == "sample.py"
        assert [f.name for f in module.functions] == ["add", "coro"]
        assert len(module.classes) == 1
        assert len(module.imports) == 2
        assert [(v.name, v.line, v.value_snippet) for v in module.variables] == [("TOP", 5, "123")]

    def test_imports(self, extractor: EntityExtractor, sample_source: SourceFile):
        plain, from_import = extractor.parse_file(sample_source).imports

        assert plain.import_type == "import"
        assert plain.module == "os"
        assert [(n.name, n.alias) for n in plain.names] == [("os", None), ("sys", "system")]
        assert plain.line == 2

        assert from_import.import_type == "from"
        assert from_import.module == "typing"
        assert [(n.name, n.alias) for n in from_import.names] == [("List", None), ("Optional", "Opt")]
        assert from_import.code == "from typing import List, Optional as Opt"

    def test_dotted_and_parenthesised_imports(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "import os.path as osp\n"
                "import xml.etree.ElementTree\n"
                "from .models import (User, Group)  # models\n"
            ),
        )
        imports = extractor.parse_file(source).imports

        assert [(n.name, n.alias) for n in imports[0].names] == [("os.path", "osp")]
        assert imports[1].module == "xml.etree.ElementTree"
        assert imports[2].module == ".models"
        assert [n.name for n in imports[2].names] == ["User", "Group"]

    def test_class_details(self, extractor: EntityExtractor, sample_source: SourceFile):
        foo = extractor.parse_file(sample_source).classes[0]

        assert foo.name == "Foo"
        assert foo.base_classes == ["Base1", "Base2"]
        assert foo.decorators == ["@decorator"]
        assert foo.docstring == "Foo docs"
        assert foo.line_start == 8
        assert foo.code_excerpt.startswith("class Foo(Base1, Base2):")
        assert [m.name for m in foo.methods] == ["bar", "baz"]

    def test_method_details(self, extractor: EntityExtractor, sample_source: SourceFile):
        bar, baz = extractor.parse_file(sample_source).classes[0].methods

        assert bar.parameters == ["x: int", "y: int"]
        assert bar.return_hint == "int"
        assert bar.decorators == ["@staticmethod"]
        assert bar.docstring == "adds"
        assert bar.is_async is False
        assert bar.line_start == 12
        assert [(c.name, c.line, c.column) for c in bar.calls] == [("add", 14, 16)]

        assert baz.is_async is True
        assert baz.docstring is None
        assert [c.name for c in baz.calls] == ["self.bar", "len"]

    def test_top_level_function_details(self, extractor: EntityExtractor, sample_source: SourceFile):
        add, coro = extractor.parse_file(sample_source).functions

        assert add.parameters == ["a", "b"]
        assert add.calls == []
        assert add.is_private is False
        assert coro.is_async is True
        assert [c.name for c in coro.calls] == ["something"]

    def test_docstring_excluded_from_call_scan(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "def f():\n"
                '    """Calls nothing(really).\n'
                "\n"
                "    See also other(thing).\n"
                '    """\n'
                "    return real()\n"
            ),
        )
        function = extractor.parse_file(source).functions[0]
        assert [c.name for c in function.calls] == ["real"]
        assert function.docstring.startswith("Calls nothing(really).")

    def test_docstrings_disabled_scans_whole_body(self):
        source = SourceFile(name="m.py", content='def f():\n    """see g()"""\n    h()\n')
        function = EntityExtractor(include_docstrings=False).parse_file(source).functions[0]
        assert function.docstring is None
        assert [c.name for c in function.calls] == ["g", "h"]

    def test_keyword_denylist(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "def f(x):\n"
                "    if (x):\n"
                "        return (x)\n"
                "    while not (x):\n"
                "        assert (x)\n"
                "    # comment(call)\n"
                "    return work(x)\n"
            ),
        )
        function = extractor.parse_file(source).functions[0]
        assert [c.name for c in function.calls] == ["work"]

    def test_nested_headers_are_not_calls(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "def outer():\n"
                "    def inner(x):\n"
                "        return x\n"
                "    class Local(Base):\n"
                "        pass\n"
                "    return inner(Local())\n"
            ),
        )
        function = extractor.parse_file(source).functions[0]
        assert [(c.name, c.line) for c in function.calls] == [("inner", 6), ("Local", 6)]

    def test_private_and_dotted_calls(self, extractor: EntityExtractor):
        source = SourceFile(name="m.py", content="def _helper():\n    return os.path.join('a', 'b')\n")
        function = extractor.parse_file(source).functions[0]
        assert function.is_private is True
        assert function.calls[0].name == "os.path.join"
        assert function.calls[0].qualified == "os.path.join"

    def test_method_at_class_indent_ends_class(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "class A:\n"
                "    def m(self):\n"
                "        pass\n"
                "def free():\n"
                "    pass\n"
            ),
        )
        module = extractor.parse_file(source)
        assert [m.name for m in module.classes[0].methods] == ["m"]
        assert [f.name for f in module.functions] == ["free"]
        assert module.classes[0].line_end == 3

    def test_nested_class_methods_are_not_outer_methods(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "class Outer:\n"
                "    class Inner:\n"
                "        def im(self):\n"
                "            pass\n"
                "    def om(self):\n"
                "        pass\n"
            ),
        )
        outer = extractor.parse_file(source).classes[0]
        assert [(m.name, m.line_start) for m in outer.methods] == [("om", 5)]

    def test_variables_only_at_top_level(self, extractor: EntityExtractor):
        source = SourceFile(
            name="m.py",
            content=(
                "A = 1\n"
                "B == 2\n"
                "def f():\n"
                "    C = 3\n"
                "LONG = '" + "x" * 200 + "'\n"
            ),
        )
        variables = extractor.parse_file(source).variables
        assert [v.name for v in variables] == ["A", "LONG"]
        assert variables[1].value_snippet.endswith("…")
        assert len(variables[1].value_snippet) == 121

    def test_unrecognized_lines_are_skipped(self, extractor: EntityExtractor):
        source = SourceFile(name="m.py", content="%%% not python\n)))\ndef ok():\n    pass\n")
        module = extractor.parse_file(source)
        assert [f.name for f in module.functions] == ["ok"]

    def test_parse_files_keeps_order(self, extractor: EntityExtractor, multi_file_sources):
        modules = extractor.parse_files(multi_file_sources)
        assert [m.module_name for m in modules] == ["models", "views"]
        assert modules[1].file_path == "app/views.py"
