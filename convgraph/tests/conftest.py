import pytest
from pathlib import Path
from typing import Generator, List
import sys
import tempfile

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from convgraph.analyzer import CodebaseAnalyzer
from convgraph.config import settings
from convgraph.graph.graph_builder import KnowledgeGraphBuilder
from convgraph.parser.entity_extractor import EntityExtractor
from convgraph.types import SourceFile
from convgraph.utils.logger import setup_logging


SAMPLE_MODULE = '''"""module doc"""
import os, sys as system
from typing import List, Optional as Opt

TOP = 123

@decorator
class Foo(Base1, Base2):
    """Foo docs"""

    @staticmethod
    def bar(x: int, y: int) -> int:
        """adds"""
        return add(x, y)

    async def baz(self, items: List[str]):
        for it in items:
            self.bar(len(it), 2)

def add(a, b):
    return a + b

async def coro(x):
    await something(x)
'''


USER_SERVICE = '''class UserService:
    def get_user(self, user_id):
        return self._fetch(user_id)
    def _fetch(self, id):
        return {"id": id}
'''


@pytest.fixture
def extractor() -> EntityExtractor:
    """Extractor with docstrings enabled."""
    return EntityExtractor(include_docstrings=True)


@pytest.fixture
def builder() -> KnowledgeGraphBuilder:
    return KnowledgeGraphBuilder()


@pytest.fixture
def analyzer() -> CodebaseAnalyzer:
    return CodebaseAnalyzer(include_docstrings=True)


@pytest.fixture
def sample_source() -> SourceFile:
    return SourceFile(name="sample.py", content=SAMPLE_MODULE)


@pytest.fixture
def user_service_source() -> SourceFile:
    return SourceFile(name="sample.py", content=USER_SERVICE)


@pytest.fixture
def multi_file_sources() -> List[SourceFile]:
    """Two modules where a class inherits across files."""
    return [
        SourceFile(
            name="models.py",
            path="app/models.py",
            content=(
                "class Base:\n"
                "    def save(self):\n"
                "        return persist(self)\n"
            ),
        ),
        SourceFile(
            name="views.py",
            path="app/views.py",
            content=(
                "from models import Base\n"
                "\n"
                "class Article(Base):\n"
                "    def publish(self):\n"
                "        self.save()\n"
                "        return render(self)\n"
            ),
        ),
    ]


@pytest.fixture
def temp_codebase() -> Generator[Path, None, None]:
    """Create temporary codebase for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)

        (temp_path / "pkg").mkdir()
        (temp_path / "pkg" / "service.py").write_text(USER_SERVICE)
        (temp_path / "pkg" / "helpers.py").write_text(
            "import os\n"
            "\n"
            "def join(a, b):\n"
            "    return os.path.join(a, b)\n"
        )
        (temp_path / "README.md").write_text("# Test Project\n")
        (temp_path / "__pycache__").mkdir()
        (temp_path / "__pycache__" / "cached.py").write_text("def ignored():\n    pass\n")

        yield temp_path


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """The CLI reinstalls sinks on the current stderr; put the default back afterwards."""
    yield
    setup_logging(settings.log_level, log_file=None)
