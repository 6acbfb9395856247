import os
from pathlib import Path
from typing import List, Optional, Iterator
from concurrent.futures import ThreadPoolExecutor

from ..config import settings
from ..types import SourceFile
from ..utils.logger import app_logger


class LocalCodebaseScanner:
    """Collects source files from a local directory tree."""

    def __init__(self, root_path: Optional[str] = None):
        if root_path is None:
            self.root_path = Path.cwd().resolve()
        else:
            self.root_path = Path(root_path).resolve()

        self.supported_extensions = set(settings.supported_extensions_list)
        self.max_file_size = settings.max_file_size_bytes
        self.ignored_dirs = {
            '.git', '.venv', 'venv', 'env', '__pycache__', 'node_modules',
            '.idea', '.vscode', '.pytest_cache', '.mypy_cache', '.tox', 'build', 'dist'
        }
        self.logger = app_logger.bind(component="scanner")

    def scan_directory(self) -> List[Path]:
        """Return matching file paths, sorted relative to the root."""
        self.logger.info(f"Scanning directory: {self.root_path}")

        all_files = sorted(self._walk_directory(), key=lambda p: p.relative_to(self.root_path).as_posix())

        self.logger.info(f"Found {len(all_files)} files to process")
        return all_files

    def _walk_directory(self) -> Iterator[Path]:
        """Walk through directory and yield candidate files."""
        for root, dirs, files in os.walk(self.root_path):
            # Remove ignored directories
            dirs[:] = [d for d in dirs if d not in self.ignored_dirs]

            for file_name in files:
                file_path = Path(root) / file_name
                if self._should_include_file(file_path):
                    yield file_path

    def _should_include_file(self, file_path: Path) -> bool:
        """Check if file should be included in scan."""
        if file_path.suffix.lower() not in self.supported_extensions:
            return False

        try:
            if file_path.stat().st_size > self.max_file_size:
                self.logger.warning(f"Skipping large file: {file_path}")
                return False
        except OSError:
            return False

        return True

    def load_file(self, file_path: Path) -> Optional[SourceFile]:
        """Read one file into a SourceFile, or None when unreadable."""
        relative_path = file_path.relative_to(self.root_path).as_posix()
        try:
            with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                content = f.read()
        except OSError as e:
            self.logger.error(f"Error loading file {file_path}: {e}")
            return None
        return SourceFile(name=file_path.name, content=content, path=relative_path)

    def load_files(self, file_paths: List[Path], max_workers: int = 4) -> List[SourceFile]:
        """Load files in parallel, keeping the input order."""
        self.logger.info(f"Loading content for {len(file_paths)} files")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            loaded = list(executor.map(self.load_file, file_paths))

        source_files = [f for f in loaded if f is not None]
        self.logger.info(f"Successfully loaded content for {len(source_files)} files")
        return source_files

    def scan_and_load(self, max_workers: int = 4) -> List[SourceFile]:
        """Scan the root and load every matching file."""
        return self.load_files(self.scan_directory(), max_workers=max_workers)
