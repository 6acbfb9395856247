#!/usr/bin/env python3
"""
convgraph - command line entry point

Scans a directory of Python files, builds the knowledge graph of their
declarations and references, and writes it as JSON.
"""

import argparse
import json
import sys
from pathlib import Path

from convgraph.analyzer import CodebaseAnalyzer
from convgraph.config import settings
from convgraph.graph.json_graph_client import JsonGraphClient, to_graph_json, to_parsed_json
from convgraph.scanner.local_codebase_scanner import LocalCodebaseScanner
from convgraph.utils.logger import app_logger, setup_logging


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build a knowledge graph from Python sources")
    parser.add_argument("path", help="Directory or single .py file to analyze")
    parser.add_argument("--output", "-o", default=None, help="Write graph JSON here instead of stdout")
    parser.add_argument("--no-docstrings", action="store_true", help="Skip docstring capture")
    parser.add_argument("--parsed", action="store_true", help="Emit per-file entity records instead of the graph")
    parser.add_argument("--stats", action="store_true", help="Print node and edge counts to stderr")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")
    parser.add_argument("--log-file", default=settings.log_file, help="Also log to this file")
    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level.upper(), log_file=args.log_file)

    target = Path(args.path)
    try:
        if target.is_file():
            scanner = LocalCodebaseScanner(str(target.parent))
            sources = scanner.load_files([target.resolve()])
        else:
            scanner = LocalCodebaseScanner(str(target))
            sources = scanner.scan_and_load()

        analyzer = CodebaseAnalyzer(include_docstrings=False if args.no_docstrings else None)
        if args.parsed:
            sys.stdout.write(to_parsed_json(analyzer.parse(sources)) + "\n")
            return 0

        graph = analyzer.analyze(sources)

        client = JsonGraphClient(args.output or settings.graph_output_path)
        if args.output:
            client.save_graph(graph)
        else:
            sys.stdout.write(to_graph_json(graph) + "\n")

        if args.stats:
            sys.stderr.write(json.dumps(client.get_graph_stats(graph), indent=2) + "\n")

    except KeyboardInterrupt:
        app_logger.info("Interrupted")
        return 130
    except Exception as e:
        app_logger.error(f"Analysis failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
