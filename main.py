#!/usr/bin/env python3
"""
Polyglot Route Extractor v1.0
=============================
Static extraction of HTTP routes and DTO schemas from web-framework source
trees, with optional OpenAPI 3.0 export.

Frameworks:
  - Rust: Axum, Rocket
  - C++: Drogon, Oat++
  - C#: FastEndpoints
  - Java/Kotlin: Micronaut
  - Elixir: Phoenix
  - JavaScript/TypeScript: Hono, Express
  - Python: Django REST Framework

Usage: python main.py [OPTIONS] <path-or-git-url>
"""

import sys
import os
import argparse
import tempfile
import shutil
import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional

# =============================================================================
# DEPENDENCY CHECK
# =============================================================================
REQUIRED = {"rich": "rich>=13.7.0", "git": "gitpython>=3.1.40", "dotenv": "python-dotenv>=1.0.0",
            "yaml": "PyYAML>=6.0"}

def check_deps():
    missing = []
    for mod, pkg in REQUIRED.items():
        try:
            __import__(mod)
        except ImportError:
            missing.append(pkg)
    if missing:
        print(f"\nMissing: pip install {' '.join(missing)}\n")
        sys.exit(1)

check_deps()

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box
from dotenv import load_dotenv
import git

from extractors import (
    ExtractionPipeline,
    ExtractionResult,
    ExtractorConfig,
    ExtractorError,
    Route,
    build_default_registry,
    build_openapi_document,
    collect_source_files,
    dump_document,
    setup_logging,
)
from extractors import __version__

load_dotenv()
console = Console()
logger = logging.getLogger("route_extractor.cli")


# =============================================================================
# OUTPUT HELPERS
# =============================================================================
METHOD_COLORS = {
    "GET": "green", "POST": "yellow", "PUT": "blue", "PATCH": "cyan",
    "DELETE": "red", "ALL": "magenta",
}


def make_table(routes: List[Route], limit: int = 50) -> Table:
    table = Table(title="Extracted Routes", box=box.ROUNDED, show_lines=False)
    table.add_column("Method", style="bold", width=8)
    table.add_column("Path", style="white")
    table.add_column("Operation", style="cyan")
    table.add_column("Framework", style="magenta")
    table.add_column("Source", style="dim")

    for r in routes[:limit]:
        color = METHOD_COLORS.get(r.method, "white")
        table.add_row(
            f"[{color}]{r.method}[/{color}]",
            r.path,
            r.operation_id,
            r.framework,
            f"{r.source_file}:{r.source_line}",
        )
    if len(routes) > limit:
        table.caption = f"... and {len(routes) - limit} more"
    return table


def make_summary(result: ExtractionResult, file_count: int) -> Table:
    table = Table(title="Summary", box=box.SIMPLE)
    table.add_column("Framework", style="cyan")
    table.add_column("Routes", justify="right")
    table.add_column("Schemas", justify="right")
    table.add_column("Skipped", justify="right")

    for framework, stats in result.stats.get("by_framework", {}).items():
        table.add_row(framework, str(stats["routes"]), str(stats["schemas"]), str(stats["files_skipped"]))

    methods = Counter(r.method for r in result.routes)
    table.caption = (f"{file_count} files | {len(result.routes)} routes | {len(result.schemas)} schemas | "
                     f"errors: {result.stats.get('files_errored', 0)} | "
                     + " ".join(f"{m}:{c}" for m, c in sorted(methods.items())))
    return table


def write_output(path: str, text: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)


# =============================================================================
# GIT HELPER
# =============================================================================
def clone_repo(url: str) -> str:
    tmp = tempfile.mkdtemp(prefix="route_extract_")
    console.print(f"[cyan]Cloning: {url}[/cyan]")
    git.Repo.clone_from(url, tmp, depth=1)
    console.print(f"[green] Cloned[/green]")
    return tmp


# =============================================================================
# CONFIGURATION
# =============================================================================
def build_config(args: argparse.Namespace) -> ExtractorConfig:
    """File or environment configuration, overridden by explicit CLI flags."""
    if args.config:
        config = ExtractorConfig.from_file(args.config)
    else:
        config = ExtractorConfig.from_env()

    if args.framework:
        config.frameworks = list(args.framework)
    if args.parallel:
        config.parallel = True
    if args.workers is not None:
        config.parallel_workers = args.workers
    if args.max_file_size is not None:
        config.max_file_size_mb = args.max_file_size
    if args.format:
        config.output_format = args.format
    if args.no_prefix_propagation:
        config.propagate_prefixes = False
    if args.compose_optional_arrays:
        config.compose_optional_arrays = True
    if args.verbose:
        config.log_level = "DEBUG"
    if args.log_file:
        config.log_file = args.log_file
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"Polyglot Route Extractor v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py ./service                              # Detect frameworks and extract
  python main.py ./service --framework axum             # Only the Axum plugin
  python main.py ./service --parallel --workers 8       # Parallel extraction
  python main.py ./service -o routes.yaml --format yaml # Save routes as YAML
  python main.py ./service --openapi openapi.json       # Export an OpenAPI 3.0 document
  python main.py https://github.com/org/repo.git        # Shallow-clone and extract
        """
    )

    parser.add_argument("target", help="Directory or Git URL to scan")

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("-o", "--output", help="Write routes and schemas to FILE")
    output_group.add_argument("--format", choices=["json", "yaml"], help="Output format (default: json)")
    output_group.add_argument("--openapi", metavar="FILE", nargs="?", const="AUTO",
                              help="Export an OpenAPI 3.0 document")
    output_group.add_argument("--title", default="Extracted API", help="OpenAPI document title")

    scan_group = parser.add_argument_group("Extraction Options")
    scan_group.add_argument("--framework", action="append", metavar="NAME",
                            help="Plugin to run (repeatable); default: auto-detect from manifests")
    scan_group.add_argument("--all", action="store_true", dest="run_all",
                            help="Run every plugin, skipping manifest detection")
    scan_group.add_argument("--parallel", action="store_true", help="Process files in a thread pool")
    scan_group.add_argument("--workers", type=int, help="Number of parallel workers (default: 4)")
    scan_group.add_argument("--max-file-size", type=int, help="Max file size in MB (default: 10)")
    scan_group.add_argument("--config", metavar="FILE", help="Configuration file (JSON/YAML)")
    scan_group.add_argument("--no-prefix-propagation", action="store_true",
                            help="Do not apply Axum nest / Rocket mount prefixes")
    scan_group.add_argument("--compose-optional-arrays", action="store_true",
                            help="Map Option<Vec<T>> to a nullable array")

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")
    parser.add_argument("--log-file", metavar="FILE", help="Write JSON-line debug log to FILE")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


# =============================================================================
# MAIN CLI
# =============================================================================
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not args.quiet:
        console.print(Panel.fit(
            f"[bold cyan] Polyglot Route Extractor v{__version__}[/bold cyan]\n"
            "[dim]Axum | Rocket | Drogon | Oat++ | FastEndpoints | Micronaut[/dim]\n"
            "[dim]Phoenix | Hono | Express | Django REST Framework[/dim]",
            border_style="cyan"
        ))

    target = args.target
    tmp = None
    start_time = datetime.now()

    try:
        config = build_config(args)
        setup_logging(config.log_level, config.log_file)

        if target.startswith(("http://", "https://", "git@")):
            tmp = clone_repo(target)
            target = tmp
        elif not os.path.isdir(target):
            console.print(f"[red]Error: {target} not found[/red]")
            return 1

        registry = build_default_registry(config)
        if config.frameworks or args.run_all:
            plugins = list(registry)
        else:
            plugins = registry.detect(target)
            if not plugins:
                console.print("[yellow]No supported framework detected in manifests; running every plugin[/yellow]")
                plugins = list(registry)

        if not args.quiet:
            names = ", ".join(p.framework for p in plugins)
            console.print(f"\n[bold cyan] Extracting...[/bold cyan] [dim]({names})[/dim]")

        files = collect_source_files(target, config)
        result = ExtractionPipeline(registry, config).run(files, plugins)
        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Finished in {duration:.2f}s")

        if not args.quiet:
            console.print(f"\n[green] Found {len(result.routes)} routes and {len(result.schemas)} schemas[/green]")
            if result.routes:
                console.print(make_table(result.routes))
            console.print(make_summary(result, len(files)))

        if args.output:
            data = {
                "timestamp": datetime.now().isoformat(),
                "target": args.target,
                "version": __version__,
                **result.to_dict(),
            }
            write_output(args.output, dump_document(data, config.output_format))
            if not args.quiet:
                console.print(f"\n[green] Saved: {args.output}[/green]")

        if args.openapi:
            if args.openapi == "AUTO":
                openapi_file = f"openapi.{'yaml' if config.output_format == 'yaml' else 'json'}"
            else:
                openapi_file = args.openapi
            fmt = "yaml" if openapi_file.endswith((".yaml", ".yml")) else "json"
            doc = build_openapi_document(result.routes, result.schemas, title=args.title)
            write_output(openapi_file, dump_document(doc, fmt))
            if not args.quiet:
                console.print(f"[green] OpenAPI 3.0 document exported: {openapi_file}[/green]")
                console.print(f"   Paths: {len(doc['paths'])}")
                console.print(f"   Schemas: {len(doc['components']['schemas'])}")

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130
    except (ExtractorError, OSError, git.GitCommandError) as e:
        console.print(f"\n[red]Error: {e}[/red]")
        if args.verbose:
            console.print_exception()
        return 1
    finally:
        if tmp and os.path.exists(tmp):
            shutil.rmtree(tmp, ignore_errors=True)

    if not args.quiet:
        console.print("\n[bold green] Complete![/bold green]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
