"""
annexfacts CLI
===============

Command-line interface for running the pipeline on local files,
inspecting scanner output, smoke-testing the backend, and exporting
the data-contract schemas.

Usage:
    python -m annexfacts process docs/ configs/model.yaml --output facts.json
    python -m annexfacts scan docs/
    python -m annexfacts smoke
    python -m annexfacts export-schemas --output-dir schemas
"""

from __future__ import annotations

import argparse
import json
import sys
import textwrap
from pathlib import Path

from tabulate import tabulate

from annexfacts.config import get_config
from annexfacts.utils import save_json, setup_logging


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="annexfacts",
        description="annexfacts: evidence-gated technical documentation facts",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--verbose", "-v", action="store_true")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ── process ─────────────────────────────────────────────────
    process_parser = subparsers.add_parser("process", help="Run the full pipeline")
    process_parser.add_argument("paths", nargs="+", help="Files and/or folders to upload")
    process_parser.add_argument("--output", type=str, default=None, help="Facts JSON path")
    process_parser.add_argument("--audit-output", type=str, default=None, help="Audit record JSON path")
    process_parser.add_argument("--require-llm", action="store_true", help="Fail on any backend error")
    process_parser.add_argument("--no-extraction", action="store_true", help="Scanner-only signals")

    # ── scan ────────────────────────────────────────────────────
    scan_parser = subparsers.add_parser("scan", help="Run the heuristic scanner only")
    scan_parser.add_argument("paths", nargs="+", help="Files and/or folders to scan")

    # ── smoke ───────────────────────────────────────────────────
    subparsers.add_parser("smoke", help="Call the backend once in fail-fast mode")

    # ── export-schemas ──────────────────────────────────────────
    schema_parser = subparsers.add_parser("export-schemas", help="Export JSON schemas")
    schema_parser.add_argument("--output-dir", default="schemas")

    args = parser.parse_args(argv)

    config = get_config(args.config)
    setup_logging(
        level="DEBUG" if args.verbose else config.log_level,
        format_style=config.log_format,
    )

    if args.command == "process":
        cmd_process(args)
    elif args.command == "scan":
        cmd_scan(args)
    elif args.command == "smoke":
        cmd_smoke(args)
    elif args.command == "export-schemas":
        cmd_export_schemas(args)
    else:
        parser.print_help()
        sys.exit(1)


def _load_files(paths: list[str]):
    from annexfacts.ingest import load_uploaded_files

    try:
        files = load_uploaded_files(paths)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if not files:
        print("Error: no supported text files found")
        sys.exit(1)
    return files


def cmd_process(args):
    """Run the pipeline and print the facts table."""
    from annexfacts.audit.builder import AuditRecordBuilder
    from annexfacts.pipeline import FactPipeline

    overrides = {}
    if args.require_llm:
        overrides["require_llm"] = True
    if args.no_extraction:
        overrides["enable_extraction"] = False
    config = get_config(args.config, **overrides)

    files = _load_files(args.paths)
    pipeline = FactPipeline(config)

    print(f"Processing {len(files)} files...")
    result = pipeline.process(files)

    rows = []
    for fact in result.facts:
        value = fact.value if fact.value is not None else "—"
        rows.append([
            fact.key.value,
            fact.source.value,
            textwrap.shorten(value, width=80, placeholder=" …"),
            len(fact.evidence or []),
        ])
    print()
    print(tabulate(rows, headers=["signal", "source", "value", "evidence"], tablefmt="github"))
    print(f"\n  Stats: {result.stats}")
    print(f"  Latency: {result.timings.get('total_ms', 0):.0f}ms")

    if args.output:
        save_json(result.to_response(), args.output)
        print(f"\n  Facts saved to {args.output}")

    if args.audit_output:
        builder = AuditRecordBuilder(config)
        record = builder.build(files, result, backend=pipeline.generator.describe())
        builder.export_json(record, args.audit_output)
        print(f"  Audit record {record.run_id} saved to {args.audit_output}")


def cmd_scan(args):
    """Print the scanner's signal map as JSON."""
    from annexfacts.scan.scanner import SignalScanner

    config = get_config(args.config)
    files = _load_files(args.paths)
    signals = SignalScanner(config.scanner).scan(files)
    print(json.dumps(signals.model_dump(mode="json"), indent=2, ensure_ascii=False))


def cmd_smoke(args):
    """Call the configured backend once; exit non-zero on any failure."""
    from annexfacts.llm.client import build_text_generator

    config = get_config(args.config, require_llm=True)
    generator = build_text_generator(config)
    print(f"Backend configured: {generator.is_configured} ({generator.describe()})")

    try:
        out = generator.call(
            "ANALYSIS: Say 'ok'.\nREWRITTEN: Say 'ok'.\n\n"
            "Return exactly those two labeled lines."
        )
    except Exception as e:
        print(f"SMOKE TEST FAILED: {e}")
        sys.exit(1)
    print("OUTPUT:\n" + out)


def cmd_export_schemas(args):
    """Export JSON schemas for all data contracts."""
    from annexfacts.schemas import export_all_schemas

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    schemas = export_all_schemas()
    for name, schema in schemas.items():
        path = output_dir / f"{name}.json"
        with open(path, "w") as f:
            json.dump(schema, f, indent=2)
        print(f"Exported: {path}")

    print(f"\n{len(schemas)} schemas exported to {output_dir}/")


if __name__ == "__main__":
    main()
