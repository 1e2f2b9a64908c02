"""
Command line entry point

Exit codes: 0 when every selected probe passed, 1 when any step failed or
raised, 2 when the run could not start (configuration, unknown probe,
unreadable sequence file).
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from pydantic import ValidationError

from supaprobe import __version__
from supaprobe.config.settings import ProbeConfig, get_config
from supaprobe.core.cleanup import ScratchDataCleanupJob
from supaprobe.core.data_factory import DataFactory
from supaprobe.core.keys import describe_key, mask_secret
from supaprobe.core.reporter import ConsoleReporter, JsonReporter
from supaprobe.core.runner import ProbeRunner
from supaprobe.models.operations import ProbeSequence
from supaprobe.probes import PROBES, get_probe, list_probes
from supaprobe.utils.error_handling import ConfigurationError, ProbeError, sanitize_data

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def setup_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(level=numeric, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    # basicConfig is a no-op once handlers exist; the env file may change the level
    logging.getLogger().setLevel(numeric)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser"""
    parser = argparse.ArgumentParser(
        prog="supaprobe",
        description="Diagnostic probes for a Supabase-backed CRM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  supaprobe list                               # Show the probe catalogue
  supaprobe run connection auth-signin         # Run two probes
  supaprobe run --all --format json -o out.json
  supaprobe run --file my-sequence.json        # Run a sequence from JSON
  supaprobe run clear-data --yes               # Destructive, asks for --yes
  supaprobe cleanup --dry-run                  # Preview leftover scratch rows
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--env-file", help="Env file to read (default: PROBE_ENV_FILE or .env)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List built-in probes")

    run_parser = subparsers.add_parser("run", help="Run probes")
    run_parser.add_argument("probes", nargs="*", metavar="NAME", help="Probe names from the catalogue")
    run_parser.add_argument("--all", action="store_true", help="Run every non-destructive probe")
    run_parser.add_argument("--file", action="append", default=[], help="Sequence file (JSON), repeatable")
    run_parser.add_argument("--format", choices=["console", "json"], default="console", help="Report format")
    run_parser.add_argument("-o", "--output", help="Write the JSON report to this path")
    run_parser.add_argument("--yes", action="store_true", help="Allow destructive probes")
    run_parser.add_argument("-v", "--verbose", action="store_true", help="Show step details")

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete leftover scratch data")
    cleanup_parser.add_argument("--dry-run", action="store_true", help="Count matches without deleting")
    cleanup_parser.add_argument("--include-users", action="store_true", help="Also delete scratch auth users")

    subparsers.add_parser("config", help="Show the resolved configuration")

    return parser


def _error(message: str) -> None:
    print(f"❌ {message}", file=sys.stderr)


def command_list() -> int:
    print("Available probes:")
    width = max(len(name) for name in PROBES)
    for definition in list_probes():
        flag = "  [destructive]" if definition.destructive else ""
        print(f"  {definition.name.ljust(width)}  {definition.description}{flag}")
    return EXIT_OK


def command_config(config: ProbeConfig) -> int:
    print("🔧 Configuration:")
    print(f"   URL: {config.supabase_url}")
    for label, key in (("Anon key", config.anon_key), ("Service key", config.service_role_key)):
        if not key:
            print(f"   {label}: not set")
            continue
        info = describe_key(key)
        expiry = info.expires_at.isoformat() if info.expires_at else "none"
        print(f"   {label}: {mask_secret(key)} (role {info.role or 'unknown'}, expires {expiry})")
    print(f"   Demo user: {config.demo_email or 'not set'}")
    print(f"   Test prefix: {config.test_data_prefix}")
    print(f"   Timeout: {config.request_timeout}s")
    for name, value in sorted(sanitize_data(config.extra).items()):
        print(f"   {name}: {value}")
    for note in config.warnings():
        print(f"   ⚠️  {note}")
    return EXIT_OK


def load_sequences(args, config: ProbeConfig) -> List[ProbeSequence]:
    """Resolve probe names and files into sequences"""
    factory = DataFactory(config)
    names = list(args.probes)
    if args.all:
        names += [d.name for d in list_probes() if not d.destructive and d.name not in names]

    sequences = [get_probe(name, config, factory) for name in names]
    for path in args.file:
        try:
            sequences.append(ProbeSequence.from_file(path))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError([f"cannot load sequence file {path}: {e}"]) from e

    if not sequences:
        raise ConfigurationError(["no probes selected (give names, --all or --file)"])

    destructive = [s.name for s in sequences if s.destructive]
    if destructive and not args.yes:
        raise ConfigurationError([f"{', '.join(destructive)} deletes data; pass --yes to run it"])
    return sequences


def command_run(args, config: ProbeConfig, transport=None) -> int:
    sequences = load_sequences(args, config)

    if args.format == "json":
        reporter = JsonReporter(output=args.output)
    else:
        reporter = ConsoleReporter(verbose=args.verbose)

    runner = ProbeRunner(config, reporter=reporter, transport=transport)
    results = asyncio.run(runner.run_all(sequences))
    return EXIT_OK if all(result.passed for result in results) else EXIT_FAILED


def command_cleanup(args, config: ProbeConfig, transport=None) -> int:
    job = ScratchDataCleanupJob(
        config,
        dry_run=args.dry_run,
        include_users=args.include_users,
        transport=transport,
    )
    result = asyncio.run(job.run_cleanup())
    return EXIT_OK if result["success"] else EXIT_FAILED


def main(argv: Optional[List[str]] = None, transport=None) -> int:
    """Parse arguments and dispatch; returns the process exit code"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(os.environ.get("LOG_LEVEL", "WARNING"))

    if args.command == "list":
        return command_list()

    try:
        config = get_config(args.env_file)
        setup_logging(config.log_level)

        if args.command == "config":
            return command_config(config)
        if args.command == "cleanup":
            return command_cleanup(args, config, transport)
        return command_run(args, config, transport)
    except ProbeError as e:
        _error(str(e))
        return EXIT_CONFIG
    except KeyboardInterrupt:
        _error("Interrupted")
        return EXIT_FAILED


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
