#!/usr/bin/env python3
"""
BoondManager <-> MongoDB sync CLI

Runs the import / export / sync operations from cron or by hand. Results
are printed as JSON on stdout; logs go to stderr.

Run the full workflow nightly:
    0 2 * * * cd /path/to/boondsync && .venv/bin/python scripts/boond_sync_cron.py workflow

Or manually:
    python scripts/boond_sync_cron.py preview --env production
    python scripts/boond_sync_cron.py import --entities candidates --clean
    python scripts/boond_sync_cron.py export-data --format csv --entity candidates --clean
    python scripts/boond_sync_cron.py dictionary --env sandbox --refresh

Exit status is 1 when the operation failed or reported record errors.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment before other imports
load_dotenv()

from boondsync.boondmanager.client import create_boond_client
from boondsync.boondmanager.dictionary import get_dictionary_service
from boondsync.boondmanager.models import ENTITIES, BoondEnvironment
from boondsync.common.circuit_breaker import get_circuit_breaker_registry
from boondsync.common.config import Config
from boondsync.common.logger import set_global_debug_mode, setup_logging
from boondsync.common.rate_limiter import get_rate_limiter_registry
from boondsync.services.export_service import ExportToSandboxService
from boondsync.services.import_service import (
    DEFAULT_IMPORT_ENTITIES,
    BoondImportService,
    preview_from_client,
    run_import,
)
from boondsync.services.mongo_quality_service import MongoQualityAnalyzer
from boondsync.services.sync_service import CSV_EXPORT_FIELDS, BoondSyncService
from boondsync.services.workflow_service import WORKFLOW_STEPS, WorkflowService
from version import __version__

logger = logging.getLogger("boond_sync")

IMPORTABLE_ENTITIES = ["resources", "candidates", "opportunities", "companies"]


def emit(payload: Any, output: Optional[str] = None) -> None:
    """Write a result as JSON (or raw text) to stdout or a file."""
    text = payload if isinstance(payload, str) else json.dumps(
        payload, indent=2, ensure_ascii=False, default=str
    )
    if output:
        Path(output).write_text(text, encoding="utf-8")
        logger.info(f"Wrote {output}")
    else:
        print(text)


def resilience_stats() -> Dict[str, Any]:
    """Request counts, remaining daily quota and breaker state per BoondManager environment."""
    return {
        "rateLimits": get_rate_limiter_registry().get_all_stats(),
        "circuitBreakers": get_circuit_breaker_registry().get_all_stats(),
    }


# =============================================================================
# Commands
# =============================================================================

def cmd_preview(args) -> int:
    client = create_boond_client(args.env)
    emit(preview_from_client(client, args.entities))
    return 0


def cmd_import(args) -> int:
    client = create_boond_client(args.env)
    if args.dry_run:
        logger.info("Dry run: previewing instead of importing")
        emit(preview_from_client(client, args.entities))
        return 0

    report = run_import(
        client,
        entities=args.entities,
        create_users_from_resources=not args.no_users,
        clean_before_import=args.clean,
        infer_recruitment_stage=not args.no_recruitment_stage,
        service=BoondImportService(log_callback=logger.debug),
    )
    emit({**report, "resilience": resilience_stats()})
    return 1 if report["result"]["totalErrors"] > 0 else 0


def cmd_sync(args) -> int:
    service = BoondSyncService(log_callback=logger.debug)
    if args.dry_run:
        data = service.fetch_all_data(BoondEnvironment.PRODUCTION.value)
        emit({"dryRun": True, "production": data.stats})
        return 0

    def on_progress(entity, progress):
        if progress.processed == progress.total or progress.processed % 50 == 0:
            logger.info(f"[{entity}] {progress.processed}/{progress.total}")

    result = service.sync_prod_to_sandbox(on_progress=on_progress)
    emit({**result.to_dict(), "resilience": resilience_stats()})
    return 1 if result.failed_records > 0 else 0


def cmd_export_sandbox(args) -> int:
    service = ExportToSandboxService(log_callback=logger.debug)
    if args.dry_run:
        emit({
            "dryRun": True,
            "preview": service.preview_export(),
            "sandbox": service.get_sandbox_stats(),
        })
        return 0

    result = service.export_all()
    emit({**result.to_dict(), "resilience": resilience_stats()})
    return 1 if result.failed_records > 0 else 0


def cmd_quality(args) -> int:
    emit(BoondSyncService().analyze_all_data_quality(args.env))
    return 0


def cmd_quality_mongo(args) -> int:
    emit(MongoQualityAnalyzer().analyze())
    return 0


def cmd_export_data(args) -> int:
    service = BoondSyncService()
    data = service.fetch_all_data(args.env)
    if args.clean:
        data = service.clean_data(data)

    if args.format == "csv":
        if not args.entity:
            logger.error("--entity is required for CSV export")
            return 2
        emit(service.export_to_csv(data.entities[args.entity], CSV_EXPORT_FIELDS[args.entity]), args.output)
    else:
        emit(service.export_to_json(data), args.output)
    return 0


def cmd_workflow(args) -> int:
    result = WorkflowService().run(steps=args.steps, user_email=args.user_email)
    emit({**result, "resilience": resilience_stats()})
    return 0 if result["allSuccessful"] else 1


def cmd_status(args) -> int:
    emit(WorkflowService().get_status())
    return 0


def cmd_dictionary(args) -> int:
    service = get_dictionary_service()
    if args.refresh:
        service.fetch_dictionary(args.env, force_refresh=True)
    states = service.get_all_states(args.env)
    emit({
        "environment": args.env,
        "cached": args.env in service.cached_environments(),
        "states": {name: {str(k): v for k, v in table.items()} for name, table in states.items()},
    })
    return 0


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BoondManager <-> MongoDB import, export and sandbox sync"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env(sub, default="production"):
        sub.add_argument(
            "--env",
            choices=[e.value for e in BoondEnvironment],
            default=default,
            help=f"BoondManager environment (default: {default})",
        )

    def add_entities(sub):
        sub.add_argument(
            "--entities",
            nargs="+",
            choices=IMPORTABLE_ENTITIES,
            default=list(DEFAULT_IMPORT_ENTITIES),
            help="Entities to fetch (default: resources candidates opportunities)",
        )

    sub = subparsers.add_parser("preview", help="Show what an import would create/update")
    add_env(sub)
    add_entities(sub)
    sub.set_defaults(func=cmd_preview)

    sub = subparsers.add_parser("import", help="Import BoondManager data into MongoDB")
    add_env(sub)
    add_entities(sub)
    sub.add_argument("--no-users", action="store_true", help="Don't create users from resources")
    sub.add_argument("--clean", action="store_true", help="Empty target collections first")
    sub.add_argument(
        "--no-recruitment-stage",
        action="store_true",
        help="Skip fetching candidate actions to infer the pipeline stage",
    )
    sub.add_argument("--dry-run", action="store_true", help="Preview only, write nothing")
    sub.set_defaults(func=cmd_import)

    sub = subparsers.add_parser("sync", help="Copy production data into the sandbox")
    sub.add_argument("--dry-run", action="store_true", help="Fetch production counts only")
    sub.set_defaults(func=cmd_sync)

    sub = subparsers.add_parser("export-sandbox", help="Push MongoDB documents to the sandbox")
    sub.add_argument("--dry-run", action="store_true", help="Show counts only")
    sub.set_defaults(func=cmd_export_sandbox)

    sub = subparsers.add_parser("quality", help="Data quality report on BoondManager data")
    add_env(sub)
    sub.set_defaults(func=cmd_quality)

    sub = subparsers.add_parser("quality-mongo", help="Data quality report on MongoDB collections")
    sub.set_defaults(func=cmd_quality_mongo)

    sub = subparsers.add_parser("export-data", help="Export BoondManager data as JSON or CSV")
    add_env(sub)
    sub.add_argument("--format", choices=["json", "csv"], default="json")
    sub.add_argument("--entity", choices=ENTITIES, help="Entity to export (CSV only)")
    sub.add_argument("--clean", action="store_true", help="Normalise names, emails and phones")
    sub.add_argument("-o", "--output", help="Write to this file instead of stdout")
    sub.set_defaults(func=cmd_export_data)

    sub = subparsers.add_parser("workflow", help="Run import -> validate -> export")
    sub.add_argument(
        "--steps",
        nargs="+",
        choices=list(WORKFLOW_STEPS),
        default=list(WORKFLOW_STEPS),
    )
    sub.add_argument("--user-email", help="Recorded in the sync log")
    sub.set_defaults(func=cmd_workflow)

    sub = subparsers.add_parser("status", help="Collection counts and last sync")
    sub.set_defaults(func=cmd_status)

    sub = subparsers.add_parser("dictionary", help="State and type labels")
    add_env(sub)
    sub.add_argument("--refresh", action="store_true", help="Bypass the dictionary cache")
    sub.set_defaults(func=cmd_dictionary)

    return parser


def required_settings(args) -> List[str]:
    """Settings a command cannot run without."""
    mongodb = ["MONGODB_URI"]
    production = Config.boond_settings(BoondEnvironment.PRODUCTION.value)
    sandbox = Config.boond_settings(BoondEnvironment.SANDBOX.value)

    if args.command in ("preview", "import"):
        return mongodb + Config.boond_settings(args.env)
    if args.command == "sync":
        return production + sandbox
    if args.command == "export-sandbox":
        return mongodb + sandbox
    if args.command in ("status", "quality-mongo"):
        return mongodb
    if args.command == "workflow":
        return mongodb + production + sandbox
    return Config.boond_settings(args.env)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else Config.LOG_LEVEL, format=Config.LOG_FORMAT)
    set_global_debug_mode(args.verbose)

    logger.info(f"Running '{args.command}'")
    try:
        Config.validate(required_settings(args))
        if args.verbose:
            logger.debug(Config.summary())
        return args.func(args)
    except Exception as e:
        logger.error(f"'{args.command}' failed: {e}", exc_info=args.verbose)
        emit({"success": False, "command": args.command, "error": str(e)})
        return 1


if __name__ == "__main__":
    sys.exit(main())
