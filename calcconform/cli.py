# ==============================================
# CLI: Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Provides a command-line interface over the engine, mainly for
#   inspecting stored surveys and running quick calculations.
#
# COMMANDS:
# ---------
# 1. Show storage figures:
#    calcconform info
#
# 2. List the project tree:
#    calcconform projects
#
# 3. Search shutters (all keywords must match):
#    calcconform search hall vh01
#
# 4. Classify a measurement, optionally saving it to the history:
#    calcconform classify 5000 4900 --save
#
# 5. Show or clear the quick-calc history:
#    calcconform history [--clear]
#
# 6. Export shutters to CSV:
#    calcconform export --output survey.csv [--project ID ...]
#
# 7. Erase everything:
#    calcconform reset --confirm
#
# ==============================================

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from calcconform import __version__
from calcconform.analysis.compliance import ComplianceThresholds, calculate_compliance, format_deviation
from calcconform.config import AppConfig, get_config
from calcconform.export import export_csv
from calcconform.logging_config import setup_logging
from calcconform.persistence.project_store import ProjectStore
from calcconform.storage.mongo_storage import MongoStorage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calcconform",
        description="Smoke-extraction compliance survey store"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("info", help="Show project and shutter counts")
    subparsers.add_parser("projects", help="List projects, buildings, zones and shutters")

    search = subparsers.add_parser("search", help="Search shutters by keywords")
    search.add_argument("keywords", nargs="+")

    classify = subparsers.add_parser("classify", help="Classify a measured flow")
    classify.add_argument("reference_flow", type=float)
    classify.add_argument("measured_flow", type=float)
    classify.add_argument("--save", action="store_true", help="Add the result to the quick-calc history")

    history = subparsers.add_parser("history", help="Show the quick-calc history")
    history.add_argument("--clear", action="store_true", help="Empty the history")

    export = subparsers.add_parser("export", help="Export shutters to CSV")
    export.add_argument("--output", "-o", help="Output file (stdout when omitted)")
    export.add_argument("--project", action="append", dest="project_ids", help="Project id to include (repeatable)")

    reset = subparsers.add_parser("reset", help="Erase all stored data")
    reset.add_argument("--confirm", action="store_true")

    return parser


def _thresholds(config: AppConfig) -> ComplianceThresholds:
    return ComplianceThresholds(
        compliant_max=config.compliance.compliant_threshold,
        acceptable_max=config.compliance.acceptable_threshold,
    )


async def run(args: argparse.Namespace, store: ProjectStore, config: AppConfig) -> int:
    await store.initialize()
    thresholds = _thresholds(config)

    if args.command == "info":
        info = await store.get_storage_info()
        print(f"Projects: {info.projects_count}")
        print(f"Shutters: {info.total_shutters}")
        print(f"Size:     {info.storage_size}")

    elif args.command == "projects":
        for project in await store.get_projects():
            city = f" ({project.city})" if project.city else ""
            print(f"{project.name}{city}  [{project.id}]")
            for building in project.buildings:
                print(f"  {building.name}  [{building.id}]")
                for zone in building.functional_zones:
                    print(f"    {zone.name}  [{zone.id}]")
                    for shutter in zone.shutters:
                        result = calculate_compliance(shutter.reference_flow, shutter.measured_flow, thresholds)
                        print(f"      {shutter.name} {shutter.type.value}: "
                              f"{format_deviation(result.deviation)} {result.label}")

    elif args.command == "search":
        results = await store.search_shutters(" ".join(args.keywords))
        for hit in results:
            result = calculate_compliance(hit.shutter.reference_flow, hit.shutter.measured_flow, thresholds)
            print(f"{hit.project.name} / {hit.building.name} / {hit.zone.name} / "
                  f"{hit.shutter.name}: {format_deviation(result.deviation)} {result.label}")
        print(f"{len(results)} result(s)")

    elif args.command == "classify":
        result = calculate_compliance(args.reference_flow, args.measured_flow, thresholds)
        print(f"Deviation: {format_deviation(result.deviation)}")
        print(f"Status:    {result.label}")
        if not result.is_valid:
            print("Reference flow must be greater than zero", file=sys.stderr)
            return 1
        if args.save:
            await store.add_quick_calc_history(result)

    elif args.command == "history":
        if args.clear:
            await store.clear_quick_calc_history()
            print("History cleared")
        else:
            for item in await store.get_quick_calc_history():
                print(f"{item.timestamp:%Y-%m-%d %H:%M}  {item.reference_flow:g} -> "
                      f"{item.measured_flow:g}  {format_deviation(item.deviation)}  {item.status.value}")

    elif args.command == "export":
        csv_text = export_csv(await store.get_projects(), args.project_ids, thresholds)
        if args.output:
            Path(args.output).write_text(csv_text, encoding="utf-8")
            print(f"Exported to {args.output}")
        else:
            sys.stdout.write(csv_text)

    elif args.command == "reset":
        if not args.confirm:
            print("Refusing to erase data without --confirm", file=sys.stderr)
            return 1
        await store.clear_all_data()
        print("All data erased")

    return 0


def main(argv: Optional[List[str]] = None, config: Optional[AppConfig] = None) -> int:
    args = build_parser().parse_args(argv)
    config = config or get_config()
    setup_logging(config.log_level)

    store = ProjectStore.from_config(config)
    try:
        return asyncio.run(run(args, store, config))
    finally:
        if isinstance(store.storage, MongoStorage):
            store.storage.disconnect()


if __name__ == "__main__":
    sys.exit(main())
