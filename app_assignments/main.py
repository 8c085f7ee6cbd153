import argparse
import logging
import sys
from pathlib import Path

import requests

from . import config
from .errors import AuthenticationError, FetchFailed, GraphAPIError, NotFound, RequestFailed
from .exporter import APP_COLUMNS, ASSIGNMENT_COLUMNS, ROLE_COLUMNS, AssignmentExporter
from .graph_client import GraphClient
from .menu import CANCELLED, AutoSelect, SelectionMenu
from .report import write_csv


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Export app role assignments and service principals from Entra ID to CSV."
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--all",
        dest="mode",
        action="store_const",
        const="all",
        help="Export every service principal (no assignment lookup).",
    )
    mode.add_argument(
        "--roles",
        dest="mode",
        action="store_const",
        const="roles",
        help="Dump the app roles declared by every service principal.",
    )
    mode.add_argument(
        "--all-assignments",
        dest="mode",
        action="store_const",
        const="all-assignments",
        help="Export role assignments for every service principal.",
    )
    parser.set_defaults(mode="select")
    parser.add_argument("--name", help="Display-name prefix to narrow the selection list.")
    parser.add_argument(
        "--first-match",
        action="store_true",
        help="Pick the first matching service principal instead of prompting.",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=config.MENU_PAGE_SIZE,
        help="Entries per menu page (env: MENU_PAGE_SIZE).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path(config.OUTPUT_DIR),
        help="Directory for CSV output (env: OUTPUT_DIR).",
    )
    parser.add_argument("--output", help="Base name for the CSV file (no extension).")
    parser.add_argument(
        "--token",
        default=config.GRAPH_TOKEN,
        help="Existing Graph access token (env: GRAPH_TOKEN); otherwise app credentials are used.",
    )
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)
    if args.page_size < 1:
        parser.error("--page-size must be at least 1")
    return args


def run(args, client=None, selector=None) -> int:
    client = client or GraphClient(token=args.token)
    exporter = AssignmentExporter(client)
    result = None

    if args.mode == "all":
        rows, columns, base = exporter.export_all(), APP_COLUMNS, "service-principals"
    elif args.mode == "roles":
        rows, columns, base = exporter.export_roles(), ROLE_COLUMNS, "app-roles"
    elif args.mode == "all-assignments":
        result = exporter.export_all_assignments()
        rows, columns, base = result.rows, ASSIGNMENT_COLUMNS, "assignments-all"
    else:
        if args.name:
            candidates = exporter.find_service_principals(args.name)
        else:
            candidates = exporter.list_service_principals()
        if selector is None:
            selector = AutoSelect() if args.first_match else SelectionMenu(args.page_size)
        sp = selector.select(candidates, args.page_size)
        if sp is CANCELLED:
            print("Selection cancelled; nothing exported.")
            return 0
        logging.info(f"Selected {sp}")
        result = exporter.export_assignments(sp)
        rows, columns, base = result.rows, ASSIGNMENT_COLUMNS, f"assignments-{sp.display_name}"

    path = write_csv(rows, args.output or _safe_name(base), args.output_dir, columns)
    print(f"Exported {len(rows)} row(s) to {path}")
    if result is not None:
        print(result.summary())
        stats = exporter.resolver.stats
        logging.info(
            "Distinct principals looked up: %d resolved, %d unknown (%d undetermined after %d failed lookup(s))",
            stats.resolved,
            stats.unknown,
            stats.uncertain,
            stats.errors,
        )
    return 0


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in name)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        return run(args)
    except NotFound as e:
        logging.error(f"Lookup failed: {e}")
        return 2
    except FetchFailed as e:
        logging.error(f"Export aborted, nothing written: {e}")
        return 1
    except (GraphAPIError, AuthenticationError, RequestFailed) as e:
        logging.error(f"Graph request failed: {e}")
        return 1
    except requests.RequestException as e:
        logging.error(f"Graph request failed ({args.mode} export): {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
