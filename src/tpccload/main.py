#!/usr/bin/env python3
"""
tpccload

Populate the TPC-C benchmark tables for N warehouses, either straight into
PostgreSQL (one COPY transaction per warehouse) or as CSV files for a later
bulk import. Warehouses are loaded in parallel by a pool of worker threads.

Settings come from a properties file; KEY VALUE pairs on the command line
override them (keys are case-insensitive):

  driver        DB-API driver module (psycopg; org.postgresql.Driver accepted)
  conn          connection string (libpq DSN/URI; a jdbc: prefix is dropped)
  user          database user
  password      database password
  warehouses    number of warehouses to load
  loadWorkers   worker threads (default 4)
  fileLocation  write CSV files into this directory instead of the database
  csvNullValue  literal written for NULL (default NULL)
  seed          random seed (default: fresh entropy)

Exit status: 1 configuration error, 3 driver/connection/output/worker
failure, 4 interrupted while waiting for workers.

Usage:
  tpccload --props my_postgres.properties warehouses 10 loadWorkers 8
  tpccload -P my_postgres.properties fileLocation /tmp/csv/

"""

from __future__ import annotations

import argparse
import os
import sys

from tpccload.config import LoadConfig, Settings, parse_overrides, read_properties
from tpccload.errors import EXIT_OK, LoadError
from tpccload.loader import LoadCoordinator


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tpccload",
        description="Load TPC-C initial data into a database or CSV files.",
    )
    ap.add_argument(
        "--props",
        "-P",
        default=os.environ.get("PROPS"),
        help="properties file (default: $PROPS).",
    )
    ap.add_argument(
        "overrides",
        nargs="*",
        metavar="KEY VALUE",
        help="settings that override the properties file.",
    )
    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if len(args.overrides) % 2:
        ap.error("overrides must be given as KEY VALUE pairs")

    print("[setup] starting tpccload")
    try:
        props = read_properties(args.props)
        settings = Settings(props, parse_overrides(args.overrides))
        cfg = LoadConfig.resolve(settings)
        LoadCoordinator(cfg).run()
    except LoadError as e:
        print(f"[error] {e}", file=sys.stderr)
        return e.exit_code
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
