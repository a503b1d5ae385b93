"""Command-line maintenance triggers for hosts without a Celery beat.

    request-labeler archive [--target PATH | --date YYYY-MM-DD]
    request-labeler filter-noise LOGFILE
    request-labeler record-dependencies [PATH ...]
    request-labeler label --entry-point /index.php --query page=2

Every command prints one JSON status object; exit code 1 means failure.
"""
from __future__ import annotations

import argparse
import json
import sys
from datetime import date, datetime, timezone
from typing import Any, Sequence

from request_labeler.archiver import archive, archive_path_for
from request_labeler.errors import FileAccessDenied, StoreError
from request_labeler.labeler import Labeler
from request_labeler.log_filter import remove_dependency_noise
from request_labeler.logging_config import setup_logging
from request_labeler.profiler import build_profiler
from request_labeler.recorder import loaded_module_files, record_dependency_snapshot
from request_labeler.schemas.request import RequestContext
from request_labeler.store import SharedStore


def _key_value(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    return key, value


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="request-labeler", description=__doc__.splitlines()[0])
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p_archive = sub.add_parser("archive", help="Drain the request table into the archive log")
    p_archive.add_argument("--target", default=None, help="Explicit archive file")
    p_archive.add_argument("--date", type=date.fromisoformat, default=None, help="Rotation day (UTC today by default)")
    p_archive.add_argument("--structured", action="store_true", help="Also write the .jsonl sibling")

    p_filter = sub.add_parser("filter-noise", help="Strip recorded dependency paths from a log file")
    p_filter.add_argument("logfile")

    p_deps = sub.add_parser("record-dependencies", help="Store a dependency snapshot")
    p_deps.add_argument("paths", nargs="*", help="Defaults to the modules loaded by this process")

    p_label = sub.add_parser("label", help="Label one request")
    p_label.add_argument("--entry-point", required=True)
    p_label.add_argument("--request-path", default="")
    p_label.add_argument("--script-file", default="")
    p_label.add_argument("--query", type=_key_value, action="append", default=[])
    p_label.add_argument("--body", type=_key_value, action="append", default=[])
    return parser.parse_args(argv)


def _run(args: argparse.Namespace, store: SharedStore) -> dict[str, Any]:
    if args.command == "archive":
        target = args.target or str(archive_path_for(args.date or datetime.now(timezone.utc).date()))
        archived = archive(store, target, structured_sibling=args.structured or None)
        return {"status": "ok", "target": target, "archived": archived}

    if args.command == "filter-noise":
        removed = remove_dependency_noise(store, args.logfile)
        return {"status": "ok", "logfile": args.logfile, "removed": removed}

    if args.command == "record-dependencies":
        digest = record_dependency_snapshot(store, args.paths or loaded_module_files())
        return {"status": "ok", "digest": digest}

    context = RequestContext(
        entry_point=args.entry_point,
        request_path=args.request_path,
        script_file_path=args.script_file,
        query_params=dict(args.query),
        body=dict(args.body),
    )
    label = Labeler(store, build_profiler()).label_current_request(context)
    return {"status": "ok", "fingerprint": label}


def main(argv: Sequence[str] | None = None, store: SharedStore | None = None) -> int:
    args = _parse_args(argv)
    setup_logging(args.log_level)
    owned = store is None
    store = store or SharedStore.from_settings()
    try:
        payload = _run(args, store)
    except (StoreError, FileAccessDenied) as exc:
        print(json.dumps({"status": "fail", "reason": str(exc)}), file=sys.stderr)
        return 1
    finally:
        if owned:
            store.close()
    print(json.dumps(payload, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
