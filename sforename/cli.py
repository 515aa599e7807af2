from __future__ import annotations

import argparse
import concurrent.futures as _fut
import json as _json
import logging
import sys
from typing import Any, Dict, List, Optional

import colorama
from colorama import Fore

from sforename import __version__
from sforename.aggregate import aggregate
from sforename.constants import ARCHIVE_PATTERN, DEFAULT_JOBS
from sforename.errors import MalformedRecord, SfoRenameError
from sforename.renamer import (
    STATUS_DRY_RUN,
    STATUS_ERROR,
    STATUS_EXISTS,
    STATUS_OK,
    STATUS_SKIPPED,
    STATUS_UNCHANGED,
    RenameOutcome,
    process_archive,
    target_path,
)
from sforename.scanner import capture_records, iter_archives
from sforename.sfo import decode_params, parse_sfo


log = logging.getLogger(__name__)


class _Palette:
    """ANSI colors for the report; every field is empty when color is off."""

    def __init__(self, enabled: bool):
        self.src = Fore.CYAN if enabled else ""
        self.dst = Fore.YELLOW if enabled else ""
        self.ok = Fore.GREEN if enabled else ""
        self.bad = Fore.RED if enabled else ""
        self.reset = Fore.RESET if enabled else ""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _format_outcome(res: RenameOutcome, pal: _Palette) -> Optional[str]:
    """Render one result line, or None for archives without naming metadata."""
    status = res.status
    if status == STATUS_SKIPPED:
        return None
    if status == STATUS_ERROR and res.target is None:
        return f"{pal.bad}Error:{pal.reset} {res.message}"
    line = f"Moving '{pal.src}{res.source}{pal.reset}' to '{pal.dst}{res.target}{pal.reset}': "
    if status == STATUS_OK:
        return line + f"{pal.ok}OK!{pal.reset}"
    if status == STATUS_DRY_RUN:
        return line + f"{pal.ok}OK (dry run){pal.reset}"
    if status == STATUS_UNCHANGED:
        return line + f"{pal.ok}Already named{pal.reset}"
    if status == STATUS_EXISTS:
        return line + f"{pal.bad}File Exists!{pal.reset}"
    return line + f"{pal.bad}Failed: {res.message}{pal.reset}"


# -------- Rename (exposed callable) --------

def cmd_rename(
    paths: List[str],
    *,
    recursive: bool = False,
    jobs: int = DEFAULT_JOBS,
    pattern: str = ARCHIVE_PATTERN,
    dry_run: bool = False,
    strict: bool = False,
    as_json: bool = False,
    color: bool = True,
    quiet: bool = False,
) -> bool:
    """Rename many archives after the metadata of their embedded param.sfo records.

    Args:
        paths: Archive paths and/or directories to scan.
        recursive: Recurse into directories when True.
        jobs: Maximum parallel workers; each archive is one independent task.
        pattern: Glob selecting archives inside directories.
        dry_run: Compute and report target names without renaming.
        strict: Fail archives whose param.sfo exceeds the capture limit
            instead of decoding the captured prefix.
        as_json: When True, print a JSON result summary.
        color: Colorize the console report.
        quiet: Print only the summary line.

    Returns:
        True when no archive ended in an error, False otherwise.

    Raises:
        RuntimeError: If no archives matching the input paths were found.
    """
    archives = list(iter_archives(paths, recursive, pattern))
    if not archives:
        raise RuntimeError("No archives found")

    def _runner(p: str) -> RenameOutcome:
        try:
            return process_archive(p, dry_run=dry_run, strict=strict)
        except Exception as exc:
            log.debug("Unexpected failure on %s", p, exc_info=True)
            return RenameOutcome(source=p, status=STATUS_ERROR, message=f"{type(exc).__name__}: {exc}")

    results: List[RenameOutcome] = []
    with _fut.ThreadPoolExecutor(max_workers=max(1, int(jobs))) as ex:
        for r in ex.map(_runner, archives):
            results.append(r)

    counts: Dict[str, int] = {}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1
    failed = counts.get(STATUS_ERROR, 0)
    if as_json:
        summary: Dict[str, Any] = {"results": [r.as_dict() for r in results]}
        summary.update(counts)
        print(_json.dumps(summary))
    else:
        pal = _Palette(color)
        for r in results:
            line = _format_outcome(r, pal)
            if line is None:
                continue
            if r.status == STATUS_ERROR and r.target is None:
                print(line, file=sys.stderr)
            elif not quiet:
                print(line)
        renamed = counts.get(STATUS_OK, 0) + counts.get(STATUS_DRY_RUN, 0)
        print(
            f"Summary: renamed={renamed} exists={counts.get(STATUS_EXISTS, 0)} "
            f"unchanged={counts.get(STATUS_UNCHANGED, 0)} skipped={counts.get(STATUS_SKIPPED, 0)} failed={failed}"
        )
    return failed == 0


def cmd_info(archive: str) -> bool:
    """Dump every embedded param.sfo record of an archive and the resulting name."""
    records = []
    for cap in capture_records(archive):
        note = " (truncated)" if cap.truncated else ""
        print(f"SFO: '{cap.name}' with {cap.declared_size} bytes, got {len(cap.data)} bytes{note}")
        try:
            rec = parse_sfo(cap.data)
        except MalformedRecord as exc:
            print(f"  ignored: {exc}")
            records.append(decode_params([]))
            continue
        h = rec.header
        print(
            f"  HEADER: version=0x{h.version:08x} key_table={h.key_table_offset} "
            f"data_table={h.data_table_offset} entries={h.entries}"
        )
        for p in rec.params:
            print(f"  [{p.index}] (fmt=0x{p.fmt:04x} {p.start}-{p.end}) '{p.key}' -> {p.value!r}")
        decoded = decode_params(rec.params)
        print(f"  REGION: {decoded['REGION']}")
        records.append(decoded)

    desc = aggregate(records)
    if desc.empty:
        print("No APP_VER found; archive would not be renamed.")
    else:
        print(f"Target: {target_path(archive, desc)}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="sforename",
        description="Rename PS Vita zip archives after their embedded param.sfo metadata",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_rename = sub.add_parser("rename", help="Rename archives (default: *.zip in the current directory)")
    ap_rename.add_argument("paths", nargs="*", default=["."], help="Archive paths or directories")
    ap_rename.add_argument("--recursive", "-r", action="store_true", help="Recurse into directories")
    ap_rename.add_argument("--jobs", "-j", type=int, default=DEFAULT_JOBS, help=f"Parallel jobs (default {DEFAULT_JOBS})")
    ap_rename.add_argument("--pattern", default=ARCHIVE_PATTERN, help=f"Archive glob inside directories (default {ARCHIVE_PATTERN})")
    ap_rename.add_argument("--dry-run", "-n", action="store_true", help="Report target names without renaming")
    ap_rename.add_argument("--strict", action="store_true", help="Fail archives whose param.sfo exceeds the capture limit")
    ap_rename.add_argument("--json", action="store_true", help="Emit JSON result summary")
    ap_rename.add_argument("--no-color", action="store_true", help="Disable colored output")
    ap_rename.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_info = sub.add_parser("info", help="Show the param.sfo records of an archive")
    ap_info.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.cmd == "rename":
            color = not args.no_color and not args.json and sys.stdout.isatty()
            if color:
                colorama.init()
            success = cmd_rename(
                args.paths,
                recursive=args.recursive,
                jobs=args.jobs,
                pattern=args.pattern,
                dry_run=args.dry_run,
                strict=args.strict,
                as_json=args.json,
                color=color,
                quiet=args.quiet,
            )
            sys.exit(0 if success else 1)
        elif args.cmd == "info":
            cmd_info(args.archive)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (SfoRenameError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
