"""
sforename: rename PS Vita zip archives after their embedded PARAM.SFO metadata.

Features:

- Bounds-checked PARAM.SFO decoder (header, index table, key table, data table)
  that tolerates truncated captures and yields a default region on bad input.
- Per-archive aggregation of every embedded record: highest APP_VER/VERSION by
  string comparison, add-on content count, title/id/region of the last record
  carrying APP_VER.
- No-clobber renames to "{title} ({app_ver}-{version}-{ac}) [{title_id}] ({region}).zip",
  one worker per archive, colored or JSON reports.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "sfo",
    "aggregate",
    "scanner",
    "renamer",
    "cli",
]

# Programmatic API: sforename.sfo.decode_sfo, sforename.aggregate.aggregate and
# sforename.renamer.process_archive; the CLI functions in sforename.cli
# (cmd_rename/cmd_info) take normal parameters.
