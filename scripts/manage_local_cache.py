"""Local storage maintenance: usage report, backup, restore and factory reset.

Works against whatever get_client() resolves to, so point LOCAL_REDIS_URL at
the local redis server holding the ``dh_*`` keys. Without it the commands run
against an empty in-process fakeredis, which is only useful for trying them.

Usage:
  python scripts/manage_local_cache.py usage
  python scripts/manage_local_cache.py export --out backup.json
  python scripts/manage_local_cache.py import --file backup.json
  python scripts/manage_local_cache.py reset --yes
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from studydesk_local_access.cache import LocalCache
from studydesk_local_access.client import get_client
from studydesk_shared.logging_config import configure_logging

logger = logging.getLogger("manage_local_cache")


async def cmd_usage(cache: LocalCache, args: argparse.Namespace) -> int:
    usage = await cache.usage()
    print(f"{usage.used / 1024:.1f} KiB of {usage.total / 1024:.0f} KiB ({usage.percent:.1f}%)")
    return 0


async def cmd_export(cache: LocalCache, args: argparse.Namespace) -> int:
    backup = await cache.export_backup()
    text = json.dumps(backup, indent=2, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        print(f"Exported {len(backup)} keys to {args.out}")
    else:
        print(text)
    return 0


async def cmd_import(cache: LocalCache, args: argparse.Namespace) -> int:
    try:
        payload = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"ERROR: cannot read backup {args.file}: {e}", file=sys.stderr)
        return 1
    if not isinstance(payload, dict):
        print("ERROR: backup must be a JSON object of key → value", file=sys.stderr)
        return 1
    restored = await cache.import_backup(payload)
    print(f"Restored {restored} of {len(payload)} keys")
    return 0


async def cmd_reset(cache: LocalCache, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to wipe local data without --yes", file=sys.stderr)
        return 1
    removed = await cache.factory_reset()
    print(f"Removed {removed} keys")
    return 0


COMMANDS = {
    "usage": cmd_usage,
    "export": cmd_export,
    "import": cmd_import,
    "reset": cmd_reset,
}


async def _run(args: argparse.Namespace) -> int:
    client = get_client()
    try:
        return await COMMANDS[args.command](LocalCache(client), args)
    finally:
        await client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Maintain StudyDesk local storage")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # usage
    subparsers.add_parser("usage", help="Show approximate storage usage")

    # export
    export_p = subparsers.add_parser("export", help="Export backup keys as JSON")
    export_p.add_argument("--out", help="Write to this file instead of stdout")

    # import
    import_p = subparsers.add_parser("import", help="Restore backup keys from JSON")
    import_p.add_argument("--file", required=True, help="Backup file produced by export")

    # reset
    reset_p = subparsers.add_parser("reset", help="Remove every dh_* key")
    reset_p.add_argument("--yes", action="store_true", help="Confirm the wipe")

    args = parser.parse_args()
    configure_logging(args.log_level)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
