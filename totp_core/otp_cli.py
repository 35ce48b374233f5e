#!/usr/bin/env python3
"""
otp_cli.py - Command line front end for the TOTP console.

Subcommands:
- add     : store a secret (manual Base32 text or --qr IMAGE)
- update  : change secret and/or issuer of an entry
- list    : show stored entries
- get     : current code for one entry
- generate: current codes for every entry
- copy    : put the current code on the clipboard
- delete  : remove an entry
- loop    : live refresh of one or all entries (Ctrl+C to stop)
- qr      : print an otpauth QR code to the terminal
- export / import : JSON backup of the whole set
- sync / load / push : reconcile with Cloudflare KV

Remote credentials: kv.json, or CF_ACCOUNT_ID, CF_NAMESPACE_ID, CF_API_TOKEN.
"""

import argparse
import logging
import os
import sqlite3
import sys
import time

from totp_core import config
from totp_core.config import load_kv_config
from totp_core.devices import OpenCVQRDecoder, SystemClipboard, render_qr_ascii
from totp_core.errors import OTPError
from totp_core.kv_client import CloudflareKV
from totp_core.live import iter_live_rows
from totp_core.otpauth import format_otpauth_uri
from totp_core.service import SYNC_BOTH, SYNC_PULL, SYNC_PUSH, TOTPService
from totp_db import CredentialStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

KV_MISSING = (
    "Cloudflare KV not configured. Set CF_ACCOUNT_ID, CF_NAMESPACE_ID and "
    "CF_API_TOKEN, or create kv.json."
)


class UsageError(OTPError):
    pass


# --- helpers ---------------------------------------------------------------
def build_service(args) -> TOTPService:
    return TOTPService(
        CredentialStore(args.db),
        clipboard=SystemClipboard(),
        qr_decoder=OpenCVQRDecoder(),
    )


def build_remote(args):
    cfg = load_kv_config(args.kv_config)
    if cfg is None:
        raise UsageError(KV_MISSING)
    return CloudflareKV.from_config(cfg)


def _fail(message: str) -> int:
    print(f"[!] {message}", file=sys.stderr)
    return EXIT_ERROR


def _remaining(seconds: int) -> str:
    text = f"{seconds:2d}s"
    if seconds > config.LOW_TIME_WARNING or "NO_COLOR" in os.environ:
        return text
    return f"\x1b[31m{text}\x1b[0m"


# --- CLI command handlers --------------------------------------------------
def cmd_add(service, args):
    if args.qr:
        entry = service.add_from_qr(args.qr, name=args.name)
    else:
        if not args.entry or not args.secret:
            raise UsageError("Usage: add <name> <secret> [issuer]  or  add --qr IMAGE")
        entry = service.add(args.entry, args.secret, args.issuer)
    print(f"[+] Added TOTP entry: {entry.name}")


def cmd_update(service, args):
    if args.secret is None and args.issuer is None:
        raise UsageError("Nothing to update: pass --secret and/or --issuer")
    entry = service.update(args.entry, secret=args.secret, issuer=args.issuer)
    print(f"[+] Updated TOTP entry: {entry.name}")


def cmd_list(service, args):
    entries = service.list()
    if not entries:
        print("No TOTP entries found")
        return
    print("TOTP entries:")
    for entry in entries:
        print(f"  {entry.name}")
        if entry.issuer:
            print(f"     Issuer : {entry.issuer}")
        if entry.created_at:
            print(f"     Created: {entry.created_at}")


def cmd_get(service, args):
    code, remaining = service.code(args.entry)
    print(f"{args.entry} | Code: {code} | Expires in: {remaining}s")


def cmd_generate(service, args):
    rows = service.codes()
    if not rows:
        print("No TOTP entries found")
        return
    for entry, (code, remaining) in rows:
        print(f"{entry.name:20} | {code} | {remaining:2d}s")


def cmd_copy(service, args):
    _, remaining = service.copy(args.entry)
    print(f"[+] Copied TOTP code for {args.entry}, valid for {remaining} seconds")


def cmd_delete(service, args):
    service.delete(args.entry)
    print(f"[+] Deleted entry: {args.entry}")


def cmd_loop(service, args):
    entries = [service.get(args.entry)] if args.entry else service.list()
    if not entries:
        print("No TOTP entries found")
        return

    try:
        for rows in iter_live_rows(entries, interval=args.interval):
            print("\x1b[2J\x1b[H", end="")
            print(f"Live TOTP codes - {time.strftime('%H:%M:%S')}")
            print("=" * 42)
            for row in rows:
                mark = "*" if row.changed else " "
                print(f"{mark} {row.name:20} | {row.code} | {_remaining(row.seconds_remaining)}")
            print("\nPress Ctrl+C to exit live mode", flush=True)
    except KeyboardInterrupt:
        print("\nBye.")


def cmd_qr(service, args):
    entry = service.get(args.entry)
    uri = format_otpauth_uri(entry.secret, args.account or entry.name, entry.issuer)
    render_qr_ascii(uri)
    print(uri)


def cmd_export(service, args):
    if args.file in (None, "-"):
        service.export_to(sys.stdout)
        return
    with open(args.file, "w", encoding="utf-8") as f:
        count = service.export_to(f)
    print(f"[+] Exported {count} entries to {args.file}")


def cmd_import(service, args):
    with open(args.file, "r", encoding="utf-8") as f:
        added, updated = service.import_from(f)
    for name in added:
        print(f"[+] Added: {name}")
    for name in updated:
        print(f"[~] Updated: {name}")
    print(f"Imported {len(added)} new and {len(updated)} updated entries")


def _print_report(report):
    for name in report.pulled:
        print(f"[<] Pulled: {name}")
    for name in report.pushed:
        print(f"[>] Pushed: {name}")
    for name, reason in report.failed.items():
        print(f"[!] Failed: {name} ({reason})", file=sys.stderr)
    print(f"Sync done: {len(report.pulled)} pulled, {len(report.pushed)} pushed, "
          f"{len(report.failed)} failed")


def _run_sync(service, args, direction):
    remote = build_remote(args)
    if getattr(args, "dry_run", False):
        plan = service.plan_sync(remote)
        if plan.is_empty:
            print("Already in sync")
        for name, action in sorted(plan.actions().items()):
            print(f"  {action:4} {name}")
        return EXIT_OK
    report = service.sync(remote, direction=direction)
    _print_report(report)
    return EXIT_OK if report.ok else EXIT_ERROR


def cmd_sync(service, args):
    return _run_sync(service, args, SYNC_BOTH)


def cmd_load(service, args):
    return _run_sync(service, args, SYNC_PULL)


def cmd_push(service, args):
    return _run_sync(service, args, SYNC_PUSH)


def cmd_serve(service, args):
    from totp_api.app import create_app

    app = create_app(service=service)
    app.run(host=args.host, port=args.port, debug=False)


# --- Argparse builder ------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="totp-console", description="TOTP console manager")
    p.add_argument("--db", default=config.DATABASE_FILE, help="SQLite database file")
    p.add_argument("--kv-config", default=None, help="Cloudflare KV config file (kv.json)")
    p.add_argument("--verbose", action="store_true", help="Verbose output")
    sub = p.add_subparsers(dest="cmd")

    pa = sub.add_parser("add", help="Add a new TOTP entry")
    pa.add_argument("entry", nargs="?", metavar="name")
    pa.add_argument("secret", nargs="?", help="Base32 secret")
    pa.add_argument("issuer", nargs="?")
    pa.add_argument("--qr", metavar="IMAGE", help="Read the secret from a QR code image")
    pa.add_argument("--name", help="Entry name when adding from a QR code")
    pa.set_defaults(func=cmd_add)

    pu = sub.add_parser("update", help="Change secret or issuer of an entry")
    pu.add_argument("entry", metavar="name")
    pu.add_argument("--secret")
    pu.add_argument("--issuer")
    pu.set_defaults(func=cmd_update)

    sub.add_parser("list", help="List all entries").set_defaults(func=cmd_list)

    pg = sub.add_parser("get", help="Get TOTP code for an entry")
    pg.add_argument("entry", metavar="name")
    pg.set_defaults(func=cmd_get)

    sub.add_parser("generate", help="Generate codes for all entries").set_defaults(func=cmd_generate)

    pc = sub.add_parser("copy", help="Copy TOTP code to clipboard")
    pc.add_argument("entry", metavar="name")
    pc.set_defaults(func=cmd_copy)

    pd = sub.add_parser("delete", help="Delete an entry")
    pd.add_argument("entry", metavar="name")
    pd.set_defaults(func=cmd_delete)

    pl = sub.add_parser("loop", help="Continuous refresh mode")
    pl.add_argument("entry", nargs="?", metavar="name")
    pl.add_argument("--interval", type=float, default=config.LIVE_REFRESH_INTERVAL,
                    help="Refresh interval (seconds)")
    pl.set_defaults(func=cmd_loop)

    pq = sub.add_parser("qr", help="Show otpauth QR code for an entry")
    pq.add_argument("entry", metavar="name")
    pq.add_argument("--account", help="Account label in the URI (default: entry name)")
    pq.set_defaults(func=cmd_qr)

    pe = sub.add_parser("export", help="Export all entries as JSON")
    pe.add_argument("file", nargs="?", help="Output file (default: stdout)")
    pe.set_defaults(func=cmd_export)

    pi = sub.add_parser("import", help="Import entries from a JSON export")
    pi.add_argument("file")
    pi.set_defaults(func=cmd_import)

    ps = sub.add_parser("sync", help="Sync with Cloudflare KV (local wins)")
    ps.add_argument("--dry-run", action="store_true", help="Show the plan only")
    ps.set_defaults(func=cmd_sync)

    sub.add_parser("load", aliases=["pull"], help="Load missing entries from Cloudflare KV") \
        .set_defaults(func=cmd_load)
    sub.add_parser("push", help="Push local entries to Cloudflare KV").set_defaults(func=cmd_push)

    pv = sub.add_parser("serve", help="Run the local HTTP API")
    pv.add_argument("--host", default="127.0.0.1")
    pv.add_argument("--port", type=int, default=5000)
    pv.set_defaults(func=cmd_serve)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_OK

    try:
        service = build_service(args)
        result = args.func(service, args)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except (OTPError, ValueError, OSError, sqlite3.Error) as e:
        logger.debug("Command %s failed", args.cmd, exc_info=True)
        return _fail(str(e))
    return EXIT_OK if result is None else result


if __name__ == "__main__":
    sys.exit(main())
