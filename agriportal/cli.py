# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Agriportal admin CLI.

Commands:
  agriportal-admin login [--remember]   Log in as the portal admin
  agriportal-admin logout               End the admin session
  agriportal-admin status               Show session state
  agriportal-admin stats                Show attempts left / lockout
  agriportal-admin logs [--limit N]     Show recent security events
  agriportal-admin prune [--days N]     Drop security events older than N days
  agriportal-admin passwd               Change the admin password
  agriportal-admin genpass              Print a strong random password
"""

from __future__ import annotations

import argparse
import getpass
import sys
from datetime import datetime, timezone
from pathlib import Path

from agriportal.auth.admin import AdminAuth
from agriportal.auth.errors import PasswordChangeError
from agriportal.auth.passwords import generate_strong_password, validate_password
from agriportal.auth.session import SESSION_COOKIE
from agriportal.core.config import DEFAULT_CONFIG_PATH, PortalConfig

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
CYAN = "\033[96m"
BOLD = "\033[1m"
RESET = "\033[0m"


def _ok(msg: str) -> None:
    print(f"{GREEN}[OK]{RESET} {msg}")


def _warn(msg: str) -> None:
    print(f"{YELLOW}[!]{RESET} {msg}")


def _err(msg: str) -> None:
    print(f"{RED}[ERR]{RESET} {msg}", file=sys.stderr)


def _header(title: str) -> None:
    width = 42
    border = "=" * width
    print(f"\n{CYAN}+{border}+")
    print(f"| {BOLD}{title.center(width - 2)}{RESET}{CYAN} |")
    print(f"+{border}+{RESET}\n")


def _prompt_secret(label: str) -> str:
    _getpass = getpass.getpass if sys.stdin.isatty() else input
    return _getpass(label)


def _fmt_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# ─── Commands ─────────────────────────────────────────────────────────────

def cmd_login(auth: AdminAuth, args: argparse.Namespace) -> int:
    email = args.email or input("  Email: ")
    password = _prompt_secret("  Password: ")
    result = auth.login(email, password, remember=args.remember)
    if not result.success:
        _err(result.message)
        stats = auth.login_stats()
        if stats.blocked:
            _warn(f"Account blocked for {stats.blocked_minutes_left} minutes")
        elif stats.attempts:
            _warn(f"{stats.attempts_left} login attempts remaining")
        return 1
    _ok(f"Logged in. Session valid for {auth.settings.session_minutes} minutes.")
    return 0


def cmd_logout(auth: AdminAuth, _args: argparse.Namespace) -> int:
    if auth.sessions.get_session() is None:
        _warn("No active session.")
        return 0
    auth.logout()
    _ok("Session ended")
    return 0


def cmd_status(auth: AdminAuth, _args: argparse.Namespace) -> int:
    _header("ADMIN SESSION STATUS")
    valid = auth.is_authenticated()
    session = auth.sessions.get_session()
    print(f"  Admin:         {BOLD}{auth.settings.admin_email}{RESET}")
    print(f"  Last login:    {auth.sessions.last_login() or 'never'}")
    if valid and session is not None:
        remaining = auth.sessions.remaining_ms() // 60000
        print(f"  Session:       {GREEN}ACTIVE{RESET}")
        print(f"  Issued:        {_fmt_ms(session.issued_at)}")
        print(f"  Expires:       {_fmt_ms(session.expires_at)} ({remaining} min)")
        print(f"  Remember me:   {'yes' if session.remember else 'no'}")
    else:
        print(f"  Session:       {RED}NONE{RESET}")
    cookie = auth.cookies.get_cookie(SESSION_COOKIE)
    print(f"  Cookie:        {'set' if cookie else 'none'}")
    print()
    return 0


def cmd_stats(auth: AdminAuth, _args: argparse.Namespace) -> int:
    stats = auth.login_stats()
    if stats.blocked:
        _warn(f"Account blocked for {stats.blocked_minutes_left} minutes")
    elif stats.attempts:
        _warn(f"{stats.attempts_left} login attempts remaining")
    else:
        _ok("No failed login attempts")
    return 0


def cmd_logs(auth: AdminAuth, args: argparse.Namespace) -> int:
    events = auth.events.get_events(args.limit)
    if not events:
        _warn("Security log is empty.")
        return 0
    _header("SECURITY LOG")
    for event in events:
        print(f"  {event.timestamp}  {BOLD}{event.action:<16}{RESET} {event.details}  [{event.ip}]")
    print()
    return 0


def cmd_prune(auth: AdminAuth, args: argparse.Namespace) -> int:
    remaining = auth.events.prune_older_than(args.days)
    _ok(f"{remaining} security events kept")
    return 0


def cmd_passwd(auth: AdminAuth, _args: argparse.Namespace) -> int:
    current = _prompt_secret("  Current password: ")
    new = _prompt_secret("  New password: ")
    if _prompt_secret("  Confirm new password: ") != new:
        _err("Passwords don't match.")
        return 1
    try:
        auth.passwords.change_password(current, new)
    except PasswordChangeError as e:
        for line in e.errors:
            _err(line)
        return 1
    _ok(f"Password changed (strength {validate_password(new).strength}/5)")
    return 0


def cmd_genpass(_auth: AdminAuth, args: argparse.Namespace) -> int:
    try:
        password = generate_strong_password(args.length)
    except ValueError as e:
        _err(str(e))
        return 1
    print(password)
    return 0


# ─── CLI Entry Point ──────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agriportal-admin",
        description="Agriportal admin authentication",
    )
    parser.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG_PATH,
        help="Path to the YAML configuration",
    )
    parser.add_argument("--env-file", type=Path, default=None, help="Optional .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_login = sub.add_parser("login", help="Log in as admin")
    p_login.add_argument("--email", help="Admin email (prompted if omitted)")
    p_login.add_argument("--remember", action="store_true", help="Also set the 7-day cookie")

    sub.add_parser("logout", help="End the admin session")
    sub.add_parser("status", help="Show session state")
    sub.add_parser("stats", help="Show login attempts / lockout")

    p_logs = sub.add_parser("logs", help="Show recent security events")
    p_logs.add_argument("--limit", type=int, default=None, help="Number of events (default: 20)")

    p_prune = sub.add_parser("prune", help="Drop old security events")
    p_prune.add_argument("--days", type=int, default=None, help="Age threshold (default: 30)")

    sub.add_parser("passwd", help="Change the admin password")

    p_gen = sub.add_parser("genpass", help="Generate a strong password")
    p_gen.add_argument("--length", type=int, default=12)

    return parser


COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "status": cmd_status,
    "stats": cmd_stats,
    "logs": cmd_logs,
    "prune": cmd_prune,
    "passwd": cmd_passwd,
    "genpass": cmd_genpass,
}


def main(argv: list[str] | None = None, auth: AdminAuth | None = None) -> int:
    args = build_parser().parse_args(argv)
    if auth is None:
        config = PortalConfig(config_path=args.config, env_file=args.env_file)
        try:
            config.validate()
        except ValueError as e:
            _err(f"Invalid configuration: {e}")
            return 2
        auth = AdminAuth.from_config(config)
    return COMMANDS[args.command](auth, args)


if __name__ == "__main__":
    sys.exit(main())
