"""Command-line interface for gamereviews."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from gamereviews.accounts import AccountStore
from gamereviews.db import DEFAULT_DB, Database
from gamereviews.errors import GameReviewsError, LoginRequiredError, ValidationError
from gamereviews.models import KNOWN_GAMES
from gamereviews.ratings import DEFAULT_RECENT, RatingStore

SEVERITIES = ("success", "error", "warning", "info")


@dataclass
class Context:
    """The stores shared by every command, built once per invocation."""

    db: Database
    accounts: AccountStore
    ratings: RatingStore


def show_message(text: str, severity: str = "info") -> None:
    if severity not in SEVERITIES:
        severity = "info"
    stream = sys.stderr if severity in ("error", "warning") else sys.stdout
    print(f"[{severity}] {text}", file=stream)


def _db_path(args: argparse.Namespace) -> Path:
    path = getattr(args, "db", None) or os.environ.get("GAMEREVIEWS_DB", "")
    return Path(path) if path else DEFAULT_DB


def open_context(path: Path | str) -> Context:
    db = Database(path)
    try:
        accounts = AccountStore(db)
        ratings = RatingStore(db, accounts)
    except Exception:
        db.close()
        raise
    return Context(db=db, accounts=accounts, ratings=ratings)


# ------------------------------------------------------------------
# Sub-command handlers
# ------------------------------------------------------------------


def cmd_register(args: argparse.Namespace, ctx: Context) -> None:
    if args.confirm_password is not None and args.confirm_password != args.password:
        raise ValidationError("Password and confirmation do not match")
    ctx.accounts.register(args.username, args.email, args.password)
    show_message("Registration successful! Please log in.", "success")


def cmd_login(args: argparse.Namespace, ctx: Context) -> None:
    account = ctx.accounts.login(args.username, args.password)
    show_message(f"Logged in as {account.username}.", "success")


def cmd_logout(args: argparse.Namespace, ctx: Context) -> None:
    ctx.accounts.logout()
    show_message("Logged out.", "info")


def cmd_whoami(args: argparse.Namespace, ctx: Context) -> None:
    user = ctx.accounts.get_current_user()
    if user is None:
        show_message("Not logged in.", "info")
        return
    print(f"{user.username} <{user.email}>")


def cmd_rate(args: argparse.Namespace, ctx: Context) -> None:
    if not ctx.accounts.is_logged_in():
        raise LoginRequiredError("Please log in before rating a game")
    name = args.name or KNOWN_GAMES.get(args.game_id, "")
    ctx.ratings.add_rating(args.game_id, name, args.stars, args.comment or "")
    show_message("Rating saved!", "success")


def cmd_show(args: argparse.Namespace, ctx: Context) -> None:
    summary = ctx.ratings.summary(args.game_id, recent=args.recent)
    title = KNOWN_GAMES.get(args.game_id, args.game_id)
    print(f"\n=== {title} ===")
    print(f"  Average : {summary.average:.1f} ({summary.count} ratings)")

    mine = ctx.ratings.get_user_rating(args.game_id)
    if mine is not None:
        print(f"  Yours   : {mine.stars}")

    if not summary.has_ratings:
        print("  No ratings for this game yet.")
        return
    print("\n  Recent ratings:")
    for r in summary.recent:
        line = f"    {r.stars}  {r.username}"
        if r.comment:
            line += f": {r.comment}"
        print(line)


def cmd_games(args: argparse.Namespace, ctx: Context) -> None:
    print(f"{'Game':<16} {'Avg':>5} {'Count':>6}  Name")
    print("-" * 60)
    for game_id, name in KNOWN_GAMES.items():
        avg = ctx.ratings.get_average_rating(game_id)
        count = ctx.ratings.rating_count(game_id)
        print(f"{game_id:<16} {avg:>5.1f} {count:>6}  {name}")


# ------------------------------------------------------------------
# Argument parser
# ------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamereviews",
        description="Accounts and star ratings for the game review site.",
    )
    parser.add_argument(
        "--db",
        metavar="PATH",
        default=None,
        help="Path to the SQLite database file (default: $GAMEREVIEWS_DB or ~/.gamereviews/gamereviews.db)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    reg = subparsers.add_parser("register", help="Create an account")
    reg.add_argument("username", help="3-20 characters")
    reg.add_argument("email")
    reg.add_argument("--password", required=True, help="At least 6 characters")
    reg.add_argument(
        "--confirm-password", dest="confirm_password", default=None,
        help="Must match --password when given",
    )
    reg.set_defaults(func=cmd_register)

    login = subparsers.add_parser("login", help="Log in to an account")
    login.add_argument("username")
    login.add_argument("--password", required=True)
    login.set_defaults(func=cmd_login)

    logout = subparsers.add_parser("logout", help="End the current session")
    logout.set_defaults(func=cmd_logout)

    whoami = subparsers.add_parser("whoami", help="Show the logged-in account")
    whoami.set_defaults(func=cmd_whoami)

    rate = subparsers.add_parser("rate", help="Rate a game (1-5 stars)")
    rate.add_argument("game_id", help="Game identifier, e.g. zelda")
    rate.add_argument("stars", help="Star rating from 1 to 5")
    rate.add_argument("--comment", default="", help="Optional comment")
    rate.add_argument("--name", default=None, help="Game display name")
    rate.set_defaults(func=cmd_rate)

    show = subparsers.add_parser("show", help="Show ratings for a game")
    show.add_argument("game_id")
    show.add_argument(
        "--recent",
        type=int,
        default=DEFAULT_RECENT,
        help=f"Number of recent ratings to show (default: {DEFAULT_RECENT})",
    )
    show.set_defaults(func=cmd_show)

    games = subparsers.add_parser("games", help="List games with rating averages")
    games.set_defaults(func=cmd_games)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 1

    try:
        ctx = open_context(_db_path(args))
    except GameReviewsError as exc:
        show_message(str(exc), "error")
        return 1
    try:
        func(args, ctx)
    except LoginRequiredError as exc:
        show_message(str(exc), "warning")
        return 1
    except GameReviewsError as exc:
        show_message(str(exc), "error")
        return 1
    finally:
        ctx.db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
