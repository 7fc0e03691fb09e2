# CLI Main
import argparse
import asyncio
import sys

from wolfgift.cli.commands import (
    cmd_accounts,
    cmd_balance,
    cmd_catalog,
    cmd_gift,
    cmd_lookup,
    cmd_pool,
    cmd_stats,
    cmd_tokens,
)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        prog="wolfgift",
        description="wolfgift - gift purchasing engine administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="YAML or JSON config file")
    parser.add_argument("--env-file", default=".env", help="dotenv file (default: .env)")
    parser.add_argument("--data-dir", help="Override the snapshot directory")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Accounts command
    accounts_p = subparsers.add_parser("accounts", help="Manage the account pool")
    accounts_p.add_argument(
        "action", nargs="?", default="list", choices=["list", "add", "remove", "switch"]
    )
    accounts_p.add_argument("name", nargs="?", help="Account name")
    accounts_p.add_argument("--email", help="Account email (add)")
    accounts_p.add_argument("--password", help="Account password (add)")

    # Tokens command
    tokens_p = subparsers.add_parser("tokens", help="Inspect or refresh tokens")
    tokens_p.add_argument("action", nargs="?", default="status", choices=["status", "refresh"])
    tokens_p.add_argument("--force", action="store_true", help="Refresh even if still valid")

    # Balance command
    balance_p = subparsers.add_parser("balance", help="Member balances")
    balance_p.add_argument("action", choices=["show", "add", "remove", "set"])
    balance_p.add_argument("user", help="Member id")
    balance_p.add_argument("amount", nargs="?", type=int, default=0, help="Number of gems")

    # Pool command
    pool_p = subparsers.add_parser("pool", help="Pool total")
    pool_p.add_argument("action", nargs="?", default="show", choices=["show", "set", "add"])
    pool_p.add_argument("amount", nargs="?", type=int, default=0, help="Number of gems")

    # Stats command
    subparsers.add_parser("stats", help="Daily, weekly and monthly spend")

    # Lookup command
    lookup_p = subparsers.add_parser("lookup", help="Find a player by username")
    lookup_p.add_argument("username", help="Player username")

    # Gift command
    gift_p = subparsers.add_parser("gift", help="Buy a gift for a player")
    gift_p.add_argument("user", help="Member id paying from their balance")
    gift_p.add_argument("recipient", help="Recipient username (or player id with --id)")
    gift_p.add_argument("item", nargs="?", help="Item type")
    gift_p.add_argument("--calendar", help="Calendar id (instead of an item)")
    gift_p.add_argument("--message", help="Gift message")
    gift_p.add_argument("--id", action="store_true", help="Recipient is a player id")

    # Catalog command
    catalog_p = subparsers.add_parser("catalog", help="List or toggle catalog items")
    catalog_p.add_argument(
        "action", nargs="?", default="list", choices=["list", "enable", "disable"]
    )
    catalog_p.add_argument("item", nargs="?", help="Item type")
    catalog_p.add_argument("--category", help="Filter by category")

    return parser


def main() -> None:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.command == "accounts":
        cmd_accounts(args)
    elif args.command == "tokens":
        asyncio.run(cmd_tokens(args))
    elif args.command == "balance":
        cmd_balance(args)
    elif args.command == "pool":
        cmd_pool(args)
    elif args.command == "stats":
        cmd_stats(args)
    elif args.command == "lookup":
        asyncio.run(cmd_lookup(args))
    elif args.command == "gift":
        if not args.item and not args.calendar:
            parser.error("gift needs an item type or --calendar")
        asyncio.run(cmd_gift(args))
    elif args.command == "catalog":
        cmd_catalog(args)


if __name__ == "__main__":
    main()
