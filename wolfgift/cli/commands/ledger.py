"""
Ledger Commands
"""

from typing import Any

from .common import build_engine


def cmd_balance(args: Any) -> None:
    """Show or change a member's balance"""
    ledger = build_engine(args).ledger
    action = args.action

    if action == "show":
        balance = ledger.balance(args.user)
    elif action == "add":
        balance = ledger.credit(args.user, args.amount)
    elif action == "remove":
        balance = ledger.debit(args.user, args.amount)
    else:
        balance = ledger.set_balance(args.user, args.amount)

    print(f"💰 {args.user}: {balance} gems")


def cmd_pool(args: Any) -> None:
    """Show or change the pool total"""
    ledger = build_engine(args).ledger

    if args.action == "set":
        total = ledger.set_pool_total(args.amount)
    elif args.action == "add":
        total = ledger.credit_pool(args.amount)
    else:
        total = ledger.pool_total

    print(f"💎 Pool total: {total} gems")


def cmd_stats(args: Any) -> None:
    """Show spend statistics"""
    stats = build_engine(args).ledger.stats()

    print("\n📊 Gifting statistics")
    print("=" * 50)
    for bucket, label in (("daily", "Today"), ("weekly", "This week"), ("monthly", "This month")):
        data = stats[bucket]
        print(
            f"  {label:<11} ({data['period']}): "
            f"{data['gems']} gems in {data['transactions']} gifts"
        )
    print("=" * 50)
