"""
Account and Token Commands
"""

import getpass
from typing import Any

from wolfgift.auth.token_clock import seconds_remaining
from wolfgift.core.exceptions import WolfgiftException
from wolfgift.core.logging import token_preview

from .common import build_engine, fail


def cmd_accounts(args: Any) -> None:
    """Account pool management"""
    engine = build_engine(args)
    store = engine.store
    action = getattr(args, "action", "list")

    try:
        if action == "list":
            print("\n👥 Accounts")
            print("=" * 50)
            for summary in store.list_accounts():
                marker = "▶" if summary["current"] else " "
                print(f"  {marker} {summary['name']:<16} {summary['email']:<32} 💎 {summary['gems']}")
            print("=" * 50)

        elif action == "add":
            name = _required(args, "name")
            email = args.email or input("Email: ").strip()
            password = args.password or getpass.getpass("Password: ")
            store.add(name, email, password)
            print(f"✅ Account '{name}' added")

        elif action == "remove":
            name = _required(args, "name")
            store.remove(name)
            print(f"✅ Account '{name}' removed")

        elif action == "switch":
            name = _required(args, "name")
            store.switch_to(name, reason="admin")
            print(f"✅ Now acting as '{name}'")

    except WolfgiftException as e:
        fail(e)


async def cmd_tokens(args: Any) -> None:
    """Refresh or inspect the current account's tokens"""
    try:
        engine = build_engine(args, require_credentials=args.action == "refresh")
    except WolfgiftException as e:
        fail(e)
        return

    store = engine.store
    try:
        if args.action == "status":
            tokens = store.active_tokens
            remaining = seconds_remaining(tokens.identity_token)
            print(f"\n🔑 Tokens for '{store.current_name}'")
            print(f"  Identity:  {token_preview(tokens.identity_token)}")
            print(f"  Refresh:   {token_preview(tokens.refresh_token)}")
            print(f"  Clearance: {token_preview(tokens.clearance_token)}")
            if remaining is None:
                print("  ⚠️  Identity token unreadable or missing")
            else:
                print(f"  ⏰ Valid for {int(remaining // 60)} minutes")
            return

        ok = await engine.credentials.ensure_fresh(force=args.force)
        if ok:
            print(f"✅ Tokens ready for '{store.current_name}'")
        else:
            print(f"❌ Token refresh failed for '{store.current_name}'")
    finally:
        await engine.close()

    if not ok:
        raise SystemExit(1)


def _required(args: Any, attr: str) -> str:
    value = getattr(args, attr, None)
    if not value:
        raise SystemExit(f"error: '{attr}' is required for '{args.action}'")
    return value
