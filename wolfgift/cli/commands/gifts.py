"""
Gift, Lookup and Catalog Commands
"""

from typing import Any

from wolfgift.core.exceptions import (
    FailureKind,
    PurchaseError,
    WolfgiftException,
)
from wolfgift.core.types import CalendarPurchase, ItemPurchase

from .common import build_engine, fail


async def cmd_lookup(args: Any) -> None:
    """Find a player by username"""
    try:
        engine = build_engine(args, require_credentials=True)
    except WolfgiftException as e:
        fail(e)
        return

    try:
        player = await engine.orchestrator.lookup_player(args.username)
    except WolfgiftException as e:
        await engine.close()
        fail(e)
        return
    await engine.close()

    if player is None:
        print(f"❓ No player named '{args.username}'")
        return
    print(f"🐺 {player.get('username', args.username)}  id={player.get('id')}")


async def cmd_gift(args: Any) -> None:
    """Buy a gift for a player on behalf of a ledger member"""
    try:
        engine = build_engine(args, require_credentials=True)
    except WolfgiftException as e:
        fail(e)
        return

    try:
        recipient_id = args.recipient
        if not args.id:
            player = await engine.orchestrator.lookup_player(args.recipient)
            if player is None:
                raise PurchaseError(
                    FailureKind.PROVIDER_ERROR, f"No player named '{args.recipient}'"
                )
            recipient_id = str(player.get("id"))

        if args.calendar:
            request = CalendarPurchase(
                recipient_id=recipient_id, message=args.message or "", calendar_id=args.calendar
            )
        else:
            request = ItemPurchase(
                recipient_id=recipient_id, message=args.message or "", item_type=args.item
            )

        receipt = await engine.orchestrator.purchase(request, args.user)
    except WolfgiftException as e:
        await engine.close()
        fail(e)
        return
    await engine.close()

    print(f"🎁 Sent {request.key} to {args.recipient} ({receipt.cost} gems)")
    print(f"  Account:      {receipt.account} (💎 {receipt.remote_currency} left)")
    if receipt.switched_from:
        print(f"  Switched from: {receipt.switched_from}")
    print(f"  {args.user}'s balance: {receipt.user_balance}")
    print(f"  Pool total:   {receipt.pool_total}")


def cmd_catalog(args: Any) -> None:
    """List or toggle catalog items"""
    catalog = build_engine(args).catalog

    try:
        if args.action == "enable" or args.action == "disable":
            if not args.item:
                raise SystemExit(f"error: an item type is required for '{args.action}'")
            catalog.set_enabled(args.item, args.action == "enable")
            print(f"✅ {args.item} {args.action}d")
            return
    except WolfgiftException as e:
        fail(e)

    print("\n🎁 Items")
    for entry in catalog.enabled_items(args.category):
        print(f"  {entry.key:<32} {entry.category:<16} {entry.cost} gems")
    if args.category is None:
        print("\n📅 Calendars")
        for entry in catalog.enabled_calendars():
            print(f"  {entry.key:<32} {entry.title:<16} {entry.cost} gems")
