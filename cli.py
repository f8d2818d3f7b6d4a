#!/usr/bin/env python3
"""Command line client for onlystables payments"""

import argparse
import asyncio
from typing import Optional

from onlystables.config import settings
from onlystables.core.amounts import from_minor_units
from onlystables.core.errors import OnlyStablesError
from onlystables.core.intent import IntentParser
from onlystables.core.payment import PaymentStatus
from onlystables.logging_config import setup_logging
from onlystables.session import build_extractor, build_ledger, build_payment_session


async def cli_parse(text: str):
    """Parse a payment request without sending anything"""
    extractor = build_extractor(settings)
    try:
        intent = await IntentParser(extractor).parse(text)
    except OnlyStablesError as e:
        print(f"❌ {e.message}")
        return
    finally:
        if hasattr(extractor, "aclose"):
            await extractor.aclose()

    print("\n🧾 Payment Intent")
    print("=" * 50)
    print(f"Recipient: {intent.recipient}")
    print(f"Amount:    {from_minor_units(intent.amount_minor_units, intent.token.decimals)} {intent.token.symbol}")
    print(f"           ({intent.amount_minor_units} minor units)")
    print(f"Chain:     {intent.destination_chain.display_name} ({intent.destination_chain.chain_id})")
    if intent.purpose:
        print(f"Purpose:   {intent.purpose}")


async def cli_pay(text: str):
    """Run one payment attempt with the local wallet key"""
    try:
        session = build_payment_session(settings)
    except OnlyStablesError as e:
        print(f"❌ {e.message}")
        return

    try:
        outcome = await session.orchestrator.submit(text)
        printed = len(session.orchestrator.messages)
        for message in session.orchestrator.messages:
            if message.role == "assistant":
                print(f"\n🤖 {message.content}")
        if outcome.status == PaymentStatus.SUCCESS:
            await session.orchestrator.drain()
            # A history notice can arrive after the swap has finished.
            for message in session.orchestrator.messages[printed:]:
                print(f"\n⚠️  {message.content}")
    finally:
        await session.aclose()


async def cli_history(address: str, limit: Optional[int] = None):
    """Print the ledger history for an initiator address"""
    ledger = build_ledger(settings)
    print(f"📜 Fetching payment history for {address}...")
    try:
        entries = await ledger.query(address, limit)
    except OnlyStablesError as e:
        print(f"❌ {e.message}")
        return
    finally:
        store = getattr(ledger, "store", None)
        if store is not None:
            await store.aclose()

    if not entries:
        print("No payments found.")
        return
    for i, entry in enumerate(entries, 1):
        purpose = f" - {entry.purpose}" if entry.purpose else ""
        print(
            f"{i:2d}. {entry.created_at}  {entry.amount:>10} {entry.token:<5} -> {entry.recipient} "
            f"on {entry.destination_chain_name}{purpose}"
        )
        print(f"    request {entry.request_id}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="onlystables CLI")
    subparsers = parser.add_subparsers(dest="command")

    parse_parser = subparsers.add_parser("parse", help="Parse a payment request")
    parse_parser.add_argument("text", nargs="+", help="Payment request in plain English")

    pay_parser = subparsers.add_parser("pay", help="Parse and send a payment")
    pay_parser.add_argument("text", nargs="+", help="Payment request in plain English")

    history_parser = subparsers.add_parser("history", help="Show payment history for an address")
    history_parser.add_argument("address", help="Initiator wallet address")
    history_parser.add_argument("--limit", type=int, help="Maximum number of payments (1-50)")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(settings.log_level)
    command = args.command.lower()

    if command == "parse":
        await cli_parse(" ".join(args.text))

    elif command == "pay":
        await cli_pay(" ".join(args.text))

    elif command == "history":
        await cli_history(args.address, args.limit)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
