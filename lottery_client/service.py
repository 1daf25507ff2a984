from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .config import ClientSettings, load_config
from .notices import Notifier
from .presentation import Action
from .session import LotterySession
from .types import ContractRef
from .wallet.memory import InMemoryLottery, InMemoryWalletProvider

ACTION_OPERATIONS = {
    "enter": "submit_entry",
    "withdraw": "withdraw_prize_money",
    "assign-winner": "assign_winner",
}

DEMO_ADDRESS = "0x" + "ab" * 20


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def build_demo_session(
    settings: ClientSettings, notifier: Optional[Notifier] = None
) -> LotterySession:
    """Session against an in-process lottery owned by the demo account."""
    lottery = InMemoryLottery(owner=DEMO_ADDRESS, min_entry_count=1)
    provider = InMemoryWalletProvider(lottery, DEMO_ADDRESS, chain_id=settings.required_chain_id)
    contract = ContractRef(address=settings.contract.address, abi=())
    return LotterySession(settings, provider, contract, notifier=notifier)


def describe(session: LotterySession) -> str:
    state = session.state
    action = session.action
    text = f"{state.entry_count} entries | {action.label}"
    if action.description:
        text = f"{text} ({action.description})"
    return text


async def run(args: argparse.Namespace) -> Optional[Action]:
    configure_logging(args.verbose)
    logger = logging.getLogger("lotteryclient")
    if args.demo:
        session = build_demo_session(ClientSettings())
    else:
        session = LotterySession.from_settings(load_config(args.env_file))

    session.subscribe(lambda action: logger.info("Action changed -> %s", action.label))
    try:
        if not await session.connect():
            logger.error("Could not connect the wallet; see messages above.")
            return session.action
        logger.info("%s", describe(session))

        if args.action:
            operation = ACTION_OPERATIONS[args.action]
            if session.action.operation != operation:
                logger.warning(
                    "Current action is %r; running %s anyway", session.action.label, args.action
                )
            await session.perform(operation)
            logger.info("%s", describe(session))

        if args.once:
            return session.action

        # Polling tasks keep the state fresh; idle until interrupted.
        await asyncio.Event().wait()
        return session.action
    finally:
        await session.close()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smart contract lottery client")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with settings")
    parser.add_argument("--once", action="store_true", help="Show the current action and exit.")
    parser.add_argument(
        "--action",
        choices=sorted(ACTION_OPERATIONS),
        default=None,
        help="Perform an action after connecting.",
    )
    parser.add_argument(
        "--demo", action="store_true", help="Use an in-process lottery instead of a wallet."
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Lottery client stopped by user.")


if __name__ == "__main__":
    main()
