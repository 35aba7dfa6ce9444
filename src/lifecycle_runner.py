import argparse
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import uvloop
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from config_loader import load_lifecycle_config, print_config_summary
from core.client import SolanaClient
from core.wallet import Wallet
from lifecycle.orchestrator import TokenLifecycle
from platforms import create_token_basics_implementations
from utils.logger import get_logger, set_log_level, setup_file_logging

logger = get_logger(__name__)

# Amounts of the reference scenario, in minor units (9 decimals)
DEFAULT_SCENARIO = {
    "mint_amount": 1_000_000_000,
    "recipient_mint_amount": 1,
    "transfer_amount": 200_000_000,
    "burn_amount": 500_000_000,
}


@dataclass
class LifecycleReport:
    """Outcome of one full lifecycle run."""
    mint: Pubkey
    wallet: Pubkey
    recipient: Pubkey
    wallet_balance: int
    recipient_balance: int
    total_supply: int
    signatures: dict[str, Signature]


def setup_logging(run_name: str):
    """Set up logging to file for a specific run."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"{run_name}_{timestamp}.log"

    setup_file_logging(str(log_filename))


async def run_lifecycle(
    lifecycle: TokenLifecycle,
    token: dict,
    scenario: dict,
    recipient: Keypair,
) -> LifecycleReport:
    """Create a token, fund two holders, transfer between them and burn.

    Args:
        lifecycle: Orchestrator bound to the authority wallet
        token: Token metadata (name, symbol, uri)
        scenario: Amounts, see DEFAULT_SCENARIO
        recipient: Second holder

    Returns:
        Final balances and supply with all transaction signatures
    """
    amounts = {**DEFAULT_SCENARIO, **scenario}
    wallet = lifecycle.wallet
    signatures: dict[str, Signature] = {}

    mint = await lifecycle.create_token(token["name"], token["symbol"], token["uri"])
    signatures["mint_to_wallet"] = await lifecycle.mint_to(mint, wallet.pubkey, amounts["mint_amount"])
    signatures["mint_to_recipient"] = await lifecycle.mint_to(
        mint, recipient.pubkey(), amounts["recipient_mint_amount"]
    )
    signatures["transfer"] = await lifecycle.transfer(
        mint, wallet.keypair, recipient.pubkey(), amounts["transfer_amount"]
    )
    signatures["burn"] = await lifecycle.burn(mint, wallet.pubkey, amounts["burn_amount"])

    snapshot = await lifecycle.verify_conservation(mint)
    report = LifecycleReport(
        mint=mint,
        wallet=wallet.pubkey,
        recipient=recipient.pubkey(),
        wallet_balance=snapshot.balances[wallet.pubkey],
        recipient_balance=snapshot.balances[recipient.pubkey()],
        total_supply=snapshot.supply,
        signatures=signatures,
    )
    logger.info(
        f"Lifecycle of {mint} finished: wallet {report.wallet_balance}, "
        f"recipient {report.recipient_balance}, supply {report.total_supply}"
    )
    return report


async def start_run(config_path: str) -> LifecycleReport:
    """Run the lifecycle scenario with the configuration from the specified path."""
    cfg = load_lifecycle_config(config_path)
    set_log_level(cfg["log_level"])
    setup_logging(cfg["name"])
    print_config_summary(cfg)

    client = SolanaClient(
        cfg["rpc_endpoint"],
        commitment=cfg["commitment"],
        confirmation_timeout=cfg["confirmation"]["timeout"],
    )
    try:
        health = await client.get_health()
        if health != "ok":
            logger.warning(f"RPC node health check returned {health!r}")

        program_id = cfg.get("program_id")
        implementations = create_token_basics_implementations(
            program_id=Pubkey.from_string(program_id) if program_id else None
        )
        lifecycle = TokenLifecycle(
            client,
            Wallet(cfg["private_key"]),
            implementations,
            max_retries=cfg["retries"]["max_attempts"],
        )

        scenario = dict(cfg.get("scenario") or {})
        recipient_key = scenario.pop("recipient_private_key", None)
        recipient = Wallet(recipient_key).keypair if recipient_key else Keypair()

        return await run_lifecycle(lifecycle, cfg["token"], scenario, recipient)
    finally:
        await client.close()


async def run_all(config_paths: list[str]) -> None:
    """Run independent lifecycles concurrently, one per configuration file."""
    results = await asyncio.gather(
        *(start_run(path) for path in config_paths), return_exceptions=True
    )
    for path, result in zip(config_paths, results):
        if isinstance(result, BaseException):
            logger.error(f"Lifecycle from {path} failed: {result!s}")
        else:
            logger.info(f"Lifecycle from {path} completed for mint {result.mint}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the token lifecycle scenario.")
    parser.add_argument(
        "configs",
        nargs="*",
        help="Lifecycle configuration files (default: all YAML files in 'configs')",
    )
    args = parser.parse_args()

    config_paths = args.configs or [str(p) for p in sorted(Path("configs").glob("*.yaml"))]
    if not config_paths:
        logging.error("No lifecycle configuration files found")
        return

    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    asyncio.run(run_all(config_paths))


if __name__ == "__main__":
    main()
