#!/usr/bin/env python3
"""feedwatch.

Reads Chainlink-style oracle contracts (price feeds, L2 sequencer uptime
feeds, Proof of Reserve feeds, the LINK token) and watches them for changes,
turning feed state into discrete events delivered to stdout or a webhook.

Run one-off queries as subcommands, or ``watch`` to poll a subscriptions file.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from .src.actions import (
    check_ccip_lane,
    convert_units,
    decode_functions_response,
    estimate_ccip_fee,
    estimate_functions_cost,
    estimate_vrf_request_price,
    get_ccip_lanes,
    get_ccip_message_status,
    get_derived_price,
    get_feed_description,
    get_functions_config,
    get_functions_subscription,
    get_gas_price,
    get_historical_price,
    get_latest_price,
    get_link_balance,
    get_link_price,
    get_multiple_prices,
    get_native_price,
    get_network_status,
    get_price_feed_data,
    get_proof_of_reserve,
    get_sequencer_status,
    get_upkeep_balance,
    get_upkeep_info,
    get_vrf_coordinator_config,
    get_vrf_request_status,
    get_vrf_subscription,
    list_ccip_chain_selectors,
    transfer_link,
    validate_address,
)
from .src.actions.functions import RESPONSE_TYPES
from .src.detectors import get_available_detectors
from .src.detectors.log_scan import DEFAULT_LOOKBACK_BLOCKS
from .src.EventSink import EventSink, LogSink, WebhookSink
from .src.FeedWatcher import FeedWatcher
from .src.networks import NETWORKS
from .src.PollState import JsonFileStateStore, MemoryStateStore, StateStore
from .src.ScaledDecimal import UNIT_EXPONENTS
from .src.Subscription import load_subscriptions
from .src.Web3LedgerClient import Web3LedgerClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated option into stripped, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser. Every option defaults from an environment variable."""
    parser = argparse.ArgumentParser(
        description="feedwatch: Chainlink oracle reads and change detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Networks:
  {', '.join(sorted(NETWORKS))}

Watch events:
  {', '.join(get_available_detectors())}

Examples:
  # Latest ETH/USD answer on Ethereum mainnet
  python -m feedwatch.main --network ethereum-mainnet price ETH/USD

  # ETH/EUR derived from ETH/USD and EUR/USD
  python -m feedwatch.main derived ETH/USD EUR/USD

  # Funding health of an Automation upkeep
  python -m feedwatch.main upkeep-balance 1234567890

  # Native fee of a CCIP message from Ethereum to Arbitrum
  python -m feedwatch.main ccip-fee arbitrum-mainnet 0xReceiverAddress

  # Watch subscriptions, persisting cursors and posting events to a webhook
  python -m feedwatch.main --network arbitrum-mainnet watch \\
      --subscriptions subscriptions.json --state-file state.json \\
      --webhook-url https://example.com/hook

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, PRIVATE_KEY, POLL_INTERVAL, SUBSCRIPTIONS_FILE,
  STATE_FILE, WEBHOOK_URL, LOOKBACK_BLOCKS
""",
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network identifier (default: ethereum-mainnet)",
        default=os.environ.get("NETWORK") or "ethereum-mainnet",
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC endpoint overriding the network default",
        default=os.environ.get("RPC_URL"),
    )

    parser.add_argument(
        "--private-key",
        dest="private_key",
        type=str,
        help="Hex private key, required for link-transfer",
        default=os.environ.get("PRIVATE_KEY"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    price = commands.add_parser("price", help="Latest price of a feed")
    price.add_argument("feed", help="Feed address or preset pair (e.g., ETH/USD)")

    feed_data = commands.add_parser("feed-data", help="Full latest round with staleness")
    feed_data.add_argument("feed", help="Feed address or preset pair")

    round_cmd = commands.add_parser("round", help="Price at a historical round")
    round_cmd.add_argument("feed", help="Feed address or preset pair")
    round_cmd.add_argument("round_id", help="Full round id")

    describe = commands.add_parser("describe", help="Feed description and decimals")
    describe.add_argument("feed", help="Feed address or preset pair")

    prices = commands.add_parser("prices", help="Latest prices of several feeds")
    prices.add_argument("feeds", help="Comma-separated feed addresses or preset pairs")

    derived = commands.add_parser("derived", help="Cross rate of two feeds")
    derived.add_argument("base_feed", help="Numerator feed (e.g., ETH/USD)")
    derived.add_argument("quote_feed", help="Denominator feed (e.g., EUR/USD)")
    derived.add_argument(
        "--decimals", type=int, default=8, help="Result decimals (default: 8)"
    )

    sequencer = commands.add_parser("sequencer", help="L2 sequencer uptime status")
    sequencer.add_argument("--feed-address", dest="feed_address", default=None)

    por = commands.add_parser("por", help="Proof of Reserve feed")
    por.add_argument("--asset", default=None, help="Preset asset (e.g., WBTC)")
    por.add_argument("--feed-address", dest="feed_address", default=None)

    link_balance = commands.add_parser("link-balance", help="LINK balance of an address")
    link_balance.add_argument("address", nargs="?", default=None)

    commands.add_parser("link-price", help="LINK/USD price")

    link_transfer = commands.add_parser("link-transfer", help="Transfer LINK from the signer")
    link_transfer.add_argument("to", help="Recipient address")
    link_transfer.add_argument("amount", help="LINK amount (e.g., 1.5)")

    convert = commands.add_parser("convert", help="Convert between EVM units")
    convert.add_argument("value")
    convert.add_argument("--from", dest="from_unit", default="ether", choices=list(UNIT_EXPONENTS))
    convert.add_argument("--to", dest="to_unit", default="wei", choices=list(UNIT_EXPONENTS))

    validate = commands.add_parser("validate-address", help="Validate and checksum an address")
    validate.add_argument("address")
    validate.add_argument(
        "--check-code", dest="check_code", action="store_true",
        help="Also check whether a contract is deployed at the address",
    )

    commands.add_parser("gas", help="Current gas price")
    commands.add_parser("network-status", help="Chain id, head block and known contracts")
    commands.add_parser("native-price", help="USD price of the network's native token")

    vrf_sub = commands.add_parser("vrf-subscription", help="VRF subscription balance and consumers")
    vrf_sub.add_argument("subscription_id")

    commands.add_parser("vrf-config", help="VRF coordinator config and key hashes")

    vrf_price = commands.add_parser("vrf-price", help="Estimated cost of a VRF request")
    vrf_price.add_argument("--callback-gas", dest="callback_gas", type=int, default=100_000)
    vrf_price.add_argument("--num-words", dest="num_words", type=int, default=1)

    vrf_request = commands.add_parser("vrf-request", help="Fulfillment status of a VRF request")
    vrf_request.add_argument("request_id")

    upkeep = commands.add_parser("upkeep", help="Automation upkeep details")
    upkeep.add_argument("upkeep_id")

    upkeep_balance = commands.add_parser("upkeep-balance", help="Upkeep balance against its minimum")
    upkeep_balance.add_argument("upkeep_id")

    ccip_chains = commands.add_parser("ccip-chains", help="Known CCIP chain selectors")
    ccip_chains.add_argument(
        "--testnets", action=argparse.BooleanOptionalAction, default=None,
        help="Only test networks (--no-testnets: only main networks)",
    )

    commands.add_parser("ccip-lanes", help="CCIP destinations supported by the router")

    ccip_lane = commands.add_parser("ccip-lane", help="Check one CCIP lane")
    ccip_lane.add_argument("destination", help="Network identifier or chain selector")

    ccip_fee = commands.add_parser("ccip-fee", help="Router fee for a CCIP message")
    ccip_fee.add_argument("destination", help="Network identifier or chain selector")
    ccip_fee.add_argument("receiver", help="Receiver address on the destination chain")
    ccip_fee.add_argument("--data", default="0x", help="Hex message payload")
    ccip_fee.add_argument("--gas-limit", dest="gas_limit", type=int, default=200_000)

    ccip_message = commands.add_parser("ccip-message", help="Track a CCIP message")
    ccip_message.add_argument("message_id")
    ccip_message.add_argument("--source-tx", dest="source_tx", default=None)

    functions_sub = commands.add_parser(
        "functions-subscription", help="Functions subscription balance and consumers"
    )
    functions_sub.add_argument("subscription_id")

    commands.add_parser("functions-config", help="Functions router config")

    functions_cost = commands.add_parser("functions-cost", help="Estimated Functions request cost")
    functions_cost.add_argument("--callback-gas", dest="callback_gas", type=int, default=300_000)

    functions_decode = commands.add_parser("functions-decode", help="Decode a Functions response")
    functions_decode.add_argument("response", help="0x-prefixed hex response")
    functions_decode.add_argument("--type", dest="response_type", default="string", choices=RESPONSE_TYPES)

    watch = commands.add_parser("watch", help="Poll subscriptions and emit events")
    watch.add_argument(
        "--subscriptions",
        type=str,
        help="JSON file with the list of subscriptions",
        default=os.environ.get("SUBSCRIPTIONS_FILE"),
    )
    watch.add_argument(
        "--state-file",
        dest="state_file",
        type=str,
        help="JSON file persisting cursors across restarts (default: in memory)",
        default=os.environ.get("STATE_FILE"),
    )
    watch.add_argument(
        "--poll-interval",
        dest="poll_interval",
        type=int,
        help="Seconds between polling cycles (minimum: 1, default: 60)",
        default=int(os.environ.get("POLL_INTERVAL") or "60"),
    )
    watch.add_argument(
        "--webhook-url",
        dest="webhook_url",
        type=str,
        help="POST every event to this URL in addition to stdout",
        default=os.environ.get("WEBHOOK_URL"),
    )
    watch.add_argument(
        "--lookback-blocks",
        dest="lookback_blocks",
        type=int,
        help=f"First scan window of log events (default: {DEFAULT_LOOKBACK_BLOCKS})",
        default=int(os.environ.get("LOOKBACK_BLOCKS") or str(DEFAULT_LOOKBACK_BLOCKS)),
    )
    watch.add_argument(
        "--once",
        action="store_true",
        help="Run a single polling cycle and exit",
    )

    return parser


def run_command(args: argparse.Namespace, client: Web3LedgerClient) -> dict[str, Any]:
    """Dispatch a request/response subcommand.

    :returns: JSON-serializable result.
    """
    command = args.command
    if command == "price":
        return get_latest_price(client, args.feed)
    if command == "feed-data":
        return get_price_feed_data(client, args.feed)
    if command == "round":
        return get_historical_price(client, args.feed, args.round_id)
    if command == "describe":
        return get_feed_description(client, args.feed)
    if command == "prices":
        return get_multiple_prices(client, split_list(args.feeds))
    if command == "derived":
        return get_derived_price(client, args.base_feed, args.quote_feed, args.decimals)
    if command == "sequencer":
        return get_sequencer_status(client, args.feed_address)
    if command == "por":
        return get_proof_of_reserve(client, args.asset, args.feed_address)
    if command == "link-balance":
        return get_link_balance(client, args.address)
    if command == "link-price":
        return get_link_price(client)
    if command == "link-transfer":
        return transfer_link(client, args.to, args.amount)
    if command == "convert":
        return convert_units(args.value, args.from_unit, args.to_unit)
    if command == "validate-address":
        return validate_address(args.address, client if args.check_code else None)
    if command == "gas":
        return get_gas_price(client)
    if command == "network-status":
        return get_network_status(client)
    if command == "native-price":
        return get_native_price(client)
    if command == "vrf-subscription":
        return get_vrf_subscription(client, args.subscription_id)
    if command == "vrf-config":
        return get_vrf_coordinator_config(client)
    if command == "vrf-price":
        return estimate_vrf_request_price(client, args.callback_gas, args.num_words)
    if command == "vrf-request":
        return get_vrf_request_status(client, args.request_id)
    if command == "upkeep":
        return get_upkeep_info(client, args.upkeep_id)
    if command == "upkeep-balance":
        return get_upkeep_balance(client, args.upkeep_id)
    if command == "ccip-chains":
        return list_ccip_chain_selectors(args.testnets)
    if command == "ccip-lanes":
        return get_ccip_lanes(client)
    if command == "ccip-lane":
        return check_ccip_lane(client, args.destination)
    if command == "ccip-fee":
        return estimate_ccip_fee(client, args.destination, args.receiver, args.data, args.gas_limit)
    if command == "ccip-message":
        return get_ccip_message_status(client, args.message_id, args.source_tx)
    if command == "functions-subscription":
        return get_functions_subscription(client, args.subscription_id)
    if command == "functions-config":
        return get_functions_config(client)
    if command == "functions-cost":
        return estimate_functions_cost(client, args.callback_gas)
    if command == "functions-decode":
        return decode_functions_response(args.response, args.response_type)
    raise ValueError(f"Unknown command {command}")


def run_watch(args: argparse.Namespace, client: Web3LedgerClient) -> None:
    """Load subscriptions and run the watch loop."""
    store: StateStore
    if args.state_file:
        store = JsonFileStateStore(args.state_file)
    else:
        store = MemoryStateStore()

    subscriptions = load_subscriptions(
        args.subscriptions, store, args.network, lookback_blocks=args.lookback_blocks
    )

    sinks: list[EventSink] = [LogSink()]
    if args.webhook_url:
        sinks.append(WebhookSink(args.webhook_url))

    watcher = FeedWatcher(
        ledger=client,
        subscriptions=subscriptions,
        sinks=sinks,
        poll_interval=args.poll_interval,
    )
    asyncio.run(watcher.run(max_cycles=1 if args.once else None))


def main() -> None:
    """Main entry point for the feedwatch CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.network not in NETWORKS and not args.rpc_url:
        parser.error(
            f"Unknown network {args.network}; pass --rpc-url for custom networks. "
            f"Known: {', '.join(sorted(NETWORKS))}"
        )

    if args.command == "watch":
        if not args.subscriptions:
            parser.error("watch requires --subscriptions (or SUBSCRIPTIONS_FILE)")
        if args.poll_interval < 1:
            parser.error("--poll-interval must be at least 1 second")
        if args.lookback_blocks < 0:
            parser.error("--lookback-blocks must not be negative")

        # Log configuration
        logger.info("=" * 60)
        logger.info("feedwatch - Oracle Event Watcher")
        logger.info("=" * 60)
        logger.info(f"Network:           {args.network}")
        logger.info(f"RPC URL:           {args.rpc_url or 'network default'}")
        logger.info(f"Subscriptions:     {args.subscriptions}")
        logger.info(f"State File:        {args.state_file or 'in memory'}")
        logger.info(f"Poll Interval:     {args.poll_interval}s")
        logger.info(f"Lookback Blocks:   {args.lookback_blocks}")
        logger.info(f"Webhook:           {args.webhook_url or 'disabled'}")
        logger.info("=" * 60)

    try:
        client = Web3LedgerClient(
            args.network, rpc_url=args.rpc_url, private_key=args.private_key
        )
        if args.command == "watch":
            run_watch(args, client)
        else:
            print(json.dumps(run_command(args, client), indent=2))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
