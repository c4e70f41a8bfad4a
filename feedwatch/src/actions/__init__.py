"""
Request/response operations against oracle contracts.

Every operation takes a LedgerClient first, returns a JSON-serializable dict
and raises WatcherError subclasses on failure.

Usage:
    from feedwatch.src.actions import get_latest_price

    result = get_latest_price(client, "ETH/USD")
    # {'price': '3012.45000000', 'pair': 'ETH / USD', ...}
"""

from .automation import get_upkeep_balance, get_upkeep_info
from .ccip import (
    check_ccip_lane,
    estimate_ccip_fee,
    get_ccip_lanes,
    get_ccip_message_status,
    list_ccip_chain_selectors,
)
from .data_feed import get_proof_of_reserve, get_sequencer_status
from .functions import (
    decode_functions_response,
    estimate_functions_cost,
    get_functions_config,
    get_functions_subscription,
)
from .link_token import get_link_balance, get_link_price, transfer_link
from .network_utils import (
    convert_units,
    get_gas_price,
    get_native_price,
    get_network_status,
    validate_address,
)
from .price_feed import (
    get_derived_price,
    get_feed_description,
    get_historical_price,
    get_latest_price,
    get_multiple_prices,
    get_price_feed_data,
    resolve_feed,
)
from .vrf import (
    estimate_vrf_request_price,
    get_vrf_coordinator_config,
    get_vrf_request_status,
    get_vrf_subscription,
)

__all__ = [
    # Price feeds
    "get_latest_price",
    "get_price_feed_data",
    "get_historical_price",
    "get_feed_description",
    "get_multiple_prices",
    "get_derived_price",
    "resolve_feed",
    # Data feeds
    "get_sequencer_status",
    "get_proof_of_reserve",
    # LINK token
    "get_link_balance",
    "get_link_price",
    "transfer_link",
    # Network utilities
    "convert_units",
    "validate_address",
    "get_gas_price",
    "get_network_status",
    "get_native_price",
    # VRF
    "get_vrf_subscription",
    "get_vrf_coordinator_config",
    "estimate_vrf_request_price",
    "get_vrf_request_status",
    # Automation
    "get_upkeep_info",
    "get_upkeep_balance",
    # CCIP
    "list_ccip_chain_selectors",
    "get_ccip_lanes",
    "check_ccip_lane",
    "estimate_ccip_fee",
    "get_ccip_message_status",
    # Functions
    "get_functions_subscription",
    "get_functions_config",
    "estimate_functions_cost",
    "decode_functions_response",
]
