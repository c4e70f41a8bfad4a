"""Unit tests for Functions actions."""

import pytest

from feedwatch.src.actions import (
    decode_functions_response,
    estimate_functions_cost,
    get_functions_config,
    get_functions_subscription,
)
from feedwatch.src.errors import DecodeError, FeedUnavailableError

ROUTER = "0x65Dcc24F8ff9e51F10DCc7Ed1e4e2A61e6E14bd6"
OWNER = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
NEW_OWNER = "0x000000000000000000000000000000000000dEaD"
CONSUMER = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class TestFunctionsSubscription:
    """Test subscription and router config reads."""

    def test_subscription(self, ledger) -> None:
        """A zero requested owner should mean no pending transfer."""
        ledger.set_read(ROUTER, "getSubscription", (15,), (2 * 10**18, OWNER, ZERO_ADDRESS, [CONSUMER]))
        result = get_functions_subscription(ledger, 15)
        assert result["balance"] == "2"
        assert result["owner"] == OWNER
        assert result["requestedOwner"] is None
        assert result["hasPendingOwnerTransfer"] is False
        assert result["consumerCount"] == 1
        assert result["donId"] == "fun-ethereum-mainnet-1"

    def test_pending_owner_transfer(self, ledger) -> None:
        """A non-zero requested owner should be reported."""
        ledger.set_read(ROUTER, "getSubscription", (15,), (0, OWNER, NEW_OWNER, []))
        result = get_functions_subscription(ledger, "15")
        assert result["requestedOwner"] == NEW_OWNER
        assert result["hasPendingOwnerTransfer"] is True

    def test_no_router(self, make_ledger) -> None:
        """Networks without a Functions router should raise FeedUnavailableError."""
        with pytest.raises(FeedUnavailableError, match="Chainlink Functions not available"):
            get_functions_subscription(make_ledger("optimism-mainnet"), 1)

    def test_config(self, ledger) -> None:
        """Config should render the selector as hex and list gas limits."""
        ledger.set_read(ROUTER, "getConfig", (), (100, 0, bytes.fromhex("0ca76175"), 5000, [300_000, 500_000]))
        result = get_functions_config(ledger)
        assert result["maxConsumersPerSubscription"] == 100
        assert result["handleOracleFulfillmentSelector"] == "0x0ca76175"
        assert result["maxCallbackGasLimits"] == [300_000, 500_000]


class TestFunctionsCost:
    """Test cost estimates."""

    def test_estimate(self, ledger) -> None:
        """Cost should add base overhead and a 20% premium."""
        result = estimate_functions_cost(ledger, 300_000)
        # 400000 gas * 25 gwei * 1.2
        assert result["estimatedCostWei"] == "12000000000000000"
        assert result["estimatedCostNative"] == "0.012"
        assert result["breakdown"]["totalGas"] == 400_000

    def test_rejects_non_positive(self, ledger) -> None:
        """A zero callback gas limit should raise ValueError."""
        with pytest.raises(ValueError):
            estimate_functions_cost(ledger, 0)


class TestDecodeResponse:
    """Test decoding of fulfillment payloads."""

    def test_string(self) -> None:
        """UTF-8 payloads should decode as text."""
        result = decode_functions_response("0x" + "hello".encode().hex())
        assert result["decodedValue"] == "hello"
        assert result["byteLength"] == 5

    def test_uint256(self) -> None:
        """Unsigned payloads should decode as decimal strings."""
        assert decode_functions_response("0x" + (3000).to_bytes(32, "big").hex(), "uint256")["decodedValue"] == "3000"

    def test_int256_negative(self) -> None:
        """Two's complement payloads should decode as negative numbers."""
        payload = "0x" + "ff" * 32
        assert decode_functions_response(payload, "int256")["decodedValue"] == "-1"

    def test_bytes32(self) -> None:
        """bytes32 should be padded and also offered as text."""
        result = decode_functions_response("0x" + b"ETH".hex(), "bytes32")
        assert result["decodedValue"] == "0x455448" + "0" * 58
        assert result["decodedString"] == "ETH"

    def test_json(self) -> None:
        """JSON payloads should be parsed."""
        payload = "0x" + b'{"price": 3000}'.hex()
        assert decode_functions_response(payload, "json")["decodedValue"] == {"price": 3000}

    def test_invalid(self) -> None:
        """Undecodable payloads should raise DecodeError; unknown types ValueError."""
        with pytest.raises(DecodeError):
            decode_functions_response("0xzz")
        with pytest.raises(DecodeError):
            decode_functions_response("0x" + b"not json".hex(), "json")
        with pytest.raises(DecodeError):
            decode_functions_response("0xff", "string")
        with pytest.raises(ValueError):
            decode_functions_response("0x00", "float")
