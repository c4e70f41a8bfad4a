"""Static catalog of supported networks, preset feeds and service contracts.

All tables are read-only mappings keyed by network identifier
(``"ethereum-mainnet"``, ``"arbitrum-sepolia"``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class NetworkConfig:
    """Connection defaults and service contract addresses of one network.

    :ivar name: Human-readable network name.
    :ivar chain_id: EVM chain id.
    :ivar rpc_url: Default public RPC endpoint.
    :ivar explorer_url: Block explorer base URL.
    :ivar link_token: LINK token address.
    :ivar vrf_coordinator: VRF coordinator address, if deployed.
    :ivar automation_registry: Automation registry address, if deployed.
    :ivar ccip_router: CCIP router address, if deployed.
    :ivar functions_router: Functions router address, if deployed.
    :ivar is_testnet: True for test networks.
    """

    name: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    link_token: str
    vrf_coordinator: str | None = None
    automation_registry: str | None = None
    ccip_router: str | None = None
    functions_router: str | None = None
    is_testnet: bool = False


@dataclass(frozen=True)
class PriceFeedInfo:
    """A preset aggregator feed.

    :ivar address: Aggregator proxy address.
    :ivar pair: Feed description as published on-chain.
    :ivar decimals: Answer decimals.
    :ivar category: One of crypto, forex, commodity, other.
    """

    address: str
    pair: str
    decimals: int
    category: str = "crypto"


NETWORKS: Mapping[str, NetworkConfig] = MappingProxyType({
    "ethereum-mainnet": NetworkConfig(
        name="Ethereum Mainnet",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        explorer_url="https://etherscan.io",
        link_token="0x514910771AF9Ca656af840dff83E8264EcF986CA",
        vrf_coordinator="0x271682DEB8C4E0901D1a1550aD2e64D568E69909",
        automation_registry="0x6593c7De001fC8542bB1703532EE1E5aA0D458fD",
        ccip_router="0x80226fc0Ee2b096224EeAc085Bb9a8cba1146f7D",
        functions_router="0x65Dcc24F8ff9e51F10DCc7Ed1e4e2A61e6E14bd6",
    ),
    "ethereum-sepolia": NetworkConfig(
        name="Ethereum Sepolia",
        chain_id=11155111,
        rpc_url="https://rpc.sepolia.org",
        explorer_url="https://sepolia.etherscan.io",
        link_token="0x779877A7B0D9E8603169DdbD7836e478b4624789",
        vrf_coordinator="0x8103B0A8A00be2DDC778e6e7eaa21791Cd364625",
        automation_registry="0x86EFBD0b6736Bed994962f9797049422A3A8E8Ad",
        ccip_router="0x0BF3dE8c5D3e8A2B34D2BEeB17ABfCeBaf363A59",
        functions_router="0xb83E47C2bC239B3bf370bc41e1459A34b41238D0",
        is_testnet=True,
    ),
    "polygon-mainnet": NetworkConfig(
        name="Polygon Mainnet",
        chain_id=137,
        rpc_url="https://polygon-rpc.com",
        explorer_url="https://polygonscan.com",
        link_token="0xb0897686c545045aFc77CF20eC7A532E3120E0F1",
        vrf_coordinator="0xAE975071Be8F8eE67addBC1A82488F1C24858067",
        automation_registry="0x08a8eea76D2395807Ce7D1FC942382515469cCA1",
        ccip_router="0x849c5ED5a80F5B408Dd4969b78c2C8fdf0565Bfe",
        functions_router="0xdc2AAF042Aeff2E68B3e8E33F19e4B9fA7C73F10",
    ),
    "arbitrum-mainnet": NetworkConfig(
        name="Arbitrum One",
        chain_id=42161,
        rpc_url="https://arb1.arbitrum.io/rpc",
        explorer_url="https://arbiscan.io",
        link_token="0xf97f4df75117a78c1A5a0DBb814Af92458539FB4",
        vrf_coordinator="0x41034678D6C633D8a95c75e1138A360a28bA15d1",
        automation_registry="0x75c0530885F385721fddA23C539AF3701d6183D4",
        ccip_router="0x141fa059441E0ca23ce184B6A78bafD2A517DdE8",
        functions_router="0x97083E831F8F0638855e2A515c90EdCF158DF238",
    ),
    "arbitrum-sepolia": NetworkConfig(
        name="Arbitrum Sepolia",
        chain_id=421614,
        rpc_url="https://sepolia-rollup.arbitrum.io/rpc",
        explorer_url="https://sepolia.arbiscan.io",
        link_token="0xb1D4538B4571d411F07960EF2838Ce337FE1E80E",
        vrf_coordinator="0x50d47e4142598E3411aA864e08a44284e471AC6f",
        ccip_router="0x2a9C5afB0d0e4BAb2BCdaE109EC4b0c4Be15a165",
        functions_router="0x234a5fb5Bd614a7AA2FfAB244D603BFA0E2BB6b9",
        is_testnet=True,
    ),
    "optimism-mainnet": NetworkConfig(
        name="Optimism Mainnet",
        chain_id=10,
        rpc_url="https://mainnet.optimism.io",
        explorer_url="https://optimistic.etherscan.io",
        link_token="0x350a791Bfc2C21F9Ed5d10980Dad2e2638ffa7f6",
        automation_registry="0x75c0530885F385721fddA23C539AF3701d6183D4",
        ccip_router="0x3206695CaE29952f4b0c22a169725a865bc8Ce0f",
    ),
    "avalanche-mainnet": NetworkConfig(
        name="Avalanche C-Chain",
        chain_id=43114,
        rpc_url="https://api.avax.network/ext/bc/C/rpc",
        explorer_url="https://snowtrace.io",
        link_token="0x5947BB275c521040051D82396192181b413227A3",
        vrf_coordinator="0xd5D517aBE5cF79B7e95eC98dB0f0277788aFF634",
        automation_registry="0x7f00a3Cd4590009C349192510D51F8e6312E08CB",
        ccip_router="0xF4c7E640EdA248ef95972845a62bdC74237805dB",
        functions_router="0x9f82a6A0758517FD0AfA463820F586999AF314a0",
    ),
    "bnb-mainnet": NetworkConfig(
        name="BNB Chain Mainnet",
        chain_id=56,
        rpc_url="https://bsc-dataseed.binance.org",
        explorer_url="https://bscscan.com",
        link_token="0x404460C6A5EdE2D891e8297795264fDe62ADBB75",
        vrf_coordinator="0xc587d9053cd1118f25F645F9E08BB98c9712A4EE",
        automation_registry="0x7B3EC232b08BD7b4b3305BE0C044D907B2DF960B",
        ccip_router="0x34B03Cb9086d7D758AC55af71584F81A598759FE",
    ),
    "base-mainnet": NetworkConfig(
        name="Base Mainnet",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        explorer_url="https://basescan.org",
        link_token="0x88Fb150BDc53A65fe94Dea0c9BA0a6dAf8C6e196",
        automation_registry="0xE226D5aCae908252CcA3F6CEFa577527650a9e1e",
        ccip_router="0x881e3A65B4d4a04dD529061dd0071cf975F58bCD",
        functions_router="0xf9B8fc078197181C841c296C876945aaa425B278",
    ),
    "base-sepolia": NetworkConfig(
        name="Base Sepolia",
        chain_id=84532,
        rpc_url="https://sepolia.base.org",
        explorer_url="https://sepolia.basescan.org",
        link_token="0xE4aB69C077896252FAFBD49EFD26B5D171A32410",
        vrf_coordinator="0xD21ae5C71C5D1E9F1E5Edc6e9D8CfF4B8B8E5Bb1",
        ccip_router="0xD3b06cEbF099CE7DA4AcCf578aaebFDBd6e88a93",
        functions_router="0xf9B8fc078197181C841c296C876945aaa425B278",
        is_testnet=True,
    ),
})


def _feeds(entries: dict[str, tuple[str, int, str]]) -> Mapping[str, PriceFeedInfo]:
    return MappingProxyType({
        pair: PriceFeedInfo(address=address, pair=pair.replace("/", " / "), decimals=decimals, category=category)
        for pair, (address, decimals, category) in entries.items()
    })


PRICE_FEEDS: Mapping[str, Mapping[str, PriceFeedInfo]] = MappingProxyType({
    "ethereum-mainnet": _feeds({
        "ETH/USD": ("0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419", 8, "crypto"),
        "BTC/USD": ("0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c", 8, "crypto"),
        "LINK/USD": ("0x2c1d072e956AFFC0D435Cb7AC38EF18d24d9127c", 8, "crypto"),
        "USDC/USD": ("0x8fFfFfd4AfB6115b954Bd326cbe7B4BA576818f6", 8, "crypto"),
        "MATIC/USD": ("0x7bAC85A8a13A4BcD8abb3eB7d6b4d632c5a57676", 8, "crypto"),
        "EUR/USD": ("0xb49f677943BC038e9857d61E7d053CaA2C1734C1", 8, "forex"),
        "XAU/USD": ("0x214eD9Da11D2fbe465a6fc601a91E62EbEc1a0D6", 8, "commodity"),
    }),
    "ethereum-sepolia": _feeds({
        "ETH/USD": ("0x694AA1769357215DE4FAC081bf1f309aDC325306", 8, "crypto"),
        "BTC/USD": ("0x1b44F3514812d835EB1BDB0acB33d3fA3351Ee43", 8, "crypto"),
        "LINK/USD": ("0xc59E3633BAAC79493d908e63626716e204A45EdF", 8, "crypto"),
    }),
    "polygon-mainnet": _feeds({
        "MATIC/USD": ("0xAB594600376Ec9fD91F8e885dADF0CE036862dE0", 8, "crypto"),
        "ETH/USD": ("0xF9680D99D6C9589e2a93a78A04A279e509205945", 8, "crypto"),
        "BTC/USD": ("0xc907E116054Ad103354f2D350FD2514433D57F6f", 8, "crypto"),
        "LINK/USD": ("0xd9FFdb71EbE7496cC440152d43986Aae0AB76665", 8, "crypto"),
    }),
    "arbitrum-mainnet": _feeds({
        "ETH/USD": ("0x639Fe6ab55C921f74e7fac1ee960C0B6293ba612", 8, "crypto"),
        "BTC/USD": ("0x6ce185860a4963106506C203335A583Af92a5538", 8, "crypto"),
        "LINK/USD": ("0x86E53CF1B870786351Da77A57575e79CB55812CB", 8, "crypto"),
        "USDC/USD": ("0x50834F3163758fcC1Df9973b6e91f0F0F0434aD3", 8, "crypto"),
    }),
    "arbitrum-sepolia": _feeds({
        "ETH/USD": ("0xd30e2101a97dcbAeBCBC04F14C3f624E67A35165", 8, "crypto"),
        "BTC/USD": ("0x56a43EB56Da12C0dc1D972ACb089c06a5dEF8e69", 8, "crypto"),
        "LINK/USD": ("0x0FB99723Aee6f420beAD13e6bBB79b7E6F034298", 8, "crypto"),
    }),
    "optimism-mainnet": _feeds({
        "ETH/USD": ("0x13e3Ee699D1909E989722E753853AE30b17e08c5", 8, "crypto"),
        "BTC/USD": ("0xD702DD976Fb76Fffc2D3963D037dfDae5b04E593", 8, "crypto"),
        "LINK/USD": ("0xCc232dcFAAE6354cE191Bd574108c1aD03f86ceE", 8, "crypto"),
        "USDC/USD": ("0x16a9FA2FDa030272Ce99B29CF780dFA30361E0f3", 8, "crypto"),
    }),
    "avalanche-mainnet": _feeds({
        "ETH/USD": ("0x976B3D034E162d8bD72D6b9C989d545b839003b0", 8, "crypto"),
        "BTC/USD": ("0x2779D32d5166BAaa2B2b658333bA7e6Ec0C65743", 8, "crypto"),
        "LINK/USD": ("0x49ccd9ca821EfEab2b98c60dC60F518E765EDe9a", 8, "crypto"),
    }),
    "bnb-mainnet": _feeds({
        "ETH/USD": ("0x9ef1B8c0E4F7dc8bF5719Ea496883DC6401d5b2e", 8, "crypto"),
        "BTC/USD": ("0x264990fbd0A4796A3E3d8E37C4d5F87a3aCa5Ebf", 8, "crypto"),
        "LINK/USD": ("0xca236E327F629f9Fc2c30A4E95775EbF0B89fac8", 8, "crypto"),
    }),
    "base-mainnet": _feeds({
        "ETH/USD": ("0x71041dddad3595F9CEd3DcCFBe3D1F4b0a16Bb70", 8, "crypto"),
        "BTC/USD": ("0x64c911996D3c6aC71E9b8932F89C3fC7Bf4c8B5e", 8, "crypto"),
        "LINK/USD": ("0x17CAb8FE31E32f08326e5E27412894e49B0f9D65", 8, "crypto"),
    }),
    "base-sepolia": _feeds({
        "ETH/USD": ("0x4aDC67696bA383F43DD60A9e78F2C97Fbbfc7cb1", 8, "crypto"),
        "BTC/USD": ("0x0FB99723Aee6f420beAD13e6bBB79b7E6F034298", 8, "crypto"),
        "LINK/USD": ("0xb113F5A928BCfF189C998ab20d753a47F9dE5A61", 8, "crypto"),
    }),
})

# L2 sequencer uptime feeds (answer 0 = up, 1 = down).
SEQUENCER_FEEDS: Mapping[str, str] = MappingProxyType({
    "arbitrum-mainnet": "0xFdB631F5EE196F0ed6FAa767959853A9F217697D",
    "optimism-mainnet": "0x371EAD81c9102C9BF4874A9075FFFf170F2Ee389",
    "base-mainnet": "0xBCF85224fc0756B9Fa45aA7892530B47e10b6433",
    "metis-mainnet": "0x58218ea7422255EBE94e56b504035a784b7AA7A8",
})

# Proof of Reserve feeds: asset -> (address, label, decimals).
POR_FEEDS: Mapping[str, Mapping[str, tuple[str, str, int]]] = MappingProxyType({
    "ethereum-mainnet": MappingProxyType({
        "WBTC": ("0xa81FE04086865e63E12dD3776978E49DEEa2ea4e", "WBTC Reserve", 8),
        "TUSD": ("0x478f4c42b877c697C4b19E396865D4D533EcB6ea", "TUSD Reserve", 18),
        "USDC": ("0x2c78EFd57d907D8C16A1d17F3C9Bc6fE9DE86E6a", "USDC Reserve", 18),
    }),
})


@dataclass(frozen=True)
class ChainSelector:
    """CCIP identity of a chain.

    :ivar selector: 64-bit CCIP chain selector.
    :ivar name: Human-readable chain name.
    :ivar is_testnet: True for test networks.
    """

    selector: int
    name: str
    is_testnet: bool = False


# CCIP also reaches chains this catalog has no RPC defaults for.
CCIP_CHAIN_SELECTORS: Mapping[str, ChainSelector] = MappingProxyType({
    "ethereum-mainnet": ChainSelector(5009297550715157269, "Ethereum Mainnet"),
    "ethereum-sepolia": ChainSelector(16015286601757825753, "Ethereum Sepolia", True),
    "polygon-mainnet": ChainSelector(4051577828743386545, "Polygon Mainnet"),
    "polygon-amoy": ChainSelector(16281711391670634445, "Polygon Amoy", True),
    "arbitrum-mainnet": ChainSelector(4949039107694359620, "Arbitrum One"),
    "arbitrum-sepolia": ChainSelector(3478487238524512106, "Arbitrum Sepolia", True),
    "optimism-mainnet": ChainSelector(3734403246176062136, "Optimism Mainnet"),
    "optimism-sepolia": ChainSelector(5224473277236331295, "Optimism Sepolia", True),
    "avalanche-mainnet": ChainSelector(6433500567565415381, "Avalanche C-Chain"),
    "avalanche-fuji": ChainSelector(14767482510784806043, "Avalanche Fuji", True),
    "bnb-mainnet": ChainSelector(11344663589394136015, "BNB Chain Mainnet"),
    "bnb-testnet": ChainSelector(13264668187771770619, "BNB Chain Testnet", True),
    "base-mainnet": ChainSelector(15971525489660198786, "Base Mainnet"),
    "base-sepolia": ChainSelector(10344971235874465080, "Base Sepolia", True),
})

# Published CCIP lanes: source network -> destination networks.
CCIP_LANES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "ethereum-mainnet": (
        "polygon-mainnet", "arbitrum-mainnet", "optimism-mainnet",
        "avalanche-mainnet", "bnb-mainnet", "base-mainnet",
    ),
    "ethereum-sepolia": (
        "polygon-amoy", "arbitrum-sepolia", "optimism-sepolia",
        "avalanche-fuji", "bnb-testnet", "base-sepolia",
    ),
    "polygon-mainnet": ("ethereum-mainnet", "arbitrum-mainnet", "avalanche-mainnet"),
    "arbitrum-mainnet": ("ethereum-mainnet", "polygon-mainnet", "optimism-mainnet", "base-mainnet"),
    "optimism-mainnet": ("ethereum-mainnet", "arbitrum-mainnet", "base-mainnet"),
    "avalanche-mainnet": ("ethereum-mainnet", "polygon-mainnet"),
    "bnb-mainnet": ("ethereum-mainnet",),
    "base-mainnet": ("ethereum-mainnet", "arbitrum-mainnet", "optimism-mainnet"),
})

# VRF v2 key hashes: network -> ((key hash, gas lane), ...).
VRF_KEY_HASHES: Mapping[str, tuple[tuple[str, str], ...]] = MappingProxyType({
    "ethereum-mainnet": (
        ("0x8af398995b04c28e9951adb9721ef74c74f93e6a478f39e7e0777be13527e7ef", "200 gwei"),
        ("0xff8dedfbfa60af186cf3c830acbc32c05aae823045ae5ea7da1e45fbfaba4f92", "500 gwei"),
        ("0x9fe0eebf5e446e3c998ec9bb19951541aee00bb90ea201ae456421a2ded86805", "1000 gwei"),
    ),
    "ethereum-sepolia": (
        ("0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c", "150 gwei"),
    ),
    "polygon-mainnet": (
        ("0xcc294a196eeeb44da2888d17c0625cc88d70d9760a69d58d853ba6581a9ab0cd", "200 gwei"),
        ("0xd729dc84e21ae57ffb6be0053bf2b0668aa2aaf300a2a7b2ddf7dc0bb6e875a8", "500 gwei"),
        ("0x6e099d640cde6de9d40ac749b4b594126b0169747122711109c9985d47751f93", "1000 gwei"),
    ),
    "arbitrum-mainnet": (
        ("0x72d2b016bb5b62912afea355ebf33b91319f828738b111b723b78696b9847b63", "2 gwei"),
        ("0x68d24f9a037a649944f1460893fbc57b987b3736c1ca749726a8ddc4f7e5b320", "30 gwei"),
    ),
})


def get_network(network_name: str) -> NetworkConfig | None:
    """Look up a network by identifier.

    :param network_name: Network identifier, e.g. ``"ethereum-mainnet"``.
    :returns: NetworkConfig, or None for unknown/custom networks.
    """
    return NETWORKS.get(network_name)


def get_price_feed(network_name: str, pair: str) -> PriceFeedInfo | None:
    """Look up a preset feed, e.g. ``get_price_feed("ethereum-mainnet", "ETH/USD")``.

    :param network_name: Network identifier.
    :param pair: Pair key such as ``"ETH/USD"`` (case-insensitive).
    :returns: PriceFeedInfo, or None if the network has no such preset.
    """
    return PRICE_FEEDS.get(network_name, {}).get(pair.upper())


def native_pair(network_name: str) -> tuple[str, str]:
    """Return the (symbol, pair) of the network's native token price feed."""
    if "polygon" in network_name:
        return "MATIC", "MATIC/USD"
    if "avalanche" in network_name:
        return "AVAX", "AVAX/USD"
    if "bnb" in network_name:
        return "BNB", "BNB/USD"
    return "ETH", "ETH/USD"


def functions_don_id(network_name: str) -> str | None:
    """Functions DON id of a network (``fun-<network>-1``), or None without a router."""
    network = get_network(network_name)
    if network is None or not network.functions_router:
        return None
    return f"fun-{network_name}-1"
