"""
Static token registry.

Maps a token identifier (symbol or contract address) to canonical metadata.
Read-only; the burn pipeline only tracks tokens flagged ``burn_tracked``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.recovery.errors import ChainMismatchError, UnknownTokenError

SUPPORTED_CHAINS = ("bsc", "sol", "rwa")

_EVM_ADDRESS = re.compile(r"^0x[a-fA-F0-9]{40}$")
_SOLANA_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


@dataclass(frozen=True)
class TokenMetadata:
    address: str
    symbol: str
    name: str
    chain: str
    burn_tracked: bool = False
    decimals: Optional[int] = None
    registered: bool = True

    @property
    def address_lower(self) -> str:
        return self.address.lower()

    @property
    def member_key(self) -> str:
        """Identity used by the active-token set."""
        return f"{self.chain}:{self.address_lower}"


TOKEN_REGISTRY: List[TokenMetadata] = [
    TokenMetadata("0x885c99a787BE6b41cbf964174C771A9f7ec48e04", "pht", "Phoenix Token", "bsc", burn_tracked=True),
    TokenMetadata("0x6Ec90334d89dBdc89E08A133271be3d104128Edb", "wkc", "WikiCat Coin", "bsc", burn_tracked=True),
    TokenMetadata("0x57bfe2af99aeb7a3de3bc0c42c22353742bfd20d", "war", "Water Rabbit Token", "bsc", burn_tracked=True),
    TokenMetadata("0xb1957BDbA889686EbdE631DF970ecE6A7571A1B6", "dtg", "Defi Tiger Token", "bsc", burn_tracked=True),
    TokenMetadata("0xd086B849a71867731D74D6bB5Df4f640de900171", "yukan", "Yukan Token", "bsc", burn_tracked=True),
    TokenMetadata("0x1ee8a2f28586e542af677eb15fd00430f98d8fd8", "btcdragon", "BTCDragon Token", "bsc", burn_tracked=True),
    TokenMetadata("0xE53D384Cf33294C1882227ae4f90D64cF2a5dB70", "ocicat", "Ocicat Token", "bsc", burn_tracked=True),
    TokenMetadata("0x551877C1A3378c3A4b697bE7f5f7111E88Ab4Af3", "nene", "Nene Token", "bsc", burn_tracked=True),
    TokenMetadata("0xDA1060158F7D593667cCE0a15DB346BB3FfB3596", "twc", "TIWICAT", "bsc", burn_tracked=True),
    TokenMetadata("0x06Dc293c250e2fB2416A4276d291803fc74fb9B5", "tkc", "The Kingdom Coin", "bsc", burn_tracked=True),
    TokenMetadata("0x48a510A3394C2A07506d10910EBEFf3E25b7a3f1", "durt", "Dutch Rabbit Token", "bsc", burn_tracked=True),
    TokenMetadata("0xf00cD9366A13e725AB6764EE6FC8Bd21dA22786e", "twd", "The Word Token", "bsc", burn_tracked=True),
    TokenMetadata("0xbD7909318b9Ca4ff140B840F69bB310a785d1095", "gtan", "Giant Token", "bsc", burn_tracked=True),
    TokenMetadata("0xCbEaaD74dcB3a4227D0E6e67302402E06c119271", "zedek", "Zedek Token", "bsc", burn_tracked=True),
    TokenMetadata("0xD000815DB567372C3C3d7070bEF9fB7a9532F9e8", "bengcat", "Bengal Cat Token", "bsc", burn_tracked=True),
    TokenMetadata("0x47a9B109Cfb8f89D16e8B34036150eE112572435", "bcat", "BilliCat Token", "bsc", burn_tracked=True),
    TokenMetadata("0x9F1f27179fB25F11e1F8113Be830cfF5926C4605", "nct", "New Cat Token", "bsc", burn_tracked=True),
    TokenMetadata("0xb6623B503d269f415B9B5c60CDDa3Aa4fE34Fd22", "kitsune", "Kitsune Token", "bsc", burn_tracked=True),
    TokenMetadata("0xe252FCb1Aa2E0876E9B5f3eD1e15B9b4d11A0b00", "crystalstones", "Crystal Stones", "bsc", burn_tracked=True),
    TokenMetadata("0x4b87F578d6FaBf381f43bd2197fBB2A877da6ef8", "bft", "Big Five Token", "bsc", burn_tracked=True),
    TokenMetadata("0x72928a49c4E88F382b0b6fF3E561F56Dd75485F9", "cross", "Cross Token", "bsc", burn_tracked=True),
    TokenMetadata("0x56083560594E314b5cDd1680eC6a493bb851BBd8", "thc", "Transhuman Coin", "bsc", burn_tracked=True),
    TokenMetadata("0xfB69e2d3d673A8DB9Fa74ffc036A8Cf641255769", "bbft", "Baby BFT", "bsc", burn_tracked=True),
    TokenMetadata("0x51363f073b1e4920fda7aa9e9d84ba97ede1560e", "bob", "Build on BNB", "bsc", burn_tracked=False),
    TokenMetadata("0xAfF713b62e642b25898e24d5Be6561f863582144", "surv", "Survarium", "bsc", burn_tracked=False),
    TokenMetadata("0xCAAE2A2F939F51d97CdFa9A86e79e3F085b799f3", "tut", "Tutorial Token", "bsc", burn_tracked=False),
    TokenMetadata("0x14a8d0AC8Fc456899F2DD33C3f4E32403A78126c", "puffcat", "PuffCat Token", "bsc", burn_tracked=False),
    TokenMetadata("0xeb2B7d5691878627eff20492cA7c9a71228d931D", "crepe", "CREPE", "bsc", burn_tracked=False),
    TokenMetadata("0xdc3d92dd5a468edb7a7772452700cc93bb1826ad", "popielno", "POPIELNO", "bsc", burn_tracked=False),
    TokenMetadata("0x6C0D4adAc8fb85CC336C669C08b44f2e1d492575", "spray", "SPRAY LOTTERY TOKEN", "bsc", burn_tracked=False),
    TokenMetadata("0x170f044f9c7a41ff83caccad6ccca1b941d75af7", "mbc", "Mamba Token", "bsc", burn_tracked=False),
    TokenMetadata("0x6844b2e9afb002d188a072a3ef0fbb068650f214", "mars", "Matara Token", "bsc", burn_tracked=False),
    TokenMetadata("0x8cDC41236C567511f84C12Da10805cF50Dcdc27b", "sdc", "SIDE CHICK", "bsc", burn_tracked=False),
    TokenMetadata("0x41f52a42091a6b2146561bf05b722ad1d0e46f8b", "kind", "KIND CAT TOKEN", "bsc", burn_tracked=False),
    TokenMetadata("0x456B1049bA12f906326891486B2BA93e46Ae0369", "shibc", "AIShibCeo", "bsc", burn_tracked=False),
    TokenMetadata("0xFeD56F9Cd29F44e7C61c396DAc95cb3ed33d3546", "pcat", "Phenomenal Cat", "bsc", burn_tracked=False),
    TokenMetadata("0x2056d14A4116A7165cfeb7D79dB760a06b57DBCa", "egw", "Eagles Wings", "bsc", burn_tracked=False),
    TokenMetadata("0xCa7930478492CDe4Be997FA898Cd1a6AfB8F41A1", "1000pdf", "1000PDF", "bsc", burn_tracked=False),
    TokenMetadata("0xe9E3CDB871D315fEE80aF4c9FcD4886782694856", "aidove", "AiDove", "bsc", burn_tracked=False),
    TokenMetadata("0x360f2cf415d9be6e82a7252681ac116fb63d2fa2", "hmt", "HawkMoon Token", "bsc", burn_tracked=False),
    TokenMetadata("0x14A2db256Ef18c4f7165d5E48f65a528b4155100", "rbcat", "Russian Blue Cat", "bsc", burn_tracked=False),
    TokenMetadata("0x32Eb603F30ba75052f608CFcbAC45e39B5eF9beC", "bbcat", "Baby BilliCat", "bsc", burn_tracked=False),
    TokenMetadata("0x8489c022a10a8d2a65eb5aF2b0E4aE0191e7916D", "cct", "CatCake Token", "bsc", burn_tracked=False),
    TokenMetadata("0x38Aec84f305564cB2625430A294382Cf33e3c317", "talent", "Talent Token", "bsc", burn_tracked=False),
    TokenMetadata("0x71fd83d49fAaD4612E9d35876A75a97a5aDd4Bc2", "pcat", "Persian Cat Token", "bsc", burn_tracked=False),
    TokenMetadata("0xF8418D9144172d43d12938caB74AFa695984062A", "bp", "Baby Priceless", "bsc", burn_tracked=False),
    TokenMetadata("0x73cD10B66c4EBC6eE77ADFcc4310C03D79a74444", "jawgular", "JAWGULAR", "bsc", burn_tracked=False),
    TokenMetadata("0x39B4cBC1CE609D736E9aC3BaDd98E95c890731F3", "dst", "DayStar Token", "bsc", burn_tracked=False),
    TokenMetadata("0x5f3170D7A37D70FFE92a3e573ec67400b795B854", "peperice", "Pepe Rice", "bsc", burn_tracked=False),
    TokenMetadata("0xfd8eab4F5cf3572Ae62445CAD634226DbaA37F69", "godinu", "GOD INU", "bsc", burn_tracked=False),
    TokenMetadata("0x034437C7037317eaAbA782f2aD5B0A54cFcCf726", "zoe", "ZOE Token", "bsc", burn_tracked=False),
    TokenMetadata("0x90206Ad9b7d23c672cd75A633CA96b5D9e9AE8Ed", "lai", "LeadAI Token", "bsc", burn_tracked=False),
    TokenMetadata("0x45c0f77541d195a6dea20a681e6c02a94ca04dd0", "babydew", "BABY DEW", "bsc", burn_tracked=False),
    TokenMetadata("0x4ff377aad0c67541aa12ece8b12d1217f3c94444", "sat", "SATERIA", "bsc", burn_tracked=False),
    TokenMetadata("0x218ce180c6b21a355a55cdbb5b3b3bf7aad5c8a5", "orb", "ORBITAL", "bsc", burn_tracked=False),
    TokenMetadata("0x47A1EB0b825b73e6A14807BEaECAFef199d5477c", "CaptainBNB", "Captain BNB", "bsc", burn_tracked=False),
    TokenMetadata("0xDc11726C4efa126CFe9614408CD310B22fe74444", "anndy", "首席模因官", "bsc", burn_tracked=False),
]


def is_valid_contract_address(address: str, chain: str) -> bool:
    chain = chain.lower()
    if chain in ("bsc", "rwa"):
        return bool(_EVM_ADDRESS.match(address))
    if chain == "sol":
        return bool(_SOLANA_ADDRESS.match(address))
    return False


def get_token_by_address(address: str) -> Optional[TokenMetadata]:
    return _BY_ADDRESS.get(address.lower())


def get_token_by_symbol(symbol: str, chain: Optional[str] = None) -> Optional[TokenMetadata]:
    """Look up by symbol; with duplicates, BSC wins, then registry order."""
    target = symbol.lower()
    matches = [
        token for token in TOKEN_REGISTRY
        if token.symbol.lower() == target and (chain is None or token.chain == chain.lower())
    ]
    if not matches:
        return None
    for token in matches:
        if token.chain == "bsc":
            return token
    return matches[0]


def get_tokens_by_chain(chain: str) -> List[TokenMetadata]:
    return [token for token in TOKEN_REGISTRY if token.chain == chain.lower()]


def get_burn_tracked_tokens() -> List[TokenMetadata]:
    return [token for token in TOKEN_REGISTRY if token.burn_tracked]


def resolve_token(identifier: str, chain: Optional[str] = None) -> TokenMetadata:
    """
    Resolve a symbol or contract address to registry metadata.

    Raises:
        UnknownTokenError: identifier is empty or not registered
        ChainMismatchError: token is registered on a different chain
    """
    ident = (identifier or "").strip()
    if not ident:
        raise UnknownTokenError(identifier or "")

    token = get_token_by_address(ident) or get_token_by_symbol(ident)
    if token is None:
        raise UnknownTokenError(ident)

    if chain and token.chain != chain.lower():
        # A symbol may exist on several chains; prefer the requested one
        alternative = get_token_by_symbol(ident, chain)
        if alternative is not None:
            return alternative
        raise ChainMismatchError(ident, chain.lower(), token.chain)
    return token


def resolve_member(chain: str, address: str) -> Optional[TokenMetadata]:
    """
    Resolve an active-token member.

    Unregistered but well-formed addresses on a supported chain come back as
    ad-hoc metadata (market data only, never burn-tracked).
    """
    token = get_token_by_address(address)
    if token is not None and token.chain == chain.lower():
        return token
    if chain.lower() in SUPPORTED_CHAINS and is_valid_contract_address(address, chain):
        return TokenMetadata(
            address=address,
            symbol=address.lower()[:10],
            name="Unregistered token",
            chain=chain.lower(),
            registered=False,
        )
    return None


_BY_ADDRESS: Dict[str, TokenMetadata] = {}
for _token in TOKEN_REGISTRY:
    _BY_ADDRESS.setdefault(_token.address.lower(), _token)
