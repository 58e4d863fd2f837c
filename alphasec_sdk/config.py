"""
Configuration for the AlphaSec SDK.
"""
import copy
import importlib.resources
import json
import logging
import os
import urllib.parse
from enum import Enum
from typing import Any, Dict, Optional, Union

from .constants import DEFAULT_API_URL
from .exceptions import ConfigError
from .signer.local import LocalSigner
from .utils import is_valid_address

logger = logging.getLogger(__name__)


class Network(str, Enum):
    """Named AlphaSec deployments"""
    MAINNET = "mainnet"
    KAIROS = "kairos"

    @classmethod
    def from_str(cls, value: Union[str, "Network"]) -> "Network":
        if isinstance(value, Network):
            return value
        name = str(value).strip().lower()
        if name == "testnet":
            return cls.KAIROS
        try:
            return cls(name)
        except ValueError:
            raise ConfigError(
                f"Invalid network '{value}'. Must be 'mainnet' or 'kairos'"
            ) from None


class NetworkConfig:
    """Loader for the packaged per-network constants."""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load network definitions from networks.json.

        Returns:
            Mapping of network name to its parameters
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        resource = importlib.resources.files("alphasec_sdk").joinpath("networks.json")
        with resource.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: Union[str, Network]) -> Dict[str, Any]:
        """
        Get the parameters of a named network.

        Raises:
            ValueError: If the network is unknown
        """
        name = network.value if isinstance(network, Network) else network
        networks = cls.load_networks()
        if name not in networks:
            available = ", ".join(sorted(networks.keys()))
            raise ValueError(f"Network '{name}' not found. Available networks: {available}")
        return networks[name]

    @classmethod
    def get_l1_rpc_url(cls, network: Union[str, Network]) -> str:
        return cls.get_network(network)["l1Rpc"]

    @classmethod
    def get_l2_rpc_url(cls, network: Union[str, Network]) -> str:
        return cls.get_network(network)["l2Rpc"]


def derive_ws_url(api_url: str) -> str:
    """
    Derive the streaming endpoint from the REST base URL.

    http becomes ws, https becomes wss and ``/ws`` is appended unless the
    path already ends with it.

    Raises:
        ConfigError: If the URL scheme is not http or https
    """
    parsed = urllib.parse.urlparse(api_url)
    if parsed.scheme == "https":
        scheme = "wss"
    elif parsed.scheme == "http":
        scheme = "ws"
    else:
        raise ConfigError(f"Unsupported URL scheme: {parsed.scheme or '<none>'}")
    if not parsed.netloc:
        raise ConfigError(f"Invalid API URL: {api_url}")

    path = parsed.path.rstrip("/")
    if not path.endswith("/ws"):
        path = f"{path}/ws"
    return urllib.parse.urlunparse((scheme, parsed.netloc, path, "", parsed.query, ""))


class Config:
    """
    Immutable SDK configuration.

    Args:
        api_url: Base URL of the AlphaSec REST API
        network: "mainnet" or "kairos" ("testnet" is accepted as an alias)
        l1_address: L1 owner address, required when no L1 key is given
        l1_private_key: L1 owner private key (hex)
        l2_private_key: Session private key (hex)
        session_enabled: Sign trading commands with the session key
        chain_id: Override for the L2 chain id used in envelopes
        timeout: HTTP request timeout in seconds
        max_retries: Retries for idempotent HTTP requests

    Raises:
        ConfigError: On invalid URLs, addresses or keys, or when sessions
            are enabled without a session key
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        network: Union[str, Network] = Network.KAIROS,
        l1_address: Optional[str] = None,
        l1_private_key: Optional[str] = None,
        l2_private_key: Optional[str] = None,
        session_enabled: bool = False,
        chain_id: Optional[int] = None,
        timeout: int = 30,
        max_retries: int = 3,
    ):
        self.api_url = api_url.rstrip("/")
        self.ws_url = derive_ws_url(self.api_url)
        self.network = Network.from_str(network)
        self.chain_id = chain_id
        self.session_enabled = session_enabled
        self.timeout = timeout
        self.max_retries = max_retries

        self.l1_signer: Optional[LocalSigner] = (
            LocalSigner(l1_private_key) if l1_private_key else None
        )
        self.l2_signer: Optional[LocalSigner] = (
            LocalSigner(l2_private_key) if l2_private_key else None
        )

        if self.l1_signer is not None:
            derived = self.l1_signer.address
            if l1_address and l1_address.lower() != derived.lower():
                logger.warning(
                    f"Supplied L1 address {l1_address} does not match the L1 key; using {derived}"
                )
            self.l1_address = derived
        else:
            if not is_valid_address(l1_address):
                raise ConfigError(f"Invalid L1 address: {l1_address}")
            self.l1_address = l1_address

        if session_enabled and self.l2_signer is None:
            raise ConfigError("Session mode requires an L2 private key")

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a configuration from ALPHASEC_* environment variables"""
        chain_id = os.environ.get("ALPHASEC_CHAIN_ID")
        params: Dict[str, Any] = {
            "api_url": os.environ.get("ALPHASEC_API_URL", DEFAULT_API_URL),
            "network": os.environ.get("ALPHASEC_NETWORK", Network.KAIROS.value),
            "l1_address": os.environ.get("ALPHASEC_L1_ADDRESS"),
            "l1_private_key": os.environ.get("ALPHASEC_L1_PRIVATE_KEY"),
            "l2_private_key": os.environ.get("ALPHASEC_L2_PRIVATE_KEY"),
            "session_enabled": os.environ.get("ALPHASEC_SESSION_ENABLED", "").lower()
            in ("1", "true", "yes"),
            "chain_id": int(chain_id) if chain_id else None,
        }
        params.update(overrides)
        return cls(**params)

    def _replace(self, **changes: Any) -> "Config":
        clone = copy.copy(self)
        clone.__dict__.update(changes)
        return clone

    def with_timeout(self, timeout: int) -> "Config":
        return self._replace(timeout=timeout)

    def with_max_retries(self, max_retries: int) -> "Config":
        return self._replace(max_retries=max_retries)

    def with_chain_id(self, chain_id: int) -> "Config":
        return self._replace(chain_id=chain_id)

    @property
    def network_params(self) -> Dict[str, Any]:
        return NetworkConfig.get_network(self.network)

    @property
    def l1_chain_id(self) -> int:
        """Chain id of the L1 settlement chain, used for EIP-712 domains and deposits"""
        return self.network_params["l1ChainId"]

    @property
    def l2_chain_id(self) -> int:
        """Chain id used in L2 envelopes"""
        if self.chain_id is not None:
            return self.chain_id
        return self.network_params["chainId"]

    @property
    def l1_rpc_url(self) -> str:
        return self.network_params["l1Rpc"]

    @property
    def l2_rpc_url(self) -> str:
        return self.network_params["l2Rpc"]

    def get_wallet(self) -> LocalSigner:
        """
        Get the wallet that signs trading commands.

        Returns:
            The session wallet when sessions are enabled, else the L1 wallet

        Raises:
            ConfigError: If the required key is missing
        """
        if self.session_enabled:
            if self.l2_signer is None:
                raise ConfigError("Session mode requires an L2 private key")
            return self.l2_signer
        if self.l1_signer is None:
            raise ConfigError("L1 private key is required for signing")
        return self.l1_signer

    def __repr__(self) -> str:
        return (
            f"Config(api_url={self.api_url!r}, network={self.network.value!r}, "
            f"l1_address={self.l1_address!r}, session_enabled={self.session_enabled})"
        )
