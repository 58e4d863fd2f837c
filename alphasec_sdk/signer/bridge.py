"""
L1 bridge transactions: deposits into and withdrawals out of the exchange.
"""
import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from eth_abi import encode as abi_encode
from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import Web3Exception

from ..constants import (
    ALPHASEC_GAS_LIMIT,
    DEPOSIT_L2_FEE_VALUE,
    DEPOSIT_L2_GAS_LIMIT,
    DEPOSIT_L2_GAS_PRICE,
    DEPOSIT_MAX_SUBMISSION_COST,
    ERC20_ABI,
    INBOX_ABI,
    L1_GAS_LIMIT,
    L1_GATEWAY_ROUTER_ABI,
    L2_GATEWAY_ROUTER_ABI,
    L2_SYSTEM_ABI,
    L2_GATEWAY_ROUTER_ADDRESS,
    L2_TOKEN_DECIMALS,
    NATIVE_TOKEN_ID,
    SYSTEM_CONTRACT_ADDRESS,
)
from ..exceptions import (
    AlphaSecError,
    EthereumError,
    InvalidParameterError,
    SignerError,
    TransactionError,
)
from ..utils import Number, require_address, to_base_units
from .signer import next_nonce

if TYPE_CHECKING:
    from ..config import Config


class BridgeBuilder:
    """
    Builder for L1 deposit and L2 withdraw transactions.

    Deposits are signed for and submitted to the L1 chain. Withdrawals are
    signed L2 transactions the caller submits through the exchange API.
    Both are signed with the L1 owner key.

    Args:
        config: SDK configuration; must carry an L1 private key
        l1_web3: Web3 instance for the L1 chain (defaults to the network RPC)
        l2_web3: Web3 instance for the L2 chain (defaults to the network RPC)
        approval_timeout: Seconds to wait for an ERC-20 approval to take effect
        poll_interval: Seconds between allowance checks
        logger: Optional logger instance
    """

    def __init__(
        self,
        config: "Config",
        l1_web3: Optional[Web3] = None,
        l2_web3: Optional[Web3] = None,
        approval_timeout: float = 120,
        poll_interval: float = 2,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.approval_timeout = approval_timeout
        self.poll_interval = poll_interval
        self._l1_w3 = l1_web3
        self._l2_w3 = l2_web3

    @property
    def l1_w3(self) -> Web3:
        if self._l1_w3 is None:
            self._l1_w3 = Web3(Web3.HTTPProvider(
                self.config.l1_rpc_url,
                request_kwargs={"timeout": self.config.timeout},
            ))
        return self._l1_w3

    @property
    def l2_w3(self) -> Web3:
        if self._l2_w3 is None:
            self._l2_w3 = Web3(Web3.HTTPProvider(
                self.config.l2_rpc_url,
                request_kwargs={"timeout": self.config.timeout},
            ))
        return self._l2_w3

    def _require_l1_signer(self):
        signer = self.config.l1_signer
        if signer is None:
            raise InvalidParameterError("L1 private key is required for bridge operations")
        return signer

    def _sign(self, tx: Dict[str, Any]) -> Any:
        signer = self._require_l1_signer()
        try:
            return signer.sign_transaction(tx)
        except AlphaSecError:
            raise
        except Exception as e:
            raise SignerError(f"Failed to sign bridge transaction: {e}") from e

    def _l1_tx_params(self, value: int = 0) -> Dict[str, Any]:
        owner = self.config.l1_address
        try:
            return {
                "from": owner,
                "value": value,
                "nonce": self.l1_w3.eth.get_transaction_count(owner, "pending"),
                "gas": L1_GAS_LIMIT,
                "gasPrice": self.l1_w3.eth.gas_price,
                "chainId": self.config.l1_chain_id,
            }
        except Web3Exception as e:
            raise EthereumError(f"Failed to query L1 account state: {e}") from e

    def build_deposit_transaction(
        self,
        token_id: str,
        amount: Number,
        token_l1_address: Optional[str] = None,
        token_l1_decimals: int = 18,
    ) -> str:
        """
        Build and sign an L1 deposit transaction.

        For ERC-20 tokens the gateway allowance is checked first; when it is
        insufficient an approval is sent and this call blocks until the
        approval is mined and the allowance is observed.

        Args:
            token_id: Exchange token id ("1" for native KAIA)
            amount: Amount in token units
            token_l1_address: L1 ERC-20 contract address (required for tokens)
            token_l1_decimals: L1 decimals of the token

        Returns:
            0x-prefixed hex of the signed raw L1 transaction

        Raises:
            InvalidParameterError: If the L1 key is missing
            InvalidAddressError: If the token address is malformed
            TransactionError: If the approval reverts or times out
            EthereumError: If an L1 RPC call fails
        """
        self._require_l1_signer()
        params = self.config.network_params
        value = to_base_units(amount, token_l1_decimals)

        try:
            if token_id == NATIVE_TOKEN_ID:
                inbox = self.l1_w3.eth.contract(
                    address=to_checksum_address(require_address(params["inbox"], "inbox address")),
                    abi=INBOX_ABI,
                )
                tx = inbox.functions.depositEth().build_transaction(self._l1_tx_params(value))
            else:
                token = to_checksum_address(require_address(token_l1_address, "token L1 address"))
                gateway = to_checksum_address(require_address(params["erc20Gateway"], "gateway address"))
                router_address = to_checksum_address(require_address(params["erc20Router"], "router address"))

                self._ensure_allowance(token, gateway, value)

                router = self.l1_w3.eth.contract(address=router_address, abi=L1_GATEWAY_ROUTER_ABI)
                data = abi_encode(["uint256", "bytes"], [DEPOSIT_MAX_SUBMISSION_COST, b""])
                tx = router.functions.outboundTransfer(
                    token,
                    self.config.l1_address,
                    value,
                    DEPOSIT_L2_GAS_LIMIT,
                    DEPOSIT_L2_GAS_PRICE,
                    data,
                ).build_transaction(self._l1_tx_params(DEPOSIT_L2_FEE_VALUE))
        except Web3Exception as e:
            raise EthereumError(f"Failed to build deposit transaction: {e}") from e

        signed = self._sign(tx)
        return Web3.to_hex(signed.raw_transaction)

    def _ensure_allowance(self, token: str, gateway: str, amount: int) -> None:
        owner = self.config.l1_address
        contract = self.l1_w3.eth.contract(address=token, abi=ERC20_ABI)

        allowance = contract.functions.allowance(owner, gateway).call()
        if allowance >= amount:
            return

        self.logger.info(f"Approving {amount} of {token} for gateway {gateway}")
        tx = contract.functions.approve(gateway, amount).build_transaction(self._l1_tx_params())
        signed = self._sign(tx)
        tx_hash = self.l1_w3.eth.send_raw_transaction(signed.raw_transaction)
        self._wait_for_success(tx_hash, "Approval")

        deadline = time.monotonic() + self.approval_timeout
        while True:
            allowance = contract.functions.allowance(owner, gateway).call()
            if allowance >= amount:
                return
            if time.monotonic() >= deadline:
                raise TransactionError(
                    f"Allowance {allowance} still below {amount} after {self.approval_timeout}s"
                )
            time.sleep(self.poll_interval)

    def _wait_for_success(self, tx_hash: Any, what: str) -> str:
        tx_hex = Web3.to_hex(tx_hash)
        try:
            receipt = self.l1_w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.approval_timeout
            )
        except Web3Exception as e:
            raise TransactionError(f"{what} {tx_hex} was not confirmed: {e}") from e
        if receipt["status"] != 1:
            raise TransactionError(f"{what} {tx_hex} reverted")
        self.logger.debug(f"{what} {tx_hex} confirmed in block {receipt.get('blockNumber')}")
        return tx_hex

    def deposit(
        self,
        token_id: str,
        amount: Number,
        token_l1_address: Optional[str] = None,
        token_l1_decimals: int = 18,
    ) -> str:
        """
        Build, submit and confirm an L1 deposit.

        Returns:
            Transaction hash of the confirmed deposit

        Raises:
            TransactionError: If the deposit reverts
        """
        raw_tx = self.build_deposit_transaction(
            token_id, amount, token_l1_address, token_l1_decimals
        )
        try:
            tx_hash = self.l1_w3.eth.send_raw_transaction(raw_tx)
        except Web3Exception as e:
            raise EthereumError(f"Failed to send deposit transaction: {e}") from e
        return self._wait_for_success(tx_hash, "Deposit")

    def build_withdraw_transaction(
        self,
        token_id: str,
        amount: Number,
        token_l1_address: Optional[str] = None,
        timestamp_ms: Optional[int] = None,
    ) -> str:
        """
        Build and sign an L2 withdrawal transaction.

        Native KAIA is withdrawn through the L2 system contract, ERC-20 tokens
        through the L2 gateway router. Amounts use 18 decimals on L2.

        Args:
            token_id: Exchange token id ("1" for native KAIA)
            amount: Amount in token units
            token_l1_address: L1 ERC-20 contract address (required for tokens)
            timestamp_ms: Nonce override; defaults to now_ms plus a counter

        Returns:
            0x-prefixed hex of the signed raw L2 transaction
        """
        self._require_l1_signer()
        owner = self.config.l1_address
        value = to_base_units(amount, L2_TOKEN_DECIMALS)

        if token_id == NATIVE_TOKEN_ID:
            contract = self.l2_w3.eth.contract(
                address=to_checksum_address(SYSTEM_CONTRACT_ADDRESS), abi=L2_SYSTEM_ABI
            )
            data = contract.encode_abi("withdrawEth", args=[owner])
            tx_value = value
        else:
            token = to_checksum_address(require_address(token_l1_address, "token L1 address"))
            contract = self.l2_w3.eth.contract(
                address=to_checksum_address(L2_GATEWAY_ROUTER_ADDRESS), abi=L2_GATEWAY_ROUTER_ABI
            )
            data = contract.encode_abi("outboundTransfer", args=[token, owner, value, b""])
            tx_value = 0

        tx = {
            "type": 2,
            "chainId": self.config.l2_chain_id,
            "nonce": next_nonce(timestamp_ms),
            "to": contract.address,
            "value": tx_value,
            "gas": ALPHASEC_GAS_LIMIT,
            "maxFeePerGas": 0,
            "maxPriorityFeePerGas": 0,
            "data": data,
            "accessList": [],
        }
        signed = self._sign(tx)
        return Web3.to_hex(signed.raw_transaction)
