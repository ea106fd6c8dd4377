"""Web3 client for the ticket NFT contract."""
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from web3 import Web3
from web3.exceptions import TimeExhausted

import config
from errors import ExternalServiceError

logger = logging.getLogger(__name__)

# Subset of the ticket contract used by the minter
TICKET_NFT_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "batchMint",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "tokenIds", "type": "uint256[]"},
            {"name": "uris", "type": "string[]"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "mint",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
            {"name": "uri", "type": "string"},
        ],
        "outputs": [],
    },
]


class TicketContractClient:
    """Signs and sends mint transactions with the server wallet."""

    def __init__(
        self,
        rpc_url: Optional[str] = config.ETHEREUM_RPC_URL,
        private_key: Optional[str] = config.MINTER_PRIVATE_KEY,
        chain_id: int = config.CHAIN_ID,
        gas_limit: int = config.MINT_GAS_LIMIT,
        w3: Optional[Web3] = None,
    ):
        if w3 is None:
            if not rpc_url:
                raise ValueError("RPC URL not configured (ETHEREUM_RPC_URL)")
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 30}))
        self.w3 = w3
        self.chain_id = chain_id
        self.gas_limit = gas_limit
        self.account = self.w3.eth.account.from_key(private_key) if private_key else None
        self._nonce_lock = threading.Lock()
        self._next_nonce: Optional[int] = None

        if self.account is None:
            logger.warning("MINTER_PRIVATE_KEY not set; minting transactions will fail")

    def contract(self, address: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=TICKET_NFT_ABI)

    def batch_mint(
        self,
        contract_address: str,
        recipient: str,
        token_ids: Sequence[int],
        uris: Sequence[str],
        timeout: float,
    ) -> Dict[str, Any]:
        """Mint ``token_ids[i]`` with ``uris[i]`` to ``recipient`` in one transaction.

        A single-token batch goes through ``mint``.
        """
        if len(token_ids) != len(uris) or not token_ids:
            raise ExternalServiceError("Token ids and metadata URIs do not line up")

        contract = self.contract(contract_address)
        to = Web3.to_checksum_address(recipient)
        if len(token_ids) == 1:
            func = contract.functions.mint(to, int(token_ids[0]), uris[0])
        else:
            func = contract.functions.batchMint(to, [int(t) for t in token_ids], list(uris))
        return self.send_transaction(func, timeout=timeout)

    def send_transaction(self, func, timeout: float, value: int = 0) -> Dict[str, Any]:
        """
        Sign, broadcast and wait for a contract call.

        Once broadcast a transaction cannot be called back; on timeout the
        error carries the hash so the outcome can be looked up on-chain.

        Args:
            func: Contract function to execute
            timeout: Seconds to wait for the receipt
            value: Amount in wei
        """
        if not self.account:
            raise ExternalServiceError("Server wallet not configured (missing MINTER_PRIVATE_KEY)")

        try:
            tx_hash = self._submit(func, value)
        except Exception as e:
            logger.error(f"Transaction submission failed on chain {self.chain_id}: {e}")
            raise ExternalServiceError(f"Transaction submission failed: {e}")

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Broadcast transaction {tx_hex}, waiting up to {timeout}s for confirmation")
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted:
            raise ExternalServiceError(
                f"Transaction {tx_hex} not confirmed within {timeout}s",
                details={"tx_hash": tx_hex},
            )
        except Exception as e:
            raise ExternalServiceError(f"Waiting for transaction {tx_hex} failed: {e}", details={"tx_hash": tx_hex})

        if receipt["status"] != 1:
            raise ExternalServiceError(f"Transaction {tx_hex} reverted", details={"tx_hash": tx_hex})

        return {
            "tx_hash": tx_hex,
            "status": receipt["status"],
            "block_number": receipt["blockNumber"],
            "chain_id": self.chain_id,
        }

    def _submit(self, func, value: int):
        """Sign and broadcast with the next nonce of the server wallet.

        Jobs of several events share the wallet, so nonce allocation and the
        broadcast happen under one lock. The nonce is tracked locally and
        re-read from the node after a failed send.
        """
        with self._nonce_lock:
            if self._next_nonce is None:
                self._next_nonce = self.w3.eth.get_transaction_count(self.account.address, "pending")
            nonce = self._next_nonce
            try:
                tx = func.build_transaction({
                    'chainId': self.chain_id,
                    'gas': self.gas_limit,
                    'gasPrice': self.w3.eth.gas_price,
                    'nonce': nonce,
                    'value': value,
                    'from': self.account.address
                })
                signed_tx = self.account.sign_transaction(tx)
                tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            except Exception:
                self._next_nonce = None
                raise
            self._next_nonce = nonce + 1
            return tx_hash


_client: Optional[TicketContractClient] = None


def get_contract_client() -> TicketContractClient:
    """Get or create the process-wide contract client."""
    global _client
    if _client is None:
        _client = TicketContractClient()
    return _client
