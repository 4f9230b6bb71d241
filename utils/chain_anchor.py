# -*- coding: utf-8 -*-
"""
Anclaje on-chain de scores.

Cada score aceptado se acumula en el contrato compartido de identidad de
juegos: updatePlayerData(player, scoreAmount, transactionAmount). La llamada
cuesta gas y puede fallar por motivos ajenos al score (congestión, signer sin
fondos, revert); por eso anchor() nunca lanza: devuelve un AnchorResult.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from utils.wallet import short_address

logger = logging.getLogger(__name__)

ANCHOR_CONTRACT_ABI = [
    {
        "name": "updatePlayerData",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "player", "type": "address"},
            {"name": "scoreAmount", "type": "uint256"},
            {"name": "transactionAmount", "type": "uint256"},
        ],
        "outputs": [],
    },
]


@dataclass(frozen=True)
class AnchorResult:
    success: bool
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    error: Optional[str] = None


class ChainAnchor(ABC):
    enabled = False
    contract_address: Optional[str] = None

    @abstractmethod
    def anchor(self, player_address: str, score: int, transaction_count: int = 1) -> AnchorResult:
        """Ancla un score. Nunca lanza: los fallos vuelven en AnchorResult."""


class DisabledChainAnchor(ChainAnchor):
    """Sin clave de firma: nunca toca la red."""

    def __init__(self, contract_address: Optional[str] = None):
        self.contract_address = contract_address

    def anchor(self, player_address: str, score: int, transaction_count: int = 1) -> AnchorResult:
        return AnchorResult(success=False, error="disabled")


class Web3ChainAnchor(ChainAnchor):
    enabled = True

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        signer_key: str,
        timeout: float = 12,
        gas_buffer_percent: int = 20,
        web3: Web3 | None = None,
    ):
        self.w3 = web3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=ANCHOR_CONTRACT_ABI)
        self.account = self.w3.eth.account.from_key(signer_key)
        self.timeout = timeout
        self.gas_buffer_percent = gas_buffer_percent
        # nonce + envío deben ser atómicos entre tareas en paralelo
        self._send_lock = threading.Lock()

    def anchor(self, player_address: str, score: int, transaction_count: int = 1) -> AnchorResult:
        player = short_address(player_address)
        logger.info(f"Anchoring {score} pts ({transaction_count} tx) for {player}")
        try:
            fn = self.contract.functions.updatePlayerData(
                Web3.to_checksum_address(player_address), score, transaction_count
            )
            gas_estimate = fn.estimate_gas({"from": self.account.address})
            with self._send_lock:
                tx = fn.build_transaction({
                    "from": self.account.address,
                    "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
                    "gas": gas_estimate * (100 + self.gas_buffer_percent) // 100,
                    "chainId": self.w3.eth.chain_id,
                })
                signed = self.account.sign_transaction(tx)
                tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.timeout)
        except Exception as e:
            logger.error(f"Chain anchor failed for {player}: {e}")
            return AnchorResult(success=False, error=str(e) or e.__class__.__name__)

        if receipt["status"] != 1:
            logger.error(f"Chain anchor reverted for {player}: tx {tx_hash}")
            return AnchorResult(success=False, tx_hash=tx_hash, error="reverted")

        logger.info(f"Anchor tx {tx_hash} confirmed in block {receipt['blockNumber']}")
        return AnchorResult(success=True, tx_hash=tx_hash, block_number=receipt["blockNumber"])


def build_chain_anchor(settings) -> ChainAnchor:
    if not settings.chain_enabled:
        logger.warning("CHAIN_SIGNER_KEY not set, on-chain anchoring disabled")
        return DisabledChainAnchor(settings.CHAIN_CONTRACT_ADDRESS)
    return Web3ChainAnchor(
        rpc_url=settings.CHAIN_RPC_URL,
        contract_address=settings.CHAIN_CONTRACT_ADDRESS,
        signer_key=settings.CHAIN_SIGNER_KEY.get_secret_value(),
        timeout=settings.CHAIN_TIMEOUT_SECONDS,
        gas_buffer_percent=settings.CHAIN_GAS_BUFFER_PERCENT,
    )
