import unittest
from unittest.mock import MagicMock

import httpx

from config import Settings
from conftest import PLAYER_A
from utils.chain_anchor import (
    ANCHOR_CONTRACT_ABI,
    ChainAnchor,
    DisabledChainAnchor,
    Web3ChainAnchor,
    build_chain_anchor,
)
from utils.identity_resolver import IdentityResolver

LOOKUP_URL = "https://identity.example/api/check-wallet"
SIGNER_KEY = "0x" + "4c" * 32
TX_HASH = "0x" + "12" * 32


def resolver_for(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), timeout=2.5)
    return IdentityResolver(LOOKUP_URL, client=client)


class TestIdentityResolver(unittest.TestCase):
    def test_resolves_username(self):
        seen = {}

        def handler(request):
            seen["wallet"] = request.url.params["wallet"]
            return httpx.Response(200, json={"hasUsername": True, "user": {"username": "satoshi"}})

        self.assertEqual(resolver_for(handler).resolve(PLAYER_A), "satoshi")
        self.assertEqual(seen["wallet"], PLAYER_A)

    def test_no_username(self):
        resolver = resolver_for(lambda request: httpx.Response(200, json={"hasUsername": False}))
        self.assertIsNone(resolver.resolve(PLAYER_A))

    def test_server_error_returns_none(self):
        for status in (404, 500, 503):
            with self.subTest(status=status):
                resolver = resolver_for(lambda request: httpx.Response(status, json={"error": "x"}))
                self.assertIsNone(resolver.resolve(PLAYER_A))

    def test_malformed_body_returns_none(self):
        resolver = resolver_for(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
        self.assertIsNone(resolver.resolve(PLAYER_A))
        resolver = resolver_for(lambda request: httpx.Response(200, json={"hasUsername": True, "user": "x"}))
        self.assertIsNone(resolver.resolve(PLAYER_A))

    def test_timeout_returns_none(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        self.assertIsNone(resolver_for(handler).resolve(PLAYER_A))

    def test_disabled_never_calls_network(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        resolver = IdentityResolver("", client=client)
        self.assertFalse(resolver.enabled)
        self.assertIsNone(resolver.resolve(PLAYER_A))
        self.assertEqual(calls, [])


def fake_web3(receipt_status=1):
    w3 = MagicMock()
    fn = w3.eth.contract.return_value.functions.updatePlayerData.return_value
    fn.estimate_gas.return_value = 100_000
    fn.build_transaction.return_value = {"to": "contract"}
    account = w3.eth.account.from_key.return_value
    account.address = "0x" + "9" * 40
    account.sign_transaction.return_value.raw_transaction = b"signed"
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.chain_id = 10143
    w3.eth.send_raw_transaction.return_value = bytes.fromhex("12" * 32)
    w3.eth.wait_for_transaction_receipt.return_value = {"status": receipt_status, "blockNumber": 42}
    return w3, fn


def make_anchor(w3):
    return Web3ChainAnchor(
        rpc_url="http://rpc.invalid",
        contract_address="0xceCBFF203C8B6044F52CE23D914A1bfD997541A4",
        signer_key=SIGNER_KEY,
        timeout=12,
        gas_buffer_percent=20,
        web3=w3,
    )


class TestChainAnchor(unittest.TestCase):
    def test_interface_requires_anchor(self):
        with self.assertRaises(TypeError):
            ChainAnchor()

        class Incomplete(ChainAnchor):
            enabled = True

        with self.assertRaises(TypeError):
            Incomplete()

    def test_abi_only_declares_the_write(self):
        self.assertEqual([f["name"] for f in ANCHOR_CONTRACT_ABI], ["updatePlayerData"])

    def test_disabled_anchor(self):
        result = DisabledChainAnchor().anchor(PLAYER_A, 500)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "disabled")
        self.assertIsNone(result.tx_hash)

    def test_successful_anchor(self):
        w3, fn = fake_web3()
        result = make_anchor(w3).anchor(PLAYER_A, 500)

        self.assertTrue(result.success)
        self.assertEqual(result.tx_hash, TX_HASH)
        self.assertEqual(result.block_number, 42)

        args = w3.eth.contract.return_value.functions.updatePlayerData.call_args.args
        self.assertEqual(args[0].lower(), PLAYER_A)
        self.assertEqual(args[1:], (500, 1))

        tx_params = fn.build_transaction.call_args.args[0]
        self.assertEqual(tx_params["gas"], 120_000)
        self.assertEqual(tx_params["nonce"], 7)
        self.assertEqual(tx_params["chainId"], 10143)
        w3.eth.send_raw_transaction.assert_called_once_with(b"signed")
        self.assertEqual(w3.eth.wait_for_transaction_receipt.call_args.kwargs["timeout"], 12)

    def test_reverted_transaction(self):
        w3, _ = fake_web3(receipt_status=0)
        result = make_anchor(w3).anchor(PLAYER_A, 500)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "reverted")
        self.assertEqual(result.tx_hash, TX_HASH)

    def test_rpc_failure_never_raises(self):
        w3, fn = fake_web3()
        fn.estimate_gas.side_effect = RuntimeError("insufficient funds for gas")
        result = make_anchor(w3).anchor(PLAYER_A, 500)
        self.assertFalse(result.success)
        self.assertIn("insufficient funds", result.error)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_receipt_timeout_is_a_failure(self):
        w3, _ = fake_web3()
        w3.eth.wait_for_transaction_receipt.side_effect = TimeoutError()
        result = make_anchor(w3).anchor(PLAYER_A, 500)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "TimeoutError")

    def test_build_without_key_is_disabled(self):
        for key in (None, "", "your_private_key_here"):
            with self.subTest(key=key):
                settings = Settings(CHAIN_SIGNER_KEY=key)
                self.assertFalse(settings.chain_enabled)
                anchor = build_chain_anchor(settings)
                self.assertIsInstance(anchor, DisabledChainAnchor)
                self.assertFalse(anchor.enabled)


if __name__ == "__main__":
    unittest.main()
