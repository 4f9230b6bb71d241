import os
from datetime import datetime, timedelta, timezone

import pytest

# Antes de importar config: sin DB en disco, sin red y sin rate limit
os.environ["ENV"] = "test"
os.environ["STORE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IDENTITY_SERVICE_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("CHAIN_SIGNER_KEY", None)

from utils.chain_anchor import AnchorResult, ChainAnchor  # noqa: E402

PLAYER_A = "0xabc" + "0" * 34 + "123"
PLAYER_B = "0xdef" + "0" * 34 + "456"
PLAYER_C = "0x" + "1" * 40


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeAnchor(ChainAnchor):
    enabled = True
    contract_address = "0xceCBFF203C8B6044F52CE23D914A1bfD997541A4"

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.calls = []

    def anchor(self, player_address, score, transaction_count=1):
        self.calls.append((player_address, score, transaction_count))
        if not self.succeed:
            return AnchorResult(success=False, error="insufficient funds for gas")
        return AnchorResult(success=True, tx_hash="0x" + f"{len(self.calls):064x}", block_number=100)


@pytest.fixture
def clock():
    return FakeClock()
