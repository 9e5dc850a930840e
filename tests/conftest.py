import pytest

from asset_transfer import InMemoryAssetTransfer
from harness import ADMIN, ALICE, BASE_ASSET, BOB, POOL_ID
from pool_ledger import PoolLedger
from pool_state import create_pool


@pytest.fixture
def pool():
    """Pool with the 0.3% deposit fee."""
    return create_pool(POOL_ID, BASE_ASSET, 3, 1000, ADMIN)


@pytest.fixture
def free_pool():
    """Pool with no deposit fee."""
    return create_pool(POOL_ID, BASE_ASSET, 0, 1, ADMIN)


@pytest.fixture
def transfer():
    t = InMemoryAssetTransfer()
    t.fund(BASE_ASSET, ALICE, 10**15)
    t.fund(BASE_ASSET, BOB, 10**15)
    return t


@pytest.fixture
def ledger(transfer):
    return PoolLedger(transfer)
