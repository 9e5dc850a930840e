import random

import pytest

from asset_transfer import InMemoryAssetTransfer
from harness import ADMIN, ALICE, BASE_ASSET, BOB, MALLORY, assert_solvent, make_id
from multistake_datum_types import Deposit, FreeClass, Redeem, SetWeights
from multistake_errors import (
    InsufficientFunds,
    InsufficientShares,
    InvalidFee,
    InvalidIdentity,
    InvariantViolation,
    MultistakeError,
    NonZeroSupplyOnRemoval,
    Unauthorized,
)
from multistake_config import HEADER_SIZE
from pool_layout import encode_pool
from pool_ledger import PoolLedger
from pool_state import vault_account


def test_fee_weight_scenario(ledger, transfer):
    pool_id = ledger.create_pool(BASE_ASSET, 3, 1000, ADMIN)
    a = ledger.allocate_class(pool_id, ADMIN)
    b = ledger.allocate_class(pool_id, ADMIN)

    assert ledger.deposit(pool_id, a, 100_000_000_000, ALICE) == 99_700_000_000
    assert ledger.pool_info(pool_id).vault_balance == 100_000_000_000
    assert ledger.deposit(pool_id, b, 200_000_000_000, BOB) == 199_400_000_000
    assert ledger.pool_info(pool_id).vault_balance == 300_000_000_000

    ledger.set_weights(pool_id, ADMIN, [(a, 200_000_000), (b, 50_000_000)])
    assert_solvent(ledger.get_pool(pool_id))

    payout_b = ledger.redeem(pool_id, b, 199_400_000_000, BOB)
    assert_solvent(ledger.get_pool(pool_id))
    payout_a = ledger.redeem(pool_id, a, 99_700_000_000, ALICE)

    assert payout_b == 100_000_000_000
    assert payout_a == 200_000_000_000
    assert payout_a + payout_b == 300_000_000_000
    assert payout_b / 199_400_000_000 < payout_a / 99_700_000_000

    pool = ledger.get_pool(pool_id)
    assert pool.vault_balance == 0
    assert [info.outstanding_share for info in ledger.list_classes(pool_id)] == [0, 0]
    assert transfer.base_balance(BASE_ASSET, vault_account(pool)) == 0
    assert transfer.share_balance(a, ALICE) == 0
    assert transfer.share_balance(b, BOB) == 0


def test_create_pool_rejects_bad_fee(ledger):
    with pytest.raises(InvalidFee):
        ledger.create_pool(BASE_ASSET, 1, 0, ADMIN)
    with pytest.raises(InvalidFee):
        ledger.create_pool(BASE_ASSET, 5, 4, ADMIN)


def test_unfunded_deposit_rolls_back(ledger, transfer):
    pool_id = ledger.create_pool(BASE_ASSET, 3, 1000, ADMIN)
    class_id = ledger.allocate_class(pool_id, ADMIN)
    poor = make_id("poor")
    transfer.fund(BASE_ASSET, poor, 50)
    before = encode_pool(ledger.get_pool(pool_id))

    with pytest.raises(InsufficientFunds):
        ledger.deposit(pool_id, class_id, 51, poor)

    assert encode_pool(ledger.get_pool(pool_id)) == before
    assert transfer.base_balance(BASE_ASSET, poor) == 50
    assert transfer.share_balance(class_id, poor) == 0


def test_redeeming_someone_elses_shares_rolls_back(ledger, transfer):
    pool_id = ledger.create_pool(BASE_ASSET, 0, 1, ADMIN)
    class_id = ledger.allocate_class(pool_id, ADMIN)
    ledger.deposit(pool_id, class_id, 1_000, ALICE)
    before = encode_pool(ledger.get_pool(pool_id))

    with pytest.raises(InsufficientShares):
        ledger.redeem(pool_id, class_id, 500, MALLORY)

    assert encode_pool(ledger.get_pool(pool_id)) == before
    assert transfer.base_balance(BASE_ASSET, MALLORY) == 0


def test_admin_operations_through_submit(ledger):
    pool_id = ledger.create_pool(BASE_ASSET, 0, 1, ADMIN)
    class_id = ledger.allocate_class(pool_id, ADMIN)

    with pytest.raises(Unauthorized):
        ledger.submit(pool_id, FreeClass(class_id=class_id), MALLORY)
    with pytest.raises(Unauthorized):
        ledger.submit(pool_id, SetWeights(updates=[]), MALLORY)

    ledger.submit(pool_id, Deposit(class_id=class_id, amount=10), ALICE)
    with pytest.raises(NonZeroSupplyOnRemoval):
        ledger.free_class(pool_id, ADMIN, class_id)

    ledger.submit(pool_id, Redeem(class_id=class_id, share_amount=10), ALICE)
    ledger.free_class(pool_id, ADMIN, class_id)
    assert ledger.class_ids(pool_id) == []
    assert ledger.pool_info(pool_id).creation_counter == 1


def test_unknown_redeemer_type(ledger):
    pool_id = ledger.create_pool(BASE_ASSET, 0, 1, ADMIN)
    with pytest.raises(TypeError):
        ledger.submit(pool_id, object(), ADMIN)


def test_pools_are_independent(ledger):
    first = ledger.create_pool(BASE_ASSET, 0, 1, ADMIN)
    second = ledger.create_pool(BASE_ASSET, 0, 1, ADMIN)
    assert first != second
    a = ledger.allocate_class(first, ADMIN)
    b = ledger.allocate_class(second, ADMIN)
    assert a != b
    ledger.deposit(first, a, 100, ALICE)
    assert ledger.pool_info(second).vault_balance == 0


def test_export_import_round_trip(ledger, transfer):
    pool_id = ledger.create_pool(BASE_ASSET, 3, 1000, ADMIN)
    class_id = ledger.allocate_class(pool_id, ADMIN)
    ledger.deposit(pool_id, class_id, 12_345, ALICE)
    record = ledger.export_pool(pool_id)

    other = PoolLedger(transfer)
    assert other.import_pool(record) == pool_id
    assert other.pool_info(pool_id) == ledger.pool_info(pool_id)
    with pytest.raises(ValueError):
        other.import_pool(record)


def test_random_operations_stay_solvent(ledger, transfer):
    rng = random.Random(1234)
    pool_id = ledger.create_pool(BASE_ASSET, 7, 1000, ADMIN)
    actors = [ALICE, BOB, make_id("carol")]
    transfer.fund(BASE_ASSET, actors[2], 10**15)
    classes = [ledger.allocate_class(pool_id, ADMIN) for _ in range(3)]
    vault = vault_account(ledger.get_pool(pool_id))

    for _ in range(400):
        op = rng.random()
        before = encode_pool(ledger.get_pool(pool_id))
        try:
            if op < 0.4 and classes:
                ledger.deposit(pool_id, rng.choice(classes), rng.randint(1, 10**9), rng.choice(actors))
            elif op < 0.75 and classes:
                class_id = rng.choice(classes)
                holder = rng.choice(actors)
                held = transfer.share_balance(class_id, holder)
                if held:
                    ledger.redeem(pool_id, class_id, rng.randint(1, held), holder)
            elif op < 0.9 and classes:
                picked = rng.sample(classes, rng.randint(1, len(classes)))
                ledger.set_weights(pool_id, ADMIN, [(c, rng.randint(1, 10**9)) for c in picked])
            elif op < 0.95:
                classes.append(ledger.allocate_class(pool_id, ADMIN))
            elif classes:
                class_id = rng.choice(classes)
                ledger.free_class(pool_id, ADMIN, class_id)
                classes.remove(class_id)
        except MultistakeError:
            assert encode_pool(ledger.get_pool(pool_id)) == before

        pool = ledger.get_pool(pool_id)
        assert_solvent(pool)
        assert pool.vault_balance == transfer.base_balance(BASE_ASSET, vault)
        for info in ledger.list_classes(pool_id):
            held = sum(transfer.share_balance(info.class_id, a) for a in actors)
            assert held == info.outstanding_share


def test_transfer_batch_is_atomic():
    from multistake_datum_types import MintShare, MoveBaseAsset

    transfer = InMemoryAssetTransfer()
    transfer.fund(BASE_ASSET, ALICE, 10)
    class_id = make_id("class")
    with pytest.raises(InsufficientFunds):
        transfer.execute([
            MintShare(class_id=class_id, holder=ALICE, amount=5),
            MoveBaseAsset(asset_id=BASE_ASSET, source=ALICE, destination=BOB, amount=11),
        ])
    assert transfer.share_balance(class_id, ALICE) == 0
    assert transfer.base_balance(BASE_ASSET, ALICE) == 10


def test_large_vault_accepts_reweight_and_deposits(ledger, transfer):
    whale = make_id("whale")
    transfer.fund(BASE_ASSET, whale, 10**17)
    pool_id = ledger.create_pool(BASE_ASSET, 0, 1, ADMIN)
    a = ledger.allocate_class(pool_id, ADMIN)
    assert ledger.deposit(pool_id, a, 10**15, whale) == 10**15

    # vault * share * weight is now past u128
    ledger.set_weights(pool_id, ADMIN, [(a, 1_000_000_000)])
    assert ledger.list_classes(pool_id)[0].pending_redemption_value == 10**15

    assert ledger.deposit(pool_id, a, 10**15, whale) == 10**15
    b = ledger.allocate_class(pool_id, ADMIN)
    assert ledger.deposit(pool_id, b, 10**15, whale) == 10**15

    pool = ledger.get_pool(pool_id)
    assert pool.vault_balance == 3 * 10**15
    assert_solvent(pool)
    pending = [info.pending_redemption_value for info in ledger.list_classes(pool_id)]
    assert pending == [2_857_142_857_142_857, 142_857_142_857_142]
    assert ledger.pool_info(pool_id).total_claim == 2 * 10**24 + 10**23


def test_bad_identity_is_a_ledger_rejection(ledger, transfer, caplog):
    pool_id = ledger.create_pool(BASE_ASSET, 3, 1000, ADMIN)
    class_id = ledger.allocate_class(pool_id, ADMIN)
    before = encode_pool(ledger.get_pool(pool_id))

    with pytest.raises(InvalidIdentity):
        ledger.deposit(pool_id, class_id, 1_000, b"short")
    with pytest.raises(InvalidIdentity):
        ledger.redeem(pool_id, class_id, 1, b"short")
    with pytest.raises(InvalidIdentity):
        ledger.create_pool(b"short", 0, 1, ADMIN)

    assert encode_pool(ledger.get_pool(pool_id)) == before
    assert "Rejected Deposit" in caplog.text
    assert "InvalidIdentity" in caplog.text


@pytest.mark.parametrize("offset, data", [
    (0, (2).to_bytes(2, "little")),
    (HEADER_SIZE + 40, bytes(8)),
])
def test_import_rejects_corrupted_record(ledger, transfer, offset, data):
    pool_id = ledger.create_pool(BASE_ASSET, 3, 1000, ADMIN)
    class_id = ledger.allocate_class(pool_id, ADMIN)
    ledger.deposit(pool_id, class_id, 5_000, ALICE)
    record = bytearray(ledger.export_pool(pool_id))
    record[offset:offset + len(data)] = data

    other = PoolLedger(transfer)
    with pytest.raises(InvariantViolation):
        other.import_pool(bytes(record))
    with pytest.raises(KeyError):
        other.get_pool(pool_id)
