"""
Pool Ledger - single entry point for operations against pool records.

process() takes one operation request (redeemer) against one pool and either
commits all of it or none of it:
1. Work on a copy of the pool record
2. Dispatch to the accountant for the redeemer type
3. Re-check every pool invariant on the copy
4. Hand the transfer instructions to Asset Transfer (atomic)
5. Only then write the copy back into the caller's record

Any error in steps 2-4 leaves the caller's record and all balances untouched.

PoolLedger keeps pools by id and serializes operations per pool with a lock,
so operations on one pool are totally ordered and different pools never
contend. Retrying after a rejection is the caller's job.
"""
import hashlib
import logging
import threading
from dataclasses import fields
from typing import Dict, List, Optional

from asset_transfer import AssetTransfer
from multistake_datum_types import (
    AllocateClass,
    Deposit,
    FreeClass,
    PoolDatum,
    PoolRedeemer,
    Redeem,
    SetWeights,
    WeightUpdate,
)
from multistake_errors import MultistakeError
from pool_layout import decode_pool, encode_pool
from pool_state import check_invariants, clone_pool, create_pool, list_classes, pool_info
from slot_allocator import allocate_class, free_class
from stake_accountant import deposit
from unstake_accountant import redeem
from weight_controller import set_weights

log = logging.getLogger(__name__)


# =============================================================================
# DISPATCH
# =============================================================================

def apply_redeemer(pool: PoolDatum, redeemer: PoolRedeemer, signer: bytes):
    """
    Run one operation against `pool` in place.

    Returns (result, transfer instructions). The pool may be left half-updated
    if this raises; process() only ever calls it on a copy.
    """
    # ==========================================================================
    # ALLOCATE CLASS (admin only)
    # ==========================================================================
    if isinstance(redeemer, AllocateClass):
        return allocate_class(pool, signer), []

    # ==========================================================================
    # FREE CLASS (admin only)
    # ==========================================================================
    elif isinstance(redeemer, FreeClass):
        return free_class(pool, signer, redeemer.class_id), []

    # ==========================================================================
    # SET WEIGHTS (admin only)
    # ==========================================================================
    elif isinstance(redeemer, SetWeights):
        return set_weights(pool, signer, redeemer.updates), []

    # ==========================================================================
    # DEPOSIT - signer is the depositor
    # ==========================================================================
    elif isinstance(redeemer, Deposit):
        result = deposit(pool, redeemer.class_id, redeemer.amount, signer)
        return result, result.transfers

    # ==========================================================================
    # REDEEM - signer is the share holder
    # ==========================================================================
    elif isinstance(redeemer, Redeem):
        result = redeem(pool, redeemer.class_id, redeemer.share_amount, signer)
        return result, result.transfers

    else:
        raise TypeError(f"Invalid redeemer: {type(redeemer).__name__}")


def process(pool: PoolDatum, redeemer: PoolRedeemer, signer: bytes, transfer: AssetTransfer):
    """Apply `redeemer` to `pool` atomically together with its transfers."""
    working = clone_pool(pool)
    try:
        result, instructions = apply_redeemer(working, redeemer, signer)
        check_invariants(working)
        if instructions:
            transfer.execute(instructions)
    except MultistakeError as e:
        log.warning(
            "Rejected %s on pool %s: %s (%s)",
            type(redeemer).__name__, pool.pool_id.hex(), e.code, e,
        )
        raise

    for f in fields(PoolDatum):
        setattr(pool, f.name, getattr(working, f.name))
    return result


# =============================================================================
# LEDGER
# =============================================================================

class PoolLedger:
    """
    In-process ledger of pool records.

    Usage:
        ledger = PoolLedger(InMemoryAssetTransfer())
        pool_id = ledger.create_pool(base_asset, 3, 1000, admin)
        class_id = ledger.allocate_class(pool_id, admin)
        shares = ledger.deposit(pool_id, class_id, 1_000, alice)
        payout = ledger.redeem(pool_id, class_id, shares, alice)
    """

    def __init__(self, transfer: AssetTransfer):
        self.transfer = transfer
        self._pools: Dict[bytes, PoolDatum] = {}
        self._locks: Dict[bytes, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._sequence = 0

    # -------------------------------------------------------------------------
    # Pools
    # -------------------------------------------------------------------------

    def create_pool(self, base_asset_id: bytes, fee_numerator: int, fee_denominator: int,
                    admin: bytes, pool_id: Optional[bytes] = None) -> bytes:
        """Create a pool and return its id (the pool handle)."""
        with self._registry_lock:
            if pool_id is None:
                self._sequence += 1
                pool_id = hashlib.sha256(
                    b"pool" + base_asset_id + admin + self._sequence.to_bytes(8, "big")
                ).digest()
            if pool_id in self._pools:
                raise ValueError(f"Pool {pool_id.hex()} already exists")
            pool = create_pool(pool_id, base_asset_id, fee_numerator, fee_denominator, admin)
            self._pools[pool_id] = pool
            self._locks[pool_id] = threading.Lock()
        return pool_id

    def get_pool(self, pool_id: bytes) -> PoolDatum:
        """Copy of the current record; mutating it does not affect the ledger."""
        with self._lock_for(pool_id):
            return clone_pool(self._pools[pool_id])

    def _lock_for(self, pool_id: bytes) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(pool_id)
        if lock is None:
            raise KeyError(f"Unknown pool {pool_id.hex()}")
        return lock

    def submit(self, pool_id: bytes, redeemer: PoolRedeemer, signer: bytes):
        """Run one operation against a pool under its lock."""
        with self._lock_for(pool_id):
            return process(self._pools[pool_id], redeemer, signer, self.transfer)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def allocate_class(self, pool_id: bytes, admin: bytes) -> bytes:
        class_id, _ = self.submit(pool_id, AllocateClass(), admin)
        return class_id

    def free_class(self, pool_id: bytes, admin: bytes, class_id: bytes) -> None:
        self.submit(pool_id, FreeClass(class_id=class_id), admin)

    def set_weights(self, pool_id: bytes, admin: bytes, updates: List[tuple]) -> None:
        """updates: (class_id, weight) pairs."""
        batch = [WeightUpdate(class_id=class_id, weight=weight) for class_id, weight in updates]
        self.submit(pool_id, SetWeights(updates=batch), admin)

    def deposit(self, pool_id: bytes, class_id: bytes, amount: int, depositor: bytes) -> int:
        """Returns shares issued."""
        result = self.submit(pool_id, Deposit(class_id=class_id, amount=amount), depositor)
        return result.shares_issued

    def redeem(self, pool_id: bytes, class_id: bytes, share_amount: int, redeemer: bytes) -> int:
        """Returns base asset paid out."""
        result = self.submit(pool_id, Redeem(class_id=class_id, share_amount=share_amount), redeemer)
        return result.payout

    # -------------------------------------------------------------------------
    # Views / persistence
    # -------------------------------------------------------------------------

    def pool_info(self, pool_id: bytes):
        with self._lock_for(pool_id):
            return pool_info(self._pools[pool_id])

    def list_classes(self, pool_id: bytes):
        with self._lock_for(pool_id):
            return list_classes(self._pools[pool_id])

    def class_ids(self, pool_id: bytes) -> List[bytes]:
        """Ids of every live class in slot order."""
        return [info.class_id for info in self.list_classes(pool_id)]

    def export_pool(self, pool_id: bytes) -> bytes:
        """Fixed-size binary record for the transport to persist."""
        with self._lock_for(pool_id):
            return encode_pool(self._pools[pool_id])

    def import_pool(self, record: bytes) -> bytes:
        """Load a persisted record; returns its pool id."""
        pool = decode_pool(record)
        check_invariants(pool)
        with self._registry_lock:
            if pool.pool_id in self._pools:
                raise ValueError(f"Pool {pool.pool_id.hex()} already exists")
            self._pools[pool.pool_id] = pool
            self._locks[pool.pool_id] = threading.Lock()
        return pool.pool_id
