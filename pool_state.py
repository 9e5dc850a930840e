"""
Pool State - creation, lookup and claim views over a PoolDatum.

Every accountant module works through these helpers so the slot array is
only ever read one way:
- a class id resolves to an index only if that slot is occupied
- weighted claim = outstanding_share * weight, kept at weight scale
- pending redemption value = vault_balance * claim_i / total_claim

total_claim is NOT descaled by WEIGHT_SCALE; the scale cancels in every
ratio it appears in.
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import List, Optional

from fixed_point import checked_add, checked_mul, mul_div
from multistake_config import (
    CAPACITY,
    ID_LENGTH,
    U16_MAX,
    U64_MAX,
    U128_BITS,
    ZERO_ID,
)
from multistake_datum_types import ClassSlot, PoolDatum
from multistake_errors import (
    InsufficientReserves,
    InvalidFee,
    InvalidIdentity,
    InvariantViolation,
    Unauthorized,
    UnknownClass,
)

log = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def require_id(value: bytes, name: str) -> bytes:
    """Identities are raw 32-byte strings."""
    if not isinstance(value, bytes) or len(value) != ID_LENGTH:
        raise InvalidIdentity(f"{name} must be {ID_LENGTH} bytes")
    return value


def empty_slot() -> ClassSlot:
    """A free slot: zero id, zero share, zero weight."""
    return ClassSlot(occupied=0, class_id=ZERO_ID, outstanding_share=0, weight=0)


def clone_pool(pool: PoolDatum) -> PoolDatum:
    """Independent copy of a pool record, slots included."""
    return PoolDatum(
        pool_id=pool.pool_id,
        admin=pool.admin,
        base_asset_id=pool.base_asset_id,
        vault_balance=pool.vault_balance,
        fee_numerator=pool.fee_numerator,
        fee_denominator=pool.fee_denominator,
        class_count=pool.class_count,
        creation_counter=pool.creation_counter,
        slots=[
            ClassSlot(
                occupied=slot.occupied,
                class_id=slot.class_id,
                outstanding_share=slot.outstanding_share,
                weight=slot.weight,
            )
            for slot in pool.slots
        ],
    )


def derive_class_id(pool_id: bytes, counter: int) -> bytes:
    """
    Class id = sha256(pool_id || counter) where counter is the big-endian u16
    creation counter value the class consumed. Counter values are never
    reused, so neither are class ids.
    """
    return hashlib.sha256(pool_id + counter.to_bytes(2, "big")).digest()


def vault_account(pool: PoolDatum) -> bytes:
    """Account identity of the vault holding this pool's base asset."""
    return hashlib.sha256(b"pool_vault" + pool.pool_id).digest()


def require_admin(pool: PoolDatum, signer: bytes) -> None:
    """Capability check at the start of every admin operation."""
    if signer != pool.admin:
        raise Unauthorized("Pool admin signature required")


# =============================================================================
# CREATION
# =============================================================================

def create_pool(
    pool_id: bytes,
    base_asset_id: bytes,
    fee_numerator: int,
    fee_denominator: int,
    admin: bytes,
) -> PoolDatum:
    """
    Build a fresh pool record with CAPACITY free slots.

    fee_numerator / fee_denominator is the deposit fee, e.g. 3 / 1000 = 0.3%.
    """
    require_id(pool_id, "pool_id")
    require_id(base_asset_id, "base_asset_id")
    require_id(admin, "admin")

    if not 0 < fee_denominator <= U64_MAX:
        raise InvalidFee("Fee denominator must be positive u64")
    if not 0 <= fee_numerator <= fee_denominator:
        raise InvalidFee("Fee numerator must be between 0 and denominator")

    pool = PoolDatum(
        pool_id=pool_id,
        admin=admin,
        base_asset_id=base_asset_id,
        vault_balance=0,
        fee_numerator=fee_numerator,
        fee_denominator=fee_denominator,
        class_count=0,
        creation_counter=0,
        slots=[empty_slot() for _ in range(CAPACITY)],
    )
    log.info(
        "Pool created: pool: %s, base_asset: %s, admin: %s, fee: %d/%d",
        pool_id.hex(), base_asset_id.hex(), admin.hex(), fee_numerator, fee_denominator,
    )
    return pool


# =============================================================================
# LOOKUP
# =============================================================================

def find_slot(pool: PoolDatum, class_id: bytes) -> Optional[int]:
    """Index of the occupied slot holding class_id, or None."""
    if class_id == ZERO_ID:
        return None
    for index, slot in enumerate(pool.slots):
        if slot.occupied == 1 and slot.class_id == class_id:
            return index
    return None


def require_slot(pool: PoolDatum, class_id: bytes) -> int:
    """Like find_slot, but an unknown class is an error."""
    index = find_slot(pool, class_id)
    if index is None:
        raise UnknownClass(f"No live class {class_id.hex()}")
    return index


# =============================================================================
# CLAIM VIEWS
# =============================================================================

def weighted_claim(slot: ClassSlot) -> int:
    """outstanding_share * weight at weight scale (u128)."""
    if slot.occupied == 0:
        return 0
    return checked_mul(slot.outstanding_share, slot.weight, U128_BITS)


def total_claim(pool: PoolDatum, bits: Optional[int] = U128_BITS) -> int:
    """Sum of weighted claims over occupied slots (u128; unbounded if bits is None)."""
    total = 0
    for slot in pool.slots:
        if slot.occupied == 1 and slot.outstanding_share > 0:
            total = checked_add(total, weighted_claim(slot), bits)
    return total


def pending_redemption_value(pool: PoolDatum, index: int, claim_total: Optional[int] = None) -> int:
    """Base asset the whole of slot `index` would redeem for right now."""
    if claim_total is None:
        claim_total = total_claim(pool, None)
    if claim_total == 0:
        return 0
    return mul_div(pool.vault_balance, weighted_claim(pool.slots[index]), claim_total, None)


# =============================================================================
# INVARIANTS
# =============================================================================

def check_invariants(pool: PoolDatum) -> None:
    """
    Verify the record after an operation.

    Raises InvariantViolation for a malformed record and InsufficientReserves
    if the vault cannot cover every class's pending redemption value.
    """
    if len(pool.slots) != CAPACITY:
        raise InvariantViolation(f"Pool must hold {CAPACITY} slots")
    if not 0 <= pool.creation_counter <= U16_MAX:
        raise InvariantViolation("Creation counter out of range")

    occupied = 0
    seen = set()
    for index, slot in enumerate(pool.slots):
        if slot.occupied == 1:
            occupied += 1
            if slot.class_id == ZERO_ID or slot.class_id in seen:
                raise InvariantViolation(f"Slot {index} has an invalid class id")
            if slot.weight <= 0:
                raise InvariantViolation(f"Slot {index} has a non-positive weight")
            seen.add(slot.class_id)
        elif slot.occupied == 0:
            if slot.class_id != ZERO_ID or slot.outstanding_share != 0 or slot.weight != 0:
                raise InvariantViolation(f"Free slot {index} is not cleared")
        else:
            raise InvariantViolation(f"Slot {index} has occupied flag {slot.occupied}")

    if occupied != pool.class_count:
        raise InvariantViolation("class_count does not match occupied slots")
    if occupied > pool.creation_counter:
        raise InvariantViolation("More live classes than classes ever created")

    claim_total = total_claim(pool, None)
    pending = 0
    for index, slot in enumerate(pool.slots):
        if slot.occupied == 1:
            pending += pending_redemption_value(pool, index, claim_total)
    if pending > pool.vault_balance:
        raise InsufficientReserves(
            f"Pending redemptions {pending} exceed vault balance {pool.vault_balance}"
        )


# =============================================================================
# POOL INFO
# =============================================================================

@dataclass
class ClassInfo:
    """Read-only view of one live class."""
    index: int
    class_id: bytes
    outstanding_share: int
    weight: int
    pending_redemption_value: int


@dataclass
class PoolInfo:
    """Read-only summary of a pool record."""
    pool_id: bytes
    admin: bytes
    base_asset_id: bytes
    vault_balance: int
    fee_numerator: int
    fee_denominator: int
    class_count: int
    creation_counter: int
    total_claim: int


def list_classes(pool: PoolDatum) -> List[ClassInfo]:
    """Live classes in slot order."""
    claim_total = total_claim(pool, None)
    return [
        ClassInfo(
            index=index,
            class_id=slot.class_id,
            outstanding_share=slot.outstanding_share,
            weight=slot.weight,
            pending_redemption_value=pending_redemption_value(pool, index, claim_total),
        )
        for index, slot in enumerate(pool.slots)
        if slot.occupied == 1
    ]


def pool_info(pool: PoolDatum) -> PoolInfo:
    return PoolInfo(
        pool_id=pool.pool_id,
        admin=pool.admin,
        base_asset_id=pool.base_asset_id,
        vault_balance=pool.vault_balance,
        fee_numerator=pool.fee_numerator,
        fee_denominator=pool.fee_denominator,
        class_count=pool.class_count,
        creation_counter=pool.creation_counter,
        total_claim=total_claim(pool, None),
    )
