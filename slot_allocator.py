"""
Slot Allocator - creates and removes classes inside the fixed slot array.

The array is append-only until the first removal. After that, allocation
takes the lowest free index, but the class it installs always gets a fresh
id from the creation counter, so a reused index never reuses an identity.
"""
import logging
from typing import Tuple

from fixed_point import checked_add, checked_sub
from multistake_config import CAPACITY, DEFAULT_WEIGHT, U16_BITS, ZERO_ID
from multistake_datum_types import PoolDatum
from multistake_errors import NonZeroSupplyOnRemoval, SlotExhausted
from pool_state import derive_class_id, require_admin, require_slot

log = logging.getLogger(__name__)


def first_free_index(pool: PoolDatum) -> int:
    """Lowest unoccupied index. Caller has already checked capacity."""
    for index, slot in enumerate(pool.slots):
        if slot.occupied == 0:
            return index
    raise SlotExhausted("No free class slot")


def allocate_class(pool: PoolDatum, signer: bytes) -> Tuple[bytes, int]:
    """
    Install a new class with zero share and weight 1.0.

    Returns (class_id, slot_index).
    """
    require_admin(pool, signer)
    if pool.class_count >= CAPACITY:
        raise SlotExhausted(f"Pool already holds {CAPACITY} classes")

    # Counter is checked before anything is written
    counter = checked_add(pool.creation_counter, 1, U16_BITS)
    index = first_free_index(pool)
    class_id = derive_class_id(pool.pool_id, counter)

    slot = pool.slots[index]
    slot.occupied = 1
    slot.class_id = class_id
    slot.outstanding_share = 0
    slot.weight = DEFAULT_WEIGHT

    pool.creation_counter = counter
    pool.class_count += 1

    log.info(
        "Class added: index: %d, class_id: %s, weight: %d, counter: %d",
        index, class_id.hex(), DEFAULT_WEIGHT, counter,
    )
    return class_id, index


def free_class(pool: PoolDatum, signer: bytes, class_id: bytes) -> int:
    """
    Remove a class whose share units have all been redeemed.

    Returns the vacated slot index.
    """
    require_admin(pool, signer)
    index = require_slot(pool, class_id)

    slot = pool.slots[index]
    if slot.outstanding_share != 0:
        raise NonZeroSupplyOnRemoval(
            f"Class {class_id.hex()} still has {slot.outstanding_share} shares outstanding"
        )

    slot.occupied = 0
    slot.class_id = ZERO_ID
    slot.weight = 0
    pool.class_count = checked_sub(pool.class_count, 1, U16_BITS)

    log.info("Class removed: index: %d, class_id: %s", index, class_id.hex())
    return index
