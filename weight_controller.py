"""
Weight Controller - admin re-weighting of a batch of classes.

Changing weights moves no base asset. It changes total_claim, and with it
every live class's pending redemption value, in one step. The whole batch is
validated before any slot is written.
"""
import logging
from typing import List, Tuple

from multistake_config import U64_MAX
from multistake_datum_types import PoolDatum, WeightUpdate
from multistake_errors import DuplicateClass, InvalidWeight
from pool_state import require_admin, require_slot

log = logging.getLogger(__name__)


def set_weights(
    pool: PoolDatum,
    signer: bytes,
    updates: List[WeightUpdate],
) -> List[Tuple[bytes, int, int]]:
    """
    Apply every (class_id, weight) in `updates`, or none of them.

    Returns (class_id, old_weight, new_weight) per update, in order.
    """
    require_admin(pool, signer)

    # Validate the whole batch first
    seen = set()
    targets = []
    for update in updates:
        if update.class_id in seen:
            raise DuplicateClass(f"Class {update.class_id.hex()} appears twice in one batch")
        seen.add(update.class_id)
        index = require_slot(pool, update.class_id)
        if not 0 < update.weight <= U64_MAX:
            raise InvalidWeight(f"Weight must be a positive u64, got {update.weight}")
        targets.append(index)

    changes = []
    for index, update in zip(targets, updates):
        slot = pool.slots[index]
        old_weight = slot.weight
        slot.weight = update.weight
        changes.append((update.class_id, old_weight, update.weight))
        log.info(
            "Class weight modified: class_id: %s, old_weight: %d, new_weight: %d",
            update.class_id.hex(), old_weight, update.weight,
        )
    return changes
