"""
Pool Layout - fixed-size binary record for a PoolDatum.

The record has the same size for every pool regardless of how many classes
are live, so any slot can be read at a fixed offset without decoding the
rest. All integers are little-endian.

    offset  size        field
    0       2           class_count (u16)
    2       2           creation_counter (u16)
    4       4           padding
    8       32          pool_id
    40      32          admin
    72      32          base_asset_id
    104     8           vault_balance (u64)
    112     8           fee_numerator (u64)
    120     8           fee_denominator (u64)
    128     48 * 512    slots: class_id (32), outstanding_share (u64), weight (u64)

A slot is occupied iff its class_id is non-zero; the flag is not stored.
"""
import struct

from multistake_config import CAPACITY, HEADER_SIZE, POOL_RECORD_SIZE, SLOT_SIZE, ZERO_ID
from multistake_datum_types import ClassSlot, PoolDatum

HEADER = struct.Struct("<HH4x32s32s32sQQQ")
SLOT = struct.Struct("<32sQQ")


class LayoutError(ValueError):
    """Buffer does not hold a well-formed pool record."""


def slot_offset(index: int) -> int:
    """Byte offset of slot `index` inside the record."""
    if not 0 <= index < CAPACITY:
        raise LayoutError(f"Slot index {index} out of range")
    return HEADER_SIZE + index * SLOT_SIZE


def encode_slot(slot: ClassSlot) -> bytes:
    class_id = slot.class_id if slot.occupied == 1 else ZERO_ID
    return SLOT.pack(class_id, slot.outstanding_share, slot.weight)


def decode_slot(raw: bytes) -> ClassSlot:
    class_id, outstanding_share, weight = SLOT.unpack(raw)
    return ClassSlot(
        occupied=0 if class_id == ZERO_ID else 1,
        class_id=class_id,
        outstanding_share=outstanding_share,
        weight=weight,
    )


def encode_pool(pool: PoolDatum) -> bytes:
    """Serialize a pool record to exactly POOL_RECORD_SIZE bytes."""
    if len(pool.slots) != CAPACITY:
        raise LayoutError(f"Pool must hold {CAPACITY} slots, has {len(pool.slots)}")
    try:
        header = HEADER.pack(
            pool.class_count,
            pool.creation_counter,
            pool.pool_id,
            pool.admin,
            pool.base_asset_id,
            pool.vault_balance,
            pool.fee_numerator,
            pool.fee_denominator,
        )
        body = b"".join(encode_slot(slot) for slot in pool.slots)
    except struct.error as e:
        raise LayoutError(f"Field does not fit the record layout: {e}") from e
    return header + body


def decode_pool(buffer: bytes) -> PoolDatum:
    """Parse a record produced by encode_pool."""
    if len(buffer) != POOL_RECORD_SIZE:
        raise LayoutError(f"Pool record must be {POOL_RECORD_SIZE} bytes, got {len(buffer)}")
    (
        class_count,
        creation_counter,
        pool_id,
        admin,
        base_asset_id,
        vault_balance,
        fee_numerator,
        fee_denominator,
    ) = HEADER.unpack_from(buffer, 0)
    slots = [read_slot(buffer, index) for index in range(CAPACITY)]
    return PoolDatum(
        pool_id=pool_id,
        admin=admin,
        base_asset_id=base_asset_id,
        vault_balance=vault_balance,
        fee_numerator=fee_numerator,
        fee_denominator=fee_denominator,
        class_count=class_count,
        creation_counter=creation_counter,
        slots=slots,
    )


def read_slot(buffer: bytes, index: int) -> ClassSlot:
    """Read one slot straight from its fixed offset."""
    offset = slot_offset(index)
    if len(buffer) < offset + SLOT_SIZE:
        raise LayoutError("Buffer too short for slot")
    return decode_slot(buffer[offset:offset + SLOT_SIZE])
