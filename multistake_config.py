"""
MultiStake Configuration - TRUE CONSTANTS ONLY

This file contains ONLY values that are fixed by the record layout and the
fixed-point convention, and never change between pools:
- Slot capacity of a pool record
- Weight scale (1.0 = 10^8)
- Integer widths of stored and intermediate quantities

ALL other configuration (admin, base asset, fee rate) is stored in the
PoolDatum and read at runtime. Nothing pool-specific is baked in here.
"""

# =============================================================================
# POOL CAPACITY
# =============================================================================

CAPACITY: int = 512                 # Class slots per pool record

# =============================================================================
# FIXED-POINT WEIGHTS
# =============================================================================

WEIGHT_SCALE: int = 100_000_000     # 1.0
DEFAULT_WEIGHT: int = WEIGHT_SCALE  # Weight of a freshly allocated class

# =============================================================================
# INTEGER WIDTHS
# =============================================================================

U16_BITS: int = 16                  # class_count, creation_counter
U64_BITS: int = 64                  # amounts, shares, weights, fees
U128_BITS: int = 128                # intermediates (products, claims)

U16_MAX: int = (1 << U16_BITS) - 1
U64_MAX: int = (1 << U64_BITS) - 1
U128_MAX: int = (1 << U128_BITS) - 1

# =============================================================================
# IDENTITIES
# =============================================================================

ID_LENGTH: int = 32                 # pool id, admin, asset, class id, holder
ZERO_ID: bytes = bytes(ID_LENGTH)   # Class id of a free slot

# =============================================================================
# PERSISTED LAYOUT
# =============================================================================

HEADER_SIZE: int = 128              # counters + padding + ids + u64 fields
SLOT_SIZE: int = ID_LENGTH + 8 + 8  # class_id, outstanding_share, weight
POOL_RECORD_SIZE: int = HEADER_SIZE + SLOT_SIZE * CAPACITY  # 24704 bytes
