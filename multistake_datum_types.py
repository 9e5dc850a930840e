"""
MultiStake Datum Types - Shared Data Structures for the Pool Ledger

This file contains the canonical record definitions used by every ledger
module: the pool record (datum), the operation requests (redeemers) and the
transfer instructions handed to the Asset Transfer service.
All modules MUST import these types to stay compatible.

CRITICAL: Any change to PoolDatum or ClassSlot requires a matching change to
pool_layout.py, which persists the same fields at fixed offsets.
"""

from opshin.prelude import *


# =============================================================================
# CLASS SLOT (one entry of PoolDatum.slots)
# =============================================================================

@dataclass
class ClassSlot(PlutusData):
    """
    One stakeable class inside a pool.

    Free slots keep the all-zero class id and zero share and weight, and may
    be handed to a later class. The class id itself is never handed out twice.

    Fields:
        occupied: 1 = live class, 0 = free slot
        class_id: Identity of the class share token (32 bytes)
        outstanding_share: Unredeemed share units issued for this class
        weight: Fixed-point multiplier, 10^8 = 1.0
    """
    CONSTR_ID = 0
    occupied: int               # 0 = free, 1 = live
    class_id: bytes             # 32 bytes, zero when free
    outstanding_share: int      # u64
    weight: int                 # u64, scale 10^8


# =============================================================================
# POOL DATUM
# =============================================================================

@dataclass
class PoolDatum(PlutusData):
    """
    Pool record - one per base asset, owned by its administrator.

    Holds the fee configuration, the mirrored vault balance and the fixed
    array of CAPACITY class slots. Every accountant operates on this record.

    Fields:
        pool_id: Identity of this record, seeds class ids (32 bytes)
        admin: Identity allowed to run admin operations (32 bytes)
        base_asset_id: The only asset this pool accepts (32 bytes)
        vault_balance: Base asset held by the vault (u64)
        fee_numerator: Deposit fee numerator (u64)
        fee_denominator: Deposit fee denominator, > 0 (u64)
        class_count: Number of occupied slots (u16)
        creation_counter: Classes ever created, never decreases (u16)
        slots: Exactly CAPACITY ClassSlot entries
    """
    CONSTR_ID = 0

    # Pool Identity
    pool_id: bytes              # 32 bytes
    admin: bytes                # 32 bytes
    base_asset_id: bytes        # 32 bytes

    # Vault
    vault_balance: int

    # Fee (applied on deposit)
    fee_numerator: int
    fee_denominator: int

    # Counters
    class_count: int
    creation_counter: int

    # Class Arena
    slots: List[ClassSlot]


# =============================================================================
# REDEEMERS (operation requests)
# =============================================================================

@dataclass
class WeightUpdate(PlutusData):
    """New weight for one class."""
    CONSTR_ID = 0
    class_id: bytes
    weight: int


@dataclass
class AllocateClass(PlutusData):
    """Create a new class in the first free slot (admin only)."""
    CONSTR_ID = 0


@dataclass
class FreeClass(PlutusData):
    """Remove a class with no outstanding share (admin only)."""
    CONSTR_ID = 1
    class_id: bytes


@dataclass
class SetWeights(PlutusData):
    """Re-weight a batch of classes, all or nothing (admin only)."""
    CONSTR_ID = 2
    updates: List[WeightUpdate]


@dataclass
class Deposit(PlutusData):
    """Stake base asset into a class, receive share units."""
    CONSTR_ID = 3
    class_id: bytes
    amount: int


@dataclass
class Redeem(PlutusData):
    """Burn share units of a class, receive base asset."""
    CONSTR_ID = 4
    class_id: bytes
    share_amount: int


PoolRedeemer = Union[AllocateClass, FreeClass, SetWeights, Deposit, Redeem]


# =============================================================================
# TRANSFER INSTRUCTIONS (consumed by asset_transfer.AssetTransfer)
# =============================================================================

@dataclass
class MoveBaseAsset(PlutusData):
    """Move base asset between two accounts (either may be the vault)."""
    CONSTR_ID = 0
    asset_id: bytes
    source: bytes
    destination: bytes
    amount: int


@dataclass
class MintShare(PlutusData):
    """Credit share units of a class to a holder."""
    CONSTR_ID = 1
    class_id: bytes
    holder: bytes
    amount: int


@dataclass
class BurnShare(PlutusData):
    """Burn share units of a class from a holder."""
    CONSTR_ID = 2
    class_id: bytes
    holder: bytes
    amount: int


TransferInstruction = Union[MoveBaseAsset, MintShare, BurnShare]
