"""
Unstake Accountant - burns class share units and pays out base asset.

Payout is a pro-rata slice of the WHOLE vault, weighted by claim:

    payout = vault_balance * (share_amount * weight) / total_claim

where total_claim = sum(outstanding_share_i * weight_i) over live classes.
It is recomputed on every redemption, so a weight change moves every class's
slice of the existing vault at once without per-class sub-ledgers.

Example (fee 0.3%, A at 2.0x, B at 0.5x):
    A: 99.7 shares, B: 199.4 shares, vault = 300
    total_claim = 99.7*2 + 199.4*0.5 = 299.1
    B redeems all: 300 * 99.7 / 299.1 = 100, vault = 200
    A redeems all: 200 * 199.4 / 199.4 = 200, vault = 0

Flooring keeps the remainder in the vault, so vault / total_claim for the
remaining holders never drops because someone else redeemed.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from fixed_point import checked_mul, checked_sub, mul_div
from multistake_config import U64_MAX, U128_BITS
from multistake_datum_types import BurnShare, MoveBaseAsset, PoolDatum, TransferInstruction
from multistake_errors import InsufficientReserves, InsufficientShares, InvalidAmount
from pool_state import require_id, require_slot, total_claim, vault_account

log = logging.getLogger(__name__)


@dataclass
class UnstakeResult:
    """Outcome of one redemption."""
    index: int
    shares_burned: int
    payout: int
    transfers: List[TransferInstruction] = field(default_factory=list)


def quote_redeem(pool: PoolDatum, class_id: bytes, share_amount: int) -> int:
    """Base asset that redeeming `share_amount` of `class_id` pays right now."""
    if not 0 < share_amount <= U64_MAX:
        raise InvalidAmount("Share amount must be positive")
    index = require_slot(pool, class_id)
    slot = pool.slots[index]

    if slot.outstanding_share < share_amount:
        raise InsufficientShares(
            f"Class has {slot.outstanding_share} shares outstanding, {share_amount} requested"
        )

    claim_total = total_claim(pool)
    if claim_total == 0:
        raise InsufficientReserves("No weighted claim to redeem against")

    redeemed_claim = checked_mul(share_amount, slot.weight, U128_BITS)
    payout = mul_div(pool.vault_balance, redeemed_claim, claim_total)

    if payout > pool.vault_balance:
        raise InsufficientReserves(f"Payout {payout} exceeds vault balance {pool.vault_balance}")
    return payout


def redeem(pool: PoolDatum, class_id: bytes, share_amount: int, redeemer: bytes) -> UnstakeResult:
    """
    Burn `share_amount` share units of `class_id` held by `redeemer`.

    Returns the payout and the burn/move instructions for Asset Transfer.
    """
    require_id(redeemer, "redeemer")
    payout = quote_redeem(pool, class_id, share_amount)
    index = require_slot(pool, class_id)
    slot = pool.slots[index]

    new_share = checked_sub(slot.outstanding_share, share_amount)
    new_vault = checked_sub(pool.vault_balance, payout)
    slot.outstanding_share = new_share
    pool.vault_balance = new_vault

    transfers = [BurnShare(class_id=class_id, holder=redeemer, amount=share_amount)]
    if payout > 0:
        transfers.append(
            MoveBaseAsset(
                asset_id=pool.base_asset_id,
                source=vault_account(pool),
                destination=redeemer,
                amount=payout,
            )
        )

    log.info(
        "Unstaked: user: %s, index: %d, shares_burned: %d, redeemed: %d",
        redeemer.hex(), index, share_amount, payout,
    )
    return UnstakeResult(index=index, shares_burned=share_amount, payout=payout, transfers=transfers)
