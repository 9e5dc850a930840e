"""
Stake Accountant - converts a base-asset deposit into class share units.

One share unit is issued per unit of base asset left after the deposit fee.
Weight plays no part in issuance, only in redemption. The fee stays in the
vault as surplus for every class, so the vault always grows by at least as
much as the class claim does.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from fixed_point import checked_add, checked_sub, mul_div
from multistake_config import U64_MAX
from multistake_datum_types import MintShare, MoveBaseAsset, PoolDatum, TransferInstruction
from multistake_errors import InvalidAmount
from pool_state import require_id, require_slot, vault_account

log = logging.getLogger(__name__)


@dataclass
class StakeResult:
    """Outcome of one deposit."""
    index: int
    amount: int
    fee: int
    shares_issued: int
    transfers: List[TransferInstruction] = field(default_factory=list)


def quote_deposit(pool: PoolDatum, amount: int) -> Tuple[int, int]:
    """(fee, net) for depositing `amount`: fee = floor(amount * n / d)."""
    if not 0 < amount <= U64_MAX:
        raise InvalidAmount("Amount must be positive")
    fee = mul_div(amount, pool.fee_numerator, pool.fee_denominator)
    net = checked_sub(amount, fee)
    return fee, net


def deposit(pool: PoolDatum, class_id: bytes, amount: int, depositor: bytes) -> StakeResult:
    """
    Stake `amount` base asset into `class_id` on behalf of `depositor`.

    The full amount moves into the vault; `amount - fee` share units are
    minted to the depositor and added to the class's outstanding share.
    """
    require_id(depositor, "depositor")
    fee, net = quote_deposit(pool, amount)
    index = require_slot(pool, class_id)
    slot = pool.slots[index]

    # Compute both before writing either
    new_share = checked_add(slot.outstanding_share, net)
    new_vault = checked_add(pool.vault_balance, amount)
    slot.outstanding_share = new_share
    pool.vault_balance = new_vault

    transfers = [
        MoveBaseAsset(
            asset_id=pool.base_asset_id,
            source=depositor,
            destination=vault_account(pool),
            amount=amount,
        ),
    ]
    if net > 0:
        transfers.append(MintShare(class_id=class_id, holder=depositor, amount=net))

    log.info(
        "Staked: user: %s, index: %d, amount: %d, fee: %d, shares_minted: %d",
        depositor.hex(), index, amount, fee, net,
    )
    return StakeResult(index=index, amount=amount, fee=fee, shares_issued=net, transfers=transfers)
