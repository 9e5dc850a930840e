"""
Asset Transfer - moves base asset and class share balances.

The ledger never touches balances directly. Each accountant returns a list
of TransferInstruction records and the ledger hands the whole list to an
AssetTransfer, which must apply all of it or none of it.

InMemoryAssetTransfer is the reference implementation used by the ledger's
tests and by anything that simulates a pool off-chain.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from multistake_datum_types import BurnShare, MintShare, MoveBaseAsset, TransferInstruction
from multistake_errors import InsufficientFunds, InsufficientShares

log = logging.getLogger(__name__)


class AssetTransfer(ABC):
    """Atomic executor for a batch of transfer instructions."""

    @abstractmethod
    def execute(self, instructions: List[TransferInstruction]) -> None:
        """Apply every instruction, or raise and apply none."""


class InMemoryAssetTransfer(AssetTransfer):
    """
    Balances held in dicts.

    base_balances: (asset_id, account) -> amount
    share_balances: (class_id, holder) -> amount

    Usage:
        transfer = InMemoryAssetTransfer()
        transfer.fund(asset_id, alice, 1_000)
        transfer.execute([MoveBaseAsset(asset_id, alice, vault, 400)])
        transfer.base_balance(asset_id, vault)  # 400
    """

    def __init__(self):
        self.base_balances: Dict[Tuple[bytes, bytes], int] = {}
        self.share_balances: Dict[Tuple[bytes, bytes], int] = {}

    def fund(self, asset_id: bytes, account: bytes, amount: int) -> None:
        """Credit base asset from outside the system (faucet)."""
        key = (asset_id, account)
        self.base_balances[key] = self.base_balances.get(key, 0) + amount

    def base_balance(self, asset_id: bytes, account: bytes) -> int:
        return self.base_balances.get((asset_id, account), 0)

    def share_balance(self, class_id: bytes, holder: bytes) -> int:
        return self.share_balances.get((class_id, holder), 0)

    def execute(self, instructions: List[TransferInstruction]) -> None:
        base = dict(self.base_balances)
        shares = dict(self.share_balances)

        for ins in instructions:
            if isinstance(ins, MoveBaseAsset):
                src = (ins.asset_id, ins.source)
                if base.get(src, 0) < ins.amount:
                    raise InsufficientFunds(
                        f"Account {ins.source.hex()} holds {base.get(src, 0)}, needs {ins.amount}"
                    )
                base[src] = base.get(src, 0) - ins.amount
                dst = (ins.asset_id, ins.destination)
                base[dst] = base.get(dst, 0) + ins.amount
            elif isinstance(ins, MintShare):
                key = (ins.class_id, ins.holder)
                shares[key] = shares.get(key, 0) + ins.amount
            elif isinstance(ins, BurnShare):
                key = (ins.class_id, ins.holder)
                if shares.get(key, 0) < ins.amount:
                    raise InsufficientShares(
                        f"Holder {ins.holder.hex()} holds {shares.get(key, 0)} shares, needs {ins.amount}"
                    )
                shares[key] = shares.get(key, 0) - ins.amount
            else:
                raise TypeError(f"Unknown transfer instruction: {type(ins).__name__}")

        # All instructions validated against the working copies
        self.base_balances = base
        self.share_balances = shares
        log.debug("Executed %d transfer instructions", len(instructions))
