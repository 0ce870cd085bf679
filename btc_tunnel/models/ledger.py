"""Ledger-side records consulted by the validators."""

from dataclasses import dataclass
from typing import Optional

BASIS_POINTS = 10000


@dataclass(frozen=True)
class WithdrawalRecord:
    """A withdrawal requested on the tunnel side and awaiting a Bitcoin payout."""
    counter: int
    amount: int
    fee: int
    timestamp_requested: int
    destination_script: bytes
    evm_originator: bytes

    @property
    def net_amount(self) -> int:
        """Sats the payout output must carry."""
        return self.amount - self.fee


@dataclass
class ConfirmedDepositRecord:
    """
    Acknowledged deposit.

    A nonzero collectable fee means the deposit is confirmed but not yet
    consolidated by a sweep.
    """
    txid: str
    output_index: int
    collectable_fee: int
    depositor: Optional[bytes] = None
    net_sats: int = 0

    @property
    def is_swept(self) -> bool:
        return self.collectable_fee == 0


@dataclass(frozen=True)
class FeeSchedule:
    """Protocol fee parameters of a vault."""
    deposit_fee_bps: int = 20
    min_deposit_fee_sats: int = 1000
    withdrawal_fee_bps: int = 30
    min_withdrawal_fee_sats: int = 1000

    def deposit_fee(self, amount: int) -> int:
        """Fee charged on a deposit of ``amount`` sats."""
        return max(self.min_deposit_fee_sats, amount * self.deposit_fee_bps // BASIS_POINTS)

    def withdrawal_fee(self, amount: int) -> int:
        """Fee charged on a withdrawal of ``amount`` sats."""
        return max(self.min_withdrawal_fee_sats, amount * self.withdrawal_fee_bps // BASIS_POINTS)
