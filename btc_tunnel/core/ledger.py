"""Tunnel ledger interface and in-memory implementation."""

from typing import Dict, List, Optional, Protocol
import structlog

from btc_tunnel.models.ledger import ConfirmedDepositRecord, FeeSchedule, WithdrawalRecord
from btc_tunnel.utils.script import script_hash

logger = structlog.get_logger(__name__)


class TunnelLedger(Protocol):
    """Read-only ledger queries the validators depend on."""

    def is_deposit_acknowledged(self, txid: str) -> bool:
        """Whether a deposit txid has already been credited."""
        ...

    def collectable_fee(self, txid: str) -> int:
        """Protocol fee still to collect from a deposit; zero once swept or if unknown."""
        ...

    def deposit_output_index(self, txid: str) -> int:
        """Output index of the acknowledged deposit in its transaction."""
        ...

    def calculate_deposit_fee(self, amount: int) -> int:
        """Protocol fee charged on a deposit of ``amount`` sats."""
        ...

    def withdrawal_by_index(self, index: int) -> Optional[WithdrawalRecord]:
        """Withdrawal record by counter, or None."""
        ...


class InMemoryLedger:
    """
    Dict-backed ledger.

    The mutating methods belong to the surrounding vault layer, which calls
    them only after a validator has accepted the claim.
    """

    def __init__(self, fee_schedule: Optional[FeeSchedule] = None):
        self.fee_schedule = fee_schedule or FeeSchedule()
        self.logger = logger.bind(component="ledger")
        self._deposits: Dict[str, ConfirmedDepositRecord] = {}
        self._withdrawals: List[WithdrawalRecord] = []
        self._finalized_withdrawals: Dict[int, str] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_deposit_acknowledged(self, txid: str) -> bool:
        return txid in self._deposits

    def collectable_fee(self, txid: str) -> int:
        record = self._deposits.get(txid)
        return record.collectable_fee if record else 0

    def deposit_output_index(self, txid: str) -> int:
        record = self._deposits.get(txid)
        return record.output_index if record else 0

    def deposit(self, txid: str) -> Optional[ConfirmedDepositRecord]:
        return self._deposits.get(txid)

    def calculate_deposit_fee(self, amount: int) -> int:
        return self.fee_schedule.deposit_fee(amount)

    def calculate_withdrawal_fee(self, amount: int) -> int:
        return self.fee_schedule.withdrawal_fee(amount)

    def withdrawal_by_index(self, index: int) -> Optional[WithdrawalRecord]:
        if 0 <= index < len(self._withdrawals):
            return self._withdrawals[index]
        return None

    def check_pending_withdrawals_for_match(self, destination_hash: bytes, net_amount: int) -> bool:
        """Whether an unfinalized withdrawal pays ``net_amount`` to the hashed script."""
        for record in self._withdrawals:
            if record.counter in self._finalized_withdrawals:
                continue
            if script_hash(record.destination_script) == destination_hash and record.net_amount == net_amount:
                return True
        return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def acknowledge_deposit(self, txid: str, output_index: int, fee: int,
                            depositor: Optional[bytes] = None, net_sats: int = 0) -> ConfirmedDepositRecord:
        """Record a confirmed deposit whose fee is collectable at sweep time."""
        if txid in self._deposits:
            raise ValueError(f"Deposit already acknowledged: {txid}")
        if fee <= 0:
            raise ValueError("Collectable fee must be positive")

        record = ConfirmedDepositRecord(
            txid=txid,
            output_index=output_index,
            collectable_fee=fee,
            depositor=depositor,
            net_sats=net_sats,
        )
        self._deposits[txid] = record
        self.logger.info("Deposit acknowledged", txid=txid, output_index=output_index, fee=fee)
        return record

    def mark_deposit_swept(self, txid: str) -> None:
        """Zero the collectable fee of a deposit consolidated by a sweep."""
        record = self._deposits.get(txid)
        if record is None:
            raise KeyError(txid)
        record.collectable_fee = 0
        self.logger.info("Deposit swept", txid=txid)

    def add_withdrawal(self, amount: int, fee: int, timestamp_requested: int,
                       destination_script: bytes, evm_originator: bytes) -> WithdrawalRecord:
        """Queue a withdrawal; its counter is its position in the queue."""
        if amount <= 0 or fee >= amount:
            raise ValueError("Withdrawal amount must be positive and exceed its fee")

        record = WithdrawalRecord(
            counter=len(self._withdrawals),
            amount=amount,
            fee=fee,
            timestamp_requested=timestamp_requested,
            destination_script=destination_script,
            evm_originator=evm_originator,
        )
        self._withdrawals.append(record)
        self.logger.info("Withdrawal queued", counter=record.counter, amount=amount, fee=fee)
        return record

    def finalize_withdrawal(self, index: int, txid: str) -> None:
        """Mark a withdrawal as paid out by ``txid``."""
        if self.withdrawal_by_index(index) is None:
            raise KeyError(index)
        if index in self._finalized_withdrawals:
            raise ValueError(f"Withdrawal {index} already finalized")
        self._finalized_withdrawals[index] = txid
        self.logger.info("Withdrawal finalized", counter=index, txid=txid)

    def is_withdrawal_finalized(self, index: int) -> bool:
        return index in self._finalized_withdrawals
