"""Structured results returned by the validators."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DepositVerdict:
    """Accepted deposit and the credit it earns."""
    net_sats: int
    fee_sats: int
    depositor: bytes

    @property
    def gross_sats(self) -> int:
        return self.net_sats + self.fee_sats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "net_sats": self.net_sats,
            "fee_sats": self.fee_sats,
            "depositor": "0x" + self.depositor.hex(),
        }


@dataclass(frozen=True)
class WithdrawalVerdict:
    """
    Accepted withdrawal payout with its fee reconciliation.

    At most one of ``fees_overpaid`` and ``fees_collected`` is nonzero.
    """
    fees_overpaid: int
    fees_collected: int
    amount: int
    created_change: bool
    change_value: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fees_overpaid": self.fees_overpaid,
            "fees_collected": self.fees_collected,
            "amount": self.amount,
            "created_change": self.created_change,
            "change_value": self.change_value,
        }


@dataclass(frozen=True)
class SweepVerdict:
    """Accepted sweep of confirmed deposits into a new custody UTXO."""
    swept_value: int
    net_deposit_value: int
    new_output_value: int
    swept_txids: List[str] = field(default_factory=list)

    @property
    def fee_divergence(self) -> int:
        """Bitcoin fee paid minus protocol fees collected by the sweep."""
        return self.net_deposit_value - self.swept_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "swept_value": self.swept_value,
            "net_deposit_value": self.net_deposit_value,
            "new_output_value": self.new_output_value,
            "swept_txids": list(self.swept_txids),
        }


@dataclass(frozen=True)
class CrawlOutcome:
    """Result of walking an accused spend back towards the live sweep UTXO."""
    is_invalid: bool
    hops: int
    reason: str
    resolved_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_invalid": self.is_invalid,
            "hops": self.hops,
            "reason": self.reason,
            "resolved_at": self.resolved_at,
        }
