"""Core data models of the RandomWin contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .address import Address
from .project_constants import CREATE_POLICY_ANYONE, DEFAULT_PROCESSING_FEE


@dataclass(frozen=True)
class ContractPolicy:
    """Execution parameters that are not part of persisted storage."""

    create_policy: str = CREATE_POLICY_ANYONE
    processing_fee: int = DEFAULT_PROCESSING_FEE


@dataclass
class Draw:
    """One lottery round: pool, thresholds and participant ledger."""

    min_entry_amount: int
    entry_amount_limit: int
    pool_sum: int
    participant_count: int = 0
    participants: Dict[Address, int] = field(default_factory=dict)

    def copy(self) -> "Draw":
        return Draw(
            min_entry_amount=self.min_entry_amount,
            entry_amount_limit=self.entry_amount_limit,
            pool_sum=self.pool_sum,
            participant_count=self.participant_count,
            participants=dict(self.participants),
        )


@dataclass
class ContractStorage:
    """Persisted root state, loaded and saved around every message."""

    owner: Address
    fee_percent: int
    draws: Dict[int, Draw] = field(default_factory=dict)

    def copy(self) -> "ContractStorage":
        return ContractStorage(
            owner=self.owner,
            fee_percent=self.fee_percent,
            draws={draw_id: d.copy() for draw_id, d in self.draws.items()},
        )


# Decoded message bodies


@dataclass(frozen=True)
class CreateDraw:
    query_id: int
    draw_id: int
    min_entry_amount: int
    entry_amount_limit: int


@dataclass(frozen=True)
class LuckRoll:
    query_id: int
    draw_id: int


@dataclass(frozen=True)
class TopUp:
    pass


MessageBody = Union[CreateDraw, LuckRoll, TopUp]


@dataclass(frozen=True)
class InboundMessage:
    sender: Address
    value: int
    body: bytes = b""


@dataclass(frozen=True)
class OutboundTransfer:
    """Fire-and-forget value transfer emitted by the contract."""

    dest: Address
    value: int
    reason: str  # "refund" | "payout"


@dataclass(frozen=True)
class EntrantRange:
    address: Address
    stake: int
    start_ticket: int
    end_ticket: int  # exclusive


@dataclass(frozen=True)
class PayoutRecord:
    """Everything needed to audit one threshold resolution."""

    draw_id: int
    pool_sum: int
    fee_percent: int
    payout: int
    fee: int
    winner: Address
    seed: Optional[str]
    ranges: List[EntrantRange]


@dataclass
class Outcome:
    """Result of processing one inbound message."""

    storage: ContractStorage
    success: bool = True
    exit_code: Optional[int] = 0  # None for aborted messages
    aborted: bool = False
    transfers: List[OutboundTransfer] = field(default_factory=list)
    payout: Optional[PayoutRecord] = None
    error: Optional[str] = None
