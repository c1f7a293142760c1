from __future__ import annotations

import hashlib
import secrets
from bisect import bisect_right
from decimal import Decimal, InvalidOperation, localcontext
from itertools import accumulate
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from tonsdk.utils import from_nano
from tonsdk.utils import to_nano as ton_to_nano

from .address import Address
from .models import EntrantRange
from .project_constants import COIN_DECIMALS


class RandomSource(Protocol):
    # Seed the pick can be replayed from; None when it cannot be replayed
    seed: Optional[str]

    def weighted_pick(self, weights: Sequence[int]) -> int:
        """Index into `weights`, chosen with probability weight / sum(weights)."""
        ...


def to_coins(raw_amount: int) -> str:
    return f"{Decimal(from_nano(raw_amount, 'ton')).normalize():f}"


def to_nano(amount: str) -> int:
    text = str(amount).strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a coin amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise ValueError(f"Not a non-negative coin amount: {amount!r}")
    # tonsdk truncates extra decimals silently
    with localcontext() as ctx:
        ctx.prec = 999
        raw = value.scaleb(COIN_DECIMALS)
    if raw != raw.to_integral_value():
        raise ValueError(f"More than {COIN_DECIMALS} decimals: {amount!r}")
    return int(ton_to_nano(text, "ton"))


def build_ranges(participants: Dict[Address, int]) -> Tuple[List[EntrantRange], int]:
    # Deterministic ordering (critical for reproducibility)
    ranges: List[EntrantRange] = []
    cursor = 0
    for addr in sorted(participants):
        stake = participants[addr]
        if stake <= 0:
            continue
        ranges.append(EntrantRange(addr, stake, cursor, cursor + stake))
        cursor += stake
    return ranges, cursor


def compute_ticket(seed: str, total_tickets: int) -> Tuple[int, str, int]:
    seed_hash_hex = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    seed_int = int(seed_hash_hex, 16)
    return seed_int % total_tickets, seed_hash_hex, seed_int


def ticket_index(ends: Sequence[int], ticket: int) -> int:
    """Position of the range `[ends[i-1], ends[i])` holding `ticket`."""
    idx = bisect_right(ends, ticket)
    if idx >= len(ends):
        raise RuntimeError("Ticket out of range (unexpected).")
    return idx


def find_winner(ranges: List[EntrantRange], ticket: int) -> EntrantRange:
    return ranges[ticket_index([r.end_ticket for r in ranges], ticket)]


def fresh_entropy() -> str:
    return secrets.token_hex(32)


def derive_message_seed(base_seed: str, lt: int) -> str:
    """One seed per processed message: the base seed bound to its logical time."""
    return f"{base_seed}:{lt}"


class SeededRandomSource:
    """Stake-weighted pick from a sha256 seed, reproducible from the seed alone."""

    def __init__(self, seed: str) -> None:
        self.seed: Optional[str] = seed

    def weighted_pick(self, weights: Sequence[int]) -> int:
        ends = list(accumulate(weights))
        total = ends[-1] if ends else 0
        if total <= 0:
            raise ValueError("Cannot pick from zero total weight")
        ticket, _, _ = compute_ticket(self.seed, total)
        return ticket_index(ends, ticket)
