from __future__ import annotations

import logging
from typing import Optional, Tuple

from .draw import RandomSource, build_ranges, to_coins
from .errors import DrawNotFoundError
from .models import ContractStorage, OutboundTransfer, PayoutRecord

log = logging.getLogger(__name__)


def split_pool(pool_sum: int, fee_percent: int) -> Tuple[int, int]:
    """Returns (payout, fee); the fee is what stays with the contract."""
    payout = pool_sum * (100 - fee_percent) // 100
    return payout, pool_sum - payout


def resolve(
    storage: ContractStorage, draw_id: int, random_source: RandomSource
) -> Tuple[Optional[OutboundTransfer], Optional[PayoutRecord]]:
    """
    Pays out and deletes the draw once its pool has reached the limit.

    Returns (None, None) while the draw is still below its limit. The payout
    transfer is None only when the fee takes the whole pool.
    """
    draw = storage.draws.get(draw_id)
    if draw is None:
        raise DrawNotFoundError(f"Draw {draw_id} not found")

    if draw.pool_sum < draw.entry_amount_limit:
        return None, None

    ranges, total = build_ranges(draw.participants)
    if total <= 0:
        raise RuntimeError(f"Draw {draw_id} reached its limit without participants")

    idx = random_source.weighted_pick([r.stake for r in ranges])
    winner = ranges[idx]
    payout, fee = split_pool(draw.pool_sum, storage.fee_percent)
    log.debug(
        "Draw %d: %d entrants, %s total stake, picked index %d",
        draw_id,
        len(ranges),
        to_coins(total),
        idx,
    )

    del storage.draws[draw_id]
    log.info(
        "Draw %d resolved: pool %s, payout %s to %s, fee %s",
        draw_id,
        to_coins(draw.pool_sum),
        to_coins(payout),
        winner.address,
        to_coins(fee),
    )

    record = PayoutRecord(
        draw_id=draw_id,
        pool_sum=draw.pool_sum,
        fee_percent=storage.fee_percent,
        payout=payout,
        fee=fee,
        winner=winner.address,
        seed=random_source.seed,
        ranges=ranges,
    )
    if payout <= 0:
        return None, record
    return OutboundTransfer(dest=winner.address, value=payout, reason="payout"), record
