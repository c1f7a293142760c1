"""Draw lifecycle and stake accumulation."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .address import Address
from .draw import to_coins
from .errors import (
    DrawAlreadyExistsError,
    DrawNotFoundError,
    InsufficientValueError,
    NotOwnerError,
)
from .models import ContractPolicy, ContractStorage, Draw, OutboundTransfer
from .project_constants import CREATE_POLICY_OWNER

log = logging.getLogger(__name__)


def require_processing_value(value: int, policy: ContractPolicy) -> None:
    if value == 0 or value < policy.processing_fee:
        raise InsufficientValueError(
            f"Attached value {to_coins(value)} cannot cover processing fee "
            f"{to_coins(policy.processing_fee)}"
        )


def create_draw(
    storage: ContractStorage,
    draw_id: int,
    min_entry_amount: int,
    entry_amount_limit: int,
    funding_value: int,
    sender: Address,
    policy: ContractPolicy,
) -> Draw:
    require_processing_value(funding_value, policy)

    if policy.create_policy == CREATE_POLICY_OWNER and sender != storage.owner:
        raise NotOwnerError(f"Only the owner may create draws, not {sender}")

    if draw_id in storage.draws:
        raise DrawAlreadyExistsError(f"Draw {draw_id} already exists")

    draw = Draw(
        min_entry_amount=min_entry_amount,
        entry_amount_limit=entry_amount_limit,
        pool_sum=funding_value,
    )
    storage.draws[draw_id] = draw
    log.info(
        "Draw %d created: min entry %s, limit %s, funding %s",
        draw_id,
        to_coins(min_entry_amount),
        to_coins(entry_amount_limit),
        to_coins(funding_value),
    )
    return draw


def refund_for(value: int, policy: ContractPolicy) -> int:
    """
    What a declined stake gets back: `value` minus the processing fee, with
    the deduction capped so at least one nano is kept and one returned.
    """
    if value <= 1:
        return 0
    return value - max(1, min(policy.processing_fee, value - 1))


def stake(
    storage: ContractStorage,
    draw_id: int,
    value: int,
    sender: Address,
    policy: ContractPolicy,
) -> Tuple[bool, Optional[OutboundTransfer]]:
    """
    Adds `value` to the draw on behalf of `sender`.

    Returns `(accepted, refund)`. A zero stake, or one below the draw's
    minimum entry, is declined: the draw is left untouched and the value,
    minus the processing fee, is refunded when anything is left of it.
    """
    draw = storage.draws.get(draw_id)
    if draw is None:
        raise DrawNotFoundError(f"Draw {draw_id} not found")

    if value == 0 or value < draw.min_entry_amount:
        refund = refund_for(value, policy)
        log.info(
            "Stake %s on draw %d below minimum %s; declined",
            to_coins(value),
            draw_id,
            to_coins(draw.min_entry_amount),
        )
        if refund <= 0:
            return False, None
        return False, OutboundTransfer(dest=sender, value=refund, reason="refund")

    draw.pool_sum += value
    if sender not in draw.participants:
        draw.participants[sender] = 0
        draw.participant_count += 1
    draw.participants[sender] += value
    log.debug(
        "Draw %d: %s staked %s (pool %s)",
        draw_id,
        sender,
        to_coins(value),
        to_coins(draw.pool_sum),
    )
    return True, None
