"""
Message router and read-only getters of the RandomWin contract.

`process_message` is the single entry point: it takes the storage loaded
before the message and returns an `Outcome` holding the storage to persist
afterwards, plus at most one outbound transfer. A rejected message always
returns the input storage untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from . import ledger, payout
from .address import Address
from .codec import decode_message_body
from .draw import RandomSource, to_coins
from .errors import CodecError, ContractError, WrongOpError
from .models import (
    ContractPolicy,
    ContractStorage,
    CreateDraw,
    Draw,
    InboundMessage,
    LuckRoll,
    Outcome,
    TopUp,
)

log = logging.getLogger(__name__)


def process_message(
    storage: ContractStorage,
    message: InboundMessage,
    random_source: RandomSource,
    policy: Optional[ContractPolicy] = None,
) -> Outcome:
    policy = policy or ContractPolicy()
    working = storage.copy()
    try:
        outcome = _dispatch(working, message, random_source, policy)
    except ContractError as e:
        log.info(
            "Rejected message from %s (value %s): %s",
            message.sender,
            to_coins(message.value),
            e,
        )
        return Outcome(
            storage=storage,
            success=False,
            exit_code=e.exit_code,
            aborted=e.aborted,
            error=str(e),
        )
    return outcome


def _dispatch(
    storage: ContractStorage,
    message: InboundMessage,
    random_source: RandomSource,
    policy: ContractPolicy,
) -> Outcome:
    try:
        body = decode_message_body(message.body)
    except CodecError as e:
        raise WrongOpError(str(e))

    if body is None or isinstance(body, TopUp):
        # Plain transfer or top-up: value joins the contract balance
        return Outcome(storage=storage)

    if isinstance(body, CreateDraw):
        ledger.create_draw(
            storage,
            draw_id=body.draw_id,
            min_entry_amount=body.min_entry_amount,
            entry_amount_limit=body.entry_amount_limit,
            funding_value=message.value,
            sender=message.sender,
            policy=policy,
        )
        return Outcome(storage=storage)

    if isinstance(body, LuckRoll):
        accepted, refund = ledger.stake(
            storage, body.draw_id, message.value, message.sender, policy
        )
        if not accepted:
            return Outcome(storage=storage, transfers=[refund] if refund else [])

        transfer, record = payout.resolve(storage, body.draw_id, random_source)
        return Outcome(
            storage=storage,
            transfers=[transfer] if transfer else [],
            payout=record,
        )

    raise WrongOpError(f"Unhandled message body {body!r}")


# Getters


def get_owner(storage: ContractStorage) -> Address:
    return storage.owner


def get_draw(storage: ContractStorage, draw_id: int) -> Optional[Draw]:
    draw = storage.draws.get(draw_id)
    return draw.copy() if draw is not None else None


def get_storage(storage: ContractStorage) -> Dict[str, Any]:
    return {
        "owner": storage.owner,
        "fee_percent": storage.fee_percent,
        "draws": {draw_id: d.copy() for draw_id, d in storage.draws.items()},
    }
