from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict

from .address import Address
from .draw import compute_ticket, find_winner
from .models import EntrantRange, PayoutRecord
from .payout import split_pool


def build_audit(record: PayoutRecord) -> Dict[str, Any]:
    if record.seed is None:
        raise RuntimeError("Payout was not drawn from a seeded source; nothing to audit.")

    total = record.ranges[-1].end_ticket if record.ranges else 0
    ticket, seed_hash_hex, seed_int = compute_ticket(record.seed, total)
    return {
        "metadata": {
            "tool": "random-win",
            "version": "1.0.0",
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "draw_id": record.draw_id,
            "seed": record.seed,
            "seed_hash_hex": seed_hash_hex,
            "seed_int": str(seed_int),  # big int; store as string for safety
            "total_stake": total,
            "winning_ticket": ticket,
            "pool_sum": record.pool_sum,
            "fee_percent": record.fee_percent,
            "payout": record.payout,
            "fee": record.fee,
        },
        "winner": {
            "address": record.winner.to_raw(),
        },
        # Entrants in deterministic order with ranges so anyone can re-run.
        "all_entrants": [
            {
                "address": r.address.to_raw(),
                "stake": r.stake,
                "start_ticket": r.start_ticket,
                "end_ticket": r.end_ticket,
            }
            for r in record.ranges
        ],
    }


def verify_audit(audit_path: str) -> Dict[str, Any]:
    with open(audit_path, "r", encoding="utf-8") as f:
        audit = json.load(f)

    meta = audit["metadata"]
    seed = meta["seed"]
    total_stake = int(meta["total_stake"])
    winning_ticket_expected = int(meta["winning_ticket"])

    # Recreate ranges from stored entrants; they must be contiguous
    ranges = []
    cursor = 0
    for e in audit["all_entrants"]:
        stake = int(e["stake"])
        if int(e["start_ticket"]) != cursor or int(e["end_ticket"]) != cursor + stake:
            raise RuntimeError(f"Entrant range mismatch for {e['address']}")
        ranges.append(EntrantRange(Address.parse(e["address"]), stake, cursor, cursor + stake))
        cursor += stake

    if cursor != total_stake:
        raise RuntimeError(
            f"Total stake mismatch: audit={total_stake} recomputed={cursor}"
        )

    ticket, seed_hash_hex, seed_int = compute_ticket(seed, total_stake)
    if ticket != winning_ticket_expected:
        raise RuntimeError(
            f"Winning ticket mismatch: audit={winning_ticket_expected} recomputed={ticket}"
        )

    winner = find_winner(ranges, ticket)
    winner_expected = Address.parse(audit["winner"]["address"])
    if winner.address != winner_expected:
        raise RuntimeError(
            f"Winner mismatch: audit={winner_expected} recomputed={winner.address}"
        )

    payout, fee = split_pool(int(meta["pool_sum"]), int(meta["fee_percent"]))
    if payout != int(meta["payout"]) or fee != int(meta["fee"]):
        raise RuntimeError(
            f"Fee split mismatch: audit={meta['payout']}/{meta['fee']} recomputed={payout}/{fee}"
        )

    return {
        "ok": True,
        "seed_hash_hex": seed_hash_hex,
        "seed_int": seed_int,
        "winner": winner.address.to_raw(),
        "winning_ticket": ticket,
        "total_stake": total_stake,
        "payout": payout,
    }
