from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

from .codec import (
    encode_create_draw,
    encode_empty,
    encode_luck_roll,
    encode_top_up,
)
from .config import Settings
from .draw import fresh_entropy, to_coins, to_nano
from .models import Draw
from .project_constants import CREATE_POLICIES
from .rpc import RpcClient, load_seed_from_block_feed_file
from .sandbox import Sandbox, SendResult, resolve_wallet, seeded_sources
from .verify import build_audit, verify_audit


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        rpc_url_override=args.rpc_url,
        state_file_override=args.state,
        create_policy_override=args.policy,
    )


def _open(settings: Settings, base_seed: Optional[str] = None) -> Sandbox:
    return Sandbox.load(
        settings.state_file,
        policy=settings.policy,
        random_sources=seeded_sources(base_seed),
    )


def _resolve_seed(args: argparse.Namespace, settings: Settings) -> Tuple[str, str]:
    log = logging.getLogger("seed")
    if args.block_feed_file:
        seed = load_seed_from_block_feed_file(args.block_feed_file, seqno_hint=args.seqno)
        source = f"file:{args.block_feed_file}"
    elif settings.rpc_url:
        rpc = RpcClient(settings.rpc_url, timeout_s=args.timeout)
        try:
            seed = rpc.get_latest_block_seed()
            source = "rpc:getMasterchainInfo"
        finally:
            rpc.close()
    else:
        seed = fresh_entropy()
        source = "local:secrets"
    log.info("Seed        : %s", seed)
    log.info("Seed source : %s", source)
    return seed, source


def _draw_json(draw: Draw) -> Dict[str, Any]:
    return {
        "min_entry_amount": to_coins(draw.min_entry_amount),
        "entry_amount_limit": to_coins(draw.entry_amount_limit),
        "pool_sum": to_coins(draw.pool_sum),
        "participant_count": draw.participant_count,
        "participants": {
            addr.to_raw(): to_coins(v) for addr, v in sorted(draw.participants.items())
        },
    }


def _report(result: SendResult) -> int:
    for tx in result.transactions:
        status = "ok" if tx.success else ("aborted" if tx.aborted else f"exit {tx.exit_code}")
        kind = " (bounce)" if tx.bounced else ""
        print(f"lt={tx.lt:<6} {tx.src} -> {tx.dest}  {to_coins(tx.value):>14}  {status}{kind}")
    return 0 if result.inbound.success else 1


def _send(args: argparse.Namespace, body: bytes, base_seed: Optional[str] = None) -> SendResult:
    settings = _settings(args)
    sandbox = _open(settings, base_seed)
    sender = sandbox.wallet(args.sender)
    result = sandbox.send(sender, to_nano(args.value), body)
    sandbox.save(settings.state_file)
    return result


def cmd_deploy(args: argparse.Namespace) -> int:
    settings = _settings(args)
    if os.path.exists(settings.state_file) and not args.force:
        raise SystemExit(f"{settings.state_file} exists; pass --force to overwrite.")

    owner = resolve_wallet(args.owner)
    try:
        sandbox = Sandbox.deploy(owner, args.fee, to_nano(args.value), policy=settings.policy)
    except ValueError as e:
        raise SystemExit(str(e))
    sandbox.save(settings.state_file)

    print("========================================")
    print("RANDOM WIN DEPLOYED")
    print("========================================")
    print(f"Contract      : {sandbox.address.to_friendly()}")
    print(f"Owner         : {owner.to_friendly()}")
    print(f"Fee percent   : {args.fee}")
    print(f"Create policy : {settings.create_policy}")
    print(f"State file    : {settings.state_file}")
    return 0


def cmd_create_draw(args: argparse.Namespace) -> int:
    body = encode_create_draw(
        args.query_id, args.draw_id, to_nano(args.min_entry), to_nano(args.limit)
    )
    return _report(_send(args, body))


def cmd_roll(args: argparse.Namespace) -> int:
    settings = _settings(args)
    seed, seed_source = _resolve_seed(args, settings)
    result = _send(args, encode_luck_roll(args.query_id, args.draw_id), base_seed=seed)
    rc = _report(result)

    if result.payout is not None:
        record = result.payout
        audit = build_audit(record)
        audit["metadata"]["seed_source"] = seed_source
        with open(args.audit_out, "w", encoding="utf-8") as f:
            json.dump(audit, f, indent=2)

        print("----------------------------------------")
        print(f"DRAW {record.draw_id} RESOLVED")
        print(f"Pool          : {to_coins(record.pool_sum)}")
        print(f"Payout        : {to_coins(record.payout)}")
        print(f"Fee           : {to_coins(record.fee)}")
        print(f"Winner        : {record.winner.to_friendly()}")
        print(f"Wrote audit   : {args.audit_out}")
    return rc


def cmd_top_up(args: argparse.Namespace) -> int:
    return _report(_send(args, encode_top_up()))


def cmd_transfer(args: argparse.Namespace) -> int:
    return _report(_send(args, encode_empty()))


def cmd_send_raw(args: argparse.Namespace) -> int:
    try:
        body = bytes.fromhex(args.body)
    except ValueError as e:
        raise SystemExit(f"--body must be hex: {e}")
    return _report(_send(args, body))


def cmd_get_owner(args: argparse.Namespace) -> int:
    sandbox = _open(_settings(args))
    owner = sandbox.get_owner()
    print(f"Owner (raw)      : {owner.to_raw()}")
    print(f"Owner (friendly) : {owner.to_friendly()}")
    return 0


def cmd_get_draw(args: argparse.Namespace) -> int:
    sandbox = _open(_settings(args))
    draw = sandbox.get_draw(args.draw_id)
    if draw is None:
        print(f"Draw {args.draw_id} not found")
        return 1
    print(json.dumps(_draw_json(draw), indent=2))
    return 0


def cmd_storage(args: argparse.Namespace) -> int:
    sandbox = _open(_settings(args))
    storage = sandbox.get_storage()
    print(
        json.dumps(
            {
                "owner": storage["owner"].to_raw(),
                "fee_percent": storage["fee_percent"],
                "balance": to_coins(sandbox.balance),
                "draws": {
                    str(draw_id): _draw_json(d)
                    for draw_id, d in sorted(storage["draws"].items())
                },
            },
            indent=2,
        )
    )
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    result = verify_audit(args.audit)
    print("AUDIT VERIFIED")
    print(f"Winner         : {result['winner']}")
    print(f"Winning ticket : {result['winning_ticket']}")
    print(f"Total stake    : {to_coins(result['total_stake'])}")
    print(f"Payout         : {to_coins(result['payout'])}")
    print(f"Seed SHA-256   : {result['seed_hash_hex']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="random-win",
        description="Pooled-stake lottery contract running on a local sandbox.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--state", default=None, help="Contract state file (else use env).")
    p.add_argument("--rpc-url", default=None, help="Override seed RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument(
        "--policy",
        choices=CREATE_POLICIES,
        default=None,
        help="Who may create draws (else use env).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("deploy", help="Deploy a fresh contract into the state file.")
    d.add_argument("--owner", required=True, help="Owner address or wallet label.")
    d.add_argument("--fee", type=int, default=0, help="Owner fee percent (0..100).")
    d.add_argument("--value", default="0.05", help="Coins attached to the deploy message.")
    d.add_argument("--force", action="store_true", help="Overwrite existing state.")
    d.set_defaults(func=cmd_deploy)

    def sender_args(sp: argparse.ArgumentParser, value_default: Optional[str] = None) -> None:
        sp.add_argument(
            "--from", dest="sender", required=True, help="Sender address or wallet label."
        )
        sp.add_argument(
            "--value",
            required=value_default is None,
            default=value_default,
            help="Coins attached to the message.",
        )

    c = sub.add_parser("create-draw", help="Create a draw funded by the attached value.")
    sender_args(c)
    c.add_argument("--draw-id", required=True, type=int)
    c.add_argument("--min-entry", required=True, help="Minimum stake, in coins.")
    c.add_argument("--limit", required=True, help="Pool size that triggers payout, in coins.")
    c.add_argument("--query-id", type=int, default=0)
    c.set_defaults(func=cmd_create_draw)

    r = sub.add_parser("roll", help="Stake the attached value into a draw.")
    sender_args(r)
    r.add_argument("--draw-id", required=True, type=int)
    r.add_argument("--query-id", type=int, default=0)
    r.add_argument(
        "--block-feed-file",
        default=None,
        help=(
            "File holding the seed: a raw root hash or a saved "
            "getMasterchainInfo reply."
        ),
    )
    r.add_argument("--seqno", type=int, default=None, help="Expected block seqno in the feed.")
    r.add_argument("--audit-out", default="audit.json", help="Audit output JSON path.")
    r.set_defaults(func=cmd_roll)

    t = sub.add_parser("top-up", help="Add coins to the contract balance.")
    sender_args(t)
    t.set_defaults(func=cmd_top_up)

    tr = sub.add_parser("transfer", help="Send coins with an empty body.")
    sender_args(tr)
    tr.set_defaults(func=cmd_transfer)

    sr = sub.add_parser("send-raw", help="Send an arbitrary hex-encoded body.")
    sender_args(sr, value_default="0.05")
    sr.add_argument("--body", required=True, help="Body bytes as hex.")
    sr.set_defaults(func=cmd_send_raw)

    go = sub.add_parser("get-owner", help="Print the contract owner.")
    go.set_defaults(func=cmd_get_owner)

    gd = sub.add_parser("get-draw", help="Print one draw.")
    gd.add_argument("--draw-id", required=True, type=int)
    gd.set_defaults(func=cmd_get_draw)

    st = sub.add_parser("storage", help="Print the full contract storage.")
    st.set_defaults(func=cmd_storage)

    v = sub.add_parser("verify", help="Verify an existing audit.json deterministically.")
    v.add_argument("--audit", required=True, help="Path to audit.json.")
    v.set_defaults(func=cmd_verify)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))
