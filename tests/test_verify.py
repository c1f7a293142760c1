from __future__ import annotations

import json

import pytest

from conftest import FixedPick, nano
from random_win.address import Address
from random_win.codec import encode_create_draw, encode_luck_roll
from random_win.contract import process_message
from random_win.draw import SeededRandomSource
from random_win.models import ContractStorage, InboundMessage
from random_win.verify import build_audit, verify_audit


def resolve_two_way(owner, source):
    s = ContractStorage(owner=owner, fee_percent=1)
    s = process_message(
        s,
        InboundMessage(owner, nano("0.5"), encode_create_draw(1, 1, nano("1"), nano("10"))),
        source,
    ).storage
    s = process_message(
        s, InboundMessage(Address.from_name("alice"), nano("3"), encode_luck_roll(2, 1)), source
    ).storage
    out = process_message(
        s, InboundMessage(Address.from_name("bob"), nano("6.5"), encode_luck_roll(3, 1)), source
    )
    return out.payout


@pytest.fixture
def audit_path(tmp_path, owner):
    record = resolve_two_way(owner, SeededRandomSource("block-root-hash:42"))
    path = tmp_path / "audit.json"
    path.write_text(json.dumps(build_audit(record)), encoding="utf-8")
    return path


def test_verify_accepts_untouched_audit(audit_path):
    result = verify_audit(str(audit_path))
    assert result["ok"]
    assert result["total_stake"] == nano("9.5")
    assert result["payout"] == nano("9.9")

    audit = json.loads(audit_path.read_text(encoding="utf-8"))
    assert result["winner"] == audit["winner"]["address"]
    assert audit["metadata"]["seed"] == "block-root-hash:42"


def _tamper(path, mutate):
    audit = json.loads(path.read_text(encoding="utf-8"))
    mutate(audit)
    path.write_text(json.dumps(audit), encoding="utf-8")


def test_verify_detects_swapped_winner(audit_path):
    def swap(audit):
        entrants = [e["address"] for e in audit["all_entrants"]]
        other = [a for a in entrants if a != audit["winner"]["address"]][0]
        audit["winner"]["address"] = other

    _tamper(audit_path, swap)
    with pytest.raises(RuntimeError, match="Winner mismatch"):
        verify_audit(str(audit_path))


def test_verify_detects_inflated_stake(audit_path):
    def inflate(audit):
        audit["all_entrants"][0]["stake"] += 1

    _tamper(audit_path, inflate)
    with pytest.raises(RuntimeError):
        verify_audit(str(audit_path))


def test_verify_detects_skimmed_payout(audit_path):
    def skim(audit):
        audit["metadata"]["payout"] -= 1

    _tamper(audit_path, skim)
    with pytest.raises(RuntimeError, match="Fee split mismatch"):
        verify_audit(str(audit_path))


def test_unseeded_payout_cannot_be_audited(owner):
    record = resolve_two_way(owner, FixedPick())
    with pytest.raises(RuntimeError):
        build_audit(record)
