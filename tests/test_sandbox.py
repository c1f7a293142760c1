from __future__ import annotations

from tonsdk.boc import begin_cell

from conftest import FEE_PERCENT, nano
from random_win.codec import (
    encode_create_draw,
    encode_empty,
    encode_luck_roll,
    encode_top_up,
)
from random_win.project_constants import (
    ERROR_DRAW_ALREADY_EXISTS,
    ERROR_DRAW_NOT_FOUND,
    ERROR_WRONG_OP,
    SANDBOX_WALLET_BALANCE,
)
from random_win.sandbox import Sandbox, seeded_sources


def create_draw(sandbox: Sandbox, draw_id=1, min_entry="1", limit="10", value="0.1"):
    return sandbox.send(
        sandbox.get_owner(),
        nano(value),
        encode_create_draw(1, draw_id, nano(min_entry), nano(limit)),
    )


def test_deploy_sets_owner_and_empty_storage(sandbox: Sandbox, owner):
    assert sandbox.get_owner() == owner
    storage = sandbox.get_storage()
    assert storage["owner"] == owner
    assert storage["fee_percent"] == FEE_PERCENT
    assert storage["draws"] == {}
    assert sandbox.balance == nano("0.5")


def test_failed_message_bounces_value(sandbox):
    roller = sandbox.wallet("roller")
    result = sandbox.send(roller, nano("1"), encode_luck_roll(1, 999))

    assert not result.inbound.success
    assert result.inbound.exit_code == ERROR_DRAW_NOT_FOUND
    bounce = result.outbound()[0]
    assert bounce.bounced and bounce.dest == roller and bounce.value == nano("1")
    assert sandbox.wallet_balance(roller) == SANDBOX_WALLET_BALANCE
    assert sandbox.balance == nano("0.5")


def test_zero_value_create_is_aborted(sandbox):
    result = create_draw(sandbox, draw_id=2, value="0")
    assert not result.inbound.success
    assert result.inbound.aborted
    assert result.outbound() == []
    assert sandbox.get_draw(2) is None


def test_duplicate_create(sandbox):
    create_draw(sandbox)
    result = create_draw(sandbox)
    assert result.inbound.exit_code == ERROR_DRAW_ALREADY_EXISTS


def test_refund_below_minimum(sandbox):
    create_draw(sandbox, value="0.1")
    roller = sandbox.wallet("roller")
    sent = nano("0.5")
    result = sandbox.send(roller, sent, encode_luck_roll(2, 1))

    assert result.inbound.success
    (refund,) = result.outbound()
    assert refund.src == sandbox.address and refund.dest == roller
    assert refund.success and 0 < refund.value < sent

    draw = sandbox.get_draw(1)
    assert draw.pool_sum == nano("0.1")
    assert draw.participants == {}
    assert draw.participant_count == 0


def test_two_participants_reach_limit(sandbox):
    create_draw(sandbox, limit="10", value="0.5")
    a = sandbox.wallet("roller1")
    b = sandbox.wallet("roller2")

    sandbox.send(a, nano("3"), encode_luck_roll(2, 1))
    result = sandbox.send(b, nano("6.5"), encode_luck_roll(3, 1))

    assert result.inbound.success
    (payout,) = result.outbound()
    assert payout.dest in (a, b)
    assert payout.value == nano("9.9")
    assert result.payout.winner == payout.dest
    assert sandbox.get_draw(1) is None

    # 0.5 deploy + 0.5 funding + 9.5 of stakes - 9.9 payout
    assert sandbox.balance == nano("0.6")

    after = sandbox.send(a, nano("1"), encode_luck_roll(4, 1))
    assert after.inbound.exit_code == ERROR_DRAW_NOT_FOUND


def test_many_participants_resolve_once(sandbox):
    count = 10
    create_draw(sandbox, draw_id=1010, min_entry="1", limit=str(count), value="0.5")
    participants = []
    result = None
    for i in range(count):
        roller = sandbox.wallet(f"roller-{count}-{i}")
        participants.append(roller)
        result = sandbox.send(roller, nano("1.1"), encode_luck_roll(i + 2, 1010))
        assert result.inbound.success
        if result.payout is not None:
            break

    assert result.payout is not None
    (payout,) = result.outbound()
    assert payout.dest in participants
    assert sandbox.get_draw(1010) is None
    pool = nano("0.5") + nano("1.1") * len(participants)
    assert payout.value == pool * (100 - FEE_PERCENT) // 100


def test_top_up_and_empty_body_keep_draws(sandbox, owner):
    create_draw(sandbox)
    before = sandbox.get_draw(1)
    for body in (encode_top_up(), encode_empty()):
        result = sandbox.send(owner, nano("1"), body)
        assert result.inbound.success
    assert sandbox.get_draw(1) == before
    assert sandbox.balance == nano("0.5") + nano("0.1") + nano("2")


def test_wrong_op(sandbox, owner):
    body = bytes(begin_cell().store_uint(0xDEADBEEF, 32).store_uint(1, 64).end_cell().to_boc(False))
    result = sandbox.send(owner, nano("0.05"), body)
    assert not result.inbound.success
    assert result.inbound.exit_code == ERROR_WRONG_OP


def test_same_seed_same_winner(owner):
    winners = []
    for _ in range(2):
        sb = Sandbox.deploy(owner, 1, nano("0.5"), random_sources=seeded_sources("fixed"))
        create_draw(sb, limit="5")
        for name in ("a", "b", "c"):
            result = sb.send(sb.wallet(name), nano("2"), encode_luck_roll(1, 1))
        winners.append(result.payout.winner)
    assert winners[0] == winners[1]


def test_save_and_load(sandbox, tmp_path):
    create_draw(sandbox)
    roller = sandbox.wallet("roller")
    sandbox.send(roller, nano("2"), encode_luck_roll(2, 1))

    path = tmp_path / "state" / "contract.json"
    sandbox.save(str(path))
    loaded = Sandbox.load(str(path))

    assert loaded.storage == sandbox.storage
    assert loaded.balance == sandbox.balance
    assert loaded.lt == sandbox.lt
    assert loaded.wallets == sandbox.wallets
    assert loaded.address == sandbox.address
