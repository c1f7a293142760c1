"""
Cell codec for message bodies and contract storage.

Bodies and storage travel as serialized bags of cells (tonsdk `Cell.to_boc`).
Maps are TON HashmapE dictionaries stored as a maybe-reference: a presence
bit, then a reference to the root of the dictionary tree built with
`begin_dict`. Draw maps are keyed by uint32, participant maps by the 267-bit
std address layout.

tonsdk serializes dictionaries but does not parse them back, so decoding walks
the deserialized cells with `CellReader`.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple, TypeVar

from tonsdk.boc import Cell, begin_cell, begin_dict

from .address import Address
from .errors import CodecError, UnknownOpcodeError
from .models import ContractStorage, CreateDraw, Draw, LuckRoll, MessageBody, TopUp
from .project_constants import (
    MAX_COINS,
    MAX_FEE_PERCENT,
    OP_CREATE_DRAW,
    OP_LUCK_ROLL,
    OP_TOP_UP,
)

V = TypeVar("V")

DRAW_KEY_BITS = 32
# 0b10 tag, anycast bit, int8 workchain, 256-bit hash
ADDRESS_KEY_BITS = 267


def check_uint(value: int, width: int) -> int:
    if value < 0 or value >= 1 << width:
        raise CodecError(f"Value {value} does not fit in uint{width}")
    return value


def check_coins(value: int) -> int:
    if value < 0 or value > MAX_COINS:
        raise CodecError(f"Coin amount out of range: {value}")
    return value


def to_boc(cell: Cell) -> bytes:
    return bytes(cell.to_boc(False))


def load_cell(data: bytes) -> Cell:
    try:
        return Cell.one_from_boc(data)
    except Exception as e:  # tonsdk raises bare Exception on malformed input
        raise CodecError(f"Not a single-root bag of cells: {e}") from e


class CellReader:
    """Sequential reader over the data bits and references of one cell."""

    def __init__(self, cell: Cell) -> None:
        self.cell = cell
        self._pos = 0
        self._ref = 0

    @property
    def remaining(self) -> int:
        return self.cell.bits.cursor - self._pos

    def bit(self) -> bool:
        return self.uint(1) == 1

    def uint(self, width: int) -> int:
        if width > self.remaining:
            raise CodecError(
                f"Cell underflow: need {width} bits, have {self.remaining}"
            )
        value = 0
        for i in range(self._pos, self._pos + width):
            value = (value << 1) | int(self.cell.bits.get(i))
        self._pos += width
        return value

    def sint(self, width: int) -> int:
        value = self.uint(width)
        if value >= 1 << (width - 1):
            value -= 1 << width
        return value

    def coins(self) -> int:
        length = self.uint(4)
        return self.uint(length * 8) if length else 0

    def address(self) -> Address:
        tag = self.uint(2)
        if tag != 0b10:
            raise CodecError(f"Unsupported address tag 0b{tag:02b}")
        if self.bit():
            raise CodecError("Anycast addresses are not supported")
        workchain = self.sint(8)
        try:
            return Address(workchain, self.uint(256).to_bytes(32, "big"))
        except ValueError as e:
            raise CodecError(str(e)) from e

    def ref(self) -> Cell:
        if self._ref >= len(self.cell.refs):
            raise CodecError("Cell has no more references")
        cell = self.cell.refs[self._ref]
        self._ref += 1
        return cell

    def end_parse(self) -> None:
        if self.remaining:
            raise CodecError(f"{self.remaining} unread bits left after parse")
        if self._ref != len(self.cell.refs):
            raise CodecError(f"{len(self.cell.refs) - self._ref} unread references left")


# Dictionaries


def address_key(addr: Address) -> int:
    return (
        (0b100 << 264)
        | ((addr.workchain & 0xFF) << 256)
        | int.from_bytes(addr.hash_part, "big")
    )


def address_from_key(key: int) -> Address:
    if key >> 264 != 0b100:
        raise CodecError(f"Dictionary key is not a std address: {key:#x}")
    workchain = (key >> 256) & 0xFF
    if workchain > 127:
        workchain -= 256
    try:
        return Address(workchain, (key & ((1 << 256) - 1)).to_bytes(32, "big"))
    except ValueError as e:
        raise CodecError(str(e)) from e


def store_dict(builder, items: Dict[int, Cell], key_bits: int) -> None:
    """Stores `items` as HashmapE: a 0 bit when empty, else 1 and a root ref."""
    if not items:
        builder.store_bit(0)
        return
    dict_builder = begin_dict(key_bits)
    for key in sorted(items):
        dict_builder.store_cell(check_uint(key, key_bits), items[key])
    builder.store_bit(1)
    builder.store_ref(dict_builder.end_dict())


def load_dict(
    r: CellReader, key_bits: int, load_value: Callable[[CellReader], V]
) -> Dict[int, V]:
    if not r.bit():
        return {}
    out: Dict[int, V] = {}
    _load_edge(r.ref(), key_bits, 0, load_value, out)
    return out


def _load_label(r: CellReader, max_len: int) -> Tuple[int, int]:
    """Returns (label bits as int, label length) for hml_short/long/same."""
    if not r.bit():
        length = 0
        while r.bit():
            length += 1
        if length > max_len:
            raise CodecError(f"Label of {length} bits exceeds {max_len}")
        return r.uint(length), length
    if not r.bit():
        length = r.uint(max_len.bit_length())
        if length > max_len:
            raise CodecError(f"Label of {length} bits exceeds {max_len}")
        return r.uint(length), length
    same = r.bit()
    length = r.uint(max_len.bit_length())
    if length > max_len:
        raise CodecError(f"Label of {length} bits exceeds {max_len}")
    return ((1 << length) - 1 if same else 0), length


def _load_edge(
    cell: Cell,
    key_bits: int,
    prefix: int,
    load_value: Callable[[CellReader], V],
    out: Dict[int, V],
) -> None:
    r = CellReader(cell)
    label, length = _load_label(r, key_bits)
    prefix = (prefix << length) | label
    rest = key_bits - length
    if rest == 0:
        out[prefix] = load_value(r)
        return
    left, right = r.ref(), r.ref()
    r.end_parse()
    _load_edge(left, rest - 1, prefix << 1, load_value, out)
    _load_edge(right, rest - 1, (prefix << 1) | 1, load_value, out)


# Message bodies


def encode_create_draw(
    query_id: int, draw_id: int, min_entry_amount: int, entry_amount_limit: int
) -> bytes:
    return to_boc(
        begin_cell()
        .store_uint(OP_CREATE_DRAW, 32)
        .store_uint(check_uint(query_id, 64), 64)
        .store_uint(check_uint(draw_id, 32), 32)
        .store_coins(check_coins(min_entry_amount))
        .store_coins(check_coins(entry_amount_limit))
        .end_cell()
    )


def encode_luck_roll(query_id: int, draw_id: int) -> bytes:
    return to_boc(
        begin_cell()
        .store_uint(OP_LUCK_ROLL, 32)
        .store_uint(check_uint(query_id, 64), 64)
        .store_uint(check_uint(draw_id, 32), 32)
        .end_cell()
    )


def encode_top_up() -> bytes:
    return to_boc(begin_cell().store_uint(OP_TOP_UP, 32).end_cell())


def encode_empty() -> bytes:
    return to_boc(begin_cell().end_cell())


def decode_message_body(data: bytes) -> Optional[MessageBody]:
    """
    Returns None for an empty body (plain transfer).
    Trailing bits after the known fields are ignored.
    """
    if not data:
        return None
    r = CellReader(load_cell(data))
    if r.remaining == 0:
        return None

    op = r.uint(32)
    if op == OP_CREATE_DRAW:
        return CreateDraw(
            query_id=r.uint(64),
            draw_id=r.uint(32),
            min_entry_amount=r.coins(),
            entry_amount_limit=r.coins(),
        )
    if op == OP_LUCK_ROLL:
        return LuckRoll(query_id=r.uint(64), draw_id=r.uint(32))
    if op == OP_TOP_UP:
        return TopUp()
    raise UnknownOpcodeError(op)


# Storage


def _coins_cell(value: int) -> Cell:
    return begin_cell().store_coins(check_coins(value)).end_cell()


def _load_coins_value(r: CellReader) -> int:
    value = r.coins()
    r.end_parse()
    return value


def _draw_cell(draw: Draw) -> Cell:
    b = (
        begin_cell()
        .store_coins(check_coins(draw.min_entry_amount))
        .store_coins(check_coins(draw.entry_amount_limit))
        .store_coins(check_coins(draw.pool_sum))
        .store_uint(check_uint(draw.participant_count, 32), 32)
    )
    store_dict(
        b,
        {address_key(a): _coins_cell(v) for a, v in draw.participants.items()},
        ADDRESS_KEY_BITS,
    )
    return b.end_cell()


def _load_draw_value(r: CellReader) -> Draw:
    draw = Draw(
        min_entry_amount=r.coins(),
        entry_amount_limit=r.coins(),
        pool_sum=r.coins(),
        participant_count=r.uint(32),
        participants={
            address_from_key(k): v
            for k, v in load_dict(r, ADDRESS_KEY_BITS, _load_coins_value).items()
        },
    )
    r.end_parse()
    return draw


def storage_to_cell(storage: ContractStorage) -> Cell:
    if not 0 <= storage.fee_percent <= MAX_FEE_PERCENT:
        raise CodecError(f"Fee percent must be within 0..100, got {storage.fee_percent}")
    b = (
        begin_cell()
        .store_address(storage.owner.to_tonsdk())
        .store_uint(storage.fee_percent, 16)
    )
    store_dict(
        b,
        {draw_id: _draw_cell(d) for draw_id, d in storage.draws.items()},
        DRAW_KEY_BITS,
    )
    return b.end_cell()


def storage_from_cell(cell: Cell) -> ContractStorage:
    r = CellReader(cell)
    owner = r.address()
    fee_percent = r.uint(16)
    draws = load_dict(r, DRAW_KEY_BITS, _load_draw_value)
    r.end_parse()
    return ContractStorage(owner=owner, fee_percent=fee_percent, draws=draws)


def encode_storage(storage: ContractStorage) -> bytes:
    return to_boc(storage_to_cell(storage))


def decode_storage(data: bytes) -> ContractStorage:
    return storage_from_cell(load_cell(data))
