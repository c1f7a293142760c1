from __future__ import annotations

import hashlib
from dataclasses import dataclass

from tonsdk.utils import Address as TonAddress

WORKCHAINS = (0, -1)


@dataclass(frozen=True, order=True)
class Address:
    """
    Hashable, ordered std address (basechain or masterchain).

    Parsing and rendering go through tonsdk; this type exists so addresses can
    key participant maps and sort deterministically for ticket ranges.
    """

    workchain: int
    hash_part: bytes

    def __post_init__(self) -> None:
        if self.workchain not in WORKCHAINS:
            raise ValueError(f"Unsupported workchain: {self.workchain}")
        if len(self.hash_part) != 32:
            raise ValueError(f"Address hash must be 32 bytes, got {len(self.hash_part)}")

    @staticmethod
    def parse(text: str) -> "Address":
        """Parse raw (`0:ab..`) or user-friendly (48 chars base64/base64url) form."""
        try:
            ton = TonAddress(text.strip())
        except Exception as e:  # tonsdk raises bare Exception on bad input
            raise ValueError(f"Unrecognized address {text!r}: {e}") from e
        return Address.from_tonsdk(ton)

    @staticmethod
    def from_tonsdk(ton: TonAddress) -> "Address":
        return Address(int(ton.wc), bytes(ton.hash_part))

    @staticmethod
    def from_name(name: str, workchain: int = 0) -> "Address":
        """Deterministic wallet address for a label (sandbox treasuries)."""
        return Address(workchain, hashlib.sha256(name.encode("utf-8")).digest())

    def to_tonsdk(self) -> TonAddress:
        return TonAddress(self.to_raw())

    def to_raw(self) -> str:
        return f"{self.workchain}:{self.hash_part.hex()}"

    def to_friendly(
        self, bounceable: bool = True, testnet: bool = False, url_safe: bool = True
    ) -> str:
        return self.to_tonsdk().to_string(
            is_user_friendly=True,
            is_url_safe=url_safe,
            is_bounceable=bounceable,
            is_test_only=testnet,
        )

    def __str__(self) -> str:
        return self.to_raw()
