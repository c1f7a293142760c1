from __future__ import annotations

from typing import List, Optional, Sequence

import pytest

from random_win.address import Address
from random_win.draw import to_nano
from random_win.models import ContractStorage
from random_win.sandbox import Sandbox, seeded_sources

FEE_PERCENT = 1


class FixedPick:
    """Random source stub: always picks `index`, remembers what it was offered."""

    seed: Optional[str] = None

    def __init__(self, index: int = 0) -> None:
        self.index = index
        self.calls: List[List[int]] = []

    def weighted_pick(self, weights: Sequence[int]) -> int:
        self.calls.append(list(weights))
        return min(self.index, len(weights) - 1)


def nano(amount: str) -> int:
    return to_nano(amount)


@pytest.fixture
def owner() -> Address:
    return Address.from_name("deployer")


@pytest.fixture
def storage(owner: Address) -> ContractStorage:
    return ContractStorage(owner=owner, fee_percent=FEE_PERCENT)


@pytest.fixture
def sandbox(owner: Address) -> Sandbox:
    return Sandbox.deploy(
        owner, FEE_PERCENT, nano("0.5"), random_sources=seeded_sources("test-seed")
    )
