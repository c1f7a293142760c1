"""
In-process delivery substrate for the RandomWin contract.

Delivers one message at a time: load storage, run the router, persist the
resulting storage, then carry out outbound transfers. Failed messages bounce
their value back to the sender. Wallets are plain balances; there is no gas
model beyond the contract's own processing fee.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .address import Address
from .codec import decode_storage, encode_empty, encode_storage
from .contract import get_draw, get_owner, get_storage, process_message
from .draw import RandomSource, SeededRandomSource, derive_message_seed, fresh_entropy
from .models import (
    ContractPolicy,
    ContractStorage,
    Draw,
    InboundMessage,
    PayoutRecord,
)
from .project_constants import MAX_FEE_PERCENT, SANDBOX_WALLET_BALANCE

log = logging.getLogger(__name__)

# Builds the random source for a message from its logical time
RandomSourceFactory = Callable[[int], RandomSource]

CONTRACT_ADDRESS = Address.from_name("random-win")


@dataclass(frozen=True)
class Transaction:
    src: Address
    dest: Address
    value: int
    success: bool
    aborted: bool = False
    exit_code: Optional[int] = 0
    bounced: bool = False
    lt: int = 0


@dataclass
class SendResult:
    transactions: List[Transaction] = field(default_factory=list)
    payout: Optional[PayoutRecord] = None

    @property
    def inbound(self) -> Transaction:
        return self.transactions[0]

    def outbound(self) -> List[Transaction]:
        return self.transactions[1:]


def resolve_wallet(name_or_address: str) -> Address:
    try:
        return Address.parse(name_or_address)
    except ValueError:
        return Address.from_name(name_or_address)


def seeded_sources(base_seed: Optional[str] = None) -> RandomSourceFactory:
    base = base_seed or fresh_entropy()
    return lambda lt: SeededRandomSource(derive_message_seed(base, lt))


class Sandbox:
    def __init__(
        self,
        storage: ContractStorage,
        balance: int = 0,
        lt: int = 0,
        wallets: Optional[Dict[Address, int]] = None,
        policy: Optional[ContractPolicy] = None,
        random_sources: Optional[RandomSourceFactory] = None,
        address: Address = CONTRACT_ADDRESS,
    ) -> None:
        self.storage = storage
        self.balance = balance
        self.lt = lt
        self.wallets: Dict[Address, int] = dict(wallets or {})
        self.policy = policy or ContractPolicy()
        self.random_sources = random_sources or seeded_sources()
        self.address = address

    @classmethod
    def deploy(
        cls,
        owner: Address,
        fee_percent: int,
        value: int,
        **kwargs: Any,
    ) -> "Sandbox":
        if not 0 <= fee_percent <= MAX_FEE_PERCENT:
            raise ValueError(f"Fee percent must be within 0..100, got {fee_percent}")
        sandbox = cls(ContractStorage(owner=owner, fee_percent=fee_percent), **kwargs)
        result = sandbox.send(owner, value, encode_empty())
        if not result.inbound.success:
            raise RuntimeError("Deploy message failed")
        log.info("Deployed at %s (owner %s, fee %d%%)", sandbox.address, owner, fee_percent)
        return sandbox

    def wallet(self, name_or_address: str) -> Address:
        """Resolves an address or wallet label, opening the wallet on first use."""
        addr = resolve_wallet(name_or_address)
        self.wallets.setdefault(addr, SANDBOX_WALLET_BALANCE)
        return addr

    def wallet_balance(self, addr: Address) -> int:
        return self.wallets.get(addr, 0)

    def _credit(self, addr: Address, value: int) -> None:
        self.wallets[addr] = self.wallets.get(addr, 0) + value

    def _next_lt(self) -> int:
        self.lt += 1
        return self.lt

    def send(self, sender: Address, value: int, body: bytes) -> SendResult:
        self.wallets.setdefault(sender, SANDBOX_WALLET_BALANCE)
        if self.wallets[sender] < value:
            raise RuntimeError(
                f"Wallet {sender} cannot send {value}: balance {self.wallets[sender]}"
            )
        self.wallets[sender] -= value

        lt = self._next_lt()
        outcome = process_message(
            self.storage,
            InboundMessage(sender=sender, value=value, body=body),
            random_source=self.random_sources(lt),
            policy=self.policy,
        )
        result = SendResult(payout=outcome.payout)
        result.transactions.append(
            Transaction(
                src=sender,
                dest=self.address,
                value=value,
                success=outcome.success,
                aborted=outcome.aborted,
                exit_code=outcome.exit_code,
                lt=lt,
            )
        )
        log.debug(
            "lt=%d %s -> contract value=%d success=%s exit=%s",
            lt,
            sender,
            value,
            outcome.success,
            outcome.exit_code,
        )

        if not outcome.success:
            if value > 0:
                self._credit(sender, value)
                result.transactions.append(
                    Transaction(
                        src=self.address,
                        dest=sender,
                        value=value,
                        success=True,
                        bounced=True,
                        lt=self._next_lt(),
                    )
                )
            return result

        self.storage = outcome.storage
        self.balance += value

        for transfer in outcome.transfers:
            # The core has committed; delivery problems are ours, not its
            if transfer.value > self.balance:
                log.warning(
                    "Contract balance %d cannot cover %s of %d to %s",
                    self.balance,
                    transfer.reason,
                    transfer.value,
                    transfer.dest,
                )
                result.transactions.append(
                    Transaction(
                        src=self.address,
                        dest=transfer.dest,
                        value=transfer.value,
                        success=False,
                        aborted=True,
                        exit_code=None,
                        lt=self._next_lt(),
                    )
                )
                continue
            self.balance -= transfer.value
            self._credit(transfer.dest, transfer.value)
            result.transactions.append(
                Transaction(
                    src=self.address,
                    dest=transfer.dest,
                    value=transfer.value,
                    success=True,
                    lt=self._next_lt(),
                )
            )
        return result

    # Getters

    def get_owner(self) -> Address:
        return get_owner(self.storage)

    def get_draw(self, draw_id: int) -> Optional[Draw]:
        return get_draw(self.storage, draw_id)

    def get_storage(self) -> Dict[str, Any]:
        return get_storage(self.storage)

    # Persistence

    def to_json(self) -> Dict[str, Any]:
        return {
            "address": self.address.to_raw(),
            "storage": base64.b64encode(encode_storage(self.storage)).decode("ascii"),
            "balance": self.balance,
            "lt": self.lt,
            "wallets": {addr.to_raw(): bal for addr, bal in sorted(self.wallets.items())},
        }

    def save(self, path: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(self.to_json(), f, indent=2)

    @classmethod
    def load(cls, path: str, **kwargs: Any) -> "Sandbox":
        try:
            with open(path, "r", encoding="utf-8") as f:
                state = json.load(f)
        except FileNotFoundError:
            raise RuntimeError(f"No contract state at {path}; run `deploy` first.")

        return cls(
            storage=decode_storage(base64.b64decode(state["storage"])),
            balance=int(state["balance"]),
            lt=int(state["lt"]),
            wallets={Address.parse(k): int(v) for k, v in state["wallets"].items()},
            address=Address.parse(state["address"]),
            **kwargs,
        )
