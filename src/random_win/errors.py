from __future__ import annotations

from typing import Optional

from .project_constants import (
    ERROR_DRAW_ALREADY_EXISTS,
    ERROR_DRAW_NOT_FOUND,
    ERROR_NOT_OWNER,
    ERROR_WRONG_OP,
)


class CodecError(ValueError):
    """Raised when a cell or bag of cells cannot be encoded or decoded."""


class UnknownOpcodeError(CodecError):
    def __init__(self, op: int) -> None:
        super().__init__(f"Unknown opcode 0x{op:08x}")
        self.op = op


class ContractError(Exception):
    """Base of every failure the contract reports for a single message.

    `exit_code` is None for transport-level aborts, which surface without an
    application exit code.
    """

    exit_code: Optional[int] = None

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code

    @property
    def aborted(self) -> bool:
        return self.exit_code is None


class WrongOpError(ContractError):
    exit_code = ERROR_WRONG_OP


class NotOwnerError(ContractError):
    exit_code = ERROR_NOT_OWNER


class DrawAlreadyExistsError(ContractError):
    exit_code = ERROR_DRAW_ALREADY_EXISTS


class DrawNotFoundError(ContractError):
    exit_code = ERROR_DRAW_NOT_FOUND


class InsufficientValueError(ContractError):
    """Attached value cannot pay for processing; the message is aborted."""
