from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .draw import to_nano
from .models import ContractPolicy
from .project_constants import (
    CREATE_POLICIES,
    CREATE_POLICY_ANYONE,
    DEFAULT_PROCESSING_FEE,
    DEFAULT_STATE_FILE,
    TONCENTER_JSONRPC_URL,
)


@dataclass(frozen=True)
class Settings:
    state_file: str
    create_policy: str = CREATE_POLICY_ANYONE
    processing_fee: int = DEFAULT_PROCESSING_FEE
    rpc_url: Optional[str] = None

    @property
    def policy(self) -> ContractPolicy:
        return ContractPolicy(
            create_policy=self.create_policy, processing_fee=self.processing_fee
        )

    @staticmethod
    def from_env(
        rpc_url_override: Optional[str] = None,
        state_file_override: Optional[str] = None,
        create_policy_override: Optional[str] = None,
    ) -> "Settings":
        load_dotenv()

        state_file = state_file_override or os.getenv(
            "RANDOM_WIN_STATE_FILE", ""
        ).strip() or DEFAULT_STATE_FILE

        create_policy = (
            create_policy_override
            or os.getenv("RANDOM_WIN_CREATE_POLICY", "").strip().lower()
            or CREATE_POLICY_ANYONE
        )
        if create_policy not in CREATE_POLICIES:
            raise RuntimeError(
                f"Invalid create policy {create_policy!r}; expected one of {CREATE_POLICIES}"
            )

        fee_env = os.getenv("RANDOM_WIN_PROCESSING_FEE", "").strip()
        processing_fee = DEFAULT_PROCESSING_FEE
        if fee_env:
            try:
                processing_fee = to_nano(fee_env)
            except ValueError as e:
                raise RuntimeError(f"Invalid RANDOM_WIN_PROCESSING_FEE: {e}")

        return Settings(
            state_file=state_file,
            create_policy=create_policy,
            processing_fee=processing_fee,
            rpc_url=_resolve_rpc_url(rpc_url_override),
        )


def _resolve_rpc_url(override: Optional[str]) -> Optional[str]:
    # If user provides --rpc-url, trust it.
    if override:
        return override

    # Otherwise, use RPC_URL from env if present, else build toncenter url from key.
    env_rpc = os.getenv("RPC_URL", "").strip()
    if env_rpc:
        return env_rpc

    api_key = os.getenv("TONCENTER_API_KEY", "").strip()
    if api_key:
        return f"{TONCENTER_JSONRPC_URL}?api_key={api_key}"

    # No RPC: seeds come from local entropy
    return None
