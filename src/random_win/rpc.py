from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx


class RpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self.client.close()

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC error: {data['error']}")
        if data.get("ok") is False:
            raise RuntimeError(f"RPC error: {data.get('result') or data}")
        return data

    def get_masterchain_info(self) -> Dict[str, Any]:
        """Returns the `getMasterchainInfo` result (last block ids)."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getMasterchainInfo",
            "params": {},
        }
        data = self._post(payload)
        result = data.get("result")
        if not isinstance(result, dict) or not isinstance(result.get("last"), dict):
            raise RuntimeError("getMasterchainInfo returned no last block.")
        return result

    def get_latest_block_seed(self) -> str:
        """Root hash of the latest masterchain block, used as a draw seed."""
        return _last_block(self.get_masterchain_info())["root_hash"]


def _last_block(info: Dict[str, Any]) -> Dict[str, Any]:
    last = info.get("last")
    if not isinstance(last, dict):
        raise RuntimeError("getMasterchainInfo result has no last block.")
    root_hash = last.get("root_hash")
    if not isinstance(root_hash, str) or not root_hash:
        raise RuntimeError(
            f"Block {last.get('seqno')}: getMasterchainInfo returned no root_hash."
        )
    return last


def load_seed_from_block_feed_file(path: str, seqno_hint: Optional[int] = None) -> str:
    """
    Reads a seed saved ahead of a draw: either the bare root hash, or a saved
    `getMasterchainInfo` reply (whole JSON-RPC envelope or just its result).
    With `seqno_hint`, the saved block must be that masterchain block.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()
    if not raw:
        raise RuntimeError(f"Block feed file {path} is empty.")
    if not raw.startswith("{"):
        return raw

    try:
        reply = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Block feed file {path} is not valid JSON: {e}")

    info = reply.get("result", reply) if isinstance(reply, dict) else None
    if not isinstance(info, dict):
        raise RuntimeError(f"Block feed file {path} holds no getMasterchainInfo result.")
    last = _last_block(info)
    if seqno_hint is not None and int(last.get("seqno", -1)) != int(seqno_hint):
        raise RuntimeError(
            f"Block feed seqno mismatch: file has {last.get('seqno')}, expected {seqno_hint}"
        )
    return last["root_hash"]
