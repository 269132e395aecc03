from __future__ import annotations

from typing import Any, Dict

import httpx


class RpcClient:
    """Minimal JSON-RPC client for the clock readings a draw needs."""

    def __init__(self, rpc_url: str, timeout_s: float = 60.0) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s)
        self._next_id = 1

    def close(self) -> None:
        self.client.close()

    def get_slot(self, commitment: str = "finalized") -> int:
        """Returns the current slot."""
        data = self._call("getSlot", [{"commitment": commitment}])
        return int(data["result"])

    def get_block_time(self, slot: int) -> int:
        """Returns the Unix timestamp for a given slot."""
        data = self._call("getBlockTime", [slot])
        if data.get("result") is None:
            raise RuntimeError(f"Timestamp not available for slot {slot}")
        return int(data["result"])

    def _call(self, method: str, params: list) -> Dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id,
            "method": method,
            "params": params,
        }
        self._next_id += 1
        return self._post(payload)

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC error: {data['error']}")
        return data
