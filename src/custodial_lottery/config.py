from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .project_constants import PROGRAM_ID

CLOCK_SOURCES = ("system", "rpc")


@dataclass(frozen=True)
class Settings:
    state_file: str
    program_id: str
    clock: str
    rpc_url: Optional[str]

    @staticmethod
    def from_env(
        state_file_override: str | None = None,
        rpc_url_override: str | None = None,
        clock_override: str | None = None,
    ) -> "Settings":
        load_dotenv()

        state_file = state_file_override or os.getenv(
            "LOTTERY_STATE_FILE", "lottery_state.json"
        ).strip()
        program_id = os.getenv("LOTTERY_PROGRAM_ID", "").strip() or PROGRAM_ID

        clock = (clock_override or os.getenv("LOTTERY_CLOCK", "system")).strip().lower()
        if clock not in CLOCK_SOURCES:
            raise RuntimeError(
                f"Unknown LOTTERY_CLOCK {clock!r}; expected one of {', '.join(CLOCK_SOURCES)}"
            )

        return Settings(
            state_file=state_file,
            program_id=program_id,
            clock=clock,
            rpc_url=_resolve_rpc_url(rpc_url_override, required=clock == "rpc"),
        )


def _resolve_rpc_url(rpc_url_override: str | None, required: bool) -> Optional[str]:
    # If user provides --rpc-url, trust it.
    if rpc_url_override:
        return rpc_url_override

    env_rpc = os.getenv("RPC_URL", "").strip()
    if env_rpc:
        return env_rpc

    helius_key = os.getenv("HELIUS_API_KEY", "").strip()
    if helius_key:
        return f"https://mainnet.helius-rpc.com/?api-key={helius_key}"

    if required:
        raise RuntimeError(
            "Clock source 'rpc' needs RPC_URL (or HELIUS_API_KEY). Put it in .env or export it."
        )
    return None
