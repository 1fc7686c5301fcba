"""Reconciliation engine settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag


@dataclass(frozen=True, slots=True)
class EngineConfig:
    async_history: bool = False


def get_engine_config() -> EngineConfig:
    return EngineConfig(async_history=env_flag("STOCKTAKE_ASYNC_HISTORY"))
