"""Configuration package."""

from pipepool.infrastructure.config.loader import ConfigLoader, PoolConfig

__all__ = ["ConfigLoader", "PoolConfig"]
