"""Registry dependencies -- shared Registry and oracle instances for the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status

from nsreg.config import RegistryConfig
from nsreg.core.identity import Keypair
from nsreg.oracle.github import GitHubOracle
from nsreg.registry.operations import Registry

_config: Optional[RegistryConfig] = None
_registry: Optional[Registry] = None
_oracle: Optional[GitHubOracle] = None


def get_config() -> RegistryConfig:
    global _config
    if _config is None:
        _config = RegistryConfig.load()
    return _config


def get_registry() -> Registry:
    """Return the singleton Registry built from the loaded config."""
    global _registry
    if _registry is None:
        _registry = get_config().build_registry()
    return _registry


def get_oracle() -> GitHubOracle:
    """Return the singleton GitHub oracle.

    Raises ``503`` when no oracle key file is configured.
    """
    global _oracle
    if _oracle is None:
        config = get_config()
        if not config.oracle_keypair_path:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Oracle is not configured (set NSREG_ORACLE_KEYPAIR_PATH)",
            )
        _oracle = GitHubOracle(Keypair.load(config.oracle_keypair_path), get_registry(), config)
    return _oracle
