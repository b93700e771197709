"""Runtime configuration.

Settings come from, in increasing precedence:
1. Built-in defaults (state under ``~/.nsreg/``)
2. A YAML file (``~/.nsreg/config.yaml`` or the path in ``NSREG_CONFIG``)
3. ``NSREG_*`` environment variables

Example ``config.yaml``::

    registry_dir: /srv/nsreg/registry
    oracle_identity: 3b6a27bcceb6a42d62a3a8d02a6f0d73653215771de243a63ac048a18b59da29
    github_token: ghp_xxx
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from nsreg.core.addressing import DEFAULT_PROGRAM_ID, AddressDeriver
from nsreg.core.identity import Identity
from nsreg.registry.authorizer import OracleAuthorizer
from nsreg.registry.operations import Registry
from nsreg.registry.store import FileAccountStore
from nsreg.security.audit_log import AuditLogger

DEFAULT_HOME = Path.home() / ".nsreg"

ENV_PREFIX = "NSREG_"


@dataclass
class RegistryConfig:
    registry_dir: str = str(DEFAULT_HOME / "registry")
    keypair_path: str = str(DEFAULT_HOME / "id.json")
    audit_dir: str = str(DEFAULT_HOME / "audit_logs")
    program_id: str = DEFAULT_PROGRAM_ID.hex()
    # Empty until an oracle is configured; author registration is refused meanwhile.
    oracle_identity: str = ""
    oracle_keypair_path: str = ""
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    bio_marker: str = "nsreg wallet: "

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> RegistryConfig:
        """Load the YAML file (if present) and apply environment overrides."""
        path = Path(path or os.environ.get(f"{ENV_PREFIX}CONFIG", DEFAULT_HOME / "config.yaml"))
        values: dict = {}
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"{path}: expected a mapping at the top level")
            known = {f.name for f in fields(cls)}
            unknown = sorted(set(data) - known)
            if unknown:
                raise ValueError(f"{path}: unknown settings: {', '.join(unknown)}")
            values.update({k: str(v) for k, v in data.items() if v is not None})

        for f in fields(cls):
            env_value = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if env_value is not None:
                values[f.name] = env_value

        return cls(**values)

    @property
    def oracle(self) -> Optional[Identity]:
        return Identity.from_string(self.oracle_identity) if self.oracle_identity else None

    def build_registry(self, with_audit: bool = True) -> Registry:
        """Registry over the configured file store, oracle, and program id."""
        return Registry(
            store=FileAccountStore(self.registry_dir),
            authorizer=OracleAuthorizer(self.oracle),
            deriver=AddressDeriver(bytes.fromhex(self.program_id)),
            audit=AuditLogger(Path(self.audit_dir)) if with_audit else None,
        )
