"""GitHub oracle: vouches for author registrations.

An author proves ownership of a GitHub account by putting
``"<bio_marker><identity>"`` into their profile bio. The oracle reads the bio,
and if the identity in the author's signed ``register_author`` transaction is
there, it adds its own signature and submits the transaction. The registry
only accepts author registrations co-signed by the oracle.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from nsreg.config import RegistryConfig
from nsreg.core.identity import Identity, Keypair
from nsreg.errors import OracleError, Unauthorized
from nsreg.registry.models import Receipt
from nsreg.registry.operations import Registry
from nsreg.registry.transaction import Transaction

logger = logging.getLogger(__name__)

GITHUB_USERNAME = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")


class GitHubOracle:
    def __init__(
        self,
        keypair: Keypair,
        registry: Registry,
        config: Optional[RegistryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.keypair = keypair
        self.registry = registry
        self.config = config or RegistryConfig()
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "nsreg GitHub oracle", "Accept": "application/vnd.github+json"}
        if self.config.github_token:
            headers["Authorization"] = f"token {self.config.github_token}"
        return headers

    async def fetch_bio(self, username: str) -> str:
        """Return the GitHub profile bio of ``username`` ("" when unset)."""
        if not isinstance(username, str) or not GITHUB_USERNAME.match(username):
            raise Unauthorized(f"{username!r} is not a valid GitHub username")
        url = f"{self.config.github_api_url.rstrip('/')}/users/{username}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
                resp = await client.get(url, headers=self._headers())
        except httpx.HTTPError as exc:
            raise OracleError(f"GitHub request failed: {exc}") from exc

        if resp.status_code == 404:
            raise Unauthorized(f"GitHub user {username!r} does not exist")
        if resp.status_code != 200:
            raise OracleError(
                f"GitHub returned {resp.status_code} for {username!r}",
                {"status": resp.status_code},
            )
        return resp.json().get("bio") or ""

    async def is_verified(self, username: str, identity: Identity) -> bool:
        bio = await self.fetch_bio(username)
        return f"{self.config.bio_marker}{identity}" in bio

    async def co_sign(self, tx: Transaction, username: Optional[str] = None) -> Receipt:
        """Verify the author, co-sign ``tx``, and submit it to the registry.

        ``username`` defaults to the name being registered; when given it must
        match that name.
        """
        tx.validate()
        if tx.instruction != "register_author":
            raise Unauthorized(f"The oracle only co-signs register_author, not {tx.instruction}")
        name = tx.args["name"]
        if username is not None and username != name:
            raise Unauthorized(f"GitHub user {username!r} does not match author name {name!r}")
        if tx.authority not in tx.verified_signers():
            raise Unauthorized("Transaction must be signed by its authority before co-signing")

        if not await self.is_verified(name, tx.authority):
            logger.info("GitHub bio of %r does not name %s", name, tx.authority)
            raise Unauthorized(
                f'Add "{self.config.bio_marker}{tx.authority}" to your GitHub bio'
            )

        tx.sign(self.keypair)
        logger.info("Oracle co-signed registration of %r for %s", name, tx.authority)
        return self.registry.execute(tx)
