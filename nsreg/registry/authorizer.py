"""Authorization for gated operations.

Author registration is not self-service: a request must be co-signed by a
trusted oracle that has verified the author out of band (for example, that
the author controls a GitHub account whose bio names their identity).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from nsreg.core.identity import Identity
from nsreg.errors import Unauthorized

logger = logging.getLogger(__name__)


class Authorizer(ABC):
    """Decides whether an author registration may proceed."""

    @abstractmethod
    def check_registration(
        self, caller: Identity, name: str, co_signers: Iterable[Identity]
    ) -> None:
        """Raise ``Unauthorized`` if the registration is not allowed."""


class OracleAuthorizer(Authorizer):
    """Requires one fixed oracle identity among the verified co-signers.

    With no oracle configured every registration is refused.
    """

    def __init__(self, oracle: Optional[Identity]):
        self.oracle = oracle

    def check_registration(
        self, caller: Identity, name: str, co_signers: Iterable[Identity]
    ) -> None:
        if self.oracle is None:
            raise Unauthorized("Author registration is disabled: no oracle configured")
        if self.oracle not in set(co_signers):
            logger.info("Rejected registration of %r by %s: missing oracle signature", name, caller)
            raise Unauthorized(
                "Author registration requires the oracle co-signature",
                {"oracle": str(self.oracle)},
            )
