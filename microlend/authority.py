"""
authority.py - Authorization oracle for loan issuance

The engine asks an oracle whether the current caller is a verified authority
before issuing any loan. The oracle is a pluggable capability; the engine
never caches its answers.

Classes:
- AuthorizationOracle: Protocol defining the query interface
- StaticAuthorityRegistry: In-memory set of verified principals
"""

from typing import Iterable, Optional, Protocol, Set, runtime_checkable

from .logging import get_logger


logger = get_logger(__name__)


@runtime_checkable
class AuthorizationOracle(Protocol):
    """
    Protocol for authority verification.

    Implementations answer a single question per call and must be
    side-effect free from the engine's point of view.
    """

    def is_verified_authority(self, principal: str) -> bool:
        """Return True if principal is a verified authority."""
        ...


class StaticAuthorityRegistry:
    """
    Authorization oracle backed by an explicit set of principals.

    Membership can change between calls; the engine sees the change on its
    next query.
    """

    def __init__(self, principals: Optional[Iterable[str]] = None):
        """
        Initialize with an optional set of verified principals.

        Args:
            principals: Principals that are verified from the start
        """
        self._principals: Set[str] = set(principals or ())

    def is_verified_authority(self, principal: str) -> bool:
        return principal in self._principals

    def verify(self, principal: str) -> None:
        """Add a principal to the verified set."""
        if not principal or not principal.strip():
            raise ValueError("principal cannot be empty")
        self._principals.add(principal)
        logger.info("Verified authority %s", principal)

    def revoke(self, principal: str) -> None:
        """Remove a principal from the verified set. No-op if absent."""
        self._principals.discard(principal)
        logger.info("Revoked authority %s", principal)

    @property
    def principals(self) -> Set[str]:
        return set(self._principals)

    def __repr__(self):
        return f"StaticAuthorityRegistry({len(self._principals)} principals)"
