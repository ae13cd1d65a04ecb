"""Abstract base class for link store implementations."""

from abc import ABC, abstractmethod
from typing import Optional, List
from datetime import datetime

from ..models import LinkRecord


class LinkStoreBase(ABC):
    """Abstract base class for durable link storage.

    Every method may suspend. Infrastructure failures are raised as
    StoreUnavailableError; uniqueness violations on insert are raised as
    TokenConflictError or LongUrlConflictError.
    """

    backend_name = "abstract"

    @abstractmethod
    async def find_by_token(self, short_token: str) -> Optional[LinkRecord]:
        """Get the record for a short token.

        Args:
            short_token: The token to lookup

        Returns:
            The record if found (active or not), None otherwise
        """

    @abstractmethod
    async def find_by_long_url(self, long_url: str) -> Optional[LinkRecord]:
        """Get the most recent active record for a long URL.

        Args:
            long_url: The long URL (exact string match)

        Returns:
            The active record with the highest id, or None
        """

    @abstractmethod
    async def insert(self, record: LinkRecord) -> LinkRecord:
        """Insert a new record.

        Args:
            record: The record to insert; its id is ignored

        Returns:
            The stored record with its assigned id

        Raises:
            TokenConflictError: If the short token is already taken
            LongUrlConflictError: If an active record exists for the long URL
        """

    @abstractmethod
    async def update(self, record: LinkRecord) -> Optional[LinkRecord]:
        """Update the mutable fields of an existing record.

        Only is_active, expires_at and description are written; the token,
        the long URL and the access counters are left untouched.

        Returns:
            The updated record, or None if the token does not exist

        Raises:
            LongUrlConflictError: If re-activating would create a second
                active record for the long URL
        """

    @abstractmethod
    async def delete(self, short_token: str) -> bool:
        """Delete a record.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    async def exists(self, short_token: str) -> bool:
        """Check if a short token is already taken."""

    @abstractmethod
    async def count(self) -> int:
        """Count all records."""

    @abstractmethod
    async def list_all(self) -> List[LinkRecord]:
        """List all records ordered by id."""

    @abstractmethod
    async def record_access(self, short_token: str, accessed_at: datetime) -> None:
        """Increment the access count and set the last access time."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is healthy.

        Returns:
            True if healthy, False otherwise
        """

    @abstractmethod
    async def close(self) -> None:
        """Release store resources."""
