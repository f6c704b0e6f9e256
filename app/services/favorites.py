"""
Favorites Ledger - Client-local set of favorited sale ids.

The local set is the only source of truth for "did I favorite this"; it is
never reconciled against the server. Each toggle additionally asks the API
to adjust the public favorite counter, best effort.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Protocol
from uuid import UUID

from structlog import get_logger

from app.services.sales_client import SalesApiClient

logger = get_logger(__name__)


class ToggleOutcome(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


class FavoritesStore(Protocol):
    """Persistence for the ordered list of favorited ids."""

    def load(self) -> list[str]: ...

    def save(self, ids: list[str]) -> None: ...


class InMemoryFavoritesStore:
    def __init__(self, ids: list[str] | None = None) -> None:
        self._ids = list(ids or [])

    def load(self) -> list[str]:
        return list(self._ids)

    def save(self, ids: list[str]) -> None:
        self._ids = list(ids)


class JsonFileFavoritesStore:
    """
    Stores favorites as a JSON array in a local file.

    A missing or corrupt file reads as "no favorites".
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning("favorites_store_unreadable", path=str(self.path), error=str(e))
            return []
        if not isinstance(data, list):
            return []
        return [str(item) for item in data]

    def save(self, ids: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(ids), encoding="utf-8")


def adjust_count(count: int, outcome: ToggleOutcome) -> int:
    """Visible favorite count after a toggle, never below zero."""
    if outcome == ToggleOutcome.ADDED:
        return count + 1
    return max(count - 1, 0)


class FavoritesLedger:
    """Toggle semantics over a local favorites store."""

    def __init__(self, store: FavoritesStore, client: SalesApiClient | None = None) -> None:
        self.store = store
        self.client = client

    def favorites(self) -> list[str]:
        return self.store.load()

    def is_favorite(self, sale_id: UUID | str) -> bool:
        return str(sale_id) in self.store.load()

    async def toggle(self, sale_id: UUID | str) -> ToggleOutcome:
        """
        Add ``sale_id`` if absent, remove it if present.

        The local change is saved before the server counter is adjusted, and
        a failed counter update does not undo it.
        """
        key = str(sale_id)
        ids = self.store.load()
        if key in ids:
            ids.remove(key)
            outcome = ToggleOutcome.REMOVED
        else:
            ids.append(key)
            outcome = ToggleOutcome.ADDED
        self.store.save(ids)

        if self.client is not None:
            if outcome == ToggleOutcome.ADDED:
                await self.client.increment_favorite(key)
            else:
                await self.client.decrement_favorite(key)

        logger.debug("favorite_toggled", sale_id=key, outcome=outcome.value)
        return outcome
