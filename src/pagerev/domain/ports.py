"""
Ports (interfaces) for page storage.

The engine works on in-memory snapshots; these define the contract a
storage adapter must satisfy so the CLI can load and save them.
"""

from abc import ABC, abstractmethod

from .models import PageRecord


class PageRepository(ABC):
    """
    Port for loading and saving the page collection.

    Implementations:
        - JsonPageStore: a local JSON or YAML document.
    """

    @abstractmethod
    def load_all(self) -> list[PageRecord]:
        """
        Load every stored page.

        Returns:
            The stored pages in stored order; empty if nothing is stored yet.
        """
        pass

    @abstractmethod
    def save_all(self, pages: list[PageRecord]) -> None:
        """
        Replace the stored collection with `pages`.

        Args:
            pages: The full, recalculated page collection.
        """
        pass
