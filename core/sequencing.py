import logging
from collections.abc import Awaitable, Callable

from core.search import RemoteFetchError
from db.models import Listing

log = logging.getLogger(__name__)


class SearchSequencer:
    """Applies a search result only if it belongs to the latest submission.

    Every submission takes a monotonically increasing token. A completion
    whose token is older than the newest issued one is dropped, so a slow
    earlier search can never overwrite the results of a later one.
    """

    def __init__(self):
        self._latest = 0
        self.results: list[Listing] = []

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def apply(self, token: int, results: list[Listing]) -> bool:
        if not self.is_current(token):
            log.debug(f"Discarding stale search #{token} (latest #{self._latest})")
            return False
        self.results = list(results)
        return True

    async def run(self, search: Callable[[], Awaitable[list[Listing]]]) -> list[Listing] | None:
        """Run ``search`` under a fresh token.

        Returns the applied results, an empty list when the fetch failed, or
        None when a newer submission superseded this one.
        """
        token = self.issue()
        try:
            results = await search()
        except RemoteFetchError as e:
            log.error(f"Search #{token} failed: {e}")
            results = []
        if not self.apply(token, results):
            return None
        return self.results
