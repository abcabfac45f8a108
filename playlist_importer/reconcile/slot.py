"""
Single-slot limit on outstanding catalog calls.

Spotify rate-limits aggressively, so the importer never has more than one
catalog call outstanding, whoever issues it: the match orchestrator, the
playlist sync driver or a direct user request. CallSlot makes that limit
an explicit object every issuer has to go through.
"""

from playlist_importer.core.exceptions import ReconciliationError


class CallSlot:
    """
    Capacity-1 semaphore for catalog calls.

    Not thread-safe: acquire() and release() are only called from the
    session's event loop.

    Usage:
        slot = CallSlot()
        if slot.try_acquire(request):
            runner.submit(request)
        ...
        slot.release(request)   # when its completion arrives
    """

    def __init__(self) -> None:
        self._holder: object | None = None

    @property
    def busy(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> object | None:
        return self._holder

    def try_acquire(self, holder: object) -> bool:
        """Take the slot for `holder`. Returns False if it is taken."""
        if self._holder is not None:
            return False
        self._holder = holder
        return True

    def release(self, holder: object) -> None:
        """
        Free the slot.

        Raises:
            ReconciliationError: If `holder` does not hold the slot.
        """
        if self._holder is not holder:
            raise ReconciliationError(
                "Call slot released by a request that does not hold it",
                details={"holder": repr(self._holder), "releasing": repr(holder)}
            )
        self._holder = None
