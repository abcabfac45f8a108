"""
Background execution of catalog requests.

CallRunner runs each submitted request on a single worker thread and
posts the outcome to an event queue as a CallCompleted intent. The
session's event loop reads that queue and dispatches the intents, so all
state changes still happen on one thread.

Usage:
    events: queue.Queue = queue.Queue()
    runner = CallRunner(SpotifyClient(), events)
    runner.submit(request)
    session.dispatch(events.get())
"""

import queue
from concurrent.futures import ThreadPoolExecutor

from playlist_importer.core.logger import get_logger
from playlist_importer.reconcile.requests import CatalogApi, CatalogRequest
from playlist_importer.session.intents import CallCompleted


logger = get_logger(__name__)


class CallRunner:
    """
    Executes catalog requests off the event loop.

    One worker thread is enough: the call slot guarantees that at most one
    request is submitted at a time.
    """

    def __init__(self, catalog: CatalogApi, events: "queue.Queue[CallCompleted]") -> None:
        self._catalog = catalog
        self._events = events
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="catalog")

    def submit(self, request: CatalogRequest) -> None:
        self._executor.submit(self._run, request)

    def _run(self, request: CatalogRequest) -> None:
        try:
            result = request.execute(self._catalog)
        except Exception as e:
            # Handed to the session, which decides whether it is recoverable
            logger.debug(f"Request '{request.operation}' failed: {e}")
            self._events.put(CallCompleted(request, error=e))
            return
        self._events.put(CallCompleted(request, result=result))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
