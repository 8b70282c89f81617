"""Runs the reconciler against the record store.

The manager plays the part of a controller framework:

- a watch thread polls the store and enqueues records that were created,
  changed or erased since the previous poll
- a pool of worker threads drains the queue, one reconcile pass at a time
  per record
- successful passes are re-queued after the requested resync delay, failed
  ones with exponential backoff
"""

import logging
import threading
from typing import Optional

from controller.reconciler import Reconciler
from controller.workqueue import ShutDown, WorkQueue
from models.data_models import NamespacedName

logger = logging.getLogger(__name__)


class ControllerManager:
    """Owns the work queue, the watch loop and the worker pool."""
    
    def __init__(
        self,
        store,
        reconciler: Reconciler,
        workers: int = 4,
        poll_interval: float = 5.0,
        queue: Optional[WorkQueue] = None,
    ):
        self.store = store
        self.reconciler = reconciler
        self.workers = workers
        self.poll_interval = poll_interval
        self.queue = queue or WorkQueue()
        self._versions: dict[NamespacedName, int] = {}
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
    
    def poll_once(self) -> int:
        """
        List the store and enqueue every key whose record appeared, changed or
        disappeared since the last poll.
        
        Returns:
            Number of keys enqueued
        """
        records = self.store.list()
        seen = {record.key: record.metadata.resource_version for record in records}
        
        changed = [key for key, version in seen.items() if self._versions.get(key) != version]
        gone = [key for key in self._versions if key not in seen]
        
        for key in changed + gone:
            self.queue.add(key)
        
        self._versions = seen
        if changed or gone:
            logger.debug(
                f"Watch: {len(changed)} changed, {len(gone)} removed, "
                f"{self.queue.num_scheduled()} scheduled"
            )
        return len(changed) + len(gone)
    
    def process_next(self, timeout: Optional[float] = None) -> bool:
        """
        Take one key from the queue and reconcile it.
        
        Returns:
            False if the queue timed out or was shut down, True otherwise
        """
        try:
            key = self.queue.get(timeout=timeout)
        except ShutDown:
            return False
        if key is None:
            return False
        
        try:
            result = self.reconciler.reconcile(key)
        except Exception as e:
            delay = self.queue.add_rate_limited(key)
            logger.error(f"Reconcile of {key} failed, retrying in {delay:.0f}s: {e}")
        else:
            self.queue.forget(key)
            if result.requeue_after is not None:
                self.queue.add_after(key, result.requeue_after.total_seconds())
        finally:
            self.queue.done(key)
        return True
    
    def _watch_loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Failed to list GithubIssue records: {e}")
            self._stop.wait(self.poll_interval)
    
    def _worker_loop(self) -> None:
        while not self._stop.is_set():
            if not self.process_next(timeout=1.0) and self.queue.shutting_down:
                return
    
    def start(self) -> None:
        """Start the watch thread and the workers."""
        logger.info(f"Starting controller with {self.workers} workers")
        self._stop.clear()
        self._threads = [threading.Thread(target=self._watch_loop, name="watch", daemon=True)]
        self._threads += [
            threading.Thread(target=self._worker_loop, name=f"worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in self._threads:
            thread.start()
    
    def stop(self, timeout: float = 30.0) -> None:
        """Stop polling, shut down the queue and join the threads."""
        logger.info("Stopping controller")
        self._stop.set()
        self.queue.shut_down()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
    
    def run(self) -> None:
        """Start and block until interrupted."""
        self.start()
        try:
            while not self._stop.wait(1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.stop()
