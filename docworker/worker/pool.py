import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, wait

from docworker.logging.logger import Log
from docworker.worker.worker import Worker


class WorkerPool:
    """Runs ``concurrency`` poll loops on threads sharing one stop event.

    ``worker_factory(index, stop_event)`` builds each worker; only the first
    one should get the stale job reaper.
    """

    def __init__(
        self,
        worker_factory: Callable[[int, threading.Event], Worker],
        concurrency: int,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._worker_factory = worker_factory
        self._concurrency = concurrency
        self._stop_event = threading.Event()

    def run(self) -> None:
        workers = [self._worker_factory(i, self._stop_event) for i in range(self._concurrency)]
        Log.info(f"Starting {len(workers)} worker(s)")
        with ThreadPoolExecutor(
            max_workers=self._concurrency, thread_name_prefix="worker"
        ) as executor:
            futures = [executor.submit(worker.run) for worker in workers]
            try:
                wait(futures)
            except KeyboardInterrupt:
                Log.info("Interrupt received, stopping workers")
                self.stop()
                wait(futures)

        for future in futures:
            if future.exception() is not None:
                Log.error(f"Worker exited with error: {future.exception()}")

    def stop(self) -> None:
        self._stop_event.set()
