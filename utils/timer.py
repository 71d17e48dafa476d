# utils/timer.py
import time
from contextlib import contextmanager

from core.logger import logger


class StepTimer:
    def __init__(self):
        self.totals = {}
        self.hits = {}

    @contextmanager
    def time(self, step):
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.totals[step] = self.totals.get(step, 0) + elapsed
            self.hits[step] = self.hits.get(step, 0) + 1

            if logger.isEnabledFor(10):  # DEBUG level
                logger.debug(f"[TIMER] {step} took {elapsed:.4f}s")

    def log(self):
        if not self.totals:
            return
        avg = {k: v / self.hits.get(k, 1) for k, v in self.totals.items()}
        logger.info(f"[PERF] Timing measurements: " +
                    ", ".join(f"{k}={v:.4f}s" for k, v in avg.items()))

    def reset(self):
        self.totals.clear()
        self.hits.clear()
