from contextlib import contextmanager
from datetime import date
from threading import Lock

from healthfirst.core import config


class BookingLocks:
    """Striped in-process locks keyed by provider and date.

    Every booking for the same provider and date maps to the same stripe, so
    the booked check and the writes that follow it run one at a time within
    this process. Row locks and unique constraints cover multiple workers.
    """

    def __init__(self, stripes: int = config.BOOKING_LOCK_STRIPES):
        self._locks = [Lock() for _ in range(stripes)]

    def _lock_for(self, provider_id: int, slot_date: date) -> Lock:
        return self._locks[hash((provider_id, slot_date.toordinal())) % len(self._locks)]

    @contextmanager
    def hold(self, provider_id: int, slot_date: date):
        lock = self._lock_for(provider_id, slot_date)
        with lock:
            yield


booking_locks = BookingLocks()
