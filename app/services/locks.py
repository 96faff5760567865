# app/services/locks.py
import threading
from contextlib import contextmanager


class CarLockRegistry:
    """
    One lock per car id, alive only while someone holds or waits on it.

    Booking creation holds the car's lock across the overlap check and the
    insert, so two requests for the same car cannot both pass the check before
    either has been committed. Requests for different cars never wait on each
    other. Each entry counts its holders and waiters and is dropped when the
    count returns to zero, so the registry only ever contains cars with a
    booking request in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}  # car id -> [lock, holders + waiters]

    def __len__(self):
        with self._guard:
            return len(self._locks)

    def is_locked(self, car_id) -> bool:
        with self._guard:
            entry = self._locks.get(car_id)
        return entry is not None and entry[0].locked()

    def _checkout(self, car_id):
        with self._guard:
            entry = self._locks.get(car_id)
            if entry is None:
                entry = self._locks[car_id] = [threading.Lock(), 0]
            entry[1] += 1
            return entry

    def _release(self, car_id, entry):
        with self._guard:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[car_id]

    @contextmanager
    def hold(self, car_id):
        entry = self._checkout(car_id)
        try:
            with entry[0]:
                yield
        finally:
            self._release(car_id, entry)


car_locks = CarLockRegistry()
