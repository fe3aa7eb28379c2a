import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from common.utils import DELIVERY_COUNT_HEADER

MAX_TRACKED_PAYLOADS = 10000


@dataclass(frozen=True)
class RedeliveryPolicy:
    """
    How many times a failing delivery is requeued before it is rejected.

    max_redeliveries=None keeps requeueing forever. With a limit n, the
    (n + 1)th handler failure for the same payload rejects it without
    requeue; the broker then drops it or dead-letters it if the queue was
    configured to.
    """

    max_redeliveries: Optional[int] = None

    def __post_init__(self):
        if self.max_redeliveries is not None and self.max_redeliveries < 0:
            raise ValueError("max_redeliveries must be None or >= 0")

    @property
    def unlimited(self):
        return self.max_redeliveries is None

    def should_requeue(self, failures):
        """failures counts handler failures for the payload, including the current one"""
        return self.unlimited or failures <= self.max_redeliveries


class FailureTracker:
    """
    Counts handler failures per payload.

    Uses the broker's x-delivery-count header when present (quorum queues);
    nothing is stored locally in that case. Otherwise counts locally, keyed
    by payload digest, which only sees redeliveries that come back to this
    consumer. Distinct messages with identical bytes share one count.

    At most max_entries payloads are tracked; the least recently failed one
    is evicted first, so payloads acked by another consumer do not pile up.
    """

    def __init__(self, max_entries=MAX_TRACKED_PAYLOADS):
        self._failures = OrderedDict()
        self._max_entries = max_entries
        self._lock = threading.Lock()

    @staticmethod
    def _key(body):
        return hashlib.sha256(body).hexdigest()

    def __len__(self):
        with self._lock:
            return len(self._failures)

    def record_failure(self, delivery):
        """Register one more failure for the delivery's payload and return the total"""
        broker_count = delivery.headers.get(DELIVERY_COUNT_HEADER)
        if isinstance(broker_count, int):
            return broker_count + 1

        key = self._key(delivery.body)
        with self._lock:
            failures = self._failures.pop(key, 0) + 1
            self._failures[key] = failures
            while len(self._failures) > self._max_entries:
                self._failures.popitem(last=False)
            return failures

    def forget(self, delivery):
        with self._lock:
            self._failures.pop(self._key(delivery.body), None)

    def failures(self, body):
        with self._lock:
            return self._failures.get(self._key(body), 0)
