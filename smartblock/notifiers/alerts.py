"""Turns blocking decisions into deduplicated alerts."""

import logging
import threading
import time
import uuid
from collections.abc import Callable

from cachetools import TTLCache

from smartblock.models import Alert, Decision, Severity

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = 300  # 5 minutes
DEFAULT_DEDUP_CACHE_SIZE = 5000


class BlockAlerter:
    """Collects alerts for blocked requests.

    Pass an instance as the classifier's ``on_block`` callback. Repeated
    blocks of the same (domain, reason) inside the dedup window produce one
    alert; ``drain()`` hands the pending alerts to a notifier.
    """

    def __init__(
        self,
        severity: Severity = Severity.MEDIUM,
        dedup_window: int = DEFAULT_DEDUP_WINDOW,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.severity = severity
        self._alert_cache: TTLCache[str, bool] = TTLCache(
            maxsize=DEFAULT_DEDUP_CACHE_SIZE,
            ttl=dedup_window,
            timer=timer,
        )
        self._pending: list[Alert] = []
        self._lock = threading.Lock()
        self._dedup_hits = 0

    def __call__(self, decision: Decision) -> None:
        if not decision.blocked:
            return

        key = f"{decision.domain}:{decision.reason.value}"
        with self._lock:
            if key in self._alert_cache:
                self._dedup_hits += 1
                logger.debug(f"Suppressed duplicate alert for {key}")
                return
            self._alert_cache[key] = True
            self._pending.append(
                Alert.from_decision(
                    str(uuid.uuid4()),
                    decision,
                    severity=self.severity,
                    client=decision.context_hint,
                )
            )

    @property
    def dedup_hits(self) -> int:
        return self._dedup_hits

    def drain(self) -> list[Alert]:
        """Return and forget all pending alerts."""
        with self._lock:
            alerts, self._pending = self._pending, []
        return alerts
