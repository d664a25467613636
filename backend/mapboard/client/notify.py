from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class Banner:
    message: str
    level: str
    expires_at: float


class BannerNotifier:
    """Transient user-visible messages with a fixed auto-dismiss window."""

    def __init__(self, timeout_s: float = DEFAULT_TIMEOUT_S, *, clock: Callable[[], float] = time.monotonic):
        self.timeout_s = timeout_s
        self._clock = clock
        self._banners: List[Banner] = []

    def show(self, message: str, level: str = "error") -> Banner:
        banner = Banner(message=message, level=level, expires_at=self._clock() + self.timeout_s)
        self._banners.append(banner)
        logger.log(logging.ERROR if level == "error" else logging.INFO, "Banner: %s", message)
        return banner

    def active(self) -> List[Banner]:
        now = self._clock()
        self._banners = [b for b in self._banners if b.expires_at > now]
        return list(self._banners)

    def latest(self) -> Optional[Banner]:
        banners = self.active()
        return banners[-1] if banners else None
