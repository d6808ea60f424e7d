"""Fixed delays between network-bound steps."""

import time
from typing import Callable, Dict, Optional

from partscrape.config import DELAY_DETAIL, DELAY_GROUP, DELAY_LISTING
from partscrape.logging_config import get_logger

__all__ = ["RateGovernor", "LISTING", "DETAIL", "GROUP"]

logger = get_logger("rate")

LISTING = "listing"
DETAIL = "detail"
GROUP = "group"


class RateGovernor:
    """Sleeps a fixed, per-call-site duration after each unit of network work.

    The delays never change during a run: there is no backoff on errors and
    no speed-up on success. Retrying is the fetcher's job, not this one's.

    Usage:
        governor = RateGovernor(detail=0.5)
        fetch(url)
        governor.pause(DETAIL)
    """

    def __init__(
        self,
        listing: float = DELAY_LISTING,
        detail: float = DELAY_DETAIL,
        group: float = DELAY_GROUP,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.delays: Dict[str, float] = {
            LISTING: listing,
            DETAIL: detail,
            GROUP: group,
        }
        for site, seconds in self.delays.items():
            if seconds < 0:
                raise ValueError(f"Delay for '{site}' must be >= 0, got {seconds}")
        self._sleep = sleep or time.sleep
        self.total_slept = 0.0

    def pause(self, site: str) -> None:
        """Sleep for the delay configured for ``site``."""
        try:
            seconds = self.delays[site]
        except KeyError:
            raise ValueError(f"Unknown rate-limit call site: {site}") from None
        if seconds <= 0:
            return
        self._sleep(seconds)
        self.total_slept += seconds

    @classmethod
    def disabled(cls) -> "RateGovernor":
        """A governor that never sleeps (for tests and dry runs)."""
        return cls(listing=0.0, detail=0.0, group=0.0)
