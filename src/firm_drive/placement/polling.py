"""Fire-and-poll verification for asynchronous drive operations."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from firm_drive.graph.client import GraphApiError
from firm_drive.graph.models import DriveFile

if TYPE_CHECKING:
    from firm_drive.graph.client import GraphClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 0.5

Sleeper = Callable[[float], None]


class VerificationTimeoutPolicy(enum.Enum):
    """What to do when an issued copy never becomes visible."""

    FAIL = "fail"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: str) -> VerificationTimeoutPolicy:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown verification timeout policy {value!r}; expected 'fail' or 'pending'"
            ) from None


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded lookups with a linearly growing pause between them.

    Attempt ``i`` (zero-based) waits ``base_delay * i`` seconds first, so the
    defaults give 0, 0.5, 1.0, 1.5 and 2.0 seconds.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt


def wait_for_item(
    graph_client: GraphClient,
    api_path: str,
    policy: RetryPolicy,
    sleep: Sleeper = time.sleep,
) -> DriveFile | None:
    """Poll ``api_path`` until the item appears or the attempts run out.

    Not-found answers mean the server-side operation has not finished yet and
    are swallowed. Any other Graph error stops polling immediately.

    Args:
        graph_client: Client used for the lookups.
        api_path: Graph endpoint of the expected item.
        policy: Attempt count and backoff.
        sleep: Pause function, ``time.sleep`` unless a test injects another.

    Returns:
        The item's metadata, or None if it never became visible.

    Raises:
        GraphApiError: If a lookup fails for a reason other than not-found.
    """
    for attempt in range(policy.max_attempts):
        delay = policy.delay_for(attempt)
        if delay > 0:
            sleep(delay)
        try:
            raw = graph_client.get(api_path)
        except GraphApiError as exc:
            if not exc.is_not_found:
                raise
            logger.debug("[wait_for_item] not visible yet; path:%s;attempt:%d", api_path, attempt)
            continue
        item = DriveFile.from_graph(raw)
        if item.id:
            return item
    logger.warning(
        "[wait_for_item] item not visible after polling; path:%s;attempts:%d",
        api_path,
        policy.max_attempts,
    )
    return None
