"""Lifecycle events emitted while a page is distilled."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional


class DistillStage(str, Enum):
    """Stages of a single distill request, in the order they are reached."""

    SESSION_ACQUIRED = "session_acquired"
    PAGE_OPENED = "page_opened"
    NAVIGATED = "navigated"
    EXTRACTED = "extracted"
    CONVERTED = "converted"
    RELEASED = "released"
    FAILED = "failed"


@dataclass
class DistillEvent:
    """
    Event emitted as a request moves through the pipeline.

    Example:
        def on_event(event: DistillEvent) -> None:
            if event.stage == DistillStage.FAILED:
                print(f"Error: {event.url} - {event.error}")

        await distill(provider, url, emit=on_event)
    """

    stage: DistillStage
    url: str

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    message: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    content_length: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.stage == DistillStage.FAILED


# Type alias for event emitter function
EventEmitter = Callable[[DistillEvent], None]
