"""Acquiring a browser handle, preferring idle remote sessions."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from typing import Callable, Optional

from ..errors import CapacityExceeded
from .protocols import BrowserHandle, BrowserProvider, Capacity, SessionInfo

logger = logging.getLogger(__name__)

Chooser = Callable[[Sequence[str]], str]


def pick_idle_session(
    sessions: Sequence[SessionInfo],
    chooser: Chooser = random.choice,
) -> Optional[str]:
    """
    Pick an idle session id from a snapshot of the provider's sessions.

    Picks uniformly at random so concurrent requests spread out over
    the idle pool instead of all racing for the first entry.

    Args:
        sessions: Sessions reported by the provider
        chooser: Selection function (random.choice by default)

    Returns:
        A session id, or None if no session is idle
    """
    idle = [session.session_id for session in sessions if session.is_idle]
    if not idle:
        return None
    return chooser(idle)


async def acquire_browser(
    provider: BrowserProvider,
    chooser: Chooser = random.choice,
) -> BrowserHandle:
    """
    Obtain a browser handle, reusing an idle session when possible.

    Makes a single connect attempt on a random idle session. If that
    attempt fails (another request claimed it first) or nothing is idle,
    a new session is launched. Errors from launch propagate unchanged.

    Args:
        provider: The browser-rendering provider
        chooser: Selection function among idle session ids

    Returns:
        A browser handle the caller must close
    """
    sessions = await provider.list_sessions()
    logger.debug(f"Sessions: {sessions}")

    session_id = pick_idle_session(sessions, chooser)
    if session_id is not None:
        try:
            browser = await provider.connect(session_id)
            logger.info(f"Reusing browser session {session_id}")
            return browser
        except Exception as e:
            logger.info(f"Failed to connect to {session_id}. Error {e}")

    logger.info("No idle session available, launching a new browser")
    return await provider.launch()


async def check_capacity(provider: BrowserProvider) -> Capacity:
    """Query how many browser acquisitions the provider allows right now."""
    capacity = await provider.query_capacity()
    logger.debug(f"Browser capacity: allowed={capacity.allowed} retry_after={capacity.retry_after}s")
    return capacity


async def ensure_capacity(provider: BrowserProvider) -> Capacity:
    """
    Pre-flight admission check.

    Raises:
        CapacityExceeded: If no acquisitions are currently allowed
    """
    capacity = await check_capacity(provider)
    if not capacity.available:
        raise CapacityExceeded(retry_after=capacity.retry_after)
    return capacity
