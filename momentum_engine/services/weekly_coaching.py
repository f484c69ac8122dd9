"""
Weekly coaching trigger.

POSTs {email, weekId} to the external narrative generator. The response
body is not consumed; any transport error or non-2xx status surfaces as
CoachingTriggerError. No retries.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import httpx

from momentum_engine.core.clock import iso_week_id, today as local_today
from momentum_engine.core.config import settings
from momentum_engine.core.errors import CoachingTriggerError

logger = logging.getLogger(__name__)


def trigger_weekly_coaching(
    email: str,
    week_id: Optional[str] = None,
    today: Optional[date] = None,
    client: Optional[httpx.Client] = None,
) -> str:
    """Returns the week id that was triggered."""
    week = week_id or iso_week_id(today or local_today())
    payload = {"email": email, "weekId": week}

    owns_client = client is None
    http = client or httpx.Client(timeout=settings.COACHING_TIMEOUT_SECONDS)
    try:
        response = http.post(settings.COACHING_ENDPOINT_URL, json=payload)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error("Weekly coaching for %s %s returned %s", email, week, exc.response.status_code)
        raise CoachingTriggerError(week, f"status {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        logger.error("Weekly coaching for %s %s failed: %s", email, week, exc)
        raise CoachingTriggerError(week, exc.__class__.__name__) from exc
    finally:
        if owns_client:
            http.close()

    logger.info("Weekly coaching triggered for %s (%s)", email, week)
    return week
