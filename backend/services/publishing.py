"""
Timed publication.

publish_post() is what a scheduler job runs when it comes due: flip the
post to published and push it to the search index. publish_due() drains
the in-memory scheduler, for local development and tests.
"""

import logging
from datetime import datetime
from typing import List, Optional

from services.container import Services
from services.stores import PostRecord, utcnow

logger = logging.getLogger(__name__)


async def publish_post(services: Services, uuid: str) -> Optional[PostRecord]:
    current = await services.posts.get(uuid)
    if current is None or current.status != "scheduled":
        logger.info(f"publication_skipped post={uuid} reason={'missing' if current is None else current.status}")
        return None

    record = await services.posts.update(uuid, {
        "status": "published",
        "published_at": utcnow(),
        "publish_at": None,
    })
    if record is not None:
        await services.search.index(record)
        logger.info(f"post_published post={uuid}")
    return record


async def publish_due(services: Services, now: Optional[datetime] = None) -> List[str]:
    """Publish every scheduled post whose time has come; returns their uuids."""
    return await services.scheduler.run_due(now or utcnow(), lambda uuid: publish_post(services, uuid))
