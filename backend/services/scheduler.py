"""
Publication scheduler interface.

Timed publication runs in an external job-scheduling subsystem. The API
only registers (and cancels) jobs; InMemoryScheduler records them and can
run due jobs on demand, which is enough for local development and tests.
"""

import logging
import threading
import uuid as uuid_lib
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledJob:
    job_id: str
    post_uuid: str
    run_at: datetime


class PublicationScheduler(Protocol):
    async def schedule(self, post_uuid: str, run_at: datetime) -> ScheduledJob: ...

    async def cancel(self, post_uuid: str) -> bool: ...


class InMemoryScheduler:
    """One pending job per post; rescheduling replaces the previous job."""

    def __init__(self):
        self._jobs: Dict[str, ScheduledJob] = {}
        self._lock = threading.Lock()

    @property
    def jobs(self) -> List[ScheduledJob]:
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.run_at)

    async def schedule(self, post_uuid: str, run_at: datetime) -> ScheduledJob:
        with self._lock:
            job = ScheduledJob(job_id=str(uuid_lib.uuid4()), post_uuid=post_uuid, run_at=run_at)
            replaced = self._jobs.get(post_uuid)
            self._jobs[post_uuid] = job
        if replaced:
            logger.info(f"publication_rescheduled post={post_uuid} previous_job={replaced.job_id}")
        logger.info(f"publication_scheduled post={post_uuid} job={job.job_id} run_at={run_at.isoformat()}")
        return job

    async def cancel(self, post_uuid: str) -> bool:
        with self._lock:
            return self._jobs.pop(post_uuid, None) is not None

    async def run_due(self, now: datetime, publish: Callable[[str], Awaitable[Optional[object]]]) -> List[str]:
        """Run every job due at `now` through `publish`; returns the published post uuids."""
        with self._lock:
            due = [job for job in self._jobs.values() if job.run_at <= now]
            for job in due:
                del self._jobs[job.post_uuid]
        published = []
        for job in sorted(due, key=lambda j: j.run_at):
            if await publish(job.post_uuid) is not None:
                published.append(job.post_uuid)
        return published
