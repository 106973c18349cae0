# vehicle_service/services/usage_events.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

import redis
from rq import Queue
from starlette.concurrency import run_in_threadpool

from vehicle_service.config import Settings
from vehicle_service.observability import EventSink
from vehicle_service.schemas.identity import IdentityContext

MICROSERVICE = "vehicle-management"


class UsageAction(str, Enum):
    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_STATUS_UPDATED = "VEHICLE_STATUS_UPDATED"
    VEHICLE_DELETED = "VEHICLE_DELETED"
    VEHICLE_OWNERSHIP_TRANSFERRED = "VEHICLE_OWNERSHIP_TRANSFERRED"


def build_usage_event(identity: IdentityContext, action: UsageAction) -> Dict[str, Any]:
    return {
        "tenantId": identity.tenant_id,
        "tenantType": identity.tenant_type,
        "userId": identity.id,
        "userEmail": identity.email,
        "userRole": identity.user_role,
        "tier": identity.tier,
        "microservice": MICROSERVICE,
        "action": action.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class UsageEventEmitter:
    """Fire-and-forget billing events pushed onto an rq queue."""

    def __init__(self, queue: Queue, job_path: str, sink: EventSink):
        self.queue = queue
        self.job_path = job_path
        self.sink = sink

    @classmethod
    def from_settings(cls, settings: Settings, sink: EventSink) -> "UsageEventEmitter":
        connection = redis.Redis.from_url(settings.REDIS_URL)
        return cls(Queue(settings.USAGE_QUEUE_NAME, connection=connection), settings.USAGE_EVENT_JOB, sink)

    async def emit(self, identity: IdentityContext, action: UsageAction) -> bool:
        """Enqueue one event. Returns False when the queue refused it."""
        event = build_usage_event(identity, action)
        try:
            await run_in_threadpool(self.queue.enqueue, self.job_path, event)
        except Exception as exc:  # any broker failure is dropped, the caller's operation stands
            self.sink.warn("usage_event.dropped", action=action.value, tenant_id=identity.tenant_id, error=exc)
            return False
        self.sink.emit("usage_event.enqueued", action=action.value, tenant_id=identity.tenant_id)
        return True
