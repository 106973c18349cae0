from vehicle_service.schemas.identity import IdentityContext
from vehicle_service.services.usage_events import UsageAction, UsageEventEmitter, build_usage_event
from tests.conftest import RecordingQueue, RecordingSink, run

IDENTITY = IdentityContext(
    id="u1", email="a@b.c", user_role="customer", tenant_id="t1", tenant_type="Agency", tier="Pro"
)


def test_event_payload_shape() -> None:
    event = build_usage_event(IDENTITY, UsageAction.VEHICLE_CREATED)

    assert {k: v for k, v in event.items() if k != "timestamp"} == {
        "tenantId": "t1",
        "tenantType": "Agency",
        "userId": "u1",
        "userEmail": "a@b.c",
        "userRole": "customer",
        "tier": "Pro",
        "microservice": "vehicle-management",
        "action": "VEHICLE_CREATED",
    }
    assert event["timestamp"]


def test_emit_enqueues_configured_job() -> None:
    queue = RecordingQueue()
    emitter = UsageEventEmitter(queue, "billing.jobs.record_usage_event", RecordingSink())

    assert run(emitter.emit(IDENTITY, UsageAction.VEHICLE_DELETED)) is True
    assert queue.jobs[0][0] == "billing.jobs.record_usage_event"
    assert queue.jobs[0][1]["action"] == "VEHICLE_DELETED"


def test_enqueue_failure_is_logged_and_dropped() -> None:
    sink = RecordingSink()
    emitter = UsageEventEmitter(RecordingQueue(fail=True), "billing.jobs.record_usage_event", sink)

    assert run(emitter.emit(IDENTITY, UsageAction.VEHICLE_UPDATED)) is False
    assert "usage_event.dropped" in sink.names()
