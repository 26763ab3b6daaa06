"""
Workflow events emitted after a successful status change or scheduling.

The engine creates the event once the mutation is committed and hands it to
notification_service.dispatch; nothing is persisted or published here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class EventType(str, Enum):
    ADOPTION_STATUS_UPDATED = 'AdoptionStatusUpdated'
    ABUSE_STATUS_UPDATED = 'AnimalAbuseStatusUpdated'
    APPOINTMENT_SCHEDULED = 'AdoptionAppointmentScheduled'


# Event names used on the realtime channel
BROADCAST_NAMES = {
    EventType.ADOPTION_STATUS_UPDATED: 'adoption.status.updated',
    EventType.ABUSE_STATUS_UPDATED: 'animal.abuse.status.updated',
    EventType.APPOINTMENT_SCHEDULED: 'adoption.appointment.scheduled',
}


@dataclass(frozen=True)
class WorkflowEvent:
    type: EventType
    user_id: int              # Who gets notified
    subject: Any              # The request, report or appointment that changed
    status: Optional[str] = None

    @property
    def broadcast_name(self) -> str:
        return BROADCAST_NAMES[self.type]
