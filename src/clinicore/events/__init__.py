"""Event notification for clinicore.

State changes produce one immutable event each. The EventNotifier sends it
over the Redis broadcast channel when that channel is usable, and otherwise
delivers it straight to the WebSocket listeners connected to this instance.
The BroadcastRelay closes the loop: broadcast messages are re-emitted to
local listeners on every instance.
"""

from clinicore.events.channel import BroadcastChannel, RedisBroadcastChannel
from clinicore.events.listeners import Listener, ListenerRegistry
from clinicore.events.notifier import (
    BroadcastDelivery,
    DeliveryPath,
    DirectDelivery,
    EventDelivery,
    EventNotifier,
)
from clinicore.events.relay import BroadcastRelay
from clinicore.events.schemas import (
    APPOINTMENT_UPDATED,
    DOCTOR_STATUS_CHANGED,
    AnyEvent,
    AppointmentStatusEvent,
    DoctorStatusEvent,
    event_name_for_topic,
)

__all__ = [
    # Event types
    "AppointmentStatusEvent",
    "DoctorStatusEvent",
    "AnyEvent",
    "APPOINTMENT_UPDATED",
    "DOCTOR_STATUS_CHANGED",
    "event_name_for_topic",
    # Channel and listeners
    "BroadcastChannel",
    "RedisBroadcastChannel",
    "Listener",
    "ListenerRegistry",
    "BroadcastRelay",
    # Notifier
    "EventNotifier",
    "EventDelivery",
    "BroadcastDelivery",
    "DirectDelivery",
    "DeliveryPath",
]
