"""Rate limiting: permit gate, admission queue and periodic replenisher."""

from crptclient.ratelimit.gate import CapacityGate, Permit
from crptclient.ratelimit.queue import AdmissionQueue
from crptclient.ratelimit.replenisher import Replenisher, ReplenisherState

__all__ = [
    "AdmissionQueue",
    "CapacityGate",
    "Permit",
    "Replenisher",
    "ReplenisherState",
]
