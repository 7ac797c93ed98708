from .announcement import Announcement
from .event import Event
from .participant import Cohort, Participant, PartnerStudent
from .payment import Payment
from .registration import Registration
from .symposium import SymposiumSettings

__all__ = [
    "Announcement",
    "Cohort",
    "Event",
    "Participant",
    "PartnerStudent",
    "Payment",
    "Registration",
    "SymposiumSettings",
]
