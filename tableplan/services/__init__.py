from .conflict_service import ConflictDetector
from .availability_service import AvailabilityService, compute_availability
from .slot_service import SlotService, generate_slots
from .assignment_service import AssignmentService
from .extension_service import ExtensionService
from .walkin_service import WalkInService
from .booking_service import BookingService

__all__ = [
    "ConflictDetector",
    "AvailabilityService",
    "compute_availability",
    "SlotService",
    "generate_slots",
    "AssignmentService",
    "ExtensionService",
    "WalkInService",
    "BookingService",
]
