from enum import Enum


class ServiceType(str, Enum):
    plumbing = "plumbing"
    electrical = "electrical"
    locksmith = "locksmith"
    carpenter = "carpenter"


class RequestStatus(str, Enum):
    new = "new"
    accepted = "accepted"


class RegistrationStep(str, Enum):
    name = "name"
    specialization = "specialization"
    districts = "districts"
    phone = "phone"
    done = "done"


class ClaimOutcome(str, Enum):
    accepted = "accepted"
    already_claimed = "already_claimed"
    not_found = "not_found"
