from __future__ import annotations


class DispatchError(Exception):
    """Base class for domain errors surfaced to the acting user."""


class NotFound(DispatchError):
    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class UnknownSpecialist(NotFound):
    def __init__(self, identity: object):
        super().__init__("Specialist", identity)


class DuplicateRegistration(DispatchError):
    def __init__(self, identity: object):
        self.identity = identity
        super().__init__(f"Specialist {identity} is already registered")


class GatewayDeliveryFailure(DispatchError):
    def __init__(self, recipient: object, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Delivery to {recipient} failed: {reason}")
