from __future__ import annotations

from typing import Dict, List, Optional

from repair_dispatch.core.enums import ServiceType
from repair_dispatch.models.service_requests import ServiceRequest
from repair_dispatch.models.specialists import Specialist

ACCEPT_PREFIX = "accept_"

BTN_REGISTER = "Register as specialist"
BTN_PROFILE = "My profile"
BTN_ACCEPT = "Accept order"

SERVICE_TYPE_LABELS: Dict[ServiceType, str] = {
    ServiceType.plumbing: "Plumber",
    ServiceType.electrical: "Electrician",
    ServiceType.locksmith: "Locksmith",
    ServiceType.carpenter: "Carpenter",
}

WELCOME = "Welcome! Choose an action:"
ALREADY_REGISTERED = "You are already registered as a specialist."
NOT_REGISTERED = "You are not registered as a specialist yet."
ASK_NAME = "Enter your full name:"
ASK_SPECIALIZATION = "Choose your specialization:"
ASK_DISTRICTS = "Enter the districts you work in (comma separated):"
ASK_PHONE = "Enter your phone number:"
REGISTRATION_DONE = "Registration complete!"
NO_LONGER_AVAILABLE = "This order has already been taken by another specialist."


def accept_token(request_id: str) -> str:
    return f"{ACCEPT_PREFIX}{request_id}"


def parse_accept_token(data: Optional[str]) -> Optional[str]:
    if not data or not data.startswith(ACCEPT_PREFIX):
        return None
    return data[len(ACCEPT_PREFIX):] or None


def parse_service_type(answer: str) -> Optional[ServiceType]:
    text = answer.strip().lower()
    for service_type, label in SERVICE_TYPE_LABELS.items():
        if text in (service_type.value, label.lower()):
            return service_type
    return None


def keyboard(rows: List[List[str]]) -> dict:
    return {"keyboard": rows, "resize_keyboard": True}


def main_keyboard() -> dict:
    return keyboard([[BTN_REGISTER], [BTN_PROFILE]])


def specialization_keyboard() -> dict:
    labels = list(SERVICE_TYPE_LABELS.values())
    return keyboard([labels[:2], labels[2:]])


def accept_keyboard(request_id: str) -> dict:
    return {
        "inline_keyboard": [
            [{"text": BTN_ACCEPT, "callback_data": accept_token(request_id)}]
        ]
    }


def new_request_text(request: ServiceRequest) -> str:
    return (
        "New order!\n"
        f"Service type: {request.service_type.value}\n"
        f"Address: {request.address}\n"
        f"Description: {request.description}\n"
        f"Common problem: {request.common_problem}"
    )


def accepted_text(request: ServiceRequest) -> str:
    return f"You accepted the order! Client contact phone: {request.phone}"


def taken_text(request: ServiceRequest) -> str:
    return f"The order at {request.address} has already been taken by another specialist."


def profile_text(specialist: Specialist) -> str:
    return (
        "Your profile\n"
        f"Name: {specialist.name}\n"
        f"Specialization: {SERVICE_TYPE_LABELS[specialist.specialization]}\n"
        f"Districts: {', '.join(specialist.districts) or '-'}\n"
        f"Phone: {specialist.phone}\n"
        f"Active: {'yes' if specialist.active else 'no'}"
    )
