"""
Shared pytest fixtures.

Repositories run against ``FakeCollection``, an in-memory stand-in for the
subset of the Motor collection API they use. Every operation yields to the
event loop once before touching data and then applies in one synchronous
step, the same per-document atomicity MongoDB gives ``update_one``.
"""

import asyncio
import copy
import os
import tempfile
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="repair-dispatch-uploads-"))

from repair_dispatch.core.enums import ServiceType  # noqa: E402
from repair_dispatch.core.errors import GatewayDeliveryFailure  # noqa: E402
from repair_dispatch.db.mongo import (  # noqa: E402
    AUDIT_LOGS,
    REGISTRATION_SESSIONS,
    SERVICE_REQUESTS,
    SPECIALISTS,
)
from repair_dispatch.models.service_requests import ServiceRequestCreate  # noqa: E402
from repair_dispatch.models.specialists import SpecialistCreate  # noqa: E402
from repair_dispatch.repositories.audit_repository import AuditRepository  # noqa: E402
from repair_dispatch.repositories.registration_sessions import (  # noqa: E402
    RegistrationSessionRepository,
)
from repair_dispatch.repositories.requests import ServiceRequestRepository  # noqa: E402
from repair_dispatch.repositories.specialists import SpecialistRepository  # noqa: E402
from repair_dispatch.services.audit_service import AuditService  # noqa: E402
from repair_dispatch.services.coordinator import AssignmentCoordinator  # noqa: E402
from repair_dispatch.services.registration import RegistrationDialogue  # noqa: E402


# ============================================================================
# IN-MEMORY COLLECTIONS
# ============================================================================


def _get_path(doc: Dict[str, Any], key: str):
    cur: Any = doc
    for part in key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return None
        cur = cur[part]
    return cur


def _set_path(doc: Dict[str, Any], key: str, value: Any) -> None:
    parts = key.split(".")
    cur = doc
    for part in parts[:-1]:
        cur = cur.setdefault(part, {})
    cur[parts[-1]] = value


def _matches(doc: Dict[str, Any], filt: Optional[Dict[str, Any]]) -> bool:
    for key, cond in (filt or {}).items():
        value = _get_path(doc, key)
        if isinstance(cond, dict) and any(k.startswith("$") for k in cond):
            for op, arg in cond.items():
                if op == "$ne" and value == arg:
                    return False
                if op == "$in" and value not in arg:
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1):
        self._docs.sort(key=lambda d: _get_path(d, key), reverse=direction < 0)
        return self

    def limit(self, n: int):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length: Optional[int] = None):
        await asyncio.sleep(0)
        return self._docs[:length] if length else list(self._docs)

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        await asyncio.sleep(0)
        for doc in self._docs:
            yield doc


class FakeCollection:
    def __init__(self, unique: tuple = ()):
        self.docs: List[Dict[str, Any]] = []
        self.unique = unique
        self.update_calls = 0

    def seed(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return doc

    def _check_unique(self, doc: Dict[str, Any], ignore=None) -> None:
        for key in self.unique:
            for other in self.docs:
                if other is not ignore and other.get(key) == doc.get(key):
                    raise DuplicateKeyError(f"E11000 duplicate key error: {key}")

    async def create_index(self, *args, **kwargs):
        return "ok"

    async def insert_one(self, doc: Dict[str, Any]):
        await asyncio.sleep(0)
        self._check_unique(doc)
        stored = self.seed(doc)
        doc["_id"] = stored["_id"]
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, filt: Optional[Dict[str, Any]] = None):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, filt):
                return copy.deepcopy(doc)
        return None

    def find(self, filt: Optional[Dict[str, Any]] = None):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, filt)])

    async def count_documents(self, filt: Dict[str, Any]) -> int:
        await asyncio.sleep(0)
        return sum(1 for d in self.docs if _matches(d, filt))

    async def update_one(self, filt: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        await asyncio.sleep(0)
        self.update_calls += 1
        for doc in self.docs:
            if _matches(doc, filt):
                for key, value in update.get("$set", {}).items():
                    _set_path(doc, key, copy.deepcopy(value))
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)

        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        doc = {k: v for k, v in filt.items() if not isinstance(v, dict)}
        for key, value in update.get("$set", {}).items():
            _set_path(doc, key, copy.deepcopy(value))
        stored = self.seed(doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=stored["_id"])

    async def delete_one(self, filt: Dict[str, Any]):
        await asyncio.sleep(0)
        for i, doc in enumerate(self.docs):
            if _matches(doc, filt):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {
            SPECIALISTS: FakeCollection(unique=("telegram_id",)),
            REGISTRATION_SESSIONS: FakeCollection(unique=("identity",)),
        }

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


# ============================================================================
# GATEWAY DOUBLE
# ============================================================================


class RecordingGateway:
    """Records outbound notifications; recipients in ``fail_for`` raise."""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []
        self.photos: List[Dict[str, Any]] = []
        self.callbacks: List[str] = []
        self.fail_for: set = set()

    async def send_message(self, recipient, text, reply_markup=None):
        await asyncio.sleep(0)
        if recipient in self.fail_for:
            raise GatewayDeliveryFailure(recipient, "Forbidden: bot was blocked by the user")
        self.messages.append({"to": recipient, "text": text, "reply_markup": reply_markup})

    async def send_photo(self, recipient, photo):
        await asyncio.sleep(0)
        if recipient in self.fail_for:
            raise GatewayDeliveryFailure(recipient, "Forbidden: bot was blocked by the user")
        self.photos.append({"to": recipient, "photo": photo})

    async def answer_callback(self, callback_id, text=None):
        self.callbacks.append(callback_id)

    def texts_to(self, recipient) -> List[str]:
        return [m["text"] for m in self.messages if m["to"] == recipient]

    def recipients(self) -> set:
        return {m["to"] for m in self.messages}


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def requests_repo(db) -> ServiceRequestRepository:
    return ServiceRequestRepository(db[SERVICE_REQUESTS])


@pytest.fixture
def specialists_repo(db) -> SpecialistRepository:
    return SpecialistRepository(db[SPECIALISTS])


@pytest.fixture
def audit(db) -> AuditService:
    return AuditService(AuditRepository(db[AUDIT_LOGS]))


@pytest.fixture
def coordinator(requests_repo, specialists_repo, gateway, audit) -> AssignmentCoordinator:
    return AssignmentCoordinator(requests_repo, specialists_repo, gateway, audit)


@pytest.fixture
def sessions(db) -> RegistrationSessionRepository:
    return RegistrationSessionRepository(db[REGISTRATION_SESSIONS], ttl_seconds=3600)


@pytest.fixture
def registration(sessions, specialists_repo, audit) -> RegistrationDialogue:
    return RegistrationDialogue(sessions, specialists_repo, audit)


@pytest.fixture
def seed_specialist(db):
    """Synchronous seeding for tests driven through the HTTP client."""

    def _seed(telegram_id: str, specialization: str = "plumbing", active: bool = True):
        return db[SPECIALISTS].seed({
            "telegram_id": telegram_id,
            "name": f"Specialist {telegram_id}",
            "specialization": specialization,
            "districts": ["Center"],
            "phone": f"+38000{telegram_id}",
            "active": active,
            "created_at": datetime.utcnow(),
        })

    return _seed


@pytest.fixture
def add_specialist(specialists_repo):
    async def _add(telegram_id: str, specialization=ServiceType.plumbing, active: bool = True):
        data = SpecialistCreate(
            telegram_id=telegram_id,
            name=f"Specialist {telegram_id}",
            specialization=specialization,
            districts=["Center"],
            phone=f"+38000{telegram_id}",
            active=active,
        )
        await specialists_repo.create(data)
        return await specialists_repo.find_by_identity(telegram_id)

    return _add


@pytest_asyncio.fixture
async def new_request(requests_repo):
    request_id = await requests_repo.create(
        ServiceRequestCreate(
            service_type=ServiceType.plumbing,
            address="12 Main St",
            description="Water under the sink",
            common_problem="Leaking pipe",
            phone="+380501112233",
        )
    )
    return await requests_repo.get(request_id)
