"""Domain models shared by the scan device and the order client."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

OrderId = Union[int, str]


class Category(str, Enum):
    """Closed set of toy categories, each wired to one output."""

    TOY_GUNS = "Toy Guns"
    DOLLS = "Dolls"
    VEHICLES = "Vehicles"
    PUZZLES = "Puzzles"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Category"]:
        if not value:
            return None
        needle = value.strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        return None


class ActionKind(str, Enum):
    PROCESSING_SUCCESS = "processing_success"
    NO_PENDING_ORDERS = "no_pending_orders"
    OTHER = "other"

    @classmethod
    def classify(cls, action: str) -> "ActionKind":
        if action == cls.PROCESSING_SUCCESS.value:
            return cls.PROCESSING_SUCCESS
        if action == cls.NO_PENDING_ORDERS.value:
            return cls.NO_PENDING_ORDERS
        return cls.OTHER


class ConnectionState(str, Enum):
    """Current state of the live order stream."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass(slots=True, frozen=True)
class IdentityMapping:
    physical_id: str
    person_name: str


@dataclass(slots=True, frozen=True)
class IdentityTable:
    """Immutable, ordered card-to-person table."""

    entries: tuple[IdentityMapping, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> "IdentityTable":
        return cls(tuple(IdentityMapping(pid, name) for pid, name in pairs))

    def lookup(self, physical_id: str) -> Optional[str]:
        for entry in self.entries:
            if entry.physical_id == physical_id:
                return entry.person_name
        return None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(slots=True, frozen=True)
class ScanEvent:
    physical_id: str
    timestamp: float


@dataclass(slots=True, frozen=True)
class ActionResponse:
    kind: ActionKind
    action: str
    category: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ActionResponse":
        """Parse a ``/api/process-next`` response body.

        Raises ``ValueError`` when the body is not an object or the ``action``
        field is missing or not a string.
        """

        if not isinstance(payload, Mapping):
            raise ValueError(f"Expected JSON object, got {type(payload).__name__}")

        action = payload.get("action")
        if not isinstance(action, str):
            raise ValueError("Response missing 'action'")

        category = payload.get("led", "")
        if category is None:
            category = ""
        if not isinstance(category, str):
            raise ValueError("Response field 'led' is not a string")

        return cls(kind=ActionKind.classify(action), action=action, category=category)


@dataclass(slots=True, frozen=True)
class ActionResult:
    """Outcome of one action request: a parsed response or a failure reason."""

    response: Optional[ActionResponse] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.response is not None

    @classmethod
    def failure(cls, reason: str) -> "ActionResult":
        return cls(response=None, error=reason)


class OrderPayloadError(ValueError):
    """Raised when an order record cannot be parsed."""


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


@dataclass(slots=True, frozen=True)
class Order:
    id: OrderId
    toy_id: str
    toy_name: str
    category: str
    rfid_uid: str
    assigned_person: str
    department: str
    total_amount: float
    status: str

    @classmethod
    def from_payload(cls, payload: Any) -> "Order":
        """Build an order from a server record (snake_case or camelCase keys)."""

        if not isinstance(payload, Mapping):
            raise OrderPayloadError("Order payload must be an object")

        order_id = _pick(payload, "id", "_id")
        status = _pick(payload, "status")
        if order_id is None:
            raise OrderPayloadError("Order payload missing 'id'")
        if not isinstance(status, str):
            raise OrderPayloadError("Order payload missing 'status'")

        amount = _pick(payload, "total_amount", "totalAmount", default=0.0)
        try:
            total_amount = float(amount)
        except (TypeError, ValueError) as exc:
            raise OrderPayloadError(f"Invalid total amount: {amount!r}") from exc

        return cls(
            id=order_id,
            toy_id=str(_pick(payload, "toy_id", "toyId", default="")),
            toy_name=str(_pick(payload, "toy_name", "toyName", default="")),
            category=str(_pick(payload, "category", default="")),
            rfid_uid=str(_pick(payload, "rfid_uid", "rfidUid", default="")),
            assigned_person=str(
                _pick(payload, "assigned_person", "assignedPerson", default="")
            ),
            department=str(_pick(payload, "department", default="")),
            total_amount=total_amount,
            status=status,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "toy_id": self.toy_id,
            "toy_name": self.toy_name,
            "category": self.category,
            "rfid_uid": self.rfid_uid,
            "assigned_person": self.assigned_person,
            "department": self.department,
            "total_amount": self.total_amount,
            "status": self.status,
        }


@dataclass(slots=True, frozen=True)
class User:
    id: Optional[OrderId]
    username: str
    email: str = ""
    department: str = ""
    address: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, token: Optional[str] = None) -> "User":
        if not isinstance(payload, Mapping):
            raise ValueError("User payload must be an object")
        username = _pick(payload, "username")
        if not isinstance(username, str):
            raise ValueError("User payload missing 'username'")
        return cls(
            id=_pick(payload, "id", "_id"),
            username=username,
            email=str(_pick(payload, "email", default="")),
            department=str(_pick(payload, "department", default="")),
            address=_pick(payload, "address"),
            token=token or _pick(payload, "token"),
        )

    def copy_with(self, **changes: Any) -> "User":
        return dataclasses.replace(self, **changes)


@dataclass(slots=True)
class Session:
    user: User
    token: str
    connection_state: ConnectionState = ConnectionState.DISCONNECTED


class OrderServiceError(RuntimeError):
    """Raised when the order backend rejects or fails a request."""


@dataclass(slots=True, frozen=True)
class OrderDraft:
    """Fields supplied by the user when placing an order."""

    toy_id: str
    toy_name: str
    category: str
    rfid_uid: str
    assigned_person: str
    department: str
    total_amount: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "toy_id": self.toy_id,
            "toy_name": self.toy_name,
            "category": self.category,
            "rfid_uid": self.rfid_uid,
            "assigned_person": self.assigned_person,
            "department": self.department,
            "total_amount": self.total_amount,
        }
