"""
Webhook request/response schemas.

The request is kept framework-neutral so handlers can be driven from FastAPI
routes and from tests alike.
"""

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from models.base import BaseSchema


class WebhookEvent(str, Enum):
    """Values of the foxy-webhook-event header."""
    VALIDATION_PAYMENT = "validation/payment"
    TRANSACTION_CREATED = "transaction/created"


EVENT_HEADER = "foxy-webhook-event"
SIGNATURE_HEADER = "foxy-webhook-signature"


class WebhookRequest(BaseSchema):
    """
    Inbound webhook call.

    Header names are lowercased on construction. The body is the raw text,
    as signatures are computed over the exact bytes sent.
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    http_method: Optional[str] = None
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None

    @field_validator("headers", mode="before")
    @classmethod
    def lowercase_headers(cls, v: Optional[dict]) -> dict:
        return {str(k).lower(): str(val) for k, val in (v or {}).items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    @property
    def event(self) -> Optional[str]:
        return self.header(EVENT_HEADER)


class WebhookResponse(BaseSchema):
    """
    Response in the shape the Foxy pre-payment webhook expects.

    Business rejections use status 200 with ok=false.
    """

    status_code: int = 200
    ok: bool = True
    details: str = ""

    def body(self) -> dict:
        return {"ok": self.ok, "details": self.details}
