from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from fitpass.billing.errors import InvalidCheckoutMetadataError


class _IntentBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: UUID

    def to_metadata(self, *, now_utc: datetime) -> dict[str, str]:
        payload = self.model_dump(mode="json", exclude_none=True)
        metadata = {key: str(value) for key, value in payload.items()}
        metadata["timestamp"] = now_utc.isoformat()
        return metadata


class TopUpIntent(_IntentBase):
    kind: Literal["topup"] = "topup"
    pack_type: str = Field(min_length=1)
    credits: int = Field(gt=0)
    credits_before: int | None = Field(default=None, ge=0)


class TouristPassIntent(_IntentBase):
    kind: Literal["tourist_pass"] = "tourist_pass"
    pass_type: str = Field(min_length=1)


class SubscriptionIntent(_IntentBase):
    kind: Literal["subscription"] = "subscription"
    tier: Literal["t1", "t2", "t3"]


CheckoutIntent = Annotated[
    Union[TopUpIntent, TouristPassIntent, SubscriptionIntent],
    Field(discriminator="kind"),
]
_CHECKOUT_INTENT_ADAPTER: TypeAdapter[CheckoutIntent] = TypeAdapter(CheckoutIntent)


def parse_checkout_metadata(metadata: Mapping[str, str] | None) -> CheckoutIntent:
    if not metadata:
        raise InvalidCheckoutMetadataError("checkout metadata is empty")
    try:
        return _CHECKOUT_INTENT_ADAPTER.validate_python(dict(metadata))
    except ValidationError as exc:
        raise InvalidCheckoutMetadataError(str(exc)) from exc
