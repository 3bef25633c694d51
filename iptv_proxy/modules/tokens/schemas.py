from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

class ProxyTokenRequest(BaseModel):
    # Optional so a missing id maps to a 400 instead of a validation error
    stream_id: Optional[str] = Field(None, alias="streamId")

    class Config:
        populate_by_name = True

    @field_validator("stream_id", mode="before")
    @classmethod
    def coerce_stream_id(cls, value: Any) -> Any:
        # Catalog ids are opaque strings, but clients may send numeric ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

class ProxyTokenResponse(BaseModel):
    proxy_url: str = Field(alias="proxyUrl")
    relay_url: str = Field(alias="relayUrl")
    token: str
    expires_at: datetime = Field(alias="expiresAt")

    class Config:
        populate_by_name = True
