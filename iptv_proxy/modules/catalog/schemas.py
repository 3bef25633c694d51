import enum
from typing import Optional
from pydantic import BaseModel, Field

class Platform(str, enum.Enum):
    DIRECT = "direct"
    YOUTUBE = "youtube"
    TWITCH = "twitch"
    DAILYMOTION = "dailymotion"
    OTHER = "other"

class ExtractionOptions(BaseModel):
    quality: str = "" # empty means "best"
    use_proxy: bool = Field(False, alias="useProxy")
    secure_token_enabled: bool = Field(False, alias="secureTokenEnabled")
    custom_args: str = Field("", alias="customArgs")
    use_user_agent: bool = Field(False, alias="useUserAgent")
    user_agent: str = Field("", alias="userAgent")

    class Config:
        populate_by_name = True

    @property
    def effective_user_agent(self) -> Optional[str]:
        """User agent override, only when enabled and non-empty."""
        if self.use_user_agent and self.user_agent:
            return self.user_agent
        return None

class StreamRecord(BaseModel):
    id: str
    name: str
    url: str
    category: str = ""
    logo: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    use_streamlink: bool = Field(False, alias="useStreamlink")
    platform: Platform = Field(Platform.DIRECT, alias="streamerType")
    streamlink_options: Optional[ExtractionOptions] = Field(None, alias="streamlinkOptions")

    class Config:
        populate_by_name = True

    @property
    def options(self) -> ExtractionOptions:
        return self.streamlink_options or ExtractionOptions()

    @property
    def uses_secure_proxy(self) -> bool:
        """Extraction through the relay with a minted token."""
        opts = self.options
        return self.use_streamlink and opts.use_proxy and opts.secure_token_enabled
