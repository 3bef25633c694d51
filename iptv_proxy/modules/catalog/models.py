from sqlalchemy import Column, String, Boolean, DateTime, JSON, func
from iptv_proxy.core.db import Base

class Stream(Base):
    __tablename__ = "streams"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    category = Column(String, default="", nullable=False)
    logo = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    use_streamlink = Column(Boolean, default=False)
    streamer_type = Column(String, default="direct") # direct, youtube, twitch, dailymotion, other
    streamlink_options = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
