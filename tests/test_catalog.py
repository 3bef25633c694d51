import json

from iptv_proxy.core.db import create_engine, create_session_factory, init_models
from iptv_proxy.modules.catalog import models
from iptv_proxy.modules.catalog.schemas import Platform
from iptv_proxy.modules.catalog.service import InMemoryStreamCatalog, SqlStreamCatalog

STREAMS = [
    {"id": "1", "name": "News", "url": "https://example.com/news.m3u8", "category": "News", "isActive": True},
    {
        "id": "2",
        "name": "Twitch",
        "url": "https://www.twitch.tv/somechannel",
        "category": "Gaming",
        "isActive": False,
        "useStreamlink": True,
        "streamerType": "twitch",
        "streamlinkOptions": {"quality": "best", "useProxy": True, "secureTokenEnabled": True},
    },
]

async def test_memory_catalog_loads_file(tmp_path):
    path = tmp_path / "streams.json"
    path.write_text(json.dumps(STREAMS))

    catalog = InMemoryStreamCatalog()
    assert await catalog.load_file(str(path)) == 2

    twitch = await catalog.get("2")
    assert twitch.platform == Platform.TWITCH
    assert twitch.uses_secure_proxy
    assert [s.id for s in await catalog.list_active()] == ["1"]
    assert await catalog.get("3") is None

async def test_sql_catalog(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'streams.db'}")
    await init_models(engine)
    session_factory = create_session_factory(engine)

    async with session_factory() as db:
        db.add(models.Stream(id="1", name="News", url="https://example.com/news.m3u8", category="News", is_active=True))
        db.add(models.Stream(
            id="2",
            name="Twitch",
            url="https://www.twitch.tv/somechannel",
            category="Gaming",
            is_active=True,
            use_streamlink=True,
            streamer_type="twitch",
            # Stored as a serialized string by older writers
            streamlink_options=json.dumps({"quality": "720p", "useProxy": True, "secureTokenEnabled": True}),
        ))
        db.add(models.Stream(id="3", name="Off", url="https://example.com/off.m3u8", is_active=False, streamer_type="vimeo"))
        await db.commit()

    catalog = SqlStreamCatalog(session_factory)
    try:
        twitch = await catalog.get("2")
        assert twitch.options.quality == "720p"
        assert twitch.uses_secure_proxy

        off = await catalog.get("3")
        assert off.platform == Platform.OTHER
        assert off.streamlink_options is None

        assert await catalog.get("missing") is None
        assert sorted(s.id for s in await catalog.list_active()) == ["1", "2"]
    finally:
        await engine.dispose()
