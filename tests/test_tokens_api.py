from datetime import datetime, timedelta

from iptv_proxy.core.config import Settings

from conftest import PROXY_BASE

def test_mint_returns_proxy_url(make_client, store, clock):
    response = make_client().post("/api/proxy/token", json={"streamId": "42"})
    assert response.status_code == 200

    body = response.json()
    assert body["proxyUrl"] == f"{PROXY_BASE}/42?token={body['token']}"
    assert body["relayUrl"] == body["proxyUrl"]
    assert datetime.fromisoformat(body["expiresAt"].replace("Z", "+00:00")) == clock.now + timedelta(hours=4)
    assert store.validate("42", body["token"])

def test_each_mint_is_a_fresh_token(make_client):
    client = make_client()
    first = client.post("/api/proxy/token", json={"streamId": "42"}).json()
    second = client.post("/api/proxy/token", json={"streamId": "42"}).json()
    assert first["token"] != second["token"]

def test_missing_stream_id(make_client):
    client = make_client()
    for payload in ({}, {"streamId": ""}):
        response = client.post("/api/proxy/token", json=payload)
        assert response.status_code == 400
        assert response.json()["error"] == "MissingStreamId"

    assert client.post("/api/proxy/token").status_code == 400

def test_unknown_stream(make_client, store):
    response = make_client().post("/api/proxy/token", json={"streamId": "999"})
    assert response.status_code == 404
    assert response.json()["error"] == "StreamNotFound"
    assert len(store) == 0

def test_token_endpoint_rate_limited(make_client):
    settings = Settings(_env_file=None, PROXY_PUBLIC_URL=PROXY_BASE, TOKEN_RATE_LIMIT_PER_MINUTE=2)
    client = make_client(settings=settings)

    codes = [client.post("/api/proxy/token", json={"streamId": "42"}).status_code for _ in range(3)]
    assert codes == [200, 200, 429]
    # Other routes keep the general limit
    assert client.get("/").status_code == 200

def test_numeric_stream_id_accepted(make_client, store):
    response = make_client().post("/api/proxy/token", json={"streamId": 42})
    assert response.status_code == 200

    body = response.json()
    assert body["proxyUrl"] == f"{PROXY_BASE}/42?token={body['token']}"
    assert store.validate("42", body["token"])

def test_malformed_body_is_bad_request(make_client):
    client = make_client()
    response = client.post(
        "/api/proxy/token",
        content="not json",
        headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "InvalidRequest"
    assert body["detail"]

    response = client.post("/api/proxy/token", json={"streamId": ["42"]})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRequest"
