import uuid
from datetime import timedelta

from app.core.security import create_access_token
from app.services.points_service import PointsService


async def test_profile_requires_authentication(client):
    response = await client.get("/api/user/profile")

    assert response.status_code == 401
    body = response.json()
    assert "user" not in body
    assert body["error"]["code"] == "UNAUTHORIZED"
    assert body["error"]["reason"] == "missing_token"
    assert response.headers["www-authenticate"] == "Bearer"


async def test_profile_via_cookie(client, make_user, auth_headers):
    user = await make_user(email="me@example.com", name="Me", points=5)

    response = await client.get("/api/user/profile", headers=auth_headers(user))

    assert response.status_code == 200
    profile = response.json()["user"]
    assert profile["userId"] == str(user.id)
    assert profile["email"] == "me@example.com"
    assert profile["points"] == 5
    assert profile["subscriptionType"] == "free"


async def test_profile_via_bearer_header(client, make_user):
    user = await make_user(points=2)
    token = create_access_token({"sub": str(user.id), "email": user.email})

    response = await client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["user"]["points"] == 2


async def test_profile_balance_is_read_from_store(client, make_user, auth_headers, session_factory):
    user = await make_user(points=5)
    headers = auth_headers(user)
    async with session_factory() as db:
        await PointsService.try_debit(user.id, 4, db)

    response = await client.get("/api/user/profile", headers=headers)
    assert response.json()["user"]["points"] == 1


async def test_expired_token_reason(client, make_user):
    user = await make_user()
    token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(seconds=-30))

    response = await client.get("/api/user/profile", headers={"Cookie": f"token={token}"})

    assert response.status_code == 401
    assert response.json()["error"]["reason"] == "token_expired"


async def test_forged_token_reason(client, make_user):
    user = await make_user()
    token = create_access_token({"sub": str(user.id)}, secret="attacker-secret")

    response = await client.get("/api/user/profile", headers={"Cookie": f"token={token}"})

    assert response.status_code == 401
    assert response.json()["error"]["reason"] == "token_invalid"


async def test_malformed_token_reason(client):
    response = await client.get("/api/user/profile", headers={"Cookie": "token=garbage"})

    assert response.status_code == 401
    assert response.json()["error"]["reason"] == "token_malformed"


async def test_token_for_deleted_user(client):
    token = create_access_token({"sub": str(uuid.uuid4())})

    response = await client.get("/api/user/profile", headers={"Cookie": f"token={token}"})

    assert response.status_code == 401
    assert response.json()["error"]["reason"] == "user_not_found"


async def test_token_with_non_uuid_subject(client):
    token = create_access_token({"sub": "not-a-uuid"})

    response = await client.get("/api/user/profile", headers={"Cookie": f"token={token}"})

    assert response.status_code == 401
    assert response.json()["error"]["reason"] == "token_malformed"


async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy", "database": "ok"}
