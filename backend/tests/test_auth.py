"""Tests for bearer-token identity resolution."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from jose import jwt

from orgledger.config import settings
from orgledger.core.security import decode_token


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient):
    response = await client.get("/api/orgs")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client: AsyncClient):
    response = await client.get("/api/orgs", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client: AsyncClient, make_user):
    user = await make_user()
    token = jwt.encode(
        {"sub": str(user.id), "type": "access", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    response = await client.get("/api/orgs", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_non_access_token_is_rejected(client: AsyncClient, make_user):
    user = await make_user()
    token = jwt.encode(
        {"sub": str(user.id), "type": "refresh"},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    response = await client.get("/api/orgs", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user_is_rejected(client: AsyncClient, mint_token):
    token = mint_token({"sub": str(uuid.uuid4())})
    response = await client.get("/api/orgs", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_valid_token_resolves_user(client: AsyncClient, auth, make_user):
    user = await make_user()
    response = await client.get("/api/orgs", headers=auth(user))
    assert response.status_code == 200
    assert response.json() == []


def test_decode_token_round_trip(mint_token):
    payload = decode_token(mint_token({"sub": "abc"}))
    assert payload is not None
    assert payload["sub"] == "abc"
    assert payload["type"] == "access"


def test_decode_token_wrong_secret():
    token = jwt.encode({"sub": "abc"}, "some-other-secret", algorithm="HS256")
    assert decode_token(token) is None


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
