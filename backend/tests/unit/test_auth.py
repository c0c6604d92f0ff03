import pytest
from fastapi import HTTPException

from rapport.infra import jwt as jwt_helper
from rapport.infra.auth import AuthenticatedUser, get_current_user, require_roles, verify_access_jwt
from rapport.settings import settings


def test_verify_access_jwt_reads_subject_and_roles():
    token = jwt_helper.encode_access({"sub": "alice", "name": "Alice", "roles": ["service"]})

    user = verify_access_jwt(token)

    assert user.id == "alice"
    assert user.display_name == "Alice"
    assert user.has_role("service")


def test_verify_access_jwt_rejects_missing_subject():
    token = jwt_helper.encode_access({"name": "nobody"})
    with pytest.raises(HTTPException) as exc:
        verify_access_jwt(token)
    assert exc.value.status_code == 401


def test_verify_access_jwt_rejects_expired_token():
    token = jwt_helper.encode_access({"sub": "alice"}, ttl_seconds=-60)
    with pytest.raises(HTTPException):
        verify_access_jwt(token)


@pytest.mark.asyncio
async def test_dev_headers_are_ignored_outside_dev():
    settings.environment = "production"
    with pytest.raises(HTTPException) as exc:
        await get_current_user(x_user_id="alice", x_user_roles=None, credentials=None)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_dev_headers_accepted_in_dev():
    user = await get_current_user(x_user_id="alice", x_user_roles="admin, ops", credentials=None)
    assert user.id == "alice"
    assert user.roles == ("admin", "ops")


@pytest.mark.asyncio
async def test_require_roles():
    guard = require_roles("admin", "service")

    assert (await guard(AuthenticatedUser(id="svc", roles=("service",)))).id == "svc"
    with pytest.raises(HTTPException) as exc:
        await guard(AuthenticatedUser(id="alice"))
    assert exc.value.status_code == 403
