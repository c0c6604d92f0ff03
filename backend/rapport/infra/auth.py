"""Authentication helpers for FastAPI endpoints.

- Bearer JWT verification (HS256) using settings.secret_key.
- Dev headers are only respected in development.
- Reusable roles guard for internal routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rapport.domain.ids import UserId, normalize_user_id
from rapport.infra import jwt as jwt_helper
from rapport.obs import logging as obs_logging
from rapport.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: UserId
	display_name: Optional[str] = None
	roles: Tuple[str, ...] = ()

	def has_role(self, role: str) -> bool:
		return role in self.roles


_bearer_scheme = HTTPBearer(auto_error=False)


def _split_roles(claim: object) -> Tuple[str, ...]:
	if isinstance(claim, (list, tuple)):
		return tuple(str(r).strip() for r in claim if str(r).strip())
	if isinstance(claim, str):
		return tuple(part.strip() for part in claim.split(",") if part.strip())
	return ()


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
		user_id = normalize_user_id(payload.get("sub"))
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from None

	display_name = payload.get("name") or payload.get("display_name")
	return AuthenticatedUser(
		id=user_id,
		display_name=str(display_name) if display_name is not None else None,
		roles=_split_roles(payload.get("roles") or payload.get("role")),
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		user = verify_access_jwt(credentials.credentials)
		obs_logging.bind_user(user.id)
		return user

	if settings.is_dev() and x_user_id and x_user_id.strip():
		user = AuthenticatedUser(id=normalize_user_id(x_user_id), roles=_split_roles(x_user_roles))
		obs_logging.bind_user(user.id)
		return user

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def require_roles(*required: str):
	"""Return a dependency that enforces the presence of any of the given roles.

	Usage:
		@router.post("/internal/x", dependencies=[Depends(require_roles("admin"))])
	"""
	required_set = {str(r).strip() for r in required if str(r).strip()}

	async def _dep(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
		if not required_set:
			return user
		if any(user.has_role(r) for r in required_set):
			return user
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="insufficient_role")

	return _dep
