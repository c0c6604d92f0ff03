"""REST API surface for viewer-aware profile reads and owner updates."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from rapport.container import ServiceContainer, get_container
from rapport.domain.ids import normalize_user_id
from rapport.domain.profiles.models import AccessLevel, project
from rapport.domain.profiles.access import ProfileView
from rapport.domain.profiles.schemas import ProfileUpdateRequest, ProfileViewOut
from rapport.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/profiles")


@router.patch("/me", response_model=ProfileViewOut)
async def update_my_profile(
	payload: ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> ProfileViewOut:
	profile = await container.access.update_profile(auth_user.id, payload.changes())
	view = ProfileView(profile=project(profile, AccessLevel.OWN), access_level=AccessLevel.OWN)
	return ProfileViewOut.from_domain(view)


@router.get("/{user_id}", response_model=ProfileViewOut)
async def get_profile(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> ProfileViewOut:
	view = await container.access.resolve(auth_user.id, normalize_user_id(user_id))
	return ProfileViewOut.from_domain(view)
