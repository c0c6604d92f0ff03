"""REST API surface for friend lists, removal and blocking."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from rapport.container import ServiceContainer, get_container
from rapport.domain.ids import normalize_user_id
from rapport.domain.relationships.friends import FriendEntry
from rapport.domain.relationships.schemas import FriendListOut, FriendOut, FriendshipActionResponse, FriendshipOut
from rapport.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


def _friend_list(entries: list[FriendEntry]) -> FriendListOut:
	friends = [FriendOut.from_domain(entry) for entry in entries]
	return FriendListOut(friends=friends, total=len(friends))


@router.get("/friends", response_model=FriendListOut)
async def list_friends(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> FriendListOut:
	return _friend_list(await container.friends.list_friends(auth_user.id))


@router.get("/friends/user/{user_id}", response_model=FriendListOut)
async def list_friends_of_user(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> FriendListOut:
	entries = await container.friends.list_for_user(auth_user.id, normalize_user_id(user_id))
	return _friend_list(entries)


@router.delete("/friends/by-user/{user_id}", response_model=FriendshipActionResponse)
async def remove_friend_by_user(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> FriendshipActionResponse:
	await container.friends.remove_by_user(auth_user.id, normalize_user_id(user_id))
	return FriendshipActionResponse(message="Friend removed successfully")


@router.delete("/friendships/{friendship_id}", response_model=FriendshipActionResponse)
async def remove_friend(
	friendship_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> FriendshipActionResponse:
	await container.friends.remove(friendship_id, auth_user.id)
	return FriendshipActionResponse(message="Friend removed successfully")


@router.post("/friendships/{friendship_id}/block", response_model=FriendshipActionResponse)
async def block_friend(
	friendship_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> FriendshipActionResponse:
	friendship = await container.friends.block(friendship_id, auth_user.id)
	return FriendshipActionResponse(
		message="Friend blocked successfully",
		friendship=FriendshipOut.from_domain(friendship),
	)


@router.post("/friendships/{friendship_id}/unblock", response_model=FriendshipActionResponse)
async def unblock_friend(
	friendship_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> FriendshipActionResponse:
	friendship = await container.friends.unblock(friendship_id, auth_user.id)
	return FriendshipActionResponse(
		message="Friend unblocked successfully",
		friendship=FriendshipOut.from_domain(friendship),
	)
