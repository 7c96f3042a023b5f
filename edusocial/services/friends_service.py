import logging
import math
from typing import Dict, List, Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import (
    AlreadyFriendsError,
    BlockedError,
    ConflictError,
    DuplicateRequestError,
    NotAuthorizedError,
    NotFoundError,
    SelfActionError,
)
from edusocial.models import Friendship, User
from edusocial.models.friendship import pair_key
from edusocial.schemas.friends import (
    FriendshipListItem,
    FriendshipListType,
    FriendshipStatus,
    RelationshipLabel,
    RelationshipStatusResponse,
)
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.schemas.users import AccountStatus, FriendRequestPolicy, SuggestionResponse, UserSummary
from edusocial.services.notification_service import dispatch_notification

# Configure logging for this module
logger = logging.getLogger(__name__)


async def _require_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found.")
    return user


async def find_relationship(db: AsyncSession, user_a: str, user_b: str) -> Optional[Friendship]:
    """Return the single record for the unordered pair {user_a, user_b}, if any."""
    result = await db.execute(
        select(Friendship).where(Friendship.pair_key == pair_key(user_a, user_b))
    )
    return result.scalar_one_or_none()


async def _adjust_connections(db: AsyncSession, user_ids: List[str], delta: int) -> None:
    """
    Apply ``delta`` to the cached connection counters.

    Committed separately from the relationship change; a failure here only
    leaves the cache drifted, which ``recompute_connections_count`` repairs.
    """
    try:
        await db.execute(
            update(User)
            .where(User.id.in_(user_ids))
            .values(connections_count=User.connections_count + delta)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Failed to adjust connections_count by {delta} for users {user_ids}")


async def send_friend_request(db: AsyncSession, requester_id: str, recipient_id: str) -> dict:
    """
    Send a friend request, or accept the crossed request if the recipient
    already asked us.

    Args:
        db: AsyncSession for database operations
        requester_id: ID of the user sending the request
        recipient_id: ID of the user receiving it

    Returns:
        dict: ``status`` (PENDING or ACCEPTED) and ``friendship_id``

    Raises:
        SelfActionError: If requester and recipient are the same user
        NotFoundError: If the recipient does not exist
        AlreadyFriendsError: If the pair is already friends
        BlockedError: If either side blocked the other
        DuplicateRequestError: If this request was already sent
        NotAuthorizedError: If the recipient does not accept friend requests
    """
    if requester_id == recipient_id:
        raise SelfActionError("You cannot send a friend request to yourself.")

    recipient = await _require_user(db, recipient_id)
    if recipient.friend_request_policy == FriendRequestPolicy.NOBODY:
        raise NotAuthorizedError("This user does not accept friend requests.")

    existing = await find_relationship(db, requester_id, recipient_id)

    if existing:
        if existing.status == FriendshipStatus.ACCEPTED:
            raise AlreadyFriendsError()
        if existing.status == FriendshipStatus.BLOCKED:
            raise BlockedError()
        if existing.requester_id == requester_id:
            raise DuplicateRequestError()

        # The other side already asked us: accept instead of creating a second record
        friendship_id = existing.id
        existing.status = FriendshipStatus.ACCEPTED
        await db.commit()
        await _adjust_connections(db, [requester_id, recipient_id], 1)

        dispatch_notification(
            recipient_id=recipient_id,
            actor_id=requester_id,
            type=NotificationType.FRIEND_ACCEPT,
            message="accepted your friend request.",
            related_id=requester_id,
            related_kind=RelatedKind.USER,
        )
        logger.info(f"Crossed friend requests between {requester_id} and {recipient_id} auto-accepted")
        return {
            "status": FriendshipStatus.ACCEPTED,
            "friendship_id": friendship_id,
            "message": "Friend request accepted automatically!",
        }

    friendship = Friendship.between(requester_id, recipient_id, FriendshipStatus.PENDING)
    db.add(friendship)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request created the pair record first
        await db.rollback()
        raise DuplicateRequestError("A relationship with this user already exists.")
    await db.refresh(friendship)

    dispatch_notification(
        recipient_id=recipient_id,
        actor_id=requester_id,
        type=NotificationType.FRIEND_REQUEST,
        message="sent you a friend request.",
        related_id=requester_id,
        related_kind=RelatedKind.USER,
    )
    return {"status": FriendshipStatus.PENDING, "friendship_id": friendship.id}


async def accept_friend_request(db: AsyncSession, user_id: str, friendship_id: str) -> dict:
    """
    Accept a pending request addressed to ``user_id``.

    Raises:
        NotFoundError: If there is no pending request with this id for the caller
    """
    result = await db.execute(
        select(Friendship).where(
            Friendship.id == friendship_id,
            Friendship.recipient_id == user_id,
            Friendship.status == FriendshipStatus.PENDING,
        )
    )
    friendship = result.scalar_one_or_none()
    if not friendship:
        raise NotFoundError("Friend request not found or already processed.")

    # Read before the counter update; its rollback would expire the instance
    requester_id = friendship.requester_id
    friendship.status = FriendshipStatus.ACCEPTED
    await db.commit()
    await _adjust_connections(db, [requester_id, user_id], 1)

    dispatch_notification(
        recipient_id=requester_id,
        actor_id=user_id,
        type=NotificationType.FRIEND_ACCEPT,
        message="accepted your friend request.",
        related_id=user_id,
        related_kind=RelatedKind.USER,
    )
    return {"status": FriendshipStatus.ACCEPTED, "friendship_id": friendship_id}


async def cancel_or_reject_request(db: AsyncSession, user_id: str, friendship_id: str) -> dict:
    """
    Delete a pending request. The sender cancels it, the recipient rejects it;
    both end in the same place.
    """
    result = await db.execute(
        delete(Friendship).where(
            Friendship.id == friendship_id,
            Friendship.status == FriendshipStatus.PENDING,
            or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id),
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Request not found.")
    await db.commit()
    return {"success": True}


async def unfriend(db: AsyncSession, user_id: str, friend_id: str) -> dict:
    result = await db.execute(
        delete(Friendship).where(
            Friendship.pair_key == pair_key(user_id, friend_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Friendship not found.")
    await db.commit()
    await _adjust_connections(db, [user_id, friend_id], -1)
    return {"success": True}


async def block_user(db: AsyncSession, user_id: str, target_id: str) -> dict:
    """
    Block ``target_id``, replacing whatever relationship the pair had.

    Blocking an existing friend also drops both cached connection counters.
    A block the target already imposed is taken over: the caller becomes the
    blocker. Re-blocking by the same blocker is a no-op.

    Raises:
        SelfActionError: If the user tries to block themselves
        NotFoundError: If the target does not exist
    """
    if user_id == target_id:
        raise SelfActionError("You cannot block yourself.")

    await _require_user(db, target_id)
    existing = await find_relationship(db, user_id, target_id)

    was_friends = False
    if existing:
        if existing.status == FriendshipStatus.BLOCKED and existing.blocked_by == user_id:
            return {"success": True}

        was_friends = existing.status == FriendshipStatus.ACCEPTED
        existing.status = FriendshipStatus.BLOCKED
        existing.blocked_by = user_id
        existing.requester_id = user_id
        existing.recipient_id = target_id
    else:
        db.add(Friendship.between(user_id, target_id, FriendshipStatus.BLOCKED, blocked_by=user_id))

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("The relationship changed while blocking, please retry.")

    if was_friends:
        await _adjust_connections(db, [user_id, target_id], -1)

    logger.info(f"User {user_id} blocked {target_id}")
    return {"success": True}


async def unblock_user(db: AsyncSession, user_id: str, target_id: str) -> dict:
    """
    Lift a block. Only the user who imposed it may lift it.

    Raises:
        NotFoundError: If the pair has no block
        NotAuthorizedError: If the block was imposed by the other user
    """
    result = await db.execute(
        select(Friendship).where(
            Friendship.pair_key == pair_key(user_id, target_id),
            Friendship.status == FriendshipStatus.BLOCKED,
        )
    )
    block = result.scalar_one_or_none()
    if not block:
        raise NotFoundError("Block entry not found.")
    if block.blocked_by != user_id:
        raise NotAuthorizedError("You didn't block this user.")

    await db.delete(block)
    await db.commit()
    return {"success": True}


async def get_relationship_label(db: AsyncSession, viewer_id: str, target_id: str) -> RelationshipStatusResponse:
    """
    Describe the relationship from the viewer's side.

    BLOCKED is only ever reported to the blocker. When the target blocked the
    viewer the target is treated as nonexistent.

    Raises:
        NotFoundError: If the target blocked the viewer
    """
    if viewer_id == target_id:
        return RelationshipStatusResponse(label=RelationshipLabel.SELF)

    relationship = await find_relationship(db, viewer_id, target_id)
    if relationship is None:
        return RelationshipStatusResponse(label=RelationshipLabel.NONE)

    if relationship.status == FriendshipStatus.BLOCKED:
        if relationship.blocked_by != viewer_id:
            raise NotFoundError("User not found.")
        label = RelationshipLabel.BLOCKED
    elif relationship.status == FriendshipStatus.ACCEPTED:
        label = RelationshipLabel.FRIENDS
    elif relationship.requester_id == viewer_id:
        label = RelationshipLabel.REQUEST_SENT
    else:
        label = RelationshipLabel.REQUEST_RECEIVED

    return RelationshipStatusResponse(label=label, friendship_id=relationship.id)


async def are_friends(db: AsyncSession, user1_id: str, user2_id: str) -> bool:
    result = await db.execute(
        select(Friendship.id).where(
            Friendship.pair_key == pair_key(user1_id, user2_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
    )
    return result.first() is not None


async def get_friend_ids(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(
        select(Friendship.requester_id, Friendship.recipient_id).where(
            or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
    )
    return [
        recipient if requester == user_id else requester
        for requester, recipient in result.all()
    ]


async def list_friendships(
    db: AsyncSession, user_id: str, list_type: FriendshipListType, page: int, limit: int
) -> List[FriendshipListItem]:
    """
    List incoming requests, sent requests, friends or blocks for a user,
    most recently updated first, each with the other party resolved.
    """
    involves_user = or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id)

    if list_type == FriendshipListType.INCOMING:
        condition = and_(Friendship.recipient_id == user_id, Friendship.status == FriendshipStatus.PENDING)
    elif list_type == FriendshipListType.SENT:
        condition = and_(Friendship.requester_id == user_id, Friendship.status == FriendshipStatus.PENDING)
    elif list_type == FriendshipListType.FRIENDS:
        condition = and_(involves_user, Friendship.status == FriendshipStatus.ACCEPTED)
    else:
        condition = and_(
            involves_user,
            Friendship.status == FriendshipStatus.BLOCKED,
            Friendship.blocked_by == user_id,
        )

    result = await db.execute(
        select(Friendship)
        .where(condition)
        .order_by(Friendship.updated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    friendships = result.scalars().all()
    if not friendships:
        return []

    other_ids = {f.other_party(user_id) for f in friendships}
    users_result = await db.execute(select(User).where(User.id.in_(other_ids)))
    users = {u.id: u for u in users_result.scalars().all()}

    items = []
    for friendship in friendships:
        other = users.get(friendship.other_party(user_id))
        if other is None:
            continue
        items.append(FriendshipListItem(
            id=friendship.id,
            status=friendship.status,
            user=UserSummary.model_validate(other),
            since=friendship.updated_at,
        ))
    return items


async def get_friend_suggestions(db: AsyncSession, user_id: str, page: int, limit: int) -> dict:
    """
    Suggest people from the same institution, the same department, or
    friends of friends.

    Anyone already sharing a relationship record with the user (friend,
    pending either way, blocked either way) is excluded. Candidates are ranked
    by mutual friend count, then newest account first.
    """
    current_user = await _require_user(db, user_id)

    relations = await db.execute(
        select(Friendship.requester_id, Friendship.recipient_id, Friendship.status).where(
            or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id)
        )
    )
    exclude_ids = {user_id}
    friend_ids = set()
    for requester, recipient, status in relations.all():
        exclude_ids.update((requester, recipient))
        if status == FriendshipStatus.ACCEPTED:
            friend_ids.add(recipient if requester == user_id else requester)

    mutual_counts: Dict[str, int] = {}
    if friend_ids:
        fof = await db.execute(
            select(Friendship.requester_id, Friendship.recipient_id).where(
                or_(Friendship.requester_id.in_(friend_ids), Friendship.recipient_id.in_(friend_ids)),
                Friendship.status == FriendshipStatus.ACCEPTED,
            )
        )
        for requester, recipient in fof.all():
            for candidate, via in ((requester, recipient), (recipient, requester)):
                if candidate not in exclude_ids and via in friend_ids:
                    mutual_counts[candidate] = mutual_counts.get(candidate, 0) + 1

    match_conditions = []
    if current_user.institution_id:
        match_conditions.append(User.institution_id == current_user.institution_id)
    if current_user.department_id:
        match_conditions.append(User.department_id == current_user.department_id)
    if mutual_counts:
        match_conditions.append(User.id.in_(mutual_counts.keys()))

    candidates = []
    if match_conditions:
        result = await db.execute(
            select(User).where(
                User.id.not_in(exclude_ids),
                User.account_status == AccountStatus.ACTIVE,
                or_(*match_conditions),
            )
            .order_by(User.created_at.desc())
        )
        candidates = list(result.scalars().all())

    # Stable sort keeps newest-first among equal mutual counts
    candidates.sort(key=lambda u: mutual_counts.get(u.id, 0), reverse=True)

    total_docs = len(candidates)
    total_pages = math.ceil(total_docs / limit) if limit else 0
    window = candidates[(page - 1) * limit: page * limit]

    return {
        "data": [
            SuggestionResponse(
                id=u.id,
                user_name=u.user_name,
                full_name=u.full_name,
                institution_id=u.institution_id,
                department_id=u.department_id,
                mutual_friends=mutual_counts.get(u.id, 0),
            )
            for u in window
        ],
        "pagination": {
            "page": page,
            "limit": limit,
            "total_docs": total_docs,
            "total_pages": total_pages,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


async def recompute_connections_count(db: AsyncSession, user_id: str) -> int:
    """Rebuild a user's cached connections_count from the friendships table."""
    await _require_user(db, user_id)
    result = await db.execute(
        select(func.count(Friendship.id)).where(
            or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
    )
    count = result.scalar_one()
    await db.execute(update(User).where(User.id == user_id).values(connections_count=count))
    await db.commit()
    return count
