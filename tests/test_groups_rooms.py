import pytest
from sqlalchemy import select

from edusocial.exceptions import BadRequestError, ConflictError, NotAuthorizedError, NotFoundError
from edusocial.models import Notification
from edusocial.schemas.groups import (
    GroupCreate,
    GroupPrivacy,
    JoinRequestAction,
    MembershipStatus,
    ResourceRole,
    outranks,
)
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.schemas.rooms import RoomCreate
from edusocial.schemas.users import UserType
from edusocial.services.group_service import (
    create_group,
    join_group,
    leave_group,
    list_members,
    manage_join_request,
    remove_member,
    update_member_role,
)
from edusocial.services.membership_service import get_group_membership, get_room_membership
from edusocial.services.notification_service import drain_pending_notifications
from edusocial.services.room_service import (
    JOIN_CODE_ALPHABET,
    create_room,
    generate_join_code,
    join_room_by_code,
    leave_room,
    list_my_rooms,
    remove_room_member,
    update_room_member_role,
)


def test_role_ordering():
    assert outranks(ResourceRole.OWNER, ResourceRole.ADMIN)
    assert outranks(ResourceRole.MODERATOR, ResourceRole.MEMBER)
    assert not outranks(ResourceRole.ADMIN, ResourceRole.ADMIN)
    assert not outranks(ResourceRole.MEMBER, ResourceRole.MODERATOR)


def test_generate_join_code():
    code = generate_join_code()
    assert len(code) == 6
    assert all(ch in JOIN_CODE_ALPHABET for ch in code)


@pytest.mark.asyncio
async def test_create_group_makes_creator_owner(db_session, alice):
    group = await create_group(db_session, alice.id, GroupCreate(name="CSE 2019", slug="cse-2019"))

    membership = await get_group_membership(db_session, group.id, alice.id)
    assert membership.role == ResourceRole.OWNER
    assert membership.status == MembershipStatus.JOINED
    assert group.members_count == 1


@pytest.mark.asyncio
async def test_duplicate_slug(db_session, alice, bob):
    await create_group(db_session, alice.id, GroupCreate(name="Robotics", slug="robotics"))

    with pytest.raises(ConflictError):
        await create_group(db_session, bob.id, GroupCreate(name="Robotics Club", slug="robotics"))


@pytest.mark.asyncio
async def test_join_public_group(db_session, alice, bob, make_group):
    group = await make_group(alice)

    result = await join_group(db_session, bob.id, group.id)

    assert result["status"] == MembershipStatus.JOINED
    await db_session.refresh(group)
    assert group.members_count == 2
    with pytest.raises(ConflictError):
        await join_group(db_session, bob.id, group.id)


@pytest.mark.asyncio
async def test_join_private_group_goes_pending(db_session, alice, bob, make_group):
    group = await make_group(alice, privacy=GroupPrivacy.PRIVATE)

    result = await join_group(db_session, bob.id, group.id)

    assert result["status"] == MembershipStatus.PENDING
    with pytest.raises(ConflictError):
        await join_group(db_session, bob.id, group.id)


@pytest.mark.asyncio
async def test_banned_user_cannot_join(db_session, alice, bob, make_group, add_group_member):
    group = await make_group(alice)
    await add_group_member(group, bob, status=MembershipStatus.BANNED)

    with pytest.raises(NotAuthorizedError):
        await join_group(db_session, bob.id, group.id)


@pytest.mark.asyncio
async def test_manage_join_request(db_session, alice, bob, carol, make_group, add_group_member):
    group = await make_group(alice, privacy=GroupPrivacy.CLOSED)
    await add_group_member(group, carol)
    await join_group(db_session, bob.id, group.id)

    with pytest.raises(NotAuthorizedError):
        await manage_join_request(db_session, carol.id, group.id, bob.id, JoinRequestAction.ACCEPT)

    await manage_join_request(db_session, alice.id, group.id, bob.id, JoinRequestAction.ACCEPT)

    membership = await get_group_membership(db_session, group.id, bob.id)
    assert membership.status == MembershipStatus.JOINED
    await db_session.refresh(group)
    assert group.members_count == 3


@pytest.mark.asyncio
async def test_reject_join_request(db_session, alice, bob, make_group):
    group = await make_group(alice, privacy=GroupPrivacy.PRIVATE)
    await join_group(db_session, bob.id, group.id)

    await manage_join_request(db_session, alice.id, group.id, bob.id, JoinRequestAction.REJECT)

    assert await get_group_membership(db_session, group.id, bob.id) is None
    with pytest.raises(NotFoundError):
        await manage_join_request(db_session, alice.id, group.id, bob.id, JoinRequestAction.ACCEPT)


@pytest.mark.asyncio
async def test_role_updates_follow_hierarchy(db_session, alice, bob, carol, make_user, make_group, add_group_member):
    """Test that actors must outrank both the member and the granted role"""
    group = await make_group(alice)
    await add_group_member(group, bob, role=ResourceRole.ADMIN)
    await add_group_member(group, carol)
    dave = await make_user()
    await add_group_member(group, dave, role=ResourceRole.ADMIN)

    promoted = await update_member_role(db_session, bob.id, group.id, carol.id, ResourceRole.MODERATOR)
    assert promoted.role == ResourceRole.MODERATOR

    with pytest.raises(NotAuthorizedError):
        await update_member_role(db_session, bob.id, group.id, carol.id, ResourceRole.ADMIN)
    with pytest.raises(NotAuthorizedError):
        await update_member_role(db_session, bob.id, group.id, dave.id, ResourceRole.MEMBER)
    with pytest.raises(NotAuthorizedError):
        await update_member_role(db_session, alice.id, group.id, bob.id, ResourceRole.OWNER)
    with pytest.raises(NotAuthorizedError):
        await update_member_role(db_session, carol.id, group.id, dave.id, ResourceRole.MEMBER)

    demoted = await update_member_role(db_session, alice.id, group.id, dave.id, ResourceRole.MEMBER)
    assert demoted.role == ResourceRole.MEMBER


@pytest.mark.asyncio
async def test_role_change_notifies_member(db_session, alice, bob, make_group, add_group_member, make_room,
                                           add_room_member):
    group = await make_group(alice)
    await add_group_member(group, bob)
    room = await make_room(alice)
    await add_room_member(room, bob)

    await update_member_role(db_session, alice.id, group.id, bob.id, ResourceRole.MODERATOR)
    await update_room_member_role(db_session, alice.id, room.id, bob.id, ResourceRole.ADMIN)
    await drain_pending_notifications()

    result = await db_session.execute(
        select(Notification).where(Notification.recipient_id == bob.id).order_by(Notification.related_kind)
    )
    notifications = result.scalars().all()
    assert [(n.type, n.related_kind, n.related_id) for n in notifications] == [
        (NotificationType.SYSTEM, RelatedKind.GROUP, group.id),
        (NotificationType.SYSTEM, RelatedKind.ROOM, room.id),
    ]
    assert notifications[0].message == "changed your role to MODERATOR in the group."
    assert notifications[1].actor_id == alice.id


@pytest.mark.asyncio
async def test_remove_and_ban_member(db_session, alice, bob, carol, make_group, add_group_member):
    group = await make_group(alice)
    await add_group_member(group, bob, role=ResourceRole.MODERATOR)
    await add_group_member(group, carol)

    with pytest.raises(NotAuthorizedError):
        await remove_member(db_session, bob.id, group.id, alice.id)

    await remove_member(db_session, bob.id, group.id, carol.id, ban=True)

    banned = await get_group_membership(db_session, group.id, carol.id)
    assert banned.status == MembershipStatus.BANNED
    assert banned.role == ResourceRole.MEMBER
    await db_session.refresh(group)
    assert group.members_count == 2
    with pytest.raises(NotAuthorizedError):
        await join_group(db_session, carol.id, group.id)


@pytest.mark.asyncio
async def test_leave_group(db_session, alice, bob, make_group, add_group_member):
    group = await make_group(alice)
    await add_group_member(group, bob)

    with pytest.raises(BadRequestError):
        await leave_group(db_session, alice.id, group.id)

    await leave_group(db_session, bob.id, group.id)
    assert (await get_group_membership(db_session, group.id, bob.id)).status == MembershipStatus.LEFT

    # Leaving does not prevent joining again
    assert (await join_group(db_session, bob.id, group.id))["status"] == MembershipStatus.JOINED


@pytest.mark.asyncio
async def test_list_members_of_private_group(db_session, alice, bob, make_group):
    group = await make_group(alice, privacy=GroupPrivacy.PRIVATE)

    with pytest.raises(NotAuthorizedError):
        await list_members(db_session, bob.id, group.id, 1, 10)
    members = await list_members(db_session, alice.id, group.id, 1, 10)
    assert [m.user_id for m in members] == [alice.id]


@pytest.mark.asyncio
async def test_only_teachers_create_rooms(db_session, alice, make_user):
    teacher = await make_user(user_type=UserType.TEACHER)

    with pytest.raises(NotAuthorizedError):
        await create_room(db_session, alice.id, RoomCreate(name="Algorithms"))

    room = await create_room(db_session, teacher.id, RoomCreate(name="Algorithms", course_code="CSE 203"))
    assert len(room.join_code) == 6
    owner = await get_room_membership(db_session, room.id, teacher.id)
    assert owner.role == ResourceRole.OWNER


@pytest.mark.asyncio
async def test_join_room_by_code(db_session, alice, bob, make_room):
    room = await make_room(alice, join_code="ABC123")

    result = await join_room_by_code(db_session, bob.id, "abc123")

    assert result["room_id"] == room.id
    assert [r.id for r in await list_my_rooms(db_session, bob.id)] == [room.id]
    with pytest.raises(ConflictError):
        await join_room_by_code(db_session, bob.id, "ABC123")
    with pytest.raises(NotFoundError):
        await join_room_by_code(db_session, bob.id, "ZZZ999")


@pytest.mark.asyncio
async def test_room_hierarchy(db_session, alice, bob, carol, make_room, add_room_member):
    room = await make_room(alice)
    await add_room_member(room, bob, role=ResourceRole.ADMIN)
    await add_room_member(room, carol)

    await update_room_member_role(db_session, bob.id, room.id, carol.id, ResourceRole.MODERATOR)
    with pytest.raises(NotAuthorizedError):
        await remove_room_member(db_session, carol.id, room.id, bob.id)
    with pytest.raises(NotAuthorizedError):
        await update_room_member_role(db_session, bob.id, room.id, alice.id, ResourceRole.MEMBER)

    await remove_room_member(db_session, bob.id, room.id, carol.id)
    assert await get_room_membership(db_session, room.id, carol.id) is None


@pytest.mark.asyncio
async def test_leave_room(db_session, alice, bob, make_room, add_room_member):
    room = await make_room(alice)
    await add_room_member(room, bob)

    with pytest.raises(BadRequestError):
        await leave_room(db_session, alice.id, room.id)
    await leave_room(db_session, bob.id, room.id)

    assert await list_my_rooms(db_session, bob.id) == []
