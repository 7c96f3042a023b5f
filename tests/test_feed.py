import pytest

from edusocial.exceptions import BadRequestError, NotAuthorizedError, NotFoundError
from edusocial.models import Post, Reaction
from edusocial.schemas.follows import FollowTarget
from edusocial.schemas.groups import GroupPrivacy, MembershipStatus
from edusocial.schemas.posts import PostCreate, PostTarget, PostVisibility, ReactionTarget
from edusocial.services import post_service
from edusocial.services.friends_service import block_user
from edusocial.services.post_service import (
    build_feed,
    create_post,
    delete_post,
    get_post,
    get_target_feed,
    get_user_timeline,
    toggle_like,
)


@pytest.mark.asyncio
async def test_empty_feed_skips_like_lookup(db_session, alice, monkeypatch):
    async def unexpected(*args, **kwargs):
        raise AssertionError("like lookup must not run for an empty page")

    monkeypatch.setattr(post_service, "_liked_post_ids", unexpected)

    assert await build_feed(db_session, alice.id, 1, 10) == []


@pytest.mark.asyncio
async def test_feed_sources(
    db_session, alice, bob, carol, make_friends, make_group, add_group_member, make_room,
    add_room_member, institution, make_follow, make_post,
):
    """Test that each source contributes and unrelated posts stay out"""
    await make_friends(alice, bob)
    group = await make_group(carol)
    await add_group_member(group, alice)
    room = await make_room(carol)
    await add_room_member(room, alice)
    await make_follow(alice, FollowTarget.INSTITUTION, institution.id)
    other_group = await make_group(carol)

    own = await make_post(alice, visibility=PostVisibility.ONLY_ME)
    friend_public = await make_post(bob, visibility=PostVisibility.PUBLIC)
    friend_connections = await make_post(bob, visibility=PostVisibility.CONNECTIONS)
    friend_private = await make_post(bob, visibility=PostVisibility.ONLY_ME)
    stranger = await make_post(carol, visibility=PostVisibility.PUBLIC)
    group_post = await make_post(carol, PostTarget.GROUP, group.id)
    group_private = await make_post(carol, PostTarget.GROUP, group.id, visibility=PostVisibility.ONLY_ME)
    room_post = await make_post(carol, PostTarget.ROOM, room.id)
    inst_post = await make_post(carol, PostTarget.INSTITUTION, institution.id)
    other_group_post = await make_post(carol, PostTarget.GROUP, other_group.id)
    archived = await make_post(bob, is_archived=True)

    feed = await build_feed(db_session, alice.id, 1, 50)
    ids = [p.id for p in feed]

    assert ids == [inst_post.id, room_post.id, group_post.id, friend_connections.id, friend_public.id, own.id]
    for excluded in (friend_private, stranger, group_private, other_group_post, archived):
        assert excluded.id not in ids


@pytest.mark.asyncio
async def test_feed_pagination_and_like_annotation(db_session, alice, make_post):
    posts = [await make_post(alice) for _ in range(5)]
    db_session.add(Reaction(user_id=alice.id, target_id=posts[3].id, target_kind=ReactionTarget.POST))
    await db_session.commit()

    first = await build_feed(db_session, alice.id, 1, 2)
    second = await build_feed(db_session, alice.id, 2, 2)
    third = await build_feed(db_session, alice.id, 3, 2)

    assert [p.id for p in first] == [posts[4].id, posts[3].id]
    assert [p.id for p in second] == [posts[2].id, posts[1].id]
    assert [p.id for p in third] == [posts[0].id]
    assert [p.is_liked_by_me for p in first] == [False, True]


@pytest.mark.asyncio
async def test_feed_uses_one_session_per_lookup(db_session, alice, make_post):
    """Test that the id lookups run on sessions from the given factory"""
    opened = []

    class RecordingFactory:
        def __call__(self):
            from edusocial.database import AsyncSessionLocal
            session = AsyncSessionLocal()
            opened.append(session)
            return session

    await make_post(alice)
    feed = await build_feed(db_session, alice.id, 1, 10, session_factory=RecordingFactory())

    assert len(feed) == 1
    assert len(opened) == 4
    assert len({id(s) for s in opened}) == 4


@pytest.mark.asyncio
async def test_create_post_defaults_to_own_wall(db_session, alice):
    post = await create_post(db_session, alice.id, PostCreate(content="  Hello campus  "))

    assert post.target_kind == PostTarget.USER
    assert post.target_id == alice.id
    assert post.content == "Hello campus"


@pytest.mark.asyncio
async def test_create_post_requires_content(db_session, alice):
    with pytest.raises(BadRequestError):
        await create_post(db_session, alice.id, PostCreate(content="   "))


@pytest.mark.asyncio
async def test_create_post_on_walls(db_session, alice, bob, carol, make_friends):
    await make_friends(alice, bob)

    post = await create_post(
        db_session, alice.id, PostCreate(content="hi", target_kind=PostTarget.USER, target_id=bob.id)
    )
    assert post.target_id == bob.id

    with pytest.raises(NotAuthorizedError):
        await create_post(
            db_session, alice.id, PostCreate(content="hi", target_kind=PostTarget.USER, target_id=carol.id)
        )


@pytest.mark.asyncio
async def test_create_post_in_group(db_session, alice, bob, carol, make_user, make_group, add_group_member):
    group = await make_group(alice, allow_member_posting=False)
    await add_group_member(group, bob)
    await add_group_member(group, carol, status=MembershipStatus.BANNED)
    waiting = await make_user()
    await add_group_member(group, waiting, status=MembershipStatus.PENDING)
    data = PostCreate(content="notes", target_kind=PostTarget.GROUP, target_id=group.id)

    assert (await create_post(db_session, alice.id, data)).target_id == group.id
    with pytest.raises(NotAuthorizedError):
        await create_post(db_session, bob.id, data)
    with pytest.raises(NotAuthorizedError, match="banned"):
        await create_post(db_session, carol.id, data)
    with pytest.raises(NotAuthorizedError, match="pending"):
        await create_post(db_session, waiting.id, data)


@pytest.mark.asyncio
async def test_create_post_in_room_requires_membership(db_session, alice, bob, make_room):
    room = await make_room(alice)

    with pytest.raises(NotAuthorizedError):
        await create_post(
            db_session, bob.id, PostCreate(content="q", target_kind=PostTarget.ROOM, target_id=room.id)
        )


@pytest.mark.asyncio
async def test_create_post_on_missing_institution(db_session, alice):
    with pytest.raises(NotFoundError):
        await create_post(
            db_session, alice.id, PostCreate(content="x", target_kind=PostTarget.INSTITUTION, target_id="nope")
        )


@pytest.mark.asyncio
async def test_share_counts(db_session, alice, bob, make_post):
    original = await make_post(bob)

    shared = await create_post(db_session, alice.id, PostCreate(shared_post_id=original.id))
    await db_session.refresh(original)

    assert shared.shared_post_id == original.id
    assert original.shares_count == 1


@pytest.mark.asyncio
async def test_get_post_enforces_visibility(db_session, alice, bob, make_post):
    private = await make_post(alice, visibility=PostVisibility.CONNECTIONS)

    with pytest.raises(NotFoundError):
        await get_post(db_session, bob.id, private.id)
    assert (await get_post(db_session, alice.id, private.id)).id == private.id


@pytest.mark.asyncio
async def test_toggle_like(db_session, alice, bob, make_post):
    post = await make_post(alice)

    liked = await toggle_like(db_session, bob.id, post.id)
    assert liked == {"is_liked": True, "likes_count": 1}
    assert (await get_post(db_session, bob.id, post.id)).is_liked_by_me is True

    unliked = await toggle_like(db_session, bob.id, post.id)
    assert unliked == {"is_liked": False, "likes_count": 0}


@pytest.mark.asyncio
async def test_delete_post(db_session, alice, bob, make_post):
    post = await make_post(alice)
    await toggle_like(db_session, bob.id, post.id)

    with pytest.raises(NotAuthorizedError):
        await delete_post(db_session, bob.id, post.id)

    assert await delete_post(db_session, alice.id, post.id) == {"success": True}
    assert await db_session.get(Post, post.id) is None


@pytest.mark.asyncio
async def test_target_feed(db_session, alice, bob, make_group, add_group_member, make_post):
    group = await make_group(alice)
    public = await make_post(alice, PostTarget.GROUP, group.id)
    members_only = await make_post(alice, PostTarget.GROUP, group.id, visibility=PostVisibility.CONNECTIONS)
    pinned = await make_post(alice, PostTarget.GROUP, group.id, is_pinned=True)

    outsider_view = await get_target_feed(db_session, bob.id, PostTarget.GROUP, group.id, 1, 10)
    assert [p.id for p in outsider_view] == [pinned.id, public.id]

    await add_group_member(group, bob)
    member_view = await get_target_feed(db_session, bob.id, PostTarget.GROUP, group.id, 1, 10)
    assert [p.id for p in member_view] == [pinned.id, members_only.id, public.id]


@pytest.mark.asyncio
async def test_private_group_feed_requires_membership(db_session, alice, bob, make_group):
    group = await make_group(alice, privacy=GroupPrivacy.PRIVATE)

    with pytest.raises(NotAuthorizedError):
        await get_target_feed(db_session, bob.id, PostTarget.GROUP, group.id, 1, 10)


@pytest.mark.asyncio
async def test_user_timeline(db_session, alice, bob, carol, make_friends, make_post):
    await make_friends(alice, bob)
    public = await make_post(alice, visibility=PostVisibility.PUBLIC)
    friends_only = await make_post(alice, visibility=PostVisibility.CONNECTIONS)
    private = await make_post(alice, visibility=PostVisibility.ONLY_ME)

    own = await get_user_timeline(db_session, alice.id, alice.id, 1, 10)
    friend = await get_user_timeline(db_session, bob.id, alice.id, 1, 10)
    stranger = await get_user_timeline(db_session, carol.id, alice.id, 1, 10)

    assert [p.id for p in own] == [private.id, friends_only.id, public.id]
    assert [p.id for p in friend] == [friends_only.id, public.id]
    assert [p.id for p in stranger] == [public.id]


@pytest.mark.asyncio
async def test_user_timeline_hidden_when_blocked(db_session, alice, bob, make_post):
    await make_post(alice)
    await block_user(db_session, alice.id, bob.id)

    with pytest.raises(NotFoundError):
        await get_user_timeline(db_session, bob.id, alice.id, 1, 10)
