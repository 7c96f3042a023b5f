"""
EduSocial API - Test Configuration and Fixtures
"""
import os
from datetime import timedelta
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'development'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_edusocial.db'

from edusocial.main import app
from edusocial.database import AsyncSessionLocal, Base, engine
from edusocial.init_db import get_db
from edusocial.models import (
    Department,
    Follow,
    Friendship,
    Group,
    GroupMembership,
    Institution,
    Post,
    Room,
    RoomMembership,
    User,
)
from edusocial.schemas.follows import FollowTarget
from edusocial.schemas.friends import FriendshipStatus
from edusocial.schemas.groups import GroupPrivacy, MembershipStatus, ResourceRole
from edusocial.schemas.posts import PostTarget, PostVisibility
from edusocial.schemas.users import UserType
from edusocial.services.notification_service import drain_pending_notifications
from edusocial.utils.time_utils import utcnow

fake = Faker()


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        yield session
        await session.rollback()

    # Notifications are written from background tasks; let them land before dropping tables
    await drain_pending_notifications()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """In development the bearer token is the caller's uid"""
    def _headers(user: User) -> dict:
        return {'Authorization': f'Bearer {user.id}'}
    return _headers


@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make_user(**overrides) -> User:
        fields = {
            'user_name': f"{fake.unique.user_name().replace('.', '_')}",
            'full_name': fake.name(),
            'email': fake.unique.email(),
            'user_type': UserType.STUDENT,
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user(user_name='alice')


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user(user_name='bob')


@pytest.fixture
async def carol(make_user) -> User:
    return await make_user(user_name='carol')


@pytest.fixture
def make_friends(db_session: AsyncSession):
    """Store an ACCEPTED record directly, counters included"""
    async def _make_friends(a: User, b: User) -> Friendship:
        friendship = Friendship.between(a.id, b.id, FriendshipStatus.ACCEPTED)
        db_session.add(friendship)
        a.connections_count += 1
        b.connections_count += 1
        await db_session.commit()
        return friendship
    return _make_friends


@pytest.fixture
def make_post(db_session: AsyncSession):
    counter = {'n': 0}

    async def _make_post(
        author: User,
        target_kind: PostTarget = PostTarget.USER,
        target_id: str = None,
        visibility: PostVisibility = PostVisibility.PUBLIC,
        **extra,
    ) -> Post:
        # Strictly increasing timestamps keep ordering assertions deterministic
        counter['n'] += 1
        post = Post(
            author_id=author.id,
            target_kind=target_kind,
            target_id=target_id or author.id,
            visibility=visibility,
            content=extra.pop('content', fake.sentence()),
            created_at=utcnow() + timedelta(seconds=counter['n']),
            **extra,
        )
        db_session.add(post)
        await db_session.commit()
        await db_session.refresh(post)
        return post
    return _make_post


@pytest.fixture
def make_group(db_session: AsyncSession):
    async def _make_group(owner: User, privacy: GroupPrivacy = GroupPrivacy.PUBLIC, **extra) -> Group:
        group = Group(
            name=fake.company(),
            slug=fake.unique.slug(),
            privacy=privacy,
            creator_id=owner.id,
            members_count=1,
            **extra,
        )
        db_session.add(group)
        await db_session.flush()
        db_session.add(GroupMembership(
            group_id=group.id, user_id=owner.id, role=ResourceRole.OWNER, status=MembershipStatus.JOINED,
        ))
        await db_session.commit()
        await db_session.refresh(group)
        return group
    return _make_group


@pytest.fixture
def add_group_member(db_session: AsyncSession):
    async def _add(group: Group, user: User, role: ResourceRole = ResourceRole.MEMBER,
                   status: MembershipStatus = MembershipStatus.JOINED) -> GroupMembership:
        membership = GroupMembership(group_id=group.id, user_id=user.id, role=role, status=status)
        db_session.add(membership)
        if status == MembershipStatus.JOINED:
            group.members_count += 1
        await db_session.commit()
        return membership
    return _add


@pytest.fixture
def make_room(db_session: AsyncSession):
    async def _make_room(owner: User, join_code: str = None) -> Room:
        room = Room(
            name=fake.catch_phrase(),
            join_code=join_code or fake.unique.bothify('??##??').upper(),
            creator_id=owner.id,
            members_count=1,
        )
        db_session.add(room)
        await db_session.flush()
        db_session.add(RoomMembership(
            room_id=room.id, user_id=owner.id, role=ResourceRole.OWNER, status=MembershipStatus.JOINED,
        ))
        await db_session.commit()
        await db_session.refresh(room)
        return room
    return _make_room


@pytest.fixture
def add_room_member(db_session: AsyncSession):
    async def _add(room: Room, user: User, role: ResourceRole = ResourceRole.MEMBER) -> RoomMembership:
        membership = RoomMembership(room_id=room.id, user_id=user.id, role=role, status=MembershipStatus.JOINED)
        db_session.add(membership)
        room.members_count += 1
        await db_session.commit()
        return membership
    return _add


@pytest.fixture
async def institution(db_session: AsyncSession) -> Institution:
    inst = Institution(name='Bangladesh University of Engineering and Technology', code='BUET',
                       valid_domains='buet.ac.bd, cse.buet.ac.bd')
    db_session.add(inst)
    await db_session.commit()
    await db_session.refresh(inst)
    return inst


@pytest.fixture
async def department(db_session: AsyncSession, institution: Institution) -> Department:
    dept = Department(institution_id=institution.id, name='Computer Science and Engineering', code='CSE')
    db_session.add(dept)
    await db_session.commit()
    await db_session.refresh(dept)
    return dept


@pytest.fixture
def make_follow(db_session: AsyncSession):
    async def _follow(user: User, kind: FollowTarget, target_id: str) -> Follow:
        entry = Follow(follower_id=user.id, following_kind=kind, following_id=target_id)
        db_session.add(entry)
        await db_session.commit()
        return entry
    return _follow
