import pytest

from edusocial.schemas.posts import PostVisibility
from edusocial.schemas.users import UserType

API = '/api/v1'


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get('/health')

    assert response.status_code == 200
    assert response.json() == {'status': 'ok'}


@pytest.mark.asyncio
async def test_requires_bearer_token(client):
    response = await client.get(f'{API}/posts/feed')

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_register_and_fetch_me(client, institution):
    headers = {'Authorization': 'Bearer firebase-uid-1'}
    payload = {
        'user_name': 'nadia_r',
        'full_name': 'Nadia Rahman',
        'email': 'nadia@cse.buet.ac.bd',
        'institution_id': institution.id,
    }

    created = await client.post(f'{API}/users/me', json=payload, headers=headers)
    assert created.status_code == 201
    assert created.json()['id'] == 'firebase-uid-1'

    duplicate = await client.post(f'{API}/users/me', json=payload, headers=headers)
    assert duplicate.status_code == 409

    me = await client.get(f'{API}/users/me', headers=headers)
    assert me.json()['user_name'] == 'nadia_r'
    assert me.json()['connections_count'] == 0


@pytest.mark.asyncio
async def test_register_refuses_admin_type(client):
    headers = {'Authorization': 'Bearer firebase-uid-2'}
    payload = {'user_name': 'root_user', 'full_name': 'Root', 'user_type': 'ADMIN'}

    response = await client.post(f'{API}/users/me', json=payload, headers=headers)

    assert response.status_code == 403
    assert response.json()['detail'] == 'Restricted user type.'
    assert (await client.get(f'{API}/users/me', headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_update_account_and_academic_profile(client, alice, institution, department, auth_headers):
    renamed = await client.patch(f'{API}/users/me', json={'user_name': 'alice_2'}, headers=auth_headers(alice))
    assert renamed.status_code == 400

    updated = await client.patch(f'{API}/users/me', json={'full_name': 'Alice L.'}, headers=auth_headers(alice))
    assert updated.status_code == 200
    assert updated.json()['full_name'] == 'Alice L.'

    academic = await client.patch(
        f'{API}/users/me/academic',
        json={'institution_id': institution.id, 'department_id': department.id},
        headers=auth_headers(alice),
    )
    assert academic.status_code == 200
    assert academic.json()['department_id'] == department.id

    follows = await client.get(f'{API}/follows', headers=auth_headers(alice))
    assert {f['following_kind'] for f in follows.json()} == {'INSTITUTION', 'DEPARTMENT'}


@pytest.mark.asyncio
async def test_check_student_email(client, alice, institution, auth_headers):
    ok = await client.get(f'{API}/users/check-email', params={'email': 'x@CSE.buet.ac.bd'}, headers=auth_headers(alice))
    nope = await client.get(f'{API}/users/check-email', params={'email': 'x@gmail.com'}, headers=auth_headers(alice))

    assert ok.json()['is_student_email'] is True
    assert nope.json()['is_student_email'] is False


@pytest.mark.asyncio
async def test_friendship_flow(client, alice, bob, auth_headers):
    sent = await client.post(f'{API}/friendships/requests', json={'recipient_id': bob.id}, headers=auth_headers(alice))
    assert sent.status_code == 200
    assert sent.json()['status'] == 'PENDING'
    friendship_id = sent.json()['friendship_id']

    incoming = await client.get(f'{API}/friendships', params={'type': 'INCOMING'}, headers=auth_headers(bob))
    assert [item['user']['id'] for item in incoming.json()] == [alice.id]

    forbidden = await client.post(f'{API}/friendships/requests/{friendship_id}/accept', headers=auth_headers(alice))
    assert forbidden.status_code == 403

    accepted = await client.post(f'{API}/friendships/requests/{friendship_id}/accept', headers=auth_headers(bob))
    assert accepted.json()['status'] == 'ACCEPTED'

    status = await client.get(f'{API}/friendships/status/{bob.id}', headers=auth_headers(alice))
    assert status.json() == {'label': 'FRIENDS', 'friendship_id': friendship_id}

    friends = await client.get(f'{API}/friendships', headers=auth_headers(alice))
    assert [item['user']['id'] for item in friends.json()] == [bob.id]

    removed = await client.delete(f'{API}/friendships/friends/{bob.id}', headers=auth_headers(alice))
    assert removed.json() == {'success': True}

    recount = await client.post(f'{API}/friendships/recount', headers=auth_headers(bob))
    assert recount.json()['connections_count'] == 0


@pytest.mark.asyncio
async def test_self_request_is_rejected(client, alice, auth_headers):
    response = await client.post(f'{API}/friendships/requests', json={'recipient_id': alice.id}, headers=auth_headers(alice))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_blocked_profile_is_masked(client, alice, bob, auth_headers):
    blocked = await client.post(f'{API}/friendships/block/{bob.id}', headers=auth_headers(alice))
    assert blocked.status_code == 200

    masked = await client.get(f'{API}/users/alice', headers=auth_headers(bob))
    assert masked.status_code == 404

    own_view = await client.get(f'{API}/users/bob', headers=auth_headers(alice))
    assert own_view.json()['relationship'] == 'BLOCKED'

    unblocked = await client.delete(f'{API}/friendships/block/{bob.id}', headers=auth_headers(alice))
    assert unblocked.status_code == 200
    assert (await client.get(f'{API}/users/alice', headers=auth_headers(bob))).json()['relationship'] == 'NONE'


@pytest.mark.asyncio
async def test_post_like_and_comment(client, alice, bob, make_friends, auth_headers):
    await make_friends(alice, bob)

    created = await client.post(
        f'{API}/posts',
        json={'content': 'Midterm tomorrow', 'visibility': 'CONNECTIONS'},
        headers=auth_headers(alice),
    )
    assert created.status_code == 201
    post_id = created.json()['id']

    liked = await client.post(f'{API}/posts/{post_id}/like', headers=auth_headers(bob))
    assert liked.json() == {'is_liked': True, 'likes_count': 1}

    comment = await client.post(f'{API}/comments/{post_id}', json={'content': 'Good luck!'}, headers=auth_headers(bob))
    assert comment.status_code == 201

    comments = await client.get(f'{API}/comments/{post_id}', headers=auth_headers(alice))
    assert [c['content'] for c in comments.json()] == ['Good luck!']

    feed = await client.get(f'{API}/posts/feed', headers=auth_headers(bob))
    assert feed.status_code == 200
    item = feed.json()[0]
    assert item['id'] == post_id
    assert item['is_liked_by_me'] is True
    assert item['comments_count'] == 1


@pytest.mark.asyncio
async def test_private_post_responses(client, alice, bob, make_post, auth_headers):
    only_me = await make_post(alice, visibility=PostVisibility.ONLY_ME)
    connections = await make_post(alice, visibility=PostVisibility.CONNECTIONS)

    forbidden = await client.get(f'{API}/posts/{only_me.id}', headers=auth_headers(bob))
    hidden = await client.get(f'{API}/posts/{connections.id}', headers=auth_headers(bob))

    assert forbidden.status_code == 403
    assert forbidden.json()['detail'] == 'This content is private.'
    assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_user_posts_endpoint(client, alice, bob, make_post, auth_headers):
    public = await make_post(alice)
    await make_post(alice, visibility=PostVisibility.CONNECTIONS)

    response = await client.get(f'{API}/users/alice/posts', headers=auth_headers(bob))

    assert [p['id'] for p in response.json()] == [public.id]


@pytest.mark.asyncio
async def test_group_endpoints(client, alice, bob, auth_headers):
    created = await client.post(
        f'{API}/groups', json={'name': 'Math Olympiad', 'slug': 'math-olympiad', 'privacy': 'PRIVATE'},
        headers=auth_headers(alice),
    )
    assert created.status_code == 201
    group_id = created.json()['id']

    join = await client.post(f'{API}/groups/{group_id}/join', headers=auth_headers(bob))
    assert join.json()['status'] == 'PENDING'

    approve = await client.post(
        f'{API}/groups/{group_id}/requests/{bob.id}', json={'action': 'ACCEPT'}, headers=auth_headers(alice)
    )
    assert approve.status_code == 200

    members = await client.get(f'{API}/groups/{group_id}/members', headers=auth_headers(bob))
    assert {m['user_id'] for m in members.json()} == {alice.id, bob.id}

    promote = await client.patch(
        f'{API}/groups/{group_id}/members/{alice.id}/role', json={'role': 'MEMBER'}, headers=auth_headers(bob)
    )
    assert promote.status_code == 403


@pytest.mark.asyncio
async def test_room_endpoints(client, alice, make_user, auth_headers):
    teacher = await make_user(user_type=UserType.TEACHER)

    denied = await client.post(f'{API}/rooms', json={'name': 'Physics 101'}, headers=auth_headers(alice))
    assert denied.status_code == 403

    room = await client.post(f'{API}/rooms', json={'name': 'Physics 101'}, headers=auth_headers(teacher))
    assert room.status_code == 201
    code = room.json()['join_code']

    joined = await client.post(f'{API}/rooms/join', json={'code': code.lower()}, headers=auth_headers(alice))
    assert joined.json()['room_id'] == room.json()['id']

    mine = await client.get(f'{API}/rooms/mine', headers=auth_headers(alice))
    assert [r['id'] for r in mine.json()] == [room.json()['id']]


@pytest.mark.asyncio
async def test_follow_endpoints(client, alice, institution, department, auth_headers):
    followed = await client.post(
        f'{API}/follows', json={'following_kind': 'INSTITUTION', 'following_id': institution.id},
        headers=auth_headers(alice),
    )
    assert followed.status_code == 201

    again = await client.post(
        f'{API}/follows', json={'following_kind': 'INSTITUTION', 'following_id': institution.id},
        headers=auth_headers(alice),
    )
    assert again.status_code == 409

    institutions = await client.get(f'{API}/institutions', headers=auth_headers(alice))
    assert institutions.json()[0]['followers_count'] == 1

    departments = await client.get(f'{API}/institutions/{institution.id}/departments', headers=auth_headers(alice))
    assert [d['code'] for d in departments.json()] == ['CSE']

    unfollowed = await client.delete(f'{API}/follows/INSTITUTION/{institution.id}', headers=auth_headers(alice))
    assert unfollowed.json() == {'success': True}
    assert (await client.get(f'{API}/follows', headers=auth_headers(alice))).json() == []


@pytest.mark.asyncio
async def test_notification_endpoints(client, alice, bob, auth_headers):
    await client.post(f'{API}/friendships/requests', json={'recipient_id': bob.id}, headers=auth_headers(alice))
    from edusocial.services.notification_service import drain_pending_notifications
    await drain_pending_notifications()

    unread = await client.get(f'{API}/notifications/unread-count', headers=auth_headers(bob))
    assert unread.json() == {'unread_count': 1}

    listed = await client.get(f'{API}/notifications', headers=auth_headers(bob))
    notification_id = listed.json()[0]['id']
    assert listed.json()[0]['type'] == 'FRIEND_REQUEST'

    other = await client.patch(f'{API}/notifications/{notification_id}/read', headers=auth_headers(alice))
    assert other.status_code == 404

    read = await client.patch(f'{API}/notifications/{notification_id}/read', headers=auth_headers(bob))
    assert read.json()['is_read'] is True


@pytest.mark.asyncio
async def test_device_token_endpoints(client, alice, auth_headers):
    registered = await client.post(
        f'{API}/device-tokens/register', json={'token': 'tok-1', 'platform': 'android'}, headers=auth_headers(alice)
    )
    assert registered.json()['is_active'] is True

    missing = await client.post(f'{API}/device-tokens/unregister', params={'token': 'nope'}, headers=auth_headers(alice))
    assert missing.status_code == 404

    removed = await client.post(f'{API}/device-tokens/unregister', params={'token': 'tok-1'}, headers=auth_headers(alice))
    assert removed.json() == {'success': True}
