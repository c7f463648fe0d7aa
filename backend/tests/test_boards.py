# tests/test_boards.py — Board router tests: CRUD, list order, membership
import pytest
from httpx import AsyncClient

from tests.conftest import (
    get_auth_headers, invite, make_board, make_card, make_list, make_workspace,
)


@pytest.mark.asyncio
async def test_create_board(client: AsyncClient, owner_user):
    ws = await make_workspace(client, owner_user)
    resp = await client.post(
        "/api/v1/boards",
        json={"title": "Roadmap", "workspace_id": ws["id"], "visibility": "workspace"},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["title"] == "Roadmap"
    assert data["owner_id"] == owner_user.id
    assert data["visibility"] == "workspace"
    assert data["members"] == [{"user_id": owner_user.id, "is_active": True}]
    assert data["list_order_ids"] == []


@pytest.mark.asyncio
async def test_create_board_missing_fields(client: AsyncClient, owner_user):
    ws = await make_workspace(client, owner_user)
    headers = get_auth_headers(owner_user)
    resp = await client.post("/api/v1/boards", json={"workspace_id": ws["id"]}, headers=headers)
    assert resp.status_code == 400
    resp = await client.post("/api/v1/boards", json={"title": "No home"}, headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_board_outside_workspace_forbidden(client: AsyncClient, owner_user, outsider_user):
    ws = await make_workspace(client, owner_user)
    resp = await client.post(
        "/api/v1/boards",
        json={"title": "Sneaky", "workspace_id": ws["id"]},
        headers=get_auth_headers(outsider_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_list_boards_by_workspace(client: AsyncClient, owner_user):
    ws1 = await make_workspace(client, owner_user, "One")
    ws2 = await make_workspace(client, owner_user, "Two")
    b1 = await make_board(client, owner_user, ws1["id"], "A")
    await make_board(client, owner_user, ws2["id"], "B")

    resp = await client.get(
        "/api/v1/boards", params={"workspace_id": ws1["id"]}, headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    assert [b["id"] for b in resp.json()] == [b1["id"]]


@pytest.mark.asyncio
async def test_get_board_requires_membership(client: AsyncClient, board_setup, outsider_user):
    board_id = board_setup["board"]["id"]
    resp = await client.get(f"/api/v1/boards/{board_id}", headers=get_auth_headers(outsider_user))
    assert resp.status_code == 403
    assert resp.json()["code"] == "TB-ACL-001"


@pytest.mark.asyncio
async def test_update_board(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    resp = await client.put(
        f"/api/v1/boards/{board_id}",
        json={"title": "Renamed", "background": "#123456"},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["background"] == "#123456"


@pytest.mark.asyncio
async def test_delete_board_owner_only(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)

    resp = await client.delete(f"/api/v1/boards/{board_id}", headers=get_auth_headers(member_user))
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/boards/{board_id}", headers=get_auth_headers(owner_user))
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/boards/{board_id}", headers=get_auth_headers(owner_user))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_deleted_board_hides_its_lists(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    await client.delete(f"/api/v1/boards/{board_id}", headers=get_auth_headers(owner_user))
    resp = await client.get(f"/api/v1/lists/board/{board_id}", headers=get_auth_headers(owner_user))
    assert resp.status_code == 404


# ============================================================
# LIST ORDER
# ============================================================

@pytest.mark.asyncio
async def test_update_list_order(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    first = board_setup["list"]["id"]
    second = (await make_list(client, owner_user, board_id, "Doing"))["id"]

    resp = await client.put(
        f"/api/v1/boards/{board_id}/list-order",
        json={"list_order_ids": [second, first]},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    assert resp.json()["list_order_ids"] == [second, first]

    resp = await client.get(f"/api/v1/lists/board/{board_id}", headers=get_auth_headers(owner_user))
    assert [lst["id"] for lst in resp.json()] == [second, first]


@pytest.mark.asyncio
async def test_list_order_rejects_incomplete_or_foreign_ids(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    board_id = board_setup["board"]["id"]
    first = board_setup["list"]["id"]
    second = (await make_list(client, owner_user, board_id, "Doing"))["id"]
    other_board = await make_board(client, owner_user, board_setup["workspace"]["id"], "Other")
    foreign = (await make_list(client, owner_user, other_board["id"], "Elsewhere"))["id"]

    for order in ([first], [first, first, second], [first, second, foreign], [first, "bogus"]):
        resp = await client.put(
            f"/api/v1/boards/{board_id}/list-order", json={"list_order_ids": order}, headers=headers,
        )
        assert resp.status_code == 400, order

    board = (await client.get(f"/api/v1/boards/{board_id}", headers=headers)).json()
    assert board["list_order_ids"] == [first, second]


# ============================================================
# MEMBERSHIP
# ============================================================

@pytest.mark.asyncio
async def test_invite_by_user_id(client: AsyncClient, board_setup, owner_user, member_user):
    board = await invite(client, owner_user, board_setup["board"]["id"], member_user)
    assert {"user_id": member_user.id, "is_active": True} in board["members"]
    assert any(i["user_id"] == member_user.id for i in board["invited_users"])


@pytest.mark.asyncio
async def test_invite_twice_conflicts(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    resp = await client.post(
        f"/api/v1/boards/{board_id}/invite", json={"user_id": member_user.id},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_invite_by_email_without_account(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    resp = await client.post(
        f"/api/v1/boards/{board_id}/invite", json={"email": "Newcomer@Example.com"},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    pending = [i for i in resp.json()["invited_users"] if i["user_id"] is None]
    assert pending[0]["email"] == "newcomer@example.com"
    assert len(resp.json()["members"]) == 1


@pytest.mark.asyncio
async def test_invite_requires_owner(client: AsyncClient, board_setup, owner_user, member_user, outsider_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    resp = await client.post(
        f"/api/v1/boards/{board_id}/invite", json={"user_id": outsider_user.id},
        headers=get_auth_headers(member_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_remove_member_strips_card_membership(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    card = await make_card(client, member_user, board_id, board_setup["list"]["id"])
    assert member_user.id in card["member_ids"]

    resp = await client.delete(
        f"/api/v1/boards/{board_id}/members/{member_user.id}", headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    assert {"user_id": member_user.id, "is_active": False} in resp.json()["members"]

    card = (await client.get(f"/api/v1/cards/{card['id']}", headers=get_auth_headers(owner_user))).json()
    assert member_user.id not in card["member_ids"]

    resp = await client.get(f"/api/v1/boards/{board_id}", headers=get_auth_headers(member_user))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_cannot_remove_owner(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    resp = await client.delete(
        f"/api/v1/boards/{board_id}/members/{owner_user.id}", headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_reinvite_reactivates_member(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    await client.delete(f"/api/v1/boards/{board_id}/members/{member_user.id}", headers=get_auth_headers(owner_user))
    board = await invite(client, owner_user, board_id, member_user)
    members = [m for m in board["members"] if m["user_id"] == member_user.id]
    assert members == [{"user_id": member_user.id, "is_active": True}]


@pytest.mark.asyncio
async def test_leave_board(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    resp = await client.post(f"/api/v1/boards/{board_id}/leave", headers=get_auth_headers(member_user))
    assert resp.status_code == 200

    resp = await client.post(f"/api/v1/boards/{board_id}/leave", headers=get_auth_headers(owner_user))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_transfer_ownership(client: AsyncClient, board_setup, owner_user, member_user, outsider_user):
    board_id = board_setup["board"]["id"]
    headers = get_auth_headers(owner_user)
    resp = await client.put(
        f"/api/v1/boards/{board_id}/transfer", json={"new_owner_id": outsider_user.id}, headers=headers,
    )
    assert resp.status_code == 400

    await invite(client, owner_user, board_id, member_user)
    resp = await client.put(
        f"/api/v1/boards/{board_id}/transfer", json={"new_owner_id": member_user.id}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["owner_id"] == member_user.id


@pytest.mark.asyncio
async def test_board_activities(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    resp = await client.get(f"/api/v1/boards/{board_id}/activities", headers=get_auth_headers(owner_user))
    assert resp.status_code == 200
    actions = {a["action"] for a in resp.json()}
    assert {"board_created", "list_created"} <= actions
