# tests/test_cards.py — Card router tests
import pytest
from httpx import AsyncClient

from tests.conftest import (
    get_auth_headers, invite, make_board, make_card, make_list,
)


@pytest.mark.asyncio
async def test_create_card(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    list_id = board_setup["list"]["id"]
    card = await make_card(client, owner_user, board_id, list_id, "Write tests")
    assert card["title"] == "Write tests"
    assert card["list_id"] == list_id
    assert card["member_ids"] == [owner_user.id]
    assert card["version"] == 0
    assert card["position"] == 0
    assert len(card["activity_ids"]) == 1

    second = await make_card(client, owner_user, board_id, list_id, "Ship it")
    assert second["position"] == 1


@pytest.mark.asyncio
async def test_create_card_list_must_belong_to_board(client: AsyncClient, board_setup, owner_user):
    other = await make_board(client, owner_user, board_setup["workspace"]["id"], "Other")
    resp = await client.post(
        "/api/v1/cards",
        json={"title": "Lost", "list_id": board_setup["list"]["id"], "board_id": other["id"]},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_card_missing_list(client: AsyncClient, board_setup, owner_user):
    resp = await client.post(
        "/api/v1/cards",
        json={"title": "Orphan", "board_id": board_setup["board"]["id"]},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "TB-REQ-002"


@pytest.mark.asyncio
async def test_get_card_outsider_forbidden(client: AsyncClient, board_setup, owner_user, outsider_user):
    card = await make_card(client, owner_user, board_setup["board"]["id"], board_setup["list"]["id"])
    resp = await client.get(f"/api/v1/cards/{card['id']}", headers=get_auth_headers(outsider_user))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_get_unknown_card(client: AsyncClient, owner_user):
    resp = await client.get("/api/v1/cards/" + "a" * 24, headers=get_auth_headers(owner_user))
    assert resp.status_code == 404
    assert resp.json()["code"] == "TB-RES-001"


@pytest.mark.asyncio
async def test_update_card(client: AsyncClient, board_setup, owner_user):
    card = await make_card(client, owner_user, board_setup["board"]["id"], board_setup["list"]["id"])
    resp = await client.put(
        f"/api/v1/cards/{card['id']}",
        json={"title": "Renamed", "description": "Details", "due_date": "2026-11-01T12:00:00Z"},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Renamed"
    assert data["description"] == "Details"
    assert data["due_date"].startswith("2026-11-01")


@pytest.mark.asyncio
async def test_delete_card_removes_from_order(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    list_id = board_setup["list"]["id"]
    await invite(client, owner_user, board_id, member_user)
    card = await make_card(client, owner_user, board_id, list_id)

    resp = await client.delete(f"/api/v1/cards/{card['id']}", headers=get_auth_headers(member_user))
    assert resp.status_code == 200

    cards = (await client.get(f"/api/v1/cards/list/{list_id}", headers=get_auth_headers(owner_user))).json()
    assert cards == []
    # Only the board owner can still read a deleted card
    assert (await client.get(f"/api/v1/cards/{card['id']}", headers=get_auth_headers(member_user))).status_code == 404
    assert (await client.get(f"/api/v1/cards/{card['id']}", headers=get_auth_headers(owner_user))).status_code == 200


@pytest.mark.asyncio
async def test_move_card_within_board(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    board_id = board_setup["board"]["id"]
    source = board_setup["list"]["id"]
    dest = (await make_list(client, owner_user, board_id, "Done"))["id"]
    existing = await make_card(client, owner_user, board_id, dest, "Already done")
    card = await make_card(client, owner_user, board_id, source, "Moving")

    resp = await client.put(
        f"/api/v1/cards/{card['id']}/move",
        json={"new_list_id": dest, "new_board_id": board_id, "new_position": 0},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["list_id"] == dest

    src_cards = (await client.get(f"/api/v1/cards/list/{source}", headers=headers)).json()
    dest_cards = (await client.get(f"/api/v1/cards/list/{dest}", headers=headers)).json()
    assert src_cards == []
    assert [c["id"] for c in dest_cards] == [card["id"], existing["id"]]


@pytest.mark.asyncio
async def test_move_card_across_boards(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await make_card(client, owner_user, board_setup["board"]["id"], board_setup["list"]["id"])
    other = await make_board(client, owner_user, board_setup["workspace"]["id"], "Other")
    other_list = await make_list(client, owner_user, other["id"], "Inbox")

    resp = await client.put(
        f"/api/v1/cards/{card['id']}/move",
        json={"new_list_id": other_list["id"], "new_board_id": other["id"], "new_position": 99},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["board_id"] == other["id"]
    assert resp.json()["position"] == 0


@pytest.mark.asyncio
async def test_move_card_requires_destination_membership(client: AsyncClient, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    card = await make_card(client, member_user, board_id, board_setup["list"]["id"])
    private = await make_board(client, owner_user, board_setup["workspace"]["id"], "Private")
    private_list = await make_list(client, owner_user, private["id"], "Secret")

    resp = await client.put(
        f"/api/v1/cards/{card['id']}/move",
        json={"new_list_id": private_list["id"], "new_board_id": private["id"]},
        headers=get_auth_headers(member_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_move_card_list_board_mismatch(client: AsyncClient, board_setup, owner_user):
    board_id = board_setup["board"]["id"]
    card = await make_card(client, owner_user, board_id, board_setup["list"]["id"])
    other = await make_board(client, owner_user, board_setup["workspace"]["id"], "Other")
    resp = await client.put(
        f"/api/v1/cards/{card['id']}/move",
        json={"new_list_id": board_setup["list"]["id"], "new_board_id": other["id"]},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_toggle_completion(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await make_card(client, owner_user, board_setup["board"]["id"], board_setup["list"]["id"])
    resp = await client.put(f"/api/v1/cards/{card['id']}/complete", headers=headers)
    assert resp.json()["completed"] is True
    resp = await client.put(f"/api/v1/cards/{card['id']}/complete", headers=headers)
    assert resp.json()["completed"] is False


@pytest.mark.asyncio
async def test_card_members(client: AsyncClient, board_setup, owner_user, member_user, outsider_user):
    headers = get_auth_headers(owner_user)
    board_id = board_setup["board"]["id"]
    card = await make_card(client, owner_user, board_id, board_setup["list"]["id"])

    resp = await client.post(f"/api/v1/cards/{card['id']}/members", json={"user_id": outsider_user.id}, headers=headers)
    assert resp.status_code == 400

    await invite(client, owner_user, board_id, member_user)
    resp = await client.post(f"/api/v1/cards/{card['id']}/members", json={"user_id": member_user.id}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["member_ids"] == [owner_user.id, member_user.id]

    resp = await client.post(f"/api/v1/cards/{card['id']}/members", json={"user_id": member_user.id}, headers=headers)
    assert resp.status_code == 409

    resp = await client.delete(f"/api/v1/cards/{card['id']}/members/{member_user.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["member_ids"] == [owner_user.id]
