# tests/test_card_content.py — Comments, notes, checklists and version-guarded items
import pytest
from httpx import AsyncClient

from tests.conftest import get_auth_headers, invite, make_card


async def _card(client, board_setup, user):
    return await make_card(client, user, board_setup["board"]["id"], board_setup["list"]["id"])


async def _checklist(client, card_id, user, title="Launch steps"):
    resp = await client.post(
        f"/api/v1/cards/{card_id}/checklists", json={"title": title}, headers=get_auth_headers(user),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ============================================================
# COMMENTS & NOTES
# ============================================================

@pytest.mark.asyncio
async def test_add_comment(client: AsyncClient, board_setup, owner_user):
    card = await _card(client, board_setup, owner_user)
    resp = await client.post(
        f"/api/v1/cards/{card['id']}/comments", json={"text": "Looks good"},
        headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 201
    comments = resp.json()
    assert len(comments) == 1
    assert comments[0]["text"] == "Looks good"
    assert comments[0]["author_id"] == owner_user.id


@pytest.mark.asyncio
async def test_empty_comment_rejected(client: AsyncClient, board_setup, owner_user):
    card = await _card(client, board_setup, owner_user)
    resp = await client.post(
        f"/api/v1/cards/{card['id']}/comments", json={"text": "  "}, headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_comment_requires_active_membership(client: AsyncClient, board_setup, owner_user, outsider_user):
    card = await _card(client, board_setup, owner_user)
    resp = await client.post(
        f"/api/v1/cards/{card['id']}/comments", json={"text": "Hi"}, headers=get_auth_headers(outsider_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_hide_comment_author_only(client: AsyncClient, board_setup, owner_user, member_user):
    await invite(client, owner_user, board_setup["board"]["id"], member_user)
    card = await _card(client, board_setup, owner_user)
    comments = (await client.post(
        f"/api/v1/cards/{card['id']}/comments", json={"text": "Mine"}, headers=get_auth_headers(owner_user),
    )).json()
    comment_id = comments[0]["id"]

    resp = await client.delete(
        f"/api/v1/cards/{card['id']}/comments/{comment_id}", headers=get_auth_headers(member_user),
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "TB-ACL-003"

    resp = await client.delete(
        f"/api/v1/cards/{card['id']}/comments/{comment_id}", headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 200
    assert resp.json() == []

    resp = await client.delete(
        f"/api/v1/cards/{card['id']}/comments/{comment_id}", headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_notes(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await _card(client, board_setup, owner_user)
    notes = (await client.post(
        f"/api/v1/cards/{card['id']}/notes", json={"content": "Remember the edge case"}, headers=headers,
    )).json()
    assert notes[0]["content"] == "Remember the edge case"

    resp = await client.delete(f"/api/v1/cards/{card['id']}/notes/{notes[0]['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_hide_unknown_note(client: AsyncClient, board_setup, owner_user):
    card = await _card(client, board_setup, owner_user)
    resp = await client.delete(
        f"/api/v1/cards/{card['id']}/notes/{'b' * 24}", headers=get_auth_headers(owner_user),
    )
    assert resp.status_code == 404


# ============================================================
# CHECKLISTS
# ============================================================

@pytest.mark.asyncio
async def test_checklist_lifecycle(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await _card(client, board_setup, owner_user)
    state = await _checklist(client, card["id"], owner_user)
    assert state["version"] == 0
    checklist_id = state["checklists"][0]["id"]

    resp = await client.put(
        f"/api/v1/cards/{card['id']}/checklists/{checklist_id}", json={"title": "Renamed"}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["checklists"][0]["title"] == "Renamed"

    resp = await client.delete(f"/api/v1/cards/{card['id']}/checklists/{checklist_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["checklists"] == []

    resp = await client.delete(f"/api/v1/cards/{card['id']}/checklists/{checklist_id}", headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_checklist_items_bump_version(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await _card(client, board_setup, owner_user)
    checklist_id = (await _checklist(client, card["id"], owner_user))["checklists"][0]["id"]
    base = f"/api/v1/cards/{card['id']}/checklists/{checklist_id}/items"

    resp = await client.post(base, json={"text": "Write copy", "version": 0}, headers=headers)
    assert resp.status_code == 201
    state = resp.json()
    assert state["version"] == 1
    item_id = state["checklists"][0]["items"][0]["id"]

    resp = await client.put(f"{base}/{item_id}/toggle", json={"version": 1}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["version"] == 2
    assert resp.json()["checklists"][0]["items"][0]["completed"] is True

    resp = await client.put(f"{base}/{item_id}", json={"text": "Write final copy", "version": 2}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["version"] == 3
    assert resp.json()["checklists"][0]["items"][0]["text"] == "Write final copy"

    resp = await client.delete(f"{base}/{item_id}", params={"version": 3}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["version"] == 4
    assert resp.json()["checklists"][0]["items"] == []

    card_now = (await client.get(f"/api/v1/cards/{card['id']}", headers=headers)).json()
    assert card_now["version"] == 4


@pytest.mark.asyncio
async def test_stale_version_conflicts(client: AsyncClient, board_setup, owner_user, member_user):
    """Two clients load version 0; the second write is rejected and nothing changes"""
    await invite(client, owner_user, board_setup["board"]["id"], member_user)
    card = await _card(client, board_setup, owner_user)
    checklist_id = (await _checklist(client, card["id"], owner_user))["checklists"][0]["id"]
    base = f"/api/v1/cards/{card['id']}/checklists/{checklist_id}/items"

    first = await client.post(base, json={"text": "From A", "version": 0}, headers=get_auth_headers(owner_user))
    assert first.status_code == 201

    second = await client.post(base, json={"text": "From B", "version": 0}, headers=get_auth_headers(member_user))
    assert second.status_code == 409
    assert second.json()["code"] == "TB-STATE-002"
    assert second.json()["details"]["current_version"] == 1

    card_now = (await client.get(f"/api/v1/cards/{card['id']}", headers=get_auth_headers(owner_user))).json()
    assert card_now["version"] == 1
    assert [i["text"] for i in card_now["checklists"][0]["items"]] == ["From A"]


@pytest.mark.asyncio
async def test_item_without_version_still_bumps(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await _card(client, board_setup, owner_user)
    checklist_id = (await _checklist(client, card["id"], owner_user))["checklists"][0]["id"]
    base = f"/api/v1/cards/{card['id']}/checklists/{checklist_id}/items"

    item_id = (await client.post(base, json={"text": "One"}, headers=headers)).json()["checklists"][0]["items"][0]["id"]
    resp = await client.put(f"{base}/{item_id}/toggle", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["version"] == 2


@pytest.mark.asyncio
async def test_delete_item_twice_conflicts(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await _card(client, board_setup, owner_user)
    checklist_id = (await _checklist(client, card["id"], owner_user))["checklists"][0]["id"]
    base = f"/api/v1/cards/{card['id']}/checklists/{checklist_id}/items"
    item_id = (await client.post(base, json={"text": "Once"}, headers=headers)).json()["checklists"][0]["items"][0]["id"]

    assert (await client.delete(f"{base}/{item_id}", headers=headers)).status_code == 200
    resp = await client.delete(f"{base}/{item_id}", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["code"] == "TB-STATE-001"


@pytest.mark.asyncio
async def test_item_on_deleted_checklist(client: AsyncClient, board_setup, owner_user):
    headers = get_auth_headers(owner_user)
    card = await _card(client, board_setup, owner_user)
    checklist_id = (await _checklist(client, card["id"], owner_user))["checklists"][0]["id"]
    await client.delete(f"/api/v1/cards/{card['id']}/checklists/{checklist_id}", headers=headers)

    resp = await client.post(
        f"/api/v1/cards/{card['id']}/checklists/{checklist_id}/items", json={"text": "Late"}, headers=headers,
    )
    assert resp.status_code == 404
