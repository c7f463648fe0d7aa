"""Tests for the Notifications router."""
import pytest
from tests.conftest import get_auth_headers, invite, make_card, make_list


@pytest.mark.asyncio
async def test_list_notifications_empty(client, owner_user):
    headers = get_auth_headers(owner_user)
    resp = await client.get("/api/v1/notifications", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_notification_count_empty(client, owner_user):
    resp = await client.get("/api/v1/notifications/count", headers=get_auth_headers(owner_user))
    assert resp.status_code == 200
    assert resp.json() == {"unread": 0}


@pytest.mark.asyncio
async def test_invite_notifies_invitee(client, board_setup, owner_user, member_user):
    await invite(client, owner_user, board_setup["board"]["id"], member_user)
    resp = await client.get("/api/v1/notifications", headers=get_auth_headers(member_user))
    body = resp.json()
    assert len(body) == 1
    assert body[0]["type"] == "general"
    assert body[0]["target_model"] == "Board"
    assert body[0]["target_title"] == board_setup["board"]["title"]
    assert body[0]["is_read"] is False
    assert body[0]["activity_id"]


@pytest.mark.asyncio
async def test_actor_is_never_notified(client, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    await make_list(client, member_user, board_id, "Member's list")

    owner_inbox = (await client.get("/api/v1/notifications", headers=get_auth_headers(owner_user))).json()
    member_inbox = (await client.get("/api/v1/notifications", headers=get_auth_headers(member_user))).json()
    assert any("Member's list" in n["message"] for n in owner_inbox)
    assert not any("Member's list" in n["message"] for n in member_inbox)


@pytest.mark.asyncio
async def test_card_members_notified_on_comment(client, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    card = await make_card(client, member_user, board_id, board_setup["list"]["id"], "Review PR")
    await client.post(
        f"/api/v1/cards/{card['id']}/comments", json={"text": "Approved"}, headers=get_auth_headers(owner_user),
    )
    inbox = (await client.get("/api/v1/notifications", headers=get_auth_headers(member_user))).json()
    comment_notes = [n for n in inbox if n["target_id"] == card["id"]]
    assert len(comment_notes) == 1
    assert comment_notes[0]["target_title"] == "Review PR"


@pytest.mark.asyncio
async def test_mark_notification_read(client, board_setup, owner_user, member_user):
    await invite(client, owner_user, board_setup["board"]["id"], member_user)
    headers = get_auth_headers(member_user)
    notif_id = (await client.get("/api/v1/notifications", headers=headers)).json()[0]["id"]

    resp = await client.put(f"/api/v1/notifications/{notif_id}/read", headers=headers)
    assert resp.status_code == 200
    assert (await client.get("/api/v1/notifications/count", headers=headers)).json() == {"unread": 0}

    unread = (await client.get("/api/v1/notifications", params={"unread_only": True}, headers=headers)).json()
    assert unread == []


@pytest.mark.asyncio
async def test_cannot_touch_someone_elses_notification(client, board_setup, owner_user, member_user):
    await invite(client, owner_user, board_setup["board"]["id"], member_user)
    notif_id = (await client.get("/api/v1/notifications", headers=get_auth_headers(member_user))).json()[0]["id"]
    resp = await client.put(f"/api/v1/notifications/{notif_id}/read", headers=get_auth_headers(owner_user))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read_and_hide_all(client, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    await make_list(client, owner_user, board_id, "Second")
    headers = get_auth_headers(member_user)
    assert (await client.get("/api/v1/notifications/count", headers=headers)).json()["unread"] == 2

    resp = await client.put("/api/v1/notifications/read-all", headers=headers)
    assert resp.json() == {"marked": 2}

    resp = await client.delete("/api/v1/notifications", headers=headers)
    assert resp.json() == {"hidden": 2}
    assert (await client.get("/api/v1/notifications", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_hide_notification(client, board_setup, owner_user, member_user):
    await invite(client, owner_user, board_setup["board"]["id"], member_user)
    headers = get_auth_headers(member_user)
    notif_id = (await client.get("/api/v1/notifications", headers=headers)).json()[0]["id"]

    assert (await client.delete(f"/api/v1/notifications/{notif_id}", headers=headers)).status_code == 200
    assert (await client.delete(f"/api/v1/notifications/{notif_id}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_card_members_notified_on_checklist_item_changes(client, board_setup, owner_user, member_user):
    board_id = board_setup["board"]["id"]
    await invite(client, owner_user, board_id, member_user)
    card = await make_card(client, member_user, board_id, board_setup["list"]["id"], "Release")
    headers = get_auth_headers(owner_user)
    base = f"/api/v1/cards/{card['id']}/checklists"

    state = (await client.post(base, json={"title": "Steps"}, headers=headers)).json()
    checklist_id = state["checklists"][0]["id"]
    state = (await client.post(f"{base}/{checklist_id}/items", json={"text": "Tag"}, headers=headers)).json()
    item_id = state["checklists"][0]["items"][0]["id"]

    async def card_notes():
        inbox = (await client.get("/api/v1/notifications", headers=get_auth_headers(member_user))).json()
        return [n for n in inbox if n["target_id"] == card["id"]]

    assert len(await card_notes()) == 2
    resp = await client.put(f"{base}/{checklist_id}/items/{item_id}/toggle", json={}, headers=headers)
    assert resp.status_code == 200
    resp = await client.delete(f"{base}/{checklist_id}/items/{item_id}", headers=headers)
    assert resp.status_code == 200
    assert len(await card_notes()) == 4
