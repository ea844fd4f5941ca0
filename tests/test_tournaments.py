from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from httpx import AsyncClient
from pymongo.errors import DuplicateKeyError, OperationFailure

from models.tournament import JoinTournamentRequest, Tournament
from services.tournament import INSUFFICIENT_BALANCE, ALREADY_REGISTERED, REGISTRATION_CLOSED, TOURNAMENT_FULL, \
    TRY_AGAIN, join_tournament
from services.user import get_user_by_id
from tests.conftest import PLAYER_ID, OTHER_ID, auth

tournaments_route = "/api/tournaments"


async def add_tournament(db, **overrides) -> Tournament:
    fields = dict(
        title="Erangel Solo Cup",
        entry_fee=100,
        prize_pool=5000,
        per_kill_reward=10,
        max_teams=50,
        start_time=datetime.now(timezone.utc) + timedelta(days=1),
    )
    fields.update(overrides)
    tournament = Tournament(**fields)
    await db.tournaments.insert_one(tournament.model_dump(by_alias=True))
    return tournament


@pytest.mark.anyio
async def test_create_tournament_as_admin(client: AsyncClient, admin_token: str, db):
    payload = {
        "title": "Sanhok Squad Showdown",
        "game_mode": "Squad",
        "entry_fee": 200,
        "prize_pool": 10000,
        "max_teams": 25,
        "start_time": (datetime.now(timezone.utc) + timedelta(hours=5)).isoformat(),
    }
    response = await client.post(tournaments_route, json=payload, headers=auth(admin_token))
    assert response.status_code == 201
    created = response.json()["tournament"]
    assert created["title"] == "Sanhok Squad Showdown"
    assert created["status"] == "upcoming"
    assert created["registered_teams"] == 0
    assert await db.tournaments.count_documents({}) == 1


@pytest.mark.anyio
async def test_create_tournament_requires_admin(client: AsyncClient, token: str):
    payload = {"title": "x", "start_time": datetime.now(timezone.utc).isoformat()}
    response = await client.post(tournaments_route, json=payload, headers=auth(token))
    assert response.status_code == 403


@pytest.mark.anyio
async def test_requests_without_token_are_rejected(client: AsyncClient):
    response = await client.get(tournaments_route)
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


@pytest.mark.anyio
async def test_list_and_filter_tournaments(client: AsyncClient, token: str, db):
    await add_tournament(db, title="Open")
    await add_tournament(db, title="Called off", status="cancelled")

    response = await client.get(tournaments_route, headers=auth(token))
    assert response.status_code == 200
    assert {t["title"] for t in response.json()} == {"Open", "Called off"}

    response = await client.get(tournaments_route, params={"status": "cancelled"}, headers=auth(token))
    assert [t["title"] for t in response.json()] == ["Called off"]


@pytest.mark.anyio
async def test_get_tournament_reports_registration(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db)
    response = await client.get(f"{tournaments_route}/{tournament.id}", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["registered"] is False

    response = await client.get(f"{tournaments_route}/missing", headers=auth(token))
    assert response.status_code == 404


@pytest.mark.anyio
async def test_join_tournament(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db)

    response = await client.post(f"{tournaments_route}/{tournament.id}/join",
                                 json={"teammates": ["mate_one", " "]}, headers=auth(token))
    assert response.status_code == 200
    data = response.json()
    assert data["wallet_balance"] == 400
    registration = data["registration"]
    assert registration["user_id"] == PLAYER_ID
    assert registration["teammates"] == ["mate_one"]
    assert registration["team_members"][0]["is_owner"] is True
    assert registration["kills"] == 0

    user = await db.users.find_one({"_id": PLAYER_ID})
    assert user["wallet_balance"] == 400

    entry = await db.transactions.find_one({"user_id": PLAYER_ID})
    assert entry["type"] == "tournament_entry"
    assert entry["status"] == "COMPLETED"
    assert entry["amount"] == 100

    assert await db.user_matches.count_documents({"user_id": PLAYER_ID, "tournament_id": tournament.id}) == 1
    stored = await db.tournaments.find_one({"_id": tournament.id})
    assert stored["registered_teams"] == 1
    assert stored["registered_players"] == 2

    assert await db.notifications.count_documents({"user_id": PLAYER_ID}) == 1


@pytest.mark.anyio
async def test_join_with_insufficient_balance_writes_nothing(client: AsyncClient, other_token: str, db):
    tournament = await add_tournament(db, entry_fee=100)

    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(other_token))
    assert response.status_code == 400
    assert response.json()["detail"] == INSUFFICIENT_BALANCE

    assert await db.tournament_registrations.count_documents({}) == 0
    assert await db.transactions.count_documents({}) == 0
    assert await db.user_matches.count_documents({}) == 0
    assert (await db.users.find_one({"_id": OTHER_ID}))["wallet_balance"] == 50
    assert (await db.tournaments.find_one({"_id": tournament.id}))["registered_teams"] == 0


@pytest.mark.anyio
async def test_join_twice_is_rejected(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db, entry_fee=100)
    route = f"{tournaments_route}/{tournament.id}/join"

    first = await client.post(route, json={}, headers=auth(token))
    assert first.status_code == 200

    second = await client.post(route, json={}, headers=auth(token))
    assert second.status_code == 400
    assert second.json()["detail"] == ALREADY_REGISTERED

    assert await db.tournament_registrations.count_documents({}) == 1
    assert (await db.users.find_one({"_id": PLAYER_ID}))["wallet_balance"] == 400


@pytest.mark.anyio
async def test_registration_index_blocks_duplicates(client: AsyncClient, db):
    await db.tournament_registrations.insert_one({"_id": "r1", "user_id": PLAYER_ID, "tournament_id": "t1"})
    with pytest.raises(DuplicateKeyError):
        await db.tournament_registrations.insert_one({"_id": "r2", "user_id": PLAYER_ID, "tournament_id": "t1"})


@pytest.mark.anyio
async def test_join_unknown_tournament(client: AsyncClient, token: str):
    response = await client.post(f"{tournaments_route}/nope/join", json={}, headers=auth(token))
    assert response.status_code == 404
    assert response.json()["detail"] == "Tournament not found"


@pytest.mark.anyio
async def test_join_closed_tournament(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db, status="live")
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))
    assert response.status_code == 400
    assert response.json()["detail"] == REGISTRATION_CLOSED


@pytest.mark.anyio
async def test_join_after_start_time_is_closed(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db, start_time=datetime.now(timezone.utc) - timedelta(minutes=5))
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))
    assert response.status_code == 400
    assert response.json()["detail"] == REGISTRATION_CLOSED


@pytest.mark.anyio
async def test_join_full_tournament(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db, max_teams=1, registered_teams=1)
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))
    assert response.status_code == 400
    assert response.json()["detail"] == TOURNAMENT_FULL


@pytest.mark.anyio
async def test_join_free_tournament_keeps_balance(client: AsyncClient, other_token: str, db):
    tournament = await add_tournament(db, entry_fee=0)
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(other_token))
    assert response.status_code == 200
    assert response.json()["wallet_balance"] == 50


@pytest.mark.anyio
async def test_join_saves_game_id_override(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db)
    response = await client.post(f"{tournaments_route}/{tournament.id}/join",
                                 json={"game_id": "5999999999"}, headers=auth(token))
    assert response.status_code == 200
    assert response.json()["registration"]["game_id"] == "5999999999"
    assert (await db.users.find_one({"_id": PLAYER_ID}))["game_id"] == "5999999999"


@pytest.mark.anyio
async def test_update_tournament_syncs_user_matches(client: AsyncClient, token: str, admin_token: str, db):
    tournament = await add_tournament(db)
    await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))

    response = await client.patch(f"{tournaments_route}/{tournament.id}",
                                  json={"status": "live", "room_id": "ROOM42", "room_password": "pw"},
                                  headers=auth(admin_token))
    assert response.status_code == 200
    assert response.json()["tournament"]["status"] == "live"

    user_match = await db.user_matches.find_one({"tournament_id": tournament.id})
    assert user_match["status"] == "live"
    assert user_match["room_id"] == "ROOM42"
    assert user_match["room_password"] == "pw"


@pytest.mark.anyio
async def test_update_requires_fields(client: AsyncClient, admin_token: str, db):
    tournament = await add_tournament(db)
    response = await client.patch(f"{tournaments_route}/{tournament.id}", json={}, headers=auth(admin_token))
    assert response.status_code == 400


@pytest.mark.anyio
async def test_delete_tournament_cascades(client: AsyncClient, token: str, admin_token: str, db):
    tournament = await add_tournament(db)
    await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))

    response = await client.delete(f"{tournaments_route}/{tournament.id}", headers=auth(admin_token))
    assert response.status_code == 200
    assert await db.tournaments.count_documents({}) == 0
    assert await db.tournament_registrations.count_documents({}) == 0
    assert await db.user_matches.count_documents({}) == 0

    response = await client.delete(f"{tournaments_route}/{tournament.id}", headers=auth(admin_token))
    assert response.status_code == 404


@pytest.mark.anyio
async def test_join_with_stale_profile_writes_nothing(client: AsyncClient, db):
    first = await add_tournament(db, title="First", entry_fee=300)
    second = await add_tournament(db, title="Second", entry_fee=300)
    # Both loaded while the balance was still 500
    profile = await get_user_by_id(PLAYER_ID)
    stale = await get_user_by_id(PLAYER_ID)

    await join_tournament(profile, first.id, JoinTournamentRequest())
    with pytest.raises(HTTPException) as error:
        await join_tournament(stale, second.id, JoinTournamentRequest())
    assert error.value.detail == INSUFFICIENT_BALANCE

    assert (await db.users.find_one({"_id": PLAYER_ID}))["wallet_balance"] == 200
    assert await db.tournament_registrations.count_documents({"tournament_id": second.id}) == 0
    assert await db.user_matches.count_documents({"tournament_id": second.id}) == 0
    assert await db.transactions.count_documents({"type": "tournament_entry"}) == 1
    assert (await db.tournaments.find_one({"_id": second.id}))["registered_teams"] == 0


@pytest.mark.anyio
async def test_duplicate_caught_by_index_refunds_fee(client: AsyncClient, token: str, db, monkeypatch):
    tournament = await add_tournament(db)
    await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))

    # A concurrent join that slipped past the lookup
    async def not_found(*args, **kwargs):
        return None

    monkeypatch.setattr("services.tournament.find_registration", not_found)
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))
    assert response.status_code == 400
    assert response.json()["detail"] == ALREADY_REGISTERED

    assert (await db.users.find_one({"_id": PLAYER_ID}))["wallet_balance"] == 400
    assert await db.transactions.count_documents({}) == 1
    assert await db.user_matches.count_documents({}) == 1
    assert (await db.tournaments.find_one({"_id": tournament.id}))["registered_teams"] == 1


@pytest.mark.anyio
async def test_write_conflict_asks_to_retry(client: AsyncClient, token: str, db, monkeypatch):
    tournament = await add_tournament(db)

    async def conflicting(callback):
        raise OperationFailure("WriteConflict", code=112, details={"errorLabels": ["TransientTransactionError"]})

    monkeypatch.setattr("services.tournament.run_transaction", conflicting)
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))
    assert response.status_code == 409
    assert response.json()["detail"] == TRY_AGAIN
    assert (await db.users.find_one({"_id": PLAYER_ID}))["wallet_balance"] == 500


@pytest.mark.anyio
async def test_entry_currency_follows_tournament_country(client: AsyncClient, token: str, db):
    tournament = await add_tournament(db, country="Nigeria", currency="INR")
    response = await client.post(f"{tournaments_route}/{tournament.id}/join", json={}, headers=auth(token))
    assert response.status_code == 200
    assert (await db.transactions.find_one({"type": "tournament_entry"}))["currency"] == "NGN"
