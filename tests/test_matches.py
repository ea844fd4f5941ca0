from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from models.tournament import Tournament
from services.match import calculate_tournament_points
from tests.conftest import PLAYER_ID, PNG_DATA_URL, auth


async def joined_match(client, db, token):
    tournament = Tournament(title="Miramar Duo", entry_fee=50, game_mode="Duo",
                            start_time=datetime.now(timezone.utc) + timedelta(hours=6))
    await db.tournaments.insert_one(tournament.model_dump(by_alias=True))
    response = await client.post(f"/api/tournaments/{tournament.id}/join", json={"teammates": ["buddy"]},
                                 headers=auth(token))
    assert response.status_code == 200
    user_match = await db.user_matches.find_one({"tournament_id": tournament.id})
    return tournament, user_match


def test_points_for_kills_and_placement():
    assert calculate_tournament_points(0, None) == 0
    assert calculate_tournament_points(5, 1) == 15
    assert calculate_tournament_points(2, 2) == 8
    assert calculate_tournament_points(1, 3) == 5
    assert calculate_tournament_points(3, 10) == 5
    assert calculate_tournament_points(3, 11) == 3


@pytest.mark.anyio
async def test_my_matches_merges_registration(client: AsyncClient, token: str, db):
    tournament, _ = await joined_match(client, db, token)

    response = await client.get("/api/matches", headers=auth(token))
    assert response.status_code == 200
    matches = response.json()
    assert len(matches) == 1
    assert matches[0]["tournament_title"] == "Miramar Duo"
    assert matches[0]["teammates"] == ["buddy"]
    assert matches[0]["result"] == "pending"
    assert matches[0]["result_submitted"] is False


@pytest.mark.anyio
async def test_submit_result(client: AsyncClient, token: str, db):
    tournament, user_match = await joined_match(client, db, token)

    response = await client.post(f"/api/matches/{user_match['_id']}/result",
                                 json={"screenshot": PNG_DATA_URL, "kills": 4, "position": 2},
                                 headers=auth(token))
    assert response.status_code == 200
    registration = response.json()["registration"]
    assert registration["kills"] == 4
    assert registration["position"] == 2
    assert registration["points"] == 10
    assert registration["result_submitted"] is True
    assert registration["result_image_url"].startswith("/files/screenshots/")

    stored_match = await db.user_matches.find_one({"_id": user_match["_id"]})
    assert stored_match["kills"] == 4
    assert stored_match["result_image_url"] == registration["result_image_url"]


@pytest.mark.anyio
async def test_submit_result_by_registration_id(client: AsyncClient, token: str, db):
    tournament, _ = await joined_match(client, db, token)
    registration = await db.tournament_registrations.find_one({"tournament_id": tournament.id})

    response = await client.post(f"/api/matches/{registration['_id']}/result",
                                 json={"screenshot": PNG_DATA_URL, "kills": 1},
                                 headers=auth(token))
    assert response.status_code == 200
    assert response.json()["registration"]["points"] == 1


@pytest.mark.anyio
async def test_submit_result_rejects_non_images(client: AsyncClient, token: str, db):
    _, user_match = await joined_match(client, db, token)
    response = await client.post(f"/api/matches/{user_match['_id']}/result",
                                 json={"screenshot": "data:text/plain;base64,aGVsbG8="},
                                 headers=auth(token))
    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload an image file"


@pytest.mark.anyio
async def test_submit_result_for_someone_elses_match(client: AsyncClient, token: str, other_token: str, db):
    _, user_match = await joined_match(client, db, token)
    response = await client.post(f"/api/matches/{user_match['_id']}/result",
                                 json={"screenshot": PNG_DATA_URL}, headers=auth(other_token))
    assert response.status_code == 403


@pytest.mark.anyio
async def test_submit_result_unknown_match(client: AsyncClient, token: str):
    response = await client.post("/api/matches/unknown/result", json={"screenshot": PNG_DATA_URL},
                                 headers=auth(token))
    assert response.status_code == 404


@pytest.mark.anyio
async def test_cleanup_removes_orphaned_matches(client: AsyncClient, token: str, db):
    await joined_match(client, db, token)
    await db.user_matches.insert_one({"_id": "orphan", "user_id": PLAYER_ID, "tournament_id": "gone",
                                      "tournament_title": "Gone", "status": "upcoming",
                                      "start_time": datetime.now(timezone.utc)})

    response = await client.post("/api/matches/cleanup", headers=auth(token))
    assert response.json() == {"removed": 1}
    assert await db.user_matches.count_documents({"user_id": PLAYER_ID}) == 1
