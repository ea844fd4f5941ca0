import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from models.tournament import (Tournament, TournamentStatus, CreateTournamentRequest, UpdateTournamentRequest,
                               JoinTournamentRequest, TournamentRegistration, TeamMember, UserMatch)
from models.user import UserProfile
from models.wallet import WalletTransaction
from services.currency import currency_for_country
from services.database import as_utc, get_db, is_transient, run_transaction
from services.notification import notify_quietly

logger = logging.getLogger(__name__)

ESTIMATED_DURATION = timedelta(hours=2)

TOURNAMENT_NOT_FOUND = "Tournament not found"
REGISTRATION_CLOSED = "Tournament registration is closed"
TOURNAMENT_FULL = "Tournament is full"
INSUFFICIENT_BALANCE = "Insufficient wallet balance"
ALREADY_REGISTERED = "You are already registered for this tournament"
TRY_AGAIN = "The tournament is busy, please try again"

MANUAL_STATUSES = {TournamentStatus.LIVE.value, TournamentStatus.COMPLETED.value, TournamentStatus.CANCELLED.value}


def derive_status(current: str, start_time: datetime, now: Optional[datetime] = None) -> str:
    """Time-derived status of a tournament.

    Only ``upcoming`` tournaments move on their own: to ``live`` once the start time
    is reached and to ``completed`` once the estimated duration has elapsed.
    Statuses set by an admin are returned unchanged.
    """
    if current in MANUAL_STATUSES:
        return current
    now = now or datetime.now(timezone.utc)
    start_time = as_utc(start_time)
    if now >= start_time + ESTIMATED_DURATION:
        return TournamentStatus.COMPLETED.value
    if now >= start_time:
        return TournamentStatus.LIVE.value
    return current


async def sync_status_to_user_matches(tournament_id: str, status: str, room_id: str = "", room_password: str = ""):
    update = {"status": status, "updated_at": datetime.now(timezone.utc)}
    if room_id and room_password:
        update["room_id"] = room_id
        update["room_password"] = room_password
    await get_db().user_matches.update_many({"tournament_id": tournament_id}, {"$set": update})


async def _promote(tournament: Tournament, now: datetime) -> Tournament:
    new_status = derive_status(tournament.status, tournament.start_time, now)
    if new_status == tournament.status:
        return tournament

    # Conditional on the old status so concurrent refreshers cannot disagree
    result = await get_db().tournaments.update_one(
        {"_id": tournament.id, "status": TournamentStatus.UPCOMING.value},
        {"$set": {"status": new_status, "updated_at": now}},
    )
    if not result.modified_count:
        # Changed elsewhere since it was read; trust the stored status
        doc = await get_db().tournaments.find_one({"_id": tournament.id})
        return Tournament(**doc) if doc else tournament

    logger.info("Tournament %s moved %s -> %s", tournament.id, tournament.status, new_status)
    if new_status == TournamentStatus.LIVE:
        await sync_status_to_user_matches(tournament.id, new_status, tournament.room_id, tournament.room_password)
    else:
        await sync_status_to_user_matches(tournament.id, new_status)
    tournament.status = new_status
    return tournament


async def refresh_tournament_statuses(now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    docs = await get_db().tournaments.find({"status": TournamentStatus.UPCOMING.value}).to_list(length=None)
    promoted = 0
    for doc in docs:
        tournament = Tournament(**doc)
        if (await _promote(tournament, now)).status != TournamentStatus.UPCOMING:
            promoted += 1
    return promoted


async def list_tournaments(status: Optional[TournamentStatus] = None) -> List[Tournament]:
    now = datetime.now(timezone.utc)
    docs = await get_db().tournaments.find().sort("created_at", DESCENDING).to_list(length=None)
    tournaments = [await _promote(Tournament(**doc), now) for doc in docs]
    if status is not None:
        tournaments = [tournament for tournament in tournaments if tournament.status == status]
    return tournaments


async def get_tournament(tournament_id: str) -> Tournament:
    doc = await get_db().tournaments.find_one({"_id": tournament_id})
    if not doc:
        raise HTTPException(status_code=404, detail=TOURNAMENT_NOT_FOUND)
    return await _promote(Tournament(**doc), datetime.now(timezone.utc))


async def create_tournament(request: CreateTournamentRequest, owner: UserProfile) -> Tournament:
    tournament = Tournament(**request.model_dump(), created_by=owner.id)
    await get_db().tournaments.insert_one(tournament.model_dump(by_alias=True))
    logger.info("Tournament %s created by %s", tournament.id, owner.username)
    return tournament


async def update_tournament(tournament_id: str, request: UpdateTournamentRequest) -> Tournament:
    changes = request.model_dump(exclude_none=True, mode="python")
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "status" in changes:
        changes["status"] = TournamentStatus(changes["status"]).value
    changes["updated_at"] = datetime.now(timezone.utc)

    result = await get_db().tournaments.update_one({"_id": tournament_id}, {"$set": changes})
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail=TOURNAMENT_NOT_FOUND)

    doc = await get_db().tournaments.find_one({"_id": tournament_id})
    tournament = Tournament(**doc)
    if {"status", "room_id", "room_password"} & changes.keys():
        await sync_status_to_user_matches(tournament.id, tournament.status, tournament.room_id,
                                          tournament.room_password)
    return tournament


async def _transact(callback):
    try:
        return await run_transaction(callback)
    except PyMongoError as error:
        if not is_transient(error):
            raise
        logger.warning("Transaction gave up after retries: %s", error)
        raise HTTPException(status_code=409, detail=TRY_AGAIN)


async def delete_tournament(tournament_id: str):
    async def cascade(session):
        db = get_db()
        if not await db.tournaments.find_one({"_id": tournament_id}, session=session):
            raise HTTPException(status_code=404, detail=TOURNAMENT_NOT_FOUND)
        await db.tournament_registrations.delete_many({"tournament_id": tournament_id}, session=session)
        await db.user_matches.delete_many({"tournament_id": tournament_id}, session=session)
        await db.tournaments.delete_one({"_id": tournament_id}, session=session)

    await _transact(cascade)
    logger.info("Tournament %s deleted with its registrations", tournament_id)


async def find_registration(user_id: str, tournament_id: str, session=None) -> Optional[dict]:
    return await get_db().tournament_registrations.find_one(
        {"user_id": user_id, "tournament_id": tournament_id}, session=session
    )


async def get_registration(user_id: str, tournament_id: str) -> Optional[TournamentRegistration]:
    doc = await find_registration(user_id, tournament_id)
    if doc:
        return TournamentRegistration(**doc)
    return None


async def _save_game_id(user: UserProfile, game_id: str):
    try:
        await get_db().users.update_one(
            {"_id": user.id},
            {"$set": {"game_id": game_id, "updated_at": datetime.now(timezone.utc)}},
        )
    except PyMongoError as error:
        logger.warning("Could not save game id for %s: %s", user.id, error)


def entry_currency(tournament: Tournament) -> str:
    if tournament.country:
        return currency_for_country(tournament.country)
    return tournament.currency


async def join_tournament(user: UserProfile, tournament_id: str, request: JoinTournamentRequest) -> TournamentRegistration:
    """Register ``user`` for a tournament and charge the entry fee.

    Rule checks happen before anything is written. The balance is debited first,
    guarded on ``wallet_balance >= entry_fee`` so a stale profile cannot overdraw;
    the registration, the ledger entry, the user match and the participant
    counters follow. With transactions enabled all of it commits or aborts
    together. Without them a failed debit leaves nothing behind, and a
    registration rejected by the unique (user_id, tournament_id) index refunds
    the fee.
    """
    tournament = await get_tournament(tournament_id)
    if tournament.status != TournamentStatus.UPCOMING:
        raise HTTPException(status_code=400, detail=REGISTRATION_CLOSED)
    if tournament.registered_teams >= tournament.max_teams:
        raise HTTPException(status_code=400, detail=TOURNAMENT_FULL)
    if user.wallet_balance < tournament.entry_fee:
        raise HTTPException(status_code=400, detail=INSUFFICIENT_BALANCE)

    fee = tournament.entry_fee
    teammates = [name.strip() for name in request.teammates if name.strip()]
    game_id = request.game_id or user.game_id
    now = datetime.now(timezone.utc)

    registration = TournamentRegistration(
        user_id=user.id,
        tournament_id=tournament.id,
        team_name=user.player_name,
        game_id=game_id,
        teammates=teammates,
        team_members=[TeamMember(username=user.player_name, game_id=game_id, is_owner=True)]
                     + [TeamMember(username=teammate, game_id=teammate) for teammate in teammates],
        registered_at=now,
        updated_at=now,
    )
    entry = WalletTransaction(
        user_id=user.id,
        type="tournament_entry",
        amount=fee,
        currency=entry_currency(tournament),
        status="COMPLETED",
        payment_method="wallet",
        description=f"Tournament entry: {tournament.title}",
        processed=True,
        metadata={"tournament_id": tournament.id, "tournament_title": tournament.title},
        created_at=now,
        updated_at=now,
    )
    user_match = UserMatch(
        user_id=user.id,
        tournament_id=tournament.id,
        tournament_title=tournament.title,
        game_mode=tournament.game_mode,
        type=tournament.type,
        entry_fee=fee,
        prize_pool=tournament.prize_pool,
        status=tournament.status,
        start_time=tournament.start_time,
        registered_at=now,
    )

    async def write_join(session):
        db = get_db()
        if await find_registration(user.id, tournament.id, session=session):
            raise HTTPException(status_code=400, detail=ALREADY_REGISTERED)

        if fee > 0:
            debit = await db.users.update_one(
                {"_id": user.id, "wallet_balance": {"$gte": fee}},
                {"$inc": {"wallet_balance": -fee}, "$set": {"updated_at": now}},
                session=session,
            )
            if debit.modified_count == 0:
                raise HTTPException(status_code=400, detail=INSUFFICIENT_BALANCE)

        try:
            await db.tournament_registrations.insert_one(registration.model_dump(by_alias=True), session=session)
        except DuplicateKeyError:
            if session is None and fee > 0:
                # Nothing rolls the debit back without a transaction
                await db.users.update_one({"_id": user.id}, {"$inc": {"wallet_balance": fee}})
                logger.info("Refunded %s to %s after a duplicate registration", fee, user.id)
            raise

        await db.transactions.insert_one(entry.model_dump(by_alias=True), session=session)
        await db.user_matches.insert_one(user_match.model_dump(by_alias=True), session=session)
        await db.tournaments.update_one(
            {"_id": tournament.id},
            {
                "$inc": {"registered_teams": 1, "registered_players": 1 + len(teammates)},
                "$set": {"updated_at": now},
            },
            session=session,
        )

    try:
        await _transact(write_join)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=ALREADY_REGISTERED)

    logger.info("User %s joined tournament %s", user.id, tournament.id)

    if request.game_id and request.game_id != user.game_id:
        await _save_game_id(user, request.game_id)
    await notify_quietly(user.id, "Tournament joined",
                         f"You are registered for {tournament.title}.", "success")
    return registration
