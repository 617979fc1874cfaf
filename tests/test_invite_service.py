from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from groupplan.core.errors import ExpiredError, NotActiveError, NotFoundError, UnauthorizedError
from groupplan.models import (
    InvitationStatus,
    Notification,
    NotificationType,
    PendingInvitation,
    Trip,
    TripInvitation,
    TripMember,
    TripStatus,
)
from groupplan.schemas.trip.invite import EmailDelivery, InviteOutcome
from groupplan.services.trips import invite_service as invite_module
from groupplan.services.trips.invite_service import InvitationService


@pytest.fixture
def service(email_sender, clock):
    return InvitationService(email_sender, clock=clock)


async def _trip_status(db, trip_id):
    return await db.scalar(select(Trip.status).where(Trip.id == trip_id))


async def _count(db, model, *criteria):
    return await db.scalar(select(func.count()).select_from(model).where(*criteria))


async def test_invite_existing_account_creates_invitation_and_notification(db, factory, service):
    owner = await factory.user(name="Olivia")
    bob = await factory.user("bob@example.com")
    trip = await factory.trip(owner)

    response = await service.invite(db, trip.id, owner, ["bob@example.com"], 24)

    assert response.errors == []
    [result] = response.invitations
    assert result.outcome == InviteOutcome.INVITED
    assert result.user_id == bob.id
    assert result.email_status is None

    invitation = await db.scalar(select(TripInvitation).where(TripInvitation.trip_id == trip.id))
    assert invitation.user_id == bob.id
    assert invitation.status == InvitationStatus.PENDING

    notification = await db.scalar(select(Notification).where(Notification.user_id == bob.id))
    assert notification.type == NotificationType.TRIP_INVITATION
    assert notification.data["invitation_id"] == invitation.id


async def test_invite_unknown_email_creates_pending_and_sends_email(db, factory, service, email_sender, clock):
    owner = await factory.user(name="Olivia")
    trip = await factory.trip(owner)

    response = await service.invite(db, trip.id, owner, ["New.Person@Example.com"], 12)

    [result] = response.invitations
    assert result.outcome == InviteOutcome.PENDING_CREATED
    assert result.email_status == EmailDelivery.SENT
    assert result.expires_at == clock() + timedelta(hours=12)

    pending = await db.scalar(select(PendingInvitation).where(PendingInvitation.trip_id == trip.id))
    assert pending.email == "new.person@example.com"
    assert pending.invited_by == owner.id
    assert email_sender.sent[0]["to"] == "new.person@example.com"
    assert email_sender.sent[0]["inviter_name"] == "Olivia"


async def test_email_failure_is_advisory(db, factory, service, email_sender):
    owner = await factory.user()
    trip = await factory.trip(owner)
    email_sender.succeed = False

    response = await service.invite(db, trip.id, owner, ["ghost@example.com"], 24)

    [result] = response.invitations
    assert result.email_status == EmailDelivery.FAILED
    assert response.errors == []
    assert await _count(db, PendingInvitation, PendingInvitation.email == "ghost@example.com") == 1


async def test_unconfigured_email_reports_pending_delivery(db, factory, service, email_sender):
    owner = await factory.user()
    trip = await factory.trip(owner)
    email_sender.configured = False

    response = await service.invite(db, trip.id, owner, ["ghost@example.com"], 24)

    assert response.invitations[0].email_status == EmailDelivery.PENDING


async def test_already_member_is_reported_without_mutation(db, factory, service):
    owner = await factory.user()
    member = await factory.user("member@example.com")
    trip = await factory.trip(owner, members=[member])

    response = await service.invite(db, trip.id, owner, ["member@example.com"], 24)

    assert response.invitations[0].outcome == InviteOutcome.ALREADY_MEMBER
    assert response.status_update is None
    assert await _count(db, TripInvitation) == 0
    assert await _trip_status(db, trip.id) == TripStatus.PLANNING


async def test_reinvite_refreshes_but_never_shortens_expiry(db, factory, service, clock):
    owner = await factory.user()
    await factory.user("bob@example.com")
    trip = await factory.trip(owner)

    first = await service.invite(db, trip.id, owner, ["bob@example.com"], 48)
    second = await service.invite(db, trip.id, owner, ["bob@example.com"], 1)

    assert second.invitations[0].outcome == InviteOutcome.REFRESHED
    assert second.invitations[0].invitation_id == first.invitations[0].invitation_id
    assert second.invitations[0].expires_at == clock() + timedelta(hours=48)
    assert await _count(db, TripInvitation) == 1

    clock.advance(hours=1)
    third = await service.invite(db, trip.id, owner, ["bob@example.com"], 72)
    assert third.invitations[0].expires_at == clock() + timedelta(hours=72)


async def test_pending_reinvite_refreshes_single_row(db, factory, service):
    owner = await factory.user()
    trip = await factory.trip(owner)

    await service.invite(db, trip.id, owner, ["ghost@example.com"], 24)
    response = await service.invite(db, trip.id, owner, ["ghost@example.com"], 48)

    assert response.invitations[0].outcome == InviteOutcome.PENDING_REFRESHED
    assert await _count(db, PendingInvitation) == 1


async def test_first_invitation_moves_planning_trip_to_inviting(db, factory, service):
    owner = await factory.user()
    trip = await factory.trip(owner)

    response = await service.invite(db, trip.id, owner, ["ghost@example.com"], 24)

    assert response.status_update.applied is True
    assert response.status_update.previous == TripStatus.PLANNING
    assert await _trip_status(db, trip.id) == TripStatus.INVITING


async def test_invite_leaves_later_status_untouched(db, factory, service):
    owner = await factory.user()
    trip = await factory.trip(owner, status=TripStatus.VOTING)

    response = await service.invite(db, trip.id, owner, ["ghost@example.com"], 24)

    assert response.invitations[0].outcome == InviteOutcome.PENDING_CREATED
    assert response.status_update.applied is False
    assert await _trip_status(db, trip.id) == TripStatus.VOTING


async def test_member_role_cannot_invite(db, factory, service):
    owner = await factory.user()
    member = await factory.user()
    trip = await factory.trip(owner, members=[member])

    with pytest.raises(UnauthorizedError):
        await service.invite(db, trip.id, member, ["ghost@example.com"], 24)


async def test_admin_can_invite(db, factory, service):
    owner = await factory.user()
    admin = await factory.user()
    trip = await factory.trip(owner, admins=[admin])

    response = await service.invite(db, trip.id, admin, ["ghost@example.com"], 24)

    assert response.invitations[0].outcome == InviteOutcome.PENDING_CREATED


async def test_invite_to_missing_trip(db, factory, service):
    owner = await factory.user()

    with pytest.raises(NotFoundError):
        await service.invite(db, 999, owner, ["ghost@example.com"], 24)


async def test_one_failing_email_does_not_abort_the_batch(db, factory, service, monkeypatch):
    owner = await factory.user()
    await factory.user("bob@example.com")
    trip = await factory.trip(owner)
    trip_id = trip.id

    original = invite_module.find_account_by_email

    async def flaky_lookup(session, email):
        if email == "boom@example.com":
            raise RuntimeError("lookup exploded")
        return await original(session, email)

    monkeypatch.setattr(invite_module, "find_account_by_email", flaky_lookup)

    response = await service.invite(
        db, trip_id, owner, ["ghost@example.com", "boom@example.com", "bob@example.com"], 24
    )

    assert [r.email for r in response.invitations] == ["ghost@example.com", "bob@example.com"]
    assert [e.email for e in response.errors] == ["boom@example.com"]
    assert await _count(db, PendingInvitation) == 1
    assert await _count(db, TripInvitation) == 1
    assert await _trip_status(db, trip_id) == TripStatus.INVITING


async def test_promote_pending_converts_every_trip_and_deletes_sources(db, factory, service):
    owner = await factory.user()
    trips = [await factory.trip(owner) for _ in range(3)]
    for trip in trips:
        await service.invite(db, trip.id, owner, ["late@example.com"], 24)
    newcomer = await factory.user("late@example.com")

    promoted = await service.promote_pending(db, "late@example.com", newcomer.id)

    assert promoted == 3
    assert await _count(db, PendingInvitation) == 0
    invitations = (await db.scalars(select(TripInvitation).where(TripInvitation.user_id == newcomer.id))).all()
    assert sorted(inv.trip_id for inv in invitations) == sorted(trip.id for trip in trips)
    assert all(inv.status == InvitationStatus.PENDING for inv in invitations)
    assert await _count(db, Notification, Notification.user_id == newcomer.id) == 3

    assert await service.promote_pending(db, "late@example.com", newcomer.id) == 0


async def test_promotion_keeps_pending_expiry(db, factory, service, clock):
    owner = await factory.user()
    trip = await factory.trip(owner)
    await service.invite(db, trip.id, owner, ["late@example.com"], 10)
    newcomer = await factory.user("late@example.com")

    await service.promote_pending(db, "late@example.com", newcomer.id)

    invitation = await db.scalar(select(TripInvitation).where(TripInvitation.user_id == newcomer.id))
    assert invitation.expires_at == clock() + timedelta(hours=10)


async def test_expired_pending_rows_are_dropped_not_promoted(db, factory, service, clock):
    owner = await factory.user()
    trip = await factory.trip(owner)
    await service.invite(db, trip.id, owner, ["late@example.com"], 1)
    clock.advance(hours=2)
    newcomer = await factory.user("late@example.com")

    assert await service.promote_pending(db, "late@example.com", newcomer.id) == 0
    assert await _count(db, PendingInvitation) == 0
    assert await _count(db, TripInvitation) == 0


async def test_pending_and_durable_never_coexist(db, factory, service):
    owner = await factory.user()
    trip = await factory.trip(owner)
    await service.invite(db, trip.id, owner, ["late@example.com"], 24)

    # account created without promotion; the next invite supersedes the pending row
    await factory.user("late@example.com")
    response = await service.invite(db, trip.id, owner, ["late@example.com"], 24)

    assert response.invitations[0].outcome == InviteOutcome.INVITED
    assert await _count(db, PendingInvitation) == 0
    assert await _count(db, TripInvitation) == 1


async def test_accept_adds_membership_and_notifies_owner(db, factory, service):
    owner = await factory.user()
    bob = await factory.user("bob@example.com", name="Bob")
    trip = await factory.trip(owner)
    response = await service.invite(db, trip.id, owner, ["bob@example.com"], 24)

    invitation, message = await service.respond(db, response.invitations[0].invitation_id, bob, "accept")

    assert message == "Invitation accepted"
    assert invitation.status == InvitationStatus.ACCEPTED
    assert await _count(db, TripMember, TripMember.trip_id == trip.id, TripMember.user_id == bob.id) == 1
    note = await db.scalar(select(Notification).where(Notification.user_id == owner.id))
    assert note.type == NotificationType.TRIP_UPDATE
    assert "Bob" in note.message


async def test_decline_keeps_user_out(db, factory, service):
    owner = await factory.user()
    bob = await factory.user("bob@example.com")
    trip = await factory.trip(owner)
    response = await service.invite(db, trip.id, owner, ["bob@example.com"], 24)

    invitation, _ = await service.respond(db, response.invitations[0].invitation_id, bob, "decline")

    assert invitation.status == InvitationStatus.DECLINED
    assert await _count(db, TripMember, TripMember.user_id == bob.id) == 0

    with pytest.raises(NotActiveError):
        await service.respond(db, invitation.id, bob, "accept")


async def test_respond_after_deadline_marks_expired(db, factory, service, clock):
    owner = await factory.user()
    bob = await factory.user("bob@example.com")
    trip = await factory.trip(owner)
    response = await service.invite(db, trip.id, owner, ["bob@example.com"], 1)
    invitation_id = response.invitations[0].invitation_id
    clock.advance(hours=2)

    with pytest.raises(ExpiredError):
        await service.respond(db, invitation_id, bob, "accept")

    status = await db.scalar(select(TripInvitation.status).where(TripInvitation.id == invitation_id))
    assert status == InvitationStatus.EXPIRED


async def test_cannot_respond_to_someone_elses_invitation(db, factory, service):
    owner = await factory.user()
    await factory.user("bob@example.com")
    mallory = await factory.user()
    trip = await factory.trip(owner)
    response = await service.invite(db, trip.id, owner, ["bob@example.com"], 24)

    with pytest.raises(UnauthorizedError):
        await service.respond(db, response.invitations[0].invitation_id, mallory, "accept")

    with pytest.raises(NotFoundError):
        await service.respond(db, 12345, mallory, "accept")


async def test_user_listing_lazily_expires_overdue_invitations(db, factory, service, clock):
    owner = await factory.user()
    bob = await factory.user("bob@example.com")
    first = await factory.trip(owner)
    second = await factory.trip(owner)
    await service.invite(db, first.id, owner, ["bob@example.com"], 1)
    await service.invite(db, second.id, owner, ["bob@example.com"], 48)
    clock.advance(hours=2)

    invitations = await service.list_user_invitations(db, bob)

    by_trip = {inv.trip_id: inv.status for inv in invitations}
    assert by_trip == {first.id: InvitationStatus.EXPIRED, second.id: InvitationStatus.PENDING}


async def test_trip_listing_requires_membership(db, factory, service):
    owner = await factory.user()
    outsider = await factory.user()
    await factory.user("bob@example.com")
    trip = await factory.trip(owner)
    await service.invite(db, trip.id, owner, ["bob@example.com"], 24)

    assert len(await service.list_trip_invitations(db, trip.id, owner)) == 1
    with pytest.raises(UnauthorizedError):
        await service.list_trip_invitations(db, trip.id, outsider)


async def test_one_failing_promotion_does_not_block_the_rest(db, factory, service, monkeypatch):
    owner = await factory.user()
    trip_ids = [(await factory.trip(owner)).id for _ in range(3)]
    for trip_id in trip_ids:
        await service.invite(db, trip_id, owner, ["late@example.com"], 24)
    newcomer = await factory.user("late@example.com")
    newcomer_id = newcomer.id
    broken_trip = trip_ids[1]

    original = service._upsert_invitation

    async def flaky_upsert(session, trip_id, user_id, expires_at):
        if trip_id == broken_trip:
            raise SQLAlchemyError("row locked")
        return await original(session, trip_id, user_id, expires_at)

    monkeypatch.setattr(service, "_upsert_invitation", flaky_upsert)

    promoted = await service.promote_pending(db, "late@example.com", newcomer_id)

    assert promoted == 2
    invited = (await db.scalars(
        select(TripInvitation.trip_id).where(TripInvitation.user_id == newcomer_id)
    )).all()
    assert sorted(invited) == sorted([trip_ids[0], trip_ids[2]])
    remaining = (await db.scalars(select(PendingInvitation.trip_id))).all()
    assert remaining == [broken_trip]
