from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from app.core.outcome import OutcomeReason
from app.database.memory_store import MemoryResponse
from app.modules.competitions.schemas import CompetitionCreate, CompetitionUpdate
from app.modules.competitions.service import CompetitionService
from app.modules.participations.service import ParticipationService

VALID = dict(name="Harbour Swim", event_date="2099-06-20", venue="North Harbour", sport="Swimming")


@pytest.fixture()
def competitions(store, events):
    return CompetitionService(store, events)


@pytest.fixture()
def service(store, events):
    return ParticipationService(store, events)


@pytest.fixture()
def competition(competitions, manager):
    return competitions.create_competition(manager.user, CompetitionCreate(**VALID)).data


def test_join_creates_participation(service, athlete, competition, store):
    outcome = service.join_competition(athlete.user, competition.id)

    assert outcome.ok
    assert outcome.message == "You successfully joined the competition!"
    rows = store.rows("competition_participants")
    assert [(r["user_id"], r["competition_id"]) for r in rows] == [(athlete.id, competition.id)]
    assert rows[0]["joined_at"]


def test_joining_twice_keeps_one_row(service, athlete, competition, store):
    service.join_competition(athlete.user, competition.id)
    outcome = service.join_competition(athlete.user, competition.id)

    assert outcome.reason == OutcomeReason.CONFLICT
    assert outcome.error == "You are already registered for this competition"
    assert len(store.rows("competition_participants")) == 1


def test_join_validation(service, athlete):
    assert service.join_competition(None, "c1").error == "You must be logged in to join a competition"
    assert service.join_competition(athlete.user, "").error == "Competition ID is required"
    assert service.join_competition(athlete.user, None).error == "Competition ID is required"


def test_join_unknown_competition(service, athlete, store):
    outcome = service.join_competition(athlete.user, "missing")
    assert outcome.reason == OutcomeReason.NOT_FOUND
    assert outcome.error == "Competition not found"
    assert store.rows("competition_participants") == []


def test_join_closed_registration(service, competitions, manager, athlete, competition, store):
    competitions.update_competition(
        manager.user, CompetitionUpdate(id=competition.id, registration_open=False, **VALID)
    )

    outcome = service.join_competition(athlete.user, competition.id)

    assert outcome.error == "Registration is closed for this competition"
    assert store.rows("competition_participants") == []


def test_uniqueness_violation_reads_as_already_registered(service, athlete, competition, store, monkeypatch):
    service.join_competition(athlete.user, competition.id)
    # Simulate the losing side of a concurrent join: the pre-check saw nothing
    monkeypatch.setattr(service, "_fetch_joined_ids", lambda user_id: [])

    outcome = service.join_competition(athlete.user, competition.id)

    assert outcome.error == "You are already registered for this competition"
    assert len(store.rows("competition_participants")) == 1


def _store_with_competition():
    store = MagicMock()
    store.table.return_value.select.return_value.eq.return_value.maybe_single.return_value.execute.return_value = \
        MemoryResponse(data={"id": "c1", "registration_open": True})
    store.table.return_value.select.return_value.eq.return_value.execute.return_value = MemoryResponse(data=[])
    return store


def test_join_other_insert_error(events, athlete):
    store = _store_with_competition()
    store.table.return_value.insert.return_value.execute.side_effect = APIError(
        {"code": "42501", "message": "new row violates row-level security policy", "details": None, "hint": None}
    )

    outcome = ParticipationService(store, events).join_competition(athlete.user, "c1")

    assert outcome.reason == OutcomeReason.STORE
    assert outcome.error == "Failed to join competition: new row violates row-level security policy"


def test_join_fails_closed_when_membership_check_errors(events, athlete):
    store = _store_with_competition()
    store.table.return_value.select.return_value.eq.return_value.execute.side_effect = APIError(
        {"code": "08006", "message": "connection failure", "details": None, "hint": None}
    )

    outcome = ParticipationService(store, events).join_competition(athlete.user, "c1")

    assert outcome.reason == OutcomeReason.STORE
    assert outcome.error == "Failed to join competition: connection failure"
    store.table.return_value.insert.assert_not_called()


def test_join_empty_insert_result(events, athlete):
    store = _store_with_competition()
    store.table.return_value.insert.return_value.execute.return_value = MemoryResponse(data=[])

    outcome = ParticipationService(store, events).join_competition(athlete.user, "c1")

    assert outcome.error == "Failed to join competition - no data returned"


def test_join_notifies_subscribers(service, athlete, competition, events):
    received = []
    events.subscribe("competition_participants", received.append, row_filter={"competition_id": competition.id})

    service.join_competition(athlete.user, competition.id)

    assert len(received) == 1
    assert received[0].record["user_id"] == athlete.id


def test_joined_competitions(service, competitions, manager, athlete, competition):
    other = competitions.create_competition(manager.user, CompetitionCreate(**dict(VALID, name="Other"))).data
    service.join_competition(athlete.user, competition.id)

    assert service.joined_competition_ids(athlete.id) == [competition.id]
    joined = service.list_joined_competitions(athlete.id)
    assert [c.id for c in joined.competitions] == [competition.id]
    assert other.id not in joined.competition_ids
    assert service.list_joined_competitions(manager.id).competitions == []


def test_roster_hides_emails_from_other_participants(service, register, athlete, competition):
    teammate = register("teammate@example.com", full_name="Terry Teammate")
    service.join_competition(athlete.user, competition.id)
    service.join_competition(teammate.user, competition.id)

    roster = service.list_participants(teammate.user, competition.id)

    assert [p.full_name for p in roster] == ["Alex Athlete", "Terry Teammate"]
    assert all(p.email is None for p in roster)


def test_roster_shows_emails_to_creator_and_managers(service, manager, other_manager, athlete, competition):
    service.join_competition(athlete.user, competition.id)

    assert service.list_participants(manager.user, competition.id)[0].email == "athlete@example.com"
    assert service.list_participants(other_manager.user, competition.id)[0].email == "athlete@example.com"
    assert service.list_participants(None, competition.id)[0].email is None


def test_roster_of_unknown_competition_is_empty(service, manager):
    assert service.list_participants(manager.user, "missing") == []


def test_roster_of_hidden_competition_only_for_privileged(
    service, competitions, manager, other_manager, athlete, competition
):
    service.join_competition(athlete.user, competition.id)
    competitions.update_competition(
        manager.user, CompetitionUpdate(id=competition.id, is_visible=False, **VALID)
    )

    assert service.list_participants(None, competition.id) == []
    assert service.list_participants(athlete.user, competition.id) == []
    assert [p.user_id for p in service.list_participants(manager.user, competition.id)] == [athlete.id]
    assert [p.user_id for p in service.list_participants(other_manager.user, competition.id)] == [athlete.id]
