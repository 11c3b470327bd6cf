"""
Participant Directory tests: variant matching and registration lookups.
"""
import pytest
from types import SimpleNamespace

from liveboard.exceptions import ParticipantNotFoundError, ProgressionError
from liveboard.orm.event_progress import EventProgress
from liveboard.services.participant_directory import (
    TeamParticipant,
    IndividualParticipant,
    ParticipantDirectory,
    participant_from_ids,
    participant_of,
    matches,
)


# =============================================================================
# Matching rule
# =============================================================================

class TestMatching:

    def test_keys(self):
        assert TeamParticipant(team_id=3).key == "team:3"
        assert IndividualParticipant(user_id=3).key == "user:3"

    def test_identity_ignores_display_data(self):
        assert TeamParticipant(team_id=3, name="Alpha", member_ids=(1, 2)) == TeamParticipant(team_id=3)
        assert TeamParticipant(team_id=3) != IndividualParticipant(user_id=3)

    def test_team_row_matches_team_only(self):
        row = SimpleNamespace(team_id=9, user_id=None)

        assert matches(row, TeamParticipant(team_id=9)) is True
        assert matches(row, TeamParticipant(team_id=8)) is False
        assert matches(row, IndividualParticipant(user_id=9)) is False

    def test_user_row_matches_user_only(self):
        row = EventProgress(event_id=1, user_id=4)

        assert matches(row, IndividualParticipant(user_id=4)) is True
        assert matches(row, TeamParticipant(team_id=4)) is False

    def test_null_keys_never_match(self):
        row = SimpleNamespace(team_id=None, user_id=None)

        assert matches(row, TeamParticipant(team_id=1)) is False
        assert matches(row, IndividualParticipant(user_id=1)) is False
        assert participant_of(row) is None

    def test_from_ids(self):
        assert participant_from_ids(2, None) == TeamParticipant(team_id=2)
        assert participant_from_ids(None, 5) == IndividualParticipant(user_id=5)
        assert participant_from_ids(None, None) is None

    def test_both_ids_rejected(self):
        with pytest.raises(ProgressionError):
            participant_from_ids(1, 1)


# =============================================================================
# Registration lookups
# =============================================================================

class TestDirectory:

    @pytest.mark.asyncio
    async def test_resolve_team_carries_members(self, db, seed):
        resolved = await ParticipantDirectory(db).resolve(seed.event_id, seed.team_a)

        assert resolved == seed.team_a
        assert resolved.name == "Alpha"
        assert set(resolved.member_ids) == set(seed.member_ids[:2])

    @pytest.mark.asyncio
    async def test_resolve_individual(self, db, seed):
        resolved = await ParticipantDirectory(db).resolve(seed.event_id, seed.ivy)
        assert resolved.name == "Ivy Solo"

    @pytest.mark.asyncio
    async def test_unregistered_and_pending_are_not_found(self, db, seed):
        directory = ParticipantDirectory(db)

        with pytest.raises(ParticipantNotFoundError):
            await directory.resolve(seed.event_id, IndividualParticipant(user_id=seed.outsider_id))
        with pytest.raises(ParticipantNotFoundError):
            await directory.resolve(seed.event_id, seed.pat)

    @pytest.mark.asyncio
    async def test_list_registrations(self, db, seed):
        directory = ParticipantDirectory(db)

        registered = await directory.list_registrations(seed.event_id)
        everything = await directory.list_registrations(seed.event_id, registered_only=False)

        assert len(registered) == 4
        assert len(everything) == 5

    @pytest.mark.asyncio
    async def test_find_for_user_through_team(self, db, seed):
        directory = ParticipantDirectory(db)

        via_team = await directory.find_for_user(seed.event_id, seed.member_ids[3])
        direct = await directory.find_for_user(seed.event_id, seed.ivy_id)
        nothing = await directory.find_for_user(seed.event_id, seed.outsider_id)

        assert via_team.team_id == seed.team_b.team_id
        assert direct.user_id == seed.ivy_id
        assert nothing is None
