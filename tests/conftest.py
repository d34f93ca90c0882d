import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from tourney.database import get_session
from tourney.models import (
    Match,
    MatchStatus,
    Team,
    TeamMembership,
    Tournament,
    TournamentScope,
    TournamentStatus,
)

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="tournament")
def tournament_fixture(session: Session) -> Tournament:
    tournament = Tournament(
        name="Spring Cup",
        status=TournamentStatus.IN_PROGRESS.value,
        scope=TournamentScope.CLUB.value,
        club_id="club-1"
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@pytest.fixture(name="make_team")
def make_team_fixture(session: Session, tournament: Tournament):
    """Create a team with the given player ids as members."""
    def _make_team(name: str, *player_ids: str) -> Team:
        team = Team(tournament_id=tournament.id, name=name)
        session.add(team)
        session.commit()
        session.refresh(team)
        for player_id in player_ids:
            session.add(TeamMembership(team_id=team.id, player_id=player_id))
        session.commit()
        return team

    return _make_team


@pytest.fixture(name="make_match")
def make_match_fixture(session: Session, tournament: Tournament):
    """Create a match in the tournament; keyword arguments set Match fields."""
    def _make_match(**fields) -> Match:
        fields.setdefault("tournament_id", tournament.id)
        match = Match(**fields)
        session.add(match)
        session.commit()
        session.refresh(match)
        return match

    return _make_match


@pytest.fixture(name="live_match")
def live_match_fixture(make_team, make_match):
    """An in-play round 1 match between two teams with captains p1 and p2."""
    team_a = make_team("Team A", "p9", "p1")
    team_b = make_team("Team B", "p8", "p2")
    match = make_match(
        round=1,
        team_a_id=team_a.id,
        team_b_id=team_b.id,
        slot_a_source_type="team",
        slot_b_source_type="team",
        status=MatchStatus.IN_PLAY.value
    )
    return match, team_a, team_b


@pytest.fixture(name="bracket")
def bracket_fixture(session, make_team, make_match):
    """Two semifinals feeding a final through winner-of-match slots."""
    team_1 = make_team("Smashers", "p1", "p9")
    team_2 = make_team("Netters", "p2", "p8")
    team_3 = make_team("Lobbers", "p3")
    team_4 = make_team("Drivers", "p4")
    semi_1 = make_match(round=1, match_no=1, team_a_id=team_1.id, team_b_id=team_2.id,
                        slot_a_source_type="team", slot_b_source_type="team",
                        status=MatchStatus.IN_PLAY.value)
    semi_2 = make_match(round=1, match_no=2, team_a_id=team_3.id, team_b_id=team_4.id,
                        slot_a_source_type="team", slot_b_source_type="team",
                        status=MatchStatus.IN_PLAY.value)
    final = make_match(round=2, match_no=1,
                       slot_a_source_type="winner_of_match", slot_a_source_match_id=semi_1.id,
                       slot_b_source_type="winner_of_match", slot_b_source_match_id=semi_2.id)
    return {
        "teams": (team_1, team_2, team_3, team_4),
        "semi_1": semi_1,
        "semi_2": semi_2,
        "final": final,
    }
