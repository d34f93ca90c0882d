from sqlalchemy import update
from sqlmodel import select
from tourney.models import Match, MatchStatus
from tourney.services import cleanup
from tourney.services.cleanup import (
    find_phantom_matches,
    max_full_round,
    remove_phantom_matches,
    within_full_rounds,
)


def build_three_rounds(make_team, make_match):
    """A finished three-round bracket plus a round 4 row holding a lone promoted team."""
    teams = [make_team(f"Team {i}", f"p{i}") for i in range(1, 5)]
    make_match(round=1, team_a_id=teams[0].id, team_b_id=teams[1].id,
               slot_a_source_type="team", slot_b_source_type="team",
               status="completed", winner_team_id=teams[0].id)
    make_match(round=2, team_a_id=teams[0].id, team_b_id=teams[2].id,
               slot_a_source_type="team", slot_b_source_type="team",
               status="completed", winner_team_id=teams[0].id)
    make_match(round=3, team_a_id=teams[0].id, team_b_id=teams[3].id,
               slot_a_source_type="team", slot_b_source_type="team",
               status="completed", score_a=21, score_b=15)
    return teams


def test_max_full_round(session, make_team, make_match):
    teams = build_three_rounds(make_team, make_match)
    make_match(round=4, team_a_id=teams[0].id, slot_a_source_type="team", slot_b_source_type="bye")
    matches = session.exec(select(Match)).all()
    assert max_full_round(matches) == 3
    assert [m.round for m in within_full_rounds(matches)] == [1, 2, 3]


def test_max_full_round_without_full_matches():
    assert max_full_round([Match(tournament_id=1, round=1, team_a_id=1)]) is None
    assert max_full_round([]) is None


def test_phantom_round_is_removed(session, tournament, make_team, make_match):
    teams = build_three_rounds(make_team, make_match)
    phantom = make_match(round=4, team_a_id=teams[0].id, slot_a_source_type="team", slot_b_source_type="bye")

    removed = remove_phantom_matches(session, tournament.id)

    assert removed == [phantom.id]
    rounds = sorted(m.round for m in session.exec(select(Match)).all())
    assert rounds == [1, 2, 3]


def test_phantom_with_winner_is_kept(session, tournament, make_team, make_match):
    teams = build_three_rounds(make_team, make_match)
    make_match(round=4, team_a_id=teams[0].id, slot_a_source_type="team",
               slot_b_source_type="bye", winner_team_id=teams[0].id)

    assert remove_phantom_matches(session, tournament.id) == []
    assert len(session.exec(select(Match)).all()) == 4


def test_phantom_with_score_or_admin_final_is_kept(make_team, make_match, session):
    teams = build_three_rounds(make_team, make_match)
    make_match(round=4, team_a_id=teams[0].id, score_a=1)
    make_match(round=4, team_a_id=teams[0].id, finalized_by_admin=True)
    assert find_phantom_matches(session.exec(select(Match)).all()) == []


def test_match_waiting_on_upstream_winner_is_kept(session, tournament, make_team, make_match):
    team_a = make_team("Team A", "p1")
    team_b = make_team("Team B", "p2")
    team_c = make_team("Team C", "p3")
    team_d = make_team("Team D", "p4")
    make_match(round=1, team_a_id=team_a.id, team_b_id=team_b.id,
               slot_a_source_type="team", slot_b_source_type="team",
               status="completed", winner_team_id=team_a.id)
    semi_2 = make_match(round=1, team_a_id=team_c.id, team_b_id=team_d.id,
                        slot_a_source_type="team", slot_b_source_type="team",
                        status=MatchStatus.IN_PLAY.value)
    # Side A already filled from semi 1, side B still waiting on semi 2
    make_match(round=2, team_a_id=team_a.id, slot_a_source_type="team",
               slot_b_source_type="winner_of_match", slot_b_source_match_id=semi_2.id)

    assert remove_phantom_matches(session, tournament.id) == []
    assert len(session.exec(select(Match)).all()) == 3


def test_cleanup_is_idempotent(session, tournament, make_team, make_match):
    teams = build_three_rounds(make_team, make_match)
    make_match(round=4, team_a_id=teams[0].id, slot_a_source_type="team", slot_b_source_type="bye")

    assert len(remove_phantom_matches(session, tournament.id)) == 1
    assert remove_phantom_matches(session, tournament.id) == []


def test_within_full_rounds_keeps_match_waiting_on_upstream(session, make_team, make_match):
    team_a = make_team("Team A", "p1")
    team_b = make_team("Team B", "p2")
    team_c = make_team("Team C", "p3")
    team_d = make_team("Team D", "p4")
    make_match(round=1, team_a_id=team_a.id, team_b_id=team_b.id,
               slot_a_source_type="team", slot_b_source_type="team",
               status="completed", winner_team_id=team_a.id)
    # Semi 2 has a winner that never reached the final
    semi_2 = make_match(round=1, team_a_id=team_c.id, team_b_id=team_d.id,
                        slot_a_source_type="team", slot_b_source_type="team",
                        status="completed", winner_team_id=team_c.id)
    final = make_match(round=2, team_a_id=team_a.id, slot_a_source_type="team",
                       slot_b_source_type="winner_of_match", slot_b_source_match_id=semi_2.id)

    matches = session.exec(select(Match)).all()
    assert max_full_round(matches) == 1
    assert final.id in [m.id for m in within_full_rounds(matches)]
    assert find_phantom_matches(matches) == []


def test_cleanup_reports_only_deleted_rows(session, tournament, make_team, make_match, monkeypatch):
    teams = build_three_rounds(make_team, make_match)
    scored_id = make_match(round=4, team_a_id=teams[0].id, slot_a_source_type="team", slot_b_source_type="bye").id
    empty_id = make_match(round=4, team_a_id=teams[1].id, slot_a_source_type="team", slot_b_source_type="bye").id
    find = cleanup.find_phantom_matches

    def racing_find_phantom_matches(matches):
        phantoms = find(matches)
        # A result lands on one row between the read and the delete
        table = Match.__table__
        session.connection().execute(update(table).where(table.c.id == scored_id).values(score_a=1))
        return phantoms

    monkeypatch.setattr(cleanup, "find_phantom_matches", racing_find_phantom_matches)

    assert remove_phantom_matches(session, tournament.id) == [empty_id]
    remaining = session.exec(select(Match.id).where(Match.round == 4)).all()
    assert remaining == [scored_id]
