"""Match progression: results, advancement through parent links, idempotence, rollback."""
import pytest
from sqlmodel import Session, select

from courtside.errors import AlreadyCompleted, InvalidWinner, MatchNotReady, OrphanMatch, SlotConflict
from courtside.models.match import Match, MatchStatus
from courtside.models.participant import ParticipantStatus, TournamentTeam
from courtside.models.round import RoundStatus, TournamentRound
from courtside.models.tournament import Tournament, TournamentStatus
from courtside.services.bracket_service import generate_bracket
from courtside.services.progression import ProgressionEngine


def _bracket(session, make_teams, n, third_place=False):
    teams = make_teams(n)
    tournament = generate_bracket(session, "mens_doubles", "manual", bye_policy="trailing", third_place=third_place)
    return tournament.id, [t.id for t in teams]


def _match(session: Session, tournament_id: int, code: str) -> Match:
    match = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.match_code == code)
    ).one()
    session.refresh(match)
    return match


def _participant(session: Session, tournament_id: int, team_id: int) -> TournamentTeam:
    participant = session.exec(
        select(TournamentTeam).where(
            TournamentTeam.tournament_id == tournament_id, TournamentTeam.team_id == team_id
        )
    ).one()
    session.refresh(participant)
    return participant


def test_winner_fills_parent_slot(session: Session, make_teams):
    """8 teams: T1 beats T2 in R1-M1 and lands in side A of R2-M1."""
    tid, ids = _bracket(session, make_teams, 8)
    r1m1 = _match(session, tid, "R1-M1")

    result = ProgressionEngine(session).record_result(
        r1m1.id, ids[0], score_a=21, score_b=15, score_history=[{"a": 21, "b": 15}]
    )

    assert result.winner_team_id == ids[0]
    assert result.loser_team_id == ids[1]
    assert result.parent_ready is False
    assert result.tournament_completed is False

    r1m1 = _match(session, tid, "R1-M1")
    assert r1m1.status == MatchStatus.completed
    assert r1m1.winner_team_id == ids[0]
    assert (r1m1.score_a, r1m1.score_b) == (21, 15)
    assert r1m1.score_history == [{"a": 21, "b": 15}]
    assert r1m1.completed_at is not None

    r2m1 = _match(session, tid, "R2-M1")
    assert result.parent_match_id == r2m1.id
    assert (r2m1.team_a_id, r2m1.team_b_id) == (ids[0], None)

    loser = _participant(session, tid, ids[1])
    assert loser.status == ParticipantStatus.eliminated
    assert loser.eliminated_round == 1


def test_sibling_completes_parent_pairing(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 8)
    engine = ProgressionEngine(session)
    engine.record_result(_match(session, tid, "R1-M1").id, ids[0])
    result = engine.record_result(_match(session, tid, "R1-M2").id, ids[3])

    assert result.parent_ready is True
    r2m1 = _match(session, tid, "R2-M1")
    assert (r2m1.team_a_id, r2m1.team_b_id) == (ids[0], ids[3])


def test_round_one_winner_meets_waiting_bye_team(session: Session, make_teams):
    """5 teams: T3 waits in side B of R2-M1; the R1-M1 winner takes side A."""
    tid, ids = _bracket(session, make_teams, 5)
    waiting = _match(session, tid, "R2-M1")
    assert (waiting.team_a_id, waiting.team_b_id) == (None, ids[2])

    result = ProgressionEngine(session).record_result(_match(session, tid, "R1-M1").id, ids[1])

    assert result.parent_ready is True
    r2m1 = _match(session, tid, "R2-M1")
    assert (r2m1.team_a_id, r2m1.team_b_id) == (ids[1], ids[2])


@pytest.mark.parametrize("n", [2, 3, 5, 8, 13])
def test_playing_out_the_bracket_crowns_one_champion(session: Session, make_teams, n):
    """Side A always wins: n-1 results, and the first seed wins once per round."""
    tid, ids = _bracket(session, make_teams, n)
    engine = ProgressionEngine(session)
    rounds = session.get(Tournament, tid).total_rounds

    submissions = 0
    wins = {}
    while True:
        ready = session.exec(
            select(Match)
            .where(
                Match.tournament_id == tid,
                Match.status != MatchStatus.completed.value,
                Match.team_a_id.is_not(None),
                Match.team_b_id.is_not(None),
            )
            .order_by(Match.id)
        ).first()
        if ready is None:
            break
        winner = ready.team_a_id
        result = engine.record_result(ready.id, winner)
        wins[winner] = wins.get(winner, 0) + 1
        submissions += 1
        if result.tournament_completed:
            break

    tournament = session.get(Tournament, tid)
    session.refresh(tournament)
    assert submissions == n - 1
    assert tournament.status == TournamentStatus.completed
    assert tournament.champion_team_id == ids[0]
    assert wins[ids[0]] == rounds

    champion = _participant(session, tid, ids[0])
    assert champion.status == ParticipantStatus.champion
    assert champion.final_position == 1
    statuses = [
        p.status
        for p in session.exec(select(TournamentTeam).where(TournamentTeam.tournament_id == tid)).all()
    ]
    assert statuses.count(ParticipantStatus.eliminated.value) == n - 1


def test_same_winner_resubmitted_is_reported_and_changes_nothing(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4)
    engine = ProgressionEngine(session)
    match_id = _match(session, tid, "R1-M1").id
    engine.record_result(match_id, ids[0], score_a=21, score_b=10)

    with pytest.raises(AlreadyCompleted) as exc_info:
        engine.record_result(match_id, ids[0], score_a=0, score_b=0)
    assert exc_info.value.same_winner is True

    match = _match(session, tid, "R1-M1")
    assert (match.score_a, match.score_b) == (21, 10)
    final = _match(session, tid, "R2-M1")
    assert (final.team_a_id, final.team_b_id) == (ids[0], None)


def test_different_winner_after_completion_is_rejected(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4)
    engine = ProgressionEngine(session)
    match_id = _match(session, tid, "R1-M1").id
    engine.record_result(match_id, ids[0])

    with pytest.raises(AlreadyCompleted) as exc_info:
        engine.record_result(match_id, ids[1])
    assert exc_info.value.same_winner is False
    assert exc_info.value.winner_id == ids[0]
    assert _match(session, tid, "R1-M1").winner_team_id == ids[0]
    assert _match(session, tid, "R2-M1").team_a_id == ids[0]


def test_winner_must_be_playing_in_the_match(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4)
    match_id = _match(session, tid, "R1-M1").id

    with pytest.raises(InvalidWinner):
        ProgressionEngine(session).record_result(match_id, ids[2])

    match = _match(session, tid, "R1-M1")
    assert match.status == MatchStatus.pending
    assert match.winner_team_id is None
    assert _match(session, tid, "R2-M1").team_a_id is None


def test_match_without_both_teams_cannot_complete(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4)
    with pytest.raises(MatchNotReady):
        ProgressionEngine(session).record_result(_match(session, tid, "R2-M1").id, ids[0])


def test_missing_parent_rolls_back_the_whole_result(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4)
    broken = _match(session, tid, "R1-M1")
    broken.parent_match_id = 9999
    session.add(broken)
    session.commit()

    with pytest.raises(OrphanMatch) as exc_info:
        ProgressionEngine(session).record_result(broken.id, ids[0])
    assert exc_info.value.parent_id == 9999

    match = _match(session, tid, "R1-M1")
    assert match.status == MatchStatus.pending
    assert match.winner_team_id is None
    assert _participant(session, tid, ids[1]).status == ParticipantStatus.active


def test_occupied_slot_with_another_team_is_a_conflict(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 8)
    parent = _match(session, tid, "R2-M1")
    parent.team_a_id = ids[7]
    session.add(parent)
    session.commit()

    with pytest.raises(SlotConflict) as exc_info:
        ProgressionEngine(session).record_result(_match(session, tid, "R1-M1").id, ids[0])
    assert (exc_info.value.occupant, exc_info.value.incoming) == (ids[7], ids[0])

    assert _match(session, tid, "R1-M1").status == MatchStatus.pending
    assert _match(session, tid, "R2-M1").team_a_id == ids[7]


def test_third_place_match_takes_semifinal_losers(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4, third_place=True)
    engine = ProgressionEngine(session)

    first = engine.record_result(_match(session, tid, "R1-M1").id, ids[0])
    engine.record_result(_match(session, tid, "R1-M2").id, ids[2])

    third = _match(session, tid, "3RD")
    assert first.third_place_match_id == third.id
    assert (third.team_a_id, third.team_b_id) == (ids[1], ids[3])
    final = _match(session, tid, "R2-M1")
    assert (final.team_a_id, final.team_b_id) == (ids[0], ids[2])

    result = engine.record_result(final.id, ids[0])
    assert result.tournament_completed is False
    assert session.get(Tournament, tid).champion_team_id == ids[0]

    result = engine.record_result(third.id, ids[3])
    assert result.tournament_completed is True

    positions = {ids[i]: _participant(session, tid, ids[i]).final_position for i in range(4)}
    assert positions == {ids[0]: 1, ids[2]: 2, ids[3]: 3, ids[1]: 4}


def test_round_status_follows_results(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 4)
    engine = ProgressionEngine(session)

    def statuses():
        rounds = session.exec(
            select(TournamentRound)
            .where(TournamentRound.tournament_id == tid)
            .order_by(TournamentRound.round_number)
        ).all()
        for r in rounds:
            session.refresh(r)
        return [r.status for r in rounds]

    assert statuses() == [RoundStatus.active, RoundStatus.pending]
    engine.record_result(_match(session, tid, "R1-M1").id, ids[0])
    assert statuses() == [RoundStatus.active, RoundStatus.pending]
    engine.record_result(_match(session, tid, "R1-M2").id, ids[2])
    assert statuses() == [RoundStatus.completed, RoundStatus.active]
    engine.record_result(_match(session, tid, "R2-M1").id, ids[2])
    assert statuses() == [RoundStatus.completed, RoundStatus.completed]


def test_replay_advancement_repairs_lost_fill_once(session: Session, make_teams):
    tid, ids = _bracket(session, make_teams, 8)
    engine = ProgressionEngine(session)
    engine.record_result(_match(session, tid, "R1-M1").id, ids[0])

    parent = _match(session, tid, "R2-M1")
    parent.team_a_id = None
    session.add(parent)
    session.commit()

    assert engine.replay_advancement(tid) == 1
    assert _match(session, tid, "R2-M1").team_a_id == ids[0]
    assert engine.replay_advancement(tid) == 0
