# ABOUTME: Tests learner leaderboard scoring, ranking, and peer windows.
# ABOUTME: Covers opt-outs, id tie-breaks, percentiles, and unknown users.

from src.analytics.leaderboard import LearnerStanding, build_leaderboard, leaderboard_score


def _mk_standing(user_id, points, **kwargs):
    return LearnerStanding(user_id=user_id, total_points=points, **kwargs)


def test_score_weights_every_component():
    standing = LearnerStanding(
        user_id="u1",
        total_points=100,
        total_hours=10,
        skills_completed=2,
        average_progress=0.5,
        current_level=3,
        badges_earned=4,
    )
    # 100 + 20 + 100 + 50 + 90 + 80
    assert leaderboard_score(standing) == 440


def test_ranks_descending_with_id_tie_break():
    board = build_leaderboard(
        [_mk_standing("u-b", 50), _mk_standing("u-a", 50), _mk_standing("u-c", 90)], user_id="u-b"
    )
    assert [e.user_id for e in board.top] == ["u-c", "u-a", "u-b"]
    assert [e.rank for e in board.top] == [1, 2, 3]
    assert board.user_rank == 3
    assert board.percentile == 33
    assert board.top[2].is_current_user


def test_opted_out_learners_are_hidden():
    board = build_leaderboard(
        [_mk_standing("u1", 10), _mk_standing("u2", 999, show_in_leaderboard=False)], user_id="u2"
    )
    assert [e.user_id for e in board.top] == ["u1"]
    assert board.total_users == 1
    assert board.user_rank == 2
    assert board.percentile == 0
    assert board.nearby == []


def test_nearby_window_is_five_each_side():
    standings = [_mk_standing(f"user{i:04d}", 1000 - i) for i in range(30)]
    board = build_leaderboard(standings, user_id="user0015", limit=5)

    assert board.user_rank == 16
    assert len(board.top) == 5
    assert [e.rank for e in board.nearby] == list(range(11, 22))
    assert board.nearby[5].display_name == "Learner #0015"


def test_nearby_window_is_clipped_at_the_top():
    standings = [_mk_standing(f"user{i:04d}", 100 - i) for i in range(10)]
    board = build_leaderboard(standings, user_id="user0001")
    assert [e.rank for e in board.nearby] == [1, 2, 3, 4, 5, 6, 7]
    assert board.percentile == 90


def test_category_scope_filters_learners():
    standings = [
        _mk_standing("u1", 10, categories=frozenset({"music"})),
        _mk_standing("u2", 20, categories=frozenset({"coding"})),
    ]
    board = build_leaderboard(standings, user_id="u1", category="music")
    assert board.total_users == 1
    assert board.user_rank == 1
    assert board.percentile == 100
    assert board.to_dict()["category"] == "music"


def test_empty_board():
    board = build_leaderboard([], user_id="nobody")
    assert (board.user_rank, board.total_users, board.percentile) == (1, 0, 0)
