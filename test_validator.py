import logging

import pytest

from checkers_referee.board import empty_board, to_array, to_protocol
from checkers_referee.config import RefereeConfig, ReportSettings, RulesSettings
from checkers_referee.errors import InvalidBoardError, InvalidTurnError
from checkers_referee.protocol import initial_state
from checkers_referee.transition import apply_move
from checkers_referee.types import BLACK_MAN, WHITE_CROWN, WHITE_MAN
from checkers_referee.validator import (
    MoveValidator,
    Rejection,
    RejectionReason,
    ValidationResult,
    is_move_ok,
)

WHITE, BLACK = 0, 1

# Helpers

def state_with(cells):
    board = empty_board()
    for idx, piece in cells.items():
        board[idx] = piece
    return to_protocol(board)


def simple_move(src, dst, token="WMAN", next_turn=1):
    return [
        {"setTurn": next_turn},
        {"set": {f"S{src}": "EMPTY"}},
        {"set": {f"S{dst}": token}},
    ]


def jump_move(src, captured, landing, token="WMAN", next_turn=1, winner_scores=None):
    move = [
        {"setTurn": next_turn},
        {"set": {f"S{src}": "EMPTY"}},
        {"set": {f"S{captured}": "EMPTY"}},
        {"set": {f"S{landing}": token}},
    ]
    if winner_scores is not None:
        move.append({"endMatch": {"endMatchScores": list(winner_scores)}})
    return move


class RecordingSink:
    def __init__(self):
        self.reports = []

    def report(self, rejection):
        self.reports.append(rejection)


@pytest.fixture
def validator():
    return MoveValidator(RefereeConfig())


# End-to-end scenarios

def test_opening_move_accepted_and_applied(validator):
    state = initial_state()
    move = simple_move(20, 16)
    result = validator.validate(state, move, WHITE)
    assert result.ok
    assert bool(result)
    assert result.reason is None

    after = apply_move(state, move, WHITE)
    assert after.next_state["S20"] == "EMPTY"
    assert after.next_state["S16"] == "WMAN"
    assert move[0] == {"setTurn": 1}


def test_black_reply_accepted(validator):
    state = apply_move(initial_state(), simple_move(20, 16), WHITE).next_state
    assert validator.validate(state, simple_move(9, 13, "BMAN", next_turn=0), BLACK).ok


def test_jump_over_empty_cell_rejected(validator):
    result = validator.validate(initial_state(), jump_move(21, 17, 12), WHITE)
    assert not result
    assert result.reason is RejectionReason.ILLEGAL_JUMP


def test_mandatory_jump_by_another_piece(validator):
    # 21 can capture 17; the player moves 30 instead, which has no capture
    state = state_with({21: WHITE_MAN, 17: BLACK_MAN, 30: WHITE_MAN})
    result = validator.validate(state, simple_move(30, 26), WHITE)
    assert result.reason is RejectionReason.MANDATORY_JUMP_IGNORED
    assert result.rejection.context["jumpers"] == [21]


def test_mandatory_jump_not_enforced_when_disabled():
    config = RefereeConfig(rules=RulesSettings(captures_mandatory=False))
    state = state_with({21: WHITE_MAN, 17: BLACK_MAN, 30: WHITE_MAN})
    assert MoveValidator(config).validate(state, simple_move(30, 26), WHITE).ok


def test_capturing_move_is_allowed_when_jump_available(validator):
    state = state_with({21: WHITE_MAN, 17: BLACK_MAN, 30: WHITE_MAN, 0: BLACK_MAN})
    assert validator.validate(state, jump_move(21, 17, 12), WHITE).ok


# Turn continuation

def test_jump_with_follow_up_keeps_turn(validator):
    # 26 x 22 lands on 19, from where 14 can be captured
    state = state_with({26: WHITE_MAN, 22: BLACK_MAN, 14: BLACK_MAN})
    assert validator.validate(state, jump_move(26, 22, 19, next_turn=WHITE), WHITE).ok
    result = validator.validate(state, jump_move(26, 22, 19, next_turn=BLACK), WHITE)
    assert result.reason is RejectionReason.ILLEGAL_TURN_TRANSITION
    assert result.rejection.context == {"expected": WHITE, "claimed": BLACK}


def test_jump_without_follow_up_passes_turn(validator):
    state = state_with({26: WHITE_MAN, 22: BLACK_MAN, 0: BLACK_MAN})
    assert validator.validate(state, jump_move(26, 22, 19, next_turn=BLACK), WHITE).ok
    result = validator.validate(state, jump_move(26, 22, 19, next_turn=WHITE), WHITE)
    assert result.reason is RejectionReason.ILLEGAL_TURN_TRANSITION


def test_chain_is_played_one_hop_per_submission(validator):
    state = state_with({26: WHITE_MAN, 22: BLACK_MAN, 14: BLACK_MAN, 0: BLACK_MAN})
    first = jump_move(26, 22, 19, next_turn=WHITE)
    assert validator.validate(state, first, WHITE).ok
    state = apply_move(state, first, WHITE).next_state
    assert validator.validate(state, jump_move(19, 14, 10, next_turn=BLACK), WHITE).ok


def test_two_hops_in_one_submission_rejected(validator):
    state = state_with({26: WHITE_MAN, 22: BLACK_MAN, 14: BLACK_MAN, 0: BLACK_MAN})
    move = jump_move(26, 22, 19, next_turn=BLACK)
    move.extend([{"set": {"S14": "EMPTY"}}, {"set": {"S10": "WMAN"}}])
    result = validator.validate(state, move, WHITE)
    assert result.reason is RejectionReason.ILLEGAL_MOVE_SHAPE


def test_simple_move_must_pass_turn(validator):
    result = validator.validate(initial_state(), simple_move(20, 16, next_turn=WHITE), WHITE)
    assert result.reason is RejectionReason.ILLEGAL_TURN_TRANSITION


def test_explicit_turn_after_overrides_set_turn(validator):
    move = simple_move(20, 16, next_turn=WHITE)
    assert validator.validate(initial_state(), move, WHITE, turn_after=BLACK).ok


@pytest.mark.parametrize("turn_after", [None, 2, "1", True, 1.0])
def test_missing_or_invalid_turn_after_rejected(validator, turn_after):
    move = [{"set": {"S20": "EMPTY"}}, {"set": {"S16": "WMAN"}}]
    result = validator.validate(initial_state(), move, WHITE, turn_after=turn_after)
    assert result.reason is RejectionReason.ILLEGAL_TURN_TRANSITION


# Winner claims

def test_correct_winner_claim_accepted(validator):
    state = state_with({21: WHITE_MAN, 17: BLACK_MAN})
    move = jump_move(21, 17, 12, next_turn=BLACK, winner_scores=(1, 0))
    assert validator.validate(state, move, WHITE).ok


def test_wrong_winner_claim_rejected(validator):
    state = state_with({21: WHITE_MAN, 17: BLACK_MAN})
    move = jump_move(21, 17, 12, next_turn=BLACK, winner_scores=(0, 1))
    assert validator.validate(state, move, WHITE).reason is RejectionReason.ILLEGAL_WINNER_CLAIM


def test_premature_winner_claim_rejected(validator):
    move = simple_move(20, 16) + [{"endMatch": {"endMatchScores": [1, 0]}}]
    result = validator.validate(initial_state(), move, WHITE)
    assert result.reason is RejectionReason.ILLEGAL_WINNER_CLAIM


# Indices and shape

@pytest.mark.parametrize("key", ["S32", "S-1", "Sx", "X20"])
def test_illegal_index(validator, key):
    move = [{"setTurn": 1}, {"set": {"S20": "EMPTY"}}, {"set": {key: "WMAN"}}]
    assert validator.validate(initial_state(), move, WHITE).reason is RejectionReason.ILLEGAL_INDEX


@pytest.mark.parametrize("move", [
    [{"setTurn": 1}, {"set": {"S20": "EMPTY"}}],
    [{"setTurn": 1}],
    [],
    "20-16",
    [{"setTurn": 1}, {"set": {"S20": "EMPTY", "S16": "WMAN"}}],
    [{"setTurn": 1}, {"move": [20, 16]}],
    [{"setTurn": 1}, {"set": {"S20": "EMPTY"}}, {"set": {"S16": "WKING"}}],
])
def test_malformed_shape(validator, move):
    result = validator.validate(initial_state(), move, WHITE)
    assert result.reason is RejectionReason.ILLEGAL_MOVE_SHAPE


# Move legality

@pytest.mark.parametrize("src,dst,token", [
    (20, 12, "WMAN"),   # not adjacent
    (21, 16, "WMAN"),   # not diagonal neighbours
    (24, 20, "WMAN"),   # destination occupied
    (16, 12, "WMAN"),   # empty source
    (9, 13, "BMAN"),    # opponent's piece
])
def test_illegal_simple_move(validator, src, dst, token):
    result = validator.validate(initial_state(), simple_move(src, dst, token), WHITE)
    assert result.reason is RejectionReason.ILLEGAL_SIMPLE_MOVE


def test_man_cannot_step_backwards(validator):
    state = state_with({17: WHITE_MAN, 0: BLACK_MAN})
    assert validator.validate(state, simple_move(17, 21), WHITE).reason is RejectionReason.ILLEGAL_SIMPLE_MOVE


def test_crown_steps_backwards(validator):
    state = state_with({17: WHITE_CROWN, 0: BLACK_MAN})
    assert validator.validate(state, simple_move(17, 21, "WCRO"), WHITE).ok


def test_crown_jumps_backwards(validator):
    state = state_with({9: WHITE_CROWN, 13: BLACK_MAN, 0: BLACK_MAN})
    assert validator.validate(state, jump_move(9, 13, 18, "WCRO"), WHITE).ok


def test_jump_over_own_piece_rejected(validator):
    state = state_with({21: WHITE_MAN, 17: WHITE_MAN, 0: BLACK_MAN})
    assert validator.validate(state, jump_move(21, 17, 12), WHITE).reason is RejectionReason.ILLEGAL_JUMP


# Written cell values

def test_landing_must_hold_mover(validator):
    result = validator.validate(initial_state(), simple_move(20, 16, "BMAN"), WHITE)
    assert result.reason is RejectionReason.ILLEGAL_MOVE_SHAPE


def test_source_must_be_cleared(validator):
    move = [{"setTurn": 1}, {"set": {"S20": "WMAN"}}, {"set": {"S16": "WMAN"}}]
    assert validator.validate(initial_state(), move, WHITE).reason is RejectionReason.ILLEGAL_MOVE_SHAPE


def test_captured_piece_must_be_removed(validator):
    state = state_with({21: WHITE_MAN, 17: BLACK_MAN, 0: BLACK_MAN})
    move = [{"setTurn": 1}, {"set": {"S21": "EMPTY"}}, {"set": {"S17": "BMAN"}}, {"set": {"S12": "WMAN"}}]
    assert validator.validate(state, move, WHITE).reason is RejectionReason.ILLEGAL_MOVE_SHAPE


def test_promotion_token_is_accepted(validator):
    state = state_with({5: WHITE_MAN, 20: BLACK_MAN})
    assert validator.validate(state, simple_move(5, 1, "WCRO"), WHITE).ok


def test_landing_kind_is_taken_as_written(validator):
    assert validator.validate(initial_state(), simple_move(21, 17, "WCRO"), WHITE).ok
    state = state_with({13: WHITE_CROWN, 0: BLACK_MAN})
    assert validator.validate(state, simple_move(13, 17, "WMAN"), WHITE).ok


def test_cell_values_unchecked_when_not_strict():
    config = RefereeConfig(rules=RulesSettings(strict_cell_values=False))
    assert MoveValidator(config).validate(initial_state(), simple_move(20, 16, "BMAN"), WHITE).ok


# Reporting and errors

def test_rejection_report_payload():
    rejection = Rejection(RejectionReason.ILLEGAL_JUMP, "Jump is not legal")
    report = rejection.to_report(ReportSettings())
    assert report == {
        "email": "x@x.x",
        "emailSubject": "hacker!",
        "emailBody": "IllegalJump: Jump is not legal",
    }
    custom = rejection.to_report(ReportSettings(email="abuse@example.org", subject="cheat"))
    assert custom["email"] == "abuse@example.org"
    assert custom["emailSubject"] == "cheat"


def test_sink_receives_rejections_only():
    sink = RecordingSink()
    validator = MoveValidator(RefereeConfig(), sink=sink)
    assert validator.validate(initial_state(), simple_move(20, 16), WHITE).ok
    assert sink.reports == []
    validator.validate(initial_state(), simple_move(20, 12), WHITE)
    assert len(sink.reports) == 1
    assert sink.reports[0].reason is RejectionReason.ILLEGAL_SIMPLE_MOVE


def test_rejections_are_logged(validator, caplog):
    with caplog.at_level(logging.WARNING, logger="checkers_referee.validator"):
        validator.validate(initial_state(), jump_move(21, 17, 12), WHITE)
    assert "IllegalJump" in caplog.text


def test_validator_does_not_mutate_input(validator):
    state = initial_state()
    snapshot = dict(state)
    validator.validate(state, simple_move(20, 16), WHITE)
    assert state == snapshot


def test_invalid_board_is_fatal(validator):
    state = initial_state()
    state["S12"] = "GHOST"
    with pytest.raises(InvalidBoardError):
        validator.validate(state, simple_move(20, 16), WHITE)


@pytest.mark.parametrize("turn", [2, -1, None, True, "1", 1.0])
def test_invalid_turn_before_is_fatal(validator, turn):
    with pytest.raises(InvalidTurnError):
        validator.validate(initial_state(), simple_move(20, 16), turn)


def test_is_move_ok_with_platform_payload():
    match = {
        "stateBeforeMove": initial_state(),
        "turnIndexBeforeMove": 0,
        "turnIndexAfterMove": 1,
        "move": simple_move(20, 16),
    }
    result = is_move_ok(match, config=RefereeConfig())
    assert isinstance(result, ValidationResult)
    assert result.ok

    match["turnIndexAfterMove"] = 0
    assert is_move_ok(match, config=RefereeConfig()).reason is RejectionReason.ILLEGAL_TURN_TRANSITION


def test_is_move_ok_without_move_rejected():
    sink = RecordingSink()
    match = {
        "stateBeforeMove": initial_state(),
        "turnIndexBeforeMove": 0,
        "turnIndexAfterMove": 1,
    }
    result = is_move_ok(match, config=RefereeConfig(), sink=sink)
    assert result.reason is RejectionReason.ILLEGAL_MOVE_SHAPE
    assert len(sink.reports) == 1


@pytest.mark.parametrize("set_turn", ["1", True, 1.0])
def test_set_turn_is_not_coerced(validator, set_turn):
    move = [{"setTurn": set_turn}, {"set": {"S20": "EMPTY"}}, {"set": {"S16": "WMAN"}}]
    assert validator.validate(initial_state(), move, WHITE).reason is RejectionReason.ILLEGAL_MOVE_SHAPE
    match = {"stateBeforeMove": initial_state(), "turnIndexBeforeMove": 0, "move": move}
    assert is_move_ok(match, config=RefereeConfig()).reason is RejectionReason.ILLEGAL_MOVE_SHAPE


@pytest.mark.parametrize("turn", [True, "1", 1.0, None])
def test_is_move_ok_turn_before_matches_direct_route(turn):
    match = {
        "stateBeforeMove": initial_state(),
        "turnIndexBeforeMove": turn,
        "move": simple_move(8, 12, "BMAN", next_turn=WHITE),
    }
    if turn is None:
        del match["turnIndexBeforeMove"]
    with pytest.raises(InvalidTurnError):
        is_move_ok(match, config=RefereeConfig())


@pytest.mark.parametrize("state", [
    {"S0": 5},
    {"S0": ["BMAN"]},
    None,
])
def test_is_move_ok_bad_state_is_fatal(state):
    match = {"turnIndexBeforeMove": 0, "move": simple_move(20, 16)}
    if state is not None:
        cells = initial_state()
        cells.update(state)
        match["stateBeforeMove"] = cells
    with pytest.raises(InvalidBoardError):
        is_move_ok(match, config=RefereeConfig())


def test_full_opening_sequence(validator):
    # White advances, Black offers a piece, White must take it
    state = initial_state()
    turn = WHITE
    for move, mover in [
        (simple_move(21, 17), WHITE),
        (simple_move(8, 12, "BMAN", next_turn=WHITE), BLACK),
    ]:
        assert validator.validate(state, move, mover).ok
        state = apply_move(state, move, mover).next_state
        turn = move[0]["setTurn"]
    assert turn == WHITE
    board = to_array(state)
    assert board[17] == WHITE_MAN and board[12] == BLACK_MAN
    refused = validator.validate(state, simple_move(22, 18), WHITE)
    assert refused.reason is RejectionReason.MANDATORY_JUMP_IGNORED
    assert validator.validate(state, jump_move(17, 14, 10, next_turn=WHITE), WHITE).reason \
        is RejectionReason.ILLEGAL_JUMP
    assert validator.validate(state, jump_move(17, 12, 8, next_turn=BLACK), WHITE).ok
