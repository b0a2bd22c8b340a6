import pytest

from chesscore.core import (
    A1, A7, A8, B8, D6, E1, E5, E7, H1, KING, KNIGHT, NO_PIECE, QUEEN, ROOK,
    BISHOP, MoveType, between_bb, color_of, from_sq, iter_squares, lsb,
    make_castling, make_enpassant, make_move, make_promotion, move_type,
    square_bb, to_sq, type_of,
)
from chesscore.movegen import (
    GenType, generate, generate_captures, generate_evasions,
    generate_non_evasions, generate_quiet_checks, generate_quiets,
)
from chesscore.position import Position

START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
POSITION3 = "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"
CASTLES_BLACK = "r3k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1"
IN_CHECK = "r3k2r/Pppp1ppp/1b3nbN/nP6/BBP1P3/q4N2/Pp1P2PP/R2Q1RK1 w kq - 0 1"

QUIET_POSITIONS = [START, KIWIPETE, POSITION3, CASTLES_BLACK]


def _king_safe_after(pos, move):
    us = pos.side_to_move
    pos.do_move(move, True)
    safe = not pos.attackers_to(pos.king_square(us)) & pos.pieces_of(us ^ 1)
    pos.undo_move(move)
    return safe


def _perft(pos, depth):
    moves = generate_evasions(pos) if pos.checkers() else generate_non_evasions(pos)
    total = 0
    for move in moves:
        us = pos.side_to_move
        pos.do_move(move, True)
        if not pos.attackers_to(pos.king_square(us)) & pos.pieces_of(us ^ 1):
            total += 1 if depth == 1 else _perft(pos, depth - 1)
        pos.undo_move(move)
    return total


def test_perft_start_position():
    pos = Position.from_fen(START)
    assert _perft(pos, 1) == 20
    assert _perft(pos, 2) == 400


def test_perft_kiwipete_depth_one():
    assert _perft(Position.from_fen(KIWIPETE), 1) == 48


@pytest.mark.parametrize("fen", QUIET_POSITIONS)
def test_captures_and_quiets_partition_non_evasions(fen):
    pos = Position.from_fen(fen)
    combined = sorted(generate_captures(pos) + generate_quiets(pos))
    assert combined == sorted(generate_non_evasions(pos))


@pytest.mark.parametrize("fen", QUIET_POSITIONS)
def test_captures_hit_enemies_or_promote(fen):
    pos = Position.from_fen(fen)
    them = pos.side_to_move ^ 1
    for move in generate_captures(pos):
        kind = move_type(move)
        target = pos.piece_on(to_sq(move))
        assert (
            kind in (MoveType.ENPASSANT, MoveType.PROMOTION)
            or (target != NO_PIECE and color_of(target) == them)
        )


@pytest.mark.parametrize("fen", QUIET_POSITIONS)
def test_quiets_land_on_empty_squares(fen):
    pos = Position.from_fen(fen)
    for move in generate_quiets(pos):
        if move_type(move) == MoveType.CASTLING:
            assert type_of(pos.piece_on(to_sq(move))) == ROOK
        else:
            assert pos.piece_on(to_sq(move)) == NO_PIECE


@pytest.mark.parametrize("fen", QUIET_POSITIONS)
def test_moves_start_from_own_pieces(fen):
    pos = Position.from_fen(fen)
    for move in generate_non_evasions(pos):
        piece = pos.piece_on(from_sq(move))
        assert piece != NO_PIECE
        assert color_of(piece) == pos.side_to_move


@pytest.mark.parametrize("fen", QUIET_POSITIONS)
def test_quiet_checks_are_checking_quiets(fen):
    pos = Position.from_fen(fen)
    quiets = set(generate_quiets(pos))
    for move in generate_quiet_checks(pos):
        assert move in quiets
        assert move_type(move) == MoveType.NORMAL
        us = pos.side_to_move
        pos.do_move(move, True)
        assert pos.attackers_to(pos.king_square(us ^ 1)) & pos.pieces_of(us)
        pos.undo_move(move)


def test_direct_quiet_check_is_found():
    pos = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    assert make_move(A1, A8) in generate_quiet_checks(pos)


def test_discovered_quiet_checks_include_all_knight_moves():
    pos = Position.from_fen("4k3/8/8/8/4N3/8/8/4RK2 w - - 0 1")
    knight_square = lsb(pos.pieces_of(0, KNIGHT))
    knight_quiets = {m for m in generate_quiets(pos) if from_sq(m) == knight_square}
    assert knight_quiets
    assert knight_quiets <= set(generate_quiet_checks(pos))


def test_push_promotion_split_between_captures_and_quiets():
    pos = Position.from_fen("8/P7/8/8/8/8/8/k6K w - - 0 1")
    assert make_promotion(A7, A8, QUEEN) in generate_captures(pos)
    quiets = generate_quiets(pos)
    for pt in (ROOK, BISHOP, KNIGHT):
        assert make_promotion(A7, A8, pt) in quiets
    assert make_promotion(A7, A8, QUEEN) not in quiets


def test_capture_promotion_all_pieces_in_non_evasions():
    pos = Position.from_fen("1r6/P7/8/8/8/8/8/k6K w - - 0 1")
    moves = generate_non_evasions(pos)
    for pt in (QUEEN, ROOK, BISHOP, KNIGHT):
        assert make_promotion(A7, B8, pt) in moves
        assert make_promotion(A7, A8, pt) in moves


def test_en_passant_capture_generated():
    pos = Position.from_fen("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
    assert make_enpassant(E5, D6) in generate_captures(pos)


def test_castling_moves_encoded_as_king_takes_rook():
    pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    quiets = generate_quiets(pos)
    assert make_castling(E1, H1) in quiets
    assert make_castling(E1, A1) in quiets


def test_castling_blocked_by_piece_in_path():
    pos = Position.from_fen("r3k2r/8/8/8/8/8/8/RN2K1NR w KQkq - 0 1")
    castles = [m for m in generate_quiets(pos) if move_type(m) == MoveType.CASTLING]
    assert castles == []


def test_black_castling_from_black_king():
    pos = Position.from_fen(CASTLES_BLACK)
    castles = [m for m in generate_quiets(pos) if move_type(m) == MoveType.CASTLING]
    king = pos.king_square(1)
    assert {to_sq(m) for m in castles} == set(iter_squares(pos.pieces_of(1, ROOK)))
    assert all(from_sq(m) == king for m in castles)


def test_evasions_block_capture_or_move_king():
    pos = Position.from_fen(IN_CHECK)
    ksq = pos.king_square(pos.side_to_move)
    checker = lsb(pos.checkers())
    evasions = generate_evasions(pos)
    assert evasions
    for move in evasions:
        if from_sq(move) != ksq:
            assert between_bb(ksq, checker) & square_bb(to_sq(move))


def test_blocking_evasion_available():
    pos = Position.from_fen("4k3/4r3/8/8/8/8/3B4/4K3 w - - 0 1")
    evasions = generate_evasions(pos)
    blocks = [m for m in evasions if from_sq(m) != E1]
    assert blocks
    assert all(between_bb(E1, E7) & square_bb(to_sq(m)) for m in blocks)


def test_double_check_allows_only_king_moves():
    pos = Position.from_fen("4k3/8/8/8/1b6/3n4/8/R3K3 w - - 0 1")
    evasions = generate_evasions(pos)
    assert evasions
    assert all(type_of(pos.piece_on(from_sq(m))) == KING for m in evasions)


def test_evasions_contain_every_legal_reply():
    pos = Position.from_fen(IN_CHECK)
    legal = [m for m in generate_evasions(pos) if _king_safe_after(pos, m)]
    for move in legal:
        pos.do_move(move, True)
        assert not pos.attackers_to(pos.king_square(0)) & pos.pieces_of(1)
        pos.undo_move(move)
    assert len(legal) <= len(generate_evasions(pos))


def test_generate_refuses_legal_category():
    pos = Position.from_fen(START)
    with pytest.raises(ValueError):
        generate(pos, GenType.LEGAL)


def test_non_evasion_categories_refused_in_check():
    pos = Position.from_fen(IN_CHECK)
    with pytest.raises(ValueError):
        generate_captures(pos)
    with pytest.raises(ValueError):
        generate_non_evasions(pos)


def test_evasions_refused_when_not_in_check():
    pos = Position.from_fen(START)
    with pytest.raises(ValueError):
        generate_evasions(pos)


def test_generate_accepts_plain_int_category():
    pos = Position.from_fen(KIWIPETE)
    assert generate(pos, int(GenType.CAPTURES)) == generate_captures(pos)


def test_generation_does_not_change_position():
    pos = Position.from_fen(KIWIPETE)
    key, board = pos.key, list(pos.board)
    generate_non_evasions(pos)
    generate_quiet_checks(pos)
    assert pos.key == key
    assert pos.board == board