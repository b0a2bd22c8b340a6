import pytest

from chesscore.core import (
    A1, A2, A3, A8, B1, B2, B3, BISHOP, BLACK, BLACK_OOO, C1, C2, C3, D4, D5,
    D4 as _D4, DARK_SQUARES, E1, E2, E3, E4, E5, E7, E8, EAST, F4, F5, FILE_H,
    FULL_BB, G3, G5, G7, H1, H2, H7, H8, KING, KNIGHT, LIGHT_SQUARES, MOVE_NONE,
    MOVE_NULL, NORTH, NORTH_EAST, PAWN, PIECE_TO_CHAR, QUEEN, QUEEN_SIDE,
    RANK_1, RANK_8, ROOK, WHITE, MoveType, Score, aligned, attacks_bb,
    between_bb, color_of, file_bb, from_sq, iter_squares, line_bb, lsb,
    make_castling, make_castling_right, make_enpassant, make_move, make_piece,
    make_promotion, make_square, more_than_one, move_to_uci, move_type,
    parse_square, passed_pawn_span, pawn_attacks, pawn_attacks_bb, popcount,
    promotion_type, rank_bb, rank_of, file_of, relative_rank, relative_square,
    shift, square_bb, square_name, to_sq, type_of, A8 as _A8, D8,
)


def bb(*squares):
    result = 0
    for s in squares:
        result |= square_bb(s)
    return result


def test_piece_round_trip():
    for color in (WHITE, BLACK):
        for pt in range(PAWN, KING + 1):
            piece = make_piece(color, pt)
            assert color_of(piece) == color
            assert type_of(piece) == pt


def test_piece_chars():
    assert PIECE_TO_CHAR[make_piece(BLACK, KNIGHT)] == "n"
    assert PIECE_TO_CHAR[make_piece(WHITE, QUEEN)] == "Q"


def test_square_names():
    assert square_name(A1) == "a1"
    assert square_name(H8) == "h8"
    for s in range(64):
        assert parse_square(square_name(s)) == s
        assert make_square(file_of(s), rank_of(s)) == s


def test_square_errors():
    with pytest.raises(ValueError):
        square_name(64)
    with pytest.raises(ValueError):
        parse_square("i9")
    with pytest.raises(ValueError):
        make_square(8, 0)


def test_relative():
    assert relative_square(BLACK, A1) == A8
    assert relative_square(WHITE, E2) == E2
    assert relative_rank(BLACK, RANK_1) == RANK_8
    assert make_castling_right(BLACK, QUEEN_SIDE) == BLACK_OOO


def test_bit_helpers():
    board = bb(C3, A1)
    assert list(iter_squares(board)) == [A1, C3]
    assert popcount(board) == len(list(iter_squares(board)))
    assert lsb(board) == A1
    assert more_than_one(board)
    assert not more_than_one(square_bb(C3))
    with pytest.raises(ValueError):
        lsb(0)


def test_square_colours():
    assert (DARK_SQUARES & square_bb(A1)) == square_bb(A1)
    assert (LIGHT_SQUARES & square_bb(H1)) == square_bb(H1)
    assert (DARK_SQUARES & square_bb(H1)) == 0
    assert popcount(DARK_SQUARES) == 32
    assert popcount(LIGHT_SQUARES) == 32
    assert (DARK_SQUARES ^ LIGHT_SQUARES) == FULL_BB


def test_shift():
    assert shift(file_bb(FILE_H), EAST) == 0
    assert shift(rank_bb(RANK_8), NORTH) == 0
    assert shift(square_bb(E4), NORTH_EAST) == square_bb(F5)
    with pytest.raises(ValueError):
        shift(1, 3)


def test_pawn_attacks():
    assert pawn_attacks(WHITE, E4) == bb(D5, F5)
    assert pawn_attacks(WHITE, A2) == bb(B3)
    assert pawn_attacks(BLACK, E5) == bb(_D4, F4)
    assert pawn_attacks_bb(bb(A2, H2), WHITE) == bb(B3, G3)


def test_leaper_attacks():
    assert attacks_bb(KNIGHT, A1, 0) == bb(B3, C2)
    assert attacks_bb(KING, A1, FULL_BB) == bb(A2, B1, B2)


def test_slider_attacks():
    assert attacks_bb(ROOK, A1, bb(A3, C1)) == bb(A2, A3, B1, C1)
    assert popcount(attacks_bb(BISHOP, D4, 0)) == 13
    for s in range(64):
        assert popcount(attacks_bb(ROOK, s, 0)) == 14
        assert attacks_bb(QUEEN, s, 0) == attacks_bb(ROOK, s, 0) | attacks_bb(BISHOP, s, 0)
    with pytest.raises(ValueError):
        attacks_bb(PAWN, E4, 0)


def test_between_and_line():
    diagonal = bb(B2, C3, D4, E5, 45, 54, H8)
    assert between_bb(A1, H8) == diagonal
    assert between_bb(A1, B3) == square_bb(B3)
    assert line_bb(A1, C3) == line_bb(B2, H8)
    assert line_bb(A1, C3) & square_bb(G7)
    assert line_bb(A1, B3) == 0
    assert aligned(A1, C3, H8)
    assert not aligned(A1, C3, H7)


def test_between_symmetric():
    for a in range(64):
        for b in range(64):
            if a != b and line_bb(a, b):
                assert between_bb(a, b) ^ square_bb(b) == between_bb(b, a) ^ square_bb(a)


def test_move_round_trip():
    for f in range(64):
        for t in range(64):
            m = make_move(f, t)
            assert (from_sq(m), to_sq(m)) == (f, t)
            assert move_type(m) == MoveType.NORMAL
    assert move_type(make_enpassant(E5, D8 - 2)) == MoveType.ENPASSANT


def test_promotion_round_trip():
    for pt in (KNIGHT, BISHOP, ROOK, QUEEN):
        m = make_promotion(E7, E8, pt)
        assert promotion_type(m) == pt
        assert move_type(m) == MoveType.PROMOTION
        assert (from_sq(m), to_sq(m)) == (E7, E8)
    with pytest.raises(ValueError):
        make_promotion(E7, E8, KING)


def test_move_to_uci():
    assert move_to_uci(make_move(E2, E4)) == "e2e4"
    assert move_to_uci(make_castling(E1, H1), False) == "e1g1"
    assert move_to_uci(make_castling(E1, H1), True) == "e1h1"
    assert move_to_uci(make_castling(E8, _A8)) == "e8c8"
    assert move_to_uci(make_promotion(E7, E8, QUEEN)) == "e7e8q"
    assert move_to_uci(MOVE_NULL) == "0000"
    assert move_to_uci(MOVE_NONE) == "(none)"


def test_passed_pawn_span():
    span = passed_pawn_span(WHITE, E4)
    assert (span & square_bb(D5)) == square_bb(D5)
    assert (span & square_bb(E8)) == square_bb(E8)
    assert (span & square_bb(E3)) == 0
    assert (span & square_bb(G5)) == 0
    assert popcount(span) == 12
    black_span = passed_pawn_span(BLACK, E5)
    assert (black_span & square_bb(E1)) == square_bb(E1)
    assert popcount(black_span) == 12


def test_score_arithmetic():
    a, b = Score(3, -7), Score(11, 5)
    assert (a + b) - b == a
    assert -(-a) == a
    assert a + (-a) == Score()
    with pytest.raises(TypeError):
        a + 1