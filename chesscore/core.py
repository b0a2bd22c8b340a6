"""Board primitives: colours, pieces, squares, bitboards, attack sets and moves."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

WHITE, BLACK = 0, 1

NO_PIECE_TYPE, PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING = range(7)

PIECE_TO_CHAR = " PNBRQK  pnbrqk"

NO_PIECE = 0
W_PAWN, W_KNIGHT, W_BISHOP, W_ROOK, W_QUEEN, W_KING = range(1, 7)
B_PAWN, B_KNIGHT, B_BISHOP, B_ROOK, B_QUEEN, B_KING = range(9, 15)

FILE_A, FILE_B, FILE_C, FILE_D, FILE_E, FILE_F, FILE_G, FILE_H = range(8)
RANK_1, RANK_2, RANK_3, RANK_4, RANK_5, RANK_6, RANK_7, RANK_8 = range(8)

(
    A1, B1, C1, D1, E1, F1, G1, H1,
    A2, B2, C2, D2, E2, F2, G2, H2,
    A3, B3, C3, D3, E3, F3, G3, H3,
    A4, B4, C4, D4, E4, F4, G4, H4,
    A5, B5, C5, D5, E5, F5, G5, H5,
    A6, B6, C6, D6, E6, F6, G6, H6,
    A7, B7, C7, D7, E7, F7, G7, H7,
    A8, B8, C8, D8, E8, F8, G8, H8,
) = range(64)
SQ_NONE = 64

NORTH, SOUTH, EAST, WEST = 8, -8, 1, -1
NORTH_EAST, NORTH_WEST, SOUTH_EAST, SOUTH_WEST = 9, 7, -7, -9

KING_SIDE, QUEEN_SIDE = 0, 1
WHITE_OO, WHITE_OOO, BLACK_OO, BLACK_OOO = 1, 2, 4, 8
ANY_CASTLING = 15

FULL_BB = (1 << 64) - 1
FILE_A_BB = 0x0101010101010101
FILE_H_BB = FILE_A_BB << 7
RANK_1_BB = 0xFF
DARK_SQUARES = 0xAA55AA55AA55AA55
LIGHT_SQUARES = ~DARK_SQUARES & FULL_BB

MOVE_NONE = 0
MOVE_NULL = 65


class MoveType(IntEnum):
    """Kind of move, stored in the two top bits of a move."""

    NORMAL = 0
    PROMOTION = 1 << 14
    ENPASSANT = 2 << 14
    CASTLING = 3 << 14


@dataclass(frozen=True)
class Score:
    """A pair of middle-game and end-game values."""

    mg: int = 0
    eg: int = 0

    def __add__(self, other: Score) -> Score:
        if not isinstance(other, Score):
            return NotImplemented
        return Score(self.mg + other.mg, self.eg + other.eg)

    def __sub__(self, other: Score) -> Score:
        if not isinstance(other, Score):
            return NotImplemented
        return Score(self.mg - other.mg, self.eg - other.eg)

    def __neg__(self) -> Score:
        return Score(-self.mg, -self.eg)


SCORE_ZERO = Score()


# --- pieces and squares -----------------------------------------------------

def make_piece(color: int, piece_type: int) -> int:
    return (color << 3) + piece_type


def color_of(piece: int) -> int:
    return piece >> 3


def type_of(piece: int) -> int:
    return piece & 7


def make_square(file: int, rank: int) -> int:
    if not (0 <= file < 8 and 0 <= rank < 8):
        raise ValueError(f"file {file} / rank {rank} out of range")
    return (rank << 3) + file


def file_of(square: int) -> int:
    return square & 7


def rank_of(square: int) -> int:
    return square >> 3


def relative_rank(color: int, rank: int) -> int:
    return rank ^ (color * 7)


def relative_square(color: int, square: int) -> int:
    return square ^ (color * 56)


def square_name(square: int) -> str:
    if not 0 <= square < 64:
        raise ValueError(f"invalid square {square}")
    return "abcdefgh"[file_of(square)] + "12345678"[rank_of(square)]


def parse_square(name: str) -> int:
    """Return the square named like 'e4'."""
    if len(name) != 2 or name[0] not in "abcdefgh" or name[1] not in "12345678":
        raise ValueError(f"invalid square name {name!r}")
    return make_square(ord(name[0]) - ord("a"), ord(name[1]) - ord("1"))


def distance(a: int, b: int) -> int:
    return max(abs(file_of(a) - file_of(b)), abs(rank_of(a) - rank_of(b)))


def make_castling_right(color: int, side: int) -> int:
    return WHITE_OO << (2 * color + side)


# --- bitboards --------------------------------------------------------------

def square_bb(square: int) -> int:
    return 1 << square


def file_bb(file: int) -> int:
    return FILE_A_BB << file


def rank_bb(rank: int) -> int:
    return RANK_1_BB << (8 * rank)


def popcount(bb: int) -> int:
    return bb.bit_count()


def lsb(bb: int) -> int:
    if not bb:
        raise ValueError("empty bitboard")
    return (bb & -bb).bit_length() - 1


def msb(bb: int) -> int:
    if not bb:
        raise ValueError("empty bitboard")
    return bb.bit_length() - 1


def iter_squares(bb: int) -> Iterator[int]:
    """Yield the squares of a bitboard from the lowest to the highest."""
    while bb:
        yield (bb & -bb).bit_length() - 1
        bb &= bb - 1


def more_than_one(bb: int) -> bool:
    return bool(bb & (bb - 1))


def frontmost_sq(color: int, bb: int) -> int:
    return msb(bb) if color == WHITE else lsb(bb)


def backmost_sq(color: int, bb: int) -> int:
    return lsb(bb) if color == WHITE else msb(bb)


_SHIFT_MASKS = {
    NORTH: FULL_BB,
    SOUTH: FULL_BB,
    NORTH + NORTH: FULL_BB,
    SOUTH + SOUTH: FULL_BB,
    EAST: ~FILE_H_BB & FULL_BB,
    WEST: ~FILE_A_BB & FULL_BB,
    NORTH_EAST: ~FILE_H_BB & FULL_BB,
    SOUTH_EAST: ~FILE_H_BB & FULL_BB,
    NORTH_WEST: ~FILE_A_BB & FULL_BB,
    SOUTH_WEST: ~FILE_A_BB & FULL_BB,
}


def shift(bb: int, direction: int) -> int:
    """Move every square of a bitboard one step, dropping those leaving the board."""
    try:
        mask = _SHIFT_MASKS[direction]
    except KeyError:
        raise ValueError(f"unsupported direction {direction}") from None
    bb &= mask
    return (bb << direction if direction > 0 else bb >> -direction) & FULL_BB


def forward_ranks_bb(color: int, rank: int) -> int:
    """All squares on ranks strictly ahead of the given rank, from color's view."""
    if color == WHITE:
        return (FULL_BB << (8 * (rank + 1))) & FULL_BB
    return (1 << (8 * rank)) - 1


def forward_file_bb(color: int, square: int) -> int:
    return forward_ranks_bb(color, rank_of(square)) & file_bb(file_of(square))


def adjacent_files_bb(file: int) -> int:
    fb = file_bb(file)
    return shift(fb, EAST) | shift(fb, WEST)


def pawn_attack_span(color: int, square: int) -> int:
    return forward_ranks_bb(color, rank_of(square)) & adjacent_files_bb(file_of(square))


def passed_pawn_span(color: int, square: int) -> int:
    return pawn_attack_span(color, square) | forward_file_bb(color, square)


def pawn_attacks_bb(bb: int, color: int) -> int:
    """Squares attacked by all pawns of a bitboard."""
    if color == WHITE:
        return shift(bb, NORTH_WEST) | shift(bb, NORTH_EAST)
    return shift(bb, SOUTH_WEST) | shift(bb, SOUTH_EAST)


def pawn_double_attacks_bb(bb: int, color: int) -> int:
    """Squares attacked twice by pawns of a bitboard."""
    if color == WHITE:
        return shift(bb, NORTH_WEST) & shift(bb, NORTH_EAST)
    return shift(bb, SOUTH_WEST) & shift(bb, SOUTH_EAST)


# --- attack tables ----------------------------------------------------------

_DIRECTION_STEPS = {
    NORTH: (0, 1), SOUTH: (0, -1), EAST: (1, 0), WEST: (-1, 0),
    NORTH_EAST: (1, 1), NORTH_WEST: (-1, 1),
    SOUTH_EAST: (1, -1), SOUTH_WEST: (-1, -1),
}
_ROOK_DIRECTIONS = (NORTH, SOUTH, EAST, WEST)
_BISHOP_DIRECTIONS = (NORTH_EAST, NORTH_WEST, SOUTH_EAST, SOUTH_WEST)


def _walk(square: int, direction: int) -> Iterator[int]:
    df, dr = _DIRECTION_STEPS[direction]
    f, r = file_of(square) + df, rank_of(square) + dr
    while 0 <= f < 8 and 0 <= r < 8:
        yield make_square(f, r)
        f, r = f + df, r + dr


def _steps(square: int, deltas: tuple[tuple[int, int], ...]) -> int:
    bb = 0
    for df, dr in deltas:
        f, r = file_of(square) + df, rank_of(square) + dr
        if 0 <= f < 8 and 0 <= r < 8:
            bb |= square_bb(make_square(f, r))
    return bb


_RAYS: dict[int, list[int]] = {
    d: [sum(square_bb(s) for s in _walk(sq, d)) for sq in range(64)]
    for d in _DIRECTION_STEPS
}

_KNIGHT_DELTAS = ((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2))
_KING_DELTAS = ((1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1))


def _slide(square: int, occupied: int, directions: tuple[int, ...]) -> int:
    attacks = 0
    for d in directions:
        ray = _RAYS[d][square]
        blockers = ray & occupied
        if blockers:
            nearest = lsb(blockers) if d > 0 else msb(blockers)
            ray ^= _RAYS[d][nearest]
        attacks |= ray
    return attacks


PAWN_ATTACKS = (
    tuple(_steps(sq, ((-1, 1), (1, 1))) for sq in range(64)),
    tuple(_steps(sq, ((-1, -1), (1, -1))) for sq in range(64)),
)

PSEUDO_ATTACKS = (
    (0,) * 64,
    (0,) * 64,
    tuple(_steps(sq, _KNIGHT_DELTAS) for sq in range(64)),
    tuple(_slide(sq, 0, _BISHOP_DIRECTIONS) for sq in range(64)),
    tuple(_slide(sq, 0, _ROOK_DIRECTIONS) for sq in range(64)),
    tuple(_slide(sq, 0, _BISHOP_DIRECTIONS + _ROOK_DIRECTIONS) for sq in range(64)),
    tuple(_steps(sq, _KING_DELTAS) for sq in range(64)),
)


def pseudo_attacks(piece_type: int, square: int) -> int:
    """Attacks of a piece type on an empty board (none for pawns)."""
    return PSEUDO_ATTACKS[piece_type][square]


def pawn_attacks(color: int, square: int) -> int:
    return PAWN_ATTACKS[color][square]


def attacks_bb(piece_type: int, square: int, occupied: int) -> int:
    """Attacks of a non-pawn piece type from a square given the occupancy."""
    if piece_type == KNIGHT or piece_type == KING:
        return PSEUDO_ATTACKS[piece_type][square]
    if piece_type == BISHOP:
        return _slide(square, occupied, _BISHOP_DIRECTIONS)
    if piece_type == ROOK:
        return _slide(square, occupied, _ROOK_DIRECTIONS)
    if piece_type == QUEEN:
        return _slide(square, occupied, _BISHOP_DIRECTIONS + _ROOK_DIRECTIONS)
    raise ValueError(f"no colourless attacks for piece type {piece_type}")


def _build_lines() -> tuple[list[list[int]], list[list[int]]]:
    line = [[0] * 64 for _ in range(64)]
    between = [[square_bb(b) for b in range(64)] for _ in range(64)]
    for a in range(64):
        for d in _DIRECTION_STEPS:
            full = _RAYS[d][a] | _RAYS[-d][a] | square_bb(a)
            passed = 0
            for b in _walk(a, d):
                between[a][b] = passed | square_bb(b)
                passed |= square_bb(b)
                line[a][b] = full
    return line, between


_LINE, _BETWEEN = _build_lines()


def between_bb(a: int, b: int) -> int:
    """Squares strictly between a and b plus b itself; just b if not aligned."""
    return _BETWEEN[a][b]


def line_bb(a: int, b: int) -> int:
    """The whole board line through a and b, or 0 if they are not aligned."""
    return _LINE[a][b]


def aligned(a: int, b: int, c: int) -> bool:
    return bool(_LINE[a][b] & square_bb(c))


# --- moves ------------------------------------------------------------------

def make_move(from_square: int, to_square: int) -> int:
    return (from_square << 6) | to_square


def make_promotion(from_square: int, to_square: int, piece_type: int) -> int:
    if not KNIGHT <= piece_type <= QUEEN:
        raise ValueError(f"cannot promote to piece type {piece_type}")
    return MoveType.PROMOTION | ((piece_type - KNIGHT) << 12) | make_move(from_square, to_square)


def make_enpassant(from_square: int, to_square: int) -> int:
    return MoveType.ENPASSANT | make_move(from_square, to_square)


def make_castling(from_square: int, to_square: int) -> int:
    """Castling is encoded as the king capturing its own rook."""
    return MoveType.CASTLING | make_move(from_square, to_square)


def from_sq(move: int) -> int:
    return (move >> 6) & 63


def to_sq(move: int) -> int:
    return move & 63


def move_type(move: int) -> MoveType:
    return MoveType(move & (3 << 14))


def promotion_type(move: int) -> int:
    return ((move >> 12) & 3) + KNIGHT


def move_to_uci(move: int, chess960: bool = False) -> str:
    """Render a move in UCI coordinate notation."""
    if move == MOVE_NONE:
        return "(none)"
    if move == MOVE_NULL:
        return "0000"
    origin, target = from_sq(move), to_sq(move)
    kind = move_type(move)
    if kind == MoveType.CASTLING and not chess960:
        target = make_square(FILE_G if target > origin else FILE_C, rank_of(origin))
    text = square_name(origin) + square_name(target)
    if kind == MoveType.PROMOTION:
        text += PIECE_TO_CHAR[make_piece(BLACK, promotion_type(move))]
    return text