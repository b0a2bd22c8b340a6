"""Pawn structure evaluation, king shelter and a hashed cache of pawn entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from chesscore.core import (
    BLACK, C1, DARK_SQUARES, FULL_BB, G1, KING, KING_SIDE, NORTH, NORTH_EAST,
    NORTH_WEST, PAWN, QUEEN_SIDE, RANK_5, SOUTH, SOUTH_EAST, SOUTH_WEST,
    SQ_NONE, WHITE, WHITE_OO, WHITE_OOO, Score, file_bb, file_of, iter_squares,
    lsb, make_castling_right, more_than_one, passed_pawn_span, pawn_attacks,
    pawn_attacks_bb, popcount, pseudo_attacks, rank_bb, rank_of, relative_rank,
    relative_square, shift, square_bb,
)

DEFAULT_PAWN_ENTRIES = 2048

LIGHT_SQUARES = ~DARK_SQUARES & FULL_BB

# Pawn penalties, as (middlegame, endgame).
BACKWARD = (9, 22)
DOUBLED = (13, 51)
DOUBLED_EARLY = (20, 7)
ISOLATED = (3, 15)
WEAK_LEVER = (4, 58)
WEAK_UNOPPOSED = (13, 24)

# Bonus for blocked pawns on the 5th and 6th rank.
BLOCKED_PAWN = ((-17, -6), (-9, 2), (0, 0), (0, 0))

BLOCKED_STORM = ((0, 0), (0, 0), (75, 78), (-8, 16), (-6, 10), (-6, 6), (0, 2), (0, 0))

CONNECTED = (0, 5, 7, 11, 23, 48, 87, 0)

# Strength of our pawn shelter by [distance from edge][rank].
SHELTER_STRENGTH = (
    (-5, 82, 92, 54, 36, 22, 28, 0),
    (-44, 63, 33, -50, -30, -12, -62, 0),
    (-11, 77, 22, -6, 31, 8, -45, 0),
    (-39, -12, -29, -50, -43, -68, -164, 0),
)

# Danger of enemy pawns advancing toward our king by [distance from edge][rank].
UNBLOCKED_STORM = (
    (87, -288, -168, 96, 47, 44, 46, 0),
    (42, -25, 120, 45, 34, -9, 24, 0),
    (-8, 51, 167, 35, -4, -16, -12, 0),
    (-17, -13, 100, 4, 9, -16, -31, 0),
)

# KING_ON_FILE[semi-open for us][semi-open for them]
KING_ON_FILE = (((-21, 10), (-7, 1)), ((0, -3), (9, -4)))


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def _add(a: tuple[int, int], b: tuple[int, int]) -> tuple[int, int]:
    return a[0] + b[0], a[1] + b[1]


def _sub(a: tuple[int, int], b: tuple[int, int]) -> tuple[int, int]:
    return a[0] - b[0], a[1] - b[1]


def _forward_ranks(color: int, rank: int) -> int:
    """All squares on ranks strictly in front of `rank` from `color`'s view."""
    bb = 0
    ranks = range(rank + 1, 8) if color == WHITE else range(0, rank)
    for r in ranks:
        bb |= rank_bb(r)
    return bb


def _forward_file(color: int, square: int) -> int:
    return _forward_ranks(color, rank_of(square)) & file_bb(file_of(square))


def _adjacent_files(file: int) -> int:
    bb = 0
    if file > 0:
        bb |= file_bb(file - 1)
    if file < 7:
        bb |= file_bb(file + 1)
    return bb


def _pawn_attack_span(color: int, square: int) -> int:
    return _forward_ranks(color, rank_of(square)) & _adjacent_files(file_of(square))


def _pawn_double_attacks(bb: int, color: int) -> int:
    if color == WHITE:
        return shift(bb, NORTH_WEST) & shift(bb, NORTH_EAST)
    return shift(bb, SOUTH_WEST) & shift(bb, SOUTH_EAST)


def _msb(bb: int) -> int:
    return bb.bit_length() - 1


def _backmost(color: int, bb: int) -> int:
    return lsb(bb) if color == WHITE else _msb(bb)


def _frontmost(color: int, bb: int) -> int:
    return _msb(bb) if color == WHITE else lsb(bb)


@lru_cache(maxsize=None)
def _distance_ring(square: int, distance: int) -> int:
    """Squares at exactly `distance` king steps from `square`."""
    f, r = file_of(square), rank_of(square)
    bb = 0
    for s in range(64):
        if max(abs(file_of(s) - f), abs(rank_of(s) - r)) == distance:
            bb |= square_bb(s)
    return bb


def _castling_rights_of(pos, color: int) -> int:
    return pos.st.castling_rights & ((WHITE_OO | WHITE_OOO) << (2 * color))


@dataclass
class PawnEntry:
    """Information about one pawn structure."""

    key: int = 0
    passed_pawns: list[int] = field(default_factory=lambda: [0, 0])
    pawn_attacks: list[int] = field(default_factory=lambda: [0, 0])
    pawn_attacks_span: list[int] = field(default_factory=lambda: [0, 0])
    king_safety_scores: list[Score | None] = field(default_factory=lambda: [None, None])
    score: Score = field(default_factory=lambda: Score(0, 0))
    king_squares: list[int] = field(default_factory=lambda: [SQ_NONE, SQ_NONE])
    castling_rights: list[int] = field(default_factory=lambda: [0, 0])
    semiopen_files: list[int] = field(default_factory=lambda: [0xFF, 0xFF])
    pawns_on_squares: list[list[int]] = field(default_factory=lambda: [[0, 0], [0, 0]])
    blocked_count: int = 0
    passed_count: int = 0
    open_files: int = 0

    def is_on_semiopen_file(self, color: int, square: int) -> bool:
        """Whether `color` has no pawn on the file of `square`."""
        return bool(self.semiopen_files[color] & (1 << file_of(square)))

    def pawns_on_same_color_squares(self, color: int, square: int) -> int:
        """Number of `color` pawns on squares of the same shade as `square`."""
        return self.pawns_on_squares[color][1 if DARK_SQUARES & square_bb(square) else 0]

    def king_safety(self, pos, color: int, king_square: int) -> Score:
        """Shelter and storm score for the king, cached until king or rights change."""
        cached = self.king_safety_scores[color]
        if (cached is not None
                and self.king_squares[color] == king_square
                and self.castling_rights[color] == _castling_rights_of(pos, color)):
            return cached
        mg, eg = self._do_king_safety(pos, king_square, color)
        result = Score(mg, eg)
        self.king_safety_scores[color] = result
        return result

    def _evaluate_shelter(self, pos, ksq: int, us: int) -> tuple[int, int]:
        them = us ^ 1
        b = pos.pieces(PAWN) & ~_forward_ranks(them, rank_of(ksq))
        our_pawns = b & pos.pieces_of(us) & ~self.pawn_attacks[them]
        their_pawns = b & pos.pieces_of(them)
        bonus = (5, 5)

        center = min(max(file_of(ksq), 1), 6)
        for f in range(center - 1, center + 2):
            b = our_pawns & file_bb(f)
            our_rank = relative_rank(us, rank_of(_backmost(us, b))) if b else 0
            b = their_pawns & file_bb(f)
            their_rank = relative_rank(us, rank_of(_frontmost(them, b))) if b else 0

            d = min(f, 7 - f)
            bonus = _add(bonus, (SHELTER_STRENGTH[d][our_rank], 0))
            if our_rank and our_rank == their_rank - 1:
                bonus = _sub(bonus, BLOCKED_STORM[their_rank])
            else:
                bonus = _sub(bonus, (UNBLOCKED_STORM[d][their_rank], 0))

        ours = int(self.is_on_semiopen_file(us, ksq))
        theirs = int(self.is_on_semiopen_file(them, ksq))
        return _sub(bonus, KING_ON_FILE[ours][theirs])

    def _do_king_safety(self, pos, ksq: int, us: int) -> tuple[int, int]:
        self.king_squares[us] = ksq
        self.castling_rights[us] = _castling_rights_of(pos, us)

        pawns = pos.pieces_of(us, PAWN)
        if not pawns:
            min_pawn_dist = 6
        elif pawns & pseudo_attacks(KING, ksq):
            min_pawn_dist = 1
        else:
            min_pawn_dist = 1
            while min_pawn_dist < 6 and not _distance_ring(ksq, min_pawn_dist) & pawns:
                min_pawn_dist += 1

        shelter = self._evaluate_shelter(pos, ksq, us)
        for side, square in ((KING_SIDE, G1), (QUEEN_SIDE, C1)):
            if pos.can_castle(make_castling_right(us, side)):
                s = self._evaluate_shelter(pos, relative_square(us, square), us)
                if s[0] > shelter[0]:
                    shelter = s

        return _sub(shelter, (0, 16 * min_pawn_dist))


def _evaluate_side(pos, e: PawnEntry, us: int) -> tuple[int, int]:
    them = us ^ 1
    up, down = (NORTH, SOUTH) if us == WHITE else (SOUTH, NORTH)
    score = (0, 0)

    our_pawns = pos.pieces_of(us, PAWN)
    their_pawns = pos.pieces(PAWN) ^ our_pawns
    double_attack_them = _pawn_double_attacks(their_pawns, them)

    e.passed_pawns[us] = 0
    e.semiopen_files[us] = 0xFF
    e.king_squares[us] = SQ_NONE
    e.pawn_attacks[us] = e.pawn_attacks_span[us] = pawn_attacks_bb(our_pawns, us)
    e.pawns_on_squares[us][BLACK] = popcount(our_pawns & DARK_SQUARES)
    e.pawns_on_squares[us][WHITE] = popcount(our_pawns & LIGHT_SQUARES)
    e.blocked_count += popcount(shift(our_pawns, up) & (their_pawns | double_attack_them))

    for s in iter_squares(our_pawns):
        f = file_of(s)
        r = relative_rank(us, rank_of(s))
        e.semiopen_files[us] &= ~(1 << f) & 0xFF

        opposed = their_pawns & _forward_file(us, s)
        blocked = their_pawns & square_bb(s + up)
        stoppers = their_pawns & passed_pawn_span(us, s)
        lever = their_pawns & pawn_attacks(us, s)
        lever_push = their_pawns & pawn_attacks(us, s + up)
        doubled = our_pawns & square_bb(s - up)
        neighbours = our_pawns & _adjacent_files(f)
        phalanx = neighbours & rank_bb(rank_of(s))
        support = neighbours & rank_bb(rank_of(s - up))

        if doubled and not (our_pawns & shift(
                their_pawns | pawn_attacks_bb(their_pawns, them), down)):
            score = _sub(score, DOUBLED_EARLY)

        backward = (not neighbours & _forward_ranks(them, rank_of(s + up))
                    and bool(lever_push | blocked))

        if not backward and not blocked:
            e.pawn_attacks_span[us] |= _pawn_attack_span(us, s)

        passed = (
            not (stoppers ^ lever)
            or (not (stoppers ^ lever_push)
                and popcount(phalanx) >= popcount(lever_push))
            or (stoppers == blocked and r >= RANK_5
                and bool(shift(support, up) & ~(their_pawns | double_attack_them)))
        )
        passed = passed and not (_forward_file(us, s) & our_pawns)
        if passed:
            e.passed_pawns[us] |= square_bb(s)

        if support | phalanx:
            v = (CONNECTED[r] * (2 + bool(phalanx) - bool(opposed))
                 + 22 * popcount(support))
            score = _add(score, (v, _cdiv(v * (r - 2), 4)))
        elif not neighbours:
            if (opposed and our_pawns & _forward_file(them, s)
                    and not their_pawns & _adjacent_files(f)):
                score = _sub(score, DOUBLED)
            else:
                score = _sub(score, ISOLATED)
                if not opposed:
                    score = _sub(score, WEAK_UNOPPOSED)
        elif backward:
            score = _sub(score, BACKWARD)
            if not opposed and (s + 1) & 0x06:
                score = _sub(score, WEAK_UNOPPOSED)

        if not support:
            if doubled:
                score = _sub(score, DOUBLED)
            if more_than_one(lever):
                score = _sub(score, WEAK_LEVER)

        if blocked and r >= RANK_5:
            score = _add(score, BLOCKED_PAWN[r - RANK_5])

    return score


def _fill(pos, e: PawnEntry, key: int) -> None:
    e.key = key
    e.blocked_count = 0
    e.king_safety_scores = [None, None]
    e.castling_rights = [0, 0]
    white = _evaluate_side(pos, e, WHITE)
    black = _evaluate_side(pos, e, BLACK)
    mg, eg = _sub(white, black)
    e.score = Score(mg, eg)
    e.open_files = popcount(e.semiopen_files[WHITE] & e.semiopen_files[BLACK])
    e.passed_count = popcount(e.passed_pawns[WHITE] | e.passed_pawns[BLACK])


def evaluate_pawns(pos) -> PawnEntry:
    """Evaluate the pawn structure of a position from White's point of view."""
    entry = PawnEntry()
    _fill(pos, entry, pos.st.pawn_key)
    return entry


class PawnTable:
    """A fixed-size cache of pawn entries indexed by pawn key."""

    def __init__(self, size: int = DEFAULT_PAWN_ENTRIES) -> None:
        if size <= 0 or size & (size - 1):
            raise ValueError("pawn table size must be a positive power of two")
        self.size = size
        self._entries: list[PawnEntry | None] = [None] * size

    def probe(self, pos) -> PawnEntry:
        """The entry for the position's pawn structure, computing it on a miss."""
        key = pos.st.pawn_key
        index = key & (self.size - 1)
        entry = self._entries[index]
        if entry is None:
            entry = PawnEntry()
            self._entries[index] = entry
            _fill(pos, entry, key)
        elif entry.key != key:
            _fill(pos, entry, key)
        return entry