"""Pseudo-legal move generation by move category."""

from __future__ import annotations

from enum import IntEnum
from typing import Iterator

from chesscore.core import (
    BISHOP, FULL_BB, KING, KING_SIDE, KNIGHT, NORTH, NORTH_EAST, NORTH_WEST,
    PAWN, QUEEN, QUEEN_SIDE, RANK_1, RANK_2, RANK_3, RANK_6, RANK_7, RANK_8,
    ROOK, SOUTH, SOUTH_EAST, SOUTH_WEST, WHITE, WHITE_OO, WHITE_OOO,
    attacks_bb, between_bb, file_bb, file_of, iter_squares, lsb,
    make_castling, make_castling_right, make_enpassant, make_move,
    make_promotion, more_than_one, pawn_attacks, pseudo_attacks, rank_bb,
    shift, square_bb,
)
from chesscore.position import Position


class GenType(IntEnum):
    """Category of moves to generate."""

    CAPTURES = 0
    QUIETS = 1
    QUIET_CHECKS = 2
    EVASIONS = 3
    NON_EVASIONS = 4
    LEGAL = 5


def _promotions(origin: int, target: int, gen: GenType) -> Iterator[int]:
    if gen in (GenType.CAPTURES, GenType.EVASIONS, GenType.NON_EVASIONS):
        yield make_promotion(origin, target, QUEEN)
    if gen in (GenType.QUIETS, GenType.EVASIONS, GenType.NON_EVASIONS):
        for pt in (ROOK, BISHOP, KNIGHT):
            yield make_promotion(origin, target, pt)


def _pawn_moves(pos: Position, target: int, us: int, gen: GenType) -> Iterator[int]:
    them = us ^ 1
    if us == WHITE:
        rank8, rank7, rank3 = rank_bb(RANK_8), rank_bb(RANK_7), rank_bb(RANK_3)
        up, right, left = NORTH, NORTH_EAST, NORTH_WEST
    else:
        rank8, rank7, rank3 = rank_bb(RANK_1), rank_bb(RANK_2), rank_bb(RANK_6)
        up, right, left = SOUTH, SOUTH_WEST, SOUTH_EAST

    if gen in (GenType.QUIETS, GenType.QUIET_CHECKS):
        empty = target
    else:
        empty = ~pos.pieces() & FULL_BB
    if gen == GenType.EVASIONS:
        enemies = pos.checkers()
    elif gen == GenType.CAPTURES:
        enemies = target
    else:
        enemies = pos.pieces_of(them)

    pawns = pos.pieces_of(us, PAWN)
    on_7 = pawns & rank7
    not_on_7 = pawns & ~rank7

    if gen != GenType.CAPTURES:
        single = shift(not_on_7, up) & empty
        double = shift(single & rank3, up) & empty

        if gen == GenType.EVASIONS:
            single &= target
            double &= target

        if gen == GenType.QUIET_CHECKS:
            ksq = pos.st.ksq
            candidates = pos.blockers_for_king(them) & ~file_bb(file_of(ksq))
            direct = pawn_attacks(them, ksq)
            single &= direct | shift(candidates, up)
            double &= direct | shift(candidates, up + up)

        for to in iter_squares(single):
            yield make_move(to - up, to)
        for to in iter_squares(double):
            yield make_move(to - up - up, to)

    if on_7 and (gen != GenType.EVASIONS or target & rank8):
        right_caps = shift(on_7, right) & enemies
        left_caps = shift(on_7, left) & enemies
        pushes = shift(on_7, up) & empty
        if gen == GenType.EVASIONS:
            pushes &= target
        for to in iter_squares(right_caps):
            yield from _promotions(to - right, to, gen)
        for to in iter_squares(left_caps):
            yield from _promotions(to - left, to, gen)
        for to in iter_squares(pushes):
            yield from _promotions(to - up, to, gen)

    if gen in (GenType.CAPTURES, GenType.EVASIONS, GenType.NON_EVASIONS):
        for to in iter_squares(shift(not_on_7, right) & enemies):
            yield make_move(to - right, to)
        for to in iter_squares(shift(not_on_7, left) & enemies):
            yield make_move(to - left, to)

        ep = pos.ep_square
        if ep:
            # A discovered check cannot be answered by capturing en passant.
            if gen == GenType.EVASIONS and target & square_bb(ep + up):
                return
            for origin in iter_squares(not_on_7 & pawn_attacks(them, ep)):
                yield make_enpassant(origin, ep)


def _piece_moves(pos: Position, target: int, us: int, piece_type: int,
                 checks: bool) -> Iterator[int]:
    occupied = pos.pieces()
    discoverers = pos.blockers_for_king(us ^ 1)
    for origin in iter_squares(pos.pieces_of(us, piece_type)):
        b = attacks_bb(piece_type, origin, occupied) & target
        if checks and (piece_type == QUEEN or not discoverers & square_bb(origin)):
            b &= pos.st.check_squares[piece_type]
        for to in iter_squares(b):
            yield make_move(origin, to)


def _generate_all(pos: Position, us: int, gen: GenType) -> Iterator[int]:
    checks = gen == GenType.QUIET_CHECKS
    ksq = pos.king_square(us)

    if gen == GenType.EVASIONS:
        target = between_bb(ksq, lsb(pos.checkers()))
    elif gen == GenType.NON_EVASIONS:
        target = ~pos.pieces_of(us) & FULL_BB
    elif gen == GenType.CAPTURES:
        target = pos.pieces_of(us ^ 1)
    else:
        target = ~pos.pieces() & FULL_BB

    # In double check only a king move can help.
    if not (gen == GenType.EVASIONS and more_than_one(pos.checkers())):
        yield from _pawn_moves(pos, target, us, gen)
        for pt in (KNIGHT, BISHOP, ROOK, QUEEN):
            yield from _piece_moves(pos, target, us, pt, checks)

    if not checks or pos.blockers_for_king(us ^ 1) & square_bb(ksq):
        king_target = ~pos.pieces_of(us) & FULL_BB if gen == GenType.EVASIONS else target
        b = pseudo_attacks(KING, ksq) & king_target
        if checks:
            b &= ~pseudo_attacks(QUEEN, pos.king_square(us ^ 1))
        for to in iter_squares(b):
            yield make_move(ksq, to)

        if gen in (GenType.QUIETS, GenType.NON_EVASIONS) and \
                pos.can_castle((WHITE_OO | WHITE_OOO) << (2 * us)):
            for side in (KING_SIDE, QUEEN_SIDE):
                right = make_castling_right(us, side)
                if not pos.castling_impeded(right) and pos.can_castle(right):
                    yield make_castling(ksq, pos.castling_rook_square[right])


def generate(pos: Position, gen_type: GenType | int) -> list[int]:
    """Pseudo-legal moves of the given category for the side to move."""
    gen = GenType(gen_type)
    if gen == GenType.LEGAL:
        raise ValueError("legal move generation is not a pseudo-legal category")
    in_check = bool(pos.checkers())
    if (gen == GenType.EVASIONS) != in_check:
        if in_check:
            raise ValueError("side to move is in check; generate evasions")
        raise ValueError("evasions requested but side to move is not in check")
    return list(_generate_all(pos, pos.side_to_move, gen))


def generate_captures(pos: Position) -> list[int]:
    """Captures plus queen promotions."""
    return generate(pos, GenType.CAPTURES)


def generate_quiets(pos: Position) -> list[int]:
    """Non-captures, castling and underpromotions."""
    return generate(pos, GenType.QUIETS)


def generate_quiet_checks(pos: Position) -> list[int]:
    """Non-captures that give check, except castling and promotions."""
    return generate(pos, GenType.QUIET_CHECKS)


def generate_evasions(pos: Position) -> list[int]:
    """Moves that may get the side to move out of check."""
    return generate(pos, GenType.EVASIONS)


def generate_non_evasions(pos: Position) -> list[int]:
    """All captures and non-captures when not in check."""
    return generate(pos, GenType.NON_EVASIONS)