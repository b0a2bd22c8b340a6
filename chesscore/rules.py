"""Legality, check detection, static exchange evaluation and draw detection."""

from __future__ import annotations

from chesscore.core import (
    BISHOP, C1, D1, EAST, F1, G1, KING, KNIGHT, PAWN, QUEEN, ROOK, WEST,
    MoveType, aligned, attacks_bb, between_bb, color_of, file_of, from_sq,
    lsb, make_square, more_than_one, move_type, pawn_attacks, promotion_type,
    pseudo_attacks, rank_of, relative_rank, relative_square, square_bb, to_sq,
    type_of, RANK_2,
)
from chesscore.movegen import generate_evasions, generate_non_evasions, generate_quiets
from chesscore.position import Position

PAWN_VALUE_MG = 126
KNIGHT_VALUE_MG = 781
BISHOP_VALUE_MG = 825
ROOK_VALUE_MG = 1276
QUEEN_VALUE_MG = 2538

_TYPE_VALUES_MG = (0, PAWN_VALUE_MG, KNIGHT_VALUE_MG, BISHOP_VALUE_MG,
                   ROOK_VALUE_MG, QUEEN_VALUE_MG, 0, 0)
PIECE_VALUE_MG = _TYPE_VALUES_MG + _TYPE_VALUES_MG

_EXCHANGE_LADDER = (
    (PAWN, PAWN_VALUE_MG),
    (KNIGHT, KNIGHT_VALUE_MG),
    (BISHOP, BISHOP_VALUE_MG),
    (ROOK, ROOK_VALUE_MG),
    (QUEEN, QUEEN_VALUE_MG),
)


def _pawn_push(color: int) -> int:
    return 8 if color == 0 else -8


def is_legal(pos: Position, move: int) -> bool:
    """Whether a pseudo-legal move leaves the mover's king safe."""
    us = pos.side_to_move
    them = us ^ 1
    origin, target = from_sq(move), to_sq(move)
    kind = move_type(move)

    if kind == MoveType.ENPASSANT:
        ksq = pos.king_square(us)
        capsq = target ^ 8
        occupied = pos.pieces() ^ square_bb(origin) ^ square_bb(capsq) ^ square_bb(target)
        return not (attacks_bb(ROOK, ksq, occupied) & pos.pieces_of(them, QUEEN, ROOK)) \
            and not (attacks_bb(BISHOP, ksq, occupied) & pos.pieces_of(them, QUEEN, BISHOP))

    if kind == MoveType.CASTLING:
        king_to = relative_square(us, G1 if target > origin else C1)
        step = WEST if king_to > origin else EAST
        enemies = pos.pieces_of(them)
        s = king_to
        while s != origin:
            if pos.attackers_to(s) & enemies:
                return False
            s += step
        # In Chess960 the castling rook may have hidden a slider attack.
        return not pos.chess960 or not (pos.blockers_for_king(us) & square_bb(target))

    if pos.pieces(KING) & square_bb(origin):
        occupied = pos.pieces() ^ square_bb(origin)
        return not (pos.attackers_to(target, occupied) & pos.pieces_of(them))

    return not (pos.blockers_for_king(us) & square_bb(origin)) \
        or aligned(origin, target, pos.king_square(us))


def is_pseudo_legal(pos: Position, move: int) -> bool:
    """Whether an arbitrary move, e.g. from a hash table, is pseudo-legal here."""
    us = pos.side_to_move
    origin = from_sq(move)
    kind = move_type(move)

    if not pos.pieces_of(us) & square_bb(origin):
        return False

    if kind == MoveType.CASTLING:
        if pos.checkers():
            return False
        return move in generate_quiets(pos)

    target = to_sq(move)
    if pos.pieces_of(us) & square_bb(target):
        return False

    occupied = pos.pieces()
    pt = type_of(pos.piece_on(origin))
    if pt != PAWN:
        if kind != MoveType.NORMAL:
            return False
        if not attacks_bb(pt, origin, occupied) & square_bb(target):
            return False
        if pt == KING:
            # The king's own square must not shield the destination.
            return not (pos.checkers()
                        and pos.attackers_to(target, occupied ^ square_bb(origin))
                        & pos.pieces_of(us ^ 1))
    else:
        push = _pawn_push(us)
        captures = pawn_attacks(us, origin) & pos.pieces_of(us ^ 1) & square_bb(target)
        single = origin + push == target and not pos.piece_on(target)
        if kind == MoveType.NORMAL:
            if not (target + 0x08) & 0x30:
                return False
            double = (origin + 2 * push == target
                      and rank_of(origin) == relative_rank(us, RANK_2)
                      and not pos.piece_on(target)
                      and not pos.piece_on(target - push))
            if not captures and not single and not double:
                return False
        elif kind == MoveType.PROMOTION:
            if not captures and not single:
                return False
        else:
            return target == pos.ep_square and bool(pawn_attacks(us, origin) & square_bb(target))

    checkers = pos.checkers()
    if checkers:
        if more_than_one(checkers):
            return False
        if not between_bb(pos.king_square(us), lsb(checkers)) & square_bb(target):
            return False
    return True


def _gives_check_special(pos: Position, move: int) -> bool:
    st = pos.st
    us = pos.side_to_move
    origin, target = from_sq(move), to_sq(move)
    ksq = st.ksq

    if pos.blockers_for_king(us ^ 1) & square_bb(origin) and not aligned(origin, target, ksq):
        return True

    kind = move_type(move)
    if kind == MoveType.NORMAL:
        return bool(st.check_squares[type_of(pos.piece_on(origin))] & square_bb(target))
    if kind == MoveType.PROMOTION:
        occupied = pos.pieces() ^ square_bb(origin)
        return bool(attacks_bb(promotion_type(move), target, occupied) & square_bb(ksq))
    if kind == MoveType.ENPASSANT:
        if st.check_squares[PAWN] & square_bb(target):
            return True
        capsq = make_square(file_of(target), rank_of(origin))
        b = pos.pieces() ^ square_bb(origin) ^ square_bb(target) ^ square_bb(capsq)
        return bool(attacks_bb(ROOK, ksq, b) & pos.pieces_of(us, QUEEN, ROOK)) \
            or bool(attacks_bb(BISHOP, ksq, b) & pos.pieces_of(us, QUEEN, BISHOP))
    rook_to = relative_square(us, F1 if target > origin else D1)
    return bool(pseudo_attacks(ROOK, rook_to) & square_bb(ksq)) \
        and bool(attacks_bb(ROOK, rook_to, pos.pieces() ^ square_bb(origin)) & square_bb(ksq))


def gives_check(pos: Position, move: int) -> bool:
    """Whether a pseudo-legal move gives check to the opponent."""
    us = pos.side_to_move
    if move_type(move) == MoveType.NORMAL and not (pos.blockers_for_king(us ^ 1) & pos.pieces_of(us)):
        piece_type = type_of(pos.moved_piece(move))
        return bool(pos.st.check_squares[piece_type] & square_bb(to_sq(move)))
    return _gives_check_special(pos, move)


def see_test(pos: Position, move: int, threshold: int) -> bool:
    """Whether the static exchange evaluation of a move is at least `threshold`."""
    if move_type(move) != MoveType.NORMAL:
        return 0 >= threshold

    origin, target = from_sq(move), to_sq(move)
    swap = PIECE_VALUE_MG[pos.piece_on(target)] - threshold
    if swap < 0:
        return False
    swap = PIECE_VALUE_MG[pos.piece_on(origin)] - swap
    if swap <= 0:
        return True

    occ = pos.pieces() ^ square_bb(origin) ^ square_bb(target)
    side = color_of(pos.piece_on(origin))
    attackers = pos.attackers_to(target, occ)
    bishops_queens = pos.pieces(BISHOP, QUEEN)
    rooks_queens = pos.pieces(ROOK, QUEEN)
    res = 1

    while True:
        side ^= 1
        attackers &= occ
        side_attackers = attackers & pos.pieces_of(side)
        if not side_attackers:
            break
        blockers = pos.blockers_for_king(side)
        if side_attackers & blockers and pos.st.pinners_for_king[side] & occ:
            side_attackers &= ~blockers
        if not side_attackers:
            break
        res ^= 1

        for piece_type, value in _EXCHANGE_LADDER:
            bb = side_attackers & pos.pieces(piece_type)
            if bb:
                break
        else:
            # Only the king can recapture: legal only if nothing defends.
            return not res if attackers & ~pos.pieces_of(side) else bool(res)

        swap = value - swap
        if swap < res:
            break
        occ ^= bb & -bb
        if piece_type in (PAWN, BISHOP, QUEEN):
            attackers |= attacks_bb(BISHOP, target, occ) & bishops_queens
        if piece_type in (ROOK, QUEEN):
            attackers |= attacks_bb(ROOK, target, occ) & rooks_queens

    return bool(res)


def generate_legal(pos: Position) -> list[int]:
    """All legal moves of the side to move."""
    us = pos.side_to_move
    pinned = pos.blockers_for_king(us) & pos.pieces_of(us)
    ksq = pos.king_square(us)
    moves = generate_evasions(pos) if pos.checkers() else generate_non_evasions(pos)

    def needs_check(move: int) -> bool:
        origin = from_sq(move)
        return bool(pinned & square_bb(origin)) or origin == ksq \
            or move_type(move) == MoveType.ENPASSANT

    return [m for m in moves if not needs_check(m) or is_legal(pos, m)]


def is_draw(pos: Position) -> bool:
    """Draw by the fifty-move rule or by repetition; stalemate is not detected."""
    st = pos.st
    if st.rule50 > 99:
        if not pos.checkers():
            return True
        return bool(generate_legal(pos))

    current = len(pos.states) - 1
    for back in range(4, st.plies_from_null + 1, 2):
        index = current - back
        if index < 0:
            break
        if pos.states[index].key == st.key:
            return True
    return False