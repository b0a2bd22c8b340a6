"""Board state with incremental hashing, move making and attack queries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from chesscore.core import (
    A8, BISHOP, BLACK, C1, D1, DARK_SQUARES, F1, G1, KING, KING_SIDE, KNIGHT,
    NO_PIECE, PAWN, PIECE_TO_CHAR, QUEEN, QUEEN_SIDE, RANK_1, ROOK, WHITE,
    MoveType, attacks_bb, between_bb, color_of, file_of, from_sq, iter_squares,
    lsb, make_castling_right, make_piece, make_square, more_than_one, move_type,
    passed_pawn_span, pawn_attacks, promotion_type, pseudo_attacks, relative_rank,
    relative_square, square_bb, to_sq, type_of,
)
from chesscore.zobrist import MATERIAL_KEYS, Zobrist, default_zobrist

_MASK64 = (1 << 64) - 1
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class StateInfo:
    """Data needed to restore a position when a move is taken back."""

    pawn_key: int = 0
    material_key: int = 0
    minor_piece_key: int = 0
    non_pawn_key: list[int] = field(default_factory=lambda: [0, 0])
    plies_from_null: int = 0
    rule50: int = 0
    castling_rights: int = 0
    captured_piece: int = NO_PIECE
    ep_square: int = 0
    key: int = 0
    checkers: int = 0
    blockers_for_king: list[int] = field(default_factory=lambda: [0, 0])
    pinners_for_king: list[int] = field(default_factory=lambda: [0, 0])
    check_squares: list[int] = field(default_factory=lambda: [0] * 7)
    ksq: int = 0

    def _carry_over(self) -> StateInfo:
        """The fields that a normal move copies forward."""
        return StateInfo(
            pawn_key=self.pawn_key,
            material_key=self.material_key,
            minor_piece_key=self.minor_piece_key,
            non_pawn_key=list(self.non_pawn_key),
            plies_from_null=self.plies_from_null,
            rule50=self.rule50,
            castling_rights=self.castling_rights,
        )

    def _null_copy(self) -> StateInfo:
        """The fields that a null move copies forward."""
        state = self._carry_over()
        state.captured_piece = self.captured_piece
        state.ep_square = self.ep_square
        state.key = self.key
        state.checkers = self.checkers
        return state


class Position:
    """A chess position with a stack of states for making and unmaking moves."""

    def __init__(self, zobrist: Zobrist | None = None) -> None:
        self.zobrist = zobrist or default_zobrist()
        self._clear()
        self.states: list[StateInfo] = [StateInfo()]
        self.nodes = 0

    def _clear(self) -> None:
        self.board = [NO_PIECE] * 64
        self.by_type_bb = [0] * 7
        self.by_color_bb = [0, 0]
        self.piece_counts = [0] * 16
        self.side_to_move = WHITE
        self.chess960 = False
        self.castling_rights_mask = [0] * 64
        self.castling_rook_square = [0] * 16
        self.castling_path = [0] * 16
        self.game_ply = 0

    # --- setup --------------------------------------------------------------

    @classmethod
    def from_fen(cls, fen: str, chess960: bool = False) -> Position:
        pos = cls()
        pos.set_fen(fen, chess960)
        return pos

    def set_fen(self, fen: str, chess960: bool = False) -> None:
        """Set up the position from a FEN, Shredder-FEN or X-FEN string."""
        fields = fen.split()
        if len(fields) < 2:
            raise ValueError(f"incomplete FEN {fen!r}")
        self._clear()
        st = StateInfo()
        self.states = [st]

        square = A8
        for token in fields[0]:
            if token in "0123456789":
                square += int(token)
            elif token == "/":
                square -= 16
            else:
                piece = PIECE_TO_CHAR.find(token)
                if piece <= 0:
                    continue
                if not 0 <= square < 64:
                    raise ValueError(f"piece placement runs off the board in {fen!r}")
                self._put_piece(color_of(piece), piece, square)
                self.piece_counts[piece] += 1
                square += 1

        for color in (WHITE, BLACK):
            if not self.pieces_of(color, KING):
                raise ValueError(f"FEN {fen!r} lacks a king")

        self.side_to_move = WHITE if fields[1] == "w" else BLACK

        for token in fields[2] if len(fields) > 2 else "":
            color = BLACK if token.islower() else WHITE
            rook = make_piece(color, ROOK)
            upper = token.upper()
            if upper == "K":
                rook_square = self._find_rook(color, rook, range(7, -1, -1))
            elif upper == "Q":
                rook_square = self._find_rook(color, rook, range(8))
            elif "A" <= upper <= "H":
                rook_square = make_square(ord(upper) - ord("A"), relative_rank(color, RANK_1))
            else:
                continue
            self._set_castling_right(color, rook_square)

        ep_field = fields[3] if len(fields) > 3 else "-"
        expected_rank = "6" if self.side_to_move == WHITE else "3"
        if len(ep_field) >= 2 and ep_field[0] in "abcdefgh" and ep_field[1] == expected_rank:
            st.ep_square = make_square(ord(ep_field[0]) - ord("a"), int(ep_field[1]) - 1)
            if not self.attackers_to(st.ep_square) & self.pieces_of(self.side_to_move, PAWN):
                st.ep_square = 0

        st.rule50 = _leading_int(fields[4]) if len(fields) > 4 else 0
        fullmove = _leading_int(fields[5]) if len(fields) > 5 else 0
        self.game_ply = max(2 * (fullmove - 1), 0) + (self.side_to_move == BLACK)
        self.chess960 = bool(chess960)
        self._set_state(st)

    def _find_rook(self, color: int, rook: int, files: range) -> int:
        rank = relative_rank(color, RANK_1)
        for file in files:
            square = make_square(file, rank)
            if self.board[square] == rook:
                return square
        raise ValueError("castling right given without a rook on the back rank")

    def _set_castling_right(self, color: int, rook_from: int) -> None:
        king_from = self.king_square(color)
        side = KING_SIDE if king_from < rook_from else QUEEN_SIDE
        right = make_castling_right(color, side)
        king_to = relative_square(color, G1 if side == KING_SIDE else C1)
        rook_to = relative_square(color, F1 if side == KING_SIDE else D1)

        self.st.castling_rights |= right
        self.castling_rights_mask[king_from] |= right
        self.castling_rights_mask[rook_from] |= right
        self.castling_rook_square[right] = rook_from

        for low, high in ((rook_from, rook_to), (king_from, king_to)):
            for s in range(min(low, high), max(low, high) + 1):
                if s != king_from and s != rook_from:
                    self.castling_path[right] |= square_bb(s)

    def _set_state(self, st: StateInfo) -> None:
        z = self.zobrist
        st.key = 0
        st.material_key = 0
        st.minor_piece_key = 0
        st.pawn_key = z.no_pawns
        st.non_pawn_key = [0, 0]
        us = self.side_to_move
        st.checkers = self.attackers_to(self.king_square(us)) & self.pieces_of(us ^ 1)
        self._set_check_info()

        for s in iter_squares(self.pieces()):
            pc = self.board[s]
            st.key ^= z.psq[pc][s]
            if type_of(pc) == PAWN:
                st.pawn_key ^= z.psq[pc][s]
            else:
                st.non_pawn_key[color_of(pc)] ^= z.psq[pc][s]
                if type_of(pc) == KING or type_of(pc) <= BISHOP:
                    st.minor_piece_key ^= z.psq[pc][s]

        st.key ^= z.enpassant[file_of(st.ep_square)]
        if us == BLACK:
            st.key ^= z.side
        st.key ^= z.castling[st.castling_rights]

        material = 0
        for pt in range(PAWN, KING + 1):
            for color in (WHITE, BLACK):
                material += self.piece_count(color, pt) * MATERIAL_KEYS[8 * color + pt]
        st.material_key = material & _MASK64

    def _set_check_info(self) -> None:
        st = self.st
        for color in (WHITE, BLACK):
            blockers, pinners = self.slider_blockers(
                self.by_color_bb[color ^ 1], self.king_square(color))
            st.blockers_for_king[color] = blockers
            st.pinners_for_king[color] = pinners

        them = self.side_to_move ^ 1
        ksq = self.king_square(them)
        st.ksq = ksq
        occupied = self.pieces()
        bishop = attacks_bb(BISHOP, ksq, occupied)
        rook = attacks_bb(ROOK, ksq, occupied)
        st.check_squares = [
            0,
            pawn_attacks(them, ksq),
            pseudo_attacks(KNIGHT, ksq),
            bishop,
            rook,
            bishop | rook,
            0,
        ]

    # --- board updates ------------------------------------------------------

    def _put_piece(self, color: int, piece: int, square: int) -> None:
        bb = square_bb(square)
        self.board[square] = piece
        self.by_type_bb[0] |= bb
        self.by_type_bb[type_of(piece)] |= bb
        self.by_color_bb[color] |= bb

    def _remove_piece(self, color: int, piece: int, square: int) -> None:
        bb = square_bb(square)
        self.board[square] = NO_PIECE
        self.by_type_bb[0] ^= bb
        self.by_type_bb[type_of(piece)] ^= bb
        self.by_color_bb[color] ^= bb

    def _move_piece(self, color: int, piece: int, origin: int, target: int) -> None:
        bb = square_bb(origin) ^ square_bb(target)
        self.by_type_bb[0] ^= bb
        self.by_type_bb[type_of(piece)] ^= bb
        self.by_color_bb[color] ^= bb
        self.board[origin] = NO_PIECE
        self.board[target] = piece

    # --- queries ------------------------------------------------------------

    @property
    def st(self) -> StateInfo:
        """The current state."""
        return self.states[-1]

    @property
    def key(self) -> int:
        return self.st.key

    @property
    def ep_square(self) -> int:
        return self.st.ep_square

    @property
    def rule50(self) -> int:
        return self.st.rule50

    @property
    def captured_piece(self) -> int:
        return self.st.captured_piece

    def pieces(self, *piece_types: int) -> int:
        """All occupied squares, or those holding any of the given piece types."""
        if not piece_types:
            return self.by_type_bb[0]
        bb = 0
        for pt in piece_types:
            bb |= self.by_type_bb[pt]
        return bb

    def pieces_of(self, color: int, *piece_types: int) -> int:
        return self.pieces(*piece_types) & self.by_color_bb[color]

    def piece_on(self, square: int) -> int:
        return self.board[square]

    def moved_piece(self, move: int) -> int:
        return self.board[from_sq(move)]

    def piece_count(self, color: int, piece_type: int) -> int:
        return self.piece_counts[make_piece(color, piece_type)]

    def king_square(self, color: int) -> int:
        return lsb(self.pieces_of(color, KING))

    def attackers_to(self, square: int, occupied: int | None = None) -> int:
        """All pieces of both colours attacking a square given the occupancy."""
        if occupied is None:
            occupied = self.pieces()
        return (
            (pawn_attacks(BLACK, square) & self.pieces_of(WHITE, PAWN))
            | (pawn_attacks(WHITE, square) & self.pieces_of(BLACK, PAWN))
            | (pseudo_attacks(KNIGHT, square) & self.pieces(KNIGHT))
            | (attacks_bb(ROOK, square, occupied) & self.pieces(ROOK, QUEEN))
            | (attacks_bb(BISHOP, square, occupied) & self.pieces(BISHOP, QUEEN))
            | (pseudo_attacks(KING, square) & self.pieces(KING))
        )

    def slider_blockers(self, sliders: int, square: int) -> tuple[int, int]:
        """Pieces shielding `square` from `sliders`, and the sliders that pin."""
        blockers = pinners = 0
        snipers = (
            (pseudo_attacks(ROOK, square) & self.pieces(QUEEN, ROOK))
            | (pseudo_attacks(BISHOP, square) & self.pieces(QUEEN, BISHOP))
        ) & sliders
        occupancy = self.pieces() ^ snipers
        own = self.by_color_bb[color_of(self.board[square])]
        for sniper in iter_squares(snipers):
            b = between_bb(square, sniper) & occupancy
            if b and not more_than_one(b):
                blockers |= b
                if b & own:
                    pinners |= square_bb(sniper)
        return blockers, pinners

    def blockers_for_king(self, color: int) -> int:
        return self.st.blockers_for_king[color]

    def checkers(self) -> int:
        return self.st.checkers

    def can_castle(self, rights: int) -> bool:
        return bool(self.st.castling_rights & rights)

    def castling_impeded(self, right: int) -> bool:
        return bool(self.pieces() & self.castling_path[right])

    def is_capture(self, move: int) -> bool:
        kind = move_type(move)
        return (bool(self.board[to_sq(move)]) and kind != MoveType.CASTLING) \
            or kind == MoveType.ENPASSANT

    def is_capture_or_promotion(self, move: int) -> bool:
        kind = move_type(move)
        if kind != MoveType.NORMAL:
            return kind != MoveType.CASTLING
        return bool(self.board[to_sq(move)])

    def opposite_bishops(self) -> bool:
        bishops = self.pieces(BISHOP)
        return (
            self.piece_count(WHITE, BISHOP) == 1
            and self.piece_count(BLACK, BISHOP) == 1
            and bool(bishops & DARK_SQUARES)
            and bool(bishops & ~DARK_SQUARES)
        )

    def pawn_passed(self, color: int, square: int) -> bool:
        return not self.pieces_of(color ^ 1, PAWN) & passed_pawn_span(color, square)

    # --- making moves -------------------------------------------------------

    def do_move(self, move: int, gives_check: bool = True) -> None:
        """Make a legal move; `gives_check` False promises it gives no check."""
        z = self.zobrist
        prev = self.st
        key = prev.key ^ z.side
        st = prev._carry_over()
        self.states.append(st)
        st.plies_from_null += 1
        st.rule50 += 1

        us = self.side_to_move
        them = us ^ 1
        origin, target = from_sq(move), to_sq(move)
        kind = move_type(move)
        piece = self.board[origin]
        captured = make_piece(them, PAWN) if kind == MoveType.ENPASSANT else self.board[target]

        if kind == MoveType.CASTLING:
            king_side = target > origin
            rook_from = target
            rook_to = relative_square(us, F1 if king_side else D1)
            target = relative_square(us, G1 if king_side else C1)
            self._remove_piece(us, piece, origin)
            self._remove_piece(us, captured, rook_from)
            self._put_piece(us, piece, target)
            self._put_piece(us, captured, rook_to)
            delta = z.psq[captured][rook_from] ^ z.psq[captured][rook_to]
            key ^= delta
            st.non_pawn_key[us] ^= delta
            captured = NO_PIECE
        elif captured:
            capsq = target
            if type_of(captured) == PAWN:
                if kind == MoveType.ENPASSANT:
                    capsq ^= 8
                st.pawn_key ^= z.psq[captured][capsq]
            else:
                st.non_pawn_key[them] ^= z.psq[captured][capsq]
                if type_of(piece) <= BISHOP:
                    st.minor_piece_key ^= z.psq[captured][capsq]
            self._remove_piece(them, captured, capsq)
            self.piece_counts[captured] -= 1
            key ^= z.psq[captured][capsq]
            st.material_key = (st.material_key - MATERIAL_KEYS[captured]) & _MASK64
            st.plies_from_null = st.rule50 = 0

        st.captured_piece = captured
        key ^= z.psq[piece][origin] ^ z.psq[piece][target]

        if prev.ep_square:
            key ^= z.enpassant[file_of(prev.ep_square)]
        st.ep_square = 0

        changed = self.castling_rights_mask[origin] | self.castling_rights_mask[target]
        if st.castling_rights and changed:
            key ^= z.castling[st.castling_rights]
            st.castling_rights &= ~changed
            key ^= z.castling[st.castling_rights]

        if kind != MoveType.CASTLING:
            self._move_piece(us, piece, origin, target)

        if type_of(piece) == PAWN:
            if (target ^ origin) == 16 and \
                    pawn_attacks(us, target ^ 8) & self.pieces_of(them, PAWN):
                st.ep_square = target ^ 8
                key ^= z.enpassant[file_of(st.ep_square)]
            elif kind == MoveType.PROMOTION:
                promotion = make_piece(us, promotion_type(move))
                self._remove_piece(us, piece, target)
                self.piece_counts[piece] -= 1
                self._put_piece(us, promotion, target)
                self.piece_counts[promotion] += 1
                key ^= z.psq[piece][target] ^ z.psq[promotion][target]
                st.pawn_key ^= z.psq[piece][target]
                st.material_key = (
                    st.material_key + MATERIAL_KEYS[promotion] - MATERIAL_KEYS[piece]
                ) & _MASK64
                if type_of(promotion) <= BISHOP:
                    st.minor_piece_key ^= z.psq[promotion][target]
            st.pawn_key ^= z.psq[piece][origin] ^ z.psq[piece][target]
            st.plies_from_null = st.rule50 = 0
        else:
            delta = z.psq[piece][origin] ^ z.psq[piece][target]
            st.non_pawn_key[us] ^= delta
            if type_of(piece) == KING or type_of(piece) <= BISHOP:
                st.minor_piece_key ^= delta

        st.key = key
        st.checkers = (
            self.attackers_to(self.king_square(them)) & self.pieces_of(us)
            if gives_check else 0
        )
        self.side_to_move = them
        self.nodes += 1
        self._set_check_info()

    def undo_move(self, move: int) -> None:
        """Take back the last move, restoring the exact previous position."""
        if len(self.states) < 2:
            raise ValueError("no move to undo")
        self.side_to_move ^= 1
        us = self.side_to_move
        origin, target = from_sq(move), to_sq(move)
        kind = move_type(move)
        pc = self.board[target]

        if kind == MoveType.PROMOTION:
            self._remove_piece(us, pc, target)
            self.piece_counts[pc] -= 1
            pc = make_piece(us, PAWN)
            self._put_piece(us, pc, target)
            self.piece_counts[pc] += 1

        if kind == MoveType.CASTLING:
            king_side = target > origin
            rook_from = target
            rook_to = relative_square(us, F1 if king_side else D1)
            king_to = relative_square(us, G1 if king_side else C1)
            king, rook = make_piece(us, KING), make_piece(us, ROOK)
            self._remove_piece(us, king, king_to)
            self._remove_piece(us, rook, rook_to)
            self._put_piece(us, king, origin)
            self._put_piece(us, rook, rook_from)
        else:
            self._move_piece(us, pc, target, origin)
            captured = self.st.captured_piece
            if captured:
                capsq = target ^ 8 if kind == MoveType.ENPASSANT else target
                self._put_piece(us ^ 1, captured, capsq)
                self.piece_counts[captured] += 1

        self.states.pop()

    def do_null_move(self) -> None:
        """Pass the move to the opponent."""
        if self.checkers():
            raise ValueError("cannot make a null move while in check")
        z = self.zobrist
        st = self.st._null_copy()
        self.states.append(st)
        if st.ep_square:
            st.key ^= z.enpassant[file_of(st.ep_square)]
            st.ep_square = 0
        st.key ^= z.side
        st.rule50 += 1
        st.plies_from_null = 0
        self.side_to_move ^= 1
        self._set_check_info()

    def undo_null_move(self) -> None:
        if len(self.states) < 2:
            raise ValueError("no null move to undo")
        self.states.pop()
        self.side_to_move ^= 1

    # --- hashing ------------------------------------------------------------

    def key_after(self, move: int) -> int:
        """Key after a simple move; castling, en passant and promotion are not handled."""
        z = self.zobrist
        origin, target = from_sq(move), to_sq(move)
        pc = self.board[origin]
        captured = self.board[target]
        k = self.st.key ^ z.side
        if captured:
            k ^= z.psq[captured][target]
        return k ^ z.psq[pc][target] ^ z.psq[pc][origin]

    def has_game_cycle(self, ply: int) -> bool:
        """Whether some move repeats, or an earlier position reaches this one directly."""
        st = self.st
        original = st.key
        occupied = self.pieces()
        for i in range(3, st.plies_from_null + 1, 2):
            index = len(self.states) - 1 - i
            if index < 0:
                break
            move = self.zobrist.cuckoo_lookup(original ^ self.states[index].key)
            if move is None:
                continue
            origin, target = from_sq(move), to_sq(move)
            if (between_bb(origin, target) ^ square_bb(target)) & occupied:
                continue
            square = target if self.board[origin] == NO_PIECE else origin
            if ply > i or color_of(self.board[square]) == self.side_to_move:
                return True
        return False