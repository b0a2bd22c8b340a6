"""Staged move ordering for the search: hash move, captures, killers, quiets."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, Sequence

from chesscore.core import MOVE_NONE, SQ_NONE, from_sq, to_sq, type_of
from chesscore.movegen import (
    generate_captures, generate_evasions, generate_quiet_checks, generate_quiets,
)
from chesscore.position import Position
from chesscore.rules import PIECE_VALUE_MG, is_pseudo_legal, see_test

DEPTH_QS_NO_CHECKS = -1
DEPTH_QS_RECAPTURES = -5

_CONTINUATION_LIMIT = 127


class Stage(IntEnum):
    """Stages of the move picker, in the order they are visited."""

    MAIN_SEARCH = 0
    CAPTURES_INIT = 1
    GOOD_CAPTURES = 2
    KILLERS = 3
    KILLERS_2 = 4
    QUIET_INIT = 5
    QUIET = 6
    BAD_CAPTURES = 7
    EVASION = 8
    EVASIONS_INIT = 9
    ALL_EVASIONS = 10
    QSEARCH = 11
    QCAPTURES_INIT = 12
    QCAPTURES = 13
    QCHECKS = 14
    PROBCUT = 15
    PROBCUT_INIT = 16
    PROBCUT_2 = 17


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def update_continuation(table: list[list[int]], piece: int, square: int, bonus: int) -> None:
    """Update a piece-to continuation entry, keeping it within [-127, 127]."""
    step = _cdiv(bonus, 120)
    current = table[piece][square]
    value = current + step - _cdiv(current * abs(step), 250)
    table[piece][square] = max(-_CONTINUATION_LIMIT, min(_CONTINUATION_LIMIT, value))


def update_butterfly(history: list[list[int]], color: int, move: int, bonus: int) -> None:
    """Update the from-to history entry of a move for one colour."""
    index = move & 4095
    current = history[color][index]
    history[color][index] = current + bonus - _cdiv(current * abs(bonus), 13365)


def update_capture(history: list[list[list[int]]], piece: int, square: int,
                   captured: int, bonus: int) -> None:
    """Update the capture history entry of piece, target square and captured type."""
    current = history[piece][square][captured]
    history[piece][square][captured] = current + bonus - _cdiv(current * abs(bonus), 10692)


def _butterfly() -> list[list[int]]:
    return [[0] * 4096 for _ in range(2)]


def _capture_table() -> list[list[list[int]]]:
    return [[[0] * 8 for _ in range(64)] for _ in range(16)]


@dataclass
class Histories:
    """Move-ordering statistics shared by the pickers of one search."""

    main_history: list[list[int]] = field(default_factory=_butterfly)
    capture_history: list[list[list[int]]] = field(default_factory=_capture_table)

    def clear(self) -> None:
        self.main_history = _butterfly()
        self.capture_history = _capture_table()


@dataclass(slots=True)
class _Scored:
    move: int
    value: int = 0


def _partial_insertion_sort(moves: list[_Scored], limit: int) -> None:
    """Sort moves valued at least `limit` to the front in descending order."""
    sorted_end = 0
    for p in range(1, len(moves)):
        if moves[p].value >= limit:
            item = moves[p]
            sorted_end += 1
            moves[p] = moves[sorted_end]
            q = sorted_end
            while q > 0 and moves[q - 1].value < item.value:
                moves[q] = moves[q - 1]
                q -= 1
            moves[q] = item


class MovePicker:
    """Returns the pseudo-legal moves of a position one at a time, best guesses first."""

    def __init__(self, pos: Position, histories: Histories, stage: Stage,
                 tt_move: int, depth: int, *, killers: Sequence[int] = (),
                 countermove: int = MOVE_NONE,
                 continuation: Sequence[list[list[int]] | None] = (),
                 recapture_square: int = SQ_NONE, threshold: int = 0) -> None:
        self.pos = pos
        self.histories = histories
        self.stage = stage
        self.tt_move = tt_move
        self.depth = depth
        padded = list(killers)[:2] + [MOVE_NONE] * (2 - len(list(killers)[:2]))
        self.killers = tuple(k or MOVE_NONE for k in padded)
        self.countermove = countermove or MOVE_NONE
        self.continuation = tuple(continuation)
        self.recapture_square = recapture_square
        self.threshold = threshold
        self._moves: list[_Scored] = []
        self._cur = 0
        self._bad: list[int] = []
        self._bad_cur = 0

    # --- construction -------------------------------------------------------

    @classmethod
    def main(cls, pos: Position, histories: Histories, tt_move: int | None,
             depth: int, killers: Sequence[int] = (), countermove: int | None = None,
             continuation: Sequence[list[list[int]] | None] = ()) -> MovePicker:
        """Picker for the main search at a positive depth."""
        if depth <= 0:
            raise ValueError("main search picker needs a positive depth")
        tt = tt_move or MOVE_NONE
        stage = Stage.EVASION if pos.checkers() else Stage.MAIN_SEARCH
        if not tt or not is_pseudo_legal(pos, tt):
            stage = Stage(stage + 1)
        return cls(pos, histories, stage, tt, depth, killers=killers,
                   countermove=countermove or MOVE_NONE, continuation=continuation)

    @classmethod
    def quiescence(cls, pos: Position, histories: Histories, tt_move: int | None,
                   depth: int, recapture_square: int) -> MovePicker:
        """Picker for the quiescence search at a depth of zero or less."""
        if depth > 0:
            raise ValueError("quiescence picker needs a depth of zero or less")
        tt = tt_move or MOVE_NONE
        in_check = bool(pos.checkers())
        stage = Stage.EVASION if in_check else Stage.QSEARCH
        if not (tt
                and (in_check or depth > DEPTH_QS_RECAPTURES or to_sq(tt) == recapture_square)
                and is_pseudo_legal(pos, tt)):
            stage = Stage(stage + 1)
        return cls(pos, histories, stage, tt, depth, recapture_square=recapture_square)

    @classmethod
    def probcut(cls, pos: Position, histories: Histories, tt_move: int | None,
                threshold: int) -> MovePicker:
        """Picker for captures whose exchange value reaches `threshold`."""
        if pos.checkers():
            raise ValueError("probcut picker cannot be used while in check")
        tt = tt_move or MOVE_NONE
        stage = Stage.PROBCUT
        if not (tt and is_pseudo_legal(pos, tt) and pos.is_capture(tt)
                and see_test(pos, tt, threshold)):
            stage = Stage(stage + 1)
        return cls(pos, histories, stage, tt, 0, threshold=threshold)

    # --- scoring ------------------------------------------------------------

    def _continuation_value(self, index: int, piece: int, square: int) -> int:
        if index < len(self.continuation) and self.continuation[index] is not None:
            return self.continuation[index][piece][square]
        return 0

    def _score_captures(self, moves: list[int]) -> list[_Scored]:
        pos = self.pos
        capture_history = self.histories.capture_history
        scored = []
        for move in moves:
            target = to_sq(move)
            victim = pos.piece_on(target)
            value = (PIECE_VALUE_MG[victim] * 6
                     + capture_history[pos.moved_piece(move)][target][type_of(victim)])
            scored.append(_Scored(move, value))
        return scored

    def _score_quiets(self, moves: list[int]) -> list[_Scored]:
        pos = self.pos
        butterfly = self.histories.main_history[pos.side_to_move]
        scored = []
        for move in moves:
            target = to_sq(move)
            piece = pos.piece_on(from_sq(move))
            value = (butterfly[move & 4095]
                     + 2 * self._continuation_value(0, piece, target) * 120
                     + self._continuation_value(1, piece, target) * 120
                     + self._continuation_value(2, piece, target) * 120
                     + self._continuation_value(3, piece, target) * 120)
            scored.append(_Scored(move, value))
        return scored

    def _score_evasions(self, moves: list[int]) -> list[_Scored]:
        pos = self.pos
        butterfly = self.histories.main_history[pos.side_to_move]
        scored = []
        for move in moves:
            target = to_sq(move)
            moved = pos.moved_piece(move)
            if pos.is_capture(move):
                value = PIECE_VALUE_MG[pos.piece_on(target)] - type_of(moved)
            else:
                value = (butterfly[move & 4095]
                         + 2 * self._continuation_value(0, moved, target) * 120
                         - (1 << 28))
            scored.append(_Scored(move, value))
        return scored

    # --- picking ------------------------------------------------------------

    def _load(self, scored: list[_Scored]) -> None:
        self._moves = scored
        self._cur = 0

    def _pick_best(self) -> _Scored:
        moves, cur = self._moves, self._cur
        best = max(range(cur, len(moves)), key=lambda i: (moves[i].value, -i))
        moves[cur], moves[best] = moves[best], moves[cur]
        self._cur += 1
        return moves[cur]

    def _advance(self) -> None:
        self.stage = Stage(self.stage + 1)

    def _is_refutation(self, move: int) -> bool:
        return bool(move) and move != self.tt_move \
            and is_pseudo_legal(self.pos, move) and not self.pos.is_capture(move)

    def next_move(self, skip_quiets: bool = False) -> int | None:
        """The next pseudo-legal move, or None when none are left."""
        pos = self.pos
        while True:
            stage = self.stage
            if stage in (Stage.MAIN_SEARCH, Stage.EVASION, Stage.QSEARCH, Stage.PROBCUT):
                self._advance()
                return self.tt_move

            if stage in (Stage.CAPTURES_INIT, Stage.QCAPTURES_INIT, Stage.PROBCUT_INIT):
                self._load(self._score_captures(generate_captures(pos)))
                self._advance()
                continue

            if stage == Stage.GOOD_CAPTURES:
                while self._cur < len(self._moves):
                    item = self._pick_best()
                    if item.move != self.tt_move:
                        if see_test(pos, item.move, _cdiv(-69 * item.value, 1024)):
                            return item.move
                        self._bad.append(item.move)
                self._advance()
                if self._is_refutation(self.killers[0]):
                    return self.killers[0]
                continue

            if stage == Stage.KILLERS:
                self._advance()
                if self._is_refutation(self.killers[1]):
                    return self.killers[1]
                continue

            if stage == Stage.KILLERS_2:
                self._advance()
                move = self.countermove
                if move not in self.killers and self._is_refutation(move):
                    return move
                continue

            if stage == Stage.QUIET_INIT:
                if not skip_quiets:
                    scored = self._score_quiets(generate_quiets(pos))
                    _partial_insertion_sort(scored, -3000 * self.depth)
                    self._load(scored)
                self._advance()
                continue

            if stage == Stage.QUIET:
                if not skip_quiets:
                    skipped = (self.tt_move, *self.killers, self.countermove)
                    while self._cur < len(self._moves):
                        move = self._moves[self._cur].move
                        self._cur += 1
                        if move not in skipped:
                            return move
                self._advance()
                self._bad_cur = 0
                continue

            if stage == Stage.BAD_CAPTURES:
                if self._bad_cur < len(self._bad):
                    self._bad_cur += 1
                    return self._bad[self._bad_cur - 1]
                return None

            if stage == Stage.EVASIONS_INIT:
                self._load(self._score_evasions(generate_evasions(pos)))
                self._advance()
                continue

            if stage == Stage.ALL_EVASIONS:
                while self._cur < len(self._moves):
                    move = self._pick_best().move
                    if move != self.tt_move:
                        return move
                return None

            if stage == Stage.QCAPTURES:
                while self._cur < len(self._moves):
                    move = self._pick_best().move
                    if move != self.tt_move and (
                            self.depth > DEPTH_QS_RECAPTURES
                            or to_sq(move) == self.recapture_square):
                        return move
                if self.depth <= DEPTH_QS_NO_CHECKS:
                    return None
                self._load([_Scored(m) for m in generate_quiet_checks(pos)])
                self._advance()
                continue

            if stage == Stage.QCHECKS:
                while self._cur < len(self._moves):
                    move = self._moves[self._cur].move
                    self._cur += 1
                    if move != self.tt_move:
                        return move
                return None

            if stage == Stage.PROBCUT_2:
                while self._cur < len(self._moves):
                    move = self._pick_best().move
                    if move != self.tt_move and see_test(pos, move, self.threshold):
                        return move
                return None

            raise RuntimeError(f"unexpected picker stage {stage!r}")

    def __iter__(self) -> Iterator[int]:
        while (move := self.next_move()) is not None:
            yield move