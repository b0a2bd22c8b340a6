# chesscore

Building blocks for a chess engine, written in plain Python with no
dependencies:

- bitboards, attack tables and a compact integer move encoding;
- Zobrist hashing and a cuckoo table for spotting upcoming repetitions;
- a `Position` that makes and unmakes moves with incrementally updated keys;
- pseudo-legal move generation by category, plus legal move filtering;
- legality and check tests, static exchange evaluation, draw detection;
- a staged `MovePicker` that orders moves using history tables;
- pawn-structure evaluation with king shelter and pawn storms, and a
  `PawnTable` cache.

Standard chess and Chess960 are both supported; the castling field of a
FEN may be written as `KQkq`, as Shredder-FEN rook files, or as X-FEN.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Quick look

```python
from chesscore.core import move_to_uci
from chesscore.position import Position
from chesscore.rules import generate_legal, gives_check, is_draw, see_test

pos = Position.from_fen(
    "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", False
)

moves = generate_legal(pos)
print(len(moves))                                   # 20
print(sorted(move_to_uci(m, False) for m in moves)[:3])

move = moves[0]
pos.do_move(move, gives_check(pos, move))
print(is_draw(pos))                                 # False
pos.undo_move(move)
```

`Position.do_move(move, gives_check=True)` recomputes the checkers only
when `gives_check` is true; passing `False` is a promise that the move
gives no check. `undo_move` restores the previous position exactly, and
`do_null_move` / `undo_null_move` pass the turn (a null move raises
`ValueError` while in check).

Moves are integers: `make_move`, `make_promotion`, `make_enpassant` and
`make_castling` build them, and `from_sq`, `to_sq`, `move_type` and
`promotion_type` take them apart. Castling is encoded as the king
capturing its own rook; `move_to_uci(move, chess960)` renders it as a
king move to the g- or c-file unless `chess960` is true.

## Modules

- `chesscore.core`: colours, pieces, squares, bitboard helpers
  (`popcount`, `lsb`, `iter_squares`, `shift`, `between_bb`, `line_bb`,
  `aligned`), attack sets (`attacks_bb`, `pawn_attacks`,
  `pawn_attacks_bb`), move encoding, `MoveType`, and `Score`, a
  middlegame/endgame pair supporting `+`, `-` and negation.
- `chesscore.zobrist`: `Zobrist(seed)` with keys for pieces, en passant
  files, castling rights and side to move, and `cuckoo_lookup(key)`.
- `chesscore.position`: `Position` and its `StateInfo` stack, with
  `from_fen` / `set_fen`, piece and attack queries (`pieces`,
  `pieces_of`, `attackers_to`, `slider_blockers`, `checkers`, ...),
  `key_after` and `has_game_cycle(ply)`.
- `chesscore.movegen`: `generate(pos, GenType)` and the shortcuts
  `generate_captures`, `generate_quiets`, `generate_quiet_checks`,
  `generate_evasions`, `generate_non_evasions`. Asking for evasions when
  not in check, or for anything else while in check, raises `ValueError`.
- `chesscore.rules`: `is_legal`, `is_pseudo_legal`, `gives_check`,
  `see_test(pos, move, threshold)`, `generate_legal` and `is_draw`
  (fifty-move rule and repetition; stalemate is not detected).
- `chesscore.movepick`: `MovePicker`, `Histories`, `Stage`, and the
  history update functions `update_butterfly`, `update_capture` and
  `update_continuation` (the last clamps entries to [-127, 127]).
- `chesscore.pawns`: `evaluate_pawns(pos)`, `PawnEntry` and `PawnTable`.

## Move picking

```python
from chesscore.movepick import Histories, MovePicker

histories = Histories()
picker = MovePicker.main(pos, histories, tt_move=None, depth=5,
                         killers=(), countermove=None, continuation=())
for move in picker:
    ...
```

In the main search (not in check) moves come out in stages: the
transposition-table move if it is pseudo-legal, captures that pass the
exchange test, the two killers, the countermove, history-sorted quiet
moves, and finally the losing captures. `next_move(skip_quiets=True)`
skips the quiet stages. When the side to move is in check the picker
returns the hash move and then scored evasions.

`MovePicker.quiescence(pos, histories, tt_move, depth, recapture_square)`
takes a depth of zero or less and yields captures (only recaptures on
`recapture_square` at very low depths), then quiet checks at depth zero.
`MovePicker.probcut(pos, histories, tt_move, threshold)` yields captures
whose exchange value reaches `threshold`. All pickers return pseudo-legal
moves; check them with `is_legal` before making them.

## Pawn structure

```python
from chesscore.core import WHITE
from chesscore.pawns import PawnTable

table = PawnTable(2048)            # size must be a power of two
entry = table.probe(pos)
print(entry.score)                 # Score(mg=..., eg=...), White's view
print(entry.king_safety(pos, WHITE, pos.king_square(WHITE)))
```

A `PawnEntry` also records passed pawns, pawn attacks and their span,
semi-open files, pawns per square colour, and counts of blocked, passed
and open files.

## What it does not do

The package has no search, no full position evaluation beyond the pawn
structure, no transposition table, no UCI or other command-line
interface, and no program to run; it is a library of the pieces such an
engine is built from.