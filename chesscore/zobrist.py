"""Zobrist hashing keys and the cuckoo table used for upcoming-repetition detection."""

from __future__ import annotations

from functools import lru_cache

from chesscore.core import (
    BLACK, KING, KNIGHT, PAWN, WHITE, iter_squares, make_move, make_piece,
    pseudo_attacks,
)

DEFAULT_SEED = 1070372

MATERIAL_KEYS = (
    0,
    0x5CED000000000101,
    0xE173000000001001,
    0xD64D000000010001,
    0xAB88000000100001,
    0x680B000001000001,
    0x0000000000000001,
    0,
    0,
    0xF219000010000001,
    0xBB14000100000001,
    0x58DF001000000001,
    0xA15F010000000001,
    0x7C94100000000001,
    0x0000000000000001,
    0,
)

CUCKOO_SIZE = 8192
_EXPECTED_CUCKOO_ENTRIES = 3668
_MASK64 = (1 << 64) - 1


def _xorshift64star(seed: int):
    if seed == 0:
        raise ValueError("seed must be non-zero")
    state = seed & _MASK64
    while True:
        state ^= state >> 12
        state ^= (state << 25) & _MASK64
        state ^= state >> 27
        yield (state * 2685821657736338717) & _MASK64


def _h1(key: int) -> int:
    return key & 0x1FFF


def _h2(key: int) -> int:
    return (key >> 16) & 0x1FFF


class Zobrist:
    """Random keys for pieces, en passant files, castling rights and side to move."""

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        rand = _xorshift64star(seed)
        self.psq = [[0] * 64 for _ in range(16)]
        for color in (WHITE, BLACK):
            for pt in range(PAWN, KING + 1):
                self.psq[make_piece(color, pt)] = [next(rand) for _ in range(64)]
        self.enpassant = [next(rand) for _ in range(8)]
        self.castling = [next(rand) for _ in range(16)]
        self.side = next(rand)
        self.no_pawns = next(rand)
        self.cuckoo = [0] * CUCKOO_SIZE
        self.cuckoo_moves = [0] * CUCKOO_SIZE
        self._build_cuckoo()

    def _build_cuckoo(self) -> None:
        count = 0
        for color in (WHITE, BLACK):
            for pt in range(KNIGHT, KING + 1):
                keys = self.psq[make_piece(color, pt)]
                for s1 in range(64):
                    higher = pseudo_attacks(pt, s1) & ~((1 << (s1 + 1)) - 1)
                    for s2 in iter_squares(higher):
                        self._insert(keys[s1] ^ keys[s2] ^ self.side, make_move(s1, s2))
                        count += 1
        if count != _EXPECTED_CUCKOO_ENTRIES:
            raise RuntimeError(f"cuckoo table holds {count} entries")

    def _insert(self, key: int, move: int) -> None:
        slot = _h1(key)
        while True:
            self.cuckoo[slot], key = key, self.cuckoo[slot]
            self.cuckoo_moves[slot], move = move, self.cuckoo_moves[slot]
            if not move:
                return
            slot = _h2(key) if slot == _h1(key) else _h1(key)

    def cuckoo_lookup(self, key: int) -> int | None:
        """Return the reversible move whose key difference is `key`, if any."""
        for slot in (_h1(key), _h2(key)):
            if self.cuckoo[slot] == key and self.cuckoo_moves[slot]:
                return self.cuckoo_moves[slot]
        return None


@lru_cache(maxsize=None)
def default_zobrist() -> Zobrist:
    """The shared key set built from the default seed."""
    return Zobrist(DEFAULT_SEED)