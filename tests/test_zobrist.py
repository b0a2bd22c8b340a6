import pytest

from chesscore.core import (
    B_KNIGHT, B_ROOK, E2, E4, F3, G1, G8, F6, KING, PAWN, W_KNIGHT, W_KING,
    W_PAWN, A1, A8, BLACK, WHITE, make_move, make_piece,
)
from chesscore.zobrist import (
    DEFAULT_SEED, MATERIAL_KEYS, Zobrist, default_zobrist,
)


@pytest.fixture(scope="module")
def zob():
    return default_zobrist()


def test_cuckoo_entry_count(zob):
    assert sum(1 for m in zob.cuckoo_moves if m) == 3668


def test_knight_move_found(zob):
    keys = zob.psq[W_KNIGHT]
    assert zob.cuckoo_lookup(keys[G1] ^ keys[F3] ^ zob.side) == make_move(G1, F3)
    bkeys = zob.psq[B_KNIGHT]
    assert zob.cuckoo_lookup(bkeys[G8] ^ bkeys[F6] ^ zob.side) == make_move(F6, G8)


def test_rook_move_found(zob):
    keys = zob.psq[B_ROOK]
    assert zob.cuckoo_lookup(keys[A1] ^ keys[A8] ^ zob.side) == make_move(A1, A8)


def test_non_reversible_keys_absent(zob):
    pawn = zob.psq[W_PAWN]
    assert zob.cuckoo_lookup(pawn[E2] ^ pawn[E4] ^ zob.side) is None
    keys = zob.psq[W_KNIGHT]
    assert zob.cuckoo_lookup(keys[G1] ^ keys[F3]) is None


def test_every_entry_is_retrievable(zob):
    for key, move in zip(zob.cuckoo, zob.cuckoo_moves):
        if move:
            assert zob.cuckoo_lookup(key) == move


def test_empty_piece_rows_are_zero(zob):
    for piece in (0, 7, 8, 15):
        row = list(zob.psq[piece])
        assert len(row) == 64
        assert set(row) == {0}


def test_keys_distinct_and_64_bit(zob):
    keys = [
        k
        for color in (WHITE, BLACK)
        for pt in range(PAWN, KING + 1)
        for k in zob.psq[make_piece(color, pt)]
    ]
    keys += zob.enpassant + zob.castling + [zob.side, zob.no_pawns]
    assert len(set(keys)) == len(keys)
    assert all(0 < k < 1 << 64 for k in keys)


def test_deterministic_and_seed_dependent(zob):
    again = Zobrist(DEFAULT_SEED)
    assert again.psq == zob.psq
    assert again.side == zob.side
    other = Zobrist(DEFAULT_SEED + 1)
    assert other.psq[W_KING] != zob.psq[W_KING]


def test_default_is_shared():
    first = default_zobrist()
    second = default_zobrist()
    assert first is second
    fresh = Zobrist(DEFAULT_SEED)
    assert first.side == fresh.side
    assert first.psq == fresh.psq


def test_zero_seed_rejected():
    with pytest.raises(ValueError):
        Zobrist(0)


def test_material_keys():
    assert MATERIAL_KEYS[W_PAWN] == 0x5CED000000000101
    assert MATERIAL_KEYS[W_KING] == MATERIAL_KEYS[make_piece(BLACK, KING)] == 0x0000000000000001
    assert len(MATERIAL_KEYS) == 16