"""Chess position, move generation, move ordering and pawn-structure evaluation."""

__version__ = "0.1.0"
__all__ = ["core", "zobrist", "position", "movegen", "rules", "movepick", "pawns"]