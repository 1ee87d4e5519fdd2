"""Schémas et types pour le matching."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CandidatePair:
    """Paire candidate non ordonnée, stockée avec index_a < index_b."""

    index_a: int
    index_b: int

    @classmethod
    def of(cls, i: int, j: int) -> CandidatePair:
        return cls(i, j) if i < j else cls(j, i)


@dataclass(frozen=True)
class ScoredPair:
    """Paire candidate avec son score composite et le détail par champ."""

    index_a: int
    index_b: int
    score: float
    details: dict[str, float] = field(default_factory=dict, compare=False, hash=False)

    @property
    def pair(self) -> CandidatePair:
        return CandidatePair(self.index_a, self.index_b)

    def __repr__(self) -> str:
        return f"ScoredPair({self.index_a}, {self.index_b}, score={self.score:.3f})"


@dataclass(frozen=True)
class Cluster:
    """Composante connexe du graphe des paires matchées."""

    cluster_id: int
    members: tuple[int, ...]  # triés par index croissant
    canonical_index: int
    min_score: float | None = None  # None pour un singleton
    avg_score: float | None = None

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_singleton(self) -> bool:
        return len(self.members) == 1
