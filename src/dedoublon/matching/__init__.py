"""Module de matching : blocking, scoring, clusters."""

from dedoublon.matching.deduplicator import Deduplicator
from dedoublon.matching.schema import CandidatePair, Cluster, ScoredPair

__all__ = ["Deduplicator", "CandidatePair", "Cluster", "ScoredPair"]
