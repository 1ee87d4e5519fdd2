"""Construction des clusters : union-find sur les paires matchées, choix du canonique."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from dedoublon.config import MappedColumn
from dedoublon.matching.schema import Cluster, ScoredPair
from dedoublon.normalize import is_missing
from dedoublon.records import Value


class UnionFind:
    """Structure union-find (compression de chemin, union par rang)."""

    def __init__(self, n: int) -> None:
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> int:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return ra
        if self.rank[ra] < self.rank[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        if self.rank[ra] == self.rank[rb]:
            self.rank[ra] += 1
        return ra


def count_missing_fields(record: Mapping[str, Value], columns: list[MappedColumn]) -> int:
    return sum(1 for c in columns if is_missing(record.get(c.source_col)))


def select_canonical(
    members: Iterable[int],
    rows: list[dict[str, Value]] | None = None,
    columns: list[MappedColumn] | None = None,
) -> int:
    """
    Choisit l'enregistrement représentant un cluster.

    Le moins de champs comparés vides d'abord, puis le plus petit index :
    le choix est reproductible d'une exécution à l'autre.
    """
    members = list(members)
    if rows is None or not columns:
        return min(members)
    return min(members, key=lambda i: (count_missing_fields(rows[i], columns), i))


def clusters_from_groups(
    groups: Iterable[Iterable[int]],
    rows: list[dict[str, Value]] | None = None,
    columns: list[MappedColumn] | None = None,
    edge_scores: Mapping[int, list[float]] | None = None,
) -> list[Cluster]:
    """
    Transforme des groupes d'indices en Clusters numérotés.

    Les clusters sont triés par plus petit index membre ; cluster_id suit cet ordre.
    edge_scores: {plus petit index du groupe: scores des paires matchées du groupe}.
    """
    ordered = sorted((tuple(sorted(g)) for g in groups), key=lambda m: m[0])
    clusters: list[Cluster] = []
    for cluster_id, members in enumerate(ordered):
        scores = (edge_scores or {}).get(members[0], [])
        clusters.append(
            Cluster(
                cluster_id=cluster_id,
                members=members,
                canonical_index=select_canonical(members, rows, columns),
                min_score=min(scores) if scores else None,
                avg_score=sum(scores) / len(scores) if scores else None,
            )
        )
    return clusters


def build_clusters(
    matched_pairs: list[ScoredPair],
    total_records: int,
    *,
    rows: list[dict[str, Value]] | None = None,
    columns: list[MappedColumn] | None = None,
) -> list[Cluster]:
    """
    Regroupe les paires matchées en composantes connexes.

    Chaque index de [0, total_records) appartient à exactement un cluster ;
    les enregistrements sans match forment des singletons.

    Args:
        matched_pairs: Paires au-dessus du seuil.
        total_records: Nombre d'enregistrements.
        rows: Enregistrements, pour le choix du canonique (sinon plus petit index).
        columns: Colonnes comparées (match_field) prises en compte pour le choix du canonique.
    """
    uf = UnionFind(total_records)
    for pair in matched_pairs:
        uf.union(pair.index_a, pair.index_b)

    groups: dict[int, list[int]] = {}
    for idx in range(total_records):
        groups.setdefault(uf.find(idx), []).append(idx)

    # scores rattachés au plus petit membre de chaque composante
    scores_by_root: dict[int, list[float]] = {}
    for pair in matched_pairs:
        scores_by_root.setdefault(uf.find(pair.index_a), []).append(pair.score)
    edge_scores = {min(members): scores_by_root.get(root, []) for root, members in groups.items()}

    return clusters_from_groups(groups.values(), rows, columns, edge_scores)
