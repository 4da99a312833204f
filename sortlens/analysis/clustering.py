"""Average-linkage agglomerative clustering over a card similarity matrix.

The result is a ``Dendrogram``: a flat arena of ``ClusterNode`` records linked
by index, ready for the tree-layout code to consume.

Merge order is part of the output contract.  Each round scans the active
clusters with a nested ``i < j`` loop and keeps the *first* pair at the
minimum distance (strict ``<``).  The merged pair is removed from the active
list and the new cluster appended at the end.  Ties are therefore broken by
position in the active list, not by any property of the clusters; keep it
that way so dendrograms match earlier runs.

Cost is O(n³) in the number of cards, which is fine for studies of up to a
few hundred cards.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from sortlens.analysis.models import ClusterNode, Dendrogram, SimilarityMatrix

logger = logging.getLogger(__name__)

EMPTY_NODE_NAME = "Empty"


def cluster(
    similarity_matrix: SimilarityMatrix | Sequence[Sequence[float]],
    card_labels: Sequence[str] | None = None,
) -> Dendrogram:
    """Cluster cards into a binary merge tree.

    Args:
        similarity_matrix: Square similarity matrix (values 0–1), either a
            ``SimilarityMatrix`` or plain nested sequences.
        card_labels: Leaf names, one per row.  Defaults to the matrix's own
            ``card_labels`` when a ``SimilarityMatrix`` is given.

    Returns:
        A dendrogram with ``n`` leaves and ``n - 1`` internal nodes, or a
        single placeholder node when there are no cards.

    Raises:
        ValueError: If the matrix is not square or the label count differs
            from the matrix size.
    """
    if isinstance(similarity_matrix, SimilarityMatrix):
        rows = similarity_matrix.values
        if card_labels is None:
            card_labels = similarity_matrix.card_labels
    else:
        rows = similarity_matrix

    n = len(rows)
    if card_labels is None:
        card_labels = [str(i) for i in range(n)]
    if any(len(row) != n for row in rows):
        raise ValueError("Similarity matrix must be square")
    if len(card_labels) != n:
        raise ValueError(
            f"Got {len(card_labels)} card labels for a {n}x{n} similarity matrix"
        )

    if n == 0:
        return Dendrogram(nodes=[ClusterNode(index=0, name=EMPTY_NODE_NAME, size=0)], root=0)

    distances = [[1.0 - sim for sim in row] for row in rows]

    nodes = [
        ClusterNode(index=i, name=str(label), card_index=i)
        for i, label in enumerate(card_labels)
    ]
    # Active clusters as (node index, member card indices)
    active: list[tuple[int, list[int]]] = [(i, [i]) for i in range(n)]

    while len(active) > 1:
        min_distance = math.inf
        merge_i, merge_j = 0, 1
        for i in range(len(active)):
            for j in range(i + 1, len(active)):
                dist = _average_linkage(active[i][1], active[j][1], distances)
                if dist < min_distance:
                    min_distance = dist
                    merge_i, merge_j = i, j

        left_index, left_members = active[merge_i]
        right_index, right_members = active[merge_j]
        new_index = len(nodes)
        nodes.append(
            ClusterNode(
                index=new_index,
                name=f"Cluster_{len(active)}",
                distance=min_distance,
                size=nodes[left_index].size + nodes[right_index].size,
                children=(left_index, right_index),
            )
        )
        nodes[left_index].parent = new_index
        nodes[right_index].parent = new_index

        active = [c for k, c in enumerate(active) if k not in (merge_i, merge_j)]
        active.append((new_index, left_members + right_members))

    logger.debug("Clustered %d cards into %d nodes", n, len(nodes))
    return Dendrogram(nodes=nodes, root=active[0][0])


def _average_linkage(
    members_a: list[int],
    members_b: list[int],
    distances: list[list[float]],
) -> float:
    """Mean leaf-to-leaf distance between two clusters."""
    total = 0.0
    for i in members_a:
        for j in members_b:
            total += distances[i][j]
    return total / (len(members_a) * len(members_b))
