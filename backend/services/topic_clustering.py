"""TF-IDF + seeded k-means over video titles, and competitor coverage gaps.

IDF is ``log(N / (1 + df))``, so terms present in most titles get a
weight at or below zero.
"""

import logging
import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from services.text_processing import clean_text, top_words

logger = logging.getLogger(__name__)

MIN_VIDEOS = 5
GAP_SHARE = 0.7
GAP_MIN_MEMBERS = 3
DEFAULT_SEED = 42


@dataclass
class TitleDoc:
    id: str
    text: str
    owner: str = "user"  # "user" or "competitor"


@dataclass
class TopicCluster:
    cluster_id: int
    name: str
    keywords: list[str]
    members: list[TitleDoc] = field(default_factory=list)


@dataclass
class TopicGap:
    cluster_id: int
    name: str
    competitor_share: float
    member_count: int
    gap_score: float
    reason: str
    keywords: list[str] = field(default_factory=list)
    video_ids: list[str] = field(default_factory=list)


class TextClusterer:
    """Deterministic TF-IDF vectorizer and k-means for short titles."""

    def __init__(self, seed: int = DEFAULT_SEED):
        self.seed = seed
        self.vocabulary: dict[str, int] = {}
        self.idf = np.zeros(0)

    def fit_transform(self, documents: Sequence[TitleDoc]) -> np.ndarray:
        tokens = [clean_text(doc.text) for doc in documents]

        self.vocabulary = {}
        for doc_tokens in tokens:
            for token in doc_tokens:
                self.vocabulary.setdefault(token, len(self.vocabulary))

        df = np.zeros(len(self.vocabulary))
        for doc_tokens in tokens:
            for token in set(doc_tokens):
                df[self.vocabulary[token]] += 1
        self.idf = np.log(len(documents) / (1 + df))

        matrix = np.zeros((len(documents), len(self.vocabulary)))
        for row, doc_tokens in enumerate(tokens):
            for term, count in Counter(doc_tokens).items():
                col = self.vocabulary[term]
                matrix[row, col] = count / len(doc_tokens) * self.idf[col]
        return matrix

    def k_means(self, vectors: np.ndarray, k: int, max_iterations: int = 20) -> list[int]:
        """Cluster rows of ``vectors``. Initial centroids are the first k rows after a seeded shuffle."""
        n = len(vectors)
        if n == 0:
            return []
        k = min(k, n)

        rng = np.random.default_rng(self.seed)
        centroids = vectors[rng.permutation(n)[:k]].copy()
        assignments = np.full(n, -1)

        for _ in range(max_iterations):
            distances = np.linalg.norm(vectors[:, None, :] - centroids[None, :, :], axis=2)
            updated = distances.argmin(axis=1)
            if np.array_equal(updated, assignments):
                break
            assignments = updated

            for c in range(k):
                members = vectors[assignments == c]
                if len(members):
                    centroids[c] = members.mean(axis=0)

        return assignments.tolist()

    def cluster_keywords(self, vectors: np.ndarray, member_rows: Sequence[int], n: int = 5) -> list[str]:
        """Highest-weighted terms of a cluster's mean vector."""
        if not member_rows or not self.vocabulary:
            return []
        centroid = vectors[list(member_rows)].mean(axis=0)
        terms = list(self.vocabulary)
        ranked = sorted(range(len(terms)), key=lambda i: centroid[i], reverse=True)
        return [terms[i] for i in ranked[:n] if centroid[i] != 0]


def choose_k(n: int) -> int:
    return max(3, math.floor(math.sqrt(n / 2)))


def cluster_titles(documents: Sequence[TitleDoc], seed: int = DEFAULT_SEED) -> list[TopicCluster]:
    """Group titles into topics named by their most frequent words."""
    if len(documents) < MIN_VIDEOS:
        return []

    clusterer = TextClusterer(seed)
    vectors = clusterer.fit_transform(documents)
    assignments = clusterer.k_means(vectors, choose_k(len(documents)))

    grouped: dict[int, list[int]] = {}
    for row, cluster_id in enumerate(assignments):
        grouped.setdefault(cluster_id, []).append(row)

    clusters = []
    for cluster_id in sorted(grouped):
        rows = grouped[cluster_id]
        members = [documents[r] for r in rows]
        clusters.append(TopicCluster(
            cluster_id=cluster_id,
            name=top_words([m.text for m in members]) or f"Topic {cluster_id + 1}",
            keywords=clusterer.cluster_keywords(vectors, rows),
            members=members,
        ))
    logger.info(f"Clustered {len(documents)} titles into {len(clusters)} topics")
    return clusters


def score_gaps(clusters: Sequence[TopicCluster]) -> list[TopicGap]:
    """Topics dominated by competitor uploads."""
    gaps = []
    for cluster in clusters:
        total = len(cluster.members)
        if total == 0:
            continue
        competitor = sum(1 for m in cluster.members if m.owner == "competitor")
        share = competitor / total
        if share > GAP_SHARE and total >= GAP_MIN_MEMBERS:
            gaps.append(TopicGap(
                cluster_id=cluster.cluster_id,
                name=cluster.name,
                competitor_share=share,
                member_count=total,
                gap_score=share * 10,
                reason=f"Competitors own {share * 100:.0f}% of this topic.",
                keywords=cluster.keywords,
                video_ids=[m.id for m in cluster.members],
            ))
    return sorted(gaps, key=lambda g: g.gap_score, reverse=True)
