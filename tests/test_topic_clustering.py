"""Tests for title tokenization, clustering and gap scoring."""

import numpy as np
import pytest

from services.text_processing import clean_text, jaccard_similarity, top_words
from services.topic_clustering import (
    TextClusterer,
    TitleDoc,
    TopicCluster,
    choose_k,
    cluster_titles,
    score_gaps,
)

TITLES = [
    TitleDoc("u1", "Easy pasta recipe for dinner"),
    TitleDoc("u2", "Creamy pasta recipe in 10 minutes"),
    TitleDoc("u3", "Python tutorial for beginners"),
    TitleDoc("c1", "Best pasta recipe ever", "competitor"),
    TitleDoc("c2", "Tokyo travel guide", "competitor"),
    TitleDoc("c3", "Kyoto travel guide on a budget", "competitor"),
    TitleDoc("c4", "Osaka travel guide street food", "competitor"),
    TitleDoc("c5", "Advanced python tutorial decorators", "competitor"),
]


class TestTextProcessing:
    def test_clean_text(self):
        assert clean_text("How to Cook 5 Pasta Dishes!") == ["cook", "pasta", "dishes"]

    def test_polish_stopwords(self):
        assert clean_text("Jak zrobić pizzę w domu") == ["zrobić", "pizzę", "domu"]

    def test_top_words(self):
        assert top_words(["pasta recipe", "pasta sauce", "pasta recipe"], n=2) == "pasta, recipe"

    def test_jaccard(self):
        assert jaccard_similarity("pasta recipe", "pasta sauce") == pytest.approx(1 / 3)
        assert jaccard_similarity("the a", "pasta") == 0.0


class TestTextClusterer:
    def test_k_means_separates_groups(self):
        vectors = np.array([[0.0, 0.0], [0.0, 0.1], [10.0, 10.0], [10.0, 10.1]])
        labels = TextClusterer(seed=7).k_means(vectors, 2)
        assert labels[0] == labels[1]
        assert labels[2] == labels[3]
        assert labels[0] != labels[2]

    def test_k_capped_by_rows(self):
        labels = TextClusterer().k_means(np.eye(2), 5)
        assert sorted(labels) == [0, 1]

    def test_idf_downweights_common_terms(self):
        clusterer = TextClusterer()
        clusterer.fit_transform([TitleDoc("a", "pasta sauce"), TitleDoc("b", "pasta salad")])
        assert clusterer.idf[clusterer.vocabulary["pasta"]] < clusterer.idf[clusterer.vocabulary["sauce"]]


class TestClusterTitles:
    def test_choose_k(self):
        assert choose_k(5) == 3
        assert choose_k(50) == 5

    def test_too_few_titles(self):
        assert cluster_titles(TITLES[:4]) == []

    def test_deterministic_for_seed(self):
        first = cluster_titles(TITLES, seed=42)
        second = cluster_titles(TITLES, seed=42)
        assert [[m.id for m in c.members] for c in first] == [[m.id for m in c.members] for c in second]

    def test_every_title_assigned_once(self):
        clusters = cluster_titles(TITLES)
        ids = sorted(m.id for c in clusters for m in c.members)
        assert ids == sorted(d.id for d in TITLES)
        assert all(c.name for c in clusters)


class TestScoreGaps:
    def cluster(self, cluster_id, owners):
        members = [TitleDoc(f"{cluster_id}-{i}", "travel guide", owner) for i, owner in enumerate(owners)]
        return TopicCluster(cluster_id, "travel, guide", ["travel", "guide"], members)

    def test_competitor_dominated_topic(self):
        gaps = score_gaps([self.cluster(0, ["competitor"] * 3 + ["user"])])
        assert len(gaps) == 1
        gap = gaps[0]
        assert gap.competitor_share == 0.75
        assert gap.gap_score == 7.5
        assert gap.reason == "Competitors own 75% of this topic."
        assert gap.video_ids == ["0-0", "0-1", "0-2", "0-3"]

    def test_thresholds(self):
        small = self.cluster(1, ["competitor"] * 2)
        balanced = self.cluster(2, ["competitor", "competitor", "user"])
        assert score_gaps([small, balanced]) == []

    def test_sorted_by_score(self):
        gaps = score_gaps([
            self.cluster(0, ["competitor"] * 3 + ["user"]),
            self.cluster(1, ["competitor"] * 4),
        ])
        assert [g.cluster_id for g in gaps] == [1, 0]
