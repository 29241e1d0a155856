"""Tests for TF-IDF relevance scoring."""

from __future__ import annotations

import math

import pytest

from conftest import make_record
from openmemory.scoring import MIN_RELEVANCE, rank, score_documents, score_terms


class TestScoreTerms:
    def test_empty_corpus(self):
        assert score_terms(["hooks"], []) == []

    def test_tf_idf_formula(self):
        corpus = [["hooks", "react"], ["zebra", "grass"]]
        scores = score_terms(["hooks"], corpus)
        # tf = 1/2, idf = ln(2/1), one query term.
        assert scores[0] == pytest.approx(0.5 * math.log(2))
        assert scores[1] == 0.0

    def test_term_in_every_document_scores_zero(self):
        scores = score_terms(["hooks"], [["hooks"], ["hooks", "beta"]])
        assert scores == [0.0, 0.0]

    def test_absent_terms_score_zero(self):
        assert score_terms(["missing"], [["alpha"], ["beta"]]) == [0.0, 0.0]

    def test_normalised_by_query_length(self):
        corpus = [["hooks", "react"], ["zebra", "grass"]]
        one = score_terms(["hooks"], corpus)[0]
        two = score_terms(["hooks", "absent"], corpus)[0]
        assert two == pytest.approx(one / 2)

    def test_empty_query_scores_zero(self):
        assert score_terms([], [["alpha"]]) == [0.0]


class TestScoreDocuments:
    def test_more_occurrences_score_at_least_as_high(self):
        records = [
            make_record("alpha hooks hooks beta", id="two"),
            make_record("alpha hooks gamma beta", id="one"),
            make_record("alpha delta gamma beta", id="none"),
        ]
        scores = dict((r.id, s) for r, s in score_documents("hooks", records))
        assert scores["two"] >= scores["one"] >= scores["none"]
        assert scores["two"] > scores["one"]

    def test_summary_contributes_terms(self):
        records = [
            make_record("zebra grass", id="a", summary="hooks"),
            make_record("zebra grass", id="b"),
        ]
        scores = [s for _, s in score_documents("hooks", records)]
        assert scores[0] > 0.0
        assert scores[1] == 0.0

    def test_idf_uses_the_corpus_passed_in(self):
        hooks = make_record("hooks grass", id="a")
        other = make_record("zebra grass", id="b")
        alone = score_documents("hooks", [hooks])[0][1]
        together = score_documents("hooks", [hooks, other])[0][1]
        assert alone == 0.0
        assert together > 0.0


class TestRank:
    def test_react_hooks_scenario(self):
        records = [
            make_record("Zebras graze on savanna grass", id="zebra"),
            make_record("hooks hooks hooks", id="hooks"),
        ]
        results = rank("react hooks", records)
        assert [r["id"] for r in results] == ["hooks"]
        assert results[0]["score"] > MIN_RELEVANCE

    def test_results_sorted_descending(self):
        records = [
            make_record("alpha hooks gamma beta", id="one"),
            make_record("alpha hooks hooks beta", id="two"),
            make_record("alpha delta gamma beta", id="none"),
        ]
        results = rank("hooks", records)
        assert [r["id"] for r in results] == ["two", "one"]

    def test_ties_keep_corpus_order(self):
        records = [
            make_record("hooks alpha", id="first"),
            make_record("zebra grass", id="other"),
            make_record("hooks beta", id="second"),
        ]
        results = rank("hooks", records)
        assert [r["id"] for r in results] == ["first", "second"]

    def test_limit(self):
        records = [make_record(f"hooks word{i}", id=str(i)) for i in range(5)]
        records.append(make_record("zebra grass", id="other"))
        assert len(rank("hooks", records, limit=2)) == 2

    def test_no_match_is_empty(self):
        assert rank("missing", [make_record("alpha beta")]) == []

    def test_result_is_flat_dict_with_score(self):
        result = rank("hooks", [make_record("hooks", id="a"), make_record("zebra", id="b")])[0]
        assert result["id"] == "a"
        assert result["content"] == "hooks"
        assert "score" in result
