import random

from spotlight.fuzzy import (
    CONTAINS_SCORE,
    EXACT_SCORE,
    PREFIX_SCORE,
    fuzzy_score,
    highlight_matches,
    join_segments,
)
from spotlight.pipeline_types import Segment


def test_score_tiers():
    assert fuzzy_score("report.pdf", "Report.PDF") == EXACT_SCORE
    assert fuzzy_score("rep", "report.pdf") == PREFIX_SCORE
    assert fuzzy_score("port", "report.pdf") == CONTAINS_SCORE
    # r, p, t picked as three separate runs of one
    assert fuzzy_score("rpt", "report") == 45


def test_no_match_is_none():
    assert fuzzy_score("xyz", "report") is None
    assert fuzzy_score("tr", "rt") is None


def test_empty_query_matches_everything():
    assert fuzzy_score("", "anything") == EXACT_SCORE


def test_prefix_beats_substring_beats_scattered():
    q = "note"
    prefix = fuzzy_score(q, "notes.txt")
    inner = fuzzy_score(q, "my-notes.txt")
    scattered = fuzzy_score(q, "n_o_t_e.txt")
    assert prefix > inner > scattered


def test_consecutive_runs_score_higher():
    assert fuzzy_score("abc", "abxc") > fuzzy_score("abc", "axbxc")


def test_highlight_contiguous_match():
    segs = highlight_matches("port", "report.pdf")
    assert segs == [
        Segment("re", False),
        Segment("port", True),
        Segment(".pdf", False),
    ]


def test_highlight_prefix_omits_empty_segments():
    segs = highlight_matches("Rep", "report")
    assert segs == [Segment("rep", True), Segment("ort", False)]


def test_highlight_scattered_match_by_runs():
    segs = highlight_matches("rpt", "report")
    assert [s.text for s in segs] == ["r", "e", "p", "or", "t"]
    assert [s.highlight for s in segs] == [True, False, True, False, True]


def test_segments_rejoin_to_label():
    for query, label in [("ab", "xAxBx"), ("", "file"), ("zzz", "abc"), ("ß", "Straße.txt")]:
        assert join_segments(highlight_matches(query, label)) == label


def _is_subsequence(query, label):
    it = iter(label.lower())
    return all(ch in it for ch in query.lower())


def test_random_labels_keep_matching_properties():
    rng = random.Random(42)
    alphabet = "abcAB._- 1"
    for _ in range(3000):
        label = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 12)))
        query = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 4)))
        score = fuzzy_score(query, label)
        assert (score is None) == (not _is_subsequence(query, label)), (query, label)
        segments = highlight_matches(query, label)
        assert join_segments(segments) == label
        assert all(seg.text for seg in segments)
        if score is not None:
            assert sum(len(s.text) for s in segments if s.highlight) == len(query), (query, label)
