import pytest

from transaction_dedup.similarity import levenshtein_distance, similarity

SAMPLES = [
    "",
    "a",
    "starbucks coffee #1234",
    "starbucks coffee store",
    "grocery store purchase",
    "GROCERY STORE PURCHASE",
    "amazon purchase",
    "kitten",
    "sitting",
]


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("", "", 0),
        ("", "abc", 3),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
        ("starbucks coffee #1234", "starbucks coffee store", 5),
    ],
)
def test_levenshtein_distance_known_values(a: str, b: str, expected: int):
    assert levenshtein_distance(a, b) == expected


@pytest.mark.parametrize("s", SAMPLES)
def test_similarity_identity(s: str):
    assert similarity(s, s) == 1.0


def test_similarity_empty_cases():
    assert similarity("", "") == 1.0
    assert similarity("", "x") == 0.0
    assert similarity("x", "") == 0.0


def test_similarity_symmetric_and_in_unit_range():
    for a in SAMPLES:
        for b in SAMPLES:
            ab = similarity(a, b)
            assert ab == similarity(b, a)
            assert 0.0 <= ab <= 1.0


def test_similarity_normalizes_by_longer_string():
    # distance("kitten", "sitting") == 3, longer length 7
    assert similarity("kitten", "sitting") == pytest.approx(4 / 7)


def test_similarity_is_case_sensitive_on_raw_input():
    assert similarity("ABC", "abc") == 0.0
    assert similarity("ABC".lower(), "abc") == 1.0
