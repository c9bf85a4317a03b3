from collections import OrderedDict

import pytest

from core.recognition.descriptors import ValidationError
from core.recognition.matcher import Matcher, confidence_from_distance, euclidean_distance

from conftest import make_descriptor, random_descriptor


def shifted(base, index, delta):
    vector = list(base)
    vector[index] += delta
    return vector


def test_distance_to_self_is_zero():
    vector = random_descriptor(1)
    assert euclidean_distance(vector, vector) == 0.0


def test_distance_is_symmetric():
    a, b = random_descriptor(1), random_descriptor(2)
    assert euclidean_distance(a, b) == pytest.approx(euclidean_distance(b, a))


def test_identical_probe_matches_with_full_confidence():
    enrolled = OrderedDict([('S1', random_descriptor(1)), ('S2', random_descriptor(2))])
    result = Matcher().match(random_descriptor(2), enrolled)

    assert result.matched
    assert result.student_id == 'S2'
    assert result.distance == 0.0
    assert result.confidence == 100.0


def test_far_probe_is_no_match():
    base = make_descriptor(0.0)
    enrolled = {'S1': shifted(base, 0, 0.75), 'S2': shifted(base, 5, -0.75)}
    result = Matcher().match(base, enrolled)

    assert not result.matched
    assert result.student_id is None
    assert result.distance == pytest.approx(0.75)


def test_threshold_is_strict():
    base = make_descriptor(0.0)
    matcher = Matcher(threshold=0.5)

    assert not matcher.match(base, {'S1': shifted(base, 0, 0.5)}).matched
    assert matcher.match(base, {'S1': shifted(base, 0, 0.25)}).matched


def test_best_of_several_candidates_wins():
    base = make_descriptor(0.0)
    enrolled = OrderedDict([
        ('FAR', shifted(base, 0, 0.5)),
        ('NEAR', shifted(base, 1, 0.25)),
    ])
    result = Matcher().match(base, enrolled)

    assert result.student_id == 'NEAR'
    assert result.confidence == 75.0


def test_tie_resolves_to_first_inserted():
    base = make_descriptor(0.0)
    enrolled = OrderedDict([
        ('B', shifted(base, 3, 0.25)),
        ('A', shifted(base, 7, -0.25)),
    ])
    assert Matcher().match(base, enrolled).student_id == 'B'


def test_empty_enrollment_is_no_match():
    result = Matcher().match(make_descriptor(), {})
    assert not result.matched
    assert result.distance is None


def test_probe_length_is_validated():
    with pytest.raises(ValidationError):
        Matcher().match(make_descriptor(length=127), {'S1': make_descriptor()})


def test_enrolled_length_is_validated():
    with pytest.raises(ValidationError):
        Matcher().match(make_descriptor(), {'S1': make_descriptor(length=64)})


def test_confidence_is_clamped():
    assert confidence_from_distance(0.0) == 100.0
    assert confidence_from_distance(0.123) == 87.7
    assert confidence_from_distance(1.5) == 0.0


def test_match_result_dict():
    result = Matcher().match(make_descriptor(), {'S1': make_descriptor()})
    assert result.to_dict() == {
        'studentId': 'S1',
        'distance': 0.0,
        'confidence': 100.0,
        'matched': True,
    }
