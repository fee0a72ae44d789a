import pytest

from halodb.bloom import BloomFilter, estimate_hash_functions, estimate_size


def test_add_and_contains():
    bf = BloomFilter(1000, 5)
    for key in ["key1", "key2", "key3", "apple", "banana"]:
        bf.add(key)
        assert bf.contains(key)


def test_no_false_negatives():
    bf = BloomFilter(1000, 5)
    keys = ["key1", "key2", "key3"]
    for key in keys:
        bf.add(key)
    assert all(bf.contains(key) for key in keys)
    assert all(key in bf for key in keys)


def test_false_positive_rate_below_total():
    bf = BloomFilter(100, 3)
    for key in ["key1", "key2", "key3"]:
        bf.add(key)
    not_added = ["key4", "key5", "key6", "different_key"]
    false_positives = sum(1 for key in not_added if bf.contains(key))
    assert false_positives < len(not_added)


def test_clear():
    bf = BloomFilter(1000, 5)
    bf.add("key1")
    assert bf.contains("key1")
    bf.clear()
    assert not bf.contains("key1")
    assert "key1" not in bf


def test_empty_filter_contains_nothing():
    bf = BloomFilter(1000, 5)
    assert not bf.contains("anything")


def test_non_string_membership_is_false():
    bf = BloomFilter(10, 2)
    bf.add("1")
    assert 1 not in bf


def test_unicode_keys():
    bf = BloomFilter(500, 4)
    bf.add("Halil Bülent")
    assert bf.contains("Halil Bülent")


def test_zero_size_rejected():
    with pytest.raises(ValueError):
        BloomFilter(0, 3)


def test_estimate_size():
    size = estimate_size(1000, 0.01)
    assert size > 0
    size2 = estimate_size(1000, 0.1)
    assert size2 < size


def test_estimate_size_pinned_value():
    assert estimate_size(1000, 0.01) == 9585


@pytest.mark.parametrize("p", [0, 1, -0.5, 1.5])
def test_estimate_size_invalid_probability(p):
    assert estimate_size(1000, p) == 1000


def test_estimate_hash_functions():
    assert estimate_hash_functions(1000, 100) > 0
    assert estimate_hash_functions(1000, 100) == 6
    assert estimate_hash_functions(9585, 1000) == 6


def test_estimate_hash_functions_zero_items():
    with pytest.raises(ValueError):
        estimate_hash_functions(1000, 0)