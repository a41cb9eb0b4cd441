from elektron.pairs import Pair, pair_list, sort_by_value


def test_pair_list_round_trips_to_mapping():
    mapping = {"first-fit": 0.3, "bin-packing": 0.1, "max-min": 0.7}
    pairs = pair_list(mapping)
    assert {pair.key: pair.value for pair in pairs} == mapping
    assert len(pairs) == len(mapping)


def test_pair_list_of_empty_mapping_is_empty():
    assert pair_list({}) == []


def test_sort_by_value_is_non_decreasing():
    pairs = pair_list({"a": 3.0, "b": 1.0, "c": 2.0, "d": 0.5})
    ordered = sort_by_value(pairs)
    values = [pair.value for pair in ordered]
    assert values == sorted(values)
    assert set(ordered) == set(pairs)


def test_sort_by_value_is_stable_for_ties():
    pairs = [Pair("x", 1.0), Pair("y", 0.0), Pair("z", 1.0), Pair("w", 0.0)]
    ordered = sort_by_value(pairs)
    assert [pair.key for pair in ordered] == ["y", "w", "x", "z"]


def test_sort_by_value_leaves_input_untouched():
    pairs = [Pair("b", 2.0), Pair("a", 1.0)]
    sort_by_value(pairs)
    assert pairs == [Pair("b", 2.0), Pair("a", 1.0)]