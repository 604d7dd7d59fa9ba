"""Tests for per-type differencing."""

import math

from memwatch_diff.differ import diff_aggregates, growth_rate
from memwatch_diff.models import TypeAggregate


def agg(name, count, size):
    return TypeAggregate(type_name=name, count=count, size=size)


class TestGrowthRate:
    def test_relative_to_before(self):
        assert growth_rate(100_000, 10_000_000) == 99.0
        assert growth_rate(200, 100) == -0.5

    def test_appeared_type_is_infinite(self):
        assert math.isinf(growth_rate(0, 2_000_000))

    def test_empty_on_both_sides(self):
        assert growth_rate(0, 0) == 0.0


class TestDiffAggregates:
    def test_growing_type(self):
        deltas = diff_aggregates(
            {"Array": agg("Array", 100, 100_000)},
            {"Array": agg("Array", 2000, 10_000_000)},
        )
        assert len(deltas) == 1
        delta = deltas[0]
        assert delta.delta_size == 9_900_000
        assert delta.delta_count == 1900
        assert delta.growth_rate == 99.0
        assert delta.severity is None

    def test_type_only_after(self):
        deltas = diff_aggregates({}, {"Leaky": agg("Leaky", 10, 2_000_000)})
        delta = deltas[0]
        assert delta.count_before == 0
        assert delta.size_before == 0
        assert delta.delta_count == 10
        assert delta.delta_size == 2_000_000
        assert delta.is_infinite_growth

    def test_type_only_before(self):
        deltas = diff_aggregates({"Gone": agg("Gone", 5, 500)}, {})
        delta = deltas[0]
        assert delta.delta_size == -500
        assert delta.delta_count == -5
        assert delta.growth_rate == -1.0

    def test_union_order_and_nothing_dropped(self):
        before = {"A": agg("A", 1, 10), "B": agg("B", 1, 10)}
        after = {"C": agg("C", 1, 10), "B": agg("B", 1, 10)}
        deltas = diff_aggregates(before, after)
        assert [delta.type_name for delta in deltas] == ["A", "B", "C"]
        assert deltas[1].delta_size == 0

    def test_delta_size_is_exact(self):
        deltas = diff_aggregates({"X": agg("X", 3, 1_234_567)}, {"X": agg("X", 4, 7_654_321)})
        assert deltas[0].delta_size == deltas[0].size_after - deltas[0].size_before
