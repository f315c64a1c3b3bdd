import unittest

from monotrace.aggregate import (
    AggregateAccumulator,
    AggregateRecord,
    SortField,
    SortOrder,
    rank_records,
    truncating_div
)


class TestAggregateAccumulator(unittest.TestCase):
    def test_allocations_accumulate_per_identity(self):
        allocations = AggregateAccumulator()
        allocations.record(0x10, 10)
        allocations.record(0x10, 20)
        allocations.record(0x20, 5)

        x = allocations.get(0x10)
        y = allocations.get(0x20)
        self.assertEqual((x.total, x.count, x.average), (30, 2, 15))
        self.assertEqual((y.total, y.count, y.average), (5, 1, 5))
        self.assertEqual(len(allocations), 2)
        self.assertNotIn(0x30, allocations)

    def test_average_of_empty_record_is_zero(self):
        self.assertEqual(AggregateRecord(1).average, 0)

    def test_average_truncates_toward_zero(self):
        self.assertEqual(AggregateRecord(1, 7, 2).average, 3)
        self.assertEqual(AggregateRecord(1, -7, 2).average, -3)
        self.assertEqual(truncating_div(-1, 3), 0)
        self.assertEqual(truncating_div(5, 0), 0)

    def test_rank_orders_by_field(self):
        costs = AggregateAccumulator()
        for identity, samples in ((1, [10, 30]), (2, [5]), (3, [1, 1, 1])):
            for sample in samples:
                costs.record(identity, sample)

        by_avg = [r.identity for r in costs.rank(SortField.AVERAGE, SortOrder.DESCENDING)]
        by_total = [r.identity for r in costs.rank(SortField.TOTAL, SortOrder.DESCENDING)]
        by_count = [r.identity for r in costs.rank(SortField.COUNT, SortOrder.ASCENDING)]
        self.assertEqual(by_avg, [1, 2, 3])
        self.assertEqual(by_total, [1, 2, 3])
        self.assertEqual(by_count, [2, 1, 3])

    def test_ascending_is_reverse_of_descending_for_distinct_keys(self):
        costs = AggregateAccumulator()
        for identity, metric in ((1, 40), (2, 10), (3, 30), (4, 20)):
            costs.record(identity, metric)

        ascending = costs.rank(SortField.TOTAL, SortOrder.ASCENDING)
        descending = costs.rank(SortField.TOTAL, SortOrder.DESCENDING)
        self.assertEqual(ascending, list(reversed(descending)))

    def test_ties_keep_insertion_order(self):
        records = [AggregateRecord(i, 10, 1) for i in (5, 3, 9)]
        self.assertEqual([r.identity for r in rank_records(records, lambda r: r.total, SortOrder.ASCENDING)], [5, 3, 9])
        self.assertEqual([r.identity for r in rank_records(records, lambda r: r.total, SortOrder.DESCENDING)], [5, 3, 9])

    def test_subtract_starts_new_identity_from_zero(self):
        deltas = AggregateAccumulator()
        deltas.record(1, 50)
        deltas.subtract(AggregateRecord(1, 30, 2))
        deltas.subtract(AggregateRecord(2, 7, 1))
        self.assertEqual((deltas.get(1).total, deltas.get(1).count), (20, -1))
        self.assertEqual((deltas.get(2).total, deltas.get(2).count), (-7, -1))
        self.assertEqual([r.identity for r in deltas], [1, 2])

    def test_copy_is_independent(self):
        allocations = AggregateAccumulator()
        allocations.record(1, 10)
        clone = allocations.copy()
        clone.record(1, 5)
        clone.record(2, 1)

        self.assertEqual(allocations.get(1).total, 10)
        self.assertNotIn(2, allocations)
        self.assertEqual(clone.get(1).to_dict(), {"identity": 1, "total": 15, "count": 2, "average": 7})


if __name__ == "__main__":
    unittest.main()
