import unittest

from monotrace.aggregate import AggregateAccumulator, SortField, SortOrder
from monotrace.diff import TraceSnapshot, diff_snapshots, merge_directories
from monotrace.directory import IdentityDirectory, TypeDescriptor
from monotrace.errors import InputValidationError, SnapshotMismatchError

X, Z = 0x100, 0x200


def by_identity(diff):
    return {record.identity: record for record in diff.records}


def make_snapshot(path, types, samples):
    directory = IdentityDirectory()
    for identity, class_name in types.items():
        directory.define(identity, TypeDescriptor(identity + 1, class_name))
    aggregates = AggregateAccumulator()
    for identity, size in samples:
        aggregates.record(identity, size)
    return TraceSnapshot(path, directory, aggregates)


class TestSnapshotDiff(unittest.TestCase):
    def setUp(self):
        self.first = make_snapshot("a.jsonl", {X: "System.String"}, [(X, 10), (X, 20)])
        self.second = make_snapshot(
            "b.jsonl",
            {X: "System.String", Z: "System.Byte[]"},
            [(X, 10), (X, 20), (X, 20), (Z, 7)]
        )

    def test_growth_and_appearance(self):
        diff = diff_snapshots(self.first, self.second)
        records = by_identity(diff)
        x = records[X]
        z = records[Z]
        self.assertEqual((x.delta_total, x.delta_count), (20, 1))
        self.assertEqual((z.delta_total, z.delta_count), (7, 1))
        self.assertIn(Z, diff.directory)

    def test_disappeared_identity_is_negated(self):
        diff = diff_snapshots(self.second, self.first)
        z = by_identity(diff)[Z]
        self.assertEqual((z.delta_total, z.delta_count), (-7, -1))

    def test_diff_is_anti_symmetric(self):
        forward = diff_snapshots(self.first, self.second)
        backward = diff_snapshots(self.second, self.first)
        backward_records = by_identity(backward)
        for record in forward.records:
            other = backward_records[record.identity]
            self.assertEqual(other.delta_total, -record.delta_total)
            self.assertEqual(other.delta_count, -record.delta_count)

    def test_inputs_are_not_modified(self):
        diff_snapshots(self.first, self.second)
        self.assertEqual(self.second.aggregates.get(X).total, 50)
        self.assertEqual(self.first.aggregates.get(X).total, 30)
        self.assertNotIn(Z, self.first.aggregates)

    def test_records_follow_second_then_first_only_order(self):
        diff = diff_snapshots(self.second, self.first)
        self.assertEqual([record.identity for record in diff.records], [X, Z])

    def test_self_diff_is_all_zero(self):
        diff = diff_snapshots(self.second, self.second)
        self.assertTrue(all(record.is_zero for record in diff.records))
        self.assertEqual(diff.visible(), [])

    def test_unchanged_identity_is_suppressed(self):
        third = make_snapshot("c.jsonl", {X: "System.String", Z: "System.Byte[]"}, [(X, 10), (X, 20), (X, 20), (Z, 9)])
        diff = diff_snapshots(self.second, third)
        self.assertEqual([record.identity for record in diff.visible()], [Z])

    def test_rank_by_total_and_count(self):
        diff = diff_snapshots(self.first, self.second)
        self.assertEqual([r.identity for r in diff.rank(SortField.TOTAL, SortOrder.DESCENDING)], [X, Z])
        self.assertEqual([r.identity for r in diff.rank(SortField.TOTAL, SortOrder.ASCENDING)], [Z, X])
        with self.assertRaises(InputValidationError):
            diff.rank(SortField.AVERAGE, SortOrder.DESCENDING)

    def test_conflicting_names_raise_mismatch(self):
        other = make_snapshot("c.jsonl", {X: "System.Int32"}, [(X, 4)])
        with self.assertRaises(SnapshotMismatchError) as ctx:
            diff_snapshots(self.first, other)
        self.assertIn("same runtime instance", str(ctx.exception))

    def test_conflicting_class_id_raises_mismatch(self):
        first = IdentityDirectory()
        first.define(X, TypeDescriptor(1, "System.String"))
        second = IdentityDirectory()
        second.define(X, TypeDescriptor(2, "System.String"))
        with self.assertRaises(SnapshotMismatchError):
            merge_directories(first, second)

    def test_merge_leaves_inputs_untouched(self):
        merged = merge_directories(self.first.directory, self.second.directory)
        self.assertEqual(len(merged), 2)
        self.assertEqual(len(self.first.directory), 1)


if __name__ == "__main__":
    unittest.main()
