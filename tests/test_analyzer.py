import json
import tempfile
import unittest
from pathlib import Path

from monotrace.analyzer import TraceAnalyzer, analyze_trace, load_heap_snapshots
from monotrace.events import MethodEnter, MethodLeave, ObjectAllocated, TypeDefined


class TestTraceAnalyzer(unittest.TestCase):
    def test_leaves_feed_method_costs(self):
        analyzer = TraceAnalyzer().process([
            MethodEnter(1, 7, 0),
            MethodLeave(1, 7, 10),
            MethodEnter(1, 7, 20),
            MethodLeave(1, 7, 50, exception=True),
        ])
        record = analyzer.method_costs.get(1)
        self.assertEqual((record.total, record.count, record.average), (40, 2, 20))

    def test_heap_snapshot_uses_type_directory(self):
        analyzer = TraceAnalyzer("heap.jsonl").process([
            TypeDefined(0x100, 1, "System.String"),
            TypeDefined(0x100, 2, "System.Other"),
            ObjectAllocated(0x100, 10),
            ObjectAllocated(0x100, 20),
            ObjectAllocated(0x200, 5),
        ])
        snapshot = analyzer.heap_snapshot()
        self.assertEqual(snapshot.directory.resolve(0x100).class_name, "System.String")
        self.assertEqual(snapshot.aggregates.get(0x100).total, 30)
        self.assertEqual(snapshot.aggregates.get(0x200).count, 1)
        self.assertEqual(len(analyzer.methods), 0)

    def test_exception_leave_is_logged(self):
        with self.assertLogs("monotrace.analyzer", level="DEBUG") as logs:
            TraceAnalyzer().process([MethodEnter(1, 7, 0), MethodLeave(1, 7, 5, exception=True)])
        self.assertIn("exception", logs.output[0])

    def test_unsupported_event_raises(self):
        with self.assertRaises(TypeError):
            TraceAnalyzer().dispatch(object())


class TestAnalyzeTrace(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, name, records):
        path = self.tmp / name
        path.write_text("".join(json.dumps(record) + "\n" for record in records), encoding="utf-8")
        return path

    def test_recovery_is_logged_and_summarized(self):
        path = self._write("app.jsonl", [
            {"event": "method_enter", "method_id": 1, "thread_id": 1, "timestamp": 0},
            {"event": "method_enter", "method_id": 2, "thread_id": 1, "timestamp": 5},
            {"event": "method_leave", "method_id": 1, "thread_id": 1, "timestamp": 10},
            {"event": "gc_heap_stats", "generation": 2},
        ])
        with self.assertLogs("monotrace.analyzer", level="WARNING") as logs:
            analyzer = analyze_trace(path)

        self.assertIn("orphaned", logs.output[0])
        summary = analyzer.summary()
        self.assertEqual(summary["events"], 3)
        self.assertEqual(summary["recovery"], {"mismatched_leaves": 1, "orphaned_frames": 1, "dropped_leaves": 0})
        self.assertEqual(summary["incomplete_threads"], 0)

    def test_load_heap_snapshots_keeps_files_independent(self):
        first = self._write("a.jsonl", [{"event": "object_allocated", "vtable_id": 1, "size": 4}])
        second = self._write("b.jsonl", [{"event": "object_allocated", "vtable_id": 1, "size": 6}])
        snapshot_a, snapshot_b = load_heap_snapshots([first, second])
        self.assertEqual(snapshot_a.aggregates.get(1).total, 4)
        self.assertEqual(snapshot_b.aggregates.get(1).total, 6)
        self.assertEqual(snapshot_b.path, str(second))


if __name__ == "__main__":
    unittest.main()
