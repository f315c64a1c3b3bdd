import json
import tempfile
import unittest
from pathlib import Path

from monotrace.callstack import Interval
from monotrace.directory import IdentityDirectory, MethodDescriptor
from monotrace.errors import InputValidationError
from monotrace.export import export_tables, write_json
from monotrace.views import AggregateRow


class TestExportTables(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.out = Path(self._tmp.name)
        self.directory = IdentityDirectory()
        self.directory.define(16, MethodDescriptor("App", "Main", "void ()"))
        self.directory.define(32, MethodDescriptor("App.Json", "Parse", "object (string)"))
        self.intervals = {
            1: [Interval(1, 32, 10, 40), Interval(1, 16, 0, 100)],
            2: [Interval(2, 32, 5, 7)],
        }

    def tearDown(self):
        self._tmp.cleanup()

    def test_writes_pipe_delimited_tables(self):
        methods_path, traces_path = export_tables("traces/app.jsonl", self.directory, self.intervals, self.out)

        self.assertEqual(methods_path.name, "app-methods.tbl")
        self.assertEqual(traces_path.name, "app-method-traces.tbl")
        self.assertEqual(
            methods_path.read_text(encoding="utf-8").splitlines(),
            ["16|App|Main|void ()", "32|App.Json|Parse|object (string)"]
        )
        self.assertEqual(
            traces_path.read_text(encoding="utf-8").splitlines(),
            ["1|32|10|40", "1|16|0|100", "2|32|5|7"]
        )

    def test_existing_files_require_replace(self):
        export_tables("app.jsonl", self.directory, self.intervals, self.out)
        with self.assertRaises(InputValidationError) as ctx:
            export_tables("app.jsonl", self.directory, {}, self.out)
        self.assertIn("specify replace", str(ctx.exception))

        _, traces_path = export_tables("app.jsonl", self.directory, {}, self.out, replace=True)
        self.assertEqual(traces_path.read_text(encoding="utf-8"), "")

    def test_temp_dir_creates_new_subdirectory(self):
        methods_path, traces_path = export_tables("app.jsonl", self.directory, self.intervals, self.out, use_temp_dir=True)
        self.assertEqual(methods_path.parent, traces_path.parent)
        self.assertNotEqual(methods_path.parent, self.out)
        self.assertEqual(methods_path.parent.parent, self.out)

    def test_write_json(self):
        target = self.out / "report.json"
        write_json([AggregateRow(16, "App.Main", 5, 10, 2)], target, {"metric": "ticks"})
        payload = json.loads(target.read_text(encoding="utf-8"))
        self.assertEqual(payload["metric"], "ticks")
        self.assertEqual(payload["rows"][0]["total"], 10)


if __name__ == "__main__":
    unittest.main()
