from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "alloc_doctor.cli"]
FIXED_STAMP = "20260301T010203Z"
FIXED_EXPORT_TIME = "2026-03-01T01:02:03.000Z"


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    merged_env = dict(os.environ)
    merged_env["ALLOC_DOCTOR_OUTPUT_STAMP"] = FIXED_STAMP
    merged_env["ALLOC_DOCTOR_EXPORT_TIME"] = FIXED_EXPORT_TIME
    if env:
        merged_env.update(env)
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        env=merged_env,
    )


class ValidateCommandTests(unittest.TestCase):
    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout.strip(), "0.1.0")

    def test_validate_sample_json_stdout_contains_only_json(self):
        proc = run_cli("validate", "--sample", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        report = json.loads(proc.stdout)
        self.assertEqual(report["contract"]["name"], "alloc_doctor.validate")
        self.assertEqual(report["summary"]["verdict"], "NEEDS ATTENTION")
        self.assertEqual(report["run_summary"]["generated_at"], "1970-01-01T00:00:00Z")
        self.assertEqual(proc.stderr.strip(), "")

    def test_validate_text_goes_to_stderr(self):
        proc = run_cli("validate", "--sample")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout, "")
        self.assertIn("Verdict: NEEDS ATTENTION", proc.stderr)

    def test_unknown_reference_returns_exit_3_and_writes_report(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            clients = Path(tmpdir) / "clients.csv"
            clients.write_text(
                "ClientID,ClientName,PriorityLevel,RequestedTaskIDs\nC1,Acme,3,T9\n",
                encoding="utf-8",
            )
            output = Path(tmpdir) / "report" / "validation.json"
            proc = run_cli("validate", "--clients", str(clients), "--output", str(output))
            self.assertEqual(proc.returncode, 3, proc.stderr)
            self.assertIn("Validation report:", proc.stderr)
            report = json.loads(output.read_text(encoding="utf-8"))
            self.assertEqual(report["summary"]["verdict"], "BLOCKED")
            self.assertEqual(report["issues"][0]["check"], "unknown-task")
            self.assertEqual(report["run_summary"]["input_files"]["client"], str(clients))

    def test_messy_sample_reports_each_client_problem(self):
        proc = run_cli(
            "validate",
            "--clients", "sample-data/messy_clients.csv",
            "--workers", "sample-data/workers.csv",
            "--tasks", "sample-data/tasks.csv",
            "--json",
        )
        self.assertEqual(proc.returncode, 3, proc.stderr)
        self.assertIn("unexpected columns: Budget", proc.stderr)
        by_check = json.loads(proc.stdout)["summary"]["by_check"]
        self.assertEqual(by_check["missing"], 2)
        self.assertEqual(by_check["duplicate"], 1)
        self.assertEqual(by_check["priority-range"], 1)
        self.assertEqual(by_check["broken-json"], 1)
        self.assertEqual(by_check["unknown-task"], 1)

    def test_sample_files_round_trip_through_validate(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_dir = Path(tmpdir) / "data"
            proc = run_cli("sample", "-o", str(out_dir))
            self.assertEqual(proc.returncode, 0, proc.stderr)
            proc = run_cli(
                "validate",
                "--clients", str(out_dir / "clients.csv"),
                "--workers", str(out_dir / "workers.csv"),
                "--tasks", str(out_dir / "tasks.csv"),
                "--json",
            )
            self.assertEqual(proc.returncode, 0, proc.stderr)
            report = json.loads(proc.stdout)
            self.assertEqual(report["summary"]["by_check"], {"max-concurrent": 2})

            again = run_cli("sample", "-o", str(out_dir))
            self.assertEqual(again.returncode, 1)
            self.assertIn("Refusing to overwrite", again.stderr)

    def test_input_errors(self):
        proc = run_cli("validate")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("No input", proc.stderr)

        proc = run_cli("validate", "--clients", "does-not-exist.csv")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("File not found", proc.stderr)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "clients.parquet"
            path.write_bytes(b"PAR1")
            proc = run_cli("validate", "--clients", str(path))
            self.assertEqual(proc.returncode, 2)
            self.assertIn("Unsupported format", proc.stderr)

    def test_unknown_command_is_a_command_error(self):
        proc = run_cli("heal")
        self.assertEqual(proc.returncode, 1)


class RuleAndWeightCommandTests(unittest.TestCase):
    def test_rule_understood(self):
        proc = run_cli("rule", "Tasks T001 and T002 must run together", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        rule = json.loads(proc.stdout)
        self.assertEqual(rule["type"], "coRun")
        self.assertEqual(rule["parameters"]["tasks"], ["T001", "T002"])

    def test_rule_not_understood_returns_exit_4(self):
        proc = run_cli("rule", "Workers should be happy")
        self.assertEqual(proc.returncode, 4)
        self.assertIn("Could not interpret rule", proc.stderr)
        self.assertIn("Try phrasings like", proc.stderr)

    def test_rule_append_feeds_export(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            rules_path = Path(tmpdir) / "rules.json"
            proc = run_cli("rule", "Tasks T001 and T002 must run together", "--append", str(rules_path))
            self.assertEqual(proc.returncode, 0, proc.stderr)
            proc = run_cli("rule", "Tasks T001 and T002 must run together", "--append", str(rules_path))
            self.assertIn("already present", proc.stderr)
            self.assertEqual(len(json.loads(rules_path.read_text(encoding="utf-8"))["rules"]), 1)

            out_dir = Path(tmpdir) / "export"
            proc = run_cli("export", "--sample", "--rules", str(rules_path), "-o", str(out_dir), "--json")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            payload = json.loads(proc.stdout)
            self.assertEqual(payload["exportSummary"]["dataStats"]["rules"], 1)

    def test_weights_preset_and_set(self):
        proc = run_cli("weights", "--preset", "fair-distribution", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertAlmostEqual(payload["priorityWeights"]["fairness"], 0.30)
        self.assertEqual(payload["metadata"]["exportedAt"], FIXED_EXPORT_TIME)

        proc = run_cli("weights", "--set", "fairness=0.6", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        weights = json.loads(proc.stdout)["priorityWeights"]
        self.assertAlmostEqual(sum(weights.values()), 1.0)
        self.assertAlmostEqual(weights["fairness"], 0.6 / 1.4)

    def test_weights_text_and_presets(self):
        proc = run_cli("weights")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("priorityLevel", proc.stdout)
        self.assertRegex(proc.stdout, r"total\s+1\.0000")

        proc = run_cli("weights", "--list-presets")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("skill-optimization: Skill Optimization", proc.stdout)

        proc = run_cli("weights", "--preset", "nope")
        self.assertEqual(proc.returncode, 1)

    def test_infinite_weights_are_rejected(self):
        proc = run_cli("weights", "--set", "fairness=inf")
        self.assertEqual(proc.returncode, 2)
        self.assertIn("finite", proc.stderr)

        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "alloc-doctor.json"
            config_path.write_text('{"priority_weights": {"fairness": Infinity, "skillMatch": 1}}', encoding="utf-8")
            proc = run_cli("weights", "--config", str(config_path))
            self.assertEqual(proc.returncode, 2)
            self.assertIn("finite", proc.stderr)


class DataCommandTests(unittest.TestCase):
    def test_search(self):
        proc = run_cli("search", "tasks in phase 6", "--sample", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "alloc_doctor.search")
        ids = [match["TaskID"] for match in payload["results"][0]["matches"]]
        self.assertEqual(ids, ["T005", "T007"])

    def test_recommend(self):
        proc = run_cli("recommend", "--sample", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "alloc_doctor.recommend")
        self.assertEqual(payload["rules"], [])

        proc = run_cli("recommend", "--sample", "--save-rules", "rules.json")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("--save-rules requires --accept", proc.stderr)

    def test_corrections_apply(self):
        proc = run_cli("corrections", "--sample", "--apply", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["applied"], len(payload["corrections"]))
        self.assertGreaterEqual(payload["applied"], 1)
        self.assertEqual(set(payload["validation"]), {"before", "after"})

    def test_export_writes_bundle_and_refuses_overwrite(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_dir = Path(tmpdir) / "export"
            proc = run_cli("export", "--sample", "-o", str(out_dir), "--xlsx", "allocation")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertIn("Export written:", proc.stderr)
            for name in (
                "clients_cleaned.csv",
                "workers_cleaned.csv",
                "tasks_cleaned.csv",
                "rules.json",
                "priorities.json",
                "export_summary.json",
                "allocation.xlsx",
            ):
                self.assertTrue((out_dir / name).exists(), name)
            summary = json.loads((out_dir / "export_summary.json").read_text(encoding="utf-8"))
            self.assertEqual(summary["exportSummary"]["exportedAt"], FIXED_EXPORT_TIME)

            proc = run_cli("export", "--sample", "-o", str(out_dir))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("Refusing to overwrite", proc.stderr)

    def test_explain(self):
        proc = run_cli("explain", "unknown-task")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("Check: unknown-task", proc.stdout)
        self.assertIn("Severity: error", proc.stdout)

        proc = run_cli("explain", "not-a-check")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Unknown check id", proc.stderr)

    def test_config_init_feeds_validate(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "alloc-doctor.json"
            proc = run_cli("config", "init", "--path", str(config_path))
            self.assertEqual(proc.returncode, 0, proc.stderr)
            config = json.loads(config_path.read_text(encoding="utf-8"))
            self.assertEqual(set(config), {"strict", "preset", "priority_weights", "rules"})

            proc = run_cli("config", "init", "--path", str(config_path))
            self.assertEqual(proc.returncode, 1)

            config["strict"] = True
            config_path.write_text(json.dumps(config), encoding="utf-8")
            proc = run_cli("validate", "--sample", "--config", str(config_path), "--json")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertTrue(json.loads(proc.stdout)["strict"])

    def test_config_with_unknown_keys_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "alloc-doctor.json"
            config_path.write_text(json.dumps({"threshold": 3}), encoding="utf-8")
            proc = run_cli("validate", "--sample", "--config", str(config_path))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("Unknown config keys: threshold", proc.stderr)


if __name__ == "__main__":
    unittest.main()
