"""
Tests for the command-line progress report.
"""
import json
from datetime import datetime

import pandas as pd

NOW = datetime(2024, 1, 10, 20, 0)

HISTORY = {
    "bench_press": [
        {"date": "2024-01-01", "sets": [{"weight": 60, "reps": 10}]},
        {"date": "2024-01-08", "endTime": "19:30", "sets": [{"weight": 65, "reps": 8}]},
    ],
    "squat": [
        {"date": "2024-01-10", "endTime": "08:00", "sets": [{"weight": 100, "reps": 5}]},
    ],
}


class TestRunReport:

    def test_returns_computed_sections(self, capsys):
        from liftlog.report import run_report
        result = run_report(HISTORY, now=NOW)
        assert result["level"]["xp"] == 16
        assert result["summary"]["total_workouts"] == 3
        assert len(result["window"]) == 7
        assert result["recovery"]["Quads"] == "Fatigued"
        assert result["exercises"]["bench_press"]["trend"][-1] == {"date": "2024-01-08", "value": 82}
        assert result["exercises"]["squat"]["delta"] is None

        out = capsys.readouterr().out
        assert "Level 1" in out
        assert "Bench Press: e1RM 82 kg" in out

    def test_single_exercise(self, capsys):
        from liftlog.report import run_report
        result = run_report(HISTORY, exercise_id="squat", now=NOW)
        assert list(result["exercises"]) == ["squat"]

    def test_empty_history(self, capsys):
        from liftlog.report import run_report
        result = run_report({}, now=NOW)
        assert result["exercises"] == {}
        assert "No workouts logged yet" in capsys.readouterr().out


class TestMain:

    def test_missing_history_fails(self, tmp_path, capsys):
        from liftlog.report import main
        code = main(["--history", str(tmp_path / "missing.json")])
        assert code == 1
        assert "History not found" in capsys.readouterr().err

    def test_report_and_export(self, tmp_path, capsys):
        from liftlog.report import main
        history_path = tmp_path / "history.json"
        history_path.write_text(json.dumps(HISTORY))
        code = main([
            "--history", str(history_path),
            "--custom-exercises", str(tmp_path / "custom.json"),
            "--now", "2024-01-10T20:00",
            "--export-csv", str(tmp_path / "out"),
        ])
        assert code == 0
        exported = pd.read_csv(tmp_path / "out" / "liftlog_2024-01-10.csv")
        assert len(exported) == 3
        assert exported["e1rm"].tolist() == [80, 82, 117]
        assert "Done." in capsys.readouterr().out

    def test_corrupt_history_fails(self, tmp_path, capsys):
        from liftlog.report import main
        history_path = tmp_path / "history.json"
        history_path.write_text("{not json")
        assert main(["--history", str(history_path)]) == 1
        assert "Report FAILED" in capsys.readouterr().err
