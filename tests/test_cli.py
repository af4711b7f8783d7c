import textwrap

import yaml

from resource_timeline.__main__ import main

PLAN = textwrap.dedent(
    """
    timeline:
      name: Platform roadmap
    resources:
      - id: ava
        name: Ava
    intervals:
      - id: a
        name: Auth
        resources: [ava]
        start: "2025-01-01"
        end: "2025-01-10"
      - id: b
        name: Billing
        resources: [ava]
        start: "2025-01-05"
        end: "2025-01-15"
      - id: c
        name: Cleanup
        resources: [ava]
        start: "2025-02-10"
        end: "2025-02-01"
    views:
      unified:
        granularity: months
        auto_range: false
        start: "2025-01-01"
        end: "2025-03-31"
        today: "2025-02-01"
    """
)


def _write_plan(tmp_path, text=PLAN):
    path = tmp_path / "plan.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_writes_layout_report(tmp_path, capsys):
    plan = _write_plan(tmp_path)
    out = tmp_path / "out" / "layout.yaml"

    code = main([str(plan), "--out", str(out), "--px-per-day", "10"])

    assert code == 0
    report = yaml.safe_load(out.read_text(encoding="utf-8"))
    assert report["timeline"] == "Platform roadmap"
    assert [tick["date"] for tick in report["ticks"]] == ["2025-01-01", "2025-02-01", "2025-03-01"]
    assert report["rows"][1]["left"] == 40.0
    assert report["rows"][1]["width"] == 110.0
    assert report["today_x"] == 310.0
    assert [(c["a"], c["b"]) for c in report["conflicts"]] == [("a", "b")]
    assert len(report["warnings"]) == 1
    assert "Warning: Interval 'c' ends 2025-02-01 before it starts 2025-02-10" in capsys.readouterr().err


def test_cli_overrides_granularity_and_window_to_stdout(tmp_path, capsys):
    plan = _write_plan(tmp_path)

    code = main([str(plan), "--granularity", "week", "--start", "2025-01-01", "--end", "2025-01-14", "--percent"])

    assert code == 0
    report = yaml.safe_load(capsys.readouterr().out)
    assert report["granularity"] == "week"
    assert [tick["date"] for tick in report["ticks"]] == ["2024-12-29", "2025-01-05", "2025-01-12"]
    assert report["extent"] == 100.0


def test_cli_reports_missing_plan(tmp_path, capsys):
    code = main([str(tmp_path / "missing.yaml")])

    assert code == 1
    assert "plan file not found" in capsys.readouterr().err


def test_cli_reports_invalid_plan(tmp_path, capsys):
    plan = _write_plan(tmp_path, "intervals:\n  - id: a\n    resources: [ghost]\n")

    code = main([str(plan)])

    assert code == 2
    assert "unknown resource 'ghost'" in capsys.readouterr().err


def test_cli_reports_reversed_window(tmp_path, capsys):
    plan = _write_plan(tmp_path)

    code = main([str(plan), "--start", "2025-03-01", "--end", "2025-01-01"])

    assert code == 2
    assert "before it starts" in capsys.readouterr().err
