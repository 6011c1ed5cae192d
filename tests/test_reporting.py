import matplotlib

matplotlib.use("Agg")

import importlib.util
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from fda_meantest.plotting import (
    STUDY_FIGURES,
    plot_coverage,
    plot_coverage_grid,
    plot_qq,
    save_figure,
    save_study_figures,
)
from fda_meantest.reporting import (
    STUDY_TABLES,
    format_coverage,
    print_summary,
    summary_table,
    to_latex,
    write_study_tables,
)
from fda_meantest.scenarios import coverage_table, qq_table, run_scenarios


@pytest.fixture(scope="module")
def results():
    return run_scenarios(
        [{"scenario_id": "a"}, {"scenario_id": "b", "n_design_points": 5}],
        verbose=False,
        n_replications=5, n_samples=8, basis_size=10, truncated_basis_size=10,
        mc_samples=200, n_eval_times=20,
    )


def test_summary_table_columns(results):
    table = summary_table(results)
    assert list(table.columns) == [
        "Scenario", "Combination", "Cov(0.90)", "Cov(0.95)", "Cov(0.99)",
        "Rejection (5%)", "max|Cov−p|", "R (valid)", "Excluded",
    ]
    assert len(table) == 2 * 4
    assert "Excluded" not in summary_table(results, include_failures=False).columns


def test_to_latex_adds_caption_and_label(results):
    latex = to_latex(summary_table(results), caption="Coverage", label="tab:coverage")
    lines = latex.split("\n")
    end = next(i for i, line in enumerate(lines) if "\\end{tabular}" in line)
    assert lines[end + 1] == "\\caption{Coverage}"
    assert lines[end + 2] == "\\label{tab:coverage}"


def test_format_coverage():
    assert format_coverage(0.947, 0.95, 0.0101) == "0.947 (0.010) [nominal 0.95]"
    assert format_coverage(np.nan, 0.95, np.nan) == "n/a [nominal 0.95]"


def test_print_summary(results, capsys):
    print_summary(results)
    out = capsys.readouterr().out
    assert "CALIBRATION SUMMARY" in out
    assert "Scenario: a" in out
    assert "interpolating/zero" in out


def test_plots(results, tmp_path):
    import matplotlib.pyplot as plt

    ax = plot_coverage(results[0].coverage)
    assert ax.get_title() == "Coverage: a"

    with pytest.raises(ValueError):
        plot_coverage(coverage_table(results))

    ax = plot_qq(qq_table(results[1]))
    assert ax.get_title() == "QQ plot: b"

    fig = plot_coverage_grid(coverage_table(results), ncols=2)
    save_figure(fig, tmp_path / "figures" / "coverage", formats=("png",))
    assert (tmp_path / "figures" / "coverage.png").exists()
    plt.close("all")


def test_write_study_tables(results, tmp_path):
    paths = write_study_tables(results, tmp_path / "out")
    assert [p.name for p in paths] == STUDY_TABLES
    assert all(p.exists() for p in paths)

    coverage = pd.read_csv(tmp_path / "out" / "coverage_table.csv")
    assert set(coverage["scenario"]) == {"a", "b"}
    summary = pd.read_csv(tmp_path / "out" / "coverage_summary.csv")
    assert len(summary) == 2 * 4
    assert "\\label{tab:coverage}" in (tmp_path / "out" / "coverage_summary.tex").read_text()


def test_save_study_figures(results, tmp_path):
    import matplotlib.pyplot as plt

    paths = save_study_figures(results, tmp_path)
    assert [p.name for p in paths] == STUDY_FIGURES
    assert all(p.exists() for p in paths)
    plt.close("all")


def _load_run_all():
    path = Path(__file__).resolve().parents[1] / "run_all.py"
    module_spec = importlib.util.spec_from_file_location("run_all", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


def test_run_all_writes_every_output(tmp_path):
    run_all = _load_run_all()
    code = run_all.main([
        "--out-dir", str(tmp_path),
        "--scenarios", "baseline", "sparse",
        "--replications", "2", "--curves", "5", "--mc-samples", "100",
        "--n-jobs", "1", "--quiet",
    ])
    assert code == 0
    for name in STUDY_TABLES + STUDY_FIGURES:
        assert (tmp_path / name).exists()
    coverage = pd.read_csv(tmp_path / "coverage_table.csv")
    assert set(coverage["scenario"]) == {"baseline", "sparse"}


def test_run_all_rejects_unknown_scenario():
    run_all = _load_run_all()
    with pytest.raises(SystemExit):
        run_all.main(["--scenarios", "nonexistent"])
