import pytest

import metro_layout.__main__ as cli
from metro_layout.pipeline import StageError

_MAP = """# Vertices
1. West (0, 0)
2. Centre (100, 2)
3. East (200, -1)
4. North (101, -100)
5. South (98, 100)
# Edges
1 - 2
2 - 3
4 - 2
2 - 5
# End
"""


def _write_map(tmp_path, text=_MAP, name="cross.txt"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_main_runs_pipeline_and_prints_summary(tmp_path, capsys):
    path = _write_map(tmp_path)
    out_dir = tmp_path / "svg"

    cli.main([str(path), "--output-dir", str(out_dir), "--log-level", "WARNING"])

    captured = capsys.readouterr().out
    assert "stations=5 tracks=4" in captured
    assert "Coordinates:" in captured
    assert "2. Centre (" in captured
    assert sorted(p.name for p in out_dir.iterdir()) == [f"cross_{i}.svg" for i in (0, 2, 3, 4, 5)]


def test_main_passes_flags_into_options(tmp_path, monkeypatch):
    path = _write_map(tmp_path)
    seen = {}

    def _run_pipeline(graph, options):
        seen["options"] = options
        raise StageError(5, -1)

    monkeypatch.setattr(cli, "run_pipeline", _run_pipeline)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                str(path),
                "--testcase",
                "custom",
                "--min-spacing",
                "25",
                "--cell-size",
                "40",
                "--no-spatial-hash",
                "--no-svg",
            ]
        )

    assert excinfo.value.code == 5
    options = seen["options"]
    assert options.testcase == "custom"
    assert options.spacing.min_spacing == 25.0
    assert options.cell_size == 40.0
    assert not options.use_spatial_hash
    assert not options.write_svg


def test_parse_error_exits_with_input_error_code(tmp_path):
    path = _write_map(tmp_path, "# Vertices\n1. Broken (0 0)\n")

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(path), "--no-svg"])

    assert excinfo.value.code == cli.EXIT_INPUT_ERROR


def test_unknown_station_exits_with_input_error_code(tmp_path):
    path = _write_map(tmp_path, _MAP.replace("2 - 5", "2 - 6"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(path), "--no-svg"])

    assert excinfo.value.code == cli.EXIT_INPUT_ERROR


def test_missing_file_exits_with_input_error_code(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "nope.txt")])

    assert excinfo.value.code == cli.EXIT_INPUT_ERROR


def test_benchmark_mode_skips_pipeline(tmp_path, monkeypatch, capsys):
    path = _write_map(tmp_path)
    monkeypatch.setattr(cli, "run_pipeline", lambda *args, **kwargs: pytest.fail("pipeline ran"))

    cli.main([str(path), "--benchmark", "25", "--seed", "4"])

    captured = capsys.readouterr().out
    assert "Overlap benchmark: station 2, 25 probe(s)" in captured
    assert "naive" in captured
    assert "accelerated (reused hash)" in captured


def test_input_errors_do_not_collide_with_stage_codes():
    assert cli.EXIT_INPUT_ERROR not in range(1, 6)
    assert cli.EXIT_BENCHMARK_MISMATCH not in range(1, 6)


def test_benchmark_mismatch_has_its_own_exit_code(tmp_path, monkeypatch):
    path = _write_map(tmp_path)
    monkeypatch.setattr("metro_layout.benchmark.overlaps_naive", lambda *args, **kwargs: True)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(path), "--benchmark", "10"])

    assert excinfo.value.code == cli.EXIT_BENCHMARK_MISMATCH
