from __future__ import annotations

from squatter_spotter.models import PackageMetric
from squatter_spotter.sink import MetricsSink

HEADER = "name,version,account_id,lines_of_code\n"


def test_ensure_creates_file_with_header(tmp_path):
    path = tmp_path / "out" / "metrics.csv"
    sink = MetricsSink(path)

    sink.ensure()
    sink.ensure()

    assert path.read_text(encoding="utf-8") == HEADER


def test_append_bootstraps_missing_file(tmp_path):
    path = tmp_path / "metrics.csv"
    sink = MetricsSink(path)

    written = sink.append([PackageMetric(name="bar", version="2.1.0", account_id=42, lines_of_code=120)])

    assert written == 1
    assert path.read_text(encoding="utf-8") == HEADER + "bar,2.1.0,42,120\n"


def test_append_never_rewrites_existing_rows(tmp_path):
    path = tmp_path / "metrics.csv"
    path.write_text(HEADER + "old,0.1.0,1,5\n", encoding="utf-8")
    sink = MetricsSink(path)

    sink.append([PackageMetric(name="a", version="1.0.0", account_id=2, lines_of_code=0)])
    sink.append([PackageMetric(name="b", version="1.0.0", account_id=3, lines_of_code=7)])

    assert path.read_text(encoding="utf-8").splitlines() == [
        "name,version,account_id,lines_of_code",
        "old,0.1.0,1,5",
        "a,1.0.0,2,0",
        "b,1.0.0,3,7",
    ]


def test_existing_file_without_header_is_left_alone(tmp_path):
    path = tmp_path / "metrics.csv"
    path.write_text("", encoding="utf-8")

    MetricsSink(path).ensure()

    assert path.read_text(encoding="utf-8") == ""
