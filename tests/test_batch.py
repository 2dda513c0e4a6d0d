import pytest

from batch import process_batch
from config import RunConfig
from conftest import manifest_line, threshold_predictor
from progress import ProgressRenderer


def run(data_dir, **kwargs):
    config = RunConfig(data_dir=data_dir, **kwargs)
    return process_batch(config, threshold_predictor)


def ledger_uids(path):
    return [int(text.split("\t", 1)[0]) for text in path.read_text(encoding="utf-8").splitlines()]


def test_full_run(data_dir):
    summary = run(data_dir)

    assert summary["processed"] == 4
    assert summary["failed"] == 1
    assert summary["with_foreground"] == 3
    assert summary["stats_rows"] == 3

    raw_lines = (data_dir / "raw.tsv").read_text(encoding="utf-8").splitlines()
    assert [line.split("\t")[0] for line in raw_lines] == ["1", "2", "3", "4"]
    assert all(len(line.split("\t")) == 13 for line in raw_lines)
    assert raw_lines[2].split("\t")[4:11] == [".", "x", ".", "-1.00", "-1", "0.00", "0.00"]

    stats_lines = (data_dir / "stats.tsv").read_text(encoding="utf-8").splitlines()
    assert [line.split("\t")[0] for line in stats_lines] == ["1", "2", "4"]
    assert all(len(line.split("\t")) == 12 for line in stats_lines)

    for uid in (1, 2, 3, 4):
        assert (data_dir / "annots" / f"{uid}.jpg").is_file()
        assert (data_dir / "masks" / f"{uid}.jpg").is_file()


def test_rerun_is_idempotent(data_dir):
    run(data_dir, start_id=2, end_id=3)
    first = (data_dir / "raw.tsv").read_bytes(), (data_dir / "stats.tsv").read_bytes()
    run(data_dir, start_id=2, end_id=3)
    second = (data_dir / "raw.tsv").read_bytes(), (data_dir / "stats.tsv").read_bytes()

    assert first == second

    run(data_dir)
    full = (data_dir / "raw.tsv").read_bytes()
    run(data_dir)
    assert (data_dir / "raw.tsv").read_bytes() == full


def test_range_partition(data_dir):
    run(data_dir)
    before = (data_dir / "raw.tsv").read_text(encoding="utf-8").splitlines(keepends=True)

    # uid 2 renamed, uid 3 removed from the manifest.
    (data_dir / "rois.tsv").write_text(
        manifest_line(1) + manifest_line(2, name="renamed") + manifest_line(4),
        encoding="utf-8",
    )
    run(data_dir, start_id=2, end_id=3)
    after = (data_dir / "raw.tsv").read_text(encoding="utf-8").splitlines(keepends=True)

    assert ledger_uids(data_dir / "raw.tsv") == [1, 2, 4]
    assert after[0] == before[0]
    assert after[2] == before[3]
    assert after[1].split("\t")[3] == "renamed"


def test_rows_above_range_survive_without_skipped_uids(data_dir):
    run(data_dir)
    (data_dir / "rois.tsv").write_text(manifest_line(1) + manifest_line(2), encoding="utf-8")

    run(data_dir, start_id=1, end_id=2)
    assert ledger_uids(data_dir / "raw.tsv") == [1, 2, 3, 4]

    run(data_dir, start_id=1, end_id=2, legacy_high_bound=True)
    assert ledger_uids(data_dir / "raw.tsv") == [1, 2]


def test_missing_source_image_is_recorded_as_failure(data_dir):
    (data_dir / "sources" / "2.jpg").unlink()
    summary = run(data_dir)

    assert summary["failed"] == 2
    raw = (data_dir / "raw.tsv").read_text(encoding="utf-8").splitlines()
    assert raw[1].split("\t")[4:9] == ["x", "x", ".", "-1.00", "-1"]


def test_progress_renderer_sees_every_roi(data_dir, capsys):
    config = RunConfig(data_dir=data_dir)
    renderer = ProgressRenderer(width=10)
    process_batch(config, threshold_predictor, progress_renderer=renderer)

    out = capsys.readouterr().out
    assert "4/4" in out
    assert "uid:4" in out
    assert (renderer.failed, renderer.with_foreground) == (1, 3)


def test_undecodable_sample_name_round_trips(data_dir):
    gbk_name = "样本".encode("gbk")
    lines = [manifest_line(uid).encode("utf-8") for uid in (1, 2, 3, 4)]
    lines[1] = lines[1].replace(b"sampleA", gbk_name)
    (data_dir / "rois.tsv").write_bytes(b"".join(lines))

    summary = run(data_dir)
    assert summary["processed"] == 4

    raw = (data_dir / "raw.tsv").read_bytes().splitlines(keepends=True)
    stats = (data_dir / "stats.tsv").read_bytes().splitlines(keepends=True)
    assert raw[1].split(b"\t")[3] == gbk_name
    assert stats[1].rstrip(b"\n").split(b"\t")[-1] == gbk_name

    # uid 2 is outside the rerun range and must be carried unchanged.
    run(data_dir, start_id=3, end_id=4)
    assert (data_dir / "raw.tsv").read_bytes().splitlines(keepends=True)[1] == raw[1]
    assert (data_dir / "stats.tsv").read_bytes().splitlines(keepends=True)[1] == stats[1]


def test_missing_manifest_leaves_ledgers_untouched(tmp_path):
    (tmp_path / "raw.tsv").write_text("1\tkeep\n", encoding="utf-8")
    with pytest.raises(FileNotFoundError):
        run(tmp_path)
    assert (tmp_path / "raw.tsv").read_text(encoding="utf-8") == "1\tkeep\n"
    assert not (tmp_path / "stats.tsv").exists()
