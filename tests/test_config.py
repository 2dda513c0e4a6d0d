import json

import pytest
from pydantic import ValidationError

from config import RunConfig, default_params, load_params


def test_defaults(tmp_path):
    config = RunConfig(data_dir=tmp_path)

    assert config.start_id == 1
    assert config.end_id == 2**31 - 11
    assert config.cutoff == 180
    assert config.padding == 5
    assert config.manifest_path == tmp_path / "rois.tsv"
    assert config.source_path(3) == tmp_path / "sources" / "3.jpg"
    assert config.annot_path(3) == tmp_path / "annots" / "3.jpg"
    assert config.mask_path(3) == tmp_path / "masks" / "3.jpg"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start_id": 10, "end_id": 5},
        {"cutoff": 256},
        {"cutoff": -1},
        {"min_area": 5000, "max_area": 1000},
        {"overlay_alpha": 1.5},
    ],
)
def test_invalid_config(tmp_path, kwargs):
    with pytest.raises(ValidationError):
        RunConfig(data_dir=tmp_path, **kwargs)


def test_config_is_frozen(tmp_path):
    config = RunConfig(data_dir=tmp_path)
    with pytest.raises(ValidationError):
        config.cutoff = 10


def test_load_params_merges_over_defaults(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"cutoff": 150, "padding": 3}), encoding="utf-8")

    params = load_params(path)

    assert params["cutoff"] == 150
    assert params["padding"] == 3
    assert params["min_area"] == default_params()["min_area"]
    assert load_params(None) == default_params()


def test_load_params_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_params(tmp_path / "absent.json")

    bad_key = tmp_path / "bad_key.json"
    bad_key.write_text(json.dumps({"threshold": 1}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_params(bad_key)

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{cutoff: }", encoding="utf-8")
    with pytest.raises(ValueError):
        load_params(bad_json)
