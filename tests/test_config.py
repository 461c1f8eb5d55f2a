import json

from logtap.modules.config import DEFAULTS, load_user_config, save_user_config


def test_first_load_writes_defaults(tmp_path):
    path = tmp_path / "nested" / "config.json"
    assert load_user_config(str(path)) == DEFAULTS
    assert json.loads(path.read_text()) == DEFAULTS


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_body_length": 42, "bogus": True}))

    loaded = load_user_config(str(path))
    assert loaded["max_body_length"] == 42
    assert "bogus" not in loaded

    save_user_config({**loaded, "bogus": 1}, str(path))
    assert "bogus" not in json.loads(path.read_text())


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_user_config(str(path)) == DEFAULTS
