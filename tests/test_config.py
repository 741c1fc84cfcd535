import json

import pytest

from asg_ebs.config import Config, load_defaults, parse_tag, parse_tags


def test_device(make_config):
    assert make_config(attach_as="xvdf").device == "/dev/xvdf"


def test_defaults(make_config):
    config = make_config()

    assert config.mkfs_inode_ratio == 16384
    assert config.max_retries == 20
    assert config.delete_on_termination is False
    assert config.snapshot_name is None
    assert config.create_tags == {}


def test_is_immutable(make_config):
    config = make_config()

    with pytest.raises(AttributeError):
        config.tag_key = "other"


def test_empty_snapshot_name_means_none(make_config):
    assert make_config(snapshot_name="").snapshot_name is None


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"tag_key": ""}, "tag_key"),
        ({"attach_as": "/dev/xvdb"}, "attach_as"),
        ({"create_size": 0}, "create_size"),
        ({"mkfs_inode_ratio": -1}, "mkfs_inode_ratio"),
        ({"create_volume_type": "io9"}, "create_volume_type"),
        ({"max_retries": -1}, "max_retries"),
    ],
)
def test_invalid(make_config, overrides, message):
    with pytest.raises(ValueError, match=message):
        make_config(**overrides)


class TestParseTag:
    def test_simple(self):
        assert parse_tag("team=infra") == ("team", "infra")

    def test_value_with_equal_sign(self):
        assert parse_tag("query=a=b") == ("query", "a=b")

    def test_empty_value(self):
        assert parse_tag("flag=") == ("flag", "")

    def test_missing_separator(self):
        with pytest.raises(ValueError, match="expected KEY=VALUE"):
            parse_tag("team")

    def test_empty_key(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_tag("=infra")

    def test_last_one_wins(self):
        assert parse_tags(["a=1", "b=2", "a=3"]) == {"a": "3", "b": "2"}


class TestLoadDefaults:
    def test_file(self, tmp_path):
        path = tmp_path / "asg-ebs.json"
        path.write_text(json.dumps({"tag-key": "env", "mount_point": "/srv"}))

        assert load_defaults(path) == {"tag_key": "env", "mount_point": "/srv"}

    def test_directory(self, tmp_path):
        (tmp_path / "10-base.json").write_text(json.dumps({"tag_key": "env", "create_size": 10}))
        (tmp_path / "20-override.json").write_text(json.dumps({"create_size": 50}))
        (tmp_path / "README").write_text("not json")

        assert load_defaults(tmp_path) == {"tag_key": "env", "create_size": 50}

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "asg-ebs.json"
        path.write_text("[]")

        with pytest.raises(ValueError):
            load_defaults(path)
