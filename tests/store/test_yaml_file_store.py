"""Tests for the YAML file store."""

import pathlib

import pytest

from refreshing_config import ConfigEvent, RefreshingConfig
from refreshing_config.exceptions import StoreError
from refreshing_config.store import YamlFileConfigStore


@pytest.fixture
def config_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """Path of a config file that does not exist yet."""
    return tmp_path / "config.yaml"


async def test_missing_file(config_path: pathlib.Path) -> None:
    """Test that a missing file reads as empty."""
    store = YamlFileConfigStore(config_path)
    assert store.path == config_path
    assert await store.fetch_all() == {}


async def test_write_and_remove(config_path: pathlib.Path) -> None:
    """Test that writes persist to the file."""
    store = YamlFileConfigStore(config_path)
    await store.write("foo", "bar")
    await store.write("db", {"host": "localhost", "port": 5432})
    assert config_path.read_text() == (
        "---\nfoo: bar\ndb:\n  host: localhost\n  port: 5432\n"
    )

    await store.remove("foo")
    await store.remove("missing")
    assert await YamlFileConfigStore(str(config_path)).fetch_all() == {
        "db": {"host": "localhost", "port": 5432}
    }


async def test_empty_file(config_path: pathlib.Path) -> None:
    """Test that an empty document reads as empty."""
    config_path.write_text("---\n")
    assert await YamlFileConfigStore(config_path).fetch_all() == {}


@pytest.mark.parametrize(
    ("content", "match"),
    [
        ("- a\n- b\n", "must contain a mapping"),
        ("foo: [unclosed\n", "Unable to parse"),
    ],
)
async def test_invalid_file(
    config_path: pathlib.Path, content: str, match: str
) -> None:
    """Test that malformed files are reported."""
    config_path.write_text(content)
    with pytest.raises(StoreError, match=match):
        await YamlFileConfigStore(config_path).fetch_all()


async def test_refreshing_config(config_path: pathlib.Path) -> None:
    """Test picking up changes made to the file by another writer."""
    config_path.write_text("foo: bar\n")
    config = RefreshingConfig(YamlFileConfigStore(config_path))
    assert await config.get("foo") == "bar"

    changes = []
    config.add_listener(
        ConfigEvent.CHANGED, lambda _, patch: changes.append([op.to_dict() for op in patch])
    )
    config_path.write_text("foo: baz\nhello: world\n")
    await config.refresh()

    assert changes == [
        [
            {"op": "replace", "path": "/foo", "value": "baz"},
            {"op": "add", "path": "/hello", "value": "world"},
        ]
    ]
