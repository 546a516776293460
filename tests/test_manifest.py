"""Tests for the package.json reader."""

import json
import os

import pytest

from yup.errors import ManifestParseError, ManifestReadError
from yup.manifest import Manifest, read_manifest


def _write(tmp_path, body):
    path = os.path.join(str(tmp_path), "package.json")
    with open(path, "w", encoding="utf-8") as f:
        f.write(body)
    return path


def test_reads_both_sections(tmp_path):
    path = _write(tmp_path, json.dumps({
        "dependencies": {"left-pad": "1.0.0"},
        "devDependencies": {"jest": "^29.0.0"},
    }))
    manifest = read_manifest(path)
    assert manifest.dependencies == {"left-pad": "1.0.0"}
    assert manifest.dev_dependencies == {"jest": "^29.0.0"}


def test_missing_sections_default_to_empty(tmp_path):
    manifest = read_manifest(_write(tmp_path, '{"name": "demo"}'))
    assert manifest == Manifest()


def test_null_document_is_empty(tmp_path):
    assert read_manifest(_write(tmp_path, "null")) == Manifest()


def test_missing_file_raises_read_error(tmp_path):
    with pytest.raises(ManifestReadError) as exc_info:
        read_manifest(os.path.join(str(tmp_path), "package.json"))
    assert not isinstance(exc_info.value, ManifestParseError)
    assert "package.json" in str(exc_info.value)


def test_invalid_json_raises_parse_error(tmp_path):
    with pytest.raises(ManifestParseError):
        read_manifest(_write(tmp_path, "{not json"))


def test_non_object_section_raises_parse_error(tmp_path):
    with pytest.raises(ManifestParseError) as exc_info:
        read_manifest(_write(tmp_path, '{"dependencies": ["left-pad"]}'))
    assert "'dependencies' must be an object" in str(exc_info.value)


def test_parse_error_is_a_read_error():
    assert issubclass(ManifestParseError, ManifestReadError)


def test_entries_without_a_range_are_not_declared(tmp_path):
    manifest = read_manifest(_write(tmp_path, json.dumps({
        "dependencies": {"left-pad": None, "lodash": "^4.17.0", "odd": 1},
        "devDependencies": {"jest": ""},
    })))
    assert manifest.dependencies == {"lodash": "^4.17.0"}
    assert manifest.dev_dependencies == {}
