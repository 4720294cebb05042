"""Tests for ruleset archive packaging."""

import base64
import io
import zipfile

import pytest
from conftest import write_ruleset, zip_package

from apic_rulesets.packaging import build_package, read_rule_file


def _members(encoded: str) -> list[str]:
    with zipfile.ZipFile(io.BytesIO(base64.b64decode(encoded))) as zf:
        return sorted(zf.namelist())


class TestBuildPackage:
    def test_unpacked_rule_file_is_byte_identical(self, tmp_path) -> None:
        content = "rules:\n  no-empty: warn\n  unicode: \"héllo ✓\"\r\n"
        directory = write_ruleset(tmp_path, "r", content=content)
        rule_file = directory / "ruleset.yaml"
        with build_package(rule_file) as package:
            assert read_rule_file(package.encoded) == rule_file.read_bytes()

    def test_rule_file_at_root_and_functions_nested(self, tmp_path) -> None:
        directory = write_ruleset(
            tmp_path,
            "r",
            functions={"a.js": "a", "nested/b.js": "b"},
        )
        with build_package(directory / "ruleset.yaml", directory / "functions") as package:
            assert _members(package.encoded) == [
                "functions/a.js",
                "functions/nested/b.js",
                "ruleset.yaml",
            ]

    def test_temp_archive_removed_after_use(self, tmp_path) -> None:
        directory = write_ruleset(tmp_path, "r")
        with build_package(directory / "ruleset.yaml") as package:
            archive = package.archive_path
            assert archive.exists()
            assert package.size == archive.stat().st_size
        assert not archive.exists()

    def test_temp_archive_removed_on_error(self, tmp_path) -> None:
        directory = write_ruleset(tmp_path, "r")
        with pytest.raises(RuntimeError), build_package(directory / "ruleset.yaml") as package:
            archive = package.archive_path
            raise RuntimeError("upload failed")
        assert not archive.exists()

    def test_missing_rule_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError), build_package(tmp_path / "ruleset.yaml"):
            pass


class TestReadRuleFile:
    def test_finds_nested_ruleset(self) -> None:
        encoded = zip_package({"functions/x.js": "x", "export/ruleset.yml": "rules: {}"})
        assert read_rule_file(encoded) == b"rules: {}"

    def test_falls_back_to_root_yaml(self) -> None:
        encoded = zip_package({"spectral.yaml": "extends: spectral:oas"})
        assert read_rule_file(encoded) == b"extends: spectral:oas"

    def test_no_rule_file(self) -> None:
        with pytest.raises(ValueError, match="does not contain"):
            read_rule_file(zip_package({"functions/x.js": "x"}))

    def test_not_a_zip(self) -> None:
        with pytest.raises(ValueError, match="not a valid"):
            read_rule_file(base64.b64encode(b"plain text").decode())
