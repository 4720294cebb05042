"""Ruleset archive packaging for the ``inline-zip`` transport format."""

from __future__ import annotations

import base64
import binascii
import fnmatch
import io
import logging
import os
import tempfile
import zipfile
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from apic_rulesets.locator import FUNCTIONS_DIR_NAME

logger = logging.getLogger(__name__)

_RULE_MEMBER_PATTERN = "ruleset.y*ml"


@dataclass
class Package:
    archive_path: Path
    encoded: str
    size: int


def write_archive(archive_path: Path, rule_file: Path, functions_dir: Path | None = None) -> int:
    """Write a zip with *rule_file* at the root and *functions_dir* under ``functions/``.

    Returns the number of archive members written.
    """
    if not rule_file.is_file():
        raise FileNotFoundError(f"Rule file not found: {rule_file}")

    count = 1
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.write(rule_file, arcname=rule_file.name)
        if functions_dir is not None and functions_dir.is_dir():
            for path in sorted(functions_dir.rglob("*")):
                if not path.is_file():
                    continue
                arcname = PurePosixPath(FUNCTIONS_DIR_NAME, *path.relative_to(functions_dir).parts)
                zf.write(path, arcname=str(arcname))
                count += 1
    return count


@contextmanager
def build_package(rule_file: Path, functions_dir: Path | None = None) -> Generator[Package]:
    """Build and base64-encode a ruleset archive in a temporary file.

    The archive is removed when the context exits, whether or not the body
    raised.
    """
    fd, tmp_name = tempfile.mkstemp(prefix="ruleset-", suffix=".zip")
    os.close(fd)
    archive_path = Path(tmp_name)
    try:
        members = write_archive(archive_path, rule_file, functions_dir)
        data = archive_path.read_bytes()
        logger.debug("Packaged %s (%s members, %s bytes)", rule_file, members, len(data))
        yield Package(
            archive_path=archive_path,
            encoded=base64.b64encode(data).decode("ascii"),
            size=len(data),
        )
    finally:
        archive_path.unlink(missing_ok=True)


def _pick_rule_member(names: list[str]) -> str | None:
    files = [n for n in names if not n.endswith("/")]
    for name in files:
        if fnmatch.fnmatch(PurePosixPath(name).name, _RULE_MEMBER_PATTERN):
            return name
    for name in files:
        if "/" not in name and name.endswith((".yaml", ".yml")):
            return name
    return None


def read_rule_file(encoded: str) -> bytes:
    """Return the rule file bytes from a base64 ``inline-zip`` package.

    Raises :class:`ValueError` when the payload is not a zip archive or holds
    no rule file.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
        with zipfile.ZipFile(io.BytesIO(raw)) as zf:
            member = _pick_rule_member(zf.namelist())
            if member is None:
                raise ValueError("Package does not contain a ruleset file")
            return zf.read(member)
    except (zipfile.BadZipFile, binascii.Error) as exc:
        raise ValueError(f"Package is not a valid base64 zip archive: {exc}") from exc
