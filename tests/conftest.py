"""Shared test fixtures for apic-rulesets tests."""

from __future__ import annotations

import base64
import io
import json
import logging
import textwrap
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from apic_rulesets.azure_api import ServiceScope
from apic_rulesets.settings import DeploySettings

SAMPLE_RULESET = textwrap.dedent("""\
    extends: spectral:oas
    rules:
      operation-description: error
""")


def make_response(
    status_code: int = 200,
    body: dict | None = None,
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Return a ``requests.Response`` stand-in with a working ``raise_for_status``."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.headers = headers or {}
    resp.json.return_value = body if body is not None else {}
    resp.text = json.dumps(body) if body is not None else ""
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=resp
        )
    else:
        resp.raise_for_status.return_value = None
    return resp


def zip_package(files: dict[str, str]) -> str:
    """Return a base64 zip archive holding *files*."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return base64.b64encode(buf.getvalue()).decode()


def write_ruleset(
    root: Path,
    name: str,
    descriptor: str | None = None,
    content: str = SAMPLE_RULESET,
    rule_file: str = "ruleset.yaml",
    functions: dict[str, str] | None = None,
) -> Path:
    """Create a ruleset directory under *root* and return its path."""
    directory = root / name
    directory.mkdir(parents=True)
    (directory / rule_file).write_text(content, encoding="utf-8")
    if descriptor is not None:
        (directory / "config.yaml").write_text(textwrap.dedent(descriptor), encoding="utf-8")
    for rel, text in (functions or {}).items():
        target = directory / "functions" / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return directory


class FakeApiCenter:
    """In-memory API Center that answers the ARM calls made by ``azure_api``.

    *import_failures* maps a config name to the number of import calls that
    should fail with HTTP 500 before one succeeds.
    """

    def __init__(
        self,
        configs: dict[str, str] | None = None,
        tier: str | None = "Free",
        import_failures: dict[str, int] | None = None,
    ) -> None:
        self.configs: dict[str, dict] = {
            name: {"name": name, "properties": {"analyzerType": engine}}
            for name, engine in (configs or {}).items()
        }
        self.packages: dict[str, str] = {}
        self.tier = tier
        self.import_failures = dict(import_failures or {})
        self.calls: list[tuple[str, str]] = []
        self.fail_export = False
        self.exported_text: str | None = None
        self.fail_delete: set[str] = set()

    @staticmethod
    def _segments(url: str) -> list[str]:
        path = url.split("?", 1)[0]
        if "/analyzerConfigs" not in path:
            return []
        tail = path.split("/analyzerConfigs", 1)[1].strip("/")
        return tail.split("/") if tail else []

    def get(self, url: str, **kwargs) -> MagicMock:
        self.calls.append(("GET", url))
        if "/analyzerConfigs" not in url:
            if self.tier is None:
                return make_response(404, {"error": {"code": "ResourceNotFound"}})
            return make_response(200, {"name": "apic-1", "sku": {"name": self.tier}})
        segments = self._segments(url)
        if not segments:
            return make_response(200, {"value": list(self.configs.values())})
        config = self.configs.get(segments[0])
        if config is None:
            return make_response(404, {"error": {"code": "ResourceNotFound"}})
        return make_response(200, config)

    def put(self, url: str, json: dict | None = None, **kwargs) -> MagicMock:
        self.calls.append(("PUT", url))
        name = self._segments(url)[0]
        engine = (json or {}).get("properties", {}).get("analyzerType")
        self.configs[name] = {"name": name, "properties": {"analyzerType": engine}}
        return make_response(201, self.configs[name])

    def delete(self, url: str, **kwargs) -> MagicMock:
        self.calls.append(("DELETE", url))
        name = self._segments(url)[0]
        if name in self.fail_delete:
            return make_response(409, {"error": {"code": "Conflict"}})
        if self.configs.pop(name, None) is None:
            return make_response(404)
        return make_response(200)

    def post(self, url: str, json: dict | None = None, **kwargs) -> MagicMock:
        self.calls.append(("POST", url))
        name, action = self._segments(url)
        if name not in self.configs:
            return make_response(404, {"error": {"code": "ResourceNotFound"}})
        if action == "importRuleset":
            if self.import_failures.get(name, 0) > 0:
                self.import_failures[name] -= 1
                return make_response(500, {"error": {"code": "InternalServerError"}})
            self.packages[name] = (json or {})["value"]
            return make_response(200)
        if self.fail_export or name not in self.packages:
            return make_response(500, {"error": {"code": "InternalServerError"}})
        value = self.packages[name]
        if self.exported_text is not None:
            value = zip_package({"ruleset.yaml": self.exported_text})
        return make_response(200, {"format": "inline-zip", "value": value})

    def count(self, method: str, fragment: str) -> int:
        return sum(1 for m, url in self.calls if m == method and fragment in url)


@pytest.fixture(autouse=True)
def _mock_credential():
    """Prevent real Azure credential calls in every test."""
    mock_token = MagicMock()
    mock_token.token = "fake-token"
    with patch("apic_rulesets.azure_api._auth.credential") as cred:
        cred.get_token.return_value = mock_token
        yield cred


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo the handler the CLI installs so later tests do not log to a closed stream."""
    yield
    pkg_logger = logging.getLogger("apic_rulesets")
    pkg_logger.handlers = []
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def scope() -> ServiceScope:
    return ServiceScope(subscription_id="sub-1", resource_group="rg-1", service_name="apic-1")


@pytest.fixture()
def settings() -> DeploySettings:
    return DeploySettings(
        subscription_id="sub-1",
        resource_group="rg-1",
        service_name="apic-1",
        _env_file=None,
    )


@pytest.fixture()
def sleeps() -> list[float]:
    """Collect the delays passed to an injected ``sleep``."""
    return []


@pytest.fixture()
def fake_sleep(sleeps: list[float]):
    return sleeps.append


@pytest.fixture()
def fake_apic():
    """Route ``requests`` calls to a :class:`FakeApiCenter`."""
    fake = FakeApiCenter()
    with (
        patch("apic_rulesets.azure_api.requests.get", side_effect=fake.get),
        patch("apic_rulesets.azure_api.requests.put", side_effect=fake.put),
        patch("apic_rulesets.azure_api.requests.post", side_effect=fake.post),
        patch("apic_rulesets.azure_api.requests.delete", side_effect=fake.delete),
    ):
        yield fake
