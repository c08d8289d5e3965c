import json

import pytest

from perp import config as config_module
from perp import logging as logging_module


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and session logs out of the real home directory."""
    home = tmp_path / "home"
    monkeypatch.setattr(config_module, "CONFIG_DIR", home / ".perp")
    monkeypatch.setattr(config_module, "CONFIG_FILE", home / ".perp" / "config.yaml")
    monkeypatch.setattr(logging_module, "LOG_DIR", home / ".perp" / "logs")
    for var in ("PERPLEXITY_API_KEY", "PERP_API_KEY", "PERP_MODEL", "PERP_ENDPOINT", "PERP_DEBUG"):
        monkeypatch.delenv(var, raising=False)
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return home


@pytest.fixture
def make_chunk():
    """Build a `data:` line carrying one choice per content string."""
    def _make(*contents, citations=None, field="delta"):
        body = {"choices": [{field: {"role": "assistant", "content": c}} for c in contents]}
        if citations is not None:
            body["citations"] = citations
        return "data: " + json.dumps(body)
    return _make
