import argparse
import sys
import types

import pytest

ui = pytest.importorskip("style_guide_extractor_ui")

from style_guide_core import BACKEND_ENV_VAR, DNS_FAILURE_MESSAGE, EMPTY_INPUT_MESSAGE  # noqa: E402


@pytest.fixture
def fake_backend_module(monkeypatch):
    module = types.ModuleType("fake_style_backend")

    def ok(url):
        return f"# Style Guide for {url}\n"

    def offline(url):
        raise RuntimeError("Failed to fetch website: dns resolution error")

    module.ok = ok
    module.offline = offline
    monkeypatch.setitem(sys.modules, "fake_style_backend", module)
    monkeypatch.delenv(BACKEND_ENV_VAR, raising=False)
    return module


def make_args(backend, url, output):
    return argparse.Namespace(backend=backend, url=url, output=str(output))


def test_cli_writes_document(tmp_path, capsys, fake_backend_module):
    output = tmp_path / "guide.md"

    code = ui.run_cli(make_args("fake_style_backend:ok", " example.com ", output))

    assert code == 0
    assert output.read_text(encoding="utf-8") == "# Style Guide for example.com\n"
    assert f"Output: {output}" in capsys.readouterr().out


def test_cli_reports_classified_failure(tmp_path, capsys, fake_backend_module):
    output = tmp_path / "guide.md"

    code = ui.run_cli(make_args("fake_style_backend:offline", "example.invalid", output))

    assert code == 1
    assert not output.exists()
    assert f"ERROR: {DNS_FAILURE_MESSAGE}" in capsys.readouterr().out


def test_cli_rejects_blank_url(tmp_path, capsys, fake_backend_module):
    code = ui.run_cli(make_args("fake_style_backend:ok", "   ", tmp_path / "guide.md"))

    assert code == 2
    assert EMPTY_INPUT_MESSAGE in capsys.readouterr().out


def test_cli_requires_a_backend(tmp_path, capsys, fake_backend_module):
    code = ui.run_cli(make_args(None, "example.com", tmp_path / "guide.md"))

    assert code == 2
    assert "No extraction backend configured" in capsys.readouterr().out


def test_cli_reports_unloadable_backend(tmp_path, capsys, fake_backend_module):
    code = ui.run_cli(make_args("fake_style_backend:missing", "example.com", tmp_path / "guide.md"))

    assert code == 2
    assert "ERROR:" in capsys.readouterr().out


def test_cli_reports_write_failure(tmp_path, capsys, fake_backend_module):
    output = tmp_path / "no-such-dir" / "guide.md"

    code = ui.run_cli(make_args("fake_style_backend:ok", "example.com", output))

    assert code == 1
    assert "Failed to save file" in capsys.readouterr().out


def test_main_requires_url_and_output_together(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["style-guide-extractor", "--url", "example.com"])
    with pytest.raises(SystemExit) as excinfo:
        ui.main()
    assert excinfo.value.code == 2
