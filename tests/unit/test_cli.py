"""Unit tests for the CLI entrypoint.

Provider adapters are replaced at ``calcapture.__main__.default_adapters``;
the orchestrator, settings store and diagnostic log run for real against a
settings file in ``tmp_path``.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from calcapture.__main__ import main
from calcapture.exceptions import ProviderHttpError
from calcapture.settings_store import SettingsStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_MEETING = {
    "title": "Team Meeting",
    "start": "2024-06-13T14:00:00",
    "end": "2024-06-13T15:00:00",
    "location": "Room B",
    "hasTime": True,
    "recurrence": "",
}


def _fake_adapter(name: str) -> MagicMock:
    adapter = MagicMock()
    adapter.name = name
    adapter.default_ocr_model = f"{name}-ocr"
    adapter.default_parse_model = f"{name}-parse"
    adapter.parse.return_value = json.dumps(_MEETING)
    adapter.ocr.return_value = "Team meeting Thursday 2pm Room B"
    adapter.fetch_models.return_value = [f"{name}-a", f"{name}-b"]
    return adapter


def _adapters() -> dict[str, MagicMock]:
    return {name: _fake_adapter(name) for name in ("openai", "gemini", "claude")}


def _image(tmp_path: Path) -> Path:
    path = tmp_path / "flyer.png"
    Image.new("RGB", (8, 8), color=(255, 255, 255)).save(path)
    return path


def _run(argv: list[str], adapters: dict[str, MagicMock] | None = None) -> int:
    with patch("calcapture.__main__.default_adapters", return_value=adapters or _adapters()):
        return main(argv)


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParseCommand:
    def test_prints_event(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Text argument -> event block on stdout, exit 0."""
        adapters = _adapters()

        exit_code = _run(["parse", "Team meeting Thursday 2pm"], adapters)

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "Team Meeting" in out
        assert "Team meeting Thursday 2pm" in out
        prompt, api_key, model = adapters["gemini"].parse.call_args.args
        assert "Team meeting Thursday 2pm" in prompt
        assert "America/Vancouver" in prompt
        assert api_key == "test-gemini-key-12345"
        assert model == "gemini-parse"

    def test_json_output(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = _run(["parse", "Team meeting", "--json"])

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["title"] == "Team Meeting"
        assert data["start"] == "2024-06-13T14:00:00"
        assert data["isAllDay"] is False

    def test_reads_file(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
    ) -> None:
        source = tmp_path / "note.txt"
        source.write_text("Dinner Friday 7pm", encoding="utf-8")
        adapters = _adapters()

        assert _run(["parse", "--file", str(source)], adapters) == 0
        assert "Dinner Friday 7pm" in adapters["gemini"].parse.call_args.args[0]

    def test_method_override(self, monkeypatch_env: dict[str, str], monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "ak-env")
        adapters = _adapters()

        assert _run(["parse", "x", "--method", "claude"], adapters) == 0
        adapters["claude"].parse.assert_called_once()
        adapters["gemini"].parse.assert_not_called()

    def test_empty_text(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()

        assert _run(["parse", "   "], adapters) == 1
        assert "Please enter some text" in capsys.readouterr().err
        adapters["gemini"].parse.assert_not_called()

    def test_missing_file(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["parse", "--file", str(tmp_path / "nope.txt")]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_key_explains_fix(
        self,
        clean_env: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()

        assert _run(["parse", "Lunch tomorrow"], adapters) == 1
        err = capsys.readouterr().err
        assert "gemini API key is missing" in err
        assert "calcapture config set-key gemini KEY" in err
        assert "GEMINI_API_KEY" in err
        adapters["gemini"].parse.assert_not_called()

    def test_no_date_found(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()
        adapters["gemini"].parse.return_value = '{"title": "Bring snacks", "start": null, "end": null}'

        assert _run(["parse", "Bring snacks"], adapters) == 0
        captured = capsys.readouterr()
        assert "No date found" in captured.out
        assert "No date found in text." in captured.err

    def test_malformed_answer(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()
        adapters["gemini"].parse.return_value = "I could not find an event."

        assert _run(["parse", "x"], adapters) == 1
        assert "Could not understand the provider response" in capsys.readouterr().err

    def test_http_error_shows_excerpt(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()
        adapters["gemini"].parse.side_effect = ProviderHttpError(
            403, "Forbidden", '{"error": "API key not valid"}', provider="gemini"
        )

        assert _run(["parse", "x"], adapters) == 1
        err = capsys.readouterr().err
        assert "API Error: 403 - Forbidden" in err
        assert "API key not valid" in err


# ---------------------------------------------------------------------------
# ocr / capture
# ---------------------------------------------------------------------------


class TestImageCommands:
    def test_ocr_prints_text(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image = _image(tmp_path)
        adapters = _adapters()

        assert _run(["ocr", str(image)], adapters) == 0
        assert "Team meeting Thursday 2pm Room B" in capsys.readouterr().out
        assert adapters["gemini"].ocr.call_args.args[0] == image

    def test_ocr_without_text(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()
        adapters["gemini"].ocr.return_value = ""

        assert _run(["ocr", str(_image(tmp_path))], adapters) == 0
        assert "No text found in image." in capsys.readouterr().err

    def test_capture_json(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()

        assert _run(["capture", str(_image(tmp_path)), "--json"], adapters) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["text"] == "Team meeting Thursday 2pm Room B"
        assert data["event"]["title"] == "Team Meeting"

    def test_capture_empty_ocr_skips_parse(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()
        adapters["gemini"].ocr.return_value = "  "

        assert _run(["capture", str(_image(tmp_path))], adapters) == 0
        assert "No text found in image." in capsys.readouterr().err
        adapters["gemini"].parse.assert_not_called()


# ---------------------------------------------------------------------------
# models / config / log
# ---------------------------------------------------------------------------


class TestModelsCommand:
    def test_fetches_when_cache_empty(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        adapters = _adapters()

        assert _run(["models", "gemini"], adapters) == 0
        assert capsys.readouterr().out.split() == ["gemini-a", "gemini-b"]
        adapters["gemini"].fetch_models.assert_called_once_with("test-gemini-key-12345")

    def test_uses_cache_unless_refresh(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        SettingsStore(Path(monkeypatch_env["CALCAPTURE_SETTINGS_FILE"])).save_cached_models(
            "gemini", ["cached-model"]
        )
        adapters = _adapters()

        assert _run(["models", "gemini"], adapters) == 0
        assert capsys.readouterr().out.split() == ["cached-model"]
        adapters["gemini"].fetch_models.assert_not_called()

        assert _run(["models", "gemini", "--refresh"], adapters) == 0
        adapters["gemini"].fetch_models.assert_called_once()

    def test_missing_key(self, clean_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["models", "openai"]) == 1
        assert "OPENAI_API_KEY" in capsys.readouterr().err


class TestConfigCommand:
    def test_set_key_then_show_masks_it(
        self,
        clean_env: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["config", "set-key", "openai", "sk-very-secret"]) == 0
        assert _run(["config", "show"]) == 0

        out = capsys.readouterr().out
        assert "sk-very-secret" not in out
        shown = json.loads(out)
        assert shown["api_keys"] == {"openai": "***"}
        assert shown["settings_file"] == str(clean_env)

    def test_set_methods_models_and_clock(self, clean_env: Path) -> None:
        assert _run(["config", "set-method", "ocr", "claude-vision"]) == 0
        assert _run(["config", "set-method", "parse", "openai"]) == 0
        assert _run(["config", "set-model", "openai", "parse", "gpt-4o"]) == 0
        assert _run(["config", "set-clock", "24"]) == 0

        store = SettingsStore(clean_env)
        config = store.provider_config()
        assert config.ocr_method == "claude-vision"
        assert config.parse_method == "openai"
        assert config.parse_model("openai") == "gpt-4o"
        assert store.use_24_hour() is True

    def test_unknown_method_rejected(
        self,
        clean_env: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(["config", "set-method", "ocr", "mlkit"]) == 1
        assert "Unknown ocr method 'mlkit'" in capsys.readouterr().err
        assert SettingsStore(clean_env).provider_config().ocr_method == "gemini-vision"


class TestLogCommand:
    def test_empty_log(self, clean_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(["log"]) == 0
        assert "No logs yet" in capsys.readouterr().out

    def test_run_is_recorded_then_cleared(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _run(["parse", "Team meeting Thursday"])
        capsys.readouterr()

        assert _run(["log"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert any("[INFO] Parsed: Team Meeting" in line for line in lines)

        assert _run(["log", "--clear"]) == 0
        assert "Log cleared" in capsys.readouterr().out
        assert SettingsStore(Path(monkeypatch_env["CALCAPTURE_SETTINGS_FILE"])).diagnostic_log() == []

    def test_quiet_console_still_records_info(
        self,
        monkeypatch_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """LOG_LEVEL only quiets the console, not the persisted log."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        assert _run(["parse", "Team meeting Thursday"]) == 0
        assert "| INFO" not in capsys.readouterr().err

        entries = SettingsStore(Path(monkeypatch_env["CALCAPTURE_SETTINGS_FILE"])).diagnostic_log()
        assert any("[INFO] Parsing text" in line for line in entries)
        assert any("[INFO] Parsed: Team Meeting" in line for line in entries)


# ---------------------------------------------------------------------------
# Global behaviour
# ---------------------------------------------------------------------------


class TestGlobal:
    def test_missing_command_shows_usage(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
        assert "usage" in capsys.readouterr().err.lower()

    def test_verbose_sets_debug_logging(self, monkeypatch_env: dict[str, str]) -> None:
        with (
            patch("calcapture.__main__.default_adapters", return_value=_adapters()),
            patch("calcapture.__main__.setup_logging") as mock_setup,
        ):
            main(["parse", "x", "-v"])

        mock_setup.assert_called_once_with("DEBUG")

    def test_invalid_timezone(
        self,
        clean_env: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("TIMEZONE", "Nowhere/Special")

        assert main(["log"]) == 1
        assert "Unknown TIMEZONE" in capsys.readouterr().err

    def test_invalid_log_level(
        self,
        clean_env: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")

        assert main(["log"]) == 1
        assert "Invalid log level" in capsys.readouterr().err

    def test_settings_path_is_a_directory(
        self,
        tmp_path: Path,
        clean_env: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("CALCAPTURE_SETTINGS_FILE", str(tmp_path))

        assert _run(["parse", "hello"]) == 1
        assert "Cannot read settings file" in capsys.readouterr().err
        assert main(["log"]) == 1

    def test_corrupt_settings_file(
        self,
        clean_env: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        clean_env.write_text("{broken", encoding="utf-8")

        assert _run(["parse", "x"]) == 1
        assert "Invalid settings file" in capsys.readouterr().err
