"""Entry point for ``python -m calcapture``.

Provides a CLI that plays the role of the interactive shell: it loads the
settings store, runs one pipeline operation, renders the result and persists
the diagnostic log.  Uses stdlib :mod:`argparse` for argument parsing.

Subcommands:
    parse    -- Parse free-form text into an event.
    ocr      -- Extract the text from an image.
    capture  -- OCR an image, then parse the recognised text.
    models   -- Show or refresh the cached model list of a provider.
    config   -- Show or change provider selection, keys and models.
    log      -- Show or clear the diagnostic log.

Exit codes:
    0 -- Operation completed (including "no date found").
    1 -- An error occurred (missing key, provider failure, bad input).
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from calcapture.catalog import ModelCatalog
from calcapture.config import (
    ENV_API_KEYS,
    ConfigError,
    Settings,
    current_datetime,
    load_settings,
    timezone_label,
)
from calcapture.demo_output import print_event
from calcapture.exceptions import (
    MalformedEventJson,
    MissingCredential,
    PipelineError,
    ProviderHttpError,
)
from calcapture.log import DiagnosticLogHandler, setup_logging
from calcapture.models.event import EventRecord
from calcapture.pipeline import OCR_METHODS, PARSE_METHODS, Orchestrator
from calcapture.providers import default_adapters
from calcapture.settings_store import SettingsStore

logger = logging.getLogger("calcapture")

_PROVIDERS = sorted(ENV_API_KEYS)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser with subcommands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    parser = argparse.ArgumentParser(
        prog="calcapture",
        description="Turn photographed or pasted text into a calendar event.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- parse ------------------------------------------------------------
    parse_parser = subparsers.add_parser(
        "parse", parents=[common], help="Parse text into an event."
    )
    parse_parser.add_argument("text", nargs="?", default=None, help="Text to parse.")
    parse_parser.add_argument(
        "--file", type=str, default=None, help="Read the text from a file ('-' for stdin)."
    )
    parse_parser.add_argument(
        "--method", type=str, default=None, help="Parse method (defaults to the saved one)."
    )
    parse_parser.add_argument(
        "--json", action="store_true", default=False, help="Print the event as JSON."
    )

    # --- ocr --------------------------------------------------------------
    ocr_parser = subparsers.add_parser(
        "ocr", parents=[common], help="Extract the text from an image."
    )
    ocr_parser.add_argument("image", type=str, help="Path to the image file.")
    ocr_parser.add_argument(
        "--method", type=str, default=None, help="OCR method (defaults to the saved one)."
    )

    # --- capture ----------------------------------------------------------
    capture_parser = subparsers.add_parser(
        "capture", parents=[common], help="OCR an image, then parse the text."
    )
    capture_parser.add_argument("image", type=str, help="Path to the image file.")
    capture_parser.add_argument(
        "--json", action="store_true", default=False, help="Print the result as JSON."
    )

    # --- models -----------------------------------------------------------
    models_parser = subparsers.add_parser(
        "models", parents=[common], help="Show or refresh a provider's model list."
    )
    models_parser.add_argument("provider", choices=_PROVIDERS)
    models_parser.add_argument(
        "--refresh",
        action="store_true",
        default=False,
        help="Query the provider instead of showing the cached list.",
    )

    # --- config -----------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Show or change settings."
    )
    config_sub = config_parser.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="Print the current settings (keys masked).")

    set_key = config_sub.add_parser("set-key", help="Store an API key.")
    set_key.add_argument("provider", choices=_PROVIDERS)
    set_key.add_argument("key")

    set_method = config_sub.add_parser("set-method", help="Select the OCR or parse method.")
    set_method.add_argument("capability", choices=["ocr", "parse"])
    set_method.add_argument("method")

    set_model = config_sub.add_parser("set-model", help="Select a provider's model.")
    set_model.add_argument("provider", choices=_PROVIDERS)
    set_model.add_argument("capability", choices=["ocr", "parse"])
    set_model.add_argument("model")

    set_clock = config_sub.add_parser("set-clock", help="Choose 12- or 24-hour display.")
    set_clock.add_argument("hours", choices=["12", "24"])

    # --- log --------------------------------------------------------------
    log_parser = subparsers.add_parser(
        "log", parents=[common], help="Show or clear the diagnostic log."
    )
    log_parser.add_argument(
        "--clear", action="store_true", default=False, help="Delete all log lines."
    )

    return parser


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _build_orchestrator(settings: Settings) -> Orchestrator:
    return Orchestrator(
        adapters=default_adapters(settings.request_timeout),
        clock=lambda: current_datetime(settings),
        timezone_label=timezone_label(settings),
    )


def _read_text(args: argparse.Namespace) -> str | None:
    if args.file is None:
        return args.text
    if args.file == "-":
        return sys.stdin.read()
    return Path(args.file).read_text(encoding="utf-8")


def _report_event(
    event: EventRecord,
    store: SettingsStore,
    source_text: str,
    as_json: bool,
) -> None:
    if as_json:
        print(json.dumps(event.to_json_dict(), indent=2))
    else:
        print_event(event, source_text=source_text, use_24_hour=store.use_24_hour())
    if not event.has_dates:
        print("No date found in text.", file=sys.stderr)


def _handle_parse(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    try:
        text = _read_text(args)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if not text or not text.strip():
        print("Error: Please enter some text (TEXT or --file).", file=sys.stderr)
        return 1

    config = store.provider_config()
    method = args.method or config.parse_method
    event = _build_orchestrator(settings).perform_parse(method, text, config)
    _report_event(event, store, "" if args.json else text, args.json)
    return 0


def _handle_ocr(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    config = store.provider_config()
    method = args.method or config.ocr_method
    text = _build_orchestrator(settings).perform_ocr(method, Path(args.image), config)
    if not text.strip():
        print("No text found in image.", file=sys.stderr)
        return 0
    print(text)
    return 0


def _handle_capture(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    config = store.provider_config()
    result = _build_orchestrator(settings).capture(Path(args.image), config)
    if result.event is None:
        print("No text found in image.", file=sys.stderr)
        return 0
    if args.json:
        print(json.dumps({"text": result.text, "event": result.event.to_json_dict()}, indent=2))
        if not result.event.has_dates:
            print("No date found in text.", file=sys.stderr)
        return 0
    _report_event(result.event, store, result.text, as_json=False)
    return 0


def _handle_models(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    catalog = ModelCatalog(store, default_adapters(settings.request_timeout))
    models = catalog.cached_models(args.provider)
    if args.refresh or not models:
        api_key = store.provider_config().api_key(args.provider)
        models = catalog.fetch_models(args.provider, api_key)
    for model in models:
        print(model)
    return 0


def _handle_config(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    if args.action == "show":
        config = store.provider_config()
        shown = config.model_dump()
        shown["api_keys"] = {name: "***" for name, key in config.api_keys.items() if key}
        shown["use_24_hour"] = store.use_24_hour()
        shown["settings_file"] = str(store.path)
        print(json.dumps(shown, indent=2))
    elif args.action == "set-key":
        store.save_api_key(args.provider, args.key)
    elif args.action == "set-method":
        methods = OCR_METHODS if args.capability == "ocr" else PARSE_METHODS
        if args.method not in methods:
            print(
                f"Error: Unknown {args.capability} method {args.method!r}. "
                f"Choose from: {', '.join(methods)}",
                file=sys.stderr,
            )
            return 1
        if args.capability == "ocr":
            store.save_ocr_method(args.method)
        else:
            store.save_parse_method(args.method)
    elif args.action == "set-model":
        store.save_model_selection(args.provider, args.capability, args.model)
    elif args.action == "set-clock":
        store.set_24_hour(args.hours == "24")
    return 0


def _handle_log(args: argparse.Namespace, store: SettingsStore) -> int:
    if args.clear:
        store.clear_diagnostic_log()
        print("Log cleared")
        return 0
    entries = store.diagnostic_log()
    print("\n".join(entries) if entries else "No logs yet")
    return 0


_HANDLERS = {
    "parse": _handle_parse,
    "ocr": _handle_ocr,
    "capture": _handle_capture,
    "models": _handle_models,
    "config": _handle_config,
}


def _explain(exc: PipelineError) -> str:
    """Return the user-facing message for a pipeline failure."""
    if isinstance(exc, MissingCredential):
        env_var = ENV_API_KEYS.get(exc.provider, "")
        hint = f" or set {env_var}" if env_var else ""
        return (
            f"Error: {exc}. Run 'calcapture config set-key {exc.provider} KEY'{hint}."
        )
    if isinstance(exc, MalformedEventJson):
        return "Error: Could not understand the provider response."
    if isinstance(exc, ProviderHttpError) and exc.body_excerpt:
        return f"Error: {exc}\n{exc.body_excerpt}"
    return f"Error: {exc}"


def main(argv: list[str] | None = None) -> int:
    """Run the calcapture CLI.

    Args:
        argv: Command-line arguments.  Defaults to ``sys.argv[1:]``
            when ``None`` (the normal case).

    Returns:
        Exit code: ``0`` on success, ``1`` on error.
    """
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        setup_logging("DEBUG" if args.verbose else settings.log_level)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    store = SettingsStore(settings.settings_file, settings.env_api_keys)

    try:
        if args.command == "log":
            return _handle_log(args, store)
        diagnostics = DiagnosticLogHandler(store.diagnostic_log())
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    # The diagnostic log records INFO even when the console is quieter.
    logger.setLevel(min(logging.INFO, logging.getLogger().getEffectiveLevel()))
    logger.addHandler(diagnostics)
    try:
        return _HANDLERS[args.command](args, settings, store)
    except PipelineError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(_explain(exc), file=sys.stderr)
        return 1
    except (ConfigError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        logger.removeHandler(diagnostics)
        try:
            store.save_diagnostic_log(diagnostics.entries)
        except (ConfigError, OSError) as exc:
            print(f"Warning: could not save diagnostic log: {exc}", file=sys.stderr)


if __name__ == "__main__":
    raise SystemExit(main())
