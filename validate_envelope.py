#!/usr/bin/env python3
"""Validate serialized envelopes against the configured schema sources."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from pacts_kit import EnvelopeFormatError, PactsConfig, PactsService, SchemaResolutionError

LOGGER = logging.getLogger("pacts.validate")


def parse_args(argv: list[str] | None = None, defaults: PactsConfig | None = None) -> argparse.Namespace:
    if defaults is None:
        defaults = PactsConfig.from_env()
    parser = argparse.ArgumentParser(description="Pacts envelope validator")
    parser.add_argument("envelopes", nargs="+", type=Path, help="Envelope JSON files to validate")
    parser.add_argument("--schema-root", default=defaults.schema_root, help="Local schema directory")
    parser.add_argument("--domain", default=defaults.domain, help="Schema domain")
    parser.add_argument("--version", default=defaults.version, help="Schema version directory, e.g. v1")
    parser.add_argument(
        "--archive-url",
        dest="archive_urls",
        action="append",
        default=None,
        help="Schema archive URL (repeatable, tried in order)",
    )
    parser.add_argument(
        "--fetch-timeout", type=float, default=defaults.fetch_timeout, help="Archive fetch timeout in seconds"
    )
    parser.add_argument("--no-filesystem", action="store_true", help="Skip the local schema directory")
    parser.add_argument("--no-bundled", action="store_true", help="Skip the bundled default schemas")
    parser.add_argument("--json", action="store_true", help="Emit one JSON result per envelope")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.archive_urls is None:
        args.archive_urls = list(defaults.archive_urls)
    return args


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _build_config(args: argparse.Namespace, defaults: PactsConfig) -> PactsConfig:
    return PactsConfig(
        schema_root=args.schema_root,
        domain=args.domain,
        version=args.version,
        archive_urls=tuple(args.archive_urls),
        fetch_timeout=args.fetch_timeout,
        max_archive_bytes=defaults.max_archive_bytes,
        use_filesystem=not args.no_filesystem,
        use_bundled=not args.no_bundled,
    )


def _report(path: Path, errors: list[str], json_output: bool) -> None:
    if json_output:
        print(json.dumps({"file": str(path), "valid": not errors, "errors": errors}))
    elif errors:
        print(f"{path}: INVALID: {'; '.join(errors)}")
    else:
        print(f"{path}: OK")


def main(argv: list[str] | None = None) -> int:
    try:
        defaults = PactsConfig.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid PACTS_ environment: %s", exc)
        return 2
    args = parse_args(argv, defaults)
    _configure_logging(args.verbose)
    try:
        service = PactsService.from_config(_build_config(args, defaults))
    except (SchemaResolutionError, ValueError) as exc:
        LOGGER.error("Unable to initialise schema loader: %s", exc)
        return 2

    exit_code = 0
    for path in args.envelopes:
        try:
            envelope = service.parse_envelope(path.read_bytes())
        except (OSError, EnvelopeFormatError) as exc:
            _report(path, [str(exc)], args.json)
            exit_code = 1
            continue
        result = service.validate(envelope)
        _report(path, result.errors, args.json)
        if not result.valid:
            exit_code = 1
    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
