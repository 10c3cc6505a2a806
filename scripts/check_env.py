"""Verify that the service's environment configuration is intact.

``check`` loads ``AppSettings`` from a ``.env`` file and prints the
non-secret parts of the result. ``record`` and ``verify`` additionally keep a
SHA256 baseline of the file so edits between deployments are noticed::

    python -m scripts.check_env record --env-file /srv/hubspot-backfill/.env \
        --hash-file /srv/hubspot-backfill/.env.sha256
    python -m scripts.check_env verify --env-file /srv/hubspot-backfill/.env \
        --hash-file /srv/hubspot-backfill/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


class CheckFailed(Exception):
    """A check did not pass; carries the exit code to report."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@dataclass
class EnvBaseline:
    """SHA256 fingerprint of an env file stored next to it."""

    env_file: Path
    hash_file: Path

    def current(self) -> str:
        return hashlib.sha256(self.env_file.read_bytes()).hexdigest()

    def record(self) -> str:
        checksum = self.current()
        self.hash_file.write_text(f"{checksum}\n", encoding="utf-8")
        return f"Recorded checksum to {self.hash_file} ({checksum})"

    def verify(self) -> str:
        if not self.hash_file.exists():
            raise CheckFailed(
                f"No baseline at {self.hash_file}; run 'record' first.",
                EXIT_RUNTIME_ERROR,
            )
        expected = self.hash_file.read_text(encoding="utf-8").strip()
        actual = self.current()
        if expected != actual:
            raise CheckFailed(
                f".env changed since the baseline was recorded "
                f"(expected {expected}, found {actual}).",
                EXIT_CHECKSUM_ERROR,
            )
        return "Environment checksum OK."


def load_settings(env_file: Path) -> AppSettings:
    """Build settings from ``env_file`` on top of the current environment."""
    if not env_file.exists():
        raise CheckFailed(f"Environment file {env_file} does not exist.", EXIT_RUNTIME_ERROR)
    _load_env_file(str(env_file))
    try:
        return AppSettings(_env_file=str(env_file))  # type: ignore[call-arg]
    except ValidationError as exc:
        raise CheckFailed(
            f"Invalid or missing settings:\n{exc.json(indent=2)}",
            EXIT_VALIDATION_ERROR,
        ) from exc


def describe(settings: AppSettings) -> str:
    """Summarize the non-secret parts of the configuration."""
    rows = {
        "environment": settings.environment,
        "port": settings.port,
        "database": settings.database_path,
        "client id": settings.hubspot.client_id,
        "redirect uri": settings.hubspot.redirect_uri,
        "api base url": settings.hubspot.api_base_url,
        "session secret": "set" if settings.security.session_secret else "client secret",
    }
    return "\n".join(f"  {label + ':':<16}{value}" for label, value in rows.items())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate HubSpot backfill settings and detect .env drift."
    )
    parser.add_argument(
        "command",
        choices=("check", "record", "verify"),
        help="check: validate only; record/verify: also manage the checksum baseline.",
    )
    parser.add_argument("--env-file", type=Path, default=Path(".env"))
    parser.add_argument("--hash-file", type=Path, help="Checksum baseline location.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command != "check" and args.hash_file is None:
        parser.error(f"'{args.command}' requires --hash-file")

    try:
        settings = load_settings(args.env_file)
        if args.command == "check":
            print("Settings OK:")
            print(describe(settings))
        else:
            baseline = EnvBaseline(args.env_file, args.hash_file)
            print(baseline.record() if args.command == "record" else baseline.verify())
    except CheckFailed as exc:
        print(str(exc), file=sys.stderr)
        return exc.exit_code
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
