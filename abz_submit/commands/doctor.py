from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import Settings
from ..extractor import STREAMING_EXTRACTOR_MUSIC, locate_binary
from ..providers.acousticbrainz import AcousticBrainzClient
from ..providers.validation import validate_providers
from .output import disabled, enabled, error, ok as ok_line, skipped, warning


@dataclass(slots=True)
class DoctorReport:
    ok: bool
    checks: list[str]


def run(
    settings: Settings,
    *,
    config_path: Optional[Path] = None,
    validate_providers_online: bool = False,
) -> DoctorReport:
    checks: list[str] = []
    ok = True

    if config_path:
        checks.append(ok_line("Config", str(config_path)))
    else:
        checks.append(warning("Config", "no config.yaml found; using defaults"))

    binary = locate_binary(settings.extractor)
    if binary is None:
        ok = False
        wanted = settings.extractor.binary or f"{STREAMING_EXTRACTOR_MUSIC} on PATH"
        checks.append(error("Extractor", f"missing: {wanted}"))
    elif not os.access(binary, os.R_OK):
        ok = False
        checks.append(error("Extractor", f"unreadable: {binary}"))
    else:
        checks.append(ok_line("Extractor", str(binary)))
    checks.append(ok_line("Extractor build", settings.extractor.build_sha()))

    scratch_dir = settings.extractor.scratch_dir
    if scratch_dir is not None and not scratch_dir.is_dir():
        ok = False
        checks.append(error("Scratch directory", f"missing: {scratch_dir}"))

    roots = [root.resolve() for root in settings.library.roots]
    missing = [str(root) for root in roots if not root.exists()]
    if missing:
        ok = False
        checks.append(error("Library roots", f"missing: {', '.join(missing)}"))
    elif roots:
        checks.append(ok_line("Library roots", f"{len(roots)} root(s)"))
    else:
        checks.append(warning("Library roots", "none configured; only `submit` will work"))

    if settings.providers.acoustid_api_key:
        checks.append(enabled("AcoustID lookup"))
    else:
        checks.append(disabled("AcoustID lookup", "set providers.acoustid_api_key"))

    try:
        client = AcousticBrainzClient(settings.submit)
        checks.append(ok_line("Submission endpoint", client.url("<mbid>")))
    except ValueError as exc:
        ok = False
        checks.append(error("Submission endpoint", str(exc)))
    if settings.submit.gzip_payload:
        checks.append(enabled("Gzip payload"))
    else:
        checks.append(disabled("Gzip payload", "Content-Encoding header only"))

    if validate_providers_online:
        validate_providers(settings.providers, settings.submit)
        checks.append(ok_line("Providers (network)"))
    else:
        checks.append(skipped("Providers (network)", "pass --providers"))

    return DoctorReport(ok=ok, checks=checks)
