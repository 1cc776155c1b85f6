from __future__ import annotations

import shlex
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .errors import ConfigurationError

StepSpec = Tuple[str, Dict[str, str]]


def parse_plan_file(path: Path) -> List[Tuple[str, str]]:
    """Return a list of (entry_type, content) pairs from a plan file.

    ``entry_type`` is either ``"comment"`` or ``"step"``. A step line holds a
    step id followed by ``key=value`` arguments; lines ending in ``\\`` are
    joined with the next one.
    """

    entries: List[Tuple[str, str]] = []
    buffer = ""

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        stripped = raw_line.strip()

        if not buffer and (not stripped or stripped.startswith("#")):
            if stripped:
                entries.append(("comment", stripped.lstrip("#").strip()))
            continue

        if stripped.endswith("\\"):
            buffer += stripped[:-1].rstrip() + " "
            continue

        buffer += stripped
        if buffer.strip():
            entries.append(("step", buffer.strip()))
        buffer = ""

    if buffer.strip():
        entries.append(("step", buffer.strip()))

    return entries


def parse_step_tokens(tokens: Iterable[str]) -> List[StepSpec]:
    """Group ``["set-deposit-fee", "fee_rate=50", "enable-staking"]`` into step specs.

    ``key=value`` tokens attach to the step id before them.
    """

    specs: List[StepSpec] = []
    for token in tokens:
        if "=" in token:
            if not specs:
                raise ConfigurationError(f"Argument {token!r} given before any step id")
            key, _, value = token.partition("=")
            key = key.strip().replace("-", "_")
            if not key:
                raise ConfigurationError(f"Malformed step argument {token!r}")
            specs[-1][1][key] = value.strip()
            continue
        specs.append((token.strip(), {}))
    return specs


def plan_step_specs(entries: Iterable[Tuple[str, str]]) -> List[StepSpec]:
    specs: List[StepSpec] = []
    for entry_type, content in entries:
        if entry_type != "step":
            continue
        try:
            tokens = shlex.split(content, comments=True)
        except ValueError as exc:
            raise ConfigurationError(f"Malformed plan line {content!r}: {exc}") from exc
        specs.extend(parse_step_tokens(tokens))
    return specs
