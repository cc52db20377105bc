"""Run configuration and statistics (pure data, no business logic)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from . import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisualizerConfig:
    """Groups trace generation and remote service configuration."""

    provider: str = constants.PROVIDER_GROQ
    model: str = ""
    language: str = "python"
    temperature: float = constants.TRACE_TEMPERATURE
    max_tokens: int = constants.TRACE_MAX_TOKENS
    credential_present: bool = False
    speed_multiplier: float = constants.DEFAULT_SPEED_MULTIPLIER

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> VisualizerConfig:
        """Read ``VISUALIZER_*`` variables and the provider's API key flag.

        Only the presence of the key is recorded; the key itself stays in
        the environment for the provider SDK to pick up.
        """
        env = os.environ if environ is None else environ
        provider = env.get("VISUALIZER_PROVIDER", constants.PROVIDER_GROQ).strip().lower()
        key_var = constants.PROVIDER_KEY_ENV.get(provider, "")
        return cls(
            provider=provider,
            model=env.get("VISUALIZER_MODEL", ""),
            temperature=_env_float(
                env, "VISUALIZER_TEMPERATURE", constants.TRACE_TEMPERATURE
            ),
            max_tokens=_env_int(env, "VISUALIZER_MAX_TOKENS", constants.TRACE_MAX_TOKENS),
            credential_present=bool(key_var and env.get(key_var, "").strip()),
        )


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


@dataclass
class GenerationStats:
    """Timing and provenance for one trace generation."""

    source_bytes: int = 0
    source_lines: int = 0
    language: str = ""
    pattern: str = ""
    origin: str = ""
    parse_stage: str = ""
    remote_calls: int = 0
    step_count: int = 0

    # Stage timings (seconds)
    classify_time: float = 0.0
    remote_time: float = 0.0
    build_time: float = 0.0
    total_time: float = 0.0

    def report(self) -> str:
        lines = [
            "═══ Trace Generation Statistics ═══",
            f"  Source: {self.source_lines} lines, {self.source_bytes} bytes ({self.language})",
            "",
            f"  {'Stage':<20} {'Time':>10}  {'Output':>30}",
            f"  {'─' * 20} {'─' * 10}  {'─' * 30}",
        ]

        stages = [
            ("Classify", self.classify_time, self.pattern),
            (
                "Remote",
                self.remote_time,
                f"{self.remote_calls} calls, stage {self.parse_stage or '-'}",
            ),
            ("Build / parse", self.build_time, f"{self.step_count} steps"),
        ]
        for name, t, output in stages:
            time_str = f"{t * 1000:>8.1f}ms"
            lines.append(f"  {name:<20} {time_str:>10}  {output:>30}")

        lines.append(f"  {'─' * 20} {'─' * 10}  {'─' * 30}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        lines.append("")
        lines.append(f"  Trace origin: {self.origin or '-'}")
        return "\n".join(lines)
