"""Logging setup and per-verification log context for classverify.

configure_logging() applies the dictConfig shipped as ``config/logging.yaml``.
VerificationLogAdapter tags every message of one verification run with its
class-log id and current phase, and attaches ``class_log_id``,
``rate_limit_key`` and ``phase`` to each record for handlers that want them.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, MutableMapping, Optional, Tuple, Union

import yaml

import config as _config_pkg

DEFAULT_LOGGING_YAML = Path(_config_pkg.__file__).with_name("logging.yaml")

_FALLBACK_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    log_level: Optional[str] = None,
    config_path: Optional[Union[str, Path]] = None,
) -> None:
    """Apply the YAML logging configuration.

    Args:
        log_level: Level for the ``classverify`` logger only; third-party
            loggers keep the root level from the file.
        config_path: Alternative YAML file (defaults to the packaged one).
    """
    path = Path(config_path) if config_path else DEFAULT_LOGGING_YAML
    level = log_level.upper() if log_level else None

    if not path.exists():
        logging.basicConfig(
            level=getattr(logging, level or "INFO", logging.INFO),
            format=_FALLBACK_FORMAT,
        )
        return

    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if level:
        cfg.setdefault("loggers", {}).setdefault("classverify", {})["level"] = level
    logging.config.dictConfig(cfg)


class VerificationLogAdapter(logging.LoggerAdapter):
    """Adapter bound to one verification run.

    Messages are prefixed ``[<class_log_id>]`` or ``[<class_log_id>|<phase>]``.

    Usage:
        log = verification_logger(__name__, "log-123", "ai-analysis:user-7")
        log.for_phase("Throttle").warning("Rate limit exceeded")
        # classverify.pipeline: [log-123|Throttle] Rate limit exceeded
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        tag = self.extra.get("class_log_id", "?")
        phase = self.extra.get("phase")
        if phase:
            tag = f"{tag}|{phase}"
        return f"[{tag}] {msg}", kwargs

    def for_phase(self, phase: str) -> "VerificationLogAdapter":
        return VerificationLogAdapter(self.logger, {**self.extra, "phase": phase})


def verification_logger(
    name: str,
    class_log_id: str,
    rate_limit_key: str = "",
) -> VerificationLogAdapter:
    """Logger adapter for one class-log verification."""
    return VerificationLogAdapter(
        logging.getLogger(name),
        {"class_log_id": class_log_id, "rate_limit_key": rate_limit_key, "phase": None},
    )
