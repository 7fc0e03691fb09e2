"""
Shared CLI helpers
"""

import sys
from typing import Any

from wolfgift.core.config import WolfgiftConfig, load_config
from wolfgift.core.exceptions import WolfgiftException
from wolfgift.core.logging import configure_logging
from wolfgift.engine import Engine


def load_cli_config(args: Any) -> WolfgiftConfig:
    config = load_config(
        config_path=getattr(args, "config", None),
        env_file=getattr(args, "env_file", ".env"),
    )
    if getattr(args, "data_dir", None):
        config.storage.data_dir = args.data_dir
    configure_logging(level=config.log_level, json_format=config.log_format == "json")
    return config


def build_engine(args: Any, require_credentials: bool = False) -> Engine:
    """Engine over the persisted state; network commands also need credentials."""
    config = load_cli_config(args)
    if require_credentials:
        config.validate_required()
    return Engine.from_config(config)


def fail(error: WolfgiftException) -> None:
    kind = getattr(error, "kind", None)
    label = kind.value if kind is not None else error.error_code
    print(f"❌ [{label}] {error.message}", file=sys.stderr)
    for suggestion in error.suggestions:
        print(f"   - {suggestion}", file=sys.stderr)
    sys.exit(1)
