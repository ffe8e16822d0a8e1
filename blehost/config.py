"""Compile-time sizing constants, resolved from defaults, features and environment."""

from __future__ import annotations

import argparse
import os
import re
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

CONFIGS: dict[str, int] = {
    "CONNECTION_EVENT_QUEUE_SIZE": 2,
    "L2CAP_RX_QUEUE_SIZE": 8,
    "L2CAP_TX_QUEUE_SIZE": 8,
    "L2CAP_RX_PACKET_POOL_SIZE": 8,
    "L2CAP_TX_PACKET_POOL_SIZE": 8,
    "GATT_CLIENT_NOTIFICATION_MAX_SUBSCRIBERS": 1,
    "GATT_CLIENT_NOTIFICATION_QUEUE_SIZE": 1,
}

FEATURE_PREFIX = "CARGO_FEATURE_"
OUTPUT_FILE = "config.py"

_USIZE_MAX = 2**64 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")


class ConfigError(Exception):
    """Raised for unknown, invalid or conflicting configuration settings."""


@dataclass
class _State:
    value: int
    seen_feature: bool = False
    seen_env: bool = False


def _parse_unsigned(text: str) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _USIZE_MAX else None


def resolve_config(environ: Mapping[str, str] | None, crate_name: str) -> dict[str, int]:
    """Work out every configuration value.

    Variables named ``<CRATE>_<NAME>`` override features named
    ``CARGO_FEATURE_<NAME>_<VALUE>``, which override the defaults.
    """
    if environ is None:
        environ = os.environ
    prefix = crate_name.upper().replace("-", "_") + "_"
    states = {name: _State(default) for name, default in CONFIGS.items()}

    for var, raw in environ.items():
        if var.startswith(prefix):
            name = var[len(prefix):]
            state = states.get(name)
            if state is None:
                raise ConfigError(f"Unknown env var {name}")
            value = _parse_unsigned(raw)
            if value is None:
                raise ConfigError(f"Invalid value for env var {name}: {raw}")
            state.value = value
            state.seen_env = True

        if var.startswith(FEATURE_PREFIX):
            feature = var[len(FEATURE_PREFIX):]
            name, sep, text = feature.rpartition("_")
            if not sep:
                continue
            state = states.get(name)
            if state is None:
                continue
            value = _parse_unsigned(text)
            if value is None:
                raise ConfigError(f"Invalid value for feature {name}: {text}")
            if not state.seen_env:
                if state.seen_feature:
                    raise ConfigError(
                        f"multiple values set for feature {name}: {state.value} and {value}"
                    )
                state.value = value
                state.seen_feature = True

    return {name: state.value for name, state in states.items()}


def render_config(values: Mapping[str, int]) -> str:
    """Render the values as a module of integer constants."""
    return "".join(f"{name} = {value}\n" for name, value in values.items())


def main(argv: Sequence[str] | None = None) -> int:
    """Resolve the configuration and write it out."""
    parser = argparse.ArgumentParser(
        prog="blehost-config", description="Resolve the host's sizing constants."
    )
    parser.add_argument("--crate-name", default=os.environ.get("CARGO_PKG_NAME"))
    parser.add_argument("--out-dir", default=os.environ.get("OUT_DIR"))
    args = parser.parse_args(argv)
    if not args.crate_name:
        parser.error("a crate name is required (--crate-name or CARGO_PKG_NAME)")

    try:
        values = resolve_config(os.environ, args.crate_name)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    text = render_config(values)
    if args.out_dir:
        Path(args.out_dir, OUTPUT_FILE).write_text(text)
    else:
        sys.stdout.write(text)
    return 0