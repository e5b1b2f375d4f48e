"""Shared CLI helpers."""

from __future__ import annotations

import argparse

from storyroute.core.routing.registry import ProviderId


def base_parser(name: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=name, description=description)
    parser.add_argument("--config", default=None, help="Instance config file path")
    return parser


def add_request_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--engine-id", default=None, help="Logical engine id used for registry lookup")
    parser.add_argument(
        "--provider",
        default=None,
        choices=[p.value for p in ProviderId],
        help="Force a provider and skip routing",
    )
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--max-tokens", type=int, default=None)
