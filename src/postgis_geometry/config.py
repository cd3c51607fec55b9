"""Codec configuration."""

from dataclasses import dataclass

DEFAULT_MAX_DEPTH = 32


@dataclass(frozen=True)
class CodecConfig:
    """
    Limits applied while parsing and decoding.

    Attributes:
        max_depth: Maximum geometry nesting (a collection inside a collection
            counts one level per collection). Inputs nested deeper fail with
            NestingTooDeepError.
    """

    max_depth: int = DEFAULT_MAX_DEPTH


DEFAULT_CONFIG = CodecConfig()
