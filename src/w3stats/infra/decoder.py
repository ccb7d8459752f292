"""
Replay decoder resolution.

W3Stats does not read the binary replay format itself. Decoding is done
by an external ``AnalysisProvider``: any callable that takes a replay path
and returns the decoded game as a JSON-serializable dict, raising on
malformed input.

The provider is configured as a dotted path, e.g.::

    decoder:
      provider: mydecoder.w3g:parse_replay
"""

import importlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from w3stats.core.errors import ProviderUnavailableError

logger = logging.getLogger(__name__)

AnalysisProvider = Callable[[Path], dict[str, Any]]


def _unavailable_provider(replay_path: Path) -> dict[str, Any]:
    raise ProviderUnavailableError(
        "No replay decoder configured (set decoder.provider or W3STATS_DECODER)"
    )


def load_provider(spec: str | None) -> AnalysisProvider:
    """
    Resolve a provider from a ``"module:attribute"`` spec.

    With no spec, returns a provider that fails every call, so the rest of
    the pipeline (browsing, cached previews, statistics) keeps working and
    conversions are reported as failed.

    Raises:
        ProviderUnavailableError: if the module or attribute can't be loaded
    """
    if not spec:
        logger.warning("No replay decoder configured; only cached analyses are available")
        return _unavailable_provider

    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise ProviderUnavailableError(f"Invalid decoder spec {spec!r}, expected 'module:callable'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ProviderUnavailableError(f"Cannot import decoder module {module_name!r}: {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ProviderUnavailableError(f"Decoder {spec!r} not found") from e

    if not callable(target):
        raise ProviderUnavailableError(f"Decoder {spec!r} is not callable")

    logger.info(f"Using replay decoder: {spec}")
    return target
