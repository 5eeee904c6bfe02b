"""
Resolution of the variables that configure the client.

Three layers are consulted, highest precedence first: explicit overrides, the
process environment (or a caller supplied base mapping) and a ``.env`` file.
A ``.env`` value therefore never shadows a variable that is already set.
"""

from __future__ import annotations

import os
import re
from collections import ChainMap
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

ENV_PREFIX = "PAYCOINPRO_"

_ASSIGNMENT = re.compile(
    r"""
    ^(?:export\s+)?
    (?P<key>[A-Za-z_][A-Za-z0-9_.]*)
    \s*=\s*
    (?P<value>.*)$
    """,
    re.VERBOSE,
)


def _clean_value(raw: str) -> str:
    if raw[:1] in ("'", '"'):
        quote = raw[0]
        end = raw.find(quote, 1)
        if end != -1:
            return raw[1:end]
    # unquoted values may carry a trailing " # comment"
    return raw.split(" #", 1)[0].strip()


def iter_env_assignments(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(key, value)`` pairs from ``.env`` formatted ``text``."""
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT.match(line)
        if match:
            yield match.group("key"), _clean_value(match.group("value").strip())


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse ``path``; a missing file reads as empty."""
    if not path.is_file():
        return {}
    return dict(iter_env_assignments(path.read_text(encoding="utf-8")))


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy variables from ``path`` into ``environ`` (default :data:`os.environ`)
    where they are not set yet, and return the resulting mapping.
    """
    target: MutableMapping[str, str] = os.environ if environ is None else environ
    for key, value in read_env_file(Path(path)).items():
        if key not in target:
            target[key] = value
    return dict(target)


@dataclass(frozen=True)
class ClientEnvironment:
    variables: Mapping[str, str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)

    def client_variables(self) -> Dict[str, str]:
        """Only the ``PAYCOINPRO_*`` entries, e.g. for diagnostics."""
        return {
            key: value
            for key, value in self.variables.items()
            if key.startswith(ENV_PREFIX)
        }


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> ClientEnvironment:
    """
    Layer ``overrides`` over ``base`` (default :data:`os.environ`) over the
    contents of ``env_file``. Pass ``env_file=None`` to skip the file.
    """
    layers = ChainMap(
        dict(overrides or {}),
        dict(os.environ if base is None else base),
        read_env_file(Path(env_file)) if env_file is not None else {},
    )
    return ClientEnvironment(variables=dict(layers))
