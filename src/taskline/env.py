# env.py
from __future__ import annotations

import re
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from .errors import UnresolvedMapping
from .model import EnvironmentVariable

PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class Environment(Mapping[str, str]):
    """
    Read-only snapshot of an execution environment.

    Built once (usually from os.environ by the CLI) and passed around explicitly,
    so nothing below the CLI ever touches the process environment.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Environment({len(self._values)} vars)"

    def overlay(self, overrides: Mapping[str, str]) -> "Environment":
        """Return a new snapshot with `overrides` applied on top."""
        merged = dict(self._values)
        merged.update({k: str(v) for k, v in overrides.items()})
        return Environment(merged)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._values)


class EnvResolver:
    """
    Resolves declared environment variables against an Environment snapshot.

    strict=False: a value missing from a mapping table passes through unchanged.
    strict=True:  the same situation raises UnresolvedMapping.
    """

    def __init__(
        self,
        variables: Iterable[EnvironmentVariable] = (),
        environment: Optional[Environment] = None,
        *,
        strict: bool = False,
    ):
        self.variables: Dict[str, EnvironmentVariable] = {v.name: v for v in variables}
        self._order = list(self.variables)
        self.environment = environment if environment is not None else Environment()
        self.strict = strict

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, variable: EnvironmentVariable | str) -> str:
        if isinstance(variable, str):
            declared = self.variables.get(variable)
            if declared is None:
                return self.environment.get(variable, "")
            variable = declared

        # 1. source expression; no source means the variable of the same name
        if variable.source is None:
            value = self.environment.get(variable.name, "")
        else:
            value = self._expand_source(variable)

        # 2. default
        if not value:
            value = variable.default

        # 3. mapping
        if variable.mapping is not None:
            table = dict(variable.mapping)
            if value in table:
                return table[value]
            if self.strict:
                raise UnresolvedMapping(variable.name, value, variable.allowed)
        return value

    def resolve_all(self) -> Dict[str, str]:
        return {name: self.resolve(var) for name, var in self.variables.items()}

    def expand(self, text: str) -> str:
        """Replace every ${NAME} in `text`; declared names go through resolve()."""
        return PLACEHOLDER.sub(lambda m: self.resolve(m.group(1)), text)

    def _expand_source(self, variable: EnvironmentVariable) -> str:
        """
        Expand a declared variable's source expression.

        Placeholders naming a variable declared EARLIER resolve to that
        variable's value; anything else (itself, later entries, undeclared
        names) reads the ambient snapshot.
        """
        earlier = self._order[: self._order.index(variable.name)] if variable.name in self.variables else []

        def lookup(m: re.Match) -> str:
            name = m.group(1)
            if name in earlier:
                return self.resolve(name)
            return self.environment.get(name, "")

        return PLACEHOLDER.sub(lookup, variable.source or "")

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_overrides(self, overrides: Mapping[str, str]) -> "EnvResolver":
        """
        Derive a resolver whose snapshot has `overrides` applied on top.

        The pipeline uses this to feed step env (e.g. ALUVM_TOOLCHAIN=nightly)
        into a task run; neither this resolver nor its snapshot changes.
        """
        if not overrides:
            return self
        return EnvResolver(
            self.variables.values(),
            self.environment.overlay(overrides),
            strict=self.strict,
        )

    def process_env(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Environment for a child process: snapshot + resolved variables + extra."""
        env = self.environment.to_dict()
        env.update(self.resolve_all())
        if extra:
            env.update(extra)
        return env
