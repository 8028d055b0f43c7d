"""Read-only build environment with shell-style variable expansion."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_TOKEN_RE = re.compile(
    r"\$(?:(?P<escape>\$)"
    r"|\{(?P<braced>[^}]*)(?P<close>\}?)"
    r"|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))"
)


class TemplateExpansionError(ValueError):
    """A template is malformed and cannot be expanded."""

    def __init__(self, template: str, reason: str) -> None:
        super().__init__(f"{reason} in {template!r}")
        self.template = template
        self.reason = reason


class EnvVars(Mapping[str, str]):
    """Immutable snapshot of environment variables.

    ``expand`` substitutes ``$NAME`` and ``${NAME}`` references and turns
    ``$$`` into a literal ``$``. References to unknown variables are left as
    written; a malformed ``${...}`` reference raises TemplateExpansionError.
    """

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EnvVars({len(self._values)} vars)"

    def expand(self, template: str) -> str:
        if "$" not in template:
            return template

        def _replace(match: re.Match[str]) -> str:
            if match.group("escape"):
                return "$"
            bare = match.group("bare")
            if bare is not None:
                return self._values.get(bare, match.group(0))
            name = match.group("braced")
            if not match.group("close"):
                raise TemplateExpansionError(
                    template, f"unterminated variable reference at offset {match.start()}"
                )
            if not _NAME_RE.fullmatch(name):
                raise TemplateExpansionError(template, f"invalid variable name {name!r}")
            return self._values.get(name, match.group(0))

        return _TOKEN_RE.sub(_replace, template)
