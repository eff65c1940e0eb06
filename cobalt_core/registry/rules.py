"""Validation rules attached to setting definitions.

Rules are plain pydantic models tagged by ``kind`` so a schema can be
dumped, inspected, and compared.  Only :class:`CustomRule` wraps an
arbitrary callable, and its callable is excluded from serialization.

Each rule returns an error message for a rejected value or None when the
value is acceptable.  Rules that only make sense for one value type
(pattern, length) accept other types and leave them to the type check.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PatternRule(BaseModel):
    """String values must fully match a regular expression."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pattern"] = "pattern"
    pattern: str
    message: str = "Value does not match the expected format"

    def check(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        if re.fullmatch(self.pattern, value) is None:
            return self.message
        return None


class LengthRule(BaseModel):
    """String values must have a length within bounds."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["length"] = "length"
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)

    def check(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        if self.min_length is not None and len(value) < self.min_length:
            return f"Must be at least {self.min_length} characters"
        if self.max_length is not None and len(value) > self.max_length:
            return f"Must be at most {self.max_length} characters"
        return None


class OneOfRule(BaseModel):
    """Values must be one of a fixed set of choices."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["one_of"] = "one_of"
    choices: tuple[Any, ...]
    message: str | None = None

    def check(self, value: Any) -> str | None:
        if value in self.choices:
            return None
        return self.message or f"Must be one of {', '.join(map(str, self.choices))}"


class CustomRule(BaseModel):
    """Arbitrary predicate returning an error message or None.

    A predicate that raises on an unexpected value rejects that value
    with the exception text.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["custom"] = "custom"
    name: str = "custom"
    predicate: Callable[[Any], str | None] = Field(exclude=True)

    def check(self, value: Any) -> str | None:
        try:
            return self.predicate(value)
        except Exception as e:
            return str(e) or type(e).__name__


ValidationRule = Annotated[
    PatternRule | LengthRule | OneOfRule | CustomRule,
    Field(discriminator="kind"),
]


def coerce_rules(raw: Any) -> tuple[Any, ...]:
    """Normalize the ``validation`` argument of a definition.

    Accepts None, a single rule, a bare callable, or a sequence mixing
    rules and callables.  Bare callables are wrapped in a CustomRule.
    """
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        items = raw
    else:
        items = (raw,)
    rules: list[Any] = []
    for item in items:
        if callable(item) and not isinstance(item, BaseModel):
            name = getattr(item, "__name__", "custom")
            rules.append(CustomRule(name=name, predicate=item))
        else:
            rules.append(item)
    return tuple(rules)
