"""Derive a (service, theme) pair from an uploaded filename.

Names look like `<SERVICE>_<theme>.<ext>`, e.g. `ETFG_2차전지.png`. Service
prefixes are tried in table order, so more specific labels must come first
when one label is a prefix of another.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, NamedTuple, Sequence, Tuple

from models.image_record import UNCLASSIFIED

SEPARATOR = "_"
_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class Classification(NamedTuple):
    service: str
    theme: str


@dataclass(frozen=True)
class ServiceRule:
    """A service label, the predicate deciding whether a stem belongs to it,
    and how to pull the theme out of a matching stem."""

    label: str
    matches: Callable[[str], bool]
    theme_of: Callable[[str], str]


def prefix_rule(label: str) -> ServiceRule:
    """Rule matching stems that start with `<label>_`; the theme is the rest."""
    prefix = label + SEPARATOR
    return ServiceRule(
        label=label,
        matches=lambda stem: stem.startswith(prefix),
        theme_of=lambda stem: stem[len(prefix):],
    )


SERVICE_NAMES: Tuple[str, ...] = ("ETFG", "COMPG", "리타민")
DEFAULT_RULES: Tuple[ServiceRule, ...] = tuple(prefix_rule(name) for name in SERVICE_NAMES)


def strip_extension(filename: str) -> str:
    return _EXTENSION_RE.sub("", filename)


class FilenameClassifier:
    """Classify filenames against an ordered table of service rules."""

    def __init__(self, rules: Sequence[ServiceRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def classify(self, filename: str) -> Classification:
        stem = strip_extension(filename)
        for rule in self.rules:
            if rule.matches(stem):
                return Classification(rule.label, rule.theme_of(stem))
        if SEPARATOR in stem:
            return Classification(UNCLASSIFIED, stem.split(SEPARATOR)[-1])
        return Classification(UNCLASSIFIED, UNCLASSIFIED)


_DEFAULT_CLASSIFIER = FilenameClassifier()


def classify_filename(filename: str) -> Classification:
    """Classify `filename` with the default service table."""
    return _DEFAULT_CLASSIFIER.classify(filename)
