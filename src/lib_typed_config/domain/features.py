"""Feature flags attached to sources and configs.

Each :class:`Feature` carries a hard-coded default. Sources and configs keep a
small override map that is copied, never mutated, whenever a flag is toggled.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Feature(Enum):
    """Behaviour toggles with their default state.

    Examples
    --------
    >>> Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE.enabled_by_default
    True
    >>> Feature.FAIL_ON_UNKNOWN_PATH.enabled_by_default
    False
    """

    FAIL_ON_UNKNOWN_PATH = ("fail_on_unknown_path", False)
    LOAD_KEYS_CASE_INSENSITIVELY = ("load_keys_case_insensitively", False)
    LOAD_KEYS_AS_LITTLE_CAMEL_CASE = ("load_keys_as_little_camel_case", True)
    OPTIONAL_SOURCE_BY_DEFAULT = ("optional_source_by_default", False)
    SUBSTITUTE_SOURCE_BEFORE_LOADED = ("substitute_source_before_loaded", True)
    WRITE_DESCRIPTIONS_AS_COMMENTS = ("write_descriptions_as_comments", False)

    def __init__(self, key: str, enabled_by_default: bool) -> None:
        self.key = key
        self.enabled_by_default = enabled_by_default


FeatureMap = Mapping[Feature, bool]

NO_FEATURES: FeatureMap = MappingProxyType({})


def is_enabled(features: FeatureMap, feature: Feature) -> bool:
    """Return the override for *feature* or its default."""

    return features.get(feature, feature.enabled_by_default)


def with_feature(features: FeatureMap, feature: Feature, enabled: bool) -> FeatureMap:
    """Return a read-only copy of *features* with *feature* set to *enabled*.

    Examples
    --------
    >>> original = NO_FEATURES
    >>> updated = with_feature(original, Feature.FAIL_ON_UNKNOWN_PATH, True)
    >>> is_enabled(updated, Feature.FAIL_ON_UNKNOWN_PATH), is_enabled(original, Feature.FAIL_ON_UNKNOWN_PATH)
    (True, False)
    """

    copy = dict(features)
    copy[feature] = enabled
    return MappingProxyType(copy)


def resolve_for_load(feature: Feature, *sides: bool) -> bool:
    """Combine the view of several parties (config, source) on *feature*.

    A load departs from the default as soon as any party asks for it: flags
    that are off by default turn on when either side enables them, flags that
    are on by default turn off when either side disables them.

    Examples
    --------
    >>> resolve_for_load(Feature.LOAD_KEYS_CASE_INSENSITIVELY, False, True)
    True
    >>> resolve_for_load(Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE, True, False)
    False
    """

    default = feature.enabled_by_default
    if any(side != default for side in sides):
        return not default
    return default


__all__ = ["Feature", "FeatureMap", "NO_FEATURES", "is_enabled", "resolve_for_load", "with_feature"]
