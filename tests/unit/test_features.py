"""Feature flag defaults and copy-on-write overrides."""

from __future__ import annotations

import pytest

from lib_typed_config.domain.features import NO_FEATURES, Feature, is_enabled, resolve_for_load, with_feature


@pytest.mark.parametrize(
    ("feature", "default"),
    [
        (Feature.FAIL_ON_UNKNOWN_PATH, False),
        (Feature.LOAD_KEYS_CASE_INSENSITIVELY, False),
        (Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE, True),
        (Feature.OPTIONAL_SOURCE_BY_DEFAULT, False),
        (Feature.SUBSTITUTE_SOURCE_BEFORE_LOADED, True),
        (Feature.WRITE_DESCRIPTIONS_AS_COMMENTS, False),
    ],
)
def test_defaults(feature: Feature, default: bool) -> None:
    assert feature.enabled_by_default is default
    assert is_enabled(NO_FEATURES, feature) is default


def test_with_feature_returns_a_read_only_copy() -> None:
    original = with_feature(NO_FEATURES, Feature.FAIL_ON_UNKNOWN_PATH, True)
    updated = with_feature(original, Feature.FAIL_ON_UNKNOWN_PATH, False)
    assert is_enabled(original, Feature.FAIL_ON_UNKNOWN_PATH) is True
    assert is_enabled(updated, Feature.FAIL_ON_UNKNOWN_PATH) is False
    with pytest.raises(TypeError):
        updated[Feature.FAIL_ON_UNKNOWN_PATH] = True  # type: ignore[index]


def test_resolve_for_load_departs_from_default_when_any_side_asks() -> None:
    assert resolve_for_load(Feature.FAIL_ON_UNKNOWN_PATH, False, False) is False
    assert resolve_for_load(Feature.FAIL_ON_UNKNOWN_PATH, True, False) is True
    assert resolve_for_load(Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE, True, True) is True
    assert resolve_for_load(Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE, True, False) is False
