"""
Feature table expansion.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Set


MAX_FEATURE_DEPTH = 100
DEFAULT_FEATURES = ("default",)


def gather_enabled_dependencies(
    features: Mapping[str, Sequence[str]],
    enabled_features: Iterable[str],
    max_depth: int = MAX_FEATURE_DEPTH,
    checked: Optional[Set[str]] = None,
) -> List[str]:
    """Expand enabled features into the tokens they finally activate.

    Each enabled feature is expanded at most once per call tree. A token that
    does not expand any further (unknown to the feature table, already
    expanded, or past the depth budget) is emitted as is; otherwise its
    expansion is emitted in its place.

    Args:
        features: Feature table of a crate version (feature -> tokens)
        enabled_features: Names of the features to expand
        max_depth: Remaining expansion depth
        checked: Feature names already expanded, shared across the recursion

    Returns:
        Resolved tokens in expansion order, duplicates included
    """
    if checked is None:
        checked = set()

    resolved: List[str] = []
    for enabled in enabled_features:
        # feature loops stop here
        if enabled in checked:
            continue
        checked.add(enabled)

        for token in features.get(enabled, ()):
            if max_depth == 0:
                children: List[str] = []
            else:
                children = gather_enabled_dependencies(features, [token], max_depth - 1, checked)
            if children:
                resolved.extend(children)
            else:
                resolved.append(token)

    return resolved
