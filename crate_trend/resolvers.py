"""
Live dependency edges of crate versions.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set

from .errors import ParseError
from .features import gather_enabled_dependencies
from .models import ActivationContext, Dependency, PackageVersion
from .versioning import VersionRequirement, parse_requirement, parse_version


logger = logging.getLogger(__name__)


def select_version(
    versions: Sequence[PackageVersion], requirement: VersionRequirement
) -> Optional[PackageVersion]:
    """Pick the last version in publication order that satisfies a requirement.

    This is not necessarily the highest semantic version. Versions that fail
    to parse are skipped.
    """
    selected = None
    for candidate in versions:
        try:
            parsed = parse_version(candidate.version)
        except ParseError:
            logger.debug("Skipping unparsable version %s %s", candidate.name, candidate.version)
            continue
        if requirement.matches(parsed):
            selected = candidate
    return selected


def activated_names(tokens: Iterable[str]) -> Set[str]:
    """Names of optional dependencies switched on by resolved feature tokens."""
    names = set()
    for token in tokens:
        if token.startswith("dep:"):
            names.add(token[len("dep:"):])
        elif "/" in token:
            crate = token.split("/", 1)[0]
            # weak `name?/feature` only forwards the feature
            if not crate.endswith("?"):
                names.add(crate)
        else:
            names.add(token)
    return names


def gather_dependencies(
    versions: Optional[Sequence[PackageVersion]],
    requirement: VersionRequirement,
    enabled_features: Iterable[str],
) -> List[Dependency]:
    """Return the dependency edges that are live for a crate.

    Args:
        versions: All published versions of the crate, in index order
        requirement: Requirement the selected version must satisfy
        enabled_features: Features enabled on the crate

    Returns:
        Non-optional dependencies plus the optional ones activated by the
        enabled features. Empty when no version matches.
    """
    if not versions:
        return []

    selected = select_version(versions, requirement)
    if selected is None:
        return []

    enabled = activated_names(gather_enabled_dependencies(selected.features, enabled_features))

    live = []
    for dep in selected.dependencies:
        if dep.optional and dep.name not in enabled and dep.crate_name not in enabled:
            continue
        try:
            parse_requirement(dep.requirement)
        except ParseError:
            logger.debug(
                "Skipping %s -> %s with invalid requirement %r",
                selected.name, dep.crate_name, dep.requirement,
            )
            continue
        live.append(dep)
    return live


def edge_context(dependency: Dependency) -> ActivationContext:
    """Build the activation context passed down a dependency edge."""
    features = list(dependency.features)
    if dependency.default_features:
        features.append("default")
    return ActivationContext(
        name=dependency.crate_name,
        requirement=dependency.requirement,
        features=tuple(features),
    )
