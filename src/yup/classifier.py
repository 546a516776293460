"""Split requested package names into dev and regular upgrade requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Sequence, Tuple

import semantic_version

from yup.common.logging_utils import extra_context, is_debug_enabled
from yup.constants import DependencyKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageRequest:
    """A single package to upgrade, as declared in the manifest."""

    name: str
    version: str
    kind: DependencyKind

    @property
    def spec(self) -> str:
        """Argument passed to the package manager's add command."""
        return f"{self.name}@{self.version}"

    @property
    def label(self) -> str:
        return f"{self.spec} ({self.kind.value})"


def is_semver_range(version: str) -> bool:
    """Return True if ``version`` parses as an npm semver range."""
    try:
        semantic_version.NpmSpec(version)
    except ValueError:
        return False
    return True


def classify(
    requested_names: Sequence[str],
    deps: Mapping[str, str],
    dev_deps: Mapping[str, str],
) -> Tuple[List[PackageRequest], List[PackageRequest]]:
    """Partition requested names by the manifest section that declares them.

    Dev dependencies are checked first, so a name present in both sections is
    treated as a dev dependency. Names found in neither section are reported
    and skipped. Input order is preserved within each group.

    Args:
        requested_names: Package names from the command line.
        deps: ``dependencies`` mapping of name to version range.
        dev_deps: ``devDependencies`` mapping of name to version range.

    Returns:
        Tuple of (dev_requests, regular_requests).
    """
    dev_requests: List[PackageRequest] = []
    regular_requests: List[PackageRequest] = []
    seen = set()

    for name in requested_names:
        if name in seen:
            logger.debug("Ignoring duplicate request for %s", name)
            continue
        seen.add(name)

        if name in dev_deps:
            request = PackageRequest(name, dev_deps[name], DependencyKind.DEV_DEPENDENCY)
            dev_requests.append(request)
        elif name in deps:
            request = PackageRequest(name, deps[name], DependencyKind.DEPENDENCY)
            regular_requests.append(request)
        else:
            logger.warning("%s does not exist as a dependency in this package.json.", name)
            continue

        if not is_semver_range(request.version):
            logger.debug(
                "%s uses a non-semver specifier '%s'; passing it through unchanged",
                name,
                request.version,
            )

    if is_debug_enabled(logger):
        logger.debug(
            "Classified requested packages",
            extra=extra_context(
                event="decision",
                component="classifier",
                action="classify",
                dev_count=len(dev_requests),
                regular_count=len(regular_requests),
                skipped_count=len(seen) - len(dev_requests) - len(regular_requests),
            ),
        )
    return dev_requests, regular_requests
