"""Maven projects whose version was never moved off the archetype default."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET

from brxm_inspect.model import FileType, InspectionCategory, Severity
from brxm_inspect.model.issue import InspectionIssue
from brxm_inspect.parsers.xml_parser import child_elements, local_name

from .base import Inspection, InspectionContext

# Initial version generated by the Maven archetype.
DEFAULT_VERSION = "0.1.0-SNAPSHOT"

_LOW_VERSION = re.compile(r"^0\.(0|1)\.[0-9]")

_DEFAULT_DESCRIPTION = """\
The project version is still the archetype default.  SNAPSHOT versions are
fine during active development, but the version should follow a semantic
versioning strategy (MAJOR.MINOR.PATCH) as the project matures, e.g.
`mvn versions:set -DnewVersion=1.0.0`.  See https://semver.org/.
"""

_LOW_DESCRIPTION = """\
A release version of 0.0.x or 0.1.x usually means versions are not being
incremented.  Production releases normally start at 1.0.0.
"""


def project_version(root: ET.Element) -> str | None:
    """First non-empty ``<version>`` directly under the POM root (``<parent>`` is skipped)."""
    for element in child_elements(root):
        if local_name(element.tag) == "parent":
            continue
        if local_name(element.tag) == "version":
            version = "".join(element.itertext()).strip()
            if version:
                return version
    return None


class ProjectVersionInspection(Inspection):
    id = "deployment.project-version"
    name = "Project Version Needs Update"
    description = (
        "Suggests projects use proper semantic versioning as they mature: flags "
        "pom.xml versions stuck at 0.1.0-SNAPSHOT or released at 0.0.x / 0.1.x."
    )
    category = InspectionCategory.DEPLOYMENT
    severity = Severity.HINT
    applicable_file_types = frozenset({FileType.XML})

    def inspect(self, context: InspectionContext) -> list[InspectionIssue]:
        if context.file.name.lower() != "pom.xml":
            return []
        root = context.unit(FileType.XML)
        if root is None:
            return []
        version = project_version(root)
        if version is None:
            return []

        if version == DEFAULT_VERSION:
            return [
                self._issue(
                    context,
                    f"Project version still at default '{version}'",
                    description=_DEFAULT_DESCRIPTION,
                    version=version,
                    reason="default",
                )
            ]
        if _LOW_VERSION.search(version) and not version.endswith("-SNAPSHOT"):
            return [
                self._issue(
                    context,
                    f"Project version is very low: '{version}'",
                    description=_LOW_DESCRIPTION,
                    version=version,
                    reason="low-version",
                )
            ]
        return []
