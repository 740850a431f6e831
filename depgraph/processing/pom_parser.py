"""
Maven POM parser producing project models for the dependency graph.
"""

import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from .maven_model import Dependency, Exclusion, ProjectModel, Relocation, VersionedReference

PROPERTY_PATTERN = re.compile(r'\$\{([^}]+)\}')


class PomParseError(ValueError):
    """Raised for POM content that cannot be turned into a project model."""


class PomParser:
    """Maven POM parser."""

    def __init__(self):
        self._namespace: Optional[str] = None

    def parse_pom(self, pom_content: str, origin: Optional[str] = None) -> ProjectModel:
        """Parse POM file content."""
        try:
            root = ET.fromstring(pom_content)
        except ET.ParseError as e:
            raise PomParseError(f"Invalid POM XML: {e}") from e

        self._namespace = self._extract_namespace(root)

        group_id, artifact_id, version = self._extract_coordinates(root)
        packaging = self._child_text(root, 'packaging') or 'jar'

        properties = self._builtin_properties(root, group_id, artifact_id, version, packaging)
        properties.update(self._extract_properties(root))

        return ProjectModel(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=packaging,
            parent=self._extract_parent(root),
            relocation=self._extract_relocation(root, properties),
            dependency_management=self._extract_dependency_management(root, properties),
            dependencies=self._extract_dependencies(self._child(root, 'dependencies'), properties),
            origin=origin,
            properties=properties,
        )

    def _extract_namespace(self, root: ET.Element) -> Optional[str]:
        """Extract XML namespace from root element."""
        if root.tag.startswith('{'):
            return root.tag[1:].split('}')[0]
        return None

    def _tag(self, name: str) -> str:
        if self._namespace:
            return f'{{{self._namespace}}}{name}'
        return name

    def _child(self, parent: Optional[ET.Element], tag: str) -> Optional[ET.Element]:
        """Direct child only; nested elements such as dependency versions must not leak upwards."""
        if parent is None:
            return None
        return parent.find(self._tag(tag))

    def _children(self, parent: Optional[ET.Element], tag: str) -> List[ET.Element]:
        if parent is None:
            return []
        return parent.findall(self._tag(tag))

    def _child_text(self, parent: Optional[ET.Element], tag: str,
                    properties: Optional[Dict[str, str]] = None) -> Optional[str]:
        element = self._child(parent, tag)
        if element is None or element.text is None or not element.text.strip():
            return None
        text = element.text.strip()
        if properties:
            text = self.resolve_property(text, properties)
        return text

    def _extract_coordinates(self, root: ET.Element):
        """Extract Maven coordinates from POM, inheriting from the parent."""
        parent = self._child(root, 'parent')
        group_id = self._child_text(root, 'groupId') or self._child_text(parent, 'groupId')
        artifact_id = self._child_text(root, 'artifactId')
        version = self._child_text(root, 'version') or self._child_text(parent, 'version')

        if not group_id or not artifact_id or not version:
            raise PomParseError("Missing required coordinates: groupId, artifactId, or version")

        return group_id, artifact_id, version

    def _extract_parent(self, root: ET.Element) -> Optional[VersionedReference]:
        """Extract parent coordinates from POM."""
        parent = self._child(root, 'parent')
        group_id = self._child_text(parent, 'groupId')
        artifact_id = self._child_text(parent, 'artifactId')
        version = self._child_text(parent, 'version')

        if group_id and artifact_id and version:
            return VersionedReference(group_id, artifact_id, version)
        return None

    def _builtin_properties(self, root: ET.Element, group_id: str, artifact_id: str,
                            version: str, packaging: str) -> Dict[str, str]:
        props = {
            'project.groupId': group_id,
            'project.artifactId': artifact_id,
            'project.version': version,
            'project.packaging': packaging,
            'pom.groupId': group_id,
            'pom.artifactId': artifact_id,
            'pom.version': version,
        }
        parent = self._child(root, 'parent')
        if parent is not None:
            props.update({
                'project.parent.groupId': self._child_text(parent, 'groupId') or '',
                'project.parent.artifactId': self._child_text(parent, 'artifactId') or '',
                'project.parent.version': self._child_text(parent, 'version') or '',
            })
        return props

    def _extract_properties(self, root: ET.Element) -> Dict[str, str]:
        """Extract properties from POM."""
        properties = {}
        props_element = self._child(root, 'properties')

        if props_element is not None:
            for prop in props_element:
                if prop.text:
                    # Remove namespace prefix from tag
                    tag = prop.tag.split('}')[-1] if '}' in prop.tag else prop.tag
                    properties[tag] = prop.text.strip()

        return properties

    @staticmethod
    def resolve_property(value: str, properties: Dict[str, str]) -> str:
        """Resolve property placeholders in a value; unknown ones are left in place."""
        if not value or '${' not in value:
            return value

        resolved = value
        for prop_name in PROPERTY_PATTERN.findall(value):
            if prop_name in properties:
                resolved = resolved.replace(f"${{{prop_name}}}", properties[prop_name])
        return resolved

    def _extract_dependency_management(self, root: ET.Element, properties: Dict[str, str]) -> List[Dependency]:
        dep_mgmt = self._child(root, 'dependencyManagement')
        return self._extract_dependencies(self._child(dep_mgmt, 'dependencies'), properties)

    def _extract_dependencies(self, deps_element: Optional[ET.Element],
                              properties: Dict[str, str]) -> List[Dependency]:
        dependencies = []
        for dep in self._children(deps_element, 'dependency'):
            dependency = self._parse_dependency(dep, properties)
            if dependency:
                dependencies.append(dependency)
        return dependencies

    def _parse_dependency(self, dep_element: ET.Element, properties: Dict[str, str]) -> Optional[Dependency]:
        """Parse a single dependency element."""
        group_id = self._child_text(dep_element, 'groupId', properties)
        artifact_id = self._child_text(dep_element, 'artifactId', properties)

        if not group_id or not artifact_id:
            return None

        optional_text = self._child_text(dep_element, 'optional', properties)

        exclusions = []
        for exclusion in self._children(self._child(dep_element, 'exclusions'), 'exclusion'):
            excl_group = self._child_text(exclusion, 'groupId', properties)
            excl_artifact = self._child_text(exclusion, 'artifactId', properties)
            if excl_group and excl_artifact:
                exclusions.append(Exclusion(excl_group, excl_artifact))

        return Dependency(
            group_id=group_id,
            artifact_id=artifact_id,
            version=self._child_text(dep_element, 'version', properties),
            classifier=self._child_text(dep_element, 'classifier', properties),
            type=self._child_text(dep_element, 'type', properties),
            scope=self._child_text(dep_element, 'scope', properties),
            optional=bool(optional_text and optional_text.lower() == 'true'),
            exclusions=exclusions,
        )

    def _extract_relocation(self, root: ET.Element, properties: Dict[str, str]) -> Optional[Relocation]:
        relocation = self._child(self._child(root, 'distributionManagement'), 'relocation')
        if relocation is None:
            return None
        return Relocation(
            group_id=self._child_text(relocation, 'groupId', properties),
            artifact_id=self._child_text(relocation, 'artifactId', properties),
            version=self._child_text(relocation, 'version', properties),
            message=self._child_text(relocation, 'message', properties),
        )
