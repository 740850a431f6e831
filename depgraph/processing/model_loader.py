"""
Model loaders: turn a versioned reference into a project model.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from ..core.exceptions import ModelLoadError
from .maven_model import Dependency, Exclusion, ProjectModel, Relocation, VersionedReference
from .pom_parser import PomParseError, PomParser

logger = logging.getLogger(__name__)


def _ref_key(ref: VersionedReference) -> str:
    return f"{ref.group_id}:{ref.artifact_id}:{ref.version or ''}"


class ModelLoader(ABC):
    """Source of project models. Implementations raise ModelLoadError on failure."""

    @abstractmethod
    async def load_model(self, ref: VersionedReference) -> ProjectModel:
        ...


class MemoryModelLoader(ModelLoader):
    """Models held in memory, keyed by groupId:artifactId:version."""

    def __init__(self, models: Optional[Iterable[ProjectModel]] = None, delay: float = 0.0):
        self.models: Dict[str, ProjectModel] = {}
        self.delay = delay
        self.load_counts: Dict[str, int] = defaultdict(int)
        for model in models or []:
            self.add_model(model)

    def add_model(self, model: ProjectModel) -> ProjectModel:
        self.models[_ref_key(model.versioned_reference)] = model
        return model

    async def load_model(self, ref: VersionedReference) -> ProjectModel:
        key = _ref_key(ref)
        self.load_counts[key] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        model = self.models.get(key)
        if model is None:
            raise ModelLoadError(f"No model for {key}", ref=ref, component="memory_model_loader")
        return model


class PomDirectoryModelLoader(ModelLoader):
    """
    Loads POMs from a directory in the default Maven repository layout.

    Dependencies and dependency management declared by parent POMs found in
    the same directory are merged into the child model; inherited
    dependencies are flagged ``from_parent``. Parent properties are merged
    too, the nearest declaration winning, and placeholders the child could
    not resolve on its own are substituted afterwards.
    """

    max_parent_depth = 20

    def __init__(self, base_dir: Union[str, Path], parser: Optional[PomParser] = None):
        self.base_dir = Path(base_dir)
        self.parser = parser or PomParser()
        self.pom_cache: Dict[str, ProjectModel] = {}

    def pom_path(self, ref: VersionedReference) -> Path:
        group_path = Path(*ref.group_id.split('.'))
        return self.base_dir / group_path / ref.artifact_id / ref.version / f"{ref.artifact_id}-{ref.version}.pom"

    async def load_model(self, ref: VersionedReference) -> ProjectModel:
        if not ref.version:
            raise ModelLoadError(f"Cannot load {_ref_key(ref)} without a version", ref=ref)
        model = await self._read_model(ref)
        return await self._merge_parents(model, ref)

    async def _read_model(self, ref: VersionedReference) -> ProjectModel:
        key = _ref_key(ref)
        cached = self.pom_cache.get(key)
        if cached is not None:
            return cached

        path = self.pom_path(ref)
        try:
            content = await asyncio.to_thread(path.read_text, encoding='utf-8')
        except FileNotFoundError as e:
            raise ModelLoadError(f"POM not found for {key}: {path}", ref=ref, cause=e) from e
        except OSError as e:
            raise ModelLoadError(f"Unable to read POM for {key}: {e}", ref=ref, cause=e) from e

        try:
            model = self.parser.parse_pom(content, origin=str(path))
        except PomParseError as e:
            raise ModelLoadError(f"Malformed POM for {key}: {e}", ref=ref, cause=e) from e

        self.pom_cache[key] = model
        return model

    async def _merge_parents(self, model: ProjectModel, ref: VersionedReference) -> ProjectModel:
        dependencies = list(model.dependencies)
        managed = list(model.dependency_management)
        properties = dict(model.properties)
        declared: Set[str] = {dep.ga_coordinates for dep in dependencies}
        seen: List[str] = [_ref_key(ref)]

        parent_ref = model.parent
        while parent_ref is not None and len(seen) <= self.max_parent_depth:
            parent_key = _ref_key(parent_ref)
            if parent_key in seen:
                logger.warning("Parent cycle at %s while loading %s", parent_key, seen[0])
                break
            seen.append(parent_key)
            try:
                parent = await self._read_model(parent_ref)
            except ModelLoadError:
                logger.warning("Parent %s of %s not available, using the model as is", parent_key, seen[0])
                break

            for name, value in parent.properties.items():
                properties.setdefault(name, value)
            for dep in parent.dependencies:
                if dep.ga_coordinates not in declared:
                    declared.add(dep.ga_coordinates)
                    dependencies.append(replace(dep, from_parent=True))
            managed.extend(parent.dependency_management)
            parent_ref = parent.parent

        return replace(
            model,
            dependencies=[self._interpolate_dependency(dep, properties) for dep in dependencies],
            dependency_management=[self._interpolate_dependency(dep, properties) for dep in managed],
            relocation=self._interpolate_relocation(model.relocation, properties),
            properties=properties,
        )

    def _interpolate(self, value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
        if value is None:
            return None
        return self.parser.resolve_property(value, properties)

    def _interpolate_dependency(self, dep: Dependency, properties: Dict[str, str]) -> Dependency:
        """Substitute placeholders left over after parsing, using the merged parent chain properties."""
        return replace(
            dep,
            group_id=self._interpolate(dep.group_id, properties),
            artifact_id=self._interpolate(dep.artifact_id, properties),
            version=self._interpolate(dep.version, properties),
            classifier=self._interpolate(dep.classifier, properties),
            type=self._interpolate(dep.type, properties),
            scope=self._interpolate(dep.scope, properties),
            exclusions=[Exclusion(self._interpolate(e.group_id, properties),
                                  self._interpolate(e.artifact_id, properties))
                        for e in dep.exclusions],
        )

    def _interpolate_relocation(self, relocation: Optional[Relocation],
                                properties: Dict[str, str]) -> Optional[Relocation]:
        if relocation is None:
            return None
        return replace(
            relocation,
            group_id=self._interpolate(relocation.group_id, properties),
            artifact_id=self._interpolate(relocation.artifact_id, properties),
            version=self._interpolate(relocation.version, properties),
        )
