"""forge-pkg scaffolder -- turns a ``ProjectConfig`` into package files.

Every per-concern generator here is a pure function of the configuration;
only :class:`ProjectGenerator` touches the filesystem.

Quick usage::

    from forge_pkg.scaffolder import ProjectGenerator, build_manifest

    result = await build_manifest(config, RegistryClient())
    generator = ProjectGenerator(config, result.manifest)
    project_path = await generator.generate("/tmp/output/my-lib")
"""

from forge_pkg.scaffolder.generator import PlannedFile, ProjectGenerator, TargetExistsError
from forge_pkg.scaffolder.manifest import ManifestResult, assemble_manifest, build_manifest
from forge_pkg.scaffolder.templates import TemplateRenderer

__all__ = [
    "ManifestResult",
    "PlannedFile",
    "ProjectGenerator",
    "TargetExistsError",
    "TemplateRenderer",
    "assemble_manifest",
    "build_manifest",
]
