"""TypeScript compiler and build-tool configuration.

Generates:
- ``tsconfig.json`` (structured data, serialised by the materializer)
- ``tsup.config.ts`` with the output formats required by the module format
"""

from __future__ import annotations

from typing import Any

from ..config import ModuleFormat, ProjectConfig
from .manifest import BUILD_DIR, ROOT_INDEX_DTS, ROOT_INDEX_JS, ROOT_INDEX_MJS, SOURCE_DIR
from .templates import TemplateRenderer, default_renderer


def build_formats(config: ProjectConfig) -> list[str]:
    """tsup output formats.  Dual packages build CommonJS first, then ESM."""
    if config.module_format is ModuleFormat.COMMONJS:
        return ["cjs"]
    if config.module_format is ModuleFormat.ESM:
        return ["esm"]
    return ["cjs", "esm"]


def generate_tsconfig(config: ProjectConfig) -> dict[str, Any]:
    """Build ``tsconfig.json``.

    CommonJS packages use Node resolution and the CommonJS module kind;
    ESM and dual packages use bundler resolution and ESNext, since tsup does
    the final emit.
    """
    commonjs = config.module_format is ModuleFormat.COMMONJS
    return {
        "compilerOptions": {
            "target": "ES2020",
            "module": "CommonJS" if commonjs else "ESNext",
            "lib": ["ES2020"],
            "moduleResolution": "node" if commonjs else "bundler",
            "outDir": f"./{BUILD_DIR}",
            "rootDir": f"./{SOURCE_DIR}",
            "strict": True,
            "esModuleInterop": True,
            "skipLibCheck": True,
            "forceConsistentCasingInFileNames": True,
            "declaration": True,
            "declarationMap": True,
            "sourceMap": True,
            "noUnusedLocals": True,
            "noUnusedParameters": True,
            "noImplicitReturns": True,
            "noFallthroughCasesInSwitch": True,
            "resolveJsonModule": True,
            "allowSyntheticDefaultImports": True,
        },
        "include": [f"{SOURCE_DIR}/**/*"],
        # Root re-export files are hand-written, never compiled.
        "exclude": [
            "node_modules",
            BUILD_DIR,
            "**/*.test.ts",
            "**/*.spec.ts",
            ROOT_INDEX_JS,
            ROOT_INDEX_DTS,
            ROOT_INDEX_MJS,
        ],
    }


def generate_tsup_config(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str:
    """Render ``tsup.config.ts``."""
    renderer = renderer or default_renderer()
    return renderer.render(
        "tsup.config.ts.j2",
        {"entry": f"{SOURCE_DIR}/index.ts", "formats": build_formats(config)},
    )
