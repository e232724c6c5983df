"""
Settings and deployment context.

Settings load from ALLION_* environment variables. The deployment variables
used by existing setups (BACKEND_IMAGE_PATH, IMAGES_BASE_PATH,
APP_CONFIG_ENDPOINT, SANDBOX_ID) are honoured as-is.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from allion_voice.renderer import RenderContext

MARKDOWN_SUBPATH = Path("output") / "markdowns"


@dataclass(frozen=True)
class DeploymentContext:
    """Ordered candidate roots for asset lookups. Index 0 has highest priority."""
    name_roots: tuple[Path, ...]
    path_roots: tuple[Path, ...] = ()

    @property
    def allowed_roots(self) -> tuple[Path, ...]:
        return self.name_roots + tuple(r for r in self.path_roots if r not in self.name_roots)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ALLION_", extra="ignore", populate_by_name=True)

    base_dir: Path = Field(default_factory=Path.cwd)
    backend_dir: str = "backendtest4"
    artifacts_dir: str = "TSB_Honda-full-with-serials_artifacts"
    public_images_dir: str = "public/diagnostic-images"

    # Extra name root, probed last
    backend_image_path: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("ALLION_BACKEND_IMAGE_PATH", "BACKEND_IMAGE_PATH"),
    )
    # Extra path root, probed first
    images_base_path: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("ALLION_IMAGES_BASE_PATH", "IMAGES_BASE_PATH"),
    )

    asset_endpoint: str = "/assets"
    static_prefix: str = "/diagnostic-images"

    app_config_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ALLION_APP_CONFIG_ENDPOINT", "APP_CONFIG_ENDPOINT"),
    )
    sandbox_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ALLION_SANDBOX_ID", "SANDBOX_ID"),
    )

    socket_url: str = "http://localhost:8080"
    socket_token: str = ""
    socket_path: str = "/socket.io/"
    ready_timeout: float = 15.0

    def deployment_context(self) -> DeploymentContext:
        base = self.base_dir
        artifacts = MARKDOWN_SUBPATH / self.artifacts_dir
        name_roots = [
            base / self.public_images_dir,
            base.parent / self.backend_dir / artifacts,
            base / self.backend_dir / artifacts,
            Path("/tmp") / self.backend_dir / artifacts,
        ]
        if self.backend_image_path:
            name_roots.append(self.backend_image_path)

        path_roots = []
        if self.images_base_path:
            path_roots.append(self.images_base_path)
        path_roots += [
            base / MARKDOWN_SUBPATH,
            base.parent / MARKDOWN_SUBPATH,
            base / "backendtest_temp" / MARKDOWN_SUBPATH,
        ]
        return DeploymentContext(
            name_roots=tuple(p.resolve() for p in name_roots),
            path_roots=tuple(p.resolve() for p in path_roots),
        )

    def render_context(self) -> RenderContext:
        return RenderContext(asset_endpoint=self.asset_endpoint, static_prefix=self.static_prefix)
