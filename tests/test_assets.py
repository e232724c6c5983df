"""Asset resolver tests."""

import errno
import os
from pathlib import Path

import pytest

from allion_voice import assets
from allion_voice.assets import AssetResolver, content_type_for, validate_name, validate_path
from allion_voice.config import DeploymentContext, Settings
from allion_voice.errors import AssetNotFound, InvalidReference, UnexpectedIOError

PNG = b"\x89PNG\r\n\x1a\n"

DEPLOYMENT_VARS = (
    "BACKEND_IMAGE_PATH", "IMAGES_BASE_PATH", "ALLION_BACKEND_IMAGE_PATH", "ALLION_IMAGES_BASE_PATH",
    "ALLION_BASE_DIR",
)


@pytest.fixture
def roots(tmp_path):
    base = tmp_path.resolve()
    names = (base / "public", base / "artifacts", base / "extra")
    paths = (base / "override", base / "markdowns")
    for root in names + paths:
        root.mkdir()
    return names, paths


@pytest.fixture
def resolver(roots):
    names, paths = roots
    return AssetResolver(DeploymentContext(name_roots=names, path_roots=paths))


@pytest.fixture
def clean_env(monkeypatch):
    for var in DEPLOYMENT_VARS:
        monkeypatch.delenv(var, raising=False)


class TestNameLookup:
    def test_first_root_wins(self, roots, resolver):
        names, _ = roots
        (names[0] / "fig.png").write_bytes(b"first")
        (names[2] / "fig.png").write_bytes(b"last")
        asset = resolver.resolve_name("fig.png")
        assert asset.path == names[0] / "fig.png"
        assert resolver.read(asset) == b"first"

    def test_falls_through_to_later_root(self, roots, resolver):
        names, _ = roots
        (names[1] / "fig.jpg").write_bytes(PNG)
        asset = resolver.resolve_name("fig.jpg")
        assert asset.path == names[1] / "fig.jpg"
        assert asset.content_type == "image/jpeg"

    def test_missing_everywhere(self, resolver):
        with pytest.raises(AssetNotFound) as exc_info:
            resolver.resolve_name("nope.png")
        assert exc_info.value.code == "asset_not_found"

    def test_directory_is_not_a_match(self, roots, resolver):
        names, _ = roots
        (names[0] / "fig.png").mkdir()
        (names[1] / "fig.png").write_bytes(PNG)
        assert resolver.resolve_name("fig.png").path == names[1] / "fig.png"

    def test_path_roots_are_not_searched(self, roots, resolver):
        _, paths = roots
        (paths[0] / "only-here.png").write_bytes(PNG)
        with pytest.raises(AssetNotFound):
            resolver.resolve_name("only-here.png")

    def test_probe_order(self, roots, resolver, monkeypatch):
        names, _ = roots
        probed = []

        def fake_probe(candidate):
            probed.append(candidate)
            return False

        monkeypatch.setattr(assets, "_probe", fake_probe)
        with pytest.raises(AssetNotFound):
            resolver.resolve_name("x.png")
        assert probed == [root / "x.png" for root in names]

    def test_probing_stops_at_first_hit(self, roots, resolver, monkeypatch):
        names, _ = roots
        probed = []

        def fake_probe(candidate):
            probed.append(candidate)
            return candidate == names[1] / "x.png"

        monkeypatch.setattr(assets, "_probe", fake_probe)
        assert resolver.resolve_name("x.png").path == names[1] / "x.png"
        assert probed == [names[0] / "x.png", names[1] / "x.png"]

    def test_symlink_out_of_roots_is_a_miss(self, tmp_path, roots, resolver):
        names, _ = roots
        outside = tmp_path.resolve() / "outside.png"
        outside.write_bytes(PNG)
        (names[0] / "fig.png").symlink_to(outside)
        with pytest.raises(AssetNotFound):
            resolver.resolve_name("fig.png")

        (names[1] / "fig.png").write_bytes(b"inside")
        assert resolver.resolve_name("fig.png").path == names[1] / "fig.png"

    def test_symlink_between_roots_is_served(self, roots, resolver):
        names, _ = roots
        (names[2] / "real.png").write_bytes(PNG)
        (names[0] / "alias.png").symlink_to(names[2] / "real.png")
        assert resolver.resolve_name("alias.png").path == names[0] / "alias.png"

    def test_unexpected_io_error_propagates(self, roots, resolver, monkeypatch):
        names, _ = roots
        target = names[0] / "locked.png"
        real_stat = os.stat

        def fake_stat(path, *args, **kwargs):
            if Path(path) == target:
                raise PermissionError(errno.EACCES, "Permission denied")
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(assets.os, "stat", fake_stat)
        (names[1] / "locked.png").write_bytes(PNG)
        with pytest.raises(UnexpectedIOError) as exc_info:
            resolver.resolve_name("locked.png")
        assert exc_info.value.code == "unexpected_io"


class TestValidation:
    @pytest.mark.parametrize("name", ["", None, "../etc/passwd", "..", "a/b.png", "a\\b.png", "x\x00.png"])
    def test_rejected_names(self, name, resolver, monkeypatch):
        monkeypatch.setattr(assets, "_probe", lambda c: pytest.fail("probed an invalid name"))
        with pytest.raises(InvalidReference):
            resolver.resolve_name(name)

    def test_valid_name(self):
        assert validate_name("fig_3.png") == "fig_3.png"

    @pytest.mark.parametrize("value", ["", None, "../secret.png", "a/../../b.png", "a\\..\\b.png", "a\x00b"])
    def test_rejected_paths(self, value):
        with pytest.raises(InvalidReference):
            validate_path(value)

    def test_dots_inside_names_are_fine(self):
        assert validate_path("a/b..c.png") == "a/b..c.png"


class TestPathLookup:
    def test_bare_name_searches_path_roots(self, roots, resolver):
        _, paths = roots
        (paths[1] / "fig.png").write_bytes(PNG)
        assert resolver.resolve_path("fig.png").path == paths[1] / "fig.png"

    def test_override_root_first(self, roots, resolver):
        _, paths = roots
        (paths[0] / "fig.png").write_bytes(b"override")
        (paths[1] / "fig.png").write_bytes(b"default")
        assert resolver.resolve_path("fig.png").path == paths[0] / "fig.png"

    def test_full_path_inside_root(self, roots, resolver):
        _, paths = roots
        target = paths[1] / "artifacts" / "fig.webp"
        target.parent.mkdir()
        target.write_bytes(PNG)
        asset = resolver.resolve_path(str(target))
        assert asset.path == target
        assert asset.content_type == "image/webp"

    def test_full_path_inside_name_root(self, roots, resolver):
        names, _ = roots
        target = names[0] / "fig.png"
        target.write_bytes(PNG)
        assert resolver.resolve_path(str(target)).path == target

    def test_full_path_outside_roots(self, tmp_path, resolver):
        outside = tmp_path.resolve() / "elsewhere.png"
        outside.write_bytes(PNG)
        with pytest.raises(InvalidReference):
            resolver.resolve_path(str(outside))

    def test_full_path_missing(self, roots, resolver):
        _, paths = roots
        with pytest.raises(AssetNotFound):
            resolver.resolve_path(str(paths[1] / "sub" / "gone.png"))


class TestAsync:
    @pytest.mark.asyncio
    async def test_aresolve_name_and_aread(self, roots, resolver):
        names, _ = roots
        (names[2] / "fig.gif").write_bytes(b"GIF89a")
        asset = await resolver.aresolve_name("fig.gif")
        assert asset.path == names[2] / "fig.gif"
        assert asset.content_type == "image/gif"
        assert await resolver.aread(asset) == b"GIF89a"

    @pytest.mark.asyncio
    async def test_async_probing_stops_at_first_hit(self, roots, resolver, monkeypatch):
        names, _ = roots
        probed = []

        def fake_probe(candidate):
            probed.append(candidate)
            return candidate == names[1] / "x.png"

        monkeypatch.setattr(assets, "_probe", fake_probe)
        asset = await resolver.aresolve_name("x.png")
        assert asset.path == names[1] / "x.png"
        assert probed == [names[0] / "x.png", names[1] / "x.png"]

    @pytest.mark.asyncio
    async def test_async_symlink_out_of_roots_is_a_miss(self, tmp_path, roots, resolver):
        _, paths = roots
        outside = tmp_path.resolve() / "outside.png"
        outside.write_bytes(PNG)
        (paths[1] / "fig.png").symlink_to(outside)
        with pytest.raises(AssetNotFound):
            await resolver.aresolve_path("fig.png")

    @pytest.mark.asyncio
    async def test_aresolve_path_not_found(self, resolver):
        with pytest.raises(AssetNotFound):
            await resolver.aresolve_path("missing.png")

    @pytest.mark.asyncio
    async def test_async_validation(self, resolver):
        with pytest.raises(InvalidReference):
            await resolver.aresolve_name("../x.png")

    @pytest.mark.asyncio
    async def test_aread_vanished_file(self, roots, resolver):
        names, _ = roots
        target = names[0] / "fig.png"
        target.write_bytes(PNG)
        asset = await resolver.aresolve_name("fig.png")
        target.unlink()
        with pytest.raises(AssetNotFound):
            await resolver.aread(asset)


class TestContentTypes:
    @pytest.mark.parametrize("name,expected", [
        ("a.png", "image/png"),
        ("a.JPG", "image/jpeg"),
        ("a.jpeg", "image/jpeg"),
        ("a.svg", "image/svg+xml"),
        ("a.bmp", "image/bmp"),
        ("a.ico", "image/x-icon"),
        ("a.unknown", "image/png"),
        ("noext", "image/png"),
    ])
    def test_content_type_for(self, name, expected):
        assert content_type_for(Path(name)) == expected


class TestDeploymentContext:
    def test_default_roots(self, tmp_path, clean_env):
        base = tmp_path.resolve()
        ctx = Settings(base_dir=base).deployment_context()
        artifacts = Path("output", "markdowns", "TSB_Honda-full-with-serials_artifacts")
        assert ctx.name_roots == (
            base / "public" / "diagnostic-images",
            (base.parent / "backendtest4" / artifacts).resolve(),
            base / "backendtest4" / artifacts,
            (Path("/tmp") / "backendtest4" / artifacts).resolve(),
        )
        assert ctx.path_roots == (
            base / "output" / "markdowns",
            (base.parent / "output" / "markdowns").resolve(),
            base / "backendtest_temp" / "output" / "markdowns",
        )

    def test_environment_overrides(self, tmp_path, clean_env, monkeypatch):
        base = tmp_path.resolve()
        monkeypatch.setenv("BACKEND_IMAGE_PATH", str(base / "backend-images"))
        monkeypatch.setenv("IMAGES_BASE_PATH", str(base / "images"))
        ctx = Settings(base_dir=base).deployment_context()
        assert ctx.name_roots[-1] == base / "backend-images"
        assert ctx.path_roots[0] == base / "images"

    def test_allowed_roots_cover_both_lists(self, roots):
        names, paths = roots
        ctx = DeploymentContext(name_roots=names, path_roots=paths + (names[0],))
        assert ctx.allowed_roots == names + paths
