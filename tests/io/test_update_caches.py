"""Tests for update caches and the release manifest cache."""

import json
from pathlib import Path

from runkit.io.caches import ReleaseManifestCache, UpdateCacheStore
from runkit.models.caches import UpdateCheck, VersionCache
from runkit.models.release import ReleaseManifest
from runkit.settings import Settings


def test_missing_caches_read_as_defaults(state_dir: Path) -> None:
    """Test that absent cache files mean no check has happened."""
    cache = UpdateCacheStore(Settings.for_state_dir(state_dir))

    assert cache.read_version_cache() is None
    assert cache.read_cli_check() == UpdateCheck()
    assert cache.read_kernel_checks().get("rs").last_check == 0


def test_corrupt_cache_reads_as_absent(state_dir: Path) -> None:
    """Test that a corrupt cache file is ignored rather than fatal."""
    settings = Settings.for_state_dir(state_dir)
    settings.state_dir.mkdir(parents=True)
    settings.cli_update_cache_path.write_text("garbage", encoding="utf-8")

    assert UpdateCacheStore(settings).read_cli_check().last_check == 0


def test_version_cache_round_trip(state_dir: Path) -> None:
    """Test that the version cache is stored with its on-disk field names."""
    settings = Settings.for_state_dir(state_dir)
    cache = UpdateCacheStore(settings)

    cache.write_version_cache(
        VersionCache(
            version="1.2.0",
            source="runkit-dev/runkit-release",
            fetched_at="2025-01-01T00:00:00Z",
        )
    )

    data = json.loads(settings.version_cache_path.read_text(encoding="utf-8"))
    assert data == {
        "version": "1.2.0",
        "source": "runkit-dev/runkit-release",
        "fetchedAt": "2025-01-01T00:00:00Z",
    }
    cached = cache.read_version_cache()
    assert cached is not None
    assert cached.version == "1.2.0"


def test_kernel_checks_are_merged(state_dir: Path) -> None:
    """Test that writing one kernel's check keeps the others."""
    cache = UpdateCacheStore(Settings.for_state_dir(state_dir))

    cache.write_kernel_check("rs", UpdateCheck(version="1.0.0", last_check=10))
    cache.write_kernel_check("java", UpdateCheck(version="0.3.1", last_check=20))

    checks = cache.read_kernel_checks()
    assert checks.get("rs") == UpdateCheck(version="1.0.0", last_check=10)
    assert checks.get("java") == UpdateCheck(version="0.3.1", last_check=20)


def test_update_check_is_due() -> None:
    """Test the interval gate."""
    check = UpdateCheck(version="1.0.0", last_check=1000)

    assert not check.is_due(1000 + 59, 60)
    assert check.is_due(1000 + 60, 60)


def test_touch_stamp_writes_epoch(state_dir: Path) -> None:
    """Test that the last-update stamp holds the epoch seconds."""
    settings = Settings.for_state_dir(state_dir)

    UpdateCacheStore(settings).touch_stamp(1735689600)

    assert settings.update_stamp_path.read_text(encoding="utf-8") == "1735689600\n"


def test_release_manifest_cache_is_content_addressed(state_dir: Path) -> None:
    """Test that cached manifests live under the version with a URL digest name."""
    cache = ReleaseManifestCache(Settings.for_state_dir(state_dir))
    url = "https://github.com/runkit-dev/runkit-release/releases/download/v1.0.0/manifest.json"

    path = cache.path_for("1.0.0", url)

    assert path.parent.name == "v1.0.0"
    assert len(path.stem) == 16
    assert cache.path_for("1.0.0", url + "?other") != path


def test_release_manifest_cache_round_trip(state_dir: Path) -> None:
    """Test that a stored manifest is returned for the same version and URL."""
    cache = ReleaseManifestCache(Settings.for_state_dir(state_dir))
    manifest = ReleaseManifest.model_validate(
        {"kernels": {"rs": {"assets": [{"name": "a.tar.gz", "download_url": "https://x/a"}]}}}
    )

    assert cache.get("1.0.0", "https://x/m.json") is None
    cache.put("1.0.0", "https://x/m.json", manifest)

    assert cache.get("1.0.0", "https://x/m.json") == manifest
