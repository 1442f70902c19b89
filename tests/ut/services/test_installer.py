"""PackageInstaller 测试：五步流程的每个分支"""

from __future__ import annotations

from pathlib import Path

import pytest

from modinstall.core.config import Config
from modinstall.core.models import InstallStage, InstallStatus
from modinstall.core.registry import PackageRegistry
from modinstall.core.resolver import PackageResolver
from modinstall.services.installer import PackageInstaller
from modinstall.services.profile import ProfileUpdater
from modinstall.services.runner import InstallRunner
from modinstall.utils import net


@pytest.fixture()
def resolver(cfg: Config) -> PackageResolver:
    return PackageResolver(PackageRegistry(), cfg)


@pytest.fixture()
def installer(cfg: Config, resolver: PackageResolver, fake_executor) -> PackageInstaller:
    runner = InstallRunner(ProfileUpdater(cfg.profile_path), executor=fake_executor)
    return PackageInstaller(resolver, runner)


def _profile(cfg: Config) -> str:
    path = cfg.profile_path
    return path.read_text(encoding="utf-8") if path.exists() else ""


class TestArchiveCheck:
    def test_missing_archive(self, installer, cfg, resolver, fake_executor) -> None:
        r = installer.install("openblas")
        assert r.status == InstallStatus.FAILED
        assert r.stage == InstallStage.ARCHIVE
        assert "not found" in r.message
        assert r.display_name == "OpenBLAS 0.3.30"
        assert not resolver.prefix("openblas").exists()
        assert not (cfg.archive_path / "OpenBLAS-0.3.30").exists()
        assert fake_executor.calls == []
        assert _profile(cfg) == ""

    def test_missing_source_dir(self, installer, cfg, fake_executor) -> None:
        r = installer.install("wannier90")
        assert r.stage == InstallStage.ARCHIVE
        assert "wannier90-develop not found" in r.message
        assert fake_executor.calls == []


class TestBuild:
    def test_success(self, installer, cfg, resolver, fake_executor, archive_factory) -> None:
        archive_factory(cfg.archive_path, "fftw-3.3.10.tar.gz", "fftw-3.3.10")
        r = installer.install("fftw")
        assert r.status == InstallStatus.SUCCESS
        assert r.profile_updated

        prefix = resolver.prefix("fftw")
        assert prefix.is_dir()
        call = fake_executor.calls[0]
        assert call["cwd"] == str(cfg.archive_path / "fftw-3.3.10")
        assert call["cwd_exists"]
        assert f"--prefix='{prefix}'" in call["cmd"]
        assert "make -j2" in call["cmd"]
        # 源码树已清理
        assert not (cfg.archive_path / "fftw-3.3.10").exists()
        assert (cfg.archive_path / "fftw-3.3.10.tar.gz").is_file()
        assert "# ===== FFTW 3.3.10 (MPI) =====" in _profile(cfg)
        assert f'export PATH="{prefix}/bin:$PATH"' in _profile(cfg)

    def test_build_failure(self, installer, cfg, resolver, fake_executor, archive_factory) -> None:
        fake_executor.fail_when = ("make",)
        archive_factory(cfg.archive_path, "fftw-3.3.10.tar.gz", "fftw-3.3.10")
        r = installer.install("fftw")
        assert r.status == InstallStatus.FAILED
        assert r.stage == InstallStage.BUILD
        assert _profile(cfg) == ""
        assert not (cfg.archive_path / "fftw-3.3.10").exists()
        # 本次创建的空前缀被回收
        assert not resolver.prefix("fftw").exists()

    def test_build_subdir(self, installer, cfg, fake_executor, archive_factory) -> None:
        archive_factory(cfg.archive_path, "lapack-3.12.1.tar.gz", "lapack-3.12.1")
        r = installer.install("lapack")
        assert r.success
        call = fake_executor.calls[0]
        assert call["cwd"] == str(cfg.archive_path / "lapack-3.12.1" / "build")
        assert call["cwd_exists"]
        assert not (cfg.archive_path / "lapack-3.12.1").exists()

    def test_rename(self, installer, cfg, fake_executor, archive_factory) -> None:
        archive_factory(cfg.archive_path, "libxc-7.0.0.tar.bz2", "libxc-7.0.0")
        r = installer.install("libxc")
        assert r.success
        assert fake_executor.calls[0]["cwd"] == str(cfg.archive_path / "libxc-build")
        assert not (cfg.archive_path / "libxc-build").exists()
        assert not (cfg.archive_path / "libxc-7.0.0").exists()

    def test_env_merged(self, installer, cfg, resolver, fake_executor, archive_factory) -> None:
        for dep in ("openblas", "scalapack", "hdf5", "fftw"):
            resolver.prefix(dep).mkdir(parents=True)
        archive_factory(cfg.archive_path, "q-e-qe-7.4.1.tar.gz", "q-e-qe-7.4.1")
        r = installer.install("qe")
        assert r.success
        env = fake_executor.calls[0]["env"]
        assert "-fallow-argument-mismatch" in env["FCFLAGS"]
        assert "PATH" in env

    def test_bad_archive(self, installer, cfg, resolver, fake_executor) -> None:
        (cfg.archive_path / "json-3.12.0.tar.gz").write_bytes(b"garbage")
        r = installer.install("json")
        assert r.stage == InstallStage.EXTRACT
        assert fake_executor.calls == []
        assert not resolver.prefix("json").exists()
        assert _profile(cfg) == ""

    def test_existing_prefix_reinstalled(
        self, installer, cfg, resolver, fake_executor, archive_factory,
    ) -> None:
        resolver.prefix("openmpi").mkdir(parents=True)
        archive_factory(cfg.archive_path, "openmpi-5.0.9.tar.gz", "openmpi-5.0.9")
        assert installer.install("openmpi").success
        assert len(fake_executor.calls) == 1


class TestDependencies:
    def test_missing_dependencies(self, installer, cfg, resolver, fake_executor, archive_factory,
                                  caplog: pytest.LogCaptureFixture) -> None:
        archive_factory(cfg.archive_path, "scalapack-2.2.2.tar.gz", "scalapack-2.2.2")
        resolver.prefix("openblas").mkdir(parents=True)
        r = installer.install("scalapack")
        assert r.stage == InstallStage.DEPENDENCY
        assert "lapack" in r.message
        assert fake_executor.calls == []
        assert not (cfg.archive_path / "scalapack-2.2.2").exists()
        assert not resolver.prefix("scalapack").exists()
        assert "LAPACK 3.12.1 not installed" in caplog.text
        assert "OpenBLAS 0.3.30 not installed" not in caplog.text

    def test_satisfied_dependencies(self, installer, cfg, resolver, fake_executor,
                                    archive_factory) -> None:
        archive_factory(cfg.archive_path, "scalapack-2.2.2.tar.gz", "scalapack-2.2.2")
        resolver.prefix("openblas").mkdir(parents=True)
        resolver.prefix("lapack").mkdir(parents=True)
        assert installer.install("scalapack").success
        assert str(resolver.prefix("lapack")) in fake_executor.calls[0]["cmd"]


class TestSourceDirPackage:
    def test_wannier90_keeps_checkout(self, installer, cfg, fake_executor) -> None:
        tree = cfg.install_root / "wannier90-develop"
        tree.mkdir(parents=True)
        r = installer.install("wannier90")
        assert r.success
        assert fake_executor.calls[0]["cwd"] == str(tree / "build")
        assert (tree / "build").is_dir()
        assert tree.is_dir()


class TestInPlace:
    @pytest.fixture()
    def deps(self, resolver: PackageResolver) -> None:
        for dep in ("openmpi", "openblas", "lapack", "scalapack"):
            resolver.prefix(dep).mkdir(parents=True)

    def test_nwchem_success_keeps_tree(self, installer, cfg, resolver, fake_executor,
                                       archive_factory, deps) -> None:
        workdir = cfg.nwchem_root / "NWChem"
        archive_factory(workdir, "nwchem-7.2.0.tar.gz", "nwchem-7.2.0-release",
                        files={"src/GNUmakefile": "all:\n"})
        r = installer.install("nwchem")
        assert r.success
        prefix = resolver.prefix("nwchem")
        assert prefix == workdir / "7.2.0"
        assert (prefix / "src" / "GNUmakefile").is_file()
        call = fake_executor.calls[0]
        assert call["cwd"] == str(prefix)
        assert "cd src" in call["cmd"]
        assert call["env"]["NWCHEM_TARGET"] == "LINUX64"
        assert "# ===== NWChem 7.2.0 =====" in _profile(cfg)

    def test_nwchem_failure_cleans_tree(self, installer, cfg, resolver, fake_executor,
                                        archive_factory, deps) -> None:
        fake_executor.fail_when = ("nwchem_config",)
        workdir = cfg.nwchem_root / "NWChem"
        archive_factory(workdir, "nwchem-7.2.0.tar.gz", "nwchem-7.2.0-release",
                        files={"src/GNUmakefile": "all:\n"})
        r = installer.install("nwchem")
        assert r.stage == InstallStage.BUILD
        assert not (workdir / "7.2.0").exists()
        assert _profile(cfg) == ""

    def test_nwchem_incomplete_archive(self, installer, cfg, fake_executor,
                                       archive_factory, deps) -> None:
        workdir = cfg.nwchem_root / "NWChem"
        archive_factory(workdir, "nwchem-7.2.0.tar.gz", "nwchem-7.2.0-release")
        r = installer.install("nwchem")
        assert r.stage == InstallStage.EXTRACT
        assert "src" in r.message
        assert fake_executor.calls == []
        assert not (workdir / "7.2.0").exists()

    def test_nwchem_downloads_missing_archive(
        self, installer, cfg, fake_executor, archive_factory, deps,
        monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
    ) -> None:
        cache = archive_factory(tmp_path / "cache", "nwchem-7.2.0.tar.gz",
                                "nwchem-7.2.0-release", files={"src/GNUmakefile": "all:\n"})
        urls: list[str] = []

        def fake_retrieve(url: str, dest: str) -> None:
            urls.append(url)
            Path(dest).write_bytes(cache.read_bytes())

        monkeypatch.setattr(net.urllib.request, "urlretrieve", fake_retrieve)
        r = installer.install("nwchem")
        assert r.success
        assert urls == [
            "https://github.com/nwchemgit/nwchem/archive/refs/tags/v7.2.0-release.tar.gz",
        ]

    def test_nwchem_download_failure(
        self, installer, cfg, fake_executor, deps, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def fake_retrieve(url: str, dest: str) -> None:
            raise OSError("network unreachable")

        monkeypatch.setattr(net.urllib.request, "urlretrieve", fake_retrieve)
        r = installer.install("nwchem")
        assert r.stage == InstallStage.ARCHIVE
        assert "nwchem-7.2.0.tar.gz not found" in r.message
        assert fake_executor.calls == []

    def test_nwchem_failed_rebuild_keeps_previous_install(
        self, installer, cfg, resolver, fake_executor, archive_factory, deps,
    ) -> None:
        workdir = cfg.nwchem_root / "NWChem"
        archive_factory(workdir, "nwchem-7.2.0.tar.gz", "nwchem-7.2.0-release",
                        files={"src/GNUmakefile": "all:\n"})
        assert installer.install("nwchem").success
        prefix = resolver.prefix("nwchem")
        (prefix / "bin").mkdir()
        (prefix / "bin" / "nwchem").write_text("built\n", encoding="utf-8")

        fake_executor.fail_when = ("nwchem_config",)
        r = installer.install("nwchem")

        assert r.stage == InstallStage.BUILD
        assert (prefix / "bin" / "nwchem").read_text(encoding="utf-8") == "built\n"
        assert not (workdir / "7.2.0.bak").exists()
        assert _profile(cfg).count("# ===== NWChem 7.2.0 =====") == 1

    def test_nwchem_successful_rebuild_replaces_tree(
        self, installer, cfg, resolver, fake_executor, archive_factory, deps,
    ) -> None:
        workdir = cfg.nwchem_root / "NWChem"
        archive_factory(workdir, "nwchem-7.2.0.tar.gz", "nwchem-7.2.0-release",
                        files={"src/GNUmakefile": "all:\n"})
        assert installer.install("nwchem").success
        prefix = resolver.prefix("nwchem")
        (prefix / "stale.o").write_text("x", encoding="utf-8")

        assert installer.install("nwchem").success
        assert (prefix / "src" / "GNUmakefile").is_file()
        assert not (prefix / "stale.o").exists()
        assert not (workdir / "7.2.0.bak").exists()
        assert fake_executor.calls[-1]["cwd"] == str(prefix)
