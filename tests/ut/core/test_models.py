"""数据模型测试"""

from modinstall.core.models import (
    InstallResult,
    InstallStage,
    InstallStatus,
    PackageSpec,
    RunSummary,
)


def test_spec_tree_name() -> None:
    spec = PackageSpec(name="libxc", display_name="libxc", version="7", src_dir="libxc-7",
                       rename_to="libxc-build")
    assert spec.tree_name == "libxc-build"
    assert spec.uses_archive
    plain = PackageSpec(name="w", display_name="w", version="1", source_dir="/src/w")
    assert not plain.uses_archive


class TestRunSummary:
    def _summary(self) -> RunSummary:
        return RunSummary(
            results=[
                InstallResult(name="a", status=InstallStatus.SUCCESS, stage=InstallStage.DONE),
                InstallResult(name="b", status=InstallStatus.FAILED, stage=InstallStage.ARCHIVE),
            ],
            unknown=["foo"],
        )

    def test_partition(self) -> None:
        s = self._summary()
        assert [r.name for r in s.succeeded] == ["a"]
        assert [r.name for r in s.failed] == ["b"]
        assert not s.success

    def test_exit_code_continue_by_default(self) -> None:
        assert self._summary().exit_code() == 0

    def test_exit_code_strict(self) -> None:
        assert self._summary().exit_code(strict=True) == 1

    def test_unknown_tokens_do_not_fail_strict(self) -> None:
        assert RunSummary(unknown=["foo"]).exit_code(strict=True) == 0
