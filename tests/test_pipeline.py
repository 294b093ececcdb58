from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from taskline.dsl import checkout, invoke, pipeline, report, tool_install, toolchain_install, upload
from taskline.env import Environment
from taskline.model import PipelineStep, Trigger
from taskline.pipeline import PipelineDriver, load_pipeline

from conftest import ROOT, FakeRunner

PUSH = Trigger(event="push", branch="master")


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    shutil.copy(ROOT / "Makefile.toml", tmp_path / "Makefile.toml")
    return tmp_path


class ReportWritingRunner(FakeRunner):
    """Fake runner that creates the grcov output file like the real tool would."""

    def __init__(self, workspace: Path, **kwargs):
        super().__init__(**kwargs)
        self.workspace = workspace

    def __call__(self, argv, *, env, cwd):
        code = super().__call__(argv, env=env, cwd=cwd)
        if argv[0] == "grcov":
            out = Path(cwd) / argv[argv.index("-o") + 1]
            out.write_text("TN:\n", encoding="utf-8")
        return code


def _driver(pl, runner, workspace, **kwargs) -> PipelineDriver:
    return PipelineDriver(
        pl,
        environment=Environment({"PATH": "/usr/bin"}),
        runner=runner,
        cwd=workspace,
        **kwargs,
    )


def test_shipped_workflow_end_to_end(workspace: Path) -> None:
    runner = ReportWritingRunner(workspace)
    pl = load_pipeline(ROOT / "ci_workflow.py")

    result = _driver(pl, runner, workspace).run(PUSH)

    assert result.status == "success", result.error
    assert list(result.steps.values()) == ["skipped", "ok", "skipped", "ok", "ok", "ok"]

    programs = [argv[:2] for argv in runner.argvs]
    assert programs == [
        ["rustup", "toolchain"],
        ["cargo", "make"],  # check: already installed
        ["rustup", "run"],  # the test task
        ["grcov", "."],
        ["codecov", "--file"],
    ]

    test_call = runner.calls[2]
    assert test_call["argv"][2] == "nightly"  # ALUVM_TOOLCHAIN from step env
    assert test_call["env"]["RUSTFLAGS"].startswith("-Zprofile")
    assert test_call["env"]["CARGO_TERM_COLOR"] == "always"
    assert test_call["env"]["CARGO_INCREMENTAL"] == "0"

    upload_argv = runner.argvs[-1]
    report_file = Path(upload_argv[2])
    assert report_file.name == "lcov.info"
    assert report_file.exists()


def test_pull_request_trigger_matches(workspace: Path) -> None:
    runner = ReportWritingRunner(workspace)
    pl = load_pipeline(ROOT / "ci_workflow.py")
    result = _driver(pl, runner, workspace).run(Trigger("pull_request", "master"))
    assert result.status == "success"


def test_other_branch_is_skipped(workspace: Path, runner) -> None:
    pl = load_pipeline(ROOT / "ci_workflow.py")
    result = _driver(pl, runner, workspace).run(Trigger("push", "feature/x"))
    assert result.status == "skipped"
    assert result.ok
    assert runner.calls == []


def test_failed_task_halts_pipeline(workspace: Path) -> None:
    runner = ReportWritingRunner(workspace, fail_on={"--no-fail-fast": 101})
    pl = load_pipeline(ROOT / "ci_workflow.py")

    result = _driver(pl, runner, workspace).run(PUSH)

    assert result.status == "failed"
    assert "exit=101" in result.error
    assert result.steps["Test"] == "failed"
    assert result.steps["Generate coverage"] == "not-run"
    assert result.steps["Upload coverage to Codecov"] == "not-run"
    assert not any(argv[0] == "grcov" for argv in runner.argvs)


def test_tool_install_runs_when_check_fails(workspace: Path) -> None:
    runner = FakeRunner(missing=["cargo-make"])
    pl = pipeline("tools", tool_install("cargo-make", check=["cargo-make", "--version"], version="0.37.0"))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "success"
    assert runner.argvs[-1] == ["cargo", "install", "cargo-make", "--version", "0.37.0", "--locked"]


def test_toolchain_install_with_components(workspace: Path, runner) -> None:
    pl = pipeline("tc", toolchain_install("nightly", components=["rustfmt", "clippy"]))
    _driver(pl, runner, workspace).run(PUSH)
    assert runner.argvs == [
        ["rustup", "toolchain", "install", "nightly", "--profile", "minimal"],
        ["rustup", "component", "add", "--toolchain", "nightly", "rustfmt", "clippy"],
    ]


def test_checkout_ref_and_clone(workspace: Path, runner) -> None:
    pl = pipeline(
        "src",
        checkout("Fetch ref", ref="v1.0"),
        checkout("Clone", repository="https://example.com/repo.git", path="repo", ref="main"),
    )
    _driver(pl, runner, workspace).run(PUSH)
    assert runner.argvs == [
        ["git", "fetch", "origin", "v1.0"],
        ["git", "checkout", "v1.0"],
        ["git", "clone", "https://example.com/repo.git", "repo"],
        ["git", "-C", "repo", "checkout", "main"],
    ]


def test_missing_report_fails_generation(workspace: Path, runner) -> None:
    pl = pipeline("cov", report("grcov . -o out/lcov.info", directory="out", file="lcov.info"))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "failed"
    assert "report not found" in result.error


def test_upload_without_report_fails(workspace: Path, runner) -> None:
    pl = pipeline("up", upload("codecov"))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "failed"
    assert "no report" in result.error
    assert runner.calls == []


def test_upload_with_explicit_directory(workspace: Path, runner) -> None:
    (workspace / "coverage").mkdir()
    pl = pipeline("up", upload(["codecov", "--dir", "${TASKLINE_REPORT_DIR}"], directory="coverage"))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "success"
    assert runner.argvs == [["codecov", "--dir", str(workspace / "coverage")]]


def test_missing_program_is_a_step_failure(workspace: Path) -> None:
    runner = FakeRunner(missing=["rustup"])
    pl = pipeline("tc", toolchain_install("nightly"), invoke("test"))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "failed"
    assert "could not start" in result.error
    assert result.steps == {"Install nightly toolchain": "failed", "Test": "not-run"}


def test_invoke_default_task(workspace: Path, runner) -> None:
    pl = pipeline("default", invoke())
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "success"
    assert runner.argvs[0][4] == "test"


def test_dry_run(workspace: Path, runner) -> None:
    pl = load_pipeline(ROOT / "ci_workflow.py")
    result = _driver(pl, runner, workspace, dry_run=True).run(PUSH)
    assert result.status == "success"
    assert runner.calls == []
    assert not (workspace / "coverage").exists()


def test_dsl_rejects_bad_pipelines() -> None:
    with pytest.raises(ValueError, match="at least one step"):
        pipeline("empty")
    with pytest.raises(ValueError, match="Duplicate"):
        pipeline("dupe", invoke("a", "Run"), invoke("b", "Run"))
    with pytest.raises(ValueError, match="Unknown step kind"):
        PipelineStep(name="x", kind="deploy")


def test_load_pipeline_errors(tmp_path: Path) -> None:
    from taskline.errors import ConfigError

    bad = tmp_path / "bad_workflow.py"
    bad.write_text("PIPELINE = 42\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="must return/define a Pipeline"):
        load_pipeline(bad)
    with pytest.raises(ConfigError, match="not found"):
        load_pipeline(tmp_path / "missing.py")


def test_load_pipeline_wraps_definition_errors(tmp_path: Path) -> None:
    from taskline.errors import ConfigError

    unknown_kind = tmp_path / "deploy_workflow.py"
    unknown_kind.write_text(
        "from taskline.model import Pipeline, PipelineStep\n"
        "PIPELINE = Pipeline(name='x', steps=[PipelineStep(name='ship', kind='deploy')])\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError, match="Unknown step kind"):
        load_pipeline(unknown_kind)

    broken = tmp_path / "broken_workflow.py"
    broken.write_text("def workflow(:\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid workflow"):
        load_pipeline(broken)


def test_empty_report_directory_fails_generation(workspace: Path, runner) -> None:
    pl = pipeline("cov", report("true", directory="coverage/reports"))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "failed"
    assert "report not found" in result.error
    assert result.steps == {"Generate report": "failed"}


def test_report_directory_with_contents_passes(workspace: Path, runner) -> None:
    reports = workspace / "coverage" / "reports"
    reports.mkdir(parents=True)
    (reports / "index.html").write_text("<html></html>", encoding="utf-8")
    pl = pipeline(
        "cov",
        report("true", directory="coverage/reports"),
        upload(["codecov", "--dir", "${TASKLINE_REPORT_DIR}"]),
    )
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "success"
    assert runner.argvs[-1] == ["codecov", "--dir", str(reports)]


def test_step_env_reaches_task_variables(workspace: Path, runner) -> None:
    pl = pipeline("nightly", invoke("test", env={"ALUVM_TOOLCHAIN": "nightly"}))
    result = _driver(pl, runner, workspace).run(PUSH)
    assert result.status == "success"
    assert runner.argvs[0][:3] == ["rustup", "run", "nightly"]
