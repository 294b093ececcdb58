# ci_workflow.py
# Coverage pipeline: runs the test task on nightly with profiling flags,
# collects a grcov report and hands it to the codecov uploader.
from __future__ import annotations

from taskline.dsl import pipeline, checkout, toolchain_install, tool_install, invoke, report, upload

PROFILE_FLAGS = "-Zprofile -Ccodegen-units=1 -Cinline-threshold=0 -Clink-dead-code -Coverflow-checks=off"
REPORT_DIR = "./coverage/reports/"


def workflow():
    return pipeline(
        "codecov",
        checkout(),
        toolchain_install("nightly", "Install latest nightly"),
        tool_install("cargo-make", "Install cargo-make", check="cargo make --version"),
        invoke(
            "test",
            "Test",
            env={
                "ALUVM_TOOLCHAIN": "nightly",
                "CARGO_INCREMENTAL": "0",
                "RUSTFLAGS": PROFILE_FLAGS,
                "RUSTDOCFLAGS": PROFILE_FLAGS,
            },
        ),
        report(
            [
                "grcov", ".",
                "--binary-path", "./target/debug/",
                "-s", ".",
                "-t", "lcov",
                "--branch",
                "--ignore-not-existing",
                "-o", REPORT_DIR + "lcov.info",
            ],
            "Generate coverage",
            directory=REPORT_DIR,
            file="lcov.info",
        ),
        upload(
            ["codecov", "--file", "${TASKLINE_REPORT_FILE}", "--dir", "${TASKLINE_REPORT_DIR}"],
            "Upload coverage to Codecov",
        ),
        on={"push": ["master"], "pull_request": ["master"]},
        env={"CARGO_TERM_COLOR": "always"},
    )
