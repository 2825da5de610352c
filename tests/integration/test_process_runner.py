"""
Integration tests for the process runner, using real child processes.
"""
import io
import sys
import pytest
from structlog.testing import capture_logs
from podmod.BUILDERS.cli_builder import CliParts, PodmanCliBuilder
from podmod.MODELS.module_manifest import EnvVarInfo, ImageInfo, VolumeInfo
from podmod.RUNNERS.process_runner import CliModuleRunner
from podmod.RUNNERS.run_context import RunContext
from podmod.errors import ProcessExecutionError, UnsupportedFeatureError


@pytest.fixture
def runner(fake_runtime):
    return CliModuleRunner(PodmanCliBuilder(fake_runtime))


def test_run_image(runner, run_ctx, fake_runtime):
    info = ImageInfo(
        image="atk-predeployer",
        env_vars=[EnvVarInfo(name="MYVAR", value="thisismyvalue")],
        volumes=[VolumeInfo(name="/tmp", mount_path="/workspace")],
    )
    with capture_logs() as logs:
        runner.run_image(run_ctx, info)

    expected = f"{fake_runtime.path} {fake_runtime.cmd} -v /tmp:/workspace -e MYVAR=thisismyvalue atk-predeployer"
    assert {"event": "running_command", "command": expected, "log_level": "info"} in logs
    assert run_ctx.out.getvalue() == (
        "image=atk-predeployer\nenv=MYVAR=thisismyvalue\nvolume=/tmp:/workspace\n"
    )
    assert run_ctx.err.getvalue() == ""
    assert not run_ctx.is_errored()


def test_container_with_error(runner, run_ctx):
    with pytest.raises(ProcessExecutionError) as excinfo:
        runner.run_image(run_ctx, ImageInfo(image="atk-fail-errer"))

    assert excinfo.value.exit_code == 3
    assert run_ctx.last_err_code == 3
    assert run_ctx.errors == [excinfo.value]
    assert run_ctx.err.getvalue() == "atk-fail-errer: deployment failed\n"
    assert run_ctx.is_errored()


def test_unsupported_command_is_recorded(runner, run_ctx):
    with pytest.raises(UnsupportedFeatureError):
        runner.run_image(run_ctx, ImageInfo(image="atk-predeployer", command=["sh"]))
    assert len(run_ctx.errors) == 1
    assert run_ctx.out.getvalue() == ""


def test_last_err_code():
    err = io.StringIO()
    ctx = RunContext(err=err)
    assert ctx.last_err_code == 0, "Should be zero after fresh creation."

    runner = CliModuleRunner(PodmanCliBuilder(CliParts(path=sys.executable, cmd="nonexistent_script_12345.py")))
    with pytest.raises(ProcessExecutionError):
        runner.run(ctx)

    assert "nonexistent_script_12345.py" in err.getvalue()
    assert runner.builder.build() == f"{sys.executable} nonexistent_script_12345.py"
    assert ctx.is_errored()
    assert ctx.last_err_code != 0
    assert ctx.errors[0].exit_code == ctx.last_err_code


def test_missing_runtime():
    ctx = RunContext()
    runner = CliModuleRunner(PodmanCliBuilder(CliParts(path="/nonexistent/bin/podman")))
    with pytest.raises(ProcessExecutionError) as excinfo:
        runner.run(ctx)

    assert excinfo.value.exit_code is None
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    assert ctx.errors == [excinfo.value]


def test_errors_accumulate_and_exit_code_resets(runner, run_ctx):
    for _ in range(2):
        with pytest.raises(ProcessExecutionError):
            runner.run_image(run_ctx, ImageInfo(image="atk-fail"))
    assert len(run_ctx.errors) == 2

    runner.run_image(run_ctx, ImageInfo(image="atk-predeployer"))
    assert run_ctx.last_err_code == 0
    assert len(run_ctx.errors) == 2


def test_stdin_is_forwarded(runner):
    ctx = RunContext(input=io.StringIO('{"variables": []}'), out=io.StringIO())
    runner.run_image(ctx, ImageInfo(image="atk-validator"))
    assert ctx.out.getvalue() == 'image=atk-validator\nstdin={"variables": []}\n'


def test_binary_output_stream(runner):
    ctx = RunContext(out=io.BytesIO())
    runner.run_image(ctx, ImageInfo(image="atk-lister"))
    assert ctx.out.getvalue() == b"image=atk-lister\n"


def test_file_streams_are_passed_directly(runner, tmp_path):
    out_path = tmp_path / "out.txt"
    with open(out_path, "w") as out:
        ctx = RunContext(out=out)
        runner.run_image(ctx, ImageInfo(image="atk-lister"))
    assert out_path.read_text() == "image=atk-lister\n"


def test_missing_streams_are_discarded(runner):
    ctx = RunContext()
    runner.run_image(ctx, ImageInfo(image="atk-lister"))
    assert not ctx.is_errored()


def test_argument_rejected_by_spawn_is_recorded(runner, run_ctx):
    info = ImageInfo(image="atk-predeployer", env_vars=[EnvVarInfo(name="A", value="x\x00y")])

    with pytest.raises(ProcessExecutionError) as excinfo:
        runner.run_image(run_ctx, info)

    assert excinfo.value.exit_code is None
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert run_ctx.errors == [excinfo.value]
    assert run_ctx.out.getvalue() == ""


def test_undecodable_output_is_replaced_and_logged(runner, run_ctx):
    with capture_logs() as logs:
        runner.run_image(run_ctx, ImageInfo(image="atk-latin1"))

    assert run_ctx.out.getvalue() == "image=atk-latin1\ncaf\ufffd\n"
    warnings = [entry for entry in logs if entry["event"] == "undecodable_output"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert not run_ctx.is_errored()


def test_binary_stream_keeps_undecodable_output(runner):
    ctx = RunContext(out=io.BytesIO())
    with capture_logs() as logs:
        runner.run_image(ctx, ImageInfo(image="atk-latin1"))

    assert ctx.out.getvalue() == b"image=atk-latin1\ncaf\xe9\n"
    assert [entry for entry in logs if entry["event"] == "undecodable_output"] == []
