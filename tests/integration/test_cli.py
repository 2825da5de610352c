import os
import sys
import pytest
from click.testing import CliRunner
from podmod.CLI.main import cli

FAKE_PODMAN = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "fixtures", "fake_podman.py")


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, *args):
    return runner.invoke(cli, ['--podman-path', sys.executable, '--subcommand', FAKE_PODMAN, *args], obj={})


def test_cli_help(runner):
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'Run the module lifecycle' in result.output


def test_cli_check_supported(runner, manifest_path):
    result = runner.invoke(cli, ['check', manifest_path('module1.yml')], obj={})
    assert result.exit_code == 0
    assert 'IBMTechnologyZone/MyModule: itzcli/v1alpha1 InstallManifest (supported)' in result.output


def test_cli_check_unsupported(runner, manifest_path):
    result = runner.invoke(cli, ['check', manifest_path('unsupported_kind.yml')], obj={})
    assert result.exit_code == 1
    assert '(unsupported)' in result.output


def test_cli_check_missing_file(runner):
    result = runner.invoke(cli, ['check', 'non_existent.yml'], obj={})
    assert result.exit_code == 2


def test_cli_deploy(runner, manifest_path):
    result = invoke(runner, 'deploy', manifest_path('happy_path.yml'))
    assert result.exit_code == 0, result.output
    assert 'image=atk-predeployer' in result.output
    assert 'image=atk-postdeployer' in result.output
    assert 'postdeploying -> postdeployed' in result.output
    assert 'Module deployed.' in result.output


def test_cli_deploy_failure(runner, manifest_path):
    result = invoke(runner, 'deploy', manifest_path('failing_deploy.yml'))
    assert result.exit_code == 1
    assert 'Error in state deploying' in result.output
    assert 'image=atk-postdeployer' not in result.output


def test_cli_deploy_unsupported_manifest(runner, manifest_path):
    result = invoke(runner, 'deploy', manifest_path('unsupported_version.yml'))
    assert result.exit_code == 1
    assert 'module version itzcli/v1beta1 is not supported' in result.output


def test_cli_hook(runner, manifest_path):
    result = invoke(runner, 'hook', manifest_path('happy_path.yml'), 'list')
    assert result.exit_code == 0, result.output
    assert 'image=atk-lister' in result.output


def test_cli_hook_rejects_unknown_name(runner, manifest_path):
    result = invoke(runner, 'hook', manifest_path('happy_path.yml'), 'deploy')
    assert result.exit_code == 2
