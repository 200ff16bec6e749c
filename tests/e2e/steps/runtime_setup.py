from __future__ import annotations

from pytest_bdd import given, parsers, then, when

from services.runtime import ExternalToolError
from services.runtime.versioning import read_descriptor

from tests.e2e.runtime_harness import RuntimeSetupHarness


@given(parsers.parse('the published runtime build is "{build_id}" for "{target_alias}"'))
def publish_build(runtime_setup: RuntimeSetupHarness, build_id: str, target_alias: str) -> None:
    runtime_setup.published = {"buildid": build_id, "target_alias": target_alias}


@given(parsers.parse('the installed runtime record is "{build_id}" for "{target_alias}"'))
def record_installed_build(
    runtime_setup: RuntimeSetupHarness, build_id: str, target_alias: str
) -> None:
    runtime_setup.record_installed_build(build_id, target_alias)


@given("no runtime is installed")
def no_runtime_installed(runtime_setup: RuntimeSetupHarness) -> None:
    assert not runtime_setup.dist_dir.exists()


@given(parsers.parse('the runtime download is served as "{content_type}"'))
def serve_download(runtime_setup: RuntimeSetupHarness, content_type: str) -> None:
    runtime_setup.content_type = content_type


@given(parsers.parse("attaching the disk image fails with exit code {exit_code:d}"))
def fail_attach(runtime_setup: RuntimeSetupHarness, exit_code: int) -> None:
    runtime_setup.attach_exit = exit_code


@when(parsers.parse('the runtime setup runs on "{system}"'))
def run_setup(runtime_setup: RuntimeSetupHarness, system: str) -> None:
    runtime_setup.run(system)


@then(parsers.parse("the setup exits with code {exit_code:d}"))
def check_exit_code(runtime_setup: RuntimeSetupHarness, exit_code: int) -> None:
    assert runtime_setup.result is not None
    assert runtime_setup.result.exit_code == exit_code, runtime_setup.output


@then("the setup reports the runtime is up to date")
def check_up_to_date(runtime_setup: RuntimeSetupHarness) -> None:
    assert runtime_setup.result is not None and runtime_setup.result.up_to_date
    assert "Already using latest version" in runtime_setup.output


@then("no runtime download was requested")
def check_no_download(runtime_setup: RuntimeSetupHarness) -> None:
    assert runtime_setup.profile is not None
    assert runtime_setup.profile.download_binary_url not in runtime_setup.opener.requested


@then("no runtime was installed")
def check_not_installed(runtime_setup: RuntimeSetupHarness) -> None:
    assert runtime_setup.profile is not None
    assert not runtime_setup.profile.install_root.exists()


@then(parsers.parse('the installer received a "{extension}" archive'))
def check_archive_format(runtime_setup: RuntimeSetupHarness, extension: str) -> None:
    assert [archive.extension.value for archive in runtime_setup.installed_archives] == [extension]


@then("the install tree contains the runtime and companion app")
def check_install_tree(runtime_setup: RuntimeSetupHarness) -> None:
    profile = runtime_setup.profile
    assert profile is not None
    assert (profile.executable_path / "firefox").is_file()
    assert (profile.resources_path / "qbrt" / "application.ini").is_file()
    assert (profile.resources_path / "qbrt" / "browser" / "chrome.manifest").is_file()
    assert (profile.resources_path / "qbrt" / "defaults" / "preferences" / "devtools.js").is_file()
    assert (profile.executable_path / "launcher.sh").is_file()


@then(parsers.parse('the recorded runtime build is "{build_id}" for "{target_alias}"'))
def check_recorded_build(
    runtime_setup: RuntimeSetupHarness, build_id: str, target_alias: str
) -> None:
    descriptor = read_descriptor(runtime_setup.descriptor_path)
    assert (descriptor.build_id, descriptor.target_alias) == (build_id, target_alias)


@then("the temporary workspace was removed")
def check_workspace_removed(runtime_setup: RuntimeSetupHarness) -> None:
    assert list(runtime_setup.temp_dir.iterdir()) == []


@then(parsers.parse("the setup failed with an external tool error carrying exit code {exit_code:d}"))
def check_external_tool_error(runtime_setup: RuntimeSetupHarness, exit_code: int) -> None:
    assert runtime_setup.result is not None
    error = runtime_setup.result.error
    assert isinstance(error, ExternalToolError)
    assert error.exit_code == exit_code
    assert runtime_setup.runner is not None
    assert runtime_setup.runner.actions == ["attach"]


@then("no runtime build was recorded")
def check_nothing_recorded(runtime_setup: RuntimeSetupHarness) -> None:
    assert not runtime_setup.descriptor_path.exists()
