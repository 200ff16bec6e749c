"""Service coordinating the runtime check, download, install and grafting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable

from services.runtime.disk_image import CommandRunner, run_command
from services.runtime.fetcher import fetch_archive
from services.runtime.grafting import BundleGrafter
from services.runtime.installers import install_runtime
from services.runtime.launcher import DEFAULT_LAUNCHER_DIR, install_launcher
from services.runtime.models import (
    ArchiveFile,
    InstallTree,
    PipelineResult,
    PlatformProfile,
    ProvisioningError,
    UpdateCheck,
)
from services.runtime.network import HttpClient
from services.runtime.progress import ProgressReporter
from services.runtime.versioning import check_for_update, write_descriptor
from services.runtime.workspace import TemporaryWorkspace

_LOGGER = logging.getLogger(__name__)

__all__ = ["PipelineContext", "RuntimeSetupService"]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class PipelineContext:
    """Artifacts handed from one pipeline stage to the next."""

    profile: PlatformProfile
    workspace: TemporaryWorkspace
    update: UpdateCheck | None = None
    archive: ArchiveFile | None = None
    tree: InstallTree | None = None


class RuntimeSetupService:
    """Run the provisioning pipeline once and always clean up afterwards."""

    def __init__(
        self,
        profile: PlatformProfile,
        client: HttpClient,
        grafter: BundleGrafter,
        *,
        reporter: ProgressReporter | None = None,
        runner: CommandRunner = run_command,
        launcher_dir: Path = DEFAULT_LAUNCHER_DIR,
        workspace_factory: Callable[[], TemporaryWorkspace] = TemporaryWorkspace.create,
    ) -> None:
        self._profile = profile
        self._client = client
        self._grafter = grafter
        self._reporter = reporter or ProgressReporter()
        self._runner = runner
        self._launcher_dir = launcher_dir
        self._workspace_factory = workspace_factory

    @property
    def profile(self) -> PlatformProfile:
        return self._profile

    def run(self) -> PipelineResult:
        """Bring the install tree up to date with the published runtime."""

        workspace = self._workspace_factory()
        context = PipelineContext(profile=self._profile, workspace=workspace)
        try:
            context = self._check(context)
            assert context.update is not None
            if context.update.up_to_date:
                return PipelineResult(
                    EXIT_SUCCESS, up_to_date=True, descriptor=context.update.descriptor
                )
            context = self._download(context)
            context = self._install(context)
            context = self._graft(context)
            self._install_launcher(context)
            self._record(context)
        except ProvisioningError as exc:
            _LOGGER.error("Runtime setup failed: %s", exc)
            return PipelineResult(EXIT_FAILURE, error=exc)
        except Exception as exc:
            _LOGGER.exception("Unexpected error while setting up the runtime")
            return PipelineResult(EXIT_FAILURE, error=ProvisioningError(str(exc)))
        finally:
            workspace.cleanup()

        _LOGGER.info("Runtime setup completed at %s", self._profile.install_root)
        return PipelineResult(EXIT_SUCCESS, descriptor=context.update.descriptor)

    def install_companion_app(self) -> PipelineResult:
        """Copy the companion app into the already installed runtime."""

        tree = InstallTree.for_profile(self._profile)
        try:
            with self._reporter.step("Installing XUL app"):
                self._grafter.install_companion_app(tree)
        except ProvisioningError as exc:
            _LOGGER.error("Companion app installation failed: %s", exc)
            return PipelineResult(EXIT_FAILURE, error=exc)
        except Exception as exc:
            _LOGGER.exception("Unexpected error while installing the companion app")
            return PipelineResult(EXIT_FAILURE, error=ProvisioningError(str(exc)))
        return PipelineResult(EXIT_SUCCESS)

    def _check(self, context: PipelineContext) -> PipelineContext:
        with self._reporter.step("Checking runtime") as status:
            update = check_for_update(context.profile, self._client)
            published = update.descriptor
            if update.up_to_date:
                status.detail = (
                    f"Already using latest version (build ID: {published.build_id}; "
                    f"platform: {published.target_alias})."
                )
            elif not published.is_empty:
                status.detail = (
                    f"New version available for download (build ID: {published.build_id}; "
                    f"platform: {published.target_alias})."
                )
        return replace(context, update=update)

    def _download(self, context: PipelineContext) -> PipelineContext:
        with self._reporter.step("Downloading runtime"):
            archive = fetch_archive(
                context.profile.download_binary_url,
                context.profile,
                context.workspace,
                self._client,
            )
        return replace(context, archive=archive)

    def _install(self, context: PipelineContext) -> PipelineContext:
        assert context.archive is not None
        with self._reporter.step("Installing runtime"):
            tree = install_runtime(
                context.archive, context.profile, context.workspace, runner=self._runner
            )
        return replace(context, tree=tree)

    def _graft(self, context: PipelineContext) -> PipelineContext:
        assert context.tree is not None
        with self._reporter.step("Installing XUL app"):
            self._grafter.graft(context.tree)
        return context

    def _install_launcher(self, context: PipelineContext) -> None:
        assert context.tree is not None
        with self._reporter.step("Installing launcher"):
            install_launcher(context.tree, context.profile, self._launcher_dir)

    def _record(self, context: PipelineContext) -> None:
        # Only a fully installed tree may be recorded as current.
        if context.update is not None and not context.update.descriptor.is_empty:
            write_descriptor(context.profile.descriptor_path, context.update.descriptor)
