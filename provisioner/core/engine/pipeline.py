"""
Provisioning pipeline — the eight steps, in order, once.

    privilege → package manager → runtime install → runtime verify
      → extension audit → composer install → package acquisition → summary

Two failure classes:
    Fatal     FatalProvisionError is raised and the run stops.
    Advisory  recorded on the report, logged at WARNING, run continues.

Every external effect is an Action dispatched through the adapter
registry, so a run can be replayed against mocks. Privilege mode and
the detected manager are carried on the report's HostProfile and passed
explicitly to each step.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.config.loader import ProvisionSettings
from provisioner.core.models.action import Action, Receipt
from provisioner.core.models.host import HostProfile, PackageManagerKind, PrivilegeMode
from provisioner.core.models.report import ProvisionReport
from provisioner.core.services.provision import composer as composer_svc
from provisioner.core.services.provision import detection as detection_svc
from provisioner.core.services.provision import runtime as runtime_svc
from provisioner.core.services.provision.detection import Which
from provisioner.core.services.provision.managers import (
    ManagerProfile,
    RepositorySetup,
    get_profile,
    repository_present,
)
from provisioner.core.services.provision.resolver import resolve_first

logger = logging.getLogger(__name__)

STEP_PRIVILEGE = "privilege"
STEP_PACKAGE_MANAGER = "package-manager"
STEP_RUNTIME_INSTALL = "runtime-install"
STEP_RUNTIME_VERIFY = "runtime-verify"
STEP_EXTENSIONS = "extensions"
STEP_COMPOSER = "composer"
STEP_PACKAGE = "package"
STEP_SUMMARY = "summary"

UNSUPPORTED_MANAGER_MESSAGE = (
    "Unsupported/undetected package manager. Run this on Debian/Ubuntu, "
    "RHEL/Fedora, Arch, Alpine, or macOS."
)


class FatalProvisionError(Exception):
    """A step failed in a way the rest of the run cannot recover from."""

    def __init__(self, step: str, message: str, report: ProvisionReport | None = None):
        super().__init__(message)
        self.step = step
        self.message = message
        self.report = report


@dataclass
class ProvisionContext:
    """Inputs of one run. Nothing is read from ambient state after this."""

    settings: ProvisionSettings
    registry: AdapterRegistry
    home: Path
    cwd: Path
    which: Which = shutil.which
    euid: int | None = None
    repository_check: Callable[[RepositorySetup], bool] = field(default=repository_present)


class Provisioner:
    """Runs the provisioning steps against one ProvisionContext."""

    def __init__(self, ctx: ProvisionContext):
        self.ctx = ctx
        self.settings = ctx.settings
        self.report = ProvisionReport(
            target_package=ctx.settings.target_package,
            required_extensions=list(ctx.settings.required_extensions),
        )

    # ── Entry point ─────────────────────────────────────────────

    def run(self) -> ProvisionReport:
        """Execute all steps. Raises FatalProvisionError on a fatal step."""
        try:
            host = self.detect_host()
            profile = self.select_profile(host)
            self.install_runtime(host, profile)
            php = self.verify_runtime()
            self.audit_extensions(php)
            composer = self.install_composer(host, php)
            self.acquire_package(host, composer)
            self.summarize()
        except FatalProvisionError as e:
            e.report = self.report
            logger.debug("Fatal at step %s: %s", e.step, e.message)
            raise
        return self.report

    # ── Step 1 + 2: host detection ──────────────────────────────

    def detect_host(self) -> HostProfile:
        host = detection_svc.detect_host(self.ctx.which, self.ctx.euid)
        self.report.host = host
        if not host.can_elevate:
            self._advise(
                STEP_PRIVILEGE,
                "Not root and sudo not found — some install steps may fail.",
            )

        logger.info(
            "Package manager detected: %s",
            host.manager.value if host.manager else "none",
        )
        return host

    def select_profile(self, host: HostProfile) -> ManagerProfile:
        if host.manager is None:
            raise FatalProvisionError(STEP_PACKAGE_MANAGER, UNSUPPORTED_MANAGER_MESSAGE)

        profile = get_profile(host.manager)
        if profile is None:
            # choco: elevation only exists as an elevated shell session
            raise FatalProvisionError(
                STEP_PACKAGE_MANAGER,
                f"Package manager '{host.manager.value}' requires an elevated "
                "shell and is not supported. " + UNSUPPORTED_MANAGER_MESSAGE,
            )
        return profile

    # ── Step 3: runtime installation ────────────────────────────

    def install_runtime(self, host: HostProfile, profile: ManagerProfile) -> str:
        """Install PHP, its subpackages and extension packages.

        Returns:
            The selected runtime package name.
        """
        sudo = self._sudo(host, profile)
        step = STEP_RUNTIME_INSTALL

        if profile.update_cmd:
            logger.info("%s: updating package index...", profile.binary)
            receipt = self._run("index:update", list(profile.update_cmd), sudo=sudo)
            if not receipt.ok:
                self._advise(step, "Package index update failed.", receipt)

        if profile.prerequisites:
            receipt = self._run(
                "prereqs:install",
                profile.install_argv(list(profile.prerequisites)),
                sudo=sudo,
            )
            if not receipt.ok:
                self._advise(step, "Prerequisite packages failed to install.", receipt)

        if profile.repository is not None:
            self._add_repository(profile, profile.repository, sudo)

        runtime = resolve_first(
            profile.runtime_candidates,
            lambda pkg: self._package_exists(profile, pkg),
            profile.runtime_fallback,
        )
        self.report.runtime_package = runtime

        logger.info("Installing %s and common extensions...", runtime)
        receipt = self._run(
            "runtime:install",
            profile.install_argv(profile.runtime_packages(runtime)),
            sudo=sudo,
        )
        if not receipt.ok:
            self._advise(step, f"Runtime packages for {runtime} failed to install.", receipt)

        for pkg in profile.extension_package_list(runtime, self.settings.required_extensions):
            receipt = self._run(f"runtime:ext:{pkg}", profile.install_argv([pkg]), sudo=sudo)
            if not receipt.ok:
                self._advise(step, f"Extension package {pkg} failed to install.", receipt)

        if profile.needs_link(runtime) and profile.link_cmd:
            receipt = self._run("runtime:link", [*profile.link_cmd, runtime], sudo=sudo)
            if not receipt.ok:
                self._advise(step, f"Could not link {runtime} onto PATH.", receipt)

        return runtime

    def _add_repository(self, profile: ManagerProfile, repo: RepositorySetup, sudo: bool) -> None:
        if self.ctx.repository_check(repo):
            logger.debug("%s already configured", repo.label)
            return

        logger.info("Adding %s (if supported)...", repo.label)
        for i, cmd in enumerate(repo.commands):
            receipt = self._run(f"repo:add:{i}", list(cmd), sudo=sudo)
            if not receipt.ok:
                self._advise(
                    STEP_RUNTIME_INSTALL,
                    f"Could not add {repo.label}; continuing with distro packages.",
                    receipt,
                )
                return

        if repo.refresh_index and profile.update_cmd:
            receipt = self._run("index:refresh", list(profile.update_cmd), sudo=sudo)
            if not receipt.ok:
                self._advise(STEP_RUNTIME_INSTALL, "Package index refresh failed.", receipt)

    def _package_exists(self, profile: ManagerProfile, package: str) -> bool:
        argv = profile.probe_argv(package)
        if argv is None:
            return False
        receipt = self._run(f"runtime:probe:{package}", argv)
        return receipt.ok and bool(receipt.output.strip())

    # ── Step 4: runtime verification ────────────────────────────

    def verify_runtime(self) -> str:
        """Resolve PHP on PATH and check version and integer width.

        Returns:
            Absolute path of the PHP executable.
        """
        php = None
        for name in runtime_svc.runtime_binary_candidates(self.report.runtime_package):
            php = self.ctx.which(name)
            if php:
                break
        if not php:
            raise FatalProvisionError(
                STEP_RUNTIME_VERIFY, "php not found after package install. Aborting.",
            )
        self.report.runtime_binary = php

        receipt = self._run("runtime:version", runtime_svc.version_argv(php))
        if receipt.ok and receipt.first_line:
            self.report.runtime_version = receipt.first_line
            logger.info("PHP: %s", receipt.first_line)
        else:
            self._advise(STEP_RUNTIME_VERIFY, "Could not query the PHP version.", receipt)

        receipt = self._run("runtime:int-size", runtime_svc.int_size_argv(php))
        bits = runtime_svc.parse_int_size(receipt.output) if receipt.ok else None
        self.report.int_size_bits = bits
        if bits != self.settings.expected_int_size:
            self._advise(
                STEP_RUNTIME_VERIFY,
                f"Detected PHP integer size: {bits if bits is not None else 'unknown'} bits. "
                f"LiveProto expects {self.settings.expected_int_size}-bit PHP. "
                "Continue at your own risk.",
                receipt,
            )
        return php

    # ── Step 5: extension audit ─────────────────────────────────

    def audit_extensions(self, php: str) -> list[str]:
        missing: list[str] = []
        for ext in self.settings.required_extensions:
            try:
                argv = runtime_svc.extension_check_argv(php, ext)
            except ValueError:
                missing.append(ext)
                continue
            if not self._run(f"ext:check:{ext}", argv).ok:
                missing.append(ext)

        self.report.missing_extensions = missing
        if missing:
            self._advise(
                STEP_EXTENSIONS,
                f"Missing extensions: {' '.join(missing)}. Try installing distro "
                "packages (eg. php-gmp, php-xml) and re-run.",
            )
        else:
            logger.info("All common extensions present.")
        return missing

    # ── Step 6: composer installation ───────────────────────────

    def install_composer(self, host: HostProfile, php: str) -> str | None:
        """Make sure Composer is available.

        Returns:
            Path to the composer executable, or None when it could not be
            installed. Absence is only fatal in the next step.
        """
        existing = self.ctx.which(composer_svc.COMPOSER_BINARY)
        if existing:
            self.report.receipts.append(Receipt.skip(
                adapter="shell",
                action_id="composer:install",
                reason=f"Composer already present at {existing}",
            ))
            self._record_composer(existing)
            return existing

        logger.info("Installing Composer...")
        installer = self.ctx.cwd / self.settings.composer_installer_file
        installed_dir: Path | None = None

        try:
            receipt = self._execute(
                Action(
                    id="composer:download",
                    adapter="http",
                    params={
                        "url": self.settings.composer_installer_url,
                        "dest": str(installer),
                    },
                ),
                timeout=self.settings.download_timeout,
            )
            if receipt.ok:
                installed_dir = self._run_installer(host, php, installer)
            else:
                self._advise(STEP_COMPOSER, "Failed to download composer installer.", receipt)
        finally:
            self._filesystem("composer:cleanup", "remove", installer)

        path = self.ctx.which(composer_svc.COMPOSER_BINARY)
        if not path and installed_dir is not None:
            candidate = installed_dir / composer_svc.COMPOSER_BINARY
            if self._filesystem("composer:locate", "exists", candidate).metadata.get("exists"):
                path = str(candidate)
                self._advise(
                    STEP_COMPOSER,
                    f"Composer installed at {candidate} but {installed_dir} is not in PATH.",
                )

        if not path:
            dirs = " or ".join(str(d) for d in self.settings.install_dirs(self.ctx.home))
            self._advise(
                STEP_COMPOSER,
                f"Composer not in PATH. Add {dirs} to PATH or move composer.phar.",
            )
            return None

        self._record_composer(path)
        return path

    def _run_installer(self, host: HostProfile, php: str, installer: Path) -> Path | None:
        """Run the installer against the first usable install dir."""
        for directory in self.settings.install_dirs(self.ctx.home):
            probe = self._filesystem(f"composer:dir:{directory}", "writable", directory)
            target = composer_svc.install_target(
                directory, bool(probe.metadata.get("writable")), host,
            )
            if target is None:
                logger.debug("Skipping non-writable install dir %s", directory)
                continue

            if not probe.metadata.get("exists") and not target.use_sudo:
                self._filesystem(f"composer:mkdir:{directory}", "mkdir", directory)

            receipt = self._run(
                f"composer:install:{directory}",
                composer_svc.installer_argv(php, str(installer), target),
                sudo=target.use_sudo,
            )
            if receipt.ok:
                logger.info("Composer installed into %s", directory)
                return directory
            self._advise(STEP_COMPOSER, f"Composer installer failed for {directory}.", receipt)
        return None

    def _record_composer(self, path: str) -> None:
        self.report.composer_path = path
        receipt = self._run(
            "composer:version", composer_svc.version_argv(path), env=self._composer_env(),
        )
        if not receipt.ok:
            self._advise(STEP_COMPOSER, "Could not query the Composer version.", receipt)
            return

        self.report.composer_version = receipt.first_line
        logger.info("Composer present: %s", receipt.first_line)
        version = composer_svc.parse_version(receipt.output)
        if version is not None and version[0] < self.settings.composer_min_major:
            self._advise(
                STEP_COMPOSER,
                f"Composer {'.'.join(map(str, version))} is older than "
                f"{self.settings.composer_min_major}.x; run 'composer self-update'.",
                receipt,
            )

    # ── Step 7: target package acquisition ──────────────────────

    def acquire_package(self, host: HostProfile, composer: str | None) -> None:
        if not composer:
            raise FatalProvisionError(STEP_PACKAGE, "Composer missing. Aborting composer steps.")

        scratch = self.settings.scratch_dir(self.ctx.home)
        self.report.scratch_dir = str(scratch)
        env = self._composer_env(host)

        receipt = self._filesystem("project:mkdir", "mkdir", scratch)
        if not receipt.ok:
            self._advise(STEP_PACKAGE, f"Cannot create scratch project {scratch}.", receipt)
            return

        manifest = scratch / composer_svc.MANIFEST_FILE
        if self._filesystem("project:manifest", "exists", manifest).metadata.get("exists"):
            logger.debug("Reusing existing manifest %s", manifest)
        else:
            logger.info("Initializing composer project...")
            receipt = self._run(
                "project:init",
                composer_svc.init_argv(
                    composer,
                    self.settings.project_name,
                    self.settings.project_description,
                ),
                cwd=scratch,
                env=env,
            )
            if receipt.ok:
                self.report.manifest_initialized = True
            else:
                self._advise(STEP_PACKAGE, "composer init failed.", receipt)

        target = self.settings.target_package
        logger.info("Running: composer require %s", target)
        receipt = self._run(
            "project:require",
            composer_svc.require_argv(composer, target),
            cwd=scratch,
            env=env,
        )
        if not receipt.ok:
            self._advise(
                STEP_PACKAGE,
                f"composer require failed. Inspect output and retry inside {scratch}.",
                receipt,
            )

    # ── Step 8: summary ─────────────────────────────────────────

    def summarize(self) -> ProvisionReport:
        report = self.report
        logger.info(
            "Summary: PHP: %s; Composer: %s",
            report.runtime_version or "unknown",
            report.composer_version or "not found",
        )

        if report.scratch_dir:
            vendor = composer_svc.vendor_path(Path(report.scratch_dir), report.target_package)
            found = self._filesystem("summary:vendor", "exists", vendor).metadata.get("exists")
            report.target_installed = bool(found)
            if report.target_installed:
                logger.info("%s installed at: %s", report.target_package, vendor)
            else:
                self._advise(
                    STEP_SUMMARY,
                    f"{report.target_package} not found in vendor (composer may have failed).",
                )

        logger.info("Done.")
        return report

    # ── Helpers ─────────────────────────────────────────────────

    @staticmethod
    def _sudo(host: HostProfile, profile: ManagerProfile) -> bool:
        return profile.needs_sudo and host.privilege == PrivilegeMode.SUDO

    def _composer_env(self, host: HostProfile | None = None) -> dict[str, str]:
        host = host or self.report.host
        env = {"COMPOSER_NO_INTERACTION": "1"}
        if host is not None and host.privilege == PrivilegeMode.ROOT:
            env["COMPOSER_ALLOW_SUPERUSER"] = "1"
        return env

    def _run(
        self,
        action_id: str,
        argv: list[str],
        *,
        sudo: bool = False,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        params: dict = {"argv": ["sudo", *argv] if sudo else argv}
        if cwd is not None:
            params["cwd"] = str(cwd)
        if env:
            params["env"] = env
        return self._execute(Action(id=action_id, adapter="shell", params=params))

    def _filesystem(self, action_id: str, operation: str, path: Path) -> Receipt:
        return self._execute(Action(
            id=action_id,
            adapter="filesystem",
            params={"operation": operation, "path": str(path)},
        ))

    def _execute(self, action: Action, timeout: float | None = None) -> Receipt:
        receipt = self.ctx.registry.execute_action(
            action,
            cwd=str(self.ctx.cwd),
            timeout=timeout if timeout is not None else self.settings.command_timeout,
        )
        self.report.receipts.append(receipt)
        if receipt.failed:
            logger.debug("%s failed: %s", action.id, receipt.error)
        return receipt

    def _advise(self, step: str, message: str, receipt: Receipt | None = None) -> None:
        self.report.advise(step, message, receipt)
        if receipt is not None and receipt.error:
            logger.warning("%s (%s)", message, receipt.error.splitlines()[-1])
        else:
            logger.warning(message)


def is_fatal_manager(kind: PackageManagerKind | None) -> bool:
    """Whether detection of ``kind`` ends the run before any install."""
    return kind is None or get_profile(kind) is None
