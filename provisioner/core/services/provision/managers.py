"""
Package manager profiles — how each supported manager installs PHP.

Pure data plus small builders. One profile per manager family; dnf and
yum share a profile with the binary substituted. Package names use a
``{runtime}`` placeholder filled with the resolved runtime package
(``php8.4``, ``php83``, ``php``).

Extensions absent from a profile's ``extension_packages`` are compiled
into that distro's runtime and get no package of their own.
"""

from __future__ import annotations

import glob
import logging
from dataclasses import dataclass, field

from provisioner.core.models.host import PackageManagerKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositorySetup:
    """Optional third-party repository for newer PHP builds."""

    label: str
    commands: tuple[tuple[str, ...], ...]
    # Skip when any of these globs contains ``marker``
    source_globs: tuple[str, ...] = ()
    marker: str = ""
    refresh_index: bool = True


@dataclass(frozen=True)
class ManagerProfile:
    """Everything the pipeline needs to drive one package manager."""

    kind: PackageManagerKind
    binary: str
    needs_sudo: bool
    install_cmd: tuple[str, ...]
    update_cmd: tuple[str, ...] | None = None
    probe_cmd: tuple[str, ...] | None = None
    prerequisites: tuple[str, ...] = ()
    repository: RepositorySetup | None = None
    runtime_candidates: tuple[str, ...] = ()
    runtime_fallback: str = "php"
    runtime_subpackages: tuple[str, ...] = ()
    extension_packages: dict[str, str] = field(default_factory=dict)
    link_cmd: tuple[str, ...] | None = None

    def install_argv(self, packages: list[str]) -> list[str]:
        return [*self.install_cmd, *packages]

    def probe_argv(self, package: str) -> list[str] | None:
        if self.probe_cmd is None:
            return None
        return [*self.probe_cmd, package]

    def runtime_packages(self, runtime: str) -> list[str]:
        """The runtime itself plus its CLI/dev subpackages."""
        packages = [runtime]
        for template in self.runtime_subpackages:
            name = template.format(runtime=runtime)
            if name not in packages:
                packages.append(name)
        return packages

    def extension_package_list(self, runtime: str, extensions: list[str]) -> list[str]:
        """Distinct extension packages for ``extensions``, in request order."""
        packages: list[str] = []
        for ext in extensions:
            template = self.extension_packages.get(ext)
            if template is None:
                continue
            name = template.format(runtime=runtime)
            if name not in packages:
                packages.append(name)
        return packages

    def needs_link(self, runtime: str) -> bool:
        return self.link_cmd is not None and "@" in runtime


def _per_ext(runtime_prefix: str, *exts: str) -> dict[str, str]:
    return {ext: f"{runtime_prefix}-{ext}" for ext in exts}


_APT = ManagerProfile(
    kind=PackageManagerKind.APT,
    binary="apt-get",
    needs_sudo=True,
    update_cmd=("apt-get", "update", "-y"),
    install_cmd=("apt-get", "install", "-y"),
    probe_cmd=("apt-cache", "show"),
    prerequisites=(
        "software-properties-common", "ca-certificates",
        "curl", "wget", "git", "unzip",
    ),
    repository=RepositorySetup(
        label="ondrej/php PPA",
        commands=(("add-apt-repository", "-y", "ppa:ondrej/php"),),
        source_globs=("/etc/apt/sources.list", "/etc/apt/sources.list.d/*"),
        marker="ondrej/php",
    ),
    runtime_candidates=("php8.5", "php8.4", "php8.3", "php8.2"),
    runtime_fallback="php",
    runtime_subpackages=("{runtime}-cli", "{runtime}-dev"),
    extension_packages={
        **_per_ext("{runtime}", "xml", "gmp", "zip", "mbstring", "curl", "bcmath", "intl"),
        "dom": "{runtime}-xml",
    },
)


def _rpm_profile(kind: PackageManagerKind, binary: str) -> ManagerProfile:
    return ManagerProfile(
        kind=kind,
        binary=binary,
        needs_sudo=True,
        update_cmd=(binary, "makecache", "-y"),
        install_cmd=(binary, "install", "-y"),
        probe_cmd=(binary, "info", "-q"),
        prerequisites=("curl", "wget", "git", "unzip"),
        repository=RepositorySetup(
            label="EPEL",
            commands=((binary, "install", "-y", "epel-release"),),
        ),
        runtime_fallback="php",
        runtime_subpackages=("php-cli", "php-devel"),
        extension_packages={
            **_per_ext("php", "xml", "gmp", "mbstring", "bcmath", "intl"),
            "zip": "php-pecl-zip",
            "dom": "php-xml",
        },
    )


_PACMAN = ManagerProfile(
    kind=PackageManagerKind.PACMAN,
    binary="pacman",
    needs_sudo=True,
    update_cmd=("pacman", "-Sy", "--noconfirm"),
    install_cmd=("pacman", "-S", "--noconfirm", "--needed"),
    probe_cmd=("pacman", "-Si"),
    prerequisites=("curl", "wget", "git", "unzip"),
    runtime_fallback="php",
    runtime_subpackages=("php-pear",),
    # Arch ships gmp/intl/bcmath/zip inside the php package itself
    extension_packages={},
)


_APK = ManagerProfile(
    kind=PackageManagerKind.APK,
    binary="apk",
    needs_sudo=True,
    update_cmd=("apk", "update"),
    install_cmd=("apk", "add", "--no-cache"),
    probe_cmd=("apk", "search", "--exact"),
    prerequisites=("curl", "git", "unzip"),
    runtime_candidates=("php84", "php83", "php82", "php81"),
    runtime_fallback="php8",
    runtime_subpackages=("{runtime}-cli", "{runtime}-dev", "{runtime}-phar"),
    extension_packages=_per_ext(
        "{runtime}",
        "openssl", "gmp", "xml", "zip", "mbstring", "curl",
        "bcmath", "intl", "dom", "fileinfo",
    ),
)


_BREW = ManagerProfile(
    kind=PackageManagerKind.BREW,
    binary="brew",
    needs_sudo=False,
    update_cmd=("brew", "update"),
    install_cmd=("brew", "install"),
    probe_cmd=("brew", "info"),
    runtime_candidates=("php@8.4", "php@8.3"),
    runtime_fallback="php",
    # Homebrew's php formula bundles the extensions
    extension_packages={},
    link_cmd=("brew", "link", "--force", "--overwrite"),
)


PROFILES: dict[PackageManagerKind, ManagerProfile] = {
    PackageManagerKind.APT: _APT,
    PackageManagerKind.DNF: _rpm_profile(PackageManagerKind.DNF, "dnf"),
    PackageManagerKind.YUM: _rpm_profile(PackageManagerKind.YUM, "yum"),
    PackageManagerKind.PACMAN: _PACMAN,
    PackageManagerKind.APK: _APK,
    PackageManagerKind.BREW: _BREW,
}


def get_profile(kind: PackageManagerKind) -> ManagerProfile | None:
    """Profile for ``kind``, or None for managers we cannot drive (choco)."""
    return PROFILES.get(kind)


def repository_present(repo: RepositorySetup) -> bool:
    """Whether ``repo.marker`` already appears in one of its source files."""
    if not repo.marker or not repo.source_globs:
        return False
    for pattern in repo.source_globs:
        for path in glob.glob(pattern):
            try:
                with open(path, encoding="utf-8", errors="replace") as f:
                    if repo.marker in f.read():
                        return True
            except OSError:
                logger.debug("Cannot read source list %s", path)
    return False
