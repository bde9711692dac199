"""
Shared test fixtures and configuration.

Provisioning runs are exercised against a simulated PATH and mock
shell/http adapters; only the filesystem adapter is real, rooted in
``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from provisioner.adapters.base import ExecutionContext
from provisioner.adapters.mock import MockAdapter
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.core.config.loader import ProvisionSettings
from provisioner.core.engine.pipeline import ProvisionContext
from provisioner.core.models.action import Receipt


class FakePath:
    """Simulated PATH lookup: executable name → absolute path."""

    def __init__(self, *names: str, bin_dir: str = "/usr/bin"):
        self.bin_dir = bin_dir
        self.entries: dict[str, str] = {n: f"{bin_dir}/{n}" for n in names}

    def add(self, name: str, path: str | None = None) -> None:
        self.entries[name] = path or f"{self.bin_dir}/{name}"

    def __call__(self, name: str) -> str | None:
        return self.entries.get(name)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A throwaway $HOME."""
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Working directory the installer script is downloaded into."""
    w = tmp_path / "work"
    w.mkdir()
    return w


@pytest.fixture
def sysbin(tmp_path: Path) -> Path:
    """Stand-in for /usr/local/bin."""
    d = tmp_path / "sysbin"
    d.mkdir()
    return d


@pytest.fixture
def settings(sysbin: Path) -> ProvisionSettings:
    return ProvisionSettings(composer_install_dirs=[str(sysbin), "~/.local/bin"])


@pytest.fixture
def path() -> FakePath:
    """A Debian-like host: apt, sudo and (post-install) php on PATH."""
    return FakePath("apt-get", "sudo", "php")


@pytest.fixture
def shell(path: FakePath) -> MockAdapter:
    """Mock shell scripted for a healthy apt host."""
    mock = MockAdapter(adapter_name="shell")
    mock.set_output("runtime:version", "PHP 8.4.1 (cli) (built: Nov 21 2024)\nCopyright (c) The PHP Group")
    mock.set_output("runtime:int-size", "64")
    mock.set_output("composer:version", "Composer version 2.7.1 2024-02-09 15:26:28")

    def install_composer(ctx: ExecutionContext) -> Receipt:
        install_dir = next(
            a.split("=", 1)[1] for a in ctx.action.params["argv"] if a.startswith("--install-dir=")
        )
        binary = Path(install_dir) / "composer"
        binary.write_text("#!/usr/bin/env php\n")
        path.add("composer", str(binary))
        return Receipt.success(adapter="shell", action_id=ctx.action.id, output="Composer installed")

    def composer_init(ctx: ExecutionContext) -> Receipt:
        (Path(ctx.working_dir) / "composer.json").write_text('{"name": "liveproto/demo"}')
        return Receipt.success(adapter="shell", action_id=ctx.action.id)

    def composer_require(ctx: ExecutionContext) -> Receipt:
        (Path(ctx.working_dir) / "vendor" / "taknone" / "liveproto").mkdir(parents=True)
        return Receipt.success(adapter="shell", action_id=ctx.action.id)

    mock.set_response("composer:install:*", install_composer)
    mock.set_response("project:init", composer_init)
    mock.set_response("project:require", composer_require)
    return mock


@pytest.fixture
def http() -> MockAdapter:
    """Mock downloader that writes a fake installer script."""
    mock = MockAdapter(adapter_name="http")

    def download(ctx: ExecutionContext) -> Receipt:
        Path(ctx.action.params["dest"]).write_text("<?php // installer\n")
        return Receipt.success(adapter="http", action_id=ctx.action.id)

    mock.set_response("composer:download", download)
    return mock


@pytest.fixture
def registry(shell: MockAdapter, http: MockAdapter) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(shell)
    reg.register(http)
    reg.register(FilesystemAdapter())
    return reg


@pytest.fixture
def make_context(settings, registry, home, workdir, path):
    """Factory for a ProvisionContext with per-test overrides."""

    def _make(**overrides) -> ProvisionContext:
        values = dict(
            settings=settings,
            registry=registry,
            home=home,
            cwd=workdir,
            which=path,
            euid=1000,
            repository_check=lambda repo: False,
        )
        values.update(overrides)
        return ProvisionContext(**values)

    return _make


@pytest.fixture
def make_path():
    """The FakePath class, for tests that need a different PATH."""
    return FakePath
