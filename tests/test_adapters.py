"""
Tests for the adapter layer — registry dispatch, mock, shell, filesystem
and http adapters.
"""

import io
import sys
import urllib.error

import pytest

from provisioner.adapters.base import ExecutionContext
from provisioner.adapters.http.download import HttpDownloadAdapter
from provisioner.adapters.mock import MockAdapter
from provisioner.adapters.registry import AdapterRegistry, build_default_registry
from provisioner.adapters.shell.command import ShellCommandAdapter
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.core.models.action import Action, Receipt


def _ctx(adapter: str, action_id: str = "test:1", cwd: str = ".", **params) -> ExecutionContext:
    return ExecutionContext(action=Action(id=action_id, adapter=adapter, params=params), cwd=cwd)


# ── Registry ─────────────────────────────────────────────────────────


class TestRegistry:
    def test_dispatches_by_adapter_name(self):
        registry = AdapterRegistry()
        shell = MockAdapter("shell")
        http = MockAdapter("http")
        registry.register(shell)
        registry.register(http)
        registry.execute_action(Action(id="composer:download", adapter="http"))
        assert http.called_ids == ["composer:download"]
        assert shell.call_count == 0

    def test_register_replaces_same_name(self):
        registry = AdapterRegistry()
        first, second = MockAdapter("shell"), MockAdapter("shell")
        registry.register(first)
        registry.register(second)
        registry.execute_action(Action(id="x", adapter="shell"))
        assert first.call_count == 0
        assert second.call_count == 1

    def test_unknown_adapter_fails(self):
        receipt = AdapterRegistry().execute_action(Action(id="x", adapter="nope"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_validation_failure(self):
        registry = AdapterRegistry()
        registry.register(FilesystemAdapter())
        receipt = registry.execute_action(Action(id="x", adapter="filesystem", params={"operation": "chmod"}))
        assert receipt.failed
        assert receipt.error.startswith("Validation failed")

    def test_raising_adapter_becomes_failure(self):
        registry = AdapterRegistry()
        mock = MockAdapter("shell")

        def boom(ctx):
            raise RuntimeError("kaboom")

        mock.set_response("x", boom)
        registry.register(mock)
        receipt = registry.execute_action(Action(id="x", adapter="shell"))
        assert receipt.failed
        assert "kaboom" in receipt.error

    def test_default_timeout_passed_to_context(self):
        registry = AdapterRegistry(timeout=12)
        mock = MockAdapter("shell")
        registry.register(mock)
        registry.execute_action(Action(id="x", adapter="shell"))
        assert mock.call_log[0].timeout == 12

    def test_default_registry(self, tmp_path):
        registry = build_default_registry()
        for adapter in ("shell", "http", "filesystem"):
            receipt = registry.execute_action(Action(id="x", adapter=adapter))
            assert "No adapter registered" not in (receipt.error or "")

        receipt = registry.execute_action(
            Action(id="x", adapter="filesystem", params={"operation": "exists", "path": str(tmp_path)})
        )
        assert receipt.ok
        assert receipt.metadata["is_dir"] is True


# ── Mock ─────────────────────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success_records_argv(self):
        mock = MockAdapter("shell")
        receipt = mock.execute(_ctx("shell", argv=["php", "-v"]))
        assert receipt.ok
        assert receipt.command == ["php", "-v"]
        assert mock.called_ids == ["test:1"]

    def test_wildcard_longest_prefix_wins(self):
        mock = MockAdapter("shell")
        mock.set_failure("runtime:*")
        mock.set_output("runtime:probe:*", "found")
        receipt = mock.execute(_ctx("shell", action_id="runtime:probe:php8.4"))
        assert receipt.ok
        assert receipt.output == "found"
        assert receipt.action_id == "runtime:probe:php8.4"
        assert mock.execute(_ctx("shell", action_id="runtime:install")).failed

    def test_reset(self):
        mock = MockAdapter("shell")
        mock.set_failure("x")
        mock.execute(_ctx("shell", action_id="x"))
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(_ctx("shell", action_id="x")).ok


# ── Shell ────────────────────────────────────────────────────────────


class TestShellCommandAdapter:
    def test_success(self, tmp_path):
        adapter = ShellCommandAdapter()
        receipt = adapter.execute(
            _ctx("shell", cwd=str(tmp_path), argv=[sys.executable, "-c", "print('hello')"])
        )
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.return_code == 0

    def test_nonzero_exit(self, tmp_path):
        adapter = ShellCommandAdapter()
        receipt = adapter.execute(
            _ctx(
                "shell",
                cwd=str(tmp_path),
                argv=[sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"],
            )
        )
        assert receipt.failed
        assert receipt.return_code == 3
        assert receipt.error == "bad"

    def test_missing_command(self, tmp_path):
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", cwd=str(tmp_path), argv=["definitely-not-a-real-binary-xyz"])
        )
        assert receipt.failed
        assert "Command not found" in receipt.error

    def test_extra_env(self, tmp_path):
        receipt = ShellCommandAdapter().execute(
            _ctx(
                "shell",
                cwd=str(tmp_path),
                argv=[sys.executable, "-c", "import os; print(os.environ['COMPOSER_ALLOW_SUPERUSER'])"],
                env={"COMPOSER_ALLOW_SUPERUSER": 1},
            )
        )
        assert receipt.output == "1"

    def test_validate_requires_argv(self):
        ok, msg = ShellCommandAdapter().validate(_ctx("shell"))
        assert not ok
        assert "argv" in msg

    def test_validate_missing_cwd(self, tmp_path):
        ok, msg = ShellCommandAdapter().validate(
            _ctx("shell", argv=["true"], cwd=str(tmp_path / "gone"))
        )
        assert not ok
        assert "does not exist" in msg


# ── Filesystem ───────────────────────────────────────────────────────


class TestFilesystemAdapter:
    def test_mkdir_reports_created(self, tmp_path):
        adapter = FilesystemAdapter()
        target = tmp_path / "a" / "b"
        first = adapter.execute(_ctx("filesystem", operation="mkdir", path=str(target)))
        second = adapter.execute(_ctx("filesystem", operation="mkdir", path=str(target)))
        assert target.is_dir()
        assert first.metadata["created"] is True
        assert second.metadata["created"] is False

    def test_exists(self, tmp_path):
        (tmp_path / "composer.json").write_text("{}")
        adapter = FilesystemAdapter()
        yes = adapter.execute(_ctx("filesystem", cwd=str(tmp_path), operation="exists", path="composer.json"))
        no = adapter.execute(_ctx("filesystem", cwd=str(tmp_path), operation="exists", path="missing.json"))
        assert yes.ok and yes.metadata["exists"] is True
        assert no.ok and no.metadata["exists"] is False

    def test_remove(self, tmp_path):
        script = tmp_path / "composer-setup.php"
        script.write_text("<?php")
        adapter = FilesystemAdapter()
        receipt = adapter.execute(_ctx("filesystem", operation="remove", path=str(script)))
        assert receipt.ok
        assert not script.exists()

    def test_remove_missing_is_skip(self, tmp_path):
        receipt = FilesystemAdapter().execute(
            _ctx("filesystem", operation="remove", path=str(tmp_path / "nothing"))
        )
        assert receipt.status == "skipped"

    def test_writable_missing_dir_uses_ancestor(self, tmp_path):
        receipt = FilesystemAdapter().execute(
            _ctx("filesystem", operation="writable", path=str(tmp_path / "x" / "bin"))
        )
        assert receipt.metadata["writable"] is True
        assert receipt.metadata["exists"] is False

    def test_unknown_operation(self):
        ok, msg = FilesystemAdapter().validate(_ctx("filesystem", operation="chmod", path="x"))
        assert not ok
        assert "Unknown operation" in msg


# ── HTTP ─────────────────────────────────────────────────────────────


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class TestHttpDownloadAdapter:
    def test_rejects_plain_http(self):
        ok, msg = HttpDownloadAdapter().validate(
            _ctx("http", url="http://getcomposer.org/installer", dest="x")
        )
        assert not ok
        assert "non-HTTPS" in msg

    def test_requires_dest(self):
        ok, msg = HttpDownloadAdapter().validate(_ctx("http", url="https://getcomposer.org/installer"))
        assert not ok
        assert "dest" in msg

    def test_download_writes_file(self, tmp_path, monkeypatch):
        seen = {}

        def fake_urlopen(req, timeout=None):
            seen["ua"] = req.get_header("User-agent")
            return _FakeResponse(b"<?php echo 'installer';")

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        receipt = HttpDownloadAdapter().execute(
            _ctx("http", cwd=str(tmp_path), url="https://getcomposer.org/installer", dest="composer-setup.php")
        )
        assert receipt.ok
        assert (tmp_path / "composer-setup.php").read_bytes() == b"<?php echo 'installer';"
        assert seen["ua"].startswith("liveproto-provisioner/")

    def test_network_error_leaves_no_file(self, tmp_path, monkeypatch):
        def fake_urlopen(req, timeout=None):
            raise urllib.error.URLError("unreachable")

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        receipt = HttpDownloadAdapter().execute(
            _ctx("http", cwd=str(tmp_path), url="https://getcomposer.org/installer", dest="composer-setup.php")
        )
        assert receipt.failed
        assert "Download failed" in receipt.error
        assert not (tmp_path / "composer-setup.php").exists()
