"""
Tests for core models — Receipt, HostProfile and ProvisionReport.
"""

from provisioner.core.models.action import Receipt
from provisioner.core.models.host import HostProfile, PackageManagerKind, PrivilegeMode
from provisioner.core.models.report import ProvisionReport


class TestReceipt:
    def test_success(self):
        r = Receipt.success(adapter="shell", action_id="runtime:version", output="PHP 8.4.1")
        assert r.ok and not r.failed
        assert r.status == "ok"

    def test_failure(self):
        r = Receipt.failure(adapter="shell", action_id="runtime:install", error="E: Unable to locate package", return_code=100)
        assert r.failed
        assert r.return_code == 100

    def test_skip(self):
        r = Receipt.skip(adapter="filesystem", action_id="composer:cleanup", reason="Nothing to remove")
        assert r.status == "skipped"
        assert not r.ok and not r.failed

    def test_first_line(self):
        r = Receipt.success(adapter="shell", action_id="x", output="\n  PHP 8.4.1 (cli)\nCopyright\n")
        assert r.first_line == "PHP 8.4.1 (cli)"
        assert Receipt.success(adapter="shell", action_id="x").first_line == ""


class TestHostProfile:
    def test_can_elevate(self):
        assert HostProfile(privilege=PrivilegeMode.ROOT).can_elevate
        assert HostProfile(privilege=PrivilegeMode.SUDO).can_elevate
        assert not HostProfile(privilege=PrivilegeMode.NONE).can_elevate

    def test_serializes_enum_values(self):
        host = HostProfile(privilege=PrivilegeMode.SUDO, manager=PackageManagerKind.APT, manager_path="/usr/bin/apt-get")
        assert host.model_dump(mode="json") == {
            "privilege": "sudo",
            "manager": "apt",
            "manager_path": "/usr/bin/apt-get",
        }


class TestProvisionReport:
    def test_advise_links_receipt(self):
        report = ProvisionReport()
        receipt = Receipt.failure(adapter="shell", action_id="project:require", error="boom")
        adv = report.advise("package", "require failed", receipt)
        assert adv.action_id == "project:require"
        assert report.advisories_for("package") == [adv]
        assert report.advisories_for("composer") == []

    def test_to_dict_excludes_receipts_by_default(self):
        report = ProvisionReport(receipts=[Receipt.success(adapter="shell", action_id="a")])
        assert "receipts" not in report.to_dict()
        assert len(report.to_dict(include_receipts=True)["receipts"]) == 1
