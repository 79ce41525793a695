"""
Tests for resource adapters, the mock adapter, and the registry.

Real adapters run against a FakeRunner; no package manager is touched.
"""

import json
import os
from pathlib import Path

from devsetup.adapters.command import CommandResult
from devsetup.adapters.editors.vscode import (
    VSCodeExtensionAdapter,
    find_vscode_cli,
    parse_extension_list,
)
from devsetup.adapters.languages.node import NpmAdapter, parse_npm_ls, split_package_spec
from devsetup.adapters.languages.python import PipAdapter, requirement_name
from devsetup.adapters.mock import MockResourceAdapter
from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.adapters.shell.powershell import PowerShellModuleAdapter
from devsetup.adapters.system.apt import AptAdapter, parse_dpkg_status
from devsetup.core.models import FailureKind, ResourceKind, RunConfig

# ── CommandResult ────────────────────────────────────────────────────


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(command=["x"], returncode=0).ok
        assert not CommandResult(command=["x"], returncode=1).ok
        assert not CommandResult(command=["x"], missing=True).ok

    def test_describe(self):
        assert CommandResult(command=["npm"], missing=True).describe() == "Command not found: npm"
        assert CommandResult(timed_out=True).describe() == "Command timed out"
        failed = CommandResult(returncode=100, stderr="E: first\nE: last line")
        assert failed.describe() == "Command exited with code 100: E: last line"

    def test_output_combines_streams(self):
        r = CommandResult(stdout="out", stderr="err")
        assert r.output == "out\nerr"


# ── APT ──────────────────────────────────────────────────────────────


class TestAptAdapter:
    def test_parse_installed(self):
        state = parse_dpkg_status("install ok installed\t8.0.100-1")
        assert state.present
        assert state.version == "8.0.100-1"

    def test_parse_not_fully_installed(self):
        assert not parse_dpkg_status("deinstall ok config-files\t1.0").present
        assert not parse_dpkg_status("install ok half-installed\t1.0").present
        assert not parse_dpkg_status("").present

    def test_probe_unknown_package(self, fake_runner, config):
        fake_runner.on("dpkg-query", returncode=1, stderr="no packages found matching x")
        state = AptAdapter(fake_runner).probe("x", config)
        assert not state.present
        assert not state.tool_missing

    def test_probe_missing_tool(self, fake_runner, config):
        fake_runner.on("dpkg-query", missing=True)
        state = AptAdapter(fake_runner).probe("x", config)
        assert not state.present
        assert state.tool_missing

    def test_mutations_use_sudo_and_noninteractive(self, fake_runner, config):
        adapter = AptAdapter(fake_runner)
        adapter.install("dotnet-sdk-8.0", config)
        adapter.update("dotnet-sdk-8.0", config)
        adapter.uninstall("dotnet-sdk-8.0", config)
        assert fake_runner.sudo_calls == [
            ["apt-get", "install", "-y", "dotnet-sdk-8.0"],
            ["apt-get", "install", "-y", "--only-upgrade", "dotnet-sdk-8.0"],
            ["apt-get", "remove", "-y", "dotnet-sdk-8.0"],
        ]
        assert all(env == {"DEBIAN_FRONTEND": "noninteractive"} for env in fake_runner.envs)

    def test_prepare_only_in_install_mode(self, fake_runner, config):
        adapter = AptAdapter(fake_runner)
        assert adapter.prepare(RunConfig(uninstall=True)) is None
        adapter.prepare(config)
        assert fake_runner.calls == [["apt-get", "update"]]

    def test_classify(self, fake_runner):
        adapter = AptAdapter(fake_runner)
        not_found = CommandResult(returncode=100, stderr="E: Unable to locate package nope")
        locked = CommandResult(returncode=100, stderr="E: Could not get lock /var/lib/dpkg/lock")
        assert adapter.classify_failure(not_found) == FailureKind.NOT_FOUND
        assert adapter.classify_failure(locked) == FailureKind.TRANSIENT
        assert adapter.classify_failure(CommandResult(missing=True)) == FailureKind.TOOL_MISSING

    def test_availability_needs_both_tools(self, fake_runner):
        fake_runner.tools = {"apt-get"}
        assert not AptAdapter(fake_runner).is_available()
        fake_runner.tools = {"apt-get", "dpkg-query"}
        assert AptAdapter(fake_runner).is_available()


# ── npm ──────────────────────────────────────────────────────────────


class TestNpmAdapter:
    def test_split_package_spec(self):
        assert split_package_spec("azure-functions-core-tools@4") == (
            "azure-functions-core-tools",
            "4",
        )
        assert split_package_spec("@angular/cli@17") == ("@angular/cli", "17")
        assert split_package_spec("@angular/cli") == ("@angular/cli", None)
        assert split_package_spec("typescript") == ("typescript", None)

    def test_parse_npm_ls(self):
        output = json.dumps({"dependencies": {"typescript": {"version": "5.4.2"}}})
        assert parse_npm_ls(output, "typescript").version == "5.4.2"
        assert not parse_npm_ls("{}", "typescript").present
        assert not parse_npm_ls("not json", "typescript").present

    def test_probe_uses_bare_name_and_reads_failed_exit(self, fake_runner, config):
        # npm ls exits 1 when the tree has problems but still prints JSON
        fake_runner.on(
            "ls",
            returncode=1,
            stdout=json.dumps(
                {"dependencies": {"azure-functions-core-tools": {"version": "4.0.5"}}}
            ),
        )
        state = NpmAdapter(fake_runner).probe("azure-functions-core-tools@4", config)
        assert state.present
        assert state.version == "4.0.5"
        assert fake_runner.calls[0][-1] == "azure-functions-core-tools"

    def test_update_pinned_and_unpinned(self, fake_runner, config):
        adapter = NpmAdapter(fake_runner)
        adapter.update("azure-functions-core-tools@4", config)
        adapter.update("typescript", config)
        assert fake_runner.calls == [
            ["npm", "install", "-g", "azure-functions-core-tools@4"],
            ["npm", "install", "-g", "typescript@latest"],
        ]

    def test_uninstall_force(self, fake_runner):
        NpmAdapter(fake_runner).uninstall("typescript@5", RunConfig(force=True))
        assert fake_runner.calls == [["npm", "uninstall", "-g", "typescript", "--force"]]

    def test_classify_not_found(self, fake_runner):
        result = CommandResult(returncode=1, stderr="npm ERR! code E404")
        assert NpmAdapter(fake_runner).classify_failure(result) == FailureKind.NOT_FOUND


# ── pip ──────────────────────────────────────────────────────────────


class TestPipAdapter:
    def test_requirement_name(self):
        assert requirement_name("dbt-core") == "dbt-core"
        assert requirement_name("dbt-core>=1.7") == "dbt-core"
        assert requirement_name("uvicorn[standard]==0.29") == "uvicorn"

    def test_probe(self, fake_runner, config):
        fake_runner.on("show", stdout="Name: pandas\nVersion: 2.2.1\nSummary: ...")
        adapter = PipAdapter(fake_runner, python="/usr/bin/python3")
        state = adapter.probe("pandas", config)
        assert state.version == "2.2.1"
        assert fake_runner.calls[0][:4] == ["/usr/bin/python3", "-m", "pip", "show"]

    def test_probe_absent(self, fake_runner, config):
        fake_runner.on("show", returncode=1, stderr="WARNING: Package(s) not found: nope")
        assert not PipAdapter(fake_runner).probe("nope", config).present

    def test_mutations(self, fake_runner, config):
        adapter = PipAdapter(fake_runner, python="py")
        adapter.install("dbt-core>=1.7", config)
        adapter.update("pandas", config)
        adapter.uninstall("dbt-core>=1.7", config)
        assert fake_runner.command_lines == [
            "py -m pip install dbt-core>=1.7 --disable-pip-version-check",
            "py -m pip install --upgrade pandas --disable-pip-version-check",
            "py -m pip uninstall -y dbt-core --disable-pip-version-check",
        ]


# ── PowerShell ───────────────────────────────────────────────────────


class TestPowerShellModuleAdapter:
    def test_probe_reads_newest_version(self, fake_runner, config):
        fake_runner.on("Get-Module", stdout="11.3.1\n")
        state = PowerShellModuleAdapter(fake_runner).probe("Az", config)
        assert state.present
        assert state.version == "11.3.1"
        assert fake_runner.calls[0][:4] == ["pwsh", "-NoProfile", "-NonInteractive", "-Command"]
        assert "'Az'" in fake_runner.calls[0][-1]

    def test_probe_absent(self, fake_runner, config):
        fake_runner.on("Get-Module", returncode=1)
        assert not PowerShellModuleAdapter(fake_runner).probe("Az", config).present

    def test_quotes_module_names(self, fake_runner, config):
        PowerShellModuleAdapter(fake_runner).install("O'Brien", config)
        assert "'O''Brien'" in fake_runner.calls[0][-1]

    def test_uninstall_removes_all_versions(self, fake_runner, config):
        PowerShellModuleAdapter(fake_runner).uninstall("Az", config)
        script = fake_runner.calls[0][-1]
        assert "Remove-Module -Name 'Az' -Force" in script
        assert "Uninstall-Module -Name 'Az' -AllVersions -ErrorAction Stop" in script

    def test_uninstall_force_skips_dependency_check(self, fake_runner):
        PowerShellModuleAdapter(fake_runner).uninstall("Az", RunConfig(force=True))
        script = fake_runner.calls[0][-1]
        assert "Uninstall-Module -Name 'Az' -AllVersions -Force -ErrorAction Stop" in script

    def test_prepare_trusts_gallery(self, fake_runner, config):
        adapter = PowerShellModuleAdapter(fake_runner)
        adapter.prepare(config)
        assert "PSGallery" in fake_runner.calls[0][-1]
        assert adapter.prepare(RunConfig(uninstall=True)) is None

    def test_classify_dependency_conflict(self, fake_runner):
        result = CommandResult(returncode=1, stderr="Module 'Az.Accounts' is a dependency of 'Az'")
        adapter = PowerShellModuleAdapter(fake_runner)
        assert adapter.classify_failure(result) == FailureKind.DEPENDENCY_CONFLICT


# ── VS Code ──────────────────────────────────────────────────────────


def _make_server(base: Path, commit: str, mtime: float) -> Path:
    binary = base / commit / "bin" / "code-server"
    binary.parent.mkdir(parents=True)
    binary.write_text("#!/bin/sh\n")
    binary.chmod(0o755)
    os.utime(base / commit, (mtime, mtime))
    return binary


class TestVSCodeExtensionAdapter:
    def test_parse_extension_list(self):
        output = "MS-Python.Python@2024.2.1\nms-toolsai.jupyter@2024.1.0\n\nnoise\n"
        assert parse_extension_list(output) == {
            "ms-python.python": "2024.2.1",
            "ms-toolsai.jupyter": "2024.1.0",
        }

    def test_find_newest_server(self, tmp_path: Path, fake_runner):
        _make_server(tmp_path, "old-commit", 1_000)
        newest = _make_server(tmp_path, "new-commit", 2_000)
        assert find_vscode_cli(fake_runner, [tmp_path]) == str(newest)

    def test_find_falls_back_to_path(self, tmp_path: Path, fake_runner):
        fake_runner.tools = {"code"}
        assert find_vscode_cli(fake_runner, [tmp_path / "missing"]) == "/usr/bin/code"

    def test_find_nothing(self, tmp_path: Path, fake_runner):
        assert find_vscode_cli(fake_runner, [tmp_path]) is None

    def test_tool_names_resolved_cli(self, tmp_path: Path, fake_runner):
        _make_server(tmp_path, "commit", 1_000)
        assert VSCodeExtensionAdapter(fake_runner, server_dirs=[tmp_path]).tool == "code-server"
        assert VSCodeExtensionAdapter(fake_runner, cli_path="/usr/bin/code").tool == "code"
        assert VSCodeExtensionAdapter(fake_runner, server_dirs=[tmp_path / "none"]).tool == "code"

    def test_probe_many_lists_once(self, fake_runner, config):
        fake_runner.on("--list-extensions", stdout="ms-python.python@2024.2.1\n")
        adapter = VSCodeExtensionAdapter(fake_runner, cli_path="/usr/bin/code")
        states = adapter.probe_many(["ms-python.python", "ms-toolsai.jupyter"], config)
        assert states["ms-python.python"].version == "2024.2.1"
        assert not states["ms-toolsai.jupyter"].present
        assert len(fake_runner.calls) == 1

    def test_code_server_accepts_license(self, fake_runner, config):
        adapter = VSCodeExtensionAdapter(fake_runner, cli_path="/srv/bin/code-server")
        adapter.install("ms-python.python", config)
        assert fake_runner.calls[0] == [
            "/srv/bin/code-server",
            "--accept-server-license-terms",
            "--install-extension",
            "ms-python.python",
        ]

    def test_update_and_forced_uninstall(self, fake_runner):
        adapter = VSCodeExtensionAdapter(fake_runner, cli_path="code")
        adapter.update("ms-python.python", RunConfig())
        adapter.uninstall("ms-python.python", RunConfig(force=True))
        assert fake_runner.command_lines == [
            "code --install-extension ms-python.python --force",
            "code --uninstall-extension ms-python.python --force",
        ]

    def test_missing_cli(self, tmp_path: Path, fake_runner, config):
        adapter = VSCodeExtensionAdapter(fake_runner, server_dirs=[tmp_path])
        assert not adapter.is_available()
        state = adapter.probe("ms-python.python", config)
        assert state.tool_missing
        result = adapter.install("ms-python.python", config)
        assert result.missing
        assert adapter.classify_failure(result) == FailureKind.TOOL_MISSING
        assert fake_runner.calls == []

    def test_classify_dependency_conflict(self, fake_runner):
        result = CommandResult(
            returncode=1,
            stderr="Cannot uninstall 'Python' extension. 'Pylance' extension depends on this.",
        )
        adapter = VSCodeExtensionAdapter(fake_runner, cli_path="code")
        assert adapter.classify_failure(result) == FailureKind.DEPENDENCY_CONFLICT


# ── Mock Adapter ─────────────────────────────────────────────────────


class TestMockResourceAdapter:
    def test_install_uses_latest(self, config):
        mock = MockResourceAdapter(latest={"pkgA": "1.1"})
        mock.install("pkgA", config)
        assert mock.probe("pkgA", config).version == "1.1"
        assert mock.call_log == [("install", "pkgA")]

    def test_uninstall(self, config):
        mock = MockResourceAdapter(installed={"pkgA": "1.0"})
        mock.uninstall("pkgA", config)
        assert not mock.probe("pkgA", config).present

    def test_scripted_failure_then_success(self, config):
        mock = MockResourceAdapter()
        mock.set_failure("pkgA", times=1)
        assert not mock.install("pkgA", config).ok
        assert mock.install("pkgA", config).ok

    def test_conflict_yields_to_force(self):
        mock = MockResourceAdapter(installed={"ext": "1.0"})
        mock.set_failure("ext", "uninstall", kind=FailureKind.DEPENDENCY_CONFLICT)
        failed = mock.uninstall("ext", RunConfig())
        assert mock.classify_failure(failed) == FailureKind.DEPENDENCY_CONFLICT
        assert mock.uninstall("ext", RunConfig(force=True)).ok

    def test_unavailable(self, config):
        mock = MockResourceAdapter(available=False)
        assert mock.probe("x", config).tool_missing
        assert mock.classify_failure(mock.install("x", config)) == FailureKind.TOOL_MISSING

    def test_reset(self, config):
        mock = MockResourceAdapter()
        mock.set_failure("x")
        mock.install("x", config)
        mock.reset()
        assert mock.call_log == []
        assert mock.install("x", config).ok


# ── Registry ─────────────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_register_and_get(self):
        registry = AdapterRegistry()
        mock = MockResourceAdapter(kind=ResourceKind.NPM)
        registry.register(mock)
        assert registry.get(ResourceKind.NPM) is mock
        assert registry.get(ResourceKind.APT) is None
        assert registry.list_kinds() == [ResourceKind.NPM]

    def test_unregister(self):
        registry = AdapterRegistry()
        registry.register(MockResourceAdapter(kind=ResourceKind.NPM))
        registry.unregister(ResourceKind.NPM)
        assert registry.list_kinds() == []

    def test_mock_mode_creates_one_mock_per_kind(self):
        registry = AdapterRegistry(mock_mode=True)
        first = registry.get(ResourceKind.PIP)
        assert isinstance(first, MockResourceAdapter)
        assert first.kind == ResourceKind.PIP
        assert registry.get(ResourceKind.PIP) is first

    def test_default_registry_covers_every_kind(self, fake_runner):
        registry = default_registry(fake_runner)
        assert registry.list_kinds() == list(ResourceKind)
        assert isinstance(registry.get(ResourceKind.APT), AptAdapter)

    def test_adapter_status(self, fake_runner):
        fake_runner.tools = {"npm"}
        registry = AdapterRegistry()
        registry.register(NpmAdapter(fake_runner))
        registry.register(AptAdapter(fake_runner))
        status = registry.adapter_status()
        assert status["npm"]["available"] is True
        assert status["apt"]["available"] is False
        assert list(status) == ["apt", "npm"]
