"""
Tests for package manager detection and the adapter registry.
"""

import pytest

from sysinit.adapters.mock import MockRunner
from sysinit.adapters.package_manager import ManagerAdapter
from sysinit.adapters.registry import available_managers, bootstrap_manager, create_adapter, detect
from sysinit.core.data.managers import MANAGER_SPECS, preference_order
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.observability.run_log import RunLog

K = PackageManagerKind


class TestPreferenceOrder:
    def test_linux(self):
        assert preference_order("Linux") == [K.APT, K.DNF, K.YUM, K.PACMAN, K.ZYPPER, K.APK, K.BREW]

    def test_darwin(self):
        assert preference_order("Darwin") == [K.BREW]

    def test_windows(self):
        assert preference_order("Windows") == [K.WINGET, K.CHOCO, K.SCOOP]

    def test_unknown_platform(self):
        assert preference_order("Plan9") == []


class TestDetect:
    @pytest.mark.parametrize(
        "kind, system",
        [
            (K.APT, "Linux"),
            (K.DNF, "Linux"),
            (K.YUM, "Linux"),
            (K.PACMAN, "Linux"),
            (K.ZYPPER, "Linux"),
            (K.APK, "Linux"),
            (K.BREW, "Linux"),
            (K.BREW, "Darwin"),
            (K.WINGET, "Windows"),
            (K.CHOCO, "Windows"),
            (K.SCOOP, "Windows"),
        ],
    )
    def test_single_manager(self, kind, system):
        runner = MockRunner(executables=[MANAGER_SPECS[kind].executable])
        assert detect(runner, system) == kind

    def test_nothing_found(self):
        assert detect(MockRunner(), "Linux") == K.NONE

    def test_preference_wins(self):
        # dnf hosts often also ship a yum shim
        runner = MockRunner(executables=["yum", "dnf", "brew"])
        assert detect(runner, "Linux") == K.DNF

    def test_other_platform_managers_ignored(self):
        runner = MockRunner(executables=["apt-get"])
        assert detect(runner, "Windows") == K.NONE

    def test_detect_runs_no_commands(self):
        runner = MockRunner(executables=["apt-get"])
        detect(runner, "Linux")
        assert runner.call_count == 0


class TestRegistry:
    def test_create_adapter(self):
        adapter = create_adapter(K.PACMAN, MockRunner())
        assert isinstance(adapter, ManagerAdapter)
        assert adapter.kind == K.PACMAN
        assert adapter.name == "pacman"

    def test_create_adapter_none(self):
        with pytest.raises(ValueError, match="No package manager adapter"):
            create_adapter(K.NONE)

    def test_available_managers(self):
        runner = MockRunner(executables=["choco"])
        assert available_managers(runner, "Windows") == {
            "winget": False,
            "choco": True,
            "scoop": False,
        }


class TestBootstrapManager:
    def test_installs_homebrew_on_macos(self):
        runner = MockRunner(executables=["bash", "curl"])
        runner.on_success("Homebrew/install", executables=["brew"])
        assert bootstrap_manager(runner, "Darwin", non_interactive=True) == K.BREW
        assert runner.call_log[0][:2] == ["/bin/bash", "-c"]
        assert runner.env_log[0] == {"NONINTERACTIVE": "1"}

    def test_interactive_keeps_installer_prompts(self):
        runner = MockRunner(executables=["bash", "curl"])
        bootstrap_manager(runner, "Darwin")
        assert runner.env_log[0] == {}

    def test_installer_fails(self):
        runner = MockRunner(executables=["bash", "curl"])
        runner.set_failure("Homebrew/install", error="Need sudo access on macOS")
        log = RunLog()
        assert bootstrap_manager(runner, "Darwin", log=log) == K.NONE
        assert any("Need sudo access" in m for m in log.messages("WARN"))

    def test_installer_leaves_no_manager(self):
        runner = MockRunner(executables=["bash", "curl"])
        assert bootstrap_manager(runner, "Darwin") == K.NONE

    @pytest.mark.parametrize("system", ["Linux", "Windows"])
    def test_nothing_to_bootstrap(self, system):
        runner = MockRunner(executables=["bash", "curl"])
        assert bootstrap_manager(runner, system) == K.NONE
        assert runner.call_count == 0
