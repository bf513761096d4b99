"""
Tests for the step models and the default step catalog.
"""

from sysinit.adapters.registry import create_adapter
from sysinit.core.context import Elevation
from sysinit.core.data.steps import STEP_NAMES, build_steps, default_steps
from sysinit.core.models.config import SourcesConfig, StepOverride, SysinitConfig
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.models.result import ErrorKind, ExitCode
from sysinit.core.models.step import InstallStep, StepResult, StepStatus, VersionPin

K = PackageManagerKind


def _by_name(steps):
    return {s.name: s for s in steps}


# ── Catalog ──────────────────────────────────────────────────────────


class TestDefaultSteps:
    def test_order(self):
        assert [s.name for s in default_steps()] == list(STEP_NAMES)

    def test_exit_codes(self):
        codes = {s.name: s.exit_code for s in default_steps()}
        assert codes == {
            "python": ExitCode.PYTHON,
            "pip": ExitCode.PIP,
            "git": ExitCode.GIT,
            "1password": ExitCode.PASSWORD_MANAGER,
        }

    def test_all_required_by_default(self):
        assert all(s.required for s in default_steps())

    def test_python_candidates(self):
        python = _by_name(default_steps())["python"]
        assert python.candidates_for(K.APT)[0] == "python3.11 python3.11-venv"
        assert python.candidates_for(K.BREW) == ["python@3.11"]
        assert python.candidates_for(K.WINGET) == ["Python.Python.3.11"]

    def test_python_version_rewrites_names(self):
        python = _by_name(default_steps("3.12"))["python"]
        assert python.executables == ["python3.12"]
        assert python.candidates_for(K.APT)[0] == "python3.12 python3.12-venv"
        assert python.candidates_for(K.CHOCO) == ["python312"]
        assert python.version_pin.version == "3.12"

    def test_pip_probe_uses_pinned_interpreter(self):
        pip = _by_name(default_steps())["pip"]
        assert pip.probe == ["python3.11", "-m", "pip", "--version"]
        assert not pip.applies(K.WINGET)
        assert pip.applies(K.APT)

    def test_git_everywhere(self):
        git = _by_name(default_steps())["git"]
        for kind in K:
            if kind == K.NONE:
                continue
            assert git.candidates_for(kind), kind

    def test_password_manager(self):
        op = _by_name(default_steps())["1password"]
        assert op.candidates_for(K.PACMAN) == []
        assert op.candidates_for(K.APK) == []
        assert op.candidates_for(K.BREW) == ["--cask 1password"]
        assert K.APT in op.repositories
        assert op.repositories[K.APT].marker == "/etc/apt/sources.list.d/1password.list"
        assert op.builds[K.PACMAN].name == "aur/1password"

    def test_pip_from_distribution_package_on_apt(self):
        pip = _by_name(default_steps())["pip"]
        assert pip.candidates_for(K.APT) == ["python3-pip"]

    def test_presence_without_path_entries(self):
        steps = _by_name(default_steps())
        op = steps["1password"]
        assert op.paths[K.BREW] == ["/Applications/1Password.app"]
        assert op.checks[K.BREW] == [["brew", "list", "--cask", "1password"]]
        assert op.checks[K.WINGET] == [["winget", "list", "--exact", "--id", "AgileBits.1Password"]]
        assert ["py", "-3.11", "--version"] in steps["python"].checks[K.CHOCO]
        assert steps["git"].checks[K.WINGET] == [["winget", "list", "--exact", "--id", "Git.Git"]]

    def test_deadsnakes_fallback_for_python(self):
        python = _by_name(default_steps())["python"]
        deadsnakes = python.fallback_repositories[K.APT]
        assert deadsnakes.commands == [["add-apt-repository", "-y", "ppa:deadsnakes/ppa"]]
        assert deadsnakes.requires == {"add-apt-repository": "software-properties-common"}


class TestBuildSteps:
    def test_defaults(self):
        assert build_steps() == default_steps()

    def test_skip_and_required(self):
        config = SysinitConfig(steps={
            "git": StepOverride(skip=True),
            "1password": StepOverride(required=False),
        })
        steps = _by_name(build_steps(config))
        assert steps["git"].skip
        assert not steps["1password"].required
        assert steps["python"].required

    def test_candidates_prepended(self):
        config = SysinitConfig(steps={
            "1password": StepOverride(candidates={K.PACMAN: ["1password-cli"], K.APT: ["1password"]}),
        })
        op = _by_name(build_steps(config))["1password"]
        assert op.candidates_for(K.PACMAN) == ["1password-cli"]
        assert op.candidates_for(K.APT) == ["1password"]

    def test_python_version(self):
        steps = _by_name(build_steps(SysinitConfig(python_version="3.12")))
        assert steps["python"].executables == ["python3.12"]

    def test_third_party_sources_can_be_disabled(self):
        config = SysinitConfig(sources=SourcesConfig(deadsnakes=False, aur=False))
        steps = _by_name(build_steps(config))
        assert steps["python"].fallback_repositories == {}
        assert steps["1password"].builds == {}


# ── Step semantics ───────────────────────────────────────────────────


class TestVersionPin:
    def test_matches(self):
        pin = VersionPin(version="3.11")
        assert pin.matches("3.11")
        assert pin.matches("3.11.9")
        assert not pin.matches("3.1")
        assert not pin.matches("3.110.1")
        assert not pin.matches("3.12.0")
        assert not pin.matches("")


class TestIsInstalled:
    def test_executable_on_path(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3.11")
        python = _by_name(default_steps())["python"]
        assert python.is_installed(make_ctx(), adapter)

    def test_generic_executable_with_matching_version(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3")
        runner.set_version("python3", "Python 3.11.2")
        python = _by_name(default_steps())["python"]
        assert python.is_installed(make_ctx(), adapter)

    def test_generic_executable_with_other_version(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3")
        runner.set_version("python3", "Python 3.12.1")
        ctx = make_ctx()
        python = _by_name(default_steps())["python"]
        assert not python.is_installed(ctx, adapter)
        assert any("expected 3.11" in m for m in ctx.log.messages("INFO"))

    def test_probe_is_authoritative(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3.11")
        pip = _by_name(default_steps())["pip"]
        assert pip.is_installed(make_ctx(), adapter)
        runner.set_failure("-m pip", error="No module named pip")
        assert not pip.is_installed(make_ctx(), adapter)

    def test_app_bundle_counts_as_present(self, make_runner, make_ctx):
        runner = make_runner("brew", provides={}, files=["/Applications/1Password.app"])
        runner.set_failure("list --cask", error="Error: Cask '1password' is not installed.")
        adapter = create_adapter(K.BREW, runner)
        op = _by_name(default_steps())["1password"]
        assert op.is_installed(make_ctx(kind=K.BREW), adapter)

    def test_manager_query_counts_as_present(self, make_runner, make_ctx):
        runner = make_runner("winget", provides={})
        adapter = create_adapter(K.WINGET, runner)
        ctx = make_ctx(kind=K.WINGET, elevation=Elevation())
        op = _by_name(default_steps())["1password"]
        assert op.is_installed(ctx, adapter)
        assert runner.call_log[-1] == ["winget", "list", "--exact", "--id", "AgileBits.1Password"]

        runner.set_failure("winget list", error="No installed package found matching input criteria.")
        assert not op.is_installed(ctx, adapter)

    def test_checks_belong_to_their_manager(self, apt, make_ctx):
        runner, adapter = apt
        op = _by_name(default_steps())["1password"]
        assert not op.is_installed(make_ctx(), adapter)
        assert runner.calls_matching("list") == []


class TestStepInstall:
    def test_repository_then_candidates(self, apt, make_ctx):
        runner, adapter = apt
        op = _by_name(default_steps())["1password"]
        result = op.install(make_ctx(), adapter)
        assert result.ok
        assert result.value == "1password"
        first_sh = next(i for i, c in enumerate(runner.call_log) if c[0] == "sh")
        install = runner.call_log.index(["apt-get", "install", "-y", "1password"])
        assert first_sh < install

    def test_repository_failure_stops_install(self, apt, make_ctx):
        runner, adapter = apt
        runner.set_failure("1password-archive-keyring", error="curl: (6) Could not resolve host")
        op = _by_name(default_steps())["1password"]
        result = op.install(make_ctx(), adapter)
        assert not result.ok
        assert result.error.kind == ErrorKind.COMMAND_FAILED
        assert runner.calls_matching("install -y 1password") == []

    def test_bootstrap_fallback(self, make_runner, make_ctx):
        runner = make_runner("dnf", "python3.11")
        adapter = create_adapter(K.DNF, runner)
        runner.set_failure("python3.11-pip")
        pip = _by_name(default_steps())["pip"]
        result = pip.install(make_ctx(kind=K.DNF), adapter)
        assert result.ok
        assert result.value == "python3.11 -m ensurepip --upgrade"
        assert result.attempted == ["python3.11-pip", "python3.11 -m ensurepip --upgrade"]

    def test_no_candidates(self, make_runner, make_ctx):
        runner = make_runner("pacman")
        adapter = create_adapter(K.PACMAN, runner)
        config = SysinitConfig(sources=SourcesConfig(aur=False))
        op = _by_name(build_steps(config))["1password"]
        result = op.install(make_ctx(kind=K.PACMAN), adapter)
        assert result.error.kind == ErrorKind.NO_CANDIDATE_AVAILABLE
        assert runner.call_count == 0


class TestPipOnDebian:
    """python3-pip serves the system python3; ensurepip and get-pip are blocked there."""

    def test_distribution_package_first(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3.11")
        runner.set_failure("-m pip --version", error="No module named pip", times=1)
        runner.set_failure("ensurepip", error="ensurepip is disabled in Debian/Ubuntu for the system python")
        runner.set_failure("get-pip", error="error: externally-managed-environment")
        ctx = make_ctx()
        pip = _by_name(default_steps())["pip"]

        assert not pip.is_installed(ctx, adapter)
        result = pip.install(ctx, adapter)
        assert result.ok
        assert result.value == "python3-pip"
        assert runner.calls_matching("ensurepip") == []

    def test_package_for_another_python_falls_back(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3.11")
        runner.set_failure("-m pip --version", error="No module named pip", times=1)
        ctx = make_ctx(elevation=Elevation(sudo="/usr/bin/sudo"))
        pip = _by_name(default_steps())["pip"]

        result = pip.install(ctx, adapter)
        assert result.ok
        assert result.value == "python3.11 -m ensurepip --upgrade"
        assert result.attempted == ["python3-pip", "python3.11 -m ensurepip --upgrade"]
        assert any("still not available" in m for m in ctx.log.messages("WARN"))
        # ensurepip writes into the system interpreter
        assert ["sudo", "-n", "python3.11", "-m", "ensurepip", "--upgrade"] in runner.call_log

    def test_everything_blocked(self, apt, make_ctx):
        runner, adapter = apt
        runner.add_executable("python3.11")
        runner.set_failure("install -y python3-pip", error="E: Unable to locate package python3-pip")
        runner.set_failure("ensurepip", error="ensurepip is disabled in Debian/Ubuntu for the system python")
        runner.set_failure("get-pip", error="error: externally-managed-environment")
        pip = _by_name(default_steps())["pip"]

        result = pip.install(make_ctx(), adapter)
        assert result.error.kind == ErrorKind.NO_CANDIDATE_AVAILABLE
        assert result.attempted[0] == "python3-pip"
        assert result.error.last_error == "error: externally-managed-environment"


class TestDeadsnakes:
    def _python(self):
        return _by_name(default_steps())["python"]

    def test_ppa_when_release_lacks_python(self, apt, make_ctx):
        runner, adapter = apt
        runner.set_failure("install -y python3.11", error="E: Unable to locate package python3.11", times=2)

        result = self._python().install(make_ctx(), adapter)
        assert result.ok
        assert result.value == "python3.11 python3.11-venv (deadsnakes)"
        assert result.attempted == [
            "python3.11 python3.11-venv",
            "python3.11",
            "python3.11 python3.11-venv (deadsnakes)",
        ]
        assert ["apt-get", "install", "-y", "software-properties-common"] in runner.call_log
        assert ["add-apt-repository", "-y", "ppa:deadsnakes/ppa"] in runner.call_log

    def test_ubuntu_only(self, apt, make_ctx):
        runner, adapter = apt
        runner.set_failure("install -y python3.11", error="E: Unable to locate package python3.11")
        runner.set_failure("os-release")

        result = self._python().install(make_ctx(), adapter)
        assert result.error.kind == ErrorKind.NO_CANDIDATE_AVAILABLE
        assert result.error.last_error == "E: Unable to locate package python3.11"
        assert runner.calls_matching("deadsnakes") == []

    def test_disabled(self, apt, make_ctx):
        runner, adapter = apt
        runner.set_failure("install -y python3.11")
        python = _by_name(build_steps(SysinitConfig(sources=SourcesConfig(deadsnakes=False))))["python"]

        assert not python.install(make_ctx(), adapter).ok
        assert runner.calls_matching("os-release") == []


class TestAurBuild:
    def _op(self):
        return _by_name(default_steps())["1password"]

    def test_builds_as_invoking_user(self, make_runner, make_ctx):
        runner = make_runner("pacman", "sh", "git", "curl", "gpg")
        runner.on_success("makepkg", executables=["1password"])
        adapter = create_adapter(K.PACMAN, runner)
        ctx = make_ctx(kind=K.PACMAN, elevation=Elevation(sudo="/usr/bin/sudo"))

        result = self._op().install(ctx, adapter)
        assert result.ok
        assert result.value == "aur/1password"
        assert ["sudo", "-n", "pacman", "-S", "--needed", "--noconfirm", "base-devel"] in runner.call_log
        build = runner.calls_matching("makepkg")[0]
        assert build[:2] == ["sh", "-c"]
        assert "makepkg -si --noconfirm" in build[2]
        assert self._op().is_installed(ctx, adapter)

    def test_root_drops_to_sudo_user(self, make_runner, make_ctx):
        runner = make_runner("pacman", "sh", "git", "curl", "gpg", "makepkg")
        adapter = create_adapter(K.PACMAN, runner)
        elevation = Elevation(is_admin=True, sudo="/usr/bin/sudo", invoking_user="dev")

        assert self._op().install(make_ctx(kind=K.PACMAN, elevation=elevation), adapter).ok
        build = runner.calls_matching("makepkg")[0]
        assert build[:5] == ["sudo", "-u", "dev", "sh", "-c"]

    def test_root_without_sudo_user(self, make_runner, make_ctx):
        runner = make_runner("pacman", "sh", "git")
        adapter = create_adapter(K.PACMAN, runner)

        result = self._op().install(make_ctx(kind=K.PACMAN), adapter)
        assert result.error.kind == ErrorKind.PRIVILEGE_REQUIRED
        assert runner.calls_matching("makepkg") == []


class TestStepResult:
    def test_failure_carries_exit_code(self):
        step = InstallStep(name="git", exit_code=30)
        result = StepResult.failure(step, "boom", ErrorKind.NO_CANDIDATE_AVAILABLE, attempted=["git"])
        assert result.failed
        assert result.exit_code == 30
        assert result.status == StepStatus.FAILED

    def test_label(self):
        assert InstallStep(name="git").label == "git"
        assert InstallStep(name="git", title="Git").label == "Git"
