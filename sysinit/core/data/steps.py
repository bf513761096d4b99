"""
Default step catalog — Python, pip, Git and 1Password.

Candidate names are listed per package manager, most specific first.
The Python version is a parameter; every pinned name is derived from it.
``build_steps`` applies the overrides from sysinit.yml.
"""

from __future__ import annotations

from sysinit.core.models.config import SourcesConfig, SysinitConfig
from sysinit.core.models.package_manager import YES, PackageManagerKind
from sysinit.core.models.result import ExitCode
from sysinit.core.models.step import InstallStep, RepositorySetup, SourceBuild, VersionPin

_K = PackageManagerKind

STEP_NAMES: tuple[str, ...] = ("python", "pip", "git", "1password")

_OP_KEY_URL = "https://downloads.1password.com/linux/keys/1password.asc"
_OP_APT_KEYRING = "/usr/share/keyrings/1password-archive-keyring.gpg"
_OP_DEBSIG_ID = "AC2D62742012EA22"
_OP_RPM_REPO = "/etc/yum.repos.d/1password.repo"


# ── 1Password repositories ──────────────────────────────────────

_OP_APT_REPO = RepositorySetup(
    name="1password",
    marker="/etc/apt/sources.list.d/1password.list",
    requires=["curl", "gpg"],
    commands=[
        ["sh", "-c", f"curl -fsSL {_OP_KEY_URL} | gpg --dearmor --yes --output {_OP_APT_KEYRING}"],
        [
            "sh", "-c",
            'arch="$(dpkg --print-architecture)"; '
            f'echo "deb [arch=$arch signed-by={_OP_APT_KEYRING}] '
            'https://downloads.1password.com/linux/debian/$arch stable main" '
            "> /etc/apt/sources.list.d/1password.list",
        ],
        [
            "mkdir", "-p",
            f"/etc/debsig/policies/{_OP_DEBSIG_ID}",
            f"/usr/share/debsig/keyrings/{_OP_DEBSIG_ID}",
        ],
        [
            "sh", "-c",
            "curl -fsSL https://downloads.1password.com/linux/debian/debsig/1password.pol "
            f"> /etc/debsig/policies/{_OP_DEBSIG_ID}/1password.pol",
        ],
        [
            "sh", "-c",
            f"curl -fsSL {_OP_KEY_URL} | gpg --dearmor --yes "
            f"--output /usr/share/debsig/keyrings/{_OP_DEBSIG_ID}/debsig.gpg",
        ],
    ],
)

_OP_RPM_REPO_SETUP = RepositorySetup(
    name="1password",
    marker=_OP_RPM_REPO,
    commands=[
        ["rpm", "--import", _OP_KEY_URL],
        [
            "sh", "-c",
            "printf '%s\\n' '[1password]' 'name=1Password Stable Channel' "
            "'baseurl=https://downloads.1password.com/linux/rpm/stable/$basearch' "
            "'enabled=1' 'gpgcheck=1' 'repo_gpgcheck=1' "
            f"'gpgkey={_OP_KEY_URL}' > {_OP_RPM_REPO}",
        ],
    ],
)

_OP_ZYPPER_REPO = RepositorySetup(
    name="1password",
    marker="/etc/zypp/repos.d/1password.repo",
    commands=[
        ["rpm", "--import", _OP_KEY_URL],
        ["zypper", "addrepo", "https://downloads.1password.com/linux/rpm/stable/x86_64", "1password"],
    ],
)

# 1Password's own AUR package; makepkg refuses to run as root.
_OP_AUR = SourceBuild(
    name="aur/1password",
    requires={"git": "git", "makepkg": "base-devel", "curl": "curl", "gpg": "gnupg"},
    script=(
        'set -e; dir="$(mktemp -d)"; '
        f"curl -fsSL {_OP_KEY_URL} | gpg --import; "
        'git clone https://aur.archlinux.org/1password.git "$dir/1password"; '
        f'cd "$dir/1password"; makepkg -si {YES}'
    ),
)

_OP_WINDOWS_PATHS = [
    "%LOCALAPPDATA%/1Password/app/8/1Password.exe",
    "%ProgramFiles%/1Password/app/8/1Password.exe",
]


# ── Python ──────────────────────────────────────────────────────

# Ubuntu only: releases that do not package the pinned Python.
_DEADSNAKES = RepositorySetup(
    name="deadsnakes",
    condition=["sh", "-c", '. /etc/os-release && [ "$ID" = ubuntu ]'],
    requires={"add-apt-repository": "software-properties-common"},
    commands=[["add-apt-repository", "-y", "ppa:deadsnakes/ppa"]],
)


def _winget_listed(package_id: str) -> list[str]:
    return ["winget", "list", "--exact", "--id", package_id]


def default_steps(
    python_version: str = "3.11",
    sources: SourcesConfig | None = None,
) -> list[InstallStep]:
    """The standard provisioning sequence, in order."""
    sources = sources or SourcesConfig()
    v = python_version
    nodot = v.replace(".", "")
    python_bin = f"python{v}"
    py_launcher = ["py", f"-{v}", "--version"]

    python = InstallStep(
        name="python",
        title=f"Python {v}",
        executables=[python_bin],
        version_pin=VersionPin(version=v, executables=["python3", "python"]),
        paths={
            _K.WINGET: [
                f"%LOCALAPPDATA%/Programs/Python/Python{nodot}/python.exe",
                f"%ProgramFiles%/Python{nodot}/python.exe",
            ],
            _K.CHOCO: [f"C:/Python{nodot}/python.exe"],
        },
        checks={
            _K.WINGET: [_winget_listed(f"Python.Python.{v}"), py_launcher],
            _K.CHOCO: [py_launcher],
            _K.SCOOP: [py_launcher],
        },
        candidates={
            _K.APT: [f"python{v} python{v}-venv", python_bin],
            _K.DNF: [python_bin],
            _K.YUM: [python_bin],
            _K.ZYPPER: [f"python{nodot}", "python3"],
            _K.PACMAN: ["python"],
            _K.APK: ["python3"],
            _K.BREW: [f"python@{v}"],
            _K.WINGET: [f"Python.Python.{v}"],
            _K.CHOCO: [f"python{nodot}"],
            _K.SCOOP: [f"python{nodot}", "python"],
        },
        fallback_repositories={_K.APT: _DEADSNAKES} if sources.deadsnakes else {},
        exit_code=ExitCode.PYTHON,
    )

    # Windows installers ship pip with the interpreter.
    # python3-pip serves the distribution's default python3 only; the
    # probe decides whether bootstrapping is still needed.
    pip = InstallStep(
        name="pip",
        title=f"pip for Python {v}",
        probe=[python_bin, "-m", "pip", "--version"],
        candidates={
            _K.APT: ["python3-pip"],
            _K.DNF: [f"python{v}-pip"],
            _K.YUM: [f"python{v}-pip"],
            _K.ZYPPER: [f"python{nodot}-pip"],
            _K.PACMAN: ["python-pip"],
            _K.APK: ["py3-pip"],
        },
        bootstrap=[
            [python_bin, "-m", "ensurepip", "--upgrade"],
            ["sh", "-c", f"curl -fsSL https://bootstrap.pypa.io/get-pip.py | {python_bin}"],
        ],
        applies_to=[_K.APT, _K.DNF, _K.YUM, _K.ZYPPER, _K.PACMAN, _K.APK, _K.BREW],
        exit_code=ExitCode.PIP,
    )

    git = InstallStep(
        name="git",
        title="Git",
        executables=["git"],
        paths={
            _K.WINGET: ["%ProgramFiles%/Git/cmd/git.exe"],
            _K.CHOCO: ["%ProgramFiles%/Git/cmd/git.exe"],
        },
        checks={_K.WINGET: [_winget_listed("Git.Git")]},
        candidates={
            **{kind: ["git"] for kind in (_K.APT, _K.DNF, _K.YUM, _K.PACMAN, _K.ZYPPER, _K.APK, _K.BREW)},
            _K.WINGET: ["Git.Git"],
            _K.CHOCO: ["git"],
            _K.SCOOP: ["git"],
        },
        exit_code=ExitCode.GIT,
    )

    # The macOS cask and the Windows installers put nothing on PATH:
    # presence there is the app itself or the manager's own record.
    # No official pacman/apk package; pacman builds from the AUR.
    onepassword = InstallStep(
        name="1password",
        title="1Password",
        executables=["1password", "op"],
        paths={
            _K.BREW: ["/Applications/1Password.app"],
            _K.WINGET: _OP_WINDOWS_PATHS,
            _K.CHOCO: _OP_WINDOWS_PATHS,
        },
        checks={
            _K.BREW: [["brew", "list", "--cask", "1password"]],
            _K.WINGET: [_winget_listed("AgileBits.1Password")],
        },
        candidates={
            _K.APT: ["1password"],
            _K.DNF: ["1password"],
            _K.YUM: ["1password"],
            _K.ZYPPER: ["1password"],
            _K.BREW: ["--cask 1password"],
            _K.WINGET: ["AgileBits.1Password"],
            _K.CHOCO: ["1password"],
            _K.SCOOP: ["1password-cli"],
        },
        repositories={
            _K.APT: _OP_APT_REPO,
            _K.DNF: _OP_RPM_REPO_SETUP,
            _K.YUM: _OP_RPM_REPO_SETUP,
            _K.ZYPPER: _OP_ZYPPER_REPO,
        },
        builds={_K.PACMAN: _OP_AUR} if sources.aur else {},
        exit_code=ExitCode.PASSWORD_MANAGER,
    )

    return [python, pip, git, onepassword]


def build_steps(config: SysinitConfig | None = None) -> list[InstallStep]:
    """Default steps with sysinit.yml overrides applied.

    Override candidates are tried before the defaults for that manager.
    """
    config = config or SysinitConfig()
    steps: list[InstallStep] = []

    for step in default_steps(config.python_version, config.sources):
        override = config.steps.get(step.name)
        if override is None:
            steps.append(step)
            continue

        update: dict = {"skip": override.skip}
        if override.required is not None:
            update["required"] = override.required
        if override.candidates:
            merged = {kind: list(names) for kind, names in step.candidates.items()}
            for kind, names in override.candidates.items():
                merged[kind] = list(names) + [n for n in merged.get(kind, []) if n not in names]
            update["candidates"] = merged
        steps.append(step.model_copy(update=update))

    return steps
