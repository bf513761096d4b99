"""
Package manager registry — one ``ManagerSpec`` per supported manager.

Pure data, no logic. Table order is the detection preference order:
for each platform, the first manager whose executable resolves wins.
"""

from __future__ import annotations

from sysinit.core.models.package_manager import YES, ManagerBootstrap, ManagerSpec, PackageManagerKind

_K = PackageManagerKind

_LINUX = ["Linux"]
_WINDOWS = ["Windows"]

_WINGET_AGREEMENTS = ["--accept-package-agreements", "--accept-source-agreements"]


MANAGER_SPECS: dict[PackageManagerKind, ManagerSpec] = {

    # ── Linux native ────────────────────────────────────────────

    _K.APT: ManagerSpec(
        kind=_K.APT,
        executable="apt-get",
        platforms=_LINUX,
        install=["apt-get", "install", YES],
        refresh=["apt-get", "update"],
        upgrade=["apt-get", "upgrade", YES],
        yes_flags=["-y"],
        noninteractive_env={"DEBIAN_FRONTEND": "noninteractive"},
    ),
    _K.DNF: ManagerSpec(
        kind=_K.DNF,
        executable="dnf",
        platforms=_LINUX,
        install=["dnf", "install", YES],
        refresh=["dnf", "makecache", YES],
        upgrade=["dnf", "upgrade", YES],
        yes_flags=["-y"],
    ),
    _K.YUM: ManagerSpec(
        kind=_K.YUM,
        executable="yum",
        platforms=_LINUX,
        install=["yum", "install", YES],
        refresh=["yum", "makecache", YES],
        upgrade=["yum", "update", YES],
        yes_flags=["-y"],
    ),
    _K.PACMAN: ManagerSpec(
        kind=_K.PACMAN,
        executable="pacman",
        platforms=_LINUX,
        install=["pacman", "-S", "--needed", YES],
        refresh=["pacman", "-Sy", YES],
        upgrade=["pacman", "-Syu", YES],
        yes_flags=["--noconfirm"],
    ),
    _K.ZYPPER: ManagerSpec(
        kind=_K.ZYPPER,
        executable="zypper",
        platforms=_LINUX,
        install=["zypper", YES, "install"],
        refresh=["zypper", YES, "refresh"],
        upgrade=["zypper", YES, "update"],
        yes_flags=["--non-interactive"],
    ),
    _K.APK: ManagerSpec(
        kind=_K.APK,
        executable="apk",
        platforms=_LINUX,
        install=["apk", "add", "--no-cache"],
        refresh=["apk", "update"],
        upgrade=["apk", "upgrade"],
    ),

    # ── macOS (and Linuxbrew as a last resort) ──────────────────

    _K.BREW: ManagerSpec(
        kind=_K.BREW,
        executable="brew",
        platforms=["Darwin", "Linux"],
        install=["brew", "install"],
        refresh=["brew", "update"],
        upgrade=["brew", "upgrade"],
        needs_elevation=False,
        bin_dirs=["/opt/homebrew/bin", "/usr/local/bin", "/home/linuxbrew/.linuxbrew/bin"],
        noninteractive_env={"NONINTERACTIVE": "1"},
    ),

    # ── Windows ─────────────────────────────────────────────────

    _K.WINGET: ManagerSpec(
        kind=_K.WINGET,
        executable="winget",
        platforms=_WINDOWS,
        install=["winget", "install", "--exact", *_WINGET_AGREEMENTS, YES],
        refresh=["winget", "source", "update"],
        upgrade=["winget", "upgrade", "--all", *_WINGET_AGREEMENTS, YES],
        yes_flags=["--silent", "--disable-interactivity"],
        needs_elevation=False,
        bin_dirs=["~/AppData/Local/Microsoft/WindowsApps"],
        reload_path=True,
    ),
    _K.CHOCO: ManagerSpec(
        kind=_K.CHOCO,
        executable="choco",
        platforms=_WINDOWS,
        install=["choco", "install", YES],
        upgrade=["choco", "upgrade", "all", YES],
        yes_flags=["-y"],
        bin_dirs=["C:/ProgramData/chocolatey/bin"],
        reload_path=True,
    ),
    _K.SCOOP: ManagerSpec(
        kind=_K.SCOOP,
        executable="scoop",
        platforms=_WINDOWS,
        install=["scoop", "install"],
        refresh=["scoop", "update"],
        upgrade=["scoop", "update", "*"],
        needs_elevation=False,
        bin_dirs=["~/scoop/shims"],
        reload_path=True,
    ),
}


# Installed when detection finds nothing; the installer refuses to run as root.
_HOMEBREW_INSTALLER = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

MANAGER_BOOTSTRAPS: dict[str, ManagerBootstrap] = {
    "Darwin": ManagerBootstrap(
        kind=_K.BREW,
        command=["/bin/bash", "-c", f'script="$(curl -fsSL {_HOMEBREW_INSTALLER})" && /bin/bash -c "$script"'],
        noninteractive_env={"NONINTERACTIVE": "1"},
    ),
}


def preference_order(system: str) -> list[PackageManagerKind]:
    """Managers native to ``system`` (a ``platform.system()`` value), in probe order."""
    return [kind for kind, spec in MANAGER_SPECS.items() if system in spec.platforms]
