"""
Post-provisioning hooks — user commands run after a completed sequence.

The sequencer only knows the ``PostAction`` contract: call it with the
run context, get back whether it succeeded. Hooks run strictly after a
``completed`` sequence and never after an aborted one.
"""

from __future__ import annotations

from collections.abc import Sequence

from sysinit.adapters.base import PackageManagerAdapter
from sysinit.core.context import RunContext


class CommandHook:
    """Run one configured command through the adapter's runner."""

    def __init__(self, command: Sequence[str], adapter: PackageManagerAdapter):
        self._command = list(command)
        self._adapter = adapter

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def __call__(self, ctx: RunContext) -> bool:
        label = " ".join(self._command)
        ctx.log.info(f"Post-provisioning: {label}")
        result = self._adapter.run_command(ctx, self._command)
        if result.ok:
            return True
        ctx.log.error(f"Post-provisioning command failed: {label}: {result.error}")
        return False

    def __repr__(self) -> str:
        return f"<CommandHook {' '.join(self._command)!r}>"


def build_hooks(
    commands: Sequence[Sequence[str]],
    adapter: PackageManagerAdapter,
) -> list[CommandHook]:
    return [CommandHook(command, adapter) for command in commands]
