from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Literal

StdioMode = Literal["inherit", "pipe", "ignore"]
_STDIO_MODES: frozenset[str] = frozenset({"inherit", "pipe", "ignore"})


@dataclass(frozen=True)
class SpawnOptions:
    stdio: StdioMode = "inherit"
    encoding: str | None = None

    def __post_init__(self) -> None:
        if self.stdio not in _STDIO_MODES:
            allowed = ", ".join(sorted(_STDIO_MODES))
            raise ValueError(f"Unsupported stdio mode {self.stdio!r} (allowed: {allowed}).")


DEFAULT_SPAWN_OPTIONS = SpawnOptions()


@dataclass(frozen=True)
class Command:
    name: str

    @property
    def argv(self) -> list[str]:
        return [self.name]

    @property
    def options(self) -> SpawnOptions:
        return DEFAULT_SPAWN_OPTIONS

    def render(self) -> str:
        return self.name


@dataclass(frozen=True)
class CommandWithOptions:
    name: str
    args: tuple[str, ...] = ()
    spawn_options: SpawnOptions | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))

    @property
    def argv(self) -> list[str]:
        return [self.name, *self.args]

    @property
    def options(self) -> SpawnOptions:
        return self.spawn_options or DEFAULT_SPAWN_OPTIONS

    def render(self) -> str:
        return " ".join([self.name, *self.args])


SingleExecutable = Command | CommandWithOptions


@dataclass(frozen=True)
class CommandGroup:
    """Named executables handed to the concurrent runner as one unit."""

    entries: Mapping[str, SingleExecutable | None]
    kill_others: bool = True

    def __post_init__(self) -> None:
        entries = dict(self.entries)
        for name, entry in entries.items():
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Command group entry names must be non-empty strings, got {name!r}.")
            if isinstance(entry, CommandGroup):
                raise ValueError(f"Command group entry {name!r} is itself a group; groups cannot be nested.")
            if entry is not None and not isinstance(entry, (Command, CommandWithOptions)):
                raise TypeError(
                    f"Command group entry {name!r} must be a Command or CommandWithOptions, "
                    f"got {type(entry).__name__}."
                )
        object.__setattr__(self, "entries", entries)

    def active_entries(self) -> dict[str, SingleExecutable]:
        return {name: entry for name, entry in self.entries.items() if entry is not None}


Executable = Command | CommandWithOptions | CommandGroup


def command(
    name: str,
    args: Iterable[str] | None = None,
    *,
    stdio: StdioMode | None = None,
    encoding: str | None = None,
) -> SingleExecutable:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Command name must be a non-empty string.")
    if args is None and stdio is None and encoding is None:
        return Command(name)
    spawn_options = None
    if stdio is not None or encoding is not None:
        spawn_options = SpawnOptions(stdio=stdio or "inherit", encoding=encoding)
    return CommandWithOptions(name, tuple(args or ()), spawn_options)


def group(
    entries: Mapping[str, SingleExecutable | None] | None = None,
    /,
    *,
    kill_others: bool = True,
    **named: SingleExecutable | None,
) -> CommandGroup:
    merged: dict[str, SingleExecutable | None] = dict(entries or {})
    merged.update(named)
    return CommandGroup(merged, kill_others=kill_others)


@dataclass
class ScriptResult:
    status: int = 0
    error: BaseException | str | None = None
    previous_results: list[ScriptResult] | None = None
    exit: bool | None = None
    stdout: str | None = None
    stderr: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == 0
