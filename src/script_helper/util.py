from __future__ import annotations

from collections.abc import Iterable, Sequence


def replace_argument_name(
    args: Sequence[str], names: str | Iterable[str], new_name: str
) -> list[str]:
    """
    Return a copy of `args` with the first matching flag renamed to `new_name`.

    `names` are tried in order; only the first one present in `args` is replaced (at its first
    position). `args` itself is never modified.

    Example::

        replace_argument_name(["--out", "dist"], ["-o", "--out"], "--outdir")
        # -> ["--outdir", "dist"]
    """

    new_args = list(args)
    for name in [names] if isinstance(names, str) else names:
        if name in new_args:
            new_args[new_args.index(name)] = new_name
            return new_args
    return new_args
