"""Wrapping service images into linkable objects with objcopy."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

_RELEASE_DIR = Path("target") / "x86_64-sel4" / "release"
_SERVICES = ("logserver", "timeserver", "virtioserver", "dbgserver", "vmmserver")


@dataclass(frozen=True)
class Blob:
    """An image ``src`` read from directory ``cwd`` and written as object ``obj``."""

    src: str
    obj: str
    cwd: Path


def default_blobs(workspace_root: str | Path) -> list[Blob]:
    """The guest kernel image followed by every service image."""
    root = Path(workspace_root)
    release = root / _RELEASE_DIR
    blobs = [Blob("nanos.elf", "nanos.o", root)]
    blobs.extend(Blob(f"{name}.elf", f"{name}.o", release) for name in _SERVICES)
    return blobs


def objcopy_command(blob: Blob, workspace_root: str | Path) -> list[str]:
    """Arguments that turn ``blob`` into an x86-64 ELF object with a page-aligned section."""
    return [
        "objcopy",
        "--input",
        "binary",
        "--output",
        "elf64-x86-64",
        "--binary-architecture",
        "i386:x86-64",
        "--rename-section",
        f".data=.blob.{blob.src}",
        "--set-section-alignment",
        ".data=4096",
        blob.src,
        str(Path(workspace_root) / blob.obj),
    ]


def build_blobs(workspace_root: str | Path, blobs: Iterable[Blob] | None = None) -> list[Path]:
    """Run objcopy for each blob and return the object files to link, in order.

    Raises CalledProcessError when objcopy fails.
    """
    root = Path(workspace_root).resolve()
    if blobs is None:
        blobs = default_blobs(root)
    objects = []
    for blob in blobs:
        cmd = objcopy_command(blob, root)
        result = subprocess.run(cmd, cwd=blob.cwd, stdin=subprocess.DEVNULL)
        if result.returncode != 0:
            raise subprocess.CalledProcessError(result.returncode, cmd)
        objects.append(root / blob.obj)
    return objects