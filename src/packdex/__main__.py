"""packdex - structural index for content packs."""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_HELP = """\
Usage: packdex index [--dir <path>] [--packmap]
       packdex kind <file> [--dir <path>]
       packdex uses <file> [--dir <path>]
       packdex used-by <kind> <identifier> [--dir <path>]

Commands:
  index              Scan the workspace and print a summary
  kind               Print the kind a file is classified as
  uses               Print what a file references, resolved or dangling
  used-by            Print the files that reference an identifier

Options:
  --dir <path>       Workspace root to scan (default: current directory)
  --packmap          Also write PACKMAP.md into the workspace root
  --help, -h         Show this help message and exit

Examples:
  packdex index --dir ./addon --packmap
  packdex uses RP/entity/cow.entity.json --dir ./addon
  packdex used-by model geometry.cow
"""


def main() -> None:
    """Entry point for the packdex CLI."""
    args = sys.argv[1:]

    if not args or args[0] in ("--help", "-h"):
        print(_HELP)
        sys.exit(0)

    command, rest = args[0], args[1:]
    if command == "index":
        _run_index(rest)
    elif command == "kind":
        _run_kind(rest)
    elif command == "uses":
        _run_uses(rest)
    elif command == "used-by":
        _run_used_by(rest)
    else:
        print(f"Unknown command: {command}")
        print("Run 'packdex --help' for usage.")
        sys.exit(1)


def _parse_dir_flag(args: list[str], usage: str) -> tuple[list[str], Path]:
    """Split ``--dir <path>`` out of *args*; returns (positionals, project_dir)."""
    positionals: list[str] = []
    project_dir = Path.cwd()
    i = 0
    while i < len(args):
        if args[i] == "--dir" and i + 1 < len(args):
            project_dir = Path(args[i + 1])
            i += 2
        elif args[i].startswith("--"):
            print(f"Unknown argument: {args[i]}")
            print(f"Usage: {usage}")
            sys.exit(1)
        else:
            positionals.append(args[i])
            i += 1
    return positionals, project_dir.resolve()


def _build_index(project_dir: Path, progress: bool = False):
    """Load config, configure logging and scan *project_dir*."""
    from packdex.core.config import load_config
    from packdex.index.addon_index import AddonIndex

    config = load_config(project_dir)
    _configure_logging(config.logging.level)

    index = AddonIndex(
        skip_dirs=config.index.skip_dirs,
        max_file_size_kb=config.index.max_file_size_kb,
    )

    if not progress:
        return index, index.scan([project_dir])

    total_files: list[int] = [0]

    def _progress(i: int, n: int, name: str) -> None:
        total_files[0] = n
        print(f"\r  [{i}/{n}] {name:<50}", end="", flush=True)

    print(f"Indexing {project_dir}...")
    result = index.scan([project_dir], progress_callback=_progress)
    if total_files[0]:
        print()  # newline after progress
    return index, result


def _configure_logging(level: str) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _run_index(args: list[str]) -> None:
    """Parse index sub-command flags and scan the workspace."""
    usage = "packdex index [--dir <path>] [--packmap]"
    write_packmap = "--packmap" in args
    positionals, project_dir = _parse_dir_flag([a for a in args if a != "--packmap"], usage)
    if positionals:
        print(f"Unknown argument: {positionals[0]}")
        print(f"Usage: {usage}")
        sys.exit(1)

    from rich.console import Console
    from rich.table import Table

    from packdex.index.report import KIND_HEADINGS, PackmapGenerator
    from packdex.index.schema import INDEXED_KINDS

    index, result = _build_index(project_dir, progress=True)
    s = result.stats

    console = Console()
    console.print(
        f"\nDone: {result.indexed} indexed, {result.skipped} skipped, {result.failed} failed"
    )
    console.print(
        f"Packs: {s.resource_packs} resource · {s.behavior_packs} behavior · "
        f"{s.dangling_references} dangling references"
    )

    table = Table(title="Index", show_lines=False)
    table.add_column("Kind")
    table.add_column("Files", justify="right")
    table.add_column("Identifiers", justify="right")
    for kind in INDEXED_KINDS:
        files = s.records_by_kind.get(kind.value, 0)
        if not files:
            continue
        table.add_row(
            KIND_HEADINGS.get(kind, kind.value),
            str(files),
            str(s.identifiers_by_kind.get(kind.value, 0)),
        )
    console.print(table)

    if write_packmap:
        packmap_path = project_dir / "PACKMAP.md"
        PackmapGenerator(index).write(packmap_path)
        console.print(f"Pack map written to {packmap_path}")


def _run_kind(args: list[str]) -> None:
    """Print the classification of one file."""
    usage = "packdex kind <file> [--dir <path>]"
    positionals, project_dir = _parse_dir_flag(args, usage)
    if len(positionals) != 1:
        print(f"Usage: {usage}")
        sys.exit(1)

    index, _ = _build_index(project_dir)
    print(index.get_file_kind(Path(positionals[0]).resolve()).value)


def _run_uses(args: list[str]) -> None:
    """Print everything one file references."""
    usage = "packdex uses <file> [--dir <path>]"
    positionals, project_dir = _parse_dir_flag(args, usage)
    if len(positionals) != 1:
        print(f"Usage: {usage}")
        sys.exit(1)

    from rich.console import Console
    from rich.table import Table

    index, _ = _build_index(project_dir)
    target = Path(positionals[0]).resolve()
    uses = index.get_uses_of(target)

    console = Console()
    if not uses:
        console.print(f"{target} references nothing that is indexed.")
        return

    table = Table(title=f"Uses of {_relative(target, project_dir)}")
    table.add_column("Kind")
    table.add_column("Identifier")
    table.add_column("Defined in")
    for kind, idents in uses.items():
        for ident, records in idents.items():
            where = ", ".join(_relative(Path(r.path), project_dir) for r in records)
            table.add_row(kind.value, ident, where or "[red]dangling[/red]")
    console.print(table)


def _run_used_by(args: list[str]) -> None:
    """Print the files that reference ``<kind> <identifier>``."""
    usage = "packdex used-by <kind> <identifier> [--dir <path>]"
    positionals, project_dir = _parse_dir_flag(args, usage)
    if len(positionals) != 2:
        print(f"Usage: {usage}")
        sys.exit(1)

    from packdex.index.schema import Kind

    kind_name, identifier = positionals
    try:
        kind = Kind(kind_name)
    except ValueError:
        print(f"Unknown kind: {kind_name}")
        print("Kinds: " + ", ".join(k.value for k in Kind if k is not Kind.UNKNOWN))
        sys.exit(1)

    index, _ = _build_index(project_dir)
    records = index.get_used_by(kind, identifier)
    if not records:
        print(f"No indexed file references {kind.value} {identifier}")
        return
    for record in records:
        print(f"{record.kind.value:<22} {_relative(Path(record.path), project_dir)}")


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main()
