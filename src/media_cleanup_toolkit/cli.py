"""
CLI module - Command line interface for Media Cleanup Toolkit

Entry point for the `mct` command using Typer.
"""

import concurrent.futures
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import AppConfig, CleanupConfig, load_config
from .constants import LOGS_DIR
from .exceptions import MediaCleanupError
from .logging_setup import configure_logging
from .prober import make_prober
from .runners import CleanupResult, CleanupRunner, ProgressSnapshot, RunnerCallbacks
from .scanner import FileDescriptor, ScanResult, format_file_size
from .store import ScanStore
from .tools import check_tools_status, get_send2trash_version, get_trash_location

logger = logging.getLogger(__name__)
console = Console()
app = typer.Typer(
    name="mct",
    help="Media Cleanup Toolkit - delete short videos and stray photos, sort long videos, prune empty folders.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

_state = {"verbose": False}


def version_callback(value: bool):
    if value:
        console.print(f"mct version {__version__}")
        raise typer.Exit()


# Type aliases for common options
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]
TargetOption = Annotated[
    Path | None, typer.Option("--target", "-t", help="Folder long videos are moved to (default: START/SortedVideos)")
]
MinLengthOption = Annotated[
    float | None, typer.Option("--min-length", "-m", help="Videos shorter than this many seconds are deleted")
]
PhotoExtOption = Annotated[str | None, typer.Option("--photo-ext", help="Photo extensions, comma separated")]
VideoExtOption = Annotated[str | None, typer.Option("--video-ext", help="Video extensions, comma separated")]
IgnoreOption = Annotated[
    list[str] | None, typer.Option("--ignore", "-i", help="Folder to skip, relative to START (repeatable)")
]
KeepFoldersOption = Annotated[bool, typer.Option("--keep-empty-folders", help="Do not delete empty folders")]
NoMoveOption = Annotated[bool, typer.Option("--no-move", help="Leave long videos where they are")]
DryRunOption = Annotated[bool, typer.Option("--dry-run", help="Show what would be done without making changes")]
YesOption = Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")]
ShowFilesOption = Annotated[bool, typer.Option("--show-files", help="List every pending file and folder")]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Show debug logging")] = False,
):
    """Media Cleanup Toolkit - delete short videos and stray photos, sort long videos, prune empty folders."""
    _state["verbose"] = verbose


def get_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration and set up logging."""
    cfg = load_config(config_path)
    # The activity feed already goes to the console; the log handler only adds detail in verbose mode
    logging_cfg = replace(cfg.logging, console_logging=cfg.logging.console_logging and _state["verbose"])
    configure_logging(logging_cfg, cfg.paths.data_dir / LOGS_DIR, verbose=_state["verbose"], console=console)
    return cfg


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn errors into a short message and exit code 1; the traceback only goes to the log."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except MediaCleanupError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        console.print(f"[red]Error:[/red] {type(e).__name__}: {e}")
        raise typer.Exit(1) from None


def make_runner(cfg: AppConfig) -> CleanupRunner:
    callbacks = RunnerCallbacks(on_log=lambda message: console.print(f"  {message}", markup=False, highlight=False))
    return CleanupRunner(
        store=ScanStore(cfg.paths.data_dir),
        prober=make_prober(cfg.probe.ffprobe, cfg.probe.timeout),
        callbacks=callbacks,
    )


def run_with_progress(runner: CleanupRunner, description: str, func: Callable, *args, **kwargs):
    """
    Run a runner operation in a worker thread with a progress bar.

    Ctrl-C requests a cooperative abort and waits for the operation to stop.
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=None)

        def on_progress(snapshot: ProgressSnapshot):
            progress.update(task, completed=snapshot.processed, total=snapshot.total or None)

        runner.callbacks.on_progress = on_progress
        try:
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(func, *args, **kwargs)
                while True:
                    try:
                        return future.result(timeout=0.2)
                    except concurrent.futures.TimeoutError:
                        continue
                    except KeyboardInterrupt:
                        console.print("[yellow]Aborting, finishing the current item...[/yellow]")
                        runner.abort()
        finally:
            runner.callbacks.on_progress = None


def _total_size(files: list[FileDescriptor]) -> str:
    return format_file_size(sum(f.size for f in files))


def print_scan_summary(result: ScanResult, config: CleanupConfig):
    """Show what the cleanup would do."""
    table = Table(title=f"Pending changes: {config.start_folder}")
    table.add_column("Action", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Size", justify="right")

    duplicates = [v for v in result.short_videos if v.is_duplicate]
    table.add_row("Photos to delete", str(len(result.photo_files)), _total_size(result.photo_files))
    table.add_row(
        f"Short videos to delete (< {config.min_video_length_sec:g}s)",
        str(len(result.short_videos) - len(duplicates)),
        _total_size([v for v in result.short_videos if not v.is_duplicate]),
    )
    table.add_row("Duplicate videos to delete", str(len(duplicates)), _total_size(duplicates))
    if config.move_videos:
        table.add_row(
            f"Videos to move to {config.video_move_target}",
            str(len(result.long_videos)),
            _total_size(result.long_videos),
        )
    else:
        table.add_row("Long videos (left in place)", str(len(result.long_videos)), _total_size(result.long_videos))
    if config.delete_empty_folders:
        table.add_row("Empty folders to delete", str(len(result.deletable_folders)), "-")
        undecided = result.folders_requiring_decision
        table.add_row(
            "Folders needing a decision", str(len(undecided)), format_file_size(sum(f.size for f in undecided))
        )

    console.print(table)


def print_file_lists(result: ScanResult, config: CleanupConfig):
    """List every pending item, grouped by action."""

    def show(title: str, rows: list[tuple[str, str]]):
        if not rows:
            return
        table = Table(title=title)
        table.add_column("Path", style="cyan")
        table.add_column("Details", justify="right")
        for path, details in rows:
            table.add_row(path, details)
        console.print(table)

    def rel(path: Path) -> str:
        try:
            return str(path.relative_to(config.start_folder))
        except ValueError:
            return str(path)

    def duration(video: FileDescriptor) -> str:
        return f"{video.duration:.1f}s" if video.duration is not None else "unknown"

    show("Photos to delete", [(rel(f.path), format_file_size(f.size)) for f in result.photo_files])
    show(
        "Videos to delete",
        [
            (rel(v.path), "duplicate" if v.is_duplicate else f"{duration(v)}, {format_file_size(v.size)}")
            for v in result.short_videos
        ],
    )
    if config.move_videos:
        show(
            "Videos to move",
            [(rel(v.path), f"{duration(v)}, {format_file_size(v.size)}") for v in result.long_videos],
        )
    if config.delete_empty_folders:
        show("Empty folders to delete", [(rel(f.path), "") for f in result.deletable_folders])
        show(
            "Folders needing a decision",
            [
                (rel(f.path), f"{len(f.non_media_files)} non-media files, {format_file_size(f.size)}")
                for f in result.folders_requiring_decision
            ],
        )


def print_cleanup_result(result: CleanupResult):
    title = "Dry run summary" if result.dry_run else "Cleanup summary"
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    verb = "would be " if result.dry_run else ""
    table.add_row(f"Photos {verb}deleted", str(result.photos_deleted))
    table.add_row(f"Videos {verb}deleted", str(result.videos_deleted))
    table.add_row(f"Videos {verb}moved", str(result.videos_moved))
    table.add_row(f"Folders {verb}deleted", str(result.folders_deleted))
    table.add_row("Folders skipped", str(result.folders_skipped))
    table.add_row("Failures", str(result.failures))
    console.print(table)

    if result.operation_log_path:
        console.print(f"Operation log: {result.operation_log_path}")
        console.print(f"[dim]Undo moves with: mct revert {result.operation_log_path}[/dim]")

    if result.aborted:
        console.print("[yellow]Cleanup aborted.[/yellow] Completed actions were not rolled back.")
    elif result.failures:
        console.print(f"[yellow]Completed with {result.failures} failures.[/yellow]")
    else:
        console.print("[green]Done.[/green]")


def confirm_and_execute(runner: CleanupRunner, result: ScanResult, config: CleanupConfig, dry_run: bool, yes: bool):
    """Shared tail of clean and load: summary, confirmation, execution."""
    print_scan_summary(result, config)

    if not result.photo_files and not result.short_videos and not result.long_videos and not result.empty_folders:
        console.print("[green]Nothing to clean up.[/green]")
        runner.abort()
        return

    prompt = "Simulate these changes?" if dry_run else "Apply these changes?"
    if not yes and not typer.confirm(prompt, default=False):
        runner.abort()
        console.print("Aborted, nothing was changed.")
        return

    cleanup = run_with_progress(runner, "Cleaning up", runner.confirm, dry_run=dry_run)
    print_cleanup_result(cleanup)
    if cleanup.aborted or cleanup.failures:
        raise typer.Exit(1)


def build_cleanup_config(
    cfg: AppConfig,
    start: Path,
    target: Path | None,
    min_length: float | None,
    photo_ext: str | None,
    video_ext: str | None,
    ignore: list[str] | None,
    keep_empty_folders: bool,
    no_move: bool,
) -> CleanupConfig:
    return CleanupConfig.build(
        start_folder=start,
        video_move_target=target,
        min_video_length_sec=min_length,
        photo_extensions=photo_ext,
        video_extensions=video_ext,
        delete_empty_folders=False if keep_empty_folders else None,
        move_videos=False if no_move else None,
        ignore_folders=ignore,
        defaults=cfg.cleanup,
    )


@app.command()
def scan(
    start: Annotated[Path, typer.Argument(help="Folder to scan", exists=True, file_okay=False)],
    target: TargetOption = None,
    min_length: MinLengthOption = None,
    photo_ext: PhotoExtOption = None,
    video_ext: VideoExtOption = None,
    ignore: IgnoreOption = None,
    keep_empty_folders: KeepFoldersOption = False,
    no_move: NoMoveOption = False,
    show_files: ShowFilesOption = False,
    config: ConfigOption = None,
):
    """
    Scan a folder and save the result without changing anything.

    [bold]Examples:[/bold]

        mct scan ~/Pictures --min-length 20

        mct scan ~/Pictures -i Archive -i "Family/Keep"
    """
    cfg = get_config(config)
    with handle_errors():
        cleanup_cfg = build_cleanup_config(
            cfg, start, target, min_length, photo_ext, video_ext, ignore, keep_empty_folders, no_move
        )
        runner = make_runner(cfg)
        result = run_with_progress(runner, "Scanning", runner.perform_scan, cleanup_cfg)

    if result is None:
        console.print("[yellow]Scan aborted.[/yellow]")
        raise typer.Exit(1)

    print_scan_summary(result, cleanup_cfg)
    if show_files:
        print_file_lists(result, cleanup_cfg)
    if runner.last_scan_path:
        console.print(f"Scan saved: {runner.last_scan_path}")
        console.print(f"[dim]Apply later with: mct load {runner.last_scan_path}[/dim]")


@app.command()
def clean(
    start: Annotated[Path, typer.Argument(help="Folder to clean up", exists=True, file_okay=False)],
    target: TargetOption = None,
    min_length: MinLengthOption = None,
    photo_ext: PhotoExtOption = None,
    video_ext: VideoExtOption = None,
    ignore: IgnoreOption = None,
    keep_empty_folders: KeepFoldersOption = False,
    no_move: NoMoveOption = False,
    dry_run: DryRunOption = False,
    yes: YesOption = False,
    show_files: ShowFilesOption = False,
    config: ConfigOption = None,
):
    """
    Scan a folder, confirm, then delete, move and prune.

    Photos and short videos go to the trash, long videos are moved to the
    target folder and folders left empty are removed.

    [bold]Examples:[/bold]

        mct clean ~/Pictures --dry-run

        mct clean ~/Pictures -t ~/Videos/Sorted -m 45 --yes
    """
    cfg = get_config(config)
    with handle_errors():
        cleanup_cfg = build_cleanup_config(
            cfg, start, target, min_length, photo_ext, video_ext, ignore, keep_empty_folders, no_move
        )
        runner = make_runner(cfg)
        result = run_with_progress(runner, "Scanning", runner.perform_scan, cleanup_cfg)
        if result is None:
            console.print("[yellow]Scan aborted.[/yellow]")
            raise typer.Exit(1)

        if show_files:
            print_file_lists(result, cleanup_cfg)
        confirm_and_execute(runner, result, cleanup_cfg, dry_run, yes)


@app.command()
def load(
    scan_file: Annotated[Path, typer.Argument(help="Saved scan result (see history)", exists=True, dir_okay=False)],
    dry_run: DryRunOption = False,
    yes: YesOption = False,
    show_files: ShowFilesOption = False,
    config: ConfigOption = None,
):
    """Load a saved scan, re-verify it against the disk, then confirm and execute."""
    cfg = get_config(config)
    with handle_errors():
        runner = make_runner(cfg)
        result = run_with_progress(runner, "Verifying", runner.resume_from_scan, scan_file)
        if result is None or runner.pending is None:
            console.print("[yellow]Verification aborted.[/yellow]")
            raise typer.Exit(1)

        cleanup_cfg = runner.pending.config
        if show_files:
            print_file_lists(result, cleanup_cfg)
        confirm_and_execute(runner, result, cleanup_cfg, dry_run, yes)


@app.command()
def revert(
    log_file: Annotated[Path, typer.Argument(help="Operation log to undo", exists=True, dir_okay=False)],
    yes: YesOption = False,
    config: ConfigOption = None,
):
    """Move files back to where a cleanup found them. Trashed files must be restored from the trash."""
    cfg = get_config(config)
    with handle_errors():
        operation_log = ScanStore.load_operation_log(log_file)
        moves = sum(1 for op in operation_log.operations if op.type == "move")
        trashed = len(operation_log) - moves
        console.print(f"Operation log from {operation_log.timestamp}: {moves} moves, {trashed} trashed items")

        if not yes and not typer.confirm("Revert these operations?", default=False):
            console.print("Aborted, nothing was changed.")
            return

        runner = make_runner(cfg)
        result = run_with_progress(runner, "Reverting", runner.revert_operation, operation_log)

    console.print(
        f"Restored: {len(result.restored)}, failed: {len(result.failed)}, "
        f"in trash: {len(result.unrecoverable)}"
    )
    if result.unrecoverable:
        console.print("[yellow]Trashed items must be restored from the system trash:[/yellow]")
        for source in result.unrecoverable:
            console.print(f"  {source}", markup=False, highlight=False)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def history(
    delete: Annotated[
        str | None, typer.Option("--delete", "-d", help="Delete a saved scan (file name as listed)")
    ] = None,
    config: ConfigOption = None,
):
    """
    List saved scans and operation logs.

    [bold]Examples:[/bold]

        mct history

        mct history --delete scan_results_2024-05-01T10-00-00-000000Z.json
    """
    cfg = get_config(config)
    store = ScanStore(cfg.paths.data_dir)

    if delete:
        if not store.delete_scan(Path(delete)):
            console.print(f"[red]Error:[/red] No saved scan named {Path(delete).name}")
            raise typer.Exit(1)
        console.print(f"Deleted saved scan: {Path(delete).name}")
        return

    scans = store.list_scans()
    if scans:
        table = Table(title="Saved scans")
        table.add_column("File", style="cyan")
        table.add_column("Start folder")
        table.add_column("Photos", justify="right")
        table.add_column("Short", justify="right")
        table.add_column("Long", justify="right")
        table.add_column("Folders", justify="right")
        for summary in scans:
            if not summary.valid:
                table.add_row(summary.path.name, "[red]unreadable[/red]", "-", "-", "-", "-")
                continue
            totals = summary.totals
            table.add_row(
                summary.path.name,
                summary.start_folder,
                str(totals.get("photos", 0)),
                str(totals.get("short_videos", 0)),
                str(totals.get("long_videos", 0)),
                str(totals.get("empty_folders", 0)),
            )
        console.print(table)
    else:
        console.print("No saved scans")

    logs = store.list_operation_logs()
    if logs:
        table = Table(title="Operation logs")
        table.add_column("File", style="cyan")
        table.add_column("Path", style="dim")
        for path in logs:
            table.add_row(path.name, str(path))
        console.print(table)
    else:
        console.print("No operation logs")


@app.command()
def check(
    config: ConfigOption = None,
):
    """Check system dependencies and show their locations."""
    cfg = get_config(config)
    tools = check_tools_status(cfg)

    table = Table(title="System Dependencies")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Path", style="dim")

    for tool, path in tools.items():
        if path:
            status_str = "[green]Available[/green]"
            path_str = str(path)
        else:
            status_str = "[red]Missing[/red]"
            path_str = "-"
        table.add_row(tool, status_str, path_str)

    trash_version = get_send2trash_version()
    trash_dir = get_trash_location()
    table.add_row(
        "send2trash",
        f"[green]{trash_version}[/green]" if trash_version else "[red]Missing[/red]",
        str(trash_dir) if trash_dir else "system trash",
    )

    console.print(table)

    if tools.get("ffprobe") is None:
        console.print("\n[yellow]Warning:[/yellow] ffprobe is missing, every video will be treated as long.")
        console.print("Install it with: sudo apt install ffmpeg")


def main_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
