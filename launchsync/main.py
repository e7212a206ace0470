"""Launch Sync - command line entry point."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from launchsync.config import config
from launchsync.core.apps_config import FileAppsConfigRepository, resolve_apps_json_path
from launchsync.core.backup_manager import BackupManager
from launchsync.core.errors import LoadError
from launchsync.core.game import Game
from launchsync.core.identity_store import JsonIdentityStore
from launchsync.core.logging import setup_logging
from launchsync.library.library_loader import GameLibrary, InMemoryGameLibrary, JsonGameLibrary
from launchsync.services.filter_presets import PresetFilterProvider, PresetManager
from launchsync.services.reconciliation_service import ReconciliationService, SyncResult
from launchsync.services.sync_dispatcher import SyncDispatcher
from launchsync.utils.i18n import init_i18n, t
from launchsync.version import __app_name__, __version__

__all__ = ["app", "build_service"]

logger = logging.getLogger("launchsync.main")

EXIT_FAILURE = 1
EXIT_PERMISSION_DENIED = 2

app = typer.Typer(
    help="Keep the Apollo/Sunshine apps.json in sync with filtered library games.",
    no_args_is_help=True,
)

GameIds = Annotated[list[str], typer.Argument(help="Library game ids.")]
Details = Annotated[bool, typer.Option("--details", help="Print error details.")]


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{__app_name__} {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    apps_json: Annotated[
        Optional[Path], typer.Option("--apps-json", help="apps.json to manage (default: Apollo/Sunshine install).")
    ] = None,
    library: Annotated[Optional[Path], typer.Option("--library", help="Library export JSON file.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging and progress output.")] = False,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit.")
    ] = False,
) -> None:
    """Set up logging, translations and per-invocation overrides."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING, config.log_file)
    init_i18n(config.UI_LANGUAGE)

    if apps_json is not None:
        config.APPS_JSON_PATH = str(apps_json)
    if library is not None:
        config.LIBRARY_PATH = str(library)
    ctx.obj = {"verbose": verbose}


def _load_library(required: bool) -> GameLibrary:
    if not config.LIBRARY_PATH.strip():
        if required:
            typer.echo(t("cli.library_missing"), err=True)
            raise typer.Exit(code=EXIT_FAILURE)
        return InMemoryGameLibrary()

    files_dir = Path(config.LIBRARY_FILES_DIR) if config.LIBRARY_FILES_DIR.strip() else None
    library = JsonGameLibrary(Path(config.LIBRARY_PATH).expanduser(), files_dir=files_dir)
    try:
        library.games()
    except LoadError as e:
        logger.error("%s", e)
        typer.echo(t("errors.library_failed", error=e), err=True)
        raise typer.Exit(code=EXIT_FAILURE) from e
    return library


def build_service(require_library: bool = True) -> ReconciliationService:
    """Wire the engine from the active configuration.

    Args:
        require_library: Exit with an error when no library export is set.

    Returns:
        A ready ReconciliationService.
    """
    library = _load_library(require_library)
    repository = FileAppsConfigRepository(
        config.APPS_JSON_PATH,
        backup_manager=BackupManager(max_backups=config.MAX_BACKUPS),
        attempts=config.SAVE_ATTEMPTS,
        retry_delay=config.RETRY_DELAY,
    )
    store = JsonIdentityStore(config.identity_store_file)
    filters = PresetFilterProvider(library, PresetManager(config.presets_file))
    return ReconciliationService(repository, store, library, filters, config)


def _resolve_games(service: ReconciliationService, game_ids: list[str], result: SyncResult) -> list[Game]:
    games: list[Game] = []
    for game_id in game_ids:
        game = service.library.get(game_id)
        if game is None:
            result.failed += 1
            result.errors.append(t("errors.unknown_game", game_id=game_id))
        else:
            games.append(game)
    return games


def _finish(result: SyncResult, details: bool) -> None:
    """Print the summary and exit with the matching code."""
    if config.SHOW_NOTIFICATIONS or not result.ok:
        typer.echo(result.summary())
    if details and result.errors:
        typer.echo(result.details(), err=True)

    if result.permission_denied:
        raise typer.Exit(code=EXIT_PERMISSION_DENIED)
    if not result.ok:
        raise typer.Exit(code=EXIT_FAILURE)


def _merge(target: SyncResult, source: SyncResult) -> SyncResult:
    source.failed += target.failed
    source.errors[:0] = target.errors
    return source


@app.command()
def sync(ctx: typer.Context, details: Details = False) -> None:
    """Run a full sync pass."""
    service = build_service()
    verbose = bool((ctx.obj or {}).get("verbose"))

    def progress(current: int, total: int, label: str) -> None:
        if verbose:
            typer.echo(f"[{current}/{total}] {label}")

    with SyncDispatcher(service, progress=progress) as dispatcher:
        result = dispatcher.submit().result()
    _finish(result, details)


@app.command()
def export(game_ids: GameIds, details: Details = False) -> None:
    """Pin and export the given games."""
    service = build_service()
    lookup = SyncResult()
    games = _resolve_games(service, game_ids, lookup)
    result = service.export_games(games) if games else SyncResult(summary_key="export.summary")
    _finish(_merge(lookup, result), details)


@app.command()
def remove(game_ids: GameIds, details: Details = False) -> None:
    """Remove the given games from apps.json."""
    service = build_service()
    lookup = SyncResult()
    games = _resolve_games(service, game_ids, lookup)
    result = service.remove_games(games) if games else SyncResult(summary_key="remove.summary")
    _finish(_merge(lookup, result), details)


@app.command()
def pin(game_ids: GameIds) -> None:
    """Exempt games from filter-driven removal."""
    count = build_service(require_library=False).pin_games(game_ids)
    typer.echo(t("pin.done", count=count) if count else t("pin.none"))


@app.command()
def unpin(game_ids: GameIds) -> None:
    """Let filters remove the given games again."""
    count = build_service(require_library=False).unpin_games(game_ids)
    typer.echo(t("unpin.done", count=count) if count else t("unpin.none"))


@app.command()
def managed() -> None:
    """List the games currently managed in apps.json."""
    service = build_service()
    games = service.managed_games()
    if not games:
        typer.echo(t("cli.managed_empty"))
        return

    typer.echo(t("cli.managed_header", count=len(games)))
    for game in games:
        marker = t("cli.pinned_marker") if service.is_pinned(game.id) else ""
        typer.echo(
            t(
                "cli.managed_line",
                name=game.name,
                game_id=game.id,
                uuid=service.identity_store.get(game.id),
                pinned=marker,
            )
        )


@app.command()
def forget(game_ids: GameIds) -> None:
    """Stop managing games without touching apps.json."""
    count = build_service(require_library=False).forget_games(game_ids)
    typer.echo(t("cli.forgotten", count=count))


@app.command("store-sync")
def store_sync() -> None:
    """Drop mappings whose apps.json entry was removed elsewhere."""
    dropped = build_service(require_library=False).sync_identity_store()
    typer.echo(t("cli.store_synced", count=len(dropped)))


@app.command()
def presets() -> None:
    """List filter presets; selected ones are starred."""
    manager = PresetManager(config.presets_file)
    items = manager.load_presets()
    if not items:
        typer.echo(t("cli.presets_empty", path=manager.file_path))
        return
    for preset in items:
        typer.echo(
            t(
                "cli.preset_line",
                marker="*" if preset.preset_id in config.INCLUDED_PRESET_IDS else " ",
                preset_id=preset.preset_id,
                name=preset.name,
                rules=len(preset.rules),
                logic=preset.logic.value,
            )
        )


@app.command()
def verify() -> None:
    """Check the settings."""
    errors = config.verify()
    if errors:
        for error in errors:
            typer.echo(error, err=True)
        raise typer.Exit(code=EXIT_FAILURE)
    typer.echo(t("cli.verify_ok", path=resolve_apps_json_path(config.APPS_JSON_PATH)))


if __name__ == "__main__":
    app()
