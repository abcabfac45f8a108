"""
Command-line interface for spotify-playlist-importer.

This module implements the CLI using Click; rich-click is used for the
help output. Every command that talks to Spotify runs an ImportSession:
intents are dispatched from a small event loop that reads completed
catalog calls from a queue and sends a Tick whenever nothing arrived for
import.tick_seconds.

Commands:
    playlist-import match <file.xspf>                     Match and print the chosen tracks
    playlist-import review <file.xspf>                    Match, then review track by track
    playlist-import import <file.xspf> --playlist <id>    Match and add to an existing playlist
    playlist-import import <file.xspf> --create <name>    Match and add to a new playlist
    playlist-import export-unmatched <file.xspf> [-o out] Write tracks without a match to XSPF
    playlist-import playlists                             List playlists tracks can be added to
    playlist-import map <input-id> [<spotify-id>]         Set a stored mapping
    playlist-import map <input-id> --clear                Remove a stored mapping

Configuration:
    The CLI requires a config.yaml file in the current directory (or the
    path given with --config) with at least the Spotify client_id and
    client_secret. See core/config.py.

Exit codes:
    1 configuration error, 2 database error, 3 Spotify error,
    4 other importer error (e.g. malformed playlist file), 130 interrupted.
"""

import queue
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import rich_click as click
from tqdm import tqdm

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from playlist_importer import __version__
from playlist_importer.core import (
    Config,
    ConfigError,
    Database,
    DatabaseError,
    ImporterError,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from playlist_importer.playlist import EXPORT_FILENAME, parse_playlist
from playlist_importer.reconcile import IdMappingStore, LookupRequest, SearchRequest
from playlist_importer.session import (
    CallCompleted,
    CallRunner,
    CreatePlaylist,
    ExportUnmatched,
    ImportMatched,
    ImportSession,
    LoadInputPlaylist,
    QueryTrack,
    SelectPlaylist,
    SetIdMapping,
    Tick,
    TrackRow,
)
from playlist_importer.spotify import SpotifyClient, connect
from playlist_importer.sync import PlaylistSyncDriver
from playlist_importer.utils import extract_playlist_id, extract_spotify_id, format_duration


logger = get_logger(__name__)


@dataclass
class _Environment:
    config: Config
    database: Database
    id_mapping: IdMappingStore


@dataclass
class _Connection:
    session: ImportSession
    events: "queue.Queue[CallCompleted]"
    runner: CallRunner
    tick_seconds: float


# =============================================================================
# CLI Group
# =============================================================================

@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool, version: bool) -> None:
    """
    spotify-playlist-importer: Recreate XSPF playlists on Spotify.

    Every track of the file is searched on Spotify and the closest match
    (artist, title, album and duration) is selected. Selections can be
    reviewed, changed, and imported into a Spotify playlist. Choices are
    remembered between runs.
    """
    if version:
        click.echo(f"spotify-playlist-importer {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.obj = {"config_path": config_path, "verbose": verbose}


def _run(options: dict, action: Callable[[_Environment], None]) -> None:
    """
    Set up config, logging and storage, run `action`, and map errors to exit codes.

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    database: Database | None = None

    try:
        config = load_config(options["config_path"])

        config.storage.directory.mkdir(parents=True, exist_ok=True)
        setup_logging(config.storage.log_directory, verbose=options["verbose"])

        database = Database(config.storage.database_path)
        env = _Environment(config=config, database=database, id_mapping=IdMappingStore(database))

        action(env)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(2)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Your Spotify session is not valid, run the command again to log in", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(3)

    except ImporterError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    finally:
        if database is not None:
            database.close()
        shutdown_logging()


# =============================================================================
# Session Helpers
# =============================================================================

def _connect(env: _Environment, save_file: Callable[[bytes], None] | None = None) -> _Connection:
    auth = connect(env.config, env.database)
    SpotifyClient.init(
        access_token=auth.access_token,
        user_id=auth.user_id,
        requests_timeout=env.config.spotify.requests_timeout
    )

    events: "queue.Queue[CallCompleted]" = queue.Queue()
    runner = CallRunner(SpotifyClient(), events)
    session = ImportSession(env.id_mapping, runner, save_file=save_file, auth=auth)

    click.echo(f"Your Spotify session will expire in {auth.minutes_remaining} minutes")
    session.open()
    return _Connection(session, events, runner, env.config.importer.tick_seconds)


def _drive(connection: _Connection, description: str | None = None) -> None:
    """
    Dispatch completions (or ticks) until the session is idle.

    With a description, shows a progress bar over the searches and
    lookups of the orchestrator.
    """
    session = connection.session
    progress = tqdm(desc=description, unit="call", total=session.orchestrator.queued) if description else None

    try:
        while not session.idle:
            try:
                intent = connection.events.get(timeout=connection.tick_seconds)
            except queue.Empty:
                intent = Tick()

            session.dispatch(intent)

            if progress is not None and isinstance(intent, CallCompleted) \
                    and isinstance(intent.request, (SearchRequest, LookupRequest)):
                remainder = session.orchestrator.remainder
                progress.total = progress.n + 1 + session.orchestrator.queued \
                    + remainder.page_count - remainder.cursor
                progress.update(1)
    finally:
        if progress is not None:
            progress.close()

    if session.error_message:
        click.echo(session.error_message, err=True)


def _load(connection: _Connection, input_path: Path) -> None:
    connection.session.dispatch(LoadInputPlaylist(input_path.read_bytes()))
    _drive(connection, description="Matching")


def _file_writer(output_path: Path) -> Callable[[bytes], None]:
    def write(content: bytes) -> None:
        output_path.write_bytes(content)
        click.echo(f"Unmatched tracks written to {output_path}")
    return write


def _format_candidate(index: int, row: TrackRow, position: int) -> str:
    entry = row.matches[position]
    candidate = entry.candidate
    marker = "*" if candidate.identifier == row.chosen_id else " "
    duration = format_duration(candidate.duration) if candidate.duration is not None else "-"
    return (
        f"  {marker} {index}. {candidate.label} | {candidate.album or '-'} | "
        f"{duration} | {entry.score * 100:.0f} %"
    )


def _print_rows(rows: tuple[TrackRow, ...]) -> None:
    matched = 0
    for row in rows:
        chosen = row.chosen
        if chosen is not None:
            matched += 1
            click.echo(f"{row.track.label} -> {chosen.candidate.label} ({chosen.score * 100:.0f} %)")
        elif row.chosen_id is not None:
            matched += 1
            click.echo(f"{row.track.label} -> {row.chosen_id}")
        else:
            click.echo(f"{row.track.label} -> don't import")
    click.echo(f"{matched}/{len(rows)} tracks will be imported")


# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), metavar="<file.xspf>")
@click.option("--export-unmatched", "export_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Also write unmatched tracks to this file")
@click.pass_obj
def match(options: dict, input_path: Path, export_path: Path | None) -> None:
    """Search every track of the playlist on Spotify and print the chosen match."""
    def action(env: _Environment) -> None:
        connection = _connect(env, _file_writer(export_path) if export_path else None)
        try:
            _load(connection, input_path)
            _print_rows(connection.session.snapshot().rows)
            if export_path:
                connection.session.dispatch(ExportUnmatched())
        finally:
            connection.runner.shutdown()

    _run(options, action)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), metavar="<file.xspf>")
@click.pass_obj
def review(options: dict, input_path: Path) -> None:
    """
    Match the playlist, then walk through the tracks.

    \b
    For every track, enter:
        <number>  select that candidate
        n         don't import the track
        s         search again with your own query
        Enter     keep the current choice
    """
    def action(env: _Environment) -> None:
        connection = _connect(env)
        try:
            _load(connection, input_path)
            _review(connection)
            _print_rows(connection.session.snapshot().rows)
        finally:
            connection.runner.shutdown()

    _run(options, action)


def _review(connection: _Connection) -> None:
    session = connection.session
    row_count = len(session.snapshot().rows)

    for position in range(row_count):
        while True:
            row = session.snapshot().rows[position]
            click.echo(f"\n[{position + 1}/{row_count}] {row.track.label}"
                       + (f" | {row.track.album}" if row.track.album else "")
                       + (f" | {format_duration(row.track.duration)}" if row.track.duration else ""))
            if row.pending:
                click.echo("  (stored choice not loaded yet)")
            for index in range(len(row.matches)):
                click.echo(_format_candidate(index + 1, row, index))
            if row.chosen_id is None:
                click.echo("  * don't import")

            choice = click.prompt("Choice", default="", show_default=False).strip().lower()
            if choice == "":
                break
            if choice == "n":
                session.dispatch(SetIdMapping(row.input_id, None))
                break
            if choice == "s":
                query = click.prompt("Search", default=row.track.query())
                session.dispatch(QueryTrack(row.input_id, query))
                _drive(connection)
                continue
            if choice.isdigit() and 1 <= int(choice) <= len(row.matches):
                session.dispatch(SetIdMapping(row.input_id, row.matches[int(choice) - 1].candidate.identifier))
                break
            click.echo("Invalid choice")


@cli.command(name="import")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), metavar="<file.xspf>")
@click.option("--playlist", "playlist", default=None, metavar="<spotify-url>",
              help="Existing playlist (URL, URI or ID)")
@click.option("--create", "create_name", default=None, metavar="<name>", help="Create a new private playlist")
@click.option("--export-unmatched", "export_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Also write unmatched tracks to this file")
@click.pass_obj
def import_command(
    options: dict,
    input_path: Path,
    playlist: str | None,
    create_name: str | None,
    export_path: Path | None
) -> None:
    """Match the playlist and add the matched tracks to a Spotify playlist."""
    if (playlist is None) == (create_name is None):
        raise click.UsageError("Use exactly one of --playlist and --create")

    def action(env: _Environment) -> None:
        connection = _connect(env, _file_writer(export_path) if export_path else None)
        session = connection.session
        try:
            _load(connection, input_path)

            if create_name is not None:
                session.dispatch(CreatePlaylist(create_name))
                _drive(connection)
            else:
                try:
                    playlist_id = extract_playlist_id(playlist)
                except ValueError as e:
                    raise ImporterError(str(e)) from e
                if not any(p.playlist_id == playlist_id for p in session.playlists):
                    logger.warning(f"Playlist {playlist_id} is not one of your writable playlists")
                session.dispatch(SelectPlaylist(playlist_id))

            if session.selected_playlist_id is None:
                raise ImporterError("No playlist to import into")

            session.dispatch(ImportMatched())
            _drive(connection)

            if session.import_done:
                click.echo("Import succeeded")
            if export_path:
                session.dispatch(ExportUnmatched())
        finally:
            connection.runner.shutdown()

    _run(options, action)


@cli.command(name="export-unmatched")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), metavar="<file.xspf>")
@click.option("--output", "-o", "output_path", type=click.Path(dir_okay=False, path_type=Path),
              default=Path(EXPORT_FILENAME), show_default=True, help="Output file")
@click.pass_obj
def export_unmatched(options: dict, input_path: Path, output_path: Path) -> None:
    """Write the tracks that have no stored match to an XSPF file (no network)."""
    def action(env: _Environment) -> None:
        playlist = parse_playlist(input_path.read_bytes())
        driver = PlaylistSyncDriver(env.id_mapping)
        _file_writer(output_path)(driver.export_unmatched(playlist.tracks))

    _run(options, action)


@cli.command()
@click.pass_obj
def playlists(options: dict) -> None:
    """List your playlists that tracks can be added to."""
    def action(env: _Environment) -> None:
        connection = _connect(env)
        try:
            _drive(connection)
            for playlist in connection.session.playlists:
                click.echo(f"{playlist.playlist_id}  {playlist.name}")
        finally:
            connection.runner.shutdown()

    _run(options, action)


@cli.command(name="map")
@click.argument("input_id")
@click.argument("output_id", required=False)
@click.option("--clear", is_flag=True, help="Remove the stored mapping (don't import)")
@click.pass_obj
def map_command(options: dict, input_id: str, output_id: str | None, clear: bool) -> None:
    """Set or clear the stored Spotify track for an input track id."""
    if clear == (output_id is not None):
        raise click.UsageError("Give either a Spotify track or --clear")

    def action(env: _Environment) -> None:
        if clear:
            env.id_mapping.set(input_id, None)
            click.echo(f"{input_id} -> don't import")
            return
        uri = f"spotify:track:{extract_spotify_id(output_id)}"
        env.id_mapping.set(input_id, uri)
        click.echo(f"{input_id} -> {uri}")

    _run(options, action)


def main() -> None:
    """Entry point for the `playlist-import` command."""
    cli()


if __name__ == "__main__":
    main()
