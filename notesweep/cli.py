"""
CLI interface for bulk note operations.

Usage:
    notesweep add --title "Groceries" --text "milk, eggs"
    notesweep get --filter 'title==Groceries'
    notesweep delete --title Groceries
    notesweep delete --title '^Draft' --regex
    notesweep wipe --yes
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
import yaml
from typing_extensions import Annotated

from .api import DeletionRequest, Sweeper
from .errors import StoreError, ValidationError
from .filters import filter_set_from_expressions
from .items import comma_split, out_list, references_to_dicts
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .types import NOTE_TYPE, Item, MutationResult


# Set NOTESWEEP_VERBOSE=1 to enable debug mode via environment
if os.environ.get("NOTESWEEP_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"notesweep {version('notesweep')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_home_override: Optional[Path] = None
_ops_handler: Optional[logging.Handler] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _home_callback(value: Optional[Path]):
    global _home_override
    _home_override = value


app = typer.Typer(
    name="notesweep",
    help="Select and bulk-delete notes in an item store.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    home: Annotated[Optional[Path], typer.Option(
        "--home",
        envvar="NOTESWEEP_HOME",
        help="Directory holding config, local store and cache (default: ~/.notesweep/)",
        callback=_home_callback,
        is_eager=True,
    )] = None,
):
    """Select and bulk-delete notes in an item store."""


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

TypeOption = Annotated[
    str,
    typer.Option(
        "--type", "-t",
        help="Item type to operate on"
    )
]


def _get_sweeper() -> Sweeper:
    """Load config and build the engine, handling errors gracefully."""
    import atexit

    from .backend import create_sweeper
    from .config import load_or_create_config

    global _ops_handler
    try:
        config = load_or_create_config(_home_override)
        if _ops_handler is not None:
            logging.getLogger("notesweep").removeHandler(_ops_handler)
            _ops_handler.close()
        _ops_handler = configure_ops_log(config.path)
        sweeper = create_sweeper(config)
    except (OSError, ValueError, StoreError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(sweeper.close)
    return sweeper


def _split_all(values: Optional[list[str]]) -> list[str]:
    """Flatten repeated, comma-separated option values."""
    out: list[str] = []
    for value in values or []:
        out.extend(comma_split(value))
    return out


def _format_item_line(item: Item) -> str:
    title = item.title or "(untitled)"
    return f"{item.id}  {title}"


def _format_items(items: list[Item]) -> str:
    if _get_json_output():
        return json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False)
    return "\n".join(_format_item_line(item) for item in items)


def _report_mutation(result: MutationResult, verb: str, content_type: str) -> None:
    """Print counts; exit 1 if the store rejected any item."""
    if _get_json_output():
        typer.echo(json.dumps({
            verb.lower(): result.succeeded,
            "matched": len(result.matched),
            "failed": result.failed,
        }, indent=2))
    else:
        typer.echo(f"{verb} {result.succeeded} {content_type} item(s)")
        for item_id, error in result.failed.items():
            typer.echo(f"Failed: {item_id}: {error}", err=True)
    if result.failed:
        raise typer.Exit(1)


def _report_store_error(e: StoreError) -> None:
    typer.echo(f"Error: {e}", err=True)
    if e.succeeded:
        typer.echo(f"{e.succeeded} item(s) were saved before the failure", err=True)
    if e.failed_ids:
        typer.echo(f"Not saved: {out_list(e.failed_ids)}", err=True)
    raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    title: Annotated[str, typer.Option("--title", help="Note title")],
    text: Annotated[str, typer.Option("--text", help="Note body")] = "",
    content_type: TypeOption = NOTE_TYPE,
):
    """Create a note and print its identifier."""
    sweeper = _get_sweeper()
    try:
        item = sweeper.add(title, text, content_type=content_type)
    except StoreError as e:
        _report_store_error(e)
    if _get_json_output():
        typer.echo(json.dumps(item.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(item.id)


@app.command()
def get(
    filters: Annotated[Optional[list[str]], typer.Option(
        "--filter", "-f",
        help="FIELD<op>VALUE with op one of == != ~ !~ =~ (repeatable)"
    )] = None,
    match_any: Annotated[bool, typer.Option(
        "--match-any",
        help="Match items satisfying any filter (default: all)"
    )] = False,
    ignore_case: Annotated[bool, typer.Option(
        "--ignore-case", "-i",
        help="Compare values case-insensitively"
    )] = False,
    content_type: TypeOption = NOTE_TYPE,
    no_cache: Annotated[bool, typer.Option(
        "--no-cache",
        help="Always fetch from the store"
    )] = False,
):
    """
    List live notes, optionally filtered.

    \b
    Examples:
        notesweep get
        notesweep get -f 'title==Groceries'
        notesweep get -f 'title=~^Draft' -f 'text~todo' --match-any
    """
    sweeper = _get_sweeper()
    try:
        filter_set = None
        if filters:
            filter_set = filter_set_from_expressions(
                filters, match_any=match_any, fold_case=ignore_case, content_type=content_type,
            )
        items = sweeper.get(filter_set, content_type=content_type, use_cache=not no_cache)
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except StoreError as e:
        _report_store_error(e)

    output = _format_items(items)
    if output:
        typer.echo(output)


@app.command()
def delete(
    ids: Annotated[Optional[list[str]], typer.Option(
        "--id",
        help="Identifier(s) to delete, comma-separated or repeated"
    )] = None,
    titles: Annotated[Optional[list[str]], typer.Option(
        "--title",
        help="Exact title(s) to delete, comma-separated or repeated"
    )] = None,
    regex: Annotated[bool, typer.Option(
        "--regex",
        help="Treat titles as regular expressions"
    )] = False,
    content_type: TypeOption = NOTE_TYPE,
):
    """
    Delete notes by identifier and/or title.

    \b
    Examples:
        notesweep delete --id 3f2a...,9c1b...
        notesweep delete --title "Shopping list"
        notesweep delete --title '^T.*ote' --regex
    """
    sweeper = _get_sweeper()
    try:
        request = DeletionRequest(
            identifiers=tuple(_split_all(ids)),
            labels=tuple(_split_all(titles)),
            regex=regex,
            content_type=content_type,
        )
        result = sweeper.delete(request)
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except StoreError as e:
        _report_store_error(e)
    _report_mutation(result, "Deleted", content_type)


@app.command()
def wipe(
    content_type: TypeOption = NOTE_TYPE,
    yes: Annotated[bool, typer.Option(
        "--yes", "-y",
        help="Do not ask for confirmation"
    )] = False,
):
    """Delete every live item of a type."""
    if not yes:
        typer.confirm(f"Delete all {content_type} items?", abort=True)
    sweeper = _get_sweeper()
    try:
        result = sweeper.wipe(content_type)
    except StoreError as e:
        _report_store_error(e)
    _report_mutation(result, "Wiped", content_type)


@app.command()
def refs(
    content_type: TypeOption = NOTE_TYPE,
    output_format: Annotated[str, typer.Option(
        "--format",
        help="Output format: json or yaml"
    )] = "yaml",
):
    """Print (uuid, content_type) references for live items."""
    if output_format not in ("json", "yaml"):
        typer.echo(f"Error: unknown format {output_format!r} (use json or yaml)", err=True)
        raise typer.Exit(1)
    sweeper = _get_sweeper()
    try:
        references = references_to_dicts(sweeper.references(content_type))
    except StoreError as e:
        _report_store_error(e)
    if output_format == "json" or _get_json_output():
        typer.echo(json.dumps(references, indent=2))
    else:
        typer.echo(yaml.safe_dump(references, sort_keys=False).rstrip())


@app.command()
def config():
    """Show the resolved configuration."""
    from .config import load_or_create_config

    cfg = load_or_create_config(_home_override)
    data = {
        "file": str(cfg.config_path),
        "backend": cfg.backend,
        "batch_size": cfg.batch_size,
        "max_workers": cfg.max_workers,
        "cache": {"enabled": cfg.cache_enabled, "ttl": cfg.cache_ttl, "dir": str(cfg.cache_dir)},
        "remote": {
            "api_url": cfg.remote.api_url,
            "api_key": "set" if cfg.remote.api_key else "missing",
        } if cfg.remote else None,
    }
    if _get_json_output():
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False).rstrip())


def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="notesweep CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
