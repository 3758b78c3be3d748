"""CLI entry point for caddy-sites."""
from __future__ import annotations

from pathlib import Path
import json
import logging

import click
from rich.console import Console
from rich.table import Table

from .caddy_integration import CaddyError, reload_with_validation, validate_config
from .catalog import all_tags, filter_sites, site_stats
from .config import CADDYFILE, DB_PATH, SITES_DIR
from .drift import check_site_drift, check_store_drift, summarise_drift
from .index import changed_sites, sync_index
from .site import SNIPPET_CATALOGUE, SiteRecord
from .site_generator import generate_site
from .site_parser import parse_site
from .store import SiteStore, StoreError


def _echo_json(payload: dict) -> None:
    click.echo(json.dumps(payload, default=str))


def _store(ctx: click.Context) -> SiteStore:
    return SiteStore(ctx.obj["sites_dir"])


def _site_summary(site: SiteRecord) -> dict:
    return {
        "filename": site.filename,
        "domains": site.domains,
        "target": site.target_url if site.target_host else None,
        "access": site.access_kind,
        "tls_mode": site.tls_mode,
        "tags": site.tags,
    }


@click.group()
@click.version_option(package_name="caddy-sites")
@click.option(
    "--sites-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=SITES_DIR,
    show_default=True,
    help="Directory holding one .caddy file per site.",
)
@click.option("--db", "db_path", type=click.Path(dir_okay=False, path_type=Path), default=DB_PATH)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, sites_dir: Path, db_path: Path, verbose: bool) -> None:
    """Manage Caddy reverse-proxy site blocks."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["sites_dir"] = sites_dir
    ctx.obj["db_path"] = db_path


@main.command()
@click.argument("site_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--identity", help="Fallback domain when the block has no header.")
def parse(site_file: Path, identity: str | None) -> None:
    """Print the structured record for a site block as JSON."""
    try:
        text = site_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise click.ClickException(f"{site_file} is not valid UTF-8: {exc}")
    record = parse_site(text, identity or site_file.stem)
    _echo_json(record.to_dict())


@main.command()
@click.argument("record_file", type=click.File("r"), default="-")
def render(record_file) -> None:
    """Generate a site block from a JSON record (file or stdin)."""
    try:
        data = json.load(record_file)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid record JSON: {exc}")
    if not isinstance(data, dict):
        raise click.ClickException("Invalid record JSON: expected an object")
    click.echo(generate_site(SiteRecord.from_dict(data)), nl=False)


@main.command(name="list")
@click.option("--tag", help="Only sites carrying this tag.")
@click.option("--query", help="Substring match on domains, target host and filename.")
@click.option("--table", "as_table", is_flag=True, help="Render a table instead of JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, tag: str | None, query: str | None, as_table: bool) -> None:
    """List stored sites."""
    sites = filter_sites(_store(ctx).list_sites(), tag=tag, query=query)
    if not as_table:
        _echo_json({"status": "ok", "sites": [_site_summary(site) for site in sites]})
        return
    table = Table(title=f"Sites in {ctx.obj['sites_dir']}")
    table.add_column("Domains")
    table.add_column("Target")
    table.add_column("Access")
    table.add_column("TLS")
    table.add_column("Tags")
    for site in sites:
        table.add_row(
            site.domains_string,
            site.target_url if site.target_host else "-",
            site.access_kind,
            site.tls_mode,
            ", ".join(site.tags),
        )
    Console().print(table)


@main.command()
@click.argument("name")
@click.pass_context
def show(ctx: click.Context, name: str) -> None:
    """Print one stored site as JSON."""
    try:
        site = _store(ctx).get_site(name)
    except StoreError as exc:
        raise click.ClickException(str(exc))
    _echo_json(site.to_dict())


@main.command()
@click.argument("name")
@click.pass_context
def delete(ctx: click.Context, name: str) -> None:
    """Delete a stored site."""
    try:
        path = _store(ctx).delete_site(name)
    except StoreError as exc:
        raise click.ClickException(str(exc))
    _echo_json({"status": "ok", "deleted": str(path)})


@main.command()
@click.argument("name")
@click.argument("domains", nargs=-1, required=True)
@click.pass_context
def duplicate(ctx: click.Context, name: str, domains: tuple[str, ...]) -> None:
    """Copy a site's settings to a new site serving DOMAINS."""
    try:
        site = _store(ctx).duplicate_site(name, list(domains))
    except StoreError as exc:
        raise click.ClickException(str(exc))
    _echo_json({"status": "ok", "filename": site.filename, "filepath": site.filepath})


@main.command()
@click.pass_context
def tags(ctx: click.Context) -> None:
    """List every tag in use."""
    _echo_json({"status": "ok", "tags": all_tags(_store(ctx).list_sites())})


@main.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Count sites by access type."""
    summary = site_stats(_store(ctx).list_sites())
    _echo_json(
        {
            "status": "ok",
            "total": summary.total,
            "internal": summary.internal,
            "public": summary.public,
            "with_auth": summary.with_auth,
            "tags": summary.tags,
        }
    )


@main.command()
def snippets() -> None:
    """List the snippets a site may import."""
    _echo_json(
        {
            "status": "ok",
            "snippets": [
                {"id": snippet.id, "name": snippet.name, "description": snippet.description}
                for snippet in SNIPPET_CATALOGUE
            ],
        }
    )


@main.command()
@click.argument("name", required=False)
@click.option("--diff/--no-diff", default=False, help="Include a unified diff for drifted files.")
@click.pass_context
def drift(ctx: click.Context, name: str | None, diff: bool) -> None:
    """Report site files that differ from their canonical rendering."""
    store = _store(ctx)
    if name:
        path = store.find_site_path(name)
        if path is None:
            raise click.ClickException(f"site not found: {name}")
        reports = [check_site_drift(path)]
    else:
        reports = check_store_drift(store)

    payload = []
    for report in reports:
        entry = {
            "path": str(report.target_path),
            "in_sync": report.in_sync,
            "summary": summarise_drift(report),
            "error": report.error,
        }
        if diff and report.diff:
            entry["diff"] = report.diff
        payload.append(entry)
    _echo_json({"status": "ok", "reports": payload})
    if any(report.in_sync is False for report in reports):
        raise SystemExit(1)


@main.command()
@click.pass_context
def index(ctx: click.Context) -> None:
    """Synchronise the SQLite index with the site files."""
    summary = sync_index(_store(ctx), db_path=ctx.obj["db_path"])
    _echo_json(
        {
            "status": "ok",
            "added": summary.added,
            "updated": summary.updated,
            "removed": summary.removed,
            "unchanged": len(summary.unchanged),
        }
    )


@main.command()
@click.pass_context
def changed(ctx: click.Context) -> None:
    """List site files edited since the last index sync."""
    _echo_json({"status": "ok", "changed": changed_sites(_store(ctx), db_path=ctx.obj["db_path"])})


@main.command()
@click.argument("caddyfile", default=CADDYFILE, type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(caddyfile: Path) -> None:
    """Validate a Caddyfile with the caddy binary."""
    try:
        output = validate_config(caddyfile)
    except CaddyError as exc:
        raise click.ClickException(str(exc))
    _echo_json({"status": "ok", "output": output})


@main.command()
@click.argument("caddyfile", default=CADDYFILE, type=click.Path(exists=True, dir_okay=False, path_type=Path))
def reload(caddyfile: Path) -> None:
    """Validate a Caddyfile and reload Caddy with it."""
    result = reload_with_validation(caddyfile)
    _echo_json(
        {
            "status": "ok" if result.success else "error",
            "message": result.message,
            "error": result.error,
            "validation_log": result.validation_log,
            "reload_log": result.reload_log,
        }
    )
    if not result.success:
        raise SystemExit(1)
