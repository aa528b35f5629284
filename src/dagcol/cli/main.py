"""dagcol command line interface."""

from __future__ import annotations

import json
from typing import Optional

import click

from dagcol import pipeline
from dagcol.config.config import StoreConfig
from dagcol.core.cbor_codec import encode_cbor
from dagcol.core.constants import COLUMN_TYPES, TIMESTAMP_KEY
from dagcol.core.exceptions import DagError, DagIOError
from dagcol.core.head_record import build_head_record, format_timestamp
from dagcol.core.json_codec import decode_json, encode_json, node_from_json_file
from dagcol.store.base import StoreClient
from dagcol.store.cache import build_cache
from dagcol.store.http_client import HttpStoreClient
from dagcol.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _client(ctx: click.Context) -> StoreClient:
    obj = ctx.obj
    if obj.get("client") is None:
        cfg: StoreConfig = obj["config"]
        client = HttpStoreClient(cfg, cache=build_cache(cfg))
        ctx.call_on_close(client.close)
        obj["client"] = client
    return obj["client"]


def _write_output(path: str, data: bytes) -> None:
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError as exc:
        raise DagIOError(f"cannot write {path}: {exc}") from exc


def _fail(exc: DagError) -> click.ClickException:
    logger.debug("command_failed", error=str(exc), error_type=type(exc).__name__)
    return click.ClickException(f"{type(exc).__name__}: {exc}")


@click.group()
@click.option("--api-url", envvar="DAGCOL_API_URL", default=None, help="Kubo RPC API base URL.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file.",
)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def cli(
    ctx: click.Context,
    api_url: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str],
) -> None:
    """Store DAG nodes and read float columns back from them."""
    ctx.ensure_object(dict)
    cfg = StoreConfig.from_yaml(config_path) if config_path else StoreConfig.from_env()
    if api_url:
        cfg = cfg.model_copy(update={"api_url": api_url.rstrip("/")})
    configure_logging(level=log_level or cfg.log_level, json_output=cfg.json_logs)
    ctx.obj.setdefault("config", cfg)
    ctx.obj.setdefault("client", None)


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.option(
    "--input-codec",
    type=click.Choice(["json", "cbor"]),
    default="json",
    show_default=True,
)
@click.pass_context
def put(ctx: click.Context, path: str, input_codec: str) -> None:
    """Store a DAG-JSON (or DAG-CBOR) file and print its CID."""
    client = _client(ctx)
    try:
        if input_codec == "json":
            cid = pipeline.put_json_file(client, path)
        else:
            with open(path, "rb") as f:
                cid = client.put(f.read(), "cbor", "cbor")
    except DagError as exc:
        raise _fail(exc) from exc
    except OSError as exc:
        raise click.ClickException(f"cannot read {path}: {exc}") from exc
    click.echo(cid)


@cli.command()
@click.argument("ref")
@click.pass_context
def get(ctx: click.Context, ref: str) -> None:
    """Resolve CID[/path] and print the node as DAG-JSON."""
    try:
        node = _client(ctx).get(ref)
    except DagError as exc:
        raise _fail(exc) from exc
    click.echo(encode_json(node).decode("utf-8"))


@cli.command("block-get")
@click.argument("cid")
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True), default=None)
@click.pass_context
def block_get(ctx: click.Context, cid: str, output: Optional[str]) -> None:
    """Fetch the raw block for CID."""
    try:
        block = _client(ctx).block_get(cid)
        if output:
            _write_output(output, block)
    except DagError as exc:
        raise _fail(exc) from exc
    if output:
        click.echo(f"{len(block)} bytes written to {output}")
    else:
        click.get_binary_stream("stdout").write(block)


@cli.command()
@click.argument("cid")
@click.option("--field", default="fields", show_default=True, help="First map key.")
@click.option("--values", default="values", show_default=True, help="Second map key.")
@click.option(
    "--type",
    "type_name",
    type=click.Choice(sorted(COLUMN_TYPES)),
    default=None,
    help="Element type; defaults to the field's own \"type\" entry, then f32.",
)
@click.option(
    "--lenient",
    is_flag=True,
    help="Drop trailing bytes that do not fill a whole element.",
)
@click.pass_context
def column(
    ctx: click.Context,
    cid: str,
    field: str,
    values: str,
    type_name: Optional[str],
    lenient: bool,
) -> None:
    """Decode node[FIELD][VALUES] of CID as little-endian values."""
    try:
        decoded = pipeline.read_column(
            _client(ctx), cid, field, type_name=type_name, strict=not lenient, values=values
        )
    except DagError as exc:
        raise _fail(exc) from exc
    click.echo(json.dumps(decoded))


@cli.command("head-record")
@click.argument("schema", type=click.Path(dir_okay=False))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the DAG-CBOR record to a file instead of storing it.",
)
@click.pass_context
def head_record(ctx: click.Context, schema: str, output: Optional[str]) -> None:
    """Build an empty head record from a schema file."""
    try:
        if output:
            head = build_head_record(node_from_json_file(schema))
            _write_output(output, encode_cbor(head))
            click.echo(f"{head.length} fields written to {output}")
            return
        click.echo(pipeline.put_head_record(_client(ctx), schema))
    except DagError as exc:
        raise _fail(exc) from exc


@cli.command()
@click.argument("head_cid")
@click.argument("row", type=click.File("rb"))
@click.option("--timestamp", type=int, default=None, help="Unix time for _timestamp.")
@click.pass_context
def append(ctx: click.Context, head_cid: str, row, timestamp: Optional[int]) -> None:
    """Append a DAG-JSON ROW to the head record HEAD_CID and print the new CID."""
    try:
        row_node = decode_json(row)
        cid = pipeline.append_to_head_record(_client(ctx), head_cid, row_node, timestamp=timestamp)
    except DagError as exc:
        raise _fail(exc) from exc
    click.echo(cid)


@cli.command()
@click.argument("cid")
@click.argument("fields", nargs=-1)
@click.option("--limit", type=int, default=-1, show_default=True, help="Maximum rows (-1 = all).")
@click.option("--json", "as_json", is_flag=True, help="Print rows as JSON objects.")
@click.pass_context
def select(ctx: click.Context, cid: str, fields: tuple[str, ...], limit: int, as_json: bool) -> None:
    """Print FIELDS (all when none given) of the head record CID row by row."""
    try:
        names, rows = pipeline.select(_client(ctx), cid, fields, limit=limit)
    except DagError as exc:
        raise _fail(exc) from exc
    if as_json:
        for row in rows:
            click.echo(json.dumps(dict(zip(names, row))))
        return
    titles = ["timestamp (UTC)" if name == TIMESTAMP_KEY else name for name in names]
    cells = [
        [format_timestamp(value) if name == TIMESTAMP_KEY else str(value) for name, value in zip(names, row)]
        for row in rows
    ]
    widths = [max([len(title)] + [len(r[i]) for r in cells]) for i, title in enumerate(titles)]

    def line(values: list[str]) -> str:
        return "| " + " | ".join(v.ljust(w) for v, w in zip(values, widths)) + " |"

    click.echo(line(titles))
    click.echo("|" + "|".join("-" * (w + 2) for w in widths) + "|")
    for row_cells in cells:
        click.echo(line(row_cells))


if __name__ == "__main__":
    cli()
