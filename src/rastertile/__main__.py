"""CLI entry point for rastertile."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from tqdm import tqdm

from rastertile.config import FETCH_RETRIES, MAX_TILE_SIZE
from rastertile.core import fingerprint
from rastertile.core.errors import ConfigError, ParseError
from rastertile.core.pyramid import build_pyramid
from rastertile.core.raster import load_raster, save_raster
from rastertile.core.types import ByteRange, RasterSize
from rastertile.fetch import RequestsFetcher, TileFetcher
from rastertile.sources import pack_tiles

logger = logging.getLogger(__name__)


@click.group()
@click.option("-v", "--verbose", count=True, help="Log info (-v) or debug (-vv) messages")
def cli(verbose: int) -> None:
    """Tile pyramid tools: level tables, fingerprints, fetches and packing."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )


@cli.command()
@click.argument("size_x", type=click.IntRange(min=1))
@click.argument("size_y", type=click.IntRange(min=1))
@click.option("--page-size", "-t", type=click.IntRange(min=1), default=512, help="Tile size in pixels (default: 512)")
@click.option("--skip", type=click.IntRange(min=0), default=0, help="Top levels hidden from clients")
def levels(size_x: int, size_y: int, page_size: int, skip: int) -> None:
    """Print the level table of a SIZE_X by SIZE_Y raster."""
    try:
        pyramid = build_pyramid(RasterSize(size_x, size_y), RasterSize(page_size, page_size), skip=skip)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    click.echo(click.style(f"{pyramid.level_count} levels, {pyramid.total_tiles} tiles", fg="cyan", bold=True))
    for index, info in enumerate(pyramid):
        hidden = " (skipped)" if index < skip else ""
        click.echo(
            f"  {index:3d}: {info.width:6d} x {info.height:<6d} tiles"
            f"  offset {info.tile_offset:<10d} resolution {info.resolution_x:g}{hidden}"
        )


@cli.group()
def etag() -> None:
    """Encode and decode radix-32 fingerprints."""


@etag.command("encode")
@click.argument("value")
@click.option("--flag", is_flag=True, help="Set the flag bit (missing tile ETag)")
def etag_encode(value: str, flag: bool) -> None:
    """Encode VALUE (decimal, or 0x hex) as a 13 character fingerprint."""
    try:
        number = int(value, 0)
        click.echo(fingerprint.encode(number, flag))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="VALUE") from e


@etag.command("decode")
@click.argument("text")
@click.option("--strict", is_flag=True, help="Reject malformed fingerprints")
def etag_decode(text: str, strict: bool) -> None:
    """Decode a fingerprint into its value and flag."""
    try:
        value, flag = fingerprint.decode(text, strict=strict or None)
    except ParseError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"value: {value} (0x{value:016x})")
    click.echo(f"flag:  {int(flag)}")


@cli.command()
@click.argument("url")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write the payload here")
@click.option("--offset", type=click.IntRange(min=0), help="Byte range start")
@click.option("--size", type=click.IntRange(min=1), help="Byte range length")
@click.option("--retries", type=click.IntRange(min=1), default=FETCH_RETRIES, show_default=True,
              help="Partial responses tolerated")
@click.option("--buffer-size", type=click.IntRange(min=1), default=MAX_TILE_SIZE, show_default=True,
              help="Capacity of the receive buffer")
@click.option("--no-gunzip", is_flag=True, help="Keep gzip payloads compressed")
def fetch(
    url: str,
    output: str | None,
    offset: int | None,
    size: int | None,
    retries: int,
    buffer_size: int,
    no_gunzip: bool,
) -> None:
    """Fetch URL through the tile fetch engine."""
    byte_range = None
    if offset is not None or size is not None:
        if offset is None or size is None:
            raise click.UsageError("--offset and --size go together")
        byte_range = ByteRange(offset, size)
        buffer_size = max(buffer_size, size)

    fetcher = TileFetcher(RequestsFetcher(), max_retries=retries, gunzip=not no_gunzip)
    buffer = bytearray(buffer_size)
    result = fetcher.fetch(url, buffer, byte_range)
    if not result.succeeded:
        click.echo(click.style(f"Error: {result.error_message}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"{result.size} bytes, ETag {fingerprint.quote(result.fingerprint)}", err=True)
    if output:
        Path(output).write_bytes(result.data)
    else:
        click.get_binary_stream("stdout").write(result.data)


@cli.command()
@click.argument("tiles_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("raster_dir", type=click.Path(exists=True, file_okay=False))
@click.option("-o", "--output", type=click.Path(file_okay=False), required=True,
              help="Output raster directory for tiles.idx, tiles.dat and raster.json")
def pack(tiles_dir: str, raster_dir: str, output: str) -> None:
    """Pack TILES_DIR (level/row_col.ext files) for the raster in RASTER_DIR.

    Examples:

        # Pack a tile tree next to its raster.json
        python -m rastertile pack ./tiles ./world.raster -o ./world.raster
    """
    try:
        raster = load_raster(Path(raster_dir))
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    out_dir = Path(output)
    with tqdm(total=raster.pyramid.total_tiles, desc="Packing tiles", unit="tile") as pbar:

        def _on_progress(done: int, total: int) -> None:
            pbar.update(done - pbar.n)

        try:
            packed, written = pack_tiles(Path(tiles_dir), raster, out_dir, _on_progress)
        except ConfigError as e:
            raise click.ClickException(str(e)) from e

    if Path(raster_dir).resolve() != out_dir.resolve():
        save_raster(raster, out_dir)
    click.echo(click.style("Completed: ", bold=True) + click.style(f"{packed} tiles, {written} bytes", fg="green"))


main = cli

if __name__ == "__main__":
    main()
