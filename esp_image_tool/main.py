from __future__ import annotations
import json
from pathlib import Path
from datetime import datetime, timezone

import typer
from rich import print
from rich.table import Table
from rich.console import Console

# package imports first (module loaded as esp_image_tool.main),
# then the plain ones for running the file from inside esp_image_tool
try:
    from .config import LOG_FILE, APP_NAME
    from .firmware.errors import ImageError, TruncatedChecksum
    from .firmware.io import open_image, load_segments, save_segments, describe_image
    from .firmware.simulate import SimTarget
except ImportError:
    from config import LOG_FILE, APP_NAME
    from firmware.errors import ImageError, TruncatedChecksum
    from firmware.io import open_image, load_segments, save_segments, describe_image
    from firmware.simulate import SimTarget

app = typer.Typer(add_completion=False, help=f"{APP_NAME}: inspect, split and load ESP application images.")

def _log_event(kind: str, payload: dict):
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    record = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "payload": payload,
    }
    with open(LOG_FILE, "a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")

def _open(path: Path):
    if not path.exists():
        print(f"[red]File not found:[/] {path}")
        raise typer.Exit(code=2)
    return open_image(path)

def _fail(path: Path, e: ImageError):
    print(f"[red]Malformed image {path}:[/] {e}")
    _log_event("image_error", {"image": str(path), "error": type(e).__name__, "message": str(e)})
    raise typer.Exit(code=1)

@app.command()
def info(image: Path = typer.Argument(..., help="Application image (.bin)")):
    """Show the image header, checksum status and segment table."""
    fw = _open(image)
    try:
        fw.validate()
        summary = describe_image(fw)
    except ImageError as e:
        _fail(image, e)

    try:
        checksum_ok = fw.checksum_valid()
        checksum = "[green]valid[/]" if checksum_ok else "[yellow]mismatch[/]"
    except TruncatedChecksum:
        checksum_ok = None
        checksum = "[yellow]missing[/]"

    print(f"[bold]{image.name}[/] ({summary['size']} bytes)")
    print(f"Entry point:   [cyan]{summary['entry']}[/]")
    print(f"Segments:      {summary['segment_count']}")
    print(f"Flash mode:    {summary['flash_mode']}")
    print(f"Chip ID:       {summary['chip_id']}")
    print(f"Checksum:      {checksum}")

    table = Table("#", "Address", "Length", "Offset")
    for seg in summary["segments"]:
        table.add_row(str(seg["index"]), seg["address"], str(seg["length"]), seg["offset"])
    Console().print(table)

    _log_event("info", {"image": str(image), "summary": summary, "checksum_ok": checksum_ok})

@app.command()
def segments(
    image: Path = typer.Argument(..., help="Application image (.bin)"),
    as_json: bool = typer.Option(False, "--json", help="Print segments as JSON"),
):
    """List segments in file order."""
    fw = _open(image)
    rows = []
    try:
        for seg in fw.segments():
            row = {"index": seg.index, "address": f"0x{seg.address:08X}", "length": len(seg)}
            rows.append(row)
            if not as_json:
                print(f"[cyan]{row['address']}[/] {row['length']} bytes")
    except ImageError as e:
        _fail(image, e)

    if as_json:
        typer.echo(json.dumps(rows, indent=2))
    _log_event("segments", {"image": str(image), "segments": rows})

@app.command()
def split(
    image: Path = typer.Argument(..., help="Application image (.bin)"),
    out_dir: Path = typer.Argument(Path("segments"), help="Where to save the segment binaries"),
):
    """
    Save every segment as a separate binary, prefixed with its load address.
    """
    fw = _open(image)
    try:
        fw.validate()
        paths = save_segments(fw, out_dir, stem=image.stem)
    except ImageError as e:
        _fail(image, e)

    for p in paths:
        print(f"[green]Saved[/] {p}")
    _log_event("split", {"image": str(image), "files": [str(p) for p in paths]})

@app.command()
def load(
    image: Path = typer.Argument(..., help="Application image (.bin)"),
    chunk: int = typer.Option(0x1000, min=1, help="Write block size"),
):
    """
    Load all segments into the simulated target and show what it received.
    """
    fw = _open(image)
    target = SimTarget()
    try:
        fw.validate()
        result = load_segments(target, fw, chunk)
    except ImageError as e:
        _fail(image, e)

    _log_event("load", result)
    print(f"[green]Done:[/] {result['segments']} segments, {result['bytes']} bytes, entry {result['entry']}")
    print(json.dumps(result["info"], ensure_ascii=False, indent=2))


if __name__ == "__main__":
    app()
