from __future__ import annotations

import logging
from pathlib import Path

import typer

from whitecrop import ExactColor, crop_whitespace

app = typer.Typer(help="Crop uniform background margins off images using Pillow.")

IMAGE_EXTENSIONS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".bmp",
    ".gif",
    ".tiff",
    ".tif",
    ".webp",
}


def default_destination(source: Path) -> Path:
    return source.with_name(f"{source.stem}-cropped{source.suffix}")


def _list_image_files(directory: Path) -> list[Path]:
    return sorted(
        file
        for file in directory.iterdir()
        if file.is_file() and file.suffix.lower() in IMAGE_EXTENSIONS
    )


@app.callback()
def configure(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log the detected content box and other debug details.",
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


@app.command("crop")
def crop_command(
    source: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        help="Input image file.",
    ),
    include_siblings: bool = typer.Option(
        False,
        "--include-siblings",
        "--siblings",
        "-s",
        help="Also process every supported image in the source folder.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        writable=True,
        resolve_path=True,
        help="Destination file. Defaults to <name>-cropped.<ext>.",
    ),
    padding: int = typer.Option(
        0,
        "--padding",
        "-p",
        min=0,
        help="Background pixels to keep around the content on every side.",
    ),
    color: str | None = typer.Option(
        None,
        "--color",
        "-c",
        help="Background color to remove, e.g. '#f0f0f0' or 'black'. Defaults to white.",
    ),
) -> None:
    if include_siblings and output is not None:
        raise typer.BadParameter("--output cannot be used together with --include-siblings.")

    target = ExactColor(color) if color is not None else None

    if include_siblings:
        images = _list_image_files(source.parent)
        if not images:
            typer.echo(f"No supported images found in {source.parent}")
            raise typer.Exit(code=1)
        failures = 0
        for path in images:
            destination = default_destination(path)
            try:
                ok = crop_whitespace(path, destination, padding, target)
            except (OSError, ValueError) as exc:
                typer.echo(f"[ERROR] {path.name}: {exc}")
                failures += 1
                continue
            if ok:
                typer.echo(f"Wrote {destination}")
            else:
                typer.echo(f"[ERROR] {path.name}: could not crop")
                failures += 1
        if failures:
            raise typer.Exit(code=1)
        return

    destination = output or default_destination(source)
    try:
        ok = crop_whitespace(source, destination, padding, target)
    except (OSError, ValueError) as exc:
        typer.echo(f"[ERROR] {source.name}: {exc}")
        raise typer.Exit(code=1)
    if not ok:
        typer.echo(f"Could not crop {source}")
        raise typer.Exit(code=1)
    typer.echo(f"Image written to {destination}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
