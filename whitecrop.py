from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Tuple, Union

from PIL import Image, ImageColor, UnidentifiedImageError

Pixel = Union[int, float, Tuple[Any, ...]]
PixelClassifier = Callable[[Pixel], bool]

# Mode -> (indices of the color bands, maximum channel value).
# Single-band modes use an empty index tuple; their pixels are scalars.
_WHITE_CHANNELS = {
    "1": ((), 255),
    "L": ((), 255),
    "I": ((), 65535),
    "I;16": ((), 65535),
    "I;16L": ((), 65535),
    "I;16B": ((), 65535),
    "I;16N": ((), 65535),
    "F": ((), 1.0),
    "LA": ((0,), 255),
    "RGB": ((0, 1, 2), 255),
    "RGBA": ((0, 1, 2), 255),
    "RGBX": ((0, 1, 2), 255),
}

_NAMED_COLOR_MODES = {"1", "L", "LA", "RGB", "RGBA"}


class CropError(Exception):
    """Base error for whitecrop."""


class UnsupportedImageError(CropError):
    """The image mode or the requested background cannot be classified."""


@dataclass(frozen=True)
class AutoWhite:
    """Every color channel at its maximum; alpha is ignored."""


@dataclass(frozen=True)
class ExactColor:
    """Exact match on every channel, alpha included.

    ``value`` is a Pillow pixel value for the image's mode, or a color string
    that :mod:`PIL.ImageColor` understands.
    """

    value: Pixel | str


Background = Union[AutoWhite, ExactColor]

AUTO_WHITE = AutoWhite()


def background_from_target(target_color: Background | Pixel | str | None) -> Background:
    if target_color is None:
        return AUTO_WHITE
    if isinstance(target_color, (AutoWhite, ExactColor)):
        return target_color
    if isinstance(target_color, list):
        target_color = tuple(target_color)
    return ExactColor(target_color)


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive, 0-based pixel rectangle."""

    min_row: int
    max_row: int
    min_col: int
    max_col: int

    @property
    def height(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def width(self) -> int:
        return self.max_col - self.min_col + 1

    @property
    def is_empty(self) -> bool:
        return self.min_row > self.max_row or self.min_col > self.max_col

    def padded(self, padding: int, height: int, width: int) -> "BoundingBox":
        return BoundingBox(
            min_row=max(0, self.min_row - padding),
            max_row=min(height - 1, self.max_row + padding),
            min_col=max(0, self.min_col - padding),
            max_col=min(width - 1, self.max_col + padding),
        )

    def to_pil_box(self) -> Tuple[int, int, int, int]:
        """Pillow's half-open ``(left, upper, right, lower)`` crop box."""
        return (self.min_col, self.min_row, self.max_col + 1, self.max_row + 1)


def _classification_mode(image: Image.Image) -> str:
    # Palette pixels are indices, so classify their resolved colors instead.
    if image.mode == "PA" or (image.mode == "P" and "transparency" in image.info):
        return "RGBA"
    if image.mode == "P":
        return "RGB"
    return image.mode


def _classification_view(image: Image.Image) -> Image.Image:
    mode = _classification_mode(image)
    return image if mode == image.mode else image.convert(mode)


def _white_classifier(mode: str) -> PixelClassifier:
    bands, maximum = _WHITE_CHANNELS[mode]
    if not bands:
        return lambda pixel: pixel == maximum
    return lambda pixel: all(pixel[band] == maximum for band in bands)


def _resolve_target(value: Pixel | str, mode: str) -> Pixel:
    if isinstance(value, str):
        if mode not in _NAMED_COLOR_MODES:
            raise UnsupportedImageError(f"color names are not supported for mode {mode!r}")
        try:
            return ImageColor.getcolor(value, mode)
        except ValueError as exc:
            raise UnsupportedImageError(f"unknown color {value!r}") from exc

    bands = Image.getmodebands(mode)
    if isinstance(value, tuple):
        if bands == 1 and len(value) == 1:
            return value[0]
        if len(value) != bands:
            raise UnsupportedImageError(
                f"target color {value!r} has {len(value)} channels, mode {mode!r} has {bands}"
            )
        return value
    if bands != 1:
        raise UnsupportedImageError(
            f"target color {value!r} is a single value, mode {mode!r} has {bands} channels"
        )
    return value


def classifier_for(image: Image.Image, background: Background = AUTO_WHITE) -> PixelClassifier:
    """Return the background predicate for ``image``'s mode.

    Raises:
        UnsupportedImageError: the mode has no color model we can classify, or
            ``background`` names a color that does not fit the mode.
    """
    mode = _classification_mode(image)
    if mode not in _WHITE_CHANNELS:
        raise UnsupportedImageError(f"unsupported image mode {image.mode!r}")

    if isinstance(background, AutoWhite):
        return _white_classifier(mode)

    value = background.value
    # Transparent palettes are classified as RGBA; an RGB target means opaque.
    if image.mode in ("P", "PA") and mode == "RGBA" and isinstance(value, tuple) and len(value) == 3:
        value = value + (255,)
    target = _resolve_target(value, mode)
    return lambda pixel: pixel == target


def find_content_box(
    image: Image.Image,
    background: Background = AUTO_WHITE,
) -> BoundingBox | None:
    """Smallest box holding every non-background pixel, or ``None``."""
    is_background = classifier_for(image, background)
    view = _classification_view(image)
    pixels = view.load()
    width, height = view.size

    min_row, max_row = height, -1
    min_col, max_col = width, -1
    found_content = False

    for row in range(height):
        for col in range(width):
            if is_background(pixels[col, row]):
                continue
            min_row = min(min_row, row)
            max_row = max(max_row, row)
            min_col = min(min_col, col)
            max_col = max(max_col, col)
            found_content = True

    if not found_content:
        return None
    return BoundingBox(min_row, max_row, min_col, max_col)


def trim_image(
    image: Image.Image,
    background: Background = AUTO_WHITE,
    padding: int = 0,
) -> Image.Image | None:
    """
    Crop the uniform background margins off ``image``.

    Args:
        image: Loaded Pillow image.
        background: Which pixels count as margin.
        padding: Pixels of margin to keep on every side, clamped to the image.

    Returns:
        The cropped image, or ``None`` when the original should be kept as-is
        (no content was found, or the padded box is degenerate).
    """
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")

    logging.debug("Scanning %dx%d image in mode %s", image.width, image.height, image.mode)
    box = find_content_box(image, background)
    if box is None:
        logging.warning(
            "No content found in the image (all pixels are background color). Keeping original image."
        )
        return None

    logging.debug("Content box: %s", box)
    box = box.padded(padding, image.height, image.width)
    if box.is_empty:
        logging.warning(
            "Padding is too large or content area is too small, resulting in invalid crop "
            "dimensions. Keeping original image."
        )
        return None

    return image.crop(box.to_pil_box())


def crop_whitespace(
    input_path: str | Path,
    output_path: str | Path,
    padding: int = 0,
    target_color: Background | Pixel | str | None = None,
) -> bool:
    """
    Crop the white (or ``target_color``) margins from an image file.

    Args:
        input_path: Image file to read.
        output_path: Where to write the result. The format follows the extension.
        padding: Pixels of background to keep around the content.
        target_color: Background color to remove. ``None`` removes white,
            ignoring alpha; anything else must match a pixel exactly.

    Returns:
        ``True`` once a file was written to ``output_path`` (the cropped image,
        or the original when there was nothing to crop). ``False`` when the
        input cannot be decoded or classified; nothing is written then.

    Raises:
        OSError: the input cannot be read, or the output cannot be written or
            encoded in the requested format.
        ValueError: ``padding`` is negative, or Pillow knows no format for
            ``output_path``'s extension.
    """
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")
    background = background_from_target(target_color)

    try:
        img = Image.open(input_path)
    except UnidentifiedImageError as exc:
        logging.error("Unsupported image format: %s", exc)
        return False

    with img:
        try:
            img.load()
        except OSError as exc:
            logging.error("Cannot decode %s: %s", input_path, exc)
            return False

    try:
        cropped = trim_image(img, background, padding)
    except UnsupportedImageError as exc:
        logging.error("Cannot crop %s: %s", input_path, exc)
        return False

    if cropped is None:
        img.save(output_path)
        return True

    cropped.save(output_path)
    logging.info("Cropped image saved to %s", output_path)
    return True
