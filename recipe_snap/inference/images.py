"""Turn image sources into ImageInput values.

The upload widget hands the pipeline raw bytes plus a media type. Scripts and
tests often have something else: a data URI, a plain base64 string, a file
path or an http(s) URL. load_image() accepts all of these. The payload is not
inspected beyond guessing a media type when none is declared.
"""

import asyncio
import base64
import binascii
from pathlib import Path
from typing import Optional, Union

import aiohttp
import filetype

from recipe_snap.models.models import ImageInput
from recipe_snap.utils.config import config
from recipe_snap.utils.errors import ValidationError
from recipe_snap.utils.logger import logger

DEFAULT_MEDIA_TYPE = "application/octet-stream"


def guess_media_type(image_bytes: bytes) -> str:
    """Guess the media type from magic bytes, falling back to octet-stream."""
    kind = filetype.guess(image_bytes) if image_bytes else None
    if kind is None:
        return DEFAULT_MEDIA_TYPE
    return kind.mime


def decode_data_uri(data_uri: str) -> tuple[bytes, Optional[str]]:
    """Split a data URI into (payload, media type).

    Raises:
        ValidationError: If the URI is malformed or not base64 encoded.
    """
    try:
        header, encoded = data_uri.split(",", 1)
    except ValueError:
        raise ValidationError("Malformed data URI: missing ',' separator.", field="image")

    meta = header[len("data:"):]
    parts = meta.split(";")
    if "base64" not in parts[1:]:
        raise ValidationError("Only base64 data URIs are supported.", field="image")

    try:
        payload = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Data URI payload is not valid base64: {e}", field="image")
    return payload, parts[0] or None


async def fetch_image_bytes(url: str, timeout: Optional[int] = None) -> bytes:
    """Download an image over http(s).

    Raises:
        ValidationError: If the download fails.
    """
    timeout = timeout or config.IMAGE_FETCH_TIMEOUT
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                response.raise_for_status()
                return await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Failed to fetch image from URL: {url}, error: {e}")
        raise ValidationError(f"Could not download image from {url}.", field="image") from e


async def load_image(
    source: Union[bytes, str, Path, ImageInput],
    media_type: Optional[str] = None,
) -> ImageInput:
    """Build an ImageInput from any supported source.

    Args:
        source: One of:
            - ImageInput: returned as-is
            - bytes: raw payload
            - "data:<mime>;base64,..." data URI
            - "http://..." / "https://..." URL (downloaded)
            - path to an existing file (str or Path)
            - plain base64 string
        media_type: Declared media type. Guessed from the payload when omitted.

    Returns:
        ImageInput for the payload.

    Raises:
        ValidationError: If the source cannot be turned into a non-empty payload.
    """
    if isinstance(source, ImageInput):
        return source

    declared = media_type
    if isinstance(source, bytes):
        payload = source
    elif isinstance(source, Path):
        payload = _read_file(source)
    elif isinstance(source, str):
        if source.startswith("data:"):
            payload, uri_type = decode_data_uri(source)
            declared = declared or uri_type
        elif source.startswith(("http://", "https://")):
            payload = await fetch_image_bytes(source)
        elif _looks_like_path(source):
            payload = _read_file(Path(source))
        else:
            try:
                payload = base64.b64decode(source, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValidationError("Image string is neither a URL, a file path nor base64 data.", field="image") from e
    else:
        raise ValidationError(f"Unsupported image source: {type(source).__name__}", field="image")

    if not payload:
        raise ValidationError("The uploaded photo is empty.", field="image")

    resolved_type = declared or guess_media_type(payload)
    logger.debug(f"Loaded image ({len(payload) / 1024:.1f}KB, {resolved_type})")
    return ImageInput(data=payload, media_type=resolved_type)


def _looks_like_path(source: str) -> bool:
    try:
        return Path(source).is_file()
    except OSError:
        return False


def _read_file(path: Path) -> bytes:
    if not path.is_file():
        raise ValidationError(f"Image file not found: {path}", field="image")
    return path.read_bytes()
