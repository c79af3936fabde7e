"""Image and package reference resolution against the CloudAPI catalog."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional

from triton_driver.exceptions import (
    AmbiguousImageError,
    ImageNotFoundError,
    RemoteOperationError,
    TimestampParseError,
)
from triton_driver.models import ImageCatalogEntry, PackageInfo
from triton_driver.utils import log, short_id

GetImage = Callable[[str], ImageCatalogEntry]
ListImages = Callable[..., List[ImageCatalogEntry]]
GetPackage = Callable[[str], PackageInfo]


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp such as ``2015-07-02T15:53:12Z``."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    if "T" not in text:
        raise ValueError(f"not an RFC 3339 date-time: {value!r}")
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _most_recent(reference: str, candidates: List[ImageCatalogEntry]) -> ImageCatalogEntry:
    # Ties keep the first candidate in API response order.
    newest = candidates[0]
    newest_at: Optional[datetime] = None
    for image in candidates:
        try:
            published = parse_timestamp(image.published_at)
        except ValueError:
            raise TimestampParseError(reference, image.published_at) from None
        if newest_at is None or newest_at < published:
            newest, newest_at = image, published
    return newest


def resolve_image(reference: str, get_image: GetImage, list_images: ListImages) -> str:
    """Turn ``reference`` into an exact image id.

    ``reference`` may be an exact id, a name (``debian-8``), a name and
    version (``debian-8@20150527``) or a short id (``ca291f66``). An exact id
    lookup always wins; otherwise name matches beat short-id matches and the
    most recently published of several name matches is chosen.
    """
    try:
        return get_image(reference).id
    except (ImageNotFoundError, RemoteOperationError) as exc:
        # apparently isn't a valid id, but might be a name like "debian-8"
        lookup_error = exc

    name, _, version = reference.partition("@")
    filters = {"state": "all"}
    if version:
        filters["name"] = name
        filters["version"] = version
    images = list_images(**filters)

    name_matches = [image for image in images if image.name == name]
    short_id_matches = [image for image in images if short_id(image.id) == name]

    if len(name_matches) == 1:
        resolved = name_matches[0].id
        log("INFO", f"resolved image {reference!r} to {resolved!r} (exact name match)")
        return resolved
    if len(name_matches) > 1:
        resolved = _most_recent(reference, name_matches).id
        log("INFO", f"resolved image {reference!r} to {resolved!r} (most recent of {len(name_matches)} name matches)")
        return resolved
    if len(short_id_matches) == 1:
        resolved = short_id_matches[0].id
        log("INFO", f"resolved image {reference!r} to {resolved!r} (exact short id match)")
        return resolved
    if len(short_id_matches) > 1:
        log("WARN", f"image {reference!r} is an ambiguous short id")
        raise AmbiguousImageError(reference, [image.id for image in short_id_matches])
    # nothing in the catalog either, report the original lookup failure
    raise lookup_error


def validate_package(reference: str, get_package: GetPackage) -> PackageInfo:
    """Check that ``reference`` names an existing package.

    The CloudAPI accepts package names and ids interchangeably, so no
    disambiguation is attempted; a missing package surfaces as the
    :class:`PackageNotFoundError` raised by ``get_package``.
    """
    package = get_package(reference)
    log("DEBUG", f"package {reference!r} is {package.id} ({package.memory} MiB, {package.vcpus} vCPU)")
    return package
