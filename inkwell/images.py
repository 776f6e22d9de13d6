"""
Image URL derivation for store image assets.

An asset reference looks like  image-<assetId>-<W>x<H>-<ext>  and is served
from the image CDN at
  https://cdn.sanity.io/images/{projectId}/{dataset}/<assetId>-<W>x<H>.<ext>
"""
import re
from typing import Any, Optional, Union

from inkwell.config import settings
from inkwell.schemas import ImageRef

CDN_URL = "https://cdn.sanity.io/images"

_ASSET_REF = re.compile(
    r"^image-(?P<asset_id>[A-Za-z0-9]+)-(?P<width>\d+)x(?P<height>\d+)-(?P<ext>[a-z0-9]+)$"
)


def _asset_ref(image: Union[ImageRef, dict[str, Any], None]) -> Optional[str]:
    if image is None:
        return None
    if isinstance(image, ImageRef):
        return image.asset.ref if image.asset else None
    asset = image.get("asset") or {}
    return asset.get("_ref")


def url_for(
    image: Union[ImageRef, dict[str, Any], None],
    project_id: Optional[str] = None,
    dataset: Optional[str] = None,
) -> Optional[str]:
    """Return the CDN URL for an image, or None if it has no usable asset."""
    ref = _asset_ref(image)
    match = _ASSET_REF.match(ref or "")
    if not match:
        return None
    return (
        f"{CDN_URL}/{project_id or settings.sanity_project_id}"
        f"/{dataset or settings.sanity_dataset}"
        f"/{match['asset_id']}-{match['width']}x{match['height']}.{match['ext']}"
    )
