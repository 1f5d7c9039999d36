"""Normalize the ``image`` field of an inbound request into a Base64 string.

Clients serialize the photo differently: some send the Base64 text directly,
others wrap it in an object under ``base64`` or ``data``, and many prepend a
``data:image/...;base64,`` URI header. All of that is resolved here, once.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Final

from habitgrid.exceptions import InvalidPayloadError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX: Final = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")
WRAPPER_KEYS: Final[tuple[str, ...]] = ("base64", "data")
DUMP_LIMIT: Final = 200


def type_name(value: Any) -> str:
    """Human-friendly runtime type, using JSON vocabulary where it applies."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _dump(value: Any) -> str:
    try:
        text = json.dumps(value)
    except (TypeError, ValueError):
        text = repr(value)
    return text[:DUMP_LIMIT]


def unwrap_image_field(value: Any) -> Any:
    """Resolve a wrapped ``{"base64": ...}`` / ``{"data": ...}`` value.

    Returns the inner value (or None when no wrapper key is set); any
    non-object value is returned unchanged.
    """
    if not isinstance(value, dict):
        return value
    logger.info("payload:image keys: %s", ",".join(str(k) for k in value))
    for key in WRAPPER_KEYS:
        inner = value.get(key)
        if inner:
            return inner
    return None


def normalize_image_payload(body: Any) -> str:
    """Extract the cleaned Base64 image string from a parsed request body.

    Raises:
        InvalidPayloadError: If the body carries no usable image string.
    """
    if not isinstance(body, dict):
        raise InvalidPayloadError(
            f"Request body must be a JSON object, got {type_name(body)}",
            value_type=type_name(body),
            dump=_dump(body),
        )

    raw = body.get("image")
    logger.info("payload:RAW TYPE: %s", type_name(raw))

    image = unwrap_image_field(raw)
    if not isinstance(image, str):
        dump = _dump(raw)
        logger.info("payload:image payload dump: %s", dump)
        raise InvalidPayloadError(
            f"image has wrong type: {type_name(image)} instead of string",
            value_type=type_name(image),
            dump=dump,
        )

    image = DATA_URI_PREFIX.sub("", image, count=1).strip()
    logger.info("payload:NORM TYPE: %s, NORM LEN: %d", type_name(image), len(image))

    if not image:
        raise InvalidPayloadError("image is empty after normalization", value_type="string")
    return image
