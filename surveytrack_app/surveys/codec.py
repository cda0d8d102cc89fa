"""
Reversible tagging of tracking parameter values.

An encoded value is PREFIX + base64("<secret>:<value>:<epoch ms>"). The secret
ships with every deployment, so anyone holding the code can decode any
tagged value. This hides parameter values from casual inspection of a URL;
it is NOT encryption and must not be described to users as such.

Both directions fail soft: a value that cannot be encoded comes back as the
plaintext, a tagged value that cannot be decoded comes back still tagged.
Callers only ever see strings.

A value that itself contains the separator decodes to the text before the
first separator, because decoding keeps only the second field.
"""

from __future__ import annotations

import base64
import logging

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

SEPARATOR = ":"


class CodecError(Exception):
    """Base class for parameter encoding problems."""

    pass


class EncodingFailure(CodecError):
    """Raised when a value cannot be turned into a tagged string."""

    pass


class DecodingFailure(CodecError):
    """Raised when a tagged string cannot be turned back into its value."""

    pass


class InvalidEncodedValue(DecodingFailure):
    """Raised when a tagged payload has the wrong secret or too few fields."""

    pass


def _get_prefix() -> str:
    return getattr(settings, "SURVEYTRACK_PARAMETER_PREFIX", "enc_")


def _get_secret() -> str:
    return getattr(
        settings, "SURVEYTRACK_PARAMETER_SECRET", "survey_tracking_secret_key_2024"
    )


def _encode(value: str) -> str:
    if not isinstance(value, str):
        raise EncodingFailure(f"Expected a string, got {type(value).__name__}")
    millis = int(timezone.now().timestamp() * 1000)
    combined = SEPARATOR.join([_get_secret(), value, str(millis)])
    try:
        payload = base64.b64encode(combined.encode("utf-8")).decode("ascii")
    except UnicodeEncodeError as exc:
        raise EncodingFailure(str(exc)) from exc
    return f"{_get_prefix()}{payload}"


def _decode(value: str) -> str:
    payload = value[len(_get_prefix()) :]
    try:
        decoded = base64.b64decode(payload, validate=True).decode("utf-8")
    except ValueError as exc:
        raise DecodingFailure(str(exc)) from exc

    parts = decoded.split(SEPARATOR)
    if len(parts) >= 2 and parts[0] == _get_secret():
        return parts[1]
    raise InvalidEncodedValue("Invalid encrypted parameter")


def encode_parameter(value: str) -> str:
    """Tag a plaintext value; returns the value unchanged if tagging fails."""
    try:
        return _encode(value)
    except EncodingFailure as exc:
        logger.error(f"Parameter encoding failed: {exc}")
        return value


def decode_parameter(value: str) -> str:
    """Recover the plaintext of a tagged value.

    Untagged values are returned as they are. Tagged values that do not
    decode are also returned unchanged.
    """
    if not is_encoded_parameter(value):
        return value
    try:
        return _decode(value)
    except DecodingFailure as exc:
        logger.warning(f"Parameter decoding failed: {exc}")
        return value


def is_encoded_parameter(value: str) -> bool:
    return isinstance(value, str) and value.startswith(_get_prefix())
