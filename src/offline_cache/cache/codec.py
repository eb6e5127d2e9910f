from __future__ import annotations

import base64
import binascii
import logging
import zlib
from typing import Dict

logger = logging.getLogger(__name__)


class PayloadCodec:
    """
    Reversible text transform applied to payloads before they are stored.

    ``decode(encode(x)) == x`` for every text ``x``. ``decode`` never raises: input it
    cannot decode is returned unchanged.
    """

    name: str = ""

    def encode(self, text: str) -> str:
        raise NotImplementedError

    def decode(self, encoded: str) -> str:
        raise NotImplementedError


class Base64TextCodec(PayloadCodec):
    """Base64 over the UTF-8 bytes. Grows the payload by roughly a third."""

    name = "base64"

    def encode(self, text: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    def decode(self, encoded: str) -> str:
        try:
            return base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            logger.debug("Payload decode failed, returning stored text. codec=%s", self.name)
            return encoded


class ZlibBase64Codec(PayloadCodec):
    """zlib-compressed UTF-8, base64-wrapped so it can live in a string store."""

    name = "zlib+base64"

    def __init__(self, level: int = 6) -> None:
        self._level = level

    def encode(self, text: str) -> str:
        compressed = zlib.compress(text.encode("utf-8"), self._level)
        return base64.b64encode(compressed).decode("ascii")

    def decode(self, encoded: str) -> str:
        try:
            raw = base64.b64decode(encoded, validate=True)
            return zlib.decompress(raw).decode("utf-8")
        except (binascii.Error, zlib.error, UnicodeDecodeError, ValueError):
            logger.debug("Payload decode failed, returning stored text. codec=%s", self.name)
            return encoded


_CODECS: Dict[str, PayloadCodec] = {
    Base64TextCodec.name: Base64TextCodec(),
    ZlibBase64Codec.name: ZlibBase64Codec(),
}


def get_codec(name: str) -> PayloadCodec:
    try:
        return _CODECS[name]
    except KeyError:
        raise ValueError(f"Unknown payload codec: {name}") from None


def encode_binary(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_binary(stored: str) -> bytes:
    return base64.b64decode(stored)
