"""Serialization strategies, codecs and the media-support middleware."""

from .codecs import Codec, JacksonCodec, JsonbCodec, JsonpCodec
from .strategy import SerializationStrategy, codec_for, media_support, resolve_strategy
from .support import CodecDep, MediaSupport, MediaSupportMiddleware, encode, get_codec

__all__ = [
    "Codec",
    "CodecDep",
    "JacksonCodec",
    "JsonbCodec",
    "JsonpCodec",
    "MediaSupport",
    "MediaSupportMiddleware",
    "SerializationStrategy",
    "codec_for",
    "encode",
    "get_codec",
    "media_support",
    "resolve_strategy",
]
