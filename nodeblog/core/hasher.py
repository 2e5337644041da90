"""
Canonical Hashing Service

Handles deterministic serialization and labelled SHA-256 identifiers.
Same input → same id. Every node must agree on it.

Author ids, blog ids and message ids are all produced here.
If serialization changes, every id in every store changes with it,
so rule changes must bump SERIALIZATION_VERSION.

CANONICAL SERIALIZATION RULES:
1. Version: "__canon_v" injected into every canonical output (first key when sorted)
2. Dictionary keys: sorted recursively (Unicode codepoint order)
3. Nulls: omitted entirely (not serialized as null)
4. Empty strings and dicts: preserved (they are valid data)
5. Bytes: standard base64 with padding
6. Floats: BANNED - timestamps are integer milliseconds
7. Lists, sets and other types: rejected
8. JSON output: no extra whitespace, sorted keys, ASCII only
9. Top-level: must be dict/object

IDENTIFIER RULES:
    digest(label, *parts) = SHA256(label || len(p1) || p1 || len(p2) || p2 ...)
Lengths are 4-byte big-endian, so no two part lists collide.
"""

import base64
import hashlib
import json
from typing import Any


AUTHOR_ID_LABEL = "org.nodeblog/AUTHOR_ID"
BLOG_ID_LABEL = "org.nodeblog/BLOG_ID"
MESSAGE_ID_LABEL = "org.nodeblog/MESSAGE_ID"


class CanonicalSerializationError(Exception):
    """Raised when data cannot be canonically serialized."""
    pass


class Hasher:
    """
    Canonical serialization and hashing.

    IMMUTABLE CONTRACT:
    - Same logical input → same bytes → same id
    - Across nodes and Python versions
    """

    SERIALIZATION_VERSION = 1

    @classmethod
    def _serialize_value(cls, value: Any, path: str = "") -> Any:
        """
        Convert a value to its canonical JSON form.

        Raises:
            CanonicalSerializationError: If value cannot be serialized deterministically
        """
        if value is None:
            return None  # Filtered out by _to_canonical_dict

        if isinstance(value, float):
            raise CanonicalSerializationError(
                f"Cannot serialize float at {path}. "
                "Floats are banned in canonical payloads. "
                "Use integer milliseconds or a string."
            )

        if isinstance(value, (int, str)):
            return value

        if isinstance(value, (bytes, bytearray)):
            return base64.b64encode(bytes(value)).decode("ascii")

        if isinstance(value, dict):
            return cls._to_canonical_dict(value, path)

        raise CanonicalSerializationError(
            f"Cannot serialize {type(value).__name__} at {path}. "
            "Only strings, integers, bytes and objects are allowed."
        )

    @classmethod
    def _to_canonical_dict(
        cls,
        data: dict[str, Any],
        path: str = ""
    ) -> dict[str, Any]:
        """Sort keys, drop None values, recurse."""
        result = {}

        for key in sorted(data.keys()):
            if not isinstance(key, str):
                raise CanonicalSerializationError(
                    f"Dictionary key at {path} must be string, "
                    f"got {type(key).__name__}"
                )

            key_path = f"{path}.{key}" if path else key
            serialized = cls._serialize_value(data[key], key_path)

            if serialized is not None:
                result[key] = serialized

        return result

    @classmethod
    def canonicalize(cls, data: dict[str, Any]) -> str:
        """
        Convert data to canonical JSON string.

        Raises:
            CanonicalSerializationError: If data cannot be deterministically serialized
        """
        if not isinstance(data, dict):
            raise CanonicalSerializationError(
                f"Top-level canonicalization requires a dict/object, "
                f"got {type(data).__name__}."
            )

        canonical_dict = cls._to_canonical_dict(data)
        canonical_dict = {"__canon_v": cls.SERIALIZATION_VERSION, **canonical_dict}

        return json.dumps(
            canonical_dict,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=True,
            allow_nan=False,
        )

    @classmethod
    def canonical_bytes(cls, data: dict[str, Any]) -> bytes:
        """Canonical JSON encoded as UTF-8 (ASCII in practice)."""
        return cls.canonicalize(data).encode("utf-8")

    @staticmethod
    def digest(label: str, *parts: bytes) -> bytes:
        """
        Labelled SHA-256 over length-prefixed parts.

        Returns:
            32 raw bytes
        """
        h = hashlib.sha256()
        h.update(label.encode("utf-8"))
        for part in parts:
            h.update(len(part).to_bytes(4, "big"))
            h.update(part)
        return h.digest()

    @classmethod
    def author_id(cls, format_version: int, public_key: bytes) -> bytes:
        """Author id: depends only on the format version and public key."""
        return cls.digest(
            AUTHOR_ID_LABEL,
            format_version.to_bytes(1, "big"),
            public_key,
        )

    @classmethod
    def blog_id(cls, author_id: bytes) -> bytes:
        """Personal blog id for an author."""
        return cls.digest(BLOG_ID_LABEL, author_id)

    @classmethod
    def message_id(cls, blog_id: bytes, timestamp: int, body: bytes) -> bytes:
        """Content-addressed message id."""
        if timestamp < 0:
            raise CanonicalSerializationError(
                f"Timestamp must be non-negative, got {timestamp}"
            )
        return cls.digest(
            MESSAGE_ID_LABEL,
            blog_id,
            timestamp.to_bytes(8, "big"),
            body,
        )
