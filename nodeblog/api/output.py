"""
Output records for the HTTP API.

These functions project domain objects into plain dicts with the
external field names. Byte fields stay bytes here; NodeJSONResponse
encodes them as base64 on the way out.
"""

from typing import Any, assert_never

from ..schemas import Author, AuthorStatus, BlogPostHeader


def output_author(author: Author) -> dict[str, Any]:
    return {
        "formatVersion": author.format_version,
        "id": author.id,
        "name": author.name,
        "publicKey": author.public_key,
    }


def output_status(status: AuthorStatus) -> str:
    # One arm per AuthorStatus member; assert_never flags a missing one
    match status:
        case AuthorStatus.NONE:
            return "none"
        case AuthorStatus.ANONYMOUS:
            return "anonymous"
        case AuthorStatus.UNKNOWN:
            return "unknown"
        case AuthorStatus.UNVERIFIED:
            return "unverified"
        case AuthorStatus.VERIFIED:
            return "verified"
        case AuthorStatus.OURSELVES:
            return "ourselves"
        case _:
            assert_never(status)


def output_header(header: BlogPostHeader, text: str) -> dict[str, Any]:
    """A stored post's header joined with its body text."""
    return {
        "id": header.id,
        "blogId": header.blog_id,
        "parentId": header.parent_id,
        "author": output_author(header.author),
        "authorStatus": output_status(header.author_status),
        "timestamp": header.timestamp,
        "timeReceived": header.time_received,
        "text": text,
    }
