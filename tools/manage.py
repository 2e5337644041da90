#!/usr/bin/env python3
"""
nodeblog Management CLI

Commands for operating a node:
- generate-identity: Create a new Ed25519 identity for NODEBLOG_PRIVATE_KEY
- list-posts: Print the feed as JSON
- create-post: Publish a post as the configured identity
- verify-posts: Re-verify signatures and ids of every stored post

Usage:
    python -m tools.manage <command> [options]

Examples:
    python -m tools.manage generate-identity --name alice
    python -m tools.manage create-post --text "hello"
    python -m tools.manage verify-posts
"""

import argparse
import base64
import json
import sys

from nodeblog.api.responses import json_default


def cmd_generate_identity(args):
    """Generate a new local identity."""
    from nodeblog.core import AuthorFactory

    author = AuthorFactory.create_local_author(args.name)
    private_b64 = base64.b64encode(author.private_key).decode("ascii")

    print("[OK] Identity generated")
    print(f"  Author ID: {author.id.hex()}")
    print(f"  Name: {author.name}")
    print(f"\n  Public key: {base64.b64encode(author.public_key).decode('ascii')}")
    print("\n  Set these environment variables (KEEP THE KEY SECRET!):")
    print(f"  NODEBLOG_AUTHOR_NAME={author.name}")
    print(f"  NODEBLOG_PRIVATE_KEY={private_b64}")
    return 0


def cmd_list_posts(args):
    """Print every post known to the node."""
    from nodeblog.node import build_node

    node = build_node()
    posts = node.controller.list_posts()
    print(json.dumps(posts, default=json_default, indent=2, ensure_ascii=False))
    return 0


def cmd_create_post(args):
    """Publish a post to the local author's personal blog."""
    from nodeblog.core import ValidationError
    from nodeblog.node import build_node

    node = build_node()
    try:
        post = node.controller.create_post(args.text)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(post, default=json_default, indent=2, ensure_ascii=False))
    return 0


def cmd_verify_posts(args):
    """Verify every stored post."""
    from nodeblog.core import InvalidPostError
    from nodeblog.node import build_node

    node = build_node()
    posts = node.store.list_messages()
    print(f"Verifying {len(posts)} posts...")

    failures = 0
    for post in posts:
        try:
            node.blog_manager.verify_post(post)
        except InvalidPostError as e:
            failures += 1
            print(f"[FAIL] {post.message_id.hex()[:16]}... {e}")

    if failures:
        print(f"[FAIL] {failures} of {len(posts)} posts failed verification")
        return 1

    print("[OK] All posts verified")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="nodeblog Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    gen_parser = subparsers.add_parser("generate-identity", help="Generate a local identity")
    gen_parser.add_argument("--name", default="node", help="Author display name")
    gen_parser.set_defaults(func=cmd_generate_identity)

    list_parser = subparsers.add_parser("list-posts", help="Print the feed as JSON")
    list_parser.set_defaults(func=cmd_list_posts)

    post_parser = subparsers.add_parser("create-post", help="Publish a post")
    post_parser.add_argument("--text", required=True, help="Post text")
    post_parser.set_defaults(func=cmd_create_post)

    verify_parser = subparsers.add_parser("verify-posts", help="Verify stored posts")
    verify_parser.set_defaults(func=cmd_verify_posts)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
