from datetime import datetime, timezone

import click
from flask import current_app

from board.errors import StoreUnavailableError


SEED_POSTS = [
    {
        "title": "Seed 1: edit target",
        "author": "Test user 1",
        "content": "A post kept around for exercising edits.",
    },
    {
        "title": "Seed 2: delete target",
        "author": "Test user 2",
        "content": "A post kept around for exercising deletes.",
    },
    {
        "title": "Seed 3: display check",
        "author": "Test user 3",
        "content": "A post used to check list and detail views.",
    },
    {
        "title": "Seed 4: longest content",
        "author": "Test user 4",
        "content": "a" * 140,
    },
    {
        "title": "Seed 5: special characters",
        "author": 'Tester <script>alert("XSS")</script>',
        "content": "Text with\nline breaks\nand a\ttab",
    },
    {
        "title": "Old post",
        "author": "Past user",
        "content": "This post is back-dated.",
        "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
    },
    {
        "title": "Latest post",
        "author": "Current user",
        "content": "This post carries the newest timestamp.",
    },
]


def _durable_store():
    return current_app.extensions["post_service"].durable


def register_commands(app):
    @app.cli.command("seed-posts")
    def seed_posts():
        """Replace every post in MongoDB with the sample posts."""
        try:
            posts = _durable_store().replace_all(SEED_POSTS)
        except StoreUnavailableError as e:
            raise click.ClickException(str(e))

        click.echo(f"Created {len(posts)} posts")
        for index, post in enumerate(posts, start=1):
            click.echo(f"  {index}. {post.title} (id: {post.id})")

    @app.cli.command("cleanup-posts")
    @click.option("--keep", default=0, show_default=True, help="Keep the newest N posts.")
    @click.option("--pattern", default=None, help="Only delete posts matching this regex.")
    def cleanup_posts(keep, pattern):
        """Delete posts from MongoDB."""
        try:
            summary = _durable_store().cleanup(keep=keep, pattern=pattern)
        except StoreUnavailableError as e:
            raise click.ClickException(str(e))

        click.echo(f"Deleted {summary['deleted']} posts, {summary['remaining']} remaining")
