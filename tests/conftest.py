"""Shared fixtures for speak-docs tests."""

from unittest.mock import MagicMock

import pytest

from speak_docs.config import Settings
from speak_docs.models import Voice
from speak_docs.storage import S3Storage

PUBLIC_URL = "https://cdn.example.com"


@pytest.fixture
def voices():
    """Two voice descriptors with URLs, in declared order."""
    return [
        Voice(id="v1", name="Alice", url=f"{PUBLIC_URL}/audio/intro/v1.mp3"),
        Voice(id="v2", name="Bob", url=f"{PUBLIC_URL}/audio/intro/v2.mp3"),
    ]


@pytest.fixture
def s3_client():
    """Mock boto3 S3 client with an empty bucket."""
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [{}]
    client.delete_objects.return_value = {}
    return client


@pytest.fixture
def storage(s3_client):
    return S3Storage(bucket="docs-audio", public_url=PUBLIC_URL, client=s3_client)


@pytest.fixture
def settings():
    """Resolved settings with two voices and complete S3 credentials."""
    return Settings(
        voice_ids=("v1", "v2"),
        voice_names=("Alice", "Bob"),
        s3_bucket="docs-audio",
        s3_access_key_id="key",
        s3_secret_access_key="secret",
        s3_public_url=PUBLIC_URL,
    )


@pytest.fixture
def docs_dir(tmp_path):
    """A small documentation tree with prose, code-only and ignored pages."""
    (tmp_path / "guides").mkdir()
    (tmp_path / "guides" / "intro.mdx").write_text(
        "---\ntitle: Intro\n---\n# Welcome\n\nThis is the intro.\n", encoding="utf-8"
    )
    (tmp_path / "guides" / "code.mdx").write_text(
        "```python\nprint('hi')\n```\n", encoding="utf-8"
    )
    (tmp_path / "snippets").mkdir()
    (tmp_path / "snippets" / "player.mdx").write_text("# Snippet\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def scenario_doc():
    """Front matter, a heading and a paragraph with emphasis."""
    return "---\ntitle: X\n---\n## Hi\nSome *text*.\n"
