"""Tests for the CLI."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from speak_docs.cli import build_parser, main
from speak_docs.injector import inject_narration, locate_narration_block
from speak_docs.models import Voice

S3_FLAGS = [
    "--s3-bucket", "docs-audio",
    "--s3-access-key-id", "key",
    "--s3-secret-access-key", "secret",
    "--s3-public-url", "https://cdn.example.com",
]


@pytest.fixture(autouse=True)
def no_dotenv():
    """Keep a developer's .env out of the tests."""
    with patch("speak_docs.cli.load_dotenv"):
        yield


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [{}]
    client.delete_objects.return_value = {}
    with patch("speak_docs.storage.boto3.client", return_value=client):
        yield client


# --- Parsing ---

def test_parser_generate_defaults():
    """Directory defaults to the current one; flags default off."""
    args = build_parser().parse_args(["generate"])
    assert args.directory == "."
    assert not args.dry_run
    assert not args.branch_paths


def test_version(capsys):
    """--version prints and exits."""
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert "0.1.0" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    """Bare invocation shows usage."""
    main([])
    assert "usage" in capsys.readouterr().out


# --- generate ---

@patch("speak_docs.pipeline.synthesize", new_callable=AsyncMock, return_value=b"mp3")
def test_generate_command(mock_synth, docs_dir, s3_client, capsys):
    """Generate narrates changed documents end to end."""
    main(["generate", str(docs_dir), "--voices", "v1,v2", "--voice-names", "Alice,Bob", *S3_FLAGS])
    block = locate_narration_block((docs_dir / "guides" / "intro.mdx").read_text(encoding="utf-8"))
    assert block.voice_ids == ["v1", "v2"]
    assert s3_client.put_object.call_count == 2
    assert "Generated: 1" in capsys.readouterr().out


@patch("speak_docs.pipeline.synthesize", new_callable=AsyncMock, return_value=b"mp3")
@patch("speak_docs.cli.current_branch", return_value="feature-x")
def test_generate_branch_paths(mock_branch, mock_synth, docs_dir, s3_client):
    """Branch namespacing puts the branch into storage keys."""
    main(["generate", str(docs_dir), "--voices", "v1", "--branch-paths", *S3_FLAGS])
    keys = [c.kwargs["Key"] for c in s3_client.put_object.call_args_list]
    assert keys == ["audio/feature-x/guides-intro/v1.mp3"]


def test_generate_missing_config(docs_dir, s3_client, capsys, monkeypatch):
    """Missing settings exit with an error before touching documents."""
    for name in ("S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "S3_PUBLIC_URL", "SPEAK_VOICES"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(SystemExit) as exc:
        main(["generate", str(docs_dir), "--voices", "v1"])
    assert exc.value.code == 1
    assert "Error: Missing required configuration" in capsys.readouterr().err


def test_generate_missing_directory(tmp_path, capsys):
    """A directory that does not exist is an error."""
    with pytest.raises(SystemExit):
        main(["generate", str(tmp_path / "nope"), "--voices", "v1", *S3_FLAGS])
    assert "Directory not found" in capsys.readouterr().err


# --- cleanup ---

def test_cleanup_command(tmp_path, s3_client, capsys):
    """Orphans are listed and deleted."""
    voices = [Voice(id="v1", name="A", url="https://cdn.example.com/audio/page/v1.mp3")]
    (tmp_path / "page.mdx").write_text(inject_narration("# Page\n", voices, "abc"), encoding="utf-8")
    s3_client.get_paginator.return_value.paginate.return_value = [
        {"Contents": [{"Key": "audio/page/v1.mp3"}, {"Key": "audio/old/v1.mp3"}]},
    ]
    main(["cleanup", str(tmp_path), *S3_FLAGS])
    out = capsys.readouterr().out
    assert "audio/old/v1.mp3" in out
    assert "Deleted 1 orphaned file(s)" in out


def test_cleanup_unreadable_document(tmp_path, s3_client, capsys):
    """A document that cannot be decoded stops cleanup with an error."""
    (tmp_path / "page.mdx").write_bytes(b"\xff\xfe# Page\n")
    with pytest.raises(SystemExit) as exc:
        main(["cleanup", str(tmp_path), *S3_FLAGS])
    assert exc.value.code == 1
    assert capsys.readouterr().err.startswith("Error:")
    s3_client.delete_objects.assert_not_called()


def test_cleanup_clean_bucket(tmp_path, s3_client, capsys):
    """Nothing stored, nothing to do."""
    (tmp_path / "page.mdx").write_text("# Page\n", encoding="utf-8")
    main(["cleanup", str(tmp_path), *S3_FLAGS])
    assert "No orphaned files found." in capsys.readouterr().out
    s3_client.delete_objects.assert_not_called()


# --- remove ---

def test_remove_command(tmp_path, capsys):
    """Narration blocks are stripped from every document."""
    voices = [Voice(id="v1", name="A", url="https://cdn.example.com/a.mp3")]
    page = tmp_path / "page.mdx"
    page.write_text(inject_narration("# Page\n\nText.\n", voices, "abc"), encoding="utf-8")
    main(["remove", str(tmp_path)])
    content = page.read_text(encoding="utf-8")
    assert "AudioTranscript" not in content
    assert "Text." in content
    assert "1 of 1 document(s) changed" in capsys.readouterr().out


def test_remove_dry_run(tmp_path):
    """Dry run leaves files alone."""
    voices = [Voice(id="v1", name="A")]
    page = tmp_path / "page.mdx"
    original = inject_narration("# Page\n", voices, "abc")
    page.write_text(original, encoding="utf-8")
    main(["remove", str(tmp_path), "--dry-run"])
    assert page.read_text(encoding="utf-8") == original
