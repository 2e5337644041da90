"""
Tests for the management CLI.
"""

import base64

from tools import manage


class TestManage:

    def test_no_command(self, capsys):
        assert manage.main([]) == 1

    def test_generate_identity(self, capsys):
        assert manage.main(["generate-identity", "--name", "carol"]) == 0
        out = capsys.readouterr().out

        assert "NODEBLOG_AUTHOR_NAME=carol" in out
        key_line = next(line for line in out.splitlines() if "NODEBLOG_PRIVATE_KEY=" in line)
        key = key_line.split("=", 1)[1]
        assert len(base64.b64decode(key)) == 32

    def test_create_post_too_long(self, monkeypatch, capsys):
        monkeypatch.delenv("BLOGSTORE_DRIVER", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("DATABASE_HOST", raising=False)
        monkeypatch.delenv("NODEBLOG_PRODUCTION", raising=False)

        assert manage.main(["create-post", "--text", "a" * 40000]) == 1
        assert "too long" in capsys.readouterr().err
