"""Attachment reference validation."""

from types import SimpleNamespace

import pytest

from helpdesk.errors import BadRequest
from helpdesk.services.attachments import (
    MAX_ATTACHMENTS_PER_TICKET,
    file_type_from_url,
    is_valid_url,
    sanitize_attachments,
)


class TestSanitizeAttachments:

    def test_empty_input(self):
        assert sanitize_attachments(None) == []
        assert sanitize_attachments([]) == []

    def test_normalizes_and_infers_type(self):
        out = sanitize_attachments([
            {"name": "  screenshot  ", "url": "https://files.example.com/a/screen.PNG"},
            {"name": "log", "url": "https://files.example.com/log", "fileType": "TXT"},
        ])
        assert out == [
            {"name": "screenshot", "url": "https://files.example.com/a/screen.PNG", "file_type": "png"},
            {"name": "log", "url": "https://files.example.com/log", "file_type": "txt"},
        ]

    def test_accepts_objects(self):
        item = SimpleNamespace(name="doc", url="http://example.com/doc.pdf", file_type=None)
        assert sanitize_attachments([item])[0]["file_type"] == "pdf"

    def test_too_many(self):
        items = [{"name": f"f{i}", "url": f"https://example.com/{i}.txt"} for i in range(MAX_ATTACHMENTS_PER_TICKET + 1)]
        with pytest.raises(BadRequest):
            sanitize_attachments(items)

    @pytest.mark.parametrize("item", [
        {"name": "", "url": "https://example.com/a.txt"},
        {"name": "a", "url": ""},
        {"name": "a", "url": "ftp://example.com/a.txt"},
        {"name": "a", "url": "https://example.com/a.exe", "file_type": "exe"},
        {"name": "x" * 256, "url": "https://example.com/a.txt"},
    ])
    def test_rejects_bad_items(self, item):
        with pytest.raises(BadRequest):
            sanitize_attachments([item])


class TestUrlHelpers:

    def test_is_valid_url(self):
        assert is_valid_url("https://example.com/x")
        assert not is_valid_url("example.com/x")
        assert not is_valid_url("javascript:alert(1)")

    def test_file_type_from_url(self):
        assert file_type_from_url("https://example.com/report.docx?v=2") == "docx"
        assert file_type_from_url("https://example.com/archive.tar") is None
        assert file_type_from_url("https://example.com/dir.v2/readme") is None
