"""Tests for the stateless security helpers."""

import re

import pytest

from src.utils.security import (
    FILE_UPLOAD_DEFAULTS,
    FileMetadata,
    FileValidationOptions,
    escape_html,
    generate_secure_token,
    has_sql_injection_patterns,
    mask_secret,
    sanitize_html,
    secure_compare,
    validate_file_upload,
)


class TestSanitizeHtml:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("<script>alert(1)</script>Hello", "alert(1)Hello"),
            ("  <b>bold</b> &amp; plain  ", "bold  plain"),
            ("a < b", "a < b"),
            ("no markup", "no markup"),
            ("", ""),
        ],
    )
    def test_strips_tags_and_entities(self, raw, expected):
        assert sanitize_html(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        ["<<b>i>x</i>", "&am<b>p;", "<a href='x'>&lt;tag&gt;</a>", " a <b "],
    )
    def test_idempotent(self, raw):
        once = sanitize_html(raw)

        assert sanitize_html(once) == once


class TestEscapeHtml:
    @pytest.mark.unit
    def test_escapes_all_special_characters(self):
        assert escape_html("<a href=\"x\">Tom & 'Jerry'</a>") == (
            "&lt;a href=&quot;x&quot;&gt;Tom &amp; &#039;Jerry&#039;&lt;/a&gt;"
        )

    @pytest.mark.unit
    def test_ampersand_is_escaped_once(self):
        assert escape_html("&lt;") == "&amp;lt;"


class TestSecureCompare:
    @pytest.mark.unit
    def test_equal_strings(self):
        assert secure_compare("token-123", "token-123")

    @pytest.mark.unit
    def test_empty_strings_are_equal(self):
        assert secure_compare("", "")

    @pytest.mark.unit
    @pytest.mark.parametrize("other", ["token-124", "Token-123", "token-12", ""])
    def test_different_strings(self, other):
        assert not secure_compare("token-123", other)


class TestGenerateSecureToken:
    @pytest.mark.unit
    def test_default_length(self):
        token = generate_secure_token()

        assert re.fullmatch(r"[0-9a-f]{64}", token)

    @pytest.mark.unit
    def test_custom_length_and_uniqueness(self):
        tokens = {generate_secure_token(16) for _ in range(100)}

        assert len(tokens) == 100
        assert all(len(token) == 32 for token in tokens)

    @pytest.mark.unit
    def test_zero_and_negative_length(self):
        assert generate_secure_token(0) == ""
        with pytest.raises(ValueError):
            generate_secure_token(-1)


class TestValidateFileUpload:
    @pytest.mark.unit
    def test_accepts_allowed_file(self):
        result = validate_file_upload(
            FileMetadata(name="avatar.PNG", type="image/png", size=1024), FILE_UPLOAD_DEFAULTS
        )

        assert result.valid
        assert result.error is None

    @pytest.mark.unit
    def test_size_is_checked_first(self):
        result = validate_file_upload(
            FileMetadata(name="movie.exe", type="application/x-msdownload", size=11 * 1024 * 1024),
            FILE_UPLOAD_DEFAULTS,
        )

        assert not result.valid
        assert result.error == "File size exceeds maximum of 10MB"

    @pytest.mark.unit
    def test_size_at_limit_is_allowed(self):
        result = validate_file_upload(
            FileMetadata(name="scan.pdf", type="application/pdf", size=10 * 1024 * 1024),
            FILE_UPLOAD_DEFAULTS,
        )

        assert result.valid

    @pytest.mark.unit
    def test_mime_type_before_extension(self):
        result = validate_file_upload(
            FileMetadata(name="tool.exe", type="application/x-msdownload", size=10),
            FILE_UPLOAD_DEFAULTS,
        )

        assert result.error == "File type application/x-msdownload is not allowed"

    @pytest.mark.unit
    def test_extension_mismatch(self):
        result = validate_file_upload(
            FileMetadata(name="photo.svg", type="image/png", size=10), FILE_UPLOAD_DEFAULTS
        )

        assert result.error == "File extension .svg is not allowed"

    @pytest.mark.unit
    def test_fractional_size_limit_message(self):
        options = FileValidationOptions(
            max_size_bytes=512 * 1024, allowed_mime_types=["text/plain"], allowed_extensions=["txt"]
        )

        result = validate_file_upload(FileMetadata("a.txt", "text/plain", 600 * 1024), options)

        assert result.error == "File size exceeds maximum of 0.5MB"


class TestMisc:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("redis://:pass@cache:6379/0", "redi****79/0"),
            ("short", "****"),
            ("12345678", "****"),
        ],
    )
    def test_mask_secret(self, value, expected):
        assert mask_secret(value) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value",
        ["1 OR 1=1", "name'; DROP TABLE users", "admin' --", "UNION SELECT password"],
    )
    def test_sql_injection_patterns_detected(self, value):
        assert has_sql_injection_patterns(value)

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["Quarterly revenue", "Orders by region", "Dropbox sync"])
    def test_plain_text_is_not_flagged(self, value):
        assert not has_sql_injection_patterns(value)
