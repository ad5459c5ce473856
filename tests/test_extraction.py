"""Tests for pipeline.extraction — extract_text."""

import json

import fitz
import pytest

from localbot.exceptions import ExtractionFailed
from pipeline.extraction import extract_text


class TestExtractText:
    @pytest.mark.parametrize("suffix", [".txt", ".md", ".csv", ".xml"])
    def test_text_formats(self, tmp_path, suffix):
        path = tmp_path / f"doc{suffix}"
        path.write_text("Hello local world", encoding="utf-8")
        assert extract_text(str(path)) == "Hello local world"

    def test_json_is_pretty_printed(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"name": "LocalBOT", "tags": ["rag"]}), encoding="utf-8")
        text = extract_text(str(path))
        assert '"name": "LocalBOT"' in text
        assert "\n" in text

    def test_invalid_json_read_as_text(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert extract_text(str(path)) == "{not json"

    def test_pdf(self, tmp_path):
        path = tmp_path / "doc.pdf"
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Retrieval augmented generation")
        doc.save(str(path))
        doc.close()

        assert "Retrieval augmented generation" in extract_text(str(path))

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"\x89PNG")
        with pytest.raises(ExtractionFailed, match="Unsupported"):
            extract_text(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionFailed, match="not found"):
            extract_text(str(tmp_path / "missing.txt"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("   \n", encoding="utf-8")
        with pytest.raises(ExtractionFailed, match="No text content"):
            extract_text(str(path))
