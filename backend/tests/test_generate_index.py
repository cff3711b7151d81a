"""
Tests for the payload generator CLI.
"""
import json

from services.processing.generate_index import generate, main
from services.processing.payload import assemble_payloads, decode_payload


class TestGenerateIndex:

    def test_writes_all_payload_variants(self, tmp_path, write_transcripts, corpus):
        root = write_transcripts(corpus)
        output_dir = tmp_path / "out"

        assert main(["--transcripts", str(root), "--output-dir", str(output_dir)]) == 0

        names = sorted(path.name for path in output_dir.iterdir())
        assert names == [
            "search-index.json",
            "search-index.min.json",
            "transcript-index.json",
            "transcript-index.min.json",
        ]
        pretty = json.loads((output_dir / "search-index.json").read_text(encoding="utf-8"))
        minified = decode_payload((output_dir / "search-index.min.json").read_bytes())
        assert pretty == minified
        assert minified["stats"]["totalComics"] == 4
        assert "comics" in minified

    def test_split_output_assembles(self, tmp_path, write_transcripts, corpus):
        root = write_transcripts(corpus)
        output_dir = tmp_path / "out"

        assert main(["--transcripts", str(root), "--output-dir", str(output_dir), "--split", "--version", "3.1"]) == 0

        search = decode_payload((output_dir / "search-index.min.json").read_bytes())
        transcripts = decode_payload((output_dir / "transcript-index.min.json").read_bytes())
        assert "comics" not in search
        assert search["version"] == transcripts["version"] == "3.1"

        store, index, metadata = assemble_payloads([search, transcripts])
        assert len(store) == 4
        assert index.posting_list("meeting") == ("2001-01-02", "2001-01-03")

    def test_skips_bad_files(self, tmp_path, write_transcripts, corpus):
        root = write_transcripts(corpus + [{"date": "2001-01-05", "panels": "broken"}])
        (root / "2001" / "2001-01-06.json").write_text("{", encoding="utf-8")

        result = generate(root, tmp_path / "out")

        assert result.metadata.total_documents == 4
        assert result.skipped == ["2001-01-05"]

    def test_missing_transcript_directory(self, tmp_path):
        assert main(["--transcripts", str(tmp_path / "nowhere"), "--output-dir", str(tmp_path / "out")]) == 1
        assert not (tmp_path / "out").exists()

    def test_no_valid_transcripts(self, tmp_path):
        root = tmp_path / "transcripts"
        root.mkdir()

        assert main(["--transcripts", str(root), "--output-dir", str(tmp_path / "out")]) == 1
